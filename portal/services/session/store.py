"""Session store - the single source of truth for who is signed in."""

import json
from typing import Any, Callable, Dict, List, Optional

from ...api_client import PortalAPIClient
from ...config import TOKEN_STORAGE_KEY, USER_STORAGE_KEY
from ...logging_config import get_logger
from ...models.session import Identity, LoginRequest, RegisterRequest, Role
from ...storage import ClientStorage

logger = get_logger(__name__)

SessionListener = Callable[[Optional[Identity], Optional[str]], None]


class SessionStore:
    """Holds the Identity and its bearer credential as one unit.

    Identity and credential are only ever set or cleared together, both in
    memory and in durable storage. Dependents subscribe to be told about
    every change.
    """

    def __init__(self, storage: ClientStorage, api: PortalAPIClient):
        self.storage = storage
        self.api = api
        self._identity: Optional[Identity] = None
        self._token: Optional[str] = None
        self._ready = False
        self._listeners: List[SessionListener] = []

    @property
    def identity(self) -> Optional[Identity]:
        return self._identity

    @property
    def token(self) -> Optional[str]:
        return self._token

    @property
    def is_ready(self) -> bool:
        """True once restore() has run; routing waits for this."""
        return self._ready

    @property
    def is_authenticated(self) -> bool:
        return self._identity is not None

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Register a change listener; returns an unsubscribe function."""

        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self._identity, self._token)
            except Exception:
                logger.exception("Session listener failed")

    def restore(self) -> Optional[Identity]:
        """Load the persisted session, discarding it unless both halves are valid."""

        identity: Optional[Identity] = None
        token = self.storage.get(TOKEN_STORAGE_KEY)
        raw_user = self.storage.get(USER_STORAGE_KEY)

        if token and raw_user:
            try:
                identity = Identity.model_validate(self.storage.get_json(USER_STORAGE_KEY))
            except ValueError as e:
                logger.warning(f"Discarding corrupt stored session: {e}")
                identity = None

        if identity is None:
            if token is not None or raw_user is not None:
                self.storage.remove(USER_STORAGE_KEY, TOKEN_STORAGE_KEY)
            token = None
        else:
            logger.info(f"Restored session for {identity.email or identity.id} ({identity.role.value})")

        self._identity = identity
        self._token = token
        self._ready = True
        self._notify()
        return identity

    async def login(self, email: str, password: str, role: Optional[Role] = None) -> Identity:
        """Authenticate against the backend; raises PortalAPIError and stores nothing on failure."""

        auth = await self.api.login(LoginRequest(email=email, password=password, role=role))
        self._set_session(auth.user, auth.token)
        logger.info(f"Signed in as {auth.user.email or auth.user.id} ({auth.user.role.value})")
        return auth.user

    async def register(self, payload: Dict[str, Any]) -> Identity:
        """Create an account; same all-or-nothing contract as login."""

        auth = await self.api.register(RegisterRequest.model_validate(payload))
        self._set_session(auth.user, auth.token)
        logger.info(f"Registered {auth.user.email or auth.user.id} ({auth.user.role.value})")
        return auth.user

    def logout(self) -> None:
        """Clear identity and credential; repeated calls are no-ops."""

        if self._identity is None and self._token is None:
            return

        self._identity = None
        self._token = None
        self.storage.remove(USER_STORAGE_KEY, TOKEN_STORAGE_KEY)
        logger.info("Signed out")
        self._notify()

    def _set_session(self, identity: Identity, token: str) -> None:
        self.storage.set_many({
            USER_STORAGE_KEY: json.dumps(identity.model_dump(mode="json")),
            TOKEN_STORAGE_KEY: token,
        })
        self._identity = identity
        self._token = token
        self._ready = True
        self._notify()
