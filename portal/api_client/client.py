"""REST client for the telemedicine backend."""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

import httpx

from .errors import PortalAPIError
from ..logging_config import get_logger
from ..models.chat import Attachment, ChatSummary, Message
from ..models.session import AuthResponse, LoginRequest, RegisterRequest

logger = get_logger(__name__)

TokenProvider = Callable[[], Optional[str]]

GENERIC_ERROR = "Something went wrong. Please try again."


@dataclass
class UploadedFile:
    """A file selected for upload."""

    filename: str
    content: bytes
    content_type: str

    @property
    def size(self) -> int:
        return len(self.content)


class PortalAPIClient:
    """Thin async wrapper over the backend's auth and chat endpoints."""

    def __init__(
        self,
        base_url: str,
        token_provider: Optional[TokenProvider] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.token_provider = token_provider
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/") + "/",
            timeout=timeout,
            transport=transport,
            headers={"Accept": "application/json"},
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    def _auth_headers(self) -> Dict[str, str]:
        token = self.token_provider() if self.token_provider else None
        return {"Authorization": f"Bearer {token}"} if token else {}

    async def _request(self, method: str, path: str, **kwargs: Any) -> Dict[str, Any]:
        """Perform a request and return the decoded JSON body."""

        headers = {**self._auth_headers(), **kwargs.pop("headers", {})}
        logger.debug(f"API request: {method} {path}")

        try:
            response = await self._client.request(method, path.lstrip("/"), headers=headers, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"API transport error on {method} {path}: {e}")
            raise PortalAPIError("Unable to reach the server. Check your connection.") from e

        try:
            body = response.json() if response.content else {}
        except ValueError:
            body = {}

        if response.is_error:
            message = body.get("message") if isinstance(body, dict) else None
            logger.warning(f"API error on {method} {path}: {response.status_code} {message or ''}")
            raise PortalAPIError(message or GENERIC_ERROR, status_code=response.status_code)

        if not isinstance(body, dict):
            raise PortalAPIError(GENERIC_ERROR, status_code=response.status_code)

        logger.debug(f"API response: {path} {response.status_code}")
        return body

    # Auth

    async def login(self, request: LoginRequest) -> AuthResponse:
        body = await self._request("POST", "/auth/login", json=request.model_dump(mode="json", exclude_none=True))
        return self._auth_response(body)

    async def register(self, request: RegisterRequest) -> AuthResponse:
        body = await self._request("POST", "/auth/register", json=request.model_dump(mode="json"))
        return self._auth_response(body)

    async def forgot_password(self, email: str) -> Dict[str, Any]:
        return await self._request("POST", "/auth/forgot-password", json={"email": email})

    async def verify_otp(self, email: str, otp: str) -> Dict[str, Any]:
        return await self._request("POST", "/auth/verify-otp", json={"email": email, "otp": otp})

    async def reset_password(self, email: str, otp: str, new_password: str) -> Dict[str, Any]:
        return await self._request(
            "POST",
            "/auth/reset-password",
            json={"email": email, "otp": otp, "newPassword": new_password},
        )

    @staticmethod
    def _auth_response(body: Dict[str, Any]) -> AuthResponse:
        try:
            return AuthResponse.model_validate(body)
        except ValueError as e:
            logger.error(f"Malformed auth response: {e}")
            raise PortalAPIError(GENERIC_ERROR) from e

    # Chat

    async def list_chats(self) -> List[ChatSummary]:
        body = await self._request("GET", "/chats")
        try:
            return [ChatSummary.model_validate(chat) for chat in body.get("chats") or []]
        except ValueError as e:
            logger.error(f"Malformed chat list: {e}")
            raise PortalAPIError("Failed to load chats") from e

    async def create_chat(self, counterpart_id: str) -> str:
        """Create or fetch the conversation with a counterpart; returns its id."""

        body = await self._request("POST", "/chats", json={"pharmacyId": counterpart_id})
        chat = body.get("chat") or {}
        chat_id = chat.get("_id") or chat.get("id")
        if not chat_id:
            raise PortalAPIError("Failed to start chat")
        return str(chat_id)

    async def get_messages(self, chat_id: str) -> List[Message]:
        """Fetch history ordered oldest first."""

        body = await self._request("GET", f"/chats/{chat_id}/messages")
        try:
            return [Message.model_validate(item) for item in body.get("messages") or []]
        except ValueError as e:
            logger.error(f"Malformed message history for {chat_id}: {e}")
            raise PortalAPIError("Failed to load messages") from e

    async def mark_read(self, chat_id: str) -> None:
        await self._request("PUT", f"/chats/{chat_id}/read")

    async def clear_history(self, chat_id: str) -> None:
        await self._request("PUT", f"/chats/{chat_id}/clear")

    async def upload_file(self, upload: UploadedFile, kind: Optional[str] = None) -> Attachment:
        """Store a file and return its attachment descriptor."""

        data = {"type": kind} if kind else None
        body = await self._request(
            "POST",
            "/chats/upload",
            files={"file": (upload.filename, upload.content, upload.content_type)},
            data=data,
        )
        if not body.get("success") or not body.get("file"):
            raise PortalAPIError("File upload failed")
        try:
            return Attachment.model_validate(body["file"])
        except ValueError as e:
            raise PortalAPIError("File upload failed") from e
