"""Routing guard - decides what a navigation resolves to for the current session."""

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, List, Optional, Tuple, Union

from ..models.session import Identity, Role

SIGN_IN_PATH = "/login"
NOT_FOUND_VIEW = "not_found"

ROLE_HOMES: Dict[Role, str] = {
    Role.PATIENT: "/dashboard",
    Role.DOCTOR: "/doctor/dashboard",
    Role.ADMIN: "/admin/dashboard",
    Role.PHARMACY: "/pharmacy-dashboard",
}
DEFAULT_HOME = ROLE_HOMES[Role.PATIENT]


def home_for_role(role: Optional[Union[Role, str]]) -> str:
    """Dashboard path for a role; anything unrecognised lands on the patient dashboard."""

    try:
        return ROLE_HOMES.get(Role(role), DEFAULT_HOME)
    except ValueError:
        return DEFAULT_HOME


@dataclass(frozen=True)
class RouteSpec:
    """A navigable view and what it requires of the session.

    `require_auth=False` marks a public-only view (sign-in and friends) that
    authenticated users are bounced away from. `guarded=False` marks an open
    view rendered for everyone.
    """

    path: str
    view: str
    require_auth: bool = True
    allowed_roles: Optional[FrozenSet[Role]] = None
    guarded: bool = True


@dataclass(frozen=True)
class Render:
    view: str
    params: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class Redirect:
    location: str
    from_path: Optional[str] = None


@dataclass(frozen=True)
class Loading:
    pass


Decision = Union[Render, Redirect, Loading]


def _roles(*roles: Role) -> FrozenSet[Role]:
    return frozenset(roles)


def public(path: str, view: str) -> RouteSpec:
    return RouteSpec(path, view, require_auth=False)


def open_route(path: str, view: str) -> RouteSpec:
    return RouteSpec(path, view, require_auth=False, guarded=False)


def protected(path: str, view: str, *roles: Role) -> RouteSpec:
    return RouteSpec(path, view, require_auth=True, allowed_roles=_roles(*roles) if roles else None)


ROUTES: List[RouteSpec] = [
    public("/", "landing"),
    public("/login", "login"),
    public("/register", "register"),
    public("/auth", "auth"),
    open_route("/forgot-password", "forgot_password"),
    open_route("/verify-otp", "verify_otp"),
    open_route("/reset-password", "reset_password"),
    protected("/settings", "settings"),
    protected("/profile", "profile"),
    protected("/dashboard", "patient_dashboard", Role.PATIENT),
    protected("/dashboard/*", "patient_dashboard", Role.PATIENT),
    protected("/doctor/dashboard", "doctor_dashboard", Role.DOCTOR),
    protected("/doctor/dashboard/:tab", "doctor_dashboard", Role.DOCTOR),
    protected("/doctor/profile", "doctor_profile", Role.DOCTOR),
    protected("/consultation-chat/:id", "consultation_chat", Role.DOCTOR, Role.PATIENT),
    protected("/pharmacy-dashboard", "pharmacy_dashboard", Role.PHARMACY),
    protected("/pharmacy-dashboard/:tab", "pharmacy_dashboard", Role.PHARMACY),
    protected("/pharmacy/profile", "pharmacy_profile", Role.PHARMACY),
    protected("/admin/dashboard", "admin_dashboard", Role.ADMIN),
]


def _segments(path: str) -> List[str]:
    path = path.split("?", 1)[0].split("#", 1)[0]
    return [segment for segment in path.strip("/").split("/") if segment]


def match(pattern: str, path: str) -> Optional[Dict[str, str]]:
    """Match a path against a pattern with `:name` parameters and a trailing `*`."""

    wanted = _segments(pattern)
    actual = _segments(path)
    params: Dict[str, str] = {}

    for index, segment in enumerate(wanted):
        if segment == "*":
            params["*"] = "/".join(actual[index:])
            return params
        if index >= len(actual):
            return None
        if segment.startswith(":"):
            params[segment[1:]] = actual[index]
        elif segment != actual[index]:
            return None

    if len(actual) != len(wanted):
        return None
    return params


def resolve(path: str, routes: Iterable[RouteSpec] = ROUTES) -> Optional[Tuple[RouteSpec, Dict[str, str]]]:
    """First route whose pattern matches path, with its captured parameters."""

    for spec in routes:
        params = match(spec.path, path)
        if params is not None:
            return spec, params
    return None


def decide(
    identity: Optional[Identity],
    spec: RouteSpec,
    ready: bool = True,
    location: Optional[str] = None,
    params: Optional[Dict[str, str]] = None,
) -> Decision:
    """Pure decision for one navigation; total over every identity and route."""

    view = Render(spec.view, dict(params or {}))
    if not spec.guarded:
        return view
    if not ready:
        return Loading()

    if spec.require_auth:
        if identity is None:
            return Redirect(SIGN_IN_PATH, from_path=location or spec.path)
        if spec.allowed_roles is not None and identity.role not in spec.allowed_roles:
            return Redirect(home_for_role(identity.role))
        return view

    if identity is not None:
        return Redirect(home_for_role(identity.role))
    return view


def navigate(identity: Optional[Identity], path: str, ready: bool = True) -> Decision:
    """Resolve a path against the route table and run the guard on it."""

    resolved = resolve(path)
    if resolved is None:
        return Render(NOT_FOUND_VIEW)
    spec, params = resolved
    return decide(identity, spec, ready=ready, location=path, params=params)
