"""Authentication routes."""

from typing import Optional

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from ..api_client import PortalAPIError
from ..logging_config import get_logger
from ..models.session import Identity, LoginRequest, RegisterRequest
from ..services.runtime import get_runtime
from ..utils.responses import api_error_response

logger = get_logger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


class ForgotPasswordRequest(BaseModel):
    email: str


class VerifyOtpRequest(BaseModel):
    email: str
    otp: str


class ResetPasswordRequest(BaseModel):
    email: str
    otp: str
    new_password: str = Field(min_length=1)


def _user_payload(identity: Optional[Identity]):
    return identity.model_dump(mode="json") if identity is not None else None


@router.post("/login")
async def login(request: LoginRequest) -> JSONResponse:
    """Sign in and start the realtime channel for eligible roles."""

    runtime = get_runtime()
    try:
        identity = await runtime.session.login(request.email, request.password, request.role)
    except PortalAPIError as e:
        logger.info(f"Login failed for {request.email}: {e.message}")
        return api_error_response(e)

    return JSONResponse({"ok": True, "user": _user_payload(identity)})


@router.post("/register")
async def register(request: RegisterRequest) -> JSONResponse:
    runtime = get_runtime()
    try:
        identity = await runtime.session.register(request.model_dump(mode="json"))
    except PortalAPIError as e:
        logger.info(f"Registration failed for {request.email}: {e.message}")
        return api_error_response(e)

    return JSONResponse({"ok": True, "user": _user_payload(identity)})


@router.post("/logout")
async def logout() -> JSONResponse:
    get_runtime().session.logout()
    return JSONResponse({"ok": True})


@router.get("/session")
async def get_session() -> JSONResponse:
    """Current identity plus channel status."""

    runtime = get_runtime()
    return JSONResponse({
        "ok": True,
        "ready": runtime.session.is_ready,
        "authenticated": runtime.session.is_authenticated,
        "user": _user_payload(runtime.session.identity),
        "channel": runtime.channel.get_status(),
    })


@router.post("/forgot-password")
async def forgot_password(request: ForgotPasswordRequest) -> JSONResponse:
    try:
        body = await get_runtime().api.forgot_password(request.email)
    except PortalAPIError as e:
        return api_error_response(e)
    return JSONResponse({"ok": True, "message": body.get("message", "OTP sent to your email")})


@router.post("/verify-otp")
async def verify_otp(request: VerifyOtpRequest) -> JSONResponse:
    try:
        body = await get_runtime().api.verify_otp(request.email, request.otp)
    except PortalAPIError as e:
        return api_error_response(e)
    return JSONResponse({"ok": True, "message": body.get("message", "OTP verified")})


@router.post("/reset-password")
async def reset_password(request: ResetPasswordRequest) -> JSONResponse:
    try:
        body = await get_runtime().api.reset_password(request.email, request.otp, request.new_password)
    except PortalAPIError as e:
        return api_error_response(e)
    return JSONResponse({"ok": True, "message": body.get("message", "Password reset successfully")})
