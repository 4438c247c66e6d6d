"""Guarded view navigation."""

from urllib.parse import urlencode

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse, RedirectResponse

from ..routing import Loading, Redirect, navigate
from ..services.runtime import get_runtime

router = APIRouter(prefix="/views", tags=["views"])


@router.get("/{path:path}")
async def view(path: str):
    """Run the routing guard for a navigation to /path."""

    session = get_runtime().session
    location = "/" + path
    decision = navigate(session.identity, location, ready=session.is_ready)

    if isinstance(decision, Loading):
        return JSONResponse({"ok": True, "view": "loading"})

    if isinstance(decision, Redirect):
        target = "/views" + decision.location
        if decision.from_path:
            target = f"{target}?{urlencode({'from': decision.from_path})}"
        return RedirectResponse(target, status_code=status.HTTP_307_TEMPORARY_REDIRECT)

    return JSONResponse({"ok": True, "view": decision.view, "params": decision.params})
