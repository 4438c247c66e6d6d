"""Notification routes."""

from fastapi import APIRouter, HTTPException
from fastapi.responses import JSONResponse

from ..models.notifications import NotificationDraft
from ..services.runtime import get_runtime

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("")
async def list_notifications() -> JSONResponse:
    center = get_runtime().notifications
    return JSONResponse({
        "ok": True,
        "unread_count": center.unread_count,
        "notifications": [entry.model_dump(mode="json") for entry in center.notifications],
    })


@router.post("")
async def add_notification(draft: NotificationDraft) -> JSONResponse:
    entry = get_runtime().notifications.add(draft)
    return JSONResponse({"ok": True, "notification": entry.model_dump(mode="json")})


@router.get("/toasts")
async def drain_toasts() -> JSONResponse:
    """Pending transient toasts; each is returned once."""

    toasts = get_runtime().notifications.toasts.drain()
    return JSONResponse({"ok": True, "toasts": [toast.model_dump(mode="json") for toast in toasts]})


@router.post("/read-all")
async def mark_all_read() -> JSONResponse:
    get_runtime().notifications.mark_all_read()
    return JSONResponse({"ok": True})


@router.post("/{notification_id}/read")
async def mark_read(notification_id: str) -> JSONResponse:
    if not get_runtime().notifications.mark_read(notification_id):
        raise HTTPException(status_code=404, detail="Notification not found")
    return JSONResponse({"ok": True})


@router.delete("/{notification_id}")
async def remove_notification(notification_id: str) -> JSONResponse:
    if not get_runtime().notifications.remove(notification_id):
        raise HTTPException(status_code=404, detail="Notification not found")
    return JSONResponse({"ok": True})


@router.delete("")
async def clear_notifications() -> JSONResponse:
    get_runtime().notifications.clear()
    return JSONResponse({"ok": True})
