"""Chat widget routes."""

from typing import Optional

from fastapi import APIRouter, File, Form, HTTPException, UploadFile
from fastapi.responses import JSONResponse
from pydantic import BaseModel, model_validator

from ..api_client import UploadedFile
from ..logging_config import get_logger
from ..models.chat import ChatHistoryClearResponse, ChatHistoryResponse, Counterpart
from ..services.chat import ChatSessionController
from ..services.runtime import get_runtime
from ..utils.responses import error_response

logger = get_logger(__name__)

router = APIRouter(prefix="/chat", tags=["chat"])


class OpenWidgetRequest(BaseModel):
    """Open a widget by counterpart (create-or-get) or by an existing chat id."""
    counterpart_id: Optional[str] = None
    chat_id: Optional[str] = None
    counterpart: Optional[Counterpart] = None

    @model_validator(mode="after")
    def _needs_target(self):
        if not self.counterpart_id and not self.chat_id:
            raise ValueError("counterpart_id or chat_id is required")
        return self


class SendRequest(BaseModel):
    content: Optional[str] = None


class TypingRequest(BaseModel):
    text: str


class ClearRequest(BaseModel):
    confirm: bool = False


def _widget(widget_id: str) -> ChatSessionController:
    controller = get_runtime().get_widget(widget_id)
    if controller is None:
        raise HTTPException(status_code=404, detail="Chat widget not found")
    return controller


def _widget_payload(widget_id: str, controller: ChatSessionController) -> dict:
    return {"ok": True, "widget_id": widget_id, **controller.snapshot().model_dump(mode="json", by_alias=True)}


@router.get("/chats")
async def list_chats(q: Optional[str] = None) -> JSONResponse:
    """Conversation list, optionally filtered by counterpart name."""

    directory = get_runtime().directory
    await directory.refresh()
    chats = directory.search(q) if q else directory.chats
    return JSONResponse({"ok": True, "chats": [chat.model_dump(mode="json") for chat in chats]})


@router.post("/widgets")
async def open_widget(request: OpenWidgetRequest) -> JSONResponse:
    runtime = get_runtime()
    if not runtime.session.is_authenticated:
        return error_response("Not signed in", status_code=401)

    widget_id, controller = await runtime.open_widget(
        counterpart_id=request.counterpart_id,
        chat_id=request.chat_id,
        counterpart=request.counterpart,
    )
    logger.info(f"🌐 WEB API: Opened chat widget {widget_id} ({controller.state.value})")
    return JSONResponse(_widget_payload(widget_id, controller))


@router.get("/widgets/{widget_id}", response_model=ChatHistoryResponse)
async def get_widget(widget_id: str) -> ChatHistoryResponse:
    return _widget(widget_id).snapshot()


@router.delete("/widgets/{widget_id}")
async def close_widget(widget_id: str) -> JSONResponse:
    if not await get_runtime().close_widget(widget_id):
        raise HTTPException(status_code=404, detail="Chat widget not found")
    return JSONResponse({"ok": True})


@router.post("/widgets/{widget_id}/retry")
async def retry_widget(widget_id: str) -> JSONResponse:
    controller = _widget(widget_id)
    await controller.open()
    return JSONResponse(_widget_payload(widget_id, controller))


@router.post("/widgets/{widget_id}/send")
async def send_message(widget_id: str, request: SendRequest) -> JSONResponse:
    controller = _widget(widget_id)
    sent = await controller.send_text(request.content)
    return JSONResponse({"ok": True, "sent": sent})


@router.post("/widgets/{widget_id}/typing")
async def typing(widget_id: str, request: TypingRequest) -> JSONResponse:
    await _widget(widget_id).on_keystroke(request.text)
    return JSONResponse({"ok": True})


@router.post("/widgets/{widget_id}/attachments")
async def send_attachment(
    widget_id: str,
    file: UploadFile = File(...),
    content: Optional[str] = Form(default=None),
) -> JSONResponse:
    controller = _widget(widget_id)
    upload = UploadedFile(
        filename=file.filename or "attachment",
        content=await file.read(),
        content_type=file.content_type or "application/octet-stream",
    )
    sent = await controller.send_attachment(upload, content)
    return JSONResponse({"ok": True, "sent": sent})


@router.post("/widgets/{widget_id}/recording/start")
async def start_recording(widget_id: str) -> JSONResponse:
    started = _widget(widget_id).start_recording()
    return JSONResponse({"ok": True, "recording": started})


@router.post("/widgets/{widget_id}/recording/stop")
async def stop_recording(widget_id: str) -> JSONResponse:
    recording = _widget(widget_id).stop_recording()
    if recording is None:
        return error_response("Not recording", status_code=409)
    return JSONResponse({"ok": True, "duration_seconds": recording.duration_seconds, "size": len(recording.data)})


@router.post("/widgets/{widget_id}/recording/cancel")
async def cancel_recording(widget_id: str) -> JSONResponse:
    _widget(widget_id).cancel_recording()
    return JSONResponse({"ok": True})


@router.post("/widgets/{widget_id}/recording/send")
async def send_recording(widget_id: str) -> JSONResponse:
    sent = await _widget(widget_id).send_recording()
    return JSONResponse({"ok": True, "sent": sent})


@router.post("/widgets/{widget_id}/clear", response_model=ChatHistoryClearResponse)
async def clear_history(widget_id: str, request: ClearRequest) -> ChatHistoryClearResponse:
    """Clear this viewer's copy of the conversation; requires confirm=true."""

    if not request.confirm:
        raise HTTPException(status_code=400, detail="Confirmation required")

    controller = _widget(widget_id)
    if not await controller.clear_history(confirmed=True):
        return ChatHistoryClearResponse(ok=False, message="Failed to clear chat history", chat_id=controller.chat_id)
    return ChatHistoryClearResponse(chat_id=controller.chat_id)
