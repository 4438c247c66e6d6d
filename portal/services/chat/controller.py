"""Chat session controller - drives one open chat widget."""

from datetime import datetime, timezone
from enum import Enum
from typing import Callable, List, Optional

from .attachments import AttachmentRejected, validate_attachment
from .debounce import KeyedDebouncer
from .recorder import AudioRecorder, RecorderError, RecorderState, Recording
from ...api_client import PortalAPIClient, PortalAPIError, UploadedFile
from ...config import Settings, get_settings
from ...logging_config import get_logger
from ...models.chat import ChatHistoryResponse, Conversation, Counterpart, Message, MessageType
from ...models.events import (
    JoinRoom,
    LeaveRoom,
    MessageReceived,
    SendMessage,
    TypingStart,
    TypingStop,
    UserStoppedTyping,
    UserTyping,
)
from ...models.notifications import NotificationType
from ..notifications import NotificationCenter
from ..realtime import ChannelManager

logger = get_logger(__name__)


class WidgetState(str, Enum):
    """Lifecycle of a chat widget."""
    IDLE = "idle"
    INITIALIZING = "initializing"
    READY = "ready"


class ChatSessionController:
    """Conversation resolution, history, live exchange and housekeeping for one widget.

    The controller only borrows the realtime channel: it emits through it
    and subscribes to inbound events while open, but never opens or closes
    the connection itself.
    """

    def __init__(
        self,
        api: PortalAPIClient,
        channel: ChannelManager,
        notifications: NotificationCenter,
        counterpart_id: Optional[str] = None,
        chat_id: Optional[str] = None,
        counterpart: Optional[Counterpart] = None,
        settings: Optional[Settings] = None,
        recorder: Optional[AudioRecorder] = None,
        on_scroll: Optional[Callable[[], None]] = None,
    ):
        if not counterpart_id and not chat_id:
            raise ValueError("A chat widget needs a counterpart id or an existing chat id")

        self.settings = settings or get_settings()
        self.api = api
        self.channel = channel
        self.notifications = notifications
        self.counterpart_id = counterpart_id
        self.counterpart = counterpart or Counterpart()
        self.recorder = recorder or AudioRecorder(
            sample_rate=self.settings.audio_sample_rate,
            channels=self.settings.audio_channels,
        )
        self.on_scroll = on_scroll

        self.draft = ""
        self.counterpart_typing = False
        self.read_marker: Optional[datetime] = None

        self._requested_chat_id = chat_id
        self._chat_id: Optional[str] = None
        self._messages: List[Message] = []
        self._state = WidgetState.IDLE
        self._cycle = 0
        self._init_failed = False
        self._joined = False
        self._unsubscribers: List[Callable[[], None]] = []
        self._typing = KeyedDebouncer(self.settings.typing_idle_seconds, self._on_typing_idle)

    # State

    @property
    def state(self) -> WidgetState:
        return self._state

    @property
    def is_open(self) -> bool:
        return self._state != WidgetState.IDLE

    @property
    def chat_id(self) -> Optional[str]:
        return self._chat_id

    @property
    def messages(self) -> List[Message]:
        return list(self._messages)

    @property
    def conversation(self) -> Optional[Conversation]:
        if not self._chat_id:
            return None
        participants = [self.counterpart_id] if self.counterpart_id else []
        return Conversation(chat_id=self._chat_id, participant_ids=participants, counterpart=self.counterpart)

    def snapshot(self) -> ChatHistoryResponse:
        return ChatHistoryResponse(
            chat_id=self._chat_id,
            conversation=self.conversation,
            state=self._state.value,
            messages=self.messages,
            counterpart_typing=self.counterpart_typing,
            connected=self.channel.connected,
        )

    # Open / close

    async def open(self) -> bool:
        """Resolve the conversation, load history, mark it read and join its room."""

        if self._state == WidgetState.READY:
            return True
        if self._state == WidgetState.INITIALIZING and not self._init_failed:
            return False

        self._cycle += 1
        cycle = self._cycle
        self._state = WidgetState.INITIALIZING
        self._init_failed = False
        self._messages = []

        try:
            chat_id = self._requested_chat_id
            if not chat_id:
                chat_id = await self.api.create_chat(self.counterpart_id)
            if cycle != self._cycle:
                return False

            history = await self.api.get_messages(chat_id)
            if cycle != self._cycle:
                return False

            await self.api.mark_read(chat_id)
            if cycle != self._cycle:
                return False

        except PortalAPIError as e:
            logger.error(f"Error initializing chat: {e.message}")
            if cycle == self._cycle:
                self._init_failed = True
                self.notifications.error("Failed to load chat", e.message)
            return False

        self._chat_id = chat_id
        self._messages = list(history)
        self.read_marker = datetime.now(timezone.utc)
        self._subscribe()

        if self.channel.connected:
            joined = await self.channel.emit(JoinRoom(chat_id=chat_id))
            if cycle != self._cycle:
                # closed while joining
                if joined:
                    await self.channel.emit(LeaveRoom(chat_id=chat_id))
                return False
            if not joined:
                logger.error(f"Error joining chat room {chat_id}")
                self._unsubscribe()
                self._chat_id = None
                self._messages = []
                self._init_failed = True
                self.notifications.error("Failed to load chat", "Could not join the conversation")
                return False
            self._joined = True
        else:
            logger.warning(f"Realtime channel not connected; chat {chat_id} opened without a room")
            self.notifications.toast(
                "Connection issue - messages may not send immediately",
                type=NotificationType.WARNING,
            )

        if cycle != self._cycle:
            return False

        self._state = WidgetState.READY
        self._scroll()
        logger.info(f"💬 Chat {chat_id} ready with {len(self._messages)} messages")
        return True

    async def close(self) -> None:
        """Leave the room and return to idle; in-flight initialization is abandoned."""

        if self._state == WidgetState.IDLE:
            return

        self._cycle += 1
        chat_id = self._chat_id

        if chat_id and self._typing.cancel(chat_id):
            await self.channel.emit(TypingStop(chat_id=chat_id))
        self._typing.cancel_all()

        if self._state == WidgetState.READY and chat_id and self._joined:
            await self.channel.emit(LeaveRoom(chat_id=chat_id))

        self._unsubscribe()
        if self.recorder.state != RecorderState.IDLE:
            self.recorder.cancel()

        self._chat_id = None
        self._joined = False
        self._init_failed = False
        self._messages = []
        self.counterpart_typing = False
        self._state = WidgetState.IDLE
        if chat_id:
            logger.info(f"💬 Chat {chat_id} closed")

    def _subscribe(self) -> None:
        self._unsubscribe()
        self._unsubscribers = [
            self.channel.subscribe(MessageReceived, self._on_message_received),
            self.channel.subscribe(UserTyping, self._on_user_typing),
            self.channel.subscribe(UserStoppedTyping, self._on_user_stopped_typing),
        ]

    def _unsubscribe(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []

    # Outgoing

    def _can_send(self) -> bool:
        return self._state == WidgetState.READY and bool(self._chat_id) and self.channel.client is not None

    async def send_text(self, content: Optional[str] = None) -> bool:
        """Emit a text message; blank input, a missing chat or a missing channel are no-ops."""

        text = self.draft if content is None else content
        if not text.strip() or not self._can_send():
            return False

        chat_id = self._chat_id
        if not await self.channel.emit(SendMessage(chat_id=chat_id, content=text.strip())):
            self.notifications.error("Failed to send message", "Not connected")
            return False

        self.draft = ""
        await self._stop_typing(chat_id)
        return True

    async def on_keystroke(self, text: str) -> None:
        """Record the draft and signal typing, restarting the idle timer."""

        self.draft = text
        if not self._can_send():
            return

        chat_id = self._chat_id
        self._typing.touch(chat_id)
        await self.channel.emit(TypingStart(chat_id=chat_id))

    async def _on_typing_idle(self, chat_id: str) -> None:
        await self.channel.emit(TypingStop(chat_id=chat_id))

    async def _stop_typing(self, chat_id: str) -> None:
        # Cancel first so the timer cannot emit a second, late stop
        self._typing.cancel(chat_id)
        await self.channel.emit(TypingStop(chat_id=chat_id))

    async def send_attachment(self, upload: UploadedFile, content: Optional[str] = None) -> bool:
        """Validate, upload, then emit an image or file message."""

        try:
            message_type = validate_attachment(
                upload,
                self.settings.max_attachment_bytes,
                self.settings.allowed_attachment_types,
            )
        except AttachmentRejected as e:
            logger.info(f"Attachment {upload.filename} rejected: {e.reason}")
            self.notifications.error(e.reason)
            return False

        if not self._can_send():
            self.notifications.error("Chat not initialized")
            return False

        chat_id = self._chat_id
        try:
            attachment = await self.api.upload_file(upload)
        except PortalAPIError as e:
            logger.error(f"Upload of {upload.filename} failed: {e.message}")
            self.notifications.error("Failed to send message", e.message)
            return False

        self.notifications.toast("File uploaded successfully", type=NotificationType.SUCCESS)

        text = (self.draft if content is None else content).strip() or attachment.filename
        event = SendMessage(chat_id=chat_id, content=text, type=message_type, attachment=attachment)
        if not await self.channel.emit(event):
            self.notifications.error("Failed to send message", "Not connected")
            return False

        self.draft = ""
        await self._stop_typing(chat_id)
        return True

    # Voice messages

    def start_recording(self) -> bool:
        try:
            self.recorder.start()
        except RecorderError as e:
            self.notifications.error(str(e))
            return False
        return True

    def stop_recording(self) -> Optional[Recording]:
        """Finish capture and hold the result for review; nothing is sent."""

        try:
            return self.recorder.stop()
        except RecorderError as e:
            logger.warning(f"Cannot stop recording: {e}")
            return None

    def cancel_recording(self) -> None:
        self.recorder.cancel()

    async def send_recording(self) -> bool:
        """Upload the reviewed recording and emit it as an audio message."""

        recording = self.recorder.recording
        if recording is None:
            return False
        if not self._can_send():
            self.notifications.error("Chat not initialized")
            return False

        chat_id = self._chat_id
        try:
            attachment = await self.api.upload_file(recording.as_upload(), kind=MessageType.AUDIO.value)
        except PortalAPIError as e:
            logger.error(f"Voice message upload failed: {e.message}")
            self.notifications.error("Failed to send voice message", e.message)
            return False

        event = SendMessage(
            chat_id=chat_id,
            content=self.settings.voice_message_label,
            type=MessageType.AUDIO,
            attachment=attachment,
        )
        if not await self.channel.emit(event):
            self.notifications.error("Failed to send voice message", "Not connected")
            return False

        self.recorder.discard()
        return True

    # Housekeeping

    async def clear_history(self, confirmed: bool = False) -> bool:
        """Wipe this viewer's copy of the conversation after explicit confirmation."""

        if not confirmed or self._state != WidgetState.READY or not self._chat_id:
            return False

        try:
            await self.api.clear_history(self._chat_id)
        except PortalAPIError as e:
            logger.error(f"Clearing chat {self._chat_id} failed: {e.message}")
            self.notifications.error("Failed to clear chat history", e.message)
            return False

        self._messages = []
        self.notifications.toast("Chat history cleared", type=NotificationType.SUCCESS)
        return True

    # Incoming

    async def _on_message_received(self, event: MessageReceived) -> None:
        message = event.message
        if self._state != WidgetState.READY or message.chat_id != self._chat_id:
            return
        if any(existing.id == message.id for existing in self._messages):
            return

        self._messages.append(message)
        self._scroll()

        if self.is_open:
            try:
                await self.api.mark_read(self._chat_id)
                self.read_marker = datetime.now(timezone.utc)
            except PortalAPIError as e:
                logger.warning(f"Could not mark chat {self._chat_id} read: {e.message}")

    def _on_user_typing(self, event: UserTyping) -> None:
        if event.chat_id and event.chat_id != self._chat_id:
            return
        self.counterpart_typing = True

    def _on_user_stopped_typing(self, event: UserStoppedTyping) -> None:
        if event.chat_id and event.chat_id != self._chat_id:
            return
        self.counterpart_typing = False

    def _scroll(self) -> None:
        if self.on_scroll is not None:
            self.on_scroll()
