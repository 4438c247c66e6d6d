"""Chat widgets and the conversation list."""

from .attachments import AttachmentRejected, validate_attachment
from .controller import ChatSessionController, WidgetState
from .debounce import KeyedDebouncer
from .directory import ChatDirectory
from .recorder import AudioRecorder, RecorderError, RecorderState, Recording, SoundDeviceCapture

__all__ = [
    "AttachmentRejected",
    "AudioRecorder",
    "ChatDirectory",
    "ChatSessionController",
    "KeyedDebouncer",
    "RecorderError",
    "RecorderState",
    "Recording",
    "SoundDeviceCapture",
    "WidgetState",
    "validate_attachment",
]
