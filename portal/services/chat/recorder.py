"""Voice message capture."""

import io
import threading
import wave
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, List, Optional

from ...api_client import UploadedFile
from ...logging_config import get_logger

logger = get_logger(__name__)

ChunkSink = Callable[[bytes], None]


class RecorderError(RuntimeError):
    """Microphone capture could not be started or is in the wrong state."""


class RecorderState(str, Enum):
    IDLE = "idle"
    RECORDING = "recording"
    REVIEW = "review"


class SoundDeviceCapture:
    """Microphone capture through PortAudio (16-bit PCM)."""

    def __init__(self, sample_rate: int = 16000, channels: int = 1):
        self.sample_rate = sample_rate
        self.channels = channels
        self.sample_width = 2
        self._stream: Optional[Any] = None

    def start(self, sink: ChunkSink) -> None:
        import sounddevice

        def _callback(indata, frames, time_info, status):
            if status:
                logger.debug(f"Audio capture status: {status}")
            sink(bytes(indata))

        self._stream = sounddevice.RawInputStream(
            samplerate=self.sample_rate,
            channels=self.channels,
            dtype="int16",
            callback=_callback,
        )
        self._stream.start()

    def stop(self) -> None:
        if self._stream is None:
            return
        try:
            self._stream.stop()
        finally:
            self._stream.close()
            self._stream = None


@dataclass
class Recording:
    """A finished capture awaiting the user's send/discard choice."""

    data: bytes
    duration_seconds: float
    content_type: str = "audio/wav"
    filename: str = "voice-message.wav"

    def as_upload(self) -> UploadedFile:
        return UploadedFile(filename=self.filename, content=self.data, content_type=self.content_type)


class AudioRecorder:
    """Collects microphone chunks and assembles them for review.

    Recording never sends anything by itself: stop() leaves a Recording in
    review until the caller sends or discards it.
    """

    def __init__(self, device_factory: Optional[Callable[[], Any]] = None, sample_rate: int = 16000, channels: int = 1):
        self.sample_rate = sample_rate
        self.channels = channels
        self._device_factory = device_factory or (lambda: SoundDeviceCapture(sample_rate, channels))
        self._device: Optional[Any] = None
        self._chunks: List[bytes] = []
        self._chunks_lock = threading.Lock()
        self._recording: Optional[Recording] = None
        self._state = RecorderState.IDLE

    @property
    def state(self) -> RecorderState:
        return self._state

    @property
    def recording(self) -> Optional[Recording]:
        """The capture pending review, if any."""
        return self._recording

    def start(self) -> None:
        """Acquire the microphone and begin collecting audio."""

        if self._state == RecorderState.RECORDING:
            raise RecorderError("Already recording")

        self._recording = None
        with self._chunks_lock:
            self._chunks = []

        try:
            device = self._device_factory()
            device.start(self._on_chunk)
        except Exception as e:
            logger.error(f"Error starting recording: {e}")
            self._state = RecorderState.IDLE
            raise RecorderError("Could not access microphone") from e

        self._device = device
        self._state = RecorderState.RECORDING
        logger.info("🎙️ Recording started")

    def _on_chunk(self, chunk: bytes) -> None:
        if chunk:
            with self._chunks_lock:
                self._chunks.append(chunk)

    def stop(self) -> Recording:
        """Release the microphone and assemble captured chunks for review."""

        if self._state != RecorderState.RECORDING:
            raise RecorderError("Not recording")

        self._release_device()
        with self._chunks_lock:
            pcm = b"".join(self._chunks)
            self._chunks = []

        self._recording = Recording(data=self._to_wav(pcm), duration_seconds=self._duration(pcm))
        self._state = RecorderState.REVIEW
        logger.info(f"🎙️ Recording stopped ({self._recording.duration_seconds:.1f}s)")
        return self._recording

    def cancel(self) -> None:
        """Abort recording or review, discarding all captured audio."""

        if self._state == RecorderState.RECORDING:
            self._release_device()
        with self._chunks_lock:
            self._chunks = []
        self._recording = None
        self._state = RecorderState.IDLE

    def discard(self) -> None:
        """Drop the recording under review."""
        self.cancel()

    def _release_device(self) -> None:
        device, self._device = self._device, None
        if device is None:
            return
        try:
            device.stop()
        except Exception as e:
            logger.warning(f"Error releasing microphone: {e}")

    def _duration(self, pcm: bytes) -> float:
        frame_bytes = 2 * self.channels
        return len(pcm) / float(frame_bytes * self.sample_rate) if pcm else 0.0

    def _to_wav(self, pcm: bytes) -> bytes:
        buffer = io.BytesIO()
        with wave.open(buffer, "wb") as wav:
            wav.setnchannels(self.channels)
            wav.setsampwidth(2)
            wav.setframerate(self.sample_rate)
            wav.writeframes(pcm)
        return buffer.getvalue()
