"""Client-side attachment checks."""

from typing import Iterable

from ...api_client import UploadedFile
from ...models.chat import MessageType


class AttachmentRejected(ValueError):
    """The file cannot be sent; reason is shown to the user."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)


def validate_attachment(upload: UploadedFile, max_bytes: int, allowed_types: Iterable[str]) -> MessageType:
    """Check size and MIME type before any network call; returns the message type to send."""

    if upload.size > max_bytes:
        limit_mb = max_bytes // (1024 * 1024)
        raise AttachmentRejected(f"File size must be less than {limit_mb}MB")

    if upload.content_type not in set(allowed_types):
        raise AttachmentRejected("File type not supported. Please upload images, PDFs, or Word documents.")

    return MessageType.IMAGE if upload.content_type.startswith("image/") else MessageType.FILE
