"""Attachment validation."""

import pytest

from portal.api_client import UploadedFile
from portal.config import ALLOWED_ATTACHMENT_TYPES, MAX_ATTACHMENT_BYTES
from portal.models.chat import MessageType
from portal.services.chat import AttachmentRejected, validate_attachment


def upload(size: int, content_type: str, filename: str = "file") -> UploadedFile:
    return UploadedFile(filename=filename, content=b"x" * size, content_type=content_type)


def check(item: UploadedFile) -> MessageType:
    return validate_attachment(item, MAX_ATTACHMENT_BYTES, ALLOWED_ATTACHMENT_TYPES)


@pytest.mark.parametrize("content_type", ["image/jpeg", "image/png", "image/gif", "image/webp"])
def test_images_become_image_messages(content_type):
    assert check(upload(10, content_type)) == MessageType.IMAGE


@pytest.mark.parametrize("content_type", [
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
])
def test_documents_become_file_messages(content_type):
    assert check(upload(10, content_type)) == MessageType.FILE


def test_oversized_file_is_rejected():
    with pytest.raises(AttachmentRejected) as excinfo:
        check(upload(12 * 1024 * 1024, "application/pdf", "scan.pdf"))
    assert excinfo.value.reason == "File size must be less than 10MB"


def test_exact_limit_is_accepted():
    assert check(upload(MAX_ATTACHMENT_BYTES, "application/pdf")) == MessageType.FILE


@pytest.mark.parametrize("content_type", ["text/plain", "application/zip", "image/svg+xml", "audio/wav"])
def test_unsupported_types_are_rejected(content_type):
    with pytest.raises(AttachmentRejected, match="File type not supported"):
        check(upload(10, content_type))
