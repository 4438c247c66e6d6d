"""Backend REST client."""

from .client import PortalAPIClient, TokenProvider, UploadedFile
from .errors import PortalAPIError

__all__ = ["PortalAPIClient", "PortalAPIError", "TokenProvider", "UploadedFile"]
