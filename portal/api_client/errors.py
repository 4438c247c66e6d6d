"""Errors raised by the backend REST client."""

from typing import Optional


class PortalAPIError(Exception):
    """A backend call failed; message is safe to show to the user."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)
