"""Session state services."""

from .store import SessionListener, SessionStore

__all__ = ["SessionListener", "SessionStore"]
