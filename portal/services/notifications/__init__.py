"""User-facing notification services."""

from .center import NotificationCenter, ToastQueue

__all__ = ["NotificationCenter", "ToastQueue"]
