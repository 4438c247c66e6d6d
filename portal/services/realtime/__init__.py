"""Realtime channel services."""

from .channel import ChannelManager, ChannelState

__all__ = ["ChannelManager", "ChannelState"]
