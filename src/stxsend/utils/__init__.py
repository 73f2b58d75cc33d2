"""Utility modules for stxsend."""

from stxsend.utils.locks import SenderLock, device_lock

__all__ = ["SenderLock", "device_lock"]
