"""Concurrency control for transfers and signing devices.

Provides per-sender locking so two sends from the same account cannot both
pass validation against the same stale balance, and per-device locking so a
hardware signer is only driven by one transfer at a time.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

logger = logging.getLogger(__name__)

# Global lock registry: key -> asyncio.Lock
_locks: dict[str, asyncio.Lock] = {}


class LockTimeoutError(Exception):
    """Raised when a lock cannot be acquired within the timeout period."""

    pass


def get_lock(key: str) -> asyncio.Lock:
    """Get or create the lock for ``key``.

    Args:
        key: Lock key, e.g. ``sender:SP2J...`` or ``device:ledger``

    Returns:
        asyncio.Lock for the key
    """
    lock = _locks.get(key)
    if lock is None:
        lock = _locks[key] = asyncio.Lock()
    return lock


class SenderLock:
    """Context manager for exclusive access to a sender account.

    Wrap the whole validate -> assemble -> broadcast sequence.

    Example:
        async with SenderLock(request.sender_address):
            prepared = await validator.validate(request)
            ...
    """

    def __init__(
        self,
        sender_address: str,
        timeout: Optional[float] = 30.0,
        operation: str = "transfer",
    ):
        """Initialize the lock.

        Args:
            sender_address: Sender account address
            timeout: Maximum time to wait for lock (None = wait forever)
            operation: Description of the operation for logging
        """
        self.sender_address = sender_address
        self.timeout = timeout
        self.operation = operation
        self._lock: Optional[asyncio.Lock] = None
        self._acquired = False

    async def __aenter__(self) -> "SenderLock":
        """Acquire the lock."""
        self._lock = get_lock(f"sender:{self.sender_address}")

        try:
            if self.timeout:
                await asyncio.wait_for(self._lock.acquire(), timeout=self.timeout)
            else:
                await self._lock.acquire()
            self._acquired = True

            logger.debug(f"Lock acquired for sender {self.sender_address}: {self.operation}")
            return self

        except asyncio.TimeoutError:
            logger.warning(
                f"Lock timeout for sender {self.sender_address} after {self.timeout}s: {self.operation}"
            )
            raise LockTimeoutError(
                f"Another transfer from {self.sender_address} is still in progress"
            )

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Release the lock."""
        if self._acquired and self._lock:
            self._lock.release()
            self._acquired = False
            logger.debug(f"Lock released for sender {self.sender_address}: {self.operation}")
        return False


@asynccontextmanager
async def device_lock(device: str, timeout: Optional[float] = None):
    """Exclusive access to a signing device family.

    Args:
        device: Device identifier (wallet type value)
        timeout: Maximum time to wait for lock (None = wait forever)

    Example:
        async with device_lock("ledger"):
            signature = await transport.sign_input(...)
    """
    lock = get_lock(f"device:{device}")

    try:
        if timeout:
            await asyncio.wait_for(lock.acquire(), timeout=timeout)
        else:
            await lock.acquire()
    except asyncio.TimeoutError:
        logger.warning(f"Lock timeout for device {device}")
        raise LockTimeoutError(f"Signing device {device} is busy")

    logger.debug(f"Device lock acquired: {device}")
    try:
        yield
    finally:
        lock.release()
        logger.debug(f"Device lock released: {device}")


def clear_locks() -> None:
    """Clear all locks (useful for testing)."""
    _locks.clear()
