"""Cooperative cancellation for scans and sweeps."""

import asyncio

from sonicat.domain.exceptions import ScanCancelledException


class CancellationToken:
    """Flag checked at every yield point of a long-running operation.

    Hey future me - cancelling never interrupts an await in the middle of a write!
    The running code only stops at its next checkpoint (raise_if_cancelled), so every
    record is either fully written or not written at all.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()

    def cancel(self) -> None:
        """Request cancellation."""
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        """Raise ScanCancelledException when cancellation was requested."""
        if self._event.is_set():
            raise ScanCancelledException()

    async def wait(self) -> None:
        """Block until cancellation is requested."""
        await self._event.wait()
