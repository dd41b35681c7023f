"""
Submission guard for user-triggered write operations.

Each guarded operation moves ``idle -> in_flight -> idle``; a second trigger
while in flight is rejected instead of producing a second request.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from ..models.enums import OperationState

logger = logging.getLogger(__name__)


class OperationGuard:
    """
    Explicit in-flight state machine for one operation.

    Usage:
        async with guard.acquire() as acquired:
            if not acquired:
                return SubmitOutcome.BUSY
            ...  # perform the write
    """

    def __init__(self, name: str):
        self.name = name
        self.state = OperationState.IDLE
        self.rejected_count = 0

    @property
    def in_flight(self) -> bool:
        return self.state is OperationState.IN_FLIGHT

    def try_begin(self) -> bool:
        """Move to in_flight; False (and no state change) if already in flight."""
        if self.state is OperationState.IN_FLIGHT:
            self.rejected_count += 1
            logger.debug(f"Rejected '{self.name}': already in flight")
            return False
        self.state = OperationState.IN_FLIGHT
        return True

    def end(self) -> None:
        """Return to idle."""
        self.state = OperationState.IDLE

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[bool]:
        """Context manager yielding whether the guard was acquired; always resets."""
        acquired = self.try_begin()
        try:
            yield acquired
        finally:
            if acquired:
                self.end()
