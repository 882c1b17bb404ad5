"""Message buffer - append-only chat entries drained on backup"""

import asyncio
from dataclasses import dataclass
from datetime import datetime
from typing import Awaitable, Callable, List, Optional, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class MessageEntry:
    """Single buffered chat message"""
    timestamp: datetime
    sender: str
    content: str
    session_id: Optional[str]


class MessageBuffer:
    """
    Ordered, append-only sequence of MessageEntry.

    Appends never block. drain() hands a snapshot of the current entries to a
    writer and removes exactly those entries once the writer succeeds, so a
    message appended while the write is in flight stays in the buffer for the
    next drain. Concurrent drains are serialized by an internal lock.

    Example:
        buffer.append(entry)
        written = await buffer.drain(persistence_writer)
    """

    def __init__(self) -> None:
        self._entries: List[MessageEntry] = []
        self._drain_lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def append(self, entry: MessageEntry) -> None:
        self._entries.append(entry)

    def snapshot(self) -> List[MessageEntry]:
        """Copy of the current entries (oldest first)"""
        return list(self._entries)

    def reset(self) -> None:
        """Drop every entry. Only used before the scheduler is running."""
        self._entries.clear()

    async def drain(
        self, writer: Callable[[List[MessageEntry]], Awaitable[T]]
    ) -> Optional[T]:
        """
        Write the buffered entries and clear them on success.

        Args:
            writer: Coroutine function receiving the batch; if it raises,
                    the buffer is left untouched and the error propagates.

        Returns:
            The writer's result, or None if the buffer was empty
        """
        async with self._drain_lock:
            if not self._entries:
                return None

            batch = list(self._entries)
            result = await writer(batch)

            # Only this method removes entries and it holds the lock, so the
            # batch is still the head of the list.
            del self._entries[:len(batch)]
            return result
