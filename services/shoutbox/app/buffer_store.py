from __future__ import annotations

import time
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from .models import Message
from .rwlock import ReadWriteLock


class RejectReason(str, Enum):
    MESSAGE_TOO_LARGE = "message_too_large"
    AUTHOR_QUOTA_EXCEEDED = "author_quota_exceeded"


class MessageRejected(Exception):
    def __init__(self, reason: RejectReason, author: str, length: int | None = None) -> None:
        super().__init__(reason.value)
        self.reason = reason
        self.author = author
        self.length = length


@dataclass(frozen=True)
class BufferConfig:
    queue_size: int = 100
    max_message_size: int = 1024
    # messages per author within the window, not a length bound on the author
    max_author_count: int = 50
    max_age: float = 300.0  # seconds


def message_length(message: Message) -> int:
    return len(message.message.encode("utf-8"))


class BufferStore:
    """Bounded, time-windowed message buffer shared by all requests.

    Admission runs under the write lock: the window is wiped first if it has
    gone stale, then the size and per-author checks run against what is left.
    Staleness is only resolved by ``append``; ``snapshot`` may return content
    from an expired window until the next write arrives.
    """

    def __init__(self, config: BufferConfig, clock: Callable[[], float] = time.monotonic) -> None:
        self.config = config
        self._clock = clock
        self._entries: deque[Message] = deque()
        self._window_start = clock()
        self._lock = ReadWriteLock()

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def window_start(self) -> float:
        return self._window_start

    async def append(self, message: Message) -> int:
        """Admit ``message`` or raise ``MessageRejected``; returns the new buffer length."""
        async with self._lock.write():
            return self._admit(message)

    async def snapshot(self) -> list[Message]:
        async with self._lock.read():
            return list(self._entries)

    def _admit(self, message: Message) -> int:
        cfg = self.config
        now = self._clock()
        if now - self._window_start > cfg.max_age:
            self._entries.clear()
            self._window_start = now

        length = message_length(message)
        if length > cfg.max_message_size:
            raise MessageRejected(RejectReason.MESSAGE_TOO_LARGE, message.author, length)

        count = sum(1 for m in self._entries if m.author == message.author)
        if count >= cfg.max_author_count:
            raise MessageRejected(RejectReason.AUTHOR_QUOTA_EXCEEDED, message.author)

        self._entries.append(message)
        if len(self._entries) > cfg.queue_size:
            self._entries.popleft()
        return len(self._entries)
