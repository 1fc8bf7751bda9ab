"""In-memory per-session transcript buffers.

A buffer accumulates transcript fragments for one session until a flush
takes them. Every mutation (append, take, restore, evict) happens under an
explicit lock and never awaits, so the take-and-clear step is atomic even
if flush triggers run on separate threads.
"""

import logging
import threading
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(UTC)


@dataclass(frozen=True)
class BufferSnapshot:
    """Lines taken out of a buffer by a flush, plus the window they cover."""

    session_id: uuid.UUID
    lines: tuple[str, ...]
    language: str
    started_at: datetime
    ended_at: datetime

    @property
    def content(self) -> str:
        """Fragments joined in append order."""
        return " ".join(self.lines).strip()


@dataclass
class SessionBuffer:
    """Unflushed transcript fragments for one session.

    ``started_at`` marks the first fragment of the current window and is
    only meaningful while ``lines`` is non-empty. ``draining`` is set while
    a flush holds a snapshot, so at most one flush per session is in flight.
    """

    session_id: uuid.UUID
    last_at: datetime
    language: str = "en"
    started_at: datetime | None = None
    lines: list[str] = field(default_factory=list)
    draining: bool = False
    _lock: threading.Lock = field(
        default_factory=threading.Lock, repr=False, compare=False
    )

    @property
    def has_pending(self) -> bool:
        """Whether there is unflushed content."""
        with self._lock:
            return bool(self.lines)

    @property
    def is_draining(self) -> bool:
        """Whether a flush currently holds this buffer's snapshot."""
        with self._lock:
            return self.draining

    def append(self, text: str, language: str | None, now: datetime) -> None:
        """Append a trimmed fragment and refresh timing metadata."""
        with self._lock:
            if not self.lines:
                self.started_at = now
            self.lines.append(text)
            self.last_at = now
            if language:
                self.language = language

    def take(self) -> BufferSnapshot | None:
        """Atomically remove every line and return them.

        Returns None when the buffer is empty or another flush already
        holds a snapshot.
        """
        with self._lock:
            if self.draining or not self.lines:
                return None
            snapshot = BufferSnapshot(
                session_id=self.session_id,
                lines=tuple(self.lines),
                language=self.language,
                started_at=self.started_at or self.last_at,
                ended_at=self.last_at,
            )
            self.lines.clear()
            self.draining = True
            return snapshot

    def complete(self, now: datetime) -> None:
        """Finish a successful flush and open the next window."""
        with self._lock:
            self.draining = False
            if not self.lines:
                self.started_at = now

    def restore(self, snapshot: BufferSnapshot) -> None:
        """Put a failed flush's lines back in front of anything newer."""
        with self._lock:
            self.lines[0:0] = snapshot.lines
            self.started_at = snapshot.started_at
            self.draining = False

    def peek(self) -> BufferSnapshot | None:
        """Copy of the pending lines without removing them."""
        with self._lock:
            if not self.lines:
                return None
            return BufferSnapshot(
                session_id=self.session_id,
                lines=tuple(self.lines),
                language=self.language,
                started_at=self.started_at or self.last_at,
                ended_at=self.last_at,
            )

    def is_silent(self, now: datetime, threshold: timedelta) -> bool:
        """Non-empty, not being flushed, and quiet for at least ``threshold``.

        A buffer quiet for exactly ``threshold`` already counts as silent.
        """
        with self._lock:
            return (
                bool(self.lines)
                and not self.draining
                and now - self.last_at >= threshold
            )

    def is_evictable(self, now: datetime, idle: timedelta) -> bool:
        """Empty, not being flushed, and untouched for longer than ``idle``."""
        with self._lock:
            return not self.lines and not self.draining and now - self.last_at > idle


class BufferRegistry:
    """Map of session id to SessionBuffer.

    The registry lock guards the map itself (create, discard, evict);
    each buffer's own lock guards its contents.
    """

    def __init__(self, clock: Clock = utc_now) -> None:
        self._clock = clock
        self._buffers: dict[uuid.UUID, SessionBuffer] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._buffers)

    def __contains__(self, session_id: object) -> bool:
        with self._lock:
            return session_id in self._buffers

    def get(self, session_id: uuid.UUID) -> SessionBuffer | None:
        """Get the buffer for a session, if one exists."""
        with self._lock:
            return self._buffers.get(session_id)

    def append(
        self,
        session_id: uuid.UUID,
        text: str,
        language: str | None = None,
    ) -> SessionBuffer:
        """Append a fragment, creating the session's buffer on first use."""
        now = self._clock()
        with self._lock:
            buffer = self._buffers.get(session_id)
            if buffer is None:
                buffer = SessionBuffer(
                    session_id=session_id,
                    last_at=now,
                    language=language or "en",
                )
                self._buffers[session_id] = buffer
            # Appending under the registry lock keeps eviction from
            # removing a buffer between lookup and append.
            buffer.append(text, language, now)
        return buffer

    def take(
        self, session_id: uuid.UUID
    ) -> tuple[SessionBuffer, BufferSnapshot] | None:
        """Take a session's pending lines, if any are available."""
        buffer = self.get(session_id)
        if buffer is None:
            return None
        snapshot = buffer.take()
        if snapshot is None:
            return None
        return buffer, snapshot

    def session_ids(self) -> list[uuid.UUID]:
        """Ids of every session that currently has a buffer."""
        with self._lock:
            return list(self._buffers)

    def pending_session_ids(self) -> list[uuid.UUID]:
        """Ids of sessions with unflushed lines."""
        with self._lock:
            buffers = list(self._buffers.values())
        return [b.session_id for b in buffers if b.has_pending]

    def silent_session_ids(self, threshold: timedelta) -> list[uuid.UUID]:
        """Ids of sessions whose pending lines have been quiet for ``threshold``."""
        now = self._clock()
        with self._lock:
            buffers = list(self._buffers.values())
        return [b.session_id for b in buffers if b.is_silent(now, threshold)]

    def evict_idle(self, idle: timedelta) -> int:
        """Remove empty buffers untouched for longer than ``idle``.

        Buffers with pending lines are kept regardless of age.

        Returns:
            Number of buffers removed
        """
        now = self._clock()
        with self._lock:
            stale = [
                session_id
                for session_id, buffer in self._buffers.items()
                if buffer.is_evictable(now, idle)
            ]
            for session_id in stale:
                del self._buffers[session_id]
        return len(stale)

    def discard(self, session_id: uuid.UUID) -> bool:
        """Drop a session's buffer and any pending lines.

        Returns:
            True if a buffer existed
        """
        with self._lock:
            return self._buffers.pop(session_id, None) is not None
