"""Registry of live progress sessions and the sinks events are pushed to."""

import asyncio
import threading
import weakref
from dataclasses import dataclass
from typing import Protocol

from cuid2 import cuid_wrapper

from catalog_assistant.models.progress import ProgressEvent
from catalog_assistant.utils.logging import get_logger

logger = get_logger(__name__)

cuid = cuid_wrapper()


class ProgressSink(Protocol):
    """Anything that accepts progress events without blocking the caller."""

    def emit(self, event: ProgressEvent) -> None: ...


class NullSink:
    """Discards every event."""

    def emit(self, event: ProgressEvent) -> None:
        return None


class QueueSink:
    """Buffers events on an asyncio queue for a connection writer to drain.

    Must be created inside a running event loop; emit() may be called from
    any thread.
    """

    def __init__(self) -> None:
        self.queue: asyncio.Queue[ProgressEvent] = asyncio.Queue()
        self._loop = asyncio.get_running_loop()

    def emit(self, event: ProgressEvent) -> None:
        self._loop.call_soon_threadsafe(self.queue.put_nowait, event)

    async def next_event(self) -> ProgressEvent:
        return await self.queue.get()


@dataclass
class StreamSession:
    """A client connection receiving progress for one conversation at a time."""

    session_id: str
    sink_ref: weakref.ref


class SessionSink:
    """Sink bound to a session id; routes events through the channel."""

    def __init__(self, channel: "ProgressChannel", session_id: str):
        self.channel = channel
        self.session_id = session_id

    def emit(self, event: ProgressEvent) -> None:
        self.channel.emit(self.session_id, event)


class ProgressChannel:
    """Thread-safe registry mapping session ids to weakly held sinks."""

    def __init__(self) -> None:
        self._sessions: dict[str, StreamSession] = {}
        self._lock = threading.Lock()

    def open(self, sink: ProgressSink) -> str:
        """Register a sink and return its session id.

        The channel holds the sink weakly; the caller keeps it alive for the
        lifetime of the connection.
        """
        session_id = cuid()
        with self._lock:
            self._sessions[session_id] = StreamSession(session_id=session_id, sink_ref=weakref.ref(sink))
        logger.info(f"Opened progress session {session_id}")
        return session_id

    def emit(self, session_id: str | None, event: ProgressEvent) -> None:
        """Push an event to a session; unknown or dropped sessions are ignored."""
        if session_id is None:
            return

        with self._lock:
            session = self._sessions.get(session_id)
        if session is None:
            logger.debug(f"Dropping {event.kind} event for closed session {session_id}")
            return

        sink = session.sink_ref()
        if sink is None:
            self.close(session_id)
            return

        try:
            sink.emit(event)
        except Exception as e:
            logger.error(f"Error sending progress update to {session_id}: {e}")

    def close(self, session_id: str) -> bool:
        """Deregister a session.

        Returns:
            True if the session was registered, False otherwise
        """
        with self._lock:
            removed = self._sessions.pop(session_id, None)
        if removed:
            logger.info(f"Closed progress session {session_id}")
        return removed is not None

    def sink_for(self, session_id: str | None) -> ProgressSink:
        """Return a sink that forwards to the given session, or a NullSink without one."""
        if session_id is None:
            return NullSink()
        return SessionSink(self, session_id)

    def has_session(self, session_id: str) -> bool:
        with self._lock:
            return session_id in self._sessions

    def get_session_count(self) -> int:
        """Get current number of registered sessions."""
        with self._lock:
            return len(self._sessions)


progress_channel = ProgressChannel()
