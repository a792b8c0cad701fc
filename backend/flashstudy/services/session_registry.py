"""
In-process registry of live study/test/tutor sessions.

Each HTTP client works on a session by id. Background work for a session (test
generation) runs as a named asyncio task tracked here so it can be cancelled
when the session is dropped.
"""
from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Coroutine
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from flashstudy.config import settings

logger = logging.getLogger(__name__)

S = TypeVar("S")


@dataclass
class SessionEntry(Generic[S]):
    id: str
    set_id: str
    owner_id: str
    session: S
    task: asyncio.Task[Any] | None = field(default=None, repr=False)


class SessionRegistry(Generic[S]):
    """
    Sessions keyed by id, in insertion order.

    Each owner keeps at most max_per_owner sessions; opening one more closes
    that owner's oldest session (cancelling its task).
    """

    def __init__(self, kind: str, max_per_owner: int | None = None) -> None:
        self.kind = kind
        self.max_per_owner = max_per_owner
        self._entries: dict[str, SessionEntry[S]] = {}

    def add(self, set_id: str, owner_id: str, session: S) -> SessionEntry[S]:
        self._evict_oldest(owner_id)
        entry = SessionEntry(id=str(uuid.uuid4()), set_id=set_id, owner_id=owner_id, session=session)
        self._entries[entry.id] = entry
        logger.info("Opened %s session %s for set %s", self.kind, entry.id, set_id)
        return entry

    def _evict_oldest(self, owner_id: str) -> None:
        if self.max_per_owner is None:
            return
        owned = [e.id for e in self._entries.values() if e.owner_id == owner_id]
        excess = len(owned) - self.max_per_owner + 1
        for session_id in owned[: max(excess, 0)]:
            logger.info("Evicting %s session %s for owner %s", self.kind, session_id, owner_id)
            self.remove(session_id)

    def get(self, session_id: str, owner_id: str | None = None) -> SessionEntry[S] | None:
        entry = self._entries.get(session_id)
        if entry is None or (owner_id is not None and entry.owner_id != owner_id):
            return None
        return entry

    def start_task(
        self, entry: SessionEntry[S], coro: Coroutine[Any, Any, Any]
    ) -> asyncio.Task[Any]:
        """Run coro in the background, bound to this session."""
        task = asyncio.create_task(coro, name=f"{self.kind}-{entry.id}")
        entry.task = task

        def _done(t: asyncio.Task[Any]) -> None:
            if entry.task is t:
                entry.task = None
            if not t.cancelled() and t.exception() is not None:
                logger.error(
                    "%s task for session %s failed",
                    self.kind,
                    entry.id,
                    exc_info=t.exception(),
                )

        task.add_done_callback(_done)
        return task

    def is_processing(self, session_id: str) -> bool:
        entry = self._entries.get(session_id)
        return entry is not None and entry.task is not None and not entry.task.done()

    def remove(self, session_id: str) -> bool:
        entry = self._entries.pop(session_id, None)
        if entry is None:
            return False
        if entry.task is not None and not entry.task.done():
            entry.task.cancel()
        logger.info("Closed %s session %s", self.kind, session_id)
        return True

    def clear(self) -> None:
        for session_id in list(self._entries):
            self.remove(session_id)

    def __len__(self) -> int:
        return len(self._entries)


test_sessions: SessionRegistry = SessionRegistry("test", settings.max_sessions_per_owner)
study_sessions: SessionRegistry = SessionRegistry("study", settings.max_sessions_per_owner)
tutor_sessions: SessionRegistry = SessionRegistry("tutor", settings.max_sessions_per_owner)
