# FILE: bukedlist/live.py
"""
Live queries: reads that are re-run after every committed write touching the
collections they read from.

Writes are detected from SQLAlchemy session events, so store code never has
to name what it changed:
  - after_flush     -> rows added / changed / deleted through the unit of work
  - do_orm_execute  -> bulk insert(), update(), delete() statements
The store pops the collected table names after a successful commit and hands
them to LiveQueryHub.notify().
"""
from __future__ import annotations

import itertools
import threading
from dataclasses import dataclass
from typing import Any, Callable, FrozenSet, Iterable, List, Optional

from sqlalchemy import event
from sqlalchemy.orm import ORMExecuteState, Session, sessionmaker

from .logger import get_logger

logger = get_logger(__name__)

TOUCHED_KEY = "bukedlist.touched"


def touched_collections(session: Session) -> set:
    return session.info.setdefault(TOUCHED_KEY, set())


def pop_touched(session: Session) -> FrozenSet[str]:
    return frozenset(session.info.pop(TOUCHED_KEY, ()))


def _on_after_flush(session: Session, flush_context) -> None:
    touched = touched_collections(session)
    for obj in itertools.chain(session.new, session.dirty, session.deleted):
        table = getattr(obj, "__tablename__", None)
        if table:
            touched.add(table)


def _on_orm_execute(state: ORMExecuteState) -> None:
    if not (state.is_insert or state.is_update or state.is_delete):
        return
    mapper = state.bind_mapper
    if mapper is not None:
        touched_collections(state.session).add(mapper.local_table.name)


def track_writes(session_factory: sessionmaker) -> None:
    """Install the write trackers on a session factory (idempotent)."""
    if not event.contains(session_factory, "after_flush", _on_after_flush):
        event.listen(session_factory, "after_flush", _on_after_flush)
    if not event.contains(session_factory, "do_orm_execute", _on_orm_execute):
        event.listen(session_factory, "do_orm_execute", _on_orm_execute)


@dataclass(frozen=True)
class LiveQuery:
    collections: FrozenSet[str]
    fetch: Callable[[], Any]
    name: str = ""


class Subscription:
    def __init__(self, hub: "LiveQueryHub", query: LiveQuery, callback: Optional[Callable[[Any], None]]):
        self.query = query
        self.value: Any = None
        self.cancelled = False
        self._hub = hub
        self._callback = callback

    def refresh(self) -> None:
        if self.cancelled:
            return
        self.value = self.query.fetch()
        if self._callback is not None:
            self._callback(self.value)

    def cancel(self) -> None:
        if self.cancelled:
            return
        self.cancelled = True
        self._hub._remove(self)


class LiveQueryHub:
    def __init__(self) -> None:
        self._subs: List[Subscription] = []
        self._lock = threading.RLock()

    def subscribe(self, query: LiveQuery, callback: Optional[Callable[[Any], None]] = None) -> Subscription:
        """
        Run `query` now and keep it live. The initial result is on `.value`;
        `callback` only sees later results.
        """
        sub = Subscription(self, query, callback)
        # a commit landing during the first fetch waits here for its notify,
        # and by then the subscription is registered
        with self._lock:
            sub.value = query.fetch()
            self._subs.append(sub)
        return sub

    def notify(self, collections: Iterable[str]) -> int:
        changed = frozenset(collections)
        if not changed:
            return 0
        with self._lock:
            targets = [s for s in self._subs if s.query.collections & changed]
        for sub in targets:
            try:
                sub.refresh()
            except Exception:
                # one broken subscriber must not starve the rest
                logger.exception("live query %r failed to refresh", sub.query.name)
        logger.debug("changed=%s refreshed=%d", sorted(changed), len(targets))
        return len(targets)

    @property
    def active(self) -> int:
        with self._lock:
            return len(self._subs)

    def _remove(self, sub: Subscription) -> None:
        with self._lock:
            if sub in self._subs:
                self._subs.remove(sub)
