"""In-process event bus and the table change feed that publishes onto it.

One ``EventBus`` lives for the duration of the application lifespan and is
handed to whoever needs it. ``ChangeFeed`` hooks SQLAlchemy session events so
that every committed insert, update or delete on a watched table becomes a
``ChangeEvent`` on topic ``table:<name>``.
"""
import enum
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import event, inspect

logger = logging.getLogger(__name__)

SESSION_TOPIC = "auth:session"

Handler = Callable[[Any], None]


def table_topic(table_name: str) -> str:
    return f"table:{table_name}"


class ChangeKind(str, enum.Enum):
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


@dataclass(frozen=True)
class ChangeEvent:
    table: str
    kind: ChangeKind
    new: Dict[str, Any] = field(default_factory=dict)
    old: Dict[str, Any] = field(default_factory=dict)
    occurred_at: datetime = field(default_factory=datetime.utcnow)


class SessionEventKind(str, enum.Enum):
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"


@dataclass(frozen=True)
class SessionEvent:
    user_id: UUID
    kind: SessionEventKind
    occurred_at: datetime = field(default_factory=datetime.utcnow)


class Subscription:
    """Handle returned by ``EventBus.subscribe``."""

    def __init__(self, bus: "EventBus", topic: str, handler: Handler):
        self._bus = bus
        self.topic = topic
        self.handler = handler
        self.active = True

    def unsubscribe(self) -> None:
        if not self.active:
            return
        self._bus._remove(self)
        self.active = False


class EventBus:
    def __init__(self):
        self._lock = threading.Lock()
        self._subscriptions: Dict[str, List[Subscription]] = {}

    def subscribe(self, topic: str, handler: Handler) -> Subscription:
        """Register ``handler`` for ``topic``. Subscribing the same handler twice returns the first handle."""
        with self._lock:
            subs = self._subscriptions.setdefault(topic, [])
            for sub in subs:
                if sub.handler == handler:
                    return sub
            sub = Subscription(self, topic, handler)
            subs.append(sub)
            return sub

    def _remove(self, subscription: Subscription) -> None:
        with self._lock:
            subs = self._subscriptions.get(subscription.topic, [])
            if subscription in subs:
                subs.remove(subscription)
            if not subs:
                self._subscriptions.pop(subscription.topic, None)

    def subscriber_count(self, topic: Optional[str] = None) -> int:
        with self._lock:
            if topic is not None:
                return len(self._subscriptions.get(topic, []))
            return sum(len(subs) for subs in self._subscriptions.values())

    def publish(self, topic: str, payload: Any) -> None:
        with self._lock:
            handlers = [sub.handler for sub in self._subscriptions.get(topic, [])]
        for handler in handlers:
            try:
                handler(payload)
            except Exception:
                logger.exception("Event handler failed for topic %s", topic)


def _snapshot(obj) -> Dict[str, Any]:
    # Loaded values only: reading an expired attribute here would emit SQL mid-flush
    state = inspect(obj)
    return {attr.key: state.dict[attr.key] for attr in state.mapper.column_attrs if attr.key in state.dict}


def _previous_values(obj) -> Dict[str, Any]:
    state = inspect(obj)
    old = {}
    for attr in state.mapper.column_attrs:
        history = state.attrs[attr.key].history
        if history.deleted:
            old[attr.key] = history.deleted[0]
    return old


class ChangeFeed:
    """Publishes committed row changes of the watched tables."""

    PENDING_KEY = "pending_change_events"

    def __init__(self, bus: EventBus, session_factory, tables: Optional[Iterable[str]] = None):
        self.bus = bus
        self.session_factory = session_factory
        self.tables = set(tables) if tables is not None else None
        self._installed = False
        self._listeners: Tuple[Tuple[str, Callable], ...] = (
            ("after_flush", self._collect),
            ("after_commit", self._emit),
            ("after_soft_rollback", self._discard),
        )

    @property
    def running(self) -> bool:
        return self._installed

    def start(self) -> None:
        if self._installed:
            return
        for name, fn in self._listeners:
            event.listen(self.session_factory, name, fn)
        self._installed = True
        logger.info("Change feed started")

    def stop(self) -> None:
        if not self._installed:
            return
        for name, fn in self._listeners:
            event.remove(self.session_factory, name, fn)
        self._installed = False
        logger.info("Change feed stopped")

    def _watched(self, obj) -> bool:
        table = getattr(obj, "__tablename__", None)
        return table is not None and (self.tables is None or table in self.tables)

    def _collect(self, session, flush_context) -> None:
        pending = session.info.setdefault(self.PENDING_KEY, [])
        for obj in session.new:
            if self._watched(obj):
                pending.append(ChangeEvent(obj.__tablename__, ChangeKind.INSERT, new=_snapshot(obj)))
        for obj in session.dirty:
            if self._watched(obj) and session.is_modified(obj, include_collections=False):
                pending.append(ChangeEvent(
                    obj.__tablename__, ChangeKind.UPDATE,
                    new=_snapshot(obj), old=_previous_values(obj),
                ))
        for obj in session.deleted:
            if self._watched(obj):
                pending.append(ChangeEvent(obj.__tablename__, ChangeKind.DELETE, old=_snapshot(obj)))

    def _emit(self, session) -> None:
        pending = session.info.pop(self.PENDING_KEY, [])
        for change in pending:
            self.bus.publish(table_topic(change.table), change)

    def _discard(self, session, previous_transaction) -> None:
        session.info.pop(self.PENDING_KEY, None)
