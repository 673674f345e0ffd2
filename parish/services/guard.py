"""Access guard for protected views.

``evaluate_access`` is the pure decision used on every request.
``AccessGuard`` keeps that decision current for long-lived consumers (the
notification stream): it listens to sign-out events and role-row changes of
its user and re-evaluates instead of keeping the first snapshot.
"""
import enum
import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional
from uuid import UUID

from parish.models.role import AppRole
from parish.services.events import (
    SESSION_TOPIC,
    ChangeEvent,
    ChangeKind,
    EventBus,
    SessionEvent,
    SessionEventKind,
    table_topic,
)
from parish.services.rbac import DEFAULT_ROLE, Capability, has_capability, parse_role

logger = logging.getLogger(__name__)

ACCESS_DENIED_MESSAGE = "Accès refusé : vous n'avez pas les permissions nécessaires pour accéder à cette page."


@dataclass(frozen=True)
class AuthSession:
    """An authenticated session as resolved from a bearer token."""
    user_id: UUID
    email: str
    expires_at: Optional[datetime] = None


class GuardState(str, enum.Enum):
    LOADING = "LOADING"
    DENIED = "DENIED"
    ALLOWED = "ALLOWED"


class GuardOutcome(str, enum.Enum):
    PENDING = "PENDING"
    REDIRECT_TO_LOGIN = "REDIRECT_TO_LOGIN"
    ACCESS_DENIED = "ACCESS_DENIED"
    ALLOWED = "ALLOWED"


@dataclass(frozen=True)
class GuardDecision:
    state: GuardState
    outcome: GuardOutcome

    @property
    def allowed(self) -> bool:
        return self.outcome is GuardOutcome.ALLOWED


LOADING = GuardDecision(GuardState.LOADING, GuardOutcome.PENDING)


def evaluate_access(session: Optional[AuthSession], role: Optional[AppRole], capability: Capability) -> GuardDecision:
    if session is None:
        return GuardDecision(GuardState.DENIED, GuardOutcome.REDIRECT_TO_LOGIN)
    if not has_capability(role, capability):
        return GuardDecision(GuardState.DENIED, GuardOutcome.ACCESS_DENIED)
    return GuardDecision(GuardState.ALLOWED, GuardOutcome.ALLOWED)


class AccessGuard:
    def __init__(self, bus: EventBus, capability: Capability):
        self.bus = bus
        self.capability = capability
        self.session: Optional[AuthSession] = None
        self.role: Optional[AppRole] = None
        self.decision = LOADING
        self._lock = threading.Lock()
        self._listeners: List[Callable[[GuardDecision], None]] = []
        self._subscriptions = [
            bus.subscribe(SESSION_TOPIC, self._on_session_event),
            bus.subscribe(table_topic("user_role"), self._on_role_change),
        ]

    @property
    def state(self) -> GuardState:
        return self.decision.state

    def on_change(self, listener: Callable[[GuardDecision], None]) -> None:
        self._listeners.append(listener)

    def resolve(self, session: Optional[AuthSession], role: Optional[AppRole]) -> GuardDecision:
        """Session resolution completed: leave LOADING."""
        with self._lock:
            self.session = session
            self.role = role
        return self._reevaluate()

    def close(self) -> None:
        for sub in self._subscriptions:
            sub.unsubscribe()
        self._listeners.clear()

    def _reevaluate(self) -> GuardDecision:
        with self._lock:
            decision = evaluate_access(self.session, self.role, self.capability)
            changed = decision != self.decision
            self.decision = decision
        if changed:
            for listener in list(self._listeners):
                listener(decision)
        return decision

    def _on_session_event(self, event: SessionEvent) -> None:
        if self.decision is LOADING or self.session is None:
            return
        if event.user_id == self.session.user_id and event.kind is SessionEventKind.SIGNED_OUT:
            logger.info("Session of user %s ended, re-evaluating guard", event.user_id)
            with self._lock:
                self.session = None
            self._reevaluate()

    def _on_role_change(self, change: ChangeEvent) -> None:
        if self.decision is LOADING or self.session is None:
            return
        row = change.old if change.kind is ChangeKind.DELETE else change.new
        if row.get("user_id") != self.session.user_id:
            return
        if change.kind is ChangeKind.DELETE:
            # An absent row means the default role
            role = DEFAULT_ROLE
        else:
            role = parse_role(change.new["role"]) if "role" in change.new else self.role
        logger.info("Role of user %s changed to %s, re-evaluating guard", self.session.user_id, role)
        with self._lock:
            self.role = role
        self._reevaluate()
