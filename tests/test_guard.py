import uuid

from parish.models.role import AppRole
from parish.services.events import (
    SESSION_TOPIC, ChangeEvent, ChangeKind, EventBus, SessionEvent, SessionEventKind, table_topic,
)
from parish.services.guard import (
    AccessGuard, AuthSession, GuardOutcome, GuardState, LOADING, evaluate_access,
)
from parish.services.rbac import Capability


def _session():
    return AuthSession(user_id=uuid.uuid4(), email="jean@fjkm.test")


def test_no_session_redirects_to_login():
    decision = evaluate_access(None, None, Capability.VIEW_ADHERENTS)
    assert decision.state is GuardState.DENIED
    assert decision.outcome is GuardOutcome.REDIRECT_TO_LOGIN


def test_missing_capability_is_denied_in_place():
    decision = evaluate_access(_session(), AppRole.SECRETAIRE, Capability.VIEW_FINANCES)
    assert decision.state is GuardState.DENIED
    assert decision.outcome is GuardOutcome.ACCESS_DENIED


def test_capability_present_is_allowed():
    decision = evaluate_access(_session(), AppRole.TRESORIER, Capability.MANAGE_FINANCES)
    assert decision.state is GuardState.ALLOWED
    assert decision.allowed


def test_guard_starts_loading_and_resolves():
    guard = AccessGuard(EventBus(), Capability.VIEW_ADHERENTS)
    assert guard.decision is LOADING
    assert guard.state is GuardState.LOADING
    guard.resolve(_session(), AppRole.MEMBRE)
    assert guard.state is GuardState.ALLOWED
    guard.close()


def test_guard_reacts_to_role_revocation():
    bus = EventBus()
    session = _session()
    guard = AccessGuard(bus, Capability.MANAGE_FINANCES)
    seen = []
    guard.on_change(seen.append)
    guard.resolve(session, AppRole.TRESORIER)
    assert guard.state is GuardState.ALLOWED

    bus.publish(table_topic("user_role"), ChangeEvent(
        "user_role", ChangeKind.UPDATE,
        new={"user_id": session.user_id, "role": "MEMBRE"},
        old={"role": AppRole.TRESORIER},
    ))
    assert guard.state is GuardState.DENIED
    assert guard.decision.outcome is GuardOutcome.ACCESS_DENIED
    assert [d.outcome for d in seen] == [GuardOutcome.ALLOWED, GuardOutcome.ACCESS_DENIED]
    guard.close()


def test_guard_ignores_other_users_role_changes():
    bus = EventBus()
    guard = AccessGuard(bus, Capability.MANAGE_USERS)
    guard.resolve(_session(), AppRole.ADMIN)
    bus.publish(table_topic("user_role"), ChangeEvent(
        "user_role", ChangeKind.UPDATE, new={"user_id": uuid.uuid4(), "role": "MEMBRE"},
    ))
    assert guard.state is GuardState.ALLOWED
    guard.close()


def test_deleted_role_row_falls_back_to_default_role():
    bus = EventBus()
    session = _session()
    guard = AccessGuard(bus, Capability.MANAGE_ADHERENTS)
    guard.resolve(session, AppRole.SECRETAIRE)
    bus.publish(table_topic("user_role"), ChangeEvent(
        "user_role", ChangeKind.DELETE, old={"user_id": session.user_id, "role": AppRole.SECRETAIRE},
    ))
    assert guard.role is AppRole.MEMBRE
    assert guard.decision.outcome is GuardOutcome.ACCESS_DENIED
    guard.close()


def test_sign_out_redirects_to_login():
    bus = EventBus()
    session = _session()
    guard = AccessGuard(bus, Capability.VIEW_ADHERENTS)
    guard.resolve(session, AppRole.ADMIN)
    bus.publish(SESSION_TOPIC, SessionEvent(session.user_id, SessionEventKind.SIGNED_OUT))
    assert guard.decision.outcome is GuardOutcome.REDIRECT_TO_LOGIN
    guard.close()


def test_close_removes_subscriptions():
    bus = EventBus()
    guard = AccessGuard(bus, Capability.VIEW_ADHERENTS)
    assert bus.subscriber_count() == 2
    guard.close()
    guard.close()
    assert bus.subscriber_count() == 0
