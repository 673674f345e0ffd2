import os
import tempfile

_tmp_dir = tempfile.mkdtemp(prefix="parish-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_tmp_dir, 'parish_test.db')}"
os.environ["SECRET_KEY"] = "test-secret-key-not-for-production"
os.environ["AUDIT_LOG_DIR"] = os.path.join(_tmp_dir, "logs")
os.environ["ENABLE_SCHEDULER"] = "false"
os.environ["CARD_RENDER_WORKERS"] = "2"

from datetime import date

import pytest
from fastapi.testclient import TestClient

from parish.core.security import get_password_hash
from parish.db.base import Base, SessionLocal, engine
from parish.models import Adherent, AppRole, Sex, User, UserRole
from parish.services.auth import create_access_token_for_user
from parish.services.events import ChangeFeed, EventBus


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def bus():
    return EventBus()


@pytest.fixture
def feed(bus):
    change_feed = ChangeFeed(bus, SessionLocal)
    change_feed.start()
    yield change_feed
    change_feed.stop()


@pytest.fixture
def client(db):
    from parish.main import app
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def make_member(db):
    def _make(surname="Rakoto", given_name="Jean", sex=Sex.MALE, **fields):
        member = Adherent(
            surname=surname,
            given_name=given_name,
            sex=sex,
            registration_date=fields.pop("registration_date", date.today()),
            communicant=fields.pop("communicant", False),
            **fields,
        )
        db.add(member)
        db.commit()
        db.refresh(member)
        return member
    return _make


@pytest.fixture
def make_user(db):
    def _make(role=AppRole.MEMBRE, email=None, password="secret123", username=None):
        label = role.value if role is not None else "user"
        email = email or f"{label.lower()}@fjkm.test"
        user = User(email=email, username=username or label.title(), password_hash=get_password_hash(password))
        db.add(user)
        db.flush()
        if role is not None:
            db.add(UserRole(user_id=user.id, role=role))
        db.commit()
        db.refresh(user)
        return user
    return _make


@pytest.fixture
def auth_headers(make_user):
    def _headers(role=AppRole.MEMBRE, **kwargs):
        user = make_user(role, **kwargs)
        return {"Authorization": f"Bearer {create_access_token_for_user(user)}"}
    return _headers
