from typing import Optional
from datetime import datetime
import uuid

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from parish.core.errors import AuthorizationError
from parish.core.security import decode_access_token
from parish.db.base import get_db
from parish.models.role import AppRole
from parish.models.user import User
from parish.services.events import EventBus
from parish.services.guard import ACCESS_DENIED_MESSAGE, AuthSession, GuardOutcome, evaluate_access
from parish.services.notifications import NotificationCenter
from parish.services.rbac import Capability, has_role
from parish.services.roles import UserRoleRepository

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)

LOGIN_PATH = "/auth"


def login_required_exception() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer", "Location": LOGIN_PATH},
    )


def access_denied_error() -> AuthorizationError:
    return AuthorizationError(ACCESS_DENIED_MESSAGE)


def get_optional_session(
    token: Optional[str] = Depends(oauth2_scheme),
    db: Session = Depends(get_db)
) -> Optional[AuthSession]:
    """Session from the bearer token, or None when absent, invalid or expired."""
    if not token:
        return None
    payload = decode_access_token(token)
    if payload is None:
        return None

    user_id_str = payload.get("sub")
    if user_id_str is None:
        return None
    # Convert string UUID to UUID object
    try:
        user_id = uuid.UUID(user_id_str)
    except (ValueError, TypeError):
        return None

    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        return None
    exp = payload.get("exp")
    return AuthSession(
        user_id=user.id,
        email=user.email,
        expires_at=datetime.utcfromtimestamp(exp) if exp else None,
    )


def get_current_session(session: Optional[AuthSession] = Depends(get_optional_session)) -> AuthSession:
    if session is None:
        raise login_required_exception()
    return session


def get_current_user(
    session: AuthSession = Depends(get_current_session),
    db: Session = Depends(get_db)
) -> User:
    """Get current authenticated user from JWT token."""
    user = db.get(User, session.user_id)
    if user is None:
        raise login_required_exception()
    return user


def get_current_role(
    session: AuthSession = Depends(get_current_session),
    db: Session = Depends(get_db)
) -> AppRole:
    """Role read from the live role row on every request."""
    return UserRoleRepository(db).resolve(session.user_id)


def get_optional_role(
    session: Optional[AuthSession] = Depends(get_optional_session),
    db: Session = Depends(get_db)
) -> Optional[AppRole]:
    """Role of the session user, or None without a session."""
    return UserRoleRepository(db).resolve(session.user_id) if session is not None else None


def require_capability(capability: Capability):
    """Dependency factory guarding a route with one capability."""
    def capability_checker(
        session: Optional[AuthSession] = Depends(get_optional_session),
        role: Optional[AppRole] = Depends(get_optional_role),
        db: Session = Depends(get_db)
    ) -> User:
        decision = evaluate_access(session, role, capability)
        if decision.outcome is GuardOutcome.REDIRECT_TO_LOGIN:
            raise login_required_exception()
        if decision.outcome is GuardOutcome.ACCESS_DENIED:
            raise access_denied_error()
        return db.get(User, session.user_id)
    return capability_checker


def require_role(*roles: AppRole):
    """Dependency factory for requiring one of the given roles."""
    def role_checker(
        current_user: User = Depends(get_current_user),
        role: AppRole = Depends(get_current_role)
    ) -> User:
        if not has_role(role, roles):
            raise access_denied_error()
        return current_user
    return role_checker


# Capability-specific dependencies
require_view_adherents = require_capability(Capability.VIEW_ADHERENTS)
require_manage_adherents = require_capability(Capability.MANAGE_ADHERENTS)
require_view_finances = require_capability(Capability.VIEW_FINANCES)
require_manage_finances = require_capability(Capability.MANAGE_FINANCES)
require_manage_users = require_capability(Capability.MANAGE_USERS)
require_admin = require_role(AppRole.ADMIN)


def get_event_bus(request: Request) -> EventBus:
    return request.app.state.event_bus


def get_notification_center(request: Request) -> NotificationCenter:
    return request.app.state.notifications
