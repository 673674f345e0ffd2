from datetime import timedelta
from typing import Optional
import logging

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from parish.core.audit import write_audit_log
from parish.core.config import settings
from parish.core.errors import RepositoryError, ValidationError
from parish.core.security import create_access_token, get_password_hash, verify_password
from parish.models.role import AppRole
from parish.models.user import User
from parish.services.events import SESSION_TOPIC, EventBus, SessionEvent, SessionEventKind
from parish.services.rbac import DEFAULT_ROLE
from parish.services.roles import UserRoleRepository

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


def authenticate_user(db: Session, email: str, password: str) -> Optional[User]:
    """Return the user if the email/password pair is valid, otherwise None."""
    user = db.query(User).filter(User.email == email.strip().lower()).first()
    if not user:
        logger.debug(f"User not found: {email}")
        return None
    if not verify_password(password, user.password_hash):
        logger.debug(f"Password verification failed for user: {email}")
        return None
    return user


def sign_up(db: Session, email: str, password: str, username: str) -> User:
    """Create an account with the default role."""
    email = (email or "").strip().lower()
    username = (username or "").strip()
    if not email:
        raise ValidationError("Email is required")
    if not username:
        raise ValidationError("Username is required")
    if len(password or "") < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    if db.query(User).filter(User.email == email).first():
        logger.warning(f"Registration attempt with existing email: {email}")
        raise ValidationError("Email already registered")

    user = User(email=email, username=username, password_hash=get_password_hash(password))
    try:
        db.add(user)
        db.commit()
        db.refresh(user)
    except IntegrityError:
        db.rollback()
        raise ValidationError("Email already registered")
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error creating user {email}: {e}", exc_info=True)
        raise RepositoryError("Failed to create user", cause=e)

    role = UserRoleRepository(db).resolve(user.id)
    logger.info(f"User {email} registered with role {role.value}")
    return user


def create_access_token_for_user(user: User) -> str:
    """Create access token for user."""
    access_token_expires = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    return create_access_token(
        claims={"sub": str(user.id), "email": user.email},
        expires_delta=access_token_expires
    )


def sign_in(db: Session, bus: Optional[EventBus], email: str, password: str) -> Optional[str]:
    """Authenticate and issue a bearer token. Returns None on bad credentials."""
    user = authenticate_user(db, email, password)
    if user is None:
        return None
    role = UserRoleRepository(db).resolve(user.id)
    token = create_access_token_for_user(user)
    write_audit_log(user_name=user.username, user_role=role.value, action="Login", details=f"email={user.email}")
    if bus is not None:
        bus.publish(SESSION_TOPIC, SessionEvent(user.id, SessionEventKind.SIGNED_IN))
    return token


def sign_out(bus: Optional[EventBus], user: User, role: AppRole = DEFAULT_ROLE) -> None:
    write_audit_log(user_name=user.username, user_role=role.value, action="Logout", details=f"email={user.email}")
    if bus is not None:
        bus.publish(SESSION_TOPIC, SessionEvent(user.id, SessionEventKind.SIGNED_OUT))
    logger.info(f"User {user.email} signed out")
