from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from parish.db.base import get_db
from parish.schemas.auth import UserRegister, UserLogin, Token, UserResponse, SessionResponse
from parish.services.auth import sign_in, sign_out, sign_up
from parish.services.events import EventBus
from parish.services.rbac import capability_flags
from parish.core.dependencies import get_current_role, get_current_user, get_event_bus
from parish.models.role import AppRole
from parish.models.user import User

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def register(user_data: UserRegister, db: Session = Depends(get_db)):
    """Create an account. New accounts get the MEMBRE role."""
    return sign_up(db, user_data.email, user_data.password, user_data.username)


@router.post("/login", response_model=Token)
def login(
    credentials: UserLogin,
    db: Session = Depends(get_db),
    bus: EventBus = Depends(get_event_bus)
):
    """Login and get JWT token."""
    access_token = sign_in(db, bus, credentials.email, credentials.password)
    if not access_token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password"
        )
    return {"access_token": access_token, "token_type": "bearer"}


@router.post("/logout")
def logout(
    current_user: User = Depends(get_current_user),
    role: AppRole = Depends(get_current_role),
    bus: EventBus = Depends(get_event_bus)
):
    """Record logout in audit log (token invalidation is handled client-side)."""
    sign_out(bus, current_user, role)
    return {"message": "Logged out"}


@router.get("/me", response_model=SessionResponse)
def get_current_user_info(
    current_user: User = Depends(get_current_user),
    role: AppRole = Depends(get_current_role)
):
    """Current user, role and permission flags."""
    return SessionResponse(
        user=UserResponse.model_validate(current_user),
        role=role,
        permissions=capability_flags(role),
    )
