from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy import func
from sqlalchemy.orm import Session

from parish.core.audit import write_audit_log
from parish.core.dependencies import get_current_role, require_admin, require_manage_users
from parish.db.base import get_db
from parish.models import Adherent, Contribution, DuesRecord, Group, Ministry
from parish.models.role import AppRole
from parish.models.user import User
from parish.schemas.admin import (
    DatabaseStats, RoleInfo, RoleUpdate, SettingsResponse, UserWithRoleResponse,
)
from parish.services.rbac import ISSUABLE_ROLES, ROLE_DESCRIPTIONS, capability_flags
from parish.services.roles import UserRoleRepository
from parish.services.scheduler import get_scheduler_status
from parish.services.settings import SettingsRepository, SystemConfig

router = APIRouter(prefix="/api/admin", tags=["admin"])


@router.get("/users", response_model=List[UserWithRoleResponse])
def list_users(
    search: Optional[str] = None,
    current_user: User = Depends(require_manage_users),
    db: Session = Depends(get_db)
):
    """All accounts with their role (Admin only)."""
    return [
        UserWithRoleResponse(
            id=entry.user.id,
            email=entry.user.email,
            username=entry.user.username,
            role=entry.role,
            created_at=entry.user.created_at,
        )
        for entry in UserRoleRepository(db).users_with_roles(search=search)
    ]


@router.put("/users/{user_id}/role", response_model=UserWithRoleResponse)
def update_user_role(
    user_id: UUID,
    payload: RoleUpdate,
    current_user: User = Depends(require_manage_users),
    current_role: AppRole = Depends(get_current_role),
    db: Session = Depends(get_db)
):
    """Assign a role (Admin only)."""
    row = UserRoleRepository(db).upsert(user_id, payload.role)
    user = db.get(User, user_id)
    write_audit_log(
        user_name=current_user.username,
        user_role=current_role.value,
        action="Role change",
        details=f"user={user.email} role={row.role.value}",
    )
    return UserWithRoleResponse(
        id=user.id,
        email=user.email,
        username=user.username,
        role=row.role,
        created_at=user.created_at,
    )


@router.get("/roles", response_model=List[RoleInfo])
def list_roles(
    current_user: User = Depends(require_manage_users),
    db: Session = Depends(get_db)
):
    """Assignable roles with their permissions and number of users."""
    stats = UserRoleRepository(db).role_stats()
    return [
        RoleInfo(
            role=role,
            description=ROLE_DESCRIPTIONS[role],
            permissions=capability_flags(role),
            users=stats[role.value],
        )
        for role in ISSUABLE_ROLES
    ]


@router.get("/roles/stats")
def role_stats(
    current_user: User = Depends(require_manage_users),
    db: Session = Depends(get_db)
):
    return UserRoleRepository(db).role_stats()


@router.get("/settings", response_model=SettingsResponse)
def get_settings(
    current_user: User = Depends(require_manage_users),
    db: Session = Depends(get_db)
):
    """Get system settings (Admin only)."""
    stored = SettingsRepository(db).get_config()
    return SettingsResponse(config=stored.config, last_saved=stored.last_saved)


@router.put("/settings", response_model=SettingsResponse)
def update_settings(
    config: SystemConfig,
    current_user: User = Depends(require_manage_users),
    db: Session = Depends(get_db)
):
    """Update system settings (Admin only)."""
    stored = SettingsRepository(db).save_config(config, updated_by=current_user.id)
    return SettingsResponse(config=stored.config, last_saved=stored.last_saved)


@router.get("/database", response_model=DatabaseStats)
def database_stats(
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Row counts per table."""
    def count(column):
        return db.query(func.count(column)).scalar() or 0

    return DatabaseStats(
        adherents=count(Adherent.id),
        groups=count(Group.id),
        ministries=count(Ministry.id),
        contributions=count(Contribution.id),
        dues_records=count(DuesRecord.id),
        users=count(User.id),
    )


@router.get("/scheduler")
def scheduler_status(current_user: User = Depends(require_admin)):
    return get_scheduler_status()
