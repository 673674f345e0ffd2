from pydantic import BaseModel
from typing import Dict, Optional
from datetime import datetime
from uuid import UUID
from parish.models.role import AppRole
from parish.services.settings import SystemConfig


class UserWithRoleResponse(BaseModel):
    id: UUID
    email: str
    username: str
    role: AppRole
    created_at: datetime


class RoleUpdate(BaseModel):
    role: AppRole


class RoleInfo(BaseModel):
    role: AppRole
    description: str
    permissions: Dict[str, bool]
    users: int


class SettingsResponse(BaseModel):
    config: SystemConfig
    last_saved: Optional[datetime] = None


class DatabaseStats(BaseModel):
    adherents: int
    groups: int
    ministries: int
    contributions: int
    dues_records: int
    users: int
