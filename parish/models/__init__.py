from parish.db.base import Base

# Import all models so Alembic can detect them
from parish.models.member import Adherent, Ministry, Sex, MaritalStatus, Zone
from parish.models.group import Group, GroupMembership
from parish.models.finance import DuesRecord, Contribution, ContributionType
from parish.models.user import User
from parish.models.role import AppRole, UserRole
from parish.models.system import SystemSetting

__all__ = [
    "Base",
    "Adherent",
    "Ministry",
    "Sex",
    "MaritalStatus",
    "Zone",
    "Group",
    "GroupMembership",
    "DuesRecord",
    "Contribution",
    "ContributionType",
    "User",
    "AppRole",
    "UserRole",
    "SystemSetting",
]
