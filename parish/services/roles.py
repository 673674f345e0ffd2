"""Role assignments: exactly one ``user_role`` row per user."""
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple, Union
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from parish.core.errors import NotFoundError, RepositoryError, ValidationError
from parish.models.role import AppRole, UserRole
from parish.models.user import User
from parish.services.rbac import DEFAULT_ROLE, ISSUABLE_ROLES, parse_role
from parish.services.repository import Repository

logger = logging.getLogger(__name__)


@dataclass
class UserWithRole:
    user: User
    role: AppRole


class UserRoleRepository(Repository[UserRole]):
    model = UserRole
    entity_name = "Role assignment"

    def query(self, role: Optional[AppRole] = None):
        q = self.db.query(UserRole)
        if role is not None:
            q = q.filter(UserRole.role == parse_role(role))
        return q.order_by(UserRole.created_at)

    def _row(self, user_id: UUID) -> Optional[UserRole]:
        return self.db.query(UserRole).filter(UserRole.user_id == user_id).first()

    def resolve(self, user_id: UUID) -> AppRole:
        """Role of the user; a missing row is created with the default role.

        Store failures are logged and degrade to the default role.
        """
        try:
            row = self._row(user_id)
            if row is not None:
                return parse_role(row.role)
            self.db.add(UserRole(user_id=user_id, role=DEFAULT_ROLE))
            try:
                self.db.commit()
                logger.info("Assigned default role %s to user %s", DEFAULT_ROLE.value, user_id)
                return DEFAULT_ROLE
            except IntegrityError:
                # Another request inserted the row first
                self.db.rollback()
                row = self._row(user_id)
                return parse_role(row.role) if row is not None else DEFAULT_ROLE
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Could not resolve role of user %s: %s", user_id, e, exc_info=True)
            return DEFAULT_ROLE

    def upsert(self, user_id: UUID, role: Union[str, AppRole]) -> UserRole:
        """Set the user's role: update the row if present, otherwise insert it."""
        role = parse_role(role)
        if role not in ISSUABLE_ROLES:
            raise ValidationError(f"Role {role.value} can no longer be assigned")
        if self.db.get(User, user_id) is None:
            raise NotFoundError("User not found")

        with self._store("update"):
            row = self._row(user_id)
            if row is not None:
                row.role = role
                self.db.commit()
                self.db.refresh(row)
                return row

        try:
            row = UserRole(user_id=user_id, role=role)
            self.db.add(row)
            self.db.commit()
            self.db.refresh(row)
            return row
        except IntegrityError:
            self.db.rollback()
            logger.info("Role row of user %s appeared concurrently, updating instead", user_id)
        except SQLAlchemyError as e:
            self.db.rollback()
            raise RepositoryError("Failed to save role assignment", cause=e)

        with self._store("update"):
            row = self._row(user_id)
            if row is None:
                raise RepositoryError("Role assignment vanished during update")
            row.role = role
            self.db.commit()
            self.db.refresh(row)
            return row

    def role_stats(self) -> Dict[str, int]:
        """Number of users per role, every role present (0 when unused)."""
        with self._store("count"):
            rows: List[Tuple[AppRole, int]] = self.db.query(UserRole.role, func.count(UserRole.id)).group_by(UserRole.role).all()
        stats = {role.value: 0 for role in AppRole}
        for role, n in rows:
            stats[parse_role(role).value] = n
        return stats

    def users_with_roles(self, search: Optional[str] = None) -> List[UserWithRole]:
        with self._store("list users of"):
            q = self.db.query(User, UserRole.role).outerjoin(UserRole, UserRole.user_id == User.id)
            if search:
                pattern = f"%{search.strip()}%"
                q = q.filter(User.email.ilike(pattern) | User.username.ilike(pattern))
            rows = q.order_by(User.created_at.desc()).all()
        return [UserWithRole(user=user, role=parse_role(role) if role is not None else DEFAULT_ROLE) for user, role in rows]
