import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import func

from parish.core.errors import NotFoundError, ValidationError
from parish.models.group import Group, GroupMembership
from parish.models.member import Adherent
from parish.services.repository import Repository, blank_to_none
from parish.services.settings import max_users_per_group

logger = logging.getLogger(__name__)


@dataclass
class GroupSummary:
    group: Group
    member_count: int


class GroupRepository(Repository[Group]):
    model = Group
    entity_name = "Group"

    def query(self, search: Optional[str] = None):
        q = self.db.query(Group)
        if search:
            q = q.filter(Group.name.ilike(f"%{search.strip()}%"))
        return q.order_by(Group.name)

    def list_with_counts(self, search: Optional[str] = None) -> List[GroupSummary]:
        counts = (
            self.db.query(GroupMembership.group_id, func.count(GroupMembership.member_id).label("n"))
            .group_by(GroupMembership.group_id)
            .subquery()
        )
        with self._store("list"):
            q = self.db.query(Group, func.coalesce(counts.c.n, 0)).outerjoin(counts, counts.c.group_id == Group.id)
            if search:
                q = q.filter(Group.name.ilike(f"%{search.strip()}%"))
            rows = q.order_by(Group.name).all()
        return [GroupSummary(group=group, member_count=int(n)) for group, n in rows]

    def member_count(self, group_id: UUID) -> int:
        with self._store("count members of"):
            return self.db.query(GroupMembership).filter(GroupMembership.group_id == group_id).count()

    def validate_create(self, data: Dict[str, Any]) -> Dict[str, Any]:
        name = blank_to_none(data.get("name"))
        if name is None:
            raise ValidationError("Group name is required")
        data["name"] = name
        data["description"] = blank_to_none(data.get("description"))
        return data

    def validate_update(self, entity: Group, patch: Dict[str, Any]) -> Dict[str, Any]:
        if "name" in patch:
            patch["name"] = blank_to_none(patch["name"])
            if patch["name"] is None:
                raise ValidationError("Group name is required")
        if "description" in patch:
            patch["description"] = blank_to_none(patch["description"])
        return patch

    def members_of(self, group_id: UUID) -> List[Adherent]:
        self.get_or_404(group_id)
        with self._store("list members of"):
            return self.db.query(Adherent).join(GroupMembership).filter(
                GroupMembership.group_id == group_id
            ).order_by(Adherent.surname, Adherent.given_name).all()

    def add_member(self, group_id: UUID, member_id: UUID, joined_on: Optional[date] = None) -> GroupMembership:
        group = self.get_or_404(group_id)
        if self.db.get(Adherent, member_id) is None:
            raise NotFoundError("Adherent not found")
        if self.db.get(GroupMembership, (member_id, group_id)) is not None:
            raise ValidationError("This adherent is already a member of the group")
        limit = max_users_per_group(self.db)
        if self.member_count(group_id) >= limit:
            raise ValidationError(f"Group '{group.name}' is full ({limit} members maximum)")

        link = GroupMembership(member_id=member_id, group_id=group_id, joined_on=joined_on or date.today())
        with self._store("add member to"):
            self.db.add(link)
            self.db.commit()
            self.db.refresh(link)
        logger.info("Adherent %s added to group %s", member_id, group_id)
        return link

    def remove_member(self, group_id: UUID, member_id: UUID) -> None:
        link = self.db.get(GroupMembership, (member_id, group_id))
        if link is None:
            raise NotFoundError("Group membership not found")
        with self._store("remove member from"):
            self.db.delete(link)
            self.db.commit()
        logger.info("Adherent %s removed from group %s", member_id, group_id)

    def delete(self, entity_id: UUID) -> None:
        """Delete the group's links, then the group. Members are kept."""
        group = self.get_or_404(entity_id)
        with self._store("delete"):
            self.db.query(GroupMembership).filter(
                GroupMembership.group_id == entity_id
            ).delete(synchronize_session=False)
            self.db.delete(group)
            self.db.commit()
        logger.info("Group %s deleted", entity_id)
