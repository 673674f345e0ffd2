from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from parish.core.dependencies import require_manage_adherents, require_view_adherents
from parish.db.base import get_db
from parish.models.user import User
from parish.schemas.group import (
    GroupCreate, GroupMemberAdd, GroupMembershipResponse, GroupResponse, GroupUpdate,
)
from parish.schemas.member import AdherentResponse
from parish.services.group import GroupRepository

router = APIRouter(prefix="/api/groups", tags=["groups"])


def _group_response(repo: GroupRepository, group) -> GroupResponse:
    return GroupResponse(
        id=group.id,
        name=group.name,
        description=group.description,
        member_count=repo.member_count(group.id),
        created_at=group.created_at,
    )


@router.get("", response_model=List[GroupResponse])
def list_groups(
    search: Optional[str] = None,
    current_user: User = Depends(require_view_adherents),
    db: Session = Depends(get_db)
):
    """Groups ordered by name, with their member counts."""
    return [
        GroupResponse(
            id=s.group.id,
            name=s.group.name,
            description=s.group.description,
            member_count=s.member_count,
            created_at=s.group.created_at,
        )
        for s in GroupRepository(db).list_with_counts(search=search)
    ]


@router.get("/{group_id}", response_model=GroupResponse)
def get_group(
    group_id: UUID,
    current_user: User = Depends(require_view_adherents),
    db: Session = Depends(get_db)
):
    repo = GroupRepository(db)
    return _group_response(repo, repo.get_or_404(group_id))


@router.post("", response_model=GroupResponse, status_code=status.HTTP_201_CREATED)
def create_group(
    payload: GroupCreate,
    current_user: User = Depends(require_manage_adherents),
    db: Session = Depends(get_db)
):
    repo = GroupRepository(db)
    return _group_response(repo, repo.create(payload.model_dump()))


@router.put("/{group_id}", response_model=GroupResponse)
def update_group(
    group_id: UUID,
    payload: GroupUpdate,
    current_user: User = Depends(require_manage_adherents),
    db: Session = Depends(get_db)
):
    repo = GroupRepository(db)
    return _group_response(repo, repo.update(group_id, payload.model_dump(exclude_unset=True)))


@router.delete("/{group_id}")
def delete_group(
    group_id: UUID,
    current_user: User = Depends(require_manage_adherents),
    db: Session = Depends(get_db)
):
    GroupRepository(db).delete(group_id)
    return {"message": "Group deleted"}


@router.get("/{group_id}/members", response_model=List[AdherentResponse])
def group_members(
    group_id: UUID,
    current_user: User = Depends(require_view_adherents),
    db: Session = Depends(get_db)
):
    return GroupRepository(db).members_of(group_id)


@router.post("/{group_id}/members", response_model=GroupMembershipResponse, status_code=status.HTTP_201_CREATED)
def add_group_member(
    group_id: UUID,
    payload: GroupMemberAdd,
    current_user: User = Depends(require_manage_adherents),
    db: Session = Depends(get_db)
):
    return GroupRepository(db).add_member(group_id, payload.member_id, payload.joined_on)


@router.delete("/{group_id}/members/{member_id}")
def remove_group_member(
    group_id: UUID,
    member_id: UUID,
    current_user: User = Depends(require_manage_adherents),
    db: Session = Depends(get_db)
):
    GroupRepository(db).remove_member(group_id, member_id)
    return {"message": "Member removed from group"}
