from datetime import date
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from parish.core.audit import write_audit_log
from parish.core.dependencies import get_current_role, require_manage_adherents, require_view_adherents
from parish.db.base import get_db
from parish.models.member import Sex, Zone
from parish.models.role import AppRole
from parish.models.user import User
from parish.schemas.group import GroupResponse
from parish.schemas.member import (
    AdherentCreate, AdherentResponse, AdherentUpdate,
    MinistryCreate, MinistryResponse, MinistryUpdate,
)
from parish.services.member import MemberRepository, MinistryRepository

router = APIRouter(prefix="/api/adherents", tags=["adherents"])
ministries_router = APIRouter(prefix="/api/ministries", tags=["ministries"])


@router.get("", response_model=List[AdherentResponse])
def list_adherents(
    search: Optional[str] = None,
    sex: Optional[Sex] = None,
    neighborhood: Optional[str] = None,
    zone: Optional[Zone] = None,
    communicant: Optional[bool] = None,
    ministry_id: Optional[UUID] = None,
    registered_since: Optional[date] = None,
    current_user: User = Depends(require_view_adherents),
    db: Session = Depends(get_db)
):
    return MemberRepository(db).list(
        search=search, sex=sex, neighborhood=neighborhood, zone=zone,
        communicant=communicant, ministry_id=ministry_id, registered_since=registered_since,
    )


@router.get("/count")
def count_adherents(
    communicant: Optional[bool] = None,
    current_user: User = Depends(require_view_adherents),
    db: Session = Depends(get_db)
):
    return {"count": MemberRepository(db).count(communicant=communicant)}


@router.get("/{adherent_id}", response_model=AdherentResponse)
def get_adherent(
    adherent_id: UUID,
    current_user: User = Depends(require_view_adherents),
    db: Session = Depends(get_db)
):
    return MemberRepository(db).get_or_404(adherent_id)


@router.post("", response_model=AdherentResponse, status_code=status.HTTP_201_CREATED)
def create_adherent(
    payload: AdherentCreate,
    current_user: User = Depends(require_manage_adherents),
    db: Session = Depends(get_db)
):
    return MemberRepository(db).create(payload.model_dump())


@router.put("/{adherent_id}", response_model=AdherentResponse)
def update_adherent(
    adherent_id: UUID,
    payload: AdherentUpdate,
    current_user: User = Depends(require_manage_adherents),
    db: Session = Depends(get_db)
):
    return MemberRepository(db).update(adherent_id, payload.model_dump(exclude_unset=True))


@router.delete("/{adherent_id}")
def delete_adherent(
    adherent_id: UUID,
    current_user: User = Depends(require_manage_adherents),
    role: AppRole = Depends(get_current_role),
    db: Session = Depends(get_db)
):
    repo = MemberRepository(db)
    adherent = repo.get_or_404(adherent_id)
    name = adherent.full_name
    repo.delete(adherent_id)
    write_audit_log(user_name=current_user.username, user_role=role.value, action="Delete adherent", details=f"{name} ({adherent_id})")
    return {"message": "Adherent deleted"}


@router.get("/{adherent_id}/groups", response_model=List[GroupResponse])
def adherent_groups(
    adherent_id: UUID,
    current_user: User = Depends(require_view_adherents),
    db: Session = Depends(get_db)
):
    groups = MemberRepository(db).groups_of(adherent_id)
    return [GroupResponse(id=g.id, name=g.name, description=g.description, created_at=g.created_at) for g in groups]


@ministries_router.get("", response_model=List[MinistryResponse])
def list_ministries(
    current_user: User = Depends(require_view_adherents),
    db: Session = Depends(get_db)
):
    return MinistryRepository(db).list()


@ministries_router.post("", response_model=MinistryResponse, status_code=status.HTTP_201_CREATED)
def create_ministry(
    payload: MinistryCreate,
    current_user: User = Depends(require_manage_adherents),
    db: Session = Depends(get_db)
):
    return MinistryRepository(db).create(payload.model_dump())


@ministries_router.put("/{ministry_id}", response_model=MinistryResponse)
def update_ministry(
    ministry_id: UUID,
    payload: MinistryUpdate,
    current_user: User = Depends(require_manage_adherents),
    db: Session = Depends(get_db)
):
    return MinistryRepository(db).update(ministry_id, payload.model_dump(exclude_unset=True))


@ministries_router.delete("/{ministry_id}")
def delete_ministry(
    ministry_id: UUID,
    current_user: User = Depends(require_manage_adherents),
    db: Session = Depends(get_db)
):
    MinistryRepository(db).delete(ministry_id)
    return {"message": "Ministry deleted"}
