from pydantic import BaseModel
from typing import Optional
from datetime import date, datetime
from uuid import UUID


class GroupCreate(BaseModel):
    name: str
    description: Optional[str] = None


class GroupUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None


class GroupResponse(BaseModel):
    id: UUID
    name: str
    description: Optional[str] = None
    member_count: int = 0
    created_at: datetime

    class Config:
        from_attributes = True


class GroupMemberAdd(BaseModel):
    member_id: UUID
    joined_on: Optional[date] = None


class GroupMembershipResponse(BaseModel):
    member_id: UUID
    group_id: UUID
    joined_on: date

    class Config:
        from_attributes = True
