from pydantic import BaseModel, EmailStr
from typing import Optional
from datetime import date, datetime
from uuid import UUID
from parish.models.member import MaritalStatus, Sex, Zone


class MinistryCreate(BaseModel):
    name: str
    description: Optional[str] = None


class MinistryUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None


class MinistryResponse(BaseModel):
    id: UUID
    name: str
    description: Optional[str] = None

    class Config:
        from_attributes = True


class AdherentBase(BaseModel):
    birth_date: Optional[date] = None
    address: Optional[str] = None
    neighborhood: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[EmailStr] = None
    church_function: Optional[str] = None
    registration_date: Optional[date] = None
    marital_status: Optional[MaritalStatus] = None
    communicant: Optional[bool] = None
    zone: Optional[Zone] = None
    ministry_id: Optional[UUID] = None


class AdherentCreate(AdherentBase):
    surname: str
    given_name: str
    sex: Sex


class AdherentUpdate(AdherentBase):
    surname: Optional[str] = None
    given_name: Optional[str] = None
    sex: Optional[Sex] = None


class AdherentResponse(BaseModel):
    id: UUID
    surname: str
    given_name: str
    sex: Sex
    birth_date: Optional[date] = None
    address: Optional[str] = None
    neighborhood: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    church_function: Optional[str] = None
    registration_date: date
    marital_status: Optional[MaritalStatus] = None
    communicant: bool
    zone: Optional[Zone] = None
    ministry_id: Optional[UUID] = None
    created_at: datetime

    class Config:
        from_attributes = True
