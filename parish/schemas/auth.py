from pydantic import BaseModel, EmailStr
from typing import Dict, Optional
from uuid import UUID
from parish.models.role import AppRole


class UserRegister(BaseModel):
    email: EmailStr
    password: str
    username: str


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class UserResponse(BaseModel):
    id: UUID
    email: str
    username: str
    adherent_id: Optional[UUID] = None

    class Config:
        from_attributes = True


class SessionResponse(BaseModel):
    user: UserResponse
    role: AppRole
    permissions: Dict[str, bool]
