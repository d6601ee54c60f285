# services/class_management/schemas/users.py
from pydantic import BaseModel, EmailStr
from datetime import datetime
from typing import Optional

from services.class_management.models.users import SchoolUserRole

class SchoolUserCreate(BaseModel):
    name: str
    email: EmailStr
    password: str
    role: SchoolUserRole = SchoolUserRole.TEACHER

class SchoolUserOut(BaseModel):
    id: int
    name: str
    email: EmailStr
    role: SchoolUserRole
    is_active: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class SchoolUserLoginRequest(BaseModel):
    email: EmailStr
    password: str

class SchoolUserLoginResponse(BaseModel):
    name: str
    role: SchoolUserRole
    access_token: str
    token_type: str = "bearer"
