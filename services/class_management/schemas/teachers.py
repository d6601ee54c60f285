# services/class_management/schemas/teachers.py
from pydantic import BaseModel, EmailStr, Field
from typing import Optional

class TeacherCreate(BaseModel):
    first_name: str
    last_name: str
    username: str = Field(..., min_length=1)
    email: Optional[EmailStr] = None

class TeacherOut(BaseModel):
    id: int
    first_name: str
    last_name: str
    username: str
    email: Optional[str] = None

    class Config:
        from_attributes = True
