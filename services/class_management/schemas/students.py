# services/class_management/schemas/students.py
from pydantic import BaseModel, Field
from typing import Optional

class StudentCreate(BaseModel):
    first_name: str
    last_name: str
    username: str = Field(..., min_length=1)
    class_id: Optional[int] = None
    group_id: Optional[int] = None

class StudentUpdate(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    username: Optional[str] = Field(None, min_length=1)
    class_id: Optional[int] = None
    group_id: Optional[int] = None

class StudentOut(BaseModel):
    id: int
    first_name: str
    last_name: str
    username: str
    class_id: Optional[int] = None
    group_id: Optional[int] = None

    class Config:
        from_attributes = True
