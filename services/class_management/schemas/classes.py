# services/class_management/schemas/classes.py
from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime

from services.class_management.schemas.students import StudentOut

class SchoolClassCreate(BaseModel):
    name: str = Field(..., min_length=1)
    description: Optional[str] = None

class SchoolClassUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    class_head_id: Optional[int] = None
    class_lead_id: Optional[int] = None

class SchoolClassOut(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    class_head_id: Optional[int] = None
    class_lead_id: Optional[int] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class SchoolClassDetailOut(SchoolClassOut):
    students: List[StudentOut] = []

class CombineClassesRequest(BaseModel):
    class1_id: int
    class2_id: int
    combined_class_name: str

class OriginalClassSummary(BaseModel):
    name: str
    student_count: int

class CombineClassesResponse(BaseModel):
    message: str
    combined_class: SchoolClassOut
    student_count: int
    original_classes: dict[str, OriginalClassSummary]
