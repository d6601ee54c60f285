# services/scheduling/schemas/rotations.py
from pydantic import BaseModel
from typing import List, Optional

class GroupRotation(BaseModel):
    group_id: int
    # aligned with RotationRequest.turns, None = no teacher in that turn
    turns: List[Optional[int]]

class RotationRequest(BaseModel):
    class_id: int
    turns: List[str]
    am_rotation: List[GroupRotation]
    pm_rotation: List[GroupRotation]
    schedule_link: Optional[str] = None

class NotificationFailureOut(BaseModel):
    teacher_id: int
    email: str
    error: str

    class Config:
        from_attributes = True

class NotificationReportOut(BaseModel):
    emails_sent: int
    total_teachers: int
    skipped: int
    failures: List[NotificationFailureOut]
    error: Optional[str] = None

    class Config:
        from_attributes = True

class RotationResponse(BaseModel):
    success: bool
    assignments: int
    notifications: Optional[NotificationReportOut] = None

class RotationOut(BaseModel):
    class_id: int
    turns: List[str]
    am_rotation: List[GroupRotation]
    pm_rotation: List[GroupRotation]

class NotifyTeachersRequest(BaseModel):
    class_id: int
    class_name: str
    teacher_ids: List[int]
    schedule_link: str
