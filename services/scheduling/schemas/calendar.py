# services/scheduling/schemas/calendar.py
from pydantic import BaseModel, Field, model_validator
import datetime
from datetime import date
from typing import Dict, List, Optional

from services.scheduling.schemas.holidays import HolidayIn, HolidayOut

class WeeksRequest(BaseModel):
    start_date: date
    end_date: date
    weekday: int = Field(..., ge=0, le=6, description="0 = Sunday ... 6 = Saturday")
    # None loads the stored school holidays
    holidays: Optional[List[HolidayIn]] = None

    @model_validator(mode="after")
    def check_range(self):
        if self.start_date > self.end_date:
            raise ValueError("start_date must not be after end_date")
        return self

class TurnPlanRequest(WeeksRequest):
    number_of_turns: int = Field(4, ge=1)
    custom_lengths: Dict[int, int] = Field(default_factory=dict, description="1-based turn index -> weeks")
    skip_holidays: bool = True

class WeekOut(BaseModel):
    date: datetime.date
    calendar_week: int
    label: str
    is_holiday: bool

    class Config:
        from_attributes = True

class TurnOut(BaseModel):
    name: str
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    weeks: List[WeekOut]
    holidays: List[HolidayOut]

    class Config:
        from_attributes = True

class TurnPlanOut(BaseModel):
    turns: List[TurnOut]
    available_weeks: int
    assigned_weeks: int
    warning: Optional[str] = None

    class Config:
        from_attributes = True
