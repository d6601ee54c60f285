# services/scheduling/schemas/holidays.py
from pydantic import BaseModel, Field, model_validator
from datetime import date
from typing import Optional

class HolidayBase(BaseModel):
    name: str = ""
    start_date: date
    end_date: date

class HolidayIn(HolidayBase):
    @model_validator(mode="after")
    def check_order(self):
        if self.end_date < self.start_date:
            raise ValueError("End date must be after start date")
        return self

class HolidayCreate(HolidayBase):
    name: str = Field(..., min_length=1)

class HolidayOut(BaseModel):
    id: Optional[int] = None
    name: str
    start_date: date
    end_date: date

    class Config:
        from_attributes = True
