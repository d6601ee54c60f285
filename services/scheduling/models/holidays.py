# services/scheduling/models/holidays.py
from sqlalchemy import Column, Integer, String, Date, DateTime, Index
from shared.db import Base, utcnow

class SchoolHoliday(Base):
    __tablename__ = "school_holidays"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, unique=True, nullable=False)   # E.g., "Herbstferien"
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)              # inclusive
    created_at = Column(DateTime(timezone=True), default=utcnow)

    __table_args__ = (
        Index("ix_school_holidays_range", "start_date", "end_date"),
    )
