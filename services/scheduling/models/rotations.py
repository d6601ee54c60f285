# services/scheduling/models/rotations.py
from sqlalchemy import Column, Integer, String, Enum, DateTime, ForeignKey, UniqueConstraint, Index
from shared.db import Base, utcnow
import enum

class Period(str, enum.Enum):
    AM = "AM"
    PM = "PM"

class TeacherRotation(Base):
    """One teacher for one group of a class, in one turn and one half-day.

    Rows are owned by their class: replaced as a whole set, never updated in place.
    """
    __tablename__ = "teacher_rotations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    class_id = Column(Integer, ForeignKey("classes.id", ondelete="CASCADE"), nullable=False)
    group_id = Column(Integer, nullable=False)
    teacher_id = Column(Integer, ForeignKey("teachers.id", ondelete="CASCADE"), nullable=False)
    turn_id = Column(String, nullable=False)   # E.g., "TURNUS 1"
    period = Column(Enum(Period), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    __table_args__ = (
        UniqueConstraint("class_id", "group_id", "turn_id", "period", name="uq_rotation_slot"),
        Index("ix_teacher_rotations_class", "class_id"),
    )
