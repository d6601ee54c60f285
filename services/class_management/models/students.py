# services/class_management/models/students.py
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship
from shared.db import Base, utcnow

class Student(Base):
    __tablename__ = "students"

    id = Column(Integer, primary_key=True, autoincrement=True)
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False)
    username = Column(String, unique=True, nullable=False)
    class_id = Column(Integer, ForeignKey("classes.id"), nullable=True)
    group_id = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    school_class = relationship("SchoolClass", back_populates="students")

    __table_args__ = (
        Index("ix_students_class_group", "class_id", "group_id"),
    )
