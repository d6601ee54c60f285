# services/class_management/models/users.py
from sqlalchemy import Column, Integer, String, Enum, DateTime, Boolean, Index
from shared.db import Base, utcnow
import enum

class SchoolUserRole(str, enum.Enum):
    ADMIN = "admin"
    TEACHER = "teacher"

class SchoolUser(Base):
    __tablename__ = "school_users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    email = Column(String(100), unique=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    role = Column(Enum(SchoolUserRole), nullable=False)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    __table_args__ = (
        Index('idx_user_role', 'role'),
    )
