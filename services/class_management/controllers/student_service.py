import logging
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.exc import IntegrityError

from services.class_management.models.classes import SchoolClass
from services.class_management.models.students import Student
from services.class_management.schemas.students import StudentCreate, StudentUpdate, StudentOut
from shared.auth import get_current_user, require_admin
from shared.db import get_db

router = APIRouter(prefix="/students", tags=["Students"])
logger = logging.getLogger(__name__)


async def _ensure_class_exists(db: AsyncSession, class_id: Optional[int]):
    if class_id is not None and not await db.get(SchoolClass, class_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Class with ID {class_id} not found"
        )


async def _ensure_username_free(db: AsyncSession, username: str, student_id: Optional[int] = None):
    query = select(Student).where(Student.username == username)
    if student_id is not None:
        query = query.where(Student.id != student_id)
    existing = await db.execute(query)
    if existing.scalars().first():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Username already taken"
        )


# --- GET STUDENTS (OPTIONALLY BY CLASS) ---
@router.get("", response_model=List[StudentOut])
async def get_students(
    class_id: Optional[int] = Query(None),
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    query = select(Student)
    if class_id is not None:
        query = query.where(Student.class_id == class_id)
    result = await db.execute(query.order_by(Student.last_name, Student.first_name))
    return result.scalars().all()


# --- ADD STUDENT ---
@router.post("", response_model=StudentOut, status_code=status.HTTP_201_CREATED)
async def add_student(
    payload: StudentCreate,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    require_admin(current_user)
    await _ensure_class_exists(db, payload.class_id)
    await _ensure_username_free(db, payload.username)

    student = Student(**payload.model_dump())
    db.add(student)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Username already taken"
        )

    await db.refresh(student)
    return student


# --- UPDATE STUDENT ---
@router.put("/{student_id}", response_model=StudentOut)
async def update_student(
    student_id: int,
    payload: StudentUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    require_admin(current_user)

    student = await db.get(Student, student_id)
    if not student:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Student not found")

    changes = payload.model_dump(exclude_unset=True)
    if "class_id" in changes:
        await _ensure_class_exists(db, changes["class_id"])
    if changes.get("username"):
        await _ensure_username_free(db, changes["username"], student_id)

    for field, value in changes.items():
        setattr(student, field, value)

    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Username already taken"
        )

    await db.refresh(student)
    return student


# --- DELETE STUDENT ---
@router.delete("/{student_id}")
async def delete_student(
    student_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    require_admin(current_user)

    student = await db.get(Student, student_id)
    if not student:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Student not found")

    await db.delete(student)
    await db.commit()
    logger.info("Deleted student %s", student_id)
    return {"message": "Student deleted"}
