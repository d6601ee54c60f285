import logging
from typing import List
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy import delete, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.exc import IntegrityError

from services.class_management.models.classes import SchoolClass
from services.class_management.models.teachers import Teacher
from services.class_management.schemas.teachers import TeacherCreate, TeacherOut
from services.scheduling.models.rotations import TeacherRotation
from shared.auth import get_current_user, require_admin
from shared.db import get_db

router = APIRouter(prefix="/teachers", tags=["Teachers"])
logger = logging.getLogger(__name__)


# --- GET ALL TEACHERS ---
@router.get("", response_model=List[TeacherOut])
async def get_teachers(
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    result = await db.execute(select(Teacher).order_by(Teacher.last_name, Teacher.first_name))
    return result.scalars().all()


# --- GET TEACHER BY USERNAME ---
@router.get("/by-username", response_model=TeacherOut)
async def get_teacher_by_username(
    username: str = Query(...),
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    result = await db.execute(select(Teacher).where(Teacher.username == username))
    teacher = result.scalars().first()
    if not teacher:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Teacher not found")
    return teacher


# --- ADD TEACHER ---
@router.post("", response_model=TeacherOut, status_code=status.HTTP_201_CREATED)
async def add_teacher(
    payload: TeacherCreate,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    require_admin(current_user)

    existing = await db.execute(select(Teacher).where(Teacher.username == payload.username))
    if existing.scalars().first():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Teacher with this username already exists"
        )

    teacher = Teacher(**payload.model_dump())
    db.add(teacher)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Teacher with this username already exists"
        )

    await db.refresh(teacher)
    return teacher


# --- DELETE TEACHER ---
@router.delete("/{teacher_id}")
async def delete_teacher(
    teacher_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    """
    Delete a teacher together with their rotation slots.
    Classes they head or lead keep existing without that reference.
    """
    require_admin(current_user)

    teacher = await db.get(Teacher, teacher_id)
    if not teacher:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Teacher not found")

    try:
        await db.execute(delete(TeacherRotation).where(TeacherRotation.teacher_id == teacher_id))
        await db.execute(
            update(SchoolClass).where(SchoolClass.class_head_id == teacher_id).values(class_head_id=None)
        )
        await db.execute(
            update(SchoolClass).where(SchoolClass.class_lead_id == teacher_id).values(class_lead_id=None)
        )
        await db.execute(delete(Teacher).where(Teacher.id == teacher_id))
        await db.commit()
    except Exception as e:
        await db.rollback()
        logger.error("Deleting teacher %s failed", teacher_id, exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error deleting teacher: {str(e)}")

    return {"message": "Teacher deleted"}
