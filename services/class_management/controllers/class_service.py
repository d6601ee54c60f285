import logging
from typing import List
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy import delete, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import selectinload

from services.class_management.merge import combine_classes
from services.class_management.models.classes import SchoolClass
from services.class_management.models.students import Student
from services.class_management.models.teachers import Teacher
from services.class_management.schemas.classes import (
    SchoolClassCreate,
    SchoolClassUpdate,
    SchoolClassOut,
    SchoolClassDetailOut,
    CombineClassesRequest,
    CombineClassesResponse,
)
from services.scheduling.models.rotations import TeacherRotation
from shared.auth import get_current_user, require_admin
from shared.db import get_db
from shared.errors import SchedulingError, to_http_exception

router = APIRouter(prefix="/classes", tags=["Classes"])
logger = logging.getLogger(__name__)


# --- GET ALL CLASSES ---
@router.get("", response_model=List[SchoolClassOut])
async def get_classes(
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    result = await db.execute(select(SchoolClass).order_by(SchoolClass.name))
    return result.scalars().all()


# --- ADD CLASS ---
@router.post("", response_model=SchoolClassOut, status_code=status.HTTP_201_CREATED)
async def add_class(
    payload: SchoolClassCreate,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    require_admin(current_user)

    existing_class = await db.execute(select(SchoolClass).where(SchoolClass.name == payload.name))
    if existing_class.scalars().first():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="A class with this name already exists"
        )

    new_class = SchoolClass(name=payload.name, description=payload.description)
    db.add(new_class)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="A class with this name already exists"
        )

    await db.refresh(new_class)
    logger.info("Created class %s (id=%s)", new_class.name, new_class.id)
    return new_class


# --- GET CLASS BY NAME ---
#  /classes/by-name?name=10A
@router.get("/by-name", response_model=SchoolClassOut)
async def get_class_by_name(
    name: str = Query(..., description="Class name like '10A'"),
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    result = await db.execute(select(SchoolClass).where(SchoolClass.name == name))
    school_class = result.scalars().first()
    if not school_class:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Class not found")
    return school_class


# --- COMBINE TWO CLASSES ---
@router.post("/combine", response_model=CombineClassesResponse)
async def combine(
    payload: CombineClassesRequest,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    """
    Create a new class from the rosters of two existing classes.
    Usernames are made unique and prefixed with the student's original class name.
    """
    require_admin(current_user)

    try:
        result = await combine_classes(
            db, payload.class1_id, payload.class2_id, payload.combined_class_name
        )
    except SchedulingError as e:
        raise to_http_exception(e)

    return {
        "message": "Classes combined successfully",
        "combined_class": result.combined_class,
        "student_count": result.student_count,
        "original_classes": result.original_classes,
    }


# --- GET CLASS WITH ROSTER ---
@router.get("/{class_id}", response_model=SchoolClassDetailOut)
async def get_class(
    class_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    result = await db.execute(
        select(SchoolClass)
        .options(selectinload(SchoolClass.students))
        .where(SchoolClass.id == class_id)
    )
    school_class = result.scalars().first()
    if not school_class:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Class not found")
    return school_class


# --- UPDATE CLASS ---
@router.put("/{class_id}", response_model=SchoolClassOut)
async def update_class(
    class_id: int,
    payload: SchoolClassUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    require_admin(current_user)

    school_class = await db.get(SchoolClass, class_id)
    if not school_class:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Class not found")

    changes = payload.model_dump(exclude_unset=True)
    if "name" in changes and changes["name"] is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Class name cannot be empty"
        )

    # Head and lead must be existing teachers
    for field in ("class_head_id", "class_lead_id"):
        teacher_id = changes.get(field)
        if teacher_id is not None and not await db.get(Teacher, teacher_id):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Teacher with ID {teacher_id} not found"
            )

    if changes.get("name") and changes["name"] != school_class.name:
        clash = await db.execute(select(SchoolClass).where(SchoolClass.name == changes["name"]))
        if clash.scalars().first():
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="A class with this name already exists"
            )

    for field, value in changes.items():
        setattr(school_class, field, value)

    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="A class with this name already exists"
        )

    await db.refresh(school_class)
    return school_class


# --- DELETE CLASS ---
@router.delete("/{class_id}")
async def delete_class(
    class_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    """
    Delete a class. Its students stay in the store without a class,
    its teacher rotation is removed.
    """
    require_admin(current_user)

    school_class = await db.get(SchoolClass, class_id)
    if not school_class:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Class not found")

    try:
        await db.execute(
            update(Student).where(Student.class_id == class_id).values(class_id=None, group_id=None)
        )
        await db.execute(delete(TeacherRotation).where(TeacherRotation.class_id == class_id))
        await db.execute(delete(SchoolClass).where(SchoolClass.id == class_id))
        await db.commit()
    except Exception as e:
        await db.rollback()
        logger.error("Deleting class %s failed", class_id, exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error deleting class: {str(e)}")

    logger.info("Deleted class %s", class_id)
    return {"message": "Class deleted"}
