import logging
from typing import List
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.exc import IntegrityError

from services.scheduling.models.holidays import SchoolHoliday
from services.scheduling.schemas.holidays import HolidayCreate, HolidayOut
from shared.auth import get_current_user, require_admin
from shared.db import get_db

router = APIRouter(prefix="/settings/holidays", tags=["Holidays"])
logger = logging.getLogger(__name__)


async def load_holidays(db: AsyncSession) -> List[SchoolHoliday]:
    result = await db.execute(select(SchoolHoliday).order_by(SchoolHoliday.start_date))
    return list(result.scalars().all())


# --- GET ALL HOLIDAYS ---
@router.get("", response_model=List[HolidayOut])
async def get_holidays(
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    return await load_holidays(db)


# --- ADD HOLIDAY ---
@router.post("", response_model=HolidayOut, status_code=status.HTTP_201_CREATED)
async def add_holiday(
    payload: HolidayCreate,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    require_admin(current_user)

    if payload.end_date < payload.start_date:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="End date must be after start date"
        )

    existing = await db.execute(select(SchoolHoliday).where(SchoolHoliday.name == payload.name))
    if existing.scalars().first():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="A holiday with this name already exists"
        )

    holiday = SchoolHoliday(
        name=payload.name,
        start_date=payload.start_date,
        end_date=payload.end_date,
    )
    db.add(holiday)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="A holiday with this name already exists"
        )

    await db.refresh(holiday)
    logger.info("Created holiday %s (%s - %s)", holiday.name, holiday.start_date, holiday.end_date)
    return holiday


# --- DELETE HOLIDAY ---
@router.delete("/{holiday_id}")
async def delete_holiday(
    holiday_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    require_admin(current_user)

    holiday = await db.get(SchoolHoliday, holiday_id)
    if not holiday:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Holiday not found")

    await db.delete(holiday)
    await db.commit()
    return {"message": "Holiday deleted"}
