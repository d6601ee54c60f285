import logging
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from services.class_management.models.classes import SchoolClass
from services.scheduling.notifications import NotificationReport, get_mailer, notify_teachers
from services.scheduling.rotation import list_rotation, replace_rotation, rotation_teacher_ids
from services.scheduling.schemas.rotations import (
    RotationRequest,
    RotationResponse,
    RotationOut,
    NotifyTeachersRequest,
    NotificationReportOut,
)
from shared.auth import get_current_user, require_admin
from shared.db import get_db
from shared.errors import SchedulingError, to_http_exception

router = APIRouter(prefix="/schedules", tags=["Teacher Rotation"])
logger = logging.getLogger(__name__)


# --- SAVE TEACHER ROTATION ---
@router.post("/rotation", response_model=RotationResponse)
async def save_rotation(
    payload: RotationRequest,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user),
    mailer=Depends(get_mailer)
):
    """
    Replace the stored rotation of a class with the submitted one.
    With a schedule_link every teacher in the new rotation is mailed once
    the rotation is committed; mail failures never undo the save.
    """
    require_admin(current_user)

    try:
        rows = await replace_rotation(
            db,
            payload.class_id,
            payload.turns,
            payload.am_rotation,
            payload.pm_rotation,
        )
    except SchedulingError as e:
        raise to_http_exception(e)

    response = {"success": True, "assignments": len(rows)}

    if payload.schedule_link:
        teacher_ids = rotation_teacher_ids(payload.am_rotation, payload.pm_rotation)
        try:
            school_class = await db.get(SchoolClass, payload.class_id)
            response["notifications"] = await notify_teachers(
                db,
                teacher_ids,
                school_class.name,
                payload.schedule_link,
                mailer,
            )
        except Exception as e:
            logger.error(
                "Rotation of class %s saved, notifying teachers failed", payload.class_id, exc_info=True
            )
            response["notifications"] = NotificationReport(total_teachers=len(teacher_ids), error=str(e))

    return response


# --- GET TEACHER ROTATION OF A CLASS ---
@router.get("/rotation/{class_id}", response_model=RotationOut)
async def get_rotation(
    class_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    try:
        return await list_rotation(db, class_id)
    except SchedulingError as e:
        raise to_http_exception(e)


# --- NOTIFY TEACHERS ABOUT A SCHEDULE ---
@router.post("/notify-teachers", response_model=NotificationReportOut)
async def notify_schedule_teachers(
    payload: NotifyTeachersRequest,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user),
    mailer=Depends(get_mailer)
):
    require_admin(current_user)

    report = await notify_teachers(
        db,
        payload.teacher_ids,
        payload.class_name,
        payload.schedule_link,
        mailer,
    )
    logger.info(
        "Class %s: notified %d of %d teachers",
        payload.class_id, report.emails_sent, report.total_teachers,
    )
    return report
