# services/scheduling/rotation.py
"""Teacher rotation of a class: which teacher takes which group, per turn and half-day.

``replace_rotation`` is a set operation. It deletes every stored row of the
class and writes the full desired state in the same transaction; it never
patches individual rows. Calling it twice with the same arguments leaves the
same rows behind.
"""
import logging
import re
from typing import Dict, Iterable, List, Optional, Sequence

from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from services.class_management.models.classes import SchoolClass
from services.class_management.models.teachers import Teacher
from services.scheduling.models.rotations import Period, TeacherRotation
from shared.errors import NotFoundError, TransactionError, ValidationError

logger = logging.getLogger(__name__)


def _entry(group_rotation, key):
    # Accept both pydantic models and plain dicts
    if isinstance(group_rotation, dict):
        return group_rotation[key]
    return getattr(group_rotation, key)


def rotation_teacher_ids(*rotations: Iterable) -> List[int]:
    """Distinct teacher ids referenced by the given rotations, in first-seen order."""
    seen: Dict[int, None] = {}
    for rotation in rotations:
        for group_rotation in rotation:
            for teacher_id in _entry(group_rotation, "turns"):
                if teacher_id is not None:
                    seen.setdefault(teacher_id, None)
    return list(seen)


def _validate_shape(turns: Sequence[str], rotations: Dict[Period, Sequence]) -> None:
    if not turns:
        raise ValidationError("At least one turn is required", code="missing_turns")

    duplicates = sorted({t for t in turns if list(turns).count(t) > 1})
    if duplicates:
        raise ValidationError(
            "Turn ids must be unique",
            code="duplicate_turns",
            details={"turns": duplicates},
        )

    for period, rotation in rotations.items():
        seen_groups = set()
        for group_rotation in rotation:
            group_id = _entry(group_rotation, "group_id")
            teacher_ids = _entry(group_rotation, "turns")
            if group_id in seen_groups:
                raise ValidationError(
                    f"Group {group_id} appears more than once in the {period.value} rotation",
                    code="duplicate_group",
                    details={"group_id": group_id, "period": period.value},
                )
            seen_groups.add(group_id)
            if len(teacher_ids) != len(turns):
                raise ValidationError(
                    f"Rotation for group {group_id} ({period.value}) has {len(teacher_ids)} "
                    f"entries but there are {len(turns)} turns",
                    code="rotation_length_mismatch",
                    details={
                        "group_id": group_id,
                        "period": period.value,
                        "expected": len(turns),
                        "actual": len(teacher_ids),
                    },
                )


async def _check_teachers_exist(db: AsyncSession, teacher_ids: List[int]) -> None:
    if not teacher_ids:
        return
    result = await db.execute(select(Teacher.id).where(Teacher.id.in_(teacher_ids)))
    found = set(result.scalars().all())
    missing = [teacher_id for teacher_id in teacher_ids if teacher_id not in found]
    if missing:
        raise NotFoundError(
            "Teacher not found",
            code="teacher_not_found",
            details={"teacher_ids": missing},
        )


async def replace_rotation(
    db: AsyncSession,
    class_id: int,
    turns: Sequence[str],
    am_rotation: Sequence,
    pm_rotation: Sequence,
) -> List[TeacherRotation]:
    """Replace the complete rotation of ``class_id``.

    ``am_rotation``/``pm_rotation`` hold one entry per group with a
    ``turns`` list aligned by position with ``turns``; ``None`` means no
    teacher for that turn and writes no row.
    """
    school_class = await db.get(SchoolClass, class_id)
    if not school_class:
        raise NotFoundError(
            f"Class with ID {class_id} not found",
            code="class_not_found",
            details={"class_id": class_id},
        )

    rotations = {Period.AM: am_rotation, Period.PM: pm_rotation}
    _validate_shape(turns, rotations)
    await _check_teachers_exist(db, rotation_teacher_ids(am_rotation, pm_rotation))

    rows = []
    for period, rotation in rotations.items():
        for group_rotation in rotation:
            group_id = _entry(group_rotation, "group_id")
            for index, teacher_id in enumerate(_entry(group_rotation, "turns")):
                if teacher_id is None:
                    continue
                rows.append(TeacherRotation(
                    class_id=class_id,
                    group_id=group_id,
                    teacher_id=teacher_id,
                    turn_id=turns[index],
                    period=period,
                ))

    try:
        await db.execute(delete(TeacherRotation).where(TeacherRotation.class_id == class_id))
        db.add_all(rows)
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error("Rotation replace for class %s rolled back", class_id, exc_info=True)
        raise TransactionError("Failed to update teacher rotation") from e

    logger.info(
        "Replaced rotation of class %s (%s): %d turns, %d assignments",
        class_id, school_class.name, len(turns), len(rows),
    )
    return rows


def _turn_sort_key(turn_id: str):
    # "TURNUS 2" before "TURNUS 10"
    return [int(part) if part.isdigit() else part for part in re.split(r"(\d+)", turn_id)]


async def list_rotation(db: AsyncSession, class_id: int) -> Dict[str, list]:
    """Rebuild ``{turns, am_rotation, pm_rotation}`` from the stored rows of a class.

    Only turns and groups that have at least one stored row appear.
    """
    school_class = await db.get(SchoolClass, class_id)
    if not school_class:
        raise NotFoundError(
            f"Class with ID {class_id} not found",
            code="class_not_found",
            details={"class_id": class_id},
        )

    result = await db.execute(
        select(TeacherRotation).where(TeacherRotation.class_id == class_id)
    )
    rows = result.scalars().all()

    turns = sorted({row.turn_id for row in rows}, key=_turn_sort_key)
    position = {turn_id: index for index, turn_id in enumerate(turns)}

    by_period: Dict[Period, Dict[int, List[Optional[int]]]] = {Period.AM: {}, Period.PM: {}}
    for row in rows:
        groups = by_period[Period(row.period)]
        slots = groups.setdefault(row.group_id, [None] * len(turns))
        slots[position[row.turn_id]] = row.teacher_id

    return {
        "class_id": class_id,
        "turns": turns,
        "am_rotation": [
            {"group_id": group_id, "turns": slots}
            for group_id, slots in sorted(by_period[Period.AM].items())
        ],
        "pm_rotation": [
            {"group_id": group_id, "turns": slots}
            for group_id, slots in sorted(by_period[Period.PM].items())
        ],
    }
