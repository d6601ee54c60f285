# services/class_management/merge.py
"""Combine the rosters of two classes into a new class.

All checks run before the first write. The class creation and every student
move happen in one transaction: either the whole merge is committed or both
source classes stay exactly as they were.
"""
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Set

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from services.class_management.models.classes import SchoolClass
from services.class_management.models.students import Student
from shared import config
from shared.errors import (
    CapacityError,
    ConflictError,
    NotFoundError,
    TransactionError,
    ValidationError,
)

logger = logging.getLogger(__name__)


@dataclass
class CombineResult:
    combined_class: SchoolClass
    student_count: int
    original_classes: Dict[str, Dict[str, object]]


class UsernameResolver:
    """Picks collision-free usernames for students moved by one merge.

    ``store_usernames`` is every username currently held in the store.
    Candidates are probed as ``name``, ``name1``, ``name2``, ... A candidate
    is free when no earlier student of this merge took it and no other student
    holds it, neither bare nor with the class prefix in front.
    """

    def __init__(self, store_usernames: Set[str], max_probes: int):
        self.store_usernames = set(store_usernames)
        self.max_probes = max_probes
        self.assigned: Set[str] = set()
        self.assigned_final: Set[str] = set()

    def _held_by_other(self, name: str, own_username: str) -> bool:
        return name in self.store_usernames and name != own_username

    def resolve(self, username: str, prefix: str = "", own_username: Optional[str] = None) -> str:
        """Return the final (prefixed) username for ``username``."""
        own = username if own_username is None else own_username
        for probe in range(self.max_probes):
            candidate = username if probe == 0 else f"{username}{probe}"
            final = f"{prefix}{candidate}"
            if (
                candidate in self.assigned
                or final in self.assigned_final
                or self._held_by_other(candidate, own)
                or self._held_by_other(final, own)
            ):
                continue
            self.assigned.add(candidate)
            self.assigned_final.add(final)
            return final

        raise ConflictError(
            f"No free username found for '{username}' after {self.max_probes} attempts",
            code="username_probe_exhausted",
            details={"username": username, "attempts": self.max_probes},
        )


async def _count_students(db: AsyncSession, class_id: int) -> int:
    result = await db.execute(
        select(func.count(Student.id)).where(Student.class_id == class_id)
    )
    return result.scalar_one()


async def _class_students(db: AsyncSession, class_id: int) -> List[Student]:
    result = await db.execute(
        select(Student).where(Student.class_id == class_id).order_by(Student.id)
    )
    return list(result.scalars().all())


async def combine_classes(
    db: AsyncSession,
    class1_id: int,
    class2_id: int,
    combined_name: str,
    max_students: Optional[int] = None,
) -> CombineResult:
    max_students = config.MAX_COMBINED_STUDENTS if max_students is None else max_students

    if class1_id == class2_id:
        raise ValidationError(
            "Cannot combine a class with itself",
            code="same_class",
            details={"class1_id": class1_id, "class2_id": class2_id},
        )

    combined_name = (combined_name or "").strip()
    if not combined_name:
        raise ValidationError("A name for the combined class is required", code="missing_class_name")

    existing = await db.execute(select(SchoolClass).where(SchoolClass.name == combined_name))
    if existing.scalars().first():
        raise ConflictError(
            "A class with this name already exists",
            code="duplicate_class_name",
            details={"name": combined_name},
        )

    class1 = await db.get(SchoolClass, class1_id)
    if not class1:
        raise NotFoundError(
            f"Class with ID {class1_id} not found",
            code="class_not_found",
            details={"class_id": class1_id},
        )
    class2 = await db.get(SchoolClass, class2_id)
    if not class2:
        raise NotFoundError(
            f"Class with ID {class2_id} not found",
            code="class_not_found",
            details={"class_id": class2_id},
        )

    class1_count = await _count_students(db, class1_id)
    class2_count = await _count_students(db, class2_id)
    if class1_count == 0 and class2_count == 0:
        raise ValidationError(
            "Both classes must have at least one student to combine",
            code="both_classes_empty",
            details={"class1_id": class1_id, "class2_id": class2_id},
        )

    total = class1_count + class2_count
    if total > max_students:
        raise CapacityError(
            f"Cannot combine classes: The combined class would have {total} students, "
            f"but the maximum allowed is {max_students} students.",
            details={
                "class1_students": class1_count,
                "class2_students": class2_count,
                "total_students": total,
                "max_allowed": max_students,
            },
        )

    try:
        combined = SchoolClass(
            name=combined_name,
            description=f"Combined class from {class1.name} and {class2.name}",
        )
        db.add(combined)
        try:
            await db.flush()
        except IntegrityError as e:
            # another request created the same class name after the check above
            raise ConflictError(
                "A class with this name already exists",
                code="duplicate_class_name",
                details={"name": combined_name},
            ) from e

        tagged = [(s, class1.name) for s in await _class_students(db, class1_id)]
        tagged += [(s, class2.name) for s in await _class_students(db, class2_id)]

        usernames = await db.execute(select(Student.username))
        resolver = UsernameResolver(
            set(usernames.scalars().all()),
            max_probes=len(tagged) + config.USERNAME_PROBE_SLACK,
        )

        for student, original_class in tagged:
            student.username = resolver.resolve(
                student.username,
                prefix=f"{original_class}_",
                own_username=student.username,
            )
            student.class_id = combined.id

        await db.flush()
        student_count = await _count_students(db, combined.id)
        await db.commit()
    except ConflictError as e:
        await db.rollback()
        logger.warning("Combining classes %s and %s aborted: %s", class1_id, class2_id, e.code)
        raise
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error("Combining classes %s and %s rolled back", class1_id, class2_id, exc_info=True)
        raise TransactionError("Failed to combine classes") from e

    logger.info(
        "Combined classes %s (%d) and %s (%d) into %s (id=%s, %d students)",
        class1.name, class1_count, class2.name, class2_count,
        combined.name, combined.id, student_count,
    )

    return CombineResult(
        combined_class=combined,
        student_count=student_count,
        original_classes={
            "class1": {"name": class1.name, "student_count": class1_count},
            "class2": {"name": class2.name, "student_count": class2_count},
        },
    )
