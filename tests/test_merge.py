"""Tests for combining two classes into one."""

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from services.class_management.merge import UsernameResolver, combine_classes
from services.class_management.models import SchoolClass, Student
from shared.errors import CapacityError, ConflictError, NotFoundError, TransactionError, ValidationError


async def _roster(session, class_id):
    result = await session.execute(
        select(Student.username).where(Student.class_id == class_id).order_by(Student.id)
    )
    return result.scalars().all()


async def _class_names(session):
    result = await session.execute(select(SchoolClass.name).order_by(SchoolClass.name))
    return result.scalars().all()


# ─── BENUTZERNAMEN ────────────────────────────────────────────────────────────

class TestUsernameResolver:
    def test_free_name_is_kept(self):
        resolver = UsernameResolver(set(), max_probes=5)
        assert resolver.resolve("anna", prefix="10A_") == "10A_anna"

    def test_duplicates_within_merge_get_suffixes(self):
        """Equal names from both rosters are probed as name, name1, name2."""
        resolver = UsernameResolver(set(), max_probes=5)
        assert resolver.resolve("anna", prefix="10A_") == "10A_anna"
        assert resolver.resolve("anna", prefix="10B_") == "10B_anna1"
        assert resolver.resolve("anna", prefix="10B_") == "10B_anna2"

    def test_name_held_by_other_student_is_skipped(self):
        resolver = UsernameResolver({"ben", "ben1"}, max_probes=5)
        assert resolver.resolve("ben", prefix="10A_", own_username="benjamin") == "10A_ben2"

    def test_own_username_does_not_collide(self):
        resolver = UsernameResolver({"anna"}, max_probes=5)
        assert resolver.resolve("anna", prefix="10A_", own_username="anna") == "10A_anna"

    def test_prefixed_name_held_by_outsider(self):
        resolver = UsernameResolver({"anna", "10A_anna"}, max_probes=5)
        assert resolver.resolve("anna", prefix="10A_", own_username="anna") == "10A_anna1"

    def test_probes_are_bounded(self):
        taken = {"max"} | {f"max{i}" for i in range(1, 3)}
        resolver = UsernameResolver(taken, max_probes=3)
        with pytest.raises(ConflictError) as exc:
            resolver.resolve("max", own_username="moritz")
        assert exc.value.code == "username_probe_exhausted"
        assert exc.value.details == {"username": "max", "attempts": 3}


# ─── KLASSEN ZUSAMMENLEGEN ────────────────────────────────────────────────────

class TestCombineClasses:
    async def test_moves_both_rosters_in_order(self, session, make_class):
        class_a = await make_class("10A", usernames=["anna", "ben"])
        class_b = await make_class("10B", usernames=["clara"])

        result = await combine_classes(session, class_a.id, class_b.id, "10AB")

        assert result.combined_class.name == "10AB"
        assert result.combined_class.description == "Combined class from 10A and 10B"
        assert result.student_count == 3
        assert result.original_classes == {
            "class1": {"name": "10A", "student_count": 2},
            "class2": {"name": "10B", "student_count": 1},
        }
        assert await _roster(session, result.combined_class.id) == ["10A_anna", "10A_ben", "10B_clara"]
        assert await _roster(session, class_a.id) == []
        assert await _roster(session, class_b.id) == []

    async def test_one_empty_class_is_allowed(self, session, make_class):
        class_a = await make_class("10A", students=3)
        class_b = await make_class("10B")

        result = await combine_classes(session, class_a.id, class_b.id, "10AB")

        assert result.student_count == 3

    async def test_exactly_at_capacity(self, session, make_class):
        class_a = await make_class("10A", students=18)
        class_b = await make_class("10B", students=18)

        result = await combine_classes(session, class_a.id, class_b.id, "10AB")

        assert result.student_count == 36

    async def test_over_capacity_changes_nothing(self, session, make_class):
        class_a = await make_class("10A", students=20)
        class_b = await make_class("10B", students=20)

        with pytest.raises(CapacityError) as exc:
            await combine_classes(session, class_a.id, class_b.id, "10AB")

        assert exc.value.code == "capacity_exceeded"
        assert exc.value.details == {
            "class1_students": 20,
            "class2_students": 20,
            "total_students": 40,
            "max_allowed": 36,
        }
        assert await _class_names(session) == ["10A", "10B"]
        assert len(await _roster(session, class_a.id)) == 20

    async def test_capacity_is_configurable(self, session, make_class):
        class_a = await make_class("10A", students=3)
        class_b = await make_class("10B", students=3)
        with pytest.raises(CapacityError):
            await combine_classes(session, class_a.id, class_b.id, "10AB", max_students=5)

    async def test_same_class_twice(self, session, make_class):
        class_a = await make_class("10A", students=3)
        with pytest.raises(ValidationError) as exc:
            await combine_classes(session, class_a.id, class_a.id, "10AA")
        assert exc.value.code == "same_class"

    async def test_blank_name(self, session, make_class):
        class_a = await make_class("10A", students=1)
        class_b = await make_class("10B", students=1)
        with pytest.raises(ValidationError) as exc:
            await combine_classes(session, class_a.id, class_b.id, "   ")
        assert exc.value.code == "missing_class_name"

    async def test_name_already_used(self, session, make_class):
        class_a = await make_class("10A", students=1)
        class_b = await make_class("10B", students=1)
        with pytest.raises(ConflictError) as exc:
            await combine_classes(session, class_a.id, class_b.id, "10A")
        assert exc.value.code == "duplicate_class_name"

    async def test_unknown_class(self, session, make_class):
        class_a = await make_class("10A", students=1)
        with pytest.raises(NotFoundError) as exc:
            await combine_classes(session, class_a.id, 999, "10AB")
        assert exc.value.code == "class_not_found"
        assert exc.value.details == {"class_id": 999}

    async def test_both_classes_empty(self, session, make_class):
        class_a = await make_class("10A")
        class_b = await make_class("10B")
        with pytest.raises(ValidationError) as exc:
            await combine_classes(session, class_a.id, class_b.id, "10AB")
        assert exc.value.code == "both_classes_empty"
        assert await _class_names(session) == ["10A", "10B"]

    async def test_collision_with_student_outside_the_merge(self, session, make_class):
        class_a = await make_class("10A", usernames=["anna"])
        class_b = await make_class("10B", usernames=["ben"])
        await make_class("9C", usernames=["10A_anna"])

        result = await combine_classes(session, class_a.id, class_b.id, "10AB")

        assert await _roster(session, result.combined_class.id) == ["10A_anna1", "10B_ben"]

    async def test_final_usernames_are_unique(self, session, make_class):
        class_a = await make_class("A", usernames=["x", "x1", "y"])
        class_b = await make_class("A_x", usernames=["z"])
        await make_class("C", usernames=["A_y"])

        result = await combine_classes(session, class_a.id, class_b.id, "AB")

        roster = await _roster(session, result.combined_class.id)
        assert len(roster) == len(set(roster)) == 4
        all_names = (await session.execute(select(Student.username))).scalars().all()
        assert len(all_names) == len(set(all_names))

    async def test_storage_failure_leaves_sources_untouched(self, session, make_class, monkeypatch):
        class_a = await make_class("10A", usernames=["anna", "ben"])
        class_b = await make_class("10B", usernames=["clara"])
        class_a_id, class_b_id = class_a.id, class_b.id

        async def failing_commit(self):
            raise OperationalError("COMMIT", {}, Exception("database is locked"))

        monkeypatch.setattr(AsyncSession, "commit", failing_commit)
        with pytest.raises(TransactionError):
            await combine_classes(session, class_a_id, class_b_id, "10AB")
        monkeypatch.undo()

        assert await _class_names(session) == ["10A", "10B"]
        assert await _roster(session, class_a_id) == ["anna", "ben"]
        assert await _roster(session, class_b_id) == ["clara"]

    async def test_name_taken_concurrently_is_a_conflict(self, session, make_class, monkeypatch):
        """The unique index still catches a name created after the pre-check."""
        class_a = await make_class("10A", usernames=["anna"])
        class_b = await make_class("10B", usernames=["ben"])
        class_a_id, class_b_id = class_a.id, class_b.id

        async def failing_flush(self, objects=None):
            raise IntegrityError("INSERT INTO classes", {}, Exception("UNIQUE constraint failed: classes.name"))

        monkeypatch.setattr(AsyncSession, "flush", failing_flush)
        with pytest.raises(ConflictError) as exc:
            await combine_classes(session, class_a_id, class_b_id, "10AB")
        monkeypatch.undo()

        assert exc.value.code == "duplicate_class_name"
        assert await _class_names(session) == ["10A", "10B"]
        assert await _roster(session, class_a_id) == ["anna"]
