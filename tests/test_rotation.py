"""Tests for saving and reading the teacher rotation of a class."""

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from services.scheduling.models import Period, TeacherRotation
from services.scheduling.rotation import list_rotation, replace_rotation, rotation_teacher_ids
from shared.errors import NotFoundError, TransactionError, ValidationError

TURNS = ["TURNUS 1", "TURNUS 2"]


async def _stored(session, class_id):
    result = await session.execute(
        select(
            TeacherRotation.group_id,
            TeacherRotation.turn_id,
            TeacherRotation.period,
            TeacherRotation.teacher_id,
        ).where(TeacherRotation.class_id == class_id)
    )
    return set(result.all())


@pytest.fixture
async def setup(make_class, make_teacher):
    school_class = await make_class("10A", students=4)
    mueller = await make_teacher("mueller", "mueller@schule.de")
    schmidt = await make_teacher("schmidt", "schmidt@schule.de")
    return school_class, mueller, schmidt


class TestReplaceRotation:
    async def test_one_row_per_assigned_slot(self, session, setup):
        """Null entries write no row."""
        school_class, mueller, schmidt = setup
        am = [
            {"group_id": 1, "turns": [mueller.id, schmidt.id]},
            {"group_id": 2, "turns": [schmidt.id, None]},
        ]
        pm = [{"group_id": 1, "turns": [None, mueller.id]}]

        rows = await replace_rotation(session, school_class.id, TURNS, am, pm)

        assert len(rows) == 4
        assert await _stored(session, school_class.id) == {
            (1, "TURNUS 1", Period.AM, mueller.id),
            (1, "TURNUS 2", Period.AM, schmidt.id),
            (2, "TURNUS 1", Period.AM, schmidt.id),
            (1, "TURNUS 2", Period.PM, mueller.id),
        }

    async def test_same_input_twice_is_idempotent(self, session, setup):
        school_class, mueller, schmidt = setup
        am = [{"group_id": 1, "turns": [mueller.id, schmidt.id]}]
        pm = [{"group_id": 2, "turns": [schmidt.id, mueller.id]}]

        await replace_rotation(session, school_class.id, TURNS, am, pm)
        first = await _stored(session, school_class.id)
        await replace_rotation(session, school_class.id, TURNS, am, pm)

        assert await _stored(session, school_class.id) == first
        assert len(first) == 4

    async def test_second_save_replaces_first(self, session, setup):
        school_class, mueller, schmidt = setup
        await replace_rotation(
            session, school_class.id, TURNS,
            [{"group_id": 1, "turns": [mueller.id, mueller.id]}],
            [{"group_id": 2, "turns": [mueller.id, mueller.id]}],
        )
        await replace_rotation(
            session, school_class.id, ["TURNUS 1"],
            [{"group_id": 1, "turns": [schmidt.id]}],
            [],
        )

        assert await _stored(session, school_class.id) == {(1, "TURNUS 1", Period.AM, schmidt.id)}

    async def test_empty_rotation_clears_class(self, session, setup):
        school_class, mueller, _ = setup
        await replace_rotation(
            session, school_class.id, TURNS, [{"group_id": 1, "turns": [mueller.id, None]}], []
        )
        await replace_rotation(session, school_class.id, TURNS, [], [])
        assert await _stored(session, school_class.id) == set()

    async def test_other_classes_untouched(self, session, setup, make_class):
        school_class, mueller, schmidt = setup
        other = await make_class("10B", students=2)
        await replace_rotation(session, other.id, TURNS, [{"group_id": 1, "turns": [schmidt.id, None]}], [])
        await replace_rotation(session, school_class.id, TURNS, [{"group_id": 1, "turns": [mueller.id, None]}], [])

        assert await _stored(session, other.id) == {(1, "TURNUS 1", Period.AM, schmidt.id)}

    async def test_length_mismatch_is_rejected(self, session, setup):
        school_class, mueller, _ = setup
        with pytest.raises(ValidationError) as exc:
            await replace_rotation(
                session, school_class.id, TURNS, [], [{"group_id": 3, "turns": [mueller.id]}]
            )
        assert exc.value.code == "rotation_length_mismatch"
        assert exc.value.details == {"group_id": 3, "period": "PM", "expected": 2, "actual": 1}

    async def test_duplicate_group_is_rejected(self, session, setup):
        school_class, mueller, _ = setup
        am = [{"group_id": 1, "turns": [mueller.id, None]}, {"group_id": 1, "turns": [None, None]}]
        with pytest.raises(ValidationError) as exc:
            await replace_rotation(session, school_class.id, TURNS, am, [])
        assert exc.value.code == "duplicate_group"

    async def test_duplicate_turn_ids_are_rejected(self, session, setup):
        school_class, _, _ = setup
        with pytest.raises(ValidationError) as exc:
            await replace_rotation(session, school_class.id, ["TURNUS 1", "TURNUS 1"], [], [])
        assert exc.value.code == "duplicate_turns"

    async def test_missing_turns_are_rejected(self, session, setup):
        school_class, _, _ = setup
        with pytest.raises(ValidationError) as exc:
            await replace_rotation(session, school_class.id, [], [], [])
        assert exc.value.code == "missing_turns"

    async def test_unknown_class(self, session, setup):
        with pytest.raises(NotFoundError) as exc:
            await replace_rotation(session, 999, TURNS, [], [])
        assert exc.value.code == "class_not_found"

    async def test_unknown_teacher_keeps_prior_rotation(self, session, setup):
        school_class, mueller, _ = setup
        await replace_rotation(
            session, school_class.id, TURNS, [{"group_id": 1, "turns": [mueller.id, None]}], []
        )
        before = await _stored(session, school_class.id)

        with pytest.raises(NotFoundError) as exc:
            await replace_rotation(
                session, school_class.id, TURNS, [{"group_id": 1, "turns": [4711, mueller.id]}], []
            )

        assert exc.value.code == "teacher_not_found"
        assert exc.value.details == {"teacher_ids": [4711]}
        assert await _stored(session, school_class.id) == before

    async def test_storage_failure_rolls_back(self, session, setup, monkeypatch):
        school_class, mueller, schmidt = setup
        class_id, mueller_id, schmidt_id = school_class.id, mueller.id, schmidt.id
        await replace_rotation(
            session, class_id, TURNS, [{"group_id": 1, "turns": [mueller_id, mueller_id]}], []
        )
        before = await _stored(session, class_id)

        async def failing_commit(self):
            raise OperationalError("COMMIT", {}, Exception("disk I/O error"))

        monkeypatch.setattr(AsyncSession, "commit", failing_commit)
        with pytest.raises(TransactionError):
            await replace_rotation(
                session, class_id, TURNS, [{"group_id": 2, "turns": [schmidt_id, None]}], []
            )
        monkeypatch.undo()

        # expired by the rollback, only plain column queries from here on
        assert await _stored(session, class_id) == before


class TestListRotation:
    async def test_rebuilds_request_shape(self, session, setup):
        school_class, mueller, schmidt = setup
        turns = ["TURNUS 1", "TURNUS 2", "TURNUS 10"]
        await replace_rotation(
            session, school_class.id, turns,
            [{"group_id": 2, "turns": [mueller.id, None, schmidt.id]},
             {"group_id": 1, "turns": [schmidt.id, mueller.id, None]}],
            [{"group_id": 1, "turns": [None, None, mueller.id]}],
        )

        rotation = await list_rotation(session, school_class.id)

        assert rotation["turns"] == turns
        assert rotation["am_rotation"] == [
            {"group_id": 1, "turns": [schmidt.id, mueller.id, None]},
            {"group_id": 2, "turns": [mueller.id, None, schmidt.id]},
        ]
        assert rotation["pm_rotation"] == [{"group_id": 1, "turns": [None, None, mueller.id]}]

    async def test_class_without_rotation(self, session, setup):
        school_class, _, _ = setup
        rotation = await list_rotation(session, school_class.id)
        assert rotation["turns"] == []
        assert rotation["am_rotation"] == rotation["pm_rotation"] == []


def test_teacher_ids_are_distinct_in_first_seen_order():
    am = [{"group_id": 1, "turns": [3, None, 1]}]
    pm = [{"group_id": 1, "turns": [1, 2, 3]}]
    assert rotation_teacher_ids(am, pm) == [3, 1, 2]
