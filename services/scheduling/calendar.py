# services/scheduling/calendar.py
"""Rotation calendar: week sequences and their split into turns.

Pure computation, no database access. Weekdays use the 0 = Sunday convention
(0 Sunday, 1 Monday, ... 6 Saturday). Holidays are read, never modified.
"""
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional, Tuple

from shared.errors import ValidationError

TURN_NAME_PREFIX = "TURNUS"


@dataclass(frozen=True)
class HolidaySpan:
    """A holiday period, both ends inclusive."""

    start_date: date
    end_date: date
    name: str = ""
    id: Optional[int] = None

    def contains(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date

    def overlaps(self, start: date, end: date) -> bool:
        return self.start_date <= end and start <= self.end_date


@dataclass(frozen=True)
class Week:
    date: date
    calendar_week: int
    label: str           # "KW37"
    is_holiday: bool = False


@dataclass(frozen=True)
class Turn:
    name: str            # also the turn id stored with rotation rows
    weeks: Tuple[Week, ...] = ()
    holidays: Tuple[HolidaySpan, ...] = ()

    @property
    def start_date(self) -> Optional[date]:
        return self.weeks[0].date if self.weeks else None

    @property
    def end_date(self) -> Optional[date]:
        return self.weeks[-1].date if self.weeks else None


@dataclass(frozen=True)
class TurnPlan:
    turns: Tuple[Turn, ...]
    available_weeks: int
    assigned_weeks: int
    warning: Optional[str] = None

    @property
    def turn_ids(self) -> List[str]:
        return [turn.name for turn in self.turns]


def sunday_weekday(day: date) -> int:
    """Weekday of ``day`` with 0 = Sunday."""
    return (day.weekday() + 1) % 7


def iso_calendar_week(day: date) -> int:
    return day.isocalendar()[1]


def turn_name(index: int) -> str:
    """Name of the turn at 1-based ``index``."""
    return f"{TURN_NAME_PREFIX} {index}"


def as_holiday_span(holiday) -> HolidaySpan:
    """Accept a HolidaySpan, an ORM SchoolHoliday or any object with start/end dates."""
    if isinstance(holiday, HolidaySpan):
        return holiday
    return HolidaySpan(
        start_date=holiday.start_date,
        end_date=holiday.end_date,
        name=getattr(holiday, "name", "") or "",
        id=getattr(holiday, "id", None),
    )


def generate(start_date: date, end_date: date, weekday: int, holidays: Iterable = ()) -> List[Week]:
    """Every ``weekday`` between ``start_date`` and ``end_date`` (inclusive), in order.

    Weeks whose date falls inside any holiday are flagged with ``is_holiday``
    but stay in the sequence. A range without that weekday yields ``[]``.
    """
    if not isinstance(weekday, int) or not 0 <= weekday <= 6:
        raise ValidationError(
            "weekday must be between 0 (Sunday) and 6 (Saturday)",
            code="invalid_weekday",
            details={"weekday": weekday},
        )
    if start_date > end_date:
        raise ValidationError(
            "start_date must not be after end_date",
            code="invalid_date_range",
            details={"start_date": start_date.isoformat(), "end_date": end_date.isoformat()},
        )

    spans = [as_holiday_span(h) for h in holidays]
    cursor = start_date + timedelta(days=(weekday - sunday_weekday(start_date)) % 7)

    weeks = []
    while cursor <= end_date:
        calendar_week = iso_calendar_week(cursor)
        weeks.append(Week(
            date=cursor,
            calendar_week=calendar_week,
            label=f"KW{calendar_week}",
            is_holiday=any(span.contains(cursor) for span in spans),
        ))
        cursor += timedelta(days=7)
    return weeks


def holidays_in_range(holidays: Iterable, start: date, end: date) -> List[HolidaySpan]:
    return [span for span in map(as_holiday_span, holidays) if span.overlaps(start, end)]


def _turn_lengths(total: int, number_of_turns: int, custom_lengths: Dict[int, int]) -> List[int]:
    lengths = [0] * number_of_turns
    weeks_left = total
    turns_left = number_of_turns

    for index in range(number_of_turns):
        custom = custom_lengths.get(index + 1, 0)
        if custom > 0:
            lengths[index] = custom
            weeks_left -= custom
            turns_left -= 1

    # Spread what is left evenly, earlier turns take the remainder
    for index in range(number_of_turns):
        if custom_lengths.get(index + 1, 0) > 0 or turns_left == 0:
            continue
        remaining = max(weeks_left, 0)
        lengths[index] = remaining // turns_left + (1 if remaining % turns_left else 0)
        weeks_left -= lengths[index]
        turns_left -= 1

    return lengths


def _affects_rotation(span: HolidaySpan, weekday: int) -> bool:
    # A single day off only matters when it lands on the rotation day
    if span.start_date != span.end_date:
        return True
    return sunday_weekday(span.start_date) == weekday


def plan_turns(
    weeks: List[Week],
    number_of_turns: int,
    custom_lengths: Optional[Dict[int, int]] = None,
    holidays: Iterable = (),
    skip_holidays: bool = True,
) -> TurnPlan:
    """Split a week sequence into ``number_of_turns`` consecutive turns.

    ``custom_lengths`` maps a 1-based turn index to a fixed number of weeks;
    the other turns share the remaining weeks. With ``skip_holidays`` holiday
    weeks are not rotation weeks and are left out of every turn.
    """
    custom_lengths = dict(custom_lengths or {})
    if number_of_turns < 1:
        raise ValidationError(
            "number_of_turns must be at least 1",
            code="invalid_turn_count",
            details={"number_of_turns": number_of_turns},
        )
    invalid = {k: v for k, v in custom_lengths.items() if v < 0 or not 1 <= k <= number_of_turns}
    if invalid:
        raise ValidationError(
            "custom lengths must be non-negative and refer to existing turns",
            code="invalid_custom_length",
            details={"custom_lengths": invalid, "number_of_turns": number_of_turns},
        )

    rotation_weeks = [w for w in weeks if not (skip_holidays and w.is_holiday)]
    lengths = _turn_lengths(len(rotation_weeks), number_of_turns, custom_lengths)
    spans = [as_holiday_span(h) for h in holidays]
    weekday = sunday_weekday(weeks[0].date) if weeks else None

    turns = []
    offset = 0
    for index, length in enumerate(lengths):
        turn_weeks = tuple(rotation_weeks[offset:offset + length])
        offset += length
        turn_holidays: Tuple[HolidaySpan, ...] = ()
        if turn_weeks:
            start = turn_weeks[0].date
            end = turn_weeks[-1].date + timedelta(days=6)
            turn_holidays = tuple(
                span for span in holidays_in_range(spans, start, end)
                if _affects_rotation(span, weekday)
            )
        turns.append(Turn(name=turn_name(index + 1), weeks=turn_weeks, holidays=turn_holidays))

    assigned = sum(lengths)
    available = len(rotation_weeks)
    warning = None
    if assigned < available:
        warning = (
            f"Total assigned weeks ({assigned}) is less than available weeks ({available}). "
            "Please assign all weeks."
        )
    elif assigned > available:
        warning = (
            f"Total assigned weeks ({assigned}) is greater than available weeks ({available}). "
            "Please reduce the assigned weeks."
        )

    return TurnPlan(
        turns=tuple(turns),
        available_weeks=available,
        assigned_weeks=assigned,
        warning=warning,
    )
