import os
import tempfile
from fastapi import APIRouter, Depends
from fastapi.responses import FileResponse
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.background import BackgroundTask
import openpyxl
from openpyxl.styles import Font, Alignment

from services.scheduling.calendar import HolidaySpan, generate, plan_turns
from services.scheduling.controllers.holiday_service import load_holidays
from services.scheduling.schemas.calendar import WeeksRequest, TurnPlanRequest, WeekOut, TurnPlanOut
from shared.auth import get_current_user
from shared.db import get_db
from shared.errors import SchedulingError, to_http_exception

router = APIRouter(prefix="/schedules", tags=["Rotation Calendar"])


async def _holidays_for(payload: WeeksRequest, db: AsyncSession):
    if payload.holidays is None:
        return await load_holidays(db)
    return [
        HolidaySpan(start_date=h.start_date, end_date=h.end_date, name=h.name)
        for h in payload.holidays
    ]


async def _build_plan(payload: TurnPlanRequest, db: AsyncSession):
    holidays = await _holidays_for(payload, db)
    try:
        weeks = generate(payload.start_date, payload.end_date, payload.weekday, holidays)
        return plan_turns(
            weeks,
            payload.number_of_turns,
            custom_lengths=payload.custom_lengths,
            holidays=holidays,
            skip_holidays=payload.skip_holidays,
        )
    except SchedulingError as e:
        raise to_http_exception(e)


# --- ALL ROTATION WEEKS IN A DATE RANGE ---
@router.post("/weeks", response_model=list[WeekOut])
async def get_weeks(
    payload: WeeksRequest,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    holidays = await _holidays_for(payload, db)
    try:
        return generate(payload.start_date, payload.end_date, payload.weekday, holidays)
    except SchedulingError as e:
        raise to_http_exception(e)


# --- SPLIT THE WEEKS INTO TURNS ---
@router.post("/turns", response_model=TurnPlanOut)
async def get_turns(
    payload: TurnPlanRequest,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    plan = await _build_plan(payload, db)
    # start/end dates are properties, read them from the objects
    return TurnPlanOut.model_validate(plan)


# --- TURN PLAN AS EXCEL ---
@router.post("/turns/export")
async def export_turns_excel(
    payload: TurnPlanRequest,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    plan = await _build_plan(payload, db)

    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = "Wechselplan"

    ws.append(["Woche"] + [turn.name for turn in plan.turns])
    for cell in ws[1]:
        cell.font = Font(bold=True)
        cell.alignment = Alignment(horizontal="center")

    longest = max((len(turn.weeks) for turn in plan.turns), default=0)
    for index in range(longest):
        row = [index + 1]
        for turn in plan.turns:
            if index < len(turn.weeks):
                week = turn.weeks[index]
                row.append(f"{week.label} ({week.date.strftime('%d.%m.%y')})")
            else:
                row.append("")
        ws.append(row)

        # Holiday weeks only show up when they were not skipped
        for column, turn in enumerate(plan.turns, start=2):
            if index < len(turn.weeks) and turn.weeks[index].is_holiday:
                ws.cell(row=index + 2, column=column).font = Font(color="FF0000")

    ws.append([])
    ws.append(["Ferien"] + [", ".join(h.name for h in turn.holidays) for turn in plan.turns])
    ws.cell(row=ws.max_row, column=1).font = Font(bold=True)

    if plan.warning:
        ws.append([plan.warning])

    with tempfile.NamedTemporaryFile(delete=False, suffix=".xlsx") as tmp:
        wb.save(tmp.name)
        tmp_path = tmp.name

    return FileResponse(
        tmp_path,
        filename="wechselplan.xlsx",
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        background=BackgroundTask(os.remove, tmp_path),
    )
