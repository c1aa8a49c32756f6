"""Weekly staffing aggregation: overtime risk, requirement coverage, daily shift counts and payroll."""

from __future__ import annotations

import logging
from collections import Counter, defaultdict
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Literal

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from shiftdesk.models import Assignment, Employee, Requirement, Rule, Shift, TimeOffRequest, User

logger = logging.getLogger(__name__)

DEFAULT_WEEKLY_HOURS_LIMIT = 40
OVERTIME_RISK_RATIO = 0.9
DAY_NAMES = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]
DAY_ABBREVIATIONS = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
UNKNOWN_EMPLOYEE_NAME = "Unknown"


@dataclass(frozen=True)
class StaffLimit:
    employee_id: int
    name: str
    weekly_hours_limit: int | None = None
    rule_value: int | None = None

    @property
    def limit(self) -> int:
        return effective_hours_limit(self.weekly_hours_limit, self.rule_value)


@dataclass(frozen=True)
class AssignedShift:
    shift_id: int
    date: str
    start_time: str
    end_time: str
    area_id: int
    employee_id: int
    role_id: int | None = None


@dataclass(frozen=True)
class DayShift:
    shift_id: int
    assignment_id: int | None = None


@dataclass(frozen=True)
class CoverageRequirement:
    area_id: int
    role_id: int
    day_of_week: str
    count: int


@dataclass(frozen=True)
class PayrollEmployee:
    employee_id: int
    name: str
    role: str
    hourly_rate: float | None = None


@dataclass(frozen=True)
class OvertimeRisk:
    employee_id: int
    name: str
    current_hours: int
    limit: int


@dataclass(frozen=True)
class CoverageDay:
    date: str
    day_name: str
    status: Literal["ok", "warning"]
    missing: int
    total_required: int


@dataclass(frozen=True)
class TodaysStats:
    total_shifts: int
    unassigned_shifts: int


@dataclass(frozen=True)
class PayrollRow:
    id: int
    name: str
    role: str
    hourly_rate: float
    total_hours: float
    estimated_pay: float


@dataclass(frozen=True)
class DashboardStats:
    pending_time_off_count: int
    overtime_risks: list[OvertimeRisk]
    todays_stats: TodaysStats
    weekly_requirements: list[CoverageDay]


def week_bounds(today: date) -> tuple[str, str]:
    start = today - timedelta(days=today.weekday())
    return start.isoformat(), (start + timedelta(days=6)).isoformat()


def effective_hours_limit(weekly_hours_limit: int | None, rule_value: int | None) -> int:
    # Zero or missing values fall through to the next source.
    return weekly_hours_limit or rule_value or DEFAULT_WEEKLY_HOURS_LIMIT


def whole_hours_between(day: str, start_time: str, end_time: str) -> int:
    """Hour difference truncated toward zero. End before start yields a negative value."""
    start_at = datetime.fromisoformat(f"{day}T{start_time}")
    end_at = datetime.fromisoformat(f"{day}T{end_time}")
    return int((end_at - start_at).total_seconds() / 3600)


def _clock_hours(value: str) -> float:
    pieces = value.split(":")
    if len(pieces) < 2:
        raise ValueError(f"Expected HH:MM, got {value!r}")
    return int(pieces[0]) + int(pieces[1]) / 60


def round_cents(value: float) -> float:
    """Round to two decimals with ties away from zero. Decimal(float) keeps the exact binary value."""
    return float(Decimal(value).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def fractional_hours_between(start_time: str, end_time: str) -> float:
    try:
        return _clock_hours(end_time) - _clock_hours(start_time)
    except ValueError:
        logger.warning("Ignoring unparseable shift times %r-%r in payroll", start_time, end_time)
        return 0.0


def compute_overtime_risks(staff: list[StaffLimit], week_shifts: list[AssignedShift]) -> list[OvertimeRisk]:
    hours_by_employee: dict[int, int] = defaultdict(int)
    for shift in week_shifts:
        try:
            hours = whole_hours_between(shift.date, shift.start_time, shift.end_time)
        except ValueError:
            logger.warning(
                "Skipping shift %s with unparseable date/time %r %r-%r",
                shift.shift_id,
                shift.date,
                shift.start_time,
                shift.end_time,
            )
            continue
        hours_by_employee[shift.employee_id] += hours

    risks: list[OvertimeRisk] = []
    for member in staff:
        current_hours = hours_by_employee.get(member.employee_id, 0)
        limit = member.limit
        if current_hours >= limit * OVERTIME_RISK_RATIO:
            risks.append(
                OvertimeRisk(
                    employee_id=member.employee_id,
                    name=member.name or UNKNOWN_EMPLOYEE_NAME,
                    current_hours=current_hours,
                    limit=limit,
                )
            )
    return risks


def compute_weekly_coverage(
    week_start: date,
    requirements: list[CoverageRequirement],
    week_shifts: list[AssignedShift],
) -> list[CoverageDay]:
    # Assignments without a role never satisfy a requirement.
    covered = Counter((s.date, s.area_id, s.role_id) for s in week_shifts if s.role_id is not None)

    days: list[CoverageDay] = []
    for offset in range(7):
        day = week_start + timedelta(days=offset)
        day_key = day.isoformat()
        day_name = DAY_NAMES[day.weekday()]
        total_required = 0
        missing = 0
        for requirement in requirements:
            if requirement.day_of_week != day_name:
                continue
            total_required += requirement.count
            covered_count = covered[(day_key, requirement.area_id, requirement.role_id)]
            missing += max(0, requirement.count - covered_count)
        days.append(
            CoverageDay(
                date=day_key,
                day_name=DAY_ABBREVIATIONS[day.weekday()],
                status="warning" if missing > 0 else "ok",
                missing=missing,
                total_required=total_required,
            )
        )
    return days


def summarize_day_shifts(day_shifts: list[DayShift]) -> TodaysStats:
    unassigned = sum(1 for shift in day_shifts if shift.assignment_id is None)
    return TodaysStats(total_shifts=len(day_shifts), unassigned_shifts=unassigned)


def estimate_payroll(roster: list[PayrollEmployee], shifts: list[AssignedShift]) -> list[PayrollRow]:
    total_hours: dict[int, float] = {member.employee_id: 0.0 for member in roster}
    estimated_pay: dict[int, float] = {member.employee_id: 0.0 for member in roster}
    rates = {member.employee_id: member.hourly_rate for member in roster}

    for shift in shifts:
        if shift.employee_id not in total_hours:
            continue
        duration = fractional_hours_between(shift.start_time, shift.end_time)
        total_hours[shift.employee_id] += duration
        rate = rates[shift.employee_id]
        if rate:
            estimated_pay[shift.employee_id] += duration * rate

    return [
        PayrollRow(
            id=member.employee_id,
            name=member.name,
            role=member.role,
            hourly_rate=member.hourly_rate or 0,
            total_hours=round_cents(total_hours[member.employee_id]),
            estimated_pay=round_cents(estimated_pay[member.employee_id]),
        )
        for member in roster
    ]


def load_staff_limits(db: Session, org_id: int) -> list[StaffLimit]:
    rows = db.execute(
        select(Employee.id, User.name, Employee.weekly_hours_limit, Rule.value)
        .join(User, Employee.user_id == User.id)
        .outerjoin(Rule, Employee.rule_id == Rule.id)
        .where(Employee.organization_id == org_id)
        .order_by(Employee.id)
    ).all()
    return [
        StaffLimit(employee_id=employee_id, name=name, weekly_hours_limit=override, rule_value=rule_value)
        for employee_id, name, override, rule_value in rows
    ]


def load_assigned_shifts(
    db: Session,
    org_id: int,
    start_date: str,
    end_date: str,
    location_id: int | None = None,
) -> list[AssignedShift]:
    stmt = (
        select(
            Shift.id,
            Shift.date,
            Shift.start_time,
            Shift.end_time,
            Shift.area_id,
            Assignment.employee_id,
            Assignment.role_id,
        )
        .join(Assignment, Assignment.shift_id == Shift.id)
        .where(Shift.organization_id == org_id, Shift.date >= start_date, Shift.date <= end_date)
        .order_by(Shift.date, Shift.start_time, Shift.id)
    )
    if location_id is not None:
        stmt = stmt.where(Shift.location_id == location_id)
    return [
        AssignedShift(
            shift_id=shift_id,
            date=shift_date,
            start_time=start_time,
            end_time=end_time,
            area_id=area_id,
            employee_id=employee_id,
            role_id=role_id,
        )
        for shift_id, shift_date, start_time, end_time, area_id, employee_id, role_id in db.execute(stmt).all()
    ]


def load_day_shifts(db: Session, org_id: int, day: str) -> list[DayShift]:
    rows = db.execute(
        select(Shift.id, Assignment.id)
        .outerjoin(Assignment, Assignment.shift_id == Shift.id)
        .where(Shift.organization_id == org_id, Shift.date == day)
    ).all()
    return [DayShift(shift_id=shift_id, assignment_id=assignment_id) for shift_id, assignment_id in rows]


def load_coverage_requirements(db: Session, org_id: int) -> list[CoverageRequirement]:
    rows = db.scalars(select(Requirement).where(Requirement.organization_id == org_id).order_by(Requirement.id)).all()
    return [
        CoverageRequirement(area_id=row.area_id, role_id=row.role_id, day_of_week=row.day_of_week, count=row.count)
        for row in rows
    ]


def load_payroll_roster(db: Session, org_id: int, location_id: int) -> list[PayrollEmployee]:
    rows = db.execute(
        select(Employee.id, User.name, User.role, Employee.hourly_rate)
        .join(User, Employee.user_id == User.id)
        .where(Employee.organization_id == org_id, Employee.location_id == location_id)
        .order_by(Employee.id)
    ).all()
    return [
        PayrollEmployee(employee_id=employee_id, name=name, role=role, hourly_rate=hourly_rate)
        for employee_id, name, role, hourly_rate in rows
    ]


def count_pending_time_off(db: Session, org_id: int) -> int:
    return db.scalar(
        select(func.count(TimeOffRequest.id)).where(
            TimeOffRequest.organization_id == org_id,
            TimeOffRequest.status == "pending",
        )
    ) or 0


def build_dashboard_stats(db: Session, org_id: int, today: date) -> DashboardStats:
    week_start, week_end = week_bounds(today)
    logger.debug("Building dashboard stats for week %s..%s", week_start, week_end, extra={"organization_id": org_id})
    week_shifts = load_assigned_shifts(db, org_id, week_start, week_end)
    return DashboardStats(
        pending_time_off_count=count_pending_time_off(db, org_id),
        overtime_risks=compute_overtime_risks(load_staff_limits(db, org_id), week_shifts),
        todays_stats=summarize_day_shifts(load_day_shifts(db, org_id, today.isoformat())),
        weekly_requirements=compute_weekly_coverage(
            date.fromisoformat(week_start),
            load_coverage_requirements(db, org_id),
            week_shifts,
        ),
    )


def build_payroll(db: Session, org_id: int, start_date: str, end_date: str, location_id: int) -> list[PayrollRow]:
    roster = load_payroll_roster(db, org_id, location_id)
    logger.debug(
        "Estimating payroll for location %s from %s to %s (%d employees)",
        location_id,
        start_date,
        end_date,
        len(roster),
        extra={"organization_id": org_id},
    )
    if not roster:
        return []
    shifts = load_assigned_shifts(db, org_id, start_date, end_date, location_id=location_id)
    return estimate_payroll(roster, shifts)
