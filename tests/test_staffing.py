from __future__ import annotations

import logging
from datetime import date

import pytest

from shiftdesk.staffing import (
    AssignedShift,
    CoverageRequirement,
    DayShift,
    PayrollEmployee,
    StaffLimit,
    compute_overtime_risks,
    compute_weekly_coverage,
    effective_hours_limit,
    estimate_payroll,
    fractional_hours_between,
    round_cents,
    summarize_day_shifts,
    week_bounds,
    whole_hours_between,
)

MONDAY = date(2026, 1, 5)


def _shift(shift_id: int, day: str, start: str, end: str, employee_id: int, *, area_id: int = 1, role_id: int | None = None):
    return AssignedShift(
        shift_id=shift_id,
        date=day,
        start_time=start,
        end_time=end,
        area_id=area_id,
        employee_id=employee_id,
        role_id=role_id,
    )


def test_week_bounds_start_on_monday():
    assert week_bounds(date(2026, 1, 7)) == ("2026-01-05", "2026-01-11")
    assert week_bounds(date(2026, 1, 5)) == ("2026-01-05", "2026-01-11")
    assert week_bounds(date(2026, 1, 11)) == ("2026-01-05", "2026-01-11")


def test_effective_limit_prefers_override_then_rule_then_default():
    assert effective_hours_limit(30, 45) == 30
    assert effective_hours_limit(None, 45) == 45
    assert effective_hours_limit(None, None) == 40
    assert effective_hours_limit(0, 45) == 45


def test_whole_hours_truncates_partial_hours():
    assert whole_hours_between("2026-01-05", "09:00", "17:30") == 8
    assert whole_hours_between("2026-01-05", "09:00", "09:45") == 0


def test_cross_midnight_shift_is_not_normalized():
    assert whole_hours_between("2026-01-05", "22:00", "02:00") == -20
    assert fractional_hours_between("22:00", "02:00") == -20.0


def test_whole_hours_rejects_malformed_values():
    with pytest.raises(ValueError):
        whole_hours_between("2026-13-05", "09:00", "17:00")
    with pytest.raises(ValueError):
        whole_hours_between("2026-01-05", "nine", "17:00")


def test_fractional_hours_counts_minutes(caplog):
    assert fractional_hours_between("09:00", "17:30") == 8.5
    with caplog.at_level(logging.WARNING, logger="shiftdesk.staffing"):
        assert fractional_hours_between("0900", "17:30") == 0.0
    assert "unparseable" in caplog.text


def test_overtime_risk_flags_employee_at_full_limit():
    staff = [StaffLimit(employee_id=1, name="Ellis")]
    shifts = [
        _shift(1, "2026-01-05", "02:00", "22:00", 1),
        _shift(2, "2026-01-06", "02:00", "22:00", 1),
    ]

    risks = compute_overtime_risks(staff, shifts)

    assert len(risks) == 1
    assert risks[0].employee_id == 1
    assert risks[0].current_hours == 40
    assert risks[0].limit == 40


def test_overtime_threshold_is_ninety_percent_of_limit():
    staff = [
        StaffLimit(employee_id=1, name="At threshold"),
        StaffLimit(employee_id=2, name="Below threshold"),
    ]
    shifts = [_shift(i, "2026-01-05", "08:00", "17:00", 1) for i in range(4)]
    shifts += [_shift(10 + i, "2026-01-06", "08:00", "15:00", 2) for i in range(5)]

    risks = compute_overtime_risks(staff, shifts)

    assert [(r.employee_id, r.current_hours) for r in risks] == [(1, 36)]


def test_overtime_risk_names_blank_employee_unknown():
    staff = [StaffLimit(employee_id=1, name="", rule_value=8)]
    shifts = [_shift(1, "2026-01-05", "09:00", "17:00", 1)]

    risks = compute_overtime_risks(staff, shifts)

    assert [(r.employee_id, r.name) for r in risks] == [(1, "Unknown")]


def test_employee_without_shifts_is_never_flagged():
    staff = [
        StaffLimit(employee_id=1, name="Idle"),
        StaffLimit(employee_id=2, name="Tight rule", rule_value=1),
    ]

    assert compute_overtime_risks(staff, []) == []


def test_overtime_uses_resolved_limit_and_keeps_listing_order():
    staff = [
        StaffLimit(employee_id=3, name="Sam", weekly_hours_limit=10, rule_value=45),
        StaffLimit(employee_id=1, name="Sam", rule_value=12),
        StaffLimit(employee_id=2, name="Robin"),
    ]
    shifts = [
        _shift(1, "2026-01-05", "08:00", "17:00", 3),
        _shift(2, "2026-01-05", "08:00", "19:00", 1),
        _shift(3, "2026-01-05", "08:00", "12:00", 2),
    ]

    risks = compute_overtime_risks(staff, shifts)

    assert [(r.employee_id, r.name, r.current_hours, r.limit) for r in risks] == [
        (3, "Sam", 9, 10),
        (1, "Sam", 11, 12),
    ]


def test_malformed_shift_is_skipped_without_aborting(caplog):
    staff = [StaffLimit(employee_id=1, name="Ellis", weekly_hours_limit=10)]
    shifts = [
        _shift(1, "2026-01-05", "08:00", "17:00", 1),
        _shift(2, "not-a-date", "08:00", "17:00", 1),
    ]

    with caplog.at_level(logging.WARNING, logger="shiftdesk.staffing"):
        risks = compute_overtime_risks(staff, shifts)

    assert [r.current_hours for r in risks] == [9]
    assert "Skipping shift 2" in caplog.text


def test_weekly_coverage_has_seven_days_from_monday():
    days = compute_weekly_coverage(MONDAY, [], [])

    assert [d.date for d in days] == [
        "2026-01-05",
        "2026-01-06",
        "2026-01-07",
        "2026-01-08",
        "2026-01-09",
        "2026-01-10",
        "2026-01-11",
    ]
    assert [d.day_name for d in days] == ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
    assert all(d.status == "ok" and d.missing == 0 and d.total_required == 0 for d in days)


def test_weekly_coverage_reports_missing_headcount():
    requirements = [CoverageRequirement(area_id=1, role_id=7, day_of_week="monday", count=2)]
    shifts = [
        _shift(1, "2026-01-05", "09:00", "17:00", 1, area_id=1, role_id=7),
        # No role on the assignment, so it cannot cover the requirement.
        _shift(2, "2026-01-05", "09:00", "17:00", 2, area_id=1, role_id=None),
        # Right role, wrong area.
        _shift(3, "2026-01-05", "09:00", "17:00", 3, area_id=2, role_id=7),
    ]

    monday = compute_weekly_coverage(MONDAY, requirements, shifts)[0]

    assert monday.status == "warning"
    assert monday.missing == 1
    assert monday.total_required == 2


def test_surplus_never_offsets_other_days_or_goes_negative():
    requirements = [
        CoverageRequirement(area_id=1, role_id=7, day_of_week="monday", count=1),
        CoverageRequirement(area_id=1, role_id=7, day_of_week="tuesday", count=1),
    ]
    shifts = [_shift(i, "2026-01-05", "09:00", "17:00", i, role_id=7) for i in range(3)]

    days = compute_weekly_coverage(MONDAY, requirements, shifts)

    assert (days[0].status, days[0].missing) == ("ok", 0)
    assert (days[1].status, days[1].missing) == ("warning", 1)


def test_summarize_day_shifts_counts_unassigned():
    stats = summarize_day_shifts([DayShift(1, 10), DayShift(2, None), DayShift(3, None)])

    assert stats.total_shifts == 3
    assert stats.unassigned_shifts == 2


def test_payroll_includes_full_roster_and_rounds_output():
    roster = [
        PayrollEmployee(employee_id=1, name="Ellis", role="employee", hourly_rate=10.0),
        PayrollEmployee(employee_id=2, name="Robin", role="employee"),
        PayrollEmployee(employee_id=3, name="Idle", role="employee", hourly_rate=20.0),
    ]
    shifts = [
        _shift(1, "2026-01-05", "09:00", "09:20", 1),
        _shift(2, "2026-01-05", "09:00", "13:00", 2),
        _shift(3, "2026-01-05", "09:00", "17:00", 99),
    ]

    rows = estimate_payroll(roster, shifts)

    assert [(r.id, r.total_hours, r.estimated_pay, r.hourly_rate) for r in rows] == [
        (1, 0.33, 3.33, 10.0),
        (2, 4.0, 0.0, 0),
        (3, 0.0, 0.0, 20.0),
    ]


def test_payroll_keeps_unrounded_accumulation():
    roster = [PayrollEmployee(employee_id=1, name="Ellis", role="employee", hourly_rate=30.0)]
    shifts = [_shift(i, "2026-01-05", "09:00", "09:20", 1) for i in range(3)]

    row = estimate_payroll(roster, shifts)[0]

    assert row.total_hours == 1.0
    assert row.estimated_pay == 30.0


def test_payroll_rounds_half_cents_up():
    roster = [PayrollEmployee(employee_id=1, name="Ellis", role="employee", hourly_rate=12.5)]
    shifts = [_shift(1, "2026-01-05", "09:00", "17:15", 1)]

    row = estimate_payroll(roster, shifts)[0]

    assert row.total_hours == 8.25
    assert row.estimated_pay == 103.13


def test_round_cents_rounds_ties_away_from_zero():
    assert round_cents(0.125) == 0.13
    assert round_cents(-0.125) == -0.13
    assert round_cents(2.675) == 2.67
