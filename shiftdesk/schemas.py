from __future__ import annotations

from datetime import date
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"
DEFAULT_COLOR = "#3b82f6"

DayName = Literal["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]
UserRole = Literal["manager", "employee"]
TimeOffStatus = Literal["pending", "approved", "rejected"]


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


def _check_iso_date(value: str) -> str:
    try:
        date.fromisoformat(value)
    except ValueError as exc:
        raise ValueError("Dates must be formatted as YYYY-MM-DD") from exc
    if len(value) != 10:
        raise ValueError("Dates must be formatted as YYYY-MM-DD")
    return value


class OkOut(ApiModel):
    ok: bool = True


class BootstrapPayload(ApiModel):
    organization_name: str = Field(min_length=1)
    name: str = Field(min_length=1)
    email: str
    password: str


class AuthPayload(ApiModel):
    email: str
    password: str


class UserOut(ApiModel):
    id: int
    email: str
    name: str
    role: UserRole
    organization_id: int
    is_active: bool


class LocationPayload(ApiModel):
    name: str = Field(min_length=1)


class LocationOut(ApiModel):
    id: int
    name: str
    organization_id: int


class AreaCreatePayload(ApiModel):
    name: str = Field(min_length=1)
    color: str | None = None
    location_id: int | None = None


class AreaUpdatePayload(ApiModel):
    name: str | None = Field(default=None, min_length=1)
    color: str | None = None


class AreaOut(ApiModel):
    id: int
    name: str
    color: str
    organization_id: int
    location_id: int


class RolePayload(ApiModel):
    name: str = Field(min_length=1)
    color: str | None = None


class RoleUpdatePayload(ApiModel):
    name: str | None = Field(default=None, min_length=1)
    color: str | None = None


class RoleOut(ApiModel):
    id: int
    name: str
    color: str
    organization_id: int


class RulePayload(ApiModel):
    name: str = Field(min_length=1)
    value: int = Field(ge=1)


class RuleUpdatePayload(ApiModel):
    name: str | None = Field(default=None, min_length=1)
    value: int | None = Field(default=None, ge=1)


class RuleOut(ApiModel):
    id: int
    name: str
    type: str
    value: int
    organization_id: int


class EmployeeCreatePayload(ApiModel):
    name: str = Field(min_length=1)
    email: str
    location_id: int | None = None
    role_ids: list[int] = Field(default_factory=list)
    rule_id: int | None = None
    weekly_hours_limit: int | None = Field(default=None, ge=1)
    hourly_rate: float | None = Field(default=None, ge=0)
    temporary_password: str | None = None


class EmployeeUpdatePayload(ApiModel):
    name: str | None = Field(default=None, min_length=1)
    email: str | None = None
    role_ids: list[int] | None = None
    rule_id: int | None = None
    weekly_hours_limit: int | None = Field(default=None, ge=1)
    hourly_rate: float | None = Field(default=None, ge=0)


class EmployeeUserOut(ApiModel):
    name: str
    email: str


class EmployeeOut(ApiModel):
    id: int
    user_id: int
    organization_id: int
    location_id: int
    weekly_hours_limit: int | None = None
    effective_hours_limit: int
    rule_id: int | None = None
    hourly_rate: float | None = None
    user: EmployeeUserOut
    roles: list[RoleOut] = Field(default_factory=list)
    role_ids: list[int] = Field(default_factory=list)


class RequirementCreatePayload(ApiModel):
    area_id: int
    day_of_week: DayName
    role_id: int
    count: int = Field(ge=0)


class RequirementUpdatePayload(ApiModel):
    count: int = Field(ge=0)


class RequirementOut(ApiModel):
    id: int
    area_id: int
    day_of_week: DayName
    role_id: int
    count: int
    organization_id: int
    location_id: int


class AssignmentOut(ApiModel):
    id: int
    shift_id: int
    employee_id: int
    role_id: int | None = None


class ShiftCreatePayload(ApiModel):
    area_id: int
    location_id: int | None = None
    date: str
    start_time: str = Field(pattern=TIME_PATTERN)
    end_time: str = Field(pattern=TIME_PATTERN)
    employee_id: int | None = None
    role_id: int | None = None

    @field_validator("date")
    @classmethod
    def validate_date(cls, value: str) -> str:
        return _check_iso_date(value)


class ShiftUpdatePayload(ApiModel):
    start_time: str = Field(pattern=TIME_PATTERN)
    end_time: str = Field(pattern=TIME_PATTERN)


class ShiftOut(ApiModel):
    id: int
    area_id: int
    location_id: int
    organization_id: int
    date: str
    start_time: str
    end_time: str
    assignment: AssignmentOut | None = None


class AssignPayload(ApiModel):
    shift_id: int
    employee_id: int
    role_id: int | None = None


class UnassignPayload(ApiModel):
    shift_id: int


class TimeOffCreatePayload(ApiModel):
    date: str
    is_full_day: bool = True
    start_time: str | None = Field(default=None, pattern=TIME_PATTERN)
    end_time: str | None = Field(default=None, pattern=TIME_PATTERN)
    reason: str = ""

    @field_validator("date")
    @classmethod
    def validate_date(cls, value: str) -> str:
        return _check_iso_date(value)

    @model_validator(mode="after")
    def validate_partial_day(self) -> TimeOffCreatePayload:
        if not self.is_full_day and (self.start_time is None or self.end_time is None):
            raise ValueError("Partial-day requests need both startTime and endTime")
        return self


class TimeOffStatusPayload(ApiModel):
    status: TimeOffStatus


class TimeOffOut(ApiModel):
    id: int
    employee_id: int
    organization_id: int
    date: str
    is_full_day: bool
    start_time: str | None = None
    end_time: str | None = None
    reason: str
    status: TimeOffStatus


class TimeOffEmployeeOut(ApiModel):
    id: int
    user_id: int
    location_id: int
    user: EmployeeUserOut


class TimeOffWithEmployeeOut(TimeOffOut):
    employee: TimeOffEmployeeOut


class OvertimeRiskOut(ApiModel):
    employee_id: int
    name: str
    current_hours: int
    limit: int


class TodaysStatsOut(ApiModel):
    total_shifts: int
    unassigned_shifts: int


class CoverageDayOut(ApiModel):
    date: str
    day_name: str
    status: Literal["ok", "warning"]
    missing: int
    total_required: int


class DashboardStatsOut(ApiModel):
    pending_time_off_count: int
    overtime_risks: list[OvertimeRiskOut]
    todays_stats: TodaysStatsOut
    weekly_requirements: list[CoverageDayOut]


class PayrollRowOut(ApiModel):
    id: int
    name: str
    role: str
    hourly_rate: float
    total_hours: float
    estimated_pay: float


class PayrollOut(ApiModel):
    data: list[PayrollRowOut]
