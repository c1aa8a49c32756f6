from __future__ import annotations

import logging
import os
import secrets
from collections import defaultdict
from datetime import date, datetime, timedelta, timezone

from fastapi import Depends, FastAPI, Header, HTTPException, Query, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from shiftdesk.db import get_db
from shiftdesk.logging_config import setup_logging
from shiftdesk.models import (
    Area,
    Assignment,
    Employee,
    EmployeeRole,
    Location,
    Organization,
    Requirement,
    Role,
    Rule,
    SessionRecord,
    Shift,
    TimeOffRequest,
    User,
)
from shiftdesk.schemas import (
    DEFAULT_COLOR,
    AreaCreatePayload,
    AreaOut,
    AreaUpdatePayload,
    AssignmentOut,
    AssignPayload,
    AuthPayload,
    BootstrapPayload,
    DashboardStatsOut,
    EmployeeCreatePayload,
    EmployeeOut,
    EmployeeUpdatePayload,
    EmployeeUserOut,
    LocationOut,
    LocationPayload,
    OkOut,
    PayrollOut,
    PayrollRowOut,
    RequirementCreatePayload,
    RequirementOut,
    RequirementUpdatePayload,
    RoleOut,
    RolePayload,
    RoleUpdatePayload,
    RuleOut,
    RulePayload,
    RuleUpdatePayload,
    ShiftCreatePayload,
    ShiftOut,
    ShiftUpdatePayload,
    TimeOffCreatePayload,
    TimeOffEmployeeOut,
    TimeOffOut,
    TimeOffStatusPayload,
    TimeOffWithEmployeeOut,
    UnassignPayload,
    UserOut,
)
from shiftdesk.security import MIN_PASSWORD_LENGTH, hash_password, verify_password
from shiftdesk.staffing import build_dashboard_stats, build_payroll, effective_hours_limit

setup_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title="shiftdesk")

cors_origins = [origin.strip() for origin in os.getenv("CORS_ORIGINS", "http://localhost:5173").split(",") if origin.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

SESSION_COOKIE_NAME = "session_id"
SESSION_MAX_AGE_SECONDS = 14 * 24 * 60 * 60


@app.middleware("http")
async def disable_cache_for_auth_and_api(request: Request, call_next):
    response = await call_next(request)
    path = request.url.path
    if path.startswith("/api/") or path.startswith("/auth/"):
        response.headers["Cache-Control"] = "no-store, no-cache, max-age=0, must-revalidate"
        response.headers["Pragma"] = "no-cache"
    return response


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def ensure_valid_email(email: str) -> str:
    normalized = normalize_email(email)
    if "@" not in normalized or normalized.startswith("@") or normalized.endswith("@"):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="A valid email is required")
    return normalized


def ensure_password_strength(password: str) -> None:
    if len(password) < MIN_PASSWORD_LENGTH:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Password must be at least {MIN_PASSWORD_LENGTH} characters",
        )


def ensure_email_available(db: Session, email: str, exclude_user_id: int | None = None) -> None:
    existing = db.scalar(select(User).where(User.email == email))
    if existing is not None and existing.id != exclude_user_id:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="User already exists")


def request_is_https(request: Request) -> bool:
    forwarded_proto = request.headers.get("x-forwarded-proto", "")
    if forwarded_proto:
        first_proto = forwarded_proto.split(",")[0].strip().lower()
        if first_proto:
            return first_proto == "https"
    return request.url.scheme == "https"


def set_session_cookie(response: Response, request: Request, session_id: str) -> None:
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=session_id,
        max_age=SESSION_MAX_AGE_SECONDS,
        httponly=True,
        samesite="lax",
        secure=request_is_https(request),
        path="/",
    )


def clear_session_cookie(response: Response, request: Request) -> None:
    response.delete_cookie(
        key=SESSION_COOKIE_NAME,
        httponly=True,
        samesite="lax",
        secure=request_is_https(request),
        path="/",
    )


def create_session(db: Session, user_id: int) -> str:
    while True:
        session_id = secrets.token_urlsafe(32)
        if db.get(SessionRecord, session_id) is None:
            break
    db.add(
        SessionRecord(
            session_id=session_id,
            user_id=user_id,
            expires_at=utcnow() + timedelta(seconds=SESSION_MAX_AGE_SECONDS),
        )
    )
    db.commit()
    return session_id


def delete_session_if_exists(db: Session, session_id: str) -> None:
    session = db.get(SessionRecord, session_id)
    if session is not None:
        db.delete(session)
        db.commit()


def get_session_user(db: Session, session_id: str | None) -> User | None:
    if not session_id:
        return None
    session = db.get(SessionRecord, session_id)
    if session is None:
        return None
    expires_at = session.expires_at
    if expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=timezone.utc)
    if expires_at <= utcnow():
        db.delete(session)
        db.commit()
        return None
    user = db.get(User, session.user_id)
    if user is None or not user.is_active:
        db.delete(session)
        db.commit()
        return None
    return user


def get_current_user(request: Request, db: Session = Depends(get_db)) -> User:
    user = get_session_user(db, request.cookies.get(SESSION_COOKIE_NAME))
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")
    return user


def get_manager_user(current_user: User = Depends(get_current_user)) -> User:
    if current_user.role != "manager":
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Manager access required")
    return current_user


def get_org_row(db: Session, model, row_id: int, org_id: int, label: str):
    row = db.get(model, row_id)
    if row is None or row.organization_id != org_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{label} not found")
    return row


def ensure_org_ids(db: Session, model, ids: list[int], org_id: int, label: str) -> None:
    unique_ids = set(ids)
    if not unique_ids:
        return
    found = db.scalar(
        select(func.count(model.id)).where(model.id.in_(unique_ids), model.organization_id == org_id)
    ) or 0
    if found != len(unique_ids):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{label} not found")


def require_location_id(location_id: int | None) -> int:
    if location_id is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Location ID is required")
    return location_id


def parse_query_date(value: str, name: str) -> str:
    try:
        return date.fromisoformat(value).isoformat()
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"{name} must be formatted as YYYY-MM-DD",
        ) from None


def serialize_employees(db: Session, rows: list[tuple[Employee, User, int | None]]) -> list[EmployeeOut]:
    employee_ids = [employee.id for employee, _, _ in rows]
    roles_by_employee: dict[int, list[RoleOut]] = defaultdict(list)
    if employee_ids:
        role_rows = db.execute(
            select(EmployeeRole.employee_id, Role)
            .join(Role, EmployeeRole.role_id == Role.id)
            .where(EmployeeRole.employee_id.in_(employee_ids))
            .order_by(Role.id)
        ).all()
        for employee_id, role in role_rows:
            roles_by_employee[employee_id].append(RoleOut.model_validate(role))

    result = []
    for employee, user, rule_value in rows:
        roles = roles_by_employee.get(employee.id, [])
        result.append(
            EmployeeOut(
                id=employee.id,
                user_id=employee.user_id,
                organization_id=employee.organization_id,
                location_id=employee.location_id,
                weekly_hours_limit=employee.weekly_hours_limit,
                effective_hours_limit=effective_hours_limit(employee.weekly_hours_limit, rule_value),
                rule_id=employee.rule_id,
                hourly_rate=employee.hourly_rate,
                user=EmployeeUserOut(name=user.name, email=user.email),
                roles=roles,
                role_ids=[role.id for role in roles],
            )
        )
    return result


def employee_rows_query(org_id: int):
    return (
        select(Employee, User, Rule.value)
        .join(User, Employee.user_id == User.id)
        .outerjoin(Rule, Employee.rule_id == Rule.id)
        .where(Employee.organization_id == org_id)
        .order_by(Employee.id)
    )


def replace_employee_roles(db: Session, employee_id: int, role_ids: list[int]) -> None:
    for link in db.scalars(select(EmployeeRole).where(EmployeeRole.employee_id == employee_id)).all():
        db.delete(link)
    db.flush()
    for role_id in dict.fromkeys(role_ids):
        db.add(EmployeeRole(employee_id=employee_id, role_id=role_id))


def get_own_employee(db: Session, user: User) -> Employee | None:
    return db.scalar(select(Employee).where(Employee.user_id == user.id).order_by(Employee.id))


@app.get("/health")
def health() -> dict[str, bool | str]:
    return {"ok": True, "env": os.getenv("ENVIRONMENT", "local")}


@app.get("/")
def index() -> dict[str, str]:
    return {"message": "shiftdesk API", "health": "/health"}


@app.post("/auth/bootstrap", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def auth_bootstrap(
    payload: BootstrapPayload,
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
    bootstrap_token: str | None = Header(default=None, alias="X-Bootstrap-Token"),
) -> UserOut:
    configured_token = os.getenv("BOOTSTRAP_TOKEN", "")
    if not configured_token:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Bootstrap token is not configured")
    if bootstrap_token != configured_token:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid bootstrap token")
    email = ensure_valid_email(payload.email)
    ensure_password_strength(payload.password)
    ensure_email_available(db, email)

    organization = Organization(name=payload.organization_name.strip())
    db.add(organization)
    db.flush()
    user = User(
        organization_id=organization.id,
        email=email,
        name=payload.name.strip(),
        role="manager",
        password_hash=hash_password(payload.password),
        is_active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("Bootstrapped organization %s with manager %s", organization.id, user.id)
    set_session_cookie(response, request, create_session(db, user.id))
    return UserOut.model_validate(user)


@app.post("/auth/login", response_model=UserOut)
def auth_login(
    payload: AuthPayload,
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
) -> UserOut:
    email = ensure_valid_email(payload.email)
    user = db.scalar(select(User).where(User.email == email))
    if user is None or not verify_password(payload.password, user.password_hash):
        logger.info("Rejected login for %s", email)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid email or password")
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User account is disabled")
    set_session_cookie(response, request, create_session(db, user.id))
    return UserOut.model_validate(user)


@app.post("/auth/logout")
def auth_logout(
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
) -> dict[str, bool]:
    session_id = request.cookies.get(SESSION_COOKIE_NAME)
    if session_id:
        delete_session_if_exists(db, session_id)
    clear_session_cookie(response, request)
    return {"ok": True}


@app.get("/auth/me", response_model=UserOut)
def auth_me(current_user: User = Depends(get_current_user)) -> UserOut:
    return UserOut.model_validate(current_user)


@app.get("/api/locations", response_model=list[LocationOut])
def list_locations(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> list[LocationOut]:
    rows = db.scalars(
        select(Location).where(Location.organization_id == current_user.organization_id).order_by(Location.id)
    ).all()
    return [LocationOut.model_validate(row) for row in rows]


@app.post("/api/locations", response_model=LocationOut, status_code=status.HTTP_201_CREATED)
def create_location(
    payload: LocationPayload,
    current_user: User = Depends(get_manager_user),
    db: Session = Depends(get_db),
) -> LocationOut:
    location = Location(organization_id=current_user.organization_id, name=payload.name.strip())
    db.add(location)
    db.commit()
    db.refresh(location)
    return LocationOut.model_validate(location)


@app.put("/api/locations/{location_id}", response_model=LocationOut)
def update_location(
    location_id: int,
    payload: LocationPayload,
    current_user: User = Depends(get_manager_user),
    db: Session = Depends(get_db),
) -> LocationOut:
    location = get_org_row(db, Location, location_id, current_user.organization_id, "Location")
    location.name = payload.name.strip()
    db.commit()
    db.refresh(location)
    return LocationOut.model_validate(location)


@app.delete("/api/locations/{location_id}", response_model=OkOut)
def delete_location(
    location_id: int,
    current_user: User = Depends(get_manager_user),
    db: Session = Depends(get_db),
) -> OkOut:
    location = get_org_row(db, Location, location_id, current_user.organization_id, "Location")
    db.delete(location)
    db.commit()
    return OkOut()


@app.get("/api/areas", response_model=list[AreaOut])
def list_areas(
    location_id: int | None = Query(default=None, alias="locationId"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> list[AreaOut]:
    stmt = select(Area).where(Area.organization_id == current_user.organization_id)
    if location_id is not None:
        stmt = stmt.where(Area.location_id == location_id)
    return [AreaOut.model_validate(row) for row in db.scalars(stmt.order_by(Area.id)).all()]


@app.post("/api/areas", response_model=AreaOut, status_code=status.HTTP_201_CREATED)
def create_area(
    payload: AreaCreatePayload,
    current_user: User = Depends(get_manager_user),
    db: Session = Depends(get_db),
) -> AreaOut:
    location_id = require_location_id(payload.location_id)
    get_org_row(db, Location, location_id, current_user.organization_id, "Location")
    area = Area(
        organization_id=current_user.organization_id,
        location_id=location_id,
        name=payload.name.strip(),
        color=payload.color or DEFAULT_COLOR,
    )
    db.add(area)
    db.commit()
    db.refresh(area)
    return AreaOut.model_validate(area)


@app.put("/api/areas/{area_id}", response_model=AreaOut)
def update_area(
    area_id: int,
    payload: AreaUpdatePayload,
    current_user: User = Depends(get_manager_user),
    db: Session = Depends(get_db),
) -> AreaOut:
    area = get_org_row(db, Area, area_id, current_user.organization_id, "Area")
    if payload.name is not None:
        area.name = payload.name.strip()
    if payload.color is not None:
        area.color = payload.color
    db.commit()
    db.refresh(area)
    return AreaOut.model_validate(area)


@app.delete("/api/areas/{area_id}", response_model=OkOut)
def delete_area(
    area_id: int,
    current_user: User = Depends(get_manager_user),
    db: Session = Depends(get_db),
) -> OkOut:
    area = get_org_row(db, Area, area_id, current_user.organization_id, "Area")
    db.delete(area)
    db.commit()
    return OkOut()


@app.get("/api/roles", response_model=list[RoleOut])
def list_roles(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> list[RoleOut]:
    rows = db.scalars(select(Role).where(Role.organization_id == current_user.organization_id).order_by(Role.id)).all()
    return [RoleOut.model_validate(row) for row in rows]


@app.post("/api/roles", response_model=RoleOut, status_code=status.HTTP_201_CREATED)
def create_role(
    payload: RolePayload,
    current_user: User = Depends(get_manager_user),
    db: Session = Depends(get_db),
) -> RoleOut:
    role = Role(
        organization_id=current_user.organization_id,
        name=payload.name.strip(),
        color=payload.color or DEFAULT_COLOR,
    )
    db.add(role)
    db.commit()
    db.refresh(role)
    return RoleOut.model_validate(role)


@app.put("/api/roles/{role_id}", response_model=RoleOut)
def update_role(
    role_id: int,
    payload: RoleUpdatePayload,
    current_user: User = Depends(get_manager_user),
    db: Session = Depends(get_db),
) -> RoleOut:
    role = get_org_row(db, Role, role_id, current_user.organization_id, "Role")
    if payload.name is not None:
        role.name = payload.name.strip()
    if payload.color is not None:
        role.color = payload.color
    db.commit()
    db.refresh(role)
    return RoleOut.model_validate(role)


@app.delete("/api/roles/{role_id}", response_model=OkOut)
def delete_role(
    role_id: int,
    current_user: User = Depends(get_manager_user),
    db: Session = Depends(get_db),
) -> OkOut:
    role = get_org_row(db, Role, role_id, current_user.organization_id, "Role")
    db.delete(role)
    db.commit()
    return OkOut()


@app.get("/api/rules", response_model=list[RuleOut])
def list_rules(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> list[RuleOut]:
    rows = db.scalars(select(Rule).where(Rule.organization_id == current_user.organization_id).order_by(Rule.id)).all()
    return [RuleOut.model_validate(row) for row in rows]


@app.post("/api/rules", response_model=RuleOut, status_code=status.HTTP_201_CREATED)
def create_rule(
    payload: RulePayload,
    current_user: User = Depends(get_manager_user),
    db: Session = Depends(get_db),
) -> RuleOut:
    rule = Rule(
        organization_id=current_user.organization_id,
        name=payload.name.strip(),
        type="MAX_HOURS",
        value=payload.value,
    )
    db.add(rule)
    db.commit()
    db.refresh(rule)
    return RuleOut.model_validate(rule)


@app.put("/api/rules/{rule_id}", response_model=RuleOut)
def update_rule(
    rule_id: int,
    payload: RuleUpdatePayload,
    current_user: User = Depends(get_manager_user),
    db: Session = Depends(get_db),
) -> RuleOut:
    rule = get_org_row(db, Rule, rule_id, current_user.organization_id, "Rule")
    if payload.name is not None:
        rule.name = payload.name.strip()
    if payload.value is not None:
        rule.value = payload.value
    db.commit()
    db.refresh(rule)
    return RuleOut.model_validate(rule)


@app.delete("/api/rules/{rule_id}", response_model=OkOut)
def delete_rule(
    rule_id: int,
    current_user: User = Depends(get_manager_user),
    db: Session = Depends(get_db),
) -> OkOut:
    rule = get_org_row(db, Rule, rule_id, current_user.organization_id, "Rule")
    db.delete(rule)
    db.commit()
    return OkOut()


@app.get("/api/employees", response_model=list[EmployeeOut])
def list_employees(
    location_id: int | None = Query(default=None, alias="locationId"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> list[EmployeeOut]:
    stmt = employee_rows_query(current_user.organization_id)
    if location_id is not None:
        stmt = stmt.where(Employee.location_id == location_id)
    return serialize_employees(db, [tuple(row) for row in db.execute(stmt).all()])


@app.post("/api/employees", response_model=EmployeeOut, status_code=status.HTTP_201_CREATED)
def create_employee(
    payload: EmployeeCreatePayload,
    current_user: User = Depends(get_manager_user),
    db: Session = Depends(get_db),
) -> EmployeeOut:
    org_id = current_user.organization_id
    location_id = require_location_id(payload.location_id)
    get_org_row(db, Location, location_id, org_id, "Location")
    if payload.rule_id is not None:
        get_org_row(db, Rule, payload.rule_id, org_id, "Rule")
    ensure_org_ids(db, Role, payload.role_ids, org_id, "Role")
    email = ensure_valid_email(payload.email)
    ensure_email_available(db, email)
    if payload.temporary_password:
        ensure_password_strength(payload.temporary_password)

    user = User(
        organization_id=org_id,
        email=email,
        name=payload.name.strip(),
        role="employee",
        password_hash=hash_password(payload.temporary_password) if payload.temporary_password else None,
        is_active=True,
    )
    db.add(user)
    db.flush()
    employee = Employee(
        organization_id=org_id,
        user_id=user.id,
        location_id=location_id,
        weekly_hours_limit=payload.weekly_hours_limit,
        rule_id=payload.rule_id,
        hourly_rate=payload.hourly_rate,
    )
    db.add(employee)
    db.flush()
    replace_employee_roles(db, employee.id, payload.role_ids)
    db.commit()

    row = db.execute(employee_rows_query(org_id).where(Employee.id == employee.id)).one()
    return serialize_employees(db, [tuple(row)])[0]


@app.put("/api/employees/{employee_id}", response_model=EmployeeOut)
def update_employee(
    employee_id: int,
    payload: EmployeeUpdatePayload,
    current_user: User = Depends(get_manager_user),
    db: Session = Depends(get_db),
) -> EmployeeOut:
    org_id = current_user.organization_id
    employee = get_org_row(db, Employee, employee_id, org_id, "Employee")
    user = db.get(User, employee.user_id)
    fields = payload.model_fields_set

    if payload.name is not None:
        user.name = payload.name.strip()
    if payload.email is not None:
        email = ensure_valid_email(payload.email)
        ensure_email_available(db, email, exclude_user_id=user.id)
        user.email = email
    if "rule_id" in fields:
        if payload.rule_id is not None:
            get_org_row(db, Rule, payload.rule_id, org_id, "Rule")
        employee.rule_id = payload.rule_id
    if "weekly_hours_limit" in fields:
        employee.weekly_hours_limit = payload.weekly_hours_limit
    if "hourly_rate" in fields:
        employee.hourly_rate = payload.hourly_rate
    if payload.role_ids is not None:
        ensure_org_ids(db, Role, payload.role_ids, org_id, "Role")
        replace_employee_roles(db, employee.id, payload.role_ids)
    db.commit()

    row = db.execute(employee_rows_query(org_id).where(Employee.id == employee.id)).one()
    return serialize_employees(db, [tuple(row)])[0]


@app.delete("/api/employees/{employee_id}", response_model=OkOut)
def delete_employee(
    employee_id: int,
    current_user: User = Depends(get_manager_user),
    db: Session = Depends(get_db),
) -> OkOut:
    employee = get_org_row(db, Employee, employee_id, current_user.organization_id, "Employee")
    user = db.get(User, employee.user_id)
    db.delete(employee)
    db.flush()
    if user is not None and user.id != current_user.id:
        db.delete(user)
    db.commit()
    return OkOut()


@app.get("/api/requirements", response_model=list[RequirementOut])
def list_requirements(
    area_id: int | None = Query(default=None, alias="areaId"),
    location_id: int | None = Query(default=None, alias="locationId"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> list[RequirementOut]:
    stmt = select(Requirement).where(Requirement.organization_id == current_user.organization_id)
    if area_id is not None:
        stmt = stmt.where(Requirement.area_id == area_id)
    elif location_id is not None:
        stmt = stmt.where(Requirement.location_id == location_id)
    return [RequirementOut.model_validate(row) for row in db.scalars(stmt.order_by(Requirement.id)).all()]


@app.post("/api/requirements", response_model=RequirementOut, status_code=status.HTTP_201_CREATED)
def create_requirement(
    payload: RequirementCreatePayload,
    current_user: User = Depends(get_manager_user),
    db: Session = Depends(get_db),
) -> RequirementOut:
    org_id = current_user.organization_id
    area = get_org_row(db, Area, payload.area_id, org_id, "Area")
    get_org_row(db, Role, payload.role_id, org_id, "Role")
    requirement = Requirement(
        organization_id=org_id,
        location_id=area.location_id,
        area_id=area.id,
        day_of_week=payload.day_of_week,
        role_id=payload.role_id,
        count=payload.count,
    )
    db.add(requirement)
    db.commit()
    db.refresh(requirement)
    return RequirementOut.model_validate(requirement)


@app.put("/api/requirements/{requirement_id}", response_model=RequirementOut)
def update_requirement(
    requirement_id: int,
    payload: RequirementUpdatePayload,
    current_user: User = Depends(get_manager_user),
    db: Session = Depends(get_db),
) -> RequirementOut:
    requirement = get_org_row(db, Requirement, requirement_id, current_user.organization_id, "Requirement")
    requirement.count = payload.count
    db.commit()
    db.refresh(requirement)
    return RequirementOut.model_validate(requirement)


@app.delete("/api/requirements/{requirement_id}", response_model=OkOut)
def delete_requirement(
    requirement_id: int,
    current_user: User = Depends(get_manager_user),
    db: Session = Depends(get_db),
) -> OkOut:
    requirement = get_org_row(db, Requirement, requirement_id, current_user.organization_id, "Requirement")
    db.delete(requirement)
    db.commit()
    return OkOut()


@app.get("/api/schedule/week", response_model=list[ShiftOut])
def list_week_shifts(
    range_from: str | None = Query(default=None, alias="from"),
    range_to: str | None = Query(default=None, alias="to"),
    location_id: int | None = Query(default=None, alias="locationId"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> list[ShiftOut]:
    stmt = (
        select(Shift)
        .options(selectinload(Shift.assignment))
        .where(Shift.organization_id == current_user.organization_id)
    )
    if location_id is not None:
        stmt = stmt.where(Shift.location_id == location_id)
    if range_from and range_to:
        stmt = stmt.where(
            Shift.date >= parse_query_date(range_from, "from"),
            Shift.date <= parse_query_date(range_to, "to"),
        )
    rows = db.scalars(stmt.order_by(Shift.date, Shift.start_time, Shift.id)).all()
    return [ShiftOut.model_validate(row) for row in rows]


@app.get("/api/schedule/my", response_model=list[ShiftOut])
def list_my_shifts(
    range_from: str | None = Query(default=None, alias="from"),
    range_to: str | None = Query(default=None, alias="to"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> list[ShiftOut]:
    employee_ids = db.scalars(select(Employee.id).where(Employee.user_id == current_user.id)).all()
    if not employee_ids:
        return []
    stmt = (
        select(Shift)
        .join(Assignment, Assignment.shift_id == Shift.id)
        .options(selectinload(Shift.assignment))
        .where(Assignment.employee_id.in_(employee_ids))
    )
    if range_from and range_to:
        stmt = stmt.where(
            Shift.date >= parse_query_date(range_from, "from"),
            Shift.date <= parse_query_date(range_to, "to"),
        )
    rows = db.scalars(stmt.order_by(Shift.date, Shift.start_time, Shift.id)).all()
    return [ShiftOut.model_validate(row) for row in rows]


@app.post("/api/schedule/shift", response_model=ShiftOut, status_code=status.HTTP_201_CREATED)
def create_shift(
    payload: ShiftCreatePayload,
    current_user: User = Depends(get_manager_user),
    db: Session = Depends(get_db),
) -> ShiftOut:
    org_id = current_user.organization_id
    location_id = require_location_id(payload.location_id)
    get_org_row(db, Location, location_id, org_id, "Location")
    area = get_org_row(db, Area, payload.area_id, org_id, "Area")
    if area.location_id != location_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Area does not belong to this location")
    if payload.employee_id is not None:
        get_org_row(db, Employee, payload.employee_id, org_id, "Employee")
    if payload.role_id is not None:
        get_org_row(db, Role, payload.role_id, org_id, "Role")

    shift = Shift(
        organization_id=org_id,
        location_id=location_id,
        area_id=area.id,
        date=payload.date,
        start_time=payload.start_time,
        end_time=payload.end_time,
    )
    db.add(shift)
    db.flush()
    if payload.employee_id is not None:
        shift.assignment = Assignment(
            shift_id=shift.id,
            employee_id=payload.employee_id,
            role_id=payload.role_id,
        )
    db.commit()
    db.refresh(shift)
    return ShiftOut.model_validate(shift)


@app.put("/api/schedule/{shift_id}", response_model=ShiftOut)
def update_shift(
    shift_id: int,
    payload: ShiftUpdatePayload,
    current_user: User = Depends(get_manager_user),
    db: Session = Depends(get_db),
) -> ShiftOut:
    shift = get_org_row(db, Shift, shift_id, current_user.organization_id, "Shift")
    shift.start_time = payload.start_time
    shift.end_time = payload.end_time
    db.commit()
    db.refresh(shift)
    return ShiftOut.model_validate(shift)


@app.delete("/api/schedule/{shift_id}", response_model=OkOut)
def delete_shift(
    shift_id: int,
    current_user: User = Depends(get_manager_user),
    db: Session = Depends(get_db),
) -> OkOut:
    shift = get_org_row(db, Shift, shift_id, current_user.organization_id, "Shift")
    db.delete(shift)
    db.commit()
    return OkOut()


@app.post("/api/assignment/assign", response_model=AssignmentOut)
def assign_shift(
    payload: AssignPayload,
    current_user: User = Depends(get_manager_user),
    db: Session = Depends(get_db),
) -> AssignmentOut:
    org_id = current_user.organization_id
    shift = get_org_row(db, Shift, payload.shift_id, org_id, "Shift")
    get_org_row(db, Employee, payload.employee_id, org_id, "Employee")
    if payload.role_id is not None:
        get_org_row(db, Role, payload.role_id, org_id, "Role")

    assignment = db.scalar(select(Assignment).where(Assignment.shift_id == shift.id))
    if assignment is None:
        assignment = Assignment(shift_id=shift.id, employee_id=payload.employee_id, role_id=payload.role_id)
        db.add(assignment)
    else:
        assignment.employee_id = payload.employee_id
        assignment.role_id = payload.role_id
    db.commit()
    db.refresh(assignment)
    return AssignmentOut.model_validate(assignment)


@app.post("/api/assignment/unassign", response_model=OkOut)
def unassign_shift(
    payload: UnassignPayload,
    current_user: User = Depends(get_manager_user),
    db: Session = Depends(get_db),
) -> OkOut:
    shift = get_org_row(db, Shift, payload.shift_id, current_user.organization_id, "Shift")
    assignment = db.scalar(select(Assignment).where(Assignment.shift_id == shift.id))
    if assignment is not None:
        db.delete(assignment)
        db.commit()
    return OkOut()


@app.get("/api/timeoff", response_model=list[TimeOffWithEmployeeOut])
def list_time_off(
    current_user: User = Depends(get_manager_user),
    db: Session = Depends(get_db),
) -> list[TimeOffWithEmployeeOut]:
    rows = db.execute(
        select(TimeOffRequest, Employee, User)
        .join(Employee, TimeOffRequest.employee_id == Employee.id)
        .join(User, Employee.user_id == User.id)
        .where(TimeOffRequest.organization_id == current_user.organization_id)
        .order_by(TimeOffRequest.date, TimeOffRequest.id)
    ).all()
    result = []
    for request_row, employee, user in rows:
        item = TimeOffOut.model_validate(request_row)
        result.append(
            TimeOffWithEmployeeOut(
                **item.model_dump(),
                employee=TimeOffEmployeeOut(
                    id=employee.id,
                    user_id=employee.user_id,
                    location_id=employee.location_id,
                    user=EmployeeUserOut(name=user.name, email=user.email),
                ),
            )
        )
    return result


@app.get("/api/timeoff/my", response_model=list[TimeOffOut])
def list_my_time_off(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> list[TimeOffOut]:
    employee = get_own_employee(db, current_user)
    if employee is None:
        return []
    rows = db.scalars(
        select(TimeOffRequest)
        .where(TimeOffRequest.employee_id == employee.id)
        .order_by(TimeOffRequest.date, TimeOffRequest.id)
    ).all()
    return [TimeOffOut.model_validate(row) for row in rows]


@app.post("/api/timeoff", response_model=TimeOffOut, status_code=status.HTTP_201_CREATED)
def create_time_off(
    payload: TimeOffCreatePayload,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> TimeOffOut:
    employee = get_own_employee(db, current_user)
    if employee is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Employee not found")
    time_off = TimeOffRequest(
        organization_id=employee.organization_id,
        employee_id=employee.id,
        date=payload.date,
        is_full_day=payload.is_full_day,
        start_time=None if payload.is_full_day else payload.start_time,
        end_time=None if payload.is_full_day else payload.end_time,
        reason=payload.reason,
        status="pending",
    )
    db.add(time_off)
    db.commit()
    db.refresh(time_off)
    return TimeOffOut.model_validate(time_off)


@app.put("/api/timeoff/{request_id}/status", response_model=TimeOffOut)
def update_time_off_status(
    request_id: int,
    payload: TimeOffStatusPayload,
    current_user: User = Depends(get_manager_user),
    db: Session = Depends(get_db),
) -> TimeOffOut:
    time_off = get_org_row(db, TimeOffRequest, request_id, current_user.organization_id, "Request")
    time_off.status = payload.status
    db.commit()
    db.refresh(time_off)
    logger.info("Time-off request %s marked %s by user %s", time_off.id, time_off.status, current_user.id)
    return TimeOffOut.model_validate(time_off)


@app.get("/api/dashboard/stats", response_model=DashboardStatsOut)
def dashboard_stats(
    today: str | None = Query(default=None, alias="date"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> DashboardStatsOut:
    reference_day = date.fromisoformat(parse_query_date(today, "date")) if today else date.today()
    stats = build_dashboard_stats(db, current_user.organization_id, reference_day)
    return DashboardStatsOut.model_validate(stats)


@app.get("/api/payroll", response_model=PayrollOut)
def payroll(
    start_date: str | None = Query(default=None, alias="startDate"),
    end_date: str | None = Query(default=None, alias="endDate"),
    location_id: str | None = Query(default=None, alias="locationId"),
    current_user: User = Depends(get_manager_user),
    db: Session = Depends(get_db),
) -> PayrollOut:
    if not start_date or not end_date or not location_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing required query parameters")
    try:
        parsed_location_id = int(location_id)
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="locationId must be an integer") from None
    rows = build_payroll(
        db,
        current_user.organization_id,
        parse_query_date(start_date, "startDate"),
        parse_query_date(end_date, "endDate"),
        parsed_location_id,
    )
    return PayrollOut(data=[PayrollRowOut.model_validate(row) for row in rows])
