"""
Administration API Endpoints.

Back-office operations for administrators: user management, content
moderation, the resource library, agencies, reports, system settings and
the live activity stream.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta
from typing import Annotated, Any, AsyncIterator, Dict, List, Optional

from fastapi import APIRouter, Header, Query, Request, status
from sqlalchemy import func, or_
from sqlmodel import select
from sse_starlette.sse import EventSourceResponse

from indaba.core.database.base import utc_now
from indaba.core.database.entities.admin import ReportSchedule, SystemSettings
from indaba.core.database.entities.agencies import Agency, AgencyNanny
from indaba.core.database.entities.moderation import PRIORITY_RANK, FlaggedContent, KeywordFlag
from indaba.core.database.entities.nanny import Certification, HoursLogAudit
from indaba.core.database.entities.observations import Observation
from indaba.core.database.entities.resources import ContentTag, Resource, ResourceTag
from indaba.core.database.entities.users import NannyProfile, User, UserRole
from indaba.core.database.repositories.users import PROFILE_MODELS
from indaba.core.errors import BadRequestError, ConflictError, ForbiddenError, NotFoundError
from indaba.core.events import ActivityEventBus, activity_bus, emit_activity
from indaba.core.logging_config import get_logger
from indaba.core.models.io.admin import (
    AdminUserUpsert,
    AgencyAssignmentCreate,
    AgencyAssignmentUpdate,
    AgencyCreate,
    AgencyUpdate,
    ConnectionTest,
    ConnectionTestResult,
    ContentTagCreate,
    DateRange,
    FlagPriority,
    FlagStatus,
    FlagUpdate,
    KeywordFlagCreate,
    ReportScheduleCreate,
    ReportType,
    ResourceCreate,
    ResourceUpdate,
    SystemSettingsUpdate,
)
from indaba.core.security import hash_password
from indaba.server.core.config import settings
from indaba.server.schemas import KeepAliveEvent, SubscriptionStartedEvent, serialize_event
from indaba.server.services.common import dump_json, full_name, load_json, minutes_to_hours
from indaba.server.services.deps import (
    AdminDep,
    CurrentUserDep,
    ReposDep,
    SessionDep,
    authenticate_token,
    extract_bearer_token,
)
from indaba.server.services.hours import logged_minutes_since
from indaba.server.services.reports import build_report, next_run_date, resolve_range
from indaba.server.services.system import SECTIONS, check_connection, default_section

logger = get_logger(__name__)
router = APIRouter()


async def _user_read(repos: ReposDep, user: User) -> Dict[str, Any]:
    profile = await repos.users.get_profile(user)
    return {
        "id": user.id,
        "email": user.email,
        "role": UserRole(user.role).value,
        "display_name": user.display_name,
        "first_name": profile.first_name if profile else None,
        "last_name": profile.last_name if profile else None,
        "phone_number": profile.phone_number if profile else None,
        "last_login_at": user.last_login_at,
        "created_at": user.created_at,
    }


# =====================================================================
# Dashboard
# =====================================================================


async def _count(session: SessionDep, stmt) -> int:
    return (await session.execute(stmt)).scalar_one()


@router.get(
    "/dashboard",
    summary="Admin Dashboard",
    description="Platform totals, the newest users and a merged feed of recent activity.",
)
async def dashboard(current: AdminDep, session: SessionDep, repos: ReposDep) -> Dict[str, Any]:
    now = utc_now()
    stats = {
        "total_users": await _count(session, select(func.count(User.id))),
        "total_nannies": await _count(session, select(func.count(User.id)).where(User.role == UserRole.NANNY)),
        "total_parents": await _count(session, select(func.count(User.id)).where(User.role == UserRole.PARENT)),
        "total_observations": await _count(session, select(func.count(Observation.id))),
        "active_certifications": await _count(
            session,
            select(func.count(Certification.id)).where(
                Certification.status == "Active", Certification.expiry_date > now
            ),
        ),
        "pending_flags": await _count(
            session, select(func.count(FlaggedContent.id)).where(FlaggedContent.status == FlagStatus.PENDING.value)
        ),
    }

    users = (await session.execute(select(User).order_by(User.created_at.desc()).limit(10))).scalars().all()
    observations = (
        await session.execute(select(Observation).order_by(Observation.created_at.desc()).limit(10))
    ).scalars().all()
    flags = (
        await session.execute(select(FlaggedContent).order_by(FlaggedContent.created_at.desc()).limit(10))
    ).scalars().all()
    certifications = (
        await session.execute(select(Certification).order_by(Certification.created_at.desc()).limit(10))
    ).scalars().all()

    activity = (
        [
            {"id": u.id, "type": "user_created", "description": f"New {UserRole(u.role).value.lower()} account: {u.email}", "timestamp": u.created_at}
            for u in users
        ]
        + [
            {"id": o.id, "type": "observation_created", "description": f"New {o.type.value.lower()} observation", "timestamp": o.created_at}
            for o in observations
        ]
        + [
            {"id": f.id, "type": "content_flagged", "description": f"{f.content_type} flagged: {f.reason}", "timestamp": f.created_at}
            for f in flags
        ]
        + [
            {"id": c.id, "type": "certification_added", "description": f"Certification added: {c.name}", "timestamp": c.created_at}
            for c in certifications
        ]
    )
    activity.sort(key=lambda item: item["timestamp"], reverse=True)

    return {
        "stats": stats,
        "recent_users": [await _user_read(repos, user) for user in users[:5]],
        "recent_activity": activity[:10],
    }


# =====================================================================
# Users
# =====================================================================


@router.get("/users", summary="List Users", description="Users filtered by role and an email or name search.")
async def list_users(
    current: AdminDep,
    session: SessionDep,
    repos: ReposDep,
    role: Optional[UserRole] = None,
    search: Optional[str] = None,
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
) -> List[Dict[str, Any]]:
    stmt = select(User)
    if role is not None:
        stmt = stmt.where(User.role == role)
    if search:
        pattern = f"%{search.lower()}%"
        name_matches = [
            select(model.user_id).where(
                or_(func.lower(model.first_name).like(pattern), func.lower(model.last_name).like(pattern))
            )
            for model in PROFILE_MODELS.values()
        ]
        stmt = stmt.where(or_(func.lower(User.email).like(pattern), *(User.id.in_(q) for q in name_matches)))
    users = (await session.execute(stmt.order_by(User.created_at.desc()).offset(offset).limit(limit))).scalars().all()
    return [await _user_read(repos, user) for user in users]


@router.get("/users/{user_id}", summary="Get User", responses={404: {"description": "User not found"}})
async def get_user(user_id: str, current: AdminDep, session: SessionDep, repos: ReposDep) -> Dict[str, Any]:
    user = await session.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return await _user_read(repos, user)


@router.put(
    "/users",
    summary="Create or Update User",
    responses={
        400: {"description": "Password missing for a new user"},
        404: {"description": "User not found"},
        409: {"description": "Email already in use"},
    },
)
async def upsert_user(body: AdminUserUpsert, current: AdminDep, session: SessionDep, repos: ReposDep) -> Dict[str, Any]:
    """
    Create a user, or update one when **id** is given.

    The profile for the user's role is created or updated with the given
    names and phone number.
    """
    email = body.email.lower()
    existing = await repos.users.get_by_email(email)

    if body.id:
        user = await session.get(User, body.id)
        if user is None:
            raise NotFoundError("User not found")
        if existing is not None and existing.id != user.id:
            raise ConflictError("Email already in use")
        user.email = email
        user.role = body.role
        if body.password:
            user.password_hash = hash_password(body.password)
    else:
        if not body.password:
            raise BadRequestError("Password is required for new users")
        if existing is not None:
            raise ConflictError("Email already in use")
        user = User(email=email, password_hash=hash_password(body.password), role=body.role)
        session.add(user)
        await session.flush()
    if "display_name" in body.model_fields_set:
        user.display_name = body.display_name

    profile = await repos.users.get_profile(user)
    if profile is None:
        profile = PROFILE_MODELS[body.role](user_id=user.id, first_name=body.first_name, last_name=body.last_name)
        session.add(profile)
    profile.first_name = body.first_name
    profile.last_name = body.last_name
    profile.phone_number = body.phone_number

    await session.commit()
    if not body.id:
        emit_activity(
            "user_created",
            f"Admin created {body.role.value.lower()} account {email}",
            user_id=user.id,
            user_name=full_name(body.first_name, body.last_name),
        )
    logger.info(f"Admin {current.id} saved user {user.id}")
    return await _user_read(repos, user)


# =====================================================================
# Moderation
# =====================================================================


@router.get(
    "/flags",
    summary="List Flagged Content",
    description="Flagged content ordered by priority (Urgent first), then newest first.",
)
async def list_flags(
    current: AdminDep,
    session: SessionDep,
    status_filter: Annotated[Optional[FlagStatus], Query(alias="status")] = None,
    priority: Optional[FlagPriority] = None,
    content_type: Optional[str] = None,
    search: Optional[str] = None,
) -> List[Dict[str, Any]]:
    stmt = select(FlaggedContent)
    if status_filter is not None:
        stmt = stmt.where(FlaggedContent.status == status_filter.value)
    if priority is not None:
        stmt = stmt.where(FlaggedContent.priority == priority.value)
    if content_type:
        stmt = stmt.where(func.lower(FlaggedContent.content_type) == content_type.lower())
    if search:
        pattern = f"%{search.lower()}%"
        stmt = stmt.where(
            or_(
                func.lower(FlaggedContent.reason).like(pattern),
                func.lower(func.coalesce(FlaggedContent.content, "")).like(pattern),
            )
        )
    flags = list((await session.execute(stmt.order_by(FlaggedContent.created_at.desc()))).scalars().all())
    # stable sort keeps newest-first inside each priority
    flags.sort(key=lambda flag: PRIORITY_RANK.get(flag.priority, len(PRIORITY_RANK)))
    return [flag.model_dump(mode="json") for flag in flags]


@router.put(
    "/flags/{flag_id}",
    summary="Moderate Flagged Content",
    responses={404: {"description": "Flagged content not found"}},
)
async def update_flag(flag_id: str, body: FlagUpdate, current: AdminDep, session: SessionDep) -> Dict[str, Any]:
    flag = await session.get(FlaggedContent, flag_id)
    if flag is None:
        raise NotFoundError("Flagged content not found")
    if body.status is not None:
        flag.status = body.status.value
    if body.priority is not None:
        flag.priority = body.priority.value
    if "moderator_notes" in body.model_fields_set:
        flag.moderator_notes = body.moderator_notes
    flag.moderated_by = current.id
    flag.moderated_at = utc_now()
    await session.commit()
    await session.refresh(flag)

    emit_activity(
        "content_moderated",
        f"{flag.content_type} flag marked {flag.status}",
        user_id=current.id,
        content_id=flag.content_id,
    )
    return flag.model_dump(mode="json")


@router.post(
    "/keyword-flags",
    status_code=status.HTTP_201_CREATED,
    summary="Add Keyword Flag",
    responses={409: {"description": "Keyword already exists"}},
)
async def add_keyword_flag(body: KeywordFlagCreate, current: AdminDep, session: SessionDep) -> Dict[str, Any]:
    keyword = body.keyword.strip().lower()
    existing = await session.execute(select(KeywordFlag).where(func.lower(KeywordFlag.keyword) == keyword))
    if existing.scalars().first() is not None:
        raise ConflictError("Keyword already exists")
    flag = KeywordFlag(keyword=keyword, severity=body.severity.value, created_by=current.id)
    session.add(flag)
    await session.commit()
    return flag.model_dump(mode="json")


@router.get("/keyword-flags", summary="List Keyword Flags")
async def list_keyword_flags(current: AdminDep, session: SessionDep) -> List[Dict[str, Any]]:
    flags = await session.execute(select(KeywordFlag).order_by(KeywordFlag.keyword))
    return [flag.model_dump(mode="json") for flag in flags.scalars().all()]


@router.delete("/keyword-flags/{keyword_id}", summary="Delete Keyword Flag")
async def delete_keyword_flag(keyword_id: str, current: AdminDep, session: SessionDep):
    flag = await session.get(KeywordFlag, keyword_id)
    if flag is None:
        raise NotFoundError("Keyword not found")
    await session.delete(flag)
    await session.commit()
    return {"success": True, "deleted_keyword_id": keyword_id}


# =====================================================================
# Resources and content tags
# =====================================================================


async def _tags_for(session: SessionDep, resource_id: str) -> List[Dict[str, Any]]:
    tags = await session.execute(
        select(ContentTag)
        .join(ResourceTag, ResourceTag.tag_id == ContentTag.id)
        .where(ResourceTag.resource_id == resource_id)
        .order_by(ContentTag.name)
    )
    return [tag.model_dump(mode="json") for tag in tags.scalars().all()]


async def _link_tags(session: SessionDep, resource_id: str, tag_ids: List[str]) -> None:
    for tag_id in dict.fromkeys(tag_ids):
        if await session.get(ContentTag, tag_id) is None:
            raise BadRequestError(f"Unknown content tag: {tag_id}")
        session.add(ResourceTag(resource_id=resource_id, tag_id=tag_id))


async def _resource_read(session: SessionDep, resource: Resource) -> Dict[str, Any]:
    return {
        **resource.model_dump(mode="json"),
        "visible_to": load_json(resource.visible_to, []),
        "tags": await _tags_for(session, resource.id),
    }


@router.post("/resources", status_code=status.HTTP_201_CREATED, summary="Add Resource")
async def add_resource(body: ResourceCreate, current: AdminDep, session: SessionDep) -> Dict[str, Any]:
    resource = Resource(
        title=body.title,
        description=body.description,
        content_url=str(body.content_url),
        resource_type=body.resource_type,
        visible_to=dump_json([role.value for role in body.visible_to]),
        developmental_stage=body.developmental_stage,
        created_by=current.id,
    )
    session.add(resource)
    await session.flush()
    await _link_tags(session, resource.id, body.tags or [])
    await session.commit()
    return await _resource_read(session, resource)


@router.get(
    "/resources",
    summary="List Resources",
    description="Resources filtered by type, audience role, developmental stage and a text search.",
)
async def list_resources(
    current: AdminDep,
    session: SessionDep,
    resource_type: Optional[str] = None,
    visible_to: Optional[UserRole] = None,
    developmental_stage: Optional[str] = None,
    search: Optional[str] = None,
) -> List[Dict[str, Any]]:
    stmt = select(Resource)
    if resource_type:
        stmt = stmt.where(Resource.resource_type == resource_type)
    if visible_to is not None:
        stmt = stmt.where(Resource.visible_to.contains(f'"{visible_to.value}"'))
    if developmental_stage:
        stmt = stmt.where(Resource.developmental_stage == developmental_stage)
    if search:
        pattern = f"%{search.lower()}%"
        stmt = stmt.where(
            or_(func.lower(Resource.title).like(pattern), func.lower(Resource.description).like(pattern))
        )
    resources = (await session.execute(stmt.order_by(Resource.created_at.desc()))).scalars().all()
    return [await _resource_read(session, resource) for resource in resources]


@router.put("/resources/{resource_id}", summary="Update Resource", responses={404: {"description": "Resource not found"}})
async def update_resource(
    resource_id: str, body: ResourceUpdate, current: AdminDep, session: SessionDep
) -> Dict[str, Any]:
    resource = await session.get(Resource, resource_id)
    if resource is None:
        raise NotFoundError("Resource not found")

    changes = body.model_dump(exclude_unset=True, exclude={"tags", "visible_to", "content_url"})
    for field, value in changes.items():
        setattr(resource, field, value)
    if body.content_url is not None:
        resource.content_url = str(body.content_url)
    if body.visible_to is not None:
        resource.visible_to = dump_json([role.value for role in body.visible_to])

    if body.tags is not None:
        links = await session.execute(select(ResourceTag).where(ResourceTag.resource_id == resource.id))
        for link in links.scalars().all():
            await session.delete(link)
        await session.flush()
        await _link_tags(session, resource.id, body.tags)

    await session.commit()
    await session.refresh(resource)
    return await _resource_read(session, resource)


@router.post(
    "/content-tags",
    status_code=status.HTTP_201_CREATED,
    summary="Add Content Tag",
    responses={409: {"description": "Tag already exists"}},
)
async def add_content_tag(body: ContentTagCreate, current: AdminDep, session: SessionDep) -> Dict[str, Any]:
    existing = await session.execute(select(ContentTag).where(func.lower(ContentTag.name) == body.name.lower()))
    if existing.scalars().first() is not None:
        raise ConflictError("Tag already exists")
    tag = ContentTag(name=body.name, category=body.category)
    session.add(tag)
    await session.commit()
    return tag.model_dump(mode="json")


@router.get("/content-tags", summary="List Content Tags", description="Available to every signed-in role.")
async def list_content_tags(current: CurrentUserDep, session: SessionDep) -> List[Dict[str, Any]]:
    tags = await session.execute(select(ContentTag).order_by(ContentTag.name))
    return [tag.model_dump(mode="json") for tag in tags.scalars().all()]


# =====================================================================
# Agencies
# =====================================================================


async def _get_agency(session: SessionDep, agency_id: str) -> Agency:
    agency = await session.get(Agency, agency_id)
    if agency is None:
        raise NotFoundError("Agency not found")
    return agency


@router.get("/agencies", summary="List Agencies")
async def list_agencies(current: AdminDep, session: SessionDep, search: Optional[str] = None) -> List[Dict[str, Any]]:
    counts = (
        select(AgencyNanny.agency_id, func.count(AgencyNanny.id).label("assignments"))
        .group_by(AgencyNanny.agency_id)
        .subquery()
    )
    stmt = select(Agency, func.coalesce(counts.c.assignments, 0)).outerjoin(counts, counts.c.agency_id == Agency.id)
    if search:
        pattern = f"%{search.lower()}%"
        stmt = stmt.where(
            or_(
                func.lower(Agency.name).like(pattern),
                func.lower(func.coalesce(Agency.contact_person, "")).like(pattern),
                func.lower(func.coalesce(Agency.contact_email, "")).like(pattern),
            )
        )
    rows = await session.execute(stmt.order_by(Agency.name))
    return [
        {**agency.model_dump(mode="json"), "nanny_assignments_count": count}
        for agency, count in rows.all()
    ]


@router.post("/agencies", status_code=status.HTTP_201_CREATED, summary="Add Agency")
async def add_agency(body: AgencyCreate, current: AdminDep, session: SessionDep) -> Dict[str, Any]:
    agency = Agency(**body.model_dump())
    session.add(agency)
    await session.commit()
    logger.info(f"Admin {current.id} added agency {agency.id}")
    return agency.model_dump(mode="json")


@router.put("/agencies/{agency_id}", summary="Update Agency", responses={404: {"description": "Agency not found"}})
async def update_agency(agency_id: str, body: AgencyUpdate, current: AdminDep, session: SessionDep) -> Dict[str, Any]:
    agency = await _get_agency(session, agency_id)
    for field, value in body.model_dump(exclude_unset=True).items():
        setattr(agency, field, value)
    await session.commit()
    await session.refresh(agency)
    return agency.model_dump(mode="json")


@router.get(
    "/agencies/{agency_id}/nannies",
    summary="List Agency Nannies",
    description="Assignments of the agency with each nanny's email, active certifications and recent hours.",
)
async def list_agency_nannies(agency_id: str, current: AdminDep, session: SessionDep) -> List[Dict[str, Any]]:
    await _get_agency(session, agency_id)
    rows = await session.execute(
        select(AgencyNanny, NannyProfile, User)
        .join(NannyProfile, NannyProfile.id == AgencyNanny.nanny_id)
        .join(User, User.id == NannyProfile.user_id)
        .where(AgencyNanny.agency_id == agency_id)
        .order_by(NannyProfile.first_name)
    )
    now = utc_now()
    assignments = []
    for assignment, nanny, user in rows.all():
        certifications = await session.execute(
            select(Certification).where(
                Certification.nanny_id == nanny.id,
                Certification.status == "Active",
                Certification.expiry_date > now,
            )
        )
        assignments.append(
            {
                **assignment.model_dump(mode="json"),
                "nanny": {
                    "id": nanny.id,
                    "first_name": nanny.first_name,
                    "last_name": nanny.last_name,
                    "email": user.email,
                    "profile_image_url": nanny.profile_image_url,
                    "active_certifications": [c.model_dump(mode="json") for c in certifications.scalars().all()],
                    "recent_hours": minutes_to_hours(
                        await logged_minutes_since(session, nanny.id, now - timedelta(days=30))
                    ),
                },
            }
        )
    return assignments


@router.post(
    "/agencies/{agency_id}/nannies",
    status_code=status.HTTP_201_CREATED,
    summary="Assign Nanny to Agency",
    responses={
        404: {"description": "Agency or nanny not found"},
        409: {"description": "Nanny already assigned"},
    },
)
async def assign_nanny(
    agency_id: str, body: AgencyAssignmentCreate, current: AdminDep, session: SessionDep
) -> Dict[str, Any]:
    await _get_agency(session, agency_id)
    if await session.get(NannyProfile, body.nanny_id) is None:
        raise NotFoundError("Nanny not found")
    duplicate = await session.execute(
        select(AgencyNanny).where(AgencyNanny.agency_id == agency_id, AgencyNanny.nanny_id == body.nanny_id)
    )
    if duplicate.scalars().first() is not None:
        raise ConflictError("Nanny is already assigned to this agency")

    assignment = AgencyNanny(agency_id=agency_id, **body.model_dump())
    session.add(assignment)
    await session.commit()
    return assignment.model_dump(mode="json")


@router.put(
    "/agencies/assignments/{assignment_id}",
    summary="Update Agency Assignment",
    responses={404: {"description": "Assignment not found"}},
)
async def update_assignment(
    assignment_id: str, body: AgencyAssignmentUpdate, current: AdminDep, session: SessionDep
) -> Dict[str, Any]:
    assignment = await session.get(AgencyNanny, assignment_id)
    if assignment is None:
        raise NotFoundError("Assignment not found")
    for field, value in body.model_dump(exclude_unset=True).items():
        setattr(assignment, field, value)
    await session.commit()
    await session.refresh(assignment)
    return assignment.model_dump(mode="json")


# =====================================================================
# Reports
# =====================================================================


@router.get(
    "/reports/data",
    summary="Report Data",
    description="Aggregate a report over a preset or custom date range.",
    responses={400: {"description": "Invalid custom range"}},
)
async def report_data(
    current: AdminDep,
    session: SessionDep,
    report_type: ReportType,
    date_range: DateRange = DateRange.THIRTY_DAYS,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Build report data.

    - **report_type**: nannyPerformance, childMilestones, observations or userGrowth.
    - **date_range**: 7days, 30days, 90days, year or custom.
    - **start_date** / **end_date**: Required for a custom range.
    """
    start, end = resolve_range(date_range, start_date, end_date)
    return await build_report(session, report_type, date_range, start, end)


def _schedule_read(schedule: ReportSchedule) -> Dict[str, Any]:
    return {
        **schedule.model_dump(mode="json"),
        "format": load_json(schedule.format, []),
        "recipients": load_json(schedule.recipients, []),
    }


@router.post("/reports/schedules", status_code=status.HTTP_201_CREATED, summary="Schedule Report")
async def schedule_report(body: ReportScheduleCreate, current: AdminDep, session: SessionDep) -> Dict[str, Any]:
    schedule = ReportSchedule(
        name=body.name,
        description=body.description,
        report_type=body.report_type.value,
        frequency=body.frequency,
        format=dump_json(body.format),
        recipients=dump_json([str(r) for r in body.recipients]),
        filters=body.filters,
        next_run_date=next_run_date(body.frequency),
        created_by=current.id,
    )
    session.add(schedule)
    await session.commit()
    logger.info(f"Admin {current.id} scheduled {body.frequency} report {schedule.id}")
    return _schedule_read(schedule)


@router.get("/reports/schedules", summary="List Scheduled Reports")
async def list_schedules(current: AdminDep, session: SessionDep) -> List[Dict[str, Any]]:
    schedules = await session.execute(select(ReportSchedule).order_by(ReportSchedule.next_run_date))
    return [_schedule_read(schedule) for schedule in schedules.scalars().all()]


@router.get(
    "/audit-logs",
    summary="Audit Logs",
    description="Login history of the latest 100 users and the latest hours-log changes.",
)
async def audit_logs(current: AdminDep, session: SessionDep) -> Dict[str, Any]:
    users = await session.execute(select(User).order_by(User.created_at.desc()).limit(100))
    audits = await session.execute(select(HoursLogAudit).order_by(HoursLogAudit.created_at.desc()).limit(100))
    return {
        "user_logins": [
            user.model_dump(mode="json", include={"id", "email", "role", "created_at", "last_login_at"})
            for user in users.scalars().all()
        ],
        "hours_log_audits": [
            {**audit.model_dump(mode="json"), "previous_data": load_json(audit.previous_data)}
            for audit in audits.scalars().all()
        ],
    }


# =====================================================================
# System settings
# =====================================================================


async def _stored_sections(session: SessionDep) -> Dict[str, SystemSettings]:
    rows = await session.execute(select(SystemSettings))
    return {row.section: row for row in rows.scalars().all()}


async def _settings_read(session: SessionDep) -> Dict[str, Any]:
    stored = await _stored_sections(session)
    return {
        section: load_json(stored[section].value) if section in stored else default_section(section)
        for section in SECTIONS
    }


@router.get("/system-settings", summary="Get System Settings")
async def get_system_settings(current: AdminDep, session: SessionDep) -> Dict[str, Any]:
    return await _settings_read(session)


@router.put(
    "/system-settings",
    summary="Update System Settings",
    description="Replace the provided sections; sections left out keep their stored value.",
)
async def update_system_settings(
    body: SystemSettingsUpdate, current: AdminDep, session: SessionDep
) -> Dict[str, Any]:
    stored = await _stored_sections(session)
    for section, value in body.model_dump(exclude_none=True).items():
        row = stored.get(section)
        if row is None:
            row = SystemSettings(section=section, value="{}")
            session.add(row)
        row.value = dump_json(value)
        row.updated_by = current.id
    await session.commit()
    logger.info(f"Admin {current.id} updated system settings: {sorted(body.model_dump(exclude_none=True))}")
    return await _settings_read(session)


@router.post(
    "/system-settings/test-connection",
    response_model=ConnectionTestResult,
    summary="Test Provider Connection",
    responses={400: {"description": "Required provider setting missing"}},
)
async def test_connection(body: ConnectionTest, current: AdminDep) -> ConnectionTestResult:
    """
    Check that an AI, email, SMS or push provider has the settings it needs.

    Provider ``none`` always succeeds.
    """
    return ConnectionTestResult(success=True, message=check_connection(body.channel, body.provider, body.config))


# =====================================================================
# Activity stream
# =====================================================================


async def activity_stream(
    request: Request, bus: ActivityEventBus, keepalive_seconds: float
) -> AsyncIterator[Dict[str, Any]]:
    """Subscribe to ``bus`` and yield SSE messages until the client disconnects.

    The subscription is held only while the generator runs.
    """
    queue = bus.subscribe()
    try:
        yield {
            "event": "subscription_started",
            "data": serialize_event(SubscriptionStartedEvent(subscriber_count=bus.subscriber_count)),
        }
        while not await request.is_disconnected():
            try:
                event = await asyncio.wait_for(queue.get(), timeout=keepalive_seconds)
            except asyncio.TimeoutError:
                yield {"comment": KeepAliveEvent().comment}
                continue
            yield {"event": event.type, "id": event.id, "data": serialize_event(event)}
    finally:
        bus.unsubscribe(queue)
        logger.info("Activity stream closed")


@router.get(
    "/activity-stream",
    summary="Activity Stream",
    description=(
        "Server-sent events of platform activity. Browsers that cannot set headers on an "
        "EventSource may pass the access token as the `token` query parameter."
    ),
    response_description="A text/event-stream of activity events.",
    responses={
        401: {"description": "Missing or invalid token"},
        403: {"description": "Caller is not an admin"},
    },
)
async def stream_activity(
    request: Request,
    session: SessionDep,
    authorization: Annotated[Optional[str], Header()] = None,
    token: Optional[str] = None,
):
    current = await authenticate_token(extract_bearer_token(authorization) or token, session)
    if current.role != UserRole.ADMIN:
        raise ForbiddenError()

    logger.info(f"Admin {current.id} opened the activity stream")
    return EventSourceResponse(activity_stream(request, activity_bus, settings.activity_feed.keepalive_seconds))
