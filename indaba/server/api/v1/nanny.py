"""
Nanny API Endpoints.

Everything a nanny manages about their own work: profile and
certifications, access requests to families, logged hours with their audit
trail, the live shift timer and the combined schedule of shifts and routines.
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Query, status
from sqlalchemy import func, or_
from sqlmodel import select

from indaba.core.database.base import utc_now
from indaba.core.database.entities.families import Child, Family, FamilyNanny, FamilyNannyRequest
from indaba.core.database.entities.nanny import ActiveShift, Certification, HoursLog, HoursLogAudit, Routine
from indaba.core.database.entities.users import NannyProfile, ParentProfile
from indaba.core.database.repositories import QueryBuilder
from indaba.core.errors import BadRequestError, ForbiddenError, NotFoundError
from indaba.core.events import emit_activity
from indaba.core.logging_config import get_logger
from indaba.core.models.io.nanny import (
    CertificationRead,
    CertificationRequest,
    CrudOperation,
    FamilyAccessRequest,
    HoursLogCreate,
    HoursLogPage,
    HoursLogRead,
    HoursLogUpdate,
    HoursSummary,
    NannyProfileUpdate,
    ShiftAction,
    ShiftEnd,
    ShiftPauseResume,
    ShiftStart,
)
from indaba.server.services.access import require_nanny_profile
from indaba.server.services.common import (
    age_in_years,
    dump_json,
    expiry_info,
    full_name,
    inclusive_end,
    load_json,
    minutes_to_hours,
    naive_utc,
    start_of_day,
)
from indaba.server.services.deps import NannyDep, ReposDep, SessionDep
from indaba.server.services.hours import (
    build_schedule,
    compute_duration,
    group_by_date,
    is_overtime,
    logged_minutes_since,
    month_start,
    paused_minutes,
    shift_elapsed_minutes,
    week_start,
)

logger = get_logger(__name__)
router = APIRouter()

LOCKED_STATUSES = {"APPROVED", "REJECTED"}


def certification_read(certification: Certification) -> CertificationRead:
    return CertificationRead(
        id=certification.id,
        name=certification.name,
        issuing_authority=certification.issuing_authority,
        date_issued=certification.date_issued,
        expiry_date=certification.expiry_date,
        certificate_url=certification.certificate_url,
        status=certification.status,
        **expiry_info(certification.expiry_date),
    )


def _hours_read(log: HoursLog, family_names: Dict[str, str]) -> HoursLogRead:
    return HoursLogRead(
        id=log.id,
        date=log.date,
        start_time=log.start_time,
        end_time=log.end_time,
        duration_minutes=log.duration_minutes,
        break_minutes=log.break_minutes,
        is_overtime=log.is_overtime,
        is_manual_entry=log.is_manual_entry,
        status=log.status,
        notes=log.notes,
        family_id=log.family_id,
        family_name=family_names.get(log.family_id or "", "Unknown Family"),
    )


async def _family_names(session: SessionDep, family_ids) -> Dict[str, str]:
    ids = {family_id for family_id in family_ids if family_id}
    if not ids:
        return {}
    result = await session.execute(select(Family.id, Family.name).where(Family.id.in_(ids)))
    return dict(result.all())


async def _ensure_assigned(repos: ReposDep, nanny: NannyProfile, family_id: Optional[str]) -> None:
    if family_id and not await repos.families.is_nanny_assigned(nanny.id, family_id):
        raise BadRequestError("You are not assigned to this family")


# =====================================================================
# Profile and certifications
# =====================================================================


@router.get(
    "/profile",
    summary="Get Nanny Profile",
    description="The nanny's profile, certifications and the families they are actively assigned to.",
    responses={404: {"description": "Nanny profile not found"}},
)
async def get_profile(current: NannyDep, session: SessionDep, repos: ReposDep) -> Dict[str, Any]:
    nanny = await require_nanny_profile(current, repos)

    certifications = await session.execute(
        select(Certification).where(Certification.nanny_id == nanny.id).order_by(Certification.expiry_date)
    )

    family_ids = await repos.families.active_family_ids(nanny.id)
    families = []
    if family_ids:
        rows = await session.execute(
            select(Family, ParentProfile)
            .join(ParentProfile, ParentProfile.id == Family.parent_id)
            .where(Family.id.in_(family_ids))
            .order_by(Family.name)
        )
        for family, parent in rows.all():
            children = await session.execute(
                select(Child)
                .where(Child.family_id == family.id, Child.is_archived == False)  # noqa: E712
                .order_by(Child.first_name)
            )
            families.append(
                {
                    "id": family.id,
                    "name": family.name,
                    "parent": {
                        "id": parent.id,
                        "first_name": parent.first_name,
                        "last_name": parent.last_name,
                        "phone_number": parent.phone_number,
                    },
                    "children": [
                        {
                            "id": child.id,
                            "first_name": child.first_name,
                            "last_name": child.last_name,
                            "age": age_in_years(child.birth_date),
                        }
                        for child in children.scalars().all()
                    ],
                }
            )

    profile = nanny.model_dump(mode="json")
    profile["specialties"] = load_json(nanny.specialties, [])
    profile["languages"] = load_json(nanny.languages, [])
    profile["email"] = current.user.email
    profile["display_name"] = current.user.display_name
    profile["pronouns"] = current.user.pronouns
    return {
        "profile": profile,
        "certifications": [certification_read(c) for c in certifications.scalars().all()],
        "families": families,
    }


@router.put(
    "/profile",
    summary="Update Nanny Profile",
    responses={404: {"description": "Nanny profile not found"}},
)
async def update_profile(body: NannyProfileUpdate, current: NannyDep, session: SessionDep, repos: ReposDep):
    """
    Update the nanny profile.

    - **first_name** / **last_name**: Required.
    - **specialties** / **languages**: Lists of strings.
    - **display_name** / **pronouns**: Stored on the user account.
    """
    nanny = await require_nanny_profile(current, repos)
    for field in (
        "first_name",
        "last_name",
        "phone_number",
        "location",
        "bio",
        "availability",
        "profile_image_url",
        "cover_image_url",
        "years_of_experience",
    ):
        if field in body.model_fields_set:
            setattr(nanny, field, getattr(body, field))
    if "specialties" in body.model_fields_set:
        nanny.specialties = dump_json(body.specialties)
    if "languages" in body.model_fields_set:
        nanny.languages = dump_json(body.languages)
    if "display_name" in body.model_fields_set:
        current.user.display_name = body.display_name
    if "pronouns" in body.model_fields_set:
        current.user.pronouns = body.pronouns
    await session.commit()
    return {"success": True, "profile_id": nanny.id}


@router.post(
    "/certifications",
    summary="Manage Certification",
    description="Create, update or delete one of the nanny's certifications.",
    responses={
        400: {"description": "Missing certification id"},
        403: {"description": "Certification belongs to another nanny"},
        404: {"description": "Certification not found"},
    },
)
async def manage_certification(body: CertificationRequest, current: NannyDep, session: SessionDep, repos: ReposDep):
    nanny = await require_nanny_profile(current, repos)
    data = body.certification
    certificate_url = str(data.certificate_url) if data.certificate_url else None

    if body.operation == CrudOperation.CREATE:
        certification = Certification(
            nanny_id=nanny.id,
            name=data.name,
            issuing_authority=data.issuing_authority,
            date_issued=naive_utc(data.date_issued),
            expiry_date=naive_utc(data.expiry_date),
            certificate_url=certificate_url,
            status=data.status.value,
        )
        session.add(certification)
        await session.commit()
        logger.info(f"Nanny {nanny.id} added certification {certification.id}")
        emit_activity(
            "certification_added",
            f"{full_name(nanny.first_name, nanny.last_name)} added certification {data.name}",
            user_id=current.id,
            resource_id=certification.id,
        )
        return {"success": True, "certification": certification_read(certification)}

    if not data.id:
        raise BadRequestError(f"Certification ID is required for {body.operation.value.lower()}")
    certification = await session.get(Certification, data.id)
    if certification is None:
        raise NotFoundError("Certification not found")
    if certification.nanny_id != nanny.id:
        raise ForbiddenError("You don't have permission to modify this certification")

    if body.operation == CrudOperation.DELETE:
        await session.delete(certification)
        await session.commit()
        return {"success": True, "certification": None}

    certification.name = data.name
    certification.issuing_authority = data.issuing_authority
    certification.date_issued = naive_utc(data.date_issued)
    certification.expiry_date = naive_utc(data.expiry_date)
    certification.certificate_url = certificate_url
    certification.status = data.status.value
    await session.commit()
    return {"success": True, "certification": certification_read(certification)}


# =====================================================================
# Families
# =====================================================================


@router.get(
    "/families/search",
    summary="Search Families",
    description="Find families to request access to by family or parent name.",
)
async def search_families(
    current: NannyDep,
    session: SessionDep,
    repos: ReposDep,
    search: str = Query(min_length=1),
) -> List[Dict[str, Any]]:
    """
    Search families.

    Families the nanny is already assigned to, or has a pending request
    for, are left out. At most ten results are returned.
    """
    nanny = await require_nanny_profile(current, repos)
    assigned = await session.execute(select(FamilyNanny.family_id).where(FamilyNanny.nanny_id == nanny.id))
    requested = await session.execute(
        select(FamilyNannyRequest.family_id).where(
            FamilyNannyRequest.nanny_id == nanny.id, FamilyNannyRequest.status == "pending"
        )
    )
    excluded = set(assigned.scalars().all()) | set(requested.scalars().all())

    pattern = f"%{search.lower()}%"
    stmt = (
        select(Family, ParentProfile)
        .join(ParentProfile, ParentProfile.id == Family.parent_id)
        .where(
            or_(
                func.lower(Family.name).like(pattern),
                func.lower(ParentProfile.first_name).like(pattern),
                func.lower(ParentProfile.last_name).like(pattern),
            )
        )
        .order_by(Family.name)
    )
    if excluded:
        stmt = stmt.where(Family.id.not_in(excluded))
    rows = (await session.execute(stmt.limit(10))).all()
    return [
        {
            "id": family.id,
            "name": family.name,
            "parent_name": full_name(parent.first_name, parent.last_name),
        }
        for family, parent in rows
    ]


@router.post(
    "/families/request-access",
    status_code=status.HTTP_201_CREATED,
    summary="Request Family Access",
    description="Ask a family's parent to be assigned to the family.",
    responses={
        400: {"description": "Already assigned or already requested"},
        404: {"description": "Family not found"},
    },
)
async def request_family_access(body: FamilyAccessRequest, current: NannyDep, session: SessionDep, repos: ReposDep):
    nanny = await require_nanny_profile(current, repos)
    family = await session.get(Family, body.family_id)
    if family is None:
        raise NotFoundError("Family not found")
    if await repos.families.is_nanny_assigned(nanny.id, family.id):
        raise BadRequestError("You are already assigned to this family")

    pending = await session.execute(
        select(FamilyNannyRequest).where(
            FamilyNannyRequest.nanny_id == nanny.id,
            FamilyNannyRequest.family_id == family.id,
            FamilyNannyRequest.status == "pending",
        )
    )
    if pending.scalars().first() is not None:
        raise BadRequestError("You have already requested access to this family")

    access_request = FamilyNannyRequest(family_id=family.id, nanny_id=nanny.id, message=body.message)
    session.add(access_request)
    await session.commit()
    logger.info(f"Nanny {nanny.id} requested access to family {family.id}")
    return {"success": True, "message": "Access request sent", "request_id": access_request.id}


# =====================================================================
# Hours
# =====================================================================


@router.get(
    "/hours",
    response_model=HoursLogPage,
    summary="List Hours Logs",
    description="Cursor-paginated hours logs, newest date first, with weekly and monthly totals.",
)
async def list_hours(
    current: NannyDep,
    session: SessionDep,
    repos: ReposDep,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    cursor: Optional[str] = None,
    limit: int = Query(default=20, ge=1, le=100),
) -> HoursLogPage:
    """
    List hours logs.

    ``weekly_hours`` counts from the most recent Sunday and ``monthly_hours``
    from the first of the month, independent of the date filters.
    """
    nanny = await require_nanny_profile(current, repos)
    stmt = select(HoursLog).where(HoursLog.nanny_id == nanny.id)
    if start_date:
        stmt = stmt.where(HoursLog.date >= start_of_day(naive_utc(start_date)))
    if end_date:
        stmt = stmt.where(HoursLog.date < inclusive_end(end_date))
    stmt = QueryBuilder.apply_cursor(stmt, HoursLog, cursor, "date")
    stmt = stmt.order_by(HoursLog.date.desc(), HoursLog.id.desc()).limit(limit + 1)
    logs = list((await session.execute(stmt)).scalars().all())

    next_cursor = None
    if len(logs) > limit:
        logs = logs[:limit]
        next_cursor = logs[-1].id

    now = utc_now()
    names = await _family_names(session, (log.family_id for log in logs))
    return HoursLogPage(
        items=[_hours_read(log, names) for log in logs],
        next_cursor=next_cursor,
        summary=HoursSummary(
            weekly_hours=minutes_to_hours(await logged_minutes_since(session, nanny.id, week_start(now))),
            monthly_hours=minutes_to_hours(await logged_minutes_since(session, nanny.id, month_start(now))),
        ),
    )


@router.post(
    "/hours",
    response_model=HoursLogRead,
    status_code=status.HTTP_201_CREATED,
    summary="Log Hours",
    description="Manually log worked hours. Shifts ending before they start cross midnight.",
    responses={400: {"description": "Not assigned to the family, or no time left after breaks"}},
)
async def create_hours(body: HoursLogCreate, current: NannyDep, session: SessionDep, repos: ReposDep) -> HoursLogRead:
    nanny = await require_nanny_profile(current, repos)
    await _ensure_assigned(repos, nanny, body.family_id)
    duration = compute_duration(body.start_time, body.end_time, body.break_minutes)

    log = HoursLog(
        nanny_id=nanny.id,
        family_id=body.family_id,
        date=start_of_day(naive_utc(body.date)),
        start_time=body.start_time,
        end_time=body.end_time,
        duration_minutes=duration,
        break_minutes=body.break_minutes,
        is_overtime=is_overtime(duration),
        notes=body.notes,
    )
    session.add(log)
    await session.commit()
    logger.info(f"Nanny {nanny.id} logged {duration} minutes (log {log.id})")
    return _hours_read(log, await _family_names(session, [log.family_id]))


async def _own_log(session: SessionDep, nanny: NannyProfile, log_id: str) -> HoursLog:
    log = await session.get(HoursLog, log_id)
    if log is None:
        raise NotFoundError("Hours log not found")
    if log.nanny_id != nanny.id:
        raise ForbiddenError("You don't have permission to modify this hours log")
    return log


def _audit(log: HoursLog, user_id: str, action: str) -> HoursLogAudit:
    return HoursLogAudit(
        hours_log_id=log.id,
        user_id=user_id,
        action=action,
        previous_data=json.dumps(log.model_dump(mode="json")),
    )


@router.put(
    "/hours/{log_id}",
    response_model=HoursLogRead,
    summary="Update Hours Log",
    description="Edit a pending hours log. Every change is recorded in the audit trail.",
    responses={
        400: {"description": "Log already approved or rejected"},
        403: {"description": "Log belongs to another nanny"},
        404: {"description": "Hours log not found"},
    },
)
async def update_hours(
    log_id: str, body: HoursLogUpdate, current: NannyDep, session: SessionDep, repos: ReposDep
) -> HoursLogRead:
    nanny = await require_nanny_profile(current, repos)
    log = await _own_log(session, nanny, log_id)
    if log.status in LOCKED_STATUSES:
        raise BadRequestError(f"Cannot modify a {log.status.lower()} hours log")
    if "family_id" in body.model_fields_set:
        await _ensure_assigned(repos, nanny, body.family_id)

    session.add(_audit(log, current.id, "UPDATE"))

    if body.date is not None:
        log.date = start_of_day(naive_utc(body.date))
    if "family_id" in body.model_fields_set:
        log.family_id = body.family_id
    if "notes" in body.model_fields_set:
        log.notes = body.notes
    if body.start_time is not None or body.end_time is not None or body.break_minutes is not None:
        log.start_time = body.start_time or log.start_time
        log.end_time = body.end_time or log.end_time
        if body.break_minutes is not None:
            log.break_minutes = body.break_minutes
        log.duration_minutes = compute_duration(log.start_time, log.end_time, log.break_minutes)
        log.is_overtime = is_overtime(log.duration_minutes)

    await session.commit()
    await session.refresh(log)
    return _hours_read(log, await _family_names(session, [log.family_id]))


@router.delete(
    "/hours/{log_id}",
    summary="Delete Hours Log",
    responses={
        400: {"description": "Log already approved"},
        403: {"description": "Log belongs to another nanny"},
        404: {"description": "Hours log not found"},
    },
)
async def delete_hours(log_id: str, current: NannyDep, session: SessionDep, repos: ReposDep):
    nanny = await require_nanny_profile(current, repos)
    log = await _own_log(session, nanny, log_id)
    if log.status == "APPROVED":
        raise BadRequestError("Cannot delete an approved hours log")
    session.add(_audit(log, current.id, "DELETE"))
    await session.delete(log)
    await session.commit()
    logger.info(f"Nanny {nanny.id} deleted hours log {log_id}")
    return {"success": True, "deleted_hours_log_id": log_id}


# =====================================================================
# Shift timer
# =====================================================================


async def _active_shift(session: SessionDep, nanny: NannyProfile) -> Optional[ActiveShift]:
    result = await session.execute(select(ActiveShift).where(ActiveShift.nanny_id == nanny.id))
    return result.scalars().first()


async def _require_shift(session: SessionDep, nanny: NannyProfile) -> ActiveShift:
    shift = await _active_shift(session, nanny)
    if shift is None:
        raise NotFoundError("No active shift found")
    return shift


async def _shift_state(session: SessionDep, shift: ActiveShift) -> Dict[str, Any]:
    names = await _family_names(session, [shift.family_id])
    return {
        "id": shift.id,
        "start_time": shift.start_time,
        "duration_minutes": shift_elapsed_minutes(shift, utc_now()),
        "break_minutes": shift.break_minutes,
        "is_paused": shift.is_paused,
        "pause_start_time": shift.pause_start_time,
        "family_id": shift.family_id,
        "family_name": names.get(shift.family_id, "Unknown Family") if shift.family_id else None,
        "notes": shift.notes,
    }


@router.get("/shift/current", summary="Current Shift", description="The nanny's running shift, if any.")
async def current_shift(current: NannyDep, session: SessionDep, repos: ReposDep) -> Dict[str, Any]:
    nanny = await require_nanny_profile(current, repos)
    shift = await _active_shift(session, nanny)
    if shift is None:
        return {"has_active_shift": False}
    return {"has_active_shift": True, "shift": await _shift_state(session, shift)}


@router.post(
    "/shift/start",
    status_code=status.HTTP_201_CREATED,
    summary="Start Shift",
    responses={400: {"description": "A shift is already running, or not assigned to the family"}},
)
async def start_shift(body: ShiftStart, current: NannyDep, session: SessionDep, repos: ReposDep) -> Dict[str, Any]:
    nanny = await require_nanny_profile(current, repos)
    if await _active_shift(session, nanny) is not None:
        raise BadRequestError("You already have an active shift")
    await _ensure_assigned(repos, nanny, body.family_id)

    shift = ActiveShift(nanny_id=nanny.id, family_id=body.family_id, notes=body.notes)
    session.add(shift)
    await session.commit()
    logger.info(f"Nanny {nanny.id} started shift {shift.id}")
    return {"success": True, "shift": await _shift_state(session, shift)}


@router.post(
    "/shift/pause-resume",
    summary="Pause or Resume Shift",
    description="Pause the running shift, or resume it and add the paused time to its breaks.",
    responses={
        400: {"description": "Shift already in the requested state"},
        404: {"description": "No active shift"},
    },
)
async def pause_resume_shift(
    body: ShiftPauseResume, current: NannyDep, session: SessionDep, repos: ReposDep
) -> Dict[str, Any]:
    nanny = await require_nanny_profile(current, repos)
    shift = await _require_shift(session, nanny)
    now = utc_now()

    if body.action == ShiftAction.PAUSE:
        if shift.is_paused:
            raise BadRequestError("Shift is already paused")
        shift.is_paused = True
        shift.pause_start_time = now
    else:
        if not shift.is_paused:
            raise BadRequestError("Shift is not paused")
        shift.break_minutes += paused_minutes(shift, now)
        shift.is_paused = False
        shift.pause_start_time = None

    await session.commit()
    return {"success": True, "shift": await _shift_state(session, shift)}


def merge_end_notes(existing: Optional[str], end_notes: Optional[str]) -> Optional[str]:
    if not end_notes:
        return existing
    if not existing:
        return end_notes
    return f"{existing}\n\nEnd notes: {end_notes}"


@router.post(
    "/shift/end",
    summary="End Shift",
    description="Stop the running shift and turn it into a pending hours log.",
    responses={
        400: {"description": "Nothing left after breaks"},
        404: {"description": "No active shift"},
    },
)
async def end_shift(body: ShiftEnd, current: NannyDep, session: SessionDep, repos: ReposDep) -> Dict[str, Any]:
    nanny = await require_nanny_profile(current, repos)
    shift = await _require_shift(session, nanny)
    now = utc_now()

    if shift.is_paused:
        shift.break_minutes += paused_minutes(shift, now)
        shift.is_paused = False
        shift.pause_start_time = None

    total_minutes = int((now - shift.start_time).total_seconds() // 60)
    duration = total_minutes - shift.break_minutes
    if duration <= 0:
        raise BadRequestError("Shift duration must be greater than 0 after subtracting breaks")

    log = HoursLog(
        nanny_id=nanny.id,
        family_id=shift.family_id,
        date=start_of_day(shift.start_time),
        start_time=shift.start_time.strftime("%H:%M"),
        end_time=now.strftime("%H:%M"),
        duration_minutes=duration,
        break_minutes=shift.break_minutes,
        is_overtime=is_overtime(duration),
        is_manual_entry=False,
        notes=merge_end_notes(shift.notes, body.notes),
    )
    session.add(log)
    await session.delete(shift)
    await session.commit()
    logger.info(f"Nanny {nanny.id} ended shift after {duration} minutes (log {log.id})")
    return {"success": True, "hours_log": _hours_read(log, await _family_names(session, [log.family_id]))}


# =====================================================================
# Schedule
# =====================================================================


@router.get(
    "/schedule",
    summary="Get Schedule",
    description="Logged shifts and routines between two dates, grouped by day.",
)
async def get_schedule(
    current: NannyDep,
    session: SessionDep,
    repos: ReposDep,
    start_date: datetime,
    end_date: datetime,
) -> Dict[str, Any]:
    nanny = await require_nanny_profile(current, repos)
    start, end = naive_utc(start_date), naive_utc(end_date)
    if start > end:
        raise BadRequestError("Start date must be before end date")

    logs = await session.execute(
        select(HoursLog).where(
            HoursLog.nanny_id == nanny.id, HoursLog.date >= start_of_day(start), HoursLog.date <= end
        )
    )
    routines = await session.execute(
        select(Routine).where(
            Routine.nanny_id == nanny.id,
            or_(Routine.is_recurring == True, Routine.date.between(start, end)),  # noqa: E712
        )
    )
    log_rows = list(logs.scalars().all())
    routine_rows = list(routines.scalars().all())

    family_names = await _family_names(session, (log.family_id for log in log_rows))
    child_ids = {routine.child_id for routine in routine_rows if routine.child_id}
    child_names: Dict[str, str] = {}
    if child_ids:
        children = await session.execute(select(Child).where(Child.id.in_(child_ids)))
        child_names = {child.id: child.full_name for child in children.scalars().all()}

    items = build_schedule(log_rows, routine_rows, start, end, family_names, child_names)
    return {"schedule_by_date": group_by_date(items), "schedule_items": items}
