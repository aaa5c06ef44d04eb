"""
Parent API Endpoints.

A parent owns one family and its children. From here they manage the
children's profiles and milestones, family documents, care preferences and
co-parent invitations, answer nanny access requests and leave feedback on
their nannies. Assigned nannies may read children and record milestones.
"""

from __future__ import annotations

from datetime import timedelta
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Query, status
from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlmodel import select

from indaba.core.database.base import utc_now
from indaba.core.database.entities.families import (
    ACTIVE_ASSIGNMENT,
    Child,
    Family,
    FamilyDocument,
    FamilyNanny,
    FamilyNannyRequest,
    FamilyPreference,
    ParentInvitation,
)
from indaba.core.database.entities.feedback import Feedback
from indaba.core.database.entities.messages import Message
from indaba.core.database.entities.milestones import ChildMilestone, CustomMilestone, Milestone
from indaba.core.database.entities.nanny import Certification
from indaba.core.database.entities.observations import Observation, ObservationComment
from indaba.core.database.entities.users import NannyProfile, ParentProfile, UserRole
from indaba.core.errors import BadRequestError, ForbiddenError, NotFoundError
from indaba.core.logging_config import get_logger
from indaba.core.models.io.parent import (
    AccessDecision,
    AccessRequestResponse,
    AchieveMilestone,
    ChildCreate,
    ChildRead,
    ChildUpdate,
    CustomMilestoneCreate,
    DocumentCreate,
    FamilyPreferencesUpdate,
    FeedbackCreate,
    FeedbackFollowUp,
    InvitationCreate,
    ParentProfileUpdate,
    UpdateMilestoneAchievement,
)
from indaba.core.security import generate_invitation_token
from indaba.server.services.access import (
    ensure_can_view_child,
    ensure_parent_owns_child,
    get_child_or_404,
    require_parent_profile,
    visible_child_ids,
)
from indaba.server.services.common import (
    age_in_months,
    age_in_years,
    dump_json,
    expiry_info,
    full_name,
    load_json,
    minutes_to_hours,
    naive_utc,
)
from indaba.server.services.deps import CurrentUserDep, ParentDep, ParentOrNannyDep, ReposDep, SessionDep
from indaba.server.services.hours import logged_minutes_since
from indaba.server.services.milestones import custom_milestones_of, resolve_achievement_target

from .nanny import certification_read

logger = get_logger(__name__)
router = APIRouter()

INVITATION_TTL = timedelta(days=7)
UPCOMING_WINDOW_MONTHS = 6
EXPIRY_WARNING_DAYS = 30


def _child_read(child: Child) -> ChildRead:
    return ChildRead(
        id=child.id,
        first_name=child.first_name,
        last_name=child.last_name,
        birth_date=child.birth_date,
        gender=child.gender,
        profile_image_url=child.profile_image_url,
        family_id=child.family_id,
        is_archived=child.is_archived,
        age=age_in_years(child.birth_date),
    )


def _child_detail(child: Child) -> Dict[str, Any]:
    detail = _child_read(child).model_dump()
    detail["medical_info"] = load_json(child.medical_info)
    detail["allergies"] = load_json(child.allergies, [])
    detail["favorite_activities"] = load_json(child.favorite_activities, [])
    detail["sleep_routine"] = load_json(child.sleep_routine)
    detail["eating_routine"] = load_json(child.eating_routine)
    return detail


async def _get_or_create_family(session: SessionDep, repos: ReposDep, parent: ParentProfile) -> Family:
    family = await repos.families.get_for_parent(parent.id)
    if family is None:
        family = Family(name=f"{parent.first_name} {parent.last_name}'s Family", parent_id=parent.id)
        session.add(family)
        await session.flush()
        logger.info(f"Created family {family.id} for parent {parent.id}")
    return family


async def _require_family(repos: ReposDep, parent: ParentProfile) -> Family:
    family = await repos.families.get_for_parent(parent.id)
    if family is None:
        raise NotFoundError("Family not found")
    return family


# =====================================================================
# Profile
# =====================================================================


async def _nanny_summary(session: SessionDep, nanny: NannyProfile) -> Dict[str, Any]:
    now = utc_now()
    certifications = (
        await session.execute(
            select(Certification).where(Certification.nanny_id == nanny.id).order_by(Certification.expiry_date)
        )
    ).scalars().all()
    reads = [certification_read(c) for c in certifications]
    return {
        "id": nanny.id,
        "user_id": nanny.user_id,
        "first_name": nanny.first_name,
        "last_name": nanny.last_name,
        "phone_number": nanny.phone_number,
        "profile_image_url": nanny.profile_image_url,
        "recent_hours": minutes_to_hours(await logged_minutes_since(session, nanny.id, now - timedelta(days=30))),
        "has_expiring_certifications": any(
            not c.is_expired and c.expires_in_days <= EXPIRY_WARNING_DAYS for c in reads
        ),
        "certifications": reads,
    }


@router.get(
    "/profile",
    summary="Get Parent Profile",
    description="The parent's profile, children and family with its active nannies.",
    responses={404: {"description": "Parent profile not found"}},
)
async def get_profile(current: ParentDep, session: SessionDep, repos: ReposDep) -> Dict[str, Any]:
    parent = await require_parent_profile(current, repos)
    children = await repos.families.children_for_parent(parent.id)
    family = await repos.families.get_for_parent(parent.id)

    family_data = None
    if family is not None:
        nannies = await session.execute(
            select(NannyProfile)
            .join(FamilyNanny, FamilyNanny.nanny_id == NannyProfile.id)
            .where(FamilyNanny.family_id == family.id, FamilyNanny.status == ACTIVE_ASSIGNMENT)
            .order_by(NannyProfile.first_name)
        )
        family_data = {
            "id": family.id,
            "name": family.name,
            "home_details": load_json(family.home_details),
            "nannies": [await _nanny_summary(session, nanny) for nanny in nannies.scalars().all()],
        }

    return {
        "profile": {
            **parent.model_dump(mode="json"),
            "email": current.user.email,
            "display_name": current.user.display_name,
        },
        "children": [
            {
                **_child_read(child).model_dump(),
                "medical_info": load_json(child.medical_info),
                "allergies": load_json(child.allergies, []),
            }
            for child in children
        ],
        "family": family_data,
    }


@router.put(
    "/profile",
    summary="Update Parent Profile",
    description="Update the parent's profile and the family's home details.",
)
async def update_profile(body: ParentProfileUpdate, current: ParentDep, session: SessionDep, repos: ReposDep):
    """
    Update the parent profile.

    - **first_name** / **last_name**: Required.
    - **home_details**: Stored on the family, which is created when missing.
    """
    parent = await require_parent_profile(current, repos)
    parent.first_name = body.first_name
    parent.last_name = body.last_name
    for field in ("phone_number", "address", "profile_image_url"):
        if field in body.model_fields_set:
            setattr(parent, field, getattr(body, field))

    if body.home_details is not None:
        family = await _get_or_create_family(session, repos, parent)
        family.home_details = dump_json(body.home_details.model_dump(exclude_none=True))

    await session.commit()
    return {"success": True, "profile_id": parent.id}


# =====================================================================
# Children
# =====================================================================


@router.post(
    "/children",
    response_model=ChildRead,
    status_code=status.HTTP_201_CREATED,
    summary="Add Child",
)
async def add_child(body: ChildCreate, current: ParentDep, session: SessionDep, repos: ReposDep) -> ChildRead:
    parent = await require_parent_profile(current, repos)
    family = await _get_or_create_family(session, repos, parent)
    child = Child(
        first_name=body.first_name,
        last_name=body.last_name,
        birth_date=naive_utc(body.birth_date),
        gender=body.gender,
        profile_image_url=body.profile_image_url,
        parent_id=parent.id,
        family_id=family.id,
    )
    session.add(child)
    await session.commit()
    logger.info(f"Parent {parent.id} added child {child.id}")
    return _child_read(child)


@router.get(
    "/children/overview",
    summary="Children Overview",
    description="Dashboard cards for the parent's active children.",
)
async def children_overview(current: ParentDep, session: SessionDep, repos: ReposDep) -> List[Dict[str, Any]]:
    """
    Overview of active children, sorted by first name.

    Each card carries the child's age, the date of the last observation,
    the next standard milestone to look out for and the number of unread
    messages about the child.
    """
    parent = await require_parent_profile(current, repos)
    children = await repos.families.children_for_parent(parent.id, include_archived=False)

    cards = []
    for child in children:
        last_observation = (
            await session.execute(select(func.max(Observation.created_at)).where(Observation.child_id == child.id))
        ).scalar_one()
        achieved = select(ChildMilestone.milestone_id).where(
            ChildMilestone.child_id == child.id, ChildMilestone.milestone_id.is_not(None)
        )
        months = age_in_months(child.birth_date)
        next_milestone = (
            await session.execute(
                select(Milestone)
                .where(Milestone.age_range_end >= months, Milestone.id.not_in(achieved))
                .order_by(Milestone.age_range_start, Milestone.name)
                .limit(1)
            )
        ).scalars().first()
        unread = (
            await session.execute(
                select(func.count(Message.id)).where(
                    Message.recipient_id == current.id,
                    Message.child_id == child.id,
                    Message.is_read == False,  # noqa: E712
                )
            )
        ).scalar_one()
        cards.append(
            {
                **_child_read(child).model_dump(),
                "last_observation_date": last_observation,
                "next_milestone": {
                    "id": next_milestone.id,
                    "name": next_milestone.name,
                    "category": next_milestone.category,
                }
                if next_milestone
                else None,
                "unread_messages": unread,
            }
        )
    return cards


@router.get(
    "/children/{child_id}",
    summary="Get Child",
    description="A child's full profile including health information and routines.",
    responses={
        403: {"description": "Not the parent or an assigned nanny"},
        404: {"description": "Child not found"},
    },
)
async def get_child(child_id: str, current: ParentOrNannyDep, repos: ReposDep) -> Dict[str, Any]:
    child = await get_child_or_404(repos, child_id)
    await ensure_can_view_child(current, child, repos)
    return _child_detail(child)


@router.put(
    "/children/{child_id}",
    summary="Update Child",
    responses={
        403: {"description": "Not the parent's child"},
        404: {"description": "Child not found"},
    },
)
async def update_child(
    child_id: str, body: ChildUpdate, current: ParentDep, session: SessionDep, repos: ReposDep
) -> Dict[str, Any]:
    """
    Update a child.

    - **medical_info**: Conditions, medications and doctor details.
    - **allergies**: Allergens with severity, symptoms and treatment.
    - **sleep_routine** / **eating_routine**: Free-form routine objects.
    """
    child = await get_child_or_404(repos, child_id)
    await ensure_parent_owns_child(current, child, repos)

    child.first_name = body.first_name
    child.last_name = body.last_name
    child.birth_date = naive_utc(body.birth_date)
    child.gender = body.gender
    child.profile_image_url = body.profile_image_url
    if "medical_info" in body.model_fields_set:
        child.medical_info = dump_json(body.medical_info.model_dump(mode="json") if body.medical_info else None)
    if "allergies" in body.model_fields_set:
        child.allergies = dump_json([a.model_dump(mode="json") for a in body.allergies] if body.allergies else None)
    if "favorite_activities" in body.model_fields_set:
        child.favorite_activities = dump_json(body.favorite_activities)
    if "sleep_routine" in body.model_fields_set:
        child.sleep_routine = dump_json(body.sleep_routine)
    if "eating_routine" in body.model_fields_set:
        child.eating_routine = dump_json(body.eating_routine)

    await session.commit()
    await session.refresh(child)
    return _child_detail(child)


@router.post(
    "/children/{child_id}/archive",
    response_model=ChildRead,
    summary="Archive Child",
    description="Hide a child from overviews without deleting their history.",
)
async def archive_child(child_id: str, current: ParentDep, session: SessionDep, repos: ReposDep) -> ChildRead:
    child = await get_child_or_404(repos, child_id)
    await ensure_parent_owns_child(current, child, repos)
    child.is_archived = True
    await session.commit()
    return _child_read(child)


@router.delete(
    "/children/{child_id}",
    summary="Delete Child",
    description="Delete a child together with their observations and milestone records.",
)
async def delete_child(child_id: str, current: ParentDep, session: SessionDep, repos: ReposDep):
    child = await get_child_or_404(repos, child_id)
    await ensure_parent_owns_child(current, child, repos)

    observations = (await session.execute(select(Observation).where(Observation.child_id == child.id))).scalars().all()
    for observation in observations:
        comments = await session.execute(
            select(ObservationComment).where(ObservationComment.observation_id == observation.id)
        )
        for comment in comments.scalars().all():
            await session.delete(comment)
        await session.delete(observation)
    for model in (ChildMilestone, CustomMilestone):
        rows = await session.execute(select(model).where(model.child_id == child.id))
        for row in rows.scalars().all():
            await session.delete(row)
    await session.delete(child)
    await session.commit()
    logger.info(f"Parent {current.id} deleted child {child_id}")
    return {"success": True, "deleted_child_id": child_id}


# =====================================================================
# Milestones
# =====================================================================


async def _achieved_milestones(session: SessionDep, child_id: str):
    result = await session.execute(
        select(ChildMilestone, Milestone, CustomMilestone)
        .outerjoin(Milestone, Milestone.id == ChildMilestone.milestone_id)
        .outerjoin(CustomMilestone, CustomMilestone.id == ChildMilestone.custom_milestone_id)
        .where(ChildMilestone.child_id == child_id)
        .order_by(ChildMilestone.achieved_date.desc())
    )
    return result.all()


def _achievement(record: ChildMilestone, milestone: Optional[Milestone], custom: Optional[CustomMilestone]):
    target = milestone or custom
    return {
        "id": record.id,
        "milestone_id": record.milestone_id,
        "custom_milestone_id": record.custom_milestone_id,
        "name": target.name,
        "description": target.description,
        "category": target.category,
        "achieved_date": record.achieved_date,
        "notes": record.notes,
    }


@router.get(
    "/children/{child_id}/milestones",
    summary="Child Milestones",
    description="Achieved milestones and those expected in the next six months.",
)
async def child_milestones(
    child_id: str, current: ParentOrNannyDep, session: SessionDep, repos: ReposDep
) -> Dict[str, Any]:
    """
    Milestones of a child.

    Upcoming milestones are the standard milestones whose age window
    overlaps the child's age up to six months ahead and which are not yet
    achieved.
    """
    child = await get_child_or_404(repos, child_id)
    await ensure_can_view_child(current, child, repos)
    months = age_in_months(child.birth_date)

    achieved = await _achieved_milestones(session, child.id)
    achieved_ids = {record.milestone_id for record, _, _ in achieved}
    candidates = await session.execute(
        select(Milestone)
        .where(Milestone.age_range_start <= months + UPCOMING_WINDOW_MONTHS, Milestone.age_range_end >= months)
        .order_by(Milestone.age_range_start, Milestone.name)
    )
    return {
        "child": {
            "id": child.id,
            "first_name": child.first_name,
            "last_name": child.last_name,
            "age_in_months": months,
        },
        "achieved": [_achievement(*row) for row in achieved],
        "upcoming": [
            milestone.model_dump(mode="json", exclude={"created_at"})
            for milestone in candidates.scalars().all()
            if milestone.id not in achieved_ids
        ],
    }


@router.post(
    "/milestones/achieve",
    status_code=status.HTTP_201_CREATED,
    summary="Record Milestone",
    description="Record a standard milestone (`milestone_id`) or a custom one (`custom_milestone_id`).",
    responses={
        400: {"description": "Milestone already achieved, or not exactly one milestone id given"},
        403: {"description": "Not the parent or an assigned nanny"},
        404: {"description": "Child or milestone not found"},
    },
)
async def achieve_milestone(body: AchieveMilestone, current: ParentOrNannyDep, session: SessionDep, repos: ReposDep):
    child = await get_child_or_404(repos, body.child_id)
    await ensure_can_view_child(current, child, repos)
    milestone, custom = await resolve_achievement_target(session, child, body.milestone_id, body.custom_milestone_id)

    record = ChildMilestone(
        child_id=child.id,
        milestone_id=milestone.id if milestone else None,
        custom_milestone_id=custom.id if custom else None,
        achieved_date=naive_utc(body.achieved_date) if body.achieved_date else utc_now(),
        notes=body.notes,
    )
    session.add(record)
    try:
        await session.commit()
    except IntegrityError as e:
        await session.rollback()
        raise BadRequestError("This milestone has already been achieved") from e
    logger.info(f"User {current.id} recorded milestone {(milestone or custom).id} for child {child.id}")
    return {"success": True, "child_milestone": record.model_dump(mode="json")}


@router.put(
    "/milestones/achievements/{child_milestone_id}",
    summary="Update Milestone Achievement",
    responses={
        403: {"description": "Not the parent or an assigned nanny"},
        404: {"description": "Achievement not found"},
    },
)
async def update_achievement(
    child_milestone_id: str,
    body: UpdateMilestoneAchievement,
    current: ParentOrNannyDep,
    session: SessionDep,
    repos: ReposDep,
):
    record = await session.get(ChildMilestone, child_milestone_id)
    if record is None:
        raise NotFoundError("Child milestone not found")
    child = await get_child_or_404(repos, record.child_id)
    await ensure_can_view_child(current, child, repos)

    record.achieved_date = naive_utc(body.achieved_date)
    record.notes = body.notes
    await session.commit()
    await session.refresh(record)
    return {"success": True, "child_milestone": record.model_dump(mode="json")}


@router.post(
    "/milestones/custom",
    status_code=status.HTTP_201_CREATED,
    summary="Create Custom Milestone",
    description="Add a milestone of the parent's own, for one child or for all of them.",
)
async def create_custom_milestone(
    body: CustomMilestoneCreate, current: ParentDep, session: SessionDep, repos: ReposDep
):
    if body.child_id:
        child = await get_child_or_404(repos, body.child_id)
        await ensure_parent_owns_child(current, child, repos)
    milestone = CustomMilestone(
        name=body.name,
        description=body.description,
        category=body.category,
        child_id=body.child_id,
        created_by=current.id,
    )
    session.add(milestone)
    await session.commit()
    return {"success": True, "custom_milestone": milestone.model_dump(mode="json")}


def progress_by_category(
    standard: List[Milestone], custom: List[CustomMilestone], achieved_ids: set
) -> Dict[str, Dict[str, int]]:
    """Achieved and total milestone counts per category with a rounded percentage."""
    progress: Dict[str, Dict[str, int]] = {}
    for milestone in [*standard, *custom]:
        entry = progress.setdefault(milestone.category, {"achieved": 0, "total": 0})
        entry["total"] += 1
        if milestone.id in achieved_ids:
            entry["achieved"] += 1
    for entry in progress.values():
        entry["percentage"] = round(entry["achieved"] / entry["total"] * 100) if entry["total"] else 0
    return progress


@router.get(
    "/children/{child_id}/milestones/progress",
    summary="Milestone Progress",
    description="Share of standard and custom milestones achieved per category.",
)
async def milestone_progress(
    child_id: str, current: ParentOrNannyDep, session: SessionDep, repos: ReposDep
) -> Dict[str, Any]:
    child = await get_child_or_404(repos, child_id)
    await ensure_can_view_child(current, child, repos)

    standard = (await session.execute(select(Milestone))).scalars().all()
    custom = (await session.execute(select(CustomMilestone).where(custom_milestones_of(child)))).scalars().all()
    achieved = await session.execute(
        select(func.coalesce(ChildMilestone.milestone_id, ChildMilestone.custom_milestone_id)).where(
            ChildMilestone.child_id == child.id
        )
    )
    return {
        "child_id": child.id,
        "categories": progress_by_category(list(standard), list(custom), set(achieved.scalars().all())),
    }


@router.get(
    "/milestones/recent",
    summary="Recent Milestones",
    description="Recently achieved milestones of the children visible to the caller.",
)
async def recent_milestones(
    current: CurrentUserDep,
    session: SessionDep,
    repos: ReposDep,
    search: Optional[str] = None,
    limit: int = Query(default=10, ge=1, le=50),
) -> List[Dict[str, Any]]:
    name = func.coalesce(Milestone.name, CustomMilestone.name)
    stmt = (
        select(ChildMilestone, Milestone, CustomMilestone, Child)
        .outerjoin(Milestone, Milestone.id == ChildMilestone.milestone_id)
        .outerjoin(CustomMilestone, CustomMilestone.id == ChildMilestone.custom_milestone_id)
        .join(Child, Child.id == ChildMilestone.child_id)
    )
    child_ids = await visible_child_ids(current, repos)
    if child_ids is not None:
        if not child_ids:
            return []
        stmt = stmt.where(ChildMilestone.child_id.in_(child_ids))
    if search:
        pattern = f"%{search.lower()}%"
        stmt = stmt.where(
            or_(
                func.lower(name).like(pattern),
                func.lower(func.coalesce(Milestone.description, CustomMilestone.description)).like(pattern),
                func.lower(func.coalesce(ChildMilestone.notes, "")).like(pattern),
            )
        )
    rows = (await session.execute(stmt.order_by(ChildMilestone.achieved_date.desc()).limit(limit))).all()
    recent = []
    for record, milestone, custom, child in rows:
        achievement = _achievement(record, milestone, custom)
        recent.append(
            {
                "id": record.id,
                "child_id": child.id,
                "child_name": child.full_name,
                "milestone_id": record.milestone_id,
                "custom_milestone_id": record.custom_milestone_id,
                "milestone_name": achievement["name"],
                "category": achievement["category"],
                "achieved_date": record.achieved_date,
                "notes": record.notes,
            }
        )
    return recent


# =====================================================================
# Family documents and preferences
# =====================================================================


@router.get(
    "/family/documents",
    summary="List Family Documents",
    description="Documents of the parent's family; nannies pass the id of a family they are assigned to.",
)
async def list_documents(
    current: ParentOrNannyDep, session: SessionDep, repos: ReposDep, family_id: Optional[str] = None
) -> List[Dict[str, Any]]:
    if current.role == UserRole.PARENT:
        family = await _require_family(repos, await require_parent_profile(current, repos))
    else:
        nanny = await repos.users.get_nanny_profile(current.id)
        if nanny is None or not await repos.families.is_nanny_assigned(nanny.id, family_id):
            raise ForbiddenError("You are not assigned to this family")
        family = await session.get(Family, family_id)
        if family is None:
            raise NotFoundError("Family not found")

    documents = await session.execute(
        select(FamilyDocument).where(FamilyDocument.family_id == family.id).order_by(FamilyDocument.created_at.desc())
    )
    return [document.model_dump(mode="json") for document in documents.scalars().all()]


@router.post("/family/documents", status_code=status.HTTP_201_CREATED, summary="Upload Family Document")
async def upload_document(body: DocumentCreate, current: ParentDep, session: SessionDep, repos: ReposDep):
    parent = await require_parent_profile(current, repos)
    family = await _get_or_create_family(session, repos, parent)
    document = FamilyDocument(
        family_id=family.id,
        name=body.name,
        type=body.type,
        file_url=str(body.file_url),
        description=body.description,
        uploaded_by=current.id,
    )
    session.add(document)
    await session.commit()
    return {"success": True, "document": document.model_dump(mode="json")}


@router.delete("/family/documents/{document_id}", summary="Delete Family Document")
async def delete_document(document_id: str, current: ParentDep, session: SessionDep, repos: ReposDep):
    parent = await require_parent_profile(current, repos)
    document = await session.get(FamilyDocument, document_id)
    if document is None:
        raise NotFoundError("Document not found")
    family = await session.get(Family, document.family_id)
    if family is None or family.parent_id != parent.id:
        raise ForbiddenError("You don't have permission to delete this document")
    await session.delete(document)
    await session.commit()
    return {"success": True, "deleted_document_id": document_id}


def _preferences_read(preferences: FamilyPreference) -> Dict[str, Any]:
    return {
        "id": preferences.id,
        "family_id": preferences.family_id,
        "care_preferences": load_json(preferences.care_preferences),
        "dietary_restrictions": preferences.dietary_restrictions,
        "notification_settings": load_json(preferences.notification_settings),
        "updated_at": preferences.updated_at,
    }


async def _get_preferences(session: SessionDep, family_id: str) -> Optional[FamilyPreference]:
    result = await session.execute(select(FamilyPreference).where(FamilyPreference.family_id == family_id))
    return result.scalars().first()


@router.get(
    "/family/preferences",
    summary="Get Family Preferences",
    description="Care preferences of the family, or null when none are stored.",
)
async def get_preferences(current: ParentDep, session: SessionDep, repos: ReposDep) -> Optional[Dict[str, Any]]:
    parent = await require_parent_profile(current, repos)
    family = await repos.families.get_for_parent(parent.id)
    if family is None:
        return None
    preferences = await _get_preferences(session, family.id)
    return _preferences_read(preferences) if preferences else None


@router.put("/family/preferences", summary="Update Family Preferences")
async def update_preferences(
    body: FamilyPreferencesUpdate, current: ParentDep, session: SessionDep, repos: ReposDep
) -> Dict[str, Any]:
    parent = await require_parent_profile(current, repos)
    family = await _get_or_create_family(session, repos, parent)
    preferences = await _get_preferences(session, family.id)
    if preferences is None:
        preferences = FamilyPreference(family_id=family.id)
        session.add(preferences)

    if "care_preferences" in body.model_fields_set:
        preferences.care_preferences = dump_json(
            body.care_preferences.model_dump(exclude_none=True) if body.care_preferences else None
        )
    if "dietary_restrictions" in body.model_fields_set:
        preferences.dietary_restrictions = body.dietary_restrictions
    if "notification_settings" in body.model_fields_set:
        preferences.notification_settings = dump_json(
            body.notification_settings.model_dump(exclude_none=True) if body.notification_settings else None
        )
    await session.commit()
    await session.refresh(preferences)
    return _preferences_read(preferences)


# =====================================================================
# Family users and invitations
# =====================================================================


def _invitation_read(invitation: ParentInvitation) -> Dict[str, Any]:
    return {
        "id": invitation.id,
        "email": invitation.email,
        "name": invitation.name,
        "access_level": invitation.access_level,
        "status": invitation.status,
        "expires_at": invitation.expires_at,
        "created_at": invitation.created_at,
    }


@router.get(
    "/family/users",
    summary="List Family Users",
    description="The primary parent and everyone with a pending invitation to the family.",
)
async def list_family_users(current: ParentDep, session: SessionDep, repos: ReposDep) -> List[Dict[str, Any]]:
    parent = await require_parent_profile(current, repos)
    users: List[Dict[str, Any]] = [
        {
            "id": current.id,
            "name": full_name(parent.first_name, parent.last_name),
            "email": current.user.email,
            "access_level": "full",
            "status": "active",
            "is_primary": True,
        }
    ]
    family = await repos.families.get_for_parent(parent.id)
    if family is not None:
        invitations = await session.execute(
            select(ParentInvitation)
            .where(ParentInvitation.family_id == family.id, ParentInvitation.status == "pending")
            .order_by(ParentInvitation.created_at.desc())
        )
        users.extend({**_invitation_read(i), "is_primary": False} for i in invitations.scalars().all())
    return users


@router.post(
    "/family/invitations",
    status_code=status.HTTP_201_CREATED,
    summary="Invite Family User",
    responses={400: {"description": "Email already registered or already invited"}},
)
async def invite_family_user(body: InvitationCreate, current: ParentDep, session: SessionDep, repos: ReposDep):
    """
    Invite someone to the family.

    The invitation token is valid for seven days.
    """
    parent = await require_parent_profile(current, repos)
    family = await _get_or_create_family(session, repos, parent)
    email = body.email.lower()

    if await repos.users.get_by_email(email) is not None:
        raise BadRequestError("A user with this email already exists")
    pending = await session.execute(
        select(ParentInvitation).where(
            ParentInvitation.family_id == family.id,
            func.lower(ParentInvitation.email) == email,
            ParentInvitation.status == "pending",
        )
    )
    if pending.scalars().first() is not None:
        raise BadRequestError("An invitation has already been sent to this email")

    invitation = ParentInvitation(
        family_id=family.id,
        email=email,
        name=body.name,
        access_level=body.access_level,
        token=generate_invitation_token(),
        invited_by=current.id,
        expires_at=utc_now() + INVITATION_TTL,
    )
    session.add(invitation)
    await session.commit()
    logger.info(f"Parent {parent.id} invited {email} to family {family.id}")
    return {"success": True, "invitation": _invitation_read(invitation)}


async def _family_invitation(
    session: SessionDep, repos: ReposDep, current: ParentDep, invitation_id: str
) -> ParentInvitation:
    family = await _require_family(repos, await require_parent_profile(current, repos))
    invitation = await session.get(ParentInvitation, invitation_id)
    if invitation is None or invitation.family_id != family.id:
        raise NotFoundError("Invitation not found")
    return invitation


@router.post("/family/invitations/{invitation_id}/resend", summary="Resend Invitation")
async def resend_invitation(invitation_id: str, current: ParentDep, session: SessionDep, repos: ReposDep):
    invitation = await _family_invitation(session, repos, current, invitation_id)
    if invitation.status != "pending":
        raise BadRequestError("Only pending invitations can be resent")
    invitation.token = generate_invitation_token()
    invitation.expires_at = utc_now() + INVITATION_TTL
    await session.commit()
    return {"success": True, "invitation": _invitation_read(invitation)}


@router.delete("/family/invitations/{invitation_id}", summary="Cancel Invitation")
async def cancel_invitation(invitation_id: str, current: ParentDep, session: SessionDep, repos: ReposDep):
    invitation = await _family_invitation(session, repos, current, invitation_id)
    await session.delete(invitation)
    await session.commit()
    return {"success": True, "deleted_invitation_id": invitation_id}


# =====================================================================
# Nanny access requests
# =====================================================================


@router.get(
    "/access-requests",
    summary="List Access Requests",
    description="Pending requests from nannies who want to join the family.",
)
async def list_access_requests(current: ParentDep, session: SessionDep, repos: ReposDep) -> List[Dict[str, Any]]:
    parent = await require_parent_profile(current, repos)
    family = await repos.families.get_for_parent(parent.id)
    if family is None:
        return []
    rows = await session.execute(
        select(FamilyNannyRequest, NannyProfile)
        .join(NannyProfile, NannyProfile.id == FamilyNannyRequest.nanny_id)
        .where(FamilyNannyRequest.family_id == family.id, FamilyNannyRequest.status == "pending")
        .order_by(FamilyNannyRequest.created_at.desc())
    )
    return [
        {
            "id": request.id,
            "nanny_id": nanny.id,
            "nanny_name": full_name(nanny.first_name, nanny.last_name),
            "profile_image_url": nanny.profile_image_url,
            "message": request.message,
            "status": request.status,
            "created_at": request.created_at,
        }
        for request, nanny in rows.all()
    ]


@router.post(
    "/access-requests/{request_id}/respond",
    summary="Respond to Access Request",
    description="Approve or decline a nanny's request. Approval assigns the nanny to the family.",
    responses={
        400: {"description": "Request already answered"},
        404: {"description": "Access request not found"},
    },
)
async def respond_to_access_request(
    request_id: str, body: AccessRequestResponse, current: ParentDep, session: SessionDep, repos: ReposDep
):
    family = await _require_family(repos, await require_parent_profile(current, repos))
    access_request = await session.get(FamilyNannyRequest, request_id)
    if access_request is None or access_request.family_id != family.id:
        raise NotFoundError("Access request not found")
    if access_request.status != "pending":
        raise BadRequestError("This request has already been answered")

    now = utc_now()
    if body.decision == AccessDecision.APPROVE:
        assignment = await repos.families.get_assignment(access_request.nanny_id, family.id)
        if assignment is None:
            session.add(FamilyNanny(family_id=family.id, nanny_id=access_request.nanny_id))
        else:
            assignment.status = ACTIVE_ASSIGNMENT
            assignment.start_date = now
            assignment.end_date = None
        access_request.status = "approved"
    else:
        access_request.status = "declined"
    access_request.responded_at = now
    await session.commit()
    logger.info(f"Family {family.id} {access_request.status} access request {request_id}")
    return {"success": True, "status": access_request.status}


# =====================================================================
# Feedback
# =====================================================================


@router.post(
    "/feedback",
    status_code=status.HTTP_201_CREATED,
    summary="Submit Feedback",
    responses={
        403: {"description": "Child belongs to another parent"},
        404: {"description": "Nanny not found"},
    },
)
async def submit_feedback(body: FeedbackCreate, current: ParentDep, session: SessionDep, repos: ReposDep):
    """
    Leave feedback about a nanny.

    - **type**: care, progress, communication or general.
    - **rating**: 1 to 5.
    - **content**: At least 10 characters.
    """
    parent = await require_parent_profile(current, repos)
    nanny = await session.get(NannyProfile, body.nanny_id)
    if nanny is None:
        raise NotFoundError("Nanny not found")
    if body.child_id:
        child = await get_child_or_404(repos, body.child_id)
        if child.parent_id != parent.id:
            raise ForbiddenError("You can only leave feedback about your own children")

    feedback = Feedback(
        parent_id=parent.id,
        nanny_id=nanny.id,
        child_id=body.child_id,
        type=body.type.value,
        rating=body.rating,
        content=body.content,
    )
    session.add(feedback)
    await session.commit()
    logger.info(f"Parent {parent.id} left {body.type.value} feedback for nanny {nanny.id}")
    return {"success": True, "feedback": feedback.model_dump(mode="json")}


@router.put("/feedback/{feedback_id}/follow-up", summary="Add Feedback Follow-up")
async def follow_up_feedback(
    feedback_id: str, body: FeedbackFollowUp, current: ParentDep, session: SessionDep, repos: ReposDep
):
    parent = await require_parent_profile(current, repos)
    feedback = await session.get(Feedback, feedback_id)
    if feedback is None:
        raise NotFoundError("Feedback not found")
    if feedback.parent_id != parent.id:
        raise ForbiddenError("You can only follow up on your own feedback")
    feedback.follow_up = body.follow_up
    await session.commit()
    await session.refresh(feedback)
    return {"success": True, "feedback": feedback.model_dump(mode="json")}


@router.get("/feedback", summary="Feedback History", description="The parent's feedback, newest first.")
async def feedback_history(current: ParentDep, session: SessionDep, repos: ReposDep) -> List[Dict[str, Any]]:
    parent = await require_parent_profile(current, repos)
    rows = await session.execute(
        select(Feedback, NannyProfile, Child)
        .join(NannyProfile, NannyProfile.id == Feedback.nanny_id)
        .outerjoin(Child, Child.id == Feedback.child_id)
        .where(Feedback.parent_id == parent.id)
        .order_by(Feedback.created_at.desc())
    )
    return [
        {
            **feedback.model_dump(mode="json"),
            "nanny_name": full_name(nanny.first_name, nanny.last_name),
            "child_name": child.full_name if child else None,
        }
        for feedback, nanny, child in rows.all()
    ]
