"""
Observation API Endpoints.

Nannies record observations (notes, media, checklists) about the children
of families they are actively assigned to. Parents read and comment on the
observations of their own children; admins see everything.

AI tags are generated when an observation is created, and its text is
scanned against the moderation keyword list.
"""

from __future__ import annotations

from datetime import datetime
from typing import Dict, Iterable, List, Optional

from fastapi import APIRouter, Query, status
from sqlalchemy import func, or_
from sqlmodel import select

from indaba.core.ai import generate_observation_tags
from indaba.core.database.entities.families import Child
from indaba.core.database.entities.observations import (
    MEDIA_TYPES,
    TEXT_TYPES,
    Observation,
    ObservationComment,
    ObservationType,
)
from indaba.core.database.entities.users import ParentProfile, User, UserRole
from indaba.core.database.repositories import QueryBuilder
from indaba.core.errors import BadRequestError, ForbiddenError, NotFoundError
from indaba.core.events import emit_activity
from indaba.core.logging_config import get_logger
from indaba.core.models.io.observations import (
    AssignedChild,
    ChecklistItem,
    CommentCreate,
    CommentRead,
    ObservationCreate,
    ObservationDetail,
    ObservationPage,
    ObservationRead,
    ObservationUpdate,
    RecentObservation,
)
from indaba.server.services.access import (
    ensure_can_view_child,
    get_child_or_404,
    require_nanny_profile,
    visible_child_ids,
)
from indaba.server.services.common import dump_json, inclusive_end, load_json, naive_utc
from indaba.server.services.deps import CurrentUser, CurrentUserDep, NannyDep, NannyOrAdminDep, ReposDep, SessionDep
from indaba.server.services.moderation import announce_flag, observation_text, scan_for_keywords

logger = get_logger(__name__)
router = APIRouter()


def _to_read(observation: Observation, child_name: Optional[str] = None, comment_count: int = 0) -> ObservationRead:
    return ObservationRead(
        id=observation.id,
        nanny_id=observation.nanny_id,
        child_id=observation.child_id,
        child_name=child_name,
        type=observation.type,
        content=observation.content,
        notes=observation.notes,
        media_url=observation.media_url,
        ai_tags=load_json(observation.ai_tags, []),
        is_permanent=observation.is_permanent,
        comment_count=comment_count,
        created_at=observation.created_at,
        updated_at=observation.updated_at,
    )


async def _child_names(session: SessionDep, child_ids: Iterable[str]) -> Dict[str, str]:
    ids = set(child_ids)
    if not ids:
        return {}
    result = await session.execute(select(Child).where(Child.id.in_(ids)))
    return {child.id: child.full_name for child in result.scalars().all()}


async def _comment_counts(session: SessionDep, observation_ids: Iterable[str]) -> Dict[str, int]:
    ids = set(observation_ids)
    if not ids:
        return {}
    stmt = (
        select(ObservationComment.observation_id, func.count(ObservationComment.id))
        .where(ObservationComment.observation_id.in_(ids))
        .group_by(ObservationComment.observation_id)
    )
    return {observation_id: count for observation_id, count in (await session.execute(stmt)).all()}


async def _to_read_list(session: SessionDep, observations: List[Observation]) -> List[ObservationRead]:
    names = await _child_names(session, (o.child_id for o in observations))
    counts = await _comment_counts(session, (o.id for o in observations))
    return [_to_read(o, names.get(o.child_id), counts.get(o.id, 0)) for o in observations]


async def _get_observation_or_404(session: SessionDep, observation_id: str) -> Observation:
    observation = await session.get(Observation, observation_id)
    if observation is None:
        raise NotFoundError("Observation not found")
    return observation


@router.post(
    "",
    response_model=ObservationRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create Observation",
    description="Record an observation about a child of a family the nanny is actively assigned to.",
    response_description="The created observation with its AI tags.",
    responses={
        403: {"description": "Not assigned to the child's family"},
        404: {"description": "Child not found"},
    },
)
async def create_observation(
    body: ObservationCreate, current: NannyDep, session: SessionDep, repos: ReposDep
) -> ObservationRead:
    """
    Create an observation.

    - **child_id**: The child the observation is about.
    - **type**: TEXT, PHOTO, VIDEO, AUDIO, CHECKLIST or RICHTEXT.
    - **content**: Text content or media caption.
    - **media_url**: Stored media for PHOTO, VIDEO and AUDIO.
    - **checklist_items**: Items for CHECKLIST observations.
    - **is_permanent**: Keep the observation after the offline purge window (default true).
    """
    child = await get_child_or_404(repos, body.child_id)
    await require_nanny_profile(current, repos)
    await ensure_can_view_child(current, child, repos)

    tags = await generate_observation_tags(body.content, body.type.value)
    observation = Observation(
        nanny_id=current.id,
        child_id=child.id,
        type=body.type,
        content=body.content,
        notes=body.notes,
        media_url=body.media_url,
        checklist_items=dump_json([item.model_dump() for item in body.checklist_items])
        if body.checklist_items is not None
        else None,
        ai_tags=dump_json(tags),
        is_permanent=body.is_permanent,
    )
    session.add(observation)
    await session.flush()
    flag = await scan_for_keywords(
        session,
        content_type="observation",
        content_id=observation.id,
        text=observation_text(observation),
        author_id=current.id,
    )
    await session.commit()

    logger.info(f"Nanny {current.id} recorded {body.type.value} observation {observation.id} for child {child.id}")
    emit_activity(
        "observation_created",
        f"New {body.type.value.lower()} observation for {child.full_name}",
        user_id=current.id,
        resource_id=child.id,
        content_id=observation.id,
    )
    announce_flag(flag)
    return _to_read(observation, child.full_name)


@router.get(
    "",
    response_model=List[ObservationRead],
    summary="List Observations",
    description="List observations visible to the caller, newest first, with optional filters.",
)
async def list_observations(
    current: CurrentUserDep,
    session: SessionDep,
    repos: ReposDep,
    child_id: Optional[str] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    type: Optional[ObservationType] = None,
    tag: Optional[str] = None,
) -> List[ObservationRead]:
    """
    List observations.

    Nannies see the observations they recorded, parents those of their own
    children and admins all of them.

    - **child_id**: Only this child's observations.
    - **start_date** / **end_date**: Inclusive date range.
    - **type**: Only this observation type.
    - **tag**: Only observations carrying this AI tag.
    """
    stmt = select(Observation)
    if current.role == UserRole.NANNY:
        stmt = stmt.where(Observation.nanny_id == current.id)
    elif current.role == UserRole.PARENT:
        own_children = await visible_child_ids(current, repos) or set()
        if child_id and child_id not in own_children:
            raise ForbiddenError()
        if not own_children:
            return []
        stmt = stmt.where(Observation.child_id.in_(own_children))

    if child_id:
        stmt = stmt.where(Observation.child_id == child_id)
    if start_date:
        stmt = stmt.where(Observation.created_at >= naive_utc(start_date))
    if end_date:
        stmt = stmt.where(Observation.created_at < inclusive_end(end_date))
    if type:
        stmt = stmt.where(Observation.type == type)
    if tag:
        stmt = stmt.where(Observation.ai_tags.contains(tag))

    result = await session.execute(stmt.order_by(Observation.created_at.desc(), Observation.id.desc()))
    return await _to_read_list(session, list(result.scalars().all()))


@router.get(
    "/recent",
    response_model=List[RecentObservation],
    summary="Recent Observations",
    description="Search recent observations by content, notes or child name.",
)
async def recent_observations(
    current: CurrentUserDep,
    session: SessionDep,
    repos: ReposDep,
    search: Optional[str] = None,
    limit: int = Query(default=10, ge=1, le=50),
) -> List[RecentObservation]:
    stmt = select(Observation, Child).join(Child, Child.id == Observation.child_id)
    child_ids = await visible_child_ids(current, repos)
    if child_ids is not None:
        if not child_ids:
            return []
        stmt = stmt.where(Observation.child_id.in_(child_ids))
    if search:
        pattern = f"%{search.lower()}%"
        stmt = stmt.where(
            or_(
                func.lower(Observation.content).like(pattern),
                func.lower(func.coalesce(Observation.notes, "")).like(pattern),
                func.lower(Child.first_name).like(pattern),
                func.lower(Child.last_name).like(pattern),
            )
        )
    stmt = stmt.order_by(Observation.created_at.desc()).limit(limit)
    rows = (await session.execute(stmt)).all()
    return [
        RecentObservation(
            id=observation.id,
            content=observation.content,
            created_at=observation.created_at,
            child_name=child.full_name,
        )
        for observation, child in rows
    ]


@router.get(
    "/assigned-children",
    response_model=List[AssignedChild],
    summary="Assigned Children",
    description="Children the caller can record or read observations for.",
)
async def assigned_children(current: CurrentUserDep, session: SessionDep, repos: ReposDep) -> List[AssignedChild]:
    """
    List the children in the caller's scope.

    Nannies get the children of actively assigned families, parents their
    own children and admins every child.
    """
    stmt = (
        select(Child, ParentProfile)
        .join(ParentProfile, ParentProfile.id == Child.parent_id)
        .where(Child.is_archived == False)  # noqa: E712
        .order_by(Child.first_name)
    )
    child_ids = await visible_child_ids(current, repos)
    if child_ids is not None:
        if not child_ids:
            return []
        stmt = stmt.where(Child.id.in_(child_ids))
    rows = (await session.execute(stmt)).all()
    return [
        AssignedChild(
            id=child.id,
            first_name=child.first_name,
            last_name=child.last_name,
            birth_date=child.birth_date,
            family_id=child.family_id,
            parent_first_name=parent.first_name,
            parent_last_name=parent.last_name,
            address=parent.address,
        )
        for child, parent in rows
    ]


@router.get(
    "/child/{child_id}",
    response_model=ObservationPage,
    summary="Child Observation Feed",
    description="Cursor-paginated observations of one child, newest first.",
    responses={
        403: {"description": "Caller may not see this child"},
        404: {"description": "Child not found"},
    },
)
async def child_feed(
    child_id: str,
    current: CurrentUserDep,
    session: SessionDep,
    repos: ReposDep,
    cursor: Optional[str] = None,
    limit: int = Query(default=20, ge=1, le=100),
) -> ObservationPage:
    """
    Page through a child's observations.

    Pass the returned ``next_cursor`` as ``cursor`` to fetch the next page;
    it is null on the last page.
    """
    child = await get_child_or_404(repos, child_id)
    await ensure_can_view_child(current, child, repos)

    stmt = select(Observation).where(Observation.child_id == child.id)
    stmt = QueryBuilder.apply_cursor(stmt, Observation, cursor, "created_at")
    stmt = stmt.order_by(Observation.created_at.desc(), Observation.id.desc()).limit(limit + 1)
    rows = list((await session.execute(stmt)).scalars().all())

    next_cursor = None
    if len(rows) > limit:
        rows = rows[:limit]
        next_cursor = rows[-1].id
    counts = await _comment_counts(session, (o.id for o in rows))
    return ObservationPage(
        items=[_to_read(o, child.full_name, counts.get(o.id, 0)) for o in rows],
        next_cursor=next_cursor,
    )


async def _users_by_id(session: SessionDep, user_ids: Iterable[str]) -> Dict[str, User]:
    ids = set(user_ids)
    if not ids:
        return {}
    result = await session.execute(select(User).where(User.id.in_(ids)))
    return {user.id: user for user in result.scalars().all()}


@router.get(
    "/{observation_id}",
    response_model=ObservationDetail,
    summary="Get Observation",
    description="Return one observation with its type-specific fields and comments.",
    responses={
        403: {"description": "Caller may not see this child"},
        404: {"description": "Observation not found"},
    },
)
async def get_observation(
    observation_id: str, current: CurrentUserDep, session: SessionDep, repos: ReposDep
) -> ObservationDetail:
    """
    Get an observation.

    Only the fields that belong to the observation's type are filled:
    ``content`` for TEXT and RICHTEXT, ``media_url`` for PHOTO, VIDEO and
    AUDIO, ``checklist_items`` for CHECKLIST.
    """
    observation = await _get_observation_or_404(session, observation_id)
    child = await get_child_or_404(repos, observation.child_id)
    await ensure_can_view_child(current, child, repos)

    comments_result = await session.execute(
        select(ObservationComment)
        .where(ObservationComment.observation_id == observation.id)
        .order_by(ObservationComment.created_at)
    )
    comments = list(comments_result.scalars().all())
    users = await _users_by_id(session, [observation.nanny_id] + [c.user_id for c in comments])
    names = {user_id: await repos.users.display_name(user) for user_id, user in users.items()}

    observation_type = ObservationType(observation.type)
    checklist = None
    if observation_type == ObservationType.CHECKLIST:
        checklist = [ChecklistItem.model_validate(item) for item in load_json(observation.checklist_items, [])]

    return ObservationDetail(
        id=observation.id,
        nanny_id=observation.nanny_id,
        nanny_name=names.get(observation.nanny_id, "Unknown"),
        child_id=child.id,
        child_name=child.full_name,
        type=observation_type,
        content=observation.content if observation_type in TEXT_TYPES else None,
        notes=observation.notes,
        media_url=observation.media_url if observation_type in MEDIA_TYPES else None,
        checklist_items=checklist,
        ai_tags=load_json(observation.ai_tags, []),
        is_permanent=observation.is_permanent,
        comments=[
            CommentRead(
                id=comment.id,
                content=comment.content,
                user_id=comment.user_id,
                user_name=names.get(comment.user_id, "Unknown"),
                user_role=UserRole(users[comment.user_id].role).value if comment.user_id in users else "Unknown",
                created_at=comment.created_at,
            )
            for comment in comments
        ],
        created_at=observation.created_at,
        updated_at=observation.updated_at,
    )


async def _can_comment(current: CurrentUser, observation: Observation, child: Child, repos: ReposDep) -> bool:
    if current.role == UserRole.ADMIN:
        return True
    if current.role == UserRole.PARENT:
        parent = await repos.users.get_parent_profile(current.id)
        return parent is not None and child.parent_id == parent.id
    if observation.nanny_id == current.id:
        return True
    nanny = await repos.users.get_nanny_profile(current.id)
    return nanny is not None and await repos.families.is_nanny_assigned(nanny.id, child.family_id)


@router.post(
    "/{observation_id}/comments",
    response_model=CommentRead,
    status_code=status.HTTP_201_CREATED,
    summary="Comment on Observation",
    responses={
        403: {"description": "Caller may not comment on this observation"},
        404: {"description": "Observation not found"},
    },
)
async def add_comment(
    observation_id: str, body: CommentCreate, current: CurrentUserDep, session: SessionDep, repos: ReposDep
) -> CommentRead:
    content = body.content.strip()
    if not content:
        raise BadRequestError("Comment cannot be empty")
    observation = await _get_observation_or_404(session, observation_id)
    child = await get_child_or_404(repos, observation.child_id)
    if not await _can_comment(current, observation, child, repos):
        raise ForbiddenError("You don't have permission to comment on this observation")

    comment = ObservationComment(observation_id=observation.id, user_id=current.id, content=content)
    session.add(comment)
    await session.commit()
    return CommentRead(
        id=comment.id,
        content=comment.content,
        user_id=current.id,
        user_name=await repos.users.display_name(current.user),
        user_role=current.role.value,
        created_at=comment.created_at,
    )


async def _get_editable(session: SessionDep, observation_id: str, current: CurrentUser) -> Observation:
    observation = await _get_observation_or_404(session, observation_id)
    if current.role == UserRole.NANNY and observation.nanny_id != current.id:
        raise ForbiddenError("You can only modify your own observations")
    return observation


@router.put(
    "/{observation_id}",
    response_model=ObservationRead,
    summary="Update Observation",
    description="Edit an observation. Nannies may only edit their own; only admins may move it to another child.",
    responses={
        400: {"description": "Nannies cannot change the child"},
        403: {"description": "Not the nanny's observation"},
        404: {"description": "Observation not found"},
    },
)
async def update_observation(
    observation_id: str, body: ObservationUpdate, current: NannyOrAdminDep, session: SessionDep, repos: ReposDep
) -> ObservationRead:
    """
    Update an observation.

    Only fields present in the body change; an explicit ``"notes": null``
    clears the notes.
    """
    observation = await _get_editable(session, observation_id, current)
    provided = body.model_fields_set

    if body.child_id is not None and body.child_id != observation.child_id:
        if current.role != UserRole.ADMIN:
            raise BadRequestError("Cannot change the child of an observation")
        await get_child_or_404(repos, body.child_id)
        observation.child_id = body.child_id

    if body.type is not None:
        observation.type = body.type
    if body.content is not None:
        observation.content = body.content
    if "notes" in provided:
        observation.notes = body.notes
    if body.media_url is not None:
        observation.media_url = body.media_url
    if body.checklist_items is not None:
        observation.checklist_items = dump_json([item.model_dump() for item in body.checklist_items])
    if body.is_permanent is not None:
        observation.is_permanent = body.is_permanent

    await session.commit()
    await session.refresh(observation)
    logger.info(f"User {current.id} updated observation {observation.id}")
    names = await _child_names(session, [observation.child_id])
    counts = await _comment_counts(session, [observation.id])
    return _to_read(observation, names.get(observation.child_id), counts.get(observation.id, 0))


@router.delete(
    "/{observation_id}",
    summary="Delete Observation",
    description="Delete an observation and its comments.",
    responses={
        403: {"description": "Not the nanny's observation"},
        404: {"description": "Observation not found"},
    },
)
async def delete_observation(observation_id: str, current: NannyOrAdminDep, session: SessionDep):
    observation = await _get_editable(session, observation_id, current)
    comments = await session.execute(
        select(ObservationComment).where(ObservationComment.observation_id == observation.id)
    )
    for comment in comments.scalars().all():
        await session.delete(comment)
    await session.delete(observation)
    await session.commit()
    logger.info(f"User {current.id} deleted observation {observation_id}")
    return {"success": True, "deleted_observation_id": observation_id}
