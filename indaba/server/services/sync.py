"""
Offline sync replay.

Clients that were offline queue their mutations and replay them one by one
through ``/sync/operation``. Every replay is recorded in a ``SyncLog`` row
that ends up ``Completed`` or ``Failed``. There is no conflict resolution:
the last replay to arrive wins.

Each supported model has a handler registered with ``@sync_handler``. A
handler enforces the ownership rules for its model and only writes the
fields a client may change; it never commits, the replay does.
"""

from __future__ import annotations

import dataclasses
import json
import re
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Type

import sqlalchemy as sa
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import SQLModel, select

from indaba.core.database.base import utc_now
from indaba.core.database.entities.admin import ReportSchedule
from indaba.core.database.entities.agencies import Agency, AgencyNanny
from indaba.core.database.entities.families import Child, Family
from indaba.core.database.entities.messages import Message
from indaba.core.database.entities.milestones import ChildMilestone
from indaba.core.database.entities.moderation import FlaggedContent
from indaba.core.database.entities.nanny import Certification
from indaba.core.database.entities.observations import Observation
from indaba.core.database.entities.resources import ContentTag, Resource, ResourceTag
from indaba.core.database.entities.sync import SyncLog
from indaba.core.database.entities.users import (
    NannyProfile,
    ParentProfile,
    User,
    UserNotificationSettings,
    UserRole,
    UserSettings,
)
from indaba.core.database.repositories import SqlRepoBundle
from indaba.core.errors import BadRequestError, ConflictError, ForbiddenError, NotFoundError
from indaba.core.logging_config import get_logger
from indaba.core.models.io.sync import SyncOperationRequest, SyncOperationType
from indaba.core.monitoring import log_sync_operation

from .access import can_view_child, require_nanny_profile, require_parent_profile
from .common import dump_json, naive_utc
from .deps import CurrentUser
from .milestones import resolve_achievement_target
from .moderation import announce_flag, observation_text, scan_for_keywords
from .reports import next_run_date

logger = get_logger(__name__)

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


@dataclasses.dataclass
class SyncContext:
    """Everything a handler needs to replay one operation."""

    session: AsyncSession
    repos: SqlRepoBundle
    current: CurrentUser
    operation: SyncOperationType
    record_id: str
    data: Dict[str, Any]
    after_commit: List[Callable[[], Any]] = dataclasses.field(default_factory=list)


SyncHandler = Callable[[SyncContext], Awaitable[Optional[SQLModel]]]

_HANDLERS: Dict[str, SyncHandler] = {}


def sync_handler(model_name: str) -> Callable[[SyncHandler], SyncHandler]:
    def register(func: SyncHandler) -> SyncHandler:
        _HANDLERS[model_name] = func
        return func

    return register


def normalize_keys(data: Dict[str, Any]) -> Dict[str, Any]:
    """Accept both ``camelCase`` and ``snake_case`` keys from clients."""
    return {_CAMEL_BOUNDARY.sub("_", key).lower(): value for key, value in data.items()}


def _python_type(column: sa.Column) -> Optional[type]:
    try:
        return column.type.python_type
    except NotImplementedError:
        return None


def _coerce(model: Type[SQLModel], field: str, value: Any) -> Any:
    if value is None:
        return None
    column = model.__table__.c.get(field)  # type: ignore[attr-defined]
    if column is None:
        return value
    try:
        if _python_type(column) is datetime and isinstance(value, str):
            return naive_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))
        if isinstance(column.type, sa.Enum) and column.type.enum_class is not None:
            return column.type.enum_class(value)
    except ValueError as e:
        raise BadRequestError(f"Invalid value for {field}") from e
    if isinstance(value, (list, dict)):
        return dump_json(value)
    return value


def _assign(entity: SQLModel, data: Dict[str, Any], fields: Iterable[str]) -> None:
    for field in fields:
        if field in data:
            setattr(entity, field, _coerce(type(entity), field, data[field]))


def _build(model: Type[SQLModel], ctx: SyncContext, fields: Iterable[str], **owned: Any) -> SQLModel:
    values = {field: _coerce(model, field, ctx.data[field]) for field in fields if field in ctx.data}
    values.update(owned)
    entity = model(id=ctx.record_id, **values)
    ctx.session.add(entity)
    return entity


async def _load(ctx: SyncContext, model: Type[SQLModel]) -> Any:
    entity = await ctx.session.get(model, ctx.record_id)
    if entity is None:
        raise NotFoundError(f"{model.__name__} not found")
    return entity


async def _scan(ctx: SyncContext, content_type: str, text: Optional[str]) -> None:
    flag = await scan_for_keywords(
        ctx.session, content_type=content_type, content_id=ctx.record_id, text=text, author_id=ctx.current.id
    )
    if flag is not None:
        ctx.after_commit.append(lambda: announce_flag(flag))


def _require_admin(ctx: SyncContext, what: str) -> None:
    if ctx.current.role != UserRole.ADMIN:
        raise ForbiddenError(f"Only admins can sync {what}")


def _unsupported(ctx: SyncContext, model_name: str) -> BadRequestError:
    return BadRequestError(f"Unsupported operation for {model_name}: {ctx.operation.value}")


async def _admin_crud(ctx: SyncContext, model: Type[SQLModel], fields: Iterable[str], **owned: Any) -> Optional[SQLModel]:
    if ctx.operation == SyncOperationType.CREATE:
        return _build(model, ctx, fields, **owned)
    entity = await _load(ctx, model)
    if ctx.operation == SyncOperationType.UPDATE:
        _assign(entity, ctx.data, fields)
        return entity
    await ctx.session.delete(entity)
    return None


# =====================================================================
# Handlers
# =====================================================================

OBSERVATION_FIELDS = ("content", "notes", "media_url", "checklist_items", "ai_tags", "is_permanent")


@sync_handler("Observation")
async def _sync_observation(ctx: SyncContext) -> Optional[SQLModel]:
    if ctx.current.role != UserRole.NANNY:
        raise ForbiddenError("Only nannies can sync observations")
    if ctx.operation == SyncOperationType.CREATE:
        child = await ctx.repos.families.get_child(str(ctx.data.get("child_id", "")))
        if child is None:
            raise NotFoundError("Child not found")
        if not await can_view_child(ctx.current, child, ctx.repos):
            raise ForbiddenError("You are not assigned to this child's family")
        observation = _build(Observation, ctx, ("type",) + OBSERVATION_FIELDS, nanny_id=ctx.current.id, child_id=child.id)
        await _scan(ctx, "observation", observation_text(observation))
        return observation

    observation = await _load(ctx, Observation)
    if observation.nanny_id != ctx.current.id:
        raise ForbiddenError("You can only modify your own observations")
    if ctx.operation == SyncOperationType.UPDATE:
        _assign(observation, ctx.data, OBSERVATION_FIELDS)
        return observation
    await ctx.session.delete(observation)
    return None


@sync_handler("Message")
async def _sync_message(ctx: SyncContext) -> Optional[SQLModel]:
    if ctx.operation == SyncOperationType.CREATE:
        recipient = await ctx.session.get(User, str(ctx.data.get("recipient_id", "")))
        if recipient is None:
            raise NotFoundError("Recipient not found")
        if not ctx.data.get("content"):
            raise BadRequestError("Message content is required")
        message = _build(Message, ctx, ("content", "child_id", "summary"), sender_id=ctx.current.id, recipient_id=recipient.id)
        await _scan(ctx, "message", message.content)
        return message

    message = await _load(ctx, Message)
    if ctx.operation == SyncOperationType.UPDATE:
        if message.recipient_id != ctx.current.id:
            raise ForbiddenError("Only the recipient can update a message")
        _assign(message, ctx.data, ("is_read",))
        return message
    if message.sender_id != ctx.current.id:
        raise ForbiddenError("Only the sender can delete a message")
    await ctx.session.delete(message)
    return None


@sync_handler("NannyProfile")
async def _sync_nanny_profile(ctx: SyncContext) -> Optional[SQLModel]:
    if ctx.operation != SyncOperationType.UPDATE:
        raise _unsupported(ctx, "NannyProfile")
    profile = await require_nanny_profile(ctx.current, ctx.repos)
    if profile.id != ctx.record_id:
        raise ForbiddenError("You don't have permission to update this profile")
    _assign(
        profile,
        ctx.data,
        (
            "first_name",
            "last_name",
            "phone_number",
            "location",
            "bio",
            "availability",
            "profile_image_url",
            "cover_image_url",
            "specialties",
            "years_of_experience",
            "languages",
        ),
    )
    return profile


@sync_handler("ParentProfile")
async def _sync_parent_profile(ctx: SyncContext) -> Optional[SQLModel]:
    if ctx.operation != SyncOperationType.UPDATE:
        raise _unsupported(ctx, "ParentProfile")
    profile = await require_parent_profile(ctx.current, ctx.repos)
    if profile.id != ctx.record_id:
        raise ForbiddenError("You don't have permission to update this profile")
    _assign(profile, ctx.data, ("first_name", "last_name", "phone_number", "address", "profile_image_url"))
    return profile


CERTIFICATION_FIELDS = ("name", "issuing_authority", "date_issued", "expiry_date", "certificate_url", "status")


@sync_handler("Certification")
async def _sync_certification(ctx: SyncContext) -> Optional[SQLModel]:
    nanny = await require_nanny_profile(ctx.current, ctx.repos)
    if ctx.operation == SyncOperationType.CREATE:
        return _build(Certification, ctx, CERTIFICATION_FIELDS, nanny_id=nanny.id)
    certification = await _load(ctx, Certification)
    if certification.nanny_id != nanny.id:
        raise ForbiddenError("You don't have permission to modify this certification")
    if ctx.operation == SyncOperationType.UPDATE:
        _assign(certification, ctx.data, CERTIFICATION_FIELDS)
        return certification
    await ctx.session.delete(certification)
    return None


CHILD_FIELDS = (
    "first_name",
    "last_name",
    "birth_date",
    "gender",
    "profile_image_url",
    "medical_info",
    "allergies",
    "favorite_activities",
    "sleep_routine",
    "eating_routine",
    "is_archived",
)


@sync_handler("Child")
async def _sync_child(ctx: SyncContext) -> Optional[SQLModel]:
    if ctx.current.role != UserRole.PARENT:
        raise ForbiddenError("Only parents can sync child data")
    parent = await require_parent_profile(ctx.current, ctx.repos)
    if ctx.operation == SyncOperationType.CREATE:
        family = await ctx.repos.families.get_for_parent(parent.id)
        return _build(Child, ctx, CHILD_FIELDS, parent_id=parent.id, family_id=family.id if family else None)
    child = await _load(ctx, Child)
    if child.parent_id != parent.id:
        raise ForbiddenError("You don't have permission to modify this child")
    if ctx.operation == SyncOperationType.UPDATE:
        _assign(child, ctx.data, CHILD_FIELDS)
        return child
    await ctx.session.delete(child)
    return None


@sync_handler("Family")
async def _sync_family(ctx: SyncContext) -> Optional[SQLModel]:
    if ctx.current.role != UserRole.PARENT:
        raise ForbiddenError("Only parents can sync family data")
    parent = await require_parent_profile(ctx.current, ctx.repos)
    existing = await ctx.repos.families.get_for_parent(parent.id)
    if ctx.operation == SyncOperationType.CREATE:
        if existing is not None:
            raise BadRequestError("Parent already has a family")
        return _build(Family, ctx, ("name", "home_details"), parent_id=parent.id)
    if ctx.operation == SyncOperationType.DELETE:
        raise BadRequestError("Family deletion is not supported")
    if existing is None or existing.id != ctx.record_id:
        raise ForbiddenError("You don't have permission to update this family")
    _assign(existing, ctx.data, ("name", "home_details"))
    return existing


@sync_handler("ChildMilestone")
async def _sync_child_milestone(ctx: SyncContext) -> Optional[SQLModel]:
    if ctx.operation == SyncOperationType.CREATE:
        child_id = str(ctx.data.get("child_id", ""))
        record = None
    else:
        record = await _load(ctx, ChildMilestone)
        child_id = record.child_id

    child = await ctx.repos.families.get_child(child_id)
    if child is None or ctx.current.role == UserRole.ADMIN or not await can_view_child(ctx.current, child, ctx.repos):
        raise ForbiddenError("You don't have permission to manage this child's milestones")

    if ctx.operation == SyncOperationType.CREATE:
        await resolve_achievement_target(
            ctx.session, child, ctx.data.get("milestone_id"), ctx.data.get("custom_milestone_id")
        )
        return _build(
            ChildMilestone, ctx, ("milestone_id", "custom_milestone_id", "achieved_date", "notes"), child_id=child.id
        )
    if ctx.operation == SyncOperationType.UPDATE:
        _assign(record, ctx.data, ("achieved_date", "notes"))
        return record
    await ctx.session.delete(record)
    return None


@sync_handler("FlaggedContent")
async def _sync_flagged_content(ctx: SyncContext) -> Optional[SQLModel]:
    _require_admin(ctx, "flagged content")
    entity = await _admin_crud(
        ctx, FlaggedContent, ("content_type", "content_id", "content", "reason", "status", "priority", "moderator_notes")
    )
    if ctx.operation == SyncOperationType.UPDATE and entity is not None:
        entity.moderated_by = ctx.current.id
        entity.moderated_at = utc_now()
    return entity


@sync_handler("Agency")
async def _sync_agency(ctx: SyncContext) -> Optional[SQLModel]:
    _require_admin(ctx, "agencies")
    return await _admin_crud(
        ctx,
        Agency,
        ("name", "contact_person", "contact_email", "contact_phone", "address", "description", "emergency_protocols"),
    )


@sync_handler("AgencyNanny")
async def _sync_agency_nanny(ctx: SyncContext) -> Optional[SQLModel]:
    _require_admin(ctx, "nanny agency assignments")
    return await _admin_crud(ctx, AgencyNanny, ("agency_id", "nanny_id", "role", "status", "pay_rate", "payment_schedule"))


@sync_handler("ReportSchedule")
async def _sync_report_schedule(ctx: SyncContext) -> Optional[SQLModel]:
    _require_admin(ctx, "report schedules")
    fields = ("name", "description", "report_type", "frequency", "format", "recipients", "filters")
    if ctx.operation == SyncOperationType.CREATE:
        frequency = str(ctx.data.get("frequency", "weekly"))
        return _build(
            ReportSchedule, ctx, fields, created_by=ctx.current.id, next_run_date=next_run_date(frequency)
        )
    return await _admin_crud(ctx, ReportSchedule, fields)


@sync_handler("ContentTag")
async def _sync_content_tag(ctx: SyncContext) -> Optional[SQLModel]:
    _require_admin(ctx, "content tags")
    return await _admin_crud(ctx, ContentTag, ("name", "category"))


@sync_handler("ResourceTag")
async def _sync_resource_tag(ctx: SyncContext) -> Optional[SQLModel]:
    _require_admin(ctx, "resource tags")
    if ctx.operation == SyncOperationType.UPDATE:
        raise BadRequestError("Resource tags cannot be updated; delete and create a new one")
    if ctx.operation == SyncOperationType.CREATE:
        resource = await ctx.session.get(Resource, str(ctx.data.get("resource_id", "")))
        tag = await ctx.session.get(ContentTag, str(ctx.data.get("tag_id", "")))
        if resource is None or tag is None:
            raise BadRequestError("Resource or tag not found")
        return _build(ResourceTag, ctx, (), resource_id=resource.id, tag_id=tag.id)
    return await _admin_crud(ctx, ResourceTag, ())


@sync_handler("User")
async def _sync_user(ctx: SyncContext) -> Optional[SQLModel]:
    if ctx.operation != SyncOperationType.UPDATE:
        raise _unsupported(ctx, "User")
    if ctx.record_id != ctx.current.id:
        raise ForbiddenError("You can only update your own account")
    user = await _load(ctx, User)
    _assign(user, ctx.data, ("display_name", "pronouns"))
    return user


async def _upsert_own_settings(ctx: SyncContext, model: Type[SQLModel], fields: Iterable[str]) -> SQLModel:
    if ctx.operation != SyncOperationType.UPDATE:
        raise _unsupported(ctx, model.__name__)
    result = await ctx.session.execute(select(model).where(model.user_id == ctx.current.id))  # type: ignore[attr-defined]
    settings_row = result.scalars().first()
    if settings_row is not None and ctx.record_id not in (settings_row.id, ctx.current.id):
        raise ForbiddenError("You can only update your own settings")
    if settings_row is None:
        if ctx.record_id != ctx.current.id:
            raise ForbiddenError("You can only update your own settings")
        settings_row = model(user_id=ctx.current.id)
        ctx.session.add(settings_row)
    _assign(settings_row, ctx.data, fields)
    return settings_row


@sync_handler("UserSettings")
async def _sync_user_settings(ctx: SyncContext) -> Optional[SQLModel]:
    return await _upsert_own_settings(
        ctx,
        UserSettings,
        ("profile_visibility", "marketing_opt_in", "media_cache_size", "auto_purge_policy", "sync_on_wifi_only"),
    )


@sync_handler("UserNotificationSettings")
async def _sync_user_notification_settings(ctx: SyncContext) -> Optional[SQLModel]:
    fields = [
        f"{channel}_{topic}"
        for channel in ("in_app", "email", "sms")
        for topic in ("messages", "approvals", "emergencies", "reminders")
    ]
    return await _upsert_own_settings(ctx, UserNotificationSettings, fields)


# =====================================================================
# Replay
# =====================================================================


def _serialize(entity: Optional[SQLModel]) -> Optional[Dict[str, Any]]:
    if entity is None:
        return None
    record = entity.model_dump(mode="json")
    record.pop("password_hash", None)
    return record


async def replay_operation(
    session: AsyncSession, repos: SqlRepoBundle, current: CurrentUser, request: SyncOperationRequest
) -> tuple[SyncLog, Optional[Dict[str, Any]]]:
    """Replay one queued operation and record the outcome.

    Raises:
        BadRequestError: If the model is not supported
        IndabaError: Whatever the model's handler raised; the log is marked Failed first
    """
    handler = _HANDLERS.get(request.model_name)
    if handler is None:
        raise BadRequestError(f"Unsupported model: {request.model_name}")

    user_id = current.id
    sync_log = SyncLog(
        user_id=user_id,
        operation_type=request.operation_type.value,
        model_name=request.model_name,
        record_id=request.record_id,
        data=json.dumps(request.data, default=str),
    )
    session.add(sync_log)
    await session.commit()
    log_id = sync_log.id

    ctx = SyncContext(
        session=session,
        repos=repos,
        current=current,
        operation=request.operation_type,
        record_id=request.record_id,
        data=normalize_keys(request.data),
    )
    try:
        entity = await handler(ctx)
        await session.flush()
        record = _serialize(entity)
        sync_log.status = "Completed"
        sync_log.synced_at = utc_now()
        await session.commit()
    except Exception as e:
        await session.rollback()
        failed = await session.get(SyncLog, log_id)
        failed.status = "Failed"
        failed.error_message = str(e)[:1000]
        await session.commit()
        logger.warning(
            f"Sync {request.operation_type.value} {request.model_name}/{request.record_id} failed for user {user_id}: {e}"
        )
        log_sync_operation(user_id, request.operation_type.value, request.model_name, request.record_id, "Failed")
        if isinstance(e, IntegrityError):
            raise ConflictError(f"{request.model_name} {request.record_id} conflicts with existing data") from e
        raise

    logger.info(f"Synced {request.operation_type.value} {request.model_name}/{request.record_id} for user {user_id}")
    for callback in ctx.after_commit:
        callback()
    log_sync_operation(user_id, request.operation_type.value, request.model_name, request.record_id, "Completed")
    return sync_log, record
