"""
User Settings API Endpoints.

Notification, privacy and offline-sync preferences of the signed-in user,
plus data export and account deletion.
"""

from __future__ import annotations

import csv
import io
from typing import Any, Dict, Optional

from fastapi import APIRouter
from sqlalchemy import update
from sqlmodel import select

from indaba.core.database.base import utc_now
from indaba.core.database.entities.users import UserNotificationSettings, UserSession, UserSettings
from indaba.core.errors import UnauthorizedError
from indaba.core.logging_config import get_logger
from indaba.core.models.io.auth import SuccessResponse
from indaba.core.models.io.users import (
    DeleteAccountRequest,
    ExportFormat,
    ExportRequest,
    ExportResponse,
    NotificationSettingsBody,
    PrivacySettingsUpdate,
    SyncSettingsUpdate,
)
from indaba.core.security import verify_password
from indaba.server.services.deps import CurrentUserDep, ReposDep, SessionDep

logger = get_logger(__name__)
router = APIRouter()


async def _get_settings(session: SessionDep, user_id: str) -> Optional[UserSettings]:
    result = await session.execute(select(UserSettings).where(UserSettings.user_id == user_id))
    return result.scalars().first()


async def _get_or_create_settings(session: SessionDep, user_id: str) -> UserSettings:
    settings_row = await _get_settings(session, user_id)
    if settings_row is None:
        settings_row = UserSettings(user_id=user_id)
        session.add(settings_row)
    return settings_row


async def _get_notifications(session: SessionDep, user_id: str) -> Optional[UserNotificationSettings]:
    result = await session.execute(
        select(UserNotificationSettings).where(UserNotificationSettings.user_id == user_id)
    )
    return result.scalars().first()


@router.get(
    "/notification-settings",
    response_model=NotificationSettingsBody,
    summary="Get Notification Settings",
    description="Return the caller's notification switches, or the defaults when none are stored.",
)
async def get_notification_settings(current: CurrentUserDep, session: SessionDep) -> NotificationSettingsBody:
    stored = await _get_notifications(session, current.id)
    if stored is None:
        return NotificationSettingsBody()
    return NotificationSettingsBody.model_validate(stored)


@router.put(
    "/notification-settings",
    response_model=NotificationSettingsBody,
    summary="Update Notification Settings",
    description="Store all twelve notification switches.",
)
async def update_notification_settings(
    body: NotificationSettingsBody, current: CurrentUserDep, session: SessionDep
) -> NotificationSettingsBody:
    stored = await _get_notifications(session, current.id)
    if stored is None:
        stored = UserNotificationSettings(user_id=current.id)
        session.add(stored)
    for field, value in body.model_dump().items():
        setattr(stored, field, value)
    await session.commit()
    return NotificationSettingsBody.model_validate(stored)


@router.put(
    "/privacy-settings",
    response_model=SuccessResponse,
    summary="Update Privacy Settings",
    description="Set who can see the caller's profile and whether they receive marketing.",
)
async def update_privacy_settings(
    body: PrivacySettingsUpdate, current: CurrentUserDep, session: SessionDep
) -> SuccessResponse:
    settings_row = await _get_or_create_settings(session, current.id)
    settings_row.profile_visibility = body.profile_visibility.value
    settings_row.marketing_opt_in = body.marketing_opt_in
    await session.commit()
    return SuccessResponse(message="Privacy settings updated")


@router.put(
    "/sync-settings",
    response_model=SuccessResponse,
    summary="Update Sync Settings",
    description="Configure the offline media cache and when the client syncs.",
)
async def update_sync_settings(body: SyncSettingsUpdate, current: CurrentUserDep, session: SessionDep) -> SuccessResponse:
    """
    Update offline sync settings.

    - **media_cache_size**: Cache size in MB (50-1000).
    - **auto_purge_policy**: Days before cached media is purged (1-90).
    - **sync_on_wifi_only**: Only sync on Wi-Fi connections.
    """
    settings_row = await _get_or_create_settings(session, current.id)
    settings_row.media_cache_size = body.media_cache_size
    settings_row.auto_purge_policy = body.auto_purge_policy
    settings_row.sync_on_wifi_only = body.sync_on_wifi_only
    await session.commit()
    return SuccessResponse(message="Sync settings updated")


@router.post(
    "/sync-now",
    summary="Record Sync",
    description="Record that the client just finished a sync and return the timestamp.",
)
async def sync_now(current: CurrentUserDep, session: SessionDep) -> Dict[str, Any]:
    settings_row = await _get_or_create_settings(session, current.id)
    settings_row.last_sync_at = utc_now()
    await session.commit()
    return {"success": True, "last_sync_at": settings_row.last_sync_at.isoformat()}


def _flatten(data: Dict[str, Any], prefix: str = "") -> Dict[str, Any]:
    flat: Dict[str, Any] = {}
    for key, value in data.items():
        name = f"{prefix}{key}"
        if isinstance(value, dict):
            flat.update(_flatten(value, f"{name}."))
        else:
            flat[name] = value
    return flat


def to_csv(data: Dict[str, Any]) -> str:
    """Render nested export data as ``key,value`` rows."""
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(["key", "value"])
    for key, value in _flatten(data).items():
        writer.writerow([key, "" if value is None else value])
    return buffer.getvalue()


@router.post(
    "/export",
    response_model=ExportResponse,
    summary="Export My Data",
    description="Export the caller's account, profile and settings as JSON or CSV.",
)
async def export_data(body: ExportRequest, current: CurrentUserDep, session: SessionDep, repos: ReposDep) -> ExportResponse:
    user = current.user
    profile = await repos.users.get_profile(user)
    notifications = await _get_notifications(session, user.id)
    settings_row = await _get_settings(session, user.id)

    data: Dict[str, Any] = {
        "user": user.model_dump(mode="json", include={"id", "email", "role", "display_name", "pronouns", "created_at"}),
        "profile": profile.model_dump(mode="json", exclude={"user_id"}) if profile else None,
        "notification_settings": NotificationSettingsBody.model_validate(notifications).model_dump()
        if notifications
        else NotificationSettingsBody().model_dump(),
        "sync_settings": settings_row.model_dump(
            mode="json", include={"media_cache_size", "auto_purge_policy", "sync_on_wifi_only", "last_sync_at"}
        )
        if settings_row
        else None,
        "exported_at": utc_now().isoformat(),
    }
    logger.info(f"User {user.id} exported their data as {body.format.value}")
    if body.format == ExportFormat.CSV:
        return ExportResponse(success=True, message="Data exported as CSV", data=to_csv(data))
    return ExportResponse(success=True, message="Data exported as JSON", data=data)


@router.post(
    "/delete-account",
    response_model=SuccessResponse,
    summary="Delete Account",
    description="Anonymize the account and sign out every session. The account cannot sign in again.",
    responses={401: {"description": "Incorrect password"}},
)
async def delete_account(body: DeleteAccountRequest, current: CurrentUserDep, session: SessionDep) -> SuccessResponse:
    user = current.user
    if not verify_password(body.password, user.password_hash):
        raise UnauthorizedError("Incorrect password")

    user.email = f"deleted-{user.id}@example.com"
    user.password_hash = ""
    await session.execute(update(UserSession).where(UserSession.user_id == user.id).values(is_revoked=True))
    await session.commit()
    logger.info(f"User {user.id} deleted their account (reason: {body.reason or 'not given'})")
    return SuccessResponse(message="Account deleted")
