"""
Offline Sync API Endpoints.

Clients that worked offline replay their queued mutations here one at a
time. Every replay is recorded in the caller's sync log.
"""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Query
from sqlmodel import select

from indaba.core.database.entities.sync import SyncLog
from indaba.core.logging_config import get_logger
from indaba.core.models.io.sync import SyncLogRead, SyncOperationRequest, SyncOperationResponse
from indaba.server.services.deps import CurrentUserDep, ReposDep, SessionDep
from indaba.server.services.sync import replay_operation

logger = get_logger(__name__)
router = APIRouter()


@router.post(
    "/operation",
    response_model=SyncOperationResponse,
    summary="Replay Offline Operation",
    description="Apply one CREATE, UPDATE or DELETE queued by an offline client.",
    response_description="The sync log entry and the resulting record.",
    responses={
        400: {"description": "Unsupported model or operation, or invalid data"},
        403: {"description": "Caller may not change this record"},
        404: {"description": "Record not found"},
        409: {"description": "Record conflicts with existing data"},
    },
)
async def sync_operation(
    body: SyncOperationRequest, current: CurrentUserDep, session: SessionDep, repos: ReposDep
) -> SyncOperationResponse:
    """
    Replay an offline operation.

    - **operation_type**: CREATE, UPDATE or DELETE.
    - **model_name**: Entity name such as ``Observation`` or ``Message``.
    - **record_id**: Primary key; CREATE uses it for the new row.
    - **data**: Field values, camelCase or snake_case.
    """
    log, record = await replay_operation(session, repos, current, body)
    return SyncOperationResponse(success=True, sync_log_id=log.id, record=record)


@router.get(
    "/logs",
    response_model=List[SyncLogRead],
    summary="List Sync Logs",
    description="The caller's most recent sync log entries, newest first.",
)
async def list_sync_logs(
    current: CurrentUserDep, session: SessionDep, limit: int = Query(default=50, ge=1, le=100)
) -> List[SyncLogRead]:
    logs = await session.execute(
        select(SyncLog).where(SyncLog.user_id == current.id).order_by(SyncLog.created_at.desc()).limit(limit)
    )
    return [SyncLogRead.model_validate(log, from_attributes=True) for log in logs.scalars().all()]
