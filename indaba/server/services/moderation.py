"""
Automatic content flagging.

New messages and observations are matched against the active keyword flags.
A match queues the content for moderator review. Once the caller has
committed, ``announce_flag`` tells the admin activity feed.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from indaba.core.database.entities.moderation import (
    PRIORITY_RANK,
    SEVERITY_TO_PRIORITY,
    FlaggedContent,
    KeywordFlag,
)
from indaba.core.database.entities.observations import Observation
from indaba.core.events import ActivityEvent, emit_activity
from indaba.core.logging_config import get_logger

logger = get_logger(__name__)

KEYWORD_REASON_PREFIX = "Matched keywords: "


async def scan_for_keywords(
    session: AsyncSession,
    *,
    content_type: str,
    content_id: str,
    text: Optional[str],
    author_id: str,
) -> Optional[FlaggedContent]:
    """Flag ``text`` when it contains any active keyword.

    The flag's priority follows the most severe matching keyword. The caller
    owns the transaction; the flag is added to the session but not committed.

    Returns:
        The new flag, or None when nothing matched
    """
    if not text:
        return None
    result = await session.execute(select(KeywordFlag).where(KeywordFlag.is_active == True))  # noqa: E712
    lowered = text.lower()
    matches = [flag for flag in result.scalars().all() if flag.keyword.lower() in lowered]
    if not matches:
        return None

    priorities = [SEVERITY_TO_PRIORITY.get(flag.severity.lower(), "Medium") for flag in matches]
    priority = min(priorities, key=lambda p: PRIORITY_RANK[p])
    keywords = ", ".join(sorted(flag.keyword for flag in matches))

    flag = FlaggedContent(
        content_type=content_type,
        content_id=content_id,
        content=text,
        reason=f"{KEYWORD_REASON_PREFIX}{keywords}",
        priority=priority,
        reported_by=author_id,
    )
    session.add(flag)
    logger.info(f"Flagged {content_type} {content_id} with priority {priority} (keywords: {keywords})")
    return flag


def observation_text(observation: Observation) -> str:
    return "\n".join(part for part in (observation.content, observation.notes) if part)


def announce_flag(flag: Optional[FlaggedContent]) -> Optional[ActivityEvent]:
    """Publish ``content_flagged`` for a committed flag; a None flag is a no-op."""
    if flag is None:
        return None
    return emit_activity(
        "content_flagged",
        f"{flag.content_type} flagged for review ({flag.reason.removeprefix(KEYWORD_REASON_PREFIX)})",
        user_id=flag.reported_by,
        content_id=flag.content_id,
    )
