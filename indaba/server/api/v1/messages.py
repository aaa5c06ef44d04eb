"""
Messaging API Endpoints.

Direct messages between users, usually a nanny and a parent talking about a
child. Messages can carry an AI summary of the recent conversation.
"""

from __future__ import annotations

from typing import Dict, List, Optional

from fastapi import APIRouter, Query, status
from sqlalchemy import and_, func, or_, update
from sqlmodel import select

from indaba.core.ai import is_ai_available, summarize_messages
from indaba.core.database.entities.messages import Message
from indaba.core.database.entities.users import AdminProfile, NannyProfile, ParentProfile, User, UserRole
from indaba.core.database.repositories import QueryBuilder
from indaba.core.errors import NotFoundError
from indaba.core.logging_config import get_logger
from indaba.core.models.io.messages import (
    ConversationRead,
    LastMessage,
    MessageCreate,
    MessagePage,
    MessageRead,
    MessageSender,
    Recipient,
)
from indaba.server.services.deps import CurrentUserDep, ReposDep, SessionDep
from indaba.server.services.moderation import announce_flag, scan_for_keywords

logger = get_logger(__name__)
router = APIRouter()

SUMMARY_WINDOW = 5


async def _sender(repos: ReposDep, user: User) -> MessageSender:
    profile = await repos.users.get_profile(user)
    return MessageSender(
        id=user.id,
        name=await repos.users.display_name(user),
        role=UserRole(user.role).value,
        profile_image_url=getattr(profile, "profile_image_url", None),
    )


def _to_read(message: Message, sender: MessageSender, current_user_id: str) -> MessageRead:
    return MessageRead(
        id=message.id,
        content=message.content,
        summary=message.summary,
        child_id=message.child_id,
        is_read=message.is_read,
        created_at=message.created_at,
        sender=sender,
        is_from_user=message.sender_id == current_user_id,
    )


def _between(user_a: str, user_b: str):
    return or_(
        and_(Message.sender_id == user_a, Message.recipient_id == user_b),
        and_(Message.sender_id == user_b, Message.recipient_id == user_a),
    )


async def _summarize(session: SessionDep, repos: ReposDep, sender: User, recipient: User, child_id: str) -> Optional[str]:
    child = await repos.families.get_child(child_id)
    if child is None:
        return None
    stmt = (
        select(Message)
        .where(_between(sender.id, recipient.id), Message.child_id == child_id)
        .order_by(Message.created_at.desc(), Message.id.desc())
        .limit(SUMMARY_WINDOW)
    )
    recent = list(reversed((await session.execute(stmt)).scalars().all()))
    names = {
        sender.id: await repos.users.display_name(sender),
        recipient.id: await repos.users.display_name(recipient),
    }
    summary = await summarize_messages([(names[m.sender_id], m.content) for m in recent], child.full_name)
    return summary or None


@router.post(
    "",
    response_model=MessageRead,
    status_code=status.HTTP_201_CREATED,
    summary="Send Message",
    description="Send a direct message, optionally with an AI summary of the conversation about a child.",
    responses={404: {"description": "Recipient not found"}},
)
async def send_message(body: MessageCreate, current: CurrentUserDep, session: SessionDep, repos: ReposDep) -> MessageRead:
    """
    Send a message.

    - **recipient_id**: The user receiving the message.
    - **content**: Message text.
    - **child_id**: The child the message is about, if any.
    - **generate_summary**: Summarize the last five messages about the child.
    """
    recipient = await session.get(User, body.recipient_id)
    if recipient is None:
        raise NotFoundError("Recipient not found")

    message = Message(
        sender_id=current.id,
        recipient_id=recipient.id,
        child_id=body.child_id,
        content=body.content,
    )
    session.add(message)
    await session.flush()
    flag = await scan_for_keywords(
        session, content_type="message", content_id=message.id, text=message.content, author_id=current.id
    )

    if body.generate_summary and body.child_id and is_ai_available():
        message.summary = await _summarize(session, repos, current.user, recipient, body.child_id)

    await session.commit()
    logger.info(f"User {current.id} sent message {message.id} to {recipient.id}")
    announce_flag(flag)
    return _to_read(message, await _sender(repos, current.user), current.id)


@router.get(
    "/conversations",
    response_model=List[ConversationRead],
    summary="List Conversations",
    description="Everyone the caller has exchanged messages with, most recent conversation first.",
)
async def list_conversations(current: CurrentUserDep, session: SessionDep, repos: ReposDep) -> List[ConversationRead]:
    stmt = (
        select(Message)
        .where(or_(Message.sender_id == current.id, Message.recipient_id == current.id))
        .order_by(Message.created_at.desc(), Message.id.desc())
    )
    latest: Dict[str, Message] = {}
    for message in (await session.execute(stmt)).scalars().all():
        partner_id = message.recipient_id if message.sender_id == current.id else message.sender_id
        latest.setdefault(partner_id, message)
    if not latest:
        return []

    unread_stmt = (
        select(Message.sender_id, func.count(Message.id))
        .where(Message.recipient_id == current.id, Message.is_read == False)  # noqa: E712
        .group_by(Message.sender_id)
    )
    unread = dict((await session.execute(unread_stmt)).all())
    partners = await session.execute(select(User).where(User.id.in_(latest.keys())))

    conversations = []
    for partner in partners.scalars().all():
        message = latest[partner.id]
        profile = await repos.users.get_profile(partner)
        conversations.append(
            ConversationRead(
                user_id=partner.id,
                name=await repos.users.display_name(partner),
                role=UserRole(partner.role).value,
                profile_image_url=getattr(profile, "profile_image_url", None),
                last_message=LastMessage(
                    id=message.id,
                    content=message.content,
                    created_at=message.created_at,
                    is_from_user=message.sender_id == current.id,
                ),
                unread_count=unread.get(partner.id, 0),
            )
        )
    conversations.sort(key=lambda c: c.last_message.created_at, reverse=True)
    return conversations


@router.get(
    "/recipients",
    response_model=List[Recipient],
    summary="Search Recipients",
    description="Find users to message by email, display name or profile name.",
)
async def search_recipients(
    current: CurrentUserDep,
    session: SessionDep,
    repos: ReposDep,
    search: Optional[str] = None,
    limit: int = Query(default=10, ge=1, le=50),
) -> List[Recipient]:
    stmt = (
        select(User)
        .outerjoin(NannyProfile, NannyProfile.user_id == User.id)
        .outerjoin(ParentProfile, ParentProfile.user_id == User.id)
        .outerjoin(AdminProfile, AdminProfile.user_id == User.id)
        .where(User.id != current.id, User.password_hash != "")
    )
    if search:
        pattern = f"%{search.lower()}%"
        columns = [
            User.email,
            User.display_name,
            NannyProfile.first_name,
            NannyProfile.last_name,
            ParentProfile.first_name,
            ParentProfile.last_name,
            AdminProfile.first_name,
            AdminProfile.last_name,
        ]
        stmt = stmt.where(or_(*(func.lower(func.coalesce(column, "")).like(pattern) for column in columns)))
    users = (await session.execute(stmt.order_by(User.email).limit(limit))).scalars().all()

    recipients = []
    for user in users:
        profile = await repos.users.get_profile(user)
        recipients.append(
            Recipient(
                id=user.id,
                name=await repos.users.display_name(user),
                email=user.email,
                role=UserRole(user.role).value,
                profile_image_url=getattr(profile, "profile_image_url", None),
            )
        )
    return recipients


@router.get(
    "/{other_user_id}",
    response_model=MessagePage,
    summary="Get Conversation",
    description="Cursor-paginated messages between the caller and another user, newest first.",
    responses={404: {"description": "User not found"}},
)
async def get_conversation(
    other_user_id: str,
    current: CurrentUserDep,
    session: SessionDep,
    repos: ReposDep,
    cursor: Optional[str] = None,
    limit: int = Query(default=20, ge=1, le=100),
    mark_as_read: bool = True,
) -> MessagePage:
    """
    Read a conversation.

    - **cursor**: ``next_cursor`` of the previous page.
    - **mark_as_read**: Mark the other user's unread messages as read (default true).
    """
    other = await session.get(User, other_user_id)
    if other is None:
        raise NotFoundError("User not found")

    stmt = select(Message).where(_between(current.id, other.id))
    stmt = QueryBuilder.apply_cursor(stmt, Message, cursor, "created_at")
    stmt = stmt.order_by(Message.created_at.desc(), Message.id.desc()).limit(limit + 1)
    rows = list((await session.execute(stmt)).scalars().all())

    next_cursor = None
    if len(rows) > limit:
        rows = rows[:limit]
        next_cursor = rows[-1].id

    if mark_as_read:
        await session.execute(
            update(Message)
            .where(Message.sender_id == other.id, Message.recipient_id == current.id, Message.is_read == False)  # noqa: E712
            .values(is_read=True)
        )
        await session.commit()

    senders = {current.id: await _sender(repos, current.user), other.id: await _sender(repos, other)}
    return MessagePage(
        items=[_to_read(m, senders[m.sender_id], current.id) for m in rows],
        next_cursor=next_cursor,
    )
