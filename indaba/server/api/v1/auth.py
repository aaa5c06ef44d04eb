"""
Authentication API Endpoints.

Registration, sign-in, password changes, TOTP two-factor authentication and
management of login sessions. Every issued token is bound to a
``UserSession`` row, so revoking the session invalidates the token.
"""

from __future__ import annotations

import json
from typing import List, Optional, Tuple

from fastapi import APIRouter, Request, status
from sqlmodel import select

from indaba.core.ai import is_ai_available
from indaba.core.database.base import utc_now
from indaba.core.database.entities.users import (
    AdminProfile,
    NannyProfile,
    ParentProfile,
    TwoFactorAuth,
    User,
    UserRole,
    UserSession,
)
from indaba.core.errors import BadRequestError, ConflictError, NotFoundError, UnauthorizedError
from indaba.core.events import emit_activity
from indaba.core.logging_config import get_logger
from indaba.core.models.io.auth import (
    AIAvailability,
    AuthResponse,
    ChangePasswordRequest,
    LoginRequest,
    MeResponse,
    RegisterRequest,
    SessionRead,
    SuccessResponse,
    TwoFactorSetupResponse,
    TwoFactorVerifyRequest,
    TwoFactorVerifyResponse,
    UserSummary,
    VerifyTokenResponse,
)
from indaba.core.security import (
    build_otpauth_url,
    create_access_token,
    generate_recovery_codes,
    generate_totp_secret,
    hash_password,
    token_expiry,
    verify_password,
    verify_totp,
)
from indaba.server.services.deps import CurrentUserDep, ReposDep, SessionDep

logger = get_logger(__name__)
router = APIRouter()


def describe_client(user_agent: Optional[str]) -> Tuple[str, str]:
    """Rough ``(device, browser)`` description of a User-Agent header."""
    if not user_agent:
        return "Unknown device", "Unknown browser"

    if "iPad" in user_agent or "Tablet" in user_agent:
        device = "Tablet"
    elif "Mobile" in user_agent or "Android" in user_agent or "iPhone" in user_agent:
        device = "Mobile"
    else:
        device = "Desktop"

    # Order matters: Edge and Chrome both claim to be Safari
    for marker, name in (("Edg/", "Edge"), ("Firefox/", "Firefox"), ("Chrome/", "Chrome"), ("Safari/", "Safari")):
        if marker in user_agent:
            return device, name
    return device, "Unknown browser"


def _open_session(session: SessionDep, user: User, request: Request) -> UserSession:
    device, browser = describe_client(request.headers.get("user-agent"))
    login_session = UserSession(
        user_id=user.id,
        device=device,
        browser=browser,
        ip_address=request.client.host if request.client else None,
        expires_at=token_expiry(),
    )
    session.add(login_session)
    return login_session


async def _summary(repos: ReposDep, user: User) -> UserSummary:
    profile = await repos.users.get_profile(user)
    return UserSummary(
        id=user.id,
        email=user.email,
        role=user.role,
        first_name=profile.first_name if profile else None,
        last_name=profile.last_name if profile else None,
        profile_image_url=getattr(profile, "profile_image_url", None),
    )


@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register",
    description="Create a new account together with the profile for its role.",
    response_description="The new user and an access token.",
    responses={
        201: {"description": "Account created"},
        409: {"description": "Email already in use"},
    },
)
async def register(body: RegisterRequest, request: Request, session: SessionDep, repos: ReposDep) -> AuthResponse:
    """
    Register a new account.

    - **email**: Login email, must be unused.
    - **password**: At least 8 characters.
    - **role**: NANNY, PARENT or ADMIN.
    - **first_name** / **last_name**: Stored on the role profile.
    """
    if await repos.users.get_by_email(body.email) is not None:
        raise ConflictError("Email already in use")

    user = User(email=body.email.lower(), password_hash=hash_password(body.password), role=body.role)
    session.add(user)
    await session.flush()

    names = {"user_id": user.id, "first_name": body.first_name, "last_name": body.last_name}
    if body.role == UserRole.NANNY:
        session.add(NannyProfile(**names, phone_number=body.phone_number))
    elif body.role == UserRole.PARENT:
        session.add(ParentProfile(**names, phone_number=body.phone_number))
    else:
        session.add(AdminProfile(**names, phone_number=body.phone_number))

    login_session = _open_session(session, user, request)
    await session.commit()
    logger.info(f"Registered {body.role.value} account {user.id}")
    emit_activity(
        "user_created",
        f"New {body.role.value.lower()} account: {body.first_name} {body.last_name}",
        user_id=user.id,
        user_name=f"{body.first_name} {body.last_name}",
    )

    return AuthResponse(
        user=UserSummary(
            id=user.id, email=user.email, role=body.role, first_name=body.first_name, last_name=body.last_name
        ),
        token=create_access_token(user.id, body.role.value, login_session.id),
    )


@router.post(
    "/login",
    response_model=AuthResponse,
    summary="Login",
    description="Exchange an email and password for an access token.",
    response_description="The user and an access token bound to a new login session.",
    responses={
        401: {"description": "Invalid password"},
        404: {"description": "User not found"},
    },
)
async def login(body: LoginRequest, request: Request, session: SessionDep, repos: ReposDep) -> AuthResponse:
    user = await repos.users.get_by_email(body.email)
    if user is None:
        raise NotFoundError("User not found")
    if not verify_password(body.password, user.password_hash):
        logger.warning(f"Failed login for user {user.id}")
        raise UnauthorizedError("Invalid password")

    user.last_login_at = utc_now()
    login_session = _open_session(session, user, request)
    await session.commit()
    logger.info(f"User {user.id} signed in (session {login_session.id})")

    return AuthResponse(
        user=await _summary(repos, user),
        token=create_access_token(user.id, UserRole(user.role).value, login_session.id),
    )


@router.get(
    "/me",
    response_model=MeResponse,
    summary="Current User",
    description="Return the signed-in user with the profile fields of their role.",
    response_description="The current user.",
)
async def me(current: CurrentUserDep, session: SessionDep, repos: ReposDep) -> MeResponse:
    user = current.user
    profile = await repos.users.get_profile(user)
    result = await session.execute(select(TwoFactorAuth).where(TwoFactorAuth.user_id == user.id))
    two_factor = result.scalars().first()
    return MeResponse(
        id=user.id,
        email=user.email,
        role=user.role,
        first_name=profile.first_name if profile else None,
        last_name=profile.last_name if profile else None,
        profile_image_url=getattr(profile, "profile_image_url", None),
        phone_number=getattr(profile, "phone_number", None),
        display_name=user.display_name,
        pronouns=user.pronouns,
        profile=profile.model_dump(mode="json") if profile else {},
        two_factor_enabled=bool(two_factor and two_factor.is_enabled),
        created_at=user.created_at,
    )


@router.get(
    "/verify-token",
    response_model=VerifyTokenResponse,
    summary="Verify Token",
    description="Check that the presented access token is valid and its session is active.",
    responses={401: {"description": "Invalid, expired or revoked token"}},
)
async def verify_token(current: CurrentUserDep) -> VerifyTokenResponse:
    return VerifyTokenResponse(valid=True, user_id=current.id, role=current.role)


@router.post(
    "/change-password",
    response_model=SuccessResponse,
    summary="Change Password",
    description="Replace the password after confirming the current one.",
    responses={401: {"description": "Current password is incorrect"}},
)
async def change_password(body: ChangePasswordRequest, current: CurrentUserDep, session: SessionDep) -> SuccessResponse:
    user = current.user
    if not verify_password(body.current_password, user.password_hash):
        raise UnauthorizedError("Current password is incorrect")
    user.password_hash = hash_password(body.new_password)
    await session.commit()
    logger.info(f"User {user.id} changed their password")
    return SuccessResponse(message="Password updated successfully")


async def _two_factor(session: SessionDep, user_id: str) -> Optional[TwoFactorAuth]:
    result = await session.execute(select(TwoFactorAuth).where(TwoFactorAuth.user_id == user_id))
    return result.scalars().first()


@router.post(
    "/2fa/setup",
    response_model=TwoFactorSetupResponse,
    summary="Set Up Two-Factor Authentication",
    description="Generate a new TOTP secret. Two-factor stays disabled until a code is verified.",
)
async def setup_two_factor(current: CurrentUserDep, session: SessionDep) -> TwoFactorSetupResponse:
    """
    Start two-factor enrolment.

    Any previous secret is replaced, so an enrolment can always be restarted.
    """
    secret = generate_totp_secret()
    record = await _two_factor(session, current.id)
    if record is None:
        record = TwoFactorAuth(user_id=current.id, secret=secret)
        session.add(record)
    else:
        record.secret = secret
        record.is_enabled = False
        record.recovery_codes = None
    await session.commit()
    return TwoFactorSetupResponse(secret=secret, otpauth_url=build_otpauth_url(secret, current.user.email))


@router.post(
    "/2fa/verify",
    response_model=TwoFactorVerifyResponse,
    summary="Verify Two-Factor Code",
    description="Confirm enrolment with a TOTP code and receive one-time recovery codes.",
    responses={400: {"description": "Not set up, or invalid code"}},
)
async def verify_two_factor(
    body: TwoFactorVerifyRequest, current: CurrentUserDep, session: SessionDep
) -> TwoFactorVerifyResponse:
    """
    Enable two-factor authentication.

    The plaintext recovery codes are returned only once; only their bcrypt
    hashes are stored.
    """
    record = await _two_factor(session, current.id)
    if record is None or not record.secret:
        raise BadRequestError("Two-factor authentication is not set up")
    if not verify_totp(record.secret, body.code):
        raise BadRequestError("Invalid verification code")

    codes = generate_recovery_codes()
    record.recovery_codes = json.dumps([hash_password(code) for code in codes])
    record.is_enabled = True
    record.last_verified_at = utc_now()
    await session.commit()
    logger.info(f"Two-factor authentication enabled for user {current.id}")
    return TwoFactorVerifyResponse(success=True, recovery_codes=codes)


@router.post(
    "/2fa/disable",
    response_model=SuccessResponse,
    summary="Disable Two-Factor Authentication",
    responses={400: {"description": "Two-factor authentication is not enabled"}},
)
async def disable_two_factor(current: CurrentUserDep, session: SessionDep) -> SuccessResponse:
    record = await _two_factor(session, current.id)
    if record is None or not record.is_enabled:
        raise BadRequestError("Two-factor authentication is not enabled")
    record.is_enabled = False
    record.recovery_codes = None
    await session.commit()
    logger.info(f"Two-factor authentication disabled for user {current.id}")
    return SuccessResponse(message="Two-factor authentication disabled")


@router.get(
    "/sessions",
    response_model=List[SessionRead],
    summary="List Sessions",
    description="List the caller's active login sessions, most recently used first.",
)
async def list_sessions(current: CurrentUserDep, session: SessionDep) -> List[SessionRead]:
    """
    List active sessions.

    The session the request's token belongs to is flagged ``is_current``;
    tokens issued without a session flag the most recent one instead.
    """
    stmt = (
        select(UserSession)
        .where(
            UserSession.user_id == current.id,
            UserSession.is_revoked == False,  # noqa: E712
            UserSession.expires_at > utc_now(),
        )
        .order_by(UserSession.last_active_at.desc())
    )
    rows = (await session.execute(stmt)).scalars().all()
    current_id = current.session_id or (rows[0].id if rows else None)
    return [
        SessionRead(
            id=row.id,
            device=row.device or "Unknown device",
            browser=row.browser or "Unknown browser",
            ip_address=row.ip_address or "Unknown",
            location=row.location or "Unknown",
            last_active_at=row.last_active_at,
            created_at=row.created_at,
            is_current=row.id == current_id,
        )
        for row in rows
    ]


@router.delete(
    "/sessions/{session_id}",
    response_model=SuccessResponse,
    summary="Revoke Session",
    description="Sign out a login session. Tokens bound to it stop working immediately.",
    responses={404: {"description": "Session not found"}},
)
async def revoke_session(session_id: str, current: CurrentUserDep, session: SessionDep) -> SuccessResponse:
    login_session = await session.get(UserSession, session_id)
    if login_session is None or login_session.user_id != current.id:
        raise NotFoundError("Session not found")
    login_session.is_revoked = True
    await session.commit()
    logger.info(f"User {current.id} revoked session {session_id}")
    return SuccessResponse(message="Session revoked")


@router.get(
    "/ai-availability",
    response_model=AIAvailability,
    summary="AI Availability",
    description="Whether AI features (observation tags, message summaries) are configured.",
)
async def ai_availability(current: CurrentUserDep) -> AIAvailability:
    return AIAvailability(available=is_ai_available())
