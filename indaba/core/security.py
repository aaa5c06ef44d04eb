"""
Password, token and two-factor helpers.

Passwords are hashed with bcrypt, access tokens are HS256 JWTs carrying the
user id, role and the id of the login session they belong to, and two-factor
authentication uses RFC 6238 TOTP codes.
"""

from __future__ import annotations

import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List

import bcrypt
import jwt
import pyotp

from indaba.core.errors import UnauthorizedError
from indaba.core.logging_config import get_logger
from indaba.server.core.config import settings

logger = get_logger(__name__)

# bcrypt only looks at the first 72 bytes of a password
_BCRYPT_MAX_BYTES = 72


def _password_bytes(plain: str) -> bytes:
    return plain.encode("utf-8")[:_BCRYPT_MAX_BYTES]


def hash_password(plain: str) -> str:
    """Hash a password with bcrypt using the configured cost factor."""
    salt = bcrypt.gensalt(rounds=settings.auth.bcrypt_rounds)
    return bcrypt.hashpw(_password_bytes(plain), salt).decode("utf-8")


def verify_password(plain: str, hashed: str | None) -> bool:
    """Check a password against a stored bcrypt hash.

    An empty hash (deleted accounts) never verifies.
    """
    if not hashed:
        return False
    try:
        return bcrypt.checkpw(_password_bytes(plain), hashed.encode("utf-8"))
    except ValueError:
        logger.warning("Stored password hash is not a valid bcrypt hash")
        return False


def create_access_token(user_id: str, role: str, session_id: str | None = None) -> str:
    """Issue a signed access token.

    Args:
        user_id: The user the token authenticates
        role: The user's role at issue time
        session_id: The login session the token is bound to, if any

    Returns:
        Encoded JWT string
    """
    auth = settings.auth
    now = datetime.now(timezone.utc)
    payload: Dict[str, Any] = {
        "sub": user_id,
        "role": role,
        "iat": now,
        "exp": now + timedelta(days=auth.jwt_expire_days),
    }
    if session_id:
        payload["sid"] = session_id
    return jwt.encode(payload, auth.jwt_secret, algorithm=auth.jwt_algorithm)


def decode_access_token(token: str) -> Dict[str, Any]:
    """Decode and validate an access token.

    Raises:
        UnauthorizedError: If the token is malformed, has a bad signature or has expired
    """
    auth = settings.auth
    try:
        payload = jwt.decode(token, auth.jwt_secret, algorithms=[auth.jwt_algorithm])
    except jwt.PyJWTError as e:
        logger.debug(f"Rejected access token: {e}")
        raise UnauthorizedError("Invalid or expired token") from e
    if not payload.get("sub") or not payload.get("role"):
        raise UnauthorizedError("Invalid or expired token")
    return payload


def token_expiry() -> datetime:
    """Expiry timestamp (naive UTC) for a session created now."""
    return datetime.now(timezone.utc).replace(tzinfo=None) + timedelta(days=settings.auth.jwt_expire_days)


def generate_totp_secret() -> str:
    return pyotp.random_base32()


def build_otpauth_url(secret: str, email: str) -> str:
    """Provisioning URI that authenticator apps read from a QR code."""
    return pyotp.TOTP(secret).provisioning_uri(name=email, issuer_name=settings.auth.totp_issuer)


def verify_totp(secret: str, code: str) -> bool:
    """Verify a TOTP code, accepting one step of clock drift either way."""
    return pyotp.TOTP(secret).verify(code, valid_window=1)


def generate_recovery_codes(count: int = 10) -> List[str]:
    """Generate one-time recovery codes formatted as ``XXXXX-XXXXX``."""
    codes = []
    for _ in range(count):
        raw = secrets.token_hex(5).upper()
        codes.append(f"{raw[:5]}-{raw[5:]}")
    return codes


def generate_invitation_token() -> str:
    return secrets.token_hex(32)
