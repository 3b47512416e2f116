"""
Signed, expiring tokens for the account flows.

Three kinds share one JWT format (python-jose, HMAC):

- access: ``{sub, email}`` signed with the access secret, short lived
- refresh: ``{sub, email}`` signed with the refresh secret, long lived
- verification: ``{sub}`` signed with the access secret, fixed 1 hour

Every token carries a ``typ`` claim naming its kind, so a verification
token is never accepted where an access token is expected even though
both are signed with the same secret.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional

from jose import ExpiredSignatureError, JWTError, jwt

from ..config import settings

logger = logging.getLogger(__name__)

# Verification links always expire after one hour.
VERIFICATION_TOKEN_EXPIRE_SECONDS = 3600


class TokenKind(str, Enum):
    ACCESS = "access"
    REFRESH = "refresh"
    VERIFICATION = "verify"


class TokenError(Exception):
    """Base class for token verification failures."""


class TokenExpiredError(TokenError):
    """Signature is valid but the token is past its expiry."""


class InvalidTokenError(TokenError):
    """Malformed, tampered, wrongly signed or wrong-kind token."""


class TokenConfigurationError(Exception):
    """The signing configuration is unusable (e.g. an empty secret)."""


@dataclass(frozen=True)
class TokenClaims:
    user_id: str
    email: Optional[str] = None


def _secret_for(kind: TokenKind) -> str:
    if kind is TokenKind.REFRESH:
        secret = settings.REFRESH_TOKEN_SECRET
    else:
        secret = settings.ACCESS_TOKEN_SECRET

    if not secret:
        raise TokenConfigurationError(f"No signing secret configured for {kind.value} tokens")
    return secret


def _lifetime_for(kind: TokenKind) -> timedelta:
    if kind is TokenKind.ACCESS:
        return timedelta(seconds=settings.ACCESS_TOKEN_EXPIRE_SECONDS)
    if kind is TokenKind.REFRESH:
        return timedelta(seconds=settings.REFRESH_TOKEN_EXPIRE_SECONDS)
    return timedelta(seconds=VERIFICATION_TOKEN_EXPIRE_SECONDS)


def issue_token(
    kind: TokenKind,
    user_id: str,
    email: Optional[str] = None,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Create a signed token of the given kind.

    Args:
        kind: Which token to issue
        user_id: Subject of the token
        email: Included for access and refresh tokens, ignored otherwise
        expires_delta: Overrides the configured lifetime

    Raises:
        TokenConfigurationError if the token cannot be signed
    """
    now = datetime.now(timezone.utc)

    payload = {
        "sub": str(user_id),
        "typ": kind.value,
        "iat": now,
        "exp": now + (expires_delta if expires_delta is not None else _lifetime_for(kind)),
    }

    if kind is not TokenKind.VERIFICATION:
        payload["email"] = email

    try:
        return jwt.encode(payload, _secret_for(kind), algorithm=settings.JWT_ALGORITHM)
    except JWTError as exc:
        raise TokenConfigurationError(str(exc)) from exc


def issue_token_pair(user_id: str, email: str) -> tuple[str, str]:
    """
    Issue an access and a refresh token for the same subject.

    Returns:
        Tuple of (access_token, refresh_token)
    """
    access_token = issue_token(TokenKind.ACCESS, user_id, email)
    refresh_token = issue_token(TokenKind.REFRESH, user_id, email)
    return access_token, refresh_token


def verify_token(kind: TokenKind, token: str) -> TokenClaims:
    """
    Verify signature, expiry and kind of a token and return its claims.

    Raises:
        TokenExpiredError if the token is authentic but expired
        InvalidTokenError for every other failure
    """
    try:
        payload = jwt.decode(
            token,
            _secret_for(kind),
            algorithms=[settings.JWT_ALGORITHM],
        )
    except ExpiredSignatureError as exc:
        raise TokenExpiredError("Token has expired") from exc
    except JWTError as exc:
        raise InvalidTokenError("Invalid token") from exc

    if payload.get("typ") != kind.value:
        logger.warning("Rejected %s token presented as %s", payload.get("typ"), kind.value)
        raise InvalidTokenError("Invalid token")

    user_id = payload.get("sub")
    if not user_id:
        raise InvalidTokenError("Invalid token")

    return TokenClaims(user_id=user_id, email=payload.get("email"))
