"""
Account flows: signup, email verification, signin, refresh and profile.

A user moves through ``unregistered -> registered (unverified) ->
registered (verified)``. Only a valid verification token flips the
``verified`` flag, and signin is refused until it has been flipped.

Every function receives its collaborators (database session, mailer)
as arguments; none of them reach for module-level connections.
"""

import logging
import smtplib
from typing import Any, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.auth.errors import AuthError, AuthErrorCode, server_error
from app.auth.jwt import (
    TokenClaims,
    TokenConfigurationError,
    TokenError,
    TokenExpiredError,
    TokenKind,
    issue_token,
    issue_token_pair,
    verify_token,
)
from app.auth.store import create_user, get_user_by_email, get_user_by_id, mark_verified
from app.auth.validation import validate_signin, validate_signup
from app.models.user import User
from app.services.auth import hash_password, verify_password
from app.services.mail import Mailer, send_verification_email

from ..config import settings

logger = logging.getLogger(__name__)

SIGNUP_MESSAGE = "Signup successful! Please check your email to verify your account"
INVALID_CREDENTIALS_MESSAGE = "Invalid email or password"

# Compared against on unknown emails so both rejection paths cost one bcrypt check.
_UNKNOWN_USER_HASH = hash_password("unknown-user-placeholder")


def build_verification_url(token: str) -> str:
    return f"{settings.BACKEND_URL.rstrip('/')}{settings.API_PREFIX}/verify-email/{token}"


def signup(
    db: Session,
    mailer: Mailer,
    full_name: Optional[str],
    email: Optional[str],
    password: Optional[str],
) -> Dict[str, Any]:
    """
    Register an unverified user and email them a verification link.

    No tokens are issued here. If the email cannot be sent the user
    stays persisted (unverified) and the caller gets a server error.

    Raises:
        AuthError(VALIDATION_ERROR) listing every violated rule
        AuthError(DUPLICATE_EMAIL) if the email is already registered
        AuthError(SERVER_ERROR) on storage, signing or mail failures
    """
    validate_signup(full_name, email, password)

    try:
        user = create_user(
            db,
            full_name=full_name.strip(),
            email=email,
            password_hash=hash_password(password),
        )
    except SQLAlchemyError:
        logger.exception("Signup failed while storing user")
        raise server_error()

    try:
        token = issue_token(TokenKind.VERIFICATION, str(user.id))
    except TokenConfigurationError:
        logger.exception("Signup failed while issuing verification token")
        raise server_error()

    try:
        send_verification_email(
            mailer,
            to=user.email,
            full_name=user.full_name,
            verification_url=build_verification_url(token),
        )
    except (smtplib.SMTPException, OSError):
        logger.exception("Verification email to user %s could not be sent", user.id)
        raise server_error()

    logger.info("Registered user %s", user.id)
    return {"message": SIGNUP_MESSAGE}


def verify_email(db: Session, token: Optional[str]) -> User:
    """
    Consume a verification token and mark its user as verified.

    Consuming a token for an already verified user succeeds again
    without changing anything.

    Raises:
        AuthError(MISSING_TOKEN) if no token was supplied
        AuthError(INVALID_TOKEN / TOKEN_EXPIRED) if the token fails verification
        AuthError(USER_NOT_FOUND) if the token's user no longer exists
    """
    if not token or not token.strip():
        raise AuthError(
            error_code=AuthErrorCode.MISSING_TOKEN,
            description="Verification token is missing.",
            status_code=400,
        )

    try:
        claims = verify_token(TokenKind.VERIFICATION, token.strip())
    except TokenExpiredError:
        raise AuthError(
            error_code=AuthErrorCode.TOKEN_EXPIRED,
            description="Verification link has expired. Please request a new verification email.",
            status_code=400,
        )
    except TokenError:
        raise AuthError(
            error_code=AuthErrorCode.INVALID_TOKEN,
            description="Invalid verification token. Please request a new verification email.",
            status_code=400,
        )
    except TokenConfigurationError:
        logger.exception("Verification token could not be checked")
        raise server_error()

    try:
        user = get_user_by_id(db, claims.user_id)
        if user is None:
            raise AuthError(
                error_code=AuthErrorCode.USER_NOT_FOUND,
                description="The user associated with this token could not be found.",
                status_code=400,
            )

        was_verified = user.verified
        mark_verified(db, user)
    except SQLAlchemyError:
        logger.exception("Email verification failed while updating user")
        raise server_error()

    if not was_verified:
        logger.info("Verified email for user %s", user.id)

    return user


def signin(db: Session, email: Optional[str], password: Optional[str]) -> Dict[str, Any]:
    """
    Check credentials and issue an access/refresh token pair.

    The verified flag is checked right after the lookup, before the
    password hash is compared.

    Raises:
        AuthError(VALIDATION_ERROR) for a malformed email or missing password
        AuthError(INVALID_CREDENTIALS) for an unknown email or wrong password
        AuthError(EMAIL_NOT_VERIFIED) if the account is not verified yet
    """
    validate_signin(email, password)

    try:
        user = get_user_by_email(db, email)
    except SQLAlchemyError:
        logger.exception("Signin failed while loading user")
        raise server_error()

    if user is None:
        verify_password(password, _UNKNOWN_USER_HASH)
        logger.warning("Signin rejected: unknown email")
        raise AuthError(
            error_code=AuthErrorCode.INVALID_CREDENTIALS,
            description=INVALID_CREDENTIALS_MESSAGE,
        )

    if not user.verified:
        raise AuthError(
            error_code=AuthErrorCode.EMAIL_NOT_VERIFIED,
            description="Please verify your email before logging in.",
            extra={"needsVerification": True},
        )

    if not verify_password(password, user.password_hash):
        logger.warning("Signin rejected: wrong password for user %s", user.id)
        raise AuthError(
            error_code=AuthErrorCode.INVALID_CREDENTIALS,
            description=INVALID_CREDENTIALS_MESSAGE,
        )

    try:
        access_token, refresh_token = issue_token_pair(str(user.id), user.email)
    except TokenConfigurationError:
        logger.exception("Token generation failed for user %s", user.id)
        raise AuthError(
            error_code=AuthErrorCode.SERVER_ERROR,
            description="Failed to generate authentication tokens",
        )

    logger.info("User %s signed in", user.id)
    return {
        "message": "Login Successful",
        "accessToken": access_token,
        "refreshToken": refresh_token,
        "user": {
            "id": str(user.id),
            "fullName": user.full_name,
            "email": user.email,
            "verified": user.verified,
        },
    }


def refresh(refresh_token: Optional[str]) -> Dict[str, Any]:
    """
    Mint a new access token from a refresh token.

    Stateless: the refresh token is not rotated and the user is not
    looked up again, so it keeps working until it expires.

    Raises:
        AuthError(MISSING_TOKEN) if no refresh token was supplied
        AuthError(INVALID_TOKEN / TOKEN_EXPIRED) if it fails verification
    """
    if not refresh_token:
        raise AuthError(
            error_code=AuthErrorCode.MISSING_TOKEN,
            description="No refresh token provided",
        )

    try:
        claims = verify_token(TokenKind.REFRESH, refresh_token)
    except TokenExpiredError:
        raise AuthError(
            error_code=AuthErrorCode.TOKEN_EXPIRED,
            description="Invalid refresh token",
        )
    except TokenError:
        logger.warning("Refresh rejected: invalid refresh token")
        raise AuthError(
            error_code=AuthErrorCode.INVALID_TOKEN,
            description="Invalid refresh token",
        )
    except TokenConfigurationError:
        logger.exception("Refresh token could not be checked")
        raise server_error()

    try:
        access_token = issue_token(TokenKind.ACCESS, claims.user_id, claims.email)
    except TokenConfigurationError:
        logger.exception("Access token generation failed during refresh")
        raise server_error()

    return {"accessToken": access_token}


def get_profile(db: Session, claims: TokenClaims) -> Dict[str, Any]:
    """
    Load the authenticated user's public profile.

    Raises:
        AuthError(USER_NOT_FOUND) if the token's user no longer exists
    """
    try:
        user = get_user_by_id(db, claims.user_id)
    except SQLAlchemyError:
        logger.exception("Profile lookup failed")
        raise server_error()

    if user is None:
        raise AuthError(
            error_code=AuthErrorCode.USER_NOT_FOUND,
            description="User not found",
        )

    return {
        "message": "Protected route accessed",
        "user": user.to_public_dict(),
    }
