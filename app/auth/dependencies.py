"""
FastAPI dependencies for the auth routes.

``get_current_claims`` guards protected endpoints: it only checks the
bearer access token and never touches the database, so endpoints that
need the user record must load it themselves.
"""

import logging
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.auth.errors import AuthError, AuthErrorCode, server_error
from app.auth.jwt import (
    TokenClaims,
    TokenConfigurationError,
    TokenError,
    TokenExpiredError,
    TokenKind,
    verify_token,
)
from app.services.mail import Mailer

logger = logging.getLogger(__name__)

_bearer_scheme = HTTPBearer(auto_error=False)


def get_current_claims(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
) -> TokenClaims:
    """
    Extract and verify the ``Authorization: Bearer <token>`` header.

    Raises:
        AuthError(MISSING_TOKEN) 401 if the header is absent or not a Bearer credential
        AuthError(INVALID_TOKEN / TOKEN_EXPIRED) 403 if the token fails verification
        AuthError(SERVER_ERROR) 500 if the signing configuration is unusable
    """
    if credentials is None or not credentials.credentials:
        raise AuthError(
            error_code=AuthErrorCode.MISSING_TOKEN,
            description="Access token missing",
        )

    try:
        return verify_token(TokenKind.ACCESS, credentials.credentials)
    except TokenExpiredError:
        raise AuthError(
            error_code=AuthErrorCode.TOKEN_EXPIRED,
            description="Invalid or expired token",
        )
    except TokenError:
        logger.warning("Rejected invalid access token")
        raise AuthError(
            error_code=AuthErrorCode.INVALID_TOKEN,
            description="Invalid or expired token",
        )
    except TokenConfigurationError:
        logger.exception("Access token could not be checked")
        raise server_error()


def get_mailer(request: Request) -> Mailer:
    """The mailer created by the application lifespan."""
    return request.app.state.mailer
