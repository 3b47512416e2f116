"""
Error taxonomy for the account authentication endpoints.

Services raise ``AuthError`` with one of the ``AuthErrorCode`` values;
the handlers registered by ``register_auth_exception_handlers`` turn it
into a JSON response of the form::

    {"error": "<code>", "message": "<human readable text>"}

Validation failures additionally carry an ``errors`` list with one
``{"field", "message"}`` entry per violated rule.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse


class AuthErrorCode(str, Enum):
    """
    Machine-readable failure kinds.

    Client input:
    - validation_error
    - duplicate_email
    - invalid_credentials
    - email_not_verified

    Tokens:
    - missing_token
    - invalid_token
    - token_expired

    Lookups and everything else:
    - user_not_found
    - server_error
    """

    VALIDATION_ERROR = "validation_error"
    DUPLICATE_EMAIL = "duplicate_email"
    INVALID_CREDENTIALS = "invalid_credentials"
    EMAIL_NOT_VERIFIED = "email_not_verified"

    MISSING_TOKEN = "missing_token"
    INVALID_TOKEN = "invalid_token"
    TOKEN_EXPIRED = "token_expired"

    USER_NOT_FOUND = "user_not_found"
    SERVER_ERROR = "server_error"


DEFAULT_STATUS_CODES: Dict[AuthErrorCode, int] = {
    AuthErrorCode.VALIDATION_ERROR: 400,
    AuthErrorCode.DUPLICATE_EMAIL: 400,
    AuthErrorCode.INVALID_CREDENTIALS: 400,
    AuthErrorCode.EMAIL_NOT_VERIFIED: 401,
    AuthErrorCode.MISSING_TOKEN: 401,
    AuthErrorCode.INVALID_TOKEN: 403,
    AuthErrorCode.TOKEN_EXPIRED: 403,
    AuthErrorCode.USER_NOT_FOUND: 404,
    AuthErrorCode.SERVER_ERROR: 500,
}


class AuthError(Exception):
    """
    Base authentication error.

    Attributes:
        error_code: The AuthErrorCode enum value
        description: Optional human-readable message
        status_code: HTTP status; defaults per error code
        errors: Per-field violations (validation errors only)
        extra: Additional top-level fields merged into the JSON body
    """

    def __init__(
        self,
        error_code: AuthErrorCode,
        description: Optional[str] = None,
        status_code: Optional[int] = None,
        errors: Optional[List[Dict[str, str]]] = None,
        extra: Optional[Dict[str, Any]] = None,
    ):
        self.error_code = error_code
        self.description = description
        self.status_code = status_code or DEFAULT_STATUS_CODES[error_code]
        self.errors = errors
        self.extra = extra or {}
        super().__init__(description or error_code.value)


def validation_error(errors: List[Dict[str, str]]) -> AuthError:
    return AuthError(
        error_code=AuthErrorCode.VALIDATION_ERROR,
        description="Invalid input",
        errors=errors,
    )


def server_error() -> AuthError:
    # Never carries the underlying cause; callers log it instead.
    return AuthError(error_code=AuthErrorCode.SERVER_ERROR, description="Server error")


def create_error_response(
    error_code: AuthErrorCode,
    description: Optional[str] = None,
    status_code: Optional[int] = None,
    errors: Optional[List[Dict[str, str]]] = None,
    extra: Optional[Dict[str, Any]] = None,
) -> JSONResponse:
    """
    Build the JSON error response for an auth failure.

    Example:
        >>> response = create_error_response(
        ...     error_code=AuthErrorCode.EMAIL_NOT_VERIFIED,
        ...     description="Please verify your email before logging in.",
        ...     extra={"needsVerification": True},
        ... )
        >>> # HTTP 401 with body: {"error": "email_not_verified", "message": ..., "needsVerification": true}
    """
    content: Dict[str, Any] = {"error": error_code.value}
    content["message"] = description or error_code.value

    if errors:
        content["errors"] = errors

    content.update(extra or {})

    return JSONResponse(
        status_code=status_code or DEFAULT_STATUS_CODES[error_code],
        content=content,
        headers={"Cache-Control": "no-store"},
    )


def _request_validation_errors(exc: RequestValidationError) -> List[Dict[str, str]]:
    errors = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part != "body"]
        errors.append(
            {"field": ".".join(loc) or "body", "message": err.get("msg", "Invalid value")}
        )
    return errors


def register_auth_exception_handlers(app) -> None:
    """
    Register the auth exception handlers with the FastAPI application.

    - ``AuthError`` becomes its JSON error response.
    - Unparseable request bodies become a 400 ``validation_error``
      instead of FastAPI's default 422.
    """

    @app.exception_handler(AuthError)
    async def auth_error_handler(request, exc: AuthError):
        return create_error_response(
            error_code=exc.error_code,
            description=exc.description,
            status_code=exc.status_code,
            errors=exc.errors,
            extra=exc.extra,
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request, exc: RequestValidationError):
        return create_error_response(
            error_code=AuthErrorCode.VALIDATION_ERROR,
            description="Invalid input",
            errors=_request_validation_errors(exc),
        )
