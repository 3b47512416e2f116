from typing import Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import HTMLResponse
from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.auth import service
from app.auth.dependencies import get_current_claims, get_mailer
from app.auth.errors import AuthError, AuthErrorCode
from app.auth.jwt import TokenClaims
from app.auth.utils import create_token_response
from app.config import settings
from app.db import get_db
from app.services.mail import Mailer
from app.templates_config import templates

router = APIRouter(prefix=settings.API_PREFIX, tags=["auth"])


class SignupRequest(BaseModel):
    fullName: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None


class SigninRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class RefreshRequest(BaseModel):
    refreshToken: Optional[str] = None


ERROR_TITLES = {
    AuthErrorCode.USER_NOT_FOUND: "User Not Found",
    AuthErrorCode.SERVER_ERROR: "Something Went Wrong",
}


def _login_url(**params: str) -> str:
    url = f"{settings.FRONTEND_URL.rstrip('/')}/login"
    if params:
        url += "?" + urlencode(params)
    return url


def render_verification_page(
    request: Request,
    error: Optional[AuthError] = None,
    full_name: Optional[str] = None,
    email: Optional[str] = None,
) -> HTMLResponse:
    """
    Render the page a user lands on after clicking the emailed link.

    Args:
        request: The FastAPI request object
        error: The failure to report, or None on success
        full_name: Name of the verified user (success only)
        email: Email of the verified user (success only)

    Returns:
        HTMLResponse with status 200 on success, the error's status otherwise
    """
    if error is None:
        return templates.TemplateResponse(
            request,
            "verify_result.html",
            {
                "page_title": "Email Verification Success",
                "success": True,
                "full_name": full_name,
                "login_url": _login_url(verified="true", email=email),
            },
        )

    if error.error_code in (AuthErrorCode.INVALID_TOKEN, AuthErrorCode.TOKEN_EXPIRED):
        login_url = _login_url(error="invalid_token")
    else:
        login_url = _login_url()

    return templates.TemplateResponse(
        request,
        "verify_result.html",
        {
            "page_title": "Email Verification",
            "success": False,
            "error_title": ERROR_TITLES.get(error.error_code, "Verification Failed"),
            "error_message": error.description,
            "login_url": login_url,
        },
        status_code=error.status_code,
    )


@router.post("/signup", status_code=201)
def signup(
    data: SignupRequest,
    db: Session = Depends(get_db),
    mailer: Mailer = Depends(get_mailer),
):
    return service.signup(
        db,
        mailer,
        full_name=data.fullName,
        email=data.email,
        password=data.password,
    )


def _verify(request: Request, token: Optional[str], db: Session) -> HTMLResponse:
    try:
        user = service.verify_email(db, token)
    except AuthError as exc:
        return render_verification_page(request, error=exc)

    return render_verification_page(request, full_name=user.full_name, email=user.email)


@router.get("/verify-email/{token}", response_class=HTMLResponse)
def verify_email(request: Request, token: str, db: Session = Depends(get_db)):
    return _verify(request, token, db)


@router.get("/verify-email", response_class=HTMLResponse)
@router.get("/verify", response_class=HTMLResponse)
def verify_email_query(
    request: Request,
    token: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    return _verify(request, token, db)


@router.post("/signin")
def signin(data: SigninRequest, db: Session = Depends(get_db)):
    return create_token_response(
        content=service.signin(db, email=data.email, password=data.password)
    )


@router.post("/refresh")
def refresh(data: Optional[RefreshRequest] = None):
    refresh_token = data.refreshToken if data else None
    return create_token_response(content=service.refresh(refresh_token))


@router.get("/profile")
def profile(
    claims: TokenClaims = Depends(get_current_claims),
    db: Session = Depends(get_db),
):
    return service.get_profile(db, claims)
