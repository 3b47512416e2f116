"""
Input validation for signup and signin.

Every rule is checked and every violation reported, so a client sees
all problems with a submission at once rather than one per request.
"""

import re
from typing import Dict, List, Optional

from email_validator import EmailNotValidError, validate_email

from app.auth.errors import validation_error

PASSWORD_MIN_LENGTH = 8


def _violation(field: str, message: str) -> Dict[str, str]:
    return {"field": field, "message": message}


def is_valid_email(email: Optional[str]) -> bool:
    if not email:
        return False
    try:
        validate_email(email, check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


def password_violations(password: Optional[str]) -> List[Dict[str, str]]:
    password = password or ""
    violations = []

    if len(password) < PASSWORD_MIN_LENGTH:
        violations.append(
            _violation(
                "password",
                f"Password must be at least {PASSWORD_MIN_LENGTH} characters",
            )
        )
    if not re.search(r"\d", password):
        violations.append(_violation("password", "Password must contain a number"))
    if not re.search(r"[A-Z]", password):
        violations.append(
            _violation("password", "Password must contain an uppercase letter")
        )

    return violations


def validate_signup(
    full_name: Optional[str], email: Optional[str], password: Optional[str]
) -> None:
    """Raise a validation AuthError listing every violated signup rule."""
    violations = []

    if not full_name or not full_name.strip():
        violations.append(_violation("fullName", "Full Name is required"))
    if not is_valid_email(email):
        violations.append(_violation("email", "Please enter a valid email"))
    violations.extend(password_violations(password))

    if violations:
        raise validation_error(violations)


def validate_signin(email: Optional[str], password: Optional[str]) -> None:
    """Raise a validation AuthError listing every violated signin rule."""
    violations = []

    if not is_valid_email(email):
        violations.append(_violation("email", "Please enter a valid email"))
    if not password:
        violations.append(_violation("password", "Password is required"))

    if violations:
        raise validation_error(violations)
