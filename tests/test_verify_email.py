"""
Integration tests for the email verification pages.
"""

import uuid
from datetime import timedelta
from unittest.mock import patch

from sqlalchemy.exc import OperationalError

from app.auth.jwt import TokenKind, issue_token
from app.config import settings
from app.models.user import User


class TestVerifyEmail:
    def test_valid_token_verifies_user(self, client, db_session, make_user):
        user = make_user(verified=False)
        token = issue_token(TokenKind.VERIFICATION, str(user.id))

        response = client.get(f"/api/auth/verify-email/{token}")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/html")
        assert "Email Verified Successfully!" in response.text
        assert "Jane Doe" in response.text
        assert "verified=true" in response.text

        db_session.expire_all()
        assert db_session.get(User, user.id).verified is True

    def test_query_parameter_form(self, client, db_session, make_user):
        user = make_user(verified=False)
        token = issue_token(TokenKind.VERIFICATION, str(user.id))

        response = client.get("/api/auth/verify", params={"token": token})

        assert response.status_code == 200
        db_session.expire_all()
        assert db_session.get(User, user.id).verified is True

    def test_second_consumption_is_a_no_op(self, client, db_session, make_user):
        user = make_user(verified=False)
        token = issue_token(TokenKind.VERIFICATION, str(user.id))

        first = client.get(f"/api/auth/verify-email/{token}")
        second = client.get(f"/api/auth/verify-email/{token}")

        assert first.status_code == 200
        assert second.status_code == 200
        db_session.expire_all()
        assert db_session.get(User, user.id).verified is True

    def test_missing_token(self, client):
        response = client.get("/api/auth/verify")

        assert response.status_code == 400
        assert "Verification token is missing." in response.text

    def test_expired_token(self, client, db_session, make_user):
        user = make_user(verified=False)
        token = issue_token(
            TokenKind.VERIFICATION, str(user.id), expires_delta=timedelta(seconds=-1)
        )

        response = client.get(f"/api/auth/verify-email/{token}")

        assert response.status_code == 400
        assert "Verification Failed" in response.text
        assert "expired" in response.text
        assert "error=invalid_token" in response.text
        db_session.expire_all()
        assert db_session.get(User, user.id).verified is False

    def test_tampered_token(self, client):
        response = client.get("/api/auth/verify-email/abc.def.ghi")

        assert response.status_code == 400
        assert "Invalid verification token" in response.text

    def test_access_token_cannot_verify(self, client, db_session, make_user):
        user = make_user(verified=False)
        token = issue_token(TokenKind.ACCESS, str(user.id), user.email)

        response = client.get(f"/api/auth/verify-email/{token}")

        assert response.status_code == 400
        db_session.expire_all()
        assert db_session.get(User, user.id).verified is False

    def test_unknown_user(self, client):
        token = issue_token(TokenKind.VERIFICATION, str(uuid.uuid4()))

        response = client.get(f"/api/auth/verify-email/{token}")

        assert response.status_code == 400
        assert "User Not Found" in response.text

    def test_token_only_verifies_its_own_user(self, client, db_session, make_user):
        target = make_user(email="target@example.com", verified=False)
        other = make_user(email="other@example.com", verified=False)
        token = issue_token(TokenKind.VERIFICATION, str(target.id))

        client.get(f"/api/auth/verify-email/{token}")

        db_session.expire_all()
        assert db_session.get(User, target.id).verified is True
        assert db_session.get(User, other.id).verified is False

    def test_storage_failure_renders_error_page(self, client, make_user):
        user = make_user(verified=False)
        token = issue_token(TokenKind.VERIFICATION, str(user.id))

        with patch(
            "app.auth.service.get_user_by_id",
            side_effect=OperationalError("SELECT", {}, Exception("db down")),
        ):
            response = client.get(f"/api/auth/verify-email/{token}")

        assert response.status_code == 500
        assert response.headers["content-type"].startswith("text/html")
        assert "Something Went Wrong" in response.text
        assert "db down" not in response.text

    def test_missing_secret_renders_error_page(self, client):
        with patch.object(settings, "ACCESS_TOKEN_SECRET", ""):
            response = client.get("/api/auth/verify-email/abc.def.ghi")

        assert response.status_code == 500
        assert response.headers["content-type"].startswith("text/html")
        assert "Something Went Wrong" in response.text
