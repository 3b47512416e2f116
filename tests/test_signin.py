"""
Integration tests for POST /api/auth/signin.
"""

from unittest.mock import patch

from sqlalchemy.exc import OperationalError

from app.auth.jwt import TokenConfigurationError, TokenKind, verify_token

SIGNIN_URL = "/api/auth/signin"


class TestSignin:
    def test_verified_user_gets_token_pair(self, client, make_user):
        user = make_user()

        response = client.post(
            SIGNIN_URL, json={"email": "jane@example.com", "password": "Passw0rd!"}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Login Successful"
        assert body["accessToken"]
        assert body["refreshToken"]
        assert body["user"] == {
            "id": str(user.id),
            "fullName": "Jane Doe",
            "email": "jane@example.com",
            "verified": True,
        }

    def test_tokens_decode_to_same_claims(self, client, make_user):
        user = make_user()

        body = client.post(
            SIGNIN_URL, json={"email": "jane@example.com", "password": "Passw0rd!"}
        ).json()

        access = verify_token(TokenKind.ACCESS, body["accessToken"])
        refresh = verify_token(TokenKind.REFRESH, body["refreshToken"])
        assert access.user_id == refresh.user_id == str(user.id)
        assert access.email == refresh.email == "jane@example.com"

    def test_token_response_is_not_cacheable(self, client, make_user):
        make_user()

        response = client.post(
            SIGNIN_URL, json={"email": "jane@example.com", "password": "Passw0rd!"}
        )

        assert response.headers["Cache-Control"] == "no-store"
        assert response.headers["Pragma"] == "no-cache"

    def test_unverified_user_is_refused_even_with_correct_password(self, client, make_user):
        make_user(verified=False)

        response = client.post(
            SIGNIN_URL, json={"email": "jane@example.com", "password": "Passw0rd!"}
        )

        assert response.status_code == 401
        body = response.json()
        assert body["error"] == "email_not_verified"
        assert body["message"] == "Please verify your email before logging in."
        assert body["needsVerification"] is True
        assert "accessToken" not in body

    def test_unverified_check_skips_password_comparison(self, client, make_user):
        make_user(verified=False)

        with patch("app.auth.service.verify_password") as verify_password:
            client.post(
                SIGNIN_URL, json={"email": "jane@example.com", "password": "Passw0rd!"}
            )

        verify_password.assert_not_called()

    def test_unknown_email_and_wrong_password_look_identical(self, client, make_user):
        make_user()

        unknown = client.post(
            SIGNIN_URL, json={"email": "nobody@example.com", "password": "Passw0rd!"}
        )
        wrong = client.post(
            SIGNIN_URL, json={"email": "jane@example.com", "password": "Wr0ngPass!"}
        )

        assert unknown.status_code == wrong.status_code == 400
        assert unknown.json() == wrong.json() == {
            "error": "invalid_credentials",
            "message": "Invalid email or password",
        }

    def test_unknown_email_still_compares_a_password(self, client):
        with patch("app.auth.service.verify_password", return_value=False) as verify_password:
            response = client.post(
                SIGNIN_URL, json={"email": "nobody@example.com", "password": "Passw0rd!"}
            )

        assert response.status_code == 400
        verify_password.assert_called_once()
        assert verify_password.call_args[0][0] == "Passw0rd!"

    def test_email_lookup_is_case_sensitive(self, client, make_user):
        make_user()

        response = client.post(
            SIGNIN_URL, json={"email": "JANE@example.com", "password": "Passw0rd!"}
        )

        assert response.status_code == 400
        assert response.json()["error"] == "invalid_credentials"

    def test_validation_errors(self, client):
        response = client.post(SIGNIN_URL, json={"email": "not-an-email"})

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "validation_error"
        assert {v["field"] for v in body["errors"]} == {"email", "password"}

    def test_token_generation_failure_is_500(self, client, make_user):
        make_user()

        with patch(
            "app.auth.service.issue_token_pair",
            side_effect=TokenConfigurationError("no secret"),
        ):
            response = client.post(
                SIGNIN_URL, json={"email": "jane@example.com", "password": "Passw0rd!"}
            )

        assert response.status_code == 500
        assert response.json()["message"] == "Failed to generate authentication tokens"

    def test_storage_failure_is_500(self, client):
        with patch(
            "app.auth.service.get_user_by_email",
            side_effect=OperationalError("SELECT", {}, Exception("db down")),
        ):
            response = client.post(
                SIGNIN_URL, json={"email": "jane@example.com", "password": "Passw0rd!"}
            )

        assert response.status_code == 500
        assert response.json() == {"error": "server_error", "message": "Server error"}
