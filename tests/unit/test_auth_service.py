"""Unit tests for AuthService and settings validation."""

from datetime import timedelta

import pytest
from jose import jwt
from pydantic import ValidationError

from tracker.core.config import Settings, settings
from tracker.services.auth_service import ALGORITHM, AuthService


@pytest.mark.unit
class TestAuthService:
    """Test bearer token issue and verification."""

    def test_token_round_trip(self):
        token = AuthService.create_user_token(7, "ada@acme.test", 3)

        payload = AuthService.verify_access_token(token)

        assert payload["id"] == 7
        assert payload["email"] == "ada@acme.test"
        assert payload["organization_id"] == 3
        assert "exp" in payload

    def test_expired_token(self):
        token = AuthService.create_access_token(
            {"id": 1, "email": "a@b.test", "organization_id": 1},
            expires_delta=timedelta(seconds=-10),
        )

        assert AuthService.verify_access_token(token) is None

    def test_token_signed_with_other_key(self):
        token = jwt.encode(
            {"id": 1, "email": "a@b.test", "organization_id": 1},
            "another-secret-key-that-is-long-enough",
            algorithm=ALGORITHM,
        )

        assert AuthService.verify_access_token(token) is None

    def test_token_missing_organization(self):
        token = AuthService.create_access_token({"id": 1, "email": "a@b.test"})

        assert AuthService.verify_access_token(token) is None

    def test_garbage_token(self):
        assert AuthService.verify_access_token("not-a-jwt") is None


@pytest.mark.unit
class TestSettings:

    def test_default_secret_key_rejected(self):
        with pytest.raises(ValidationError):
            Settings(SECRET_KEY="change-this-secret-key-in-production")

    def test_short_secret_key_rejected(self):
        with pytest.raises(ValidationError):
            Settings(SECRET_KEY="too-short")

    def test_inverted_transfer_window_rejected(self):
        with pytest.raises(ValidationError):
            Settings(
                SECRET_KEY="a-perfectly-fine-secret-key-of-length",
                INGESTION_TRANSFER_DELAY_MIN=10,
                INGESTION_TRANSFER_DELAY_MAX=5,
            )

    def test_allowed_origins(self):
        custom = Settings(
            SECRET_KEY="a-perfectly-fine-secret-key-of-length",
            ALLOWED_ORIGINS="http://a.test, http://b.test",
        )

        assert custom.get_allowed_origins() == ["http://a.test", "http://b.test"]

    def test_test_environment(self):
        assert settings.app_env == "testing"
        assert settings.job_delay_scale == 0
