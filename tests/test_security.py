"""
Tests for token and password helpers.
"""
from datetime import timedelta

import pytest
from jose import jwt

from citizen_reports.core.config import settings
from citizen_reports.domain.services.security import (
    build_user_claims,
    create_access_token,
    get_user_id_from_payload,
    hash_password,
    verify_password,
    verify_token,
)


class TestAccessTokens:

    def test_user_claims_survive_round_trip(self):
        token = create_access_token(build_user_claims(7, "ada@example.com"))

        payload = verify_token(token)

        assert payload["id"] == 7
        assert payload["email"] == "ada@example.com"
        assert payload["type"] == "access"

    def test_expired_token_is_rejected(self):
        token = create_access_token({"id": 7}, expires_delta=timedelta(minutes=-1))
        assert verify_token(token) is None

    def test_foreign_key_is_rejected(self):
        token = jwt.encode({"id": 7, "type": "access"}, "another-secret", algorithm=settings.JWT_ALGORITHM)
        assert verify_token(token) is None

    def test_wrong_token_type_is_rejected(self):
        token = jwt.encode({"id": 7, "type": "refresh"}, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)
        assert verify_token(token) is None


class TestUserIdClaim:

    @pytest.mark.parametrize("claim, expected", [
        (42, 42),
        (42.0, 42),
        (42.5, None),
        ("42", None),
        ("abc", None),
        (True, None),
        (None, None),
    ])
    def test_claim_values(self, claim, expected):
        assert get_user_id_from_payload({"id": claim}) == expected

    def test_missing_claim(self):
        assert get_user_id_from_payload({"email": "ada@example.com"}) is None


class TestPasswords:

    def test_hash_and_verify(self):
        hashed = hash_password("password123")

        assert hashed != "password123"
        assert verify_password("password123", hashed)
        assert not verify_password("wrong-password", hashed)

    def test_user_without_password_never_matches(self):
        assert verify_password("", None) is False
        assert verify_password("anything", "") is False
