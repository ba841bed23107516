"""
Tests for password, token and slug helpers.
"""
from datetime import datetime, timedelta, timezone

import jwt
import pytest

from authserver.config import Settings, settings
from authserver.core.clock import add_months
from authserver.core.exceptions import ConfigurationError
from authserver.core.security import (
    create_access_token,
    decode_access_token,
    generate_refresh_token_value,
    generate_temporary_password,
    get_password_hash,
    password_policy_errors,
    slugify,
    verify_password,
    UPPERCASE,
    LOWERCASE,
    DIGITS,
    SYMBOLS,
)


class TestPasswords:

    def test_hash_and_verify(self):
        hashed = get_password_hash("Passw0rdOk")
        assert hashed != "Passw0rdOk"
        assert verify_password("Passw0rdOk", hashed)
        assert not verify_password("passw0rdok", hashed)

    @pytest.mark.parametrize("password", ["Short1A", "alllowercase1", "ALLUPPERCASE1", "NoDigitsHere"])
    def test_policy_rejects_weak_passwords(self, password):
        assert password_policy_errors(password)

    def test_policy_accepts_strong_password(self):
        assert password_policy_errors("Passw0rdOk") == []

    def test_temporary_password_has_every_character_class(self):
        for _ in range(200):
            password = generate_temporary_password()
            assert len(password) == settings.TEMP_PASSWORD_LENGTH
            assert any(c in UPPERCASE for c in password)
            assert any(c in LOWERCASE for c in password)
            assert any(c in DIGITS for c in password)
            assert any(c in SYMBOLS for c in password)
            assert password_policy_errors(password) == []

    def test_temporary_password_minimum_length(self):
        assert len(generate_temporary_password(4)) == 4
        with pytest.raises(ValueError):
            generate_temporary_password(3)


class TestAccessTokens:

    def test_claims_round_trip(self):
        token, expires_in = create_access_token("user-1", "a@b.com", ["OrganizationAdmin"])
        payload = decode_access_token(token)

        assert expires_in == settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60
        assert payload["sub"] == "user-1"
        assert payload["email"] == "a@b.com"
        assert payload["roles"] == ["OrganizationAdmin"]
        assert payload["jti"]
        assert payload["iss"] == settings.JWT_ISSUER
        assert payload["aud"] == settings.JWT_AUDIENCE

    def test_each_token_has_unique_id(self):
        first, _ = create_access_token("user-1", "a@b.com", [])
        second, _ = create_access_token("user-1", "a@b.com", [])
        assert decode_access_token(first)["jti"] != decode_access_token(second)["jti"]

    def test_expired_token_is_rejected(self):
        token, _ = create_access_token("user-1", "a@b.com", [], expires_delta=timedelta(seconds=-10))
        assert decode_access_token(token) is None

    def test_wrong_signature_is_rejected(self):
        token = jwt.encode(
            {
                "sub": "user-1", "jti": "x", "type": "access",
                "iss": settings.JWT_ISSUER, "aud": settings.JWT_AUDIENCE,
                "exp": datetime.now(timezone.utc) + timedelta(minutes=5),
            },
            "another-signing-key-that-is-long-enough-123",
            algorithm="HS256"
        )
        assert decode_access_token(token) is None

    def test_token_of_other_type_is_rejected(self):
        token = jwt.encode(
            {
                "sub": "user-1", "jti": "x", "type": "refresh",
                "iss": settings.JWT_ISSUER, "aud": settings.JWT_AUDIENCE,
                "exp": datetime.now(timezone.utc) + timedelta(minutes=5),
            },
            settings.SECRET_KEY,
            algorithm="HS256"
        )
        assert decode_access_token(token) is None

    def test_garbage_is_rejected(self):
        assert decode_access_token("not-a-jwt") is None


class TestSigningKeyValidation:

    def test_short_key_is_fatal(self):
        with pytest.raises(ConfigurationError):
            Settings(SECRET_KEY="too-short").validate_signing_key()

    def test_other_algorithm_is_fatal(self):
        with pytest.raises(ConfigurationError):
            Settings(SECRET_KEY="x" * 64, ALGORITHM="HS512").validate_signing_key()

    def test_valid_key_passes(self):
        Settings(SECRET_KEY="x" * 32).validate_signing_key()


def test_refresh_token_value_is_64_random_bytes():
    value = generate_refresh_token_value()
    assert len(value) == 88
    assert value != generate_refresh_token_value()


@pytest.mark.parametrize("name,expected", [
    ("Acme", "acme"),
    ("Acme Corp.", "acme-corp"),
    ("  Foo,  Bar ", "foo-bar"),
    ("R&D - Labs!", "rd-labs"),
])
def test_slugify(name, expected):
    assert slugify(name) == expected


@pytest.mark.parametrize("moment,expected", [
    (datetime(2024, 1, 31, 10, 0), datetime(2024, 2, 29, 10, 0)),
    (datetime(2023, 1, 31), datetime(2023, 2, 28)),
    (datetime(2024, 12, 15), datetime(2025, 1, 15)),
    (datetime(2024, 5, 10), datetime(2024, 6, 10)),
])
def test_add_months_clamps_day(moment, expected):
    assert add_months(moment, 1) == expected
