"""
Tests for refresh token issuance, rotation and revocation.
"""
import logging
from datetime import timedelta
from unittest.mock import patch

import pytest

from authserver.core.clock import utcnow
from authserver.core.exceptions import TokenInvalidError
from authserver.repositories.token_repo import RefreshTokenRepository
from authserver.services.token_service import TokenIssuer


@pytest.fixture
async def user(make_user):
    return await make_user("tokens@corp.com")


class TestRotation:

    @pytest.mark.asyncio
    async def test_rotation_revokes_predecessor(self, session, user):
        issuer = TokenIssuer(session)
        token_a = await issuer.issue_refresh_token(user.id)

        stored = await issuer.get_active(token_a)
        pair = await issuer.rotate(stored, user, ["DefaultUser"])
        token_b = pair["refresh_token"]

        repo = RefreshTokenRepository(session)
        old = await repo.get_by_token(token_a)
        new = await repo.get_by_token(token_b)
        assert not old.is_active
        assert old.replaced_by_token == token_b
        assert new.is_active
        assert pair["access_token"]
        assert pair["expires_in"] > 0

    @pytest.mark.asyncio
    async def test_reuse_fails_like_unknown_token(self, session, user, caplog):
        issuer = TokenIssuer(session)
        token_a = await issuer.issue_refresh_token(user.id)
        await issuer.rotate(await issuer.get_active(token_a), user, [])

        with caplog.at_level(logging.WARNING, logger="authserver.services.token_service"):
            with pytest.raises(TokenInvalidError) as reused:
                await issuer.get_active(token_a)
        with pytest.raises(TokenInvalidError) as unknown:
            await issuer.get_active("never-issued")

        assert reused.value.message == unknown.value.message
        assert any("presented again" in record.getMessage() for record in caplog.records)

    @pytest.mark.asyncio
    async def test_expired_token_is_invalid(self, session, user):
        issuer = TokenIssuer(session)
        value = await issuer.issue_refresh_token(user.id)

        later = utcnow() + timedelta(days=8)
        with patch("authserver.models.token.utcnow", return_value=later):
            with pytest.raises(TokenInvalidError):
                await issuer.get_active(value)

    @pytest.mark.asyncio
    async def test_empty_value_is_invalid(self, session):
        with pytest.raises(TokenInvalidError):
            await TokenIssuer(session).get_active("")


class TestRevocation:

    @pytest.mark.asyncio
    async def test_revoke_is_idempotent(self, session, user):
        issuer = TokenIssuer(session)
        value = await issuer.issue_refresh_token(user.id)

        assert await issuer.revoke(value) is True
        assert await issuer.revoke(value) is False
        assert await issuer.revoke("unknown") is False

        with pytest.raises(TokenInvalidError):
            await issuer.get_active(value)

    @pytest.mark.asyncio
    async def test_revoke_all_for_user(self, session, user):
        issuer = TokenIssuer(session)
        values = [await issuer.issue_refresh_token(user.id) for _ in range(3)]

        assert await issuer.revoke_all_for_user(user.id) == 3
        for value in values:
            with pytest.raises(TokenInvalidError):
                await issuer.get_active(value)
        assert await issuer.revoke_all_for_user(user.id) == 0
