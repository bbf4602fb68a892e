"""
Tests for the session manager.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from core.security import generate_secure_token
from models.account import Account
from models.session import AuthSession
from services.session_manager import SessionManager


async def _account(db) -> Account:
    account = Account(
        provider_user_id="42",
        provider_username="shipper",
        provider_display_name="Ship It",
        provider_avatar_url=None,
    )
    db.add(account)
    await db.commit()
    return account


async def _session_count(db) -> int:
    result = await db.execute(select(func.count()).select_from(AuthSession))
    return result.scalar_one()


@pytest.mark.integration
class TestValidate:
    async def test_issued_session_resolves_to_account(self, db_session) -> None:
        account = await _account(db_session)
        manager = SessionManager(db_session)

        auth_session = await manager.issue(account.id)
        await db_session.commit()

        resolved = await manager.validate(auth_session.id)
        assert resolved is not None
        assert resolved.id == account.id

    @pytest.mark.parametrize("session_id", [None, "", "not-a-token", "x" * 200])
    async def test_malformed_ids_are_anonymous(self, db_session, session_id) -> None:
        assert await SessionManager(db_session).validate(session_id) is None

    async def test_unknown_id_is_anonymous(self, db_session) -> None:
        assert await SessionManager(db_session).validate(generate_secure_token()) is None

    async def test_expired_session_is_anonymous(self, db_session) -> None:
        account = await _account(db_session)
        manager = SessionManager(db_session, ttl=timedelta(seconds=-1))

        auth_session = await manager.issue(account.id)
        await db_session.commit()

        assert await SessionManager(db_session).validate(auth_session.id) is None

    async def test_storage_error_is_anonymous(self, mock_db_session) -> None:
        mock_db_session.execute = AsyncMock(side_effect=OperationalError("SELECT", {}, Exception()))
        manager = SessionManager(mock_db_session)

        assert await manager.validate(generate_secure_token()) is None
        mock_db_session.rollback.assert_awaited_once()


@pytest.mark.integration
class TestSlidingRenewal:
    async def test_renews_when_less_than_half_left(self, db_session) -> None:
        account = await _account(db_session)
        ttl = timedelta(days=30)
        auth_session = await SessionManager(db_session, ttl=timedelta(days=1)).issue(account.id)
        await db_session.commit()

        manager = SessionManager(db_session, ttl=ttl, sliding_renewal=True)
        assert await manager.validate(auth_session.id) is not None

        await db_session.refresh(auth_session)
        expires_at = auth_session.expires_at.replace(tzinfo=timezone.utc)
        assert expires_at > datetime.now(timezone.utc) + timedelta(days=29)

    async def test_failed_renewal_keeps_session_valid(self, db_session) -> None:
        account = await _account(db_session)
        auth_session = await SessionManager(db_session, ttl=timedelta(days=1)).issue(account.id)
        await db_session.commit()

        manager = SessionManager(db_session, ttl=timedelta(days=30), sliding_renewal=True)
        manager.sessions.extend = AsyncMock(side_effect=OperationalError("UPDATE", {}, Exception()))

        resolved = await manager.validate(auth_session.id)

        assert resolved is not None
        assert resolved.id == account.id
        assert resolved.provider_username == "shipper"

    async def test_no_renewal_by_default(self, db_session) -> None:
        account = await _account(db_session)
        auth_session = await SessionManager(db_session, ttl=timedelta(days=1)).issue(account.id)
        await db_session.commit()

        manager = SessionManager(db_session, ttl=timedelta(days=30), sliding_renewal=False)
        await manager.validate(auth_session.id)

        await db_session.refresh(auth_session)
        expires_at = auth_session.expires_at.replace(tzinfo=timezone.utc)
        assert expires_at < datetime.now(timezone.utc) + timedelta(days=2)


@pytest.mark.integration
class TestDestroy:
    async def test_destroy_revokes(self, db_session) -> None:
        account = await _account(db_session)
        manager = SessionManager(db_session)
        auth_session = await manager.issue(account.id)
        await db_session.commit()

        await manager.destroy(auth_session.id)

        assert await manager.validate(auth_session.id) is None
        assert await _session_count(db_session) == 0

    async def test_destroy_is_idempotent(self, db_session) -> None:
        manager = SessionManager(db_session)
        token = generate_secure_token()

        await manager.destroy(token)
        await manager.destroy(token)
        await manager.destroy(None)
        await manager.destroy("garbage")

    async def test_destroy_propagates_storage_errors(self, mock_db_session) -> None:
        mock_db_session.execute = AsyncMock(side_effect=OperationalError("DELETE", {}, Exception()))

        with pytest.raises(OperationalError):
            await SessionManager(mock_db_session).destroy(generate_secure_token())
        mock_db_session.rollback.assert_awaited_once()


@pytest.mark.integration
class TestReaper:
    async def test_reap_removes_only_expired(self, db_session) -> None:
        account = await _account(db_session)
        await SessionManager(db_session, ttl=timedelta(seconds=-1)).issue(account.id)
        live = await SessionManager(db_session).issue(account.id)
        await db_session.commit()

        removed = await SessionManager(db_session).reap_expired()

        assert removed == 1
        assert await _session_count(db_session) == 1
        assert await SessionManager(db_session).validate(live.id) is not None
