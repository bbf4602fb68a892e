"""
Account repository for database operations.
"""

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Optional

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from models.account import Account

if TYPE_CHECKING:
    from schemas.auth import ProviderProfile

logger = structlog.get_logger(__name__)


class AccountRepository:
    """Repository for account database operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_provider_id(self, provider_user_id: str) -> Optional[Account]:
        """Get an account by the identity provider's user id."""
        result = await self.db.execute(
            select(Account).where(Account.provider_user_id == provider_user_id)
        )
        return result.scalar_one_or_none()

    async def upsert_from_profile(self, profile: "ProviderProfile") -> Account:
        """
        Return the account for a provider identity, creating it if absent.

        Must be the first write of the current transaction: when a concurrent
        callback wins the insert race, the unique constraint on
        ``provider_user_id`` rejects ours, the transaction is rolled back and
        the winner's row is re-read and reused.
        """
        now = datetime.now(timezone.utc)

        account = await self.get_by_provider_id(profile.id)
        if account is None:
            account = Account(
                provider_user_id=profile.id,
                provider_username=profile.username,
                provider_display_name=profile.name,
                provider_avatar_url=profile.profile_image_url,
                last_login_at=now,
            )
            self.db.add(account)
            try:
                await self.db.flush()
                logger.info("account_created", account_id=account.id)
                return account
            except IntegrityError:
                await self.db.rollback()
                logger.info("account_create_conflict", provider_user_id=profile.id)
                account = await self.get_by_provider_id(profile.id)
                if account is None:
                    raise

        # Refresh the public profile on every login
        account.provider_username = profile.username
        account.provider_display_name = profile.name
        account.provider_avatar_url = profile.profile_image_url
        account.last_login_at = now
        await self.db.flush()
        return account
