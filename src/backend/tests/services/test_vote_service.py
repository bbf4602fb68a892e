"""
Tests for vote toggling and supporter rewards.
"""

from unittest.mock import AsyncMock

import pytest

from models.vote import VoteType
from services.vote_allowance import VoteAllowanceLedger, resolve_voter_identity
from services.vote_service import VoteService

ANON = resolve_voter_identity(None, "a" * 32)


def _service(db) -> VoteService:
    return VoteService(db, ledger=VoteAllowanceLedger(db, initial=2, cap=10))


@pytest.mark.integration
class TestToggle:
    async def test_new_vote_costs_one(self, db_session) -> None:
        outcome = await _service(db_session).toggle(ANON, 1, VoteType.UP)
        await db_session.commit()

        assert outcome.action == "added"
        assert outcome.vote_type == VoteType.UP
        assert outcome.remaining_votes == 1
        assert not outcome.depleted

    async def test_same_direction_retracts_and_refunds(self, db_session) -> None:
        service = _service(db_session)
        await service.toggle(ANON, 1, VoteType.UP)
        outcome = await service.toggle(ANON, 1, VoteType.UP)

        assert outcome.action == "removed"
        assert outcome.vote_type is None
        assert outcome.remaining_votes == 2
        assert await service.my_votes(ANON, [1]) == {1: None}

    async def test_stale_retract_refunds_once(self, db_session) -> None:
        """Two retracts that both saw the vote: only the one that deletes it refunds."""
        service = _service(db_session)
        await service.toggle(ANON, 1, VoteType.UP)
        await db_session.commit()

        service.votes.get_vote_type = AsyncMock(return_value=VoteType.UP)
        first = await service.toggle(ANON, 1, VoteType.UP)
        second = await service.toggle(ANON, 1, VoteType.UP)
        await db_session.commit()

        assert first.remaining_votes == 2
        assert second.action == "removed"
        assert second.remaining_votes == 2
        assert await service.ledger.remaining_for(ANON.key) == 2

    async def test_other_direction_flips_for_free(self, db_session) -> None:
        service = _service(db_session)
        await service.toggle(ANON, 1, VoteType.UP)
        outcome = await service.toggle(ANON, 1, VoteType.DOWN)

        assert outcome.action == "changed"
        assert outcome.vote_type == VoteType.DOWN
        assert outcome.remaining_votes == 1

    async def test_depleted_records_nothing(self, db_session) -> None:
        service = _service(db_session)
        await service.toggle(ANON, 1, VoteType.UP)
        await service.toggle(ANON, 2, VoteType.UP)
        outcome = await service.toggle(ANON, 3, VoteType.UP)

        assert outcome.depleted
        assert outcome.remaining_votes == 0
        assert await service.my_votes(ANON, [1, 2, 3]) == {1: VoteType.UP, 2: VoteType.UP, 3: None}


@pytest.mark.integration
class TestSupporters:
    async def test_only_upvoters_are_rewarded(self, db_session) -> None:
        service = _service(db_session)
        fan = resolve_voter_identity(None, "b" * 32)
        critic = resolve_voter_identity(None, "c" * 32)
        await service.toggle(fan, 7, VoteType.UP)
        await service.toggle(critic, 7, VoteType.DOWN)
        await db_session.commit()

        rewarded = await service.grant_to_supporters(7, 1)
        await db_session.commit()

        assert rewarded == 1
        assert await service.ledger.remaining_for(fan.key) == 2
        assert await service.ledger.remaining_for(critic.key) == 1

    async def test_no_supporters(self, db_session) -> None:
        assert await _service(db_session).grant_to_supporters(99, 1) == 0
