"""
ModShield - Punishment Manager Tests
====================================
"""

import asyncio

import pytest

from modshield.core.policy import BAN_MESSAGE
from modshield.core.punishment_manager import PunishmentManager
from modshield.core.warning_ledger import WarningLedger
from modshield.database import keys
from modshield.database.models import PostRef, UserWarningRecord

SUBREDDIT = "TestCommunity"


async def warn_times(punishment, username, n, start=0):
    result = None
    for i in range(start, start + n):
        result = await punishment.punish(username, PostRef(f"t3_{i}"), "AutoMod", "Spam")
    return result


class TestEscalation:
    """Warn -> evaluate -> ban flow."""

    @pytest.mark.asyncio
    async def test_five_warnings_no_ban(self, punishment, moderation):
        result = await warn_times(punishment, "alice", 5)

        assert result.warning_recorded is True
        assert result.counts.active == 5
        assert result.banned is False
        assert moderation.called("ban") == []

    @pytest.mark.asyncio
    async def test_sixth_warning_bans_for_seven_days(self, punishment, moderation, ledger):
        await warn_times(punishment, "alice", 5)

        result = await punishment.punish("alice", PostRef("t3_x"), "AutoMod", "Spam")

        assert result.banned is True
        assert result.decision.ban_level == 1
        assert moderation.called("ban") == [("ban", "alice", SUBREDDIT, 7, BAN_MESSAGE)]
        record = (await ledger.get_user_warnings("alice")).value
        assert record.last_ban_level == 1
        assert len(record.warnings) == 6

    @pytest.mark.asyncio
    async def test_no_second_ban_at_same_tier(self, punishment, moderation):
        await warn_times(punishment, "alice", 8)
        assert len(moderation.called("ban")) == 1

    @pytest.mark.asyncio
    async def test_twelve_warnings_bans_for_28_days(self, punishment, moderation, ledger):
        await warn_times(punishment, "alice", 12)

        bans = moderation.called("ban")
        assert [b[3] for b in bans] == [7, 28]
        assert (await ledger.get_user_warnings("alice")).value.last_ban_level == 2

    @pytest.mark.asyncio
    async def test_permanent_ban_passes_no_duration(self, punishment, moderation, ledger, store):
        record = UserWarningRecord(total_warnings=25, last_ban_level=2)
        await store.set(keys.user_warnings("alice"), record.to_json())
        await warn_times(punishment, "alice", 26)

        assert moderation.called("ban")[-1][3] is None
        assert (await ledger.get_user_warnings("alice")).value.last_ban_level == 3

    @pytest.mark.asyncio
    async def test_prior_tier_already_recorded(self, punishment, moderation, store):
        record = UserWarningRecord(total_warnings=10, last_ban_level=2)
        await store.set(keys.user_warnings("alice"), record.to_json())

        await warn_times(punishment, "alice", 12)

        assert moderation.called("ban") == []

    @pytest.mark.asyncio
    async def test_expired_warnings_do_not_count(self, punishment, moderation, clock):
        await warn_times(punishment, "alice", 5)
        clock.advance_days(91)

        result = await warn_times(punishment, "alice", 1, start=10)

        assert result.counts.active == 1
        assert result.counts.total == 6
        assert moderation.called("ban") == []

    @pytest.mark.asyncio
    async def test_simultaneous_threshold_warnings_ban_once(self, yielding_store, yielding_moderation, clock):
        ledger = WarningLedger(yielding_store, clock=clock)
        punishment = PunishmentManager(ledger, yielding_moderation, SUBREDDIT, clock=clock)
        await warn_times(punishment, "alice", 5)

        results = await asyncio.gather(
            punishment.punish("alice", PostRef("t3_x"), "AutoMod", "Spam"),
            punishment.punish("alice", PostRef("t3_y"), "AutoMod", "Spam"),
        )

        assert sorted(r.banned for r in results) == [False, True]
        assert yielding_moderation.called("ban") == [("ban", "alice", SUBREDDIT, 7, BAN_MESSAGE)]
        record = (await ledger.get_user_warnings("alice")).value
        assert record.total_warnings == 7
        assert record.last_ban_level == 1


class TestFailures:
    """Store and platform failures."""

    @pytest.mark.asyncio
    async def test_ban_failure_keeps_level(self, punishment, moderation, ledger):
        moderation.fail.add("ban")

        result = await warn_times(punishment, "alice", 6)

        assert result.decision.should_ban is True
        assert result.ban.applied is False
        assert result.banned is False
        record = (await ledger.get_user_warnings("alice")).value
        assert record.last_ban_level == 0
        assert len(record.warnings) == 6

    @pytest.mark.asyncio
    async def test_failed_ban_retried_on_next_warning(self, punishment, moderation, ledger):
        moderation.fail.add("ban")
        await warn_times(punishment, "alice", 6)
        moderation.fail.clear()

        result = await warn_times(punishment, "alice", 1, start=6)

        assert result.banned is True
        assert (await ledger.get_user_warnings("alice")).value.last_ban_level == 1

    @pytest.mark.asyncio
    async def test_store_failure_skips_ban(self, punishment, moderation, store):
        store.fail_set = True

        result = await punishment.punish("alice", None, "mod", "Spam")

        assert result.warning_recorded is False
        assert result.decision is None
        assert moderation.called("ban") == []

    @pytest.mark.asyncio
    async def test_apply_ban_without_record(self, punishment, moderation):
        result = await punishment.apply_ban("ghost", SUBREDDIT, 7, BAN_MESSAGE, 1)

        assert result.applied is True
        assert result.level_recorded is False
        assert len(moderation.called("ban")) == 1
