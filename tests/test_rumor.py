"""
ModShield - Rumor Notice Tests
==============================
"""

import asyncio

import pytest

from modshield.core.rumor import ALREADY_POSTED, CLEARED, FAILED, NO_MATCH, POSTED, RumorNotice
from modshield.utils.idempotency import RumorMarker


@pytest.fixture
def marker(store):
    return RumorMarker(store)


@pytest.fixture
def rumor(moderation, marker):
    return RumorNotice(moderation, marker, "TestCommunity")


class TestRumorNotice:
    """Notice posted once per rumor flair."""

    @pytest.mark.asyncio
    async def test_posts_sticky_locked_notice(self, rumor, moderation, marker):
        post = moderation.add_post("t3_a", flair_text="Rumor")

        assert await rumor.check_rumor_flair(post) == POSTED

        reply = moderation.called("reply")[0]
        assert reply[1] == "t3_a"
        assert reply[3] is True
        assert reply[4] is True
        assert (await marker.is_marked("t3_a")).value is True

    @pytest.mark.asyncio
    async def test_posted_once(self, rumor, moderation):
        post = moderation.add_post("t3_a", flair_text="rumor / leak")

        await rumor.check_rumor_flair(post)
        second = await rumor.check_rumor_flair(post)

        assert second == ALREADY_POSTED
        assert len(moderation.called("reply")) == 1

    @pytest.mark.asyncio
    async def test_non_matching_flair(self, rumor, moderation):
        post = moderation.add_post("t3_a", flair_text="News")

        assert await rumor.check_rumor_flair(post) == NO_MATCH
        assert moderation.called("reply") == []

    @pytest.mark.asyncio
    async def test_flair_removed_clears_then_reposts(self, rumor, moderation, marker):
        post = moderation.add_post("t3_a", flair_text="Rumor")
        await rumor.check_rumor_flair(post)

        post.flair_text = "Confirmed"
        assert await rumor.check_rumor_flair(post) == CLEARED
        assert (await marker.is_marked("t3_a")).value is False

        post.flair_text = "Rumor"
        assert await rumor.check_rumor_flair(post) == POSTED
        assert len(moderation.called("reply")) == 2

    @pytest.mark.asyncio
    async def test_reply_failure_not_marked(self, rumor, moderation, marker):
        moderation.fail.add("reply")
        post = moderation.add_post("t3_a", flair_text="Rumor")

        assert await rumor.check_rumor_flair(post) == FAILED
        assert (await marker.is_marked("t3_a")).value is False

    @pytest.mark.asyncio
    async def test_concurrent_checks_post_once(self, rumor, moderation):
        post = moderation.add_post("t3_a", flair_text="Rumor")

        await asyncio.gather(*[rumor.check_rumor_flair(post) for _ in range(4)])

        assert len(moderation.called("reply")) == 1

    def test_custom_keyword(self, moderation, marker):
        notice = RumorNotice(moderation, marker, "TestCommunity", keyword="Unconfirmed")
        assert notice.matches(moderation.add_post("t3_a", flair_text="UNCONFIRMED report"))
        assert not notice.matches(moderation.add_post("t3_b", flair_text=None))
