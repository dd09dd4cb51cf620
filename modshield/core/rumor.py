import logging
from typing import Optional

from modshield.core import messages
from modshield.core.interfaces import ContentItem, ModerationApi
from modshield.database import keys
from modshield.errors import ModerationApiError
from modshield.utils.idempotency import RumorMarker
from modshield.utils.locks import KeyedLock

logger = logging.getLogger("modshield")

POSTED = "posted"
ALREADY_POSTED = "already_posted"
CLEARED = "cleared"
NO_MATCH = "no_match"
FAILED = "failed"


class RumorNotice:
    """Posts a sticky notice once on posts flaired as rumors"""

    def __init__(self, moderation: ModerationApi, marker: RumorMarker,
                 subreddit: str, keyword: str = "rumor",
                 locks: Optional[KeyedLock] = None):
        self.moderation = moderation
        self.marker = marker
        self.subreddit = subreddit
        self.keyword = keyword.lower()
        self.locks = locks or KeyedLock()

    def matches(self, post: ContentItem) -> bool:
        return self.keyword in (post.flair_text or "").lower()

    async def check_rumor_flair(self, post: ContentItem) -> str:
        """
        Post the rumor notice once, or clear the marker when the flair is gone

        Clearing lets the notice be posted again if moderators flair the post
        as a rumor later.

        Args:
            post: the post to check

        Returns:
            One of POSTED, ALREADY_POSTED, CLEARED, NO_MATCH, FAILED
        """
        async with self.locks.hold(keys.rumor_comment(post.id)):
            return await self._check(post)

    async def _check(self, post: ContentItem) -> str:
        if not self.matches(post):
            marked = await self.marker.is_marked(post.id)
            if marked.value:
                await self.marker.clear(post.id)
                logger.info(f"Rumor flair removed from post {post.id}, marker cleared")
                return CLEARED
            return NO_MATCH

        logger.info(f"Rumor flair detected on post {post.id}")

        marked = await self.marker.is_marked(post.id)
        if marked.value:
            return ALREADY_POSTED

        try:
            await self.moderation.reply(post.id, messages.rumor_notice(self.subreddit), sticky=True, lock=True)
        except ModerationApiError as e:
            logger.error(f"Error adding rumor notice to post {post.id}: {e}", exc_info=True)
            return FAILED

        await self.marker.mark(post.id)
        logger.info(f"Added rumor notice to post {post.id}")
        return POSTED
