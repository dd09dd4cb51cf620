import json
import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional

from modshield.core import messages
from modshield.core.interfaces import ContentItem, ModerationApi
from modshield.core.punishment_manager import PunishmentManager, PunishmentResult
from modshield.database import keys
from modshield.database.record_store import RecordStore
from modshield.errors import ModerationApiError, StoreUnavailable

logger = logging.getLogger("modshield")

AUTOMOD_TAG = "AutoMod"
BLACKLIST_REASON = "Blacklisted word"


def contains_blacklisted_word(text: str, blacklist: Iterable[str]) -> bool:
    """Case-insensitive substring match against any blacklist entry"""
    lower_text = text.lower()
    return any(word and word.lower() in lower_text for word in blacklist)


@dataclass(frozen=True)
class BlacklistResult:
    matched: bool
    removed: bool = False
    punishment: Optional[PunishmentResult] = None


class BlacklistFilter:
    """Removes content containing blacklisted words and warns the author"""

    def __init__(self, store: RecordStore, moderation: ModerationApi,
                 punishment_manager: PunishmentManager, subreddit: str,
                 default_blacklist: Optional[List[str]] = None):
        self.store = store
        self.moderation = moderation
        self.punishment = punishment_manager
        self.subreddit = subreddit
        self.default_blacklist = list(default_blacklist or [])

    async def get_blacklist(self) -> List[str]:
        """Stored blacklist, or the configured default when none is stored or it is unreadable"""
        try:
            raw = await self.store.get(keys.BLACKLIST)
        except StoreUnavailable as e:
            logger.error(f"Failed to read blacklist, using default: {e}")
            return self.default_blacklist

        if raw is None:
            return self.default_blacklist

        try:
            words = json.loads(raw)
        except ValueError:
            logger.warning("Stored blacklist is not valid JSON, using default")
            return self.default_blacklist

        if not isinstance(words, list):
            logger.warning("Stored blacklist is not a list, using default")
            return self.default_blacklist
        return [str(w) for w in words]

    async def set_blacklist(self, words: List[str]):
        await self.store.set(keys.BLACKLIST, json.dumps(words))
        logger.info(f"Blacklist updated with {len(words)} entries")

    async def check(self, item: ContentItem) -> BlacklistResult:
        """
        Check a post or comment and act on a match

        On a match the author is warned (and banned if a threshold is
        crossed), the content is removed and a notice with the author's
        warning counts is posted.

        Args:
            item: submitted post or comment

        Returns:
            BlacklistResult
        """
        blacklist = await self.get_blacklist()
        if not contains_blacklisted_word(item.text, blacklist):
            return BlacklistResult(matched=False)

        logger.info(f"Blacklisted word found in {item.kind} {item.id} by u/{item.author}")

        punishment = None
        active, expired = 0, 0
        if item.author:
            punishment = await self.punishment.punish(
                item.author,
                item.ref(),
                moderator=AUTOMOD_TAG,
                reason=BLACKLIST_REASON,
            )
            active, expired = punishment.counts.active, punishment.counts.expired

        try:
            await self.moderation.remove(item.id)
        except ModerationApiError as e:
            logger.error(f"Error removing blacklisted {item.kind} {item.id}: {e}", exc_info=True)
            return BlacklistResult(matched=True, removed=False, punishment=punishment)

        text = messages.blacklist_removal(self.subreddit, item.author or "user", active, expired)
        try:
            await self.moderation.reply(item.id, text)
        except ModerationApiError as e:
            logger.warning(f"Failed to post removal notice on {item.kind} {item.id}: {e}")

        return BlacklistResult(matched=True, removed=True, punishment=punishment)
