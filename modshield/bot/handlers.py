import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from modshield.core.blacklist import BlacklistFilter
from modshield.core.interfaces import ContentItem, ModerationApi
from modshield.core.participation import ParticipationChecker
from modshield.core.restoration import RestorationService
from modshield.core.rumor import RumorNotice
from modshield.core.warning_ledger import WarningLedger

logger = logging.getLogger("modshield")

POST_SUBMIT = "post_submit"
COMMENT_SUBMIT = "comment_submit"
POST_UPDATE = "post_update"
MOD_ACTION = "mod_action"


@dataclass(frozen=True)
class ModAction:
    """A moderator action observed in the mod log"""
    action: str
    target_post_id: Optional[str] = None
    target_comment_id: Optional[str] = None
    moderator: Optional[str] = None

    @property
    def target_id(self) -> Optional[str]:
        return self.target_post_id or self.target_comment_id


class EventHandler:
    """Routes content events to the moderation core"""

    def __init__(
        self,
        moderation: ModerationApi,
        ledger: WarningLedger,
        blacklist: BlacklistFilter,
        restoration: RestorationService,
        rumor: RumorNotice,
        participation: ParticipationChecker,
    ):
        self.moderation = moderation
        self.ledger = ledger
        self.blacklist = blacklist
        self.restoration = restoration
        self.rumor = rumor
        self.participation = participation

    async def _fetch(self, content_id: str) -> Optional[ContentItem]:
        item = await self.moderation.get_content(content_id)
        if item is None:
            logger.warning(f"Content {content_id} not found, skipping")
        return item

    async def _passes_participation(self, item: ContentItem) -> bool:
        if not item.author:
            return True

        check = await self.participation.check(item.author)
        if not check.allowed and check.reason:
            await self.participation.handle_insufficient(item, check.reason)
            return False
        return True

    async def handle_post_submit(self, post_id: str):
        """
        New post

        Flow:
        1. Participation requirements
        2. Blacklist
        3. Rumor flair
        """
        try:
            post = await self._fetch(post_id)
            if post is None:
                return

            if not await self._passes_participation(post):
                return

            await self.blacklist.check(post)
            await self.rumor.check_rumor_flair(post)
        except Exception as e:
            logger.error(f"Error in post submit handler for {post_id}: {e}", exc_info=True)

    async def handle_comment_submit(self, comment_id: str):
        """New comment: participation requirements, then blacklist"""
        try:
            comment = await self._fetch(comment_id)
            if comment is None:
                return

            if not await self._passes_participation(comment):
                return

            await self.blacklist.check(comment)
        except Exception as e:
            logger.error(f"Error in comment submit handler for {comment_id}: {e}", exc_info=True)

    async def handle_post_update(self, post_id: str):
        try:
            post = await self._fetch(post_id)
            if post is not None:
                await self.rumor.check_rumor_flair(post)
        except Exception as e:
            logger.error(f"Error in post update handler for {post_id}: {e}", exc_info=True)

    async def handle_mod_action(self, action: ModAction):
        """
        Moderator action

        editflair re-checks the rumor notice, approvelink/approvecomment
        removes the warning the content earned, spam triggers restoration.
        """
        try:
            if action.action == "editflair" and action.target_post_id:
                post = await self._fetch(action.target_post_id)
                if post is not None:
                    await self.rumor.check_rumor_flair(post)
                    logger.info(f"Checked rumor flair after mod flair edit on post {post.id}")

            elif action.action in ("approvelink", "approvecomment") and action.target_id:
                author = await self.moderation.get_author(action.target_id)
                if author:
                    await self.ledger.remove_warning(author, action.target_id)

            elif action.action == "spam" and action.target_id:
                item = await self._fetch(action.target_id)
                if item is not None:
                    await self.restoration.check_and_restore(item)
        except Exception as e:
            logger.error(f"Error in mod action handler ({action.action}): {e}", exc_info=True)

    async def dispatch(self, event: Dict[str, Any]):
        """
        Route a raw event

        Args:
            event: {"type": ..., "post_id"/"comment_id"/"action"/...}
        """
        event_type = event.get("type")

        try:
            if event_type == POST_SUBMIT:
                await self.handle_post_submit(event["post_id"])
            elif event_type == COMMENT_SUBMIT:
                await self.handle_comment_submit(event["comment_id"])
            elif event_type == POST_UPDATE:
                await self.handle_post_update(event["post_id"])
            elif event_type == MOD_ACTION:
                await self.handle_mod_action(ModAction(
                    action=event["action"],
                    target_post_id=event.get("target_post_id"),
                    target_comment_id=event.get("target_comment_id"),
                    moderator=event.get("moderator"),
                ))
            else:
                logger.warning(f"Ignoring unknown event type: {event_type!r}")
        except KeyError as e:
            logger.warning(f"Ignoring {event_type} event missing field {e}")
