import logging
from dataclasses import dataclass
from typing import Optional

from modshield.core import messages
from modshield.core.interfaces import ContentItem, ModerationApi
from modshield.database import keys
from modshield.errors import ModerationApiError
from modshield.utils.idempotency import ProcessedItemGuard
from modshield.utils.locks import KeyedLock
from modshield.utils.rate_limiter import AutoApprovalThrottle, NotificationThrottle

logger = logging.getLogger("modshield")

ALREADY_PROCESSED = "already_processed"
NOT_REMOVED = "not_removed"
THROTTLED = "throttled"
RESTORED = "restored"
FAILED = "failed"


@dataclass(frozen=True)
class RestorationResult:
    status: str
    notified: bool = False
    error: Optional[BaseException] = None

    @property
    def approved(self) -> bool:
        return self.status == RESTORED


class RestorationService:
    """Restores content removed by the platform's spam filter"""

    def __init__(self, moderation: ModerationApi, guard: ProcessedItemGuard,
                 approval_throttle: AutoApprovalThrottle,
                 notification_throttle: NotificationThrottle,
                 subreddit: str, locks: Optional[KeyedLock] = None):
        self.moderation = moderation
        self.guard = guard
        self.approval_throttle = approval_throttle
        self.notification_throttle = notification_throttle
        self.subreddit = subreddit
        self.locks = locks or KeyedLock()

    async def check_and_restore(self, item: ContentItem) -> RestorationResult:
        """
        Approve a filtered item at most once and tell the author

        Order is check, act, mark. Items that did not need restoring are
        marked too. Items skipped by the approval throttle or whose approval
        failed are left unmarked so a later event re-evaluates them.

        Args:
            item: the post or comment the spam action targeted

        Returns:
            RestorationResult
        """
        async with self.locks.hold(keys.processed_item(item.id)):
            processed = await self.guard.is_processed(item.id)
            if processed.value:
                logger.debug(f"Skipping {item.kind} {item.id} - already processed")
                return RestorationResult(ALREADY_PROCESSED)

            if not item.removed:
                await self.guard.mark_processed(item.id)
                return RestorationResult(NOT_REMOVED)

            async with self.locks.hold(keys.LAST_AUTO_APPROVAL):
                can_approve = await self.approval_throttle.can_auto_approve()
                if not can_approve.value:
                    logger.info(f"Skipping auto-approval for {item.kind} {item.id} - waiting for approval interval")
                    return RestorationResult(THROTTLED)

                try:
                    await self.moderation.approve(item.id)
                except ModerationApiError as e:
                    logger.error(f"Error restoring {item.kind} {item.id}: {e}", exc_info=True)
                    return RestorationResult(FAILED, error=e)

                logger.info(f"Auto-approved {item.kind} {item.id} by u/{item.author}")
                await self.approval_throttle.mark_auto_approval_done()

            notified = await self._notify_author(item)
            await self.guard.mark_processed(item.id)
            return RestorationResult(RESTORED, notified=notified)

    async def _notify_author(self, item: ContentItem) -> bool:
        if not item.author:
            return False

        allowed = await self.notification_throttle.can_send_notification(item.author)
        if not allowed.value:
            logger.debug(f"Restoration notice to u/{item.author} suppressed by cooldown")
            return False

        cooldown_days = int(self.notification_throttle.cooldown_days)
        text = messages.restoration(self.subreddit, item.author, item.kind, cooldown_days)
        try:
            await self.moderation.reply(item.id, text)
        except ModerationApiError as e:
            logger.warning(f"Failed to send restoration notice to u/{item.author}: {e}")
            return False

        await self.notification_throttle.mark_notification_sent(item.author)
        return True
