import json
import logging
from dataclasses import dataclass
from typing import List, Optional

from modshield.core import messages
from modshield.core.interfaces import ContentItem, ModerationApi
from modshield.core.punishment_manager import PunishmentManager, PunishmentResult
from modshield.core.warning_ledger import WarningLedger
from modshield.database import keys
from modshield.database.models import WarningCounts
from modshield.database.record_store import RecordStore
from modshield.errors import StoreUnavailable

logger = logging.getLogger("modshield")


@dataclass(frozen=True)
class RemovalReason:
    id: str
    label: str
    reason_text: str


DEFAULT_REMOVAL_REASONS = [
    RemovalReason("spam", "Spam", "Your content was removed because it was identified as spam."),
    RemovalReason("harassment", "Harassment", "Your content was removed for harassment or bullying."),
    RemovalReason("offtopic", "Off-topic", "Your content was removed because it was off-topic."),
]


@dataclass(frozen=True)
class RemovalResult:
    counts: WarningCounts
    punishment: Optional[PunishmentResult]
    reply_id: str


class RemovalService:
    """Moderator-initiated removal with a reason"""

    def __init__(self, store: RecordStore, moderation: ModerationApi,
                 ledger: WarningLedger, punishment_manager: PunishmentManager,
                 subreddit: str):
        self.store = store
        self.moderation = moderation
        self.ledger = ledger
        self.punishment = punishment_manager
        self.subreddit = subreddit

    async def get_removal_reasons(self) -> List[RemovalReason]:
        try:
            raw = await self.store.get(keys.REMOVAL_REASONS)
        except StoreUnavailable as e:
            logger.error(f"Failed to read removal reasons, using defaults: {e}")
            return list(DEFAULT_REMOVAL_REASONS)

        if raw is None:
            return list(DEFAULT_REMOVAL_REASONS)

        try:
            return [
                RemovalReason(id=r["id"], label=r["label"], reason_text=r["reasonText"])
                for r in json.loads(raw)
            ]
        except (ValueError, TypeError, KeyError):
            logger.warning("Stored removal reasons are malformed, using defaults")
            return list(DEFAULT_REMOVAL_REASONS)

    async def set_removal_reasons(self, reasons: List[RemovalReason]):
        payload = [
            {"id": r.id, "label": r.label, "reasonText": r.reason_text}
            for r in reasons
        ]
        await self.store.set(keys.REMOVAL_REASONS, json.dumps(payload))

    async def find_reason(self, reason_id: str) -> Optional[RemovalReason]:
        for reason in await self.get_removal_reasons():
            if reason.id == reason_id:
                return reason
        return None

    async def remove_with_reason(self, item: ContentItem, reason: RemovalReason,
                                 add_warning: bool, moderator: str) -> RemovalResult:
        """
        Remove content on a moderator's behalf

        The warning is added before counts are read so the notice includes
        it. Moderation API failures propagate to the moderator.

        Args:
            item: content to remove
            reason: selected removal reason
            add_warning: whether the removal counts toward ban thresholds
            moderator: username of the acting moderator

        Returns:
            RemovalResult

        Raises:
            ModerationApiError: remove, reply, mod note or mod log failed
        """
        await self.moderation.remove(item.id)

        punishment = None
        if add_warning and item.author:
            punishment = await self.punishment.punish(
                item.author,
                item.ref(),
                moderator=moderator,
                reason=reason.label,
            )

        if punishment is not None:
            counts = punishment.counts
        elif item.author:
            counts = (await self.ledger.get_warning_counts(item.author)).value
        else:
            counts = WarningCounts(active=0, expired=0, total=0)

        text = messages.manual_removal(
            self.subreddit,
            item.author or "user",
            reason.reason_text,
            counts.active,
            counts.expired,
        )
        reply_id = await self.moderation.reply(item.id, text, sticky=True, lock=True)

        if item.author:
            await self.moderation.add_mod_note(
                self.subreddit,
                item.author,
                f"{item.kind.capitalize()} removed: {reason.label}",
                content_id=item.id,
            )

        action = "removelink" if item.is_post else "removecomment"
        await self.moderation.add_mod_log(
            self.subreddit,
            action,
            item.id,
            details=reason.id,
            description=f"Removed by u/{moderator}: {reason.label}",
        )

        logger.info(f"Custom removal of {item.kind} {item.id} by u/{moderator} for: {reason.label}")
        return RemovalResult(counts=counts, punishment=punishment, reply_id=reply_id)
