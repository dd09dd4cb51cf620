import logging
from dataclasses import dataclass
from typing import Optional

from modshield.core.interfaces import ModerationApi
from modshield.core.policy import BanDecision, check_ban_threshold
from modshield.core.warning_ledger import WarningLedger
from modshield.database.models import ContentRef, WarningCounts, WarningEntry
from modshield.errors import ModerationApiError, StoreUnavailable
from modshield.utils.clock import Clock, now_ms

logger = logging.getLogger("modshield")

BAN_NOTE = "Automatic ban by ModShield bot"


@dataclass(frozen=True)
class BanResult:
    """What apply_ban actually did"""
    applied: bool
    level_recorded: bool
    error: Optional[BaseException] = None


@dataclass(frozen=True)
class PunishmentResult:
    """Outcome of warn -> evaluate -> maybe-ban"""
    warning_recorded: bool
    counts: WarningCounts
    decision: Optional[BanDecision]
    ban: Optional[BanResult]

    @property
    def banned(self) -> bool:
        return self.ban is not None and self.ban.applied


class PunishmentManager:
    """Records warnings and applies escalating bans"""

    def __init__(self, ledger: WarningLedger, moderation: ModerationApi,
                 subreddit: str, clock: Clock = now_ms):
        """
        Args:
            ledger: warning ledger
            moderation: moderation API used to ban
            subreddit: community the bans apply to
            clock: epoch-millisecond clock used to timestamp warnings
        """
        self.ledger = ledger
        self.moderation = moderation
        self.subreddit = subreddit
        self.clock = clock
        logger.info("PunishmentManager initialized")

    async def punish(self, username: str, content_ref: ContentRef,
                     moderator: str, reason: str) -> PunishmentResult:
        """
        Warn a user and ban them if a threshold is crossed

        Args:
            username: offending user
            content_ref: content that triggered the warning, if any
            moderator: issuing moderator or automated tag
            reason: classification label

        Returns:
            PunishmentResult
        """
        warning = WarningEntry(
            timestamp_ms=self.clock(),
            content_ref=content_ref,
            moderator=moderator,
            reason=reason,
        )

        # held from the warning through the recorded tier; each tier bans once
        async with self.ledger.hold(username):
            added = await self.ledger.add_warning_locked(username, warning)

            if isinstance(added.error, StoreUnavailable):
                # nothing was persisted
                counts = (await self.ledger.get_warning_counts(username)).value
                return PunishmentResult(warning_recorded=False, counts=counts, decision=None, ban=None)

            record = added.value
            decision = check_ban_threshold(len(record.warnings), record.last_ban_level)
            logger.info(
                f"Ban check for u/{username}: active={len(record.warnings)}, "
                f"lastBanLevel={record.last_ban_level}, shouldBan={decision.should_ban}, "
                f"banDays={decision.ban_days}, banLevel={decision.ban_level}"
            )

            ban = None
            if decision.should_ban:
                ban = await self._apply_ban_locked(
                    username,
                    self.subreddit,
                    decision.ban_days,
                    decision.message,
                    decision.ban_level,
                )

            counts = (await self.ledger.get_warning_counts(username)).value

        return PunishmentResult(warning_recorded=True, counts=counts, decision=decision, ban=ban)

    async def apply_ban(self, username: str, subreddit: str, ban_days: Optional[int],
                        reason: str, new_ban_level: int) -> BanResult:
        """
        Ban a user and record the new tier

        The tier is only stored after the platform accepted the ban. A failed
        ban is logged and not retried; the warning that triggered it stays.

        Args:
            username: user to ban
            subreddit: community to ban from
            ban_days: duration in days, None for permanent
            reason: ban reason shown to the user
            new_ban_level: tier to record on success

        Returns:
            BanResult
        """
        async with self.ledger.hold(username):
            return await self._apply_ban_locked(username, subreddit, ban_days, reason, new_ban_level)

    async def _apply_ban_locked(self, username: str, subreddit: str, ban_days: Optional[int],
                                reason: str, new_ban_level: int) -> BanResult:
        duration = "permanently" if ban_days is None else f"for {ban_days} days"
        logger.info(f"Attempting to ban u/{username} {duration}. Reason: {reason}")

        try:
            await self.moderation.ban(username, subreddit, ban_days, reason, note=BAN_NOTE)
        except ModerationApiError as e:
            logger.error(f"Failed to ban user {username}: {e}", exc_info=True)
            return BanResult(applied=False, level_recorded=False, error=e)

        logger.info(f"Successfully banned u/{username} {duration}")

        stored = await self.ledger.set_ban_level_locked(username, new_ban_level)
        return BanResult(applied=True, level_recorded=stored.value, error=stored.error)
