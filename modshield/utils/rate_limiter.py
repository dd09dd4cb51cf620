import logging
from typing import Optional

from modshield.core.results import Outcome
from modshield.database import keys
from modshield.database.record_store import RecordStore
from modshield.errors import StoreUnavailable
from modshield.utils.clock import Clock, days_to_ms, now_ms

logger = logging.getLogger("modshield")

NOTIFICATION_COOLDOWN_DAYS = 5
AUTO_APPROVAL_INTERVAL_DAYS = 5


def _parse_timestamp(raw: str, key: str) -> Optional[int]:
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"Ignoring unparseable timestamp under {key}: {raw!r}")
        return None


class CooldownMark:
    """
    Timestamp mark gating the minimum interval between repeated actions

    check and mark are separate calls, so concurrent callers can both pass
    the check. Callers mark right after acting.
    """

    def __init__(self, store: RecordStore, interval_days: float, clock: Clock = now_ms):
        self.store = store
        self.interval_days = interval_days
        self.clock = clock

    async def is_open(self, key: str) -> Outcome[bool]:
        """True when no mark exists or the mark is at least interval_days old"""
        try:
            raw = await self.store.get(key)
        except StoreUnavailable as e:
            logger.error(f"Failed to read cooldown mark {key}, allowing: {e}")
            return Outcome.fallback(True, e)

        if raw is None:
            return Outcome.ok(True)

        marked_at = _parse_timestamp(raw, key)
        if marked_at is None:
            return Outcome.ok(True)

        return Outcome.ok(self.clock() - marked_at >= days_to_ms(self.interval_days))

    async def mark(self, key: str) -> Outcome[bool]:
        try:
            await self.store.set(key, str(self.clock()))
        except StoreUnavailable as e:
            logger.error(f"Failed to write cooldown mark {key}: {e}")
            return Outcome.fallback(False, e)
        return Outcome.ok(True)


class NotificationThrottle:
    """Per-user cooldown for restoration and removal notices"""

    def __init__(self, store: RecordStore, cooldown_days: float = NOTIFICATION_COOLDOWN_DAYS,
                 clock: Clock = now_ms):
        self._mark = CooldownMark(store, cooldown_days, clock)

    @property
    def cooldown_days(self) -> float:
        return self._mark.interval_days

    async def can_send_notification(self, username: str) -> Outcome[bool]:
        """
        Check whether a notice may be sent to a user

        Args:
            username: recipient

        Returns:
            Outcome with True if no notice was sent within the cooldown
        """
        return await self._mark.is_open(keys.last_notification(username))

    async def mark_notification_sent(self, username: str) -> Outcome[bool]:
        """Record that a notice was just sent"""
        return await self._mark.mark(keys.last_notification(username))


class AutoApprovalThrottle:
    """Process-wide cooldown between bulk auto-approvals"""

    def __init__(self, store: RecordStore, interval_days: float = AUTO_APPROVAL_INTERVAL_DAYS,
                 clock: Clock = now_ms):
        self._mark = CooldownMark(store, interval_days, clock)
        logger.info(f"AutoApprovalThrottle initialized with interval_days={interval_days}")

    async def can_auto_approve(self) -> Outcome[bool]:
        return await self._mark.is_open(keys.LAST_AUTO_APPROVAL)

    async def mark_auto_approval_done(self) -> Outcome[bool]:
        return await self._mark.mark(keys.LAST_AUTO_APPROVAL)
