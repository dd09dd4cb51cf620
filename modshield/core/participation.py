import logging
from dataclasses import dataclass
from datetime import timezone
from typing import Optional

from modshield.core import messages
from modshield.core.interfaces import ContentItem, ModerationApi
from modshield.database import keys
from modshield.database.record_store import RecordStore
from modshield.errors import ModerationApiError, StoreUnavailable
from modshield.utils.clock import MS_PER_DAY, Clock, now_ms

logger = logging.getLogger("modshield")


@dataclass(frozen=True)
class ParticipationRequirements:
    min_karma: int = 0
    min_account_age_days: int = 0
    enabled: bool = False


@dataclass(frozen=True)
class ParticipationCheck:
    allowed: bool
    reason: Optional[str] = None


def _parse_int(raw: Optional[str]) -> int:
    try:
        return int(raw) if raw else 0
    except ValueError:
        return 0


class ParticipationChecker:
    """Minimum karma and account age gate for new content"""

    def __init__(self, store: RecordStore, moderation: ModerationApi, clock: Clock = now_ms):
        self.store = store
        self.moderation = moderation
        self.clock = clock

    async def get_requirements(self) -> ParticipationRequirements:
        enabled = await self.store.get(keys.RESTRICTIONS_ENABLED)
        karma = await self.store.get(keys.KARMA_REQUIREMENT)
        age = await self.store.get(keys.ACCOUNT_AGE_REQUIREMENT)

        return ParticipationRequirements(
            min_karma=_parse_int(karma),
            min_account_age_days=_parse_int(age),
            enabled=enabled == "true",
        )

    async def update_requirements(self, requirements: ParticipationRequirements):
        await self.store.set(keys.RESTRICTIONS_ENABLED, "true" if requirements.enabled else "false")
        await self.store.set(keys.KARMA_REQUIREMENT, str(requirements.min_karma))
        await self.store.set(keys.ACCOUNT_AGE_REQUIREMENT, str(requirements.min_account_age_days))
        logger.info(f"Participation requirements updated: {requirements}")

    async def check(self, username: str) -> ParticipationCheck:
        """
        Check whether a user may participate

        Fails open: any error while checking allows the user.

        Args:
            username: author of the new content

        Returns:
            ParticipationCheck with a user-facing reason when not allowed
        """
        try:
            requirements = await self.get_requirements()
            if not requirements.enabled:
                return ParticipationCheck(allowed=True)

            user = await self.moderation.get_user(username)
        except (StoreUnavailable, ModerationApiError) as e:
            logger.error(f"Error checking participation requirements for u/{username}: {e}")
            return ParticipationCheck(allowed=True)

        if user is None:
            return ParticipationCheck(allowed=False, reason="Could not fetch user information")

        if user.karma < requirements.min_karma:
            return ParticipationCheck(
                allowed=False,
                reason=(
                    f"Your account needs at least {requirements.min_karma} karma to participate. "
                    f"You currently have {user.karma} karma."
                ),
            )

        created_at = user.created_at
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=timezone.utc)
        created_ms = int(created_at.timestamp() * 1000)
        age_days = (self.clock() - created_ms) // MS_PER_DAY

        if age_days < requirements.min_account_age_days:
            return ParticipationCheck(
                allowed=False,
                reason=(
                    f"Your account needs to be at least {requirements.min_account_age_days} days old "
                    f"to participate. Your account is {age_days} days old."
                ),
            )

        return ParticipationCheck(allowed=True)

    async def handle_insufficient(self, item: ContentItem, reason: str) -> bool:
        """Remove content from a user who does not meet the requirements and explain why"""
        try:
            await self.moderation.remove(item.id)
            await self.moderation.reply(item.id, messages.insufficient_participation(item.kind, reason))
        except ModerationApiError as e:
            logger.error(f"Error handling insufficient {item.kind} {item.id}: {e}", exc_info=True)
            return False
        return True
