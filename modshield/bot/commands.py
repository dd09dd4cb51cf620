import logging
from dataclasses import dataclass
from typing import Iterable, List

from modshield.core.blacklist import BlacklistFilter
from modshield.core.interfaces import ModerationApi
from modshield.core.participation import ParticipationChecker, ParticipationRequirements
from modshield.core.removal import RemovalService
from modshield.core.warning_ledger import WarningLedger
from modshield.database import keys
from modshield.database.record_store import RecordStore
from modshield.errors import ModerationApiError, StoreUnavailable

logger = logging.getLogger("modshield")


@dataclass(frozen=True)
class CommandResult:
    success: bool
    message: str
    keys_deleted: int = 0


class AdminCommands:
    """Moderator-only maintenance and removal commands"""

    def __init__(
        self,
        store: RecordStore,
        moderation: ModerationApi,
        ledger: WarningLedger,
        blacklist: BlacklistFilter,
        removal: RemovalService,
        participation: ParticipationChecker,
        moderators: Iterable[str] = (),
    ):
        self.store = store
        self.moderation = moderation
        self.ledger = ledger
        self.blacklist = blacklist
        self.removal = removal
        self.participation = participation
        self.moderators = {m.lower() for m in moderators}

    def is_moderator(self, username: str) -> bool:
        return username.lower() in self.moderators

    def _deny(self, username: str, command: str) -> CommandResult:
        logger.warning(f"Non-moderator u/{username} tried to use {command}")
        return CommandResult(success=False, message="❌ Moderators only")

    async def user_stats(self, moderator: str, username: str) -> CommandResult:
        """Warning counts and ban level for a user"""
        if not self.is_moderator(moderator):
            return self._deny(moderator, "user_stats")

        counts = await self.ledger.get_warning_counts(username)
        record = await self.ledger.get_user_warnings(username)
        if counts.degraded:
            return CommandResult(success=False, message=f"❌ Could not read warnings for u/{username}")

        c = counts.value
        return CommandResult(
            success=True,
            message=(
                f"u/{username}: {c.active} active, {c.expired} expired, {c.total} total warning(s); "
                f"ban level {record.value.last_ban_level}"
            ),
        )

    async def clear_user_memory(self, moderator: str, username: str) -> CommandResult:
        """
        Delete a user's warnings and notification mark

        Args:
            moderator: user issuing the command
            username: user whose data is cleared
        """
        if not self.is_moderator(moderator):
            return self._deny(moderator, "clear_user_memory")
        if not username:
            return CommandResult(success=False, message="❌ Username is required")

        logger.info(f"Clearing memory for user: {username}")
        to_delete = [keys.user_warnings(username), keys.last_notification(username)]

        try:
            async with self.ledger.hold(username):
                for key in to_delete:
                    await self.store.delete(key)
        except StoreUnavailable as e:
            logger.error(f"Error clearing memory for user {username}: {e}", exc_info=True)
            return CommandResult(success=False, message=f"❌ Failed to clear user memory: {e}")

        logger.info(f"Deleted {len(to_delete)} keys for user {username}")
        return CommandResult(
            success=True,
            message=f"✅ Cleared memory for u/{username}. Deleted {len(to_delete)} keys.",
            keys_deleted=len(to_delete),
        )

    async def clear_all_memory(self, moderator: str, confirm: str) -> CommandResult:
        """
        Delete every key the bot owns

        Destructive; requires confirm == "CONFIRM".
        """
        if not self.is_moderator(moderator):
            return self._deny(moderator, "clear_all_memory")
        if confirm != "CONFIRM":
            return CommandResult(
                success=False,
                message="❌ Operation cancelled - confirmation text did not match",
            )

        logger.warning(f"u/{moderator} started a full memory clear")
        deleted = 0
        try:
            for key in keys.GLOBAL_KEYS:
                await self.store.delete(key)
                deleted += 1
            for prefix in keys.PER_ITEM_PREFIXES:
                deleted += await self.store.delete_prefix(prefix)
        except StoreUnavailable as e:
            logger.error(f"Error clearing memory: {e}", exc_info=True)
            return CommandResult(
                success=False,
                message=f"❌ Failed to clear memory: {e}",
                keys_deleted=deleted,
            )

        logger.info(f"Memory clear completed. Deleted {deleted} keys")
        return CommandResult(
            success=True,
            message=f"✅ Cleared bot memory. Deleted {deleted} keys.",
            keys_deleted=deleted,
        )

    async def set_blacklist(self, moderator: str, words: List[str]) -> CommandResult:
        if not self.is_moderator(moderator):
            return self._deny(moderator, "set_blacklist")

        cleaned = sorted({w.strip().lower() for w in words if w.strip()})
        try:
            await self.blacklist.set_blacklist(cleaned)
        except StoreUnavailable as e:
            logger.error(f"Failed to save blacklist: {e}", exc_info=True)
            return CommandResult(success=False, message="❌ Failed to save blacklist")
        return CommandResult(success=True, message=f"✅ Blacklist saved with {len(cleaned)} entries")

    async def update_participation(self, moderator: str,
                                   requirements: ParticipationRequirements) -> CommandResult:
        if not self.is_moderator(moderator):
            return self._deny(moderator, "update_participation")

        if requirements.min_karma < 0 or requirements.min_account_age_days < 0:
            return CommandResult(success=False, message="❌ Requirements must not be negative")

        try:
            await self.participation.update_requirements(requirements)
        except StoreUnavailable as e:
            logger.error(f"Failed to save participation requirements: {e}", exc_info=True)
            return CommandResult(success=False, message="❌ Failed to save requirements")
        return CommandResult(success=True, message="✅ Participation requirements saved")

    async def remove_with_reason(self, moderator: str, content_id: str, reason_id: str,
                                 add_warning: bool = True) -> CommandResult:
        """
        Remove a post or comment with a removal reason

        Args:
            moderator: user issuing the command
            content_id: post or comment to remove
            reason_id: id of a configured removal reason
            add_warning: whether the removal counts toward ban thresholds
        """
        if not self.is_moderator(moderator):
            return self._deny(moderator, "remove_with_reason")

        reason = await self.removal.find_reason(reason_id)
        if reason is None:
            return CommandResult(success=False, message="❌ Invalid removal reason")

        try:
            item = await self.moderation.get_content(content_id)
            if item is None:
                return CommandResult(success=False, message=f"❌ Content {content_id} not found")

            result = await self.removal.remove_with_reason(item, reason, add_warning, moderator)
        except ModerationApiError as e:
            logger.error(f"Error in removal command for {content_id}: {e}", exc_info=True)
            return CommandResult(success=False, message=f"❌ Failed to remove {content_id}")

        kind = item.kind.capitalize()
        if item.author:
            message = (
                f"✅ {kind} removed: {reason.label}. "
                f"User now has {result.counts.active} active warning(s)."
            )
        else:
            message = f"✅ {kind} removed: {reason.label}"
        return CommandResult(success=True, message=message)
