from dataclasses import dataclass
from typing import Optional, Tuple

BAN_MESSAGE = (
    "You've exceeded our internal threshold of allowed removals in a specific time. "
    "For more details, please look at your previous removal messages."
)

# (minimum active warnings, tier, ban days); None days means permanent.
# Ordered highest tier first so a user crossing several tiers lands on the top one.
BAN_THRESHOLDS: Tuple[Tuple[int, int, Optional[int]], ...] = (
    (26, 3, None),
    (12, 2, 28),
    (6, 1, 7),
)

MAX_BAN_LEVEL = 3


@dataclass(frozen=True)
class BanDecision:
    """Outcome of the escalation policy"""
    should_ban: bool
    ban_days: Optional[int]  # None = permanent, 0 = no ban
    ban_level: int
    message: str

    @property
    def is_permanent(self) -> bool:
        return self.should_ban and self.ban_days is None


def check_ban_threshold(active_warning_count: int, last_ban_level: int) -> BanDecision:
    """
    Decide whether a user should be banned

    Pure function of its two arguments. A tier is only issued when it is
    above last_ban_level, so the same tier is never triggered twice.

    Args:
        active_warning_count: warnings inside the retention window
        last_ban_level: highest tier already applied (0-3)

    Returns:
        BanDecision
    """
    for min_warnings, tier, days in BAN_THRESHOLDS:
        if active_warning_count >= min_warnings and last_ban_level < tier:
            return BanDecision(
                should_ban=True,
                ban_days=days,
                ban_level=tier,
                message=BAN_MESSAGE,
            )

    return BanDecision(
        should_ban=False,
        ban_days=0,
        ban_level=last_ban_level,
        message="",
    )
