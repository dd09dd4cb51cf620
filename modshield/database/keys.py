# Key names are shared with existing stored data and must stay stable.

BLACKLIST = "blacklist"
KARMA_REQUIREMENT = "karma_requirement"
ACCOUNT_AGE_REQUIREMENT = "account_age_requirement"
RESTRICTIONS_ENABLED = "restrictions_enabled"
REMOVAL_REASONS = "removal_reasons"
LAST_AUTO_APPROVAL = "last_auto_approval"

WARNINGS_PREFIX = "warnings:"
LAST_NOTIFICATION_PREFIX = "last_notif:"
PROCESSED_PREFIX = "processed:"
RUMOR_COMMENT_PREFIX = "rumor_comment:"

GLOBAL_KEYS = (
    BLACKLIST,
    RESTRICTIONS_ENABLED,
    KARMA_REQUIREMENT,
    ACCOUNT_AGE_REQUIREMENT,
    REMOVAL_REASONS,
    LAST_AUTO_APPROVAL,
)

PER_ITEM_PREFIXES = (
    WARNINGS_PREFIX,
    LAST_NOTIFICATION_PREFIX,
    PROCESSED_PREFIX,
    RUMOR_COMMENT_PREFIX,
)


def user_warnings(username: str) -> str:
    return f"{WARNINGS_PREFIX}{username}"


def last_notification(username: str) -> str:
    return f"{LAST_NOTIFICATION_PREFIX}{username}"


def processed_item(item_id: str) -> str:
    return f"{PROCESSED_PREFIX}{item_id}"


def rumor_comment(post_id: str) -> str:
    return f"{RUMOR_COMMENT_PREFIX}{post_id}"
