BOT_FOOTER = "*This action was performed automatically by a bot, not a human.*"

HUMAN_FOOTER = (
    "*This action was performed by a bot at the explicit direction of a human moderator. "
    "It was not an automated decision.*"
)


def _modmail_footer(subreddit: str) -> str:
    return (
        "*If you feel this was in error, or need more clarification, please don't hesitate to "
        f"[modmail us](https://www.reddit.com/message/compose?to=r/{subreddit}). Thank you!*"
    )


def warning_summary(active: int, expired: int) -> str:
    summary = f"You have **{active}** removal(s) active"
    if expired > 0:
        summary += f" and **{expired}** past removal(s) that are no longer counted"
    return summary + "."


def blacklist_removal(subreddit: str, author: str, active: int, expired: int) -> str:
    return "\n\n".join([
        f"Greetings u/{author}!",
        f"Thank you for posting to r/{subreddit}.",
        "Your content was removed automatically by our bot. This usually means it contained "
        "offensive, derogatory, rude or racist language. Try re-phrasing it and posting it again.",
        "---",
        warning_summary(active, expired),
        "---",
        BOT_FOOTER,
        _modmail_footer(subreddit),
    ])


def manual_removal(subreddit: str, author: str, reason_text: str, active: int, expired: int) -> str:
    return "\n\n".join([
        f"Greetings u/{author}!",
        reason_text,
        "---",
        warning_summary(active, expired),
        "---",
        HUMAN_FOOTER,
        _modmail_footer(subreddit),
    ])


def restoration(subreddit: str, author: str, content_type: str, cooldown_days: int) -> str:
    return "\n\n".join([
        f"Greetings u/{author}!",
        f"Your {content_type} was filtered by Reddit, and has now been restored. Reddit filters "
        "content for reasons such as a new account, certain words or phrases, a link on a "
        "sitewide blacklist, or a possible shadow ban "
        "(https://www.reddit.com/r/ShadowBan/wiki/detection/).",
        f"**We have already approved your {content_type}.** You do not need to contact us about "
        f"this. These filters are controlled by Reddit, not by the moderators of r/{subreddit}, "
        "so we cannot tell you why it was filtered.",
        "Reddit Support: https://support.reddithelp.com/hc/en-us/requests/new",
        "Shadow ban appeals: https://reddit.com/appeal",
        f"You will see this message at most once every {cooldown_days} days.",
        "---",
        BOT_FOOTER,
        _modmail_footer(subreddit),
    ])


def rumor_notice(subreddit: str) -> str:
    return "\n\n".join([
        "Greetings!",
        "This post is flaired as a [rumor](https://en.wikipedia.org/wiki/Rumor). These are "
        "unverified claims, so please take them with a grain of salt and remember our "
        f"[rules](https://www.reddit.com/r/{subreddit}/about/rules) when participating.",
        "---",
        BOT_FOOTER,
        _modmail_footer(subreddit),
    ])


def insufficient_participation(content_type: str, reason: str) -> str:
    return (
        f"Your {content_type} was automatically removed.\n\n{reason}\n\n"
        "Please try again once you meet the requirements."
    )
