import itertools
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Optional

from modshield.database.models import CommentRef, ContentRef, PostRef

logger = logging.getLogger("modshield")

POST = "post"
COMMENT = "comment"


@dataclass
class ContentItem:
    """A post or comment as seen by the moderation API"""
    id: str
    kind: str  # 'post' or 'comment'
    author: Optional[str] = None
    title: str = ""
    body: str = ""
    flair_text: str = ""
    removed: bool = False

    @property
    def is_post(self) -> bool:
        return self.kind == POST

    @property
    def text(self) -> str:
        if self.is_post:
            return f"{self.title} {self.body}"
        return self.body

    def ref(self) -> ContentRef:
        if self.is_post:
            return PostRef(self.id)
        return CommentRef(self.id)


@dataclass
class UserInfo:
    """Account facts used by participation requirements"""
    username: str
    link_karma: int
    comment_karma: int
    created_at: datetime

    @property
    def karma(self) -> int:
        return (self.link_karma or 0) + (self.comment_karma or 0)


class ModerationApi(ABC):
    """
    Content-mutation API of the hosting platform

    Every method raises ModerationApiError when the platform rejects the call
    or it times out.
    """

    @abstractmethod
    async def ban(self, username: str, subreddit: str, duration_days: Optional[int],
                  reason: str, note: str = ""):
        """Ban a user; duration_days=None bans permanently"""

    @abstractmethod
    async def remove(self, content_id: str):
        """Remove a post or comment"""

    @abstractmethod
    async def approve(self, content_id: str):
        """Approve a post or comment"""

    @abstractmethod
    async def reply(self, content_id: str, text: str, sticky: bool = False,
                    lock: bool = False) -> str:
        """Reply to a post or comment, returning the new comment id"""

    @abstractmethod
    async def add_mod_note(self, subreddit: str, username: str, note: str,
                           content_id: Optional[str] = None):
        """Attach a moderator note to a user"""

    @abstractmethod
    async def add_mod_log(self, subreddit: str, action: str, target_id: str,
                          details: str = "", description: str = ""):
        """Write an entry to the community's moderation log"""

    @abstractmethod
    async def get_content(self, content_id: str) -> Optional[ContentItem]:
        """Fetch a post or comment"""

    @abstractmethod
    async def get_user(self, username: str) -> Optional[UserInfo]:
        """Fetch account information"""

    async def get_author(self, content_id: str) -> Optional[str]:
        item = await self.get_content(content_id)
        return item.author if item else None


class DryRunModerationApi(ModerationApi):
    """Logs every mutation instead of performing it"""

    def __init__(self, content: Optional[Dict[str, ContentItem]] = None,
                 users: Optional[Dict[str, UserInfo]] = None):
        self.content = content if content is not None else {}
        self.users = users if users is not None else {}
        self._reply_ids = itertools.count(1)
        logger.warning("🔧 DRY RUN MODE ENABLED - No moderation actions will be taken, only logging")

    async def ban(self, username, subreddit, duration_days, reason, note=""):
        duration = "permanently" if duration_days is None else f"for {duration_days} days"
        logger.warning(f"🔍 [DRY RUN] ban u/{username} in r/{subreddit} {duration}: {reason}")

    async def remove(self, content_id):
        logger.warning(f"🔍 [DRY RUN] remove {content_id}")
        if content_id in self.content:
            self.content[content_id].removed = True

    async def approve(self, content_id):
        logger.warning(f"🔍 [DRY RUN] approve {content_id}")
        if content_id in self.content:
            self.content[content_id].removed = False

    async def reply(self, content_id, text, sticky=False, lock=False):
        reply_id = f"dryrun_{next(self._reply_ids)}"
        logger.warning(f"🔍 [DRY RUN] reply to {content_id} (sticky={sticky}, lock={lock}):\n{text}")
        return reply_id

    async def add_mod_note(self, subreddit, username, note, content_id=None):
        logger.warning(f"🔍 [DRY RUN] mod note for u/{username}: {note}")

    async def add_mod_log(self, subreddit, action, target_id, details="", description=""):
        logger.warning(f"🔍 [DRY RUN] mod log {action} on {target_id}: {description}")

    async def get_content(self, content_id):
        return self.content.get(content_id)

    async def get_user(self, username):
        return self.users.get(username)
