import json
from dataclasses import dataclass, field
from typing import List, Optional, Union

from modshield.errors import MalformedRecord


@dataclass(frozen=True)
class PostRef:
    """Reference to a post"""
    id: str


@dataclass(frozen=True)
class CommentRef:
    """Reference to a comment"""
    id: str


ContentRef = Optional[Union[PostRef, CommentRef]]


@dataclass(frozen=True)
class WarningEntry:
    """One recorded disciplinary event"""
    timestamp_ms: int
    content_ref: ContentRef
    moderator: str
    reason: str

    def references(self, content_id: str) -> bool:
        return self.content_ref is not None and self.content_ref.id == content_id

    def to_dict(self) -> dict:
        data = {
            "timestamp": self.timestamp_ms,
            "moderator": self.moderator,
            "reason": self.reason,
        }
        if isinstance(self.content_ref, PostRef):
            data["postId"] = self.content_ref.id
        elif isinstance(self.content_ref, CommentRef):
            data["commentId"] = self.content_ref.id
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "WarningEntry":
        if not isinstance(data, dict):
            raise MalformedRecord(f"warning entry is not an object: {data!r}")

        timestamp = data.get("timestamp")
        if isinstance(timestamp, bool) or not isinstance(timestamp, (int, float)):
            raise MalformedRecord(f"warning timestamp is invalid: {timestamp!r}")

        post_id = data.get("postId")
        comment_id = data.get("commentId")
        if post_id and comment_id:
            raise MalformedRecord("warning references both a post and a comment")

        content_ref: ContentRef = None
        if post_id:
            content_ref = PostRef(str(post_id))
        elif comment_id:
            content_ref = CommentRef(str(comment_id))

        return cls(
            timestamp_ms=int(timestamp),
            content_ref=content_ref,
            moderator=str(data.get("moderator", "")),
            reason=str(data.get("reason", "")),
        )


@dataclass
class UserWarningRecord:
    """Per-user warning history, the unit of storage"""
    warnings: List[WarningEntry] = field(default_factory=list)
    total_warnings: int = 0
    last_ban_level: int = 0  # 0 = none, 1 = first, 2 = second, 3 = permanent

    def prune(self, cutoff_ms: int):
        """Drop warnings issued at or before cutoff_ms. total_warnings is untouched."""
        self.warnings = [w for w in self.warnings if w.timestamp_ms > cutoff_ms]

    def to_json(self) -> str:
        return json.dumps({
            "warnings": [w.to_dict() for w in self.warnings],
            "totalWarnings": self.total_warnings,
            "lastBanLevel": self.last_ban_level,
        })

    @classmethod
    def from_json(cls, raw: str) -> "UserWarningRecord":
        """
        Parse a stored record

        Args:
            raw: JSON text as written by to_json

        Returns:
            The parsed record

        Raises:
            MalformedRecord: the value is not valid JSON or fails validation
        """
        try:
            data = json.loads(raw)
        except (TypeError, ValueError) as e:
            raise MalformedRecord(f"record is not valid JSON: {e}") from e

        if not isinstance(data, dict):
            raise MalformedRecord("record is not a JSON object")

        warnings = data.get("warnings", [])
        total = data.get("totalWarnings", 0)
        level = data.get("lastBanLevel", 0)

        if not isinstance(warnings, list):
            raise MalformedRecord("warnings is not a list")
        if isinstance(total, bool) or not isinstance(total, int) or total < 0:
            raise MalformedRecord(f"totalWarnings is invalid: {total!r}")
        if isinstance(level, bool) or not isinstance(level, int) or not 0 <= level <= 3:
            raise MalformedRecord(f"lastBanLevel is invalid: {level!r}")

        return cls(
            warnings=[WarningEntry.from_dict(w) for w in warnings],
            total_warnings=total,
            last_ban_level=level,
        )


@dataclass(frozen=True)
class WarningCounts:
    """Active/expired/lifetime warning counts for one user"""
    active: int
    expired: int
    total: int
