"""
ModShield - Test Fixtures
=========================

Shared fixtures for all tests.
"""

import asyncio

import pytest

from modshield.core.interfaces import ContentItem, ModerationApi
from modshield.core.punishment_manager import PunishmentManager
from modshield.core.warning_ledger import WarningLedger
from modshield.database.record_store import MemoryRecordStore
from modshield.errors import ModerationApiError, StoreUnavailable
from modshield.utils.clock import MS_PER_DAY

START_MS = 1_760_000_000_000
SUBREDDIT = "TestCommunity"


class FakeClock:
    """Controllable epoch-millisecond clock."""

    def __init__(self, start_ms=START_MS):
        self.now = start_ms

    def __call__(self):
        return self.now

    def advance_days(self, days):
        self.now += int(days * MS_PER_DAY)


class FailingStore(MemoryRecordStore):
    """Memory store whose operations can be switched to fail."""

    def __init__(self, clock):
        super().__init__(clock)
        self.fail_get = False
        self.fail_set = False
        self.fail_delete = False

    async def get(self, key):
        if self.fail_get:
            raise StoreUnavailable(f"get {key} failed")
        return await super().get(key)

    async def set(self, key, value, ttl=None):
        if self.fail_set:
            raise StoreUnavailable(f"set {key} failed")
        await super().set(key, value, ttl)

    async def delete(self, key):
        if self.fail_delete:
            raise StoreUnavailable(f"delete {key} failed")
        await super().delete(key)


class YieldingStore(FailingStore):
    """Gives up the event loop on every read and write, like a real backend."""

    async def get(self, key):
        await asyncio.sleep(0)
        return await super().get(key)

    async def set(self, key, value, ttl=None):
        await asyncio.sleep(0)
        await super().set(key, value, ttl)


class FakeModerationApi(ModerationApi):
    """Records every call; failures are injected per method name."""

    def __init__(self, yielding=False):
        self.calls = []
        self.content = {}
        self.users = {}
        self.fail = set()
        self.yielding = yielding
        self._next_reply = 0

    async def _record(self, name, *args):
        self.calls.append((name, *args))
        if self.yielding:
            await asyncio.sleep(0)
        if name in self.fail:
            raise ModerationApiError(f"{name} rejected")

    def called(self, name):
        return [c for c in self.calls if c[0] == name]

    async def ban(self, username, subreddit, duration_days, reason, note=""):
        await self._record("ban", username, subreddit, duration_days, reason)

    async def remove(self, content_id):
        await self._record("remove", content_id)

    async def approve(self, content_id):
        await self._record("approve", content_id)
        if content_id in self.content:
            self.content[content_id].removed = False

    async def reply(self, content_id, text, sticky=False, lock=False):
        await self._record("reply", content_id, text, sticky, lock)
        self._next_reply += 1
        return f"reply_{self._next_reply}"

    async def add_mod_note(self, subreddit, username, note, content_id=None):
        await self._record("add_mod_note", username, note, content_id)

    async def add_mod_log(self, subreddit, action, target_id, details="", description=""):
        await self._record("add_mod_log", action, target_id, details, description)

    async def get_content(self, content_id):
        await self._record("get_content", content_id)
        return self.content.get(content_id)

    async def get_user(self, username):
        await self._record("get_user", username)
        return self.users.get(username)

    def add_post(self, post_id, author="alice", title="", body="", flair_text="", removed=False):
        item = ContentItem(id=post_id, kind="post", author=author, title=title,
                           body=body, flair_text=flair_text, removed=removed)
        self.content[post_id] = item
        return item

    def add_comment(self, comment_id, author="alice", body="", removed=False):
        item = ContentItem(id=comment_id, kind="comment", author=author, body=body, removed=removed)
        self.content[comment_id] = item
        return item


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    return FailingStore(clock)


@pytest.fixture
def moderation():
    return FakeModerationApi()


@pytest.fixture
def ledger(store, clock):
    return WarningLedger(store, clock=clock)


@pytest.fixture
def punishment(ledger, moderation, clock):
    return PunishmentManager(ledger, moderation, SUBREDDIT, clock=clock)


@pytest.fixture
def yielding_store(clock):
    return YieldingStore(clock)


@pytest.fixture
def yielding_moderation():
    return FakeModerationApi(yielding=True)
