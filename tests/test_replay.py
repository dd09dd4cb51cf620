"""
ModShield - Replay Entry Point Tests
====================================
"""

import json
import logging

import pytest
from click.testing import CliRunner

from modshield.bot.main import main, replay
from modshield.database import keys
from modshield.database.models import UserWarningRecord
from modshield.database.record_store import MemoryRecordStore


def write_events(tmp_path, events):
    path = tmp_path / "events.jsonl"
    lines = [e if isinstance(e, str) else json.dumps(e) for e in events]
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return str(path)


CONFIG = {
    'subreddit_name': 'TestCommunity',
    'blacklist': ['badword'],
    'moderators': [],
}


class TestReplay:
    """JSON-lines replay through the dry-run API."""

    @pytest.mark.asyncio
    async def test_events_dispatched(self, tmp_path):
        store = MemoryRecordStore()
        path = write_events(tmp_path, [
            {"type": "content", "id": "t3_a", "kind": "post", "author": "alice", "body": "badword"},
            {"type": "post_submit", "post_id": "t3_a"},
            "not json",
            "",
            {"type": "content", "id": "t1_b", "kind": "comment", "author": "alice", "removed": True},
            {"type": "mod_action", "action": "spam", "target_comment_id": "t1_b"},
        ])

        dispatched = await replay(CONFIG, path, store=store)

        assert dispatched == 2
        record = UserWarningRecord.from_json(await store.get(keys.user_warnings("alice")))
        assert record.total_warnings == 1
        assert await store.get(keys.processed_item("t1_b")) == "1"

    @pytest.mark.asyncio
    async def test_user_lines_seed_participation(self, tmp_path):
        store = MemoryRecordStore()
        await store.set(keys.RESTRICTIONS_ENABLED, "true")
        await store.set(keys.KARMA_REQUIREMENT, "1000")
        path = write_events(tmp_path, [
            {"type": "user", "username": "bob", "link_karma": 5, "comment_karma": 5,
             "created_at": "2020-01-01T00:00:00+00:00"},
            {"type": "content", "id": "t1_c", "kind": "comment", "author": "bob", "body": "badword"},
            {"type": "comment_submit", "comment_id": "t1_c"},
        ])

        await replay(CONFIG, path, store=store)

        assert await store.get(keys.user_warnings("bob")) is None


class TestMain:
    """Command-line entry point."""

    @pytest.fixture(autouse=True)
    def reset_logger(self):
        yield
        logging.getLogger("modshield").handlers.clear()

    def test_main_uses_sqlite_store(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        for env_name in ("MODSHIELD_SUBREDDIT", "MODSHIELD_DB_PATH", "MODSHIELD_LOG_LEVEL"):
            monkeypatch.delenv(env_name, raising=False)
        db_path = tmp_path / "state.db"
        config_path = tmp_path / "config.yaml"
        config_path.write_text(
            "subreddit_name: TestCommunity\n"
            f"db_path: {db_path}\n"
            "log_file: null\n",
            encoding="utf-8",
        )
        events = write_events(tmp_path, [{"type": "post_submit", "post_id": "t3_missing"}])

        result = CliRunner().invoke(main, [events, "--config", str(config_path)])

        assert result.exit_code == 0, result.output
        assert db_path.exists()

    def test_missing_events_argument_rejected(self):
        result = CliRunner().invoke(main, [])

        assert result.exit_code != 0
        assert "EVENTS" in result.output
