"""
ModShield - Config Tests
========================
"""

import pytest

from modshield.bot.config import ENV_OVERRIDES, load_config


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    for env_name in ENV_OVERRIDES.values():
        monkeypatch.delenv(env_name, raising=False)
    # keep load_dotenv from picking up a developer's .env
    monkeypatch.chdir(tmp_path)


def write_config(tmp_path, text):
    path = tmp_path / "config.yaml"
    path.write_text(text, encoding="utf-8")
    return str(path)


class TestLoadConfig:
    """YAML loading, defaults and validation."""

    def test_defaults_applied(self, tmp_path):
        config = load_config(write_config(tmp_path, "subreddit_name: TestCommunity\n"))

        assert config['subreddit_name'] == "TestCommunity"
        assert config['auto_approval_interval_days'] == 5
        assert config['notification_cooldown_days'] == 5
        assert config['warning_expiry_days'] == 90
        assert config['db_path'] == "modshield.db"
        assert config['log_level'] == "INFO"
        assert config['dry_run'] is True

    def test_file_values_kept(self, tmp_path):
        config = load_config(write_config(tmp_path, (
            "subreddit_name: TestCommunity\n"
            "blacklist: [spam, scam]\n"
            "notification_cooldown_days: 2\n"
        )))

        assert config['blacklist'] == ["spam", "scam"]
        assert config['notification_cooldown_days'] == 2

    def test_env_overrides_file(self, tmp_path, monkeypatch):
        monkeypatch.setenv("MODSHIELD_SUBREDDIT", "FromEnv")
        monkeypatch.setenv("MODSHIELD_LOG_LEVEL", "DEBUG")

        config = load_config(write_config(tmp_path, "subreddit_name: FromFile\n"))

        assert config['subreddit_name'] == "FromEnv"
        assert config['log_level'] == "DEBUG"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(str(tmp_path / "missing.yaml"))

    def test_missing_subreddit(self, tmp_path):
        with pytest.raises(ValueError, match="subreddit_name"):
            load_config(write_config(tmp_path, "blacklist: []\n"))

    def test_empty_file(self, tmp_path):
        with pytest.raises(ValueError):
            load_config(write_config(tmp_path, ""))

    def test_negative_interval_rejected(self, tmp_path):
        with pytest.raises(ValueError, match="auto_approval_interval_days"):
            load_config(write_config(tmp_path, (
                "subreddit_name: TestCommunity\n"
                "auto_approval_interval_days: -1\n"
            )))

    def test_blacklist_must_be_list(self, tmp_path):
        with pytest.raises(ValueError, match="blacklist"):
            load_config(write_config(tmp_path, (
                "subreddit_name: TestCommunity\n"
                "blacklist: spam\n"
            )))
