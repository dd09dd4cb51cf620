import yaml
import os
from pathlib import Path
from typing import Dict, Any
from dotenv import load_dotenv
import logging

logger = logging.getLogger("modshield")

ENV_OVERRIDES = {
    'subreddit_name': 'MODSHIELD_SUBREDDIT',
    'db_path': 'MODSHIELD_DB_PATH',
    'log_level': 'MODSHIELD_LOG_LEVEL',
}


def load_config(config_path: str = "config.yaml") -> Dict[str, Any]:
    """
    Load configuration

    Precedence:
    1. Environment variables (.env)
    2. Config file (config.yaml)

    Args:
        config_path: path to the YAML config file

    Returns:
        Config dict with defaults applied

    Raises:
        FileNotFoundError: config file missing
        ValueError: required keys missing or values out of range
    """
    load_dotenv()

    config_file = Path(config_path)
    if not config_file.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_file, 'r', encoding='utf-8') as f:
        config = yaml.safe_load(f) or {}

    for key, env_name in ENV_OVERRIDES.items():
        if os.getenv(env_name):
            config[key] = os.getenv(env_name)

    required_keys = ['subreddit_name']
    missing_keys = [key for key in required_keys if not config.get(key)]

    if missing_keys:
        raise ValueError(f"Missing required config keys: {missing_keys}")

    config.setdefault('db_path', 'modshield.db')
    config.setdefault('auto_approval_interval_days', 5)
    config.setdefault('notification_cooldown_days', 5)
    config.setdefault('warning_expiry_days', 90)
    config.setdefault('blacklist', [])
    config.setdefault('rumor_keyword', 'rumor')
    config.setdefault('moderators', [])
    config.setdefault('dry_run', True)
    config.setdefault('log_file', 'modshield.log')
    config.setdefault('log_level', 'INFO')

    for key in ('auto_approval_interval_days', 'notification_cooldown_days', 'warning_expiry_days'):
        if not isinstance(config[key], (int, float)) or config[key] < 0:
            raise ValueError(f"Config key {key} must be a non-negative number, got {config[key]!r}")

    if not isinstance(config['blacklist'], list):
        raise ValueError("Config key blacklist must be a list")

    logger.info(f"Config loaded from {config_path}")
    return config
