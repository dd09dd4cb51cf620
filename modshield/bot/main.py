#!/usr/bin/env python3
"""
ModShield

Warning ledger and escalating bans for community moderation.
Ban tiers: 6 warnings -> 7 days, 12 -> 28 days, 26 -> permanent.

Replays a JSON-lines event file against the configured store using the
dry-run moderation API.
"""

import asyncio
import json
import logging
import sys
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import click

from modshield.bot.commands import AdminCommands
from modshield.bot.config import load_config
from modshield.bot.handlers import EventHandler
from modshield.core.blacklist import BlacklistFilter
from modshield.core.interfaces import ContentItem, DryRunModerationApi, ModerationApi, UserInfo
from modshield.core.participation import ParticipationChecker
from modshield.core.punishment_manager import PunishmentManager
from modshield.core.removal import RemovalService
from modshield.core.restoration import RestorationService
from modshield.core.rumor import RumorNotice
from modshield.core.warning_ledger import WarningLedger
from modshield.database.record_store import RecordStore, SqliteRecordStore
from modshield.utils.clock import Clock, now_ms
from modshield.utils.idempotency import ProcessedItemGuard, RumorMarker
from modshield.utils.locks import KeyedLock
from modshield.utils.logger import setup_logger
from modshield.utils.rate_limiter import AutoApprovalThrottle, NotificationThrottle

logger = logging.getLogger("modshield")


@dataclass
class Engine:
    """All wired components"""
    store: RecordStore
    moderation: ModerationApi
    ledger: WarningLedger
    punishment: PunishmentManager
    restoration: RestorationService
    blacklist: BlacklistFilter
    rumor: RumorNotice
    participation: ParticipationChecker
    removal: RemovalService
    handler: EventHandler
    commands: AdminCommands


def build_engine(config: Dict[str, Any], store: RecordStore, moderation: ModerationApi,
                 clock: Clock = now_ms) -> Engine:
    """
    Wire every component around one store and one moderation API

    Args:
        config: loaded config dict
        store: record store, already initialized
        moderation: platform moderation API
        clock: epoch-millisecond clock

    Returns:
        Engine
    """
    subreddit = config['subreddit_name']
    locks = KeyedLock()

    logger.info("Initializing warning ledger...")
    ledger = WarningLedger(store, config.get('warning_expiry_days', 90), clock=clock, locks=locks)
    punishment = PunishmentManager(ledger, moderation, subreddit, clock=clock)

    logger.info("Initializing throttles...")
    restoration = RestorationService(
        moderation,
        ProcessedItemGuard(store),
        AutoApprovalThrottle(store, config.get('auto_approval_interval_days', 5), clock=clock),
        NotificationThrottle(store, config.get('notification_cooldown_days', 5), clock=clock),
        subreddit,
        locks=locks,
    )

    blacklist = BlacklistFilter(store, moderation, punishment, subreddit,
                                default_blacklist=config.get('blacklist', []))
    rumor = RumorNotice(moderation, RumorMarker(store), subreddit,
                        keyword=config.get('rumor_keyword', 'rumor'), locks=locks)
    participation = ParticipationChecker(store, moderation, clock=clock)
    removal = RemovalService(store, moderation, ledger, punishment, subreddit)

    handler = EventHandler(
        moderation=moderation,
        ledger=ledger,
        blacklist=blacklist,
        restoration=restoration,
        rumor=rumor,
        participation=participation,
    )
    commands = AdminCommands(
        store=store,
        moderation=moderation,
        ledger=ledger,
        blacklist=blacklist,
        removal=removal,
        participation=participation,
        moderators=config.get('moderators', []),
    )

    logger.info("Engine initialized successfully!")
    return Engine(
        store=store,
        moderation=moderation,
        ledger=ledger,
        punishment=punishment,
        restoration=restoration,
        blacklist=blacklist,
        rumor=rumor,
        participation=participation,
        removal=removal,
        handler=handler,
        commands=commands,
    )


def _seed(moderation: DryRunModerationApi, event: Dict[str, Any]) -> bool:
    """Register content/user lines with the dry-run API. Returns True if the line was consumed."""
    if event.get("type") == "content":
        moderation.content[event["id"]] = ContentItem(
            id=event["id"],
            kind=event.get("kind", "post"),
            author=event.get("author"),
            title=event.get("title", ""),
            body=event.get("body", ""),
            flair_text=event.get("flair_text", ""),
            removed=event.get("removed", False),
        )
        return True

    if event.get("type") == "user":
        moderation.users[event["username"]] = UserInfo(
            username=event["username"],
            link_karma=event.get("link_karma", 0),
            comment_karma=event.get("comment_karma", 0),
            created_at=datetime.fromisoformat(event["created_at"]).astimezone(timezone.utc),
        )
        return True

    return False


async def replay(config: Dict[str, Any], events_path: str, store: Optional[RecordStore] = None) -> int:
    """
    Feed every event in a JSON-lines file to the event handler

    Returns:
        Number of events dispatched
    """
    own_store = store is None
    if own_store:
        logger.info("Initializing record store...")
        store = SqliteRecordStore(config['db_path'])
        await store.initialize()

    moderation = DryRunModerationApi()
    engine = build_engine(config, store, moderation)

    dispatched = 0
    try:
        with open(events_path, 'r', encoding='utf-8') as f:
            for line_no, line in enumerate(f, 1):
                line = line.strip()
                if not line:
                    continue
                try:
                    event = json.loads(line)
                except ValueError as e:
                    logger.warning(f"Skipping line {line_no}: invalid JSON ({e})")
                    continue

                if _seed(moderation, event):
                    continue

                await engine.handler.dispatch(event)
                dispatched += 1
    finally:
        if own_store:
            await store.close()

    logger.info(f"Replayed {dispatched} events from {events_path}")
    return dispatched


@click.command()
@click.argument("events")
@click.option("--config", "config_path", default="config.yaml", help="YAML config file")
def main(events, config_path):
    """Replay moderation events through ModShield (dry run)"""
    config = load_config(config_path)
    setup_logger(config['log_file'], config['log_level'])

    logger.info("=" * 60)
    logger.info(f"Starting ModShield for r/{config['subreddit_name']}")
    logger.info("=" * 60)

    if not config['dry_run']:
        logger.warning("dry_run is disabled but replay has no platform connection; actions are only logged")

    try:
        asyncio.run(replay(config, events))
    except KeyboardInterrupt:
        logger.info("Received shutdown signal...")
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        sys.exit(1)
    finally:
        logger.info("ModShield stopped.")


if __name__ == "__main__":
    main()
