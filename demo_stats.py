# coding: utf-8
"""
Demo script for the Reader stats core

Demonstrates:
1. Warmup of main and diary stats for one user
2. Optimistic add (instant counter) followed by silent reconciliation
3. Cache statistics after the run

Run: READER_USER_ID=<id> READER_INIT_DATA=<initData> python demo_stats.py
"""

import asyncio

from loguru import logger

from config.config import READER_USER_ID, validate_config
from config.logging import setup_logging
from config.sentry import init_sentry, set_user_context
from src.core import AppState, EventBus, StatsTopic
from src.services.reader_api import ReaderApiClient
from src.services.stats import StatisticsService


def print_stats(payload: dict) -> None:
    print(
        f"📊 total={payload['total_quotes']} "
        f"(baseline {payload['baseline_total']} +{payload['pending_adds']} -{payload['pending_deletes']}) "
        f"| week={payload['weekly_quotes']} | streak={payload['current_streak']} "
        f"| author={payload['favorite_author']}"
    )


async def main():
    """Warm up stats, simulate a quote add and print what the UI would see"""
    if not READER_USER_ID:
        logger.error("READER_USER_ID is not set - nothing to demo")
        return

    bus = EventBus()
    bus.subscribe(StatsTopic.STATS_UPDATED, print_stats)

    state = AppState(bus=bus)
    state.set_current_user(READER_USER_ID)
    set_user_context(READER_USER_ID)

    async with ReaderApiClient() as api:
        service = StatisticsService(api=api, state=state, bus=bus)

        print("\n" + "=" * 80)
        print("🎯 DEMO 1: Warmup")
        print("=" * 80)
        await service.warmup_initial_stats()

        diary = service.diary_stats
        print(
            f"\n📔 Diary: month={diary.monthly_quotes}, favorites={diary.favorites_count}, "
            f"activity={diary.activity_percent}%"
        )

        print("\n" + "=" * 80)
        print("🎯 DEMO 2: Quote added (optimistic → reconcile)")
        print("=" * 80)
        state.add_quote({"id": "demo", "text": "Demo quote", "author": "Demo"})
        await bus.drain()

        print("\n" + "=" * 80)
        print("🎯 DEMO 3: Cache")
        print("=" * 80)
        print(service.cache.get_stats())


if __name__ == "__main__":
    setup_logging()
    init_sentry()
    validate_config()

    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Demo stopped")
