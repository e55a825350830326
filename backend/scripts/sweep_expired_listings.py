"""Expire listings that have outlived their seller's plan.

Meant to be triggered by an external scheduler (cron, a k8s CronJob, ...):
    docker compose exec backend python -m scripts.sweep_expired_listings
"""

import asyncio
import logging
import sys
from pathlib import Path

# Add backend to path so imports work when run as a script
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from equimarket.billing.plans import PlanCatalog
from equimarket.billing.subscription import SubscriptionStateMachine
from equimarket.clock import Clock, SystemClock
from equimarket.database import async_session_factory, engine
from equimarket.services.audit import AuditSink, LoggingAuditSink
from equimarket.services.listing_service import sweep_expiry

logger = logging.getLogger("equimarket.sweep")


async def run_sweep(
    session_factory: async_sessionmaker[AsyncSession],
    clock: Clock,
    audit: AuditSink,
) -> int:
    """Run one sweep in its own unit of work and return how many listings expired."""
    machine = SubscriptionStateMachine(PlanCatalog(), clock)
    async with session_factory() as session:
        try:
            expired = await sweep_expiry(session, machine, audit)
            await session.commit()
        except Exception:
            await session.rollback()
            raise
    return expired


async def main() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        expired = await run_sweep(async_session_factory, SystemClock(), LoggingAuditSink())
        logger.info("Sweep finished: %d listing(s) expired", expired)
    finally:
        await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
