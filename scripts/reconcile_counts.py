"""Recompute like/repost/comment counters from the relation tables.

Usage: python scripts/reconcile_counts.py [post_id]
"""
import asyncio
import logging
import os
import sys
from uuid import UUID

# Add project root to sys.path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from solfeed.core.logging import configure_logging
from solfeed.db.session import async_session_maker
from solfeed.services.counter_service import reconcile

logger = logging.getLogger("solfeed.scripts.reconcile_counts")


async def reconcile_counts(post_id: UUID | None = None) -> int:
    async with async_session_maker() as db:
        corrected = await reconcile(db, post_id)
        await db.commit()
    logger.info("Reconciled counters: %d post(s) corrected", corrected)
    return corrected


if __name__ == "__main__":
    configure_logging()
    target = UUID(sys.argv[1]) if len(sys.argv) > 1 else None
    asyncio.run(reconcile_counts(target))
