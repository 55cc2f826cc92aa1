"""Generate PDFs for draft orders and move them to ``created``.

    python -m purchasing.scripts.process_draft_orders --limit 20
"""

import argparse
import asyncio
import logging
import sys

from purchasing.core.config import settings
from purchasing.db.base import async_session_factory, create_tables, engine
from purchasing.schemas.order import DraftProcessingResult
from purchasing.services.order_service import OrderService

logger = logging.getLogger("purchasing.scripts.process_draft_orders")


async def run(limit: int) -> DraftProcessingResult:
    if settings.auto_create_tables:
        await create_tables()
    async with async_session_factory() as session:
        try:
            result = await OrderService(session, settings.default_client_id).process_drafts(limit)
            await session.commit()
        except Exception:
            await session.rollback()
            raise
    await engine.dispose()
    return result


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--limit", type=int, default=10, help="maximum number of drafts to process")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        stream=sys.stdout,
    )
    result = asyncio.run(run(args.limit))
    logger.info(
        "Processed %d of %d draft orders (%d failed)", result.processed, result.total, result.failed,
    )
    for error in result.errors:
        logger.error(error)
    return 1 if result.failed else 0


if __name__ == "__main__":
    sys.exit(main())
