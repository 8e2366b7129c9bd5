"""Seed the pack catalogue. Usage: python -m app.db.seed"""

import asyncio

from app.core.logging import configure_logging, get_logger
from app.db.init import init_db
from app.services.packs import seed_packs

log = get_logger(__name__)


async def main() -> None:
    configure_logging()
    await init_db()
    packs = await seed_packs()
    log.info("seed_done", packs=len(packs))


if __name__ == "__main__":
    asyncio.run(main())
