import asyncio
import logging
import sys

from config import get_settings
from db import StoreError, acquire_handle

logger = logging.getLogger("main")


async def main() -> int:
    settings = get_settings()
    logging.basicConfig(
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        level=settings.LOG_LEVEL,
    )

    logger.info("Finding database...")
    try:
        handle = await acquire_handle(settings.DATABASE_PATH)
    except StoreError as e:
        logger.error(f"Startup aborted: {e}")
        return 1

    logger.info(f"Database ready at {handle.location}")
    handle.dispose()
    return 0


def run():
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
