"""
Create the users, achievements and completed_routes tables.

Usage:

    python -m ecolibres.scripts.init_db
"""

import asyncio
import logging

from ..config import get_settings
from ..database import create_schema, engine

logger = logging.getLogger(__name__)


async def _init() -> None:
    await create_schema(engine)
    await engine.dispose()


def main() -> None:
    logging.basicConfig(level=logging.INFO)
    logger.info("Creating schema on %s", engine.url.render_as_string(hide_password=True))
    asyncio.run(_init())
    logger.info("Schema ready for %s", get_settings().app_name)


if __name__ == "__main__":
    main()
