# medaccess/app/db/init_db.py
"""Create all tables: ``python -m medaccess.app.db.init_db``."""
import asyncio
import logging
import sys

from medaccess.app import models  # noqa: F401  (registers tables)
from medaccess.app.core.config import get_settings
from medaccess.app.core.logging import setup_logging
from medaccess.app.db.base import Base
from medaccess.app.db.session import engine

logger = logging.getLogger(__name__)


async def init_models(drop: bool = False) -> None:
    try:
        async with engine.begin() as conn:
            if drop:
                await conn.run_sync(Base.metadata.drop_all)
            logger.info("Creating tables on %s", engine.url.render_as_string(hide_password=True))
            await conn.run_sync(Base.metadata.create_all)
            logger.info("Tables created")
    except Exception:
        logger.exception("Table creation failed")
        raise


if __name__ == "__main__":
    setup_logging(get_settings())
    asyncio.run(init_models(drop="--drop" in sys.argv))
