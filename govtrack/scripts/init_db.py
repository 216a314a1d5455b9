#!/usr/bin/env python
"""Create every governance table on the configured database.

Schema migrations are managed outside this project; this is for fresh
development databases.
"""

import asyncio
import logging
import sys
from pathlib import Path

# Add the parent directory to the path so we can import govtrack modules
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from govtrack.db.base import Base
from govtrack.db.session import engine

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


async def init_db():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    await engine.dispose()
    logger.info(f"Created tables: {sorted(Base.metadata.tables)}")


if __name__ == "__main__":
    asyncio.run(init_db())
