#!/usr/bin/env python
"""Script to ingest a single governance proposal with its votes and voting power."""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

# Add the parent directory to the path so we can import govtrack modules
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from govtrack.db.session import get_async_session
from govtrack.services.ingestion.service import IngestionService

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def parse_args():
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Ingest one proposal from Koios")
    parser.add_argument(
        "proposal_id",
        type=str,
        help="Governance action id (gov_action1...) or <tx_hash>#<index>"
    )
    return parser.parse_args()


async def ingest(proposal_id: str) -> dict:
    async with get_async_session() as session:
        service = IngestionService(session)
        try:
            result = await service.ingest_proposal(proposal_id)
        finally:
            await service.close()
    return result.model_dump()


def main():
    """Main entry point."""
    args = parse_args()
    logger.info(f"Ingesting proposal {args.proposal_id}")
    result = asyncio.run(ingest(args.proposal_id))
    print(json.dumps(result, indent=2))


if __name__ == "__main__":
    main()
