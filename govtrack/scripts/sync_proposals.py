#!/usr/bin/env python
"""Script to run one batch sync pass (and optionally a voter power refresh) without Celery."""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

# Add the parent directory to the path so we can import govtrack modules
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from govtrack.services.sync.runtime import run_proposal_sync, run_voter_power_sync

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def parse_args():
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Sync governance proposals from Koios")
    parser.add_argument(
        "--voter-power",
        action="store_true",
        help="Also refresh stored DRep and pool voting power"
    )
    return parser.parse_args()


async def run(voter_power: bool):
    result = await run_proposal_sync()
    logger.info(f"Proposals: {result.total} processed, {result.success} ok, {result.failed} failed")
    for error in result.errors:
        logger.error(f"  {error.proposal_id}: {error.error}")

    if voter_power:
        power = await run_voter_power_sync()
        logger.info(f"Voter power at epoch {power.epoch}: {power.updated}, {power.failed} failures")


def main():
    """Main entry point."""
    args = parse_args()
    asyncio.run(run(args.voter_power))


if __name__ == "__main__":
    main()
