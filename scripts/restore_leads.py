"""
Restore soft-deleted leads by id.

Usage:
    python scripts/restore_leads.py 101 102 103
"""
import argparse
import asyncio
import logging
import sys

from leadgate.workers.lead_cleanup import restore_leads

logging.basicConfig(level=logging.INFO, format="%(message)s")
logger = logging.getLogger(__name__)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Restore soft-deleted leads by ids")
    parser.add_argument("ids", nargs="+", type=int, help="Lead ids (space separated)")
    args = parser.parse_args(argv)

    try:
        restored = asyncio.run(restore_leads(args.ids))
    except Exception as e:
        logger.error("Failed to restore leads: %s", str(e))
        return 1

    logger.info("Leads restored successfully (%d of %d)", restored, len(args.ids))
    return 0


if __name__ == "__main__":
    sys.exit(main())
