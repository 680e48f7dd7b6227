"""
Apply lead retention by hand.

--force      hard-delete leads soft-deleted more than RETENTION years ago
--abandoned  soft-delete live leads not updated for RETENTION years

Usage:
    python scripts/cleanup_leads.py --force
    python scripts/cleanup_leads.py --force --abandoned --years 3
"""
import argparse
import asyncio
import logging
import sys

from leadgate.workers.lead_cleanup import cleanup_cycle

logging.basicConfig(level=logging.INFO, format="%(message)s")
logger = logging.getLogger(__name__)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Remove deleted and abandoned leads")
    parser.add_argument("--force", action="store_true", help="Hard-delete old soft-deleted leads")
    parser.add_argument("--abandoned", action="store_true", help="Soft-delete abandoned leads")
    parser.add_argument("--years", type=int, default=None, help="Retention period (default from settings)")
    args = parser.parse_args(argv)

    if not args.force and not args.abandoned:
        logger.info("Please specify at least one of these options: --force or --abandoned")
        return 1

    counts = asyncio.run(
        cleanup_cycle(force=args.force, abandoned=args.abandoned, retention_years=args.years)
    )
    logger.info("Hard-deleted: %d, soft-deleted abandoned: %d", counts["force_deleted"], counts["abandoned"])
    return 0


if __name__ == "__main__":
    sys.exit(main())
