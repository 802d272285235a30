"""
Script to release buried cards whose burial has expired.

Meant to run once a day shortly after local midnight (SCHEDULER_TIMEZONE).
Due card listing also releases a user's expired burials on demand, so this
job only keeps the table tidy for users who are not studying.

Usage:
    python scripts/release_burials.py [--user-id USER_ID]
"""
import sys
import argparse
import logging
from sqlmodel import Session
from cardscheduler.core.database import engine
from cardscheduler.services.card_service import release_expired_burials

logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)


def main():
    """Main function to release expired burials."""
    parser = argparse.ArgumentParser(description="Release buried cards whose burial has expired")
    parser.add_argument("--user-id", type=int, default=None, help="Only release this user's cards")
    args = parser.parse_args()

    logger.info("Starting release of expired burials...")

    try:
        with Session(engine) as session:
            released = release_expired_burials(session, user_id=args.user_id)

        logger.info("Successfully completed!")
        logger.info("Cards released: %d", released)

    except Exception as e:
        logger.error("Error releasing expired burials: %s", e, exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
