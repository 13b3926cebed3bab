"""
Release reviews that sat untouched for the holding period.

Usage:
  python -m walletguard.scripts.auto_approve          # single sweep
  AUTO_APPROVE_INTERVAL=300 python -m walletguard.scripts.auto_approve

Env vars:
  AUTO_APPROVE_INTERVAL  Seconds between sweeps; 0 or unset runs once
  REVIEW_HOLD_HOURS      Holding period before auto-approval (default 24)
"""

import logging
import os
import time

from dotenv import load_dotenv

from walletguard.db.session import engine, get_session
from walletguard.models import Base
from walletguard.services.disposition import auto_approve_expired

logger = logging.getLogger("walletguard.auto_approve")


def run_once() -> int:
    session = get_session()
    try:
        return auto_approve_expired(session)
    finally:
        session.close()


def main():
    load_dotenv()
    logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"), format="%(asctime)s %(levelname)s [%(name)s] %(message)s")
    interval = int(os.getenv("AUTO_APPROVE_INTERVAL", "0"))
    Base.metadata.create_all(bind=engine)

    if interval <= 0:
        logger.info("Auto-approved %s reviews", run_once())
        return

    logger.info("Auto-approval sweep every %ss", interval)
    while True:
        try:
            count = run_once()
            if count:
                logger.info("Auto-approved %s reviews", count)
        except Exception:
            logger.exception("Auto-approval sweep failed")
        time.sleep(interval)


if __name__ == "__main__":
    main()
