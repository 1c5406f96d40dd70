"""Celery tasks for removing abandoned registrations."""

import logging

from sqlalchemy.orm import Session

from src.celery_app import app as celery_app
from src.database import SessionLocal
from src.services.account_store import AccountStore

logger = logging.getLogger(__name__)


@celery_app.task
def purge_expired_registrations() -> dict:
    """Delete accounts that never verified before their OTP expired.

    Runs every 15 minutes via celery-beat, standing in for a TTL index on
    the registration OTP expiry.

    Returns:
        dict with the number of purged accounts
    """
    db: Session = SessionLocal()
    try:
        purged = AccountStore(db).purge_expired_unverified()
        logger.info(f"Registration cleanup complete: {purged} purged")
        return {"purged": purged}
    finally:
        db.close()
