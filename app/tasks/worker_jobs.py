import logging
from sqlalchemy.orm import Session
from sqlalchemy.exc import ProgrammingError
from app.db.session import SessionLocal
from app.services import email_service

logger = logging.getLogger(__name__)


def _run(fn, *args, **kwargs) -> dict:
    db: Session = SessionLocal()
    try:
        try:
            return fn(db, *args, **kwargs)
        except ProgrammingError:
            # DB not migrated yet; don't crash the worker.
            db.rollback()
            return {"skipped": True, "reason": "missing_tables"}
    finally:
        db.close()


def send_booking_received(reference: str) -> dict:
    """Customer acknowledgement plus the staff copy for a new web booking."""
    result = _run(email_service.send_booking_received_emails, reference)
    logger.info("booking-received emails for %s: %s", reference, result)
    return result


def send_booking_confirmation(booking_id: str) -> dict:
    result = _run(email_service.send_booking_confirmation_email, booking_id)
    logger.info("confirmation email for booking %s: %s", booking_id, result)
    return result


def process_email_queue(limit: int = 50) -> dict:
    """Process queued/failed emails (retry send). Run periodically via Celery beat."""
    return _run(email_service.process_pending_emails, limit=limit)
