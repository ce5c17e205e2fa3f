"""
Celery tasks for billing operations.
"""
from celery import shared_task
from django.db import DatabaseError
from django.utils import timezone
import logging

logger = logging.getLogger(__name__)


@shared_task
def sweep_overdue_settlements():
    """
    Mark settlement notes with a past-due installment as overdue.

    Runs hourly from the beat schedule. Only pending notes are considered;
    paid notes are left alone and overdue notes are never reverted here.
    """
    logger.info("Starting overdue settlement sweep")

    try:
        from .models import SettlementNote

        today = timezone.localdate()
        updated = SettlementNote.objects.sweep_overdue(today=today)

        logger.info(f"Overdue settlement sweep completed - Notes marked overdue: {updated}")

        return {
            "status": "success",
            "date": today.isoformat(),
            "marked_overdue": updated,
        }

    except DatabaseError as e:
        logger.error(f"Error in overdue settlement sweep: {str(e)}")
        return {"status": "error", "message": str(e)}
