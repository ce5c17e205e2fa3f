"""
Keep the family commercial status in step with its settlement notes.

Both receivers run synchronously inside the orchestrator's transaction, which
already holds the family row lock, so the status read here is the committed one.
"""
import logging
from django.dispatch import receiver

from billing.signals import settlement_created, settlement_deleted

logger = logging.getLogger(__name__)


@receiver(settlement_created)
def promote_family_to_client(sender, settlement_note, family, **kwargs):
    family.refresh_from_db(fields=['status'])
    if family.mark_as_client():
        logger.info(f"Family {family.id} promoted to client by settlement note {settlement_note.id}")


@receiver(settlement_deleted)
def revert_family_to_prospect(sender, settlement_note_id, family, **kwargs):
    family.refresh_from_db(fields=['status'])
    if family.settlement_notes.exists():
        return
    if family.mark_as_prospect():
        logger.info(f"Family {family.id} reverted to prospect after deletion of settlement note {settlement_note_id}")
