"""
Signals sent by the settlement lifecycle.

settlement_created: sender=SettlementNote, settlement_note, family, coupon_series
settlement_deleted: sender=SettlementNote, settlement_note_id, family
"""
from django.dispatch import Signal

settlement_created = Signal()
settlement_deleted = Signal()
