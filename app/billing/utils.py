"""
JSON representations of billing records.
"""
from typing import Any, Dict

from .models import Coupon, CouponSeries, Installment, SettlementLineItem, SettlementNote


def serialize_line_item(item: SettlementLineItem) -> Dict[str, Any]:
    return {
        'id': item.id,
        'position': item.position,
        'subject': {'id': item.subject_id, 'name': item.subject.name},
        'hourly_rate': item.hourly_rate,
        'quantity': item.quantity,
        'tutor_payout_rate': item.tutor_payout_rate,
        'total_price': item.total_price,
    }


def serialize_installment(installment: Installment) -> Dict[str, Any]:
    return {
        'id': installment.id,
        'sequence': installment.sequence,
        'amount': installment.amount,
        'due_date': installment.due_date,
        'status': installment.status,
        'paid_at': installment.paid_at,
    }


def serialize_series(series: CouponSeries) -> Dict[str, Any]:
    return {
        'id': series.id,
        'settlement_note': series.settlement_note_id,
        'family': series.family_id,
        'students': [str(pk) for pk in series.students.values_list('id', flat=True)],
        'total_coupons': series.total_coupons,
        'used_coupons': series.used_coupons,
        'remaining_coupons': series.remaining_coupons,
        'usage_percentage': series.usage_percentage,
        'hourly_rate': series.hourly_rate,
        'tutor_payout_rate': series.tutor_payout_rate,
        'expiration_date': series.expiration_date,
        'is_expired': series.is_expired,
        'status': series.status,
        'notes': series.notes,
        'created_at': series.created_at,
    }


def serialize_coupon(coupon: Coupon) -> Dict[str, Any]:
    data = {
        'id': coupon.id,
        'code': coupon.code,
        'series': coupon.series_id,
        'family': coupon.family_id,
        'sequence_number': coupon.sequence_number,
        'status': coupon.status,
        'rating': coupon.rating,
        'notes': coupon.notes,
    }
    if coupon.status == 'USED':
        data['usage'] = {
            'used_at': coupon.used_at,
            'session_date': coupon.session_date,
            'session_duration': coupon.session_duration,
            'session_location': coupon.session_location,
            'session_notes': coupon.session_notes,
            'used_by': coupon.used_by_id,
        }
    return data


def serialize_settlement_note(note: SettlementNote, include_series: bool = False) -> Dict[str, Any]:
    series = CouponSeries.objects.filter(settlement_note=note).first()
    return {
        'id': note.id,
        'family': note.family_id,
        'students': [str(pk) for pk in note.students.values_list('id', flat=True)],
        'client_name': note.client_name,
        'department': note.department,
        'payment_method': note.payment_method,
        'payment_type': note.payment_type,
        'charge_per_unit': note.charge_per_unit,
        'line_items': [
            serialize_line_item(item) for item in note.line_items.select_related('subject')
        ],
        'payment_schedule': {
            'payment_method': note.schedule_payment_method,
            'day_of_month': note.schedule_day_of_month,
            'installments': [serialize_installment(i) for i in note.installments.all()],
        } if note.has_schedule else None,
        'totals': {
            'total_hourly_rate': note.total_hourly_rate,
            'total_quantity': note.total_quantity,
            'total_tutor_payout': note.total_tutor_payout,
            'tutor_cost': note.tutor_cost,
            'charges_to_pay': note.charges_to_pay,
            'revenue': note.revenue,
            'margin_amount': note.margin_amount,
            'margin_percentage': note.margin_percentage,
        },
        'status': note.status,
        'paid_at': note.paid_at,
        'total_coupons': note.total_coupons,
        'coupon_series': (serialize_series(series) if include_series else series.id) if series else None,
        'notes': note.notes,
        'created_by': note.created_by_id,
        'created_at': note.created_at,
        'updated_at': note.updated_at,
    }
