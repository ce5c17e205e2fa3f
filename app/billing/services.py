"""
Settlement and voucher lifecycle operations.

SettlementService is the only place where a settlement note, its coupon
series and its coupons are created or destroyed, always together inside one
transaction. CouponService drives the redemption state machine and keeps the
series counters consistent.

Lock order everywhere: settlement note, then its family, then coupon series,
then coupons. Creation has no note yet and starts with the family.
"""
import json
import logging
import math
import uuid
from dataclasses import dataclass, field
from datetime import timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional

from django.conf import settings
from django.db import transaction
from django.db.models import Count
from django.utils import timezone

from core.exceptions import (
    ConsistencyViolation, ReferenceNotFound, StateConflict, ValidationError,
)
from core.utils import clean_form
from families.models import Family, Student
from subjects.models import Subject
from .codes import InvalidCodeError, SEPARATOR, code_prefix, decode, generate_codes
from .exceptions import NotAvailable, NotUsed, SeriesExpired, SeriesInactive
from .forms import (
    CancelRedemptionForm, CouponRatingForm, LineItemForm, PaymentScheduleForm,
    RedeemCouponForm, SeriesStatusForm, SettlementNoteForm, SettlementNoteUpdateForm,
)
from .models import Coupon, CouponSeries, Installment, SettlementLineItem, SettlementNote
from .signals import settlement_created, settlement_deleted

logger = logging.getLogger(__name__)

SERIES_ID_ATTEMPTS = 10

# Manual series transitions; COMPLETED is only ever reached by redemption
SERIES_TRANSITIONS = {
    'ACTIVE': {'SUSPENDED', 'EXPIRED'},
    'SUSPENDED': {'ACTIVE', 'EXPIRED'},
}


@dataclass
class SettlementBundle:
    settlement_note: SettlementNote
    coupon_series: CouponSeries
    coupons: List[Coupon]


@dataclass
class DeletionImpact:
    """What deleting a settlement note would remove."""

    settlement_note_id: uuid.UUID
    client_name: str
    department: str
    status: str
    revenue: Decimal
    created_at: Any
    coupon_series_id: Optional[uuid.UUID] = None
    coupon_series_status: Optional[str] = None
    total_coupons: int = 0
    used_coupons: int = 0
    coupon_counts: Dict[str, int] = field(default_factory=dict)
    counters_consistent: bool = True
    installment_count: int = 0
    student_ids: List[str] = field(default_factory=list)
    reverts_family_to_prospect: bool = False

    @property
    def coupon_count(self):
        return sum(self.coupon_counts.values())

    @property
    def total_items(self):
        series_count = 1 if self.coupon_series_id else 0
        return 1 + series_count + self.coupon_count + self.installment_count

    def to_dict(self):
        series_details = []
        if self.coupon_series_id:
            series_details.append({
                'id': str(self.coupon_series_id),
                'status': self.coupon_series_status,
                'total_coupons': self.total_coupons,
                'used_coupons': self.used_coupons,
            })
        return {
            'settlement_note': {
                'id': str(self.settlement_note_id),
                'client_name': self.client_name,
                'department': self.department,
                'total_amount': self.revenue,
                'status': self.status,
                'created_at': self.created_at,
            },
            'items_to_delete': {
                'coupon_series': {
                    'count': len(series_details),
                    'details': series_details,
                },
                'coupons': {
                    'count': self.coupon_count,
                    'available_count': self.coupon_counts.get('AVAILABLE', 0),
                    'used_count': self.coupon_counts.get('USED', 0),
                    'expired_count': self.coupon_counts.get('EXPIRED', 0),
                    'cancelled_count': self.coupon_counts.get('CANCELLED', 0),
                },
                'installments': {
                    'count': self.installment_count,
                },
            },
            'affected_students': self.student_ids,
            'reverts_family_to_prospect': self.reverts_family_to_prospect,
            'counters_consistent': self.counters_consistent,
            'total_items': self.total_items,
        }


@dataclass
class DeletionResult:
    impact: DeletionImpact
    family_id: uuid.UUID
    family_status: str

    def to_dict(self):
        return {
            'deleted': self.impact.to_dict(),
            'family': {'id': str(self.family_id), 'status': self.family_status},
        }


def _parse_uuid(value, field_name):
    try:
        return value if isinstance(value, uuid.UUID) else uuid.UUID(str(value))
    except (TypeError, ValueError, AttributeError):
        raise ValidationError(errors={field_name: [f"'{value}' is not a valid identifier"]})


def _actor_label(user):
    return user.email if user is not None else 'system'


# =============================================================================
# SETTLEMENT SERVICE - NOTE / SERIES / COUPON LIFECYCLE
# =============================================================================

class SettlementService:
    """
    Creates, updates and deletes settlement notes together with the
    coupon series and coupons they own.
    """

    @staticmethod
    @transaction.atomic
    def create_settlement(settlement_data, created_by=None):
        """
        Create a settlement note, its coupon series and all its coupons.

        Args:
            settlement_data (dict):
                Required:
                    - family: Family id
                    - line_items: list of {subject, hourly_rate, quantity, tutor_payout_rate}
                    - payment_method: 'CARD', 'CESU', 'CHECK', 'TRANSFER', 'CASH', 'DIRECT_DEBIT'
                    - payment_type: 'ADVANCE' or 'CREDIT'
                Optional:
                    - students: list of Student ids, all from the family
                    - charge_per_unit: Decimal (default: 0)
                    - payment_schedule: {payment_method, number_of_installments, day_of_month}
                    - client_name: str (default: family display name)
                    - department: str (default: derived from the family postal code)
                    - notes: str
            created_by: acting User, or None

        Returns:
            SettlementBundle(settlement_note, coupon_series, coupons)

        Example:
            bundle = SettlementService.create_settlement({
                'family': family.id,
                'students': [student.id],
                'payment_method': 'TRANSFER',
                'payment_type': 'ADVANCE',
                'charge_per_unit': '2.00',
                'line_items': [
                    {'subject': maths.id, 'hourly_rate': '30', 'quantity': 10, 'tutor_payout_rate': '20'},
                ],
            }, created_by=request.user)
        """
        data = clean_form(SettlementNoteForm(settlement_data), 'Invalid settlement note')
        line_items_data = SettlementService._clean_line_items(settlement_data.get('line_items'))
        schedule = None
        if settlement_data.get('payment_schedule'):
            if not isinstance(settlement_data['payment_schedule'], dict):
                raise ValidationError(errors={'payment_schedule': ['Expected an object']})
            schedule = clean_form(
                PaymentScheduleForm(settlement_data['payment_schedule']), 'Invalid payment schedule'
            )

        # Resolve every reference before the first write
        family = SettlementService._get_family(data['family'])
        students = SettlementService._resolve_students(family, settlement_data.get('students') or [])
        subjects = SettlementService._resolve_subjects(line_items_data)

        note = SettlementNote(
            family=family,
            client_name=data['client_name'] or family.display_name,
            department=data['department'] or family.department,
            payment_method=data['payment_method'],
            payment_type=data['payment_type'],
            charge_per_unit=data['charge_per_unit'] if data['charge_per_unit'] is not None else Decimal('0'),
            notes=data['notes'],
            created_by=created_by,
        )
        if schedule:
            note.schedule_payment_method = schedule['payment_method']
            note.schedule_day_of_month = schedule['day_of_month']

        line_items = SettlementService._build_line_items(note, line_items_data, subjects)
        note.recalculate_totals(line_items)
        note.total_coupons = SettlementService.compute_coupon_count(line_items, len(students))
        note.save()
        SettlementLineItem.objects.bulk_create(line_items)
        note.students.set(students)

        series = CouponSeries.objects.create(
            id=SettlementService._allocate_series_id(),
            settlement_note=note,
            family=family,
            total_coupons=note.total_coupons,
            hourly_rate=line_items[0].hourly_rate,
            tutor_payout_rate=line_items[0].tutor_payout_rate,
            expiration_date=timezone.now() + timedelta(days=settings.COUPON_SERIES_VALIDITY_DAYS),
            created_by=created_by,
        )
        series.students.set(students)

        coupons = [
            Coupon(series=series, family=family, sequence_number=index, code=code)
            for index, code in enumerate(generate_codes(series.id, series.total_coupons), start=1)
        ]
        Coupon.objects.bulk_create(coupons)

        created = Coupon.objects.filter(series=series).count()
        if created != series.total_coupons:
            logger.error(
                f"Coupon series {series.id} declares {series.total_coupons} coupons "
                f"but {created} were created"
            )
            raise ConsistencyViolation(
                f"Expected {series.total_coupons} coupons for series {series.id}, created {created}",
                details={'series': str(series.id), 'expected': series.total_coupons, 'created': created},
            )

        if schedule:
            Installment.objects.bulk_create(note.build_installments(schedule['number_of_installments']))

        settlement_created.send(
            sender=SettlementNote, settlement_note=note, family=family, coupon_series=series
        )

        logger.info(
            f"Created settlement note {note.id} for family {family.id}: "
            f"revenue {note.revenue}, {series.total_coupons} coupons in series {series.id}"
        )
        return SettlementBundle(settlement_note=note, coupon_series=series, coupons=coupons)

    @staticmethod
    def compute_coupon_count(line_items, beneficiary_count):
        """One coupon per session hour, per beneficiary (at least one)."""
        hours = sum(math.ceil(item.quantity) for item in line_items)
        return hours * max(1, beneficiary_count)

    @staticmethod
    @transaction.atomic
    def update_settlement(settlement_note_id, update_data):
        """
        Partially update a settlement note.

        Replacing ``line_items`` recomputes every total and rebuilds the
        installment schedule; it is refused once the note or an installment
        was paid. A PAID note cannot be moved back to another status.
        The coupon series keeps the size it was created with.
        """
        note = SettlementService._lock_note(settlement_note_id)
        data = clean_form(SettlementNoteUpdateForm(update_data), 'Invalid settlement note update')
        present = {key: value for key, value in data.items() if key in update_data}

        # A paid note keeps its paid schedule; there is no way back to PENDING or OVERDUE
        if note.status == 'PAID' and present.get('status') and present['status'] != 'PAID':
            raise StateConflict(current_state=note.status, attempted=f"set_status_{present['status'].lower()}")

        for field_name in ('client_name', 'department', 'payment_method', 'notes'):
            if field_name in present:
                setattr(note, field_name, present[field_name])
        if present.get('charge_per_unit') is not None:
            note.charge_per_unit = present['charge_per_unit']

        line_items = None
        if 'line_items' in update_data:
            if note.status == 'PAID' or note.installments.filter(status='PAID').exists():
                raise StateConflict(
                    'Line items cannot change once the note or one of its installments has been paid',
                    current_state=note.status,
                    attempted='update_line_items',
                )
            line_items_data = SettlementService._clean_line_items(update_data['line_items'])
            subjects = SettlementService._resolve_subjects(line_items_data)
            line_items = SettlementService._build_line_items(note, line_items_data, subjects)

        note.recalculate_totals(line_items)
        note.save()

        if line_items is not None:
            note.line_items.all().delete()
            SettlementLineItem.objects.bulk_create(line_items)
            if note.has_schedule:
                count = note.installments.count()
                note.installments.all().delete()
                if count:
                    Installment.objects.bulk_create(note.build_installments(count))

        status = present.get('status')
        if status == 'PAID' and note.status != 'PAID':
            note.mark_as_paid()
        elif status and status != note.status and status != 'PAID':
            note.status = status
            note.paid_at = None
            note.save(update_fields=['status', 'paid_at', 'updated_at'])

        logger.info(f"Updated settlement note {note.id}: fields {sorted(present) + (['line_items'] if line_items else [])}")
        return note

    @staticmethod
    @transaction.atomic
    def mark_as_paid(settlement_note_id):
        note = SettlementService._lock_note(settlement_note_id)
        if note.status == 'PAID':
            raise StateConflict(current_state=note.status, attempted='mark_as_paid')
        note.mark_as_paid()
        logger.info(f"Settlement note {note.id} marked as paid")
        return note

    @staticmethod
    @transaction.atomic
    def pay_installment(installment_id):
        """Mark one installment paid; the note is paid once all of them are."""
        installment = Installment.objects.select_for_update().filter(pk=installment_id).first()
        if installment is None:
            raise ReferenceNotFound('Installment', installment_id)
        if installment.status == 'PAID':
            raise StateConflict(current_state=installment.status, attempted='pay_installment')

        installment.status = 'PAID'
        installment.paid_at = timezone.now()
        installment.save(update_fields=['status', 'paid_at'])

        note = installment.settlement_note
        if not note.installments.exclude(status='PAID').exists() and note.status != 'PAID':
            note.mark_as_paid()
        logger.info(f"Installment {installment.sequence} of settlement note {note.id} paid")
        return installment

    @staticmethod
    def preview_deletion(settlement_note_id):
        """Read-only report of everything ``execute_deletion`` would remove."""
        note = SettlementService.get_settlement_note(settlement_note_id)
        series = CouponSeries.objects.filter(settlement_note=note).first()
        return SettlementService._compute_deletion_impact(note, series)

    @staticmethod
    @transaction.atomic
    def execute_deletion(settlement_note_id):
        """
        Delete a settlement note with its coupon series, coupons and
        installments, and unlink its beneficiaries.

        Used coupons do not block the deletion; ``preview_deletion`` reports
        them beforehand.
        """
        note = SettlementService._lock_note(settlement_note_id)
        note.family = Family.objects.select_for_update().get(pk=note.family_id)
        series = CouponSeries.objects.select_for_update().filter(settlement_note=note).first()
        impact = SettlementService._compute_deletion_impact(note, series)

        if series is not None:
            Coupon.objects.filter(series=series).delete()
            series.students.clear()
            series.delete()
        note.installments.all().delete()
        note.line_items.all().delete()
        note.students.clear()

        family = note.family
        note_id = note.id
        note.delete()

        settlement_deleted.send(sender=SettlementNote, settlement_note_id=note_id, family=family)

        logger.info(
            f"Deleted settlement note {note_id}: {impact.coupon_count} coupons "
            f"({impact.coupon_counts.get('USED', 0)} used), family {family.id} now {family.status}"
        )
        return DeletionResult(impact=impact, family_id=family.id, family_status=family.status)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    @staticmethod
    def _compute_deletion_impact(note, series):
        impact = DeletionImpact(
            settlement_note_id=note.id,
            client_name=note.client_name,
            department=note.department,
            status=note.status,
            revenue=note.revenue,
            created_at=note.created_at,
            installment_count=note.installments.count(),
            student_ids=[str(pk) for pk in note.students.values_list('id', flat=True)],
            reverts_family_to_prospect=(
                note.family.status == 'CLIENT'
                and not note.family.settlement_notes.exclude(pk=note.pk).exists()
            ),
        )
        if series is not None:
            counts = (
                Coupon.objects.filter(series=series)
                .order_by()
                .values('status')
                .annotate(total=Count('id'))
            )
            impact.coupon_series_id = series.id
            impact.coupon_series_status = series.status
            impact.total_coupons = series.total_coupons
            impact.used_coupons = series.used_coupons
            impact.coupon_counts = {row['status']: row['total'] for row in counts}
            impact.counters_consistent = (
                series.used_coupons == impact.coupon_counts.get('USED', 0)
                and series.total_coupons == impact.coupon_count
            )
        return impact

    @staticmethod
    def _clean_line_items(line_items_data):
        if not isinstance(line_items_data, list) or not line_items_data:
            raise ValidationError(errors={'line_items': ['At least one line item is required']})

        cleaned, errors = [], {}
        for position, item in enumerate(line_items_data):
            form = LineItemForm(item if isinstance(item, dict) else {})
            if form.is_valid():
                cleaned.append(form.cleaned_data)
            else:
                errors[f'line_items[{position}]'] = {
                    name: [str(e) for e in field_errors] for name, field_errors in form.errors.items()
                }
        if errors:
            raise ValidationError('Invalid line items', errors=errors)
        return cleaned

    @staticmethod
    def _build_line_items(note, line_items_data, subjects):
        return [
            SettlementLineItem(
                settlement_note=note,
                subject=subjects[item['subject']],
                position=position,
                hourly_rate=item['hourly_rate'],
                quantity=item['quantity'],
                tutor_payout_rate=item['tutor_payout_rate'],
            )
            for position, item in enumerate(line_items_data)
        ]

    @staticmethod
    def _resolve_subjects(line_items_data):
        """Map subject ids to subjects, reporting every unknown id at once."""
        wanted = list(dict.fromkeys(item['subject'] for item in line_items_data))
        subjects = Subject.objects.in_bulk(wanted)
        missing = [str(pk) for pk in wanted if pk not in subjects]
        if missing:
            raise ValidationError(
                f"Unknown subjects: {', '.join(missing)}",
                errors={'subjects': missing},
            )
        return subjects

    @staticmethod
    def _get_family(family_id):
        # Locked until commit so concurrent notes of one family see a settled status
        family = Family.objects.select_for_update().filter(pk=family_id).first()
        if family is None:
            raise ReferenceNotFound('Family', family_id)
        return family

    @staticmethod
    def _resolve_students(family, student_ids):
        if not isinstance(student_ids, list):
            raise ValidationError(errors={'students': ['Expected a list of student ids']})

        wanted = list(dict.fromkeys(_parse_uuid(pk, 'students') for pk in student_ids))
        found = Student.objects.in_bulk(wanted)
        for pk in wanted:
            if pk not in found:
                raise ReferenceNotFound('Student', pk)

        foreign = [str(pk) for pk in wanted if found[pk].family_id != family.id]
        if foreign:
            raise ValidationError(
                'Students do not belong to the family',
                errors={'students': [f"Student {pk} does not belong to family {family.id}" for pk in foreign]},
            )
        return [found[pk] for pk in wanted]

    @staticmethod
    def _allocate_series_id():
        """Draw a series id whose code prefix is not used by any other series."""
        for _attempt in range(SERIES_ID_ATTEMPTS):
            candidate = uuid.uuid4()
            prefix = f"{code_prefix(candidate)}{SEPARATOR}"
            if not Coupon.objects.filter(code__startswith=prefix).exists():
                return candidate
        raise ConsistencyViolation('Could not allocate a unique coupon code prefix')

    @staticmethod
    def get_settlement_note(settlement_note_id):
        note = SettlementNote.objects.select_related('family').filter(pk=settlement_note_id).first()
        if note is None:
            raise ReferenceNotFound('SettlementNote', settlement_note_id)
        return note

    @staticmethod
    def _lock_note(settlement_note_id):
        note = SettlementNote.objects.select_for_update().filter(pk=settlement_note_id).first()
        if note is None:
            raise ReferenceNotFound('SettlementNote', settlement_note_id)
        return note


# =============================================================================
# COUPON SERVICE - REDEMPTION STATE MACHINE
# =============================================================================

class CouponService:
    """
    Redemption, cancellation and rating of coupons, and manual status
    changes of coupon series.
    """

    @staticmethod
    @transaction.atomic
    def redeem(coupon_id, session_data=None, used_by=None):
        """
        Use an available coupon for a session.

        Args:
            coupon_id: Coupon id
            session_data (dict, optional): session_date, session_duration
                (30-180 min, default 60), session_location ('HOME', 'TUTOR',
                'ONLINE', default 'HOME'), session_notes
            used_by: acting User

        Returns:
            Coupon instance

        Raises:
            NotAvailable, SeriesInactive, SeriesExpired
        """
        data = clean_form(RedeemCouponForm(session_data or {}), 'Invalid session details')
        series, coupon = CouponService._lock_coupon(coupon_id)

        if coupon.status != 'AVAILABLE':
            logger.warning(f"Redeem refused for coupon {coupon.code}: status {coupon.status}")
            raise NotAvailable(coupon)
        if series.status != 'ACTIVE':
            logger.warning(f"Redeem refused for coupon {coupon.code}: series {series.id} is {series.status}")
            raise SeriesInactive(series)
        if series.is_expired:
            logger.warning(f"Redeem refused for coupon {coupon.code}: series {series.id} expired")
            raise SeriesExpired(series)
        if series.used_coupons >= series.total_coupons:
            raise ConsistencyViolation(
                f"Series {series.id} has no remaining coupons but {coupon.code} is available",
                details={'series': str(series.id), 'coupon': coupon.code},
            )

        now = timezone.now()
        coupon.status = 'USED'
        coupon.used_at = now
        coupon.session_date = data['session_date'] or now
        coupon.session_duration = data['session_duration'] or 60
        coupon.session_location = data['session_location'] or 'HOME'
        coupon.session_notes = data['session_notes']
        coupon.used_by = used_by
        coupon.save()

        series.used_coupons += 1
        if series.used_coupons == series.total_coupons:
            series.status = 'COMPLETED'
        series.save(update_fields=['used_coupons', 'status', 'updated_at'])

        logger.info(
            f"Coupon {coupon.code} redeemed by {_actor_label(used_by)} "
            f"({series.used_coupons}/{series.total_coupons} used)"
        )
        return coupon

    @staticmethod
    @transaction.atomic
    def cancel_redemption(coupon_id, reason, cancelled_by=None):
        """
        Undo a redemption and return the slot to the series.

        The reason and the cancelled usage are appended to the coupon notes.
        A coupon of a suspended or expired series comes back expired.
        """
        data = clean_form(CancelRedemptionForm({'reason': reason}), 'Invalid cancellation')
        series, coupon = CouponService._lock_coupon(coupon_id)

        if coupon.status != 'USED':
            logger.warning(f"Cancellation refused for coupon {coupon.code}: status {coupon.status}")
            raise NotUsed(coupon)
        if series.used_coupons <= 0:
            raise ConsistencyViolation(
                f"Series {series.id} counts no used coupon but {coupon.code} is used",
                details={'series': str(series.id), 'coupon': coupon.code},
            )

        previous_usage = {
            'used_at': coupon.used_at.isoformat() if coupon.used_at else None,
            'session_date': coupon.session_date.isoformat() if coupon.session_date else None,
            'session_duration': coupon.session_duration,
            'session_location': coupon.session_location,
            'used_by': coupon.used_by.email if coupon.used_by else None,
        }
        coupon.append_note(
            f"Usage cancelled by {_actor_label(cancelled_by)}. Reason: {data['reason']}. "
            f"Previous usage: {json.dumps(previous_usage)}"
        )
        coupon.clear_usage()
        coupon.status = 'AVAILABLE' if series.status in ('ACTIVE', 'COMPLETED') else 'EXPIRED'
        coupon.save()

        series.used_coupons -= 1
        if series.status == 'COMPLETED':
            series.status = 'ACTIVE'
        series.save(update_fields=['used_coupons', 'status', 'updated_at'])

        logger.info(
            f"Redemption of coupon {coupon.code} cancelled by {_actor_label(cancelled_by)} "
            f"({series.used_coupons}/{series.total_coupons} used)"
        )
        return coupon

    @staticmethod
    @transaction.atomic
    def rate(coupon_id, side, score, comment='', rated_by=None):
        """Rate a used coupon from the beneficiary or the tutor side."""
        data = clean_form(
            CouponRatingForm({'side': side, 'score': score, 'comment': comment}), 'Invalid rating'
        )
        coupon = Coupon.objects.select_for_update().filter(pk=coupon_id).first()
        if coupon is None:
            raise ReferenceNotFound('Coupon', coupon_id)
        if coupon.status != 'USED':
            raise NotUsed(coupon, attempted='rate')

        rating = dict(coupon.rating or {})
        rating[data['side']] = {
            'score': data['score'],
            'comment': data['comment'],
            'rated_by': str(rated_by.id) if rated_by is not None else None,
            'rated_at': timezone.now().isoformat(),
        }
        coupon.rating = rating
        coupon.save(update_fields=['rating', 'updated_at'])
        logger.info(f"Coupon {coupon.code} rated {data['score']} by {data['side']}")
        return coupon

    @staticmethod
    @transaction.atomic
    def change_series_status(series_id, status, reason='', changed_by=None):
        """
        Manually suspend, expire or reactivate a coupon series.

        Suspending or expiring turns every available coupon into an expired
        one; reactivating gives them back.

        Returns:
            (CouponSeries, number of coupons whose status changed)
        """
        data = clean_form(SeriesStatusForm({'status': status, 'reason': reason}), 'Invalid series status')
        target = data['status']
        series = CouponSeries.objects.select_for_update().filter(pk=series_id).first()
        if series is None:
            raise ReferenceNotFound('CouponSeries', series_id)

        if target not in SERIES_TRANSITIONS.get(series.status, set()):
            logger.warning(f"Series {series.id}: transition {series.status} -> {target} refused")
            raise StateConflict(current_state=series.status, attempted=f'set_status_{target.lower()}')

        previous = series.status
        now = timezone.now()
        if target in ('SUSPENDED', 'EXPIRED'):
            affected = series.coupons.filter(status='AVAILABLE').update(status='EXPIRED', updated_at=now)
            series.status = target
        elif series.remaining_coupons == 0:
            affected = 0
            series.status = 'COMPLETED'
        else:
            affected = series.coupons.filter(status='EXPIRED').update(status='AVAILABLE', updated_at=now)
            series.status = 'ACTIVE'

        note = f"Status changed from {previous} to {series.status} by {_actor_label(changed_by)}"
        if data['reason']:
            note = f"{note}. Reason: {data['reason']}"
        series.append_note(note)
        series.save(update_fields=['status', 'notes', 'updated_at'])

        logger.info(f"Series {series.id}: {previous} -> {series.status}, {affected} coupons updated")
        return series, affected

    @staticmethod
    def find_by_code(code):
        """Look a coupon up by its code; malformed codes are a validation error."""
        normalized = (code or '').strip().upper()
        try:
            decode(normalized)
        except InvalidCodeError as exc:
            raise ValidationError(str(exc), errors={'code': [str(exc)]})

        coupon = Coupon.objects.select_related('series', 'family').filter(code=normalized).first()
        if coupon is None:
            raise ReferenceNotFound('Coupon', normalized)
        return coupon

    @staticmethod
    def get_series(series_id):
        series = CouponSeries.objects.select_related('family', 'settlement_note').filter(pk=series_id).first()
        if series is None:
            raise ReferenceNotFound('CouponSeries', series_id)
        return series

    @staticmethod
    def series_stats(series):
        return {
            'total_coupons': series.total_coupons,
            'used_coupons': series.used_coupons,
            'remaining_coupons': series.remaining_coupons,
            'usage_percentage': series.usage_percentage,
            'status': series.status,
            'is_expired': series.is_expired,
            'expiration_date': series.expiration_date,
        }

    @staticmethod
    def available_coupons(series):
        return series.coupons.filter(status='AVAILABLE').order_by('sequence_number')

    @staticmethod
    def _lock_coupon(coupon_id):
        """Lock the coupon's series, then the coupon."""
        series_id = Coupon.objects.filter(pk=coupon_id).values_list('series_id', flat=True).first()
        if series_id is None:
            raise ReferenceNotFound('Coupon', coupon_id)
        series = CouponSeries.objects.select_for_update().get(pk=series_id)
        coupon = Coupon.objects.select_for_update().get(pk=coupon_id)
        return series, coupon
