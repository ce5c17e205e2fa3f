import uuid
from decimal import Decimal
from unittest import mock

import pytest

from billing.codes import decode
from billing.models import Coupon, CouponSeries, Installment, SettlementNote
from billing.services import SettlementService
from core.exceptions import ConsistencyViolation, ReferenceNotFound, ValidationError
from families.models import Student

pytestmark = pytest.mark.django_db


def test_prospect_becomes_client_with_ten_coupons(bundle, family):
    note = bundle.settlement_note
    assert note.revenue == Decimal('300.00')
    assert note.tutor_cost == Decimal('200.00')
    assert note.charges_to_pay == Decimal('20.00')
    assert note.margin_amount == Decimal('80.00')
    assert note.margin_percentage == Decimal('26.67')
    assert note.total_quantity == 10
    assert note.status == 'PENDING'

    family.refresh_from_db()
    assert family.status == 'CLIENT'

    series = bundle.coupon_series
    assert series.total_coupons == 10
    assert series.used_coupons == 0
    assert series.status == 'ACTIVE'
    assert note.total_coupons == 10
    assert note.coupon_series == series


def test_coupons_are_numbered_with_unique_decodable_codes(bundle):
    series = bundle.coupon_series
    coupons = list(Coupon.objects.filter(series=series).order_by('sequence_number'))
    assert len(coupons) == series.total_coupons
    assert [c.sequence_number for c in coupons] == list(range(1, 11))
    assert len({c.code for c in coupons}) == 10
    for coupon in coupons:
        assert coupon.status == 'AVAILABLE'
        assert coupon.code.startswith(str(series.id)[:6].upper() + '-')
        assert decode(coupon.code) == coupon.sequence_number


def test_beneficiaries_multiply_the_coupon_count(settlement_data, students):
    settlement_data['students'] = [str(s.id) for s in students]
    bundle = SettlementService.create_settlement(settlement_data)

    assert bundle.coupon_series.total_coupons == 20
    assert Coupon.objects.filter(series=bundle.coupon_series).count() == 20
    assert bundle.settlement_note.revenue == Decimal('300.00')
    assert bundle.settlement_note.margin_amount == Decimal('80.00')
    assert set(bundle.coupon_series.students.all()) == set(students)
    for student in students:
        assert bundle.settlement_note in student.settlement_notes.all()


def test_series_rates_come_from_first_line_item(settlement_data, physics):
    settlement_data['line_items'].append(
        {'subject': str(physics.id), 'hourly_rate': '40', 'quantity': 2, 'tutor_payout_rate': '25'}
    )
    bundle = SettlementService.create_settlement(settlement_data)

    assert bundle.coupon_series.hourly_rate == Decimal('30')
    assert bundle.coupon_series.tutor_payout_rate == Decimal('20')
    assert bundle.coupon_series.total_coupons == 12
    assert bundle.settlement_note.revenue == Decimal('380.00')
    assert bundle.settlement_note.total_hourly_rate == Decimal('70.00')
    assert bundle.settlement_note.total_tutor_payout == Decimal('45.00')


def test_defaults_from_family(bundle, family):
    assert bundle.settlement_note.client_name == 'Paul Durand'
    assert bundle.settlement_note.department == '75'


def test_unknown_subjects_are_reported_together(settlement_data):
    missing = [str(uuid.uuid4()), str(uuid.uuid4())]
    settlement_data['line_items'] = [
        {'subject': pk, 'hourly_rate': '30', 'quantity': 1, 'tutor_payout_rate': '20'} for pk in missing
    ]
    with pytest.raises(ValidationError) as excinfo:
        SettlementService.create_settlement(settlement_data)

    assert excinfo.value.errors['subjects'] == missing
    assert not SettlementNote.objects.exists()


def test_unknown_family_is_not_found(settlement_data):
    settlement_data['family'] = str(uuid.uuid4())
    with pytest.raises(ReferenceNotFound):
        SettlementService.create_settlement(settlement_data)


def test_student_from_another_family_rejected(settlement_data, other_family):
    stranger = Student.objects.create(family=other_family, first_name='Tom', last_name='Leroy')
    settlement_data['students'] = [str(stranger.id)]
    with pytest.raises(ValidationError) as excinfo:
        SettlementService.create_settlement(settlement_data)
    assert 'students' in excinfo.value.errors


def test_unknown_student_is_not_found(settlement_data):
    settlement_data['students'] = [str(uuid.uuid4())]
    with pytest.raises(ReferenceNotFound):
        SettlementService.create_settlement(settlement_data)


def test_payment_type_is_mandatory(settlement_data):
    del settlement_data['payment_type']
    with pytest.raises(ValidationError) as excinfo:
        SettlementService.create_settlement(settlement_data)
    assert 'payment_type' in excinfo.value.errors


@pytest.mark.parametrize('line_items', [[], None, [{'subject': 'x', 'hourly_rate': '30', 'quantity': 0, 'tutor_payout_rate': '20'}]])
def test_line_items_are_validated(settlement_data, line_items):
    settlement_data['line_items'] = line_items
    with pytest.raises(ValidationError):
        SettlementService.create_settlement(settlement_data)
    assert not SettlementNote.objects.exists()


def test_failure_midway_rolls_everything_back(settlement_data, family):
    with mock.patch('billing.services.Coupon.objects.bulk_create', side_effect=RuntimeError('disk full')):
        with pytest.raises(RuntimeError):
            SettlementService.create_settlement(settlement_data)

    assert not SettlementNote.objects.exists()
    assert not CouponSeries.objects.exists()
    family.refresh_from_db()
    assert family.status == 'PROSPECT'


def test_coupon_count_mismatch_is_a_consistency_violation(settlement_data, family):
    def short_codes(series_id, count):
        from billing.codes import encode
        return (encode(series_id, index) for index in range(1, count))

    with mock.patch('billing.services.generate_codes', side_effect=short_codes):
        with pytest.raises(ConsistencyViolation):
            SettlementService.create_settlement(settlement_data)

    assert not Coupon.objects.exists()
    assert not SettlementNote.objects.exists()
    family.refresh_from_db()
    assert family.status == 'PROSPECT'


def test_series_prefix_collision_draws_a_new_id(settlement_data):
    first = SettlementService.create_settlement(settlement_data)
    taken = first.coupon_series.id
    fresh = uuid.uuid4()
    while str(fresh)[:6] == str(taken)[:6]:
        fresh = uuid.uuid4()

    with mock.patch('billing.services.uuid.uuid4', side_effect=[taken, fresh]):
        second = SettlementService.create_settlement(settlement_data)

    assert second.coupon_series.id == fresh
    assert Coupon.objects.count() == 20


def test_installment_schedule_splits_revenue(settlement_data):
    settlement_data['payment_schedule'] = {
        'payment_method': 'DIRECT_DEBIT', 'number_of_installments': 3, 'day_of_month': 31,
    }
    settlement_data['line_items'][0]['hourly_rate'] = '33.35'
    note = SettlementService.create_settlement(settlement_data).settlement_note

    installments = list(Installment.objects.filter(settlement_note=note))
    assert note.revenue == Decimal('333.50')
    assert [i.sequence for i in installments] == [1, 2, 3]
    assert [i.amount for i in installments] == [Decimal('111.17'), Decimal('111.17'), Decimal('111.16')]
    assert sum(i.amount for i in installments) == note.revenue
    for installment in installments:
        assert installment.status == 'PENDING'
        assert installment.due_date.day <= 31
    assert installments[0].due_date < installments[1].due_date < installments[2].due_date
