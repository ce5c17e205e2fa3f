from datetime import timedelta

import pytest
from django.core.exceptions import ValidationError as DjangoValidationError
from django.utils import timezone

from billing.exceptions import NotAvailable, NotUsed, SeriesExpired, SeriesInactive
from billing.models import Coupon, CouponSeries
from billing.services import CouponService
from core.exceptions import StateConflict, ValidationError

pytestmark = pytest.mark.django_db


def _coupons(series, status=None):
    qs = Coupon.objects.filter(series=series).order_by('sequence_number')
    return list(qs.filter(status=status) if status else qs)


def test_redeem_records_session_and_counts(bundle, staff_user):
    series = bundle.coupon_series
    coupon = _coupons(series)[0]

    redeemed = CouponService.redeem(
        coupon.id, {'session_duration': 90, 'session_location': 'ONLINE', 'session_notes': 'Algebra'},
        used_by=staff_user,
    )

    assert redeemed.status == 'USED'
    assert redeemed.used_by == staff_user
    assert redeemed.session_duration == 90
    assert redeemed.session_location == 'ONLINE'
    assert redeemed.used_at is not None
    series.refresh_from_db()
    assert series.used_coupons == 1
    assert series.status == 'ACTIVE'


def test_redeem_defaults(bundle):
    coupon = CouponService.redeem(_coupons(bundle.coupon_series)[0].id)
    assert coupon.session_duration == 60
    assert coupon.session_location == 'HOME'
    assert coupon.session_date is not None


def test_redeeming_every_coupon_completes_series_and_cancel_reopens_it(bundle, staff_user):
    series = bundle.coupon_series
    coupons = _coupons(series)
    for coupon in coupons:
        CouponService.redeem(coupon.id, used_by=staff_user)

    series.refresh_from_db()
    assert series.used_coupons == 10
    assert series.status == 'COMPLETED'

    CouponService.cancel_redemption(coupons[3].id, 'Tutor was ill', cancelled_by=staff_user)

    series.refresh_from_db()
    assert series.used_coupons == 9
    assert series.status == 'ACTIVE'
    assert Coupon.objects.get(pk=coupons[3].id).status == 'AVAILABLE'


def test_redeem_twice_is_refused(bundle):
    coupon = _coupons(bundle.coupon_series)[0]
    CouponService.redeem(coupon.id)
    with pytest.raises(NotAvailable):
        CouponService.redeem(coupon.id)
    bundle.coupon_series.refresh_from_db()
    assert bundle.coupon_series.used_coupons == 1


def test_redeem_on_suspended_series_is_refused(bundle):
    series = bundle.coupon_series
    coupon = _coupons(series)[0]
    CouponSeries.objects.filter(pk=series.pk).update(status='SUSPENDED')
    with pytest.raises(SeriesInactive):
        CouponService.redeem(coupon.id)


def test_redeem_after_expiration_date_is_refused(bundle):
    series = bundle.coupon_series
    CouponSeries.objects.filter(pk=series.pk).update(expiration_date=timezone.now() - timedelta(days=1))
    with pytest.raises(SeriesExpired):
        CouponService.redeem(_coupons(series)[0].id)
    series.refresh_from_db()
    assert series.used_coupons == 0
    assert series.is_expired


def test_redeem_validates_session_duration(bundle):
    with pytest.raises(ValidationError) as excinfo:
        CouponService.redeem(_coupons(bundle.coupon_series)[0].id, {'session_duration': 200})
    assert 'session_duration' in excinfo.value.errors


def test_cancel_requires_used_coupon(bundle):
    with pytest.raises(NotUsed):
        CouponService.cancel_redemption(_coupons(bundle.coupon_series)[0].id, 'Wrong coupon')


def test_cancel_requires_a_reason(bundle):
    coupon = _coupons(bundle.coupon_series)[0]
    CouponService.redeem(coupon.id)
    with pytest.raises(ValidationError):
        CouponService.cancel_redemption(coupon.id, 'no')


def test_cancel_clears_usage_and_keeps_history(bundle, staff_user):
    coupon = _coupons(bundle.coupon_series)[0]
    CouponService.redeem(coupon.id, {'session_notes': 'Geometry'}, used_by=staff_user)
    CouponService.rate(coupon.id, 'tutor', 4, 'Focused', rated_by=staff_user)
    CouponService.cancel_redemption(coupon.id, 'Session did not happen', cancelled_by=staff_user)
    CouponService.redeem(coupon.id)
    CouponService.cancel_redemption(coupon.id, 'Booked twice', cancelled_by=staff_user)

    coupon.refresh_from_db()
    assert coupon.status == 'AVAILABLE'
    assert coupon.used_at is None
    assert coupon.used_by is None
    assert coupon.session_notes == ''
    assert coupon.rating == {}
    lines = coupon.notes.splitlines()
    assert len(lines) == 2
    assert 'Usage cancelled by staff@agency.test. Reason: Session did not happen' in lines[0]
    assert 'Previous usage:' in lines[0]
    assert 'Reason: Booked twice' in lines[1]
    coupon.full_clean()


def test_redeem_cancel_redeem_matches_single_redeem(bundle):
    series = bundle.coupon_series
    coupon = _coupons(series)[0]
    CouponService.redeem(coupon.id)
    CouponService.cancel_redemption(coupon.id, 'Entered by mistake')
    CouponService.redeem(coupon.id)

    series.refresh_from_db()
    assert series.used_coupons == 1
    assert Coupon.objects.get(pk=coupon.id).status == 'USED'


def test_counter_stays_within_bounds_in_any_order(small_bundle):
    series = small_bundle.coupon_series
    coupons = _coupons(series)
    operations = [
        ('redeem', 0), ('redeem', 1), ('cancel', 0), ('redeem', 0), ('redeem', 2),
        ('redeem', 3), ('redeem', 4), ('cancel', 4), ('redeem', 4), ('cancel', 2),
        ('cancel', 2), ('redeem', 2), ('redeem', 2),
    ]
    for operation, index in operations:
        try:
            if operation == 'redeem':
                CouponService.redeem(coupons[index].id)
            else:
                CouponService.cancel_redemption(coupons[index].id, 'Reordering')
        except StateConflict:
            pass
        series.refresh_from_db()
        used = Coupon.objects.filter(series=series, status='USED').count()
        assert 0 <= series.used_coupons <= series.total_coupons
        assert series.used_coupons == used
        assert (series.status == 'COMPLETED') == (used == series.total_coupons)


def test_rating_is_per_side_and_overwritten(bundle, staff_user):
    coupon = _coupons(bundle.coupon_series)[0]
    CouponService.redeem(coupon.id)
    CouponService.rate(coupon.id, 'beneficiary', 3, 'OK', rated_by=staff_user)
    CouponService.rate(coupon.id, 'tutor', 5)
    CouponService.rate(coupon.id, 'beneficiary', 5, 'Great', rated_by=staff_user)

    coupon.refresh_from_db()
    assert coupon.rating['beneficiary']['score'] == 5
    assert coupon.rating['beneficiary']['comment'] == 'Great'
    assert coupon.rating['beneficiary']['rated_by'] == str(staff_user.id)
    assert coupon.rating['tutor']['score'] == 5


def test_rating_requires_used_coupon_and_valid_score(bundle):
    coupon = _coupons(bundle.coupon_series)[0]
    with pytest.raises(StateConflict):
        CouponService.rate(coupon.id, 'tutor', 4)

    CouponService.redeem(coupon.id)
    with pytest.raises(ValidationError):
        CouponService.rate(coupon.id, 'tutor', 6)
    with pytest.raises(ValidationError):
        CouponService.rate(coupon.id, 'parent', 4)


def test_usage_fields_only_on_used_coupon(bundle):
    coupon = _coupons(bundle.coupon_series)[0]
    coupon.session_duration = 60
    with pytest.raises(DjangoValidationError):
        coupon.full_clean()


def test_suspension_expires_available_coupons_only(small_bundle, staff_user):
    series = small_bundle.coupon_series
    coupons = _coupons(series)
    CouponService.redeem(coupons[0].id)
    CouponService.redeem(coupons[1].id)

    series, affected = CouponService.change_series_status(series.id, 'SUSPENDED', 'Unpaid invoice', changed_by=staff_user)

    assert affected == 3
    assert series.status == 'SUSPENDED'
    assert len(_coupons(series, 'EXPIRED')) == 3
    assert len(_coupons(series, 'USED')) == 2
    assert 'Status changed from ACTIVE to SUSPENDED' in series.notes
    assert 'Unpaid invoice' in series.notes


def test_reactivation_restores_expired_coupons(small_bundle):
    series = small_bundle.coupon_series
    coupons = _coupons(series)
    CouponService.redeem(coupons[0].id)
    CouponService.change_series_status(series.id, 'SUSPENDED')

    # A cancellation while suspended keeps the slot frozen
    CouponService.cancel_redemption(coupons[0].id, 'Wrong family')
    assert Coupon.objects.get(pk=coupons[0].id).status == 'EXPIRED'

    series, affected = CouponService.change_series_status(series.id, 'ACTIVE')
    assert series.status == 'ACTIVE'
    assert affected == 5
    assert len(_coupons(series, 'AVAILABLE')) == 5
    assert series.used_coupons == 0


def test_invalid_series_transitions(small_bundle):
    series = small_bundle.coupon_series
    with pytest.raises(StateConflict):
        CouponService.change_series_status(series.id, 'ACTIVE')
    CouponService.change_series_status(series.id, 'EXPIRED')
    with pytest.raises(StateConflict):
        CouponService.change_series_status(series.id, 'ACTIVE')
    with pytest.raises(ValidationError):
        CouponService.change_series_status(series.id, 'COMPLETED')


def test_find_by_code(bundle):
    coupon = _coupons(bundle.coupon_series)[2]
    assert CouponService.find_by_code(coupon.code.lower()) == coupon
    with pytest.raises(ValidationError):
        CouponService.find_by_code('NOT-A-CODE-AT-ALL')
