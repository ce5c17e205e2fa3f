"""
State conflicts raised by the voucher redemption state machine.
"""
from core.exceptions import StateConflict


class NotAvailable(StateConflict):
    code = 'coupon_not_available'

    def __init__(self, coupon):
        super().__init__(
            f"Coupon {coupon.code} is not available (status: {coupon.status})",
            current_state=coupon.status,
            attempted='redeem',
        )


class SeriesInactive(StateConflict):
    code = 'series_inactive'

    def __init__(self, series, attempted='redeem'):
        super().__init__(
            f"Coupon series {series.id} is not active (status: {series.status})",
            current_state=series.status,
            attempted=attempted,
        )


class SeriesExpired(StateConflict):
    code = 'series_expired'

    def __init__(self, series):
        super().__init__(
            f"Coupon series {series.id} expired on {series.expiration_date:%Y-%m-%d}",
            current_state=series.status,
            attempted='redeem',
        )


class NotUsed(StateConflict):
    code = 'coupon_not_used'

    def __init__(self, coupon, attempted='cancel_redemption'):
        super().__init__(
            f"Coupon {coupon.code} has not been used (status: {coupon.status})",
            current_state=coupon.status,
            attempted=attempted,
        )
