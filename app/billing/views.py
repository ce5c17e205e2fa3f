"""
Views for billing app.

All endpoints speak JSON. Domain errors raised by the services are turned
into responses by core.middleware.CRMErrorMiddleware.
"""
from django.contrib.auth.mixins import LoginRequiredMixin
from django.views import View

from core.utils import json_response, parse_json_body
from .services import CouponService, SettlementService
from .utils import serialize_coupon, serialize_installment, serialize_series, serialize_settlement_note


class JSONLoginRequiredMixin(LoginRequiredMixin):
    """Answer anonymous requests with a JSON 403 instead of a login redirect."""

    def handle_no_permission(self):
        return json_response(
            {'error': 'authentication_required', 'message': 'Authentication required'},
            status=403,
        )


class SettlementNoteCreateView(JSONLoginRequiredMixin, View):
    """Create a settlement note with its coupon series."""

    def post(self, request):
        bundle = SettlementService.create_settlement(parse_json_body(request), created_by=request.user)
        return json_response({
            'settlement_note': serialize_settlement_note(bundle.settlement_note),
            'coupon_series': serialize_series(bundle.coupon_series),
            'coupon_codes': [coupon.code for coupon in bundle.coupons],
        }, status=201)


class SettlementNoteDetailView(JSONLoginRequiredMixin, View):

    def get(self, request, pk):
        note = SettlementService.get_settlement_note(pk)
        return json_response(serialize_settlement_note(note, include_series=True))

    def patch(self, request, pk):
        note = SettlementService.update_settlement(pk, parse_json_body(request))
        return json_response(serialize_settlement_note(note))

    def delete(self, request, pk):
        result = SettlementService.execute_deletion(pk)
        return json_response(result.to_dict())


class SettlementNoteDeletionPreviewView(JSONLoginRequiredMixin, View):

    def get(self, request, pk):
        return json_response(SettlementService.preview_deletion(pk).to_dict())


class SettlementNoteMarkPaidView(JSONLoginRequiredMixin, View):

    def post(self, request, pk):
        note = SettlementService.mark_as_paid(pk)
        return json_response(serialize_settlement_note(note))


class InstallmentPayView(JSONLoginRequiredMixin, View):

    def post(self, request, pk):
        installment = SettlementService.pay_installment(pk)
        data = serialize_installment(installment)
        data['settlement_note_status'] = installment.settlement_note.status
        return json_response(data)


class CouponSeriesDetailView(JSONLoginRequiredMixin, View):
    """Series statistics and its available coupons."""

    def get(self, request, pk):
        series = CouponService.get_series(pk)
        return json_response({
            'series': serialize_series(series),
            'stats': CouponService.series_stats(series),
            'available_coupons': [
                {'id': coupon.id, 'code': coupon.code, 'sequence_number': coupon.sequence_number}
                for coupon in CouponService.available_coupons(series)
            ],
        })


class CouponSeriesStatusView(JSONLoginRequiredMixin, View):

    def patch(self, request, pk):
        data = parse_json_body(request)
        series, affected = CouponService.change_series_status(
            pk, data.get('status'), data.get('reason', ''), changed_by=request.user
        )
        return json_response({
            'series': serialize_series(series),
            'affected_coupons': affected,
        })


class CouponLookupView(JSONLoginRequiredMixin, View):

    def get(self, request, code):
        coupon = CouponService.find_by_code(code)
        return json_response({
            'coupon': serialize_coupon(coupon),
            'series': CouponService.series_stats(coupon.series),
        })


class CouponRedeemView(JSONLoginRequiredMixin, View):

    def post(self, request, pk):
        coupon = CouponService.redeem(pk, parse_json_body(request), used_by=request.user)
        return json_response(serialize_coupon(coupon))


class CouponCancelRedemptionView(JSONLoginRequiredMixin, View):

    def post(self, request, pk):
        data = parse_json_body(request)
        coupon = CouponService.cancel_redemption(pk, data.get('reason', ''), cancelled_by=request.user)
        return json_response(serialize_coupon(coupon))


class CouponRatingView(JSONLoginRequiredMixin, View):

    def patch(self, request, pk):
        data = parse_json_body(request)
        coupon = CouponService.rate(
            pk, data.get('side'), data.get('score'), data.get('comment', ''), rated_by=request.user
        )
        return json_response(serialize_coupon(coupon))
