"""
URL configuration for billing app.
"""
from django.urls import path
from . import views

app_name = 'billing'

urlpatterns = [
    # Settlement notes
    path('settlement-notes/', views.SettlementNoteCreateView.as_view(), name='settlement_create'),
    path('settlement-notes/<uuid:pk>/', views.SettlementNoteDetailView.as_view(), name='settlement_detail'),
    path('settlement-notes/<uuid:pk>/deletion-preview/', views.SettlementNoteDeletionPreviewView.as_view(),
         name='settlement_deletion_preview'),
    path('settlement-notes/<uuid:pk>/mark-paid/', views.SettlementNoteMarkPaidView.as_view(),
         name='settlement_mark_paid'),
    path('installments/<uuid:pk>/pay/', views.InstallmentPayView.as_view(), name='installment_pay'),

    # Coupon series
    path('coupon-series/<uuid:pk>/', views.CouponSeriesDetailView.as_view(), name='series_detail'),
    path('coupon-series/<uuid:pk>/status/', views.CouponSeriesStatusView.as_view(), name='series_status'),

    # Coupons
    path('coupons/lookup/<str:code>/', views.CouponLookupView.as_view(), name='coupon_lookup'),
    path('coupons/<uuid:pk>/redeem/', views.CouponRedeemView.as_view(), name='coupon_redeem'),
    path('coupons/<uuid:pk>/cancel-redemption/', views.CouponCancelRedemptionView.as_view(),
         name='coupon_cancel_redemption'),
    path('coupons/<uuid:pk>/rating/', views.CouponRatingView.as_view(), name='coupon_rating'),
]
