"""
Admin configuration for billing app.
"""
from django.contrib import admin, messages
from django.utils.html import format_html
from .models import Coupon, CouponSeries, Installment, SettlementLineItem, SettlementNote
from .services import SettlementService

DERIVED_FIELDS = [
    'total_hourly_rate', 'total_quantity', 'total_tutor_payout', 'tutor_cost',
    'charges_to_pay', 'revenue', 'margin_amount', 'margin_percentage', 'total_coupons',
]


class SettlementLineItemInline(admin.TabularInline):
    model = SettlementLineItem
    extra = 0
    fields = ['position', 'subject', 'hourly_rate', 'quantity', 'tutor_payout_rate']
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        return False


class InstallmentInline(admin.TabularInline):
    model = Installment
    extra = 0
    fields = ['sequence', 'amount', 'due_date', 'status', 'paid_at']
    readonly_fields = ['sequence', 'amount', 'due_date', 'paid_at']


class SettlementNoteAdmin(admin.ModelAdmin):
    list_display = ['client_name', 'family', 'department', 'revenue', 'margin_percentage', 'status', 'created_at']
    list_filter = ['status', 'payment_method', 'payment_type', 'created_at']
    search_fields = ['client_name', 'family__last_name', 'department']
    readonly_fields = ['id', 'family', 'paid_at', 'created_by', 'created_at', 'updated_at'] + DERIVED_FIELDS
    inlines = [SettlementLineItemInline, InstallmentInline]
    actions = ['delete_with_coupons']

    fieldsets = (
        (None, {
            'fields': ('family', 'client_name', 'department', 'status', 'notes')
        }),
        ('Payment', {
            'fields': ('payment_method', 'payment_type', 'charge_per_unit',
                       'schedule_payment_method', 'schedule_day_of_month', 'paid_at')
        }),
        ('Totals', {
            'fields': tuple(DERIVED_FIELDS)
        }),
        ('Metadata', {
            'fields': ('id', 'created_by', 'created_at', 'updated_at'),
            'classes': ('collapse',)
        })
    )

    def get_actions(self, request):
        # Plain deletion would leave the coupon series behind
        actions = super().get_actions(request)
        actions.pop('delete_selected', None)
        return actions

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False

    def save_model(self, request, obj, form, change):
        obj.recalculate_totals()
        super().save_model(request, obj, form, change)

    def delete_with_coupons(self, request, queryset):
        deleted = 0
        for note in queryset:
            SettlementService.execute_deletion(note.pk)
            deleted += 1
        self.message_user(request, f'{deleted} settlement notes deleted with their coupons.', messages.SUCCESS)
    delete_with_coupons.short_description = 'Delete selected notes with their coupons'


class CouponSeriesAdmin(admin.ModelAdmin):
    list_display = ['id', 'family', 'used_coupons', 'total_coupons', 'usage_display', 'status', 'expiration_date']
    list_filter = ['status', 'expiration_date']
    search_fields = ['id', 'family__last_name']
    readonly_fields = [
        'id', 'settlement_note', 'family', 'total_coupons', 'used_coupons', 'hourly_rate',
        'tutor_payout_rate', 'status', 'notes', 'created_by', 'created_at', 'updated_at',
    ]

    def usage_display(self, obj):
        percentage = obj.usage_percentage
        if percentage >= 100:
            color = 'green'
        elif percentage >= 80:
            color = 'orange'
        else:
            color = 'black'
        return format_html('<span style="color: {};">{}%</span>', color, percentage)
    usage_display.short_description = 'Usage %'

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


class CouponAdmin(admin.ModelAdmin):
    list_display = ['code', 'series', 'family', 'status', 'session_date', 'used_by']
    list_filter = ['status', 'session_location']
    search_fields = ['code', 'family__last_name']
    readonly_fields = [
        'id', 'series', 'family', 'sequence_number', 'code', 'status', 'used_at', 'session_date',
        'session_duration', 'session_location', 'session_notes', 'used_by', 'rating', 'notes',
        'created_at', 'updated_at',
    ]

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


admin.site.register(SettlementNote, SettlementNoteAdmin)
admin.site.register(CouponSeries, CouponSeriesAdmin)
admin.site.register(Coupon, CouponAdmin)
