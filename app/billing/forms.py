"""
Forms for billing app.

The JSON views and the services validate their payloads with these forms;
none of them is rendered.
"""
from decimal import Decimal
from django import forms
from django.utils.translation import gettext_lazy as _
from .models import Coupon, CouponSeries, SettlementNote


class SettlementNoteForm(forms.Form):
    """Scalar fields of a new settlement note."""

    family = forms.UUIDField(label=_('Family'))
    client_name = forms.CharField(label=_('Client name'), max_length=300, required=False)
    department = forms.CharField(label=_('Department'), max_length=100, required=False)
    payment_method = forms.ChoiceField(label=_('Payment method'), choices=SettlementNote.PAYMENT_METHOD_CHOICES)
    payment_type = forms.ChoiceField(
        label=_('Payment type'),
        choices=SettlementNote.PAYMENT_TYPE_CHOICES,
        error_messages={'required': _('The payment type (advance or credit) is mandatory.')}
    )
    charge_per_unit = forms.DecimalField(
        label=_('Charge per unit'), max_digits=10, decimal_places=2,
        min_value=Decimal('0'), required=False
    )
    notes = forms.CharField(label=_('Notes'), required=False)


class LineItemForm(forms.Form):
    """One priced subject line."""

    subject = forms.UUIDField(label=_('Subject'))
    hourly_rate = forms.DecimalField(label=_('Hourly rate'), max_digits=10, decimal_places=2, min_value=Decimal('0'))
    quantity = forms.IntegerField(label=_('Quantity'), min_value=1)
    tutor_payout_rate = forms.DecimalField(
        label=_('Tutor payout rate'), max_digits=10, decimal_places=2, min_value=Decimal('0')
    )


class PaymentScheduleForm(forms.Form):
    """Installment schedule of a settlement note."""

    payment_method = forms.ChoiceField(label=_('Payment method'), choices=SettlementNote.SCHEDULE_METHOD_CHOICES)
    number_of_installments = forms.IntegerField(label=_('Number of installments'), min_value=1, max_value=24)
    day_of_month = forms.IntegerField(label=_('Day of month'), min_value=1, max_value=31)


class SettlementNoteUpdateForm(forms.Form):
    """Partial update; only keys present in the payload are applied."""

    client_name = forms.CharField(label=_('Client name'), max_length=300, required=False)
    department = forms.CharField(label=_('Department'), max_length=100, required=False)
    payment_method = forms.ChoiceField(
        label=_('Payment method'), choices=SettlementNote.PAYMENT_METHOD_CHOICES, required=False
    )
    charge_per_unit = forms.DecimalField(
        label=_('Charge per unit'), max_digits=10, decimal_places=2,
        min_value=Decimal('0'), required=False
    )
    status = forms.ChoiceField(label=_('Status'), choices=SettlementNote.STATUS_CHOICES, required=False)
    notes = forms.CharField(label=_('Notes'), required=False)

    def clean_client_name(self):
        client_name = self.cleaned_data.get('client_name')
        if 'client_name' in self.data and not client_name:
            raise forms.ValidationError(_('Client name cannot be empty.'))
        return client_name


class RedeemCouponForm(forms.Form):
    """Session details recorded when a coupon is used."""

    session_date = forms.DateTimeField(label=_('Session date'), required=False)
    session_duration = forms.IntegerField(label=_('Session duration'), min_value=30, max_value=180, required=False)
    session_location = forms.ChoiceField(label=_('Session location'), choices=Coupon.LOCATION_CHOICES, required=False)
    session_notes = forms.CharField(label=_('Session notes'), required=False)


class CancelRedemptionForm(forms.Form):

    reason = forms.CharField(
        label=_('Reason'), min_length=5,
        error_messages={
            'required': _('A cancellation reason is required.'),
            'min_length': _('The cancellation reason must be at least 5 characters long.'),
        }
    )


class CouponRatingForm(forms.Form):

    side = forms.ChoiceField(label=_('Side'), choices=[(side, side) for side in Coupon.RATING_SIDES])
    score = forms.IntegerField(label=_('Score'), min_value=1, max_value=5)
    comment = forms.CharField(label=_('Comment'), required=False, max_length=2000)


class SeriesStatusForm(forms.Form):

    status = forms.ChoiceField(
        label=_('Status'),
        choices=[choice for choice in CouponSeries.STATUS_CHOICES if choice[0] != 'COMPLETED']
    )
    reason = forms.CharField(label=_('Reason'), required=False, max_length=1000)
