"""
Billing models for settlement notes and prepaid session vouchers.
"""
import calendar
import uuid
from datetime import date
from decimal import Decimal, ROUND_DOWN, ROUND_HALF_UP
from django.core.exceptions import ValidationError as DjangoValidationError
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.conf import settings
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from families.models import Family, Student
from subjects.models import Subject

CENTS = Decimal('0.01')


def quantize(value):
    return Decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)


def add_months(start, months, day):
    """Return the date ``months`` after ``start`` on ``day``, clamped to the month length."""
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    return date(year, month, min(day, calendar.monthrange(year, month)[1]))


class SettlementNoteQuerySet(models.QuerySet):

    def sweep_overdue(self, today=None):
        """
        Mark pending notes with a past-due pending installment as overdue.

        Paid notes are never touched and overdue notes never revert here.
        Returns the number of notes updated.
        """
        today = today or timezone.localdate()
        late = Installment.objects.filter(status='PENDING', due_date__lt=today)
        return self.filter(
            status='PENDING',
            id__in=late.values('settlement_note_id'),
        ).update(status='OVERDUE', updated_at=timezone.now())


class SettlementNote(models.Model):
    """
    Commercial agreement between the agency and a family.

    The financial aggregates are derived from the line items by
    ``recalculate_totals`` and are never taken from input.
    """

    STATUS_CHOICES = [
        ('PENDING', _('Pending')),
        ('PAID', _('Paid')),
        ('OVERDUE', _('Overdue')),
    ]

    PAYMENT_METHOD_CHOICES = [
        ('CARD', _('Card')),
        ('CESU', _('CESU')),
        ('CHECK', _('Check')),
        ('TRANSFER', _('Bank transfer')),
        ('CASH', _('Cash')),
        ('DIRECT_DEBIT', _('Direct debit')),
    ]

    PAYMENT_TYPE_CHOICES = [
        ('ADVANCE', _('Advance payment')),
        ('CREDIT', _('Deferred credit')),
    ]

    SCHEDULE_METHOD_CHOICES = [
        ('DIRECT_DEBIT', _('Direct debit')),
        ('CHECK', _('Check')),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    family = models.ForeignKey(Family, on_delete=models.PROTECT, related_name='settlement_notes')
    students = models.ManyToManyField(Student, blank=True, related_name='settlement_notes')

    client_name = models.CharField(_('client name'), max_length=300)
    department = models.CharField(_('department'), max_length=100, blank=True)

    # Payment terms
    payment_method = models.CharField(_('payment method'), max_length=20, choices=PAYMENT_METHOD_CHOICES)
    payment_type = models.CharField(_('payment type'), max_length=10, choices=PAYMENT_TYPE_CHOICES)
    charge_per_unit = models.DecimalField(
        _('charge per unit'), max_digits=10, decimal_places=2, default=Decimal('0'),
        validators=[MinValueValidator(Decimal('0'))]
    )
    schedule_payment_method = models.CharField(
        _('schedule payment method'), max_length=20, choices=SCHEDULE_METHOD_CHOICES, blank=True
    )
    schedule_day_of_month = models.PositiveSmallIntegerField(
        _('schedule day of month'), null=True, blank=True,
        validators=[MinValueValidator(1), MaxValueValidator(31)]
    )

    # Derived totals
    total_hourly_rate = models.DecimalField(_('total hourly rate'), max_digits=10, decimal_places=2, default=Decimal('0'))
    total_quantity = models.PositiveIntegerField(_('total quantity'), default=0)
    total_tutor_payout = models.DecimalField(_('total tutor payout'), max_digits=10, decimal_places=2, default=Decimal('0'))
    tutor_cost = models.DecimalField(_('tutor cost'), max_digits=12, decimal_places=2, default=Decimal('0'))
    charges_to_pay = models.DecimalField(_('charges to pay'), max_digits=12, decimal_places=2, default=Decimal('0'))
    revenue = models.DecimalField(_('revenue'), max_digits=12, decimal_places=2, default=Decimal('0'))
    margin_amount = models.DecimalField(_('margin amount'), max_digits=12, decimal_places=2, default=Decimal('0'))
    margin_percentage = models.DecimalField(_('margin percentage'), max_digits=7, decimal_places=2, default=Decimal('0'))

    # Status
    status = models.CharField(_('status'), max_length=10, choices=STATUS_CHOICES, default='PENDING')
    paid_at = models.DateTimeField(_('paid at'), null=True, blank=True)
    total_coupons = models.PositiveIntegerField(_('total coupons'), default=0)
    notes = models.TextField(_('notes'), blank=True)

    # Metadata
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True,
        related_name='created_settlement_notes'
    )

    objects = SettlementNoteQuerySet.as_manager()

    class Meta:
        verbose_name = _('Settlement Note')
        verbose_name_plural = _('Settlement Notes')
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.client_name} - {self.revenue} ({self.get_status_display()})"

    @property
    def has_schedule(self):
        return bool(self.schedule_payment_method and self.schedule_day_of_month)

    @property
    def is_overdue(self):
        return self.status == 'OVERDUE'

    def recalculate_totals(self, line_items=None):
        """Recompute every derived field from the line items. Does not save."""
        if line_items is None:
            line_items = list(self.line_items.all())

        total_quantity = sum(item.quantity for item in line_items)
        revenue = sum((item.hourly_rate * item.quantity for item in line_items), Decimal('0'))
        tutor_cost = sum((item.tutor_payout_rate * item.quantity for item in line_items), Decimal('0'))
        charges = Decimal(self.charge_per_unit) * total_quantity
        margin = revenue - tutor_cost - charges

        self.total_hourly_rate = quantize(sum((item.hourly_rate for item in line_items), Decimal('0')))
        self.total_quantity = total_quantity
        self.total_tutor_payout = quantize(sum((item.tutor_payout_rate for item in line_items), Decimal('0')))
        self.tutor_cost = quantize(tutor_cost)
        self.charges_to_pay = quantize(charges)
        self.revenue = quantize(revenue)
        self.margin_amount = quantize(margin)
        self.margin_percentage = quantize(margin / revenue * 100) if revenue else Decimal('0.00')

    def build_installments(self, count, start=None):
        """
        Unsaved installments splitting the revenue over ``count`` months.

        Each installment gets the revenue share rounded down to the cent; the
        leftover cents go one by one to the first installments, so no amount
        is ever negative and they always add up to the revenue.
        """
        start = start or timezone.localdate()
        share = (self.revenue / count).quantize(CENTS, rounding=ROUND_DOWN)
        leftover_cents = int((self.revenue - share * count) / CENTS)
        installments = []
        for sequence in range(1, count + 1):
            amount = share + CENTS if sequence <= leftover_cents else share
            installments.append(Installment(
                settlement_note=self,
                sequence=sequence,
                amount=amount,
                due_date=add_months(start, sequence, self.schedule_day_of_month),
            ))
        return installments

    def mark_as_paid(self):
        """Mark note and its pending installments as paid."""
        now = timezone.now()
        self.status = 'PAID'
        self.paid_at = now
        self.save(update_fields=['status', 'paid_at', 'updated_at'])
        self.installments.filter(status='PENDING').update(status='PAID', paid_at=now)


class SettlementLineItem(models.Model):
    """Priced subject line of a settlement note."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    settlement_note = models.ForeignKey(SettlementNote, on_delete=models.CASCADE, related_name='line_items')
    subject = models.ForeignKey(Subject, on_delete=models.PROTECT, related_name='settlement_line_items')
    position = models.PositiveSmallIntegerField(_('position'), default=0)
    hourly_rate = models.DecimalField(
        _('hourly rate'), max_digits=10, decimal_places=2, validators=[MinValueValidator(Decimal('0'))]
    )
    quantity = models.PositiveIntegerField(_('quantity'), validators=[MinValueValidator(1)])
    tutor_payout_rate = models.DecimalField(
        _('tutor payout rate'), max_digits=10, decimal_places=2, validators=[MinValueValidator(Decimal('0'))]
    )

    class Meta:
        verbose_name = _('Settlement Line Item')
        verbose_name_plural = _('Settlement Line Items')
        ordering = ['settlement_note', 'position']

    def __str__(self):
        return f"{self.subject} x {self.quantity}"

    @property
    def total_price(self):
        return self.hourly_rate * self.quantity


class Installment(models.Model):
    """Scheduled partial payment of a settlement note."""

    STATUS_CHOICES = [
        ('PENDING', _('Pending')),
        ('PAID', _('Paid')),
        ('FAILED', _('Failed')),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    settlement_note = models.ForeignKey(SettlementNote, on_delete=models.CASCADE, related_name='installments')
    sequence = models.PositiveSmallIntegerField(_('sequence'))
    amount = models.DecimalField(_('amount'), max_digits=10, decimal_places=2)
    due_date = models.DateField(_('due date'))
    status = models.CharField(_('status'), max_length=10, choices=STATUS_CHOICES, default='PENDING')
    paid_at = models.DateTimeField(_('paid at'), null=True, blank=True)

    class Meta:
        verbose_name = _('Installment')
        verbose_name_plural = _('Installments')
        ordering = ['settlement_note', 'sequence']
        unique_together = ['settlement_note', 'sequence']

    def __str__(self):
        return f"Installment {self.sequence} - {self.amount} due {self.due_date}"

    @property
    def is_overdue(self):
        return self.status == 'PENDING' and self.due_date < timezone.localdate()


class CouponSeries(models.Model):
    """
    Bounded pool of prepaid session vouchers issued for one settlement note.

    ``used_coupons`` only moves by one step at a time under a row lock and
    always stays within ``0..total_coupons``.
    """

    STATUS_CHOICES = [
        ('ACTIVE', _('Active')),
        ('SUSPENDED', _('Suspended')),
        ('COMPLETED', _('Completed')),
        ('EXPIRED', _('Expired')),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    settlement_note = models.OneToOneField(
        SettlementNote, on_delete=models.PROTECT, related_name='coupon_series'
    )
    family = models.ForeignKey(Family, on_delete=models.PROTECT, related_name='coupon_series')
    students = models.ManyToManyField(Student, blank=True, related_name='coupon_series')

    total_coupons = models.PositiveIntegerField(_('total coupons'))
    used_coupons = models.PositiveIntegerField(_('used coupons'), default=0)
    hourly_rate = models.DecimalField(_('hourly rate'), max_digits=10, decimal_places=2)
    tutor_payout_rate = models.DecimalField(_('tutor payout rate'), max_digits=10, decimal_places=2)
    expiration_date = models.DateTimeField(_('expiration date'))
    status = models.CharField(_('status'), max_length=10, choices=STATUS_CHOICES, default='ACTIVE')
    notes = models.TextField(_('notes'), blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True,
        related_name='created_coupon_series'
    )

    class Meta:
        verbose_name = _('Coupon Series')
        verbose_name_plural = _('Coupon Series')
        ordering = ['-created_at']
        constraints = [
            models.CheckConstraint(
                condition=models.Q(used_coupons__lte=models.F('total_coupons')),
                name='coupon_series_used_within_total',
            ),
        ]

    def __str__(self):
        return f"Series {str(self.id)[:8]} - {self.used_coupons}/{self.total_coupons}"

    @property
    def remaining_coupons(self):
        return self.total_coupons - self.used_coupons

    @property
    def usage_percentage(self):
        if not self.total_coupons:
            return 0.0
        return round(self.used_coupons / self.total_coupons * 100, 2)

    @property
    def is_expired(self):
        """Expiry by date, evaluated at read time."""
        return timezone.now() > self.expiration_date

    @property
    def is_active(self):
        return self.status == 'ACTIVE' and not self.is_expired

    def append_note(self, text):
        stamp = timezone.now().isoformat()
        line = f"[{stamp}] {text}"
        self.notes = f"{self.notes}\n{line}" if self.notes else line


class Coupon(models.Model):
    """
    One prepaid session slot.

    Session fields are only populated while the coupon is USED. ``notes`` is
    an append-only trail of cancelled redemptions.
    """

    STATUS_CHOICES = [
        ('AVAILABLE', _('Available')),
        ('USED', _('Used')),
        ('EXPIRED', _('Expired')),
        ('CANCELLED', _('Cancelled')),
    ]

    LOCATION_CHOICES = [
        ('HOME', _('At home')),
        ('TUTOR', _("At tutor's")),
        ('ONLINE', _('Online')),
    ]

    RATING_SIDES = ('beneficiary', 'tutor')

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    series = models.ForeignKey(CouponSeries, on_delete=models.PROTECT, related_name='coupons')
    family = models.ForeignKey(Family, on_delete=models.PROTECT, related_name='coupons')
    sequence_number = models.PositiveIntegerField(_('sequence number'))
    code = models.CharField(_('code'), max_length=20, unique=True)
    status = models.CharField(_('status'), max_length=10, choices=STATUS_CHOICES, default='AVAILABLE')

    # Usage
    used_at = models.DateTimeField(_('used at'), null=True, blank=True)
    session_date = models.DateTimeField(_('session date'), null=True, blank=True)
    session_duration = models.PositiveSmallIntegerField(
        _('session duration (minutes)'), null=True, blank=True,
        validators=[MinValueValidator(30), MaxValueValidator(180)]
    )
    session_location = models.CharField(_('session location'), max_length=10, choices=LOCATION_CHOICES, blank=True)
    session_notes = models.TextField(_('session notes'), blank=True)
    used_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True,
        related_name='redeemed_coupons'
    )

    rating = models.JSONField(_('rating'), default=dict, blank=True)
    notes = models.TextField(_('notes'), blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _('Coupon')
        verbose_name_plural = _('Coupons')
        ordering = ['series', 'sequence_number']
        unique_together = ['series', 'sequence_number']

    def __str__(self):
        return self.code

    @property
    def is_used(self):
        return self.status == 'USED'

    @property
    def is_available(self):
        return self.status == 'AVAILABLE'

    def clean(self):
        super().clean()
        if self.status != 'USED':
            stray = [
                field for field in ('used_at', 'session_date', 'session_duration', 'used_by_id')
                if getattr(self, field) is not None
            ]
            if self.session_location or self.session_notes:
                stray.append('session_location' if self.session_location else 'session_notes')
            if self.rating:
                stray.append('rating')
            if stray:
                raise DjangoValidationError(
                    _('Usage fields are only allowed on a used coupon: %(fields)s'),
                    params={'fields': ', '.join(stray)},
                )

    def clear_usage(self):
        self.used_at = None
        self.session_date = None
        self.session_duration = None
        self.session_location = ''
        self.session_notes = ''
        self.used_by = None
        self.rating = {}

    def append_note(self, text):
        stamp = timezone.now().isoformat()
        line = f"[{stamp}] {text}"
        self.notes = f"{self.notes}\n{line}" if self.notes else line
