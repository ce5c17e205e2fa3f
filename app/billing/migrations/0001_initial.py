# Generated migration for billing app
from decimal import Decimal
from django.conf import settings
import django.core.validators
from django.db import migrations, models
import django.db.models.deletion
import uuid


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ('families', '0001_initial'),
        ('subjects', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='SettlementNote',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('client_name', models.CharField(max_length=300, verbose_name='client name')),
                ('department', models.CharField(blank=True, max_length=100, verbose_name='department')),
                ('payment_method', models.CharField(choices=[('CARD', 'Card'), ('CESU', 'CESU'), ('CHECK', 'Check'), ('TRANSFER', 'Bank transfer'), ('CASH', 'Cash'), ('DIRECT_DEBIT', 'Direct debit')], max_length=20, verbose_name='payment method')),
                ('payment_type', models.CharField(choices=[('ADVANCE', 'Advance payment'), ('CREDIT', 'Deferred credit')], max_length=10, verbose_name='payment type')),
                ('charge_per_unit', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=10, validators=[django.core.validators.MinValueValidator(Decimal('0'))], verbose_name='charge per unit')),
                ('schedule_payment_method', models.CharField(blank=True, choices=[('DIRECT_DEBIT', 'Direct debit'), ('CHECK', 'Check')], max_length=20, verbose_name='schedule payment method')),
                ('schedule_day_of_month', models.PositiveSmallIntegerField(blank=True, null=True, validators=[django.core.validators.MinValueValidator(1), django.core.validators.MaxValueValidator(31)], verbose_name='schedule day of month')),
                ('total_hourly_rate', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=10, verbose_name='total hourly rate')),
                ('total_quantity', models.PositiveIntegerField(default=0, verbose_name='total quantity')),
                ('total_tutor_payout', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=10, verbose_name='total tutor payout')),
                ('tutor_cost', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=12, verbose_name='tutor cost')),
                ('charges_to_pay', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=12, verbose_name='charges to pay')),
                ('revenue', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=12, verbose_name='revenue')),
                ('margin_amount', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=12, verbose_name='margin amount')),
                ('margin_percentage', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=7, verbose_name='margin percentage')),
                ('status', models.CharField(choices=[('PENDING', 'Pending'), ('PAID', 'Paid'), ('OVERDUE', 'Overdue')], default='PENDING', max_length=10, verbose_name='status')),
                ('paid_at', models.DateTimeField(blank=True, null=True, verbose_name='paid at')),
                ('total_coupons', models.PositiveIntegerField(default=0, verbose_name='total coupons')),
                ('notes', models.TextField(blank=True, verbose_name='notes')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='created_settlement_notes', to=settings.AUTH_USER_MODEL)),
                ('family', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='settlement_notes', to='families.family')),
                ('students', models.ManyToManyField(blank=True, related_name='settlement_notes', to='families.student')),
            ],
            options={
                'verbose_name': 'Settlement Note',
                'verbose_name_plural': 'Settlement Notes',
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='SettlementLineItem',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('position', models.PositiveSmallIntegerField(default=0, verbose_name='position')),
                ('hourly_rate', models.DecimalField(decimal_places=2, max_digits=10, validators=[django.core.validators.MinValueValidator(Decimal('0'))], verbose_name='hourly rate')),
                ('quantity', models.PositiveIntegerField(validators=[django.core.validators.MinValueValidator(1)], verbose_name='quantity')),
                ('tutor_payout_rate', models.DecimalField(decimal_places=2, max_digits=10, validators=[django.core.validators.MinValueValidator(Decimal('0'))], verbose_name='tutor payout rate')),
                ('settlement_note', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='line_items', to='billing.settlementnote')),
                ('subject', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='settlement_line_items', to='subjects.subject')),
            ],
            options={
                'verbose_name': 'Settlement Line Item',
                'verbose_name_plural': 'Settlement Line Items',
                'ordering': ['settlement_note', 'position'],
            },
        ),
        migrations.CreateModel(
            name='Installment',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('sequence', models.PositiveSmallIntegerField(verbose_name='sequence')),
                ('amount', models.DecimalField(decimal_places=2, max_digits=10, verbose_name='amount')),
                ('due_date', models.DateField(verbose_name='due date')),
                ('status', models.CharField(choices=[('PENDING', 'Pending'), ('PAID', 'Paid'), ('FAILED', 'Failed')], default='PENDING', max_length=10, verbose_name='status')),
                ('paid_at', models.DateTimeField(blank=True, null=True, verbose_name='paid at')),
                ('settlement_note', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='installments', to='billing.settlementnote')),
            ],
            options={
                'verbose_name': 'Installment',
                'verbose_name_plural': 'Installments',
                'ordering': ['settlement_note', 'sequence'],
                'unique_together': {('settlement_note', 'sequence')},
            },
        ),
        migrations.CreateModel(
            name='CouponSeries',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('total_coupons', models.PositiveIntegerField(verbose_name='total coupons')),
                ('used_coupons', models.PositiveIntegerField(default=0, verbose_name='used coupons')),
                ('hourly_rate', models.DecimalField(decimal_places=2, max_digits=10, verbose_name='hourly rate')),
                ('tutor_payout_rate', models.DecimalField(decimal_places=2, max_digits=10, verbose_name='tutor payout rate')),
                ('expiration_date', models.DateTimeField(verbose_name='expiration date')),
                ('status', models.CharField(choices=[('ACTIVE', 'Active'), ('SUSPENDED', 'Suspended'), ('COMPLETED', 'Completed'), ('EXPIRED', 'Expired')], default='ACTIVE', max_length=10, verbose_name='status')),
                ('notes', models.TextField(blank=True, verbose_name='notes')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='created_coupon_series', to=settings.AUTH_USER_MODEL)),
                ('family', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='coupon_series', to='families.family')),
                ('settlement_note', models.OneToOneField(on_delete=django.db.models.deletion.PROTECT, related_name='coupon_series', to='billing.settlementnote')),
                ('students', models.ManyToManyField(blank=True, related_name='coupon_series', to='families.student')),
            ],
            options={
                'verbose_name': 'Coupon Series',
                'verbose_name_plural': 'Coupon Series',
                'ordering': ['-created_at'],
                'constraints': [models.CheckConstraint(condition=models.Q(('used_coupons__lte', models.F('total_coupons'))), name='coupon_series_used_within_total')],
            },
        ),
        migrations.CreateModel(
            name='Coupon',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('sequence_number', models.PositiveIntegerField(verbose_name='sequence number')),
                ('code', models.CharField(max_length=20, unique=True, verbose_name='code')),
                ('status', models.CharField(choices=[('AVAILABLE', 'Available'), ('USED', 'Used'), ('EXPIRED', 'Expired'), ('CANCELLED', 'Cancelled')], default='AVAILABLE', max_length=10, verbose_name='status')),
                ('used_at', models.DateTimeField(blank=True, null=True, verbose_name='used at')),
                ('session_date', models.DateTimeField(blank=True, null=True, verbose_name='session date')),
                ('session_duration', models.PositiveSmallIntegerField(blank=True, null=True, validators=[django.core.validators.MinValueValidator(30), django.core.validators.MaxValueValidator(180)], verbose_name='session duration (minutes)')),
                ('session_location', models.CharField(blank=True, choices=[('HOME', 'At home'), ('TUTOR', "At tutor's"), ('ONLINE', 'Online')], max_length=10, verbose_name='session location')),
                ('session_notes', models.TextField(blank=True, verbose_name='session notes')),
                ('rating', models.JSONField(blank=True, default=dict, verbose_name='rating')),
                ('notes', models.TextField(blank=True, verbose_name='notes')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('family', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='coupons', to='families.family')),
                ('series', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='coupons', to='billing.couponseries')),
                ('used_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='redeemed_coupons', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Coupon',
                'verbose_name_plural': 'Coupons',
                'ordering': ['series', 'sequence_number'],
                'unique_together': {('series', 'sequence_number')},
            },
        ),
    ]
