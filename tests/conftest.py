from decimal import Decimal

import pytest
from django.test import Client

from accounts.models import User
from billing.services import SettlementService
from families.models import Family, Student
from subjects.models import Subject


@pytest.fixture
def staff_user(db):
    return User.objects.create_user(
        email='staff@agency.test', password='pass1234', first_name='Claire', last_name='Martin'
    )


@pytest.fixture
def family(db):
    return Family.objects.create(
        first_name='Paul', last_name='Durand', email='paul.durand@example.com',
        phone='0698765432', address='12 rue de Rivoli', postal_code='75004',
    )


@pytest.fixture
def other_family(db):
    return Family.objects.create(first_name='Anne', last_name='Leroy', postal_code='69003')


@pytest.fixture
def students(family):
    return [
        Student.objects.create(family=family, first_name='Lucas', last_name='Durand', level='HIGH'),
        Student.objects.create(family=family, first_name='Emma', last_name='Durand', level='MIDDLE'),
    ]


@pytest.fixture
def maths(db):
    return Subject.objects.create(name='Mathematics', category='SCIENCES')


@pytest.fixture
def physics(db):
    return Subject.objects.create(name='Physics', category='SCIENCES')


@pytest.fixture
def settlement_data(family, maths):
    """One line item: 10 sessions at 30, tutor paid 20, agency charge 2 per unit."""
    return {
        'family': str(family.id),
        'students': [],
        'payment_method': 'TRANSFER',
        'payment_type': 'ADVANCE',
        'charge_per_unit': '2',
        'line_items': [
            {'subject': str(maths.id), 'hourly_rate': '30', 'quantity': 10, 'tutor_payout_rate': '20'},
        ],
    }


@pytest.fixture
def bundle(settlement_data, staff_user):
    return SettlementService.create_settlement(settlement_data, created_by=staff_user)


@pytest.fixture
def small_bundle(family, maths, staff_user):
    """A series of 5 coupons."""
    return SettlementService.create_settlement({
        'family': str(family.id),
        'payment_method': 'CASH',
        'payment_type': 'CREDIT',
        'charge_per_unit': Decimal('0'),
        'line_items': [
            {'subject': str(maths.id), 'hourly_rate': '25', 'quantity': 5, 'tutor_payout_rate': '15'},
        ],
    }, created_by=staff_user)


@pytest.fixture
def api_client(staff_user):
    client = Client()
    client.force_login(staff_user)
    return client
