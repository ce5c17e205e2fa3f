import uuid
from unittest import mock

import pytest
from django.db import connection

from billing.models import SettlementNote
from billing.services import SettlementService
from billing.signals import settlement_created, settlement_deleted
from families.models import Family
from families.utils import department_from_postal_code


@pytest.mark.parametrize('postal_code, department', [
    ('75004', '75'),
    ('69003', '69'),
    ('01000', '01'),
    ('20090', '2A'),
    ('20200', '2B'),
    ('97400', '974'),
    ('', ''),
    ('ABCDE', ''),
])
def test_department_from_postal_code(postal_code, department):
    assert department_from_postal_code(postal_code) == department


@pytest.mark.django_db
def test_contact_fields_are_encrypted_at_rest(family):
    with connection.cursor() as cursor:
        cursor.execute('SELECT email, phone, address FROM families_family WHERE id = %s', [family.id.hex])
        row = cursor.fetchone()

    assert 'paul.durand@example.com' not in row[0]
    assert '0698765432' not in row[1]
    assert 'Rivoli' not in row[2]

    reloaded = Family.objects.get(pk=family.pk)
    assert reloaded.email == 'paul.durand@example.com'
    assert reloaded.phone == '0698765432'
    assert reloaded.address == '12 rue de Rivoli'


@pytest.mark.django_db
def test_status_flips_are_idempotent(family):
    assert family.mark_as_client() is True
    assert family.mark_as_client() is False
    assert family.mark_as_prospect() is True
    assert family.mark_as_prospect() is False
    family.refresh_from_db()
    assert family.status == 'PROSPECT'


@pytest.mark.django_db
def test_creation_and_deletion_lock_the_family_row(settlement_data, family):
    with mock.patch.object(Family.objects, 'select_for_update', wraps=Family.objects.select_for_update) as locked:
        bundle = SettlementService.create_settlement(settlement_data)
    assert locked.called

    with mock.patch.object(Family.objects, 'select_for_update', wraps=Family.objects.select_for_update) as locked:
        SettlementService.execute_deletion(bundle.settlement_note.id)
    assert locked.called


@pytest.mark.django_db
def test_promotion_reads_the_stored_status(bundle, family):
    # Another transaction reverted the family after this instance was loaded
    stale = Family.objects.get(pk=family.pk)
    Family.objects.filter(pk=family.pk).update(status='PROSPECT')
    assert stale.status == 'CLIENT'

    settlement_created.send(
        sender=SettlementNote, settlement_note=bundle.settlement_note, family=stale,
        coupon_series=bundle.coupon_series,
    )

    family.refresh_from_db()
    assert family.status == 'CLIENT'


@pytest.mark.django_db
def test_reversion_reads_the_stored_status(other_family):
    # Promoted by another transaction after this instance was loaded, with no note left
    Family.objects.filter(pk=other_family.pk).update(status='CLIENT')
    assert other_family.status == 'PROSPECT'

    settlement_deleted.send(sender=SettlementNote, settlement_note_id=uuid.uuid4(), family=other_family)

    assert Family.objects.get(pk=other_family.pk).status == 'PROSPECT'
