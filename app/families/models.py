"""
Family and student models.

A family is the commercial counterparty of a settlement note; its students
are the beneficiaries of the sessions it pays for.
"""
import uuid
from django.db import models
from django.utils.translation import gettext_lazy as _
from core.fields import EncryptedEmailField, EncryptedTextField
from .utils import department_from_postal_code


class Family(models.Model):
    """
    Family model with commercial status.

    The status is owned by the billing signals: a family becomes a client
    when its first settlement note is created and reverts to a prospect
    when its last one is deleted.
    """

    STATUS_CHOICES = [
        ('PROSPECT', _('Prospect')),
        ('CLIENT', _('Client')),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    # Primary contact (encrypted for privacy)
    first_name = models.CharField(_('first name'), max_length=150)
    last_name = models.CharField(_('last name'), max_length=150)
    email = EncryptedEmailField(_('email'), blank=True)
    phone = EncryptedTextField(_('phone number'), blank=True)
    address = EncryptedTextField(_('address'), blank=True)
    city = models.CharField(_('city'), max_length=100, blank=True)
    postal_code = models.CharField(_('postal code'), max_length=10, blank=True)

    status = models.CharField(_('status'), max_length=10, choices=STATUS_CHOICES, default='PROSPECT')
    notes = models.TextField(_('notes'), blank=True)

    # Metadata
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _('Family')
        verbose_name_plural = _('Families')
        ordering = ['last_name', 'first_name']

    def __str__(self):
        return self.display_name

    @property
    def display_name(self):
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def department(self):
        """Department code derived from the postal code."""
        return department_from_postal_code(self.postal_code)

    @property
    def is_client(self):
        return self.status == 'CLIENT'

    def mark_as_client(self):
        """Promote to client. Returns True when the status changed."""
        if self.status == 'CLIENT':
            return False
        self.status = 'CLIENT'
        self.save(update_fields=['status', 'updated_at'])
        return True

    def mark_as_prospect(self):
        """Revert to prospect. Returns True when the status changed."""
        if self.status == 'PROSPECT':
            return False
        self.status = 'PROSPECT'
        self.save(update_fields=['status', 'updated_at'])
        return True


class Student(models.Model):
    """
    Student belonging to a family.

    ``settlement_notes`` (reverse of SettlementNote.students) lists the
    notes this student benefits from.
    """

    LEVEL_CHOICES = [
        ('PRIMARY', _('Primary school')),
        ('MIDDLE', _('Middle school')),
        ('HIGH', _('High school')),
        ('HIGHER', _('Higher education')),
        ('ADULT', _('Adult')),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    family = models.ForeignKey(Family, on_delete=models.CASCADE, related_name='students')
    first_name = models.CharField(_('first name'), max_length=150)
    last_name = models.CharField(_('last name'), max_length=150)
    level = models.CharField(_('level'), max_length=10, choices=LEVEL_CHOICES, blank=True)
    is_active = models.BooleanField(_('active'), default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _('Student')
        verbose_name_plural = _('Students')
        ordering = ['last_name', 'first_name']

    def __str__(self):
        return self.full_name

    @property
    def full_name(self):
        return f"{self.first_name} {self.last_name}".strip()
