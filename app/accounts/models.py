"""
User models for the tutoring CRM.
"""
import uuid
from django.contrib.auth.models import AbstractBaseUser, PermissionsMixin
from django.db import models
from django.utils.translation import gettext_lazy as _
from core.fields import EncryptedTextField
from .managers import UserManager


class User(AbstractBaseUser, PermissionsMixin):
    """
    Back-office user, logging in with email.

    Recorded as the acting identity on settlement notes, voucher
    redemptions and ratings.
    """

    ROLE_CHOICES = [
        ('ADMIN', _('Administrator')),
        ('STAFF', _('Staff')),
        ('TUTOR', _('Tutor')),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    email = models.EmailField(_('email address'), unique=True)
    first_name = models.CharField(_('first name'), max_length=150)
    last_name = models.CharField(_('last name'), max_length=150)
    role = models.CharField(_('role'), max_length=10, choices=ROLE_CHOICES, default='STAFF')
    phone = EncryptedTextField(_('phone number'), blank=True)
    is_active = models.BooleanField(_('active'), default=True)
    is_staff = models.BooleanField(_('staff status'), default=False)
    date_joined = models.DateTimeField(_('date joined'), auto_now_add=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = UserManager()

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = ['first_name', 'last_name']

    class Meta:
        verbose_name = _('User')
        verbose_name_plural = _('Users')
        db_table = 'accounts_user'

    def __str__(self):
        return self.email

    @property
    def full_name(self):
        """Return full name."""
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def is_admin(self):
        return self.role == 'ADMIN' or self.is_superuser

    @property
    def is_tutor(self):
        return self.role == 'TUTOR'
