"""
Encrypted model fields for personal data stored by the CRM.
"""
import base64
import hashlib
import binascii
from cryptography.fernet import Fernet, InvalidToken
from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
from django.db import models
from django.utils.translation import gettext_lazy as _


def _build_fernet(key):
    if isinstance(key, str):
        key = key.encode()
    try:
        return Fernet(key)
    except (ValueError, binascii.Error):
        # Not a Fernet key: derive one from the configured secret
        return Fernet(base64.urlsafe_b64encode(hashlib.sha256(key).digest()))


class EncryptedFieldMixin:
    """Transparently encrypts values on save and decrypts them on load."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._fernet = None

    @property
    def fernet(self):
        if self._fernet is None:
            key = getattr(settings, 'PII_ENCRYPTION_KEY', None)
            if not key:
                raise ImproperlyConfigured("PII_ENCRYPTION_KEY setting is required for encrypted fields")
            self._fernet = _build_fernet(key)
        return self._fernet

    def encrypt_value(self, value):
        if value is None or value == '':
            return value
        return self.fernet.encrypt(str(value).encode('utf-8')).decode('utf-8')

    def decrypt_value(self, value):
        if value is None or value == '':
            return value
        try:
            return self.fernet.decrypt(value.encode('utf-8')).decode('utf-8')
        except InvalidToken:
            # Rows written before encryption was enabled are stored in clear
            return value

    def from_db_value(self, value, expression, connection):
        return self.decrypt_value(value)

    def get_prep_value(self, value):
        value = super().get_prep_value(value)
        return self.encrypt_value(value)


class EncryptedTextField(EncryptedFieldMixin, models.TextField):
    """Encrypted text field."""

    description = _("Encrypted text field")


class EncryptedEmailField(EncryptedFieldMixin, models.EmailField):
    """Encrypted email field. Validation runs on the clear value."""

    description = _("Encrypted email field")

    def __init__(self, *args, **kwargs):
        # Ciphertext is longer than the address it protects
        kwargs.setdefault('max_length', 512)
        super().__init__(*args, **kwargs)
