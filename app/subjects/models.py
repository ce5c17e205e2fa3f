"""
Subject catalog referenced by settlement line items.
"""
import uuid
from django.db import models
from django.utils.translation import gettext_lazy as _


class Subject(models.Model):
    """Taught subject."""

    CATEGORY_CHOICES = [
        ('SCIENCES', _('Sciences')),
        ('LANGUAGES', _('Languages')),
        ('HUMANITIES', _('Humanities')),
        ('ARTS', _('Arts')),
        ('OTHER', _('Other')),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(_('name'), max_length=100, unique=True)
    category = models.CharField(_('category'), max_length=20, choices=CATEGORY_CHOICES, default='OTHER')
    description = models.TextField(_('description'), blank=True)
    is_active = models.BooleanField(_('active'), default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _('Subject')
        verbose_name_plural = _('Subjects')
        ordering = ['name']

    def __str__(self):
        return self.name
