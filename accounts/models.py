"""Database models for workshop owners (tailors) and their clients."""

from django.conf import settings
from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    """Workshop account.

    Extends Django's :class:`~django.contrib.auth.models.AbstractUser` with the
    business name shown on documents and the owner's notification preferences.
    """

    phone_number = models.CharField(max_length=20, null=True, blank=True)
    business_name = models.CharField(max_length=255, blank=True, default='')
    notify_sms = models.BooleanField(default=True)
    notify_email = models.BooleanField(default=True)

    def __str__(self):
        return self.business_name or self.username


class Client(models.Model):
    """A customer of one workshop. Orders, invoices and payments hang off it."""

    tailor = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='clients')
    name = models.CharField(max_length=255)
    # Stored in E.164 form, see accounts.phones.normalize_phone.
    phone = models.CharField(max_length=20, blank=True, default='')
    email = models.EmailField(blank=True, default='')
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['name']
        indexes = [
            models.Index(fields=['tailor', 'name'], name='client_tailor_name_idx'),
        ]

    def __str__(self):
        return self.name

    @property
    def contact(self) -> dict:
        return {'name': self.name, 'phone': self.phone or None, 'email': self.email or None}
