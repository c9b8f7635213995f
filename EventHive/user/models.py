from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    # Attendee contact defaults are copied from here at checkout time
    phone_number = models.CharField(max_length=15, blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=['email'], name='user_email_idx'),
            models.Index(fields=['username'], name='user_username_idx'),
        ]

    def __str__(self):
        return self.username

    @property
    def display_name(self):
        return self.get_full_name() or self.username
