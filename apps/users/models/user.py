from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    """Storefront customer account"""
    phone = models.CharField(max_length=20, unique=True, null=True, blank=True)
    # Incremented once per settled order (never recomputed from history)
    orders_count = models.PositiveIntegerField(default=0, help_text="Number of settled orders")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'users'
        verbose_name = 'User'
        verbose_name_plural = 'Users'

    def __str__(self):
        return self.username or self.phone or f"User {self.id}"

    @property
    def display_name(self):
        full_name = self.get_full_name()
        return full_name or self.username
