from datetime import timedelta
from decimal import Decimal

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone


def default_cart_expiry():
    return timezone.now() + timedelta(days=30)


class Cart(models.Model):
    """Shopping cart owned by a user or, for guests, a session key"""

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, null=True, blank=True, related_name='cart'
    )
    session_key = models.CharField(max_length=100, unique=True, null=True, blank=True, help_text="Guest session key")
    total = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'), validators=[MinValueValidator(0)])
    expires_at = models.DateTimeField(default=default_cart_expiry)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'carts'
        indexes = [
            models.Index(fields=['-updated_at']),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(user__isnull=False) | models.Q(session_key__isnull=False),
                name='cart_has_owner',
            ),
        ]

    def __str__(self):
        if self.user_id:
            return f"Cart (user {self.user_id})"
        return f"Cart (session {self.session_key})"

    @property
    def item_count(self):
        return sum(item.quantity for item in self.items.all())

    def calculate_total(self):
        """Cart total at current catalog prices (display only, never used for settlement)"""
        return sum((item.product.price * item.quantity for item in self.items.select_related('product')), Decimal('0.00'))


class CartItem(models.Model):
    cart = models.ForeignKey(Cart, on_delete=models.CASCADE, related_name='items')
    product = models.ForeignKey('products.Product', on_delete=models.CASCADE, related_name='+')
    quantity = models.PositiveIntegerField(default=1, validators=[MinValueValidator(1)])
    size = models.CharField(max_length=20, blank=True, default='')
    color = models.CharField(max_length=50, blank=True, default='')

    class Meta:
        db_table = 'cart_items'

    def __str__(self):
        return f"{self.quantity} x {self.product_id}"

    @property
    def variant(self):
        return {'size': self.size, 'color': self.color}
