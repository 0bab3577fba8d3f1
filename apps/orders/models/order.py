import uuid

from django.conf import settings
from django.db import models
from django.utils import timezone


def generate_order_number():
    return f"ORD-{timezone.now():%Y%m%d%H%M%S}-{uuid.uuid4().hex[:6].upper()}"


class Order(models.Model):
    """Settled order; money fields are fixed at settlement and never recomputed"""

    PAYMENT_PENDING = 'pending'
    PAYMENT_PAID = 'paid'
    PAYMENT_FAILED = 'failed'
    PAYMENT_REFUNDED = 'refunded'
    PAYMENT_STATUS_CHOICES = [
        (PAYMENT_PENDING, 'Pending'),
        (PAYMENT_PAID, 'Paid'),
        (PAYMENT_FAILED, 'Failed'),
        (PAYMENT_REFUNDED, 'Refunded'),
    ]

    STATUS_PENDING = 'pending'
    STATUS_CONFIRMED = 'confirmed'
    STATUS_PROCESSING = 'processing'
    STATUS_SHIPPED = 'shipped'
    STATUS_DELIVERED = 'delivered'
    STATUS_CANCELLED = 'cancelled'
    ORDER_STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_CONFIRMED, 'Confirmed'),
        (STATUS_PROCESSING, 'Processing'),
        (STATUS_SHIPPED, 'Shipped'),
        (STATUS_DELIVERED, 'Delivered'),
        (STATUS_CANCELLED, 'Cancelled'),
    ]
    CANCELLABLE_STATUSES = (STATUS_PENDING, STATUS_CONFIRMED, STATUS_PROCESSING)

    order_number = models.CharField(max_length=40, unique=True, default=generate_order_number)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.PROTECT, null=True, blank=True, related_name='orders'
    )
    guest_session_key = models.CharField(max_length=100, blank=True, default='', help_text="Session key for guest checkout")

    shipping_address = models.JSONField(default=dict, help_text="fullName, address, city, state, postalCode, country, phone")

    subtotal = models.DecimalField(max_digits=12, decimal_places=2)
    shipping_cost = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    tax = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    total_discount = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    total = models.DecimalField(max_digits=12, decimal_places=2)
    currency = models.CharField(max_length=3, default='INR')

    payment_method = models.CharField(max_length=30, default='razorpay')
    payment_status = models.CharField(max_length=20, choices=PAYMENT_STATUS_CHOICES, default=PAYMENT_PENDING)
    order_status = models.CharField(max_length=20, choices=ORDER_STATUS_CHOICES, default=STATUS_PENDING)

    # Provider payment id; the unique index is the idempotency key
    payment_confirmation_ref = models.CharField(max_length=100, unique=True)
    payment_details = models.JSONField(default=dict, help_text="Provider order id, captured amount, currency, method")

    notes = models.TextField(blank=True, default='')
    tracking_number = models.CharField(max_length=100, blank=True, default='')
    estimated_delivery = models.DateTimeField(null=True, blank=True)
    delivered_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    cancel_reason = models.CharField(max_length=200, blank=True, default='')

    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'orders'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['user', '-created_at']),
            models.Index(fields=['order_status']),
            models.Index(fields=['payment_status']),
        ]
        constraints = [
            models.CheckConstraint(condition=models.Q(total__gte=0), name='order_total_non_negative'),
            models.CheckConstraint(condition=models.Q(total_discount__gte=0), name='order_discount_non_negative'),
            models.CheckConstraint(
                condition=models.Q(total_discount__lte=models.F('subtotal')),
                name='order_discount_within_subtotal',
            ),
        ]

    def __str__(self):
        return f"Order {self.order_number}"

    @property
    def totals_balance(self):
        """True when the stored components add up to the stored total"""
        return self.total == self.subtotal + self.shipping_cost + self.tax - self.total_discount

    @property
    def can_cancel(self):
        return self.order_status in self.CANCELLABLE_STATUSES

    def save(self, *args, **kwargs):
        if self.order_status == self.STATUS_DELIVERED and not self.delivered_at:
            self.delivered_at = timezone.now()
        elif self.order_status == self.STATUS_CANCELLED and not self.cancelled_at:
            self.cancelled_at = timezone.now()
        super().save(*args, **kwargs)
