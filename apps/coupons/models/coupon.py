from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator, RegexValidator, MinLengthValidator
from django.db import models
from django.utils import timezone


class Coupon(models.Model):
    """Promotional coupon definition"""

    KIND_FLAT = 'flat'
    KIND_PERCENTAGE = 'percentage'
    KIND_CHOICES = [
        (KIND_FLAT, 'Flat amount'),
        (KIND_PERCENTAGE, 'Percentage'),
    ]

    AUDIENCE_PUBLIC = 'public'
    AUDIENCE_ALLOW_LIST = 'allow_list'
    AUDIENCE_DENY_LIST = 'deny_list'
    AUDIENCE_CHOICES = [
        (AUDIENCE_PUBLIC, 'Everyone'),
        (AUDIENCE_ALLOW_LIST, 'Only listed users'),
        (AUDIENCE_DENY_LIST, 'Everyone except listed users'),
    ]

    code = models.CharField(
        max_length=20,
        unique=True,
        validators=[
            MinLengthValidator(3),
            RegexValidator(r'^[A-Z0-9]+$', 'Coupon code can only contain uppercase letters and numbers'),
        ],
        help_text="Stored uppercase",
    )
    name = models.CharField(max_length=100)
    description = models.CharField(max_length=500, blank=True, default='')

    kind = models.CharField(max_length=20, choices=KIND_CHOICES)
    value = models.DecimalField(max_digits=12, decimal_places=2, validators=[MinValueValidator(0)])

    # Conditions
    min_purchase_amount = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal('0.00'), validators=[MinValueValidator(0)]
    )
    max_discount_amount = models.DecimalField(
        max_digits=12, decimal_places=2, null=True, blank=True, validators=[MinValueValidator(0)],
        help_text="Cap for percentage coupons",
    )
    expiry_date = models.DateTimeField()

    usage_limit = models.PositiveIntegerField(null=True, blank=True, help_text="Total redemptions allowed, empty for unlimited")
    usage_count = models.PositiveIntegerField(default=0)
    user_usage_limit = models.PositiveIntegerField(default=1, validators=[MinValueValidator(1)])

    is_active = models.BooleanField(default=True)
    audience = models.CharField(max_length=20, choices=AUDIENCE_CHOICES, default=AUDIENCE_PUBLIC)
    audience_users = models.ManyToManyField(
        settings.AUTH_USER_MODEL, blank=True, related_name='targeted_coupons',
        help_text="Allow list or deny list members, depending on audience",
    )

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='created_coupons'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'coupons'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['is_active', 'expiry_date']),
            models.Index(fields=['kind']),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(usage_limit__isnull=True) | models.Q(usage_count__lte=models.F('usage_limit')),
                name='coupon_usage_within_limit',
            ),
            models.CheckConstraint(
                condition=~models.Q(kind='percentage') | models.Q(max_discount_amount__isnull=False),
                name='percentage_coupon_has_cap',
            ),
        ]

    def __str__(self):
        return f"{self.code} ({self.kind} {self.value})"

    def clean(self):
        super().clean()
        if self.code:
            self.code = self.code.strip().upper()
        if self.kind == self.KIND_PERCENTAGE:
            if self.value is not None and self.value > 100:
                raise ValidationError({'value': 'Percentage discount cannot exceed 100%'})
            if self.max_discount_amount is None:
                raise ValidationError({'max_discount_amount': 'Maximum discount amount is required for percentage coupons'})

    def save(self, *args, **kwargs):
        if self.code:
            self.code = self.code.strip().upper()
        if self.kind == self.KIND_FLAT:
            self.max_discount_amount = None
        super().save(*args, **kwargs)

    @property
    def is_expired(self):
        return timezone.now() > self.expiry_date

    @property
    def remaining_uses(self):
        if self.usage_limit is None:
            return None
        return max(0, self.usage_limit - self.usage_count)
