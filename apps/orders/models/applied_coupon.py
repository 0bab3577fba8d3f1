from django.db import models
from django.utils import timezone


class AppliedCoupon(models.Model):
    """Coupon redemption recorded on an order; never deleted"""

    order = models.ForeignKey('Order', on_delete=models.CASCADE, related_name='applied_coupons')
    coupon = models.ForeignKey('coupons.Coupon', on_delete=models.PROTECT, related_name='redemptions')

    # Snapshots keep history correct when the coupon definition changes later
    code_snapshot = models.CharField(max_length=20)
    kind_snapshot = models.CharField(max_length=20)
    value_snapshot = models.DecimalField(max_digits=12, decimal_places=2)
    discount_amount = models.DecimalField(max_digits=12, decimal_places=2)
    applied_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = 'order_applied_coupons'
        constraints = [
            models.UniqueConstraint(fields=['order', 'coupon'], name='unique_coupon_per_order'),
        ]
        indexes = [
            models.Index(fields=['coupon', '-applied_at']),
        ]

    def __str__(self):
        return f"{self.code_snapshot} on {self.order_id} (-{self.discount_amount})"
