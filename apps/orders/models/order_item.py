from django.core.validators import MinValueValidator
from django.db import models


class OrderItem(models.Model):
    """Order line; price and product details are snapshotted at settlement"""

    order = models.ForeignKey('Order', on_delete=models.CASCADE, related_name='items')
    product = models.ForeignKey('products.Product', on_delete=models.SET_NULL, null=True, related_name='+')
    name = models.CharField(max_length=200, help_text="Product name at purchase")
    image = models.CharField(max_length=500, blank=True, default='')
    quantity = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    unit_price = models.DecimalField(max_digits=12, decimal_places=2, help_text="Unit price at purchase")
    line_total = models.DecimalField(max_digits=12, decimal_places=2, help_text="quantity * unit_price")
    size = models.CharField(max_length=20, blank=True, default='')
    color = models.CharField(max_length=50, blank=True, default='')

    class Meta:
        db_table = 'order_items'

    def __str__(self):
        return f"{self.quantity} x {self.name}"

    def save(self, *args, **kwargs):
        if self.line_total is None:
            self.line_total = self.unit_price * self.quantity
        super().save(*args, **kwargs)
