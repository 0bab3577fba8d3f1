from django.db import models


class Product(models.Model):
    """Catalog product; price and stock flag are read live at settlement time"""
    name = models.CharField(max_length=200)
    price = models.DecimalField(max_digits=12, decimal_places=2, help_text="Current selling price")
    original_price = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True, help_text="Struck-through list price")
    image = models.CharField(max_length=500, blank=True, default='', help_text="Primary image URL")
    category = models.CharField(max_length=100, blank=True, default='')
    description = models.TextField(blank=True, default='')

    in_stock = models.BooleanField(default=True, help_text="Whether the product can currently be ordered")
    # Empty list means the product has no size/color variants
    sizes = models.JSONField(default=list, blank=True, help_text="Available sizes")
    colors = models.JSONField(default=list, blank=True, help_text="Available colors")

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'products'
        indexes = [
            models.Index(fields=['in_stock']),
            models.Index(fields=['category']),
        ]

    def __str__(self):
        return f"{self.name} (id: {self.id})"

    def offers_variant(self, size=None, color=None):
        """Check a size/color combination against the product's variant lists"""
        if size and self.sizes and size not in self.sizes:
            return False
        if color and self.colors and color not in self.colors:
            return False
        return True
