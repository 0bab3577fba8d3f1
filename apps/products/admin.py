from django.contrib import admin

from .models import Product


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ['name', 'price', 'category', 'in_stock', 'updated_at']
    list_filter = ['in_stock', 'category']
    search_fields = ['name', 'category']
    list_editable = ['in_stock']
    ordering = ['-updated_at']
