from django.contrib import admin

from .models import Order, OrderItem, AppliedCoupon


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    readonly_fields = ['product', 'name', 'quantity', 'unit_price', 'line_total', 'size', 'color']


class AppliedCouponInline(admin.TabularInline):
    model = AppliedCoupon
    extra = 0
    readonly_fields = ['coupon', 'code_snapshot', 'kind_snapshot', 'value_snapshot', 'discount_amount', 'applied_at']


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ['order_number', 'user', 'total', 'payment_status', 'order_status', 'created_at']
    list_filter = ['payment_status', 'order_status', 'created_at']
    search_fields = ['order_number', 'payment_confirmation_ref', 'user__username', 'user__email']
    readonly_fields = [
        'order_number', 'payment_confirmation_ref', 'payment_details', 'subtotal', 'shipping_cost',
        'tax', 'total_discount', 'total', 'currency', 'created_at', 'updated_at',
    ]
    inlines = [OrderItemInline, AppliedCouponInline]
