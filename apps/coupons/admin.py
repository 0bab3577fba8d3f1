from django.contrib import admin

from .models import Coupon


@admin.register(Coupon)
class CouponAdmin(admin.ModelAdmin):
    list_display = ['code', 'name', 'kind', 'value', 'usage_count', 'usage_limit', 'is_active', 'expiry_date']
    list_filter = ['kind', 'is_active', 'audience']
    search_fields = ['code', 'name']
    readonly_fields = ['usage_count', 'created_at', 'updated_at']
    filter_horizontal = ['audience_users']

    def has_delete_permission(self, request, obj=None):
        # Redeemed coupons are protected; deactivate them instead
        if obj is not None and obj.redemptions.exists():
            return False
        return super().has_delete_permission(request, obj)
