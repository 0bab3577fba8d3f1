"""
Order serializers for list and detail responses.
"""
from rest_framework import serializers
from ..models import Order, OrderItem, AppliedCoupon


class OrderItemSerializer(serializers.ModelSerializer):
    """Serializer for order items"""

    class Meta:
        model = OrderItem
        fields = ['id', 'product', 'name', 'image', 'quantity', 'unit_price', 'line_total', 'size', 'color']


class AppliedCouponSerializer(serializers.ModelSerializer):
    code = serializers.CharField(source='code_snapshot', read_only=True)
    kind = serializers.CharField(source='kind_snapshot', read_only=True)
    value = serializers.DecimalField(source='value_snapshot', max_digits=12, decimal_places=2, read_only=True)

    class Meta:
        model = AppliedCoupon
        fields = ['code', 'kind', 'value', 'discount_amount', 'applied_at']


class OrderSerializer(serializers.ModelSerializer):
    """Full order detail"""

    items = OrderItemSerializer(many=True, read_only=True)
    applied_coupons = AppliedCouponSerializer(many=True, read_only=True)
    can_cancel = serializers.BooleanField(read_only=True)

    class Meta:
        model = Order
        fields = [
            'order_number', 'items', 'shipping_address', 'subtotal', 'shipping_cost', 'tax',
            'applied_coupons', 'total_discount', 'total', 'currency', 'payment_method',
            'payment_status', 'order_status', 'payment_confirmation_ref', 'notes', 'tracking_number',
            'estimated_delivery', 'delivered_at', 'cancelled_at', 'cancel_reason', 'can_cancel',
            'created_at', 'updated_at',
        ]


class OrderListSerializer(serializers.ModelSerializer):
    """Simplified serializer for order lists"""

    item_count = serializers.SerializerMethodField()

    class Meta:
        model = Order
        fields = ['order_number', 'total', 'currency', 'payment_status', 'order_status', 'item_count', 'created_at']

    def get_item_count(self, obj):
        return sum(item.quantity for item in obj.items.all())


class AdminOrderListSerializer(OrderListSerializer):
    """Order list for staff, with the customer"""

    customer = serializers.SerializerMethodField()

    class Meta(OrderListSerializer.Meta):
        fields = OrderListSerializer.Meta.fields + ['customer', 'payment_confirmation_ref', 'tracking_number']

    def get_customer(self, obj):
        if obj.user is None:
            return None
        return {'id': obj.user.pk, 'username': obj.user.username, 'email': obj.user.email}


class UpdateOrderStatusSerializer(serializers.Serializer):
    order_status = serializers.ChoiceField(choices=Order.ORDER_STATUS_CHOICES)
    payment_status = serializers.ChoiceField(choices=Order.PAYMENT_STATUS_CHOICES, required=False)
    tracking_number = serializers.CharField(max_length=100, required=False, allow_blank=True)
    notes = serializers.CharField(max_length=500, required=False, allow_blank=True)
