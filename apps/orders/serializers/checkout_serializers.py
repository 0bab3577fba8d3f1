"""
Request serializers for checkout preview, settlement and cancellation.

These only check the request shape; business validation (address lengths,
coupon rules, payment verification) happens in SettlementService.
"""
from rest_framework import serializers


class ShippingAddressSerializer(serializers.Serializer):
    full_name = serializers.CharField(max_length=100, required=False, allow_blank=True)
    street = serializers.CharField(allow_blank=True, trim_whitespace=False)
    city = serializers.CharField(allow_blank=True, trim_whitespace=False)
    state = serializers.CharField(allow_blank=True, trim_whitespace=False)
    zip_code = serializers.CharField(allow_blank=True, trim_whitespace=False)
    country = serializers.CharField(allow_blank=True, trim_whitespace=False)
    phone = serializers.CharField(max_length=20, required=False, allow_blank=True)


class PaymentConfirmationSerializer(serializers.Serializer):
    provider_order_id = serializers.CharField(max_length=100)
    provider_payment_id = serializers.CharField(max_length=100)
    provider_signature = serializers.CharField(max_length=256)


class CheckoutPreviewSerializer(serializers.Serializer):
    coupon_codes = serializers.ListField(
        child=serializers.CharField(max_length=20), required=False, default=list, max_length=10
    )


class SettleOrderSerializer(CheckoutPreviewSerializer):
    payment_confirmation = PaymentConfirmationSerializer()
    shipping_address = ShippingAddressSerializer()
    expected_total = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, allow_null=True)
    notes = serializers.CharField(max_length=500, required=False, allow_blank=True, default='')


class CancelOrderSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=200, required=False, allow_blank=True, default='')
