"""
Coupon serializers for admin management and customer previews.
"""
from django.core.exceptions import ValidationError as DjangoValidationError
from django.utils import timezone
from rest_framework import serializers

from apps.users.models import User
from ..models import Coupon


class CouponSerializer(serializers.ModelSerializer):
    """Admin serializer: full coupon definition"""

    audience_users = serializers.PrimaryKeyRelatedField(queryset=User.objects.all(), many=True, required=False)
    remaining_uses = serializers.IntegerField(read_only=True)
    is_expired = serializers.BooleanField(read_only=True)

    class Meta:
        model = Coupon
        fields = [
            'id', 'code', 'name', 'description', 'kind', 'value', 'min_purchase_amount',
            'max_discount_amount', 'expiry_date', 'usage_limit', 'usage_count', 'user_usage_limit',
            'is_active', 'audience', 'audience_users', 'remaining_uses', 'is_expired',
            'created_by', 'created_at', 'updated_at',
        ]
        read_only_fields = ['id', 'usage_count', 'created_by', 'created_at', 'updated_at']

    def to_internal_value(self, data):
        if isinstance(data, dict) and isinstance(data.get('code'), str):
            data = {**data, 'code': data['code'].strip().upper()}
        return super().to_internal_value(data)

    def validate_expiry_date(self, value):
        if self.instance is None and value <= timezone.now():
            raise serializers.ValidationError('Expiry date must be in the future')
        return value

    def validate(self, attrs):
        # Run the model's clean() on the merged state so the same rules apply everywhere
        candidate = Coupon(**{
            **{f: getattr(self.instance, f) for f in ('kind', 'value', 'max_discount_amount')
               if self.instance is not None},
            **{k: v for k, v in attrs.items() if k != 'audience_users'},
        })
        try:
            candidate.clean()
        except DjangoValidationError as e:
            raise serializers.ValidationError(e.message_dict)

        usage_limit = attrs.get('usage_limit')
        if self.instance is not None and usage_limit is not None and usage_limit < self.instance.usage_count:
            raise serializers.ValidationError({'usage_limit': 'Usage limit cannot be below the current usage count'})
        return attrs


class CouponPublicSerializer(serializers.ModelSerializer):
    """What customers see about a coupon"""

    class Meta:
        model = Coupon
        fields = ['code', 'name', 'description', 'kind', 'value', 'min_purchase_amount',
                  'max_discount_amount', 'expiry_date']
        read_only_fields = fields


class CouponValidateSerializer(serializers.Serializer):
    code = serializers.CharField(max_length=20)
    order_amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0)
