"""
Customer-facing coupon preview views.
"""
from decimal import Decimal, InvalidOperation

from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated

from apps.common.utils import success_response, error_response
from ..serializers import CouponPublicSerializer, CouponValidateSerializer
from ..services import CouponService


@api_view(['POST'])
@permission_classes([AllowAny])
def validate_coupon(request):
    """Preview a coupon against an order amount; usage is never recorded here"""
    serializer = CouponValidateSerializer(data=request.data)
    if not serializer.is_valid():
        return error_response("Invalid coupon data", serializer.errors)

    coupon, verdict = CouponService.preview(
        serializer.validated_data['code'], serializer.validated_data['order_amount'], request.user
    )
    if not verdict.applicable:
        return error_response(verdict.reason, {'code': coupon.code, 'reason': verdict.reason_code})

    return success_response({
        'coupon': CouponPublicSerializer(coupon).data,
        'discount_amount': str(verdict.discount_amount),
        'final_amount': str(serializer.validated_data['order_amount'] - verdict.discount_amount),
    }, 'Coupon is valid')


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def available_coupons(request):
    order_amount = request.GET.get('order_amount')
    if order_amount:
        try:
            order_amount = Decimal(order_amount)
        except InvalidOperation:
            return error_response("Invalid order amount")
    else:
        order_amount = None

    entries = CouponService.get_available_coupons(request.user, order_amount)
    data = []
    for entry in entries:
        discount = entry['discount_amount']
        data.append({
            **CouponPublicSerializer(entry['coupon']).data,
            'discount_amount': None if discount is None else str(discount),
        })
    return success_response(data, 'Available coupons retrieved successfully')
