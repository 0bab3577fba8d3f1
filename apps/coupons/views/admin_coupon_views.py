"""
Admin coupon management views (staff only).
"""
import logging

from django.db.models import Q
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAdminUser
from rest_framework.views import APIView

from apps.common.utils import success_response, error_response, paginated_response
from ..models import Coupon
from ..serializers import CouponSerializer
from ..services import CouponService

logger = logging.getLogger(__name__)


class AdminCouponListCreateView(APIView):
    permission_classes = [IsAdminUser]

    def get(self, request):
        coupons = Coupon.objects.all()

        search = request.GET.get('search', '')
        if search:
            coupons = coupons.filter(Q(code__icontains=search) | Q(name__icontains=search))

        is_active = request.GET.get('is_active', '')
        if is_active in ('true', 'false'):
            coupons = coupons.filter(is_active=is_active == 'true')

        return paginated_response(coupons.order_by('-created_at'), CouponSerializer, request,
                                  'Coupons retrieved successfully')

    def post(self, request):
        serializer = CouponSerializer(data=request.data)
        if not serializer.is_valid():
            return error_response("Invalid coupon data", serializer.errors)

        coupon = serializer.save(created_by=request.user)
        logger.info(f"Coupon created: {coupon.code} by {request.user.username}")
        return success_response(CouponSerializer(coupon).data, 'Coupon created successfully',
                                status_code=status.HTTP_201_CREATED)


class AdminCouponDetailView(APIView):
    permission_classes = [IsAdminUser]

    def get(self, request, coupon_id):
        coupon = get_object_or_404(Coupon, pk=coupon_id)
        return success_response(CouponSerializer(coupon).data, 'Coupon retrieved successfully')

    def put(self, request, coupon_id):
        coupon = get_object_or_404(Coupon, pk=coupon_id)
        serializer = CouponSerializer(coupon, data=request.data, partial=True)
        if not serializer.is_valid():
            return error_response("Invalid coupon data", serializer.errors)

        coupon = serializer.save()
        logger.info(f"Coupon updated: {coupon.code} by {request.user.username}")
        return success_response(CouponSerializer(coupon).data, 'Coupon updated successfully')

    def delete(self, request, coupon_id):
        coupon = get_object_or_404(Coupon, pk=coupon_id)
        # CouponInUseError propagates to the exception handler
        CouponService.delete_coupon(coupon, deleted_by=request.user.username)
        return success_response(None, 'Coupon deleted successfully')


@api_view(['POST'])
@permission_classes([IsAdminUser])
def toggle_coupon_status(request, coupon_id):
    coupon = get_object_or_404(Coupon, pk=coupon_id)
    coupon = CouponService.toggle_status(coupon, changed_by=request.user.username)
    message = f"Coupon {'activated' if coupon.is_active else 'deactivated'} successfully"
    return success_response(CouponSerializer(coupon).data, message)


@api_view(['GET'])
@permission_classes([IsAdminUser])
def coupon_stats(request, coupon_id):
    coupon = get_object_or_404(Coupon, pk=coupon_id)
    return success_response(CouponService.get_usage_stats(coupon), 'Coupon statistics retrieved successfully')
