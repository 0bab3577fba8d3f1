"""
Admin order management views (staff only).
"""
import logging

from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAdminUser
from rest_framework.views import APIView

from apps.common.utils import success_response, error_response, paginated_response
from ..serializers import AdminOrderListSerializer, OrderSerializer, UpdateOrderStatusSerializer
from ..services import OrderService

logger = logging.getLogger(__name__)


class AdminOrderListView(APIView):
    permission_classes = [IsAdminUser]

    def get(self, request):
        filters = {
            'status': request.GET.get('status', ''),
            'payment_status': request.GET.get('payment_status', ''),
            'keyword': request.GET.get('keyword', ''),
            'sort_by': request.GET.get('sort_by', ''),
            'sort_order': request.GET.get('sort_order', ''),
        }
        orders = OrderService.get_all_orders(filters)
        return paginated_response(orders, AdminOrderListSerializer, request, 'Orders retrieved successfully')


@api_view(['GET'])
@permission_classes([IsAdminUser])
def order_stats(request):
    return success_response(OrderService.get_order_stats(), 'Order statistics retrieved successfully')


@api_view(['PUT'])
@permission_classes([IsAdminUser])
def update_order_status(request, order_number):
    serializer = UpdateOrderStatusSerializer(data=request.data)
    if not serializer.is_valid():
        return error_response("Invalid status data", serializer.errors)

    success, message, order = OrderService.update_order_status(
        order_number, changed_by=request.user.username, **serializer.validated_data
    )
    if not success:
        return error_response(message, status_code=404 if order is None else 400)
    return success_response(OrderSerializer(order).data, message)
