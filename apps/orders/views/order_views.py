"""
Order history views.
"""
from rest_framework.permissions import IsAuthenticated
from rest_framework.views import APIView

from apps.common.utils import success_response, error_response, paginated_response
from ..serializers import OrderSerializer, OrderListSerializer, CancelOrderSerializer
from ..services import OrderService


class GetMyOrdersView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        filters = {
            'status': request.GET.get('status', ''),
            'keyword': request.GET.get('keyword', ''),
        }
        orders = OrderService.get_user_orders(request.user, filters)
        return paginated_response(orders, OrderListSerializer, request, 'Orders retrieved successfully')


class GetOrderDetailView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, order_number):
        order = OrderService.get_order(request.user, order_number)
        if order is None:
            return error_response("Order not found", status_code=404)
        return success_response(OrderSerializer(order).data, 'Order retrieved successfully')


class CancelOrderView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request, order_number):
        serializer = CancelOrderSerializer(data=request.data)
        if not serializer.is_valid():
            return error_response("Invalid cancel data", serializer.errors)

        success, message = OrderService.cancel_order(request.user, order_number, serializer.validated_data['reason'])
        if not success:
            status_code = 404 if message == "Order not found" else 400
            return error_response(message, status_code=status_code)

        order = OrderService.get_order(request.user, order_number)
        return success_response(OrderSerializer(order).data, message)
