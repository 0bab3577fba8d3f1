"""
Order history for the order owner (listing, detail, cancellation) and
order management for staff.
"""
import logging
from decimal import Decimal
from typing import Dict, Optional, Tuple

from django.db import transaction
from django.db.models import Count, Q, QuerySet, Sum
from django.utils import timezone

from apps.users.models import User
from ..models import Order

logger = logging.getLogger(__name__)

ADMIN_SORT_FIELDS = ('created_at', 'total', 'order_status')


class OrderService:
    """Service class for settled orders"""

    @staticmethod
    def get_user_orders(user: User, filters: Optional[Dict] = None) -> QuerySet:
        """Get user's orders with filtering"""
        filters = filters or {}
        queryset = Order.objects.filter(user=user).prefetch_related('items', 'applied_coupons')

        status = filters.get('status')
        if status:
            queryset = queryset.filter(order_status=status)

        keyword = filters.get('keyword')
        if keyword:
            queryset = queryset.filter(order_number__icontains=keyword)

        return queryset.order_by('-created_at')

    @staticmethod
    def get_order(user: User, order_number: str) -> Optional[Order]:
        return (Order.objects.filter(user=user, order_number=order_number)
                .prefetch_related('items', 'applied_coupons').first())

    @staticmethod
    @transaction.atomic
    def cancel_order(user: User, order_number: str, reason: str = '') -> Tuple[bool, str]:
        """Cancel an order that has not shipped yet"""
        order = Order.objects.select_for_update().filter(user=user, order_number=order_number).first()
        if order is None:
            return False, "Order not found"

        if not order.can_cancel:
            return False, f"Order cannot be cancelled in current status ({order.order_status})"

        order.order_status = Order.STATUS_CANCELLED
        order.cancelled_at = timezone.now()
        order.cancel_reason = reason or 'Cancelled by customer'
        order.save(update_fields=['order_status', 'cancelled_at', 'cancel_reason', 'updated_at'])

        logger.info(f"Order {order.order_number} cancelled by user {user.pk}")
        return True, "Order cancelled successfully"

    @staticmethod
    def get_all_orders(filters: Optional[Dict] = None) -> QuerySet:
        """All orders for staff, with filtering and sorting"""
        filters = filters or {}
        queryset = Order.objects.select_related('user').prefetch_related('items')

        status = filters.get('status')
        if status:
            queryset = queryset.filter(order_status=status)

        payment_status = filters.get('payment_status')
        if payment_status:
            queryset = queryset.filter(payment_status=payment_status)

        keyword = filters.get('keyword')
        if keyword:
            queryset = queryset.filter(
                Q(order_number__icontains=keyword) | Q(user__username__icontains=keyword) | Q(user__email__icontains=keyword)
            )

        sort_by = filters.get('sort_by') if filters.get('sort_by') in ADMIN_SORT_FIELDS else 'created_at'
        prefix = '' if filters.get('sort_order') == 'asc' else '-'
        return queryset.order_by(f"{prefix}{sort_by}")

    @staticmethod
    def get_order_stats() -> Dict:
        """Order counts and revenue per status"""
        breakdown = (Order.objects.values('order_status')
                     .annotate(count=Count('id'), total_revenue=Sum('total'))
                     .order_by('order_status'))
        totals = Order.objects.aggregate(total_orders=Count('id'), total_revenue=Sum('total'))
        return {
            'status_breakdown': [
                {'status': row['order_status'], 'count': row['count'], 'total_revenue': row['total_revenue'] or Decimal('0.00')}
                for row in breakdown
            ],
            'total_orders': totals['total_orders'] or 0,
            'total_revenue': totals['total_revenue'] or Decimal('0.00'),
        }

    @staticmethod
    @transaction.atomic
    def update_order_status(order_number: str, order_status: str, payment_status: Optional[str] = None,
                            tracking_number: Optional[str] = None, notes: Optional[str] = None,
                            changed_by: str = '') -> Tuple[bool, str, Optional[Order]]:
        """Move an order through fulfilment; a cancelled order stays cancelled"""
        order = Order.objects.select_for_update().filter(order_number=order_number).first()
        if order is None:
            return False, "Order not found", None

        if order.order_status == Order.STATUS_CANCELLED and order_status != Order.STATUS_CANCELLED:
            return False, "Cancelled orders cannot be reopened", order

        order.order_status = order_status
        if payment_status:
            order.payment_status = payment_status
        if tracking_number:
            order.tracking_number = tracking_number
        if notes:
            order.notes = notes
        if order_status == Order.STATUS_CANCELLED and not order.cancel_reason:
            order.cancel_reason = 'Cancelled by staff'
        order.save()

        logger.info(f"Order {order.order_number} set to {order.order_status}/{order.payment_status} by {changed_by}")
        return True, "Order status updated successfully", order
