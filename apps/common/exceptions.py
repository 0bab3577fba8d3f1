"""
Custom exception handlers for consistent API responses
"""
from rest_framework.views import exception_handler
from rest_framework.response import Response
from rest_framework import status
import logging

from .errors import SettlementError, PaymentVerificationError

logger = logging.getLogger(__name__)
security_logger = logging.getLogger('security')


def settlement_error_response(exc: SettlementError) -> Response:
    """Render a settlement error in the standard {code, msg, errors} envelope"""
    if isinstance(exc, PaymentVerificationError):
        # Full detail stays server-side
        security_logger.warning(f"Payment verification failed ({exc.kind}): {exc} {exc.detail}")
    else:
        logger.info(f"Settlement rejected ({exc.kind}): {exc.message}")

    return Response({
        'code': exc.status_code,
        'msg': exc.public_message,
        'errors': exc.public_payload(),
    }, status=exc.status_code)


def custom_exception_handler(exc, context):
    """
    Custom exception handler that returns consistent error responses
    """
    if isinstance(exc, SettlementError):
        return settlement_error_response(exc)

    # Call REST framework's default exception handler first
    response = exception_handler(exc, context)

    if response is not None:
        logger.error(f"API Exception: {exc}", exc_info=True)

        custom_response_data = {
            'code': response.status_code,
            'msg': 'An error occurred',
            'errors': response.data
        }

        if response.status_code == status.HTTP_400_BAD_REQUEST:
            custom_response_data['msg'] = 'Validation error'
        elif response.status_code == status.HTTP_401_UNAUTHORIZED:
            custom_response_data['msg'] = 'Authentication required'
        elif response.status_code == status.HTTP_403_FORBIDDEN:
            custom_response_data['msg'] = 'Permission denied'
        elif response.status_code == status.HTTP_404_NOT_FOUND:
            custom_response_data['msg'] = 'Resource not found'
        elif response.status_code == status.HTTP_405_METHOD_NOT_ALLOWED:
            custom_response_data['msg'] = 'Method not allowed'
        elif response.status_code >= 500:
            custom_response_data['msg'] = 'Internal server error'
            # Don't expose internal errors to non-staff callers
            request = context.get('request')
            if request is None or not getattr(request.user, 'is_staff', False):
                custom_response_data['errors'] = {'detail': 'Internal server error'}

        response.data = custom_response_data

    return response
