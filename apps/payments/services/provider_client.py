"""
Payment provider API client.
"""
import logging
import os
from dataclasses import dataclass, field
from datetime import datetime, timezone as dt_timezone
from typing import Optional

import certifi
import requests
from django.conf import settings
from django.utils.module_loading import import_string

from apps.common.errors import ProviderUnavailableError

logger = logging.getLogger(__name__)

STATUS_CAPTURED = 'captured'


@dataclass(frozen=True)
class ProviderPayment:
    """Provider's authoritative record of a payment; ``amount`` is in minor units"""
    payment_id: str
    status: str
    amount: int
    currency: str
    method: str = ''
    order_id: str = ''
    created_at: Optional[datetime] = None
    raw: dict = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_api(cls, data: dict):
        created_at = data.get('created_at')
        return cls(
            payment_id=data.get('id', ''),
            status=data.get('status', ''),
            amount=int(data.get('amount') or 0),
            currency=(data.get('currency') or '').upper(),
            method=data.get('method') or '',
            order_id=data.get('order_id') or '',
            created_at=datetime.fromtimestamp(created_at, tz=dt_timezone.utc) if created_at else None,
            raw=data,
        )


@dataclass(frozen=True)
class ProviderOrder:
    """Provider-side order the customer pays against; ``amount`` is in minor units"""
    order_id: str
    amount: int
    currency: str
    receipt: str = ''
    status: str = ''

    @classmethod
    def from_api(cls, data: dict):
        return cls(
            order_id=data.get('id', ''),
            amount=int(data.get('amount') or 0),
            currency=(data.get('currency') or '').upper(),
            receipt=data.get('receipt') or '',
            status=data.get('status') or '',
        )


class RazorpayClient:
    """Razorpay REST client for the calls checkout and settlement need"""

    def __init__(self, key_id=None, key_secret=None, base_url=None, timeout=None):
        self.key_id = key_id or settings.RAZORPAY_KEY_ID
        self.key_secret = key_secret or settings.RAZORPAY_KEY_SECRET
        self.base_url = (base_url or settings.PAYMENT_PROVIDER_BASE_URL).rstrip('/')
        self.timeout = timeout or settings.PAYMENT_PROVIDER_TIMEOUT
        self.verify_ssl = os.getenv('PAYMENT_PROVIDER_VERIFY_SSL', certifi.where())

        if not self.key_id or not self.key_secret:
            raise ValueError(
                "Payment provider configuration is missing. Please set RAZORPAY_KEY_ID and RAZORPAY_KEY_SECRET in environment variables."
            )

    def _request(self, method: str, path: str, ref: str, **kwargs) -> dict:
        """
        Call the provider and return the decoded JSON body.

        Any network error, timeout, non-2xx answer or unreadable body raises
        ProviderUnavailableError: an unverifiable payment is never settled.
        """
        url = f"{self.base_url}{path}"
        try:
            response = getattr(requests, method)(
                url,
                auth=(self.key_id, self.key_secret),
                timeout=self.timeout,
                verify=self.verify_ssl,
                **kwargs,
            )
            response.raise_for_status()
            return response.json()
        except requests.Timeout as e:
            logger.warning(f"Payment provider timed out on {path}: {e}")
            raise ProviderUnavailableError('Payment provider timed out', detail={'ref': ref}) from e
        except requests.RequestException as e:
            logger.warning(f"Payment provider request failed on {path}: {e}")
            raise ProviderUnavailableError(detail={'ref': ref, 'error': str(e)}) from e
        except ValueError as e:
            logger.warning(f"Invalid response from payment provider on {path}")
            raise ProviderUnavailableError('Invalid response from payment provider', detail={'ref': ref}) from e

    def fetch_payment(self, payment_id: str) -> ProviderPayment:
        """Fetch a payment by id"""
        return ProviderPayment.from_api(self._request('get', f"/payments/{payment_id}", payment_id))

    def create_order(self, amount_minor_units: int, currency: str, receipt: str, notes: dict = None) -> ProviderOrder:
        """Create the provider order a checkout pays against, for a server-computed amount"""
        payload = {
            'amount': int(amount_minor_units),
            'currency': currency,
            'receipt': receipt,
            'notes': notes or {},
        }
        provider_order = ProviderOrder.from_api(self._request('post', '/orders', receipt, json=payload))
        logger.info(f"Provider order {provider_order.order_id} created for {amount_minor_units} {currency} ({receipt})")
        return provider_order


def get_payment_provider_client():
    """Instantiate the client class named by the PAYMENT_PROVIDER_CLIENT setting"""
    client_class = import_string(
        getattr(settings, 'PAYMENT_PROVIDER_CLIENT', 'apps.payments.services.provider_client.RazorpayClient')
    )
    return client_class()
