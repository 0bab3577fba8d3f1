"""
Payment services module.
"""
from .provider_client import ProviderOrder, ProviderPayment, RazorpayClient, get_payment_provider_client
from .payment_verifier import PaymentConfirmation, PaymentVerifier

__all__ = [
    'ProviderOrder',
    'ProviderPayment',
    'RazorpayClient',
    'get_payment_provider_client',
    'PaymentConfirmation',
    'PaymentVerifier',
]
