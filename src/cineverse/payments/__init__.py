"""Mobile-money subscription billing."""

from cineverse.payments.providers import AIRTEL, MTN, PaymentProvider, ProviderReceipt, SandboxProvider
from cineverse.payments.service import (
    PaymentProviderError,
    PaymentService,
    generate_reference,
    normalize_phone,
)

__all__ = [
    "AIRTEL",
    "MTN",
    "PaymentProvider",
    "PaymentProviderError",
    "PaymentService",
    "ProviderReceipt",
    "SandboxProvider",
    "generate_reference",
    "normalize_phone",
]
