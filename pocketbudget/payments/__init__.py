"""Payment intent package."""

from pocketbudget.payments.gateway import (
    PaymentGatewayError,
    PaymentGatewayInterface,
    PaymentIntentRequest,
    PaymentIntentResult,
    StripePaymentGateway,
)
from pocketbudget.payments.service import PaymentService

__all__ = [
    "PaymentGatewayError",
    "PaymentGatewayInterface",
    "PaymentIntentRequest",
    "PaymentIntentResult",
    "PaymentService",
    "StripePaymentGateway",
]
