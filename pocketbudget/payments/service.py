"""Payment intent service used by the checkout form."""

from typing import Optional

from pydantic import ValidationError

from pocketbudget.audit import AuditLogger
from pocketbudget.models.audit import AuditEventBuilder
from pocketbudget.payments.gateway import (
    PaymentGatewayError,
    PaymentGatewayInterface,
    PaymentIntentRequest,
    PaymentIntentResult,
    StripePaymentGateway,
)


class PaymentService:
    """
    Wraps a gateway so callers always get a PaymentIntentResult.

    Failures come back as {error}, never as an exception.
    """

    def __init__(
        self,
        gateway: Optional[PaymentGatewayInterface] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._gateway = gateway or StripePaymentGateway()
        self._audit = audit_logger or AuditLogger()

    async def create_payment_intent(self, amount: int, currency: str = "usd") -> PaymentIntentResult:
        try:
            request = PaymentIntentRequest(amount=amount, currency=currency)
        except ValidationError as e:
            error = "; ".join(detail["msg"] for detail in e.errors())
            self._audit.log(AuditEventBuilder.payment_intent(amount, currency, error))
            return PaymentIntentResult(error=error)

        try:
            client_secret = await self._gateway.create_payment_intent(request)
        except PaymentGatewayError as e:
            self._audit.log(AuditEventBuilder.payment_intent(amount, currency, str(e)))
            return PaymentIntentResult(error=str(e))

        self._audit.log(AuditEventBuilder.payment_intent(amount, request.currency))
        return PaymentIntentResult(client_secret=client_secret)
