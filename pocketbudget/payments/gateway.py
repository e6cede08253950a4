"""
Payment Gateway

Creates payment intents so the UI can collect a card payment.
The gateway is an external collaborator: one request, one response.
"""

from abc import ABC, abstractmethod
from typing import Optional

import httpx
import structlog
from pydantic import BaseModel, Field

from pocketbudget.config import StripeSettings, get_settings


logger = structlog.get_logger(__name__)


class PaymentIntentRequest(BaseModel):
    """Amount is in the currency's minor unit (cents for usd)."""

    amount: int = Field(..., gt=0, description="Amount in minor units")
    currency: str = Field(
        default="usd",
        min_length=3,
        max_length=3,
        description="ISO-4217 currency code, lowercase",
    )


class PaymentIntentResult(BaseModel):
    client_secret: Optional[str] = None
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.client_secret is not None and self.error is None


class PaymentGatewayError(Exception):
    """The gateway refused the request or could not be reached."""
    pass


class PaymentGatewayInterface(ABC):
    @abstractmethod
    async def create_payment_intent(self, request: PaymentIntentRequest) -> str:
        """
        Create a payment intent.

        Returns:
            The intent's client secret

        Raises:
            PaymentGatewayError: on any gateway failure
        """
        pass


class StripePaymentGateway(PaymentGatewayInterface):
    """Stripe payment intents over the REST API."""

    def __init__(
        self,
        settings: Optional[StripeSettings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._settings = settings or get_settings().stripe
        self._transport = transport

    async def create_payment_intent(self, request: PaymentIntentRequest) -> str:
        url = f"{self._settings.api_base.rstrip('/')}/v1/payment_intents"
        data = {
            "amount": str(request.amount),
            "currency": request.currency.lower(),
            "automatic_payment_methods[enabled]": "true",
        }
        try:
            async with httpx.AsyncClient(
                timeout=self._settings.timeout_seconds,
                transport=self._transport,
            ) as client:
                response = await client.post(
                    url,
                    data=data,
                    auth=(self._settings.secret_key, ""),
                )
        except httpx.HTTPError as e:
            raise PaymentGatewayError(f"Stripe request failed: {e}") from e

        if response.status_code != 200:
            message = (response.text or "")[:200]
            try:
                message = response.json()["error"]["message"]
            except (ValueError, KeyError, TypeError):
                pass
            logger.warning(
                "stripe_non_200",
                status_code=response.status_code,
                message=message,
            )
            raise PaymentGatewayError(message or f"Stripe returned {response.status_code}")

        client_secret = response.json().get("client_secret")
        if not client_secret:
            raise PaymentGatewayError("Stripe response had no client_secret")
        return client_secret
