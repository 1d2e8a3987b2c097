"""
Payment service — authorizers that approve or decline an amount for an order.

The order engine depends only on the PaymentAuthorizer protocol. Two
implementations ship here:
    - StubPaymentAuthorizer: fixed delay, configurable outcome (dev/tests)
    - GatewayPaymentAuthorizer: JSON-over-HTTP adapter for a real gateway
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass
from decimal import Decimal
from typing import Protocol

import httpx
from pydantic import BaseModel, StrictBool, ValidationError

from config import Settings, settings as default_settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PaymentResult:
    approved: bool
    reference: str | None = None
    reason: str | None = None


class GatewayDecision(BaseModel):
    """Body returned by the gateway. Only a JSON `true` approves."""
    approved: StrictBool
    reference: str | None = None
    reason: str | None = None


class PaymentGatewayError(Exception):
    """Raised when the authorizer could not produce a decision."""
    pass


class PaymentAuthorizer(Protocol):
    async def authorize(self, amount: Decimal, order_ref: int) -> PaymentResult:
        ...


class StubPaymentAuthorizer:
    """Simulated authorizer. Approves by default after `delay_seconds`."""

    def __init__(self, *, delay_seconds: float = 0.1, approve: bool = True):
        self.delay_seconds = delay_seconds
        self.approve = approve
        self.calls: list[tuple[Decimal, int]] = []

    async def authorize(self, amount: Decimal, order_ref: int) -> PaymentResult:
        logger.info(f"Processing payment for order {order_ref}, amount: {amount}")
        self.calls.append((amount, order_ref))
        if self.delay_seconds:
            await asyncio.sleep(self.delay_seconds)

        if not self.approve:
            logger.error(f"Payment failed for order {order_ref}")
            return PaymentResult(approved=False, reason="declined")

        reference = f"pay_{uuid.uuid4().hex}_{order_ref}"
        logger.info(f"Payment successful for order {order_ref}, transaction ID: {reference}")
        return PaymentResult(approved=True, reference=reference)


class GatewayPaymentAuthorizer:
    """
    Adapter for an HTTP payment gateway.

    POST {base_url}/authorizations with {"amount": "12.34", "orderRef": 7}.
    Expects {"approved": bool, "reference": str | null, "reason": str | null}.
    Transport failures, non-2xx responses and bodies that do not match
    GatewayDecision raise PaymentGatewayError.
    """

    def __init__(self, base_url: str, *, api_key: str = "", timeout: float = 5.0,
                 transport: httpx.AsyncBaseTransport | None = None):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self._transport = transport

    def _headers(self) -> dict:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def authorize(self, amount: Decimal, order_ref: int) -> PaymentResult:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(
                    f"{self.base_url}/authorizations",
                    headers=self._headers(),
                    json={"amount": str(amount), "orderRef": order_ref},
                )
                response.raise_for_status()
                decision = GatewayDecision.model_validate(response.json())
        except httpx.HTTPError as e:
            logger.error(f"Payment gateway call failed for order {order_ref}: {e}")
            raise PaymentGatewayError(str(e)) from e
        except (ValidationError, ValueError) as e:
            logger.error(f"Malformed gateway response for order {order_ref}: {e}")
            raise PaymentGatewayError(f"Malformed gateway response: {e}") from e

        return PaymentResult(
            approved=decision.approved,
            reference=decision.reference,
            reason=decision.reason,
        )


def get_payment_authorizer(settings: Settings | None = None) -> PaymentAuthorizer:
    """Build the authorizer selected by PAYMENT_PROVIDER."""
    settings = settings or default_settings
    provider = settings.payment_provider.lower()
    if provider == "stub":
        return StubPaymentAuthorizer(
            delay_seconds=settings.payment_stub_delay_seconds,
            approve=settings.payment_stub_approve,
        )
    if provider == "gateway":
        if not settings.payment_gateway_url:
            raise ValueError("PAYMENT_GATEWAY_URL not set in .env")
        return GatewayPaymentAuthorizer(
            settings.payment_gateway_url,
            api_key=settings.payment_gateway_api_key,
            timeout=settings.payment_gateway_timeout_seconds,
        )
    raise ValueError(f"Unknown PAYMENT_PROVIDER: {settings.payment_provider}")
