"""
Payment verification.

``build_verifier`` picks the deterministic mock in mock mode and the Square
Payments API otherwise.  Verifiers never raise: transport and API failures
become a ``failed`` result carrying the error text.
"""
from __future__ import annotations

import asyncio
import logging
import time
from decimal import Decimal
from typing import Any, Optional, Protocol

import httpx

from expense_lane.config import Settings
from expense_lane.errors import ConfigurationError, PaymentApiError
from expense_lane.schemas import Receipt, VerificationResult, VerificationStatus

logger = logging.getLogger(__name__)


class PaymentVerifier(Protocol):
    async def verify(self, receipt: Receipt) -> VerificationResult:
        ...

    async def aclose(self) -> None:
        ...


def to_minor_units(amount: Decimal) -> int:
    """Square amounts are integer cents."""
    return int((amount * 100).to_integral_value())


def _failed(receipt: Receipt, message: str) -> VerificationResult:
    return VerificationResult(
        verified=False,
        order_id=receipt.order_id,
        amount=receipt.amount,
        status=VerificationStatus.FAILED,
        message=message,
    )


# ---------------------------------------------------------------------------
# Mock
# ---------------------------------------------------------------------------

class MockPaymentVerifier:
    """Succeeds for any positive amount after a simulated round trip."""

    def __init__(self, delay: float = 0.0):
        self.delay = delay

    async def verify(self, receipt: Receipt) -> VerificationResult:
        logger.info("[MOCK] Payment verification for order %s", receipt.order_id)
        if self.delay > 0:
            await asyncio.sleep(self.delay)

        verified = receipt.amount > 0
        return VerificationResult(
            verified=verified,
            order_id=receipt.order_id,
            amount=receipt.amount,
            status=VerificationStatus.SUCCESS if verified else VerificationStatus.FAILED,
            transaction_id=f"mock_txn_{int(time.time() * 1000)}",
            message=(
                f"Mock verification successful for ${receipt.amount}"
                if verified
                else "Mock verification failed"
            ),
        )

    async def aclose(self) -> None:
        pass


# ---------------------------------------------------------------------------
# Square
# ---------------------------------------------------------------------------

class SquarePaymentVerifier:
    """Looks the order up in the Square payments listing.

    The HTTP client is created on first use and kept for the process
    lifetime; pass *http_client* to supply one (tests use ``MockTransport``).
    """

    PAYMENTS_PATH = "/v2/payments"

    def __init__(
        self,
        access_token: Optional[str],
        base_url: str = "https://connect.squareup.com",
        api_version: str = "2024-01-18",
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self._access_token = access_token
        self._base_url = base_url
        self._api_version = api_version
        self._client = http_client

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(base_url=self._base_url)
        return self._client

    async def _list_payments(self) -> list[dict[str, Any]]:
        if not self._access_token:
            raise ConfigurationError("SQUARE_ACCESS_TOKEN not configured")

        response = await self._ensure_client().get(
            self.PAYMENTS_PATH,
            headers={
                "Authorization": f"Bearer {self._access_token}",
                "Content-Type": "application/json",
                "Square-Version": self._api_version,
            },
        )
        if response.status_code >= 400:
            raise PaymentApiError(response.status_code, response.reason_phrase)
        data = response.json()
        if not isinstance(data, dict):
            raise PaymentApiError(response.status_code, "unexpected response body")
        payments = data.get("payments") or []
        if not isinstance(payments, list) or not all(isinstance(p, dict) for p in payments):
            raise PaymentApiError(response.status_code, "malformed payments listing")
        return payments

    async def verify(self, receipt: Receipt) -> VerificationResult:
        logger.info("Verifying payment via Square API for order %s", receipt.order_id)
        try:
            payments = await self._list_payments()
        except (httpx.HTTPError, ValueError, ConfigurationError, PaymentApiError) as exc:
            logger.error("Square payment verification failed: %s", exc)
            return _failed(receipt, str(exc))

        payment = next(
            (
                p
                for p in payments
                if receipt.order_id in (p.get("reference_id"), p.get("order_id"))
            ),
            None,
        )
        if payment is None:
            return _failed(receipt, "Payment not found in Square")

        amount_money = payment.get("amount_money")
        if not isinstance(amount_money, dict):
            logger.error("Square payment %s has no amount_money object", payment.get("id"))
            return _failed(receipt, "Malformed Square payment: missing amount_money")
        paid_minor = amount_money.get("amount")
        verified = (
            payment.get("status") == "COMPLETED"
            and paid_minor == to_minor_units(receipt.amount)
        )
        return VerificationResult(
            verified=verified,
            order_id=receipt.order_id,
            amount=receipt.amount,
            status=VerificationStatus.SUCCESS if verified else VerificationStatus.PENDING,
            transaction_id=payment.get("id"),
            message="Payment verified" if verified else "Payment status mismatch",
        )

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None


def build_verifier(settings: Settings) -> PaymentVerifier:
    if settings.MOCK_MODE:
        return MockPaymentVerifier(delay=settings.MOCK_VERIFY_DELAY)
    return SquarePaymentVerifier(
        access_token=settings.SQUARE_ACCESS_TOKEN,
        base_url=settings.SQUARE_BASE_URL,
        api_version=settings.SQUARE_API_VERSION,
    )
