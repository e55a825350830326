"""Async Razorpay Orders API wrapper and payment signature verification."""

import hashlib
import hmac
import logging
from typing import Any, Protocol

import httpx

from equimarket.config import settings
from equimarket.errors import PaymentGatewayError

logger = logging.getLogger(__name__)


class PaymentGateway(Protocol):
    async def create_order(
        self, amount: int, currency: str, receipt: str, notes: dict[str, str]
    ) -> dict[str, Any]: ...

    async def fetch_order(self, order_id: str) -> dict[str, Any]: ...


class RazorpayClient:
    """Creates orders on Razorpay. Amounts are in the currency's minor unit (paise)."""

    def __init__(
        self,
        key_id: str,
        key_secret: str,
        api_base: str = "https://api.razorpay.com/v1",
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.key_id = key_id
        self._key_secret = key_secret
        self._api_base = api_base.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._api_base,
            auth=(self.key_id, self._key_secret),
            timeout=self._timeout,
            transport=self._transport,
        )

    async def create_order(
        self, amount: int, currency: str, receipt: str, notes: dict[str, str]
    ) -> dict[str, Any]:
        logger.info("Creating Razorpay order %s for %s %s", receipt, amount, currency)
        try:
            async with self._client() as client:
                response = await client.post(
                    "/orders",
                    json={
                        "amount": amount,
                        "currency": currency,
                        "receipt": receipt,
                        "notes": notes,
                    },
                )
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(
                "Razorpay rejected order %s: %s %s",
                receipt,
                e.response.status_code,
                e.response.text,
            )
            raise PaymentGatewayError("Payment gateway rejected the order") from e
        except httpx.HTTPError as e:
            logger.error("Razorpay order %s failed: %s", receipt, e)
            raise PaymentGatewayError("Payment gateway unavailable") from e

        order = response.json()
        logger.info("Created Razorpay order %s (%s)", order.get("id"), receipt)
        return order

    async def fetch_order(self, order_id: str) -> dict[str, Any]:
        try:
            async with self._client() as client:
                response = await client.get(f"/orders/{order_id}")
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error("Razorpay lookup of order %s failed: %s", order_id, e.response.status_code)
            raise PaymentGatewayError("Payment gateway rejected the order lookup") from e
        except httpx.HTTPError as e:
            logger.error("Razorpay lookup of order %s failed: %s", order_id, e)
            raise PaymentGatewayError("Payment gateway unavailable") from e
        return response.json()


def get_razorpay_client() -> RazorpayClient:
    """Create a RazorpayClient from application settings."""
    return RazorpayClient(
        settings.razorpay.key_id,
        settings.razorpay.key_secret,
        api_base=settings.razorpay.api_base,
    )


def compute_signature(order_id: str, payment_id: str, secret: str) -> str:
    """HMAC-SHA256 of ``order_id|payment_id``, hex encoded, as Razorpay signs checkout results."""
    message = f"{order_id}|{payment_id}".encode("utf-8")
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


def verify_signature(order_id: str, payment_id: str, signature: str, secret: str) -> bool:
    """Constant-time comparison of ``signature`` against the expected HMAC."""
    if not secret:
        logger.error("Payment signature check attempted without a configured secret")
        return False
    expected = compute_signature(order_id, payment_id, secret)
    return hmac.compare_digest(expected.encode("utf-8"), (signature or "").encode("utf-8"))
