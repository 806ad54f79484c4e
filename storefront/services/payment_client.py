# storefront/services/payment_client.py
import uuid
from dataclasses import dataclass
from decimal import Decimal
from typing import Protocol

import requests

from storefront.domain.errors import PaymentGatewayError
from storefront.utils.retry import gateway_retry
from storefront.utils.settings import PAYMENT_GATEWAY_URL, PAYMENT_TIMEOUT_SECONDS
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class ChargeResult:
    success: bool
    transaction_id: str | None = None
    message: str = ""


class PaymentProcessor(Protocol):
    def charge(self, amount: Decimal, method: str, credentials: dict) -> ChargeResult:
        """Charge ``amount`` (already rounded to cents).

        Returns a failed ``ChargeResult`` when the gateway declines and raises
        ``PaymentGatewayError`` when the outcome is unknown.
        """
        ...

    def refund(self, transaction_id: str, amount: Decimal) -> ChargeResult:
        """Reverse a settled charge, same failure contract as ``charge``."""
        ...


class GatewayPaymentClient:
    """HTTP client for the payment gateway (card, PayPal and Cash App)."""

    def __init__(self, base_url: str | None = None, timeout: float | None = None):
        self.base_url = (base_url or PAYMENT_GATEWAY_URL).rstrip("/")
        self.timeout = timeout or PAYMENT_TIMEOUT_SECONDS

    @gateway_retry()
    def _post(self, path: str, payload: dict, idempotency_key: str) -> requests.Response:
        url = f"{self.base_url}{path}"
        logger.info(f"GatewayPaymentClient POST {url} reference={idempotency_key}")
        return requests.post(
            url,
            json=payload,
            headers={"Idempotency-Key": idempotency_key},
            timeout=self.timeout,
        )

    def charge(self, amount: Decimal, method: str, credentials: dict) -> ChargeResult:
        reference = credentials.get("reference") or uuid.uuid4().hex
        payload = {
            "amount": str(amount),
            "currency": "USD",
            "method": method,
            "nonce": credentials.get("nonce"),
            "reference": reference,
        }
        return self._send("/charges", payload, reference, "Payment declined")

    def refund(self, transaction_id: str, amount: Decimal) -> ChargeResult:
        payload = {"transaction_id": transaction_id, "amount": str(amount)}
        return self._send("/refunds", payload, f"refund-{transaction_id}", "Refund rejected")

    def _send(self, path: str, payload: dict, idempotency_key: str, declined: str) -> ChargeResult:
        try:
            resp = self._post(path, payload, idempotency_key)
        except requests.ConnectTimeout as e:
            raise PaymentGatewayError("Payment gateway unreachable") from e
        except requests.Timeout as e:
            # the request may have gone through, never resend it blindly
            raise PaymentGatewayError("Payment gateway did not answer, payment status unknown") from e
        except requests.RequestException as e:
            raise PaymentGatewayError("Payment gateway unreachable") from e

        if resp.status_code >= 500:
            raise PaymentGatewayError(f"Payment gateway error ({resp.status_code})")

        try:
            data = resp.json()
        except ValueError as e:
            raise PaymentGatewayError("Malformed response from payment gateway") from e

        if resp.status_code >= 400 or not data.get("success"):
            return ChargeResult(success=False, message=data.get("message") or declined)

        return ChargeResult(
            success=True,
            transaction_id=data.get("transaction_id"),
            message=data.get("message", ""),
        )
