"""Payment gateway client (Paystack) and the minor-unit boundary.

Amounts inside the application are Decimal major units (GHS). The gateway
expects integer minor units (pesewas); `to_minor_units` is the only place
that conversion happens.
"""

import logging
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Mapping, Optional

import httpx
from django.conf import settings

logger = logging.getLogger("ventech.checkout")


class PaymentGatewayError(Exception):
    """Raised when the gateway cannot be reached or rejects a request."""


@dataclass(frozen=True)
class PaymentSession:
    reference: str
    authorization_url: str
    access_code: str = ""


@dataclass(frozen=True)
class PaymentVerification:
    status: str
    reference: str
    amount_minor_units: int = 0
    currency: str = ""
    metadata: Mapping = field(default_factory=dict)
    raw: Mapping = field(default_factory=dict)

    @property
    def is_successful(self) -> bool:
        return self.status == "success"


def to_minor_units(amount) -> int:
    """Convert a major-unit amount to the gateway's integer minor units."""

    factor = Decimal(int(settings.MINOR_UNIT_FACTOR))
    return int((Decimal(amount) * factor).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class PaystackGateway:
    """Thin synchronous client for the Paystack transaction API."""

    def __init__(
        self,
        *,
        secret_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.secret_key = secret_key if secret_key is not None else settings.PAYSTACK_SECRET_KEY
        self.base_url = (base_url or settings.PAYSTACK_BASE_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else float(settings.PAYSTACK_TIMEOUT_SECONDS)
        self.transport = transport

    def _client(self) -> httpx.Client:
        return httpx.Client(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self.transport,
            headers={"Authorization": f"Bearer {self.secret_key}", "Content-Type": "application/json"},
        )

    def _request(self, method: str, path: str, **kwargs) -> dict:
        try:
            with self._client() as client:
                response = client.request(method, path, **kwargs)
                response.raise_for_status()
                payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning(
                "checkout.gateway_error",
                extra={"event": "checkout.gateway_error", "path": path, "error": str(exc)},
            )
            raise PaymentGatewayError(str(exc)) from exc
        if not payload.get("status"):
            raise PaymentGatewayError(payload.get("message") or "Gateway rejected the request")
        return payload.get("data") or {}

    def initialize_payment(
        self,
        *,
        email: str,
        amount_minor_units: int,
        reference: str,
        callback_url: str,
        metadata: Optional[Mapping] = None,
        currency: Optional[str] = None,
    ) -> PaymentSession:
        data = self._request(
            "POST",
            "/transaction/initialize",
            json={
                "email": email,
                "amount": int(amount_minor_units),
                "reference": reference,
                "callback_url": callback_url,
                "currency": currency or settings.CURRENCY,
                "metadata": dict(metadata or {}),
            },
        )
        if not data.get("authorization_url"):
            raise PaymentGatewayError("Gateway did not return an authorization URL")
        return PaymentSession(
            reference=data.get("reference") or reference,
            authorization_url=data["authorization_url"],
            access_code=data.get("access_code") or "",
        )

    def verify_payment(self, reference: str) -> PaymentVerification:
        data = self._request("GET", f"/transaction/verify/{reference}")
        metadata = data.get("metadata")
        return PaymentVerification(
            status=str(data.get("status") or ""),
            reference=str(data.get("reference") or reference),
            amount_minor_units=int(data.get("amount") or 0),
            currency=str(data.get("currency") or ""),
            metadata=metadata if isinstance(metadata, dict) else {},
            raw=data,
        )


def get_payment_gateway() -> PaystackGateway:
    return PaystackGateway()
