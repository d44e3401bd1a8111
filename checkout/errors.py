"""Checkout failure taxonomy.

Each error carries a stable `code`, a user-facing `detail` and the HTTP status
views answer with.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

CONTACT_SUPPORT = (
    "Your payment was received but we could not create your order. "
    "Please contact support with your payment reference so we can resolve it."
)


class CheckoutError(Exception):
    """Base class for checkout failures surfaced to the customer."""

    code = "checkout_error"
    status_code = 400
    default_detail = "Unable to complete checkout."

    def __init__(self, detail: Optional[str] = None, *, reference: Optional[str] = None):
        self.detail = detail or self.default_detail
        self.reference = reference
        super().__init__(self.detail)

    def as_response(self) -> dict:
        body = {"detail": self.detail, "code": self.code}
        if self.reference:
            body["reference"] = self.reference
        return body


class InvalidCheckout(CheckoutError):
    """Checkout input is incomplete or inconsistent with the cart."""

    code = "invalid_checkout"


class EmptyCart(InvalidCheckout):
    code = "empty_cart"
    default_detail = "Your cart is empty."


class PaymentInitializationFailed(CheckoutError):
    code = "payment_initialization_failed"
    status_code = 502
    default_detail = "Unable to start payment. Please try again."


class PaymentVerificationFailed(CheckoutError):
    """The gateway did not report a successful payment; staged checkout is kept."""

    code = "payment_verification_failed"
    status_code = 402
    default_detail = "Payment could not be verified. You can retry without re-entering your details."


class CheckoutDataMissing(CheckoutError):
    """Payment verified but nothing is left to build orders from."""

    code = "checkout_data_missing"
    status_code = 500
    default_detail = CONTACT_SUPPORT


@dataclass(frozen=True)
class DraftFailure:
    """Why materializing one draft failed."""

    kind: str
    code: str
    detail: str

    def as_dict(self) -> dict:
        return {"kind": self.kind, "code": self.code, "detail": self.detail}


class OrderCreationFailed(CheckoutError):
    """Every draft failed to materialize."""

    code = "order_creation_failed"

    def __init__(
        self,
        failures: Tuple[DraftFailure, ...] = (),
        *,
        payment_captured: bool = False,
        reference: Optional[str] = None,
    ):
        self.failures = tuple(failures)
        self.payment_captured = payment_captured
        self.status_code = 500 if payment_captured else 400
        if payment_captured:
            detail = CONTACT_SUPPORT
        elif self.failures:
            detail = self.failures[0].detail
        else:
            detail = "Unable to create your order."
        super().__init__(detail, reference=reference)

    def as_response(self) -> dict:
        body = super().as_response()
        body["failures"] = [f.as_dict() for f in self.failures]
        return body


@dataclass(frozen=True)
class PartialOrderFailure:
    """Soft warning: some drafts of a mixed cart failed while others succeeded."""

    failures: Tuple[DraftFailure, ...]

    @property
    def message(self) -> str:
        kinds = ", ".join(f.kind.replace("_", "-") for f in self.failures)
        return f"Part of your order could not be created ({kinds}). " + " ".join(f.detail for f in self.failures)

    def as_dict(self) -> dict:
        return {"message": self.message, "failures": [f.as_dict() for f in self.failures]}
