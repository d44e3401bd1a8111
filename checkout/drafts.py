"""Checkout drafts: fully-priced, unpersisted intents to create one order each.

`build_drafts` splits a cart snapshot into a regular draft and a pre-order
draft and prices each one. `reprice_draft` recomputes every derived amount
from the draft's captured item prices and delivery option, which is what
settlement relies on instead of any stored total.
"""

import dataclasses
from dataclasses import dataclass, field
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Mapping, Optional, Tuple

from cart.aggregation import CartLine, CartSnapshot
from django.conf import settings

from .errors import EmptyCart, InvalidCheckout

ZERO = Decimal("0.00")
CENT = Decimal("0.01")

KIND_REGULAR = "regular"
KIND_PRE_ORDER = "pre_order"

REGULAR_NOTE_SUFFIX = "[Regular Items Order]"
PRE_ORDER_NOTE_SUFFIX = "[Pre-Order Items]"


def money(value) -> Decimal:
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def delivery_fee_for(*, kind: str, option_price, subtotal) -> Decimal:
    """Regular delivery is free at or above the threshold; pre-order shipping never is."""

    if kind == KIND_REGULAR and Decimal(subtotal) >= Decimal(str(settings.FREE_SHIPPING_THRESHOLD)):
        return ZERO
    return money(option_price)


def compute_tax(subtotal) -> Decimal:
    return money(Decimal(subtotal) * Decimal(str(settings.CHECKOUT_TAX_RATE)))


@dataclass(frozen=True)
class DraftItem:
    product_id: int
    name: str
    quantity: int
    unit_price: Decimal
    thumbnail: str = ""
    selections: Mapping = field(default_factory=dict)
    variant_labels: Tuple = ()

    @property
    def subtotal(self) -> Decimal:
        return money(self.unit_price * self.quantity)

    @classmethod
    def from_line(cls, line: CartLine) -> "DraftItem":
        return cls(
            product_id=line.product_id,
            name=line.name,
            quantity=int(line.quantity),
            unit_price=money(line.unit_price),
            thumbnail=line.thumbnail or "",
            selections={str(k): int(v) for k, v in dict(line.selections or {}).items()},
            variant_labels=tuple(line.variant_labels or ()),
        )

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "name": self.name,
            "quantity": self.quantity,
            "unit_price": str(self.unit_price),
            "thumbnail": self.thumbnail,
            "selections": dict(self.selections),
            "variant_labels": list(self.variant_labels),
        }

    @classmethod
    def from_dict(cls, data: Mapping) -> "DraftItem":
        return cls(
            product_id=int(data["product_id"]),
            name=str(data["name"]),
            quantity=int(data["quantity"]),
            unit_price=money(data["unit_price"]),
            thumbnail=data.get("thumbnail") or "",
            selections=dict(data.get("selections") or {}),
            variant_labels=tuple(data.get("variant_labels") or ()),
        )


@dataclass(frozen=True)
class CustomerIdentity:
    name: str
    email: str
    phone: str = ""


@dataclass(frozen=True)
class DeliveryAddress:
    street: str
    city: str
    region: str = ""
    country: str = "Ghana"
    landmark: str = ""

    def as_dict(self) -> dict:
        return dataclasses.asdict(self)


@dataclass(frozen=True)
class DeliveryChoice:
    """Snapshot of the delivery option a draft was priced with."""

    option_id: int
    code: str
    name: str
    kind: str
    price: Decimal
    estimated_days_min: int = 0
    estimated_days_max: int = 0

    @classmethod
    def from_option(cls, option) -> "DeliveryChoice":
        return cls(
            option_id=option.id,
            code=option.code,
            name=option.name,
            kind=option.kind,
            price=money(option.price),
            estimated_days_min=int(option.estimated_days_min),
            estimated_days_max=int(option.estimated_days_max),
        )

    def to_dict(self) -> dict:
        data = dataclasses.asdict(self)
        data["price"] = str(self.price)
        return data

    @classmethod
    def from_dict(cls, data: Mapping) -> "DeliveryChoice":
        return cls(
            option_id=int(data["option_id"]),
            code=str(data["code"]),
            name=str(data["name"]),
            kind=str(data["kind"]),
            price=money(data["price"]),
            estimated_days_min=int(data.get("estimated_days_min") or 0),
            estimated_days_max=int(data.get("estimated_days_max") or 0),
        )


@dataclass(frozen=True)
class CheckoutDraft:
    kind: str
    customer: CustomerIdentity
    address: DeliveryAddress
    delivery: DeliveryChoice
    items: Tuple[DraftItem, ...]
    payment_method: str
    notes: str = ""
    coupon_id: Optional[int] = None
    coupon_code: str = ""
    discount: Decimal = ZERO
    subtotal: Decimal = ZERO
    delivery_fee: Decimal = ZERO
    tax: Decimal = ZERO
    total: Decimal = ZERO
    estimated_arrival_date: Optional[date] = None
    payment_reference: str = ""

    @property
    def is_pre_order(self) -> bool:
        return self.kind == KIND_PRE_ORDER

    @property
    def owns_coupon(self) -> bool:
        return self.coupon_id is not None

    @property
    def settlement_key(self) -> Optional[str]:
        if not self.payment_reference:
            return None
        return f"{self.payment_reference}:{self.kind}"

    def to_dict(self) -> dict:
        return {
            "kind": self.kind,
            "customer": dataclasses.asdict(self.customer),
            "address": self.address.as_dict(),
            "delivery": self.delivery.to_dict(),
            "items": [item.to_dict() for item in self.items],
            "payment_method": self.payment_method,
            "notes": self.notes,
            "coupon_id": self.coupon_id,
            "coupon_code": self.coupon_code,
            "discount": str(self.discount),
            "subtotal": str(self.subtotal),
            "delivery_fee": str(self.delivery_fee),
            "tax": str(self.tax),
            "total": str(self.total),
            "estimated_arrival_date": self.estimated_arrival_date.isoformat() if self.estimated_arrival_date else None,
            "payment_reference": self.payment_reference,
        }

    @classmethod
    def from_dict(cls, data: Mapping) -> "CheckoutDraft":
        arrival = data.get("estimated_arrival_date")
        coupon_id = data.get("coupon_id")
        return cls(
            kind=str(data["kind"]),
            customer=CustomerIdentity(**data["customer"]),
            address=DeliveryAddress(**data["address"]),
            delivery=DeliveryChoice.from_dict(data["delivery"]),
            items=tuple(DraftItem.from_dict(item) for item in data["items"]),
            payment_method=str(data["payment_method"]),
            notes=data.get("notes") or "",
            coupon_id=int(coupon_id) if coupon_id is not None else None,
            coupon_code=data.get("coupon_code") or "",
            discount=money(data.get("discount") or ZERO),
            subtotal=money(data.get("subtotal") or ZERO),
            delivery_fee=money(data.get("delivery_fee") or ZERO),
            tax=money(data.get("tax") or ZERO),
            total=money(data.get("total") or ZERO),
            estimated_arrival_date=date.fromisoformat(arrival) if arrival else None,
            payment_reference=data.get("payment_reference") or "",
        )


@dataclass(frozen=True)
class DraftSet:
    drafts: Tuple[CheckoutDraft, ...]
    has_mixed_cart: bool = False

    @property
    def total(self) -> Decimal:
        return money(sum((d.total for d in self.drafts), ZERO))

    @property
    def discount(self) -> Decimal:
        return money(sum((d.discount for d in self.drafts), ZERO))

    def with_reference(self, reference: str) -> "DraftSet":
        drafts = tuple(dataclasses.replace(d, payment_reference=reference) for d in self.drafts)
        return dataclasses.replace(self, drafts=drafts)


def reprice_draft(draft: CheckoutDraft) -> CheckoutDraft:
    """Recompute subtotal, delivery fee, tax and total from the draft's own items.

    Cached amounts on the draft are ignored; only captured unit prices,
    quantities, the delivery option price and the discount are inputs.
    """

    subtotal = money(sum((item.unit_price * item.quantity for item in draft.items), ZERO))
    delivery_fee = delivery_fee_for(kind=draft.kind, option_price=draft.delivery.price, subtotal=subtotal)
    tax = compute_tax(subtotal)
    total = max(subtotal + delivery_fee + tax - draft.discount, ZERO)
    return dataclasses.replace(draft, subtotal=subtotal, delivery_fee=delivery_fee, tax=tax, total=money(total))


def _suffix_notes(notes: str, suffix: str) -> str:
    return f"{notes or ''}\n\n{suffix}".strip()


def build_drafts(
    *,
    cart: CartSnapshot,
    delivery_option: Optional[DeliveryChoice],
    pre_order_shipping_option: Optional[DeliveryChoice],
    coupon=None,
    customer: CustomerIdentity,
    address: DeliveryAddress,
    notes: str = "",
    payment_method: str,
    today: Optional[date] = None,
    payment_reference: str = "",
) -> DraftSet:
    """Split the cart into one priced draft per fulfilment subset.

    The coupon discount is attributed to the first draft built, which is the
    regular draft whenever the cart has regular items.
    """

    if cart.is_empty:
        raise EmptyCart()

    today = today or date.today()
    mixed = cart.has_mixed_cart
    subsets = []
    if cart.regular_lines:
        if delivery_option is None:
            raise InvalidCheckout("Please choose a delivery option.")
        subsets.append((KIND_REGULAR, cart.regular_lines, delivery_option, REGULAR_NOTE_SUFFIX))
    if cart.pre_order_lines:
        if pre_order_shipping_option is None:
            raise InvalidCheckout("Please choose a shipping method for pre-order items.")
        subsets.append((KIND_PRE_ORDER, cart.pre_order_lines, pre_order_shipping_option, PRE_ORDER_NOTE_SUFFIX))

    drafts = []
    for kind, lines, choice, suffix in subsets:
        owns_coupon = coupon is not None and not drafts
        arrival = None
        if kind == KIND_PRE_ORDER:
            arrival = date.fromordinal(today.toordinal() + int(choice.estimated_days_max))
        draft = CheckoutDraft(
            kind=kind,
            customer=customer,
            address=address,
            delivery=choice,
            items=tuple(DraftItem.from_line(line) for line in lines),
            payment_method=payment_method,
            notes=_suffix_notes(notes, suffix) if mixed else (notes or ""),
            coupon_id=coupon.coupon_id if owns_coupon else None,
            coupon_code=coupon.code if owns_coupon else "",
            discount=money(coupon.discount_amount) if owns_coupon else ZERO,
            estimated_arrival_date=arrival,
            payment_reference=payment_reference,
        )
        drafts.append(reprice_draft(draft))
    return DraftSet(drafts=tuple(drafts), has_mixed_cart=mixed)
