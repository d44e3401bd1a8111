from datetime import date
from decimal import Decimal

from cart.aggregation import CartLine, CartSnapshot
from checkout.drafts import DeliveryChoice, build_drafts
from checkout.staging import STAGING_KEY, CheckoutStaging

from .factories import customer_identity, delivery_address


def _drafts(reference="VENTECH_1_abc"):
    cart = CartSnapshot(
        lines=(
            CartLine(
                product_id=1,
                name="Laptop",
                quantity=1,
                unit_price=Decimal("1200.00"),
                selections={"3": 12},
                variant_labels=({"attribute": "RAM", "option": "16GB", "price_modifier": "200.00"},),
            ),
            CartLine(product_id=2, name="Phone", quantity=2, unit_price=Decimal("950.00"), is_pre_order=True),
        )
    )
    return build_drafts(
        cart=cart,
        delivery_option=DeliveryChoice(option_id=1, code="express", name="Express", kind="standard", price=Decimal("15")),
        pre_order_shipping_option=DeliveryChoice(
            option_id=4, code="sea", name="Sea Cargo", kind="pre_order", price=Decimal("200"), estimated_days_max=60
        ),
        customer=customer_identity(),
        address=delivery_address(),
        payment_method="paystack",
        today=date(2025, 3, 1),
    ).with_reference(reference)


def test_staged_drafts_load_back_for_their_reference():
    store = {}
    staging = CheckoutStaging(store)
    drafts = _drafts()

    staging.stage(reference="VENTECH_1_abc", drafts=drafts.drafts)

    assert staging.reference == "VENTECH_1_abc"
    assert staging.load("VENTECH_1_abc") == drafts.drafts
    assert staging.load("VENTECH_2_other") is None


def test_new_checkout_replaces_staged_one():
    staging = CheckoutStaging({})
    staging.stage(reference="first", drafts=_drafts("first").drafts)
    staging.stage(reference="second", drafts=_drafts("second").drafts)

    assert staging.load("first") is None
    assert staging.load("second")[0].payment_reference == "second"


def test_malformed_staging_is_treated_as_lost(caplog):
    store = {STAGING_KEY: {"reference": "ref", "drafts": [{"kind": "regular"}]}}

    assert CheckoutStaging(store).load("ref") is None
    assert any(r.getMessage() == "checkout.staging_malformed" for r in caplog.records)


def test_clear_removes_staged_checkout():
    store = {"other": 1}
    staging = CheckoutStaging(store)
    staging.stage(reference="ref", drafts=_drafts("ref").drafts)

    staging.clear()
    staging.clear()

    assert store == {"other": 1}
    assert staging.reference is None
