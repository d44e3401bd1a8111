from decimal import Decimal

import factory
from checkout.drafts import CustomerIdentity, DeliveryAddress
from checkout.models import DeliveryOption
from factory.django import DjangoModelFactory


class DeliveryOptionFactory(DjangoModelFactory):
    class Meta:
        model = DeliveryOption

    code = factory.Sequence(lambda n: f"delivery-{n}")
    name = factory.Sequence(lambda n: f"Delivery {n}")
    kind = DeliveryOption.KIND_STANDARD
    price = Decimal("15.00")
    estimated_days_min = 3
    estimated_days_max = 3
    is_active = True
    sort_order = 0


class ShippingOptionFactory(DeliveryOptionFactory):
    code = factory.Sequence(lambda n: f"shipping-{n}")
    name = "Air Cargo"
    kind = DeliveryOption.KIND_PRE_ORDER
    price = Decimal("400.00")
    estimated_days_min = 5
    estimated_days_max = 14


def customer_identity(**overrides) -> CustomerIdentity:
    data = {"name": "Ama Mensah", "email": "ama@example.com", "phone": "+233201234567"}
    data.update(overrides)
    return CustomerIdentity(**data)


def delivery_address(**overrides) -> DeliveryAddress:
    data = {"street": "12 Oxford St", "city": "Accra", "region": "Greater Accra"}
    data.update(overrides)
    return DeliveryAddress(**data)
