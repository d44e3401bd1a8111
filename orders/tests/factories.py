from decimal import Decimal

import factory
from cart.tests.factories import UserFactory
from common.choices import PaymentMethod, PaymentStatus
from factory.django import DjangoModelFactory
from orders.models import Order, OrderItem


class OrderFactory(DjangoModelFactory):
    class Meta:
        model = Order

    user = factory.SubFactory(UserFactory)
    number = factory.Sequence(lambda n: f"ORD-{n + 1:06d}")
    payment_method = PaymentMethod.CASH_ON_DELIVERY
    payment_status = PaymentStatus.PENDING
    customer_name = "Ama Mensah"
    contact_email = factory.LazyAttribute(lambda o: o.user.email if o.user else "guest@example.com")
    contact_phone = "+233201234567"
    shipping_address = factory.LazyFunction(lambda: {"street": "12 Oxford St", "city": "Accra", "country": "Ghana"})
    subtotal = Decimal("1000.00")
    delivery_fee = Decimal("15.00")
    total = Decimal("1015.00")


class OrderItemFactory(DjangoModelFactory):
    class Meta:
        model = OrderItem

    order = factory.SubFactory(OrderFactory)
    product = factory.SubFactory("catalog.tests.factories.ProductFactory")
    product_name = factory.LazyAttribute(lambda o: o.product.title)
    quantity = 1
    unit_price = Decimal("1000.00")
    subtotal = factory.LazyAttribute(lambda o: o.unit_price * o.quantity)
