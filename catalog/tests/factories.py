from decimal import Decimal

import factory
from catalog.models import Attribute, AttributeOption, Product, ProductAttributeMapping, ProductSelectedOption
from common.choices import AttributeType
from factory import Faker
from factory.django import DjangoModelFactory


class ProductFactory(DjangoModelFactory):
    class Meta:
        model = Product

    title = Faker("sentence", nb_words=3)
    slug = factory.Sequence(lambda n: f"product-{n}")
    description = Faker("paragraph")
    thumbnail = Faker("image_url")
    status = Product.STATUS_PUBLISHED
    base_price = Decimal("1000.00")
    discount_price = None
    stock_quantity = 10
    is_pre_order = False


class PreOrderProductFactory(ProductFactory):
    stock_quantity = 0
    is_pre_order = True


class AttributeFactory(DjangoModelFactory):
    class Meta:
        model = Attribute

    name = Faker("word")
    code = factory.Sequence(lambda n: f"attr-{n}")
    attribute_type = AttributeType.SELECT
    is_required = False
    sort_order = 0


class AttributeOptionFactory(DjangoModelFactory):
    class Meta:
        model = AttributeOption

    attribute = factory.SubFactory(AttributeFactory)
    label = Faker("word")
    value = factory.LazyAttribute(lambda o: o.label.lower())
    price_modifier = Decimal("0.00")
    stock_quantity = 5
    is_available = True
    sort_order = 0


class ProductAttributeMappingFactory(DjangoModelFactory):
    class Meta:
        model = ProductAttributeMapping

    product = factory.SubFactory(ProductFactory)
    attribute = factory.SubFactory(AttributeFactory)
    is_required = None
    sort_order = 0


def configure_attribute(product, *, name="RAM", modifiers=("0.00",), is_required=None, available=None):
    """Attach an attribute with one selectable option per modifier to `product`.

    Returns the attribute and its options in modifier order.
    """
    attribute = AttributeFactory(name=name)
    ProductAttributeMappingFactory(product=product, attribute=attribute, is_required=is_required)
    options = []
    for index, modifier in enumerate(modifiers):
        is_available = True if available is None else available[index]
        option = AttributeOptionFactory(
            attribute=attribute,
            label=f"{name}-{index}",
            price_modifier=Decimal(str(modifier)),
            is_available=is_available,
            sort_order=index,
        )
        ProductSelectedOption.objects.create(product=product, option=option)
        options.append(option)
    return attribute, options
