from decimal import Decimal

from checkout.models import DeliveryOption
from django.core.management.base import BaseCommand

DEFAULT_OPTIONS = [
    # code, name, description, kind, price, days min, days max
    ("standard", "Standard Delivery", "Delivery within Accra and Kumasi", "standard", "0.00", 6, 6),
    ("express", "Express Delivery", "Priority dispatch", "standard", "15.00", 3, 3),
    ("overnight", "Overnight Delivery", "Next-day delivery", "standard", "30.00", 1, 1),
    ("air-cargo", "Air Cargo", "Pre-order shipping by air", "pre_order", "400.00", 5, 14),
    ("sea-cargo", "Sea Cargo", "Pre-order shipping by sea", "pre_order", "200.00", 30, 60),
]


class Command(BaseCommand):
    help = "Create the default delivery and pre-order shipping options (idempotent)"

    def handle(self, *args, **options):
        created = 0
        for index, (code, name, description, kind, price, days_min, days_max) in enumerate(DEFAULT_OPTIONS):
            _, was_created = DeliveryOption.objects.get_or_create(
                code=code,
                defaults={
                    "name": name,
                    "description": description,
                    "kind": kind,
                    "price": Decimal(price),
                    "estimated_days_min": days_min,
                    "estimated_days_max": days_max,
                    "sort_order": index,
                },
            )
            created += int(was_created)
        self.stdout.write(self.style.SUCCESS(f"Created {created} delivery option(s)."))
