from datetime import timedelta

import pytest
from cart.models import Cart, CartItem
from cart.tests.factories import CartFactory, CartItemFactory, GuestCartFactory
from django.core.management import call_command
from django.utils import timezone


@pytest.mark.django_db
def test_abandon_stale_carts_only_touches_old_active_carts():
    stale = GuestCartFactory()
    CartItemFactory(cart=stale)
    fresh = CartFactory()
    Cart.objects.filter(id=stale.id).update(updated_at=timezone.now() - timedelta(minutes=90))

    call_command("abandon_stale_carts", "--ttl-minutes", "60")

    stale.refresh_from_db()
    fresh.refresh_from_db()
    assert stale.status == Cart.STATUS_ABANDONED
    assert not CartItem.objects.filter(cart=stale).exists()
    assert fresh.status == Cart.STATUS_ACTIVE
