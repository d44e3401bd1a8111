"""Durable staging of checkout drafts across the payment redirect.

The store is any mutable mapping; in requests it is the Django session.
Drafts are kept under a single well-known key, so a new checkout replaces
whatever was staged before.
"""

import logging
from decimal import InvalidOperation
from typing import MutableMapping, Optional, Tuple

from django.utils import timezone

from .drafts import CheckoutDraft

logger = logging.getLogger("ventech.checkout")

STAGING_KEY = "pending_checkout"
SETTLED_KEY = "settled_checkouts"
SETTLED_HISTORY = 10


class CheckoutStaging:
    def __init__(self, store: MutableMapping, key: str = STAGING_KEY):
        self.store = store
        self.key = key

    def stage(self, *, reference: str, drafts) -> None:
        self.store[self.key] = {
            "reference": reference,
            "drafts": [draft.to_dict() for draft in drafts],
            "staged_at": timezone.now().isoformat(),
        }

    @property
    def reference(self) -> Optional[str]:
        data = self.store.get(self.key)
        if not isinstance(data, dict):
            return None
        return data.get("reference")

    def load(self, reference: str) -> Optional[Tuple[CheckoutDraft, ...]]:
        """Return the drafts staged for `reference`, or None when absent or unreadable."""

        data = self.store.get(self.key)
        if not data:
            return None
        if not isinstance(data, dict) or data.get("reference") != reference:
            return None
        try:
            drafts = tuple(CheckoutDraft.from_dict(item) for item in data["drafts"])
        except (KeyError, TypeError, ValueError, InvalidOperation):
            logger.warning(
                "checkout.staging_malformed",
                extra={"event": "checkout.staging_malformed", "reference": reference},
            )
            return None
        return drafts or None

    def clear(self) -> None:
        if self.key in self.store:
            del self.store[self.key]

    def remember_settled(self, reference: str) -> None:
        """Record that this session completed `reference`; keeps the last few only."""

        settled = [r for r in self.store.get(SETTLED_KEY) or [] if r != reference]
        settled.append(reference)
        self.store[SETTLED_KEY] = settled[-SETTLED_HISTORY:]

    def has_settled(self, reference: str) -> bool:
        return reference in (self.store.get(SETTLED_KEY) or [])
