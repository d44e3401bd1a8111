"""Scoped throttling that reads rates from settings at request time.

DRF caches `DEFAULT_THROTTLE_RATES` on import; reading from settings per
request lets `override_settings` in tests and per-environment settings modules
take effect for the catalog and checkout scopes.
"""

from django.conf import settings
from rest_framework.throttling import ScopedRateThrottle


class SettingsScopedRateThrottle(ScopedRateThrottle):
    def get_rate(self):
        rates = getattr(settings, "REST_FRAMEWORK", {}).get("DEFAULT_THROTTLE_RATES", {})
        return rates.get(self.scope)

    def get_ident(self, request):
        # Guests share IPs behind carrier NAT; key them by session when one exists.
        session = getattr(request, "session", None)
        session_key = getattr(session, "session_key", None)
        if session_key:
            return session_key
        return super().get_ident(request)
