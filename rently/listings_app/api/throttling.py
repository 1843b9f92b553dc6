from rest_framework.throttling import ScopedRateThrottle, SimpleRateThrottle


class RegisterScopedThrottle(ScopedRateThrottle):
    scope = "register"


class PaymentInitiateThrottle(SimpleRateThrottle):
    """
    Per-user throttle for STK push initiation: every call prompts the payer's
    phone, so repeated taps must not flood the gateway.
    Scope name must exist in DEFAULT_THROTTLE_RATES.
    """
    scope = "payments"

    def get_cache_key(self, request, view):
        user = getattr(request, "user", None)
        if not user or not user.is_authenticated:
            return None
        return self.cache_format % {"scope": self.scope, "ident": str(user.pk)}


class MpesaCallbackThrottle(SimpleRateThrottle):
    """IP-based throttle for the public gateway callback."""
    scope = "mpesa-callback"

    def get_cache_key(self, request, view):
        ident = self.get_ident(request)
        if not ident:
            return None
        return self.cache_format % {"scope": self.scope, "ident": ident}
