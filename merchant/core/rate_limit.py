"""Rate limiting for credential and webhook endpoints using slowapi."""

from slowapi import Limiter
from starlette.requests import Request

# Per-IP limits for the endpoints that are exposed to storefront traffic
LOGIN_LIMIT = "10/minute"
REGISTRATION_LIMIT = "5/minute"
PAYMENT_WEBHOOK_LIMIT = "30/minute"


def _get_real_client_ip(request: Request) -> str:
    """Extract the caller IP, honouring the proxy forwarding header."""
    forwarded = request.headers.get("X-Forwarded-For", "")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "127.0.0.1"


limiter = Limiter(key_func=_get_real_client_ip)
