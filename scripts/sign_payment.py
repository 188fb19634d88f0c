"""HMAC signing helper for simulating payment provider callbacks.

Reads the JSON body from stdin and prints the base64 HMAC-SHA256 signature
expected in ``X-Webhook-Signature``, using PAYMENT_WEBHOOK_SECRET from the
environment (or .env file).

Usage:
    BODY='{"orderId":"<uuid>","paid":true,"totalPrice":"28.00"}'
    SIG=$(echo -n "$BODY" | python -m scripts.sign_payment)
    curl -X POST http://localhost:8000/api/v1/orders/update-order-payment \\
      -H "Content-Type: application/json" \\
      -H "X-Webhook-Signature: $SIG" \\
      -d "$BODY"
"""

import sys

from merchant.core.config import settings
from merchant.core.security import sign_payload


def main() -> None:
    secret = settings.payment_webhook_secret
    if not secret:
        print("ERROR: PAYMENT_WEBHOOK_SECRET is not set in .env", file=sys.stderr)
        sys.exit(1)

    body = sys.stdin.buffer.read()
    if not body:
        print("ERROR: No input received on stdin", file=sys.stderr)
        sys.exit(1)

    print(sign_payload(body, secret), end="")


if __name__ == "__main__":
    main()
