"""Token signing, password hashing, and webhook signature helpers."""

import base64
import hashlib
import hmac
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

import bcrypt
import jwt

from merchant.core.errors import ForbiddenError, UnauthorizedError

TOKEN_ALGORITHM = "HS256"

# Claim names used by tokens already issued to storefronts
CLIENT_CLAIM = "clientID"
CUSTOMER_CLAIM = "customerID"
VERIFICATION_CLAIM = "customerId"


@dataclass(frozen=True)
class TenantContext:
    """Identity resolved from a tenant (site) token."""

    client_id: str


@dataclass(frozen=True)
class CustomerContext:
    """Identity resolved from a customer session token."""

    client_id: str
    customer_id: str


class TokenAuthority:
    """Mints and verifies bearer tokens.

    Session tokens (tenant and customer) are signed with ``secret``;
    email-verification tokens with the separate ``email_secret`` so a leaked
    verification link can never be replayed as a session.
    """

    def __init__(
        self,
        secret: str,
        email_secret: str,
        verification_ttl: timedelta = timedelta(hours=1),
    ) -> None:
        self._secret = secret
        self._email_secret = email_secret
        self._verification_ttl = verification_ttl

    # -- minting ---------------------------------------------------------

    def issue_tenant_token(self, client_id: str) -> str:
        return jwt.encode({CLIENT_CLAIM: client_id}, self._secret, algorithm=TOKEN_ALGORITHM)

    def issue_customer_token(self, client_id: str, customer_id: str) -> str:
        payload = {CUSTOMER_CLAIM: customer_id, CLIENT_CLAIM: client_id}
        return jwt.encode(payload, self._secret, algorithm=TOKEN_ALGORITHM)

    def issue_verification_token(self, customer_id: str) -> str:
        payload = {
            VERIFICATION_CLAIM: customer_id,
            "exp": datetime.now(UTC) + self._verification_ttl,
        }
        return jwt.encode(payload, self._email_secret, algorithm=TOKEN_ALGORITHM)

    # -- verification ----------------------------------------------------

    def authenticate(self, raw_header: str | None) -> TenantContext:
        """Resolve the tenant from an ``Authorization`` header value.

        Raises:
            UnauthorizedError: header missing or not a Bearer credential.
            ForbiddenError: bad signature, expired, or no tenant claim.
        """
        payload = self._decode_session(self._extract_bearer(raw_header))
        return TenantContext(client_id=self._require_claim(payload, CLIENT_CLAIM))

    def authenticate_customer(self, raw_header: str | None) -> CustomerContext:
        """Resolve tenant and customer from a customer session token."""
        payload = self._decode_session(self._extract_bearer(raw_header))
        return CustomerContext(
            client_id=self._require_claim(payload, CLIENT_CLAIM),
            customer_id=self._require_claim(payload, CUSTOMER_CLAIM),
        )

    def decode_verification_token(self, token: str) -> str:
        """Return the customer id carried by an email-verification token.

        Raises:
            ForbiddenError: token invalid or expired.
        """
        try:
            payload: dict[str, Any] = jwt.decode(
                token, self._email_secret, algorithms=[TOKEN_ALGORITHM]
            )
        except jwt.InvalidTokenError as e:
            raise ForbiddenError(f"Invalid verification token: {e}") from e
        return self._require_claim(payload, VERIFICATION_CLAIM)

    @staticmethod
    def _extract_bearer(raw_header: str | None) -> str:
        if not raw_header:
            raise UnauthorizedError("Unauthorized - Token missing or invalid format")
        scheme, _, token = raw_header.partition(" ")
        if scheme != "Bearer" or not token.strip():
            raise UnauthorizedError("Unauthorized - Token missing or invalid format")
        return token.strip()

    def _decode_session(self, token: str) -> dict[str, Any]:
        try:
            payload: dict[str, Any] = jwt.decode(
                token,
                self._secret,
                algorithms=[TOKEN_ALGORITHM],
                options={"verify_exp": True},
            )
        except jwt.ExpiredSignatureError as e:
            raise ForbiddenError("Forbidden - Token has expired") from e
        except jwt.InvalidTokenError as e:
            raise ForbiddenError("Forbidden - Invalid token") from e
        return payload

    @staticmethod
    def _require_claim(payload: dict[str, Any], claim: str) -> str:
        value = payload.get(claim)
        if not value:
            raise ForbiddenError("Forbidden - Invalid token payload")
        return str(value)


def hash_password(password: str) -> str:
    """Hash a password with bcrypt."""
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=10)).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Check a password against a stored bcrypt hash."""
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Stored hash is not a bcrypt hash
        return False


def sign_payload(payload: bytes, secret: str) -> str:
    """Compute the base64 HMAC-SHA256 signature for a webhook body."""
    digest = hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).digest()
    return base64.b64encode(digest).decode("utf-8")


def verify_signature(payload: bytes, signature: str, secret: str) -> bool:
    """Verify a webhook body against its base64 HMAC-SHA256 signature."""
    return hmac.compare_digest(sign_payload(payload, secret), signature)
