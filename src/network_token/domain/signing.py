"""Per-request authorization token signing.

Every outbound call to the tokenization API carries a short-lived RS256
JWT bound to the caller identity, the exact resource path and the HTTP
method. Tokens are never cached or reused: each call reads the clock and
signs a fresh payload.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional

import jwt
import structlog
from cryptography.hazmat.primitives.asymmetric import rsa

from network_token.models.exceptions import SigningError

logger = structlog.get_logger(__name__)

SIGNING_ALGORITHM = "RS256"
DEFAULT_TOKEN_TTL = timedelta(minutes=5)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class SigningContext:
    """Claims bound into one signed authorization token.

    Attributes:
        issuer: Merchant identity (JWT "iss")
        subject: API key (JWT "sub")
        key_id: Key identifier (JWT "kid" header)
        resource_path: Exact request path the token is valid for
        http_method: HTTP method the token is valid for (upper case)
        issued_at: Issue time, truncated to whole seconds
        expires_at: issued_at + validity window
    """

    issuer: str
    subject: str
    key_id: str
    resource_path: str
    http_method: str
    issued_at: datetime
    expires_at: datetime

    def __post_init__(self):
        """Validate context fields."""
        for name in ("issuer", "subject", "key_id", "resource_path", "http_method"):
            if not getattr(self, name):
                raise ValueError(f"{name} cannot be empty")

        if self.expires_at <= self.issued_at:
            raise ValueError("expires_at must be after issued_at")

    def to_claims(self) -> dict[str, Any]:
        """Build the JWT payload for this context.

        Returns:
            Claims dictionary; "jti" makes each token unique even when two
            contexts share the same second
        """
        return {
            "iss": self.issuer,
            "sub": self.subject,
            "resource": self.resource_path,
            "method": self.http_method,
            "iat": int(self.issued_at.timestamp()),
            "exp": int(self.expires_at.timestamp()),
            "jti": str(uuid.uuid4()),
        }


class RequestSigner:
    """Builds signed bearer tokens for tokenization API requests.

    The private key is loaded once (see ``load_private_key``) and shared
    read-only, so one signer instance is safe for concurrent use.
    """

    def __init__(
        self,
        private_key: Optional[rsa.RSAPrivateKey],
        token_ttl: timedelta = DEFAULT_TOKEN_TTL,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        """Initialize the signer.

        Args:
            private_key: RSA private key handle
            token_ttl: Validity window for each token (default 5 minutes)
            clock: Source of the current UTC time

        Raises:
            ValueError: If token_ttl is not positive
        """
        if token_ttl <= timedelta(0):
            raise ValueError("token_ttl must be positive")

        self._private_key = private_key
        self.token_ttl = token_ttl
        self._clock = clock

    def build_context(
        self,
        issuer: str,
        subject: str,
        key_id: str,
        resource_path: str,
        http_method: str,
    ) -> SigningContext:
        """Build the immutable signing context for one request.

        Raises:
            SigningError: If the clock cannot be read or a field is empty
        """
        try:
            now = self._clock()
        except Exception as e:
            logger.error("signing_clock_unavailable", error=str(e))
            raise SigningError("Failed to read clock for token issue time") from e

        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        issued_at = now.replace(microsecond=0)

        try:
            return SigningContext(
                issuer=issuer,
                subject=subject,
                key_id=key_id,
                resource_path=resource_path,
                http_method=(http_method or "").upper(),
                issued_at=issued_at,
                expires_at=issued_at + self.token_ttl,
            )
        except ValueError as e:
            raise SigningError(f"Invalid signing context: {e}") from e

    def sign_context(self, context: SigningContext) -> str:
        """Sign a prepared context.

        Raises:
            SigningError: If the key is absent or signing fails
        """
        if not isinstance(self._private_key, rsa.RSAPrivateKey):
            logger.error("signing_key_unavailable", key_id=context.key_id)
            raise SigningError("Signing key is missing or is not an RSA private key")

        try:
            token = jwt.encode(
                context.to_claims(),
                self._private_key,
                algorithm=SIGNING_ALGORITHM,
                headers={"kid": context.key_id},
            )
        except Exception as e:
            logger.error(
                "request_signing_failed",
                key_id=context.key_id,
                resource=context.resource_path,
                error=str(e),
            )
            raise SigningError(f"Failed to sign authorization token: {e}") from e

        logger.debug(
            "request_signed",
            issuer=context.issuer,
            key_id=context.key_id,
            resource=context.resource_path,
            method=context.http_method,
        )
        return token

    def sign(
        self,
        issuer: str,
        subject: str,
        key_id: str,
        resource_path: str,
        http_method: str,
    ) -> str:
        """Build and sign a fresh authorization token.

        Args:
            issuer: Merchant identity
            subject: API key
            key_id: Key identifier for the "kid" header
            resource_path: Exact request path (e.g. "/instrumentidentifiers")
            http_method: HTTP method (e.g. "POST")

        Returns:
            Compact JWT string

        Raises:
            SigningError: If the key is unusable or the clock cannot be read
        """
        context = self.build_context(issuer, subject, key_id, resource_path, http_method)
        return self.sign_context(context)
