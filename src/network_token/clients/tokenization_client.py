"""Tokenization API client for instrument identifiers and network tokens."""

import uuid
from urllib.parse import quote

import httpx
import structlog

from network_token.domain.signing import RequestSigner
from network_token.domain.tokenization import mask_account_number
from network_token.models.exceptions import ApiError, NetworkError

logger = structlog.get_logger(__name__)

INSTRUMENT_IDENTIFIERS_PATH = "/instrumentidentifiers"
MERCHANT_ID_HEADER = "v-c-merchant-id"
DEFAULT_TIMEOUT_SECONDS = 30.0


def instrument_identifier_path(instrument_identifier_id: str) -> str:
    return f"{INSTRUMENT_IDENTIFIERS_PATH}/{quote(instrument_identifier_id, safe='')}"


def network_tokens_path(instrument_identifier_id: str) -> str:
    return f"{instrument_identifier_path(instrument_identifier_id)}/networktokens"


class TokenizationApiClient:
    """
    Client for the remote tokenization API.

    Each request is authorized with a freshly signed JWT scoped to that
    request's exact resource path and method, plus the merchant identity
    header. Failures are normalized into:

    - ApiError: the API answered with a non-2xx status (status and body kept)
    - NetworkError: timeout, connection, TLS or DNS failure
    - SigningError: raised by the signer, propagated unchanged

    The client never retries; retry policy belongs to the caller.
    """

    def __init__(
        self,
        base_url: str,
        signer: RequestSigner,
        api_key: str,
        key_id: str,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        http_client: httpx.AsyncClient | None = None,
    ):
        """
        Initialize the tokenization API client.

        Args:
            base_url: API base URL (e.g., "https://apitest.cybersource.com/tms/v1")
            signer: Request signer used for the Authorization header
            api_key: API key, used as the JWT subject
            key_id: Key ID for the JWT "kid" header
            timeout_seconds: Request timeout in seconds (default: 30.0)
            http_client: Optional preconfigured AsyncClient (tests, shared pools)
        """
        self.base_url = base_url.rstrip("/")
        self.signer = signer
        self.api_key = api_key
        self.key_id = key_id
        self.timeout_seconds = timeout_seconds
        self.http_client = http_client or httpx.AsyncClient(timeout=timeout_seconds)

        logger.info(
            "tokenization_api_client_initialized",
            base_url=self.base_url,
            timeout_seconds=timeout_seconds,
        )

    async def close(self) -> None:
        """Close the HTTP client connection pool."""
        await self.http_client.aclose()

    def _build_headers(self, resource_path: str, http_method: str, merchant_id: str) -> dict[str, str]:
        token = self.signer.sign(
            issuer=merchant_id,
            subject=self.api_key,
            key_id=self.key_id,
            resource_path=resource_path,
            http_method=http_method,
        )
        return {
            "Authorization": f"Bearer {token}",
            MERCHANT_ID_HEADER: merchant_id,
            "Accept": "application/json",
            "X-Request-ID": str(uuid.uuid4()),
        }

    async def create_instrument_identifier(self, account_number: str, merchant_id: str) -> str:
        """
        Create an instrument identifier for a card number.

        Calls POST /instrumentidentifiers.

        Args:
            account_number: Full card number (sent only in the request body)
            merchant_id: Merchant on whose behalf the call is made

        Returns:
            Raw response body

        Raises:
            SigningError: Authorization token could not be built
            ApiError: Non-2xx response
            NetworkError: Transport failure or timeout
        """
        return await self._send(
            "POST",
            INSTRUMENT_IDENTIFIERS_PATH,
            merchant_id,
            json_body={"card": {"number": account_number}},
            card_last4=mask_account_number(account_number),
        )

    async def get_instrument_identifier(self, instrument_identifier_id: str, merchant_id: str) -> str:
        """
        Retrieve an existing instrument identifier.

        Calls GET /instrumentidentifiers/{id}.

        Raises:
            SigningError, ApiError, NetworkError
        """
        return await self._send(
            "GET",
            instrument_identifier_path(instrument_identifier_id),
            merchant_id,
            instrument_identifier_id=instrument_identifier_id,
        )

    async def fetch_network_token(self, instrument_identifier_id: str, merchant_id: str) -> str:
        """
        Fetch the network token and cryptogram for an instrument identifier.

        Calls GET /instrumentidentifiers/{id}/networktokens.

        Raises:
            SigningError, ApiError, NetworkError
        """
        return await self._send(
            "GET",
            network_tokens_path(instrument_identifier_id),
            merchant_id,
            instrument_identifier_id=instrument_identifier_id,
        )

    async def _send(
        self,
        http_method: str,
        resource_path: str,
        merchant_id: str,
        json_body: dict | None = None,
        **log_context: str,
    ) -> str:
        # Signing happens outside the try block so SigningError propagates as-is
        headers = self._build_headers(resource_path, http_method, merchant_id)
        correlation_id = headers["X-Request-ID"]
        url = f"{self.base_url}{resource_path}"

        logger.info(
            "tokenization_api_request",
            method=http_method,
            resource=resource_path,
            merchant_id=merchant_id,
            correlation_id=correlation_id,
            **log_context,
        )

        try:
            if http_method == "POST":
                response = await self.http_client.post(url, headers=headers, json=json_body)
            else:
                response = await self.http_client.get(url, headers=headers)

        except httpx.TimeoutException as e:
            logger.error(
                "tokenization_api_timeout",
                method=http_method,
                resource=resource_path,
                merchant_id=merchant_id,
                correlation_id=correlation_id,
                error=str(e),
                **log_context,
            )
            raise NetworkError(
                f"Tokenization API timeout after {self.timeout_seconds}s ({http_method} {resource_path})"
            ) from e

        except httpx.RequestError as e:
            # Connection refused, DNS, TLS, protocol errors, etc.
            logger.error(
                "tokenization_api_request_error",
                method=http_method,
                resource=resource_path,
                merchant_id=merchant_id,
                correlation_id=correlation_id,
                error=str(e),
                **log_context,
            )
            raise NetworkError(f"Tokenization API request error: {e}") from e

        if not 200 <= response.status_code < 300:
            body = response.text
            logger.error(
                "tokenization_api_error",
                method=http_method,
                resource=resource_path,
                merchant_id=merchant_id,
                correlation_id=correlation_id,
                status_code=response.status_code,
                response_length=len(body),
                **log_context,
            )
            raise ApiError(
                f"Tokenization API returned {response.status_code} for {http_method} {resource_path}",
                status_code=response.status_code,
                response_body=body,
            )

        logger.info(
            "tokenization_api_success",
            method=http_method,
            resource=resource_path,
            merchant_id=merchant_id,
            correlation_id=correlation_id,
            status_code=response.status_code,
        )
        return response.text

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()
