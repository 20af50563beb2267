"""Domain services for network tokenization.

This module sequences the two remote calls that turn an account number into
a network token and cryptogram, and records the outcome exactly once per
successful run.
"""

import json
import time
from typing import TYPE_CHECKING, Any, Callable, Optional

import structlog

from network_token.domain.credential_store import ICredentialRecordRepository
from network_token.domain.tokenization import (
    CredentialRecord,
    TokenizationRequest,
    TokenizationResult,
)
from network_token.models.exceptions import (
    NetworkTokenError,
    OrchestrationError,
    ValidationError,
)

if TYPE_CHECKING:
    from network_token.clients.tokenization_client import TokenizationApiClient

logger = structlog.get_logger(__name__)


def _load_json_object(body: str, description: str) -> dict[str, Any]:
    try:
        data = json.loads(body)
    except (TypeError, json.JSONDecodeError) as e:
        raise ValueError(f"{description} response is not valid JSON") from e

    if not isinstance(data, dict):
        raise ValueError(f"{description} response is not a JSON object")
    return data


def parse_instrument_identifier_id(body: str) -> str:
    """Extract the instrument identifier id from a create response.

    Raises:
        ValueError: If the body is not JSON or "id" is missing/empty
    """
    data = _load_json_object(body, "Instrument identifier")
    instrument_identifier_id = data.get("id")
    if not isinstance(instrument_identifier_id, str) or not instrument_identifier_id:
        raise ValueError("Instrument identifier response is missing 'id'")
    return instrument_identifier_id


def parse_network_token(body: str) -> tuple[str, str]:
    """Extract (number, cryptogram) from a network token response.

    Expected shape: {"networkToken": {"number": "...", "cryptogram": "..."}}

    Raises:
        ValueError: If the body is not JSON or a required field is missing
    """
    data = _load_json_object(body, "Network token")
    network_token = data.get("networkToken")
    if not isinstance(network_token, dict):
        raise ValueError("Network token response is missing 'networkToken'")

    number = network_token.get("number")
    if not isinstance(number, str) or not number:
        raise ValueError("Network token response is missing 'networkToken.number'")

    cryptogram = network_token.get("cryptogram")
    if not isinstance(cryptogram, str) or not cryptogram:
        raise ValueError("Network token response is missing 'networkToken.cryptogram'")

    return number, cryptogram


class TokenizationService:
    """Orchestrates network token generation.

    Flow for ``tokenize``:
    1. Create an instrument identifier for the account number
    2. Fetch the network token and cryptogram for that identifier
    3. Persist a credential record
    4. Return the token, cryptogram and elapsed time

    Error policy:
    - ValidationError, SigningError, NetworkError, ApiError and
      PersistenceError propagate unchanged
    - Anything else (unparseable bodies, missing fields, unexpected
      exceptions) is wrapped in OrchestrationError
    - No retries, and no state is kept between runs
    """

    def __init__(
        self,
        client: "TokenizationApiClient",
        repository: ICredentialRecordRepository,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the service.

        Args:
            client: Tokenization API client
            repository: Credential record store
            clock: Monotonic clock in seconds, used for elapsed time
        """
        self.client = client
        self.repository = repository
        self._clock = clock

    async def tokenize(self, account_number: str, merchant_id: str) -> TokenizationResult:
        """Generate a network token and cryptogram for an account number.

        Every call performs two fresh remote round trips and persists a new
        record; calling twice with the same account number yields two
        distinct records.

        Args:
            account_number: Full card number (PAN)
            merchant_id: Merchant on whose behalf the request is made

        Returns:
            TokenizationResult with network token, cryptogram and elapsed ms

        Raises:
            ValidationError: Invalid account number or merchant ID
            SigningError: Authorization token could not be built
            ApiError: Remote API rejected a request
            NetworkError: Remote API unreachable or timed out
            PersistenceError: Record could not be stored
            OrchestrationError: Unparseable response or unexpected failure
        """
        request = TokenizationRequest(account_number=account_number, merchant_id=merchant_id)
        log = logger.bind(merchant_id=merchant_id, card=request.masked_account_number)
        log.info("network_token_generation_started")

        started_at = self._clock()
        step = "create_instrument_identifier"

        try:
            instrument_response = await self.client.create_instrument_identifier(
                request.account_number, request.merchant_id
            )
            step = "parse_instrument_identifier"
            instrument_identifier_id = parse_instrument_identifier_id(instrument_response)

        except NetworkTokenError as e:
            log.error(
                "network_token_generation_failed",
                step=step,
                error_type=type(e).__name__,
                error=str(e),
            )
            raise
        except Exception as e:
            log.error(
                "network_token_generation_failed",
                step=step,
                error_type=type(e).__name__,
                error=str(e),
            )
            raise OrchestrationError(f"Failed during {step}: {e}") from e

        log.info("instrument_identifier_created", instrument_identifier_id=instrument_identifier_id)

        result = await self._fetch_and_persist(
            instrument_identifier_id, request.merchant_id, started_at, log
        )

        log.info(
            "network_token_generation_succeeded",
            elapsed_milliseconds=result.elapsed_milliseconds,
        )
        return result

    async def get_payment_credentials(
        self, instrument_identifier_id: str, merchant_id: str
    ) -> TokenizationResult:
        """Fetch and persist payment credentials for an existing instrument identifier.

        Raises:
            ValidationError, SigningError, ApiError, NetworkError,
            PersistenceError, OrchestrationError
        """
        _require(instrument_identifier_id, "instrument_identifier_id")
        _require(merchant_id, "merchant_id")

        log = logger.bind(merchant_id=merchant_id, instrument_identifier_id=instrument_identifier_id)
        log.info("payment_credentials_requested")

        return await self._fetch_and_persist(
            instrument_identifier_id, merchant_id, self._clock(), log
        )

    async def create_instrument_identifier(self, account_number: str, merchant_id: str) -> str:
        """Create an instrument identifier and return the raw remote body.

        Raises:
            ValidationError, SigningError, ApiError, NetworkError,
            OrchestrationError
        """
        request = TokenizationRequest(account_number=account_number, merchant_id=merchant_id)

        try:
            return await self.client.create_instrument_identifier(
                request.account_number, request.merchant_id
            )
        except NetworkTokenError:
            raise
        except Exception as e:
            logger.error(
                "instrument_identifier_creation_failed",
                merchant_id=merchant_id,
                card=request.masked_account_number,
                error=str(e),
            )
            raise OrchestrationError(f"Unexpected error creating instrument identifier: {e}") from e

    async def get_instrument_identifier(self, instrument_identifier_id: str, merchant_id: str) -> str:
        """Retrieve an instrument identifier's raw representation.

        Raises:
            ValidationError, SigningError, ApiError, NetworkError,
            OrchestrationError
        """
        _require(instrument_identifier_id, "instrument_identifier_id")
        _require(merchant_id, "merchant_id")

        try:
            return await self.client.get_instrument_identifier(instrument_identifier_id, merchant_id)
        except NetworkTokenError:
            raise
        except Exception as e:
            logger.error(
                "instrument_identifier_lookup_failed",
                merchant_id=merchant_id,
                instrument_identifier_id=instrument_identifier_id,
                error=str(e),
            )
            raise OrchestrationError(f"Unexpected error retrieving instrument identifier: {e}") from e

    def find_credential_record(
        self, payment_token_id: str, merchant_id: str
    ) -> Optional[CredentialRecord]:
        """Retrieve a stored credential record owned by a merchant.

        A record belonging to another merchant is reported as not found.

        Raises:
            ValidationError: Empty payment token ID or merchant ID
            PersistenceError: Store failure
        """
        _require(payment_token_id, "payment_token_id")
        _require(merchant_id, "merchant_id")

        record = self.repository.find_by_payment_token_id(payment_token_id)
        if record is None:
            return None

        if record.merchant_id != merchant_id:
            logger.warning(
                "credential_record_merchant_mismatch",
                payment_token_id=payment_token_id,
                merchant_id=merchant_id,
            )
            return None
        return record

    def list_credential_records(self, merchant_id: str) -> list[CredentialRecord]:
        _require(merchant_id, "merchant_id")
        return self.repository.find_by_merchant_id(merchant_id)

    async def _fetch_and_persist(
        self,
        instrument_identifier_id: str,
        merchant_id: str,
        started_at: float,
        log: Any,
    ) -> TokenizationResult:
        step = "fetch_network_token"

        try:
            credentials_response = await self.client.fetch_network_token(
                instrument_identifier_id, merchant_id
            )
            step = "parse_network_token"
            network_token, cryptogram = parse_network_token(credentials_response)

            elapsed_ms = max(0, int(round((self._clock() - started_at) * 1000)))

            # Nothing is written unless both remote calls succeeded
            step = "persist_credential_record"
            record = self.repository.save(
                CredentialRecord.create(
                    merchant_id=merchant_id,
                    cryptogram=cryptogram,
                    instrument_identifier_id=instrument_identifier_id,
                    api_response=credentials_response,
                )
            )

        except NetworkTokenError as e:
            log.error(
                "network_token_generation_failed",
                step=step,
                error_type=type(e).__name__,
                error=str(e),
            )
            raise
        except Exception as e:
            log.error(
                "network_token_generation_failed",
                step=step,
                error_type=type(e).__name__,
                error=str(e),
            )
            raise OrchestrationError(f"Failed during {step}: {e}") from e

        log.info(
            "credential_record_persisted",
            payment_token_id=record.payment_token_id,
            record_id=record.id,
        )
        return TokenizationResult(
            network_token=network_token,
            cryptogram=cryptogram,
            elapsed_milliseconds=elapsed_ms,
        )


def _require(value: Optional[str], name: str) -> None:
    if not value or not value.strip():
        raise ValidationError(f"{name} cannot be empty")
