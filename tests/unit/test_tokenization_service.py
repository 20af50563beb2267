"""Unit tests for the tokenization orchestrator and response parsing."""

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from network_token.clients.tokenization_client import TokenizationApiClient
from network_token.domain.credential_store import ICredentialRecordRepository
from network_token.domain.services import (
    TokenizationService,
    parse_instrument_identifier_id,
    parse_network_token,
)
from network_token.domain.tokenization import CredentialRecord, TokenizationResult
from network_token.models.exceptions import (
    ApiError,
    NetworkError,
    OrchestrationError,
    PersistenceError,
    SigningError,
    ValidationError,
)


INSTRUMENT_RESPONSE = '{"id": "inst-1"}'
NETWORK_TOKEN_RESPONSE = json.dumps(
    {"networkToken": {"number": "1234567890123456", "cryptogram": "abc123"}}
)


def _saved(record: CredentialRecord) -> CredentialRecord:
    """Mimic the store: assign id and timestamps."""
    record.id = CredentialRecord.generate_record_id()
    return record


@pytest.fixture
def mock_client():
    client = AsyncMock(spec=TokenizationApiClient)
    client.create_instrument_identifier.return_value = INSTRUMENT_RESPONSE
    client.fetch_network_token.return_value = NETWORK_TOKEN_RESPONSE
    client.get_instrument_identifier.return_value = INSTRUMENT_RESPONSE
    return client


@pytest.fixture
def mock_repository():
    repository = MagicMock(spec=ICredentialRecordRepository)
    repository.save.side_effect = _saved
    return repository


@pytest.fixture
def service(mock_client, mock_repository):
    return TokenizationService(client=mock_client, repository=mock_repository)


class TestResponseParsing:
    """Tests for remote response parsing helpers."""

    def test_parse_instrument_identifier_id(self):
        assert parse_instrument_identifier_id(INSTRUMENT_RESPONSE) == "inst-1"

    def test_instrument_identifier_missing_id(self):
        with pytest.raises(ValueError, match="missing 'id'"):
            parse_instrument_identifier_id('{"state": "ACTIVE"}')

    def test_instrument_identifier_not_json(self):
        with pytest.raises(ValueError, match="not valid JSON"):
            parse_instrument_identifier_id("<html>oops</html>")

    def test_instrument_identifier_not_object(self):
        with pytest.raises(ValueError, match="not a JSON object"):
            parse_instrument_identifier_id('["inst-1"]')

    def test_parse_network_token(self):
        assert parse_network_token(NETWORK_TOKEN_RESPONSE) == ("1234567890123456", "abc123")

    def test_network_token_missing_block(self):
        with pytest.raises(ValueError, match="'networkToken'"):
            parse_network_token('{"invalid": "response"}')

    def test_network_token_missing_number(self):
        with pytest.raises(ValueError, match="networkToken.number"):
            parse_network_token('{"networkToken": {"cryptogram": "abc123"}}')

    def test_network_token_missing_cryptogram(self):
        with pytest.raises(ValueError, match="networkToken.cryptogram"):
            parse_network_token('{"networkToken": {"number": "1234567890123456"}}')


class TestTokenize:
    """Tests for TokenizationService.tokenize."""

    @pytest.mark.asyncio
    async def test_success(self, service, mock_client, mock_repository):
        """Test the full two-call flow and the stored record."""
        result = await service.tokenize("4111111111111111", "m-1")

        assert isinstance(result, TokenizationResult)
        assert result.network_token == "1234567890123456"
        assert result.cryptogram == "abc123"
        assert result.elapsed_milliseconds >= 0

        mock_client.create_instrument_identifier.assert_awaited_once_with("4111111111111111", "m-1")
        mock_client.fetch_network_token.assert_awaited_once_with("inst-1", "m-1")

        mock_repository.save.assert_called_once()
        record = mock_repository.save.call_args.args[0]
        assert record.merchant_id == "m-1"
        assert record.cryptogram == "abc123"
        assert record.payment_token_id.startswith("pc_")
        assert record.metadata["instrument_identifier_id"] == "inst-1"
        assert record.metadata["api_response"] == NETWORK_TOKEN_RESPONSE
        assert "creation_timestamp" in record.metadata

    @pytest.mark.asyncio
    async def test_record_never_contains_account_number(self, service, mock_repository):
        """Test that the PAN is not persisted anywhere in the record."""
        await service.tokenize("4111111111111111", "m-1")

        record = mock_repository.save.call_args.args[0]
        assert "4111111111111111" not in json.dumps(record.to_dict())

    @pytest.mark.asyncio
    async def test_elapsed_time_from_clock(self, mock_client, mock_repository):
        """Test elapsed milliseconds measured with the injected clock."""
        clock = MagicMock(side_effect=[100.0, 100.25])
        service = TokenizationService(mock_client, mock_repository, clock=clock)

        result = await service.tokenize("4111111111111111", "m-1")

        assert result.elapsed_milliseconds == 250

    @pytest.mark.asyncio
    async def test_same_account_number_twice(self, service, mock_client, mock_repository):
        """Test that repeated calls are independent and produce distinct records."""
        await service.tokenize("4111111111111111", "m-1")
        await service.tokenize("4111111111111111", "m-1")

        assert mock_client.create_instrument_identifier.await_count == 2
        assert mock_client.fetch_network_token.await_count == 2

        first, second = (call.args[0] for call in mock_repository.save.call_args_list)
        assert first.payment_token_id != second.payment_token_id
        assert first.id != second.id

    @pytest.mark.asyncio
    async def test_invalid_account_number(self, service, mock_client, mock_repository):
        """Test that validation fails before any remote call."""
        with pytest.raises(ValidationError, match="numeric"):
            await service.tokenize("4111-1111-1111-1111", "m-1")

        mock_client.create_instrument_identifier.assert_not_awaited()
        mock_repository.save.assert_not_called()

    @pytest.mark.asyncio
    async def test_empty_merchant_id(self, service, mock_client):
        with pytest.raises(ValidationError, match="merchant_id"):
            await service.tokenize("4111111111111111", "  ")

        mock_client.create_instrument_identifier.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_create_api_error_stops_flow(self, service, mock_client, mock_repository):
        """Test that a step-1 rejection propagates and step 2 never runs."""
        mock_client.create_instrument_identifier.side_effect = ApiError(
            "Tokenization API returned 400", status_code=400, response_body="Invalid card number"
        )

        with pytest.raises(ApiError) as exc_info:
            await service.tokenize("4111111111111111", "m-1")

        assert exc_info.value.status_code == 400
        assert exc_info.value.response_body == "Invalid card number"
        mock_client.fetch_network_token.assert_not_awaited()
        mock_repository.save.assert_not_called()

    @pytest.mark.asyncio
    async def test_create_network_error_stops_flow(self, service, mock_client, mock_repository):
        mock_client.create_instrument_identifier.side_effect = NetworkError("timeout")

        with pytest.raises(NetworkError):
            await service.tokenize("4111111111111111", "m-1")

        mock_client.fetch_network_token.assert_not_awaited()
        mock_repository.save.assert_not_called()

    @pytest.mark.asyncio
    async def test_signing_error_propagates(self, service, mock_client, mock_repository):
        mock_client.create_instrument_identifier.side_effect = SigningError("no key")

        with pytest.raises(SigningError):
            await service.tokenize("4111111111111111", "m-1")

        mock_repository.save.assert_not_called()

    @pytest.mark.asyncio
    async def test_create_response_without_id(self, service, mock_client, mock_repository):
        """Test that an unusable step-1 body becomes OrchestrationError."""
        mock_client.create_instrument_identifier.return_value = '{"state": "ACTIVE"}'

        with pytest.raises(OrchestrationError, match="parse_instrument_identifier") as exc_info:
            await service.tokenize("4111111111111111", "m-1")

        assert isinstance(exc_info.value.__cause__, ValueError)
        mock_client.fetch_network_token.assert_not_awaited()
        mock_repository.save.assert_not_called()

    @pytest.mark.asyncio
    async def test_fetch_api_error_stops_flow(self, service, mock_client, mock_repository):
        mock_client.fetch_network_token.side_effect = ApiError(
            "Tokenization API returned 404", status_code=404, response_body="not found"
        )

        with pytest.raises(ApiError):
            await service.tokenize("4111111111111111", "m-1")

        mock_repository.save.assert_not_called()

    @pytest.mark.asyncio
    async def test_unparseable_network_token(self, service, mock_client, mock_repository):
        """Test that a body without networkToken fails with nothing stored."""
        mock_client.fetch_network_token.return_value = '{"invalid": "response"}'

        with pytest.raises(OrchestrationError, match="parse_network_token"):
            await service.tokenize("4111111111111111", "m-1")

        mock_repository.save.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing_cryptogram(self, service, mock_client, mock_repository):
        mock_client.fetch_network_token.return_value = (
            '{"networkToken": {"number": "1234567890123456"}}'
        )

        with pytest.raises(OrchestrationError):
            await service.tokenize("4111111111111111", "m-1")

        mock_repository.save.assert_not_called()

    @pytest.mark.asyncio
    async def test_persistence_error_propagates(self, service, mock_repository):
        """Test that a store failure after two good calls is reported as such."""
        mock_repository.save.side_effect = PersistenceError("store down")

        with pytest.raises(PersistenceError, match="store down"):
            await service.tokenize("4111111111111111", "m-1")

    @pytest.mark.asyncio
    async def test_unexpected_error_wrapped(self, service, mock_client):
        """Test that unknown failures become OrchestrationError with the cause kept."""
        mock_client.create_instrument_identifier.side_effect = RuntimeError("boom")

        with pytest.raises(OrchestrationError, match="boom") as exc_info:
            await service.tokenize("4111111111111111", "m-1")

        assert isinstance(exc_info.value.__cause__, RuntimeError)

    @pytest.mark.asyncio
    async def test_cancellation_writes_nothing(self, service, mock_client, mock_repository):
        """Test that cancelling during the second call leaves no record."""
        mock_client.fetch_network_token.side_effect = asyncio.CancelledError()

        with pytest.raises(asyncio.CancelledError):
            await service.tokenize("4111111111111111", "m-1")

        mock_repository.save.assert_not_called()

    @pytest.mark.asyncio
    async def test_concurrent_runs_are_independent(self, service, mock_repository):
        """Test concurrent tokenizations for several merchants."""
        results = await asyncio.gather(
            *(service.tokenize("4111111111111111", f"m-{i}") for i in range(5))
        )

        assert len(results) == 5
        records = [call.args[0] for call in mock_repository.save.call_args_list]
        assert {record.merchant_id for record in records} == {f"m-{i}" for i in range(5)}
        assert len({record.payment_token_id for record in records}) == 5


class TestPaymentCredentials:
    """Tests for the remaining service operations."""

    @pytest.mark.asyncio
    async def test_get_payment_credentials(self, service, mock_client, mock_repository):
        """Test fetching credentials for an existing instrument identifier."""
        result = await service.get_payment_credentials("inst-1", "m-1")

        assert result.cryptogram == "abc123"
        mock_client.create_instrument_identifier.assert_not_awaited()
        mock_client.fetch_network_token.assert_awaited_once_with("inst-1", "m-1")
        assert mock_repository.save.call_args.args[0].instrument_identifier_id == "inst-1"

    @pytest.mark.asyncio
    async def test_get_payment_credentials_requires_identifier(self, service, mock_client):
        with pytest.raises(ValidationError, match="instrument_identifier_id"):
            await service.get_payment_credentials("", "m-1")

        mock_client.fetch_network_token.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_create_instrument_identifier_passthrough(self, service, mock_client):
        body = await service.create_instrument_identifier("4111111111111111", "m-1")

        assert body == INSTRUMENT_RESPONSE

    @pytest.mark.asyncio
    async def test_create_instrument_identifier_validates(self, service, mock_client):
        with pytest.raises(ValidationError, match="13-19 digits"):
            await service.create_instrument_identifier("411111", "m-1")

        mock_client.create_instrument_identifier.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_get_instrument_identifier_passthrough(self, service, mock_client):
        body = await service.get_instrument_identifier("inst-1", "m-1")

        assert body == INSTRUMENT_RESPONSE
        mock_client.get_instrument_identifier.assert_awaited_once_with("inst-1", "m-1")

    @pytest.mark.asyncio
    async def test_get_instrument_identifier_unexpected_error(self, service, mock_client):
        mock_client.get_instrument_identifier.side_effect = RuntimeError("boom")

        with pytest.raises(OrchestrationError):
            await service.get_instrument_identifier("inst-1", "m-1")

    def test_find_credential_record_missing(self, service, mock_repository):
        mock_repository.find_by_payment_token_id.return_value = None

        assert service.find_credential_record("pc_missing", "m-1") is None
        mock_repository.find_by_payment_token_id.assert_called_once_with("pc_missing")

    def test_find_credential_record_owned_by_merchant(self, service, mock_repository):
        record = CredentialRecord(payment_token_id="pc_1", cryptogram="abc123", merchant_id="m-1")
        mock_repository.find_by_payment_token_id.return_value = record

        assert service.find_credential_record("pc_1", "m-1") is record

    def test_find_credential_record_other_merchant_hidden(self, service, mock_repository):
        """Test that a record owned by another merchant is reported as not found."""
        mock_repository.find_by_payment_token_id.return_value = CredentialRecord(
            payment_token_id="pc_1", cryptogram="abc123", merchant_id="m-1"
        )

        assert service.find_credential_record("pc_1", "m-2") is None

    def test_find_credential_record_requires_merchant(self, service, mock_repository):
        with pytest.raises(ValidationError, match="merchant_id"):
            service.find_credential_record("pc_1", "")

        mock_repository.find_by_payment_token_id.assert_not_called()

    def test_list_credential_records_requires_merchant(self, service):
        with pytest.raises(ValidationError):
            service.list_credential_records("")
