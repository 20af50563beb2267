"""FastAPI routes for Network Token Service.

- POST /v1/network-tokens: Generate network token + cryptogram for a PAN
- POST /v1/instrument-identifiers: Create an instrument identifier (raw passthrough)
- GET  /v1/instrument-identifiers/{id}: Retrieve an instrument identifier (raw passthrough)
- GET  /v1/instrument-identifiers/{id}/payment-credentials: Network token for an existing identifier
- GET  /v1/credential-records/{payment_token_id}?merchant_id=: Stored credential record
- GET  /v1/credential-records?merchant_id=: Stored credential records for a merchant

Error kinds are translated to HTTP statuses by ``api.errors``.
"""

from fastapi import APIRouter, HTTPException, Query, Response, status

from network_token.api.dependencies import TokenizationSvc
from network_token.api.models import (
    CredentialRecordResponseJSON,
    NetworkTokenResponseJSON,
    TokenizeRequestJSON,
)

router = APIRouter(prefix="/v1")


@router.post(
    "/network-tokens",
    status_code=status.HTTP_201_CREATED,
    response_model=NetworkTokenResponseJSON,
)
async def create_network_token(
    body: TokenizeRequestJSON,
    service: TokenizationSvc,
) -> NetworkTokenResponseJSON:
    """Generate a network token and cryptogram for an account number.

    Responses:
        201 Created: Token generated and credential record stored
        400 Bad Request: Invalid account number or merchant ID
        4xx/5xx: Remote API status echoed for api_error
        503 Service Unavailable: Tokenization API unreachable
        500 Internal Server Error: Signing, persistence or orchestration failure
    """
    result = await service.tokenize(body.account_number.get_secret_value(), body.merchant_id)
    return NetworkTokenResponseJSON.from_result(result)


@router.post("/instrument-identifiers", status_code=status.HTTP_201_CREATED)
async def create_instrument_identifier(
    body: TokenizeRequestJSON,
    service: TokenizationSvc,
) -> Response:
    """Create an instrument identifier and return the remote body unchanged."""
    raw = await service.create_instrument_identifier(
        body.account_number.get_secret_value(), body.merchant_id
    )
    return Response(content=raw, media_type="application/json", status_code=status.HTTP_201_CREATED)


@router.get("/instrument-identifiers/{instrument_identifier_id}")
async def get_instrument_identifier(
    instrument_identifier_id: str,
    service: TokenizationSvc,
    merchant_id: str = Query(..., min_length=1),
) -> Response:
    """Retrieve an instrument identifier and return the remote body unchanged."""
    raw = await service.get_instrument_identifier(instrument_identifier_id, merchant_id)
    return Response(content=raw, media_type="application/json")


@router.get(
    "/instrument-identifiers/{instrument_identifier_id}/payment-credentials",
    response_model=NetworkTokenResponseJSON,
)
async def get_payment_credentials(
    instrument_identifier_id: str,
    service: TokenizationSvc,
    merchant_id: str = Query(..., min_length=1),
) -> NetworkTokenResponseJSON:
    """Fetch network token credentials for an existing instrument identifier."""
    result = await service.get_payment_credentials(instrument_identifier_id, merchant_id)
    return NetworkTokenResponseJSON.from_result(result)


@router.get(
    "/credential-records/{payment_token_id}",
    response_model=CredentialRecordResponseJSON,
)
async def get_credential_record(
    payment_token_id: str,
    service: TokenizationSvc,
    merchant_id: str = Query(..., min_length=1),
) -> CredentialRecordResponseJSON:
    """Retrieve a stored credential record owned by the merchant.

    Responses:
        200 OK: Record found
        404 Not Found: No record with this payment token ID for this merchant
    """
    record = service.find_credential_record(payment_token_id, merchant_id)
    if record is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Credential record not found",
        )
    return CredentialRecordResponseJSON.from_record(record)


@router.get(
    "/credential-records",
    response_model=list[CredentialRecordResponseJSON],
)
async def list_credential_records(
    service: TokenizationSvc,
    merchant_id: str = Query(..., min_length=1),
) -> list[CredentialRecordResponseJSON]:
    """List stored credential records for a merchant."""
    return [
        CredentialRecordResponseJSON.from_record(record)
        for record in service.list_credential_records(merchant_id)
    ]
