"""Pydantic models for JSON API requests/responses."""

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, SecretStr

from network_token.domain.tokenization import CredentialRecord, TokenizationResult


class TokenizeRequestJSON(BaseModel):
    """JSON request model for network token generation.

    The account number is held as a SecretStr so it never appears in
    reprs or validation error output.
    """

    account_number: SecretStr = Field(..., description="Primary account number (PAN)")
    merchant_id: str = Field(..., min_length=1, description="Merchant identity")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "account_number": "4111111111111111",
                "merchant_id": "merchant-001",
            }
        }
    )


class NetworkTokenResponseJSON(BaseModel):
    """JSON response model for a generated network token."""

    network_token: str = Field(..., description="Network token number")
    cryptogram: str = Field(..., description="Cryptogram for the network token")
    elapsed_milliseconds: int = Field(..., description="Time spent on remote calls")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "network_token": "1234567890123456",
                "cryptogram": "abc123",
                "elapsed_milliseconds": 412,
            }
        }
    )

    @classmethod
    def from_result(cls, result: TokenizationResult) -> "NetworkTokenResponseJSON":
        return cls(**result.to_dict())


class CredentialRecordResponseJSON(BaseModel):
    """JSON response model for a stored credential record."""

    id: str = Field(..., description="System-assigned record id")
    payment_token_id: str = Field(..., description="Payment token ID")
    cryptogram: str = Field(..., description="Stored cryptogram")
    merchant_id: str = Field(..., description="Owning merchant")
    created_at: Optional[str] = Field(None, description="Creation time (ISO 8601)")
    updated_at: Optional[str] = Field(None, description="Last update time (ISO 8601)")
    metadata: Dict[str, Any] = Field(default_factory=dict, description="Record metadata")

    @classmethod
    def from_record(cls, record: CredentialRecord) -> "CredentialRecordResponseJSON":
        return cls(**record.to_dict())


class ErrorResponseJSON(BaseModel):
    """JSON body returned for every error."""

    error: str = Field(..., description="Error kind")
    detail: Any = Field(None, description="Human-readable detail or remote body")
    status_code: Optional[int] = Field(None, description="Remote status code (api_error only)")
