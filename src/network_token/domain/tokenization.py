"""Domain models for network tokenization.

This module contains the value objects and entities that flow through the
tokenization pipeline. They are independent of HTTP and database concerns.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

from network_token.models.exceptions import ValidationError


def mask_account_number(account_number: Optional[str]) -> str:
    """Mask an account number down to its last four digits.

    This is the only representation of a PAN that may appear in logs,
    error messages or persisted diagnostics.

    Args:
        account_number: Full account number (may be None or short)

    Returns:
        Masked value such as "****1111"
    """
    if not account_number:
        return "****"
    return f"****{account_number[-4:]}"


@dataclass(frozen=True)
class TokenizationRequest:
    """Request to tokenize a primary account number for a merchant.

    Attributes:
        account_number: Full card number (PAN), never logged or persisted
        merchant_id: Merchant on whose behalf the request is made
    """

    account_number: str
    merchant_id: str

    def __post_init__(self):
        """Validate request fields."""
        if not self.account_number or not (
            self.account_number.isascii() and self.account_number.isdigit()
        ):
            raise ValidationError("account_number must be numeric")

        if len(self.account_number) < 13 or len(self.account_number) > 19:
            raise ValidationError("account_number must be 13-19 digits")

        if not self.merchant_id or not self.merchant_id.strip():
            raise ValidationError("merchant_id cannot be empty")

    @property
    def masked_account_number(self) -> str:
        return mask_account_number(self.account_number)

    def __repr__(self) -> str:
        return (
            f"TokenizationRequest(account_number={self.masked_account_number!r}, "
            f"merchant_id={self.merchant_id!r})"
        )


@dataclass(frozen=True)
class TokenizationResult:
    """Network token and cryptogram returned to the caller.

    Attributes:
        network_token: Surrogate card number issued by the card network
        cryptogram: Single-use proof accompanying the network token
        elapsed_milliseconds: Time spent on the two remote calls
    """

    network_token: str
    cryptogram: str
    elapsed_milliseconds: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "network_token": self.network_token,
            "cryptogram": self.cryptogram,
            "elapsed_milliseconds": self.elapsed_milliseconds,
        }


@dataclass
class CredentialRecord:
    """Persisted outcome of a successful tokenization.

    Attributes:
        payment_token_id: Caller-facing id, unique across all records
        cryptogram: Cryptogram parsed from the network token response
        merchant_id: Merchant that owns the record
        metadata: Instrument identifier id, raw API response, creation time
        id: System-assigned record id (None until saved)
        created_at: Set by the store on first insert
        updated_at: Set by the store on every write
    """

    payment_token_id: str
    cryptogram: str
    merchant_id: str
    metadata: dict[str, Any] = field(default_factory=dict)
    id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        """Validate record fields."""
        if not self.payment_token_id:
            raise ValueError("payment_token_id cannot be empty")

        if not self.merchant_id:
            raise ValueError("merchant_id cannot be empty")

        if self.created_at and self.updated_at and self.updated_at < self.created_at:
            raise ValueError("updated_at must not be before created_at")

    @staticmethod
    def generate_payment_token_id() -> str:
        """Generate a new payment token ID.

        Returns:
            Token ID in format pc_{uuid}
        """
        return f"pc_{uuid.uuid4()}"

    @staticmethod
    def generate_record_id() -> str:
        return str(uuid.uuid4())

    @property
    def instrument_identifier_id(self) -> Optional[str]:
        return self.metadata.get("instrument_identifier_id")

    @classmethod
    def create(
        cls,
        merchant_id: str,
        cryptogram: str,
        instrument_identifier_id: str,
        api_response: str,
    ) -> "CredentialRecord":
        """Create a new credential record for a completed tokenization.

        The payment token ID is generated here; the id and timestamps are
        assigned by the store when the record is saved.

        Args:
            merchant_id: Merchant that owns the record
            cryptogram: Cryptogram from the network token response
            instrument_identifier_id: Instrument identifier returned by step 1
            api_response: Raw network token response body

        Returns:
            New, unsaved CredentialRecord
        """
        return cls(
            payment_token_id=cls.generate_payment_token_id(),
            cryptogram=cryptogram,
            merchant_id=merchant_id,
            metadata={
                "instrument_identifier_id": instrument_identifier_id,
                "api_response": api_response,
                "creation_timestamp": datetime.now(timezone.utc).isoformat(),
            },
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "payment_token_id": self.payment_token_id,
            "cryptogram": self.cryptogram,
            "merchant_id": self.merchant_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
            "metadata": dict(self.metadata),
        }
