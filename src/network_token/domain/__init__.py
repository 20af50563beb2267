"""Network token domain layer.

This package contains the domain entities, value objects, signing and
orchestration services, and repository interfaces for network tokenization.
"""

from network_token.domain.credential_store import ICredentialRecordRepository
from network_token.domain.services import (
    TokenizationService,
    parse_instrument_identifier_id,
    parse_network_token,
)
from network_token.domain.signing import RequestSigner, SigningContext
from network_token.domain.tokenization import (
    CredentialRecord,
    TokenizationRequest,
    TokenizationResult,
    mask_account_number,
)

__all__ = [
    # Models
    "TokenizationRequest",
    "TokenizationResult",
    "CredentialRecord",
    "mask_account_number",
    # Signing
    "RequestSigner",
    "SigningContext",
    # Services
    "TokenizationService",
    "parse_instrument_identifier_id",
    "parse_network_token",
    # Repository interfaces
    "ICredentialRecordRepository",
]
