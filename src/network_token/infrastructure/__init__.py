"""Infrastructure layer exports."""

from network_token.infrastructure.key_loader import load_private_key
from network_token.infrastructure.repository import CredentialRecordRepository

__all__ = [
    "CredentialRecordRepository",
    "load_private_key",
]
