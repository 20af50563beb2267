"""Credential record repository interface.

The domain layer defines what it needs from the record store; the
infrastructure layer implements it on top of SQLAlchemy.
"""

from abc import ABC, abstractmethod
from typing import Optional

from network_token.domain.tokenization import CredentialRecord


class ICredentialRecordRepository(ABC):
    """Abstract repository for credential record persistence.

    Implementations must enforce uniqueness of payment_token_id through the
    storage engine's own constraint and translate every backend failure into
    PersistenceError. Lookups that find nothing return None or an empty
    list; they never raise for the not-found case.
    """

    @abstractmethod
    def save(self, record: CredentialRecord) -> CredentialRecord:
        """Persist a record, assigning id and timestamps on first insert.

        Raises:
            PersistenceError: Duplicate payment_token_id or backend failure.
        """
        pass

    @abstractmethod
    def find_by_payment_token_id(self, payment_token_id: str) -> Optional[CredentialRecord]:
        pass

    @abstractmethod
    def find_by_merchant_id(self, merchant_id: str) -> list[CredentialRecord]:
        pass

    @abstractmethod
    def exists_by_payment_token_id(self, payment_token_id: str) -> bool:
        pass
