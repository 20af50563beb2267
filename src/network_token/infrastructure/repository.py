"""Repository layer for credential record database operations.

This module provides the data access layer for credential records. Each
operation opens its own session, so one repository instance can be shared
by concurrent tokenization runs; uniqueness of payment_token_id is left to
the database constraint rather than application locks.
"""

from datetime import datetime, timezone
from typing import Optional

import structlog
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from network_token.domain.credential_store import ICredentialRecordRepository
from network_token.domain.tokenization import CredentialRecord
from network_token.infrastructure.database import session_scope
from network_token.infrastructure.models import CredentialRecordModel
from network_token.models.exceptions import PersistenceError

logger = structlog.get_logger(__name__)


class CredentialRecordRepository(ICredentialRecordRepository):
    """Repository for credential record storage and lookup."""

    def __init__(self, session_factory: sessionmaker):
        """Initialize repository with a session factory.

        Args:
            session_factory: SQLAlchemy sessionmaker bound to the store
        """
        self.session_factory = session_factory

    def save(self, record: CredentialRecord) -> CredentialRecord:
        """Insert or update a credential record.

        On first insert a system id is assigned when absent and created_at
        and updated_at are both set to the current time. Saving a record
        whose id already exists updates it and bumps updated_at only.

        Args:
            record: CredentialRecord domain entity to persist

        Returns:
            The persisted record with id and timestamps populated

        Raises:
            PersistenceError: If payment_token_id already exists or the
                backend fails
        """
        now = datetime.now(timezone.utc)

        try:
            with session_scope(self.session_factory) as session:
                existing = (
                    session.get(CredentialRecordModel, record.id) if record.id else None
                )

                if existing is not None:
                    existing.payment_token_id = record.payment_token_id
                    existing.cryptogram = record.cryptogram
                    existing.merchant_id = record.merchant_id
                    existing.record_metadata = dict(record.metadata)
                    existing.updated_at = now
                    session.flush()
                    saved = self._to_domain_entity(existing)
                    logger.info(
                        "credential_record_updated",
                        record_id=saved.id,
                        payment_token_id=saved.payment_token_id,
                    )
                else:
                    model = CredentialRecordModel(
                        id=record.id or CredentialRecord.generate_record_id(),
                        payment_token_id=record.payment_token_id,
                        cryptogram=record.cryptogram,
                        merchant_id=record.merchant_id,
                        created_at=now,
                        updated_at=now,
                        record_metadata=dict(record.metadata),
                    )
                    session.add(model)
                    session.flush()  # Flush to check for integrity errors
                    saved = self._to_domain_entity(model)
                    logger.info(
                        "credential_record_created",
                        record_id=saved.id,
                        payment_token_id=saved.payment_token_id,
                        merchant_id=saved.merchant_id,
                    )

        except IntegrityError as e:
            logger.error(
                "credential_record_duplicate",
                payment_token_id=record.payment_token_id,
                merchant_id=record.merchant_id,
            )
            raise PersistenceError(
                f"Credential record with payment_token_id {record.payment_token_id} already exists"
            ) from e

        except SQLAlchemyError as e:
            logger.error(
                "credential_record_save_failed",
                payment_token_id=record.payment_token_id,
                merchant_id=record.merchant_id,
                error=str(e),
            )
            raise PersistenceError("Failed to persist credential record") from e

        return saved

    def find_by_payment_token_id(self, payment_token_id: str) -> Optional[CredentialRecord]:
        """Retrieve a credential record by payment token ID.

        Returns:
            CredentialRecord if found, None otherwise

        Raises:
            PersistenceError: If the backend fails
        """
        logger.debug("credential_record_lookup", payment_token_id=payment_token_id)

        try:
            with session_scope(self.session_factory) as session:
                model = (
                    session.query(CredentialRecordModel)
                    .filter(CredentialRecordModel.payment_token_id == payment_token_id)
                    .first()
                )
                if not model:
                    logger.debug("credential_record_not_found", payment_token_id=payment_token_id)
                    return None
                return self._to_domain_entity(model)

        except SQLAlchemyError as e:
            logger.error(
                "credential_record_lookup_failed",
                payment_token_id=payment_token_id,
                error=str(e),
            )
            raise PersistenceError("Failed to query credential records") from e

    def find_by_merchant_id(self, merchant_id: str) -> list[CredentialRecord]:
        """Retrieve all credential records owned by a merchant.

        Raises:
            PersistenceError: If the backend fails
        """
        try:
            with session_scope(self.session_factory) as session:
                models = (
                    session.query(CredentialRecordModel)
                    .filter(CredentialRecordModel.merchant_id == merchant_id)
                    .all()
                )
                return [self._to_domain_entity(model) for model in models]

        except SQLAlchemyError as e:
            logger.error("credential_record_lookup_failed", merchant_id=merchant_id, error=str(e))
            raise PersistenceError("Failed to query credential records") from e

    def find_by_merchant_id_and_cryptogram(
        self, merchant_id: str, cryptogram: str
    ) -> Optional[CredentialRecord]:
        """Retrieve a merchant's credential record by cryptogram.

        Raises:
            PersistenceError: If the backend fails
        """
        try:
            with session_scope(self.session_factory) as session:
                model = (
                    session.query(CredentialRecordModel)
                    .filter(
                        CredentialRecordModel.merchant_id == merchant_id,
                        CredentialRecordModel.cryptogram == cryptogram,
                    )
                    .first()
                )
                return self._to_domain_entity(model) if model else None

        except SQLAlchemyError as e:
            logger.error("credential_record_lookup_failed", merchant_id=merchant_id, error=str(e))
            raise PersistenceError("Failed to query credential records") from e

    def exists_by_payment_token_id(self, payment_token_id: str) -> bool:
        """Check whether a payment token ID is already stored.

        Raises:
            PersistenceError: If the backend fails
        """
        try:
            with session_scope(self.session_factory) as session:
                return (
                    session.query(CredentialRecordModel.id)
                    .filter(CredentialRecordModel.payment_token_id == payment_token_id)
                    .first()
                    is not None
                )

        except SQLAlchemyError as e:
            logger.error(
                "credential_record_lookup_failed",
                payment_token_id=payment_token_id,
                error=str(e),
            )
            raise PersistenceError("Failed to query credential records") from e

    def _to_domain_entity(self, model: CredentialRecordModel) -> CredentialRecord:
        """Convert ORM model to domain entity.

        Args:
            model: SQLAlchemy ORM model

        Returns:
            CredentialRecord domain entity
        """
        return CredentialRecord(
            id=model.id,
            payment_token_id=model.payment_token_id,
            cryptogram=model.cryptogram,
            merchant_id=model.merchant_id,
            created_at=_as_utc(model.created_at),
            updated_at=_as_utc(model.updated_at),
            metadata=dict(model.record_metadata or {}),
        )


def _as_utc(value: datetime) -> datetime:
    # SQLite drops tzinfo on round trip
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
