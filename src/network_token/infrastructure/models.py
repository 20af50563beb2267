"""SQLAlchemy ORM models for Network Token Service."""

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, TIMESTAMP, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from network_token.infrastructure.database import Base


class CredentialRecordModel(Base):
    """
    Outcome of a successful network tokenization.

    One row is written per successful tokenize run. The account number is
    never stored; only the caller-facing payment token id, the cryptogram
    and diagnostic metadata.
    """

    __tablename__ = "credential_records"

    # System-assigned identifier (UUID string)
    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, comment="System-assigned record id"
    )

    # Caller-facing identifier (format: pc_<uuid>), unique across all records
    payment_token_id: Mapped[str] = mapped_column(
        String(64), nullable=False, unique=True, comment="Payment token ID in format pc_<uuid>"
    )

    cryptogram: Mapped[str] = mapped_column(
        Text, nullable=False, comment="Cryptogram from the network token response"
    )

    merchant_id: Mapped[str] = mapped_column(
        String(255), nullable=False, index=True, comment="Owning merchant"
    )

    # Lifecycle timestamps (set by the repository, equal on first insert)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, comment="Record creation timestamp"
    )

    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, comment="Record last update timestamp"
    )

    # Note: Using 'record_metadata' to avoid conflict with SQLAlchemy's reserved 'metadata'
    record_metadata: Mapped[dict[str, Any] | None] = mapped_column(
        "metadata",
        JSON,
        nullable=True,
        comment="instrument_identifier_id, api_response, creation_timestamp",
    )

    __table_args__ = (
        Index("idx_credential_merchant_cryptogram", "merchant_id", "cryptogram"),
    )
