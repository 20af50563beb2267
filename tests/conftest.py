"""Pytest configuration and shared fixtures for all tests.

This module provides shared test fixtures including:
- RSA signing key material (in memory and as PEM files)
- In-memory SQLite credential record store
- Standard merchant / account number test data
"""

import sys
from pathlib import Path

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from network_token.domain.signing import RequestSigner
from network_token.infrastructure.database import (
    create_db_engine,
    create_session_factory,
    drop_all_tables,
    init_db,
)
from network_token.infrastructure.repository import CredentialRecordRepository


TEST_DATABASE_URL = "sqlite://"


@pytest.fixture(scope="session")
def rsa_private_key() -> rsa.RSAPrivateKey:
    """Generate one RSA key for the whole test session (key generation is slow)."""
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def rsa_public_key(rsa_private_key):
    """Public half of the session signing key."""
    return rsa_private_key.public_key()


@pytest.fixture
def pem_key_file(tmp_path, rsa_private_key) -> Path:
    """Write the session key to a PKCS#8 PEM file."""
    path = tmp_path / "private_key.pem"
    path.write_bytes(
        rsa_private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )
    )
    return path


@pytest.fixture
def signer(rsa_private_key) -> RequestSigner:
    """Request signer using the session key and the real clock."""
    return RequestSigner(rsa_private_key)


@pytest.fixture
def db_engine():
    """Create a fresh in-memory database with the schema applied.

    This fixture:
    1. Creates an in-memory SQLite engine (single shared connection)
    2. Creates all tables
    3. Yields the engine for the test
    4. Drops all tables and disposes of the engine
    """
    engine = create_db_engine(TEST_DATABASE_URL)
    init_db(engine)

    yield engine

    drop_all_tables(engine)
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    """Session factory bound to the test database."""
    return create_session_factory(db_engine)


@pytest.fixture
def repository(session_factory) -> CredentialRecordRepository:
    """Credential record repository backed by the test database."""
    return CredentialRecordRepository(session_factory)


@pytest.fixture
def test_merchant_id() -> str:
    """Standard test merchant ID."""
    return "m-1"


@pytest.fixture
def test_account_number() -> str:
    """Standard test account number (Visa test PAN)."""
    return "4111111111111111"
