"""Private signing key loading.

The RSA key used to sign outbound authorization tokens is read from a PEM
file once at startup and then shared, read-only, by every signing call.
"""

from pathlib import Path

import structlog
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from network_token.models.exceptions import KeyMaterialError

logger = structlog.get_logger(__name__)


def load_private_key(
    path: str | Path,
    password: str | bytes | None = None,
) -> rsa.RSAPrivateKey:
    """Load an RSA private key from a PEM file.

    Accepts both PKCS#1 ("BEGIN RSA PRIVATE KEY") and PKCS#8
    ("BEGIN PRIVATE KEY") encodings, optionally encrypted.

    Args:
        path: Filesystem path to the PEM file
        password: Passphrase for an encrypted key (None if unencrypted)

    Returns:
        RSA private key handle

    Raises:
        KeyMaterialError: If the file is missing, unreadable, not PEM, or
            does not contain an RSA private key

    Security note:
        Neither the key bytes nor the passphrase are ever logged.
    """
    key_path = Path(path)

    try:
        pem_data = key_path.read_bytes()
    except FileNotFoundError as e:
        logger.error("private_key_not_found", path=str(key_path))
        raise KeyMaterialError(f"Private key file not found: {key_path}") from e
    except OSError as e:
        logger.error("private_key_unreadable", path=str(key_path), error=str(e))
        raise KeyMaterialError(f"Private key file unreadable: {key_path}") from e

    if isinstance(password, str):
        password = password.encode("utf-8")

    try:
        private_key = serialization.load_pem_private_key(pem_data, password=password)
    except (ValueError, TypeError) as e:
        # ValueError: not PEM / wrong passphrase; TypeError: passphrase mismatch
        logger.error("private_key_invalid", path=str(key_path), error=type(e).__name__)
        raise KeyMaterialError(f"Invalid PEM file: no private key found in {key_path}") from e
    except Exception as e:
        logger.error("private_key_load_failed", path=str(key_path), error=type(e).__name__)
        raise KeyMaterialError(f"Failed to load private key from {key_path}") from e

    if not isinstance(private_key, rsa.RSAPrivateKey):
        logger.error(
            "private_key_wrong_type",
            path=str(key_path),
            key_type=type(private_key).__name__,
        )
        raise KeyMaterialError(
            f"Private key in {key_path} is not an RSA key (RS256 requires RSA)"
        )

    logger.info("private_key_loaded", path=str(key_path), key_size=private_key.key_size)
    return private_key
