"""Exception taxonomy for the Network Token Service."""

from network_token.models.exceptions import (
    ApiError,
    KeyMaterialError,
    NetworkError,
    NetworkTokenError,
    OrchestrationError,
    PersistenceError,
    SigningError,
    ValidationError,
)

__all__ = [
    "NetworkTokenError",
    "ValidationError",
    "KeyMaterialError",
    "SigningError",
    "NetworkError",
    "ApiError",
    "PersistenceError",
    "OrchestrationError",
]
