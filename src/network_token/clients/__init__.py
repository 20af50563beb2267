"""Outbound API clients."""

from network_token.clients.tokenization_client import TokenizationApiClient

__all__ = ["TokenizationApiClient"]
