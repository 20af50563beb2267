"""Custom exceptions for the Network Token Service.

Every failure raised by the service maps to exactly one of these kinds so
callers can tell "the remote system rejected the request" apart from
"the remote system could not be reached" and "something internal broke".
"""


class NetworkTokenError(Exception):
    """Base exception for all network token service errors."""

    pass


class ValidationError(NetworkTokenError, ValueError):
    """
    Raised when caller input is rejected before any remote call is made.

    Examples:
    - Account number is not 13-19 digits
    - Merchant ID is empty
    """

    pass


class KeyMaterialError(NetworkTokenError):
    """
    Raised when the private signing key cannot be loaded.

    The PEM file is missing, unreadable, or does not contain an RSA key.
    """

    pass


class SigningError(NetworkTokenError):
    """
    Raised when an authorization token cannot be built.

    Examples:
    - Signing key is absent or not usable for RS256
    - Clock could not be read
    """

    pass


class NetworkError(NetworkTokenError):
    """
    Raised when the tokenization API could not be reached.

    This is a RETRYABLE error from the caller's point of view. The request
    never received an interpretable response.

    Examples:
    - Request timeout
    - Connection refused
    - TLS or DNS failure
    """

    pass


class ApiError(NetworkTokenError):
    """
    Raised when the tokenization API answered with a non-2xx status.

    The remote status code and raw body are preserved so the caller can
    surface them unchanged. str() never includes the body, which may echo
    the submitted account number.
    """

    def __init__(self, message: str, status_code: int, response_body: str):
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body

    def __str__(self) -> str:
        return f"{self.args[0]} (status={self.status_code})"


class PersistenceError(NetworkTokenError):
    """
    Raised when the credential record store rejects or fails an operation.

    Examples:
    - Duplicate payment_token_id (unique constraint)
    - Database unavailable
    """

    pass


class OrchestrationError(NetworkTokenError):
    """
    Raised for unanticipated failures while sequencing the tokenization flow.

    Examples:
    - Remote response body is not JSON
    - Required field (id, networkToken.number, networkToken.cryptogram) missing
    """

    pass
