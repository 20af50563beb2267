"""FastAPI dependencies for service injection.

The tokenization service is built once during application startup (see
``api.main.lifespan``) and stored on ``app.state``. Tests override
``get_tokenization_service`` to inject their own wiring.
"""

from typing import Annotated

import structlog
from fastapi import Depends, HTTPException, Request, status

from network_token.domain.services import TokenizationService

logger = structlog.get_logger(__name__)


def get_tokenization_service(request: Request) -> TokenizationService:
    """Provide the application's tokenization service.

    Raises:
        HTTPException: 503 if the service was not initialized at startup
    """
    service = getattr(request.app.state, "tokenization_service", None)
    if service is None:
        logger.error("tokenization_service_not_initialized")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Tokenization service not initialized",
        )
    return service


# Type alias for tokenization service dependency
TokenizationSvc = Annotated[TokenizationService, Depends(get_tokenization_service)]
