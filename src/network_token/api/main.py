"""FastAPI application entry point for Network Token Service."""

from contextlib import asynccontextmanager
from datetime import timedelta
from typing import AsyncIterator

import structlog
from fastapi import FastAPI

from network_token.api.errors import register_exception_handlers
from network_token.api.routes import router
from network_token.clients.tokenization_client import TokenizationApiClient
from network_token.config import settings
from network_token.domain.services import TokenizationService
from network_token.domain.signing import RequestSigner
from network_token.infrastructure.database import (
    create_db_engine,
    create_session_factory,
    init_db,
)
from network_token.infrastructure.key_loader import load_private_key
from network_token.infrastructure.repository import CredentialRecordRepository
from network_token.logging_config import configure_logging

# Configure logging at module level
configure_logging(log_level=settings.log_level, format_as_json=settings.log_json)

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan manager.

    Handles startup and shutdown:
    - Load the signing key once
    - Build signer, API client, database engine and repository
    - Close the HTTP pool and dispose of the engine on shutdown
    """
    cybersource = settings.cybersource
    logger.info("starting_network_token_service", environment=settings.environment)

    try:
        private_key = load_private_key(
            cybersource.private_key_path, cybersource.private_key_password
        )
    except Exception as e:
        logger.error("failed_to_load_signing_key", error=str(e))
        raise

    signer = RequestSigner(
        private_key, token_ttl=timedelta(seconds=cybersource.token_ttl_seconds)
    )
    client = TokenizationApiClient(
        base_url=cybersource.base_url,
        signer=signer,
        api_key=cybersource.api_key,
        key_id=cybersource.key_id,
        timeout_seconds=cybersource.timeout_seconds,
    )

    engine = create_db_engine(settings.database_url, echo=settings.database_echo)
    if settings.auto_create_schema:
        init_db(engine)
        logger.info("database_schema_created")

    repository = CredentialRecordRepository(create_session_factory(engine))
    app.state.tokenization_service = TokenizationService(client=client, repository=repository)

    logger.info("network_token_service_started")

    yield

    # Shutdown
    logger.info("shutting_down_network_token_service")
    await client.close()
    engine.dispose()
    logger.info("network_token_service_shutdown_complete")


# Create FastAPI app
app = FastAPI(
    title="Network Token Service",
    description="Network token and cryptogram generation via the tokenization API",
    version="0.1.0",
    docs_url="/docs" if settings.debug else None,  # Disable docs in production
    redoc_url="/redoc" if settings.debug else None,
    lifespan=lifespan,
)

register_exception_handlers(app)
app.include_router(router)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": settings.service_name}


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "service": settings.service_name,
        "version": "0.1.0",
        "environment": settings.environment,
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "network_token.api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
        log_level="debug" if settings.debug else "info",
    )
