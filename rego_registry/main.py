import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from starlette.exceptions import HTTPException

from .authentication.routes import router as auth_router
from .buying_rego.routes import router as buying_rego_router
from .consumer.routes import router as consumer_router
from .core.error_handling import (
    general_exception_handler,
    http_exception_handler,
    pool_timeout_exception_handler,
    rego_registry_exception_handler,
    validation_exception_handler,
)
from .core.exceptions import RegoRegistryError
from .core.models.base import LoggingLevelRequest
from .logging_config import (
    fastapi_logger,
    logger,
    set_logger_and_children_level,
    uvicorn_access_logger,
    uvicorn_logger,
)
from .plant.routes import router as plant_router
from .power_generation.routes import router as power_generation_router
from .provider.routes import router as provider_router
from .rego.routes import router as rego_router
from .rego_confirmation.routes import router as rego_confirmation_router
from .rego_trade_info.routes import router as rego_trade_info_router
from .settings import settings

tags_metadata = [
    {
        "name": "REGO",
        "description": """REGO groups are batches of Renewable Energy Guarantee of Origin certificates issued
                        from a plant's metered generation and shared between the plant owner, the nation and
                        the local government of the plant's region.""",
    },
    {
        "name": "REGO Trade Info",
        "description": "Buy requests from consumers and their approval, rejection or cancellation.",
    },
    {
        "name": "REGO Confirmation",
        "description": "Usage confirmations redeeming owned REGOs against a consumer's usage period.",
    },
    {
        "name": "Buying REGO",
        "description": "REGO holdings of consumers.",
    },
    {
        "name": "Power Generation",
        "description": "Metered generation per plant and production month.",
    },
]

# Default local origins
origins = [
    "http://localhost:8080",
    "http://localhost:3000",
    "http://127.0.0.1:8080",
    "http://127.0.0.1:3000",
]
origins.extend(settings.cors_origins)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Lifespan context manager for FastAPI application.
    Handles startup and shutdown events.
    """
    logger.info(f"Starting up application in {settings.ENVIRONMENT}...")
    logger.info(f"Initialized CORS origins: {origins}")
    yield
    logger.info("Application shutdown complete")


app = FastAPI(
    openapi_tags=tags_metadata,
    title="REGO Trading Registry API",
    description="Issuance, trading and redemption of Renewable Energy Guarantees of Origin.",
    version="1.0",
    docs_url="/docs",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["Content-Type", "Authorization", "Accept", "Origin"],
)

# --- Error Handling ---

app.add_exception_handler(RegoRegistryError, rego_registry_exception_handler)  # type: ignore
app.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore
app.add_exception_handler(HTTPException, http_exception_handler)  # type: ignore
app.add_exception_handler(PoolTimeoutError, pool_timeout_exception_handler)  # type: ignore
app.add_exception_handler(Exception, general_exception_handler)

# --- Router Inclusions ---

app.include_router(auth_router, prefix="/auth")
app.include_router(provider_router, prefix="/provider")
app.include_router(consumer_router, prefix="/consumer")
app.include_router(plant_router, prefix="/plant")
app.include_router(power_generation_router, prefix="/power-generation")
app.include_router(rego_router, prefix="/rego")
app.include_router(rego_trade_info_router, prefix="/rego-trade-info")
app.include_router(buying_rego_router, prefix="/buying-rego")
app.include_router(rego_confirmation_router, prefix="/rego-confirmation")


@app.get("/health", tags=["Core"])
def health():
    return {"success": True, "message": "ok"}


@app.post("/change_log_level", tags=["Core"])
async def change_log_level_endpoint(request: LoggingLevelRequest):
    """Change the logging level at runtime for all relevant loggers."""
    numeric_level = getattr(logging, request.level.value)

    loggers_to_update = [
        logger,  # Application logger
        uvicorn_logger,  # Main Uvicorn logger
        uvicorn_access_logger,  # Uvicorn access log
        fastapi_logger,  # FastAPI logger
    ]

    for logger_instance in loggers_to_update:
        set_logger_and_children_level(logger_instance, numeric_level)

    return {
        "success": True,
        "message": f"Log level changed to {request.level.value}",
        "data": {
            logger_instance.name: logging.getLevelName(logger_instance.getEffectiveLevel())
            for logger_instance in loggers_to_update
        },
    }


def main():
    import uvicorn

    uvicorn.run("rego_registry.main:app", host="0.0.0.0", port=8000)


if __name__ == "__main__":
    main()
