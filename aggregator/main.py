"""
FastAPI application entry point.
Initializes the FastAPI app, configures logging, error responses and detail routes.
"""

import structlog
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from aggregator.integrations.errors import AggregatorError, NoProviderDataError
from aggregator.integrations.registry import provider_registry
from aggregator.routers import autocomplete, detail
from aggregator.utils.logger import configure_logging

# Configure logging first
configure_logging()
logger = structlog.get_logger()

# Create FastAPI app
app = FastAPI(
    title="Delivery Catalog Aggregator",
    description="Merges store menus and item details from several delivery providers",
    version="1.0.0",
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(detail.router)
app.include_router(autocomplete.router)


# Every error leaves the service as {"error": message}
@app.exception_handler(NoProviderDataError)
async def no_provider_data_handler(request: Request, exc: NoProviderDataError):
    logger.warning("No provider data", path=request.url.path, error=str(exc))
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"error": str(exc)})


@app.exception_handler(AggregatorError)
async def aggregator_error_handler(request: Request, exc: AggregatorError):
    logger.error("Aggregation failed", path=request.url.path, error=str(exc))
    return JSONResponse(status_code=status.HTTP_502_BAD_GATEWAY, content={"error": str(exc)})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    messages = [
        f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"error": "; ".join(messages)},
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error", path=request.url.path, error=str(exc))
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Something went wrong."},
    )


@app.on_event("startup")
async def startup_event():
    """Application startup event."""
    logger.info(
        "Delivery Catalog Aggregator started",
        providers=provider_registry.list_available(),
    )


@app.on_event("shutdown")
async def shutdown_event():
    """Application shutdown event."""
    logger.info("Delivery Catalog Aggregator shutting down")
    await provider_registry.aclose()


@app.get("/")
async def root():
    """Root endpoint - also serves as a simple health check."""
    return {
        "status": "healthy",
        "service": "Delivery Catalog Aggregator",
        "version": "1.0.0",
        "providers": provider_registry.list_available(),
    }


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "providers": provider_registry.list_available(),
    }


@app.get("/healthz")
async def healthz():
    """Alternative health check endpoint (Kubernetes-style)."""
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("aggregator.main:app", host="0.0.0.0", port=8000, reload=True)
