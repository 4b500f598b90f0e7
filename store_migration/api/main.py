"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .routes import etsy, migrations, shopify
from ..config import ConfigurationError, configure_logging
from ..storage import MigrationNotFoundError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    yield


app = FastAPI(
    title="Store Migration API",
    description="Imports catalogs, customers, coupons and orders from Shopify and Etsy",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS middleware for the dashboard
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(shopify.router, prefix="/api/migration/shopify", tags=["shopify"])
app.include_router(etsy.router, prefix="/api/migration/etsy", tags=["etsy"])
app.include_router(migrations.router, prefix="/api/migration", tags=["migrations"])


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError):
    logger.error(f"Configuration error on {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"detail": str(exc)})


@app.exception_handler(MigrationNotFoundError)
async def not_found_handler(request: Request, exc: MigrationNotFoundError):
    return JSONResponse(status_code=404, content={"detail": "Migration not found"})


@app.get("/api/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}
