"""
FastAPI application entry point.
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address

from bloomglobe.config import settings
from bloomglobe.middleware.error_handler import ErrorHandlerMiddleware
from bloomglobe.api.dependencies import close_bloom_repository
from bloomglobe.api.v1.routers import bloom, regions, satellites, specimens
from bloomglobe.infrastructure.external_api_client import close_api_clients

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)

# Rate limiter, applied to every route by SlowAPIMiddleware
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[f"{settings.rate_limit_requests}/minute"],
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan context manager.

    Logs the configuration at startup and releases HTTP clients at shutdown.
    """
    # Startup
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Log level: {settings.log_level}")
    logger.info(f"Bloom datasets: {', '.join(settings.bloom_dataset_sources)}")
    logger.info(f"Region: {settings.region_name}, search radii: {settings.search_radii}, "
                f"nearest_k={settings.nearest_k}")
    logger.info(f"Dataset cache: {settings.dataset_cache_max_entries} entries, "
                f"{settings.dataset_cache_max_points} points")
    logger.info(f"Rate limit: {settings.rate_limit_requests} requests/minute")

    yield

    # Shutdown
    logger.info("Shutting down application...")
    await close_api_clients()
    await close_bloom_repository()
    logger.info("Shutdown complete")


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="""
    Data service behind the bloom-monitoring globe.

    Serves multi-year plant-bloom and climate observations of the Americas
    to a 3D globe front-end.

    ## Features

    - **Viewport Points**: Month and viewport filtering with level-of-detail
      sampling that keeps peak-bloom observations first
    - **Location Series**: Monthly NDVI, temperature and precipitation series
      around a clicked location, with an expanding search radius
    - **Location Detail**: Bloom observations inside the Americas, NASA POWER
      climate with derived vegetation and risk indicators elsewhere
    - **Satellites**: Live sub-satellite points of Earth-observation missions
    - **Herbarium**: Nearest plant specimen with IUCN conservation status
    - **Resilient Ingestion**: Malformed or unreachable datasets degrade through
      re-fetch, best-effort parsing and a synthetic grid instead of failing
    - **Rate Limiting**: Protects the API from abuse
    """,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

# Add rate limiter to app state
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)

# Add CORS middleware with configurable origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Add global error handling middleware
app.add_middleware(ErrorHandlerMiddleware)

# Include routers
app.include_router(bloom.router, prefix="/api/v1")
app.include_router(regions.router, prefix="/api/v1")
app.include_router(satellites.router, prefix="/api/v1")
app.include_router(specimens.router, prefix="/api/v1")


@app.get("/", tags=["health"])
async def root():
    """
    Root endpoint for health check.

    Returns:
        Status message
    """
    return {
        "status": "healthy",
        "service": settings.app_name,
        "version": settings.app_version,
    }


@app.get("/health", tags=["health"])
async def health_check():
    """
    Health check endpoint.

    Returns:
        Health status
    """
    return {
        "status": "healthy",
        "service": settings.app_name,
    }
