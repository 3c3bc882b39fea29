from datetime import datetime
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from career_match.routers import cvs, profiles, recommendations

# Import logging and middleware
from career_match.utils.logging_config import configure_for_environment, get_logger
from career_match.utils.ttl_cache import TTLCache
from career_match.utils.utils import load_engine_settings
from career_match.middleware.error_handlers import (
    ExceptionHandlerMiddleware,
    RequestLoggingMiddleware,
    PerformanceMiddleware,
    HealthCheckMiddleware
)

# Configure logging first
configure_for_environment()
logger = get_logger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan context manager"""
    # Startup
    logger.info("Career Match API starting up...")

    settings = load_engine_settings()
    app.state.settings = settings
    app.state.market_cache = TTLCache(settings.cache.max_entries, settings.cache.market_ttl_seconds)
    logger.info(
        f"Engine settings loaded: job cutoff {settings.cutoffs.job}, learning cutoff {settings.cutoffs.learning}, "
        f"market cache ttl {settings.cache.market_ttl_seconds}s"
    )

    logger.info("Initializing database indexes...")
    try:
        from career_match.services.db import init_indexes
        await init_indexes()
        logger.info("Database indexes initialized successfully")
    except Exception as e:
        logger.warning(f"Database index initialization had issues: {e}")
        logger.info("Application will continue - some operations may be slower without indexes")

    logger.info("Career Match API startup completed")

    yield

    # Shutdown
    logger.info("Career Match API shutting down...")
    dropped = app.state.market_cache.clear()
    logger.info(f"Career Match API shutdown completed ({dropped} cached market samples dropped)")

app = FastAPI(title="Career Match API", version="1.0.0", lifespan=lifespan)

# Add middleware in order (LIFO - Last In, First Out)
# Exception handler wraps the rest so it sees every escaped error
app.add_middleware(PerformanceMiddleware, slow_request_threshold=2.0)
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(HealthCheckMiddleware)
app.add_middleware(ExceptionHandlerMiddleware)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Allows all origins
    allow_credentials=True,
    allow_methods=["*"],  # Allows all methods
    allow_headers=["*"],  # Allows all headers
)

@app.get("/")
@app.head("/")
async def root():
    """Root endpoint - handles both GET and HEAD requests for health checks"""
    logger.debug("Root endpoint accessed")
    return {"message": "Welcome to the Career Match API", "version": "1.0.0", "status": "ok"}

@app.get("/health")
@app.head("/health")
async def health_check():
    """Health check endpoint - handles both GET and HEAD requests"""
    return {"status": "healthy", "timestamp": datetime.utcnow().isoformat() + "Z"}

# Include routers
app.include_router(cvs.router, prefix="/api/cvs", tags=["cvs"])
app.include_router(profiles.router, prefix="/api/profiles", tags=["profiles"])
app.include_router(recommendations.router, prefix="/api")  # recommendations has prefix="/recommendations"

logger.info("Career Match API initialized successfully")
