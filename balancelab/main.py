from contextlib import asynccontextmanager

from balancelab.core.logging import configure_logging, get_logger
from balancelab.core.middleware import RequestLoggingMiddleware
from balancelab.core.rate_limit import limiter
from balancelab.core.settings import settings
from balancelab.routers import calculators, simulation
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

# Configure structured logging at module load
configure_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for FastAPI application.
    Handles startup and shutdown events.
    """
    logger.info(
        "application_starting",
        environment=settings.environment,
        testing=settings.testing,
        balance_max_iterations=settings.balance_max_iterations,
        balance_tolerance_pct=settings.balance_tolerance_pct,
    )

    yield  # Application is running

    logger.info("application_shutdown")


app = FastAPI(title="BalanceLab Backend", version="0.1.0", lifespan=lifespan)

# ============================================================================
# CORS Middleware Configuration
# ============================================================================
ALLOWED_METHODS = ["GET", "POST", "OPTIONS"]
ALLOWED_HEADERS = ["Content-Type", "Accept", "Origin", "X-Request-ID"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_credentials=True,
    allow_methods=ALLOWED_METHODS,
    allow_headers=ALLOWED_HEADERS,
)

# ============================================================================
# Rate Limiting Middleware (SlowAPI)
# ============================================================================
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)

# ============================================================================
# Request Logging Middleware (must be added after other middleware)
# ============================================================================
app.add_middleware(RequestLoggingMiddleware)


@app.get("/health")
def health_check():
    """Basic health check endpoint."""
    return {"status": "ok", "service": "balancelab-backend"}


app.include_router(simulation.router)
app.include_router(calculators.router)
