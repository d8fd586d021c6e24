# storefront/main.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from storefront.core.config import get_settings
from storefront.core.logging_config import configure_logging
from storefront.database import create_all_tables
from storefront.routes import cart, health, orders, products, sellers
from storefront.routes import websockets as websocket_router
from storefront.services.rate_limiter import RateLimiter
from storefront.services.websockets.registry import ConnectionRegistry

configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()

    if settings.CREATE_TABLES_ON_STARTUP:
        logger.info("Creating database tables...")
        await create_all_tables()

    # Process-wide realtime and rate limiting state
    app.state.connection_registry = ConnectionRegistry(
        heartbeat_interval=settings.WS_HEARTBEAT_INTERVAL,
        liveness_timeout=settings.WS_LIVENESS_TIMEOUT,
    )
    app.state.rate_limiter = RateLimiter(
        capacity=settings.CART_RATE_LIMIT,
        window_seconds=settings.CART_RATE_WINDOW_SECONDS,
    )
    logger.info(f"Storefront started ({settings.ENVIRONMENT})")
    try:
        yield
    finally:
        await app.state.connection_registry.shutdown()
        logger.info("Storefront stopped")


app = FastAPI(
    title="Storefront Sales Backend",
    debug=get_settings().DEBUG,
    lifespan=lifespan
)

app.include_router(health.router)
app.include_router(cart.router)
app.include_router(orders.router)
app.include_router(products.router)
app.include_router(sellers.router)
app.include_router(websocket_router.router)
