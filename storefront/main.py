"""
Storefront Cart Application

Shopping cart service for a multi-shop storefront: shoppers add product
variants, adjust quantities and save items for later; carts survive reloads
through local storage for guests and the backend for signed-in users.
"""

import asyncio
import logging
import os
from contextlib import asynccontextmanager, suppress
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .core.config import Settings, get_settings
from .core.session import CartSessionManager
from .database.products import ProductCatalog
from .routes import cart_router, products_router

# Load environment variables
load_dotenv(os.path.join(os.path.dirname(__file__), "..", "config", ".env"))

logger = logging.getLogger(__name__)

CLEANUP_INTERVAL_SECONDS = 3600


async def _cleanup_idle_sessions(sessions: CartSessionManager) -> None:
    while True:
        await asyncio.sleep(CLEANUP_INTERVAL_SECONDS)
        sessions.cleanup_idle_sessions()


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the application around one session manager and catalog"""
    settings = settings or get_settings()

    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan events"""
        logger.info(f"{settings.app_name} starting up...")
        logger.info(f"Remote cart sync: {'enabled' if settings.supabase_configured else 'disabled'}")
        logger.info(f"Guest cart storage: {settings.cart_storage_dir or 'memory'}")

        sessions = CartSessionManager(settings)
        app.state.settings = settings
        app.state.sessions = sessions
        app.state.catalog = ProductCatalog()
        cleanup = asyncio.create_task(_cleanup_idle_sessions(sessions))

        yield

        logger.info(f"{settings.app_name} shutting down...")
        cleanup.cancel()
        with suppress(asyncio.CancelledError):
            await cleanup
        await sessions.close()

    app = FastAPI(
        title=settings.app_name,
        description="Shopping cart for a multi-shop storefront",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(products_router)
    app.include_router(cart_router)

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {
            "status": "healthy",
            "service": "storefront-cart",
            "remote_sync": settings.supabase_configured,
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "storefront.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
