from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from beautypro.config import get_settings
from beautypro.dependencies.services import (
    get_calendar_state_cached,
    get_realtime_client_cached,
    get_supabase_client_cached,
)
from beautypro.health import router as health_router
from beautypro.routes.api import router as api_router
from beautypro.routes.auth import router as auth_router
from beautypro.routes.dashboard import router as dashboard_router
from beautypro.routes.mock_data import router as mock_data_router


def configure_logging() -> None:
    """Ensure application logs use the INFO level by default."""
    root_logger = logging.getLogger()
    if not root_logger.handlers:
        logging.basicConfig(
            level=logging.INFO,
            format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        )
    else:
        root_logger.setLevel(logging.INFO)

# Configure logging as soon as the module is loaded
configure_logging()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manages application startup and shutdown events.
    """
    # --- Startup Logic ---
    settings = get_settings()

    settings_snapshot = settings.model_dump(exclude={"supabase_key"})
    logger.info("Application settings on startup: %s", settings_snapshot)

    client = get_supabase_client_cached()
    logger.info(
        "Application startup complete (%s backend).",
        "mock" if client.use_mock_data else "Supabase",
    )

    try:
        yield  # The application is now running
    finally:
        # --- Shutdown Logic ---
        calendar = get_calendar_state_cached()
        if calendar.mounted:
            logger.info("Unsubscribing from appointment changes.")
            await calendar.unmount()
        realtime = get_realtime_client_cached()
        if realtime is not None:
            logger.info("Closing realtime socket.")
            await realtime.close()
        logger.info("Closing Supabase client connection.")
        await client.close()
        logger.info("Application shutdown complete.")


# --- Application Setup ---

settings = get_settings()
app = FastAPI(
    title=settings.app_name,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[str(origin).rstrip("/") for origin in settings.cors_origins],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- Include Routers ---

app.include_router(auth_router, prefix="/auth")
app.include_router(dashboard_router)
app.include_router(api_router, prefix="/api")
app.include_router(health_router)
app.include_router(mock_data_router)
