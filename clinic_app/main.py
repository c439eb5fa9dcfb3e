from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import logging

from sqlalchemy import text

from clinic_app.config.settings import settings
from clinic_app.core.middleware import verify_token_middleware
from clinic_app.db.base import get_engine
from clinic_app.db.base import get_session_factory
from clinic_app.db.session import set_global_session_factory

# -------------------------------------------------------------------------------------
# Logging
# -------------------------------------------------------------------------------------
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the scheduling database for the lifetime of the app."""
    logger.info(f"Starting clinic scheduling API (clinic timezone {settings.clinic_timezone})")

    engine = await get_engine(str(settings.database_url))
    try:
        session_factory = await get_session_factory(engine)
        # Routes read the factory from app.state; scripts and jobs use the global one
        app.state.engine = engine
        app.state.session_factory = session_factory
        set_global_session_factory(session_factory)
    except Exception as e:
        logger.critical(f"Could not set up database sessions: {e}", exc_info=True)
        await engine.dispose()
        raise
    logger.info("Database engine and session factory ready.")

    yield

    logger.info("Shutting down, disposing DB engine …")
    try:
        await engine.dispose()
    except Exception:
        logger.exception("Error disposing DB engine")


# -------------------------------------------------------------------------------------
# FastAPI application instance
# -------------------------------------------------------------------------------------
app = FastAPI(title="Clinic Appointment Scheduling", lifespan=lifespan)

# CORS -------------------------------------------------------------------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=[str(o) for o in settings.cors_origins],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.middleware("http")(verify_token_middleware)


# ----------------------------------------------------------------- health-check -----
@app.get("/health")
async def health_check(request: Request):
    database = "not configured"
    if factory := getattr(request.app.state, "session_factory", None):
        try:
            async with factory() as session:
                await session.execute(text("SELECT 1"))
            database = "ok"
        except Exception as e:
            logger.error(f"Health check could not reach the database: {e}")
            database = "unavailable"

    return {
        "status": "ok" if database == "ok" else "degraded",
        "database": database,
        "timezone": settings.clinic_timezone,
    }


# ------------------------------------------------------------------- routes ---------
from clinic_app.routes.appointment.router import router as appointment_router  # noqa: E402  (after app creation)
from clinic_app.routes.schedule.router import router as schedule_router  # noqa: E402
from clinic_app.routes.notification.router import router as notification_router  # noqa: E402

app.include_router(appointment_router)
app.include_router(schedule_router)
app.include_router(notification_router)
