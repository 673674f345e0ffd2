from contextlib import asynccontextmanager
from typing import Optional
from uuid import UUID

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from parish.api import admin, auth, cards, dashboard, finances, groups, members, notifications
from parish.core.config import settings
from parish.core.errors import AuthorizationError, NotFoundError, RenderingError, RepositoryError, ValidationError
from parish.db.base import SessionLocal
from parish.models.member import Adherent
from parish.services.events import ChangeFeed, EventBus
from parish.services.notifications import NotificationCenter
from parish.services.scheduler import start_scheduler, stop_scheduler
import logging

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)

# Get logger for this module
logger = logging.getLogger(__name__)
logger.info("Starting FJKM parish administration API")


def lookup_member_name(member_id: UUID) -> Optional[str]:
    db = SessionLocal()
    try:
        member = db.get(Adherent, member_id)
        return f"{member.given_name} {member.surname}" if member else None
    except SQLAlchemyError:
        logger.warning("Could not load adherent %s for notification", member_id, exc_info=True)
        return None
    finally:
        db.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    bus = EventBus()
    feed = ChangeFeed(bus, SessionLocal)
    center = NotificationCenter(bus, member_name_lookup=lookup_member_name)
    feed.start()
    center.start()
    app.state.event_bus = bus
    app.state.change_feed = feed
    app.state.notifications = center
    if settings.ENABLE_SCHEDULER:
        start_scheduler()
    yield
    if settings.ENABLE_SCHEDULER:
        stop_scheduler()
    center.stop()
    feed.stop()


app = FastAPI(
    title="FJKM Parish Administration API",
    description="Membership, dues and contributions of FJKM Vatomandry",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173", "http://127.0.0.1:5173", "*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Content-Disposition", "X-Cards-Rendered", "X-Cards-Pages", "X-Cards-Failed"],
)


# Error mapping
@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return JSONResponse(status_code=422, content={"detail": exc.message})


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"detail": exc.message})


@app.exception_handler(RepositoryError)
async def repository_error_handler(request: Request, exc: RepositoryError):
    return JSONResponse(status_code=503, content={"detail": exc.message})


@app.exception_handler(AuthorizationError)
async def authorization_error_handler(request: Request, exc: AuthorizationError):
    return JSONResponse(status_code=403, content={"detail": exc.message})


@app.exception_handler(RenderingError)
async def rendering_error_handler(request: Request, exc: RenderingError):
    return JSONResponse(status_code=500, content={"detail": exc.message, "rendered": exc.rendered})


# Include routers
app.include_router(auth.router)
app.include_router(members.router)
app.include_router(members.ministries_router)
app.include_router(groups.router)
app.include_router(finances.router)
app.include_router(cards.router)
app.include_router(admin.router)
app.include_router(notifications.router)
app.include_router(dashboard.router)


@app.get("/")
def root():
    """Root endpoint."""
    return {"message": "FJKM Parish Administration API", "version": "1.0.0"}


@app.get("/api/health")
def health_check():
    """Health check endpoint: API and database connectivity."""
    from sqlalchemy import text
    from datetime import datetime, timezone

    db_status = "unreachable"
    db_error = None
    db = SessionLocal()
    try:
        db.execute(text("SELECT 1"))
        db_status = "connected"
    except SQLAlchemyError as e:
        db_error = str(e)
    finally:
        db.close()

    status = "healthy" if db_status == "connected" else "degraded"

    return {
        "status": status,
        "version": "1.0.0",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "services": {
            "api": "ok",
            "database": db_status,
        },
        **({"database_error": db_error} if db_error else {})
    }
