"""OpenChecklist web service."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlmodel import Session

from openchecklist.checklists.seed import seed_if_empty
from openchecklist.checklists.store import ChecklistStore
from openchecklist.core.config import settings
from openchecklist.core.database import create_db_and_tables, engine
from openchecklist.core.errors import ChecklistError
from openchecklist.core.scheduler import shutdown_scheduler, start_scheduler
from openchecklist.routes import catalog, checklists, contributions

# Configure logging
settings.log_dir.mkdir(parents=True, exist_ok=True)
log_file = settings.log_dir / "latest.log"

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    filename=str(log_file),
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown lifecycle."""
    # Startup
    logger.info(f"Starting {settings.app_name} ({settings.storage_mode.value} storage)")
    create_db_and_tables()
    if settings.auto_seed:
        with Session(engine) as session:
            seed_if_empty(ChecklistStore(session))
    start_scheduler()
    yield
    # Shutdown
    shutdown_scheduler()
    logger.info(f"{settings.app_name} shut down")


app = FastAPI(
    title=settings.app_name,
    description="Browse, search and download checklists, and moderate community contributions",
    version="0.1.0",
    lifespan=lifespan,
)

# Configure CORS for external access
origins = (
    ["*"]
    if settings.allowed_origins == "*"
    else [o.strip() for o in settings.allowed_origins.split(",")]
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Content-Disposition", "Content-Length", "Content-Type"],
)

# Include routers
app.include_router(checklists.router)
app.include_router(catalog.router)
app.include_router(contributions.router)


@app.exception_handler(ChecklistError)
async def checklist_error_handler(request: Request, exc: ChecklistError):
    """Map core errors to JSON responses with their status code."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.kind, "detail": exc.message},
    )


@app.get("/health")
def health():
    """Health check endpoint."""
    return {"status": "healthy", "app": settings.app_name}
