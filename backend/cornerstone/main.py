"""
Cornerstone - home renovation planning API with dependency-aware scheduling.
"""

from fastapi import FastAPI
from contextlib import asynccontextmanager

from cornerstone.database import init_db
from cornerstone.routes import work_items, dependencies, milestones, schedule, timeline
from cornerstone.exceptions import register_exception_handlers
from cornerstone.logging_config import setup_logging, get_logger

# Initialize logging
setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown events."""
    logger.info("Starting Cornerstone API...")
    await init_db()
    logger.info("Database initialized")
    yield
    logger.info("Shutting down Cornerstone API...")


app = FastAPI(
    title="Cornerstone",
    description="Home renovation planning with critical-path scheduling and subsidy payback estimates",
    version="0.1.0",
    lifespan=lifespan,
)

# Register custom exception handlers
register_exception_handlers(app)

# Include routers
app.include_router(work_items.router, prefix="/work-items", tags=["Work Items"])
app.include_router(dependencies.router, prefix="/dependencies", tags=["Dependencies"])
app.include_router(milestones.router, prefix="/milestones", tags=["Milestones"])
app.include_router(schedule.router, prefix="/schedule", tags=["Schedule"])
app.include_router(timeline.router, prefix="/timeline", tags=["Timeline"])


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}
