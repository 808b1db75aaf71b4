"""FastAPI application entry point."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from estimator.config import settings
from estimator.database import engine, Base, SessionLocal
from estimator.routes import auth, users, materials, customers, projects, quotations, reports
from estimator.services.users import UserDirectory
import estimator.models  # noqa: F401

# Configure logging
logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def init_db() -> None:
    """Create tables and make sure an administrator exists."""
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        UserDirectory(db).ensure_default_admin()
    finally:
        db.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    logger.info("Starting %s %s", settings.APP_NAME, settings.APP_VERSION)
    init_db()
    yield
    logger.info("Shutting down...")


# Create FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Construction cost estimation records with role-based access control",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(auth.router, prefix="/api")
app.include_router(users.router, prefix="/api")
app.include_router(materials.router, prefix="/api")
app.include_router(customers.router, prefix="/api")
app.include_router(projects.router, prefix="/api")
app.include_router(quotations.router, prefix="/api")
app.include_router(reports.router, prefix="/api")


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}
