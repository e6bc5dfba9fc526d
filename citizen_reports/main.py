from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .infrastructure import models
from .infrastructure.database import engine
from .api import auth, users, reports, posts
from .core.config import settings

models.Base.metadata.create_all(bind=engine)

logger = logging.getLogger(__name__)

DEFAULT_JWT_SECRET = "citizenx-jwt-secret-change-in-production-min-32-chars"


def validate_config():
    """Validate critical configuration settings on startup."""
    if settings.is_production:
        if settings.JWT_SECRET_KEY == DEFAULT_JWT_SECRET:
            raise RuntimeError(
                "SECURITY ERROR: JWT_SECRET_KEY must be changed from default in production! "
                "Set a secure random string via environment variable."
            )
        if not settings.AWS_BUCKET:
            logger.warning("AWS_BUCKET is not set; image uploads will not reach object storage.")

    if len(settings.JWT_SECRET_KEY) < 32:
        raise RuntimeError(
            f"SECURITY ERROR: JWT_SECRET_KEY must be at least 32 characters "
            f"(current: {len(settings.JWT_SECRET_KEY)} chars)"
        )

    logger.info(f"Config validation passed. Production mode: {settings.is_production}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """FastAPI lifespan events for startup and shutdown."""
    logger.info("Starting CitizenX Reports API...")
    validate_config()
    yield
    logger.info("Shutting down CitizenX Reports API...")


app = FastAPI(title=settings.PROJECT_NAME, lifespan=lifespan)

# Set all CORS enabled origins
if settings.BACKEND_CORS_ORIGINS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.BACKEND_CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

app.include_router(auth.router, prefix="/api/auth", tags=["authentication"])
app.include_router(users.router, prefix="/api/users", tags=["users"])
app.include_router(reports.router, prefix="/api/reports", tags=["reports"])
app.include_router(posts.router, prefix="/api/posts", tags=["posts"])

@app.get("/health")
def health_check():
    return {"status": "healthy"}
