"""
KB Portal API - FastAPI application entry point
Multi-tenant document ingestion into a hosted knowledge-base service
"""

import logging

logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s:%(name)s:%(message)s"
)

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from kbportal.config import settings
from kbportal.database import create_tables
from kbportal.middleware.rate_limiter import setup_rate_limiting
from kbportal.utils.error_handlers import setup_error_handlers

logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Multi-tenant knowledge base portal with delegated access",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_tags=[
        {"name": "authentication", "description": "Principal registration and API keys"},
        {"name": "account", "description": "Effective context, credentials, and usage"},
        {"name": "delegates", "description": "Sub-user management"},
        {"name": "documents", "description": "Document upload and management"},
        {"name": "admin", "description": "Plans, quotas, and knowledge bases"}
    ]
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

setup_rate_limiting(app)
setup_error_handlers(app)


@app.on_event("startup")
async def startup_event():
    """Initialize database tables on startup"""
    create_tables()
    logger.info(f"{settings.APP_NAME} v{settings.APP_VERSION} started")
    logger.info(f"Storage backend: {settings.STORAGE_BACKEND}, indexing service: {settings.INDEXING_API_URL}")


@app.on_event("shutdown")
async def shutdown_event():
    from kbportal.api.deps import get_indexing_client
    if get_indexing_client.cache_info().currsize:
        await get_indexing_client().aclose()


@app.get("/")
async def root():
    """Health check endpoint"""
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "healthy"
    }


@app.get("/health")
async def health_check():
    """Detailed health check"""
    return {
        "status": "healthy",
        "version": settings.APP_VERSION,
        "storage": settings.STORAGE_BACKEND
    }


from kbportal.api import auth, account, delegates, documents, admin

app.include_router(auth.router, prefix="/api/v1")
app.include_router(account.router, prefix="/api/v1")
app.include_router(delegates.router, prefix="/api/v1")
app.include_router(documents.router, prefix="/api/v1")
app.include_router(admin.router, prefix="/api/v1")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "kbportal.main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        reload=settings.API_RELOAD
    )
