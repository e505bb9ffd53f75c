from contextlib import asynccontextmanager
from typing import Optional
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from resourcehub.core.config import settings
from resourcehub.core.errors import PublishError
from resourcehub.core.storage import AssetStore, LocalAssetStore, build_asset_store
from resourcehub.db.init_db import create_all_tables
from resourcehub.middleware.request_logging import RequestLoggingMiddleware
from resourcehub.modules.posts.api.router import router as posts_router

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger("resourcehub")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting server in {settings.ENVIRONMENT} mode")
    logger.info(f"BASE_URL: {settings.BASE_URL}")
    if not create_all_tables():
        logger.warning("Database tables could not be verified at startup")
    yield


async def publish_error_handler(request: Request, exc: PublishError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "code": exc.kind.value},
    )


def create_app(asset_store: Optional[AssetStore] = None) -> FastAPI:
    app = FastAPI(
        title=settings.PROJECT_NAME,
        openapi_url=f"{settings.API_V1_STR}/openapi.json",
        debug=settings.DEBUG,
        description="Post publishing API for questions, notes and shared resources",
        version=settings.VERSION,
        lifespan=lifespan,
    )

    app.state.asset_store = asset_store or build_asset_store()

    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.BACKEND_CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(PublishError, publish_error_handler)

    app.include_router(posts_router, prefix=f"{settings.API_V1_STR}/posts", tags=["posts"])

    # Files saved by the local fallback are served straight from disk
    if isinstance(app.state.asset_store, LocalAssetStore):
        app.mount(
            f"{settings.API_V1_STR}/static",
            StaticFiles(directory=str(app.state.asset_store.root)),
            name="static",
        )

    @app.get("/")
    async def root():
        return {
            "message": "Welcome to ResourceHub",
            "version": settings.VERSION,
            "environment": settings.ENVIRONMENT,
            "documentation": "/docs" if settings.DEBUG else None,
        }

    return app


app = create_app()
