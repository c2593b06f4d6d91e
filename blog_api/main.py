from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from loguru import logger
from sqlalchemy.exc import SQLAlchemyError

from .cache import CacheService, CacheStore
from .config import Settings, get_settings
from .database import create_engine, create_schema, create_sessionmaker
from .exceptions import BlogError
from .log import AccessLogMiddleware, configure_logging
from .pagination import Paginator
from .routers import auth_router, comments_router, health_router, posts_router
from .security import PasswordHasher, TokenManager
from .serializers import Serializer


def build_cache(settings: Settings) -> CacheService:
    return CacheService(
        CacheStore(maxsize=settings.cache_max_entries),
        list_ttl=settings.cache_ttl_list,
        detail_ttl=settings.cache_ttl_detail,
        max_pages_to_clear=settings.cache_max_pages_to_clear,
        limit_step=settings.cache_limit_step,
        max_limit=settings.pagination_max_limit,
    )


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(BlogError)
    async def blog_error_handler(request: Request, exc: BlogError):
        if exc.status_code >= 500:
            logger.opt(exception=exc).error("{} {} failed", request.method, request.url.path)
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(SQLAlchemyError)
    async def storage_error_handler(request: Request, exc: SQLAlchemyError):
        logger.opt(exception=exc).error("Storage error on {} {}", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Storage backend failure", "code": "STORAGE_ERROR"},
        )

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logger.opt(exception=exc).error("Unhandled error on {} {}", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "An unexpected error occurred", "code": "INTERNAL_ERROR"},
        )


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    if settings.create_schema:
        await create_schema(app.state.engine)
    logger.info("Blog API started")
    yield
    await app.state.engine.dispose()
    logger.info("Blog API stopped")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level, settings.log_json)

    app = FastAPI(title="Blog API", lifespan=lifespan)

    engine = create_engine(settings)
    app.state.settings = settings
    app.state.engine = engine
    app.state.sessionmaker = create_sessionmaker(engine)
    app.state.cache = build_cache(settings)
    app.state.paginator = Paginator(
        default_page=settings.pagination_default_page,
        default_limit=settings.pagination_default_limit,
        min_limit=settings.pagination_min_limit,
        max_limit=settings.pagination_max_limit,
    )
    app.state.serializer = Serializer()
    app.state.hasher = PasswordHasher()
    app.state.tokens = TokenManager(
        settings.jwt_secret, settings.jwt_algorithm, settings.jwt_ttl_seconds
    )

    app.add_middleware(AccessLogMiddleware)
    register_exception_handlers(app)

    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(posts_router)
    app.include_router(comments_router)
    return app
