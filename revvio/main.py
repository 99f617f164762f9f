# main.py
import logging

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from revvio.config import settings
from revvio.config import build_sqlalchemy_db_url
from revvio.database import Base, engine
from revvio.errors import AuthenticationError
import revvio.models  # noqa: F401  # register all tables on Base.metadata
from revvio.api.routes.health import router as health_router
from revvio.routers import auth, business_profile


logger = logging.getLogger(__name__)


async def _authentication_error_handler(request: Request, exc: AuthenticationError) -> JSONResponse:
    logger.info("rejected unauthenticated %s %s: %s", request.method, request.url.path, exc.reason)
    return JSONResponse(
        status_code=status.HTTP_401_UNAUTHORIZED,
        content={"success": False, "error": "Unauthorized. Please sign in."},
        headers={"WWW-Authenticate": "Bearer"},
    )


async def _database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    # Reached when the store fails outside a route's own error mapping, e.g. the session user lookup.
    logger.error("database error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"success": False, "error": "Internal server error"},
    )


def create_app() -> FastAPI:
    application = FastAPI(
        title=settings.app_name,
        version=settings.version,
        debug=settings.debug,
    )
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    application.add_exception_handler(AuthenticationError, _authentication_error_handler)
    application.add_exception_handler(SQLAlchemyError, _database_error_handler)

    # Health endpoints (do not depend on API_PREFIX)
    application.include_router(health_router)

    application.include_router(auth.router, prefix="/auth", tags=["auth"])
    application.include_router(business_profile.router, prefix=settings.api_prefix)

    # Shared databases are migrated explicitly (scripts/create_orm_tables.py).
    # For local/test sqlite usage, auto-create ORM tables is still convenient.
    db_url = build_sqlalchemy_db_url(settings)
    if db_url.startswith("sqlite"):
        Base.metadata.create_all(bind=engine)
    return application


app = create_app()
