"""
Main application module for the BioKey Auth API.

Sets up the FastAPI application with lifespan management, the database
connection, the auth service, error translation and request logging.
"""

from contextlib import asynccontextmanager
import time

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
import uvicorn

from biokey_auth import __version__
from biokey_auth.config import settings
from biokey_auth.database import db_manager
from biokey_auth.errors import AuthError, ErrorCode
from biokey_auth.managers.logging_manager import get_logger
from biokey_auth.routes import auth_router, users_router
from biokey_auth.routes.auth.dependencies import build_auth_service
from biokey_auth.utils.logging_utils import RequestLoggingMiddleware, log_application_lifecycle, log_error_with_context

logger = get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Connect to MongoDB, build the auth service and ensure indexes before
    serving; disconnect on shutdown.
    """
    startup_start_time = time.time()
    log_application_lifecycle(
        "startup_initiated",
        {
            "app_name": settings.APP_NAME,
            "version": __version__,
            "environment": "production" if settings.is_production else "development",
            "debug_mode": settings.DEBUG,
        },
    )

    try:
        await db_manager.connect()
        service = build_auth_service(db_manager, settings)
        await db_manager.create_indexes([service.users, service.sessions])
    except Exception as e:
        log_application_lifecycle("startup_failed", {"error": str(e), "error_type": type(e).__name__})
        log_error_with_context(e, {"phase": "database_connection"}, operation="application_startup")
        raise

    app.state.auth_service = service
    log_application_lifecycle(
        "startup_completed", {"total_startup_duration": f"{time.time() - startup_start_time:.3f}s"}
    )

    yield

    log_application_lifecycle("shutdown_initiated")
    app.state.auth_service = None
    await db_manager.disconnect()
    log_application_lifecycle("shutdown_completed")


app = FastAPI(
    title="BioKey Auth API",
    description="""
    Password and biometric key authentication.

    - Register with email and password, receive an access and refresh token
    - Register a device public key by signing a server-issued challenge
    - Log in by signing a challenge with the registered key
    - Manage user accounts as an administrator
    """,
    version=__version__,
    lifespan=lifespan,
    openapi_tags=[
        {"name": "auth", "description": "Registration, login and biometric key management"},
        {"name": "users", "description": "User management (administrators only)"},
        {"name": "System", "description": "System health endpoints"},
    ],
)


@app.exception_handler(AuthError)
async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
    if exc.code is ErrorCode.INTERNAL:
        logger.error("Internal error on %s %s: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.get("/health", tags=["System"], summary="Service health")
async def health_check():
    database_ok = await db_manager.health_check()
    body = {"status": "healthy" if database_ok else "unhealthy", "database": database_ok}
    if not database_ok:
        return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content=body)
    return body


app.add_middleware(RequestLoggingMiddleware)
app.include_router(auth_router)
app.include_router(users_router)
log_application_lifecycle("routers_configured", {"routers": ["auth", "users"]})


def run():
    """Console entry point."""
    uvicorn.run(
        "biokey_auth.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    run()
