#syncschool/__init__.py
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from syncschool.core.config import settings
from syncschool.core.database import Database
from syncschool.core.errors import BaseAPIError
from syncschool.core.logging import logger
from syncschool.middleware.request_id import RequestIDMiddleware
from syncschool.routes import (
    academic_terms,
    attendance,
    auth,
    classes,
    communication,
    dashboard,
    fees,
    payments,
    platform,
    scholarships,
    students,
    subjects,
    subscription,
)
from syncschool.services.email_service import EmailConfig, EmailService
from syncschool.services.seed_service import seed_database


def register_exception_handlers(app: FastAPI) -> None:

    @app.exception_handler(BaseAPIError)
    async def api_error_handler(request: Request, exc: BaseAPIError):
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=exc.headers)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content=jsonable_encoder({"errors": exc.errors()}))

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.error(
            f"Unhandled error on {request.method} {request.url.path}: {type(exc).__name__}: {exc}",
            exc_info=True,
            extra={"request_id": getattr(request.state, "request_id", None)},
        )
        return JSONResponse(status_code=500, content={"error": "Internal server error"})


def create_app(database: Optional[Database] = None) -> FastAPI:
    """
    Build the API. Pass `database` to run against an engine created
    elsewhere (tests); otherwise one is created from DATABASE_URL on startup.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        db = database or Database()
        app.state.database = db
        await db.init_models()
        await seed_database(db)
        logger.info("Application startup completed")
        yield
        await db.dispose()
        logger.info("Application shutdown completed")

    app = FastAPI(
        title=settings.APP_NAME,
        description="Multi-tenant school management API",
        version=settings.VERSION,
        docs_url="/api/docs" if settings.DEBUG else None,
        redoc_url="/api/redoc" if settings.DEBUG else None,
        lifespan=lifespan,
    )
    if database is not None:
        app.state.database = database
    app.state.email_service = EmailService(EmailConfig.from_settings())

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "X-Subscription-Warning"],
    )
    app.add_middleware(RequestIDMiddleware)
    register_exception_handlers(app)

    # Include routers
    app.include_router(auth.router, prefix="/api/v1/auth")
    app.include_router(platform.router, prefix="/api/v1/platform")
    app.include_router(academic_terms.router, prefix="/api/v1/academic-terms")
    app.include_router(subjects.router, prefix="/api/v1/subjects")
    app.include_router(classes.router, prefix="/api/v1/classes")
    app.include_router(students.router, prefix="/api/v1/students")
    app.include_router(attendance.router, prefix="/api/v1/attendance")
    app.include_router(scholarships.router, prefix="/api/v1/scholarships")
    app.include_router(fees.router, prefix="/api/v1/fees")
    app.include_router(payments.router, prefix="/api/v1/payments")
    app.include_router(dashboard.router, prefix="/api/v1/dashboard")
    app.include_router(subscription.router, prefix="/api/v1/subscription")
    app.include_router(communication.router, prefix="/api/v1/communication")

    @app.get("/health", tags=["Health"])
    async def health():
        return {"status": "ok"}

    @app.get("/api/health", tags=["Health"])
    async def api_health(request: Request):
        try:
            await request.app.state.database.ping()
        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            return JSONResponse(status_code=503, content={"status": "error", "database": "unavailable"})
        return {"status": "ok", "database": "connected", "version": settings.VERSION}

    return app
