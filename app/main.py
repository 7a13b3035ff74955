"""
FastAPI application factory
"""
import logging
import traceback
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.middleware.sessions import SessionMiddleware

from app.api.v1 import accounts, advices, auth, categories, reminders, transactions, users
from app.application.errors import BadRequestError, ConflictError, MessagingDisabledError, NotFoundError
from app.config import get_settings
from app.infrastructure.db.session import check_db_connection
from app.infrastructure.messaging.bus import start_message_bus, stop_message_bus

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class ErrorLoggingMiddleware(BaseHTTPMiddleware):
    """Ловит все необработанные исключения (в т.ч. из sync routes) -> 500"""

    async def dispatch(self, request, call_next):
        try:
            return await call_next(request)
        except Exception:
            tb_str = traceback.format_exc()
            logger.error("\n%s\nERROR on %s %s\n%s%s", "=" * 60, request.method, request.url.path, tb_str, "=" * 60)
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={"detail": "Internal Server Error"},
            )


def _error_response(status_code: int, exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


def register_exception_handlers(app: FastAPI) -> None:
    """Ошибки прикладного слоя -> HTTP"""

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError):
        return _error_response(status.HTTP_404_NOT_FOUND, exc)

    @app.exception_handler(BadRequestError)
    async def bad_request_handler(request: Request, exc: BadRequestError):
        return _error_response(status.HTTP_400_BAD_REQUEST, exc)

    @app.exception_handler(ConflictError)
    async def conflict_handler(request: Request, exc: ConflictError):
        return _error_response(status.HTTP_400_BAD_REQUEST, exc)

    @app.exception_handler(MessagingDisabledError)
    async def messaging_disabled_handler(request: Request, exc: MessagingDisabledError):
        return _error_response(status.HTTP_503_SERVICE_UNAVAILABLE, exc)

    @app.exception_handler(RequestValidationError)
    async def validation_handler(request: Request, exc: RequestValidationError):
        errors = [
            {"loc": list(e.get("loc", ())), "msg": e.get("msg", "")}
            for e in exc.errors()
        ]
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": errors})


@asynccontextmanager
async def lifespan(app: FastAPI):
    start_message_bus()
    try:
        yield
    finally:
        stop_message_bus()


def create_app() -> FastAPI:
    """
    Application factory - создаёт и настраивает FastAPI приложение

    Returns:
        Настроенный FastAPI app
    """
    settings = get_settings()

    app = FastAPI(
        title="SpendSphere",
        debug=settings.DEBUG,
        lifespan=lifespan,
    )

    app.add_middleware(ErrorLoggingMiddleware)
    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.SECRET_KEY
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.FRONTEND_URL],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    app.include_router(auth.router)
    app.include_router(users.router)
    app.include_router(accounts.router)
    app.include_router(categories.router)
    app.include_router(transactions.router)
    app.include_router(reminders.router)
    app.include_router(advices.router)

    # Health checks
    @app.get("/health", response_class=PlainTextResponse, tags=["system"])
    def health():
        """Health check endpoint"""
        return "ok"

    @app.get("/ready", response_class=PlainTextResponse, tags=["system"])
    def ready():
        """Readiness check endpoint (проверяет доступность БД)"""
        check_db_connection()
        return "ok"

    return app


# Create app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "app.main:app",
        host="127.0.0.1",
        port=8000,
        reload=True,
    )
