import logging
import sys
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.errors import PyMongoError
from starlette.exceptions import HTTPException as StarletteHTTPException

import config
import database
from errors import APIError, DatabaseUnavailableError
from routes import course_routes, user_routes

logger = logging.getLogger(__name__)

# Routing failures raised by Starlette itself (unknown path, wrong method)
HTTP_ERROR_TAGS = {
    404: "not_found",
    405: "method_not_allowed",
}


def setup_logging() -> None:
    logging.basicConfig(
        level=getattr(logging, config.LOG_LEVEL, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("pymongo").setLevel(logging.WARNING)
    logging.getLogger("passlib").setLevel(logging.ERROR)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    config.validate_runtime_config()
    try:
        await database.ensure_indexes()
    except PyMongoError:
        logger.exception("Index creation failed. Check DATABASE_URL and that MongoDB is reachable.")
    logger.info("Course marketplace API started (database: %s)", config.DATABASE_NAME)

    yield

    database.close_client()
    logger.info("Course marketplace API stopped")


def _error_body(error: str, message: str, **extra) -> dict:
    return {"error": error, "message": message, **extra}


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(APIError)
    async def handle_api_error(request: Request, exc: APIError):
        return JSONResponse(status_code=exc.status_code, content=_error_body(exc.error, exc.message))

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_error(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(HTTP_ERROR_TAGS.get(exc.status_code, "http_error"), str(exc.detail)),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=422,
            content=_error_body(
                "validation_error",
                "Request data failed validation",
                details=jsonable_encoder(exc.errors()),
            ),
        )

    @app.exception_handler(PyMongoError)
    async def handle_database_error(request: Request, exc: PyMongoError):
        logger.error("Database error on %s %s: %s", request.method, request.url.path, exc)
        error = DatabaseUnavailableError("The database is unavailable. Please try again later.")
        return JSONResponse(status_code=error.status_code, content=_error_body(error.error, error.message))

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error("Unexpected error on %s %s", request.method, request.url.path, exc_info=exc)
        return JSONResponse(
            status_code=500,
            content=_error_body("internal_server_error", "An unexpected error occurred"),
        )


def create_app() -> FastAPI:
    app = FastAPI(title="Course Marketplace API", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start) * 1000
        logger.info(
            "%s %s -> %d (%.1fms)",
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
        )
        return response

    register_exception_handlers(app)

    @app.get("/")
    async def root():
        return {"ok": True, "service": "course-marketplace-api"}

    @app.get("/test")
    async def test():
        # Verify db connection on demand
        try:
            await database.ping()
        except PyMongoError as exc:
            raise DatabaseUnavailableError(f"Database unavailable: {exc}") from exc
        return {"status": "ok"}

    app.include_router(user_routes.router, prefix="/user")
    app.include_router(course_routes.router, prefix="/course")
    return app


app = create_app()
