"""FastAPI application for the FleetOS public booking API."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .core.config import settings
from .core.database import dispose_engine
from .core.errors import BookingError
from .routers import cars, organizations

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

ORGANIZATION_PREFIX = "/api/v1/organizations/{slug}"


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Booking API online", extra={"env": settings.ENV})
    yield
    await dispose_engine()


app = FastAPI(title=settings.PROJECT_NAME, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _error_response(status_code: int, error: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": error})


def _describe_validation_error(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    field = ".".join(str(part) for part in first.get("loc", ()) if part not in ("body", "query"))
    message = first.get("msg", "invalid value")
    return f"{field}: {message}" if field else message


@app.exception_handler(BookingError)
async def booking_error_handler(request: Request, exc: BookingError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("Request failed", extra={"path": request.url.path, "error": exc.message})
    return _error_response(exc.status_code, exc.message)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return _error_response(400, _describe_validation_error(exc))


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error", extra={"path": request.url.path})
    return _error_response(500, "Internal server error")


app.include_router(cars.router, prefix=ORGANIZATION_PREFIX, tags=["cars"])
app.include_router(organizations.router, prefix=ORGANIZATION_PREFIX, tags=["organizations"])


@app.get("/health")
async def health():
    return {"status": "ok", "service": settings.PROJECT_NAME}
