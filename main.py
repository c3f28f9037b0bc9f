import logging
import time

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette import status
from starlette.exceptions import HTTPException as StarletteHTTPException

from core.config import settings
from core.database import engine
from core.exceptions import AppError
from models.base import Base
# Register every table on Base.metadata
from models import user, pet, swipe_interaction, match, match_message, notification  # noqa: F401
from schemas.common import ErrorResponse

from routers.pawmatch import router as pawmatch_router
from routers.pets import router as pets_router
from routers.notifications import router as notifications_router
from routers.health import router as health_router

app = FastAPI(
    title="TailMates PawMatch Backend",
    version="0.1.0",
    description="Pet profiles, swipes, matches and match chat for TailMates",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

logger = logging.getLogger("uvicorn.error")


@app.middleware("http")
async def log_request_time(request: Request, call_next):
    start_time = time.perf_counter()
    response = await call_next(request)
    process_time = (time.perf_counter() - start_time) * 1000
    logger.info(
        f"{request.method} {request.url.path} completed in {process_time:.2f} ms"
    )
    return response


def _error(status_code: int, message: str, code=None, **extra) -> JSONResponse:
    body = ErrorResponse(message=message, code=code).model_dump()
    body.update(extra)
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body))


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return _error(exc.status_code, exc.message, exc.code)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return _error(exc.status_code, str(exc.detail))


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return _error(
        422,
        "Validation error",
        "VALIDATION_ERROR",
        errors=exc.errors(),
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")


app.include_router(pets_router)
app.include_router(pawmatch_router)
app.include_router(notifications_router)
app.include_router(health_router)


@app.on_event("startup")
async def on_startup():
    # Create all tables first
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


@app.get("/")
async def root():
    return {"message": "TailMates PawMatch Backend"}


@app.on_event("shutdown")
async def shutdown():
    # Close every pooled connection
    await engine.dispose()
