import logging
from contextlib import asynccontextmanager

import sentry_sdk
from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from flowboard.api.router import api_router
from flowboard.core.config import get_settings
from flowboard.core.cors import PathScopedCORSMiddleware
from flowboard.core.errors import FlowBoardError
from flowboard.core.logging import configure_logging
from flowboard.db.base import Base
from flowboard.db.session import engine

settings = get_settings()

configure_logging()
logger = logging.getLogger(__name__)

if settings.sentry_dsn:
    sentry_sdk.init(dsn=settings.sentry_dsn, traces_sample_rate=0.2)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("%s starting (env=%s)", settings.app_name, settings.app_env)
    if settings.auto_create_tables:
        Base.metadata.create_all(bind=engine)
    yield
    engine.dispose()


app = FastAPI(title=settings.app_name, lifespan=lifespan)

app.add_middleware(
    PathScopedCORSMiddleware,
    allow_origins=settings.cors_origins,
    public_paths=[f"{settings.api_prefix}/send-invitation"],
)


@app.exception_handler(FlowBoardError)
async def flowboard_error_handler(request: Request, exc: FlowBoardError) -> JSONResponse:
    if exc.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error("request_failed: path=%s kind=%s error=%s", request.url.path, exc.kind, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content={"error": "Invalid request", "detail": jsonable_encoder(exc.errors())},
    )


@app.get("/healthz")
def health() -> dict[str, str]:
    return {"status": "ok"}


app.include_router(api_router, prefix=settings.api_prefix)
