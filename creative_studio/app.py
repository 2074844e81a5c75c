import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from creative_studio.api.routes import router as api_router
from creative_studio.config import settings
from creative_studio.errors import (
    AssetDownloadFailed,
    AssetLinkMissing,
    CapabilityUnavailable,
    InvalidOrExpiredCredential,
    NoImageInResponse,
    RemoteCallFailed,
    StudioError,
    ValidationError,
)
from creative_studio.logging_config import configure_logging
from creative_studio.services.studio import build_studio

logger = logging.getLogger(__name__)

configure_logging(settings.log_level)

# Most specific first; the first isinstance match wins.
ERROR_STATUS_CODES = (
    (ValidationError, 400),
    (CapabilityUnavailable, 501),
    (InvalidOrExpiredCredential, 401),
    (RemoteCallFailed, 502),
    (NoImageInResponse, 502),
    (AssetLinkMissing, 502),
    (AssetDownloadFailed, 502),
)


def status_code_for(exc: StudioError) -> int:
    for error_type, status_code in ERROR_STATUS_CODES:
        if isinstance(exc, error_type):
            return status_code
    return 500


@asynccontextmanager
async def lifespan(app: FastAPI):
    await app.state.studio.startup()
    yield


app = FastAPI(title="Creative Studio", version="1.0.0", lifespan=lifespan)
app.state.studio = build_studio()

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:8000", "http://127.0.0.1:8000", "*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router)


@app.exception_handler(StudioError)
async def studio_exception_handler(request: Request, exc: StudioError):
    status_code = status_code_for(exc)
    logger.warning("Request to %s failed (%d): %s", request.url.path, status_code, exc.message)
    return JSONResponse(status_code=status_code, content={"detail": exc.message})


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning("Validation error on %s: %s", request.url.path, exc.errors())
    return JSONResponse(status_code=400, content={"detail": jsonable_errors(exc)})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s", request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


def jsonable_errors(exc: RequestValidationError):
    return [{"loc": list(error.get("loc", ())), "msg": error.get("msg", "")} for error in exc.errors()]
