# backend/axioscan/main.py
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from . import models
from .api import compositions, documents, folders, pages, tags
from .config import settings
from .database import engine
from .errors import (
    AxioscanError,
    ConsistencyViolation,
    ImageCodecError,
    InvalidArgument,
    NoExportableContentError,
    NotFoundError,
    RemoteIOError,
)
from .utils.logging import api_logger

# Create all tables on startup
models.Base.metadata.create_all(bind=engine)

app = FastAPI(title="AxioScan API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, specify your actual frontend URL
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Blob directory may live outside the storage root
app.mount("/storage/blobs", StaticFiles(directory=str(settings.BLOBS_PATH)), name="blobs")
app.mount("/storage", StaticFiles(directory=str(settings.STORAGE_PATH)), name="storage")

app.include_router(documents.router)
app.include_router(pages.router)
app.include_router(compositions.router)
app.include_router(folders.router)
app.include_router(tags.router)

# Most specific first; subclasses of InvalidArgument share its status
ERROR_STATUS_CODES = [
    (NotFoundError, 404),
    (InvalidArgument, 400),
    (ImageCodecError, 422),
    (NoExportableContentError, 422),
    (ConsistencyViolation, 409),
    (RemoteIOError, 502),
]


def status_code_for(error: AxioscanError) -> int:
    for error_type, status_code in ERROR_STATUS_CODES:
        if isinstance(error, error_type):
            return status_code
    return 500


@app.exception_handler(AxioscanError)
async def axioscan_error_handler(request: Request, exc: AxioscanError):
    status_code = status_code_for(exc)
    log = api_logger.error if status_code >= 500 else api_logger.warning
    log("Request failed", extra={
        "path": request.url.path,
        "method": request.method,
        "error_type": type(exc).__name__,
        "error": exc.message,
        "status_code": status_code
    })
    return JSONResponse(
        status_code=status_code,
        content={"detail": exc.message, "error": type(exc).__name__}
    )


@app.middleware("http")
async def add_cors_headers(request: Request, call_next):
    response = await call_next(request)
    response.headers["Access-Control-Allow-Origin"] = "*"
    response.headers["Access-Control-Expose-Headers"] = "Content-Type, Content-Length, Content-Disposition"
    return response


@app.get("/")
async def root():
    return {"message": "AxioScan API is running"}
