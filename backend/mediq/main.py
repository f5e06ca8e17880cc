"""
MedIQ - Clinical Records API
Patients, clinical notes, appointments, vitals and medications for the
clinic dashboard, kept in a namespaced key-value store.
"""
import logging
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from .api import events, notes, patients, storage
from .core.config import settings
from .core.exceptions import ImportFormatError, NotFoundError, StorageQuotaError, TranscriptionError
from .core.logging_config import configure_logging
from .core.request_log_middleware import RequestLogMiddleware
from .seed_demo import seed_demo_data
from .services.repository import get_repository

configure_logging()
logger = logging.getLogger(__name__)

# Seed sample data when ENABLE_SAMPLE_DATA is set (no-op otherwise)
seed_demo_data(get_repository())

app = FastAPI(
    title="MedIQ Clinical Records API",
    description=(
        "Thin demo API for the MedIQ clinical dashboard: patient records, "
        "clinical notes, calendar events, vitals and medications."
    ),
    version=settings.VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # TODO: Restrict to the dashboard origin once it has a fixed host
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(RequestLogMiddleware)

app.include_router(patients.router, prefix="/api/v1")
app.include_router(notes.router, prefix="/api/v1")
app.include_router(events.router, prefix="/api/v1")
app.include_router(storage.router, prefix="/api/v1")


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(ImportFormatError)
async def import_format_handler(request: Request, exc: ImportFormatError):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(StorageQuotaError)
async def quota_handler(request: Request, exc: StorageQuotaError):
    logger.error("Storage quota exceeded: %s", exc)
    return JSONResponse(status_code=507, content={"detail": str(exc)})


@app.exception_handler(TranscriptionError)
async def transcription_handler(request: Request, exc: TranscriptionError):
    return JSONResponse(status_code=502, content={"detail": str(exc)})


@app.exception_handler(ValidationError)
async def record_validation_handler(request: Request, exc: ValidationError):
    # Merged partial updates are re-validated inside the repository
    return JSONResponse(
        status_code=422,
        content={"detail": exc.errors(include_url=False, include_context=False, include_input=False)},
    )


@app.get("/health")
def health_check():
    return {"status": "healthy", "service": "MedIQ API", "version": settings.VERSION}
