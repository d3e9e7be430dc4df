"""
FastAPI application entry point for Patient Service API.

    ┌──────────────────────────────────────────────────────────────┐
    │  Middleware                                                  │
    │    ├── LoggingMiddleware  - request id, logging, metrics     │
    │    └── CORSMiddleware                                        │
    ├──────────────────────────────────────────────────────────────┤
    │  Routers (api/routers/)                                      │
    │    ├── health.py    - /, /health, /ready, /metrics           │
    │    └── patients.py  - /api/v1/patients CRUD                  │
    ├──────────────────────────────────────────────────────────────┤
    │  PatientService        validation, email uniqueness, events  │
    │    ├── PatientRepository      SQLite access                  │
    │    └── PatientEventPublisher  Celery, optional               │
    └──────────────────────────────────────────────────────────────┘

Services and repositories are built per request by the functions in
core/dependencies.py.
"""
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import uvicorn

from core.config import API_HOST, API_PORT, API_RELOAD, EVENTS_ENABLED
from core.dependencies import get_database
from core.exceptions import setup_exception_handlers
from core.logging_config import setup_logging
from core.middleware import LoggingMiddleware
from api.routers import health_router, patients_router


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Startup: configure logging, then open the database (creates the schema).
    Shutdown: log only; connections are per-operation.
    """
    setup_logging(level="INFO", json_format=True)

    logger = logging.getLogger(__name__)
    logger.info("Starting Patient Service API...")

    db = get_database()
    logger.info(
        "Database initialized",
        extra={"db_path": db.db_path, "events_enabled": EVENTS_ENABLED}
    )

    yield

    logger.info("Patient Service API shutting down...")


app = FastAPI(
    title="Patient Service API",
    description="REST API for patient record management: register, list, update and remove "
                "patients, with unique email addresses and optional change notifications.",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan
)

setup_exception_handlers(app)

# Middleware runs in reverse registration order: LoggingMiddleware sees every
# request first, including CORS preflights.
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(LoggingMiddleware)

app.include_router(health_router)
app.include_router(patients_router)


if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=API_HOST,
        port=API_PORT,
        reload=API_RELOAD
    )
