# backend/garagehub/main.py
import logging
import time

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from .core.config import settings
from .api import (
    activity,
    auth,
    calendar,
    client_portal,
    clients,
    inventory,
    invoices,
    jobs,
    quotes,
    reports,
    roles,
    settings as tenant_settings,
    super_admin,
    users,
    vehicles,
)

logging.basicConfig(level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.PROJECT_NAME)

# ---------------------------
# CORS
# ---------------------------
DEFAULT_CORS_ORIGINS = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://localhost:5173",
    "http://127.0.0.1:5173",
]


def _resolve_allowed_origins() -> list[str]:
    raw = settings.CORS_ALLOW_ORIGINS
    vals = [str(x).strip().rstrip("/") for x in (raw or []) if str(x).strip()]
    return vals or DEFAULT_CORS_ORIGINS


ALLOW_ORIGINS = _resolve_allowed_origins()

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOW_ORIGINS,
    # credentials cannot be combined with a wildcard origin
    allow_credentials="*" not in ALLOW_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.time()
    response = await call_next(request)
    elapsed = time.time() - start
    logger.info("%s %s - %s - %.4fs", request.method, request.url.path, response.status_code, elapsed)
    return response


# ---------------------------
# Error handlers
# ---------------------------
@app.exception_handler(IntegrityError)
async def integrity_error_handler(request: Request, exc: IntegrityError):
    logger.warning("Integrity error on %s %s: %s", request.method, request.url.path, exc.orig)
    return JSONResponse(status_code=409, content={"detail": "Conflicting record already exists"})


@app.exception_handler(SQLAlchemyError)
async def db_error_handler(request: Request, exc: SQLAlchemyError):
    logger.exception("Database error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "An unexpected error occurred"})


# ---------------------------
# Health
# ---------------------------
@app.get("/health", tags=["system"])
def health():
    return {"status": "ok"}


# ---------------------------
# Routers
# ---------------------------
# Auth & administration
app.include_router(auth.router)
app.include_router(users.router)
app.include_router(roles.router)
app.include_router(tenant_settings.router)
app.include_router(super_admin.router)
app.include_router(activity.router)

# Workshop
app.include_router(clients.router)
app.include_router(vehicles.router)
app.include_router(jobs.router)
app.include_router(calendar.router)
app.include_router(inventory.router)

# Financial
app.include_router(quotes.router)
app.include_router(invoices.router)

# Client portal & reporting
app.include_router(client_portal.router)
app.include_router(reports.router)
