import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.orm import Session

# Import models so every table is registered on Base before create_all
from . import models  # noqa: F401
from .config import CORS_ORIGINS, LOG_LEVEL
from .database import Base, engine, get_db
from .domain.appointments.hooks import default_hooks
from .domain.appointments.router import router as appointments_router
from .domain.customers.router import router as customers_router
from .domain.elevators.router import router as elevators_router
from .domain.parts.router import router as parts_router
from .domain.quotes.router import router as quotes_router
from .domain.service_orders.router import router as service_orders_router
from .domain.tenants.router import router as tenants_router
from .domain.users.router import router as users_router
from .errors import WorkshopError
from .shared.timeutils import utcnow

# Configure logging
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Reduce verbosity of third-party libraries
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application starting up...")
    try:
        Base.metadata.create_all(bind=engine, checkfirst=True)
        logger.info("Database tables created successfully")
    except Exception as e:
        # Ignore "already exists" errors from race conditions between workers
        error_msg = str(e)
        if "already exists" in error_msg or "duplicate key" in error_msg:
            logger.info("Database tables already exist (created by another worker)")
        else:
            logger.error(f"Failed to create database tables: {e}")
            raise

    yield
    logger.info("Application shutting down...")


app = FastAPI(title="Workshop Scheduling API", version="1.0.0", lifespan=lifespan)

# Post-transition listeners for appointments (notification senders register here)
app.state.appointment_hooks = default_hooks()


def _error_body(request: Request, status_code: int, payload: dict) -> dict:
    return {
        **payload,
        "statusCode": status_code,
        "path": request.url.path,
        "timestamp": utcnow().isoformat() + "Z",
    }


@app.exception_handler(WorkshopError)
async def workshop_exception_handler(request: Request, exc: WorkshopError):
    """Render business errors as {error, detail, statusCode, path, timestamp, ...}"""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} - {exc.kind}: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} - {exc.kind}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content=jsonable_encoder(_error_body(request, exc.status_code, exc.to_dict())),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Request bodies and query strings that fail schema validation"""
    logger.warning(f"Validation error for {request.url.path}: {exc.errors()}")
    payload = {
        "error": "validation_error",
        "detail": "Request validation failed",
        # The raw input is left out: it may be NaN or Infinity, which JSON cannot carry
        "errors": [
            {"loc": list(err.get("loc", ())), "msg": err.get("msg"), "type": err.get("type")}
            for err in exc.errors()
        ],
    }
    return JSONResponse(status_code=422, content=jsonable_encoder(_error_body(request, 422, payload)))


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"{request.method} {request.url.path} - Unhandled error: {exc}", exc_info=exc)
    payload = {"error": "internal_error", "detail": "Internal server error"}
    return JSONResponse(status_code=500, content=_error_body(request, 500, payload))


# CORS Configuration
logger.info(f"CORS allowed origins: {CORS_ORIGINS}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["*"],
)

# Routes
app.include_router(tenants_router)
app.include_router(users_router)
app.include_router(customers_router)
app.include_router(appointments_router)
app.include_router(elevators_router)
app.include_router(quotes_router)
app.include_router(service_orders_router)
app.include_router(parts_router)


@app.get("/")
def root():
    return {"message": "Workshop Scheduling API is running"}


@app.get("/health")
def health(db: Session = Depends(get_db)):
    """Liveness plus a database round trip"""
    try:
        db.execute(text("SELECT 1"))
    except Exception as e:
        logger.error(f"Health check failed: {e}")
        return JSONResponse(
            status_code=503,
            content={"status": "unhealthy", "database": "unreachable"},
        )
    return {"status": "healthy", "database": "ok", "timestamp": utcnow().isoformat() + "Z"}
