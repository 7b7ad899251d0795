from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, status, APIRouter
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from app.config.database import engine, Base, settings
from app.config.redis_config import redis_config
from app.routes import appointment, reminders, webhook
from app.services.job_scheduler import job_scheduler
from app.utils.response import APIResponse
from app import models  # noqa: F401  registers tables on Base.metadata
import logging

logging.basicConfig(level=getattr(logging, settings.log_level.upper(), logging.INFO))
logger = logging.getLogger("app")

Base.metadata.create_all(bind=engine)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.reminders_enabled:
        job_scheduler.start()
    yield
    job_scheduler.shutdown()
    if settings.lock_backend == "redis":
        redis_config.close()


app = FastAPI(
    title=settings.api_title,
    description="""
    Therapy Clinic Scheduling API

    ### Features:
    * **Appointment Booking**: staff bookings, parent bookings and request conversion
    * **Conflict Detection**: no two active appointments for a therapist may overlap
    * **Calendar**: fixed 45-minute slot grid per therapist for a day
    * **Reminders**: daily WhatsApp reminder for tomorrow's appointments
    * **Replies**: YES/NO replies on WhatsApp confirm or cancel the appointment

    ### Business Rules:
    * 14 slots of **45 minutes** from 09:15 AM to 07:00 PM
    * Cancelled, completed, no-show and converted appointments free their slot
    * At most one reminder per appointment per day
    """,
    version=settings.api_version,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json",
    lifespan=lifespan,
    swagger_ui_parameters={
        "defaultModelsExpandDepth": -1,
        "docExpansion": "none",
        "filter": True,
    }
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return APIResponse.from_exception(exc)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = []
    for error in exc.errors():
        errors.append({
            "field": " -> ".join(str(loc) for loc in error["loc"]),
            "message": error["msg"],
            "type": error["type"]
        })

    return APIResponse.error(
        message="Validation Error",
        error_type="ValidationError",
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        details=errors
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return APIResponse.error(
        message="Internal server error",
        error_type="InternalError",
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR
    )


system_router = APIRouter(prefix="/api", tags=["System"])

@system_router.get("/health")
def health_check():
    """Health check endpoint for monitoring"""
    locks = {"backend": settings.lock_backend}
    if settings.lock_backend == "redis":
        locks["reachable"] = redis_config.is_reachable()
    return {
        "success": True,
        "data": {
            "status": "healthy",
            "service": "clinic-scheduling-api",
            "version": settings.api_version,
            "scheduler_running": job_scheduler.running,
            "locks": locks
        }
    }

app.include_router(system_router)

app.include_router(appointment.router, prefix="/api/v1")
app.include_router(reminders.router, prefix="/api/v1")
app.include_router(webhook.router)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "app.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
        log_level=settings.log_level
    )
