import logging
import uuid

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

from coaching.auth import router as auth_router
from coaching.config import settings
from coaching.core import exceptions
from coaching.database import AsyncSessionLocal
from coaching.routers.calendar import router as calendar_router
from coaching.routers.clients import router as clients_router
from coaching.routers.completions import router as completions_router
from coaching.routers.programs import router as programs_router
from coaching.routers.routines import router as routines_router

logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    openapi_url=f"{settings.API_V1_STR}/openapi.json"
)

configured_origins = [str(origin).rstrip("/") for origin in settings.BACKEND_CORS_ORIGINS]
default_origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]
allow_origins = configured_origins if settings.APP_ENV == "production" else list(dict.fromkeys([*default_origins, *configured_origins]))

app.add_middleware(
    CORSMiddleware,
    allow_origins=allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def attach_request_id(request: Request, call_next):
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    request.state.request_id = request_id
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response

# Exception Handlers
app.add_exception_handler(StarletteHTTPException, exceptions.http_exception_handler)  # type: ignore
app.add_exception_handler(RequestValidationError, exceptions.validation_exception_handler)  # type: ignore
app.add_exception_handler(IntegrityError, exceptions.integrity_exception_handler)  # type: ignore
app.add_exception_handler(Exception, exceptions.unhandled_exception_handler)

# Routers
app.include_router(auth_router.router, prefix=f"{settings.API_V1_STR}/auth", tags=["Auth"])
app.include_router(calendar_router, prefix=f"{settings.API_V1_STR}/calendar", tags=["Calendar"])
app.include_router(completions_router, prefix=f"{settings.API_V1_STR}/completions", tags=["Completions"])
app.include_router(programs_router, prefix=f"{settings.API_V1_STR}/programs", tags=["Programs"])
app.include_router(routines_router, prefix=f"{settings.API_V1_STR}/routines", tags=["Routines"])
app.include_router(clients_router, prefix=f"{settings.API_V1_STR}/clients", tags=["Clients"])

@app.get("/health")
async def health_check():
    return {"status": "ok"}


@app.get("/healthz")
async def healthz():
    try:
        async with AsyncSessionLocal() as db:
            await db.execute(text("SELECT 1"))
    except Exception as exc:
        logger.exception("Health check failed")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="database unavailable",
        ) from exc
    return {"status": "ok", "database": "ok"}

@app.get("/")
async def root():
    return {"message": "Welcome to the Coaching Calendar API", "docs": "/docs"}

@app.get("/favicon.ico", include_in_schema=False)
async def favicon():
    return Response(content=b"", media_type="image/x-icon")


@app.on_event("startup")
async def validate_settings_on_startup() -> None:
    _validate_security_settings()
    logger.info("%s %s started (env=%s tz=%s)", settings.PROJECT_NAME, settings.VERSION, settings.APP_ENV, settings.APP_TIMEZONE)


def _validate_security_settings() -> None:
    if settings.APP_ENV != "production":
        return

    errors: list[str] = []
    if len(settings.SECRET_KEY.strip()) < 24:
        errors.append("SECRET_KEY must be at least 24 characters in production.")
    if not settings.BACKEND_CORS_ORIGINS:
        errors.append("BACKEND_CORS_ORIGINS must be explicitly configured in production.")
    if settings.NOTIFICATION_DRY_RUN and (settings.PUSH_ENABLED or settings.EMAIL_ENABLED):
        logger.warning("Notification channels are enabled but NOTIFICATION_DRY_RUN is on; nothing will be sent.")

    if errors:
        raise RuntimeError("; ".join(errors))
