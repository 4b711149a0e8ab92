from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import sentry_sdk
from fastapi_limiter import FastAPILimiter
import logging
import redis.asyncio as redis
from fastapi.openapi.utils import get_openapi

from api import auth
from core import config
from core.exceptions import AppError, RateLimitedError
from db import engine
from logging_config import setup_logging
from models import create_db_and_tables
from utils.otp import OtpService
from utils.sms import SmsSender, build_backend
from utils.store import MemoryStore, RedisStore
from utils.token_blacklist import TokenBlacklist


setup_logging(config.APP_ENV, config.LOG_FILE)
logger = logging.getLogger(__name__)

if config.SENTRY_DSN:
    sentry_sdk.init(dsn=config.SENTRY_DSN, environment=config.APP_ENV, traces_sample_rate=0.1)


app = FastAPI(
    title="HushRyd Auth",
    description="HushRyd authentication APIs: password and OTP login, sessions",
    version="1.0.0",
    docs_url="/api/docs",
    openapi_url="/api/openapi.json",
    redoc_url="/api/redoc",
    openapi_tags=[
        {"name": "Auth", "description": "Authentication and account management"}
    ],
)


# ✔ Request logger middleware (no headers: they carry bearer tokens)
@app.middleware("http")
async def log_requests(request: Request, call_next):
    logger.debug(f"Request: {request.method} {request.url.path}")
    response = await call_next(request)
    return response


# ✔ Error envelope
@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    headers = None
    if isinstance(exc, RateLimitedError) and exc.retry_after:
        headers = {"Retry-After": str(exc.retry_after)}
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": True, "message": exc.message},
        headers=headers,
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    message = "Invalid request"
    if errors:
        first = errors[0]
        field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        detail = str(first.get("msg", "")).removeprefix("Value error, ")
        message = f"{field}: {detail}" if field else detail
    return JSONResponse(status_code=400, content={"error": True, "message": message})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    sentry_sdk.capture_exception(exc)
    return JSONResponse(status_code=500, content={"error": True, "message": "Internal server error"})


# ✔ Custom OpenAPI security schema
def custom_openapi():
    if app.openapi_schema:
        return app.openapi_schema

    openapi_schema = get_openapi(
        title=app.title,
        version=app.version,
        description=app.description,
        routes=app.routes,
    )

    # JWT security scheme
    openapi_schema.setdefault("components", {})["securitySchemes"] = {
        "BearerAuth": {
            "type": "http",
            "scheme": "bearer",
            "bearerFormat": "JWT",
        }
    }

    # Apply Bearer auth (except the login flows)
    public_paths = [
        "/auth/register",
        "/auth/login",
        "/auth/send-otp",
        "/auth/verify-otp",
    ]

    for path in openapi_schema["paths"]:
        for method in openapi_schema["paths"][path]:
            if path not in public_paths:
                openapi_schema["paths"][path][method]["security"] = [{"BearerAuth": []}]

    app.openapi_schema = openapi_schema
    return app.openapi_schema


app.openapi = custom_openapi


# ✔ CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials="*" not in config.CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ✔ Startup: tables + stores + rate limiter
@app.on_event("startup")
async def startup_event():
    create_db_and_tables(engine)

    redis_connection = redis.from_url(
        config.REDIS_URL,
        encoding="utf-8",
        decode_responses=True
    )
    await FastAPILimiter.init(redis_connection)

    if config.OTP_STORE_BACKEND == "memory":
        logger.warning("Using in-memory OTP store; codes are not shared across instances")
        store = MemoryStore()
    else:
        store = RedisStore(redis_connection)

    app.state.store = store
    app.state.otp_service = OtpService(store, SmsSender(build_backend()))
    app.state.token_blacklist = TokenBlacklist(store)
    logger.info("HushRyd auth started (%s, otp store=%s)", config.APP_ENV, config.OTP_STORE_BACKEND)


@app.on_event("shutdown")
async def shutdown_event():
    await FastAPILimiter.close()
    store = getattr(app.state, "store", None)
    if store is not None:
        await store.close()


# ✔ Routers
app.include_router(auth.router)


@app.get("/health")
async def health_check():
    return {"status": "healthy"}
