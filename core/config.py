import os
from dotenv import load_dotenv


load_dotenv()  # Load environment variables from .env file


def _as_bool(value: str | None, default: bool) -> bool:
    if value is None or value == "":
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


APP_ENV = os.getenv("APP_ENV", "development")
IS_DEVELOPMENT = APP_ENV == "development"

# ---------------- Security ----------------
SECRET_KEY = os.getenv("SECRET_KEY")
if not SECRET_KEY:
    if not IS_DEVELOPMENT:
        raise ValueError("SECRET_KEY not found in environment")
    SECRET_KEY = "hushryd-dev-secret"

ALGORITHM = os.getenv("ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_HOURS = int(os.getenv("ACCESS_TOKEN_EXPIRE_HOURS", 24))

# ---------------- Redis / OTP ----------------
REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")
OTP_STORE_BACKEND = os.getenv("OTP_STORE_BACKEND", "redis")
OTP_TTL_SECONDS = int(os.getenv("OTP_TTL_SECONDS", 300))
OTP_MAX_REQUESTS = int(os.getenv("OTP_MAX_REQUESTS", 5))
OTP_REQUEST_WINDOW_SECONDS = int(os.getenv("OTP_REQUEST_WINDOW_SECONDS", 900))

# Raw code in the send-otp payload; never on in production unless forced
OTP_ECHO_IN_RESPONSE = _as_bool(os.getenv("OTP_ECHO_IN_RESPONSE"), IS_DEVELOPMENT)

# ---------------- SMS ----------------
SMS_PROVIDER = os.getenv("SMS_PROVIDER", "log")
SMS_HTTP_URL = os.getenv("SMS_HTTP_URL")
SMS_API_KEY = os.getenv("SMS_API_KEY")
SMS_SENDER_ID = os.getenv("SMS_SENDER_ID", "HUSHRD")

# ---------------- Misc ----------------
LOG_FILE = os.getenv("LOG_FILE")
SENTRY_DSN = os.getenv("SENTRY_DSN")
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

# ---------------- Admin provisioning (python -m utils.seed) ----------------
ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", "admin@hushryd.com")
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD")
