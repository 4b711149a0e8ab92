import logging
import uuid
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from fastapi_limiter.depends import RateLimiter
from jose import JWTError
from jose.exceptions import ExpiredSignatureError
from sqlalchemy.orm import Session

from core.exceptions import AuthenticationError, PermissionDeniedError
from core.security import decode_access_token
from db import get_db
from models.enums import UserRole
from models.user import User
from utils.otp import OtpService
from utils.token_blacklist import TokenBlacklist


logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)

# Per-IP throttles; module level so tests can override them by identity
send_otp_limiter = RateLimiter(times=5, seconds=60)
verify_otp_limiter = RateLimiter(times=10, seconds=60)
login_limiter = RateLimiter(times=10, seconds=60)


def get_otp_service(request: Request) -> OtpService:
    return request.app.state.otp_service


def get_token_blacklist(request: Request) -> TokenBlacklist:
    return request.app.state.token_blacklist


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db),
    blacklist: TokenBlacklist = Depends(get_token_blacklist),
):
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Access token required")

    token = credentials.credentials
    try:
        payload = decode_access_token(token)
    except ExpiredSignatureError:
        raise AuthenticationError("Token has expired")
    except JWTError:
        raise AuthenticationError("Invalid token")

    user_id = payload.get("id") or payload.get("sub")
    if not user_id:
        raise AuthenticationError("Invalid token")

    if await blacklist.is_revoked(payload.get("jti")):
        raise AuthenticationError("Token has been revoked")

    user = db.query(User).filter(User.id == _as_uuid(user_id)).first()
    if not user:
        logger.warning("Token presented for unknown user %s", user_id)
        raise AuthenticationError("Invalid token - user not found")
    if not user.is_active:
        raise AuthenticationError("Account is deactivated")

    return {
        "id": str(user.id),
        "role": user.role.value,
        "user": user,
        "claims": payload,
    }


def _as_uuid(value: str):
    try:
        return uuid.UUID(str(value))
    except ValueError:
        raise AuthenticationError("Invalid token")


def require_role(required_roles: list[UserRole]):
    def role_checker(current_user=Depends(get_current_user)):
        if current_user["role"] not in [r.value for r in required_roles]:
            raise PermissionDeniedError("You do not have permission to access this resource")
        return current_user
    return role_checker
