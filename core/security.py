from datetime import datetime, timedelta, timezone
import logging
import uuid
from jose import jwt
from passlib.context import CryptContext

from core.config import SECRET_KEY, ALGORITHM, ACCESS_TOKEN_EXPIRE_HOURS


logger = logging.getLogger(__name__)


pwd_context = CryptContext(schemes=["argon2", "bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(data: dict, expires_delta: timedelta | None = None) -> str:
    """
    Sign a session token. ``data`` must carry ``id``; it is mirrored into ``sub``.
    Each token gets its own ``jti`` so it can be revoked on logout.
    """
    to_encode = data.copy()
    to_encode["id"] = str(to_encode["id"])
    to_encode.setdefault("sub", to_encode["id"])
    expire = datetime.now(timezone.utc) + (
        expires_delta if expires_delta else timedelta(hours=ACCESS_TOKEN_EXPIRE_HOURS)
    )
    to_encode.update({"exp": expire, "jti": uuid.uuid4().hex})
    encoded_jwt = jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)
    logger.debug("Created access token for user %s", to_encode["id"])
    return encoded_jwt


def decode_access_token(token: str) -> dict:
    # Raises jose.ExpiredSignatureError / JWTError, handled in api.deps
    return jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])


def issue_token(user) -> str:
    """Session token for a ``User`` row."""
    return create_access_token(
        data={"id": str(user.id), "email": user.email, "role": user.role.value}
    )
