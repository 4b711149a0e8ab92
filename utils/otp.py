import logging
import re
import secrets
from typing import Tuple

from sqlalchemy.orm import Session

from core import config
from core.exceptions import (
    ExpiredError,
    InvalidCredentialError,
    NotFoundError,
    PermissionDeniedError,
    RateLimitedError,
    ValidationError,
)
from core.security import issue_token
from models.user import User
from utils.sms import SmsSender, mask_phone
from utils.store import CompareResult


logger = logging.getLogger(__name__)


MOBILE_NUMBER_PATTERN = re.compile(r"^[6-9]\d{9}$")
OTP_PATTERN = re.compile(r"^\d{6}$")


def generate_otp() -> str:
    """
    Generate a uniformly random 6-digit OTP (leading zeros allowed).
    """
    return f"{secrets.randbelow(10**6):06d}"


def validate_mobile_number(mobile_number: str | None) -> str:
    if not mobile_number or not MOBILE_NUMBER_PATTERN.fullmatch(mobile_number):
        raise ValidationError("Please provide a valid 10-digit mobile number")
    return mobile_number


def otp_key(mobile_number: str) -> str:
    return f"otp:{mobile_number}"


def otp_requests_key(mobile_number: str) -> str:
    return f"otp_req:{mobile_number}"


class OtpService:
    """
    Issues and verifies one-time login codes.

    At most one code is live per mobile number: issuing a new one overwrites
    the old. A code is consumed by the first successful verification; a wrong
    code leaves it in place so the user can retry until it expires.
    """

    def __init__(
        self,
        store,
        sms_sender: SmsSender,
        ttl_seconds: int = config.OTP_TTL_SECONDS,
        max_requests: int = config.OTP_MAX_REQUESTS,
        request_window: int = config.OTP_REQUEST_WINDOW_SECONDS,
        echo_code: bool = config.OTP_ECHO_IN_RESPONSE,
    ):
        self.store = store
        self.sms_sender = sms_sender
        self.ttl_seconds = ttl_seconds
        self.max_requests = max_requests
        self.request_window = request_window
        self.echo_code = echo_code

    async def send_otp(self, db: Session, mobile_number: str | None) -> dict:
        mobile_number = validate_mobile_number(mobile_number)

        user = db.query(User).filter(User.phone == mobile_number).first()
        if not user:
            raise NotFoundError("No user found with this mobile number. Please register first.")
        if not user.is_active:
            raise PermissionDeniedError("Account is deactivated")

        count, retry_after = await self.store.hit(otp_requests_key(mobile_number), self.request_window)
        if count > self.max_requests:
            logger.warning("OTP request limit reached for %s", mask_phone(mobile_number))
            raise RateLimitedError(
                "Too many OTP requests. Please try again later.",
                retry_after=retry_after,
            )

        otp = generate_otp()
        await self.store.put(otp_key(mobile_number), otp, self.ttl_seconds)
        logger.info("OTP issued for %s", mask_phone(mobile_number))

        minutes = max(self.ttl_seconds // 60, 1)
        await self.sms_sender.send(
            db,
            mobile_number,
            f"Your HushRyd login code is {otp}. It expires in {minutes} minutes.",
        )

        data = {"mobile_number": mobile_number, "expires_in": self.ttl_seconds}
        if self.echo_code:
            data["otp"] = otp
        return data

    async def verify_otp(self, db: Session, mobile_number: str | None, otp: str | None) -> Tuple[str, User]:
        if not mobile_number or not otp:
            raise ValidationError("Mobile number and OTP are required")
        mobile_number = validate_mobile_number(mobile_number)
        if not OTP_PATTERN.fullmatch(otp):
            raise ValidationError("OTP must be a 6-digit code")

        result = await self.store.compare_and_delete(otp_key(mobile_number), otp)
        if result == CompareResult.missing:
            raise ExpiredError("OTP expired or invalid. Please request a new OTP.")
        if result == CompareResult.mismatch:
            logger.info("Wrong OTP submitted for %s", mask_phone(mobile_number))
            raise InvalidCredentialError("Invalid OTP. Please try again.")

        user = db.query(User).filter(User.phone == mobile_number).first()
        if not user:
            raise NotFoundError("User not found")
        if not user.is_active:
            raise PermissionDeniedError("Account is deactivated")

        if not user.is_verified:
            user.is_verified = True
            db.commit()
            db.refresh(user)

        token = issue_token(user)
        logger.info("OTP login for user %s", user.id)
        return token, user
