import logging
import re
from dataclasses import dataclass
from typing import Optional, Protocol

import httpx
from sqlalchemy.orm import Session

from core import config
from models.enums import SmsStatus
from models.sms_log import SmsLog


logger = logging.getLogger(__name__)


def format_phone(phone: str) -> str:
    """
    Normalize Indian mobile numbers to gateway format: 91XXXXXXXXXX
    - Strips spaces, dashes, etc.
    - If starts with +91 / 0, strip the prefix first.
    - If already starts with 91 and has 12 digits, keep it.
    """
    phone = phone.strip().replace(" ", "").replace("-", "")

    if phone.startswith("+"):
        phone = phone[1:]
    if phone.startswith("0"):
        phone = phone[1:]

    if phone.startswith("91") and len(phone) == 12:
        return phone
    return "91" + phone


def mask_phone(phone: str) -> str:
    if not phone or len(phone) <= 4:
        return "****"
    return "*" * (len(phone) - 4) + phone[-4:]


def mask_digits(message: str) -> str:
    """Hide numeric codes in a message, keeping the last two digits."""
    if not message:
        return ""
    return re.sub(r"\d{4,}", lambda m: "*" * (len(m.group(0)) - 2) + m.group(0)[-2:], message)


class SmsBackend(Protocol):
    name: str

    async def send(self, phone: str, message: str) -> Optional[str]:
        ...


@dataclass
class LogSmsBackend:
    """Writes the message to the log instead of sending it."""

    name: str = "log"
    reveal: bool = config.IS_DEVELOPMENT

    async def send(self, phone: str, message: str) -> Optional[str]:
        shown = message if self.reveal else mask_digits(message)
        logger.info("SMS to %s: %s", mask_phone(phone), shown)
        return None


@dataclass
class HttpSmsBackend:
    url: str
    api_key: Optional[str] = None
    sender_id: Optional[str] = None
    timeout: float = 10.0
    transport: Optional[httpx.AsyncBaseTransport] = None
    name: str = "http"

    async def send(self, phone: str, message: str) -> Optional[str]:
        if not (self.url or "").strip():
            raise RuntimeError("SMS_HTTP_URL must be configured for the http provider")

        payload = {
            "sender": self.sender_id,
            "to": format_phone(phone),
            "message": message,
        }
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            response = await client.post(self.url, headers=headers, json=payload)
            response.raise_for_status()
            return response.text


def build_backend(provider: str | None = None) -> SmsBackend:
    provider = (provider or config.SMS_PROVIDER or "log").lower()
    if provider == "http":
        return HttpSmsBackend(
            url=config.SMS_HTTP_URL or "",
            api_key=config.SMS_API_KEY,
            sender_id=config.SMS_SENDER_ID,
        )
    if provider != "log":
        logger.warning("Unknown SMS provider %r, falling back to log backend", provider)
    return LogSmsBackend()


class SmsSender:
    """Sends through a backend and keeps an ``sms_logs`` row per attempt."""

    def __init__(self, backend: SmsBackend):
        self.backend = backend

    async def send(self, db: Session, phone: str, message: str) -> SmsLog:
        entry = SmsLog(
            mobile_number=phone,
            message=mask_digits(message),
            status=SmsStatus.pending,
            provider=self.backend.name,
        )
        try:
            entry.provider_response = await self.backend.send(phone, message)
            entry.status = SmsStatus.success
        except (httpx.HTTPError, RuntimeError) as exc:
            logger.warning("SMS via %s to %s failed: %s", self.backend.name, mask_phone(phone), exc)
            entry.status = SmsStatus.failed
            entry.error_message = str(exc)

        db.add(entry)
        db.commit()
        db.refresh(entry)
        return entry
