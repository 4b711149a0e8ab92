from sqlalchemy import Column, String, Text, DateTime, Enum as SAEnum, Uuid, func
import uuid
from models.base import Base
from models.enums import SmsStatus


class SmsLog(Base):
    __tablename__ = "sms_logs"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4, nullable=False)
    mobile_number = Column(String(20), index=True, nullable=False)
    message = Column(Text, nullable=False)  # OTP digits are masked before storage
    status = Column(SAEnum(SmsStatus, name="smsstatus"), default=SmsStatus.pending, index=True, nullable=False)
    provider = Column(String(50), nullable=False)
    provider_response = Column(Text, nullable=True)
    error_message = Column(Text, nullable=True)
    sent_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
