from typing import Optional
from schemas.common import CamelModel
from schemas.user import UserAuth


# Fields are optional so missing values reach the service and get the
# same error envelope as malformed ones.
class SendOtpRequest(CamelModel):
    mobile_number: Optional[str] = None


class VerifyOtpRequest(CamelModel):
    mobile_number: Optional[str] = None
    otp: Optional[str] = None


class SendOtpData(CamelModel):
    mobile_number: str
    expires_in: int
    otp: Optional[str] = None


#---------------------- Token schemas ----------------------#
class AuthData(CamelModel):
    token: str
    user: UserAuth
