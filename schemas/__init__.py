from schemas.common import ApiResponse, CamelModel, envelope
from schemas.user import UserAuth, UserProfile, UserCreate, UserLogin, PasswordChange
from schemas.auth import SendOtpRequest, VerifyOtpRequest, SendOtpData, AuthData
