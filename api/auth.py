import logging
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from api.deps import (
    get_current_user,
    get_otp_service,
    get_token_blacklist,
    login_limiter,
    require_role,
    send_otp_limiter,
    verify_otp_limiter,
)
from core.exceptions import ConflictError, InvalidCredentialError, NotFoundError, PermissionDeniedError
from core.security import hash_password, issue_token, verify_password
from db import get_db
from models.enums import UserRole
from models.sms_log import SmsLog
from models.user import User
from schemas.auth import AuthData, SendOtpData, SendOtpRequest, VerifyOtpRequest
from schemas.common import ApiResponse, envelope
from schemas.user import PasswordChange, UserAuth, UserCreate, UserLogin, UserProfile
from utils.otp import OtpService
from utils.token_blacklist import TokenBlacklist


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"])


# ---------------- Register ----------------
@router.post("/register", response_model=ApiResponse, status_code=status.HTTP_201_CREATED)
def register(payload: UserCreate, db: Session = Depends(get_db)):
    if db.query(User).filter(User.email == payload.email).first():
        raise ConflictError("User with this email already exists")

    if payload.phone and db.query(User).filter(User.phone == payload.phone).first():
        raise ConflictError("User with this mobile number already exists")

    new_user = User(
        email=payload.email,
        hashed_password=hash_password(payload.password),
        first_name=payload.first_name,
        last_name=payload.last_name,
        phone=payload.phone,
        role=payload.role,
        is_verified=False,
        is_active=True,
    )
    db.add(new_user)
    db.commit()
    db.refresh(new_user)
    logger.info("Registered user %s as %s", new_user.id, new_user.role.value)

    data = AuthData(token=issue_token(new_user), user=UserAuth.model_validate(new_user))
    return envelope("User registered successfully", data)


# ---------------- Password login ----------------
@router.post("/login", response_model=ApiResponse, dependencies=[Depends(login_limiter)])
def login(payload: UserLogin, db: Session = Depends(get_db)):
    user = db.query(User).filter(User.email == payload.email).first()

    if not user:
        raise InvalidCredentialError("Invalid email or password")

    if not user.is_active:
        raise PermissionDeniedError("Account is deactivated")

    if not verify_password(payload.password, user.hashed_password):
        raise InvalidCredentialError("Invalid email or password")

    data = AuthData(token=issue_token(user), user=UserAuth.model_validate(user))
    return envelope("Login successful", data)


# ---------------- OTP login ----------------
@router.post("/send-otp", response_model=ApiResponse, dependencies=[Depends(send_otp_limiter)])
async def send_otp(
    payload: SendOtpRequest,
    db: Session = Depends(get_db),
    otp_service: OtpService = Depends(get_otp_service),
):
    result = await otp_service.send_otp(db, payload.mobile_number)
    return envelope("OTP sent successfully", SendOtpData(**result))


@router.post("/verify-otp", response_model=ApiResponse, dependencies=[Depends(verify_otp_limiter)])
async def verify_otp(
    payload: VerifyOtpRequest,
    db: Session = Depends(get_db),
    otp_service: OtpService = Depends(get_otp_service),
):
    token, user = await otp_service.verify_otp(db, payload.mobile_number, payload.otp)
    data = AuthData(token=token, user=UserAuth.model_validate(user))
    return envelope("Login successful", data)


# ---------------- Token check ----------------
@router.get("/verify", response_model=ApiResponse)
def verify_token(current_user=Depends(get_current_user)):
    claims = current_user["claims"]
    return envelope("Token is valid", {
        "user": {"id": claims.get("id"), "email": claims.get("email"), "role": claims.get("role")}
    })


# ---------------- Get Current User ----------------
@router.get("/profile", response_model=ApiResponse)
def get_profile(current_user=Depends(get_current_user)):
    profile = UserProfile.model_validate(current_user["user"])
    return envelope("Profile retrieved successfully", {
        "user": profile.model_dump(by_alias=True, mode="json")
    })


@router.put("/change-password", response_model=ApiResponse)
def change_password(
    payload: PasswordChange,
    current_user=Depends(get_current_user),
    db: Session = Depends(get_db),
):
    user = db.query(User).filter(User.id == current_user["user"].id).first()
    if not user:
        raise NotFoundError("User not found")

    if not verify_password(payload.current_password, user.hashed_password):
        raise InvalidCredentialError("Current password is incorrect")

    user.hashed_password = hash_password(payload.new_password)
    db.commit()

    return envelope("Password updated successfully")


# ---------------- Logout ----------------
async def _logout(current_user, blacklist: TokenBlacklist):
    claims = current_user["claims"]
    await blacklist.revoke(claims.get("jti"), claims.get("exp", 0))
    logger.info("Logout for user %s", current_user["id"])
    return envelope("Logout successful", {"userId": current_user["id"]})


@router.post("/logout", response_model=ApiResponse)
async def logout(
    current_user=Depends(get_current_user),
    blacklist: TokenBlacklist = Depends(get_token_blacklist),
):
    return await _logout(current_user, blacklist)


@router.get("/logout", response_model=ApiResponse)
async def logout_get(
    current_user=Depends(get_current_user),
    blacklist: TokenBlacklist = Depends(get_token_blacklist),
):
    return await _logout(current_user, blacklist)


# ---------------- SMS delivery log (admin) ----------------
@router.get("/sms-logs", response_model=ApiResponse)
def list_sms_logs(
    limit: int = 50,
    current_user=Depends(require_role([UserRole.admin])),
    db: Session = Depends(get_db),
):
    limit = max(1, min(limit, 200))
    logs = db.query(SmsLog).order_by(SmsLog.sent_at.desc()).limit(limit).all()
    return envelope("SMS logs retrieved successfully", {
        "logs": [
            {
                "id": str(log.id),
                "mobileNumber": log.mobile_number,
                "message": log.message,
                "status": log.status.value,
                "provider": log.provider,
                "errorMessage": log.error_message,
                "sentAt": log.sent_at.isoformat() if log.sent_at else None,
            }
            for log in logs
        ]
    })
