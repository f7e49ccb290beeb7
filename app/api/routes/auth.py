# app/api/routes/auth.py
"""
🔐 /api/v1/auth

POST /auth/request-otp   → {"sms_code_id": 17}
POST /auth/otp-login     → access + refresh
POST /auth/login         → access + refresh (по паролю)
POST /auth/refresh       → новая пара токенов
"""

from fastapi import APIRouter, Depends

from app.api.deps import get_auth_service
from app.bot.services.auth import AuthService
from app.schemas import (
    LoginRequest,
    OtpLoginRequest,
    OtpRequest,
    OtpResponse,
    RefreshTokenRequest,
    TokenResponse,
)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/request-otp", response_model=OtpResponse)
async def request_otp(request: OtpRequest, auth: AuthService = Depends(get_auth_service)):
    otp_id = await auth.request_otp(request.phone_number, request.chat_id)
    return OtpResponse(sms_code_id=otp_id)


@router.post("/otp-login", response_model=TokenResponse)
async def otp_login(request: OtpLoginRequest, auth: AuthService = Depends(get_auth_service)):
    return await auth.otp_login(request.phone_number, request.code, request.otp_id, request.chat_id)


@router.post("/login", response_model=TokenResponse)
async def login(request: LoginRequest, auth: AuthService = Depends(get_auth_service)):
    return await auth.login(request.phone_number, request.password)


@router.post("/refresh", response_model=TokenResponse)
async def refresh(request: RefreshTokenRequest, auth: AuthService = Depends(get_auth_service)):
    return await auth.refresh(request.refresh_token)
