"""
Authentication API routes.
"""

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, EmailStr

from identity_service.api.deps import get_current_claims, get_identity_service
from identity_service.core.errors import ErrorKind, IdentityError
from identity_service.services.identity import (
    AccessClaims,
    AccountView,
    IdentityService,
    RecoveryResponse,
    TokenPair,
)

router = APIRouter(prefix="/auth", tags=["auth"])

# Kinds map to status codes here and only here.
STATUS_BY_KIND = {
    ErrorKind.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.AUTHENTICATION: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.INTEGRITY: status.HTTP_409_CONFLICT,
    ErrorKind.INFRASTRUCTURE: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def _http_error(error: IdentityError) -> HTTPException:
    return HTTPException(
        status_code=STATUS_BY_KIND[error.kind],
        detail={"code": error.code.value, "message": error.message},
    )


class RegisterRequest(BaseModel):
    username: str
    email: EmailStr
    password: str
    phone_number: str


class LoginRequest(BaseModel):
    identifier: str
    password: str


class RefreshRequest(BaseModel):
    refresh_token: str


class VerifyRequest(BaseModel):
    token: str


class VerifyResponse(BaseModel):
    valid: bool
    id: str | None = None
    role: str | None = None
    expires_at: datetime | None = None


class IdentifierRequest(BaseModel):
    identifier: str


class ResetPasswordRequest(BaseModel):
    token: str
    new_password: str


class ConfirmVerificationRequest(BaseModel):
    token: str


class MeResponse(BaseModel):
    id: UUID
    role: str


@router.post("/register", response_model=AccountView, status_code=status.HTTP_201_CREATED)
async def register(
    request: RegisterRequest,
    service: IdentityService = Depends(get_identity_service),
):
    """Register a new account."""
    try:
        return await service.register(
            username=request.username,
            password=request.password,
            email=str(request.email),
            phone_number=request.phone_number,
        )
    except IdentityError as e:
        raise _http_error(e) from None


@router.post("/login", response_model=TokenPair)
async def login(
    request: LoginRequest,
    service: IdentityService = Depends(get_identity_service),
):
    """Login with email, username or phone number."""
    try:
        return await service.login(request.identifier, request.password)
    except IdentityError as e:
        raise _http_error(e) from None


@router.post("/refresh", response_model=TokenPair)
async def refresh_tokens(
    request: RefreshRequest,
    service: IdentityService = Depends(get_identity_service),
):
    """Exchange a refresh token for a new token pair."""
    try:
        return await service.refresh_access_token(request.refresh_token)
    except IdentityError as e:
        raise _http_error(e) from None


@router.post("/verify", response_model=VerifyResponse)
async def verify_token(
    request: VerifyRequest,
    service: IdentityService = Depends(get_identity_service),
):
    """Check an access token without revealing why it failed."""
    claims = service.verify_token(request.token)
    if claims is None:
        return VerifyResponse(valid=False)
    return VerifyResponse(valid=True, id=claims.id, role=claims.role, expires_at=claims.exp)


@router.post("/forgot-password", response_model=RecoveryResponse)
async def forgot_password(
    request: IdentifierRequest,
    service: IdentityService = Depends(get_identity_service),
):
    try:
        return await service.forgot_password(request.identifier)
    except IdentityError as e:
        raise _http_error(e) from None


@router.post("/resend-verification", response_model=RecoveryResponse)
async def resend_verification(
    request: IdentifierRequest,
    service: IdentityService = Depends(get_identity_service),
):
    try:
        return await service.resend_verification_token(request.identifier)
    except IdentityError as e:
        raise _http_error(e) from None


@router.post("/reset-password", status_code=status.HTTP_204_NO_CONTENT)
async def reset_password(
    request: ResetPasswordRequest,
    service: IdentityService = Depends(get_identity_service),
):
    try:
        await service.reset_password(request.token, request.new_password)
    except IdentityError as e:
        raise _http_error(e) from None


@router.post("/confirm-verification", status_code=status.HTTP_204_NO_CONTENT)
async def confirm_verification(
    request: ConfirmVerificationRequest,
    service: IdentityService = Depends(get_identity_service),
):
    try:
        await service.confirm_verification(request.token)
    except IdentityError as e:
        raise _http_error(e) from None


@router.get("/me", response_model=MeResponse)
async def get_current_account(claims: AccessClaims = Depends(get_current_claims)):
    """Identity carried by the presented access token."""
    return {"id": claims.id, "role": claims.role}
