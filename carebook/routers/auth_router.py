import logging
from fastapi import APIRouter, Depends, HTTPException, Request

from ..core.config import settings
from ..exceptions import create_success_response
from ..application.ports.audit_logger import AuditLogger
from ..application.ports.rate_limiter import RateLimiter
from ..application.ports.user_repo import UserDto
from ..application.services.auth_service import AuthService
from ..schemas.auth.auth import (
    AuthResponse,
    ChangePasswordRequest,
    LoginRequest,
    RefreshRequest,
    RegisterRequest,
    UpdateProfileRequest,
    UserResponse,
)
from .deps import (
    CurrentUser,
    get_audit_logger,
    get_auth_service,
    get_client_ip,
    get_current_user,
    get_rate_limiter,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])


def _user_payload(user: UserDto) -> dict:
    return UserResponse.model_validate(user).to_wire()


def _rate_limit_key(action: str, request: Request) -> str:
    return f"auth:{action}:{get_client_ip(request)}"


def _check_rate_limit(
    request: Request,
    limiter: RateLimiter,
    audit: AuditLogger,
    identifier: str,
    action: str,
    max_attempts: int,
    window_seconds: int,
) -> None:
    if not limiter.allow(_rate_limit_key(action, request), max_attempts, window_seconds):
        audit.log("rate_limit_exceeded", identifier, ip_address=get_client_ip(request), success=False, details={"action": action})
        raise HTTPException(status_code=429, detail="Too many authentication attempts. Please try again later.")


@router.post("/register", status_code=201)
def register(
    payload: RegisterRequest,
    request: Request,
    auth_service: AuthService = Depends(get_auth_service),
    audit: AuditLogger = Depends(get_audit_logger),
    limiter: RateLimiter = Depends(get_rate_limiter),
):
    """Create an account with its empty role profile and sign it in."""
    try:
        _check_rate_limit(
            request, limiter, audit, payload.email,
            "register", settings.REGISTER_RATE_LIMIT_MAX_ATTEMPTS, settings.REGISTER_RATE_LIMIT_WINDOW_SEC,
        )
        user = auth_service.register(
            first_name=payload.first_name,
            last_name=payload.last_name,
            email=payload.email,
            password=payload.password,
            user_type=payload.user_type,
            phone=payload.phone,
            date_of_birth=payload.date_of_birth,
            gender=payload.gender,
            ip_address=get_client_ip(request),
        )
        tokens = auth_service.issue_tokens(user)
        data = AuthResponse(token=tokens["token"], refresh_token=tokens["refreshToken"], user=UserResponse.model_validate(user))
        return create_success_response(data.to_wire(), "User registered successfully")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Registration error: {e}")
        raise HTTPException(status_code=500, detail="Registration failed")


@router.post("/login")
def login(
    payload: LoginRequest,
    request: Request,
    auth_service: AuthService = Depends(get_auth_service),
    audit: AuditLogger = Depends(get_audit_logger),
    limiter: RateLimiter = Depends(get_rate_limiter),
):
    try:
        _check_rate_limit(
            request, limiter, audit, payload.email,
            "login", settings.LOGIN_RATE_LIMIT_MAX_ATTEMPTS, settings.LOGIN_RATE_LIMIT_WINDOW_SEC,
        )
        user = auth_service.authenticate(payload.email, payload.password, ip_address=get_client_ip(request))
        limiter.reset(_rate_limit_key("login", request))
        tokens = auth_service.issue_tokens(user)
        data = AuthResponse(token=tokens["token"], refresh_token=tokens["refreshToken"], user=UserResponse.model_validate(user))
        return create_success_response(data.to_wire(), "Login successful")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Login error: {e}")
        raise HTTPException(status_code=500, detail="Login failed")


@router.post("/refresh")
def refresh_token(payload: RefreshRequest, auth_service: AuthService = Depends(get_auth_service)):
    try:
        return create_success_response(auth_service.refresh(payload.refresh_token), "Token refreshed")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Token refresh error: {e}")
        raise HTTPException(status_code=500, detail="Token refresh failed")


@router.get("/me")
def me(current_user: CurrentUser = Depends(get_current_user), auth_service: AuthService = Depends(get_auth_service)):
    try:
        user = auth_service.get_user(current_user.id)
        data = UserResponse.model_validate(user)
        data.profile = auth_service.user_repo.get_profile(user.id, user.user_type)
        return create_success_response(data.to_wire())
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error fetching current user {current_user.id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch user")


@router.post("/logout")
def logout(
    request: Request,
    current_user: CurrentUser = Depends(get_current_user),
    auth_service: AuthService = Depends(get_auth_service),
):
    # Tokens are stateless; the client drops them
    auth_service.logout(current_user.id, ip_address=get_client_ip(request))
    return create_success_response(None, "Logout successful")


@router.put("/change-password")
def change_password(
    payload: ChangePasswordRequest,
    request: Request,
    current_user: CurrentUser = Depends(get_current_user),
    auth_service: AuthService = Depends(get_auth_service),
):
    try:
        auth_service.change_password(
            current_user.id,
            payload.current_password,
            payload.new_password,
            ip_address=get_client_ip(request),
        )
        return create_success_response(None, "Password changed successfully")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Change password error for {current_user.id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to change password")


@router.put("/update-profile")
def update_profile(
    payload: UpdateProfileRequest,
    current_user: CurrentUser = Depends(get_current_user),
    auth_service: AuthService = Depends(get_auth_service),
):
    try:
        changes = payload.model_dump(exclude_unset=True, exclude={"address", "date_of_birth"})
        user = auth_service.update_profile(
            current_user.id,
            date_of_birth=payload.date_of_birth,
            address=payload.address.model_dump() if payload.address else None,
            **changes,
        )
        return create_success_response(_user_payload(user), "Profile updated successfully")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Update profile error for {current_user.id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to update profile")
