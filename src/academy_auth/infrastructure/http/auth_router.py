"""FastAPI router for token lifecycle and password endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, HTTPException, Request, Response, status

from academy_auth.application.dto.auth_models import (
    ChangePasswordRequest,
    ForgotPasswordRequest,
    ForgotPasswordResponse,
    LoginRequest,
    LogoutRequest,
    MessageResponse,
    ProfileUpdateRequest,
    RegisterRequest,
    ResetPasswordRequest,
    TokenResponse,
    UserResponse,
    UserSummary,
)
from academy_auth.application.ports.user_repository_port import (
    ConcurrentUpdateError,
    DuplicateEmailError,
    UserRecord,
)
from academy_auth.application.services.auth_service import (
    AccountNotActiveError,
    AuthService,
    AuthSession,
    InvalidCredentialsError,
    InvalidRefreshTokenError,
    InvalidResetTokenError,
    NotAuthorizedError,
    ProfileUpdateInput,
    RegisterInput,
    ResetDeliveryError,
    UserNotFoundError,
    WrongCurrentPasswordError,
)
from academy_auth.domain.auth.credentials import PasswordPolicyError
from academy_auth.infrastructure.http.auth_guard import AccessTokenGuard
from academy_auth.infrastructure.http.cookies import (
    REFRESH_COOKIE_NAME,
    CookiePolicy,
    clear_token_cookies,
    set_token_cookies,
)

AUTH_PREFIX = "/auth"
REFRESH_PATH = f"{AUTH_PREFIX}/refresh"


def build_auth_router(
    *,
    auth_service: AuthService,
    cookie_policy: CookiePolicy,
    auth_guard: AccessTokenGuard | None = None,
) -> APIRouter:
    """Build router exposing register/login/refresh/logout and password flows."""

    router = APIRouter(prefix=AUTH_PREFIX, tags=["auth"])
    guard = auth_guard or AccessTokenGuard(auth_service=auth_service)

    def _token_response(response: Response, session: AuthSession) -> TokenResponse:
        set_token_cookies(
            response,
            policy=cookie_policy,
            access_token=session.tokens.access_token,
            refresh_token=session.tokens.refresh_token,
        )
        return TokenResponse(
            access_token=session.tokens.access_token,
            refresh_token=session.tokens.refresh_token,
            user=UserSummary.from_record(session.user),
        )

    async def _require_caller(request: Request) -> UserRecord:
        try:
            return await guard.require_user(
                authorization_header=request.headers.get("authorization"),
                cookies=dict(request.cookies),
            )
        except NotAuthorizedError as exc:
            raise HTTPException(status_code=401, detail=str(exc)) from exc

    @router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
    async def register(payload: RegisterRequest, response: Response) -> TokenResponse:
        try:
            session = await auth_service.register(
                RegisterInput(
                    email=payload.email,
                    password=payload.password,
                    first_name=payload.first_name,
                    last_name=payload.last_name,
                    phone_number=payload.phone_number or None,
                )
            )
        except DuplicateEmailError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except PasswordPolicyError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return _token_response(response, session)

    @router.post("/login", response_model=TokenResponse)
    async def login(payload: LoginRequest, response: Response) -> TokenResponse:
        try:
            session = await auth_service.login(email=payload.email, password=payload.password)
        except InvalidCredentialsError as exc:
            raise HTTPException(status_code=401, detail=str(exc)) from exc
        except AccountNotActiveError as exc:
            raise HTTPException(status_code=401, detail=str(exc)) from exc
        except ConcurrentUpdateError as exc:
            raise HTTPException(status_code=409, detail=str(exc)) from exc
        return _token_response(response, session)

    @router.post("/refresh", response_model=TokenResponse)
    async def refresh(
        request: Request,
        response: Response,
        payload: Any = Body(default=None),
    ) -> TokenResponse:
        # Body shape is not validated: a malformed token field is a refresh failure.
        presented = request.cookies.get(REFRESH_COOKIE_NAME) or _body_refresh_token(payload)
        try:
            session = await auth_service.refresh(refresh_token=presented)
        except InvalidRefreshTokenError as exc:
            raise HTTPException(status_code=401, detail=str(exc)) from exc
        return _token_response(response, session)

    @router.get("/me", response_model=UserResponse, response_model_exclude_none=True)
    async def me(request: Request) -> UserResponse:
        caller = await _require_caller(request)
        return UserResponse(data=UserSummary.from_record(caller))

    @router.post("/logout", response_model=MessageResponse)
    async def logout(
        request: Request,
        response: Response,
        payload: LogoutRequest | None = Body(default=None),
    ) -> MessageResponse:
        caller = await _require_caller(request)
        presented = request.cookies.get(REFRESH_COOKIE_NAME) or (
            payload.refresh_token if payload is not None else None
        )
        try:
            await auth_service.logout(user_id=caller.user_id, refresh_token=presented)
        except ConcurrentUpdateError as exc:
            raise HTTPException(status_code=409, detail=str(exc)) from exc
        clear_token_cookies(response, policy=cookie_policy)
        return MessageResponse(message=auth_service.messages.logged_out)

    @router.post("/logout-all", response_model=MessageResponse)
    async def logout_all(request: Request, response: Response) -> MessageResponse:
        caller = await _require_caller(request)
        try:
            await auth_service.logout_all(user_id=caller.user_id)
        except ConcurrentUpdateError as exc:
            raise HTTPException(status_code=409, detail=str(exc)) from exc
        clear_token_cookies(response, policy=cookie_policy)
        return MessageResponse(message=auth_service.messages.logged_out_all)

    @router.put("/profile", response_model=UserResponse, response_model_exclude_none=True)
    async def update_profile(request: Request, payload: ProfileUpdateRequest) -> UserResponse:
        caller = await _require_caller(request)
        try:
            updated = await auth_service.update_profile(
                user_id=caller.user_id,
                changes=ProfileUpdateInput(
                    first_name=payload.first_name,
                    last_name=payload.last_name,
                    phone_number=payload.phone_number,
                ),
            )
        except UserNotFoundError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        except ConcurrentUpdateError as exc:
            raise HTTPException(status_code=409, detail=str(exc)) from exc
        return UserResponse(
            data=UserSummary.from_record(updated),
            message=auth_service.messages.profile_updated,
        )

    @router.put("/change-password", response_model=MessageResponse)
    async def change_password(
        request: Request,
        response: Response,
        payload: ChangePasswordRequest,
    ) -> MessageResponse:
        caller = await _require_caller(request)
        try:
            await auth_service.change_password(
                user_id=caller.user_id,
                current_password=payload.current_password,
                new_password=payload.new_password,
            )
        except WrongCurrentPasswordError as exc:
            raise HTTPException(status_code=401, detail=str(exc)) from exc
        except PasswordPolicyError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except UserNotFoundError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        except ConcurrentUpdateError as exc:
            raise HTTPException(status_code=409, detail=str(exc)) from exc
        clear_token_cookies(response, policy=cookie_policy)
        return MessageResponse(message=auth_service.messages.password_changed)

    @router.post(
        "/forgot-password",
        response_model=ForgotPasswordResponse,
        response_model_exclude_none=True,
    )
    async def forgot_password(payload: ForgotPasswordRequest) -> ForgotPasswordResponse:
        try:
            result = await auth_service.forgot_password(email=payload.email)
        except ResetDeliveryError as exc:
            raise HTTPException(status_code=500, detail=str(exc)) from exc
        except ConcurrentUpdateError as exc:
            raise HTTPException(status_code=409, detail=str(exc)) from exc

        if result.cooldown:
            return ForgotPasswordResponse(
                message=result.message,
                cooldown=True,
                minutes_left=result.minutes_left,
                expires_at=result.expires_at,
            )
        return ForgotPasswordResponse(message=result.message)

    @router.put("/reset-password/{reset_token}", response_model=MessageResponse)
    async def reset_password(reset_token: str, payload: ResetPasswordRequest) -> MessageResponse:
        try:
            await auth_service.reset_password(
                reset_token=reset_token,
                new_password=payload.password,
            )
        except PasswordPolicyError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except InvalidResetTokenError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except ConcurrentUpdateError as exc:
            raise HTTPException(status_code=409, detail=str(exc)) from exc
        return MessageResponse(message=auth_service.messages.password_reset)

    return router


def _body_refresh_token(payload: Any) -> str | None:
    if not isinstance(payload, dict):
        return None
    token = payload.get("refreshToken")
    return token if isinstance(token, str) else None
