from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Depends, Header, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from greeting_api.core.logging import logger
from greeting_api.repositories.user_repository import UserRecord
from greeting_api.services.auth_service import (
    INVALID_CREDENTIALS_MSG,
    INVALID_TOKEN_MSG,
    AccountExistsError,
    AuthError,
    AuthService,
    InvalidCredentialsError,
    RegistrationError,
)

router = APIRouter(prefix="/api/user", tags=["user"])

FORGOT_MSG = "If the email is registered, a reset link is on its way."


class RegisterRequest(BaseModel):
    first_name: str = ""
    last_name: str = ""
    email: str
    password: str


class LoginRequest(BaseModel):
    email: str
    password: str


class ForgotPasswordRequest(BaseModel):
    email: str


class ResetPasswordRequest(BaseModel):
    token: str
    new_password: str


def _envelope(success: bool, message: str, data: Any = None, status_code: int = 200) -> JSONResponse:
    return JSONResponse({"success": success, "message": message, "data": data}, status_code=status_code)


def _user_payload(user: UserRecord, token: Optional[str] = None) -> dict:
    payload = {
        "id": user.id,
        "email": user.email,
        "first_name": user.first_name,
        "last_name": user.last_name,
    }
    if token is not None:
        payload["token"] = token
    return payload


def get_auth_service(request: Request) -> AuthService:
    svc = getattr(getattr(request.app, "state", None), "auth_service", None)
    if svc is None:
        raise RuntimeError("AuthService not configured on app.state")
    return svc


def _bearer_token(authorization: str) -> str:
    scheme, _, value = (authorization or "").partition(" ")
    if scheme.lower() != "bearer":
        return ""
    return value.strip()


def current_user(
    authorization: str = Header(""),
    auth_service: AuthService = Depends(get_auth_service),
) -> UserRecord:
    token = _bearer_token(authorization)
    if not token:
        raise AuthError(INVALID_TOKEN_MSG)
    return auth_service.authenticate(token)


@router.post("")
def register(body: RegisterRequest, auth_service: AuthService = Depends(get_auth_service)):
    logger.info(f"Registration request for {body.email}")
    try:
        user = auth_service.register(body.first_name, body.last_name, body.email, body.password)
    except AccountExistsError as exc:
        return _envelope(False, exc.message, status_code=409)
    except RegistrationError as exc:
        return _envelope(False, exc.message, status_code=400)
    return _envelope(True, "User Registration Successful", _user_payload(user))


@router.post("/login")
def login(body: LoginRequest, auth_service: AuthService = Depends(get_auth_service)):
    try:
        result = auth_service.login(body.email, body.password)
    except InvalidCredentialsError:
        return _envelope(False, INVALID_CREDENTIALS_MSG, status_code=400)
    return _envelope(True, "User Logged in", _user_payload(result.user, result.token))


@router.post("/forgot-password")
def forgot_password(body: ForgotPasswordRequest, auth_service: AuthService = Depends(get_auth_service)):
    auth_service.forgot_password(body.email)
    return _envelope(True, FORGOT_MSG)


@router.post("/reset-password")
def reset_password(body: ResetPasswordRequest, auth_service: AuthService = Depends(get_auth_service)):
    try:
        auth_service.reset_password(body.token, body.new_password)
    except RegistrationError as exc:
        return _envelope(False, exc.message, status_code=400)
    except AuthError:
        # invalid and malformed tokens look the same from outside
        return _envelope(False, INVALID_TOKEN_MSG, status_code=400)
    return _envelope(True, "Password reset successful")


@router.get("/me")
def me(user: UserRecord = Depends(current_user)):
    return _envelope(True, "Authenticated", _user_payload(user))
