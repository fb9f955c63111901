from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Body, Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel, ConfigDict
from sqlalchemy.orm import Session

from database import get_db
from errors import AuthError, InvalidCredentials, InvalidInput
from utils.accounts import AccountRepository
from utils.auth_service import AuthResult, AuthService
from utils.otp_ledger import RedisOtpLedger, SqlOtpLedger
from utils.tokens import TokenSigner


router = APIRouter(prefix="/auth", tags=["auth"])
bearer = HTTPBearer(auto_error=False)


def get_auth_service(request: Request, db: Session = Depends(get_db)) -> AuthService:
    state = request.app.state
    settings = state.settings
    ttl_seconds = settings.otp_exp_minutes * 60
    if state.redis is not None:
        otps = RedisOtpLedger(state.redis, ttl_seconds=ttl_seconds)
    else:
        otps = SqlOtpLedger(db, ttl_seconds=ttl_seconds)
    return AuthService(
        settings=settings,
        accounts=AccountRepository(db),
        otps=otps,
        dispatcher=state.dispatcher,
        tokens=TokenSigner(settings),
    )


def get_current_account_id(
    creds: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
    service: AuthService = Depends(get_auth_service),
) -> str:
    return service.authenticate(creds.credentials if creds else None)


# Bodies and fields are optional so that missing values come back as a 400
# from the service instead of a 422 from validation.
class SendOtpIn(BaseModel):
    email: Optional[str] = None


class VerifyOtpIn(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    code: Optional[str] = None


class LoginIn(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


# What a malformed or missing body on each route is reported as.
BODY_ERRORS = {
    "/auth/send-otp": lambda: InvalidInput("Email required"),
    "/auth/verify-otp": lambda: InvalidInput("Missing fields"),
    "/auth/login": lambda: InvalidCredentials(),
}


def body_error_for(path: str) -> AuthError:
    factory = BODY_ERRORS.get(path)
    return factory() if factory else InvalidInput("Invalid request body")


def _auth_response(result: AuthResult) -> dict:
    return {"success": True, "user": result.account.to_dict(), "token": result.token}


@router.post("/send-otp")
def send_otp(
    payload: Optional[SendOtpIn] = Body(None),
    service: AuthService = Depends(get_auth_service),
):
    payload = payload or SendOtpIn()
    result = service.request_otp(payload.email)
    body = {"success": True, "message": result.message}
    if result.otp is not None:
        body["otp"] = result.otp
    return body


@router.post("/verify-otp")
def verify_otp(
    payload: Optional[VerifyOtpIn] = Body(None),
    service: AuthService = Depends(get_auth_service),
):
    payload = payload or VerifyOtpIn()
    result = service.verify_and_register(payload.name, payload.email, payload.password, payload.code)
    return _auth_response(result)


@router.post("/login")
def login(
    payload: Optional[LoginIn] = Body(None),
    service: AuthService = Depends(get_auth_service),
):
    payload = payload or LoginIn()
    return _auth_response(service.login(payload.email, payload.password))
