"""
Authentication routes: password registration and login, biometric challenge
issuance, biometric key registration and biometric login.

Handlers only translate payloads; failures are `AuthError`s turned into
responses by the application's exception handler.
"""

from fastapi import APIRouter, Depends, Request, status

from biokey_auth.managers.logging_manager import get_logger
from biokey_auth.routes.auth.dependencies import get_auth_service, get_current_user_dep
from biokey_auth.routes.auth.models import (
    AbortBiometricRequest,
    AuthResponse,
    BiometricLoginRequest,
    BiometricRegistrationRequest,
    ChallengeResponse,
    LoginRequest,
    LoginResponse,
    RegisterRequest,
    SuccessResponse,
    UserInDB,
    UserOut,
)
from biokey_auth.routes.auth.services.auth.service import AuthService
from biokey_auth.utils.logging_utils import log_performance

logger = get_logger(prefix="[Auth Routes]")

router = APIRouter(prefix="/auth", tags=["auth"])


def _client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new user account",
    description="""
    Create an account from an email and password and return a token pair.

    With `with_biometric` set, a biometric challenge is issued as well; sign it
    with the device key and submit it to `/auth/biometrics/register`.
    """,
)
@log_performance("register_endpoint")
async def register(payload: RegisterRequest, request: Request, service: AuthService = Depends(get_auth_service)):
    logger.info("Registration attempt from %s", _client_ip(request))
    result = await service.register(payload.email, payload.password, payload.with_biometric)
    return AuthResponse.from_result(result)


@router.post("/login", response_model=LoginResponse, summary="Log in with email and password")
@log_performance("login_endpoint")
async def login(payload: LoginRequest, request: Request, service: AuthService = Depends(get_auth_service)):
    logger.info("Password login attempt from %s", _client_ip(request))
    result = await service.login_with_password(payload.email, payload.password)
    return LoginResponse.from_result(result)


@router.post(
    "/biometrics/challenge",
    response_model=ChallengeResponse,
    summary="Issue a biometric challenge",
    description="""
    Start a biometric registration for the authenticated user. The challenge
    expires after a few minutes and only one may be pending per user.
    """,
)
async def create_challenge(
    current_user: UserInDB = Depends(get_current_user_dep), service: AuthService = Depends(get_auth_service)
):
    return await service.generate_challenge(current_user.email)


@router.post("/biometrics/register", response_model=SuccessResponse, summary="Register a biometric public key")
@log_performance("biometric_register_endpoint")
async def register_biometrics(
    payload: BiometricRegistrationRequest,
    current_user: UserInDB = Depends(get_current_user_dep),
    service: AuthService = Depends(get_auth_service),
):
    # The key is always enrolled for the token's subject
    success = await service.register_biometrics(
        payload.biometric_key, payload.signed_challenge, user_id=current_user.id
    )
    return SuccessResponse(success=success)


@router.delete("/biometrics/challenge", response_model=SuccessResponse, summary="Abort a pending biometric registration")
async def abort_biometric_registration(
    payload: AbortBiometricRequest,
    current_user: UserInDB = Depends(get_current_user_dep),
    service: AuthService = Depends(get_auth_service),
):
    removed = await service.abort_biometric_registration(current_user.id, payload.challenge)
    return SuccessResponse(success=removed)


@router.post("/biometrics/login", response_model=LoginResponse, summary="Log in with a signed challenge")
@log_performance("biometric_login_endpoint")
async def biometric_login(
    payload: BiometricLoginRequest, request: Request, service: AuthService = Depends(get_auth_service)
):
    logger.info("Biometric login attempt from %s", _client_ip(request))
    result = await service.biometric_login(payload.email, payload.challenge, payload.signed_challenge)
    return LoginResponse.from_result(result)


@router.get("/me", response_model=UserOut, summary="Current user")
async def read_me(current_user: UserInDB = Depends(get_current_user_dep)):
    return UserOut.from_user(current_user)
