from fastapi import APIRouter, Depends, HTTPException
import logging

from app.dependencies import require_user, get_auth_service, get_session_registry
from app.exceptions.base import AuthErrorCode, EnumException
from app.exceptions.scan import StorageUnavailable
from app.schemas.auth import Credentials, TokenResponse, User
from app.services.auth import AuthService
from app.services.orchestrator import SessionRegistry

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth")


@router.post("/signup", response_model=TokenResponse, status_code=201)
async def signup(body: Credentials, auth: AuthService = Depends(get_auth_service)):
    try:
        created = await auth.signup(body.phone, body.password)
    except StorageUnavailable as e:
        raise HTTPException(status_code=503, detail=str(e))
    if not created:
        raise EnumException(409, AuthErrorCode.USER_EXISTS)

    user = User(phone=body.phone)
    return TokenResponse(access_token=auth.create_access_token(user), user=user)


@router.post("/login", response_model=TokenResponse)
async def login(body: Credentials, auth: AuthService = Depends(get_auth_service)):
    try:
        user = await auth.login(body.phone, body.password)
    except StorageUnavailable as e:
        raise HTTPException(status_code=503, detail=str(e))
    if user is None:
        raise EnumException(401, AuthErrorCode.INVALID_CREDENTIALS)
    return TokenResponse(access_token=auth.create_access_token(user), user=user)


@router.post("/logout", status_code=204)
async def logout(
    user: User = Depends(require_user),
    registry: SessionRegistry = Depends(get_session_registry)
):
    registry.close(user.phone)
    logger.info(f"{user.phone} logged out")
