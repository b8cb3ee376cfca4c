from fastapi import Request

from app.exceptions.base import AuthErrorCode, EnumException
from app.schemas.auth import User
from app.services.auth import AuthService
from app.services.history import HistoryStore
from app.services.orchestrator import ScanOrchestrator, SessionRegistry


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def get_history_store(request: Request) -> HistoryStore:
    return request.app.state.history_store


def get_session_registry(request: Request) -> SessionRegistry:
    return request.app.state.session_registry


def require_user(request: Request) -> User:
    """Dependency to require authentication on routes."""
    token = request.headers.get("X-ACCESS-JWT")
    if not token:
        raise EnumException(401, AuthErrorCode.AUTH_REQUIRED)

    user = get_auth_service(request).verify_token(token)
    if user is None:
        raise EnumException(401, AuthErrorCode.INVALID_TOKEN)

    request.state.upstreamId = user.phone
    return user


def require_session(request: Request) -> ScanOrchestrator:
    user = require_user(request)
    session = get_session_registry(request).get(user.phone)
    if session is None:
        raise EnumException(404, AuthErrorCode.NO_SESSION)
    return session
