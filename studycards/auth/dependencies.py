"""Per-request capability chain.

Routes declare the strongest capability they need and FastAPI resolves the
chain in order: settings -> session -> bearer token -> current user ->
admin gate. Each link depends on the previous one, so ``get_current_admin``
never runs for an unauthenticated request.
"""

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from studycards.core.config import Settings
from studycards.models.user import User
from studycards.services.auth_service import AuthService, require_admin
from studycards.services.flashcard_service import FlashcardService
from studycards.services.user_service import UserService

# Missing or malformed headers are reported as UNAUTHORIZED by the service.
security = HTTPBearer(auto_error=False)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_db(request: Request):
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()


def get_auth_service(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> AuthService:
    return AuthService(db, settings)


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    auth_service: AuthService = Depends(get_auth_service),
) -> User:
    token = credentials.credentials if credentials else None
    return auth_service.authenticate(token)


def get_current_admin(current_user: User = Depends(get_current_user)) -> User:
    return require_admin(current_user)


def get_user_service(db: Session = Depends(get_db)) -> UserService:
    return UserService(db)


def get_flashcard_service(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    current_user: User = Depends(get_current_user),
) -> FlashcardService:
    return FlashcardService(db, settings, current_user)
