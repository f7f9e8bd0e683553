from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, field_validator

from studycards.auth.dependencies import get_auth_service, get_current_user
from studycards.models.user import User
from studycards.routes.user_routes import UserResponse, validate_email_address
from studycards.services.auth_service import AuthService

router = APIRouter(tags=['auth'])


class RegisterRequest(BaseModel):
    email: str
    password: str

    @field_validator('email')
    @classmethod
    def validate_email(cls, value: str) -> str:
        return validate_email_address(value)


class LoginRequest(BaseModel):
    email: str
    password: str

    @field_validator('email')
    @classmethod
    def validate_email(cls, value: str) -> str:
        normalized = value.strip().lower()
        if not normalized:
            raise ValueError('Email is required.')
        return normalized

    @field_validator('password')
    @classmethod
    def validate_password(cls, value: str) -> str:
        if not value:
            raise ValueError('Password is required.')
        return value


class RefreshRequest(BaseModel):
    refresh_token: str


def _auth_payload(user: User, tokens) -> dict:
    return {
        'success': True,
        'user': UserResponse.model_validate(user),
        **tokens.to_dict(),
    }


@router.post('/register', status_code=status.HTTP_201_CREATED)
def register(payload: RegisterRequest, auth_service: AuthService = Depends(get_auth_service)):
    user, tokens = auth_service.register(payload.email, payload.password)
    return _auth_payload(user, tokens)


@router.post('/login')
def login(payload: LoginRequest, auth_service: AuthService = Depends(get_auth_service)):
    user, tokens = auth_service.login(payload.email, payload.password)
    return _auth_payload(user, tokens)


@router.post('/refresh')
def refresh(payload: RefreshRequest, auth_service: AuthService = Depends(get_auth_service)):
    user, tokens = auth_service.refresh(payload.refresh_token)
    return _auth_payload(user, tokens)


@router.post('/logout')
def logout(
    current_user: User = Depends(get_current_user),
    auth_service: AuthService = Depends(get_auth_service),
):
    auth_service.logout(current_user)
    return {'success': True, 'message': 'Logged out successfully.'}
