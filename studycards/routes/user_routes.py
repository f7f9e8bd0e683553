import re
from datetime import datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel, field_validator

from studycards.auth.dependencies import (
    get_auth_service,
    get_current_user,
    get_flashcard_service,
    get_user_service,
)
from studycards.models.user import User
from studycards.services.auth_service import AuthService
from studycards.services.flashcard_service import FlashcardService
from studycards.services.user_service import UserService

router = APIRouter(tags=['users'])

EMAIL_PATTERN = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')
MAX_EMAIL_LENGTH = 255


def validate_email_address(value: str) -> str:
    normalized = value.strip().lower()
    if not normalized:
        raise ValueError('Email is required.')
    if len(normalized) > MAX_EMAIL_LENGTH:
        raise ValueError(f'Email must be {MAX_EMAIL_LENGTH} characters or fewer.')
    if not EMAIL_PATTERN.match(normalized):
        raise ValueError('Invalid email format.')
    return normalized


class UserResponse(BaseModel):
    id: int
    email: str
    role: str
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class UpdateProfileRequest(BaseModel):
    email: str

    @field_validator('email')
    @classmethod
    def validate_email(cls, value: str) -> str:
        return validate_email_address(value)


class ChangePasswordRequest(BaseModel):
    current_password: str
    new_password: str

    @field_validator('new_password')
    @classmethod
    def validate_new_password(cls, value: str, info) -> str:
        if value == info.data.get('current_password'):
            raise ValueError('New password must be different from current password.')
        return value


@router.get('/me')
def read_me(current_user: User = Depends(get_current_user)):
    return {'success': True, 'user': UserResponse.model_validate(current_user)}


@router.put('/me')
def update_me(
    payload: UpdateProfileRequest,
    current_user: User = Depends(get_current_user),
    user_service: UserService = Depends(get_user_service),
):
    user = user_service.update_email(current_user, payload.email)
    return {'success': True, 'user': UserResponse.model_validate(user)}


@router.put('/me/password')
def change_my_password(
    payload: ChangePasswordRequest,
    current_user: User = Depends(get_current_user),
    auth_service: AuthService = Depends(get_auth_service),
):
    tokens = auth_service.change_password(current_user, payload.current_password, payload.new_password)
    return {'success': True, 'message': 'Password changed successfully.', **tokens.to_dict()}


@router.delete('/me')
def delete_me(
    current_user: User = Depends(get_current_user),
    auth_service: AuthService = Depends(get_auth_service),
):
    deleted_cards = auth_service.delete_own_account(current_user)
    return {
        'success': True,
        'message': 'Your account has been deleted successfully.',
        'deleted_flashcards': deleted_cards,
    }


@router.get('/me/stats')
def read_my_stats(flashcard_service: FlashcardService = Depends(get_flashcard_service)):
    return {'success': True, 'stats': flashcard_service.stats()}
