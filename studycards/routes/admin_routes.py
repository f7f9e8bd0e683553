from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, field_validator

from studycards.auth.dependencies import get_auth_service, get_current_admin, get_user_service
from studycards.models.user import ROLES, User
from studycards.routes.user_routes import UserResponse
from studycards.services.auth_service import AuthService
from studycards.services.user_service import UserService

# Every route below sits behind auth -> admin.
router = APIRouter(tags=['admin'], dependencies=[Depends(get_current_admin)])


class AdminUserResponse(UserResponse):
    flashcard_count: int


class UpdateRoleRequest(BaseModel):
    role: str

    @field_validator('role')
    @classmethod
    def validate_role(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in ROLES:
            raise ValueError(f'Role must be one of: {", ".join(ROLES)}.')
        return normalized


class ResetPasswordRequest(BaseModel):
    new_password: str


def _admin_user(user: User, flashcard_count: int) -> AdminUserResponse:
    return AdminUserResponse(
        **UserResponse.model_validate(user).model_dump(),
        flashcard_count=flashcard_count,
    )


@router.get('/users')
def list_users(
    page: int = Query(default=1),
    limit: int = Query(default=20),
    role: str | None = Query(default=None),
    user_service: UserService = Depends(get_user_service),
):
    result = user_service.list_users(page=page, limit=limit, role=role)
    return {
        'success': True,
        'users': [_admin_user(user, count) for user, count in result['users']],
        'pagination': result['pagination'],
    }


@router.get('/users/{user_id}')
def get_user(user_id: int, user_service: UserService = Depends(get_user_service)):
    user = user_service.get_user(user_id)
    return {'success': True, 'user': _admin_user(user, user_service.flashcard_count(user.id))}


@router.put('/users/{user_id}/role')
def update_user_role(
    user_id: int,
    payload: UpdateRoleRequest,
    admin: User = Depends(get_current_admin),
    user_service: UserService = Depends(get_user_service),
):
    user = user_service.change_role(admin, user_id, payload.role)
    return {'success': True, 'user': _admin_user(user, user_service.flashcard_count(user.id))}


@router.delete('/users/{user_id}')
def delete_user(
    user_id: int,
    admin: User = Depends(get_current_admin),
    auth_service: AuthService = Depends(get_auth_service),
):
    deleted_cards = auth_service.delete_user(admin.id, user_id)
    return {
        'success': True,
        'message': 'User account deleted successfully.',
        'deleted_flashcards': deleted_cards,
    }


@router.post('/users/{user_id}/reset-password')
def reset_user_password(
    user_id: int,
    payload: ResetPasswordRequest,
    admin: User = Depends(get_current_admin),
    auth_service: AuthService = Depends(get_auth_service),
):
    auth_service.reset_password(admin, user_id, payload.new_password)
    return {'success': True, 'message': 'User password reset successfully.'}


@router.delete('/users/{user_id}/flashcards')
def delete_user_flashcards(
    user_id: int,
    admin: User = Depends(get_current_admin),
    user_service: UserService = Depends(get_user_service),
):
    deleted_cards = user_service.delete_flashcards(admin, user_id)
    return {
        'success': True,
        'message': 'All user flashcards deleted successfully.',
        'user_id': user_id,
        'deleted_flashcards': deleted_cards,
    }


@router.get('/stats')
def system_stats(user_service: UserService = Depends(get_user_service)):
    return {'success': True, 'stats': user_service.system_stats()}
