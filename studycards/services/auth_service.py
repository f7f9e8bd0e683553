import logging
from dataclasses import dataclass

import jwt
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from studycards.auth import jwt_handler
from studycards.auth.passwords import hash_password, validate_password, verify_password
from studycards.core.config import Settings
from studycards.core.errors import (
    CannotDeleteSelf,
    CannotModifySelf,
    DuplicateEmail,
    Forbidden,
    InvalidCredentials,
    LastAdminDelete,
    Unauthorized,
    UserNotFound,
)
from studycards.models.flashcard import Flashcard
from studycards.models.user import ROLE_ADMIN, ROLE_USER, User

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str
    expires_in: int
    token_type: str = 'bearer'

    def to_dict(self) -> dict:
        return {
            'access_token': self.access_token,
            'refresh_token': self.refresh_token,
            'token_type': self.token_type,
            'expires_in': self.expires_in,
        }


def normalize_email(email: str) -> str:
    return email.strip().lower()


def require_admin(user: User) -> User:
    if user.role != ROLE_ADMIN:
        raise Forbidden('Admin access required.')
    return user


class AuthService:
    """Credential checks, token issuing and the account lifecycle."""

    def __init__(self, db: Session, settings: Settings) -> None:
        self.db = db
        self.settings = settings

    def get_user_by_email(self, email: str) -> User | None:
        return self.db.query(User).filter(User.email == normalize_email(email)).first()

    def issue_tokens(self, user: User) -> TokenPair:
        claims = {'user_id': user.id, 'role': user.role, 'token_version': user.token_version}
        return TokenPair(
            access_token=jwt_handler.create_access_token(self.settings, **claims),
            refresh_token=jwt_handler.create_refresh_token(self.settings, **claims),
            expires_in=self.settings.jwt_access_expires_minutes * 60,
        )

    def register(self, email: str, password: str) -> tuple[User, TokenPair]:
        email = normalize_email(email)
        validate_password(password)

        if self.get_user_by_email(email) is not None:
            raise DuplicateEmail()

        user = User(
            email=email,
            hashed_password=hash_password(password, self.settings.bcrypt_rounds),
            role=ROLE_USER,
        )
        self.db.add(user)
        try:
            self.db.commit()
        except IntegrityError as exc:
            # Lost a race with a concurrent registration for the same email.
            self.db.rollback()
            raise DuplicateEmail() from exc
        self.db.refresh(user)

        logger.info('Registered user %s', user.id)
        return user, self.issue_tokens(user)

    def login(self, email: str, password: str) -> tuple[User, TokenPair]:
        user = self.get_user_by_email(email)
        if user is None or not verify_password(password, user.hashed_password):
            logger.warning('Failed login attempt for %s', normalize_email(email))
            raise InvalidCredentials()
        return user, self.issue_tokens(user)

    def _user_for_claims(self, payload: dict) -> User:
        try:
            user_id = int(payload['sub'])
        except (KeyError, TypeError, ValueError) as exc:
            raise Unauthorized('Invalid token subject.') from exc

        user = self.db.get(User, user_id)
        if user is None:
            raise Unauthorized('User no longer exists.')
        if payload.get('ver') != user.token_version:
            raise Unauthorized('Token has been revoked.')
        return user

    def authenticate(self, token: str | None) -> User:
        if not token:
            raise Unauthorized('No token provided.')
        try:
            payload = jwt_handler.decode_access_token(self.settings, token)
        except jwt.ExpiredSignatureError as exc:
            raise Unauthorized('Access token has expired.') from exc
        except jwt.InvalidTokenError as exc:
            logger.warning('Rejected access token: %s', exc)
            raise Unauthorized('Invalid access token.') from exc
        return self._user_for_claims(payload)

    def refresh(self, refresh_token: str | None) -> tuple[User, TokenPair]:
        if not refresh_token:
            raise Unauthorized('Refresh token is required.')
        try:
            payload = jwt_handler.decode_refresh_token(self.settings, refresh_token)
        except jwt.InvalidTokenError as exc:
            logger.warning('Rejected refresh token: %s', exc)
            raise Unauthorized('Invalid or expired refresh token.') from exc

        user = self._user_for_claims(payload)
        access_token = jwt_handler.create_access_token(
            self.settings,
            user_id=user.id,
            role=user.role,
            token_version=user.token_version,
        )
        tokens = TokenPair(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=self.settings.jwt_access_expires_minutes * 60,
        )
        return user, tokens

    def revoke_tokens(self, user: User) -> None:
        user.token_version = (user.token_version or 0) + 1
        self.db.commit()

    def logout(self, user: User) -> None:
        self.revoke_tokens(user)
        logger.info('User %s logged out', user.id)

    def change_password(self, user: User, current_password: str, new_password: str) -> TokenPair:
        if not verify_password(current_password, user.hashed_password):
            raise InvalidCredentials('Current password is incorrect.')
        validate_password(new_password, field='new_password')

        user.hashed_password = hash_password(new_password, self.settings.bcrypt_rounds)
        self.revoke_tokens(user)
        self.db.refresh(user)
        return self.issue_tokens(user)

    def reset_password(self, actor: User, target_id: int, new_password: str) -> User:
        """Set another user's password without the old one and revoke their tokens."""
        if actor.id == target_id:
            raise CannotModifySelf('Use your own password change to update your password.')

        user = self.db.get(User, target_id)
        if user is None:
            raise UserNotFound()
        validate_password(new_password, field='new_password')

        user.hashed_password = hash_password(new_password, self.settings.bcrypt_rounds)
        self.revoke_tokens(user)
        self.db.refresh(user)

        logger.info('Admin %s reset the password of user %s', actor.id, target_id)
        return user

    def _delete_account(self, user: User) -> int:
        card_count = (
            self.db.query(func.count(Flashcard.id))
            .filter(Flashcard.user_id == user.id)
            .scalar()
        )
        try:
            self.db.delete(user)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return card_count

    def delete_user(self, actor_id: int, target_id: int) -> int:
        """Delete ``target_id`` and every flashcard it owns; returns the card count."""
        if actor_id == target_id:
            raise CannotDeleteSelf()

        user = self.db.get(User, target_id)
        if user is None:
            raise UserNotFound()

        card_count = self._delete_account(user)
        logger.info('Admin %s deleted user %s and %s flashcards', actor_id, target_id, card_count)
        return card_count

    def delete_own_account(self, user: User) -> int:
        if user.role == ROLE_ADMIN:
            admin_count = self.db.query(func.count(User.id)).filter(User.role == ROLE_ADMIN).scalar()
            if admin_count <= 1:
                raise LastAdminDelete()

        user_id = user.id
        card_count = self._delete_account(user)
        logger.info('User %s deleted their account and %s flashcards', user_id, card_count)
        return card_count
