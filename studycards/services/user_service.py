import logging

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from studycards.core.errors import CannotModifySelf, DuplicateEmail, LastAdmin, UserNotFound, ValidationFailed
from studycards.models.flashcard import Flashcard
from studycards.models.user import ROLE_ADMIN, ROLES, User
from studycards.services.auth_service import normalize_email

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100


class UserService:
    def __init__(self, db: Session) -> None:
        self.db = db

    def get_user(self, user_id: int) -> User:
        user = self.db.get(User, user_id)
        if user is None:
            raise UserNotFound()
        return user

    def flashcard_count(self, user_id: int) -> int:
        return (
            self.db.query(func.count(Flashcard.id))
            .filter(Flashcard.user_id == user_id)
            .scalar()
        )

    def update_email(self, user: User, email: str) -> User:
        email = normalize_email(email)
        if email == user.email:
            return user

        taken = self.db.query(User.id).filter(User.email == email, User.id != user.id).first()
        if taken is not None:
            raise DuplicateEmail('Another user is already using this email address.')

        user.email = email
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise DuplicateEmail('Another user is already using this email address.') from exc
        self.db.refresh(user)
        return user

    def list_users(self, page: int = 1, limit: int = 20, role: str | None = None) -> dict:
        if page < 1:
            raise ValidationFailed('Page must be a positive integer.')
        if not 1 <= limit <= MAX_PAGE_SIZE:
            raise ValidationFailed(f'Limit must be between 1 and {MAX_PAGE_SIZE}.')
        if role is not None and role not in ROLES:
            raise ValidationFailed('Invalid user role.')

        card_counts = (
            self.db.query(Flashcard.user_id, func.count(Flashcard.id).label('card_count'))
            .group_by(Flashcard.user_id)
            .subquery()
        )
        query = (
            self.db.query(User, func.coalesce(card_counts.c.card_count, 0))
            .outerjoin(card_counts, card_counts.c.user_id == User.id)
        )
        if role is not None:
            query = query.filter(User.role == role)

        total = query.count()
        rows = (
            query.order_by(User.created_at.desc(), User.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )

        return {
            'users': [(user, count) for user, count in rows],
            'pagination': {
                'page': page,
                'limit': limit,
                'total': total,
                'pages': (total + limit - 1) // limit,
            },
        }

    def change_role(self, actor: User, target_id: int, role: str) -> User:
        if role not in ROLES:
            raise ValidationFailed('Invalid user role.')
        if actor.id == target_id:
            raise CannotModifySelf()

        user = self.get_user(target_id)
        if user.role == role:
            return user

        if user.role == ROLE_ADMIN:
            admin_count = self.db.query(func.count(User.id)).filter(User.role == ROLE_ADMIN).scalar()
            if admin_count <= 1:
                raise LastAdmin()

        user.role = role
        # Outstanding tokens still carry the old role.
        user.token_version = (user.token_version or 0) + 1
        self.db.commit()
        self.db.refresh(user)

        logger.info('Admin %s changed role of user %s to %s', actor.id, user.id, role)
        return user

    def delete_flashcards(self, actor: User, target_id: int) -> int:
        """Remove every card in ``target_id``'s deck but keep the account."""
        self.get_user(target_id)

        deleted = (
            self.db.query(Flashcard)
            .filter(Flashcard.user_id == target_id)
            .delete(synchronize_session='fetch')
        )
        self.db.commit()

        logger.info('Admin %s deleted %s flashcards of user %s', actor.id, deleted, target_id)
        return deleted

    def system_stats(self) -> dict:
        role_counts = dict(
            self.db.query(User.role, func.count(User.id)).group_by(User.role).all()
        )
        total_cards = self.db.query(func.count(Flashcard.id)).scalar()
        total_reviews = self.db.query(func.coalesce(func.sum(Flashcard.review_count), 0)).scalar()

        return {
            'total_users': sum(role_counts.values()),
            'admin_users': role_counts.get(ROLE_ADMIN, 0),
            'regular_users': sum(count for role, count in role_counts.items() if role != ROLE_ADMIN),
            'total_flashcards': total_cards,
            'total_reviews': total_reviews,
        }
