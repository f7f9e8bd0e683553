import logging

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from studycards.core.config import Settings
from studycards.core.errors import FlashcardNotFound, ValidationFailed
from studycards.database import utcnow
from studycards.models.flashcard import Flashcard
from studycards.models.user import User
from studycards.services import scheduler

logger = logging.getLogger(__name__)

MAX_TEXT_LENGTH = 500
MAX_LIST_LIMIT = 100
MAX_DUE_LIMIT = 100
MAX_IMPORT_SIZE = 100
ORDERABLE_FIELDS = {
    'id': Flashcard.id,
    'created_at': Flashcard.created_at,
    'next_review': Flashcard.next_review,
    'last_reviewed': Flashcard.last_reviewed,
    'ease_factor': Flashcard.ease_factor,
    'level': Flashcard.level,
}


def normalize_card_text(value: str) -> str:
    normalized = (value or '').strip()
    if not normalized:
        raise ValueError('Text cannot be empty.')
    if len(normalized) > MAX_TEXT_LENGTH:
        raise ValueError(f'Text must be {MAX_TEXT_LENGTH} characters or fewer.')
    return normalized


class FlashcardService:
    """Flashcard access for one authenticated actor.

    Every query goes through ``_scoped`` so non-admins only ever see rows they
    own. A card owned by someone else is reported as missing rather than
    forbidden.
    """

    def __init__(self, db: Session, settings: Settings, actor: User) -> None:
        self.db = db
        self.settings = settings
        self.actor = actor

    def _scoped(self):
        query = self.db.query(Flashcard)
        if not self.actor.is_admin:
            query = query.filter(Flashcard.user_id == self.actor.id)
        return query

    def _owner_filter(self, owner_id: int | None) -> int:
        # Admins may look at another user's deck; everyone else gets their own.
        if owner_id is not None and self.actor.is_admin:
            return owner_id
        return self.actor.id

    def get(self, flashcard_id: int) -> Flashcard:
        card = self._scoped().filter(Flashcard.id == flashcard_id).first()
        if card is None:
            raise FlashcardNotFound()
        return card

    def list_cards(
        self,
        owner_id: int | None = None,
        limit: int = 50,
        offset: int = 0,
        order_by: str = 'created_at',
        order: str = 'asc',
    ) -> tuple[list[Flashcard], int]:
        if order_by not in ORDERABLE_FIELDS:
            allowed = ', '.join(sorted(ORDERABLE_FIELDS))
            raise ValidationFailed(f'Invalid order_by field. Allowed: {allowed}.')
        if order.lower() not in {'asc', 'desc'}:
            raise ValidationFailed('Order must be asc or desc.')
        if not 1 <= limit <= MAX_LIST_LIMIT:
            raise ValidationFailed(f'Limit must be between 1 and {MAX_LIST_LIMIT}.')
        if offset < 0:
            raise ValidationFailed('Offset must not be negative.')

        query = self.db.query(Flashcard).filter(Flashcard.user_id == self._owner_filter(owner_id))
        total = query.count()

        column = ORDERABLE_FIELDS[order_by]
        ordering = column.desc() if order.lower() == 'desc' else column.asc()
        cards = query.order_by(ordering, Flashcard.id.asc()).offset(offset).limit(limit).all()
        return cards, total

    def _clean(self, field: str, value: str) -> str:
        try:
            return normalize_card_text(value)
        except ValueError as exc:
            raise ValidationFailed(str(exc), errors=[{'field': field, 'message': str(exc)}]) from exc

    def create(self, front: str, back: str) -> Flashcard:
        card = Flashcard(
            front=self._clean('front', front),
            back=self._clean('back', back),
            user_id=self.actor.id,
            level=0,
            next_review=utcnow(),
            ease_factor=self.settings.scheduler.initial_ease_factor,
            repetitions=0,
            last_interval=0,
            review_count=0,
        )
        self.db.add(card)
        self.db.commit()
        self.db.refresh(card)
        return card

    def update(self, flashcard_id: int, front: str | None = None, back: str | None = None) -> Flashcard:
        card = self.get(flashcard_id)
        if front is not None:
            card.front = self._clean('front', front)
        if back is not None:
            card.back = self._clean('back', back)
        self.db.commit()
        self.db.refresh(card)
        return card

    def delete(self, flashcard_id: int) -> None:
        card = self.get(flashcard_id)
        self.db.delete(card)
        self.db.commit()

    def review(self, flashcard_id: int, quality: int) -> tuple[Flashcard, scheduler.ReviewOutcome]:
        if not scheduler.is_valid_quality(quality):
            raise ValidationFailed(
                'Quality must be an integer between 0 and 5.',
                errors=[{'field': 'quality', 'message': 'Must be an integer between 0 and 5.'}],
            )

        card = self.get(flashcard_id)
        now = utcnow()
        state = scheduler.SchedulingState(
            ease_factor=card.ease_factor,
            repetitions=card.repetitions,
            last_interval=card.last_interval,
        )
        outcome = scheduler.schedule_review(state, quality, now, self.settings.scheduler)

        card.ease_factor = outcome.ease_factor
        card.repetitions = outcome.repetitions
        card.last_interval = outcome.interval_days
        card.level = outcome.level
        card.next_review = outcome.next_review
        card.review_count = (card.review_count or 0) + 1
        card.last_reviewed = now
        self.db.commit()
        self.db.refresh(card)

        logger.debug(
            'Card %s reviewed with quality %s; next review in %s days',
            card.id, quality, outcome.interval_days,
        )
        return card, outcome

    def due(self, limit: int = 20) -> dict:
        if not 1 <= limit <= MAX_DUE_LIMIT:
            raise ValidationFailed(f'Limit must be between 1 and {MAX_DUE_LIMIT}.')

        now = utcnow()
        cards = (
            self.db.query(Flashcard)
            .filter(Flashcard.user_id == self.actor.id)
            .filter(or_(Flashcard.next_review.is_(None), Flashcard.next_review <= now))
            .order_by(Flashcard.next_review.asc(), Flashcard.id.asc())
            .limit(limit)
            .all()
        )
        new_cards = [card for card in cards if not card.review_count]
        due_cards = [card for card in cards if card.review_count]
        return {'new': new_cards, 'due': due_cards, 'total_due': len(cards)}

    def bulk_import(self, items: list[dict]) -> dict:
        if len(items) > MAX_IMPORT_SIZE:
            raise ValidationFailed(f'Cannot import more than {MAX_IMPORT_SIZE} flashcards at once.')

        successful: list[dict] = []
        failed: list[dict] = []
        for index, item in enumerate(items):
            errors = []
            cleaned = {}
            for field in ('front', 'back'):
                value = item.get(field) if isinstance(item, dict) else None
                if not isinstance(value, str):
                    errors.append({'field': field, 'message': 'Field is required.'})
                    continue
                try:
                    cleaned[field] = normalize_card_text(value)
                except ValueError as exc:
                    errors.append({'field': field, 'message': str(exc)})

            if errors:
                failed.append({'index': index, 'errors': errors})
                continue

            card = Flashcard(
                user_id=self.actor.id,
                next_review=utcnow(),
                ease_factor=self.settings.scheduler.initial_ease_factor,
                **cleaned,
            )
            self.db.add(card)
            successful.append({'index': index, 'flashcard': card})

        self.db.commit()
        for entry in successful:
            self.db.refresh(entry['flashcard'])

        return {'successful': successful, 'failed': failed, 'total_processed': len(items)}

    def stats(self) -> dict:
        now = utcnow()
        base = self.db.query(Flashcard).filter(Flashcard.user_id == self.actor.id)

        total, reviewed, total_reviews, average_ease = base.with_entities(
            func.count(Flashcard.id),
            func.count(Flashcard.last_reviewed),
            func.coalesce(func.sum(Flashcard.review_count), 0),
            func.avg(Flashcard.ease_factor),
        ).one()
        due = base.filter(or_(Flashcard.next_review.is_(None), Flashcard.next_review <= now)).count()

        return {
            'total_flashcards': total,
            'reviewed_flashcards': reviewed,
            'new_flashcards': total - reviewed,
            'due_flashcards': due,
            'total_reviews': total_reviews,
            'average_ease_factor': round(average_ease, 4) if average_ease is not None else None,
        }
