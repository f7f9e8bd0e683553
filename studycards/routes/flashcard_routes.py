from datetime import datetime

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field, StrictBool, StrictInt, field_validator, model_validator

from studycards.auth.dependencies import get_flashcard_service
from studycards.services import scheduler
from studycards.services.flashcard_service import MAX_IMPORT_SIZE, FlashcardService, normalize_card_text

router = APIRouter(tags=['flashcards'])


class FlashcardResponse(BaseModel):
    id: int
    front: str
    back: str
    user_id: int
    level: int
    next_review: datetime | None = None
    ease_factor: float
    repetitions: int
    last_interval: int
    review_count: int
    last_reviewed: datetime | None = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class CreateFlashcardRequest(BaseModel):
    front: str
    back: str

    @field_validator('front', 'back')
    @classmethod
    def validate_text(cls, value: str) -> str:
        return normalize_card_text(value)


class UpdateFlashcardRequest(BaseModel):
    front: str | None = None
    back: str | None = None

    @field_validator('front', 'back')
    @classmethod
    def validate_text(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return normalize_card_text(value)

    @model_validator(mode='after')
    def require_any_field(self):
        if self.front is None and self.back is None:
            raise ValueError('Provide front or back to update.')
        return self


class ReviewRequest(BaseModel):
    quality: StrictInt | None = Field(default=None, ge=scheduler.MIN_QUALITY, le=scheduler.MAX_QUALITY)
    correct: StrictBool | None = None

    @model_validator(mode='after')
    def require_grade(self):
        if self.quality is None and self.correct is None:
            raise ValueError('Provide a quality score (0-5) or a correct flag.')
        return self

    @property
    def grade(self) -> int:
        if self.quality is not None:
            return self.quality
        return scheduler.quality_from_correct(self.correct)


class BulkImportRequest(BaseModel):
    # Items are validated one by one so a bad card does not sink the batch.
    flashcards: list[dict] = Field(max_length=MAX_IMPORT_SIZE)


@router.get('')
def list_flashcards(
    user_id: int | None = Query(default=None),
    limit: int = Query(default=50),
    offset: int = Query(default=0),
    order_by: str = Query(default='created_at'),
    order: str = Query(default='asc'),
    flashcard_service: FlashcardService = Depends(get_flashcard_service),
):
    cards, total = flashcard_service.list_cards(
        owner_id=user_id,
        limit=limit,
        offset=offset,
        order_by=order_by,
        order=order,
    )
    return {
        'success': True,
        'flashcards': [FlashcardResponse.model_validate(card) for card in cards],
        'count': len(cards),
        'total': total,
    }


@router.post('', status_code=status.HTTP_201_CREATED)
def create_flashcard(
    payload: CreateFlashcardRequest,
    flashcard_service: FlashcardService = Depends(get_flashcard_service),
):
    card = flashcard_service.create(payload.front, payload.back)
    return {'success': True, 'flashcard': FlashcardResponse.model_validate(card)}


@router.post('/import', status_code=status.HTTP_201_CREATED)
def import_flashcards(
    payload: BulkImportRequest,
    flashcard_service: FlashcardService = Depends(get_flashcard_service),
):
    result = flashcard_service.bulk_import(payload.flashcards)
    return {
        'success': True,
        'imported': [
            {'index': entry['index'], 'flashcard': FlashcardResponse.model_validate(entry['flashcard'])}
            for entry in result['successful']
        ],
        'failed': result['failed'],
        'total_processed': result['total_processed'],
    }


@router.get('/due')
def list_due_flashcards(
    limit: int = Query(default=20),
    flashcard_service: FlashcardService = Depends(get_flashcard_service),
):
    due = flashcard_service.due(limit=limit)
    return {
        'success': True,
        'new': [FlashcardResponse.model_validate(card) for card in due['new']],
        'due': [FlashcardResponse.model_validate(card) for card in due['due']],
        'total_due': due['total_due'],
    }


@router.get('/{flashcard_id}')
def get_flashcard(
    flashcard_id: int,
    flashcard_service: FlashcardService = Depends(get_flashcard_service),
):
    card = flashcard_service.get(flashcard_id)
    return {'success': True, 'flashcard': FlashcardResponse.model_validate(card)}


@router.put('/{flashcard_id}')
def update_flashcard(
    flashcard_id: int,
    payload: UpdateFlashcardRequest,
    flashcard_service: FlashcardService = Depends(get_flashcard_service),
):
    card = flashcard_service.update(flashcard_id, front=payload.front, back=payload.back)
    return {'success': True, 'flashcard': FlashcardResponse.model_validate(card)}


@router.delete('/{flashcard_id}')
def delete_flashcard(
    flashcard_id: int,
    flashcard_service: FlashcardService = Depends(get_flashcard_service),
):
    flashcard_service.delete(flashcard_id)
    return {'success': True, 'message': 'Flashcard deleted successfully.'}


@router.post('/{flashcard_id}/review')
def review_flashcard(
    flashcard_id: int,
    payload: ReviewRequest,
    flashcard_service: FlashcardService = Depends(get_flashcard_service),
):
    card, outcome = flashcard_service.review(flashcard_id, payload.grade)
    return {
        'success': True,
        'flashcard': FlashcardResponse.model_validate(card),
        'review': {
            'quality': payload.grade,
            'passed': outcome.passed,
            'interval_days': outcome.interval_days,
            'next_review': outcome.next_review,
        },
    }
