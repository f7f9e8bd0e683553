"""Spaced-repetition scheduling.

A review grade ``quality`` runs from 0 (complete blackout) to 5 (perfect
recall). Grades at or above ``SchedulerParams.passing_quality`` count as a
pass. The update follows the usual ease-factor scheme:

* the ease factor moves by ``0.1 - (5 - q) * (0.08 + (5 - q) * 0.02)`` and
  never drops below ``min_ease_factor``;
* a failing grade resets the repetition count and sets the interval to
  ``min_interval_days``;
* a passing grade increments the repetition count; the first two
  repetitions use fixed intervals, later ones multiply the previous
  interval by the ease factor.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta

from studycards.core.config import SchedulerParams

MIN_QUALITY = 0
MAX_QUALITY = 5

# Mapping used when a client reports a plain correct/incorrect answer.
CORRECT_QUALITY = 4
INCORRECT_QUALITY = 1


@dataclass(frozen=True)
class SchedulingState:
    ease_factor: float
    repetitions: int
    last_interval: int


@dataclass(frozen=True)
class ReviewOutcome:
    ease_factor: float
    repetitions: int
    interval_days: int
    level: int
    next_review: datetime
    passed: bool


def is_valid_quality(quality) -> bool:
    # bool is an int subclass; reject it explicitly.
    return (
        isinstance(quality, int)
        and not isinstance(quality, bool)
        and MIN_QUALITY <= quality <= MAX_QUALITY
    )


def quality_from_correct(correct: bool) -> int:
    return CORRECT_QUALITY if correct else INCORRECT_QUALITY


def next_ease_factor(ease_factor: float, quality: int, params: SchedulerParams) -> float:
    distance = MAX_QUALITY - quality
    updated = ease_factor + (0.1 - distance * (0.08 + distance * 0.02))
    return round(max(params.min_ease_factor, updated), 4)


def next_interval(state: SchedulingState, repetitions: int, params: SchedulerParams) -> int:
    """Interval in days for a passing review that brings the card to ``repetitions``."""
    if repetitions <= 1:
        interval = params.first_interval_days
    elif repetitions == 2:
        interval = params.second_interval_days
    else:
        previous = state.last_interval or params.first_interval_days
        interval = round(previous * state.ease_factor)

    return min(max(interval, params.min_interval_days), params.max_interval_days)


def schedule_review(
    state: SchedulingState,
    quality: int,
    now: datetime,
    params: SchedulerParams,
) -> ReviewOutcome:
    if not is_valid_quality(quality):
        raise ValueError(f'quality must be an integer between {MIN_QUALITY} and {MAX_QUALITY}')

    # Guard against rows written before the ease factor column existed.
    ease_factor = state.ease_factor if state.ease_factor else params.initial_ease_factor
    state = SchedulingState(
        ease_factor=max(ease_factor, params.min_ease_factor),
        repetitions=max(state.repetitions or 0, 0),
        last_interval=max(state.last_interval or 0, 0),
    )

    passed = quality >= params.passing_quality
    if passed:
        repetitions = state.repetitions + 1
        interval = next_interval(state, repetitions, params)
    else:
        repetitions = 0
        interval = params.min_interval_days

    return ReviewOutcome(
        ease_factor=next_ease_factor(state.ease_factor, quality, params),
        repetitions=repetitions,
        interval_days=interval,
        level=min(repetitions, params.max_level),
        next_review=now + timedelta(days=interval),
        passed=passed,
    )
