"""
SRS (Spaced Repetition System) service implementing the card state machine.

A card moves between new, learning, review and relearning according to the
grade given for each answer. Every (state, grade) pair has an explicit entry in
TRANSITIONS. Learning and relearning cards are scheduled in minutes from now;
review cards are scheduled in whole days from local midnight today.

Everything here is pure: no I/O, no shared mutable state.
"""
import math
from datetime import datetime, timedelta
from typing import Callable, Dict, Optional, Tuple, Union

from cardscheduler.core.exceptions import ValidationError
from cardscheduler.models.enums import CardType, Grade
from cardscheduler.schemas.card import CardState
from cardscheduler.schemas.settings import SchedulerConfig
from cardscheduler.utils.time_utils import utcnow, start_of_day_offset


MIN_EASE = 1.30
MAX_EASE = 2.50
AGAIN_EASE_PENALTY = 0.20
HARD_EASE_PENALTY = 0.15
EASY_EASE_BONUS = 0.15

CORRECT_GRADES = (Grade.GOOD, Grade.EASY)

TransitionHandler = Callable[[CardState, SchedulerConfig, datetime], CardState]


def parse_grade(value: Union[str, Grade]) -> Grade:
    """
    Parse a grade value.

    Raises:
        ValidationError: If the value is not one of again, hard, good or easy
    """
    try:
        return Grade(value.lower() if isinstance(value, str) else value)
    except ValueError:
        valid = ", ".join(g.value for g in Grade)
        raise ValidationError(f"Unrecognized grade '{value}'. Expected one of: {valid}")


def clamp_ease(value: float) -> float:
    """Clamp an ease factor to [MIN_EASE, MAX_EASE], stored to two decimals."""
    return round(min(MAX_EASE, max(MIN_EASE, value)), 2)


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves rounded up (2.5 -> 3)."""
    return int(math.floor(value + 0.5))


def bounded_interval(value: float, config: SchedulerConfig) -> int:
    """Round an interval in days and keep it within [minimum_interval, maximum_interval]."""
    return min(config.maximum_interval, max(config.minimum_interval, round_half_up(value)))


def learning_due(now: datetime, config: SchedulerConfig, step: int) -> datetime:
    """Due date for a learning step: minute precision, offset from now."""
    return now + timedelta(minutes=config.learning_steps[step])


def review_due(now: datetime, interval_days: int) -> datetime:
    """Due date for a review: day precision, offset from local midnight today."""
    return start_of_day_offset(now, interval_days)


def _clamped_step(state: CardState, config: SchedulerConfig) -> int:
    return max(0, min(state.learning_step, len(config.learning_steps) - 1))


def _graduate(state: CardState, config: SchedulerConfig, now: datetime, interval_days: int) -> CardState:
    interval_days = max(config.minimum_interval, interval_days)
    return state.model_copy(update={
        "card_type": CardType.REVIEW,
        "interval_days": interval_days,
        "ease_factor": clamp_ease(config.starting_ease),
        "repetitions": 1,
        "learning_step": 0,
        "due_date": review_due(now, interval_days),
    })


# new

def _start_learning(state: CardState, config: SchedulerConfig, now: datetime) -> CardState:
    return state.model_copy(update={
        "card_type": CardType.LEARNING,
        "learning_step": 0,
        "due_date": learning_due(now, config, 0),
    })


def _graduate_easy(state: CardState, config: SchedulerConfig, now: datetime) -> CardState:
    return _graduate(state, config, now, config.easy_interval)


# learning and relearning

def _restart_steps(state: CardState, config: SchedulerConfig, now: datetime) -> CardState:
    return state.model_copy(update={
        "learning_step": 0,
        "due_date": learning_due(now, config, 0),
        "ease_factor": clamp_ease(state.ease_factor - AGAIN_EASE_PENALTY),
    })


def _repeat_step(state: CardState, config: SchedulerConfig, now: datetime) -> CardState:
    step = _clamped_step(state, config)
    return state.model_copy(update={
        "learning_step": step,
        "due_date": learning_due(now, config, step),
    })


def _advance_learning(state: CardState, config: SchedulerConfig, now: datetime) -> CardState:
    if state.learning_step + 1 >= len(config.learning_steps):
        return _graduate(state, config, now, config.graduating_interval)
    step = state.learning_step + 1
    return state.model_copy(update={
        "learning_step": step,
        "due_date": learning_due(now, config, step),
    })


def _relearned(state: CardState, config: SchedulerConfig, now: datetime) -> CardState:
    interval_days = bounded_interval(state.interval_days * config.new_interval_percentage, config)
    return state.model_copy(update={
        "card_type": CardType.REVIEW,
        "learning_step": 0,
        "interval_days": interval_days,
        "due_date": review_due(now, interval_days),
    })


def _relearned_easy(state: CardState, config: SchedulerConfig, now: datetime) -> CardState:
    interval_days = bounded_interval(
        state.interval_days * config.new_interval_percentage * config.easy_bonus, config
    )
    return state.model_copy(update={
        "card_type": CardType.REVIEW,
        "learning_step": 0,
        "interval_days": interval_days,
        "due_date": review_due(now, interval_days),
    })


# review

def _lapse(state: CardState, config: SchedulerConfig, now: datetime) -> CardState:
    return state.model_copy(update={
        "card_type": CardType.RELEARNING,
        "learning_step": 0,
        "due_date": learning_due(now, config, 0),
        "lapses": state.lapses + 1,
        "ease_factor": clamp_ease(state.ease_factor - AGAIN_EASE_PENALTY),
        "repetitions": 0,
    })


def _review_hard(state: CardState, config: SchedulerConfig, now: datetime) -> CardState:
    interval_days = bounded_interval(state.interval_days * config.hard_interval_multiplier, config)
    return state.model_copy(update={
        "interval_days": interval_days,
        "due_date": review_due(now, interval_days),
        "repetitions": state.repetitions + 1,
        "ease_factor": clamp_ease(state.ease_factor - HARD_EASE_PENALTY),
    })


def _review_good(state: CardState, config: SchedulerConfig, now: datetime) -> CardState:
    interval_days = bounded_interval(state.interval_days * state.ease_factor, config)
    return state.model_copy(update={
        "interval_days": interval_days,
        "due_date": review_due(now, interval_days),
        "repetitions": state.repetitions + 1,
    })


def _review_easy(state: CardState, config: SchedulerConfig, now: datetime) -> CardState:
    interval_days = bounded_interval(
        state.interval_days * state.ease_factor * config.easy_bonus, config
    )
    return state.model_copy(update={
        "interval_days": interval_days,
        "due_date": review_due(now, interval_days),
        "repetitions": state.repetitions + 1,
        "ease_factor": clamp_ease(state.ease_factor + EASY_EASE_BONUS),
    })


TRANSITIONS: Dict[Tuple[CardType, Grade], TransitionHandler] = {
    (CardType.NEW, Grade.AGAIN): _start_learning,
    (CardType.NEW, Grade.HARD): _start_learning,
    (CardType.NEW, Grade.GOOD): _start_learning,
    (CardType.NEW, Grade.EASY): _graduate_easy,

    (CardType.LEARNING, Grade.AGAIN): _restart_steps,
    (CardType.LEARNING, Grade.HARD): _repeat_step,
    (CardType.LEARNING, Grade.GOOD): _advance_learning,
    (CardType.LEARNING, Grade.EASY): _graduate_easy,

    (CardType.REVIEW, Grade.AGAIN): _lapse,
    (CardType.REVIEW, Grade.HARD): _review_hard,
    (CardType.REVIEW, Grade.GOOD): _review_good,
    (CardType.REVIEW, Grade.EASY): _review_easy,

    (CardType.RELEARNING, Grade.AGAIN): _restart_steps,
    (CardType.RELEARNING, Grade.HARD): _repeat_step,
    (CardType.RELEARNING, Grade.GOOD): _relearned,
    (CardType.RELEARNING, Grade.EASY): _relearned_easy,
}


def transition(
    state: CardState,
    grade: Union[str, Grade],
    config: SchedulerConfig,
    now: Optional[datetime] = None
) -> CardState:
    """
    Compute a card's next scheduling state after an answer.

    Args:
        state: Current card state
        grade: Grade given for the answer ('again', 'hard', 'good' or 'easy')
        config: The user's scheduler settings
        now: Reference time as naive UTC (defaults to the current time)

    Returns:
        New card state; the input state is left untouched

    Raises:
        ValidationError: If the grade is not recognized
    """
    grade = parse_grade(grade)
    handler = TRANSITIONS[(CardType(state.card_type), grade)]
    return handler(state, config, now or utcnow())


def is_answer_correct(
    selected_option: Optional[str],
    correct_option: Optional[str],
    grade: Union[str, Grade]
) -> bool:
    """
    An answer counts as correct if the chosen option matches, or if the user
    self-graded it good or easy.
    """
    if parse_grade(grade) in CORRECT_GRADES:
        return True
    if selected_option is None or correct_option is None:
        return False
    return selected_option.lower() == correct_option.lower()


def format_next_review(state: CardState, now: Optional[datetime] = None) -> str:
    """
    Describe when a card is shown next.

    Learning and relearning cards are described in minutes from now, review
    cards in days.
    """
    if state.card_type in (CardType.LEARNING, CardType.RELEARNING):
        now = now or utcnow()
        minutes = round_half_up((state.due_date - now).total_seconds() / 60)
        return f"{minutes} minutes"
    return f"{state.interval_days} days"
