"""
Answer service: applies one submitted answer to a card.

Fetches the card and the user's settings, runs the state machine and the leech
check, then writes the card, appends the review log and bumps the question's
statistics in one transaction. A lost race on the card or a transient database
error rolls everything back and the whole operation is retried a bounded number
of times before surfacing a StoreError.
"""
import logging
from datetime import datetime
from typing import Optional, Union
from sqlmodel import Session, select
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError

from cardscheduler.core.config import settings
from cardscheduler.core.exceptions import (
    ConflictError,
    NotFoundError,
    StoreError,
    ValidationError,
)
from cardscheduler.models.enums import AnswerOption, CardType, Grade
from cardscheduler.models.review_log import ReviewLog
from cardscheduler.schemas.answer import SubmitAnswerResponse
from cardscheduler.schemas.card import CardState
from cardscheduler.services.card_service import (
    append_review_log,
    bump_question_stats,
    get_card,
    get_question,
    save_card,
)
from cardscheduler.services.leech_service import check_leech
from cardscheduler.services.scheduler_config import get_or_create_settings
from cardscheduler.services.srs_service import (
    format_next_review,
    is_answer_correct,
    parse_grade,
    transition,
)
from cardscheduler.utils.time_utils import utcnow

logger = logging.getLogger(__name__)


RETRYABLE_ERRORS = (ConflictError, OperationalError, IntegrityError)


def normalize_option(selected_option: Optional[str]) -> Optional[str]:
    """
    Normalize a selected option label.

    Raises:
        ValidationError: If the option is not one of a, b, c or d
    """
    if selected_option is None:
        return None
    value = selected_option.strip().lower()
    try:
        return AnswerOption(value).value
    except ValueError:
        valid = ", ".join(option.value for option in AnswerOption)
        raise ValidationError(f"Invalid selected option '{selected_option}'. Expected one of: {valid}")


def _find_submission(session: Session, user_id: int, submission_id: str) -> Optional[ReviewLog]:
    return session.exec(
        select(ReviewLog).where(
            ReviewLog.user_id == user_id,
            ReviewLog.submission_id == submission_id
        )
    ).first()


def _replay(user_id: int, card_id: int, review_log: ReviewLog) -> SubmitAnswerResponse:
    """Rebuild the response of an already applied submission from its review log."""
    if review_log.card_id != card_id:
        raise ValidationError(
            f"submission_id was already used for card {review_log.card_id}"
        )
    state = CardState(
        card_type=CardType(review_log.card_type_after),
        ease_factor=float(review_log.ease_factor_after),
        interval_days=review_log.interval_after,
        repetitions=review_log.repetitions_after,
        lapses=review_log.lapses_after,
        learning_step=review_log.learning_step_after,
        due_date=review_log.due_date_after,
        is_suspended=review_log.is_suspended_after,
        is_buried=review_log.is_buried_after,
        buried_until=review_log.buried_until_after,
        is_leech=review_log.was_leech,
    )
    next_review = review_log.next_review or format_next_review(state, review_log.reviewed_at)
    logger.info(f"Replaying submission for card {card_id} of user {user_id}")
    return SubmitAnswerResponse(
        card_id=card_id,
        is_correct=review_log.is_correct,
        card_state=state,
        next_review=next_review,
        replayed=True,
    )


def _submit_once(
    session: Session,
    user_id: int,
    card_id: int,
    grade: Grade,
    response_time_seconds: Optional[float],
    selected_option: Optional[str],
    session_id: Optional[str],
    submission_id: Optional[str],
    now: datetime
) -> SubmitAnswerResponse:
    if submission_id:
        existing = _find_submission(session, user_id, submission_id)
        if existing:
            return _replay(user_id, card_id, existing)

    config = get_or_create_settings(session, user_id)
    card = get_card(session, user_id, card_id)
    question = get_question(session, card.question_id)

    previous = CardState.from_card(card)
    expected_version = card.version
    is_correct = is_answer_correct(selected_option, question.correct_option, grade)

    new_state = transition(previous, grade, config, now)
    new_state = check_leech(previous, new_state, config, now)

    next_review = format_next_review(new_state, now)

    save_card(
        session,
        card,
        new_state,
        expected_version,
        is_correct=is_correct,
        response_time_seconds=response_time_seconds,
        now=now
    )

    append_review_log(session, ReviewLog(
        user_id=user_id,
        card_id=card_id,
        session_id=session_id,
        submission_id=submission_id,
        review_grade=grade.value,
        selected_option=selected_option,
        is_correct=is_correct,
        response_time_seconds=response_time_seconds,
        card_type_before=CardType(previous.card_type).value,
        interval_before=previous.interval_days,
        ease_factor_before=previous.ease_factor,
        repetitions_before=previous.repetitions,
        lapses_before=previous.lapses,
        due_date_before=previous.due_date,
        card_type_after=CardType(new_state.card_type).value,
        interval_after=new_state.interval_days,
        ease_factor_after=new_state.ease_factor,
        repetitions_after=new_state.repetitions,
        lapses_after=new_state.lapses,
        learning_step_after=new_state.learning_step,
        due_date_after=new_state.due_date,
        is_suspended_after=new_state.is_suspended,
        is_buried_after=new_state.is_buried,
        buried_until_after=new_state.buried_until,
        next_review=next_review,
        was_first_review=previous.card_type == CardType.NEW,
        was_leech=new_state.is_leech,
        reviewed_at=now,
    ))

    bump_question_stats(session, question.id, is_correct, response_time_seconds, now)

    session.commit()

    logger.info(
        f"Answer '{grade.value}' on card {card_id} for user {user_id}: "
        f"{previous.card_type.value} -> {new_state.card_type.value}, "
        f"interval {previous.interval_days} -> {new_state.interval_days} days, "
        f"ease {previous.ease_factor} -> {new_state.ease_factor}"
    )

    return SubmitAnswerResponse(
        card_id=card_id,
        is_correct=is_correct,
        card_state=new_state,
        next_review=next_review,
    )


def submit_answer(
    session: Session,
    user_id: int,
    card_id: int,
    grade: Union[str, Grade],
    response_time_seconds: Optional[float] = None,
    selected_option: Optional[str] = None,
    session_id: Optional[str] = None,
    submission_id: Optional[str] = None,
    now: Optional[datetime] = None
) -> SubmitAnswerResponse:
    """
    Apply an answer to a card as one all-or-nothing unit.

    Args:
        session: Database session
        user_id: User ID (must own the card)
        card_id: Card being answered
        grade: 'again', 'hard', 'good' or 'easy'
        response_time_seconds: Time taken to answer, if known
        selected_option: Option chosen ('a'-'d'), if any
        session_id: Study session the answer belongs to
        submission_id: Client key; a repeated key replays the stored result
        now: Reference time as naive UTC (defaults to the current time)

    Returns:
        SubmitAnswerResponse with correctness, new card state and next review description

    Raises:
        ValidationError: If the grade, option or response time is invalid
        NotFoundError: If the card does not exist or is not owned by the user
        StoreError: If persistence keeps failing; nothing was applied
    """
    grade = parse_grade(grade)
    selected_option = normalize_option(selected_option)
    if response_time_seconds is not None and response_time_seconds < 0:
        raise ValidationError("response_time_seconds cannot be negative")

    now = now or utcnow()
    attempts = max(1, settings.store_retry_attempts)
    last_error: Optional[Exception] = None

    for attempt in range(1, attempts + 1):
        try:
            return _submit_once(
                session,
                user_id,
                card_id,
                grade,
                response_time_seconds,
                selected_option,
                session_id,
                submission_id,
                now
            )
        except (NotFoundError, ValidationError):
            session.rollback()
            raise
        except RETRYABLE_ERRORS as e:
            session.rollback()
            last_error = e
            logger.warning(
                f"Answer on card {card_id} for user {user_id} failed "
                f"(attempt {attempt}/{attempts}): {type(e).__name__}: {e}"
            )
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Error saving answer on card {card_id} for user {user_id}: {str(e)}")
            raise StoreError("Failed to save the answer, please try again") from e

    raise StoreError("Failed to save the answer, please try again") from last_error
