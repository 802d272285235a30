"""
Due card selection.

Builds a user's study queue from three buckets (new, learning/relearning,
review), each queried independently with the same exclusions and filters, then
merges them by priority.
"""
import logging
from datetime import datetime
from typing import List, Optional, Tuple
from sqlmodel import Session, select, func

from cardscheduler.core.config import settings
from cardscheduler.models.card import Card
from cardscheduler.models.enums import CardType, QuestionStatus
from cardscheduler.models.question import Question
from cardscheduler.models.review_log import ReviewLog
from cardscheduler.schemas.card import (
    DueCard,
    DueCardCounts,
    DueCardFilters,
    DueCardLimits,
    DueCardsResponse,
)
from cardscheduler.schemas.settings import SchedulerConfig
from cardscheduler.services.scheduler_config import get_or_create_settings
from cardscheduler.utils.time_utils import utcnow, start_of_day, start_of_next_day

logger = logging.getLogger(__name__)


LEARNING_TYPES = (CardType.LEARNING.value, CardType.RELEARNING.value)


def default_limits() -> DueCardLimits:
    """Bucket limits used when the caller passes none."""
    return DueCardLimits(
        new=settings.default_new_cards_limit,
        learning=settings.default_learning_cards_limit,
        review=settings.default_review_cards_limit,
    )


def _base_query(user_id: int, filters: DueCardFilters):
    """Cards of the user that are selectable at all, joined with their question."""
    query = (
        select(Card, Question)
        .join(Question, Question.id == Card.question_id)
        .where(
            Card.user_id == user_id,
            Card.is_suspended == False,  # noqa: E712
            Card.is_buried == False,  # noqa: E712
            Question.status == QuestionStatus.ACTIVE.value
        )
    )
    if filters.subject_ids:
        query = query.where(Question.subject_id.in_(filters.subject_ids))  # type: ignore[attr-defined]
    if filters.subtopic_ids:
        query = query.where(Question.subtopic_id.in_(filters.subtopic_ids))  # type: ignore[attr-defined]
    if filters.years:
        query = query.where(Question.year.in_(filters.years))  # type: ignore[union-attr]
    return query


def get_new_cards(session: Session, user_id: int, filters: DueCardFilters, limit: int) -> List[Tuple[Card, Question]]:
    """New cards, oldest first."""
    if limit <= 0:
        return []
    query = (
        _base_query(user_id, filters)
        .where(Card.card_type == CardType.NEW.value)
        .order_by(Card.created_at, Card.id)
        .limit(limit)
    )
    return list(session.exec(query).all())


def get_learning_cards(
    session: Session,
    user_id: int,
    filters: DueCardFilters,
    limit: int,
    now: datetime
) -> List[Tuple[Card, Question]]:
    """Learning and relearning cards due by now, earliest first."""
    if limit <= 0:
        return []
    query = (
        _base_query(user_id, filters)
        .where(
            Card.card_type.in_(LEARNING_TYPES),  # type: ignore[attr-defined]
            Card.due_date <= now
        )
        .order_by(Card.due_date, Card.id)
        .limit(limit)
    )
    return list(session.exec(query).all())


def get_review_cards(
    session: Session,
    user_id: int,
    filters: DueCardFilters,
    limit: int,
    now: datetime
) -> List[Tuple[Card, Question]]:
    """Review cards due on or before today's calendar day, earliest first."""
    if limit <= 0:
        return []
    query = (
        _base_query(user_id, filters)
        .where(
            Card.card_type == CardType.REVIEW.value,
            Card.due_date < start_of_next_day(now)
        )
        .order_by(Card.due_date, Card.id)
        .limit(limit)
    )
    return list(session.exec(query).all())


def card_priority(card: Card, config: SchedulerConfig, now: datetime) -> int:
    """
    Priority rank of a due card (lower is shown first).

    1: new cards when new cards come first, and overdue review cards
    2: learning and relearning cards
    3: everything else
    """
    if card.card_type == CardType.NEW.value:
        return 1 if config.show_new_cards_first else 3
    if card.card_type in LEARNING_TYPES:
        return 2
    if card.card_type == CardType.REVIEW.value and card.due_date < now:
        return 1
    return 3


def count_answers_today(session: Session, user_id: int, now: datetime) -> Tuple[int, int]:
    """
    Count today's answers that use up the daily caps.

    Returns:
        Tuple of (new cards introduced today, review cards answered today)
    """
    day_start = start_of_day(now)
    answered_today = (
        select(func.count(ReviewLog.id))
        .where(ReviewLog.user_id == user_id, ReviewLog.reviewed_at >= day_start)
    )
    new_today = session.exec(
        answered_today.where(ReviewLog.was_first_review == True)  # noqa: E712
    ).one()
    reviews_today = session.exec(
        answered_today.where(ReviewLog.card_type_before == CardType.REVIEW.value)
    ).one()
    return int(new_today), int(reviews_today)


def _effective_limits(
    session: Session,
    user_id: int,
    config: SchedulerConfig,
    limits: DueCardLimits,
    now: datetime
) -> DueCardLimits:
    new_today, reviews_today = count_answers_today(session, user_id, now)
    return DueCardLimits(
        new=min(limits.new, max(0, config.new_cards_per_day - new_today)),
        learning=limits.learning,
        review=min(limits.review, max(0, config.maximum_reviews_per_day - reviews_today)),
    )


def _to_due_card(card: Card, question: Question, priority: int) -> DueCard:
    return DueCard(
        card_id=card.id,
        card_type=card.card_type,
        ease_factor=card.ease_factor,
        interval_days=card.interval_days,
        repetitions=card.repetitions,
        lapses=card.lapses,
        learning_step=card.learning_step,
        due_date=card.due_date,
        total_reviews=card.total_reviews,
        times_correct=card.times_correct,
        priority=priority,
        question_id=question.id,
        subject_id=question.subject_id,
        subtopic_id=question.subtopic_id,
        question_text=question.question_text,
        option_a=question.option_a,
        option_b=question.option_b,
        option_c=question.option_c,
        option_d=question.option_d,
        correct_option=question.correct_option,
        explanation=question.explanation,
        year=question.year,
        difficulty=question.difficulty,
    )


def list_due_cards(
    session: Session,
    user_id: int,
    filters: Optional[DueCardFilters] = None,
    limits: Optional[DueCardLimits] = None,
    now: Optional[datetime] = None
) -> DueCardsResponse:
    """
    Build a user's ordered queue of due cards.

    Each bucket excludes suspended and buried cards and inactive questions,
    applies the filters, then its limit. The new and review limits are further
    capped by what is left of the user's daily caps. Cards are ordered by
    (priority, due date).

    Args:
        session: Database session
        user_id: User ID
        filters: Optional subject, subtopic and year filters
        limits: Per-bucket limits (defaults from configuration)
        now: Reference time as naive UTC (defaults to the current time)

    Returns:
        DueCardsResponse with the ordered cards and per-bucket counts
    """
    now = now or utcnow()
    filters = filters or DueCardFilters()
    limits = limits or default_limits()

    config = get_or_create_settings(session, user_id)
    effective = _effective_limits(session, user_id, config, limits, now)

    new_cards = get_new_cards(session, user_id, filters, effective.new)
    learning_cards = get_learning_cards(session, user_id, filters, effective.learning, now)
    review_cards = get_review_cards(session, user_id, filters, effective.review, now)

    ranked = [
        (card_priority(card, config, now), card.due_date, card, question)
        for card, question in new_cards + learning_cards + review_cards
    ]
    ranked.sort(key=lambda item: (item[0], item[1]))

    cards = [_to_due_card(card, question, priority) for priority, _, card, question in ranked]

    logger.info(
        f"Due cards for user {user_id}: {len(new_cards)} new, {len(learning_cards)} learning, "
        f"{len(review_cards)} review"
    )

    return DueCardsResponse(
        cards=cards,
        counts=DueCardCounts(
            new=len(new_cards),
            learning=len(learning_cards),
            review=len(review_cards),
            total=len(cards),
        )
    )
