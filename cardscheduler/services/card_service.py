"""
Card service: persistence of cards, review logs and question statistics, plus
card management (suspend, bury, reset, history, leeches, stats).

Single-card updates made while answering go through a conditional UPDATE on
the card's version column, so two concurrent answers for the same card can
never both apply.
"""
import logging
from datetime import datetime
from typing import List, Optional
from sqlmodel import Session, select, func
from sqlalchemy import Numeric, case, cast, update
from sqlalchemy.exc import IntegrityError

from cardscheduler.core.exceptions import ConflictError, NotFoundError, ValidationError
from cardscheduler.models.card import Card
from cardscheduler.models.enums import CardType
from cardscheduler.models.question import Question
from cardscheduler.models.review_log import ReviewLog
from cardscheduler.schemas.card import (
    CardListItem,
    CardState,
    CardStatsResponse,
    CardStatsTotals,
    CardTypeStat,
    OverdueCard,
)
from cardscheduler.utils.time_utils import (
    calendar_days_between,
    start_of_day,
    start_of_next_day,
    utcnow,
)

logger = logging.getLogger(__name__)


INITIAL_EASE = 2.50


def get_card(session: Session, user_id: int, card_id: int) -> Card:
    """
    Get a card owned by the user.

    Raises:
        NotFoundError: If the card does not exist or belongs to another user
    """
    card = session.get(Card, card_id)
    if not card or card.user_id != user_id:
        raise NotFoundError(f"Card with id {card_id} not found")
    return card


def get_question(session: Session, question_id: int) -> Question:
    """
    Get a question by ID.

    Raises:
        NotFoundError: If the question does not exist
    """
    question = session.get(Question, question_id)
    if not question:
        raise NotFoundError(f"Question with id {question_id} not found")
    return question


def _find_card(session: Session, user_id: int, question_id: int) -> Optional[Card]:
    return session.exec(
        select(Card).where(
            Card.user_id == user_id,
            Card.question_id == question_id
        )
    ).first()


def get_or_create_card(
    session: Session,
    user_id: int,
    question_id: int,
    now: Optional[datetime] = None
) -> Card:
    """
    Get the user's card for a question, creating a new one on first exposure.

    Calling this again for the same user and question returns the same card,
    unchanged. A concurrent insert for the same pair is resolved by the unique
    constraint: the losing request reads back the winner's card.

    Args:
        session: Database session
        user_id: User ID
        question_id: Question ID
        now: Creation time as naive UTC (defaults to the current time)

    Returns:
        The existing or newly created card

    Raises:
        NotFoundError: If the question does not exist
    """
    card = _find_card(session, user_id, question_id)
    if card:
        return card

    get_question(session, question_id)
    now = now or utcnow()

    card = Card(
        user_id=user_id,
        question_id=question_id,
        card_type=CardType.NEW.value,
        ease_factor=INITIAL_EASE,
        interval_days=0,
        repetitions=0,
        lapses=0,
        learning_step=0,
        due_date=now,
        is_suspended=False,
        is_buried=False,
        created_at=now,
        updated_at=now,
    )
    session.add(card)
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        card = _find_card(session, user_id, question_id)
        if card is None:
            raise
        logger.info(f"Card for user {user_id}, question {question_id} was created concurrently")
        return card

    session.refresh(card)
    logger.info(f"Created card {card.id} for user {user_id}, question {question_id}")
    return card


def save_card(
    session: Session,
    card: Card,
    new_state: CardState,
    expected_version: int,
    is_correct: bool,
    response_time_seconds: Optional[float],
    now: datetime
) -> int:
    """
    Write a card's new scheduling state and bump its aggregate counters.

    The UPDATE only applies if the card still has `expected_version`; otherwise
    another answer got there first. Does not commit.

    Args:
        session: Database session
        card: Card as read at the start of the operation
        new_state: State produced by the state machine and leech check
        expected_version: Version the card had when it was read
        is_correct: Whether the answer counted as correct
        response_time_seconds: Time taken to answer, if known
        now: Review time as naive UTC

    Returns:
        The card's new version

    Raises:
        ConflictError: If the card was changed concurrently
    """
    time_spent = response_time_seconds or 0.0
    total_reviews = card.total_reviews + 1
    total_time_seconds = card.total_time_seconds + time_spent
    new_version = expected_version + 1

    values = {
        "card_type": CardType(new_state.card_type).value,
        "ease_factor": new_state.ease_factor,
        "interval_days": new_state.interval_days,
        "repetitions": new_state.repetitions,
        "lapses": new_state.lapses,
        "learning_step": new_state.learning_step,
        "due_date": new_state.due_date,
        "is_suspended": new_state.is_suspended,
        "is_buried": new_state.is_buried,
        "buried_until": new_state.buried_until,
        "is_leech": new_state.is_leech,
        "total_reviews": total_reviews,
        "times_correct": card.times_correct + (1 if is_correct else 0),
        "consecutive_correct": card.consecutive_correct + 1 if is_correct else 0,
        "total_time_seconds": total_time_seconds,
        "average_time_seconds": total_time_seconds / total_reviews,
        "first_review": card.first_review or now,
        "last_review": now,
        "updated_at": now,
        "version": new_version,
    }

    result = session.exec(
        update(Card)
        .where(
            Card.id == card.id,
            Card.user_id == card.user_id,
            Card.version == expected_version
        )
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise ConflictError(f"Card {card.id} was updated concurrently")
    return new_version


def append_review_log(session: Session, review_log: ReviewLog) -> ReviewLog:
    """Append a review log entry. Does not commit."""
    session.add(review_log)
    session.flush()
    return review_log


def bump_question_stats(
    session: Session,
    question_id: int,
    is_correct: bool,
    time_seconds: Optional[float],
    now: Optional[datetime] = None
) -> None:
    """
    Add one attempt to a question's aggregate accuracy and timing statistics.

    Computed in a single UPDATE from the stored values so concurrent answers by
    different users do not lose increments. Does not commit.
    """
    correct_increment = 1 if is_correct else 0
    values = {
        "total_attempts": Question.total_attempts + 1,
        "correct_attempts": Question.correct_attempts + correct_increment,
        "accuracy_rate": func.round(
            cast((Question.correct_attempts + correct_increment) * 100.0 / (Question.total_attempts + 1), Numeric), 2
        ),
        "updated_at": now or utcnow(),
    }
    if time_seconds is not None:
        values["actual_average_time_seconds"] = (
            (func.coalesce(Question.actual_average_time_seconds, 0.0) * Question.total_attempts + time_seconds)
            / (Question.total_attempts + 1)
        )

    session.exec(
        update(Question)
        .where(Question.id == question_id)
        .values(**values)
        .execution_options(synchronize_session=False)
    )


def _touch(session: Session, card: Card, now: datetime) -> Card:
    card.version += 1
    card.updated_at = now
    session.add(card)
    session.commit()
    session.refresh(card)
    return card


def suspend_card(session: Session, user_id: int, card_id: int) -> Card:
    """Exclude a card from due card selection until it is unsuspended."""
    card = get_card(session, user_id, card_id)
    card.is_suspended = True
    card = _touch(session, card, utcnow())
    logger.info(f"Suspended card {card_id} for user {user_id}")
    return card


def unsuspend_card(session: Session, user_id: int, card_id: int) -> Card:
    """Return a suspended card to due card selection."""
    card = get_card(session, user_id, card_id)
    card.is_suspended = False
    card = _touch(session, card, utcnow())
    logger.info(f"Unsuspended card {card_id} for user {user_id}")
    return card


def bury_card(session: Session, user_id: int, card_id: int, now: Optional[datetime] = None) -> Card:
    """Hide a card until the next local midnight."""
    now = now or utcnow()
    card = get_card(session, user_id, card_id)
    card.is_buried = True
    card.buried_until = start_of_next_day(now)
    card = _touch(session, card, now)
    logger.info(f"Buried card {card_id} for user {user_id} until {card.buried_until}")
    return card


def _unbury(session: Session, cards: List[Card], now: datetime) -> int:
    for card in cards:
        card.is_buried = False
        card.buried_until = None
        card.version += 1
        card.updated_at = now
        session.add(card)
    session.commit()
    return len(cards)


def unbury_cards(session: Session, user_id: int, subject_id: Optional[int] = None) -> int:
    """
    Release all of a user's buried cards, optionally only for one subject.

    Returns:
        Number of cards unburied
    """
    query = select(Card).where(Card.user_id == user_id, Card.is_buried == True)  # noqa: E712
    if subject_id is not None:
        query = query.join(Question, Question.id == Card.question_id).where(Question.subject_id == subject_id)

    cards = session.exec(query).all()
    count = _unbury(session, list(cards), utcnow())
    logger.info(f"Unburied {count} card(s) for user {user_id}")
    return count


def release_expired_burials(
    session: Session,
    user_id: Optional[int] = None,
    now: Optional[datetime] = None
) -> int:
    """
    Release buried cards whose burial has expired.

    Args:
        session: Database session
        user_id: Only release this user's cards (all users if None)
        now: Reference time as naive UTC (defaults to the current time)

    Returns:
        Number of cards released
    """
    now = now or utcnow()
    query = select(Card).where(
        Card.is_buried == True,  # noqa: E712
        Card.buried_until.isnot(None),  # type: ignore[union-attr]
        Card.buried_until <= now
    )
    if user_id is not None:
        query = query.where(Card.user_id == user_id)

    cards = session.exec(query).all()
    if not cards:
        return 0
    count = _unbury(session, list(cards), now)
    logger.info(f"Released {count} expired burial(s)" + (f" for user {user_id}" if user_id is not None else ""))
    return count


def reset_card(session: Session, user_id: int, card_id: int, now: Optional[datetime] = None) -> Card:
    """
    Reset a card to the state of a freshly created card.

    Leech, suspend and bury flags are cleared; aggregate counters are kept.
    """
    now = now or utcnow()
    card = get_card(session, user_id, card_id)
    card.card_type = CardType.NEW.value
    card.ease_factor = INITIAL_EASE
    card.interval_days = 0
    card.repetitions = 0
    card.lapses = 0
    card.learning_step = 0
    card.due_date = now
    card.is_leech = False
    card.is_suspended = False
    card.is_buried = False
    card.buried_until = None
    card = _touch(session, card, now)
    logger.info(f"Reset card {card_id} for user {user_id}")
    return card


def get_card_history(session: Session, user_id: int, card_id: int, limit: int = 20) -> List[ReviewLog]:
    """Review log entries for a card, newest first."""
    get_card(session, user_id, card_id)
    return list(session.exec(
        select(ReviewLog)
        .where(ReviewLog.card_id == card_id, ReviewLog.user_id == user_id)
        .order_by(ReviewLog.reviewed_at.desc(), ReviewLog.id.desc())  # type: ignore[union-attr]
        .limit(limit)
    ).all())


def get_leech_cards(session: Session, user_id: int, limit: int = 50) -> List[Card]:
    """Cards flagged as leeches, most lapses first."""
    return list(session.exec(
        select(Card)
        .where(Card.user_id == user_id, Card.is_leech == True)  # noqa: E712
        .order_by(Card.lapses.desc(), Card.last_review.desc())  # type: ignore[union-attr]
        .limit(limit)
    ).all())


def _to_list_item(card: Card, question: Question, **extra) -> dict:
    return dict(
        card.model_dump(),
        subject_id=question.subject_id,
        subtopic_id=question.subtopic_id,
        question_text=question.question_text,
        year=question.year,
        difficulty=question.difficulty,
        **extra
    )


def list_cards(
    session: Session,
    user_id: int,
    card_type: Optional[str] = None,
    subject_id: Optional[int] = None,
    subtopic_id: Optional[int] = None,
    is_suspended: Optional[bool] = None,
    is_leech: Optional[bool] = None,
    limit: int = 100,
    offset: int = 0
) -> List[CardListItem]:
    """
    List a user's cards with their questions, earliest due first.

    Args:
        session: Database session
        user_id: User ID
        card_type: Only cards of this type
        subject_id: Only cards whose question belongs to this subject
        subtopic_id: Only cards whose question belongs to this subtopic
        is_suspended: Only suspended (True) or unsuspended (False) cards
        is_leech: Only leeches (True) or non-leeches (False)
        limit: Page size
        offset: Number of cards to skip

    Returns:
        One page of cards

    Raises:
        ValidationError: If card_type is not a known card type
    """
    query = (
        select(Card, Question)
        .join(Question, Question.id == Card.question_id)
        .where(Card.user_id == user_id)
    )
    if card_type is not None:
        try:
            query = query.where(Card.card_type == CardType(card_type).value)
        except ValueError:
            valid = ", ".join(t.value for t in CardType)
            raise ValidationError(f"Invalid card type '{card_type}'. Expected one of: {valid}")
    if subject_id is not None:
        query = query.where(Question.subject_id == subject_id)
    if subtopic_id is not None:
        query = query.where(Question.subtopic_id == subtopic_id)
    if is_suspended is not None:
        query = query.where(Card.is_suspended == is_suspended)
    if is_leech is not None:
        query = query.where(Card.is_leech == is_leech)

    rows = session.exec(
        query.order_by(Card.due_date, Card.id).offset(offset).limit(limit)
    ).all()
    return [CardListItem(**_to_list_item(card, question)) for card, question in rows]


def get_overdue_cards(
    session: Session,
    user_id: int,
    limit: int = 100,
    now: Optional[datetime] = None
) -> List[OverdueCard]:
    """
    Review cards that were due on an earlier local day, most overdue first.

    Suspended and buried cards are left out.
    """
    now = now or utcnow()
    rows = session.exec(
        select(Card, Question)
        .join(Question, Question.id == Card.question_id)
        .where(
            Card.user_id == user_id,
            Card.card_type == CardType.REVIEW.value,
            Card.due_date < start_of_day(now),
            Card.is_suspended == False,  # noqa: E712
            Card.is_buried == False  # noqa: E712
        )
        .order_by(Card.due_date, Card.id)
        .limit(limit)
    ).all()
    return [
        OverdueCard(**_to_list_item(card, question, days_overdue=calendar_days_between(card.due_date, now)))
        for card, question in rows
    ]


def get_card_stats(
    session: Session,
    user_id: int,
    subject_id: Optional[int] = None,
    subtopic_id: Optional[int] = None
) -> CardStatsResponse:
    """
    Count, average ease, average interval and average reviews per card type, plus totals.

    Args:
        session: Database session
        user_id: User ID
        subject_id: Only count cards whose question belongs to this subject
        subtopic_id: Only count cards whose question belongs to this subtopic
    """
    query = (
        select(
            Card.card_type,
            func.count(Card.id).label('card_count'),
            func.avg(Card.ease_factor).label('avg_ease_factor'),
            func.avg(Card.interval_days).label('avg_interval'),
            func.avg(Card.total_reviews).label('avg_reviews'),
            func.sum(case((Card.is_leech == True, 1), else_=0)).label('leech_count'),  # noqa: E712
            func.sum(case((Card.is_suspended == True, 1), else_=0)).label('suspended_count'),  # noqa: E712
        )
        .join(Question, Question.id == Card.question_id)
        .where(Card.user_id == user_id)
    )
    if subject_id is not None:
        query = query.where(Question.subject_id == subject_id)
    if subtopic_id is not None:
        query = query.where(Question.subtopic_id == subtopic_id)

    rows = session.exec(query.group_by(Card.card_type).order_by(Card.card_type)).all()

    card_stats = [
        CardTypeStat(
            card_type=row.card_type,
            count=int(row.card_count),
            avg_ease_factor=round(float(row.avg_ease_factor or 0), 2),
            avg_interval=round(float(row.avg_interval or 0), 2),
            avg_reviews=round(float(row.avg_reviews or 0), 2),
            leech_count=int(row.leech_count or 0),
            suspended_count=int(row.suspended_count or 0),
        )
        for row in rows
    ]

    return CardStatsResponse(
        card_stats=card_stats,
        totals=CardStatsTotals(
            total_cards=sum(stat.count for stat in card_stats),
            total_leeches=sum(stat.leech_count for stat in card_stats),
            total_suspended=sum(stat.suspended_count for stat in card_stats),
        )
    )
