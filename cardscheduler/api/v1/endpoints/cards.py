"""
Card scheduling endpoints.
"""
from fastapi import APIRouter, Depends, Query, status
from sqlmodel import Session
from typing import List, Optional
import logging

from cardscheduler.core.database import get_session
from cardscheduler.core.exceptions import ValidationError
from cardscheduler.schemas.answer import SubmitAnswerRequest, SubmitAnswerResponse
from cardscheduler.schemas.card import (
    CardHistoryEntry,
    CardListItem,
    CardResponse,
    CardStatsResponse,
    DueCardFilters,
    DueCardLimits,
    DueCardsResponse,
    InitCardRequest,
    OverdueCard,
    UnburyResponse,
)
from cardscheduler.services import card_service
from cardscheduler.services.answer_service import submit_answer
from cardscheduler.services.due_card_service import default_limits, list_due_cards

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/cards", tags=["cards"])


def parse_int_list(value: Optional[str], name: str) -> Optional[List[int]]:
    """Parse a comma-separated query parameter into a list of integers."""
    if not value:
        return None
    try:
        return [int(part.strip()) for part in value.split(',') if part.strip()]
    except ValueError as exc:
        raise ValidationError(f"{name} must be comma-separated integers") from exc


@router.get("", response_model=List[CardListItem])
async def list_cards(
    user_id: int,
    card_type: Optional[str] = Query(None, description="new, learning, review or relearning"),
    subject_id: Optional[int] = None,
    subtopic_id: Optional[int] = None,
    is_suspended: Optional[bool] = None,
    is_leech: Optional[bool] = None,
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    session: Session = Depends(get_session)
):
    """
    List the user's cards, earliest due first.

    Args:
        user_id: User ID
        card_type: Only cards of this type
        subject_id: Only cards of this subject
        subtopic_id: Only cards of this subtopic
        is_suspended: Filter on the suspended flag
        is_leech: Filter on the leech flag
        limit: Page size
        offset: Number of cards to skip
    """
    return card_service.list_cards(
        session,
        user_id,
        card_type=card_type,
        subject_id=subject_id,
        subtopic_id=subtopic_id,
        is_suspended=is_suspended,
        is_leech=is_leech,
        limit=limit,
        offset=offset,
    )


@router.get("/overdue", response_model=List[OverdueCard])
async def get_overdue_cards(
    user_id: int,
    limit: int = Query(100, ge=1, le=500),
    session: Session = Depends(get_session)
):
    """Get review cards that were due before today, most overdue first."""
    return card_service.get_overdue_cards(session, user_id, limit=limit)


@router.get("/due", response_model=DueCardsResponse)
async def get_due_cards(
    user_id: int,
    subjects: Optional[str] = Query(None, description="Comma-separated subject IDs"),
    subtopics: Optional[str] = Query(None, description="Comma-separated subtopic IDs"),
    years: Optional[str] = Query(None, description="Comma-separated exam years"),
    new_cards_limit: Optional[int] = Query(None, ge=0),
    learning_cards_limit: Optional[int] = Query(None, ge=0),
    review_cards_limit: Optional[int] = Query(None, ge=0),
    session: Session = Depends(get_session)
):
    """
    Get the user's ordered queue of due cards.

    Expired burials are released first. Each bucket (new, learning, review) is
    filtered and limited independently, then the queue is ordered by priority
    and due date.

    Args:
        user_id: User ID
        subjects: Optional subject filter
        subtopics: Optional subtopic filter
        years: Optional year filter
        new_cards_limit: Maximum new cards (default from configuration)
        learning_cards_limit: Maximum learning/relearning cards
        review_cards_limit: Maximum review cards

    Returns:
        Ordered cards with per-bucket counts
    """
    filters = DueCardFilters(
        subject_ids=parse_int_list(subjects, "subjects"),
        subtopic_ids=parse_int_list(subtopics, "subtopics"),
        years=parse_int_list(years, "years"),
    )
    defaults = default_limits()
    limits = DueCardLimits(
        new=defaults.new if new_cards_limit is None else new_cards_limit,
        learning=defaults.learning if learning_cards_limit is None else learning_cards_limit,
        review=defaults.review if review_cards_limit is None else review_cards_limit,
    )

    card_service.release_expired_burials(session, user_id=user_id)
    return list_due_cards(session, user_id, filters=filters, limits=limits)


@router.post("/answer", response_model=SubmitAnswerResponse)
async def answer_card(
    user_id: int,
    request: SubmitAnswerRequest,
    session: Session = Depends(get_session)
):
    """
    Submit an answer for a card and reschedule it.

    The card update, review log and question statistics are saved together or
    not at all. Resubmitting the same submission_id returns the stored result
    without applying the answer twice.
    """
    logger.info(
        f"Answer request: user_id={user_id}, card_id={request.card_id}, grade={request.grade}, "
        f"submission_id={request.submission_id}"
    )
    return submit_answer(
        session,
        user_id,
        request.card_id,
        request.grade,
        response_time_seconds=request.response_time_seconds,
        selected_option=request.selected_option,
        session_id=request.session_id,
        submission_id=request.submission_id,
    )


@router.post("/init", response_model=CardResponse)
async def init_card(
    user_id: int,
    request: InitCardRequest,
    session: Session = Depends(get_session)
):
    """Get or create the user's card for a question."""
    card = card_service.get_or_create_card(session, user_id, request.question_id)
    logger.info(f"Init card request: user_id={user_id}, question_id={request.question_id} -> card {card.id}")
    return card


@router.get("/stats", response_model=CardStatsResponse)
async def get_card_stats(
    user_id: int,
    subject_id: Optional[int] = None,
    subtopic_id: Optional[int] = None,
    session: Session = Depends(get_session)
):
    """Get per-type card statistics for the user, optionally for one subject or subtopic."""
    return card_service.get_card_stats(session, user_id, subject_id=subject_id, subtopic_id=subtopic_id)


@router.get("/leeches", response_model=List[CardResponse])
async def get_leeches(
    user_id: int,
    limit: int = Query(50, ge=1, le=500),
    session: Session = Depends(get_session)
):
    """Get the user's leech cards, most lapses first."""
    return card_service.get_leech_cards(session, user_id, limit=limit)


@router.get("/{card_id}/history", response_model=List[CardHistoryEntry])
async def get_card_history(
    card_id: int,
    user_id: int,
    limit: int = Query(20, ge=1, le=200),
    session: Session = Depends(get_session)
):
    """Get a card's review history, newest first."""
    return card_service.get_card_history(session, user_id, card_id, limit=limit)


@router.post("/{card_id}/suspend", response_model=CardResponse)
async def suspend_card(
    card_id: int,
    user_id: int,
    session: Session = Depends(get_session)
):
    return card_service.suspend_card(session, user_id, card_id)


@router.post("/{card_id}/unsuspend", response_model=CardResponse)
async def unsuspend_card(
    card_id: int,
    user_id: int,
    session: Session = Depends(get_session)
):
    return card_service.unsuspend_card(session, user_id, card_id)


@router.post("/{card_id}/bury", response_model=CardResponse)
async def bury_card(
    card_id: int,
    user_id: int,
    session: Session = Depends(get_session)
):
    """Hide a card until the next local midnight."""
    return card_service.bury_card(session, user_id, card_id)


@router.post("/{card_id}/reset", response_model=CardResponse)
async def reset_card(
    card_id: int,
    user_id: int,
    session: Session = Depends(get_session)
):
    """Reset a card to a new card, clearing leech, suspend and bury flags."""
    return card_service.reset_card(session, user_id, card_id)


@router.post("/unbury", response_model=UnburyResponse, status_code=status.HTTP_200_OK)
async def unbury_cards(
    user_id: int,
    subject_id: Optional[int] = None,
    session: Session = Depends(get_session)
):
    """
    Release the user's buried cards.

    Args:
        user_id: User ID
        subject_id: Only release cards of this subject
    """
    count = card_service.unbury_cards(session, user_id, subject_id=subject_id)
    return UnburyResponse(
        message=f"Unburied {count} card(s)",
        unburied_count=count
    )
