"""
Card schemas.
"""
from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime

from cardscheduler.models.enums import CardType


class CardState(BaseModel):
    """Scheduling state of a card, as consumed and produced by the state machine."""
    card_type: CardType
    ease_factor: float
    interval_days: int
    repetitions: int
    lapses: int
    learning_step: int
    due_date: datetime
    is_suspended: bool = False
    is_buried: bool = False
    buried_until: Optional[datetime] = None
    is_leech: bool = False

    class Config:
        frozen = True
        from_attributes = True

    @classmethod
    def from_card(cls, card) -> "CardState":
        """Snapshot the scheduling fields of a Card row."""
        return cls(
            card_type=CardType(card.card_type),
            ease_factor=float(card.ease_factor),
            interval_days=card.interval_days,
            repetitions=card.repetitions,
            lapses=card.lapses,
            learning_step=card.learning_step,
            due_date=card.due_date,
            is_suspended=card.is_suspended,
            is_buried=card.is_buried,
            buried_until=card.buried_until,
            is_leech=card.is_leech,
        )


class CardResponse(BaseModel):
    """Card response schema."""
    id: int
    user_id: int
    question_id: int
    card_type: str
    ease_factor: float
    interval_days: int
    repetitions: int
    lapses: int
    learning_step: int
    due_date: datetime
    is_suspended: bool
    is_buried: bool
    buried_until: Optional[datetime] = None
    is_leech: bool
    total_reviews: int
    times_correct: int
    consecutive_correct: int
    average_time_seconds: float
    first_review: Optional[datetime] = None
    last_review: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class CardListItem(CardResponse):
    """A card joined with the question it schedules."""
    subject_id: int
    subtopic_id: int
    question_text: str
    year: Optional[int] = None
    difficulty: Optional[str] = None


class OverdueCard(CardListItem):
    """A review card whose due day has passed."""
    days_overdue: int = Field(..., description="Local calendar days since the card was due")


class InitCardRequest(BaseModel):
    """Request to create (or fetch) the card for a question."""
    question_id: int = Field(..., description="Question ID to create a card for")


class DueCard(BaseModel):
    """A due card joined with the question it schedules."""
    card_id: int
    card_type: str
    ease_factor: float
    interval_days: int
    repetitions: int
    lapses: int
    learning_step: int
    due_date: datetime
    total_reviews: int
    times_correct: int
    priority: int = Field(..., description="1 = most urgent, 3 = least urgent")
    question_id: int
    subject_id: int
    subtopic_id: int
    question_text: str
    option_a: str
    option_b: str
    option_c: str
    option_d: str
    correct_option: str
    explanation: Optional[str] = None
    year: Optional[int] = None
    difficulty: Optional[str] = None


class DueCardCounts(BaseModel):
    """Per-bucket counts of a due card queue."""
    new: int
    learning: int
    review: int
    total: int


class DueCardsResponse(BaseModel):
    """Ordered due card queue with bucket counts."""
    cards: List[DueCard]
    counts: DueCardCounts


class DueCardFilters(BaseModel):
    """Optional question filters applied to every bucket before limiting."""
    subject_ids: Optional[List[int]] = None
    subtopic_ids: Optional[List[int]] = None
    years: Optional[List[int]] = None


class DueCardLimits(BaseModel):
    """Maximum number of cards taken from each bucket."""
    new: int = Field(20, ge=0)
    learning: int = Field(100, ge=0)
    review: int = Field(100, ge=0)


class CardHistoryEntry(BaseModel):
    """One review log entry for a card."""
    id: int
    session_id: Optional[str] = None
    review_grade: str
    selected_option: Optional[str] = None
    is_correct: bool
    response_time_seconds: Optional[float] = None
    card_type_before: str
    interval_before: int
    ease_factor_before: float
    card_type_after: str
    interval_after: int
    ease_factor_after: float
    was_first_review: bool
    was_leech: bool
    reviewed_at: datetime

    class Config:
        from_attributes = True


class CardTypeStat(BaseModel):
    """Aggregates for the cards of a single type."""
    card_type: str
    count: int
    avg_ease_factor: float
    avg_interval: float
    avg_reviews: float
    leech_count: int
    suspended_count: int


class CardStatsTotals(BaseModel):
    """Totals across all card types."""
    total_cards: int
    total_leeches: int
    total_suspended: int


class CardStatsResponse(BaseModel):
    """Card statistics per type plus totals."""
    card_stats: List[CardTypeStat]
    totals: CardStatsTotals


class UnburyResponse(BaseModel):
    """Response from releasing buried cards."""
    message: str
    unburied_count: int
