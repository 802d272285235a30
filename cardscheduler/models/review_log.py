"""
ReviewLog model.
"""
from sqlmodel import SQLModel, Field, Relationship
from sqlalchemy import DateTime, UniqueConstraint
from typing import Optional, TYPE_CHECKING
from datetime import datetime

from cardscheduler.utils.time_utils import utcnow

if TYPE_CHECKING:
    from cardscheduler.models.card import Card


class ReviewLog(SQLModel, table=True):
    """ReviewLog table - append-only record of every submitted answer."""
    __tablename__ = "review_log"
    __table_args__ = (
        UniqueConstraint("user_id", "submission_id", name="uq_review_log_user_submission"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(index=True)
    card_id: int = Field(foreign_key="card.id", index=True)
    session_id: Optional[str] = Field(default=None, index=True)  # Study session the answer belongs to
    submission_id: Optional[str] = Field(default=None, max_length=64)  # Client key for idempotent replays

    review_grade: str  # 'again', 'hard', 'good' or 'easy'
    selected_option: Optional[str] = None
    is_correct: bool
    response_time_seconds: Optional[float] = None

    # Snapshot before the answer
    card_type_before: str
    interval_before: int
    ease_factor_before: float
    repetitions_before: int
    lapses_before: int
    due_date_before: datetime = Field(sa_type=DateTime)

    # Snapshot after the answer, enough to rebuild the returned card state
    card_type_after: str
    interval_after: int
    ease_factor_after: float
    repetitions_after: int
    lapses_after: int
    learning_step_after: int = Field(default=0)
    due_date_after: datetime = Field(sa_type=DateTime)
    is_suspended_after: bool = Field(default=False)
    is_buried_after: bool = Field(default=False)
    buried_until_after: Optional[datetime] = Field(default=None, sa_type=DateTime)
    next_review: Optional[str] = Field(default=None, max_length=32)  # Description returned with the answer

    was_first_review: bool = Field(default=False)
    was_leech: bool = Field(default=False)
    reviewed_at: datetime = Field(default_factory=utcnow, sa_type=DateTime, index=True)

    # Relationships
    card: "Card" = Relationship(back_populates="review_logs")
