"""
Card model.
"""
from sqlmodel import SQLModel, Field, Relationship
from sqlalchemy import DateTime, UniqueConstraint
from typing import Optional, List, TYPE_CHECKING
from datetime import datetime

from cardscheduler.utils.time_utils import utcnow

if TYPE_CHECKING:
    from cardscheduler.models.question import Question
    from cardscheduler.models.review_log import ReviewLog


class Card(SQLModel, table=True):
    """Card table - tracks one user's scheduling state for one question."""
    __tablename__ = "card"
    __table_args__ = (
        UniqueConstraint("user_id", "question_id", name="uq_card_user_question"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(index=True)
    question_id: int = Field(foreign_key="question.id", index=True)

    # Scheduling state
    card_type: str = Field(default="new", index=True)  # 'new', 'learning', 'review' or 'relearning'
    ease_factor: float = Field(default=2.50)
    interval_days: int = Field(default=0)
    repetitions: int = Field(default=0)
    lapses: int = Field(default=0)
    learning_step: int = Field(default=0)
    due_date: datetime = Field(default_factory=utcnow, sa_type=DateTime, index=True)

    # Exclusion flags
    is_suspended: bool = Field(default=False)
    is_buried: bool = Field(default=False)
    buried_until: Optional[datetime] = Field(default=None, sa_type=DateTime)
    is_leech: bool = Field(default=False)

    # Aggregate counters
    total_reviews: int = Field(default=0)
    times_correct: int = Field(default=0)
    consecutive_correct: int = Field(default=0)
    total_time_seconds: float = Field(default=0.0)
    average_time_seconds: float = Field(default=0.0)
    first_review: Optional[datetime] = Field(default=None, sa_type=DateTime)
    last_review: Optional[datetime] = Field(default=None, sa_type=DateTime)

    # Bumped on every conditional update so concurrent answers serialize
    version: int = Field(default=0)

    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)

    # Relationships
    question: "Question" = Relationship(back_populates="cards")
    review_logs: List["ReviewLog"] = Relationship(back_populates="card")
