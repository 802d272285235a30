"""
Question model.
"""
from sqlmodel import SQLModel, Field, Relationship
from sqlalchemy import DateTime
from typing import Optional, List, TYPE_CHECKING
from datetime import datetime

from cardscheduler.utils.time_utils import utcnow

if TYPE_CHECKING:
    from cardscheduler.models.card import Card


class Question(SQLModel, table=True):
    """Question table - multiple choice questions cards are scheduled for."""
    __tablename__ = "question"

    id: Optional[int] = Field(default=None, primary_key=True)
    subject_id: int = Field(index=True)
    subtopic_id: int = Field(index=True)
    year: Optional[int] = Field(default=None, index=True)  # Exam year the question appeared in
    status: str = Field(default="active")  # 'active', 'inactive' or 'draft'
    question_text: str
    option_a: str
    option_b: str
    option_c: str
    option_d: str
    correct_option: str = Field(max_length=1)  # 'a', 'b', 'c' or 'd'
    explanation: Optional[str] = None
    difficulty: Optional[str] = None  # 'easy', 'medium' or 'hard'

    # Aggregate answer statistics across all users
    total_attempts: int = Field(default=0)
    correct_attempts: int = Field(default=0)
    accuracy_rate: float = Field(default=0.0)  # Percentage of correct attempts
    actual_average_time_seconds: Optional[float] = None

    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)

    # Relationships
    cards: List["Card"] = Relationship(back_populates="question")
