"""
Answer submission schemas.
"""
from pydantic import BaseModel, Field
from typing import Optional

from cardscheduler.schemas.card import CardState


class SubmitAnswerRequest(BaseModel):
    """Request to submit an answer for a card."""
    card_id: int = Field(..., description="Card ID being answered")
    grade: str = Field(..., description="Self-reported recall: 'again', 'hard', 'good' or 'easy'")
    response_time_seconds: Optional[float] = Field(None, ge=0, le=3600, description="Time taken to answer")
    selected_option: Optional[str] = Field(None, description="Option chosen: 'a', 'b', 'c' or 'd'")
    session_id: Optional[str] = Field(None, description="Study session the answer belongs to")
    submission_id: Optional[str] = Field(
        None, max_length=64, description="Client-generated key; resubmitting it replays the stored result"
    )

    class Config:
        json_schema_extra = {
            "example": {
                "card_id": 42,
                "grade": "good",
                "response_time_seconds": 12.5,
                "selected_option": "b",
                "session_id": "0d6b1c7e-5c55-4a0e-9d5f-6c3b7f0a2f11",
                "submission_id": "2f4e1a9c-answer-1"
            }
        }


class SubmitAnswerResponse(BaseModel):
    """Result of an answer submission."""
    card_id: int
    is_correct: bool
    card_state: CardState
    next_review: str = Field(..., description="'<N> minutes' for learning cards, '<N> days' for review cards")
    replayed: bool = Field(False, description="True if this submission_id was already applied")
