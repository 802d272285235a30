"""
Scheduler settings schemas.
"""
from pydantic import BaseModel, Field, field_validator
from typing import Optional, List, Tuple

from cardscheduler.models.enums import LeechAction


def _check_learning_steps(steps):
    for step in steps:
        if step < 1 or step > 1440:
            raise ValueError(f"learning steps must be between 1 and 1440 minutes. Got: {step}")
    return steps


class SchedulerConfig(BaseModel):
    """Immutable snapshot of one user's scheduler settings.

    Defaults are the documented out-of-the-box tunables; bounds match the
    settings validator clients are held to.
    """
    learning_steps: Tuple[int, ...] = Field((1, 10), min_length=1, max_length=10, description="Learning steps in minutes")
    graduating_interval: int = Field(1, ge=1, le=30, description="Days until review after the last learning step")
    easy_interval: int = Field(4, ge=2, le=30, description="Days until review after answering easy while learning")
    starting_ease: float = Field(2.50, ge=1.30, le=2.50)
    easy_bonus: float = Field(1.30, ge=1.10, le=2.00)
    interval_modifier: float = Field(1.00, ge=0.50, le=2.00)
    maximum_interval: int = Field(36500, ge=30, le=36500)
    hard_interval_multiplier: float = Field(1.20, ge=1.00, le=2.00)
    new_interval_percentage: float = Field(0.00, ge=0.00, le=1.00)
    minimum_interval: int = Field(1, ge=1, le=30)
    leech_threshold: int = Field(8, ge=3, le=20)
    leech_action: LeechAction = LeechAction.SUSPEND
    new_cards_per_day: int = Field(20, ge=1, le=500)
    maximum_reviews_per_day: int = Field(200, ge=10, le=1000)
    show_new_cards_first: bool = True

    @field_validator('learning_steps')
    @classmethod
    def validate_learning_steps(cls, v):
        """Validate every learning step is a sane number of minutes."""
        return _check_learning_steps(v)

    class Config:
        frozen = True
        from_attributes = True


class SchedulerSettingsResponse(BaseModel):
    """Response schema for a user's scheduler settings."""
    user_id: int
    settings: SchedulerConfig


class UpdateSchedulerSettingsRequest(BaseModel):
    """Partial update of scheduler settings; omitted fields keep their value."""
    learning_steps: Optional[List[int]] = Field(None, min_length=1, max_length=10)
    graduating_interval: Optional[int] = None
    easy_interval: Optional[int] = None
    starting_ease: Optional[float] = None
    easy_bonus: Optional[float] = None
    interval_modifier: Optional[float] = None
    maximum_interval: Optional[int] = None
    hard_interval_multiplier: Optional[float] = None
    new_interval_percentage: Optional[float] = None
    minimum_interval: Optional[int] = None
    leech_threshold: Optional[int] = None
    leech_action: Optional[LeechAction] = None
    new_cards_per_day: Optional[int] = None
    maximum_reviews_per_day: Optional[int] = None
    show_new_cards_first: Optional[bool] = None

    class Config:
        json_schema_extra = {
            "example": {
                "learning_steps": [1, 10, 60],
                "leech_threshold": 6,
                "leech_action": "tag",
                "show_new_cards_first": False
            }
        }
