"""
SchedulerSettings model.
"""
from sqlmodel import SQLModel, Field
from sqlalchemy import Column, DateTime, JSON
from typing import List
from datetime import datetime

from cardscheduler.utils.time_utils import utcnow


class SchedulerSettings(SQLModel, table=True):
    """SchedulerSettings table - per-user spaced repetition tunables."""
    __tablename__ = "scheduler_settings"

    user_id: int = Field(primary_key=True)
    learning_steps: List[int] = Field(default_factory=lambda: [1, 10], sa_column=Column(JSON, nullable=False))  # Minutes
    graduating_interval: int = Field(default=1)  # Days
    easy_interval: int = Field(default=4)  # Days
    starting_ease: float = Field(default=2.50)
    easy_bonus: float = Field(default=1.30)
    interval_modifier: float = Field(default=1.00)
    maximum_interval: int = Field(default=36500)  # Days
    hard_interval_multiplier: float = Field(default=1.20)
    new_interval_percentage: float = Field(default=0.00)
    minimum_interval: int = Field(default=1)  # Days
    leech_threshold: int = Field(default=8)
    leech_action: str = Field(default="suspend")  # 'suspend', 'tag' or 'bury'
    new_cards_per_day: int = Field(default=20)
    maximum_reviews_per_day: int = Field(default=200)
    show_new_cards_first: bool = Field(default=True)

    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)
