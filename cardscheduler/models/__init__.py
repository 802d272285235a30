"""
Models package - imports all models so they register with SQLModel.
"""
# Import enums first
from cardscheduler.models.enums import (
    CardType,
    Grade,
    LeechAction,
    QuestionStatus,
    AnswerOption,
)

# Import all models
from cardscheduler.models.question import Question
from cardscheduler.models.card import Card
from cardscheduler.models.scheduler_settings import SchedulerSettings
from cardscheduler.models.review_log import ReviewLog

__all__ = [
    'CardType',
    'Grade',
    'LeechAction',
    'QuestionStatus',
    'AnswerOption',
    'Question',
    'Card',
    'SchedulerSettings',
    'ReviewLog',
]
