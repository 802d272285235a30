"""
Model enums.
"""
from enum import Enum


class CardType(str, Enum):
    """Scheduling state of a card."""
    NEW = "new"
    LEARNING = "learning"
    REVIEW = "review"
    RELEARNING = "relearning"


class Grade(str, Enum):
    """Self-reported recall quality for an answer."""
    AGAIN = "again"
    HARD = "hard"
    GOOD = "good"
    EASY = "easy"


class LeechAction(str, Enum):
    """What happens to a card once it lapses past the leech threshold."""
    SUSPEND = "suspend"
    TAG = "tag"
    BURY = "bury"


class QuestionStatus(str, Enum):
    """Publication status of a question."""
    ACTIVE = "active"
    INACTIVE = "inactive"
    DRAFT = "draft"


class AnswerOption(str, Enum):
    """Multiple choice option labels."""
    A = "a"
    B = "b"
    C = "c"
    D = "d"
