"""
Leech detection for cards that keep lapsing.

Runs after the state machine on every answer. The check is evaluated per lapse
against the running lapse counter, so every lapse at or beyond the threshold
re-applies the configured action (which is idempotent).
"""
import logging
from datetime import datetime
from typing import Optional

from cardscheduler.models.enums import LeechAction
from cardscheduler.schemas.card import CardState
from cardscheduler.schemas.settings import SchedulerConfig
from cardscheduler.utils.time_utils import utcnow, start_of_next_day

logger = logging.getLogger(__name__)


def is_leech_lapse(previous: CardState, updated: CardState, config: SchedulerConfig) -> bool:
    """True if the transition added a lapse that reaches the leech threshold."""
    return updated.lapses > previous.lapses and updated.lapses >= config.leech_threshold


def apply_leech_action(state: CardState, action: LeechAction, now: datetime) -> CardState:
    """
    Mark a card as a leech and apply the configured action.

    Args:
        state: Card state after the lapse
        action: 'suspend' excludes the card until unsuspended, 'tag' only marks it,
                'bury' hides it until the next local midnight
        now: Reference time as naive UTC

    Returns:
        New card state
    """
    update = {"is_leech": True}
    if action == LeechAction.SUSPEND:
        update["is_suspended"] = True
    elif action == LeechAction.BURY:
        update["is_buried"] = True
        update["buried_until"] = start_of_next_day(now)
    return state.model_copy(update=update)


def check_leech(
    previous: CardState,
    updated: CardState,
    config: SchedulerConfig,
    now: Optional[datetime] = None
) -> CardState:
    """
    Flag a card as a leech when a lapse pushes it over the threshold.

    Never raises: if the action cannot be applied the failure is logged and the
    unflagged state is returned so the answer still goes through.

    Args:
        previous: Card state before the answer
        updated: Card state produced by the state machine
        config: The user's scheduler settings
        now: Reference time as naive UTC (defaults to the current time)

    Returns:
        The updated state, flagged if it became a leech
    """
    try:
        if not is_leech_lapse(previous, updated, config):
            return updated
        action = LeechAction(config.leech_action)
        logger.info(
            f"Card reached {updated.lapses} lapses (threshold {config.leech_threshold}), "
            f"applying leech action '{action.value}'"
        )
        return apply_leech_action(updated, action, now or utcnow())
    except Exception:
        logger.exception("Failed to apply leech action, keeping the card unflagged")
        return updated
