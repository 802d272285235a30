"""
Scheduler configuration service.

Supplies an immutable settings snapshot per user, creating the documented
defaults the first time a user is seen.
"""
import logging
from typing import Dict, Any
from pydantic import ValidationError as PydanticValidationError
from sqlmodel import Session
from sqlalchemy.exc import IntegrityError

from cardscheduler.core.exceptions import ConfigError, ValidationError
from cardscheduler.models.scheduler_settings import SchedulerSettings
from cardscheduler.schemas.settings import SchedulerConfig
from cardscheduler.utils.time_utils import utcnow

logger = logging.getLogger(__name__)


def default_scheduler_config() -> SchedulerConfig:
    """Return a fresh snapshot of the default scheduler settings."""
    return SchedulerConfig()


def _row_to_config(row: SchedulerSettings) -> SchedulerConfig:
    """
    Validate a stored settings row into a snapshot.

    Raises:
        ConfigError: If the stored values are out of bounds or malformed
    """
    values = {name: getattr(row, name) for name in SchedulerConfig.model_fields}
    try:
        return SchedulerConfig.model_validate(values)
    except PydanticValidationError as e:
        raise ConfigError(
            f"Malformed scheduler settings for user {row.user_id}: "
            f"{e.error_count()} invalid field(s)"
        ) from e


def config_from_row(row: SchedulerSettings) -> SchedulerConfig:
    """Snapshot a stored settings row, falling back to defaults if it is malformed."""
    try:
        return _row_to_config(row)
    except ConfigError as e:
        logger.warning(f"{e}; using default scheduler settings")
        return default_scheduler_config()


def get_or_create_settings(session: Session, user_id: int) -> SchedulerConfig:
    """
    Get a user's scheduler settings, persisting the defaults on first use.

    Defaults are written exactly once: if a concurrent request inserts the row
    first, the primary key rejects ours and the stored row is read back.

    Args:
        session: Database session
        user_id: User ID

    Returns:
        Immutable settings snapshot
    """
    row = session.get(SchedulerSettings, user_id)
    if row is not None:
        return config_from_row(row)

    defaults = default_scheduler_config()
    row = SchedulerSettings(user_id=user_id, **defaults.model_dump(mode="json"))
    session.add(row)
    try:
        session.commit()
        logger.info(f"Created default scheduler settings for user {user_id}")
    except IntegrityError:
        session.rollback()
        logger.info(f"Scheduler settings for user {user_id} were created concurrently, reloading")
        row = session.get(SchedulerSettings, user_id)
        if row is None:
            raise
        return config_from_row(row)

    return defaults


def update_settings(session: Session, user_id: int, updates: Dict[str, Any]) -> SchedulerConfig:
    """
    Apply a partial update to a user's scheduler settings.

    Args:
        session: Database session
        user_id: User ID
        updates: Field values to change; omitted fields keep their current value

    Returns:
        The updated settings snapshot

    Raises:
        ValidationError: If the merged settings are out of bounds
    """
    current = get_or_create_settings(session, user_id)
    merged = current.model_dump()
    merged.update({key: value for key, value in updates.items() if value is not None})

    try:
        updated = SchedulerConfig.model_validate(merged)
    except PydanticValidationError as e:
        details = "; ".join(
            f"{'.'.join(str(part) for part in error['loc']) or 'settings'}: {error['msg']}"
            for error in e.errors()
        )
        raise ValidationError(f"Invalid scheduler settings: {details}") from e

    row = session.get(SchedulerSettings, user_id)
    for name, value in updated.model_dump(mode="json").items():
        setattr(row, name, value)
    row.updated_at = utcnow()
    session.add(row)
    session.commit()

    logger.info(f"Updated scheduler settings for user {user_id}: {sorted(updates)}")
    return updated
