"""
Scheduler settings endpoints.
"""
from fastapi import APIRouter, Depends
from sqlmodel import Session
import logging

from cardscheduler.core.database import get_session
from cardscheduler.schemas.settings import (
    SchedulerSettingsResponse,
    UpdateSchedulerSettingsRequest,
)
from cardscheduler.services.scheduler_config import get_or_create_settings, update_settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/settings", tags=["settings"])


@router.get("", response_model=SchedulerSettingsResponse)
async def get_settings(
    user_id: int,
    session: Session = Depends(get_session)
):
    """Get the user's scheduler settings, creating the defaults on first access."""
    config = get_or_create_settings(session, user_id)
    return SchedulerSettingsResponse(user_id=user_id, settings=config)


@router.put("", response_model=SchedulerSettingsResponse)
async def put_settings(
    user_id: int,
    request: UpdateSchedulerSettingsRequest,
    session: Session = Depends(get_session)
):
    """
    Update the user's scheduler settings.

    Only the fields present in the request change. The merged settings are
    validated as a whole, so out-of-range values are rejected with 400.
    """
    changes = request.model_dump(exclude_unset=True)
    logger.info(f"Update settings request: user_id={user_id}, fields={sorted(changes)}")
    config = update_settings(session, user_id, changes)
    return SchedulerSettingsResponse(user_id=user_id, settings=config)
