"""
API v1 router aggregation.
"""
from fastapi import APIRouter
from cardscheduler.api.v1.endpoints import cards, settings

api_router = APIRouter()

# Each router already defines its own prefix
api_router.include_router(cards.router)
api_router.include_router(settings.router)
