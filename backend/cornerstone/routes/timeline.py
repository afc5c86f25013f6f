"""
Timeline route for the Cornerstone API.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from cornerstone.database import get_session
from cornerstone.schemas import TimelineResponse
from cornerstone.services.timeline import get_timeline

router = APIRouter()


@router.get("/", response_model=TimelineResponse)
async def read_timeline(session: AsyncSession = Depends(get_session)):
    """Dated work items, dependencies, milestones and the critical path in one call."""
    return await get_timeline(session)
