"""Progress API

XP, level, streak and rewards; daily check-in; activity feed.
"""
from datetime import date, datetime

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from core.security import get_current_user_id
from core.errors import raise_result
from engines.learning import LearningEngine
from api.deps import get_learning_engine
from api.schemas import ProgressResponse

router = APIRouter()


class CheckInResponse(BaseModel):
    progress: ProgressResponse
    xp_earned: int
    reward_earned: int
    granted: bool = True


class CheckInStatusResponse(BaseModel):
    checked_in_today: bool
    day: date
    last_check_in_date: date | None


class MilestoneResponse(BaseModel):
    days: int
    reward: int
    days_remaining: int


class ActivityResponse(BaseModel):
    activity_type: str
    description: str
    target_id: str | None
    details: dict | None
    created_at: datetime

    class Config:
        from_attributes = True


@router.get("", response_model=ProgressResponse)
async def get_progress(
    user_id: str = Depends(get_current_user_id),
    engine: LearningEngine = Depends(get_learning_engine),
):
    result = await engine.get_progress(user_id)
    raise_result(result)
    return ProgressResponse.from_state(result.unwrap())


@router.post("/check-in", response_model=CheckInResponse)
async def daily_check_in(
    user_id: str = Depends(get_current_user_id),
    engine: LearningEngine = Depends(get_learning_engine),
):
    result = await engine.daily_check_in(user_id)
    raise_result(result)
    outcome = result.unwrap()
    return CheckInResponse(
        progress=ProgressResponse.from_state(outcome.state),
        xp_earned=outcome.xp_earned,
        reward_earned=outcome.reward_earned,
    )


@router.get("/check-in/status", response_model=CheckInStatusResponse)
async def check_in_status(
    user_id: str = Depends(get_current_user_id),
    engine: LearningEngine = Depends(get_learning_engine),
):
    result = await engine.check_in_status(user_id)
    raise_result(result)
    status = result.unwrap()
    return CheckInStatusResponse(
        checked_in_today=status.checked_in_today,
        day=status.day,
        last_check_in_date=status.last_check_in_date,
    )


@router.get("/milestones", response_model=list[MilestoneResponse])
async def upcoming_milestones(
    user_id: str = Depends(get_current_user_id),
    engine: LearningEngine = Depends(get_learning_engine),
):
    result = await engine.milestones(user_id)
    raise_result(result)
    return result.unwrap()


@router.get("/activity", response_model=list[ActivityResponse])
async def recent_activity(
    limit: int = Query(10, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user_id: str = Depends(get_current_user_id),
    engine: LearningEngine = Depends(get_learning_engine),
):
    result = await engine.recent_activity(user_id, limit=limit, offset=offset)
    raise_result(result)
    return result.unwrap()
