"""
Recommendation endpoints. Engine settings and the market skill cache live on
``app.state`` (created at startup); they are built lazily when missing so the
router also works on an app without the lifespan hook.
"""
from fastapi import APIRouter, Query, Request

from career_match.models.engine_settings import EngineSettings
from career_match.models.response import DashboardRecommendations, JobRecommendations, LearningRecommendations
from career_match.services import recommendations as engine
from career_match.utils.exceptions import CareerMatchBaseException, map_to_http_exception
from career_match.utils.logging_config import get_logger
from career_match.utils.ttl_cache import TTLCache
from career_match.utils.utils import load_engine_settings

router = APIRouter(prefix="/recommendations", tags=["recommendations"])
logger = get_logger(__name__)


def _settings(request: Request) -> EngineSettings:
    state = request.app.state
    if getattr(state, "settings", None) is None:
        state.settings = load_engine_settings()
    return state.settings


def _cache(request: Request) -> TTLCache:
    state = request.app.state
    if getattr(state, "market_cache", None) is None:
        settings = _settings(request)
        state.market_cache = TTLCache(settings.cache.max_entries, settings.cache.market_ttl_seconds)
    return state.market_cache


@router.delete("/cache")
async def invalidate_market_cache(request: Request):
    """Drop cached market skill aggregates so the next request recomputes them"""
    dropped = _cache(request).clear()
    logger.info(f"Market cache invalidated ({dropped} entries dropped)")
    return {"message": "Market cache cleared", "entries_dropped": dropped}


@router.get("/{user_id}/jobs", response_model=JobRecommendations)
async def job_recommendations(
    request: Request,
    user_id: str,
    limit: int = Query(10, ge=1, le=50, description="Maximum number of jobs returned"),
    best_effort: bool = Query(False, description="Return an empty list instead of 404 for unknown users"),
):
    try:
        return await engine.get_job_recommendations(
            user_id, limit=limit, settings=_settings(request), best_effort=best_effort
        )
    except CareerMatchBaseException as e:
        raise map_to_http_exception(e)


@router.get("/{user_id}/learning", response_model=LearningRecommendations)
async def learning_recommendations(
    request: Request,
    user_id: str,
    limit: int = Query(10, ge=1, le=50, description="Maximum number of resources returned"),
    best_effort: bool = Query(False, description="Return an empty list instead of 404 for unknown users"),
):
    try:
        return await engine.get_learning_recommendations(
            user_id, limit=limit, settings=_settings(request), cache=_cache(request), best_effort=best_effort
        )
    except CareerMatchBaseException as e:
        raise map_to_http_exception(e)


@router.get("/{user_id}/jobs/{job_id}/learning", response_model=LearningRecommendations)
async def job_specific_learning_recommendations(
    request: Request,
    user_id: str,
    job_id: str,
    limit: int = Query(10, ge=1, le=50, description="Maximum number of resources returned"),
    best_effort: bool = Query(False, description="Return an empty list instead of 404 for unknown users"),
):
    """Learning resources that close the gap between a profile and one job"""
    try:
        return await engine.get_job_specific_learning_recommendations(
            user_id, job_id, limit=limit, settings=_settings(request), best_effort=best_effort
        )
    except CareerMatchBaseException as e:
        raise map_to_http_exception(e)


@router.get("/{user_id}/dashboard", response_model=DashboardRecommendations)
async def dashboard_recommendations(
    request: Request,
    user_id: str,
    job_limit: int = Query(5, ge=1, le=20),
    learning_limit: int = Query(5, ge=1, le=20),
):
    try:
        return await engine.get_dashboard_recommendations(
            user_id, job_limit=job_limit, learning_limit=learning_limit,
            settings=_settings(request), cache=_cache(request),
        )
    except CareerMatchBaseException as e:
        raise map_to_http_exception(e)
