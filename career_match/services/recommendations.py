"""
Recommendation operations: load once, score every candidate independently,
then rank.

Scoring runs in the default executor so the event loop stays free; a
deadline stops feeding candidates to the scorer and the skipped ones are
reported in ``filtered``.
"""
import asyncio
import time
from functools import partial
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Type, TypeVar

from pydantic import BaseModel, ValidationError as PydanticValidationError

from career_match.models.engine_settings import EngineSettings
from career_match.models.models import JobPosting, LearningResource, Profile
from career_match.models.response import (
    DashboardRecommendations, FilteredCandidate, JobRecommendations, LearningRecommendations, ScoredCandidate
)
from career_match.services.learning_matching import score_resource
from career_match.services.market_skills import (
    MarketSkills, aggregate_market_skills, job_market_skills, market_cache_key
)
from career_match.services.matching import score_job
from career_match.services.profile_analyzer import ProfileAnalysis, analyze_profile
from career_match.services.ranking import rank_candidates
from career_match.services.repository import Repository, case_insensitive_exact
from career_match.utils.exceptions import ProcessingError, ProfileNotFoundError
from career_match.utils.logging_config import PerformanceMonitor, get_logger, log_function_call
from career_match.utils.ttl_cache import TTLCache

logger = get_logger(__name__)

M = TypeVar("M", bound=BaseModel)
S = TypeVar("S", bound=ScoredCandidate)

DEADLINE_REASON = "scoring deadline exceeded"
JOB_SPECIFIC_CATEGORIES = ["interview", "resume", "career"]


def coerce_candidates(docs: Sequence[Dict[str, Any]], model: Type[M], id_field: str) -> Tuple[List[M], List[FilteredCandidate]]:
    """Validate raw documents; invalid ones are recorded instead of scored."""
    valid: List[M] = []
    filtered: List[FilteredCandidate] = []
    for index, doc in enumerate(docs):
        candidate_id = str(doc.get(id_field) or f"#{index}")
        if not doc.get(id_field):
            filtered.append(FilteredCandidate(candidate_id=candidate_id, reason=f"missing {id_field}"))
            continue
        try:
            candidate = model(**doc)
        except PydanticValidationError as e:
            first = e.errors()[0]
            location = ".".join(str(part) for part in first.get("loc", ()))
            filtered.append(FilteredCandidate(candidate_id=candidate_id, reason=f"invalid {location}: {first.get('msg')}"))
            continue
        if not getattr(candidate, "is_active", True):
            filtered.append(FilteredCandidate(candidate_id=candidate_id, reason="inactive"))
            continue
        valid.append(candidate)
    if filtered:
        logger.warning(f"Filtered {len(filtered)} invalid {model.__name__} candidates: {[f.candidate_id for f in filtered]}")
    return valid, filtered


def _score_until(candidates: Sequence[Any], score: Callable[[Any], S], deadline: float) -> Tuple[List[S], List[Any]]:
    scored: List[S] = []
    for index, candidate in enumerate(candidates):
        if time.monotonic() > deadline:
            return scored, list(candidates[index:])
        scored.append(score(candidate))
    return scored, []


async def score_candidates(
    candidates: Sequence[Any], score: Callable[[Any], S], timeout_seconds: float
) -> Tuple[List[S], List[Any]]:
    """Score candidates off the event loop; returns (scored, skipped after the deadline)."""
    loop = asyncio.get_running_loop()
    deadline = time.monotonic() + timeout_seconds
    return await loop.run_in_executor(None, _score_until, candidates, score, deadline)


def apply_cutoff(scored: List[S], cutoff: float) -> Tuple[List[S], int]:
    kept = [s for s in scored if s.score >= cutoff]
    return kept, len(scored) - len(kept)


async def _load_profile(user_id: str, best_effort: bool) -> Optional[Profile]:
    try:
        return await Repository.get_profile(user_id)
    except ProfileNotFoundError:
        if best_effort:
            logger.info(f"Profile {user_id} not found; returning empty recommendations")
            return None
        raise


async def market_context(settings: EngineSettings, cache: Optional[TTLCache] = None) -> MarketSkills:
    """Aggregate market skills over a recent job sample, reusing a cached result when fresh."""
    sampling = settings.sampling

    async def compute() -> MarketSkills:
        docs = await Repository.query_active_jobs({}, sampling.market_sample)
        jobs, _ = coerce_candidates(docs, JobPosting, "job_id")
        market = aggregate_market_skills(jobs, sampling.critical_skills_top_n)
        logger.info(f"Aggregated {len(market.ranked)} market skills from {market.sample_size} jobs")
        return market

    if cache is None:
        return await compute()
    key = market_cache_key(sampling.market_sample, sampling.critical_skills_top_n)
    return await cache.get_or_compute(key, compute, ttl=settings.cache.market_ttl_seconds)


async def _job_recommendations_for(
    user_id: str, profile: Profile, analysis: ProfileAnalysis, limit: int, settings: EngineSettings
) -> JobRecommendations:
    docs = await Repository.query_active_jobs({}, settings.sampling.job_candidates)
    jobs, filtered = coerce_candidates(docs, JobPosting, "job_id")

    scorer = partial(score_job, profile, analysis, weights=settings.job_weights, locale=settings.locale)
    with PerformanceMonitor(f"Scoring {len(jobs)} jobs for {user_id}", logger):
        scored, skipped = await score_candidates(jobs, scorer, settings.scoring_timeout_seconds)
    filtered += [FilteredCandidate(candidate_id=j.job_id, reason=DEADLINE_REASON) for j in skipped]

    kept, below = apply_cutoff(scored, settings.cutoffs.job)
    if below:
        logger.info(f"Excluded {below} jobs below cutoff {settings.cutoffs.job} for {user_id}")
    return JobRecommendations(
        user_id=user_id,
        items=rank_candidates(kept, limit),
        filtered=filtered,
        below_cutoff=below,
    )


async def _learning_recommendations_for(
    user_id: str,
    profile: Profile,
    analysis: ProfileAnalysis,
    market: MarketSkills,
    docs: List[Dict[str, Any]],
    limit: int,
    settings: EngineSettings,
    job: Optional[JobPosting] = None,
) -> LearningRecommendations:
    resources, filtered = coerce_candidates(docs, LearningResource, "resource_id")
    scorer = partial(
        score_resource, profile, analysis,
        market=market, weights=settings.learning_weights, locale=settings.locale, job=job,
    )
    with PerformanceMonitor(f"Scoring {len(resources)} learning resources for {user_id}", logger):
        scored, skipped = await score_candidates(resources, scorer, settings.scoring_timeout_seconds)
    filtered += [FilteredCandidate(candidate_id=r.resource_id, reason=DEADLINE_REASON) for r in skipped]

    kept, below = apply_cutoff(scored, settings.cutoffs.learning)
    if below:
        logger.info(f"Excluded {below} learning resources below cutoff {settings.cutoffs.learning} for {user_id}")
    return LearningRecommendations(
        user_id=user_id,
        items=rank_candidates(kept, limit),
        filtered=filtered,
        below_cutoff=below,
        critical_skills=list(market.critical),
    )


async def _market_learning_for(
    user_id: str, profile: Profile, analysis: ProfileAnalysis, limit: int, settings: EngineSettings, cache: Optional[TTLCache]
) -> LearningRecommendations:
    market = await market_context(settings, cache)
    docs = await Repository.query_active_learning_resources({}, settings.sampling.learning_candidates)
    return await _learning_recommendations_for(user_id, profile, analysis, market, docs, limit, settings)


@log_function_call
async def get_job_recommendations(
    user_id: str,
    limit: int = 10,
    settings: Optional[EngineSettings] = None,
    best_effort: bool = False,
) -> JobRecommendations:
    settings = settings or EngineSettings()
    profile = await _load_profile(user_id, best_effort)
    if profile is None:
        return JobRecommendations(user_id=user_id)
    analysis = analyze_profile(profile, settings.locale)
    return await _job_recommendations_for(user_id, profile, analysis, limit, settings)


@log_function_call
async def get_learning_recommendations(
    user_id: str,
    limit: int = 10,
    settings: Optional[EngineSettings] = None,
    cache: Optional[TTLCache] = None,
    best_effort: bool = False,
) -> LearningRecommendations:
    settings = settings or EngineSettings()
    profile = await _load_profile(user_id, best_effort)
    if profile is None:
        return LearningRecommendations(user_id=user_id)
    analysis = analyze_profile(profile, settings.locale)
    return await _market_learning_for(user_id, profile, analysis, limit, settings, cache)


@log_function_call
async def get_job_specific_learning_recommendations(
    user_id: str,
    job_id: str,
    limit: int = 10,
    settings: Optional[EngineSettings] = None,
    best_effort: bool = False,
) -> LearningRecommendations:
    """Learning recommendations with the market context narrowed to one job's skills."""
    settings = settings or EngineSettings()
    profile = await _load_profile(user_id, best_effort)
    if profile is None:
        return LearningRecommendations(user_id=user_id)

    doc = await Repository.get_job(job_id)
    try:
        job = JobPosting(**doc)
    except PydanticValidationError as e:
        raise ProcessingError(f"Job {job_id} is invalid", document_id=job_id, document_type="job", cause=e)

    analysis = analyze_profile(profile, settings.locale)
    market = job_market_skills(job)
    query: Dict[str, Any] = {}
    if job.all_skills:
        query = {"$or": [
            {"skills": {"$in": [case_insensitive_exact(s) for s in job.all_skills]}},
            {"category": {"$in": JOB_SPECIFIC_CATEGORIES}},
        ]}
    docs = await Repository.query_active_learning_resources(query, settings.sampling.learning_candidates)
    return await _learning_recommendations_for(user_id, profile, analysis, market, docs, limit, settings, job=job)


@log_function_call
async def get_dashboard_recommendations(
    user_id: str,
    job_limit: int = 5,
    learning_limit: int = 5,
    settings: Optional[EngineSettings] = None,
    cache: Optional[TTLCache] = None,
) -> DashboardRecommendations:
    """Best-effort bundle for dashboard widgets: a missing profile yields empty lists."""
    settings = settings or EngineSettings()
    profile = await _load_profile(user_id, best_effort=True)
    if profile is None:
        return DashboardRecommendations(user_id=user_id, profile_found=False)

    analysis = analyze_profile(profile, settings.locale)
    jobs = await _job_recommendations_for(user_id, profile, analysis, job_limit, settings)
    learning = await _market_learning_for(user_id, profile, analysis, learning_limit, settings, cache)
    return DashboardRecommendations(user_id=user_id, jobs=jobs.items, learning=learning.items)
