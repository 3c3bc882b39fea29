from typing import Dict, List, Optional

from career_match.models.engine_settings import LearningScoringWeights, LocaleSettings
from career_match.models.models import JobPosting, LearningResource, Profile
from career_match.models.response import LearningMatch
from career_match.services.market_skills import MarketSkills
from career_match.services.matching import NEUTRAL, Factor, combine_weighted
from career_match.services.profile_analyzer import ProfileAnalysis
from career_match.services.skill_vocabulary import dedupe_skills, has_matching_skill, skills_match

CRITICAL_SKILL_WEIGHT = 1.5

# skill level ranges (inclusive) that fit each difficulty; full credit inside, fallback otherwise
DIFFICULTY_FIT = {
    "beginner": ((1.0, 2.0), 0.7),
    "intermediate": ((1.0, 3.0), 0.6),
    "advanced": ((3.0, 4.0), 0.4),
    "expert": ((3.5, 4.0), 0.3),
}

ALWAYS_RELEVANT = ("career", "interview", "resume", "networking")

LANGUAGE_CODES = {"en": "english", "fr": "french", "rw": "kinyarwanda", "sw": "swahili"}

REASON_TIERS = (
    (0.7, "Highly relevant to your career development"),
    (0.5, "Good learning opportunity for skill development"),
    (0.0, "Worth exploring for professional growth"),
)


def normalize_category(category: Optional[str]) -> str:
    return (category or "").strip().lower().replace("-", "_").replace(" ", "_")


def gap_pool(profile: Profile, market: MarketSkills, resource_skills: List[str]) -> List[str]:
    """Skills the profile is missing. Without market data, any skill the profile lacks counts."""
    if market.is_empty:
        return [s for s in resource_skills if not has_matching_skill(s, profile.skills)]
    return market.missing_for(profile.skills)


def gap_coverage(resource_skills: List[str], gap: List[str], market: MarketSkills) -> Optional[float]:
    if not resource_skills:
        return NEUTRAL
    credit = 0.0
    for skill in resource_skills:
        if has_matching_skill(skill, gap):
            critical = any(skills_match(skill, c) for c in market.critical)
            credit += CRITICAL_SKILL_WEIGHT if critical else 1.0
    return min(credit / len(resource_skills), 1.0)


def difficulty_score(difficulty: Optional[str], skill_level: float) -> float:
    fit = DIFFICULTY_FIT.get(difficulty or "")
    if fit is None:
        return NEUTRAL
    (low, high), fallback = fit
    return 1.0 if low <= skill_level <= high else fallback


def category_score(category: Optional[str], analysis: ProfileAnalysis) -> float:
    name = normalize_category(category)
    if name in ALWAYS_RELEVANT:
        return 0.8
    if name == "technical":
        return 0.8 if analysis.has_technical_education else 0.6
    if name == "soft_skills":
        return 0.7
    return NEUTRAL


def resource_language(resource: LearningResource) -> str:
    code = (resource.language or "").strip().lower()
    return LANGUAGE_CODES.get(code, code)


def learning_locale_bonus(
    resource: LearningResource, resource_skills: List[str], analysis: ProfileAnalysis, locale: LocaleSettings
) -> float:
    bonus = 0.0
    for skill in resource_skills:
        if any(skills_match(skill, p) for p in locale.priority_skills):
            bonus += 0.2
    if resource_language(resource) in analysis.language_skills:
        bonus += 0.2
    if normalize_category(resource.category) in ("soft_skills", "career"):
        bonus += 0.1
    return min(bonus, 1.0)


def learning_reasons(
    score: float,
    resource: LearningResource,
    sub_scores: Dict[str, float],
    taught_gap: List[str],
    market: MarketSkills,
    analysis: ProfileAnalysis,
    job: Optional[JobPosting],
) -> List[str]:
    reasons = []
    if taught_gap:
        critical = [s for s in taught_gap if market.is_critical(s)]
        if job is not None and critical:
            reasons.append(f"Teaches job-required skills: {', '.join(critical[:3])}")
        elif critical:
            reasons.append(f"Will teach you in-demand skills: {', '.join(critical[:3])}")
        else:
            reasons.append(f"Will help you learn: {', '.join(taught_gap[:3])}")

    reasons.append(next(text for threshold, text in REASON_TIERS if score >= threshold))

    if sub_scores.get("difficulty") == 1.0:
        if resource.difficulty == "beginner":
            reasons.append("Perfect difficulty level for your current skills")
        else:
            reasons.append("Appropriate challenge level for your experience")

    category = normalize_category(resource.category)
    if job is not None and category == "interview":
        reasons.append("Helps you prepare for interviews for this role")
    elif job is not None and category == "resume":
        reasons.append("Helps you tailor your CV for this role")
    elif category == "technical":
        reasons.append("Technical skills are in high demand")
    elif category == "soft_skills":
        reasons.append("Soft skills are essential for career advancement")
    elif category == "career":
        reasons.append("Career development skills for professional growth")

    if analysis.experience_years < 2:
        reasons.append("Great for building foundational skills")
    else:
        reasons.append("Good for advancing your existing skills")
    return reasons


def score_resource(
    profile: Profile,
    analysis: ProfileAnalysis,
    resource: LearningResource,
    market: MarketSkills,
    weights: Optional[LearningScoringWeights] = None,
    locale: Optional[LocaleSettings] = None,
    job: Optional[JobPosting] = None,
) -> LearningMatch:
    """Score one learning resource against a profile and its market skill gap. Pure."""
    weights = weights or LearningScoringWeights()
    locale = locale or LocaleSettings()

    resource_skills = dedupe_skills(resource.skills)
    gap = gap_pool(profile, market, resource_skills)
    taught_gap = [s for s in resource_skills if has_matching_skill(s, gap)]

    factors: Dict[str, Factor] = {
        "skill_gap": (gap_coverage(resource_skills, gap, market), weights.skill_gap),
        "difficulty": (difficulty_score(resource.difficulty, analysis.skill_level), weights.difficulty),
        "category": (category_score(resource.category, analysis), weights.category),
        "locale": (learning_locale_bonus(resource, resource_skills, analysis, locale), weights.locale),
    }
    score = round(combine_weighted(factors), 4)
    sub_scores = {name: round(value, 4) for name, (value, _) in factors.items() if value is not None}

    return LearningMatch(
        resource=resource,
        score=score,
        reasons=learning_reasons(score, resource, sub_scores, taught_gap, market, analysis, job),
        skill_gap=taught_gap,
        sub_scores=sub_scores,
    )
