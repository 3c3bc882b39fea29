from typing import Dict, List, Optional, Tuple

import numpy as np

from career_match.models.engine_settings import JobScoringWeights, LocaleSettings
from career_match.models.models import JobPosting, Profile
from career_match.models.response import JobMatch
from career_match.services.profile_analyzer import ProfileAnalysis, degree_level
from career_match.services.skill_vocabulary import dedupe_skills, has_matching_skill
from career_match.utils.utils import clamp01

NEUTRAL = 0.5

# (low, high) years for each experience level
EXPERIENCE_BANDS: Dict[str, Tuple[float, float]] = {
    "entry": (0.0, 2.0),
    "mid": (2.0, 5.0),
    "senior": (5.0, 10.0),
    "lead": (7.0, 15.0),
    "executive": (10.0, float("inf")),
}
ADJACENT_YEARS = 2.0

REASON_TIERS = (
    (0.8, "Excellent match for your profile and career goals"),
    (0.6, "Strong match for your skills and experience"),
    (0.4, "Good opportunity to develop your career"),
    (0.0, "Worth exploring for skill development"),
)
MAX_IMPROVEMENTS = 5

Factor = Tuple[Optional[float], float]


def combine_weighted(factors: Dict[str, Factor]) -> float:
    """Weighted mean over the factors that were evaluated (value is not None).

    Weights of skipped factors are renormalized away, so the result is
    always a convex combination of the evaluated sub-scores.
    """
    evaluated = [(v, w) for v, w in factors.values() if v is not None and w > 0]
    if not evaluated:
        return 0.0
    values = np.array([clamp01(v) for v, _ in evaluated], dtype=float)
    weights = np.array([w for _, w in evaluated], dtype=float)
    return clamp01(float(np.dot(values, weights) / weights.sum()))


def matched_job_skills(profile_skills: List[str], job_skills: List[str]) -> List[str]:
    return [s for s in job_skills if has_matching_skill(s, profile_skills)]


def skills_score(profile_skills: List[str], job_skills: List[str]) -> float:
    if not job_skills:
        return NEUTRAL
    if not profile_skills:
        return 0.0
    return len(matched_job_skills(profile_skills, job_skills)) / len(job_skills)


def experience_score(years: float, level: Optional[str]) -> float:
    band = EXPERIENCE_BANDS.get(level or "")
    if band is None:
        return NEUTRAL
    low, high = band
    if low <= years <= high:
        return 1.0
    distance = low - years if years < low else years - high
    return 0.6 if distance <= ADJACENT_YEARS else 0.3


def education_score(profile: Profile, edu_level: int, requirements: List[str]) -> Optional[float]:
    requirements = [r for r in requirements if r and r.strip()]
    if not profile.education:
        return None
    if not requirements:
        return NEUTRAL
    texts = [t.lower() for e in profile.education for t in (e.degree, e.field_of_study) if t and t.strip()]
    matched = 0
    for requirement in requirements:
        req = requirement.lower()
        required_level = degree_level(req)
        if any(t in req or req in t for t in texts) or (required_level > 1 and edu_level >= required_level):
            matched += 1
    return min(matched / len(requirements), 1.0)


def _location_text(location: Optional[str]) -> str:
    return (location or "").strip().lower()


def locale_bonus(analysis: ProfileAnalysis, profile: Profile, job: JobPosting, locale: LocaleSettings) -> float:
    bonus = sum(locale.valued_languages.get(language, 0.0) for language in set(analysis.language_skills))
    if analysis.has_local_experience:
        bonus += locale.local_experience_bonus
    home = locale.home_city.lower()
    if home and home in _location_text(job.location) and home in _location_text(profile.location):
        bonus += locale.home_city_bonus
    return min(bonus, 1.0)


def is_remote_friendly(job: JobPosting) -> bool:
    return job.type in ("remote", "hybrid") or "remote" in _location_text(job.location)


def accepts_work_type(preference: Optional[str], job: JobPosting) -> Optional[bool]:
    """Whether a remote/hybrid/onsite/flexible preference accepts the job's work type; None when unknown."""
    preference = (preference or "").strip().lower()
    work_type = job.type or ("remote" if "remote" in _location_text(job.location) else None)
    if not preference or not work_type:
        return None
    if preference == "flexible":
        return True
    if preference == "hybrid":
        return work_type in ("hybrid", "remote")
    return work_type == preference


def location_score(profile: Profile, job: JobPosting) -> Optional[float]:
    preferred = [_location_text(p) for p in profile.job_preferences.work_locations + [profile.location or ""]]
    preferred = [p for p in preferred if p]
    accepts = accepts_work_type(profile.job_preferences.remote_preference, job)
    if not preferred:
        if accepts is None:
            return None
        if not accepts:
            return 0.3
        return 1.0 if job.type == "remote" else NEUTRAL
    job_location = _location_text(job.location)
    if job_location and any(p in job_location or job_location in p for p in preferred):
        return 1.0
    if accepts is False:
        return 0.3
    if not job_location:
        return 1.0 if job.type == "remote" else NEUTRAL
    return 0.5 if is_remote_friendly(job) else 0.3


def job_reasons(
    score: float,
    sub_scores: Dict[str, float],
    matched: List[str],
    analysis: ProfileAnalysis,
    job: JobPosting,
    locale: LocaleSettings,
) -> List[str]:
    reasons = [next(text for threshold, text in REASON_TIERS if score >= threshold)]
    if matched:
        reasons.append(f"Matches {len(matched)} of the job's skills: {', '.join(matched[:3])}")
    if sub_scores.get("experience") == 1.0 and job.experience_level:
        if analysis.experience_years >= 3:
            reasons.append("Your solid work experience aligns well with this role")
        else:
            reasons.append("Your experience level is appropriate for this position")
    if sub_scores.get("education", 0.0) >= 0.8 and analysis.education_level >= 3:
        reasons.append("Your university education provides a strong foundation")
    for language in sorted(set(analysis.language_skills), key=lambda l: -locale.valued_languages.get(l, 0.0)):
        if locale.valued_languages.get(language, 0.0) >= 0.2:
            reasons.append(f"Your {language.title()} language skills are valued in this market")
    if analysis.has_local_experience:
        reasons.append("Your local work experience is a significant advantage")
    if analysis.career_stage == "entry" and job.experience_level == "entry":
        reasons.append("Perfect entry-level opportunity to start your career")
    elif analysis.career_stage == "mid" and job.experience_level == "mid":
        reasons.append("Great mid-level opportunity for career advancement")
    if analysis.strengths and score >= 0.4:
        reasons.append(f"Leverages your strengths: {', '.join(analysis.strengths[:2])}")
    return reasons


def areas_of_improvement(
    profile: Profile, analysis: ProfileAnalysis, job: JobPosting, missing: List[str], locale: LocaleSettings
) -> List[str]:
    improvements = []
    if missing:
        improvements.append(f"Add these skills to your profile: {', '.join(missing[:3])}")

    years = analysis.experience_years
    level = job.experience_level
    if level == "mid" and years < 1:
        improvements.append("Gain at least 1-2 years of work experience")
    elif level in ("senior", "lead", "executive") and years < EXPERIENCE_BANDS[level][0]:
        improvements.append(
            f"Gain more experience (currently {years} years, target: {EXPERIENCE_BANDS[level][0]:g}+ years)"
        )
    elif level == "entry" and years > 3:
        improvements.append("Consider highlighting your willingness to take entry-level roles")

    requirements = " ".join(job.education_requirements).lower()
    if any(k in requirements for k in ("bachelor", "degree", "university")) and analysis.education_level < 3:
        improvements.append("Consider pursuing a Bachelor's degree or equivalent")

    job_text = f"{job.description} {requirements}".lower()
    for language in locale.valued_languages:
        if language in job_text and language not in analysis.language_skills:
            improvements.append(f"Add {language.title()} language skills to your profile")

    home = locale.home_city.lower()
    if home and home in _location_text(job.location) and home not in _location_text(profile.location):
        improvements.append(f"Consider updating your location preference to include {locale.home_city.title()}")

    if not profile.bio or len(profile.bio) < 50:
        improvements.append("Complete your profile bio (at least 50 characters)")
    if len(profile.skills) < 3:
        improvements.append("Add more skills to your profile (at least 3-5 relevant skills)")
    if not profile.work_experience:
        improvements.append("Add work experience to your profile")
    if any(k in job_text for k in ("certification", "certified", "certificate")) and not profile.certifications:
        improvements.append("Consider obtaining relevant professional certifications")
    return improvements[:MAX_IMPROVEMENTS]


def score_job(
    profile: Profile,
    analysis: ProfileAnalysis,
    job: JobPosting,
    weights: Optional[JobScoringWeights] = None,
    locale: Optional[LocaleSettings] = None,
) -> JobMatch:
    """Score one job for one profile. Pure and deterministic."""
    weights = weights or JobScoringWeights()
    locale = locale or LocaleSettings()

    profile_skills = dedupe_skills(profile.skills)
    job_skills = dedupe_skills(job.all_skills)
    matched = matched_job_skills(profile_skills, job_skills)
    missing = [s for s in job_skills if s not in matched]

    factors: Dict[str, Factor] = {
        "skills": (skills_score(profile_skills, job_skills), weights.skills),
        "experience": (experience_score(analysis.experience_years, job.experience_level), weights.experience),
        "education": (
            education_score(profile, analysis.education_level, job.education_requirements), weights.education
        ),
        "locale": (locale_bonus(analysis, profile, job, locale), weights.locale),
        "location": (location_score(profile, job), weights.location),
    }
    score = round(combine_weighted(factors), 4)
    sub_scores = {name: round(value, 4) for name, (value, _) in factors.items() if value is not None}

    return JobMatch(
        job=job,
        score=score,
        reasons=job_reasons(score, sub_scores, matched, analysis, job, locale),
        skill_gap=missing,
        sub_scores=sub_scores,
        areas_of_improvement=areas_of_improvement(profile, analysis, job, missing, locale),
    )
