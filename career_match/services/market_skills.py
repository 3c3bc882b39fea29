"""
Market skill aggregation over a sample of active job postings.
"""
from collections import Counter
from typing import Dict, Iterable, List

from pydantic import BaseModel, Field

from career_match.models.models import JobPosting
from career_match.services.skill_vocabulary import has_matching_skill, normalize_skill


class MarketSkills(BaseModel):
    """Frequency-ranked skills seen in a job sample.

    ``ranked`` holds every distinct skill, most frequent first (ties keep
    first-seen order); ``critical`` is its top-N prefix.
    """
    sample_size: int = 0
    ranked: List[str] = Field(default_factory=list)
    frequencies: Dict[str, int] = Field(default_factory=dict)
    critical: List[str] = Field(default_factory=list)

    def missing_for(self, profile_skills: Iterable[str]) -> List[str]:
        """Market skills that no profile skill fuzzy-matches, in ranked order."""
        owned = [s for s in profile_skills if s and s.strip()]
        return [skill for skill in self.ranked if not has_matching_skill(skill, owned)]

    def is_critical(self, skill: str) -> bool:
        key = normalize_skill(skill)
        return any(normalize_skill(c) == key for c in self.critical)

    @property
    def is_empty(self) -> bool:
        return not self.ranked


def aggregate_market_skills(jobs: List[JobPosting], top_n: int = 10) -> MarketSkills:
    counts: Counter = Counter()
    spelling: Dict[str, str] = {}
    first_seen: Dict[str, int] = {}

    for job in jobs:
        # a skill listed twice in one posting counts once
        for key in {normalize_skill(s) for s in job.all_skills} - {""}:
            counts[key] += 1
        for skill in job.all_skills:
            key = normalize_skill(skill)
            if key and key not in spelling:
                spelling[key] = skill.strip()
                first_seen[key] = len(first_seen)

    order = sorted(counts, key=lambda k: (-counts[k], first_seen[k]))
    ranked = [spelling[k] for k in order]
    return MarketSkills(
        sample_size=len(jobs),
        ranked=ranked,
        frequencies={spelling[k]: counts[k] for k in order},
        critical=ranked[:top_n],
    )


def job_market_skills(job: JobPosting) -> MarketSkills:
    """Market context narrowed to one posting: all of its skills count as critical."""
    return aggregate_market_skills([job], top_n=max(len(job.all_skills), 1))


def market_cache_key(sample_size: int, top_n: int) -> str:
    return f"market-skills:{sample_size}:{top_n}"
