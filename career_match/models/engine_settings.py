"""
Engine Settings Models for scoring, sampling and caching configuration
"""
from pydantic import BaseModel, Field, model_validator, validator
from typing import Dict, List


class JobScoringWeights(BaseModel):
    """Factor weights for profile/job match scoring"""
    skills: float = Field(default=0.35, ge=0.0, le=1.0, description="Skill overlap with the job's skills")
    experience: float = Field(default=0.25, ge=0.0, le=1.0, description="Years of experience vs. experience level")
    education: float = Field(default=0.20, ge=0.0, le=1.0, description="Education vs. stated requirements")
    locale: float = Field(default=0.10, ge=0.0, le=1.0, description="Language and local-market bonus")
    location: float = Field(default=0.10, ge=0.0, le=1.0, description="Preferred work location fit")

    @model_validator(mode="after")
    def validate_total_weights(self):
        total = self.skills + self.experience + self.education + self.locale + self.location
        if abs(total - 1.0) > 0.01:
            raise ValueError("Job scoring weights must sum to 1.0")
        return self


class LearningScoringWeights(BaseModel):
    """Factor weights for profile/learning-resource relevance scoring"""
    skill_gap: float = Field(default=0.5, ge=0.0, le=1.0, description="Coverage of the profile's skill gap")
    difficulty: float = Field(default=0.2, ge=0.0, le=1.0, description="Difficulty vs. skill level")
    category: float = Field(default=0.2, ge=0.0, le=1.0, description="Category relevance")
    locale: float = Field(default=0.1, ge=0.0, le=1.0, description="Language and local relevance")

    @model_validator(mode="after")
    def validate_total_weights(self):
        total = self.skill_gap + self.difficulty + self.category + self.locale
        if abs(total - 1.0) > 0.01:
            raise ValueError("Learning scoring weights must sum to 1.0")
        return self


class Cutoffs(BaseModel):
    """Minimum scores for a candidate to appear in a result set"""
    job: float = Field(default=0.25, ge=0.0, le=1.0)
    learning: float = Field(default=0.2, ge=0.0, le=1.0)


class SamplingSettings(BaseModel):
    """Bounds on how many documents a single request reads"""
    job_candidates: int = Field(default=100, ge=1, le=1000, description="Active jobs scored per request")
    learning_candidates: int = Field(default=100, ge=1, le=1000, description="Learning resources scored per request")
    market_sample: int = Field(default=50, ge=1, le=500, description="Recent jobs sampled for market skills")
    critical_skills_top_n: int = Field(default=10, ge=1, le=100, description="Most frequent market skills kept as critical")


class CacheSettings(BaseModel):
    """Market skill cache configuration"""
    market_ttl_seconds: int = Field(default=300, ge=0, description="How long an aggregated market sample stays valid")
    max_entries: int = Field(default=128, ge=1, description="Upper bound on cached market samples")


class LocaleSettings(BaseModel):
    """Local job-market context used by the locale factors"""
    market_keywords: List[str] = Field(
        default_factory=lambda: ['rwanda', 'kigali', 'butare', 'huye', 'muhanga', 'rubavu', 'musanze'],
        description="Keywords that mark work experience as local"
    )
    valued_languages: Dict[str, float] = Field(
        default_factory=lambda: {'kinyarwanda': 0.3, 'english': 0.2, 'french': 0.1},
        description="Language bonus added to the locale factor"
    )
    local_experience_bonus: float = Field(default=0.2, ge=0.0, le=1.0)
    home_city: str = Field(default="kigali", description="City whose job postings get a co-location bonus")
    home_city_bonus: float = Field(default=0.2, ge=0.0, le=1.0)
    priority_skills: List[str] = Field(
        default_factory=lambda: ['programming', 'web development', 'mobile development', 'data analysis', 'digital marketing', 'project management'],
        description="Skills the local market rewards; boosts learning resources that teach them"
    )

    @validator('valued_languages')
    def validate_language_bonus(cls, v):
        for language, bonus in v.items():
            if bonus < 0:
                raise ValueError(f'Bonus for language "{language}" must be non-negative')
        return {language.lower(): bonus for language, bonus in v.items()}


class EngineSettings(BaseModel):
    """Complete recommendation engine configuration"""
    job_weights: JobScoringWeights = Field(default_factory=JobScoringWeights)
    learning_weights: LearningScoringWeights = Field(default_factory=LearningScoringWeights)
    cutoffs: Cutoffs = Field(default_factory=Cutoffs)
    sampling: SamplingSettings = Field(default_factory=SamplingSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    locale: LocaleSettings = Field(default_factory=LocaleSettings)
    scoring_timeout_seconds: float = Field(default=10.0, gt=0, description="Scoring stops feeding candidates after this")
