"""
Curated skill vocabulary and skill-name normalization.

The vocabulary is a plain lookup table: a CV mentions a skill only if one of
these terms appears in it as a whole word. Bump VOCABULARY_VERSION whenever a
term is added or removed so stored extractions can be traced back.
"""
import re
from typing import Dict, Iterable, List, Optional, Tuple

VOCABULARY_VERSION = "2024.1"

SKILL_VOCABULARY: Dict[str, Tuple[str, ...]] = {
    "languages_frameworks": (
        "javascript", "typescript", "python", "java", "c++", "c#", "php", "ruby", "golang", "rust",
        "swift", "kotlin", "react", "angular", "vue", "node", "express", "django", "flask", "fastapi",
        "spring", "laravel", "sql", "mongodb", "mysql", "postgresql", "redis", "elasticsearch",
        "cassandra", "html", "css", "sass", "scss", "tailwind", "bootstrap", "material-ui", "git",
        "github", "gitlab", "docker", "kubernetes", "jenkins", "ci/cd", "aws", "azure", "gcp",
        "terraform", "ansible",
    ),
    "soft_skills": (
        "agile", "scrum", "kanban", "project management", "leadership", "team leadership",
        "communication", "teamwork", "collaboration", "problem solving", "critical thinking",
        "time management", "analytical", "adaptability",
    ),
    "technical_disciplines": (
        "machine learning", "artificial intelligence", "data science", "data analysis", "analytics",
        "statistics", "big data", "hadoop", "spark", "testing", "quality assurance", "automation",
        "selenium", "devops", "microservices", "rest api", "graphql", "soap", "cloud computing",
        "web development", "mobile development", "programming",
    ),
    "business_skills": (
        "marketing", "digital marketing", "seo", "social media", "sales", "business development",
        "customer service", "client relations", "finance", "accounting", "budgeting",
        "financial analysis", "human resources", "recruitment", "talent management",
    ),
}

# Common spellings folded onto one canonical name before comparison
SKILL_ALIASES: Dict[str, str] = {
    "js": "javascript",
    "ts": "typescript",
    "nodejs": "node",
    "node js": "node",
    "reactjs": "react",
    "react js": "react",
    "vuejs": "vue",
    "go": "golang",
    "k8s": "kubernetes",
    "postgres": "postgresql",
    "mongo": "mongodb",
    "ml": "machine learning",
    "ai": "artificial intelligence",
    "hr": "human resources",
    "qa": "quality assurance",
    "cicd": "ci/cd",
    "ci cd": "ci/cd",
}

# Words whose trailing "s" is part of the name, not a plural
_KEEP_TRAILING_S = {"kubernetes", "jenkins", "analytics", "statistics", "windows", "ios"}

_PUNCT_RE = re.compile(r"[^\w\s+#/]")
_SPACE_RE = re.compile(r"\s+")


def vocabulary_terms() -> List[str]:
    """All vocabulary terms in declaration order, without duplicates."""
    seen = set()
    terms = []
    for group in SKILL_VOCABULARY.values():
        for term in group:
            if term not in seen:
                seen.add(term)
                terms.append(term)
    return terms


def _fold_plural(word: str) -> str:
    if word in _KEEP_TRAILING_S:
        return word
    if len(word) > 3 and word.endswith("s") and not word.endswith(("ss", "us", "is")):
        return word[:-1]
    return word


def normalize_skill(name: Optional[str]) -> str:
    """Lowercase, strip punctuation, fold plurals and aliases."""
    if not name:
        return ""
    text = name.lower().replace(".", "").replace("-", " ")
    text = _PUNCT_RE.sub(" ", text)
    text = _SPACE_RE.sub(" ", text).strip()
    if text in SKILL_ALIASES:
        return SKILL_ALIASES[text]
    text = " ".join(_fold_plural(w) for w in text.split(" "))
    return SKILL_ALIASES.get(text, text)


def display_skill(term: str) -> str:
    """Title-case a vocabulary term word by word ('machine learning' -> 'Machine Learning')."""
    return " ".join(w[:1].upper() + w[1:] for w in term.split(" "))


def skills_match(a: str, b: str) -> bool:
    """Permissive fuzzy match: normalized containment in either direction."""
    na, nb = normalize_skill(a), normalize_skill(b)
    if not na or not nb:
        return False
    if na == nb:
        return True
    shorter, longer = (na, nb) if len(na) <= len(nb) else (nb, na)
    if len(shorter) < 2:
        return False
    if len(shorter) < 3:
        # two-letter names only match as whole words ("ui" must not hit "build")
        return re.search(rf"(?<![a-z0-9]){re.escape(shorter)}(?![a-z0-9])", longer) is not None
    return shorter in longer


def has_matching_skill(skill: str, pool: Iterable[str]) -> bool:
    return any(skills_match(skill, other) for other in pool)


def dedupe_skills(skills: Iterable[str]) -> List[str]:
    """Keep the first spelling of each skill; later normalized duplicates are dropped."""
    seen = set()
    result = []
    for skill in skills:
        if not skill or not str(skill).strip():
            continue
        key = normalize_skill(str(skill))
        if key and key not in seen:
            seen.add(key)
            result.append(str(skill).strip())
    return result


def _term_pattern(term: str) -> re.Pattern:
    body = r"\s+".join(re.escape(part) for part in term.split(" "))
    return re.compile(rf"(?<![A-Za-z0-9]){body}(?:s|es)?(?![A-Za-z0-9+#])", re.IGNORECASE)


_TERM_PATTERNS = [(term, _term_pattern(term)) for term in vocabulary_terms()]


def extract_vocabulary_skills(text: str) -> List[str]:
    """Return display names of vocabulary terms mentioned in text, in vocabulary order."""
    if not text:
        return []
    found = []
    for term, pattern in _TERM_PATTERNS:
        if pattern.search(text):
            found.append(display_skill(term))
    return dedupe_skills(found)
