"""
Heuristic CV field parser.

Text is walked line by line through a small section state machine
(``SectionTracker``). Each section has its own entry heuristics; education
and work experience get a second pass over the whole document when the
section pass produced nothing, so CVs without headings still yield entries.
"""
import re
from datetime import datetime
from enum import Enum
from typing import Dict, List, NamedTuple, Optional, Tuple

from career_match.models.models import (
    CertificationEntry, EducationEntry, LanguageEntry, ParsedProfile, WorkExperienceEntry
)
from career_match.services.skill_vocabulary import extract_vocabulary_skills, normalize_skill
from career_match.services.text_extraction import extract_document, is_sentinel
from career_match.utils.logging_config import get_logger, log_function_call

logger = get_logger(__name__)


class Section(str, Enum):
    OUTSIDE = "outside"
    EDUCATION = "education"
    EXPERIENCE = "experience"
    SKILLS = "skills"
    CERTIFICATIONS = "certifications"
    LANGUAGES = "languages"
    SUMMARY = "summary"
    OTHER = "other"


SECTION_HEADERS: Dict[Section, Tuple[str, ...]] = {
    Section.EDUCATION: (
        "education", "academic background", "academic qualifications", "academics",
        "qualifications", "educational background", "education and training",
    ),
    Section.EXPERIENCE: (
        "experience", "work experience", "professional experience", "employment",
        "employment history", "work history", "career history", "relevant experience",
    ),
    Section.SKILLS: (
        "skills", "technical skills", "key skills", "core skills", "core competencies",
        "competencies", "expertise", "skills and abilities",
    ),
    Section.CERTIFICATIONS: (
        "certifications", "certification", "certificates", "licenses and certifications",
        "courses and certifications",
    ),
    Section.LANGUAGES: ("languages", "language", "language skills", "spoken languages"),
    Section.SUMMARY: (
        "summary", "professional summary", "career summary", "objective", "career objective",
        "profile", "professional profile", "personal profile", "about", "about me",
    ),
    Section.OTHER: (
        "projects", "references", "referees", "interests", "hobbies", "awards", "achievements",
        "volunteer experience", "volunteering", "publications", "activities", "personal details",
        "contact", "contact information",
    ),
}

_HEADER_LOOKUP = {phrase: section for section, phrases in SECTION_HEADERS.items() for phrase in phrases}
_LABEL_RE = re.compile(r"^([A-Za-z][A-Za-z &/]{1,40}?)\s*:\s*(.*)$")
_HEADER_CLEAN_RE = re.compile(r"[^a-z& ]+")
MAX_HEADER_LENGTH = 40


def _header_phrase(text: str) -> str:
    phrase = _HEADER_CLEAN_RE.sub(" ", text.lower().replace("&", " and "))
    return " ".join(phrase.split())


def classify_header(line: str) -> Optional[Tuple[Section, str]]:
    """Return (section, inline text) when line opens a section, else None.

    Both bare headings ("EDUCATION", "Work Experience:") and labelled lines
    ("Skills: Python, SQL") count; the text after a label is kept.
    """
    stripped = line.strip()
    if not stripped:
        return None
    labelled = _LABEL_RE.match(stripped)
    if labelled:
        section = _HEADER_LOOKUP.get(_header_phrase(labelled.group(1)))
        if section is not None:
            return section, labelled.group(2).strip()
    if len(stripped) <= MAX_HEADER_LENGTH:
        section = _HEADER_LOOKUP.get(_header_phrase(stripped))
        if section is not None:
            return section, ""
    return None


class LineEvent(NamedTuple):
    section: Section
    text: str
    is_header: bool


class SectionTracker:
    """OUTSIDE -> IN_<SECTION> on a header line, IN_<A> -> IN_<B> on another header."""

    def __init__(self):
        self.state = Section.OUTSIDE
        self.headers_seen = 0

    def step(self, line: str) -> List[LineEvent]:
        header = classify_header(line)
        if header is None:
            return [LineEvent(self.state, line, False)]
        self.state, inline = header
        self.headers_seen += 1
        events = [LineEvent(self.state, line, True)]
        if inline:
            events.append(LineEvent(self.state, inline, False))
        return events


def split_sections(lines: List[str]) -> Tuple[List[LineEvent], int]:
    tracker = SectionTracker()
    events: List[LineEvent] = []
    for line in lines:
        events.extend(tracker.step(line))
    return events, tracker.headers_seen


def _section_lines(events: List[LineEvent], section: Section) -> List[str]:
    return [e.text for e in events if e.section == section and not e.is_header]


# ---------------------------------------------------------------- contact fields

EMAIL_RE = re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b")
PHONE_RE = re.compile(r"(?<![\w+])\+?\d[\d \t().-]{6,}\d(?!\w)")
_YEAR_RANGE_RE = re.compile(r"^\s*(?:19|20)\d{2}\s*[-–.]\s*(?:19|20)\d{2}\s*$")
_LONG_DIGITS_RE = re.compile(r"\d{7,}")
_NAME_LABEL_RE = re.compile(r"^(?:full\s+)?name\s*:\s*(.+)$", re.IGNORECASE)
_NOT_A_NAME = ("curriculum vitae", "resume", "résumé", "cv")


def extract_email(text: str) -> Optional[str]:
    match = EMAIL_RE.search(text)
    return match.group(0) if match else None


def extract_phone(text: str) -> Optional[str]:
    for match in PHONE_RE.finditer(text):
        candidate = match.group(0).strip()
        digits = sum(ch.isdigit() for ch in candidate)
        if 9 <= digits <= 15 and not _YEAR_RANGE_RE.match(candidate):
            return candidate
    return None


def extract_name(lines: List[str]) -> Optional[str]:
    for line in lines[:5]:
        labelled = _NAME_LABEL_RE.match(line)
        if labelled:
            return labelled.group(1).strip()[:100]
    for line in lines:
        candidate = line.strip()
        if not candidate:
            continue
        if (
            "@" in candidate
            or _LONG_DIGITS_RE.search(candidate.replace(" ", ""))
            or len(candidate) > 50
            or not any(ch.isalpha() for ch in candidate)
            or candidate.lower().strip(" :") in _NOT_A_NAME
            or classify_header(candidate) is not None
            or ":" in candidate
        ):
            continue
        return candidate
    return None


# ---------------------------------------------------------------- education

DEGREE_RE = re.compile(
    r"\b(bachelor(?:'?s)?|master(?:'?s)?|ph\.?\s?d|doctorate|diploma|certificate|associate degree|degree"
    r"|b\.?\s?sc|m\.?\s?sc|b\.?\s?eng|m\.?\s?eng|b\.?\s?tech|m\.?\s?tech|mba|b\.a|m\.a|a[- ]level|high school diploma)\b",
    re.IGNORECASE,
)
INSTITUTION_RE = re.compile(r"\b(university|college|institute|school|academy|polytechnic)\b", re.IGNORECASE)
YEAR_RE = re.compile(r"\b(?:19|20)\d{2}\b")
_SEGMENT_SPLIT_RE = re.compile(r"\s*(?:,|;|\||\s[-–]\s|\(|\))\s*")
_DEGREE_END_RE = re.compile(r"\s+in\s+|\s+\d{4}\b", re.IGNORECASE)
_FIELD_IN_RE = re.compile(r"\bin\s+(.+)$", re.IGNORECASE)
_FIELD_OF_RE = re.compile(r"\bof\s+(.+)$", re.IGNORECASE)


class EducationFragment(NamedTuple):
    degree: Optional[str]
    institution: Optional[str]
    field_of_study: Optional[str]
    year: Optional[int]

    def is_empty(self) -> bool:
        return not (self.degree or self.institution or self.year)


def _plausible_year(line: str) -> Optional[int]:
    latest = datetime.now().year + 5
    years = [int(y) for y in YEAR_RE.findall(line) if 1950 <= int(y) <= latest]
    return max(years) if years else None


def education_fragment(line: str) -> EducationFragment:
    segments = [s for s in _SEGMENT_SPLIT_RE.split(line) if s and s.strip()]
    degree = field = institution = None

    for segment in segments:
        if degree is None:
            match = DEGREE_RE.search(segment)
            if match and not INSTITUTION_RE.search(segment[:match.start()]):
                tail = segment[match.start():]
                degree = _DEGREE_END_RE.split(tail, maxsplit=1)[0].strip()[:100]
                field_match = _FIELD_IN_RE.search(tail) or _FIELD_OF_RE.search(tail[len(match.group(0)):])
                if field_match:
                    field = YEAR_RE.sub("", field_match.group(1)).strip(" .")[:100] or None
                    if field and degree.endswith(field):
                        degree = degree[: -len(field)].rstrip()
                        degree = re.sub(r"\s+of$", "", degree, flags=re.IGNORECASE) or degree
                continue
        if institution is None and INSTITUTION_RE.search(segment):
            institution = YEAR_RE.sub("", segment).strip(" .")[:100] or None

    return EducationFragment(degree, institution, field, _plausible_year(line))


class _EducationBuilder:
    """Accumulates fragments from consecutive lines into one education entry."""

    def __init__(self):
        self.entries: List[EducationEntry] = []
        self._reset()

    def _reset(self):
        self.degree = self.institution = self.field_of_study = None
        self.year = None

    def add(self, fragment: EducationFragment):
        if fragment.is_empty():
            return
        if (
            (fragment.degree and self.degree)
            or (fragment.institution and self.institution)
            or (fragment.year and self.year)
        ):
            self.flush()
        self.degree = self.degree or fragment.degree
        self.institution = self.institution or fragment.institution
        self.field_of_study = self.field_of_study or fragment.field_of_study
        self.year = self.year or fragment.year

    def flush(self):
        if self.degree or self.institution or self.year:
            entry = EducationEntry(
                institution=self.institution,
                degree=self.degree,
                field_of_study=self.field_of_study,
                graduation_year=self.year,
            )
            key = ((entry.institution or "").lower(), (entry.degree or "").lower(), entry.graduation_year)
            if all(
                ((e.institution or "").lower(), (e.degree or "").lower(), e.graduation_year) != key
                for e in self.entries
            ):
                self.entries.append(entry)
        self._reset()


def parse_education(lines: List[str], require_keyword: bool = False) -> List[EducationEntry]:
    builder = _EducationBuilder()
    for line in lines:
        if not line.strip():
            builder.flush()
            continue
        fragment = education_fragment(line)
        if require_keyword and not (fragment.degree or fragment.institution):
            continue
        builder.add(fragment)
    builder.flush()
    return builder.entries


# ---------------------------------------------------------------- work experience

_MONTHS = r"(?:jan|feb|mar|apr|may|jun|jul|aug|sep|sept|oct|nov|dec)[a-z]*\.?"
DATE_TOKEN_RE = re.compile(
    rf"\b{_MONTHS}\s+(?:19|20)\d{{2}}\b"
    r"|\b\d{1,2}/(?:19|20)\d{2}\b"
    r"|\b(?:19|20)\d{2}\s*[-–]\s*(?:(?:19|20)\d{2}|present|current|now)\b"
    r"|\b(?:present|current)\b",
    re.IGNORECASE,
)
_DATE_VALUE_RE = re.compile(rf"\b{_MONTHS}\s+(?:19|20)\d{{2}}\b|\b\d{{1,2}}/(?:19|20)\d{{2}}\b|\b(?:19|20)\d{{2}}\b", re.IGNORECASE)
_ONGOING_RE = re.compile(r"\b(?:present|current|now|ongoing)\b", re.IGNORECASE)
_DATE_RESIDUE_RE = re.compile(r"[\s\-–|(),:]+|\bto\b|\buntil\b|\bsince\b|\bnow\b|\bongoing\b|\bdate\b", re.IGNORECASE)
POSITION_RE = re.compile(
    r"\b(developer|engineer|manager|analyst|specialist|consultant|director|coordinator|assistant"
    r"|executive|officer|lead|senior|junior|intern|designer|administrator|accountant|architect"
    r"|scientist|technician|supervisor|teacher|lecturer)s?\b",
    re.IGNORECASE,
)
_AT_RE = re.compile(r"\s+at\s+|\s+@\s+", re.IGNORECASE)
_DASH_RE = re.compile(r"\s+[-–|]\s+")
_BULLET_RE = re.compile(r"^[\-•*·▪◦]\s*")
MAX_DESCRIPTION_LINES = 3


def is_date_only(line: str) -> bool:
    if not DATE_TOKEN_RE.search(line) and not _DATE_VALUE_RE.search(line):
        return False
    residue = _DATE_RESIDUE_RE.sub("", _DATE_VALUE_RE.sub("", DATE_TOKEN_RE.sub("", line)))
    return len(residue) <= 2


def _date_fields(line: str) -> Tuple[Optional[str], Optional[str], bool]:
    values = [m.group(0) for m in _DATE_VALUE_RE.finditer(line)]
    ongoing = bool(_ONGOING_RE.search(line))
    start = values[0] if values else None
    end = values[1] if len(values) > 1 and not ongoing else None
    return start, end, ongoing


def _split_company_position(core: str) -> Tuple[Optional[str], Optional[str]]:
    at = _AT_RE.split(core, maxsplit=1)
    if len(at) == 2:
        return at[1].strip()[:100] or None, at[0].strip()[:100] or None
    for splitter in (_DASH_RE, re.compile(r"\s*,\s*")):
        parts = splitter.split(core, maxsplit=1)
        if len(parts) == 2:
            left, right = parts[0].strip(), parts[1].strip()
            if POSITION_RE.search(left) and not POSITION_RE.search(right):
                return right[:100] or None, left[:100] or None
            return left[:100] or None, right[:100] or None
    if POSITION_RE.search(core):
        return None, core[:100]
    return core[:100] or None, None


def experience_header(line: str) -> Optional[WorkExperienceEntry]:
    """Parse a line that opens a work-experience entry, or return None."""
    text = _BULLET_RE.sub("", line.strip())
    if len(text) < 5 or len(text) > 150:
        return None
    has_date = bool(DATE_TOKEN_RE.search(text))
    if not has_date and not POSITION_RE.search(text):
        return None
    start, end, ongoing = _date_fields(text) if has_date else (None, None, False)
    core = DATE_TOKEN_RE.sub(" ", text)
    core = _DATE_VALUE_RE.sub(" ", core)
    core = re.sub(r"\(\s*\)|\s+", " ", core).strip(" -–|,()")
    company, position = _split_company_position(core) if core else (None, None)
    return WorkExperienceEntry(
        company=company, position=position, start_date=start, end_date=end, current=ongoing
    )


def _looks_like_entry_start(line: str) -> bool:
    if _BULLET_RE.match(line):
        return False
    if DATE_TOKEN_RE.search(line):
        return True
    return bool(POSITION_RE.search(line)) and len(line) <= 80 and not line.rstrip().endswith(".")


def _entry_key(entry: WorkExperienceEntry) -> Tuple[str, str]:
    return (entry.company or "").lower(), (entry.position or "").lower()


def parse_experience(lines: List[str]) -> List[WorkExperienceEntry]:
    entries: List[WorkExperienceEntry] = []
    i = 0
    while i < len(lines):
        line = lines[i].strip()
        i += 1
        entry = experience_header(line) if line else None
        if entry is None:
            continue
        if is_date_only(line):
            if entries and not entries[-1].start_date:
                previous = entries[-1]
                previous.start_date, previous.end_date, previous.current = (
                    entry.start_date, entry.end_date, entry.current
                )
            continue

        description: List[str] = []
        while i < len(lines) and len(description) < MAX_DESCRIPTION_LINES:
            follower = lines[i].strip()
            if not follower:
                break
            if is_date_only(follower):
                if entry.start_date or description:
                    break
                entry.start_date, entry.end_date, entry.current = _date_fields(follower)
                i += 1
                continue
            if _looks_like_entry_start(follower):
                break
            description.append(_BULLET_RE.sub("", follower))
            i += 1
        entry.description = " ".join(description)[:500]

        if not (entry.company or entry.position or entry.start_date):
            continue
        if all(_entry_key(e) != _entry_key(entry) for e in entries):
            entries.append(entry)
    return entries


# ---------------------------------------------------------------- certifications / languages

_ITEM_SPLIT_RE = re.compile(r"\s*[,;|]\s*|\s*•\s*")
_ISSUER_RE = re.compile(r"^(.+?)\s*(?:\s[-–]\s|\bby\b|\bfrom\b)\s*(.+)$", re.IGNORECASE)
_PAREN_ISSUER_RE = re.compile(r"^(.+?)\s*\((.+)\)\s*$")
MAX_LIST_ENTRIES = 10


def _list_items(lines: List[str]) -> List[str]:
    items = []
    for line in lines:
        for item in _ITEM_SPLIT_RE.split(_BULLET_RE.sub("", line.strip())):
            item = item.strip(" .")
            if item:
                items.append(item)
    return items


def parse_certifications(lines: List[str]) -> List[CertificationEntry]:
    certifications: List[CertificationEntry] = []
    seen = set()
    for item in _list_items(lines):
        if YEAR_RE.fullmatch(item):
            continue
        match = _PAREN_ISSUER_RE.match(item) or _ISSUER_RE.match(item)
        name, issuer = (match.group(1), match.group(2)) if match else (item, None)
        name = YEAR_RE.sub("", name).strip(" -–.")
        if issuer:
            issuer = YEAR_RE.sub("", issuer).strip(" -–.()") or None
        key = normalize_skill(name)
        if not name or key in seen:
            continue
        seen.add(key)
        certifications.append(CertificationEntry(name=name[:100], issuer=issuer[:100] if issuer else None))
        if len(certifications) >= MAX_LIST_ENTRIES:
            break
    return certifications


PROFICIENCY_KEYWORDS = (
    ("native", ("native", "mother tongue", "fluent", "first language")),
    ("advanced", ("advanced", "proficient", "professional working")),
    ("beginner", ("beginner", "basic", "elementary")),
    ("intermediate", ("intermediate", "conversational", "good", "working knowledge")),
)
_PROFICIENCY_WORDS_RE = re.compile(
    r"\b(" + "|".join(kw for _, kws in PROFICIENCY_KEYWORDS for kw in kws) + r")\b", re.IGNORECASE
)
_LANGUAGE_NAME_RE = re.compile(r"^[A-Za-zÀ-ÿ][A-Za-zÀ-ÿ' ]{1,30}$")


def infer_proficiency(text: str) -> str:
    lowered = text.lower()
    for level, keywords in PROFICIENCY_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return level
    return "intermediate"


def parse_languages(lines: List[str]) -> List[LanguageEntry]:
    languages: List[LanguageEntry] = []
    seen = set()
    for item in _list_items(lines):
        name = _PROFICIENCY_WORDS_RE.sub(" ", item)
        name = re.sub(r"\(.*?\)|[-–:()]|\b(?:level|speaker|proficiency)\b", " ", name, flags=re.IGNORECASE)
        name = " ".join(name.split())
        if not _LANGUAGE_NAME_RE.match(name) or len(name.split()) > 3:
            continue
        if name.lower() in seen:
            continue
        seen.add(name.lower())
        languages.append(LanguageEntry(language=name.title(), proficiency=infer_proficiency(item)))
        if len(languages) >= MAX_LIST_ENTRIES:
            break
    return languages


# ---------------------------------------------------------------- summary

SUMMARY_MIN, SUMMARY_MAX = 50, 500


def parse_summary(lines: List[str]) -> Optional[str]:
    run: List[str] = []
    for line in lines:
        if not line.strip():
            if run:
                break
            continue
        run.append(line.strip())
    summary = " ".join(run)
    if len(summary) < SUMMARY_MIN:
        return None
    return summary[:SUMMARY_MAX].strip()


# ---------------------------------------------------------------- entry point

_FALLBACK_SKIP = (Section.SKILLS, Section.LANGUAGES, Section.CERTIFICATIONS, Section.SUMMARY)


def _fallback_lines(events: List[LineEvent], name: Optional[str]) -> List[str]:
    lines = []
    for event in events:
        if event.is_header or event.section in _FALLBACK_SKIP:
            continue
        text = event.text
        if text and (text == name or EMAIL_RE.search(text) or extract_phone(text) == text.strip()):
            continue
        lines.append(text)
    return lines


def parse_text(text: str) -> ParsedProfile:
    """Parse extracted CV text into a ParsedProfile. Deterministic for identical text."""
    lines = [line.strip() for line in (text or "").splitlines()]
    non_empty = [line for line in lines if line]
    events, headers_seen = split_sections(lines)
    name = extract_name(non_empty)

    education = parse_education(_section_lines(events, Section.EDUCATION))
    experience = parse_experience(_section_lines(events, Section.EXPERIENCE))

    fallback = None
    if not education or not experience:
        fallback = _fallback_lines(events, name)
    if not education:
        education = parse_education(
            [line for line in fallback if not POSITION_RE.search(line)], require_keyword=True
        )
    if not experience:
        experience = parse_experience(
            [line for line in fallback if not (DEGREE_RE.search(line) or INSTITUTION_RE.search(line))]
        )

    logger.debug(
        f"Parsed CV text: {headers_seen} section headers, {len(education)} education, "
        f"{len(experience)} experience entries"
    )
    return ParsedProfile(
        name=name,
        email=extract_email(text or ""),
        phone=extract_phone(text or ""),
        skills=extract_vocabulary_skills(text or ""),
        education=education,
        work_experience=experience,
        certifications=parse_certifications(_section_lines(events, Section.CERTIFICATIONS)),
        languages=parse_languages(_section_lines(events, Section.LANGUAGES)),
        summary=parse_summary(_section_lines(events, Section.SUMMARY)),
    )


@log_function_call
def parse_cv(buffer: bytes, filename: str) -> ParsedProfile:
    """Extract and parse an uploaded CV. Never raises; the result may be sparse."""
    document = extract_document(buffer, filename)
    text = "" if document.limited and is_sentinel(document.text) else document.text
    try:
        parsed = parse_text(text)
    except Exception as e:
        logger.exception(f"CV field parsing failed for {filename}: {e}")
        parsed = ParsedProfile(extraction_notes=[f"Field parsing failed: {e.__class__.__name__}"])
    parsed.extraction_notes = document.notes + parsed.extraction_notes
    return parsed
