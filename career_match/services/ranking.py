from typing import List, Sequence, TypeVar

from career_match.models.response import ScoredCandidate

C = TypeVar("C", bound=ScoredCandidate)


def rank_candidates(items: Sequence[C], limit: int) -> List[C]:
    """Sort by score descending, ties in input order; drop repeated ids, then truncate.

    The first occurrence of a candidate id in ranked order wins.
    """
    if limit <= 0:
        return []
    ordered = sorted(enumerate(items), key=lambda pair: (-pair[1].score, pair[0]))
    seen = set()
    ranked: List[C] = []
    for _, item in ordered:
        if item.candidate_id in seen:
            continue
        seen.add(item.candidate_id)
        ranked.append(item)
        if len(ranked) == limit:
            break
    return ranked
