from conftest import make_job

from career_match.models.response import JobMatch
from career_match.services.ranking import rank_candidates


def _match(job_id, score):
    return JobMatch(job=make_job(job_id), score=score)


def test_sorted_by_score_descending():
    ranked = rank_candidates([_match("a", 0.2), _match("b", 0.9), _match("c", 0.5)], limit=10)
    assert [m.candidate_id for m in ranked] == ["b", "c", "a"]


def test_ties_keep_input_order():
    items = [_match("a", 0.5), _match("b", 0.7), _match("c", 0.5), _match("d", 0.5)]
    ranked = rank_candidates(items, limit=10)
    assert [m.candidate_id for m in ranked] == ["b", "a", "c", "d"]


def test_duplicate_ids_keep_the_best_ranked_occurrence():
    ranked = rank_candidates([_match("a", 0.3), _match("b", 0.4), _match("a", 0.8)], limit=10)
    assert [(m.candidate_id, m.score) for m in ranked] == [("a", 0.8), ("b", 0.4)]


def test_limit_applies_after_dedupe():
    items = [_match("a", 0.9), _match("a", 0.8), _match("b", 0.7), _match("c", 0.6)]
    assert [m.candidate_id for m in rank_candidates(items, limit=2)] == ["a", "b"]


def test_zero_limit_and_empty_input():
    assert rank_candidates([_match("a", 0.9)], limit=0) == []
    assert rank_candidates([], limit=5) == []
