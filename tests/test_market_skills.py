from conftest import make_job

from career_match.services.market_skills import aggregate_market_skills, job_market_skills, market_cache_key


def _sample():
    return [
        make_job("j1", required_skills=["Python", "SQL"], preferred_skills=[]),
        make_job("j2", required_skills=["python", "Docker"], preferred_skills=[]),
        make_job("j3", required_skills=["Docker", "Python"], preferred_skills=["python"]),
    ]


def test_skills_ranked_by_frequency_counting_each_job_once():
    market = aggregate_market_skills(_sample(), top_n=2)

    assert market.sample_size == 3
    assert market.ranked == ["Python", "Docker", "SQL"]
    assert market.frequencies == {"Python": 3, "Docker": 2, "SQL": 1}
    assert market.critical == ["Python", "Docker"]


def test_missing_and_critical_lookups():
    market = aggregate_market_skills(_sample(), top_n=2)

    assert market.missing_for(["python"]) == ["Docker", "SQL"]
    assert market.is_critical("docker")
    assert not market.is_critical("SQL")


def test_empty_sample():
    market = aggregate_market_skills([], top_n=10)
    assert market.is_empty
    assert market.critical == []


def test_single_job_context_marks_every_skill_critical():
    market = job_market_skills(make_job(required_skills=["Python", "Django"], preferred_skills=["Docker"]))
    assert market.critical == ["Python", "Django", "Docker"]


def test_cache_key():
    assert market_cache_key(50, 10) == "market-skills:50:10"
