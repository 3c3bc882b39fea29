import logging

import pytest

from career_match.utils.logging_config import (
    configure_for_environment, get_logger, log_function_call, setup_logging
)


@pytest.fixture
def restore_test_logging(monkeypatch):
    yield
    monkeypatch.setenv("ENVIRONMENT", "testing")
    configure_for_environment()


def _root_handler_types():
    return {type(h).__name__ for h in logging.getLogger().handlers}


def test_loggers_live_under_the_package():
    assert get_logger("services.ranking").name == "career_match.services.ranking"
    assert get_logger("career_match.main").name == "career_match.main"


def test_testing_environment_logs_to_console_only(monkeypatch, restore_test_logging):
    monkeypatch.setenv("ENVIRONMENT", "testing")
    configure_for_environment()

    assert _root_handler_types() == {"StreamHandler"}
    assert logging.getLogger().level == logging.WARNING


def test_file_logging_writes_general_and_error_files(monkeypatch, tmp_path, restore_test_logging):
    monkeypatch.setenv("LOG_DIR", str(tmp_path))
    setup_logging(level="INFO", enable_console=False)

    get_logger("test").error("scoring failed")
    for handler in logging.getLogger().handlers:
        handler.flush()

    names = sorted(p.name for p in tmp_path.iterdir())
    assert len(names) == 2
    assert any(n.startswith("career_match_errors_") for n in names)
    assert all("scoring failed" in (tmp_path / n).read_text() for n in names)


class TestLogFunctionCall:

    def test_sync_result_and_errors_pass_through(self):
        @log_function_call
        def double(x):
            if x < 0:
                raise ValueError("negative")
            return x * 2

        assert double(2) == 4
        assert double.__name__ == "double"
        with pytest.raises(ValueError):
            double(-1)

    async def test_async_result_passes_through(self):
        @log_function_call
        async def triple(x):
            return x * 3

        assert await triple(2) == 6
