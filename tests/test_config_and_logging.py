from __future__ import annotations

import json
import logging
import sys
from collections.abc import Callable, Iterator
from pathlib import Path

import pytest
from pydantic import ValidationError

from selfassess_behaviour.attempt import QuestionAttempt
from selfassess_behaviour.config import Settings, get_settings
from selfassess_behaviour.logging_setup import JSONFormatter, attempt_context, configure_logging


@pytest.fixture
def clean_settings_cache() -> Iterator[None]:
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def restore_root_logging() -> Iterator[None]:
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


def test_settings_defaults(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.chdir(tmp_path)
    for name in ("SELFASSESS_LOG_LEVEL", "SELFASSESS_SUMMARY_COMMENT_LENGTH", "SELFASSESS_REPORT_PATH"):
        monkeypatch.delenv(name, raising=False)

    settings = Settings()

    assert settings.log_level == "INFO"
    assert settings.summary_comment_length == 200
    assert settings.scenario_dir == Path("demos/scenarios")
    assert settings.report_path is None


def test_settings_read_prefixed_environment(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path, clean_settings_cache: None
) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("SELFASSESS_LOG_LEVEL", "DEBUG")
    monkeypatch.setenv("SELFASSESS_SUMMARY_COMMENT_LENGTH", "80")
    monkeypatch.setenv("SELFASSESS_REPORT_PATH", "out/report.json")

    settings = get_settings()

    assert settings.log_level == "DEBUG"
    assert settings.summary_comment_length == 80
    assert settings.report_path == Path("out/report.json")
    assert get_settings() is settings


def test_settings_read_dotenv_file(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("SELFASSESS_SUMMARY_COMMENT_LENGTH", raising=False)
    (tmp_path / ".env").write_text("SELFASSESS_SUMMARY_COMMENT_LENGTH=120\n", encoding="utf-8")

    assert Settings().summary_comment_length == 120


def test_settings_reject_tiny_comment_length(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("SELFASSESS_SUMMARY_COMMENT_LENGTH", "2")

    with pytest.raises(ValidationError):
        Settings()


def _record(msg: str, *, exc_info: object = None) -> logging.LogRecord:
    return logging.LogRecord(
        name="selfassess_behaviour.engine",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg=msg,
        args=(),
        exc_info=exc_info,  # type: ignore[arg-type]
    )


def test_json_formatter_includes_attempt_id_inside_context() -> None:
    formatter = JSONFormatter()

    with attempt_context("attempt:42"):
        inside = json.loads(formatter.format(_record("kept self_assess action")))
    outside = json.loads(formatter.format(_record("idle")))

    assert inside["attempt_id"] == "attempt:42"
    assert inside["level"] == "INFO"
    assert inside["logger"] == "selfassess_behaviour.engine"
    assert inside["msg"] == "kept self_assess action"
    assert "attempt_id" not in outside


def test_json_formatter_renders_exceptions() -> None:
    try:
        raise RuntimeError("boom")
    except RuntimeError:
        payload = json.loads(JSONFormatter().format(_record("failed", exc_info=sys.exc_info())))

    assert "RuntimeError: boom" in payload["exc_info"]


def test_configure_logging_installs_json_handler(restore_root_logging: None) -> None:
    logger = configure_logging("DEBUG")

    root = logging.getLogger()
    assert logger.name == "selfassess_behaviour"
    assert root.level == logging.DEBUG
    assert len(root.handlers) == 1
    assert isinstance(root.handlers[0].formatter, JSONFormatter)


def test_attempt_logs_carry_attempt_id(make_finished_attempt: Callable[..., QuestionAttempt]) -> None:
    attempt = make_finished_attempt()
    formatter = JSONFormatter()
    seen: list[dict] = []

    class _Capture(logging.Handler):
        def emit(self, record: logging.LogRecord) -> None:
            seen.append(json.loads(formatter.format(record)))

    handler = _Capture()
    logger = logging.getLogger("selfassess_behaviour.attempt")
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)
    try:
        attempt.process_submission({"-stars": "5", "-rate": "1"})
    finally:
        logger.removeHandler(handler)
        logger.setLevel(logging.NOTSET)

    assert seen and seen[-1]["attempt_id"] == "attempt:test"
    assert "manfinished" in seen[-1]["msg"]
