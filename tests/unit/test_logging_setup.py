import json
import logging
import sys

import pytest

from formrecords.logging_setup import JsonFormatter, log_level_from_env


@pytest.mark.unit
def test_json_lines_carry_context_from_extra() -> None:
    record = logging.LogRecord("importer", logging.WARNING, __file__, 1, "skipped %d", (1,), None)
    record.form_id = "F1"
    record.error_code = "empty_response"
    record.unrelated = "dropped"

    payload = json.loads(JsonFormatter().format(record))

    assert payload["message"] == "skipped 1"
    assert payload["level"] == "WARNING"
    assert payload["logger"] == "importer"
    assert payload["form_id"] == "F1"
    assert payload["error_code"] == "empty_response"
    assert "unrelated" not in payload
    assert "response_id" not in payload


@pytest.mark.unit
def test_exception_text_is_included() -> None:
    try:
        raise RuntimeError("boom")
    except RuntimeError:
        record = logging.LogRecord("runtime", logging.ERROR, __file__, 1, "failed", (), None)
        record.exc_info = sys.exc_info()

    payload = json.loads(JsonFormatter().format(record))

    assert "RuntimeError: boom" in payload["exc_info"]


@pytest.mark.unit
@pytest.mark.parametrize(
    ("value", "expected"),
    [(None, logging.INFO), ("debug", logging.DEBUG), (" WARNING ", logging.WARNING), ("chatty", logging.INFO)],
)
def test_log_level_from_env(monkeypatch: pytest.MonkeyPatch, value: str | None, expected: int) -> None:
    if value is None:
        monkeypatch.delenv("LOG_LEVEL", raising=False)
    else:
        monkeypatch.setenv("LOG_LEVEL", value)

    assert log_level_from_env() == expected
