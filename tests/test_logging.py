"""Tests for structured logging helpers."""

import json
import logging
import sys

from trendpress.config import LoggingConfig
from trendpress.utils.logging import (
    JsonlFormatter,
    log_event,
    redact_text,
    setup_llm_logger,
    setup_logging,
    truncate_text,
)


def test_setup_logging_writes_jsonl_with_extra_fields(tmp_path):
    cfg = LoggingConfig(console=False, file=True, format="jsonl")
    logger = setup_logging(cfg, tmp_path)

    log_event(logging.getLogger("trendpress.scrape"), "Scrape finished", event="scrape_finished", new=3)
    for handler in logger.handlers:
        handler.flush()

    lines = (tmp_path / "run.jsonl").read_text(encoding="utf-8").splitlines()
    payload = json.loads(lines[-1])
    assert payload["message"] == "Scrape finished"
    assert payload["logger"] == "trendpress.scrape"
    assert payload["event"] == "scrape_finished"
    assert payload["new"] == 3
    for handler in logger.handlers:
        handler.close()
    logger.handlers = []


def test_setup_logging_without_file(tmp_path):
    logger = setup_logging(LoggingConfig(console=False, file=False), tmp_path)
    assert logger.handlers == []
    assert not (tmp_path / "run.jsonl").exists()


def test_llm_logger_disabled():
    assert setup_llm_logger(LoggingConfig(llm_log_enabled=False), None) is None


def test_jsonl_formatter_includes_exception():
    try:
        raise ValueError("bad")
    except ValueError:
        record = logging.getLogger("t").makeRecord(
            "t", logging.ERROR, __file__, 1, "failed", None, exc_info=sys.exc_info()
        )
    payload = json.loads(JsonlFormatter().format(record))
    assert payload["level"] == "ERROR"
    assert "ValueError: bad" in payload["exception"]


def test_redact_and_truncate():
    assert redact_text("see https://a.example.com/x now", "redact_urls") == "see [REDACTED_URL] now"
    assert redact_text("secret", "redact_content") == ""
    assert redact_text("plain", "none") == "plain"
    assert truncate_text("abcdef", 3) == "abc...(truncated)"


def test_log_event_tolerates_missing_logger():
    log_event(None, "ignored", event="x")
