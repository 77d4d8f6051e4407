from __future__ import annotations

import logging

from app import _collect_redaction_values, _RedactingFormatter


def test_token_is_masked_in_log_records() -> None:
    formatter = _RedactingFormatter(["ghp_secret"], fmt="%(message)s")
    record = logging.LogRecord("gitstatus", logging.INFO, __file__, 1, "token=%s", ("ghp_secret",), None)
    assert formatter.format(record) == "token=***"


def test_redaction_values_include_env_patterns(monkeypatch) -> None:
    monkeypatch.setenv("EXTRA_SECRET", "abc")
    values = _collect_redaction_values({"redact": {"patterns": ["EXTRA_SECRET"]}}, "ghp_longer_token")
    assert values == ["ghp_longer_token", "abc"]


def test_redaction_can_be_disabled(monkeypatch) -> None:
    monkeypatch.setenv("GITHUB_TOKEN", "from-env")
    assert _collect_redaction_values({"redact": {"enabled": False}}, "") == []
