"""Tests for settings validation and structured logging."""

from __future__ import annotations

import json
import logging
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from scenario_scoring.core.config import Settings
from scenario_scoring.core.logging import (
    SensitiveDataFilter,
    StructuredFormatter,
    get_logger,
    request_id_var,
)
from scenario_scoring.scoring.engine import ScoringConfig


class TestSettings:
    """Tests for Settings validation."""

    def test_scoring_defaults(self):
        s = Settings()

        assert s.benchmark_ticker == "SPY"
        assert s.return_score_sensitivity == 2.0
        assert s.return_score_weight + s.drawdown_score_weight == pytest.approx(1.0)

    def test_cors_origins_from_comma_string(self):
        s = Settings(cors_origins="https://a.example, https://b.example,")

        assert s.cors_origins == ["https://a.example", "https://b.example"]

    def test_benchmark_ticker_normalized(self):
        assert Settings(benchmark_ticker=" qqq ").benchmark_ticker == "QQQ"

    def test_log_level_validated(self):
        assert Settings(log_level="debug").log_level == "DEBUG"
        with pytest.raises(ValidationError):
            Settings(log_level="verbose")

    def test_zero_score_weights_rejected(self):
        with pytest.raises(ValidationError):
            Settings(return_score_weight=0.0, drawdown_score_weight=0.0)

    def test_scoring_config_reads_settings(self):
        custom = Settings(return_score_sensitivity=1.5, drawdown_score_weight=0.7)

        with patch("scenario_scoring.scoring.engine.settings", custom):
            cfg = ScoringConfig.from_settings()

        assert cfg.return_sensitivity == 1.5
        assert cfg.drawdown_weight == 0.7


class TestStructuredLogging:
    """Tests for the JSON formatter and redaction filter."""

    def _record(self, msg: str, **extra) -> logging.LogRecord:
        record = logging.LogRecord(
            "scenario_scoring.test", logging.INFO, __file__, 1, msg, None, None
        )
        for key, value in extra.items():
            setattr(record, key, value)
        return record

    def test_json_fields(self):
        token = request_id_var.set("req-42")
        try:
            output = StructuredFormatter().format(
                self._record("scored", analog_id="covid-crash")
            )
        finally:
            request_id_var.reset(token)

        data = json.loads(output)
        assert data["message"] == "scored"
        assert data["level"] == "INFO"
        assert data["request_id"] == "req-42"
        assert data["extra"] == {"analog_id": "covid-crash"}

    def test_sensitive_values_redacted(self):
        record = self._record("connecting with password=hunter2")

        SensitiveDataFilter().filter(record)

        assert "hunter2" not in record.getMessage()
        assert "[REDACTED]" in record.getMessage()

    def test_logger_prefix(self):
        assert get_logger("scoring").name == "scenario_scoring.scoring"
