"""Tests for settings and installation configuration models."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from hotpot.config import Settings
from hotpot.core.exceptions import ConfigError
from hotpot.core.time_utils import (
    ONE_HOUR_MS,
    format_delta,
    midnight_ms,
    parse_epoch_ms,
    parse_hms,
    time_of_day_ms,
)
from hotpot.models.enums import Service
from hotpot.models.schemas import ControllerConfig, TimepointConfig

MINIMAL = {
    "thermostat": {"CH": {"id": "28-0316027f81ff"}, "HW": {"id": "28-0316027c72ff"}},
    "pin": {"CH": {"gpio": 23}, "HW": {"gpio": 25}},
}


class TestSettings:
    def test_env_prefix(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("HOTPOT_PORT", "8080")
        monkeypatch.setenv("HOTPOT_SIMULATE", "true")
        monkeypatch.setenv("HOTPOT_LOG_LEVEL", " DEBUG ")
        settings = Settings()
        assert settings.port == 8080
        assert settings.simulate is True
        assert settings.log_level == "debug"


class TestControllerConfig:
    def test_defaults(self) -> None:
        config = ControllerConfig.model_validate(MINIMAL)
        assert set(config.thermostat) == {Service.CH, Service.HW}
        assert config.valve_return == 8000
        assert config.rule_interval == 5000
        assert config.thermostat[Service.CH].poll_every == 20

    def test_both_services_required(self) -> None:
        raw = dict(MINIMAL, pin={"CH": {"gpio": 23}})
        with pytest.raises(ValidationError, match="'pin' must configure HW"):
            ControllerConfig.model_validate(raw)

    def test_unknown_keys_rejected(self) -> None:
        with pytest.raises(ValidationError):
            ControllerConfig.model_validate(dict(MINIMAL, weather={}))

    def test_timeline_from_file(self, tmp_path: Path) -> None:
        timeline = tmp_path / "ch_timeline.json"
        timeline.write_text(json.dumps({"min": 5, "max": 25, "points": []}))
        raw = json.loads(json.dumps(MINIMAL))
        raw["thermostat"]["CH"]["timeline"] = str(timeline)
        config = ControllerConfig.model_validate(raw)
        assert config.thermostat[Service.CH].timeline.max == 25

    def test_from_file(self, tmp_path: Path) -> None:
        path = tmp_path / "hotpot.json"
        path.write_text(json.dumps(MINIMAL))
        assert ControllerConfig.from_file(path).pin[Service.HW].gpio == 25

    def test_from_file_errors(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="Cannot read"):
            ControllerConfig.from_file(tmp_path / "absent.json")
        bad = tmp_path / "bad.json"
        bad.write_text(json.dumps({"thermostat": {}}))
        with pytest.raises(ConfigError, match="Invalid configuration"):
            ControllerConfig.from_file(bad)

    def test_timepoint_needs_one_time(self) -> None:
        with pytest.raises(ValidationError):
            TimepointConfig.model_validate({"value": 10})
        with pytest.raises(ValidationError):
            TimepointConfig.model_validate({"time": 1, "times": "01:00", "value": 10})


class TestTimeUtils:
    def test_parse_hms(self) -> None:
        assert parse_hms("06") == 6 * ONE_HOUR_MS
        assert parse_hms("06:30:15") == 6 * ONE_HOUR_MS + 30 * 60_000 + 15_000
        with pytest.raises(ValueError):
            parse_hms("25:00")

    def test_format_delta(self) -> None:
        assert format_delta(3_723_000) == "1h 02m 03s"
        assert format_delta(59_000) == "59s"

    def test_parse_epoch_ms(self) -> None:
        assert parse_epoch_ms("2024-01-01T00:00:00+00:00") == 1_704_067_200_000
        with pytest.raises(ValueError):
            parse_epoch_ms("soon")

    def test_time_of_day(self) -> None:
        now = midnight_ms(1_700_000_000_000) + 7 * ONE_HOUR_MS + 5
        assert time_of_day_ms(now) == 7 * ONE_HOUR_MS + 5
