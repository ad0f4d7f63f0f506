"""
Tests for configuration loading.
"""

import pytest
from pydantic import ValidationError

from syllacal.config import AppConfig, DefaultsConfig, StressConfig
from syllacal.domain.models import TimeWindowPreference

CONFIG_YAML = """
google:
  client_id: "client-id.apps.googleusercontent.com"
  client_secret: "secret"
timezone: "America/Chicago"
log_level: info
defaults:
  duration_minutes: 45
  search_days: 7
  time_window: Afternoon
stress:
  total_days: 14
colleagues:
  - name: alex
    email: Alex@Example.com
  - name: sam
    email: sam@example.com
    calendar_id: cal_sam
"""


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(CONFIG_YAML, encoding="utf-8")
    return path


class TestAppConfig:
    """Tests for AppConfig."""

    def test_load_from_yaml(self, config_file):
        config = AppConfig.load_from_yaml(config_file)

        assert config.google.is_configured()
        assert config.timezone == "America/Chicago"
        assert config.log_level == "INFO"
        assert config.defaults.duration_minutes == 45
        assert config.defaults.search_days == 7
        assert config.defaults.time_window is TimeWindowPreference.AFTERNOON
        assert config.stress.total_days == 14
        assert config.stress.high_stress_day_threshold == 7
        assert [c.name for c in config.colleagues] == ["alex", "sam"]

    def test_defaults(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("", encoding="utf-8")

        config = AppConfig.load_from_yaml(path)

        assert config.timezone == "America/New_York"
        assert config.defaults.duration_minutes == 30
        assert config.defaults.search_days == 14
        assert config.defaults.time_window is TimeWindowPreference.ANY
        assert not config.google.is_configured()
        assert config.colleagues == []

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError, match="Config file not found"):
            AppConfig.load_from_yaml(tmp_path / "config.yaml")

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("timezone: [unclosed", encoding="utf-8")

        with pytest.raises(ValueError, match="Invalid YAML"):
            AppConfig.load_from_yaml(path)

    def test_root_must_be_mapping(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("- one\n- two\n", encoding="utf-8")

        with pytest.raises(ValueError, match="mapping"):
            AppConfig.load_from_yaml(path)

    def test_unknown_timezone(self):
        with pytest.raises(ValidationError, match="Unknown timezone"):
            AppConfig(timezone="Mars/Olympus_Mons")

    def test_invalid_log_level(self):
        with pytest.raises(ValidationError):
            AppConfig(log_level="chatty")

    def test_duplicate_colleague_name(self):
        with pytest.raises(ValidationError, match="Duplicate colleague name"):
            AppConfig(colleagues=[{"name": "Alex", "email": "a@example.com"}, {"name": "alex", "email": "b@example.com"}])

    def test_duplicate_colleague_email(self):
        with pytest.raises(ValidationError, match="Duplicate colleague email"):
            AppConfig(colleagues=[{"name": "a", "email": "x@example.com"}, {"name": "b", "email": "X@example.com"}])

    def test_resolve_participant(self, config_file):
        config = AppConfig.load_from_yaml(config_file)

        assert config.resolve_participant("alex") == "alex@example.com"
        assert config.resolve_participant("SAM") == "sam@example.com"
        assert config.resolve_participant("Someone@Example.com") == "someone@example.com"

    def test_resolve_unknown_participant(self, config_file):
        config = AppConfig.load_from_yaml(config_file)

        with pytest.raises(ValueError, match="Unknown participant identifier: 'bob'"):
            config.resolve_participant("bob")

    def test_find_colleague_by_email(self, config_file):
        config = AppConfig.load_from_yaml(config_file)

        assert config.find_colleague_by_email("SAM@example.com").calendar_id == "cal_sam"
        assert config.find_colleague_by_email("nobody@example.com") is None


class TestDefaultsConfig:
    """Tests for DefaultsConfig."""

    def test_duration_minimum(self):
        with pytest.raises(ValidationError, match="at least 15"):
            DefaultsConfig(duration_minutes=10)

    @pytest.mark.parametrize("days", [0, 61])
    def test_search_days_range(self, days):
        with pytest.raises(ValidationError):
            DefaultsConfig(search_days=days)

    def test_unknown_time_window(self):
        with pytest.raises(ValidationError, match="Unknown time window"):
            DefaultsConfig(time_window="night")


class TestStressConfig:
    """Tests for StressConfig."""

    @pytest.mark.parametrize("days", [0, 366])
    def test_total_days_range(self, days):
        with pytest.raises(ValidationError):
            StressConfig(total_days=days)
