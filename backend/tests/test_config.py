"""Tests for settings and feed configuration loading."""

import pytest

from aisfeed.ais.client import AISStreamClient
from aisfeed.ais.config import (
    FeedConfigError,
    build_client,
    build_scheduler_config,
    load_regions,
)
from aisfeed.ais.regions import DEFAULT_REGIONS, SchedulerConfigError, region_from_dict
from aisfeed.config import Settings

REGIONS_YAML = """
regions:
  - id: north-sea
    name: North Sea
    priority: 3
    bounds:
      min_lat: 51.0
      max_lat: 61.0
      min_lon: -4.0
      max_lon: 9.0
  - id: baltic
    name: ${BALTIC_NAME}
    priority: 2
    min_lat: 53.5
    max_lat: 66.0
    min_lon: 9.0
    max_lon: 30.5
"""


@pytest.fixture
def regions_file(tmp_path):
    path = tmp_path / "regions.yaml"
    path.write_text(REGIONS_YAML)
    return path


class TestSettings:
    """Test environment driven settings."""

    def test_defaults(self, monkeypatch) -> None:
        monkeypatch.delenv("AISSTREAM_API_KEY", raising=False)
        settings = Settings(_env_file=None)

        assert settings.aisstream_api_key == ""
        assert settings.region_duration_ms == 4 * 60 * 60 * 1000
        assert settings.reconnect_max_attempts == 5
        assert settings.reconnect_base_delay_ms == 1000
        assert settings.auto_rotate is True

    def test_environment_override(self, monkeypatch) -> None:
        monkeypatch.setenv("AISSTREAM_API_KEY", "env-key")
        monkeypatch.setenv("REGION_DURATION_MS", "60000")
        monkeypatch.setenv("AUTO_ROTATE", "false")

        settings = Settings(_env_file=None)

        assert settings.aisstream_api_key == "env-key"
        assert settings.region_duration_ms == 60000
        assert settings.auto_rotate is False


class TestLoadRegions:
    """Test YAML region loading."""

    def test_load_regions(self, regions_file, monkeypatch) -> None:
        monkeypatch.setenv("BALTIC_NAME", "Baltic Sea")

        regions = load_regions(str(regions_file))

        assert [r.id for r in regions] == ["north-sea", "baltic"]
        assert regions[1].name == "Baltic Sea"
        assert regions[0].priority == 3
        assert regions[1].bounds.max_lon == 30.5

    def test_missing_file(self, tmp_path) -> None:
        with pytest.raises(FeedConfigError, match="not found"):
            load_regions(str(tmp_path / "missing.yaml"))

    def test_invalid_yaml(self, tmp_path) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text("regions: [unclosed")

        with pytest.raises(FeedConfigError, match="Invalid YAML"):
            load_regions(str(path))

    def test_missing_regions_list(self, tmp_path) -> None:
        path = tmp_path / "empty.yaml"
        path.write_text("other: 1\n")

        with pytest.raises(FeedConfigError, match="regions"):
            load_regions(str(path))

    def test_invalid_priority(self, tmp_path) -> None:
        path = tmp_path / "priority.yaml"
        path.write_text(
            "regions:\n"
            "  - id: a\n"
            "    name: A\n"
            "    priority: 5\n"
            "    bounds: {min_lat: 0, max_lat: 1, min_lon: 0, max_lon: 1}\n"
        )

        with pytest.raises(FeedConfigError, match="priority"):
            load_regions(str(path))

    def test_region_from_dict_missing_bound(self) -> None:
        with pytest.raises(SchedulerConfigError, match="missing bound"):
            region_from_dict({"id": "a", "name": "A", "bounds": {"min_lat": 0}})


class TestBuilders:
    """Test client and scheduler construction from settings."""

    def test_build_scheduler_config_defaults(self) -> None:
        config = build_scheduler_config(Settings(_env_file=None, region_duration_ms=1000))

        assert config.regions is None
        assert config.region_duration_ms == 1000

    def test_build_scheduler_config_with_file(self, regions_file, monkeypatch) -> None:
        monkeypatch.setenv("BALTIC_NAME", "Baltic Sea")
        settings = Settings(_env_file=None, regions_file=str(regions_file))

        config = build_scheduler_config(settings)

        assert len(config.regions) == 2
        assert config.regions != DEFAULT_REGIONS

    def test_build_client(self, connector) -> None:
        settings = Settings(
            _env_file=None,
            aisstream_api_key="secret",
            reconnect_max_attempts=3,
            reconnect_base_delay_ms=250,
        )

        client = build_client(settings, connector=connector)

        assert isinstance(client, AISStreamClient)
        assert client.api_key == "secret"
        assert client.max_reconnect_attempts == 3
        assert client.reconnect_base_delay_ms == 250

    def test_build_client_requires_key(self, monkeypatch) -> None:
        monkeypatch.delenv("AISSTREAM_API_KEY", raising=False)

        with pytest.raises(FeedConfigError, match="AISSTREAM_API_KEY"):
            build_client(Settings(_env_file=None))
