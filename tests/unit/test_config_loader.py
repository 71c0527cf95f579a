from pathlib import Path

import pytest

from civicdata.common.config_loader import load_sources_config, resolve_sources
from civicdata.common.errors import ConfigError

MINIMAL_SOURCES = """defaults:
  attempt_timeout_seconds: 8
  synthetic_count: 10
sources:
  health:
    domain: health
    synthetic:
      profile: health
    strategies:
      - name: primary
        url: https://example.test/health.json
        transformer: health_indicators
  green_space:
    domain: facility
    synthetic:
      profile: parks
      count: 5
    strategies:
      - name: primary
        url: https://example.test/parks.json
        transformer: parks
"""


def _write(directory: Path, text: str) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    (directory / "sources.yml").write_text(text, encoding="utf-8")
    return directory


def test_load_sources_config_from_repo_config_dir():
    config = load_sources_config(Path("config"))
    assert config.source_names == [
        "health",
        "air_quality",
        "service_requests",
        "green_space",
        "food_access",
        "snap_access",
    ]
    assert config.defaults["attempt_timeout_seconds"] == 8
    assert config.sources["service_requests"]["attempt_timeout_seconds"] == 10


def test_load_sources_config_missing_file_raises(tmp_path: Path):
    with pytest.raises(ConfigError):
        load_sources_config(tmp_path)


def test_load_sources_config_applies_overlay_values(tmp_path: Path):
    base = _write(tmp_path / "base", MINIMAL_SOURCES)
    overlay = _write(
        tmp_path / "overlay",
        """defaults:
  synthetic_count: 3
sources:
  green_space:
    synthetic:
      count: 7
""",
    )

    config = load_sources_config(base, overlay_config_dir=overlay)

    assert config.defaults == {"attempt_timeout_seconds": 8, "synthetic_count": 3}
    assert config.sources["green_space"]["synthetic"] == {"profile": "parks", "count": 7}
    assert config.sources["health"]["strategies"][0]["name"] == "primary"


def test_load_sources_config_ignores_empty_overlay_file(tmp_path: Path):
    base = _write(tmp_path / "base", MINIMAL_SOURCES)
    overlay = _write(tmp_path / "overlay", "")

    config = load_sources_config(base, overlay_config_dir=overlay)
    assert config.defaults["synthetic_count"] == 10


def test_load_sources_config_ignores_missing_overlay_dir(tmp_path: Path):
    base = _write(tmp_path / "base", MINIMAL_SOURCES)
    config = load_sources_config(base, overlay_config_dir=tmp_path / "nowhere")
    assert config.source_names == ["health", "green_space"]


def test_load_sources_config_rejects_non_mapping_overlay(tmp_path: Path):
    base = _write(tmp_path / "base", MINIMAL_SOURCES)
    overlay = _write(tmp_path / "overlay", "- not\n- a\n- mapping\n")

    with pytest.raises(ConfigError):
        load_sources_config(base, overlay_config_dir=overlay)


def test_load_sources_config_malformed_yaml_is_config_error(tmp_path: Path):
    base = _write(tmp_path / "base", "defaults: [unclosed\n")
    with pytest.raises(ConfigError):
        load_sources_config(base)


def test_resolve_sources_keeps_config_order(tmp_path: Path):
    config = load_sources_config(_write(tmp_path / "base", MINIMAL_SOURCES))
    assert resolve_sources(config, None) == ["health", "green_space"]
    assert resolve_sources(config, ["green_space", "health"]) == ["health", "green_space"]
    assert resolve_sources(config, ["green_space"]) == ["green_space"]


def test_resolve_sources_rejects_unknown_names(tmp_path: Path):
    config = load_sources_config(_write(tmp_path / "base", MINIMAL_SOURCES))
    with pytest.raises(ConfigError):
        resolve_sources(config, ["health", "weather"])
