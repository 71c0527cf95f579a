"""Configuration loading and validation."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

from civicdata.common.constants import SOURCES_CONFIG_FILENAME
from civicdata.common.errors import ConfigError
from civicdata.common.fs import read_yaml
from civicdata.common.schema import validate_sources_config


@dataclass(frozen=True)
class SourcesConfig:
    defaults: dict
    sources: dict[str, dict]

    @property
    def source_names(self) -> list[str]:
        return list(self.sources)


def _deep_merge(base: Any, overlay: Any) -> Any:
    if isinstance(base, dict) and isinstance(overlay, dict):
        merged = dict(base)
        for key, value in overlay.items():
            if key in merged:
                merged[key] = _deep_merge(merged[key], value)
            else:
                merged[key] = value
        return merged
    return overlay


def _load_yaml_with_overlay(path: Path, overlay_path: Path | None) -> dict:
    if not path.exists():
        raise ConfigError(f"Missing config file: {path}")
    base = read_yaml(path)
    if overlay_path is None or not overlay_path.exists():
        return base
    overlay = read_yaml(overlay_path)
    if overlay is None:
        return base
    return _deep_merge(base, overlay)


def load_sources_config(
    config_dir: Path,
    *,
    allow_unknown: bool = False,
    overlay_config_dir: Path | None = None,
) -> SourcesConfig:
    overlay_path = None
    if overlay_config_dir is not None:
        overlay_path = overlay_config_dir / SOURCES_CONFIG_FILENAME
    cfg = _load_yaml_with_overlay(config_dir / SOURCES_CONFIG_FILENAME, overlay_path)
    cfg = validate_sources_config(cfg, allow_unknown=allow_unknown)
    return SourcesConfig(defaults=cfg["defaults"], sources=cfg["sources"])


def resolve_sources(config: SourcesConfig, requested: list[str] | None) -> list[str]:
    if not requested:
        return config.source_names
    unknown = [name for name in requested if name not in config.sources]
    if unknown:
        raise ConfigError(f"Unknown sources: {', '.join(unknown)}")
    return [name for name in config.source_names if name in requested]
