"""Build fallback chain executors from the sources configuration."""

from __future__ import annotations

import logging
import random

from civicdata.acquisition.executor import FallbackChainExecutor
from civicdata.acquisition.strategies import build_strategy
from civicdata.acquisition.synthetic import SyntheticDataGenerator
from civicdata.common.config_loader import SourcesConfig, resolve_sources
from civicdata.common.errors import ConfigError
from civicdata.common.http import HttpClient


def _source_rng(seed: int | None, source_name: str) -> random.Random:
    if seed is None:
        return random.Random()
    # str seeds are stable across processes.
    return random.Random(f"{seed}:{source_name}")


def build_executors(
    config: SourcesConfig,
    *,
    client: HttpClient,
    logger: logging.Logger,
    seed: int | None = None,
    source_names: list[str] | None = None,
) -> dict[str, FallbackChainExecutor]:
    defaults = config.defaults
    executors: dict[str, FallbackChainExecutor] = {}

    for name in resolve_sources(config, source_names):
        source = config.sources[name]
        domain = source["domain"]

        strategies = [build_strategy(strategy_cfg) for strategy_cfg in source["strategies"]]
        for strategy in strategies:
            if strategy.transformer.domain != domain:
                raise ConfigError(
                    f"sources.{name}: transformer {strategy.transformer.name} produces "
                    f"{strategy.transformer.domain} records, source domain is {domain}"
                )

        synthetic_cfg = source["synthetic"]
        synthetic = SyntheticDataGenerator(synthetic_cfg["profile"], rng=_source_rng(seed, name))
        if synthetic.domain != domain:
            raise ConfigError(
                f"sources.{name}: synthetic profile {synthetic.profile} produces "
                f"{synthetic.domain} records, source domain is {domain}"
            )

        executors[name] = FallbackChainExecutor(
            name,
            strategies,
            synthetic,
            client=client,
            logger=logger,
            synthetic_count=int(synthetic_cfg.get("count", defaults["synthetic_count"])),
            attempt_timeout=float(source.get("attempt_timeout_seconds", defaults["attempt_timeout_seconds"])),
        )

    return executors
