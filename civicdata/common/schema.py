"""Minimal strict schemas for YAML config validation."""

from __future__ import annotations

from civicdata.common.errors import ConfigError

SOURCE_DOMAINS = ("health", "environmental", "facility")
STRATEGY_KINDS = ("http", "fixed")


def _assert_mapping(obj: object, ctx: str) -> dict:
    if not isinstance(obj, dict):
        raise ConfigError(f"{ctx} must be a mapping")
    return obj


def _assert_required_keys(obj: dict, required: set[str], ctx: str) -> None:
    missing = required - set(obj)
    if missing:
        missing_str = ", ".join(sorted(missing))
        raise ConfigError(f"Missing keys in {ctx}: {missing_str}")


def _assert_no_unknown_keys(obj: dict, known: set[str], ctx: str, allow_unknown: bool) -> None:
    if allow_unknown:
        return
    unknown = set(obj) - known
    if unknown:
        unknown_str = ", ".join(sorted(unknown))
        raise ConfigError(f"Unknown keys in {ctx}: {unknown_str}")


def _positive_number(value: object, ctx: str) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        raise ConfigError(f"{ctx} must be a positive number")


def _positive_int(value: object, ctx: str) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ConfigError(f"{ctx} must be a positive integer")


def validate_strategy_config(strategy: dict, ctx: str, *, allow_unknown: bool = False) -> dict:
    _assert_mapping(strategy, ctx)
    kind = strategy.get("kind", "http")
    if kind not in STRATEGY_KINDS:
        raise ConfigError(f"{ctx}.kind must be one of {', '.join(STRATEGY_KINDS)}")

    known = {"name", "kind", "transformer", "url", "params", "headers", "auth", "timeout_seconds", "rows"}
    _assert_no_unknown_keys(strategy, known, ctx, allow_unknown)
    if kind == "http":
        _assert_required_keys(strategy, {"name", "transformer", "url"}, ctx)
    else:
        _assert_required_keys(strategy, {"name", "transformer", "rows"}, ctx)
        if not isinstance(strategy["rows"], list):
            raise ConfigError(f"{ctx}.rows must be a list")

    if "auth" in strategy:
        auth = _assert_mapping(strategy["auth"], f"{ctx}.auth")
        _assert_required_keys(auth, {"header", "env"}, f"{ctx}.auth")
    for key in ("params", "headers"):
        if key in strategy:
            _assert_mapping(strategy[key], f"{ctx}.{key}")
    if "timeout_seconds" in strategy:
        _positive_number(strategy["timeout_seconds"], f"{ctx}.timeout_seconds")
    return strategy


def validate_sources_config(cfg: dict, *, allow_unknown: bool = False) -> dict:
    cfg = _assert_mapping(cfg, "sources config")
    _assert_required_keys(cfg, {"defaults", "sources"}, "sources config")
    _assert_no_unknown_keys(cfg, {"defaults", "sources"}, "sources config", allow_unknown)

    defaults = _assert_mapping(cfg["defaults"], "defaults")
    _assert_required_keys(defaults, {"attempt_timeout_seconds", "synthetic_count"}, "defaults")
    _positive_number(defaults["attempt_timeout_seconds"], "defaults.attempt_timeout_seconds")
    _positive_int(defaults["synthetic_count"], "defaults.synthetic_count")

    sources = _assert_mapping(cfg["sources"], "sources")
    if not sources:
        raise ConfigError("sources must be a non-empty mapping")

    for source_name, source in sources.items():
        ctx = f"sources.{source_name}"
        _assert_mapping(source, ctx)
        _assert_required_keys(source, {"domain", "synthetic", "strategies"}, ctx)
        _assert_no_unknown_keys(
            source,
            {"domain", "synthetic", "strategies", "attempt_timeout_seconds"},
            ctx,
            allow_unknown,
        )
        if source["domain"] not in SOURCE_DOMAINS:
            raise ConfigError(f"{ctx}.domain must be one of {', '.join(SOURCE_DOMAINS)}")

        synthetic = _assert_mapping(source["synthetic"], f"{ctx}.synthetic")
        _assert_required_keys(synthetic, {"profile"}, f"{ctx}.synthetic")
        if "count" in synthetic:
            _positive_int(synthetic["count"], f"{ctx}.synthetic.count")

        strategies = source["strategies"]
        if not isinstance(strategies, list) or not strategies:
            raise ConfigError(f"{ctx}.strategies must be a non-empty list")

        names: list[str] = []
        for idx, strategy in enumerate(strategies):
            validate_strategy_config(strategy, f"{ctx}.strategies[{idx}]", allow_unknown=allow_unknown)
            names.append(strategy["name"])

        dupes = {name for name in names if names.count(name) > 1}
        if dupes:
            raise ConfigError(f"Duplicate strategy names in {ctx}: {', '.join(sorted(dupes))}")

    return cfg
