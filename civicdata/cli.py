"""CLI entrypoint for the civic data aggregation layer."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

import httpx

from civicdata.acquisition.orchestrator import AggregationFilter, AggregationOrchestrator, run_with_deadline
from civicdata.acquisition.registry import build_executors
from civicdata.common.config_loader import load_sources_config
from civicdata.common.constants import EXIT_HARD_FAIL, EXIT_PARTIAL, EXIT_SUCCESS
from civicdata.common.errors import PipelineError
from civicdata.common.fs import write_json
from civicdata.common.http import HttpClient
from civicdata.common.ids import generate_run_id
from civicdata.common.logging import build_logger, log_event
from civicdata.common.models import AggregationResult
from civicdata.pipeline.reports import write_run_summary


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("command", choices=["aggregate"])
    parser.add_argument("--source", action="append", default=None, dest="sources")
    parser.add_argument("--borough", action="append", default=None, dest="boroughs")
    parser.add_argument("--config-dir", default="./config")
    parser.add_argument("--overlay-config-dir", default=None)
    parser.add_argument("--data-dir", default="./data")
    parser.add_argument("--output", default=None)
    parser.add_argument("--run-id", default=None)
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--deadline", type=float, default=None)
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARN", "ERROR"])
    return parser.parse_args(argv)


async def run_aggregation(
    args: argparse.Namespace,
    logger: logging.Logger,
    transport: httpx.AsyncBaseTransport | None = None,
) -> AggregationResult:
    config_dir = Path(args.config_dir)
    overlay_config_dir = Path(args.overlay_config_dir) if args.overlay_config_dir else None
    config = load_sources_config(config_dir, overlay_config_dir=overlay_config_dir)
    filters = AggregationFilter.build(sources=args.sources, boroughs=args.boroughs)

    async with HttpClient(transport=transport) as client:
        executors = build_executors(config, client=client, logger=logger, seed=args.seed)
        orchestrator = AggregationOrchestrator(executors, logger=logger)
        return await run_with_deadline(orchestrator, filters, deadline=args.deadline)


def run_command(args: argparse.Namespace, transport: httpx.AsyncBaseTransport | None = None) -> int:
    run_id = args.run_id or generate_run_id()
    data_dir = Path(args.data_dir)
    logger = build_logger(run_id, log_dir=data_dir, level=args.log_level)

    try:
        result = asyncio.run(run_aggregation(args, logger, transport))
    except PipelineError as exc:
        log_event(
            logger,
            f"aggregation failed: {exc}",
            level=logging.ERROR,
            run_id=run_id,
            component="cli",
            event="AGGREGATION_END",
            status="error",
            error_code=exc.error_code,
        )
        return EXIT_HARD_FAIL

    output_path = Path(args.output) if args.output else data_dir / "out" / "dataset.json"
    write_json(output_path, result.to_response())
    write_run_summary(data_dir, run_id=run_id, result=result)

    if not result.success:
        return EXIT_HARD_FAIL
    if not all(result.per_source_live.values()):
        return EXIT_PARTIAL
    return EXIT_SUCCESS


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv or sys.argv[1:])
    try:
        return run_command(args)
    except PipelineError:
        return EXIT_HARD_FAIL


if __name__ == "__main__":
    raise SystemExit(main())
