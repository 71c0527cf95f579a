"""Per-source fallback chain.

Strategies are tried strictly in order. The first one that yields at least one
accepted record wins; when all of them fail the source falls back to synthetic
records so it always contributes data.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Sequence

from civicdata.acquisition.strategies import Strategy
from civicdata.acquisition.synthetic import SyntheticDataGenerator
from civicdata.acquisition.transformers import TransformContext, TransformOutcome, transform_batch
from civicdata.common.constants import DEFAULT_ATTEMPT_TIMEOUT_SECONDS, DEFAULT_SYNTHETIC_COUNT, SYNTHETIC_PROVENANCE
from civicdata.common.errors import AcquisitionError, NetworkError, PipelineError, SchemaError
from civicdata.common.http import HttpClient
from civicdata.common.logging import log_event
from civicdata.common.models import SourceResult, StrategyAttempt
from civicdata.common.time_utils import utc_timestamp_iso

COMPONENT = "executor"


class EmptyBatchError(SchemaError):
    """Strategy answered successfully but produced no usable records."""

    error_code = "EMPTY_BATCH"


class AttemptCancelledError(AcquisitionError):
    """Strategy was cancelled without the caller cancelling the run."""

    error_code = "CANCELLED"


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


class FallbackChainExecutor:
    def __init__(
        self,
        source_name: str,
        strategies: Sequence[Strategy],
        synthetic: SyntheticDataGenerator,
        *,
        client: HttpClient,
        logger: logging.Logger,
        synthetic_count: int = DEFAULT_SYNTHETIC_COUNT,
        attempt_timeout: float = DEFAULT_ATTEMPT_TIMEOUT_SECONDS,
    ) -> None:
        if not strategies:
            raise ValueError(f"Source {source_name} needs at least one strategy")
        self.source_name = source_name
        self.strategies = tuple(strategies)
        self.synthetic = synthetic
        self.client = client
        self.logger = logger
        self.synthetic_count = synthetic_count
        self.attempt_timeout = attempt_timeout

    async def _attempt(self, strategy: Strategy, captured_at: str) -> tuple[int, TransformOutcome]:
        try:
            rows = await asyncio.wait_for(strategy.fetch(self.client), timeout=self.attempt_timeout)
        except asyncio.TimeoutError as exc:
            raise NetworkError(f"Attempt timed out after {self.attempt_timeout}s") from exc

        context = TransformContext(
            source_name=self.source_name,
            provenance=strategy.name,
            captured_at=captured_at,
            rng=self.synthetic.rng,
        )
        outcome = transform_batch(strategy.transformer, rows, context)
        if not rows:
            raise EmptyBatchError(f"Strategy {strategy.name} returned an empty array")
        if not outcome.records:
            raise EmptyBatchError(f"Strategy {strategy.name} had all {outcome.rejected} rows rejected")
        return len(rows), outcome

    async def _run_attempt(self, strategy: Strategy, captured_at: str) -> tuple[int, TransformOutcome]:
        """Run one attempt in its own task.

        A ``CancelledError`` raised by the strategy itself surfaces as
        ``AttemptCancelledError``. Cancelling the task running the chain
        cancels the attempt and re-raises.
        """
        attempt = asyncio.ensure_future(self._attempt(strategy, captured_at))
        try:
            await asyncio.wait({attempt})
        except asyncio.CancelledError:
            attempt.cancel()
            await asyncio.wait({attempt})
            raise
        try:
            return attempt.result()
        except asyncio.CancelledError as exc:
            raise AttemptCancelledError(f"Strategy {strategy.name} was cancelled") from exc

    async def run(self) -> SourceResult:
        attempts: list[StrategyAttempt] = []
        captured_at = utc_timestamp_iso()

        for attempt_no, strategy in enumerate(self.strategies, start=1):
            log_event(
                self.logger,
                "strategy start",
                component=COMPONENT,
                source=self.source_name,
                strategy=strategy.name,
                event="STRATEGY_START",
                status="ok",
                attempt=attempt_no,
            )
            started = time.monotonic()
            try:
                rows_in, outcome = await self._run_attempt(strategy, captured_at)
            except PipelineError as exc:
                error_code = exc.error_code
                detail = str(exc)
            except Exception as exc:
                error_code = "UNEXPECTED_ERROR"
                detail = f"{type(exc).__name__}: {exc}"
            else:
                duration_ms = _elapsed_ms(started)
                attempts.append(
                    StrategyAttempt(
                        strategy=strategy.name,
                        status="ok",
                        duration_ms=duration_ms,
                        rows_in=rows_in,
                        rows_out=len(outcome.records),
                    )
                )
                log_event(
                    self.logger,
                    "strategy succeeded",
                    component=COMPONENT,
                    source=self.source_name,
                    strategy=strategy.name,
                    event="STRATEGY_OK",
                    status="ok",
                    attempt=attempt_no,
                    duration_ms=duration_ms,
                    rows_in=rows_in,
                    rows_out=len(outcome.records),
                    rejected=outcome.rejected,
                )
                return self._finish(
                    SourceResult(
                        source_name=self.source_name,
                        records=tuple(outcome.records),
                        provenance=strategy.name,
                        live=True,
                        rejected_count=outcome.rejected,
                        attempts=tuple(attempts),
                    )
                )

            duration_ms = _elapsed_ms(started)
            attempts.append(
                StrategyAttempt(
                    strategy=strategy.name,
                    status="error",
                    duration_ms=duration_ms,
                    error_code=error_code,
                )
            )
            log_event(
                self.logger,
                f"strategy failed: {detail}",
                level=logging.WARNING,
                component=COMPONENT,
                source=self.source_name,
                strategy=strategy.name,
                event="STRATEGY_FAIL",
                status="error",
                attempt=attempt_no,
                duration_ms=duration_ms,
                error_code=error_code,
            )

        records = self.synthetic.generate(self.source_name, self.synthetic_count, captured_at=captured_at)
        log_event(
            self.logger,
            "all strategies failed, using synthetic data",
            level=logging.WARNING,
            component=COMPONENT,
            source=self.source_name,
            strategy=SYNTHETIC_PROVENANCE,
            event="SYNTHETIC_FALLBACK",
            status="fallback",
            rows_out=len(records),
        )
        return self._finish(
            SourceResult(
                source_name=self.source_name,
                records=tuple(records),
                provenance=SYNTHETIC_PROVENANCE,
                live=False,
                attempts=tuple(attempts),
            )
        )

    def _finish(self, result: SourceResult) -> SourceResult:
        log_event(
            self.logger,
            "source done",
            component=COMPONENT,
            source=self.source_name,
            strategy=result.provenance,
            event="SOURCE_DONE",
            status="ok" if result.live else "fallback",
            rows_out=len(result.records),
            rejected=result.rejected_count,
        )
        return result
