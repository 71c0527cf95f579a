from __future__ import annotations

import asyncio
import logging

import pytest

from civicdata.acquisition.executor import FallbackChainExecutor
from civicdata.acquisition.strategies import FixedStrategy
from civicdata.acquisition.synthetic import SyntheticDataGenerator
from civicdata.acquisition.transformers import get_transformer
from civicdata.common.errors import HTTPError, NetworkError, SchemaError

LOGGER = logging.getLogger("civicdata.tests.executor")


class ScriptedStrategy:
    """Strategy double that replays a fixed outcome."""

    def __init__(self, name: str, outcome, transformer: str = "parks", delay: float = 0.0):
        self.name = name
        self.outcome = outcome
        self.transformer = get_transformer(transformer)
        self.delay = delay
        self.calls = 0

    async def fetch(self, client):
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if isinstance(self.outcome, BaseException):
            raise self.outcome
        return self.outcome


def _park_rows(count: int) -> list[dict]:
    return [{"signname": f"Park {i}", "borough": "Brooklyn"} for i in range(count)]


def _executor(strategies, *, attempt_timeout: float = 1.0, synthetic_count: int = 12) -> FallbackChainExecutor:
    return FallbackChainExecutor(
        "green_space",
        strategies,
        SyntheticDataGenerator("parks", seed=1),
        client=None,
        logger=LOGGER,
        synthetic_count=synthetic_count,
        attempt_timeout=attempt_timeout,
    )


@pytest.mark.integration
@pytest.mark.asyncio
async def test_third_strategy_wins_after_two_failures():
    first = ScriptedStrategy("token", NetworkError("refused"))
    second = ScriptedStrategy("public", HTTPError("HTTP status: 403", status_code=403))
    third = ScriptedStrategy("alternative", _park_rows(4))

    result = await _executor([first, second, third]).run()

    assert result.provenance == "alternative"
    assert result.live is True
    assert len(result.records) == 4
    assert all(record.provenance == "alternative" for record in result.records)
    assert [attempt.status for attempt in result.attempts] == ["error", "error", "ok"]
    assert [attempt.error_code for attempt in result.attempts] == ["NETWORK_ERROR", "HTTP_ERROR", None]


@pytest.mark.integration
@pytest.mark.asyncio
async def test_first_success_stops_the_chain():
    first = ScriptedStrategy("token", _park_rows(2))
    second = ScriptedStrategy("public", _park_rows(9))

    result = await _executor([first, second]).run()

    assert result.provenance == "token"
    assert second.calls == 0


@pytest.mark.integration
@pytest.mark.asyncio
async def test_all_failures_fall_back_to_synthetic():
    strategies = [
        ScriptedStrategy("token", NetworkError("refused")),
        ScriptedStrategy("public", SchemaError("not json")),
        ScriptedStrategy("alternative", RuntimeError("boom")),
    ]

    result = await _executor(strategies, synthetic_count=12).run()

    assert result.provenance == "synthetic"
    assert result.live is False
    assert len(result.records) == 12
    assert all(record.provenance == "synthetic" for record in result.records)
    assert result.attempts[-1].error_code == "UNEXPECTED_ERROR"


@pytest.mark.integration
@pytest.mark.asyncio
async def test_empty_array_counts_as_failure():
    empty = ScriptedStrategy("public", [])
    backup = ScriptedStrategy("alternative", _park_rows(1))

    result = await _executor([empty, backup]).run()

    assert result.provenance == "alternative"
    assert result.attempts[0].error_code == "EMPTY_BATCH"


@pytest.mark.integration
@pytest.mark.asyncio
async def test_fully_rejected_batch_counts_as_failure():
    unusable = ScriptedStrategy("public", [{"signname": "Lost", "borough": "Atlantis"}] * 3)

    result = await _executor([unusable]).run()

    assert result.live is False
    assert result.attempts[0].error_code == "EMPTY_BATCH"


@pytest.mark.integration
@pytest.mark.asyncio
async def test_partial_rejection_is_reported():
    rows = _park_rows(5) + [{"signname": "Bad", "borough": "Atlantis"}, "junk"]

    result = await _executor([ScriptedStrategy("public", rows)]).run()

    assert len(result.records) == 5
    assert result.rejected_count == 2
    assert result.attempts[0].rows_in == 7
    assert result.attempts[0].rows_out == 5


@pytest.mark.integration
@pytest.mark.asyncio
async def test_attempt_timeout_moves_to_next_strategy():
    slow = ScriptedStrategy("token", _park_rows(3), delay=5.0)
    fast = ScriptedStrategy("public", _park_rows(2))

    result = await _executor([slow, fast], attempt_timeout=0.05).run()

    assert result.provenance == "public"
    assert result.attempts[0].error_code == "NETWORK_ERROR"


@pytest.mark.integration
@pytest.mark.asyncio
async def test_missing_credential_moves_to_next_strategy(monkeypatch):
    from civicdata.acquisition.strategies import HttpStrategy

    monkeypatch.delenv("TEST_APP_TOKEN", raising=False)
    token = HttpStrategy(
        name="token",
        url="https://example.test/parks.json",
        transformer=get_transformer("parks"),
        auth_header="X-App-Token",
        auth_env="TEST_APP_TOKEN",
    )
    fixed = FixedStrategy(name="literal", rows=tuple(_park_rows(2)), transformer=get_transformer("parks"))

    result = await _executor([token, fixed]).run()

    assert result.provenance == "literal"
    assert result.live is True
    assert result.attempts[0].error_code == "AUTH_MISSING"


@pytest.mark.integration
@pytest.mark.asyncio
async def test_caller_cancellation_propagates():
    slow = ScriptedStrategy("token", _park_rows(1), delay=5.0)
    task = asyncio.create_task(_executor([slow], attempt_timeout=10.0).run())
    await asyncio.sleep(0.01)
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task


@pytest.mark.integration
@pytest.mark.asyncio
async def test_strategy_events_are_logged(caplog):
    caplog.set_level(logging.INFO, logger=LOGGER.name)
    strategies = [ScriptedStrategy("token", NetworkError("refused"))]

    await _executor(strategies).run()

    events = [getattr(record, "event", None) for record in caplog.records]
    assert events == ["STRATEGY_START", "STRATEGY_FAIL", "SYNTHETIC_FALLBACK", "SOURCE_DONE"]
    failure = caplog.records[1]
    assert failure.error_code == "NETWORK_ERROR"
    assert failure.strategy == "token"


class SelfCancellingStrategy:
    """Strategy double whose own await is cancelled from inside."""

    def __init__(self, name: str, transformer: str = "parks"):
        self.name = name
        self.transformer = get_transformer(transformer)

    async def fetch(self, client):
        future = asyncio.get_running_loop().create_future()
        future.cancel()
        await future


@pytest.mark.integration
@pytest.mark.asyncio
async def test_strategy_internal_cancellation_moves_to_next_strategy():
    fixed = FixedStrategy(name="literal", rows=tuple(_park_rows(2)), transformer=get_transformer("parks"))

    result = await _executor([SelfCancellingStrategy("token"), fixed]).run()

    assert result.provenance == "literal"
    assert result.live is True
    assert [attempt.error_code for attempt in result.attempts] == ["CANCELLED", None]


@pytest.mark.integration
@pytest.mark.asyncio
async def test_strategy_internal_cancellation_alone_falls_back_to_synthetic():
    result = await _executor([SelfCancellingStrategy("token")], synthetic_count=5).run()

    assert result.live is False
    assert len(result.records) == 5
    assert result.attempts[0].error_code == "CANCELLED"


@pytest.mark.integration
@pytest.mark.asyncio
async def test_caller_cancellation_reaches_in_flight_strategy():
    cancelled = []

    class Hanging:
        name = "token"
        transformer = get_transformer("parks")

        async def fetch(self, client):
            try:
                await asyncio.sleep(30)
            except asyncio.CancelledError:
                cancelled.append(True)
                raise

    task = asyncio.create_task(_executor([Hanging()], attempt_timeout=60.0).run())
    await asyncio.sleep(0.01)
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task
    assert cancelled == [True]
