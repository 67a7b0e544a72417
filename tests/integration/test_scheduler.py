"""Integration tests for the background auto-optimization scheduler"""

import asyncio

import pytest

from okcomputer.core.config import Settings
from okcomputer.core.models import ToolResult
from okcomputer.optimization.scheduler import AutoOptimizationScheduler, SchedulerState
from okcomputer.state.store import StateStore

from mcp_server.dispatch import ToolDispatcher
from mcp_server.handlers.registry import ToolDefinition, build_registry


class CountingHandler:
    """Stand-in for auto_optimize that records every call"""

    def __init__(self, result=None, error: Exception = None):
        self.calls = []
        self.result = result if result is not None else ToolResult.ok("done", status="completed")
        self.error = error

    def __call__(self, args):
        self.calls.append(args)
        if self.error is not None:
            raise self.error
        return self.result


@pytest.fixture
def fast_settings() -> Settings:
    return Settings(
        _env_file=None,
        AUTO_OPTIMIZE_STARTUP_DELAY_S=0.0,
        AUTO_OPTIMIZE_INTERVAL_MS=5,
    )


class TestRunOnce:

    def test_success(self, store: StateStore) -> None:
        """A successful run reports SUCCESS and passes the balanced, unforced arguments"""
        handler = CountingHandler()
        scheduler = AutoOptimizationScheduler(store, handler)

        assert scheduler.run_once() == SchedulerState.SUCCESS
        assert handler.calls == [{"priority": "balanced", "force": False}]

    def test_skipped(self, store: StateStore) -> None:
        """A skipped result is not counted as a failure"""
        handler = CountingHandler(ToolResult.ok("skipped", status="skipped"))
        scheduler = AutoOptimizationScheduler(store, handler)

        assert scheduler.run_once() == SchedulerState.SKIPPED_TOO_SOON
        assert store.performance.optimization_failure_count == 0

    def test_invalid_result_is_a_failure(self, store: StateStore) -> None:
        """Anything other than a ToolResult counts as a failed run"""
        scheduler = AutoOptimizationScheduler(store, CountingHandler(result="not a tool result"))

        assert scheduler.run_once() == SchedulerState.FAILED
        assert store.performance.optimization_failure_count == 1

    def test_empty_result_is_a_failure(self, store: StateStore) -> None:
        """A result without content counts as a failed run"""
        scheduler = AutoOptimizationScheduler(store, CountingHandler(ToolResult(content=[])))

        assert scheduler.run_once() == SchedulerState.FAILED

    def test_exception_is_recorded(self, store: StateStore) -> None:
        """A raising handler is recorded with its message and stack"""
        scheduler = AutoOptimizationScheduler(store, CountingHandler(error=RuntimeError("boom")))

        scheduler.run_once()

        error = store.performance.last_optimization_error
        assert error.tool == "auto_optimize"
        assert error.message == "boom"
        assert "RuntimeError" in error.stack
        assert store.performance.error_count == 1

    def test_circuit_breaker_trips_after_threshold(self, store: StateStore) -> None:
        """The sixth failure disables auto-optimization and stops further calls"""
        handler = CountingHandler(error=RuntimeError("boom"))
        scheduler = AutoOptimizationScheduler(store, handler)

        for _ in range(5):
            scheduler.run_once()
        assert store.auto_optimization.enabled

        scheduler.run_once()
        assert not store.auto_optimization.enabled

        scheduler.run_once()
        scheduler.run_once()
        assert len(handler.calls) == 6
        assert scheduler.attempts == 6

    def test_disabled_config_never_runs(self, store: StateStore) -> None:
        """No run is attempted while auto-optimization is disabled"""
        store.set_auto_optimization_enabled(False)
        handler = CountingHandler()

        AutoOptimizationScheduler(store, handler).run_once()

        assert handler.calls == []

    def test_against_real_tool(self, store: StateStore, clock) -> None:
        """Runs through the dispatcher respect the optimization interval"""
        dispatcher = ToolDispatcher(store, build_registry())
        scheduler = AutoOptimizationScheduler(store, lambda args: dispatcher.dispatch("auto_optimize", args))

        assert scheduler.run_once() == SchedulerState.SKIPPED_TOO_SOON

        clock.advance(store.auto_optimization.interval)
        assert scheduler.run_once() == SchedulerState.SUCCESS
        assert store.performance.optimization_success_count == 1

    def test_dispatched_fault_counts_one_error(self, store: StateStore) -> None:
        """A fault raised through the dispatcher is counted once globally and once as an optimization failure"""
        def explode(state, args):
            raise RuntimeError("boom")

        registry = build_registry()
        registry._tools["auto_optimize"] = ToolDefinition("auto_optimize", "broken", {"type": "object"}, explode)
        dispatcher = ToolDispatcher(store, registry)
        scheduler = AutoOptimizationScheduler(store, lambda args: dispatcher.dispatch("auto_optimize", args))

        assert scheduler.run_once() == SchedulerState.FAILED
        assert store.performance.error_count == 1
        assert store.performance.optimization_failure_count == 1
        assert store.performance.last_optimization_error.message == "boom"

    def test_dispatched_error_result_counts_one_error(self, store: StateStore) -> None:
        """An error result is not a dispatcher fault, so the scheduler records it"""
        registry = build_registry()
        registry._tools["auto_optimize"] = ToolDefinition(
            "auto_optimize", "broken", {"type": "object"}, lambda state, args: ToolResult.error("nope"),
        )
        dispatcher = ToolDispatcher(store, registry)
        scheduler = AutoOptimizationScheduler(store, lambda args: dispatcher.dispatch("auto_optimize", args))

        assert scheduler.run_once() == SchedulerState.FAILED
        assert store.performance.error_count == 1
        assert store.performance.optimization_failure_count == 1


class TestLoop:

    @pytest.mark.asyncio
    async def test_start_and_stop(self, fast_settings: Settings, clock) -> None:
        """The startup run fires and stop cancels the background tasks"""
        store = StateStore(fast_settings, clock=clock)
        handler = CountingHandler()
        scheduler = AutoOptimizationScheduler(store, handler)

        await scheduler.start()
        await asyncio.sleep(0.05)
        await scheduler.stop()

        assert len(handler.calls) >= 1
        assert not scheduler.is_running

    @pytest.mark.asyncio
    async def test_loop_exits_when_breaker_trips(self, fast_settings: Settings, clock) -> None:
        """The interval loop ends on its own once the breaker trips"""
        store = StateStore(fast_settings, clock=clock)
        handler = CountingHandler(error=RuntimeError("boom"))
        scheduler = AutoOptimizationScheduler(store, handler)

        await scheduler.start()
        for _ in range(200):
            if not scheduler.is_running:
                break
            await asyncio.sleep(0.01)
        await scheduler.stop()

        assert not store.auto_optimization.enabled
        assert len(handler.calls) == 6

    @pytest.mark.asyncio
    async def test_start_when_disabled(self, clock) -> None:
        """start is a no-op when auto-optimization is disabled"""
        store = StateStore(Settings(_env_file=None, AUTO_OPTIMIZE_ENABLED=False), clock=clock)
        scheduler = AutoOptimizationScheduler(store, CountingHandler())

        await scheduler.start()

        assert not scheduler.is_running
        await scheduler.stop()
