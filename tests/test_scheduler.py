"""Tests for the polling scheduler against the in-process backend stub.

Covers:
- A fast cycle fills every slice and feeds the equity history.
- One failing endpoint leaves its slice untouched while the others update.
- Cold-start loading flag, slow-cycle loading flag, and teardown.
"""

import asyncio

import httpx
import pytest

from backend_client import BackendClient
from backend_stub import create_backend_stub
from models import IntelligenceReport
from scheduler import PollingScheduler
from state import ViewState


def _wire(seed=1, **intervals):
	stub = create_backend_stub(seed=seed)
	client = BackendClient("http://stub", transport=httpx.ASGITransport(app=stub))
	view = ViewState()
	return stub, client, view, PollingScheduler(client, view, **intervals)


@pytest.mark.asyncio
async def test_fast_cycle_fills_all_slices():
	stub, client, view, sched = _wire()
	async with client:
		await sched.refresh()
	assert view.account is not None
	assert len(view.positions) == 3
	assert view.activities and view.trades
	assert len(view.history) == 1
	assert view.loading is False
	assert view.last_update is not None


@pytest.mark.asyncio
async def test_failing_positions_keeps_previous_positions():
	stub, client, view, sched = _wire()
	async with client:
		await sched.refresh()
		old_account, old_positions = view.account, view.positions
		old_activities, old_trades = view.activities, view.trades

		stub.state.failing.add("positions")
		await sched.refresh()

	assert view.positions is old_positions
	assert view.account is not old_account
	assert view.activities is not old_activities
	assert view.trades is not old_trades
	assert stub.state.calls["positions"] == 2


@pytest.mark.asyncio
async def test_loading_clears_once_and_stays_clear():
	stub, client, view, sched = _wire()
	stub.state.failing.update({"account", "positions", "activity", "trades"})
	async with client:
		await sched.refresh()
		assert view.loading is True
		assert view.account is None

		stub.state.failing.clear()
		await sched.refresh()
		assert view.loading is False

		stub.state.failing.add("account")
		await sched.refresh()
		assert view.loading is False
		assert view.account is not None


@pytest.mark.asyncio
async def test_fully_failed_cycle_leaves_last_update_and_version():
	stub, client, view, sched = _wire()
	async with client:
		await sched.refresh()
		updated, version = view.last_update, view.version
		assert updated is not None

		stub.state.failing.update({"account", "positions", "activity", "trades"})
		await sched.refresh()

	assert view.last_update == updated
	assert view.version == version
	assert view.account is not None


@pytest.mark.asyncio
async def test_unchanged_value_is_not_recorded_twice():
	stub, client, view, sched = _wire()
	stub.state.frozen = True
	async with client:
		await sched.refresh()
		await sched.refresh()
		await sched.refresh()
	assert len(view.history) == 1


@pytest.mark.asyncio
async def test_intelligence_loading_flag_spans_the_call():
	gate = asyncio.Event()

	class SlowClient:
		async def get_intelligence(self):
			await gate.wait()
			return IntelligenceReport(market_sentiment="bullish", executive_summary="Risk on.")

	view = ViewState()
	sched = PollingScheduler(SlowClient(), view)
	task = asyncio.create_task(sched.refresh_intelligence())
	await asyncio.sleep(0)
	assert view.intelligence_loading is True
	assert view.intelligence is None

	gate.set()
	await task
	assert view.intelligence_loading is False
	assert view.intelligence.market_sentiment == "BULLISH"
	assert view.intelligence_updated_at is not None


@pytest.mark.asyncio
async def test_failed_intelligence_keeps_last_report():
	stub, client, view, sched = _wire()
	async with client:
		await sched.refresh_intelligence()
		report = view.intelligence
		stub.state.failing.add("intelligence")
		await sched.refresh_intelligence()
	assert view.intelligence is report
	assert view.intelligence_loading is False


@pytest.mark.asyncio
async def test_stop_halts_every_loop_and_is_idempotent():
	stub, client, view, sched = _wire(fast_interval=0.01, slow_interval=0.01, clock_interval=0.01)
	async with client:
		await sched.start()
		assert sched.running
		first_clock = view.clock
		await asyncio.sleep(0.1)
		assert stub.state.calls["account"] > 1
		assert view.clock > first_clock

		await sched.stop()
		await sched.stop()
		assert not sched.running
		calls = dict(stub.state.calls)
		clock = view.clock
		await asyncio.sleep(0.05)
		assert stub.state.calls == calls
		assert view.clock == clock


@pytest.mark.asyncio
async def test_results_after_stop_are_discarded():
	stub, client, view, sched = _wire()
	async with client:
		await sched.stop()
		version = view.version
		await sched.refresh()
	assert view.version == version
	assert view.account is None
