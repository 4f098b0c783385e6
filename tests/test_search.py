"""Tests for query classification, search history and the search state machine.

The backend is replaced by a small fake exposing the two analysis calls, so the
orchestrator's transitions can be observed mid-flight.
"""

import asyncio
import json

import pytest

from backend_client import BackendError
from models import AnalysisResult, TopicResult
from search import (
	HISTORY_KEY, JsonFileStore, MemoryStore, SearchHistory, SearchOrchestrator, classify,
)
from state import SearchStatus, ViewState


class FakeClient:
	def __init__(self):
		self.calls = []
		self.fail = set()
		self.gates = {}

	async def _maybe_wait(self, key):
		if key in self.gates:
			await self.gates[key].wait()
		if key in self.fail:
			raise BackendError("analysis", "HTTP 503")

	async def analyze_symbol(self, symbol):
		self.calls.append(("ticker", symbol))
		await self._maybe_wait(symbol)
		return AnalysisResult(symbol=symbol, price=100.0)

	async def analyze_topic(self, query):
		self.calls.append(("topic", query))
		await self._maybe_wait(query)
		return TopicResult(query=query, summary="digest")


def _orchestrator(store=None):
	view = ViewState()
	client = FakeClient()
	history = SearchHistory(store or MemoryStore())
	return SearchOrchestrator(client, view, history), client, view


# --- classification ---

@pytest.mark.parametrize("query,kind", [
	("NVDA", "ticker"),
	("SPY", "ticker"),
	("AI", "ticker"),
	("GOOGL", "ticker"),
	("Federal Reserve", "topic"),
	("nvda", "topic"),
	("ABCDEF", "topic"),
	("BRK.B", "topic"),
])
def test_classify(query, kind):
	assert classify(query) == kind


# --- history ---

def test_history_moves_repeat_to_front():
	h = SearchHistory(MemoryStore())
	h.push("SPY")
	h.push("QQQ")
	assert h.push("SPY") == ["SPY", "QQQ"]
	assert h.load() == ["SPY", "QQQ"]


def test_history_capped_oldest_evicted():
	h = SearchHistory(MemoryStore())
	for i in range(10):
		h.push(f"Q{i}")
	loaded = h.load()
	assert len(loaded) == 8
	assert loaded[0] == "Q9"
	assert "Q0" not in loaded and "Q1" not in loaded


@pytest.mark.parametrize("raw", ["{not json", json.dumps({"a": 1}), json.dumps([1, 2])])
def test_corrupt_history_loads_empty(raw):
	store = MemoryStore()
	store.set(HISTORY_KEY, raw)
	h = SearchHistory(store)
	assert h.load() == []
	assert h.push("SPY") == ["SPY"]


def test_history_survives_restart_in_file_store(tmp_path):
	SearchHistory(JsonFileStore(tmp_path)).push("Federal Reserve")
	assert SearchHistory(JsonFileStore(tmp_path)).load() == ["Federal Reserve"]


def test_undecodable_history_file_loads_empty(tmp_path):
	store = JsonFileStore(tmp_path)
	store._key_to_path(HISTORY_KEY).write_bytes(b"\xff\xfe[\"SPY\"]")
	h = SearchHistory(store)
	assert h.load() == []
	assert h.push("QQQ") == ["QQQ"]
	assert SearchHistory(JsonFileStore(tmp_path)).load() == ["QQQ"]


class ReadOnlyStore(MemoryStore):
	def set(self, key, value):
		raise OSError("read-only file system")


@pytest.mark.asyncio
async def test_history_write_failure_does_not_break_search():
	orch, client, view = _orchestrator(ReadOnlyStore())
	result = await orch.submit("NVDA")
	assert result.kind == "analysis"
	assert view.search.status == SearchStatus.RESOLVED
	assert view.search.history == ["NVDA"]
	orch.clear_history()
	assert view.search.history == []


def test_clear_history():
	h = SearchHistory(MemoryStore())
	h.push("SPY")
	assert h.clear() == []
	assert h.load() == []


# --- orchestrator ---

@pytest.mark.asyncio
async def test_empty_query_is_noop():
	orch, client, view = _orchestrator()
	version = view.version
	assert await orch.submit("   ") is None
	assert view.search.status == SearchStatus.IDLE
	assert view.search.history == []
	assert client.calls == []
	assert view.version == version


@pytest.mark.asyncio
async def test_ticker_search_resolves():
	orch, client, view = _orchestrator()
	result = await orch.submit("  NVDA ")
	assert client.calls == [("ticker", "NVDA")]
	assert result.kind == "analysis"
	assert view.search.status == SearchStatus.RESOLVED
	assert view.search.query == "NVDA"
	assert view.search.history == ["NVDA"]


@pytest.mark.asyncio
async def test_topic_search_resolves():
	orch, client, view = _orchestrator()
	await orch.submit("Federal Reserve")
	assert client.calls == [("topic", "Federal Reserve")]
	assert view.search.result.kind == "topic"


@pytest.mark.asyncio
async def test_searching_state_while_in_flight():
	orch, client, view = _orchestrator()
	client.gates["SPY"] = asyncio.Event()
	task = asyncio.create_task(orch.submit("SPY"))
	await asyncio.sleep(0)
	assert view.search.status == SearchStatus.SEARCHING
	client.gates["SPY"].set()
	await task
	assert view.search.status == SearchStatus.RESOLVED


@pytest.mark.asyncio
async def test_failure_keeps_previous_result():
	orch, client, view = _orchestrator()
	await orch.submit("NVDA")
	client.fail.add("Federal Reserve")
	assert await orch.submit("Federal Reserve") is None
	assert view.search.status == SearchStatus.FAILED
	assert "503" in view.search.error
	assert view.search.result.symbol == "NVDA"


@pytest.mark.asyncio
async def test_new_search_supersedes_in_flight_one():
	orch, client, view = _orchestrator()
	client.gates["SPY"] = asyncio.Event()
	slow = asyncio.create_task(orch.submit("SPY"))
	await asyncio.sleep(0)
	await orch.submit("QQQ")
	client.gates["SPY"].set()
	assert await slow is None
	assert view.search.result.symbol == "QQQ"
	assert view.search.history == ["QQQ", "SPY"]


@pytest.mark.asyncio
async def test_dismiss_returns_to_idle():
	orch, client, view = _orchestrator()
	await orch.submit("SPY")
	orch.dismiss()
	assert view.search.status == SearchStatus.IDLE
	assert view.search.result is None
	assert view.search.history == ["SPY"]


@pytest.mark.asyncio
async def test_history_loaded_on_start():
	store = MemoryStore()
	SearchHistory(store).push("QQQ")
	orch, client, view = _orchestrator(store)
	assert view.search.history == ["QQQ"]
