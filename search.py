"""Ad-hoc search: ticker/topic classification, dispatch and persisted history.

A query is either a ticker (routed to per-symbol analysis) or a topic (routed
to topic analysis). The split is purely lexical: 1 to 5 uppercase letters is a
ticker, anything else is a topic. Short all-caps words such as "AI" therefore
resolve as tickers; the rule is kept as-is rather than guessing intent.

State machine, held in ``ViewState.search``::

    IDLE -> SEARCHING -> RESOLVED | FAILED
      ^________ dismiss() / next submit() ________|

A failed search keeps the previous result visible; only ``dismiss()`` clears it.
"""

import hashlib
import json
import logging
import os
import re
from pathlib import Path
from typing import Dict, List, Literal, Optional, Protocol

from backend_client import BackendClient, BackendError
from models import SearchResult
from state import SearchStatus, ViewState

logger = logging.getLogger("ygg.search")

TICKER_PATTERN = re.compile(r"^[A-Z]{1,5}$")
HISTORY_KEY = "ygg_search_history"
HISTORY_LIMIT = 8


def classify(query: str) -> Literal["ticker", "topic"]:
    return "ticker" if TICKER_PATTERN.match(query) else "topic"


# --- key/value persistence ---

class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[str]: ...
    def set(self, key: str, value: str) -> None: ...


class MemoryStore:
    def __init__(self):
        self._data: Dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value


class JsonFileStore:
    """One file per key under ``root``; file names are a hash of the key."""

    def __init__(self, root):
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def _key_to_path(self, key: str) -> Path:
        return self.root / f"{hashlib.sha256(key.encode()).hexdigest()}.json"

    def get(self, key: str) -> Optional[str]:
        p = self._key_to_path(key)
        if not p.exists():
            return None
        try:
            return p.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Could not read %s: %s", p, e)
            return None

    def set(self, key: str, value: str) -> None:
        p = self._key_to_path(key)
        tmp = p.with_suffix(".tmp")
        tmp.write_text(value, encoding="utf-8")
        os.replace(tmp, p)


class SearchHistory:
    def __init__(self, store: KeyValueStore, key: str = HISTORY_KEY, limit: int = HISTORY_LIMIT):
        self.store = store
        self.key = key
        self.limit = limit

    def load(self) -> List[str]:
        """Stored queries, most recent first. Missing or corrupt data loads as empty."""
        try:
            raw = self.store.get(self.key)
            if raw is None:
                return []
            data = json.loads(raw)
        except (OSError, ValueError):
            logger.warning("Search history under %r is not valid JSON, resetting", self.key)
            return []
        if not isinstance(data, list) or not all(isinstance(q, str) for q in data):
            logger.warning("Search history under %r has unexpected shape, resetting", self.key)
            return []
        return list(dict.fromkeys(data))[: self.limit]

    def push(self, query: str) -> List[str]:
        # read, move-to-front, cap, write back
        history = [query] + [q for q in self.load() if q != query]
        history = history[: self.limit]
        self._write(history)
        return history

    def clear(self) -> List[str]:
        self._write([])
        return []

    def _write(self, history: List[str]) -> None:
        # A failed write keeps the in-memory list; the next push retries
        try:
            self.store.set(self.key, json.dumps(history))
        except OSError as e:
            logger.warning("Could not persist search history under %r: %s", self.key, e)


class SearchOrchestrator:
    def __init__(self, client: BackendClient, view: ViewState, history: SearchHistory):
        self.client = client
        self.view = view
        self.history = history
        self._generation = 0
        self.view.search.history = history.load()
        self.view.search_changed()

    async def submit(self, raw: str) -> Optional[SearchResult]:
        """Run one search. Empty or whitespace-only input does nothing.

        Returns the result on success, None otherwise. A response that arrives
        after a newer submit has started is dropped without touching the state.
        """
        query = (raw or "").strip()
        if not query:
            return None

        state = self.view.search
        state.history = self.history.push(query)
        self._generation += 1
        generation = self._generation
        kind = classify(query)

        state.status = SearchStatus.SEARCHING
        state.query = query
        state.error = None
        self.view.search_changed()
        logger.info("Searching %s %r", kind, query)

        try:
            if kind == "ticker":
                result = await self.client.analyze_symbol(query)
            else:
                result = await self.client.analyze_topic(query)
        except BackendError as e:
            if generation != self._generation:
                return None
            logger.warning("Search for %r failed: %s", query, e)
            state.status = SearchStatus.FAILED
            state.error = str(e)
            self.view.search_changed()
            return None

        if generation != self._generation:
            logger.debug("Dropping superseded result for %r", query)
            return None
        state.status = SearchStatus.RESOLVED
        state.result = result
        self.view.search_changed()
        return result

    def dismiss(self) -> None:
        # Also supersedes anything still in flight
        self._generation += 1
        state = self.view.search
        state.status = SearchStatus.IDLE
        state.query = None
        state.result = None
        state.error = None
        self.view.search_changed()

    def clear_history(self) -> None:
        self.view.search.history = self.history.clear()
        self.view.search_changed()
