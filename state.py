# state.py
# The single owned view record. Every write goes through one of the
# transition methods below; each is synchronous, so a transition can never be
# observed half-applied by another coroutine.

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Literal, Optional

from history import EquityHistory, time_label
from models import (
    AccountSnapshot, ActivityEntry, IntelligenceReport, Position,
    SearchResult, TradeRecord,
)
from symbols import decode_symbol

ACTIVITY_WINDOW = 20
RECENT_TRADES = 10

Theme = Literal["modern", "hacker"]
ConsoleTab = Literal["SYSTEM", "HIST"]
PositionFilter = Literal["ALL", "CALL", "PUT", "SPOT"]

CONSOLE_TABS = ("SYSTEM", "HIST")
POSITION_FILTERS = ("ALL", "CALL", "PUT", "SPOT")
OVERLAYS = ("history", "search")


class SearchStatus(str, Enum):
    IDLE = "IDLE"
    SEARCHING = "SEARCHING"
    RESOLVED = "RESOLVED"
    FAILED = "FAILED"


@dataclass
class SearchState:
    status: SearchStatus = SearchStatus.IDLE
    query: Optional[str] = None
    result: Optional[SearchResult] = None
    error: Optional[str] = None
    history: List[str] = field(default_factory=list)


class ViewState:
    def __init__(self, history_limit: int = 50):
        self.account: Optional[AccountSnapshot] = None
        self.positions: List[Position] = []
        self.activities: List[ActivityEntry] = []
        self.trades: List[TradeRecord] = []
        self.history = EquityHistory(max_size=history_limit)
        self.intelligence: Optional[IntelligenceReport] = None
        self.intelligence_loading: bool = False
        self.intelligence_updated_at: Optional[datetime] = None
        # Cold start only: cleared by the first cycle that delivers an account
        self.loading: bool = True
        self.last_update: Optional[datetime] = None
        self.clock: datetime = datetime.now()
        self.theme: Theme = "modern"
        self.console_tab: ConsoleTab = "SYSTEM"
        self.position_filter: PositionFilter = "ALL"
        self.show_history_overlay: bool = False
        self.show_search_overlay: bool = False
        self.search = SearchState()
        self.version: int = 0

    def _changed(self) -> None:
        self.version += 1

    # --- polling transitions ---

    def apply_fast_cycle(self,
                         account: Optional[AccountSnapshot] = None,
                         positions: Optional[List[Position]] = None,
                         activities: Optional[List[ActivityEntry]] = None,
                         trades: Optional[List[TradeRecord]] = None,
                         now: Optional[datetime] = None) -> None:
        """Replace every slice that arrived in this cycle; None keeps the old slice.

        A cycle where nothing arrived changes nothing, not even ``last_update``.
        """
        if account is None and positions is None and activities is None and trades is None:
            return
        now = now or datetime.now()
        if account is not None:
            self.account = account
            self.history.append(account.portfolio_value, label=time_label(now))
            self.loading = False
        if positions is not None:
            self.positions = list(positions)
        if activities is not None:
            self.activities = list(activities)
        if trades is not None:
            self.trades = list(trades)
        self.last_update = now
        self._changed()

    def set_intelligence_loading(self, loading: bool) -> None:
        self.intelligence_loading = loading
        self._changed()

    def apply_intelligence(self, report: IntelligenceReport, now: Optional[datetime] = None) -> None:
        self.intelligence = report
        self.intelligence_updated_at = now or datetime.now()
        self._changed()

    def tick(self, now: Optional[datetime] = None) -> None:
        # The clock does not bump the version: it is not network state
        self.clock = now or datetime.now()

    # --- UI transitions ---

    def toggle_theme(self) -> Theme:
        self.theme = "hacker" if self.theme == "modern" else "modern"
        self._changed()
        return self.theme

    def set_console_tab(self, tab: str) -> None:
        if tab not in CONSOLE_TABS:
            raise ValueError(f"unknown console tab {tab!r}")
        self.console_tab = tab
        self._changed()

    def set_position_filter(self, name: str) -> None:
        if name not in POSITION_FILTERS:
            raise ValueError(f"unknown position filter {name!r}")
        self.position_filter = name
        self._changed()

    def set_overlay(self, name: str, visible: bool) -> None:
        if name == "history":
            self.show_history_overlay = visible
        elif name == "search":
            self.show_search_overlay = visible
        else:
            raise ValueError(f"unknown overlay {name!r}")
        self._changed()

    def search_changed(self) -> None:
        """Called by the search orchestrator after it updates ``self.search``."""
        self._changed()

    # --- read helpers ---

    def visible_positions(self) -> List[Position]:
        if self.position_filter == "ALL":
            return list(self.positions)
        return [p for p in self.positions if decode_symbol(p.symbol).type == self.position_filter]

    def recent_activities(self) -> List[ActivityEntry]:
        return self.activities[-ACTIVITY_WINDOW:]

    def recent_trades(self) -> List[TradeRecord]:
        return self.trades[:RECENT_TRADES]
