# backend_stub.py
# Simulated trading backend serving the endpoints the dashboard polls.
# Usage example:
#   uvicorn backend_stub:app --port 4534
# or, in-process for tests:
#   stub = create_backend_stub(seed=7)
#   transport = httpx.ASGITransport(app=stub)

import random
import time
from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional

from fastapi import FastAPI, HTTPException, status

POSITIONS = [
    {"Symbol": "TSLA260320C00440000", "Qty": 2, "CostBasis": 3100.0},
    {"Symbol": "NVDA260116P00150000", "Qty": 1, "CostBasis": 845.0},
    {"Symbol": "AAPL", "Qty": 10, "CostBasis": 2280.0},
]

ANALYSIS_UNIVERSE = {"TSLA": 440.0, "NVDA": 181.5, "AAPL": 229.0, "SPY": 668.0, "QQQ": 598.0, "AI": 27.4}


def create_backend_stub(seed: Optional[int] = None,
                        base_value: float = 100_000.0,
                        jitter: float = 25.0,
                        failing: Iterable[str] = ()) -> FastAPI:
    """Build a backend stub whose portfolio value follows a noisy random walk.

    ``app.state.failing`` holds endpoint names ("account", "positions",
    "activity", "trades", "intelligence", "analysis", "topic") that answer 503.
    ``app.state.frozen`` stops the walk so the value repeats between polls.
    """
    rng = random.Random(seed)
    app = FastAPI(title="YGG Backend Stub")
    app.state.failing = set(failing)
    app.state.frozen = False
    app.state.value = float(base_value)
    app.state.calls = {}

    def _serve(name: str) -> None:
        app.state.calls[name] = app.state.calls.get(name, 0) + 1
        if name in app.state.failing:
            raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=f"{name} unavailable")

    def _walk() -> float:
        if not app.state.frozen:
            drift = rng.uniform(-0.02, 0.02)
            shock = rng.gauss(0.0, jitter)
            app.state.value = max(0.01, app.state.value * (1.0 + drift * 1e-3) + shock)
        return round(app.state.value, 2)

    @app.get("/api/v1/account")
    async def account():
        _serve("account")
        return {"PortfolioValue": _walk()}

    @app.get("/api/v1/options/positions")
    async def positions():
        _serve("positions")
        out = []
        for p in POSITIONS:
            pl = round(rng.gauss(0.0, p["CostBasis"] * 0.05), 2)
            out.append({**p, "UnrealizedPL": pl, "UnrealizedPLPC": round(pl / p["CostBasis"], 4)})
        return out

    @app.get("/api/v1/activity/current")
    async def activity():
        _serve("activity")
        now = datetime.now(timezone.utc)
        return {"activities": [
            {"timestamp": (now - timedelta(seconds=30 * i)).isoformat(), "description": msg}
            for i, msg in enumerate(["Positions reconciled", "Scanning option chains", "Heartbeat OK"])
        ]}

    @app.get("/api/v1/trades")
    async def trades():
        _serve("trades")
        now = datetime.now(timezone.utc)
        return [
            {"Symbol": "TSLA251219C00400000", "Side": "sell", "Qty": 1, "FilledAvgPrice": 18.4,
             "EntryPrice": 12.1, "ExitPrice": 18.4, "PnL": 630.0, "PnLPercent": 52.07,
             "ExitTime": (now - timedelta(days=1)).isoformat(), "Status": "filled"},
            {"Symbol": "SPY251121P00560000", "Side": "sell", "Qty": 2, "FilledAvgPrice": 3.05,
             "EntryPrice": 4.2, "ExitPrice": 3.05, "PnL": -230.0, "PnLPercent": -27.38,
             "ExitTime": (now - timedelta(days=3)).isoformat(), "Status": "filled"},
        ]

    @app.get("/api/v1/intelligence/quick-market")
    async def quick_market():
        _serve("intelligence")
        return {
            "market_sentiment": rng.choice(["BULLISH", "BEARISH", "NEUTRAL"]),
            "executive_summary": f"Simulated session summary at {time.strftime('%H:%M:%S')}.",
            "key_themes": ["Rates", "AI capex", "Earnings"],
            "actionable_items": ["Trim TSLA calls into strength", "Hold NVDA puts as hedge"],
        }

    @app.get("/api/v1/intelligence/analyze/{symbol}")
    async def analyze(symbol: str):
        _serve("analysis")
        price = ANALYSIS_UNIVERSE.get(symbol.upper())
        if price is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Symbol {symbol} not covered.")
        return {
            "symbol": symbol.upper(),
            "price": price,
            "levels": {"support": round(price * 0.95, 2), "resistance": round(price * 1.05, 2)},
            "score": round(rng.uniform(0, 100), 1),
            "notes": [f"{symbol.upper()} trading inside its 20-day range"],
            "signals": ["RSI neutral", "MACD flat"],
        }

    @app.get("/api/v1/intelligence/topic")
    async def topic(q: str):
        _serve("topic")
        return {
            "query": q,
            "sentiment": "NEUTRAL",
            "summary": f"Simulated topic digest for {q}.",
            "themes": ["Policy", "Liquidity"],
            "actionable_items": ["Watch front-end yields"],
            "price_targets": [{"symbol": "SPY", "target": 680.0, "rationale": "base case"}],
            "articles": [{"title": f"{q}: what to watch", "url": "https://example.com/a", "source": "stub"}],
        }

    return app


app = create_backend_stub()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="127.0.0.1", port=4534)
