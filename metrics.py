"""Derived account figures for the dashboard header and trade journal.

Every function here is pure and total over well-typed inputs: empty
collections are valid and produce a neutral result instead of raising.

Notes on percentages:
- Position records carry ``unrealized_plpc`` as a fraction (0.125 == 12.5%).
  It is multiplied by 100 exactly once, in ``position_pl_percent``.
- Every other ``*_pct``/``%`` figure returned here is already percent-scaled.
"""

from typing import Optional, Sequence

from pydantic import BaseModel

from models import AccountSnapshot, EquitySample, Position, TradeRecord


class DashboardMetrics(BaseModel):
    day_return: float = 0.0
    unrealized_pl: float = 0.0
    roi: float = 0.0
    win_rate: float = 0.0
    realized_pl: float = 0.0
    average_win: str = "0.00"
    total_trades: int = 0
    open_positions: int = 0


def day_return(account: Optional[AccountSnapshot], samples: Sequence[EquitySample]) -> float:
    """Percent change of the current portfolio value against the first sample.

    Contract:
    - Output: ``(current - baseline) / baseline * 100``
    - Edge cases: 0.0 with no account, fewer than two samples, or a zero
      baseline. Early readings off a single point are meaningless.
    """
    if account is None or len(samples) < 2:
        return 0.0
    start = samples[0].value
    if start == 0:
        return 0.0
    return (account.portfolio_value - start) / start * 100


def aggregate_unrealized_pl(positions: Sequence[Position]) -> float:
    return sum(p.unrealized_pl for p in positions)


def aggregate_roi(positions: Sequence[Position]) -> float:
    """Aggregate unrealized P&L over total cost basis, as a percent.

    Returns 0.0 when the total cost basis is not positive.
    """
    total_cost = sum(p.cost_basis for p in positions)
    if total_cost <= 0:
        return 0.0
    return aggregate_unrealized_pl(positions) / total_cost * 100


def position_pl_percent(position: Position) -> float:
    return position.unrealized_plpc * 100


def win_rate(trades: Sequence[TradeRecord]) -> float:
    if not trades:
        return 0.0
    winners = sum(1 for t in trades if t.pnl > 0)
    return winners / len(trades) * 100


def realized_pl(trades: Sequence[TradeRecord]) -> float:
    return sum(t.pnl for t in trades)


def average_win(trades: Sequence[TradeRecord]) -> str:
    """Mean P&L over profitable trades only, formatted to two decimals.

    ``"0.00"`` when nothing was profitable.
    """
    wins = [t.pnl for t in trades if t.pnl > 0]
    if not wins:
        return "0.00"
    return f"{sum(wins) / len(wins):.2f}"


def summarize(account: Optional[AccountSnapshot],
              samples: Sequence[EquitySample],
              positions: Sequence[Position],
              trades: Sequence[TradeRecord]) -> DashboardMetrics:
    return DashboardMetrics(
        day_return=day_return(account, samples),
        unrealized_pl=aggregate_unrealized_pl(positions),
        roi=aggregate_roi(positions),
        win_rate=win_rate(trades),
        realized_pl=realized_pl(trades),
        average_win=average_win(trades),
        total_trades=len(trades),
        open_positions=len(positions),
    )
