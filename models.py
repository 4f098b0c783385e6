# models.py
from datetime import datetime
from typing import Annotated, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class WireModel(BaseModel):
    # Backend keys are PascalCase for account/positions/trades; accept both
    # the wire alias and the python field name.
    model_config = ConfigDict(populate_by_name=True)


# --- Fast cycle payloads ---

class AccountSnapshot(WireModel):
    portfolio_value: float = Field(validation_alias="PortfolioValue")
    as_of: datetime = Field(default_factory=datetime.now)


class Position(WireModel):
    symbol: str = Field(validation_alias="Symbol")
    qty: int = Field(default=0, validation_alias="Qty")
    cost_basis: float = Field(default=0.0, validation_alias="CostBasis")
    unrealized_pl: float = Field(default=0.0, validation_alias="UnrealizedPL")
    unrealized_plpc: float = Field(default=0.0, validation_alias="UnrealizedPLPC")  # fraction, not percent


class TradeRecord(WireModel):
    symbol: str = Field(validation_alias="Symbol")
    side: str = Field(default="", validation_alias="Side")
    qty: float = Field(default=0.0, validation_alias="Qty")
    filled_avg_price: float = Field(default=0.0, validation_alias="FilledAvgPrice")
    filled_at: Optional[datetime] = Field(default=None, validation_alias="ExitTime")
    status: str = Field(default="filled", validation_alias="Status")
    entry_price: float = Field(default=0.0, validation_alias="EntryPrice")
    exit_price: float = Field(default=0.0, validation_alias="ExitPrice")
    pnl: float = Field(default=0.0, validation_alias="PnL")
    pnl_percent: float = Field(default=0.0, validation_alias="PnLPercent")


class ActivityEntry(BaseModel):
    timestamp: datetime
    description: str = ""


class ActivityFeed(BaseModel):
    activities: List[ActivityEntry] = Field(default_factory=list)


# --- Slow cycle payload ---

Sentiment = Literal["BULLISH", "BEARISH", "NEUTRAL"]


def normalize_sentiment(value) -> str:
    value = str(value or "").upper()
    return value if value in ("BULLISH", "BEARISH") else "NEUTRAL"


class IntelligenceReport(BaseModel):
    market_sentiment: Sentiment = "NEUTRAL"
    executive_summary: str = ""
    key_themes: List[str] = Field(default_factory=list)
    actionable_items: List[str] = Field(default_factory=list)

    @field_validator("market_sentiment", mode="before")
    @classmethod
    def _normalize_sentiment(cls, value):
        return normalize_sentiment(value)


# --- Derived ---

class EquitySample(BaseModel):
    label: str
    value: float


class InstrumentDescriptor(BaseModel):
    ticker: str
    expiry: str
    type: Literal["CALL", "PUT", "SPOT"]
    strike: str


# --- Search results: one variant per analysis endpoint ---

class AnalysisResult(BaseModel):
    kind: Literal["analysis"] = "analysis"
    symbol: str
    price: float = 0.0
    levels: Dict[str, float] = Field(default_factory=dict)
    score: float = 0.0
    notes: List[str] = Field(default_factory=list)
    signals: List[str] = Field(default_factory=list)


class PriceTarget(BaseModel):
    symbol: str
    target: float
    rationale: str = ""


class Article(BaseModel):
    title: str
    url: str = ""
    source: str = ""
    published: Optional[datetime] = None


class TopicResult(BaseModel):
    kind: Literal["topic"] = "topic"
    query: str
    sentiment: Sentiment = "NEUTRAL"
    summary: str = ""
    themes: List[str] = Field(default_factory=list)
    actionable_items: List[str] = Field(default_factory=list)
    price_targets: List[PriceTarget] = Field(default_factory=list)
    articles: List[Article] = Field(default_factory=list)

    @field_validator("sentiment", mode="before")
    @classmethod
    def _normalize_sentiment(cls, value):
        return normalize_sentiment(value)


SearchResult = Annotated[Union[AnalysisResult, TopicResult], Field(discriminator="kind")]
