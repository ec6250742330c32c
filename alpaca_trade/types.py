"""Alpaca REST entities.

Frozen dataclasses mirroring the API's JSON records. Attribute names
match the wire names 1:1, except where the wire name is a Python keyword
(``class`` -> ``class_``, ``as`` -> ``as_``). Monetary and price values
use Decimal (never float). Field order follows the schema tables in
``alpaca_trade.mappers``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal


@dataclass(frozen=True)
class Account:
    """Brokerage account summary (``GET /v2/account``)."""

    id: str
    account_number: str
    status: str
    currency: str
    cash: Decimal
    portfolio_value: Decimal
    pattern_day_trader: bool
    trade_suspended_by_user: bool
    trading_blocked: bool
    transfers_blocked: bool
    account_blocked: bool
    created_at: datetime
    shorting_enabled: bool
    long_market_value: Decimal
    short_market_value: Decimal
    equity: Decimal
    last_equity: Decimal
    multiplier: Decimal
    buying_power: Decimal
    initial_margin: Decimal
    maintenance_margin: Decimal
    sma: Decimal
    daytrade_count: int
    last_maintenance_margin: Decimal
    daytrading_buying_power: Decimal
    regt_buying_power: Decimal


@dataclass(frozen=True)
class AccountConfiguration:
    """Account trading settings (``/v2/account/configurations``)."""

    dtbp_check: str
    trade_confirm_email: str
    suspend_trade: bool
    no_shorting: bool


@dataclass(frozen=True)
class Asset:
    """Tradable instrument."""

    id: str
    class_: str
    exchange: str
    symbol: str
    status: str
    tradable: bool
    marginable: bool
    shortable: bool
    easy_to_borrow: bool
    fractionable: bool


@dataclass(frozen=True)
class Order:
    """Order as reported by the broker.

    Bracket, OCO and OTO orders carry their child orders in ``legs``.
    """

    id: str
    client_order_id: str
    created_at: datetime
    updated_at: datetime | None
    submitted_at: datetime | None
    filled_at: datetime | None
    expired_at: datetime | None
    canceled_at: datetime | None
    failed_at: datetime | None
    replaced_at: datetime | None
    replaces: str | None
    asset_id: str
    symbol: str
    asset_class: str
    notional: Decimal | None
    qty: Decimal | None
    filled_qty: Decimal
    filled_avg_price: Decimal | None
    order_class: str
    order_type: str
    type: str
    side: str
    time_in_force: str
    limit_price: Decimal | None
    stop_price: Decimal | None
    status: str
    extended_hours: bool
    legs: tuple[Order, ...] = field(default_factory=tuple)
    trail_percent: Decimal | None = None
    trail_price: Decimal | None = None
    hwm: Decimal | None = None


@dataclass(frozen=True)
class Position:
    """Open position in one asset."""

    asset_id: str
    symbol: str
    exchange: str
    asset_class: str
    avg_entry_price: Decimal
    qty: Decimal
    side: str
    market_value: Decimal
    cost_basis: Decimal
    unrealized_pl: Decimal
    unrealized_plpc: Decimal
    unrealized_intraday_pl: Decimal
    unrealized_intraday_plpc: Decimal
    current_price: Decimal
    lastday_price: Decimal
    change_today: Decimal


@dataclass(frozen=True)
class TradeActivity:
    """Fill activity (``activity_type == "FILL"``)."""

    activity_type: str
    id: str
    cum_qty: Decimal
    leaves_qty: Decimal
    price: Decimal
    qty: Decimal
    side: str
    symbol: str
    transaction_time: datetime
    order_id: str
    type: str


@dataclass(frozen=True)
class NonTradeActivity:
    """Cash or corporate-action activity (dividends, fees, transfers...)."""

    activity_type: str
    id: str
    date: date
    net_amount: Decimal
    symbol: str | None = None
    qty: Decimal | None = None
    per_share_amount: Decimal | None = None


AccountActivity = TradeActivity | NonTradeActivity


@dataclass(frozen=True)
class Bar:
    """OHLCV bar. Wire names are single letters; properties spell them out."""

    symbol: str
    t: datetime
    o: Decimal
    h: Decimal
    l: Decimal  # noqa: E741
    c: Decimal
    v: int
    n: int
    vw: Decimal

    @property
    def timestamp(self) -> datetime:
        return self.t

    @property
    def open(self) -> Decimal:
        return self.o

    @property
    def high(self) -> Decimal:
        return self.h

    @property
    def low(self) -> Decimal:
        return self.l

    @property
    def close(self) -> Decimal:
        return self.c

    @property
    def volume(self) -> int:
        return self.v


@dataclass(frozen=True)
class Trade:
    """Single trade print: exchange ``x``, price ``p``, size ``s``,
    conditions ``c``, trade id ``i``, tape ``z``."""

    symbol: str
    t: datetime
    x: str
    p: Decimal
    s: int
    c: tuple[str, ...]
    i: int
    z: str


@dataclass(frozen=True)
class Quote:
    """NBBO quote: ask exchange/price/size, bid exchange/price/size,
    conditions."""

    symbol: str
    t: datetime
    ax: str
    ap: Decimal
    as_: int
    bx: str
    bp: Decimal
    bs: int
    c: tuple[str, ...]
