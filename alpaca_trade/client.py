"""REST: endpoint wrappers over the dispatcher and pagination engine.

Each method translates one API call into a ``dispatch``/``paginate``
invocation and maps the result into entities. Trading calls go to
``config.base_url``; market data calls go to ``config.data_url``.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from datetime import date, datetime
from typing import Any, Self, TypeVar

import httpx
import structlog

from alpaca_trade.config import RESTConfig, load_config
from alpaca_trade.errors import EntityMappingError
from alpaca_trade.mappers import map_activities, map_entities, map_entity
from alpaca_trade.pagination import DATA_V2_MAX_LIMIT, paginate
from alpaca_trade.rest import dispatch
from alpaca_trade.timeframe import TimeFrame
from alpaca_trade.types import (
    Account,
    AccountActivity,
    AccountConfiguration,
    Asset,
    Bar,
    Order,
    Position,
    Quote,
    Trade,
)

logger = structlog.get_logger()

E = TypeVar("E")

TimeBound = datetime | date | None

# Applied under caller parameters in submit_order.
_ORDER_DEFAULTS: dict[str, str] = {
    "side": "buy",
    "type": "market",
    "time_in_force": "day",
}


class REST:
    """Synchronous Alpaca REST client.

    Owns one ``httpx.Client`` for connection reuse; close it with
    ``close()`` or use the client as a context manager.
    """

    def __init__(
        self,
        config: RESTConfig | None = None,
        *,
        http_client: httpx.Client | None = None,
        max_page_size: int = DATA_V2_MAX_LIMIT,
    ) -> None:
        self._config = config if config is not None else load_config()
        self._owns_client = http_client is None
        self._http = http_client if http_client is not None else httpx.Client()
        self._max_page_size = max_page_size

    @property
    def config(self) -> RESTConfig:
        return self._config

    def close(self) -> None:
        """Release the underlying HTTP connection pool."""
        if self._owns_client:
            self._http.close()

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object | None,
    ) -> None:
        self.close()

    def _request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        *,
        base_url: str | None = None,
    ) -> Any:
        return dispatch(
            self._config,
            method,
            path,
            params,
            base_url=base_url,
            client=self._http,
        )

    def _data_get(
        self,
        endpoint: str,
        symbol_or_symbols: str | Iterable[str],
        params: dict[str, Any],
        endpoint_base: str = "stocks",
    ) -> Iterator[dict[str, Any]]:
        return paginate(
            self._config,
            endpoint,
            symbol_or_symbols,
            params,
            endpoint_base=endpoint_base,
            client=self._http,
            max_page_size=self._max_page_size,
        )

    # --- Account ---

    def get_account(self) -> Account:
        return map_entity(Account, self._request("GET", "/account"))

    def get_account_configuration(self) -> AccountConfiguration:
        return map_entity(
            AccountConfiguration,
            self._request("GET", "/account/configurations"),
        )

    def update_account_configuration(self, **settings: Any) -> AccountConfiguration:
        """PATCH only the given settings (e.g. ``no_shorting=True``)."""
        return map_entity(
            AccountConfiguration,
            self._request("PATCH", "/account/configurations", settings),
        )

    def list_activities(
        self,
        activity_types: str | Iterable[str] | None = None,
        **params: Any,
    ) -> list[AccountActivity]:
        """Account activities, newest first.

        A single activity type uses ``/account/activities/{type}``;
        several are sent as a comma-joined ``activity_types`` filter.
        """
        if isinstance(activity_types, str):
            path = f"/account/activities/{activity_types}"
        else:
            path = "/account/activities"
            if activity_types is not None:
                params["activity_types"] = list(activity_types)
        records = self._request("GET", path, params)
        return map_activities([] if records is None else records)

    # --- Assets ---

    def list_assets(
        self,
        status: str | None = None,
        asset_class: str | None = "us_equity",
    ) -> list[Asset]:
        params = {"status": status, "asset_class": asset_class}
        return map_entities(Asset, self._request("GET", "/assets", params))

    def get_asset(self, symbol: str) -> Asset:
        return map_entity(Asset, self._request("GET", f"/assets/{symbol}"))

    # --- Orders ---

    def list_orders(self, **params: Any) -> list[Order]:
        """Orders filtered by ``status``, ``limit``, ``after``, ``until``..."""
        return map_entities(Order, self._request("GET", "/orders", params))

    def get_order(self, order_id: str) -> Order:
        return map_entity(Order, self._request("GET", f"/orders/{order_id}"))

    def submit_order(
        self,
        symbol: str,
        qty: Any = None,
        **params: Any,
    ) -> Order:
        """Submit an order; a bare call is a market buy good for the day.

        Extra keyword arguments (``limit_price``, ``notional``,
        ``order_class``, ``take_profit``...) are sent as-is.
        """
        body = {**_ORDER_DEFAULTS, "symbol": symbol, "qty": qty, **params}
        order = map_entity(Order, self._request("POST", "/orders", body))
        logger.info(
            "Order submitted",
            order_id=order.id,
            symbol=order.symbol,
            side=order.side,
            type=order.type,
            status=order.status,
        )
        return order

    def cancel_order(self, order_id: str) -> None:
        self._request("DELETE", f"/orders/{order_id}")
        logger.info("Order cancel requested", order_id=order_id)

    # --- Positions ---

    def list_positions(self) -> list[Position]:
        return map_entities(Position, self._request("GET", "/positions"))

    def get_position(self, symbol: str) -> Position:
        return map_entity(Position, self._request("GET", f"/positions/{symbol}"))

    # --- Historical market data ---

    def get_bars(
        self,
        symbol_or_symbols: str | Iterable[str],
        timeframe: TimeFrame,
        start: TimeBound = None,
        stop: TimeBound = None,
        adjustment: str = "raw",
        limit: int | None = None,
    ) -> Iterator[Bar]:
        """Lazily stream bars across pages and symbols.

        Multi-symbol results come grouped by symbol in sorted order.
        """
        params = {
            "timeframe": timeframe,
            "adjustment": adjustment,
            "start": start,
            "stop": stop,
            "limit": limit,
        }
        return (
            map_entity(Bar, bar)
            for bar in self._data_get("bars", symbol_or_symbols, params)
        )

    def get_trades(
        self,
        symbol_or_symbols: str | Iterable[str],
        start: TimeBound = None,
        stop: TimeBound = None,
        limit: int | None = None,
    ) -> Iterator[Trade]:
        params = {"start": start, "stop": stop, "limit": limit}
        return (
            map_entity(Trade, trade)
            for trade in self._data_get("trades", symbol_or_symbols, params)
        )

    def get_quotes(
        self,
        symbol_or_symbols: str | Iterable[str],
        start: TimeBound = None,
        stop: TimeBound = None,
        limit: int | None = None,
    ) -> Iterator[Quote]:
        params = {"start": start, "stop": stop, "limit": limit}
        return (
            map_entity(Quote, quote)
            for quote in self._data_get("quotes", symbol_or_symbols, params)
        )

    def _latest(
        self,
        entity_type: type[E],
        symbol: str,
        endpoint: str,
        key: str,
    ) -> E:
        res = self._request(
            "GET",
            f"/stocks/{symbol}/{endpoint}/latest",
            base_url=self._config.data_url,
        )
        record = (res or {}).get(key)
        if not isinstance(record, dict):
            raise EntityMappingError(
                entity_type.__name__, key, "missing from response"
            )
        return map_entity(entity_type, {**record, "symbol": symbol})

    def get_latest_bar(self, symbol: str) -> Bar:
        return self._latest(Bar, symbol, "bars", "bar")

    def get_latest_trade(self, symbol: str) -> Trade:
        return self._latest(Trade, symbol, "trades", "trade")

    def get_latest_quote(self, symbol: str) -> Quote:
        return self._latest(Quote, symbol, "quotes", "quote")
