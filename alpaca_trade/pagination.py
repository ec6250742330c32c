"""Cursor-based pagination over the market data v2 endpoints.

The data API pages with an opaque ``next_page_token`` instead of offsets.
A single-symbol query returns ``{"bars": [...]}``; a multi-symbol query
returns ``{"bars": {"AAPL": [...], "MSFT": [...]}}``. ``paginate`` hides
both shapes behind one lazy stream of raw records, each stamped with its
symbol.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from typing import Any

import httpx
import structlog

from alpaca_trade.config import RESTConfig
from alpaca_trade.encoding import join_symbols
from alpaca_trade.errors import PaginationError
from alpaca_trade.rest import dispatch

logger = structlog.get_logger()

# Largest page the data API serves in one response.
DATA_V2_MAX_LIMIT = 10_000

NEXT_PAGE_TOKEN = "next_page_token"


def _records(value: Any, endpoint: str, symbol: str) -> list[Mapping[str, Any]]:
    records = value or []
    if not isinstance(records, list) or not all(
        isinstance(item, Mapping) for item in records
    ):
        raise PaginationError(
            f"Unexpected {endpoint!r} records for {symbol}: "
            f"expected a list of objects, got {type(records).__name__}"
        )
    return records


def _page_items(
    response: Mapping[str, Any],
    endpoint: str,
    symbol: str | None,
) -> Iterator[dict[str, Any]]:
    """Yield one page's records in emission order, stamped with symbol.

    Raises:
        PaginationError: The page does not have the shape the query
            asked for (a list for one symbol, an object keyed by symbol
            for several).
    """
    data = response.get(endpoint)
    if symbol is not None:
        for item in _records(data, endpoint, symbol):
            yield {**item, "symbol": symbol}
        return

    by_symbol = data or {}
    if not isinstance(by_symbol, Mapping):
        raise PaginationError(
            f"Unexpected {endpoint!r} page for a multi-symbol query: "
            f"expected an object keyed by symbol, got {type(by_symbol).__name__}"
        )
    # Sorted, not request order, so output is reproducible.
    for sym in sorted(by_symbol):
        for item in _records(by_symbol[sym], endpoint, sym):
            yield {**item, "symbol": sym}


def paginate(
    config: RESTConfig,
    endpoint: str,
    symbol_or_symbols: str | Iterable[str],
    params: Mapping[str, Any] | None = None,
    *,
    endpoint_base: str = "stocks",
    client: httpx.Client | None = None,
    max_page_size: int = DATA_V2_MAX_LIMIT,
) -> Iterator[dict[str, Any]]:
    """Stream every record of a paginated data endpoint.

    Args:
        config: Credentials and retry policy; requests go to
            ``config.data_url``.
        endpoint: Resource name, also the response key (``"bars"``,
            ``"trades"``, ``"quotes"``).
        symbol_or_symbols: One symbol (embedded in the path) or several
            (sent as a comma-joined ``symbols`` parameter).
        params: Extra query parameters. ``limit`` caps the total number
            of records emitted across all pages and symbols.
        endpoint_base: Asset-class path segment.
        client: Reusable httpx client.
        max_page_size: Largest ``limit`` requested for one page.

    Returns:
        A generator. Nothing is requested until the first item is pulled,
        and each later request happens only once the buffered page is
        drained. Dispatch errors propagate from the pull that triggered
        the request.
    """
    if max_page_size < 1:
        raise ValueError(f"max_page_size must be >= 1, got {max_page_size}")

    query = dict(params or {})
    limit = query.pop("limit", None)
    if limit is not None and limit < 0:
        raise ValueError(f"limit must be >= 0, got {limit}")

    if isinstance(symbol_or_symbols, str):
        symbol: str | None = symbol_or_symbols
        path = f"/{endpoint_base}/{symbol}/{endpoint}"
    else:
        symbols = list(symbol_or_symbols)
        if not symbols:
            raise ValueError("At least one symbol is required")
        symbol = None
        path = f"/{endpoint_base}/{endpoint}"
        query["symbols"] = join_symbols(symbols)

    return _paginate(config, endpoint, path, symbol, query, limit, client, max_page_size)


def _paginate(
    config: RESTConfig,
    endpoint: str,
    path: str,
    symbol: str | None,
    query: dict[str, Any],
    limit: int | None,
    client: httpx.Client | None,
    max_page_size: int,
) -> Iterator[dict[str, Any]]:
    page_token: str | None = None
    seen_tokens: set[str] = set()
    emitted = 0
    pages = 0

    while limit is None or emitted < limit:
        page_limit = max_page_size
        if limit is not None:
            page_limit = min(limit - emitted, max_page_size)
        page_query = {**query, "page_token": page_token, "limit": page_limit}
        response = dispatch(
            config,
            "GET",
            path,
            page_query,
            base_url=config.data_url,
            client=client,
        )
        pages += 1
        if response is None:
            break
        if not isinstance(response, Mapping):
            raise PaginationError(
                f"Unexpected page from {path}: expected an object, "
                f"got {type(response).__name__}"
            )

        for item in _page_items(response, endpoint, symbol):
            yield item
            emitted += 1
            if limit is not None and emitted >= limit:
                break
        if limit is not None and emitted >= limit:
            # Limit reached; the trailing token is not read.
            break

        page_token = response.get(NEXT_PAGE_TOKEN)
        if not page_token:
            break
        if page_token in seen_tokens:
            raise PaginationError(f"Repeated page token {page_token!r} for {path}")
        seen_tokens.add(page_token)

    logger.debug(
        "Pagination finished",
        path=path,
        pages=pages,
        emitted=emitted,
    )
