"""Alpaca REST client.

Re-exports the public API for convenient imports:
    from alpaca_trade import REST, TimeFrame, load_config, APIError
"""

from alpaca_trade.client import REST
from alpaca_trade.config import RESTConfig, load_config
from alpaca_trade.errors import (
    AlpacaConnectionError,
    AlpacaError,
    APIError,
    AuthError,
    EntityMappingError,
    PaginationError,
    RetryExhaustedError,
)
from alpaca_trade.mappers import entity_to_dict, map_activity, map_entity
from alpaca_trade.pagination import DATA_V2_MAX_LIMIT, paginate
from alpaca_trade.rest import dispatch
from alpaca_trade.timeframe import TimeFrame, TimeFrameUnit
from alpaca_trade.types import (
    Account,
    AccountActivity,
    AccountConfiguration,
    Asset,
    Bar,
    NonTradeActivity,
    Order,
    Position,
    Quote,
    Trade,
    TradeActivity,
)

__all__ = [
    "DATA_V2_MAX_LIMIT",
    "REST",
    "APIError",
    "Account",
    "AccountActivity",
    "AccountConfiguration",
    "AlpacaConnectionError",
    "AlpacaError",
    "Asset",
    "AuthError",
    "Bar",
    "EntityMappingError",
    "NonTradeActivity",
    "Order",
    "PaginationError",
    "Position",
    "Quote",
    "RESTConfig",
    "RetryExhaustedError",
    "TimeFrame",
    "TimeFrameUnit",
    "Trade",
    "TradeActivity",
    "dispatch",
    "entity_to_dict",
    "load_config",
    "map_activity",
    "map_entity",
    "paginate",
]
