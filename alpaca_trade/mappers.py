"""JSON record to entity converters.

Each entity has an explicit schema table listing its wire fields, their
coercion kind and whether they may be absent. This is the Decimal
boundary: every monetary string or float becomes a Decimal here.

Required fields are enforced. A missing or null required field raises
EntityMappingError instead of producing a half-filled entity.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any, TypeVar

from alpaca_trade.errors import EntityMappingError
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
from alpaca_trade.utils.convert import (
    to_bool,
    to_decimal,
    to_int,
    to_str,
    to_str_tuple,
)
from alpaca_trade.utils.time import format_timestamp, parse_date, parse_timestamp

E = TypeVar("E")

STR = "str"
DECIMAL = "decimal"
INT = "int"
BOOL = "bool"
DATETIME = "datetime"
DATE = "date"
STRS = "strs"
LEGS = "legs"


@dataclass(frozen=True)
class FieldSpec:
    """One wire field: JSON key, coercion kind, optionality, attribute."""

    key: str
    kind: str
    optional: bool = False
    attr: str = ""

    @property
    def attr_name(self) -> str:
        return self.attr or self.key


def _req(key: str, kind: str, attr: str = "") -> FieldSpec:
    return FieldSpec(key, kind, optional=False, attr=attr)


def _opt(key: str, kind: str, attr: str = "") -> FieldSpec:
    return FieldSpec(key, kind, optional=True, attr=attr)


def _to_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    return parse_timestamp(to_str(value))


def _to_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return parse_date(to_str(value))


def _to_legs(value: Any) -> tuple[Order, ...]:
    if not isinstance(value, list):
        raise TypeError(f"Expected a list of orders, got {type(value).__name__}")
    return tuple(map_entity(Order, leg) for leg in value)


_COERCERS: dict[str, Callable[[Any], Any]] = {
    STR: to_str,
    DECIMAL: to_decimal,
    INT: to_int,
    BOOL: to_bool,
    DATETIME: _to_datetime,
    DATE: _to_date,
    STRS: to_str_tuple,
    LEGS: _to_legs,
}


ACCOUNT_FIELDS: tuple[FieldSpec, ...] = (
    _req("id", STR),
    _req("account_number", STR),
    _req("status", STR),
    _req("currency", STR),
    _req("cash", DECIMAL),
    _req("portfolio_value", DECIMAL),
    _req("pattern_day_trader", BOOL),
    _req("trade_suspended_by_user", BOOL),
    _req("trading_blocked", BOOL),
    _req("transfers_blocked", BOOL),
    _req("account_blocked", BOOL),
    _req("created_at", DATETIME),
    _req("shorting_enabled", BOOL),
    _req("long_market_value", DECIMAL),
    _req("short_market_value", DECIMAL),
    _req("equity", DECIMAL),
    _req("last_equity", DECIMAL),
    _req("multiplier", DECIMAL),
    _req("buying_power", DECIMAL),
    _req("initial_margin", DECIMAL),
    _req("maintenance_margin", DECIMAL),
    _req("sma", DECIMAL),
    _req("daytrade_count", INT),
    _req("last_maintenance_margin", DECIMAL),
    _req("daytrading_buying_power", DECIMAL),
    _req("regt_buying_power", DECIMAL),
)

ACCOUNT_CONFIGURATION_FIELDS: tuple[FieldSpec, ...] = (
    _req("dtbp_check", STR),
    _req("trade_confirm_email", STR),
    _req("suspend_trade", BOOL),
    _req("no_shorting", BOOL),
)

ASSET_FIELDS: tuple[FieldSpec, ...] = (
    _req("id", STR),
    _req("class", STR, attr="class_"),
    _req("exchange", STR),
    _req("symbol", STR),
    _req("status", STR),
    _req("tradable", BOOL),
    _req("marginable", BOOL),
    _req("shortable", BOOL),
    _req("easy_to_borrow", BOOL),
    _req("fractionable", BOOL),
)

ORDER_FIELDS: tuple[FieldSpec, ...] = (
    _req("id", STR),
    _req("client_order_id", STR),
    _req("created_at", DATETIME),
    _opt("updated_at", DATETIME),
    _opt("submitted_at", DATETIME),
    _opt("filled_at", DATETIME),
    _opt("expired_at", DATETIME),
    _opt("canceled_at", DATETIME),
    _opt("failed_at", DATETIME),
    _opt("replaced_at", DATETIME),
    _opt("replaces", STR),
    _req("asset_id", STR),
    _req("symbol", STR),
    _req("asset_class", STR),
    _opt("notional", DECIMAL),
    _opt("qty", DECIMAL),
    _req("filled_qty", DECIMAL),
    _opt("filled_avg_price", DECIMAL),
    _req("order_class", STR),
    _req("order_type", STR),
    _req("type", STR),
    _req("side", STR),
    _req("time_in_force", STR),
    _opt("limit_price", DECIMAL),
    _opt("stop_price", DECIMAL),
    _req("status", STR),
    _req("extended_hours", BOOL),
    _opt("legs", LEGS),
    _opt("trail_percent", DECIMAL),
    _opt("trail_price", DECIMAL),
    _opt("hwm", DECIMAL),
)

POSITION_FIELDS: tuple[FieldSpec, ...] = (
    _req("asset_id", STR),
    _req("symbol", STR),
    _req("exchange", STR),
    _req("asset_class", STR),
    _req("avg_entry_price", DECIMAL),
    _req("qty", DECIMAL),
    _req("side", STR),
    _req("market_value", DECIMAL),
    _req("cost_basis", DECIMAL),
    _req("unrealized_pl", DECIMAL),
    _req("unrealized_plpc", DECIMAL),
    _req("unrealized_intraday_pl", DECIMAL),
    _req("unrealized_intraday_plpc", DECIMAL),
    _req("current_price", DECIMAL),
    _req("lastday_price", DECIMAL),
    _req("change_today", DECIMAL),
)

TRADE_ACTIVITY_FIELDS: tuple[FieldSpec, ...] = (
    _req("activity_type", STR),
    _req("id", STR),
    _req("cum_qty", DECIMAL),
    _req("leaves_qty", DECIMAL),
    _req("price", DECIMAL),
    _req("qty", DECIMAL),
    _req("side", STR),
    _req("symbol", STR),
    _req("transaction_time", DATETIME),
    _req("order_id", STR),
    _req("type", STR),
)

NON_TRADE_ACTIVITY_FIELDS: tuple[FieldSpec, ...] = (
    _req("activity_type", STR),
    _req("id", STR),
    _req("date", DATE),
    _req("net_amount", DECIMAL),
    _opt("symbol", STR),
    _opt("qty", DECIMAL),
    _opt("per_share_amount", DECIMAL),
)

BAR_FIELDS: tuple[FieldSpec, ...] = (
    _req("symbol", STR),
    _req("t", DATETIME),
    _req("o", DECIMAL),
    _req("h", DECIMAL),
    _req("l", DECIMAL),
    _req("c", DECIMAL),
    _req("v", INT),
    _req("n", INT),
    _req("vw", DECIMAL),
)

TRADE_FIELDS: tuple[FieldSpec, ...] = (
    _req("symbol", STR),
    _req("t", DATETIME),
    _req("x", STR),
    _req("p", DECIMAL),
    _req("s", INT),
    _req("c", STRS),
    _req("i", INT),
    _req("z", STR),
)

QUOTE_FIELDS: tuple[FieldSpec, ...] = (
    _req("symbol", STR),
    _req("t", DATETIME),
    _req("ax", STR),
    _req("ap", DECIMAL),
    _req("as", INT, attr="as_"),
    _req("bx", STR),
    _req("bp", DECIMAL),
    _req("bs", INT),
    _req("c", STRS),
)

SCHEMAS: dict[type, tuple[FieldSpec, ...]] = {
    Account: ACCOUNT_FIELDS,
    AccountConfiguration: ACCOUNT_CONFIGURATION_FIELDS,
    Asset: ASSET_FIELDS,
    Order: ORDER_FIELDS,
    Position: POSITION_FIELDS,
    TradeActivity: TRADE_ACTIVITY_FIELDS,
    NonTradeActivity: NON_TRADE_ACTIVITY_FIELDS,
    Bar: BAR_FIELDS,
    Trade: TRADE_FIELDS,
    Quote: QUOTE_FIELDS,
}

TRADE_ACTIVITY_TYPE = "FILL"


def _schema_for(entity_type: type) -> tuple[FieldSpec, ...]:
    try:
        return SCHEMAS[entity_type]
    except KeyError:
        raise TypeError(f"No schema registered for {entity_type.__name__}") from None


def map_entity(entity_type: type[E], raw: Mapping[str, Any]) -> E:
    """Build ``entity_type`` from a decoded JSON record.

    Unknown keys in ``raw`` are ignored. Absent or null optional fields
    become None (``legs`` becomes an empty tuple).

    Raises:
        EntityMappingError: A required field is missing or null, or a
            value cannot be coerced to the field's type.
    """
    name = entity_type.__name__
    if not isinstance(raw, Mapping):
        raise EntityMappingError(
            name, "*", f"expected an object, got {type(raw).__name__}"
        )

    values: dict[str, Any] = {}
    for spec in _schema_for(entity_type):
        value = raw.get(spec.key)
        if value is None:
            if not spec.optional:
                reason = (
                    "required field is null"
                    if spec.key in raw
                    else "required field is missing"
                )
                raise EntityMappingError(name, spec.key, reason)
            values[spec.attr_name] = () if spec.kind == LEGS else None
            continue
        try:
            values[spec.attr_name] = _COERCERS[spec.kind](value)
        except EntityMappingError:
            raise
        except (TypeError, ValueError, ArithmeticError) as e:
            raise EntityMappingError(name, spec.key, str(e)) from e

    return entity_type(**values)


def map_entities(entity_type: type[E], records: Any) -> list[E]:
    """Map a JSON array of records."""
    if not isinstance(records, list):
        raise EntityMappingError(
            entity_type.__name__, "*", f"expected an array, got {type(records).__name__}"
        )
    return [map_entity(entity_type, record) for record in records]


def map_activities(records: Any) -> list[AccountActivity]:
    """Map a JSON array of account activity records."""
    if not isinstance(records, list):
        raise EntityMappingError(
            "AccountActivity", "*", f"expected an array, got {type(records).__name__}"
        )
    return [map_activity(record) for record in records]


def map_activity(raw: Mapping[str, Any]) -> AccountActivity:
    """Dispatch an account activity record on its ``activity_type``."""
    if not isinstance(raw, Mapping):
        raise EntityMappingError(
            "AccountActivity", "*", f"expected an object, got {type(raw).__name__}"
        )
    if raw.get("activity_type") == TRADE_ACTIVITY_TYPE:
        return map_entity(TradeActivity, raw)
    return map_entity(NonTradeActivity, raw)


def _to_wire(value: Any) -> Any:
    if isinstance(value, datetime):
        return format_timestamp(value)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, tuple):
        return [_to_wire(item) for item in value]
    if type(value) in SCHEMAS:
        return entity_to_dict(value)
    return value


def entity_to_dict(entity: Any) -> dict[str, Any]:
    """Inverse of ``map_entity``: wire-shaped dict, None optionals omitted.

    Decimals become strings and datetimes ``YYYY-MM-DDTHH:MM:SSZ``
    strings, matching what the REST API sends for account data.
    """
    result: dict[str, Any] = {}
    for spec in _schema_for(type(entity)):
        value = getattr(entity, spec.attr_name)
        if value is None:
            continue
        result[spec.key] = _to_wire(value)
    return result
