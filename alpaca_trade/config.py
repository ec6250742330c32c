"""Pydantic Settings configuration for the REST client.

Resolution order (lowest to highest priority):
1. Pydantic defaults (in code below)
2. .env file (loaded by Pydantic Settings)
3. Environment variables (APCA_API_KEY_ID, APCA_API_RETRY_MAX, ...)
4. Keyword overrides passed to load_config()

The resulting RESTConfig is frozen and is passed explicitly to every
dispatch/paginate call. There is no module-level instance.
"""

from __future__ import annotations

import json
from collections.abc import Iterable
from typing import Annotated, Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

DEFAULT_BASE_URL = "https://api.alpaca.markets"
DEFAULT_DATA_URL = "https://data.alpaca.markets"
DEFAULT_RETRY_CODES = frozenset({429, 504})


class RESTConfig(BaseSettings):
    """Credentials, endpoints and retry policy.

    Env var examples:
        APCA_API_KEY_ID=your-key
        APCA_API_BASE_URL=https://paper-api.alpaca.markets
        APCA_API_RETRY_CODES=429,500,504
    """

    model_config = SettingsConfigDict(
        env_prefix="APCA_API_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    key_id: str = ""
    secret_key: str = ""
    base_url: str = DEFAULT_BASE_URL
    data_url: str = DEFAULT_DATA_URL
    retry_max: int = Field(default=3, ge=0)
    retry_wait: float = Field(default=3.0, ge=0.0)
    retry_codes: Annotated[frozenset[int], NoDecode] = DEFAULT_RETRY_CODES

    @field_validator("base_url", "data_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        v = v.strip().rstrip("/")
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"URL must start with http:// or https://, got {v!r}")
        return v

    @field_validator("retry_codes", mode="before")
    @classmethod
    def parse_retry_codes(cls, v: Any) -> frozenset[int]:
        if isinstance(v, str):
            text = v.strip()
            if text.startswith("["):
                v = json.loads(text)
            else:
                v = [part for part in text.split(",") if part.strip()]
        if not isinstance(v, Iterable):
            raise ValueError(f"retry_codes must be a list of status codes, got {v!r}")

        codes = frozenset(int(code) for code in v)
        for code in codes:
            if not 100 <= code <= 599:
                raise ValueError(f"Invalid HTTP status code in retry_codes: {code}")
        return codes


def load_config(**overrides: Any) -> RESTConfig:
    """Build the client configuration once at startup.

    Overrides left as None are treated as unset, so the environment and
    defaults still apply to them.
    """
    explicit = {key: value for key, value in overrides.items() if value is not None}
    return RESTConfig(**explicit)
