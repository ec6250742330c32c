"""Request dispatcher: one authenticated Alpaca REST call with retries.

Every endpoint goes through ``dispatch``. It owns URL construction,
credential headers, verb-dependent parameter encoding and the retry
policy. Statuses listed in ``config.retry_codes`` are retried with a
fixed wait; every other failure is raised on the first attempt.
"""

from __future__ import annotations

import time
from collections.abc import Mapping
from typing import Any

import httpx
import structlog

from alpaca_trade.config import RESTConfig
from alpaca_trade.encoding import encode_params
from alpaca_trade.errors import (
    AlpacaConnectionError,
    APIError,
    AuthError,
    RetryExhaustedError,
)

logger = structlog.get_logger()

API_VERSION = "v2"

KEY_ID_HEADER = "APCA-API-KEY-ID"
SECRET_KEY_HEADER = "APCA-API-SECRET-KEY"

_AUTH_STATUSES = frozenset({401, 403})


def generate_headers(config: RESTConfig) -> dict[str, str]:
    """Credential headers sent with every request."""
    if not config.key_id:
        raise AuthError(
            401,
            "API key id is required. Set APCA_API_KEY_ID environment variable.",
        )
    if not config.secret_key:
        raise AuthError(
            401,
            "API secret key is required. "
            "Set APCA_API_SECRET_KEY environment variable.",
        )
    return {KEY_ID_HEADER: config.key_id, SECRET_KEY_HEADER: config.secret_key}


def build_url(base_url: str, path: str) -> str:
    """``{base_url}/v2{path}``; ``path`` starts with a slash."""
    return f"{base_url.rstrip('/')}/{API_VERSION}{path}"


def _error_details(response: httpx.Response) -> tuple[str, Any, int | None]:
    """Extract (message, body, alpaca error code) from an error response."""
    try:
        body: Any = response.json()
    except ValueError:
        body = response.text
    if isinstance(body, dict):
        message = str(body.get("message") or response.reason_phrase or "")
        code = body.get("code")
        return message, body, code if isinstance(code, int) else None
    message = "" if body is None else str(body)
    return message or response.reason_phrase or f"HTTP {response.status_code}", body, None


def _raise_for_status(response: httpx.Response) -> None:
    message, body, code = _error_details(response)
    if response.status_code in _AUTH_STATUSES:
        raise AuthError(response.status_code, message, body, code)
    raise APIError(response.status_code, message, body, code)


def _decode(response: httpx.Response, url: str) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError as e:
        logger.error("Malformed JSON in response", url=url, status=response.status_code)
        raise APIError(
            response.status_code,
            "Malformed JSON in response",
            response.text,
        ) from e


def _send(
    client: httpx.Client,
    method: str,
    url: str,
    headers: dict[str, str],
    body: str,
) -> httpx.Response:
    try:
        return client.request(method, url, headers=headers, content=body or None)
    except httpx.TransportError as e:
        raise AlpacaConnectionError(f"{method} {url} failed: {e}") from e


def dispatch(
    config: RESTConfig,
    method: str,
    path: str,
    params: Mapping[str, Any] | None = None,
    *,
    base_url: str | None = None,
    client: httpx.Client | None = None,
) -> Any:
    """Send one API request and return the decoded JSON response.

    Args:
        config: Credentials and retry policy.
        method: HTTP verb. GET/DELETE put ``params`` in the query string,
            other verbs send them as a JSON body.
        path: Resource path below the API version, e.g. ``"/orders"``.
        params: Request parameters; ``None`` values are dropped.
        base_url: Target host; defaults to ``config.base_url``.
        client: Reusable httpx client. A short-lived one is opened if absent.

    Returns:
        The decoded JSON body, or None for an empty (e.g. 204) response.

    Raises:
        AuthError: Missing credentials, or HTTP 401/403.
        RetryExhaustedError: A status in ``config.retry_codes`` persisted
            for ``config.retry_max + 1`` attempts.
        APIError: Any other non-2xx status.
        AlpacaConnectionError: Transport failure.
    """
    method = method.upper()
    url = build_url(base_url or config.base_url, path)
    headers = generate_headers(config)
    query, body = encode_params(method, params)
    if query:
        url = f"{url}?{query}"
    if body:
        headers["Content-Type"] = "application/json"

    if client is None:
        with httpx.Client() as owned_client:
            return _dispatch_with_retry(
                config, owned_client, method, url, query, headers, body
            )
    return _dispatch_with_retry(config, client, method, url, query, headers, body)


def _dispatch_with_retry(
    config: RESTConfig,
    client: httpx.Client,
    method: str,
    url: str,
    query: str,
    headers: dict[str, str],
    body: str,
) -> Any:
    max_attempts = config.retry_max + 1
    attempt = 0

    while True:
        attempt += 1
        logger.debug(
            "Sending request",
            method=method,
            url=url,
            query=query,
            body=body,
            attempt=attempt,
        )
        response = _send(client, method, url, headers, body)

        if response.is_success:
            return _decode(response, url)

        if response.status_code not in config.retry_codes:
            _raise_for_status(response)

        remaining = max_attempts - attempt
        if remaining == 0:
            message, error_body, code = _error_details(response)
            logger.error(
                "Retries exhausted",
                method=method,
                url=url,
                status=response.status_code,
                attempts=attempt,
            )
            raise RetryExhaustedError(
                response.status_code,
                message,
                error_body,
                code,
                attempts=attempt,
            )

        logger.warning(
            "Retrying request",
            method=method,
            url=url,
            status=response.status_code,
            wait=config.retry_wait,
            remaining_retries=remaining,
        )
        time.sleep(config.retry_wait)
