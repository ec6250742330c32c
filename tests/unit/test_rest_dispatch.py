"""Tests for the request dispatcher.

All HTTP traffic goes through httpx.MockTransport; backoff sleeps are
recorded instead of slept.
"""

from __future__ import annotations

from datetime import datetime

import httpx
import pytest
import structlog

from alpaca_trade.config import RESTConfig
from alpaca_trade.errors import (
    AlpacaConnectionError,
    APIError,
    AuthError,
    RetryExhaustedError,
)
from alpaca_trade.rest import (
    KEY_ID_HEADER,
    SECRET_KEY_HEADER,
    build_url,
    dispatch,
)
from alpaca_trade.timeframe import TimeFrame
from tests.mock_http import json_response, request_json, scripted


def _always(status_code: int, payload: object = None):
    def handler(request: httpx.Request) -> httpx.Response:
        return json_response(status_code, payload or {"message": "slow down"})

    return handler


class TestUrlAndHeaders:
    """URL shape and credential headers."""

    def test_build_url(self) -> None:
        assert build_url("https://api.test", "/orders") == "https://api.test/v2/orders"

    def test_build_url_strips_trailing_slash(self) -> None:
        assert build_url("https://api.test/", "/account") == "https://api.test/v2/account"

    def test_auth_headers_on_request(self, config: RESTConfig, mock_http) -> None:
        client, transport = mock_http(scripted(json_response(200, {"id": "acct"})))
        result = dispatch(config, "GET", "/account", client=client)

        assert result == {"id": "acct"}
        request = transport.requests[0]
        assert request.headers[KEY_ID_HEADER] == "test-key"
        assert request.headers[SECRET_KEY_HEADER] == "test-secret"
        assert str(request.url) == "https://api.test/v2/account"

    def test_base_url_override(self, config: RESTConfig, mock_http) -> None:
        client, transport = mock_http(scripted(json_response(200, {})))
        dispatch(config, "GET", "/stocks/AAPL/bars", base_url=config.data_url, client=client)
        assert transport.requests[0].url.host == "data.test"

    def test_missing_key_id_raises_before_sending(self, mock_http) -> None:
        cfg = RESTConfig(key_id="", secret_key="secret")
        client, transport = mock_http(scripted())
        with pytest.raises(AuthError, match="APCA_API_KEY_ID"):
            dispatch(cfg, "GET", "/account", client=client)
        assert transport.requests == []

    def test_missing_secret_raises_before_sending(self, mock_http) -> None:
        cfg = RESTConfig(key_id="key", secret_key="")
        client, transport = mock_http(scripted())
        with pytest.raises(AuthError, match="APCA_API_SECRET_KEY"):
            dispatch(cfg, "GET", "/account", client=client)
        assert transport.requests == []


class TestParameterEncoding:
    """Read verbs use the query string, write verbs a JSON body."""

    def test_get_params_go_to_query(self, config: RESTConfig, mock_http) -> None:
        client, transport = mock_http(scripted(json_response(200, [])))
        dispatch(
            config,
            "GET",
            "/orders",
            {"status": "open", "limit": 50, "after": None},
            client=client,
        )
        request = transport.requests[0]
        assert request.url.params["status"] == "open"
        assert request.url.params["limit"] == "50"
        assert "after" not in request.url.params
        assert request.content == b""

    def test_get_stop_is_sent_as_end(self, config: RESTConfig, mock_http) -> None:
        client, transport = mock_http(scripted(json_response(200, {})))
        dispatch(
            config,
            "GET",
            "/stocks/AAPL/bars",
            {"timeframe": TimeFrame.minutes(5), "stop": datetime(2021, 2, 1, 16)},
            client=client,
        )
        params = transport.requests[0].url.params
        assert params["timeframe"] == "5Min"
        assert params["end"] == "2021-02-01T16:00:00-05:00"
        assert "stop" not in params

    def test_delete_params_go_to_query(self, config: RESTConfig, mock_http) -> None:
        client, transport = mock_http(scripted(httpx.Response(204)))
        result = dispatch(config, "delete", "/orders", {"cancel_all": True}, client=client)
        request = transport.requests[0]
        assert request.method == "DELETE"
        assert request.url.params["cancel_all"] == "true"
        assert result is None

    def test_post_params_go_to_json_body(self, config: RESTConfig, mock_http) -> None:
        client, transport = mock_http(scripted(json_response(200, {"id": "o1"})))
        dispatch(
            config,
            "POST",
            "/orders",
            {"symbol": "AAPL", "qty": 1, "limit_price": None},
            client=client,
        )
        request = transport.requests[0]
        assert request.url.query == b""
        assert request.headers["Content-Type"] == "application/json"
        assert request_json(request) == {"symbol": "AAPL", "qty": 1}

    def test_patch_sends_body(self, config: RESTConfig, mock_http) -> None:
        client, transport = mock_http(scripted(json_response(200, {})))
        dispatch(
            config,
            "PATCH",
            "/account/configurations",
            {"no_shorting": True},
            client=client,
        )
        assert request_json(transport.requests[0]) == {"no_shorting": True}

    def test_post_stop_key_is_not_renamed(self, config: RESTConfig, mock_http) -> None:
        client, transport = mock_http(scripted(json_response(200, {})))
        dispatch(config, "POST", "/things", {"stop": 1}, client=client)
        assert request_json(transport.requests[0]) == {"stop": 1}


class TestRetryPolicy:
    """Retryable statuses back off; everything else fails fast."""

    @pytest.mark.parametrize("retry_max", [0, 1, 3, 5])
    def test_exhausts_after_retry_max_plus_one_attempts(
        self,
        retry_max: int,
        mock_http,
        sleeps: list[float],
    ) -> None:
        cfg = RESTConfig(
            key_id="k",
            secret_key="s",
            retry_max=retry_max,
            retry_wait=1.5,
            retry_codes=[429],
        )
        client, transport = mock_http(_always(429))

        with pytest.raises(RetryExhaustedError) as exc_info:
            dispatch(cfg, "GET", "/account", client=client)

        assert len(transport.requests) == retry_max + 1
        assert exc_info.value.attempts == retry_max + 1
        assert exc_info.value.status_code == 429
        assert sleeps == [1.5] * retry_max

    @pytest.mark.parametrize("status", [400, 404, 422, 500, 503])
    def test_non_retryable_status_single_attempt(
        self,
        status: int,
        config: RESTConfig,
        mock_http,
        sleeps: list[float],
    ) -> None:
        client, transport = mock_http(
            _always(status, {"code": 40010001, "message": "bad request"})
        )

        with pytest.raises(APIError) as exc_info:
            dispatch(config, "GET", "/orders", client=client)

        assert not isinstance(exc_info.value, RetryExhaustedError)
        assert len(transport.requests) == 1
        assert sleeps == []
        assert exc_info.value.status_code == status
        assert exc_info.value.code == 40010001
        assert exc_info.value.message == "bad request"

    @pytest.mark.parametrize("status", [401, 403])
    def test_auth_failure_is_auth_error(
        self,
        status: int,
        config: RESTConfig,
        mock_http,
        sleeps: list[float],
    ) -> None:
        client, transport = mock_http(_always(status, {"message": "forbidden."}))
        with pytest.raises(AuthError):
            dispatch(config, "GET", "/account", client=client)
        assert len(transport.requests) == 1

    def test_recovers_after_transient_failure(
        self,
        config: RESTConfig,
        mock_http,
        sleeps: list[float],
    ) -> None:
        client, transport = mock_http(
            scripted(
                json_response(429, {"message": "rate limit"}),
                json_response(504, {"message": "gateway timeout"}),
                json_response(200, {"id": "acct"}),
            )
        )
        assert dispatch(config, "GET", "/account", client=client) == {"id": "acct"}
        assert len(transport.requests) == 3
        assert len(sleeps) == 2

    def test_fatal_error_after_transient_is_not_retried(
        self,
        config: RESTConfig,
        mock_http,
        sleeps: list[float],
    ) -> None:
        client, transport = mock_http(
            scripted(
                json_response(429, {"message": "rate limit"}),
                json_response(422, {"message": "invalid qty"}),
            )
        )
        with pytest.raises(APIError, match="invalid qty"):
            dispatch(config, "POST", "/orders", {"qty": -1}, client=client)
        assert len(transport.requests) == 2

    def test_exhausted_error_is_an_api_error(
        self,
        mock_http,
        sleeps: list[float],
    ) -> None:
        cfg = RESTConfig(key_id="k", secret_key="s", retry_max=0)
        client, _ = mock_http(_always(504))
        with pytest.raises(APIError):
            dispatch(cfg, "GET", "/account", client=client)


class TestResponseHandling:
    """Decoding and transport failures."""

    def test_non_json_error_body(self, config: RESTConfig, mock_http) -> None:
        client, _ = mock_http(scripted(httpx.Response(500, text="upstream exploded")))
        with pytest.raises(APIError) as exc_info:
            dispatch(config, "GET", "/account", client=client)
        assert exc_info.value.body == "upstream exploded"

    @pytest.mark.parametrize("payload", [["bad"], 42])
    def test_non_object_json_error_body(
        self,
        payload: object,
        config: RESTConfig,
        mock_http,
    ) -> None:
        client, _ = mock_http(scripted(json_response(400, payload)))
        with pytest.raises(APIError) as exc_info:
            dispatch(config, "GET", "/account", client=client)
        assert exc_info.value.message == str(payload)
        assert exc_info.value.body == payload
        assert exc_info.value.code is None

    def test_malformed_success_body(self, config: RESTConfig, mock_http) -> None:
        client, _ = mock_http(scripted(httpx.Response(200, text="<html>")))
        with pytest.raises(APIError, match="Malformed JSON"):
            dispatch(config, "GET", "/account", client=client)

    def test_transport_error_is_connection_error(
        self,
        config: RESTConfig,
        mock_http,
    ) -> None:
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client, transport = mock_http(refuse)
        with pytest.raises(AlpacaConnectionError, match="connection refused"):
            dispatch(config, "GET", "/account", client=client)
        assert len(transport.requests) == 1

    def test_opens_own_client_when_none_given(
        self,
        config: RESTConfig,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        transport = httpx.MockTransport(lambda request: json_response(200, {"ok": True}))
        real_client = httpx.Client

        monkeypatch.setattr(
            "alpaca_trade.rest.httpx.Client",
            lambda: real_client(transport=transport),
        )
        assert dispatch(config, "GET", "/clock") == {"ok": True}


class TestRetryLogging:
    """Each backoff and the final give-up are logged."""

    def test_warning_per_retry_then_error(self, mock_http, sleeps: list[float]) -> None:
        cfg = RESTConfig(key_id="k", secret_key="s", retry_max=2, retry_wait=1.0)
        client, _ = mock_http(_always(429))

        with structlog.testing.capture_logs() as logs:
            with pytest.raises(RetryExhaustedError):
                dispatch(cfg, "GET", "/account", client=client)

        warnings = [e for e in logs if e["log_level"] == "warning"]
        assert [e["event"] for e in warnings] == ["Retrying request"] * 2
        assert [e["remaining_retries"] for e in warnings] == [2, 1]
        assert all(e["wait"] == 1.0 for e in warnings)
        assert warnings[0]["url"] == "https://api.alpaca.markets/v2/account"
        assert warnings[0]["status"] == 429
        errors = [e for e in logs if e["log_level"] == "error"]
        assert errors[0]["event"] == "Retries exhausted"
        assert errors[0]["attempts"] == 3

    def test_debug_log_never_carries_secret(self, config: RESTConfig, mock_http) -> None:
        client, _ = mock_http(scripted(json_response(200, {})))
        with structlog.testing.capture_logs() as logs:
            dispatch(config, "GET", "/account", client=client)
        assert logs[0]["event"] == "Sending request"
        assert "test-secret" not in repr(logs)
