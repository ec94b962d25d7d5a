"""Unit tests for MlflowTrackingClient: requests, decoding, error mapping."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import httpx
import pytest

from mlflow_cleanup.config import CleanupConfig
from mlflow_cleanup.exceptions import RemoteError, TransportError
from mlflow_cleanup.models import RunSummary, RunTag
from mlflow_cleanup.tracking_client import MlflowTrackingClient, get_tracking_client

BASE = "http://mlflow.local:5000"


def _make_response(
    status_code: int, json_data: object | None = None, invalid_json: bool = False
) -> MagicMock:
    resp = MagicMock()
    resp.status_code = status_code
    resp.is_success = 200 <= status_code < 300
    if invalid_json:
        resp.json.side_effect = ValueError("Expecting value")
    else:
        resp.json.return_value = json_data if json_data is not None else {}
    return resp


def _run_json(run_id: str, uri: str = "gs://bucket/mlruns/1/r/artifacts") -> dict:
    return {
        "info": {
            "run_id": run_id,
            "experiment_id": "1",
            "user_id": "alice",
            "lifecycle_stage": "active",
            "artifact_uri": uri,
        },
        "data": {"tags": [{"key": "mlflow.runName", "value": "baseline"}]},
    }


def _client(http: MagicMock) -> MlflowTrackingClient:
    return MlflowTrackingClient(base_url=BASE, config=CleanupConfig(), http_client=http)


class TestRequests:
    """Tests for URLs, bodies, and headers sent to the server."""

    def test_delete_experiment_request(self) -> None:
        http = MagicMock()
        http.request.return_value = _make_response(200)
        _client(http).delete_experiment_record("12")
        http.request.assert_called_once_with(
            "POST",
            f"{BASE}/api/2.0/mlflow/experiments/delete",
            json={"experiment_id": "12"},
            params=None,
            headers={"Content-Type": "application/json"},
        )

    def test_delete_run_request(self) -> None:
        http = MagicMock()
        http.request.return_value = _make_response(200)
        _client(http).delete_run_record("abc")
        args, kwargs = http.request.call_args
        assert args == ("POST", f"{BASE}/api/2.0/mlflow/runs/delete")
        assert kwargs["json"] == {"run_id": "abc"}
        assert kwargs["headers"]["Content-Type"] == "application/json"

    def test_fetch_run_uses_get_with_query(self) -> None:
        http = MagicMock()
        http.request.return_value = _make_response(200, {"run": _run_json("abc")})
        run = _client(http).fetch_run("abc")
        args, kwargs = http.request.call_args
        assert args == ("GET", f"{BASE}/api/2.0/mlflow/runs/get")
        assert kwargs["params"] == {"run_id": "abc"}
        assert kwargs["json"] is None
        assert run == RunSummary(
            run_id="abc",
            experiment_id="1",
            user_id="alice",
            lifecycle_stage="active",
            artifact_uri="gs://bucket/mlruns/1/r/artifacts",
            tags=[RunTag(key="mlflow.runName", value="baseline")],
        )

    def test_trailing_slash_in_base_url(self) -> None:
        http = MagicMock()
        http.request.return_value = _make_response(200)
        client = MlflowTrackingClient(
            base_url=BASE + "/", config=CleanupConfig(), http_client=http
        )
        client.delete_run_record("abc")
        assert http.request.call_args.args[1] == f"{BASE}/api/2.0/mlflow/runs/delete"


class TestSearchRuns:
    """Tests for search_runs_by_experiment."""

    def test_returns_runs_in_order(self) -> None:
        http = MagicMock()
        http.request.return_value = _make_response(
            200, {"runs": [_run_json("r1"), _run_json("r2")]}
        )
        runs = _client(http).search_runs_by_experiment("1")
        assert [r.run_id for r in runs] == ["r1", "r2"]
        assert http.request.call_args.kwargs["json"] == {"experiment_ids": ["1"]}

    def test_missing_runs_key_is_empty(self) -> None:
        http = MagicMock()
        http.request.return_value = _make_response(200, {})
        assert _client(http).search_runs_by_experiment("1") == []

    def test_follows_page_tokens(self) -> None:
        http = MagicMock()
        http.request.side_effect = [
            _make_response(200, {"runs": [_run_json("r1")], "next_page_token": "tok"}),
            _make_response(200, {"runs": [_run_json("r2")]}),
        ]
        runs = _client(http).search_runs_by_experiment("1")
        assert [r.run_id for r in runs] == ["r1", "r2"]
        bodies = [c.kwargs["json"] for c in http.request.call_args_list]
        assert bodies == [
            {"experiment_ids": ["1"]},
            {"experiment_ids": ["1"], "page_token": "tok"},
        ]

    def test_malformed_run_is_transport_error(self) -> None:
        http = MagicMock()
        http.request.return_value = _make_response(200, {"runs": [{"data": {}}]})
        with pytest.raises(TransportError):
            _client(http).search_runs_by_experiment("1")

    def test_runs_not_a_list_is_transport_error(self) -> None:
        http = MagicMock()
        http.request.return_value = _make_response(200, {"runs": "nope"})
        with pytest.raises(TransportError):
            _client(http).search_runs_by_experiment("1")


class TestErrorMapping:
    """Tests for mapping failures to RemoteError / TransportError."""

    def test_structured_error_message_verbatim(self) -> None:
        http = MagicMock()
        http.request.return_value = _make_response(
            404, {"error_code": "RESOURCE_DOES_NOT_EXIST", "message": "Run not found"}
        )
        with pytest.raises(RemoteError) as exc_info:
            _client(http).fetch_run("missing")
        assert exc_info.value.message == "Run not found"
        assert str(exc_info.value) == "Run not found"
        assert exc_info.value.error_code == "RESOURCE_DOES_NOT_EXIST"
        assert exc_info.value.status_code == 404

    def test_error_on_delete(self) -> None:
        http = MagicMock()
        http.request.return_value = _make_response(
            400,
            {"error_code": "INVALID_STATE", "message": "Experiment already deleted"},
        )
        with pytest.raises(RemoteError, match="Experiment already deleted"):
            _client(http).delete_experiment_record("1")

    def test_undecodable_error_body_is_transport_error(self) -> None:
        http = MagicMock()
        http.request.return_value = _make_response(502, invalid_json=True)
        with pytest.raises(TransportError):
            _client(http).delete_run_record("r1")

    def test_undecodable_success_body_is_transport_error(self) -> None:
        http = MagicMock()
        http.request.return_value = _make_response(200, invalid_json=True)
        with pytest.raises(TransportError):
            _client(http).fetch_run("r1")

    def test_missing_run_key_is_transport_error(self) -> None:
        http = MagicMock()
        http.request.return_value = _make_response(200, {"other": 1})
        with pytest.raises(TransportError):
            _client(http).fetch_run("r1")

    def test_network_error_is_transport_error(self) -> None:
        http = MagicMock()
        http.request.side_effect = httpx.ConnectError("connection refused")
        with pytest.raises(TransportError) as exc_info:
            _client(http).delete_experiment_record("1")
        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)

    def test_no_retry_on_failure(self) -> None:
        http = MagicMock()
        http.request.return_value = _make_response(500, {"message": "boom"})
        with pytest.raises(RemoteError):
            _client(http).delete_run_record("r1")
        assert http.request.call_count == 1


class TestClientConfig:
    """Tests for construction and resource handling."""

    def test_missing_tracking_uri_raises(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("MLFLOW_TRACKING_URI", raising=False)
        with pytest.raises(ValueError, match="tracking URI is required"):
            MlflowTrackingClient()

    def test_uri_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MLFLOW_TRACKING_URI", BASE)
        with patch("mlflow_cleanup.tracking_client.httpx.Client"):
            client = get_tracking_client()
        assert client.base_url == BASE

    def test_no_timeout_by_default(self) -> None:
        with patch("mlflow_cleanup.tracking_client.httpx.Client") as m:
            MlflowTrackingClient(base_url=BASE, config=CleanupConfig())
        assert m.call_args.kwargs["timeout"] is None

    def test_explicit_timeout(self) -> None:
        with patch("mlflow_cleanup.tracking_client.httpx.Client") as m:
            MlflowTrackingClient(base_url=BASE, config=CleanupConfig(), timeout=30.0)
        assert m.call_args.kwargs["timeout"] == 30.0

    def test_bearer_token_header(self) -> None:
        with patch("mlflow_cleanup.tracking_client.httpx.Client") as m:
            MlflowTrackingClient(
                base_url=BASE, config=CleanupConfig(tracking_token="secret")
            )
        assert m.call_args.kwargs["headers"] == {"Authorization": "Bearer secret"}
        assert m.call_args.kwargs["auth"] is None

    def test_basic_auth(self) -> None:
        with patch("mlflow_cleanup.tracking_client.httpx.Client") as m:
            MlflowTrackingClient(
                base_url=BASE,
                config=CleanupConfig(tracking_username="u", tracking_password="p"),
            )
        assert isinstance(m.call_args.kwargs["auth"], httpx.BasicAuth)

    def test_context_manager_closes_owned_client(self) -> None:
        with patch("mlflow_cleanup.tracking_client.httpx.Client") as m:
            with MlflowTrackingClient(base_url=BASE, config=CleanupConfig()):
                pass
            m.return_value.close.assert_called_once()

    def test_injected_client_not_closed(self) -> None:
        http = MagicMock()
        with _client(http):
            pass
        http.close.assert_not_called()
