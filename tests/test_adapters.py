"""
Tests for the HTTP client adapter and error response mapping.
"""
import httpx
import pytest
from unittest.mock import Mock

from tasksync.adapters import (
    HTTPClientAdapterFactory,
    HTTPResponse,
    HttpxClientAdapter,
)
from tasksync.exceptions import (
    AmbiguousMatchError,
    BackendError,
    DuplicateError,
    TaskNotFoundError,
    ValidationError,
    from_error_response,
    to_http_exception,
)
from tasksync.storage.api_storage import APIStorage


class TestHTTPClientAdapter:
    """Tests for HTTP client adapter."""

    def test_create_client(self):
        """Test creating synchronous HTTP client adapter."""
        with HTTPClientAdapterFactory.create_client(timeout=30.0) as client:
            assert isinstance(client, HttpxClientAdapter)

    def test_http_response_wrapper(self):
        """Test HTTPResponse wrapper."""
        mock_response = Mock()
        mock_response.status_code = 404
        mock_response.json.return_value = {"key": "value"}
        mock_response.text = "text"

        response = HTTPResponse(mock_response)
        assert response.status_code == 404
        assert not response.is_success
        assert response.json() == {"key": "value"}
        assert response.text == "text"

    def test_wraps_prebuilt_client(self):
        """Requests go through the wrapped httpx client."""
        seen = []

        def handler(request):
            seen.append((request.method, str(request.url)))
            return httpx.Response(200, json=["ok"])

        adapter = HttpxClientAdapter(client=httpx.Client(transport=httpx.MockTransport(handler)))
        with adapter:
            assert adapter.get("http://server/a").json() == ["ok"]
            assert adapter.post("http://server/b", json={}).is_success
            adapter.patch("http://server/c", json={})
            adapter.delete("http://server/d")

        assert [method for method, _ in seen] == ["GET", "POST", "PATCH", "DELETE"]


class TestErrorResponses:
    """ServiceErrors survive the trip through an HTTP error response."""

    @pytest.mark.parametrize("error, status", [
        (TaskNotFoundError("01abc"), 404),
        (ValidationError("bad", field="due"), 422),
        (DuplicateError("Task", "ulid", "01abc"), 409),
        (AmbiguousMatchError("abc", ["1abc", "2abc"]), 409),
    ])
    def test_round_trip(self, error, status):
        http_exc = to_http_exception(error)
        assert http_exc.status_code == status

        rebuilt = from_error_response(http_exc.status_code, http_exc.detail)
        assert type(rebuilt) is type(error)
        assert rebuilt.message == error.message

    def test_ambiguous_keeps_candidates(self):
        http_exc = to_http_exception(AmbiguousMatchError("abc", ["1abc", "2abc"]))
        rebuilt = from_error_response(409, http_exc.detail)
        assert rebuilt.candidates == ["1abc", "2abc"]

    def test_unknown_status(self):
        error = from_error_response(503, "Service Unavailable", uri="http://server/tasks/")
        assert type(error) is BackendError
        assert "503" in error.message
        assert error.context["uri"] == "http://server/tasks/"

    def test_non_json_error_body(self):
        def handler(request):
            return httpx.Response(500, text="<html>oops</html>")

        client = HttpxClientAdapter(client=httpx.Client(transport=httpx.MockTransport(handler)))
        storage = APIStorage("http://server", client=client)
        with pytest.raises(BackendError) as exc_info:
            storage.next_tasks(1)
        assert "oops" in exc_info.value.message
