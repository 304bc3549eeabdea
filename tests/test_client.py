"""RoamClient against httpx.MockTransport, and error classification."""

import asyncio
import json

import httpx
import pytest

from roamline.api.client import RoamClient
from roamline.api.types import UpdateBlockWrite
from roamline.errors import ApiError, ConfigError, ErrorInfo, TransportError


def call(handler, method, *args, **client_kwargs):
    async def main():
        async with RoamClient("g", "tok", transport=httpx.MockTransport(handler), **client_kwargs) as client:
            return await getattr(client, method)(*args)

    return asyncio.run(main())


class TestRequests:
    def test_pull(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"result": {":node/title": "Foo"}})

        assert call(handler, "pull", '[:node/title "Foo"]', "[:node/title]") == {":node/title": "Foo"}

        request = seen[0]
        assert request.method == "POST"
        assert str(request.url) == "https://api.roamresearch.com/api/graph/g/pull"
        assert request.headers["X-Authorization"] == "Bearer tok"
        assert json.loads(request.content) == {"eid": '[:node/title "Foo"]', "selector": "[:node/title]"}

    def test_custom_base_url(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"result": []})

        call(handler, "query", "[:find ?e]", base_url="http://localhost:8080/g")
        assert str(seen[0].url) == "http://localhost:8080/g/q"

    def test_query(self):
        def handler(request):
            body = json.loads(request.content)
            assert body == {"query": "[:find ?e :in $ ?t]", "args": ["Foo"]}
            return httpx.Response(200, json={"result": [["a"]]})

        assert call(handler, "query", "[:find ?e :in $ ?t]", ["Foo"]) == [["a"]]

    def test_query_without_result(self):
        assert call(lambda r: httpx.Response(200, json={"result": None}), "query", "q") == []

    def test_write_accepts_empty_body(self):
        seen = []

        def handler(request):
            seen.append(json.loads(request.content))
            return httpx.Response(200)

        assert call(handler, "write", UpdateBlockWrite("b", "x")) is None
        assert seen == [{"action": "update-block", "block": {"uid": "b", "string": "x"}}]


class TestFailures:
    def test_http_error_status(self):
        with pytest.raises(ApiError) as excinfo:
            call(lambda r: httpx.Response(404, text="nope"), "pull", "e", "s")
        assert excinfo.value.status == 404
        assert excinfo.value.message == "nope"

    def test_connection_failure(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(TransportError, match="ConnectError"):
            call(handler, "pull", "e", "s")

    @pytest.mark.parametrize(
        "response",
        [
            httpx.Response(200, text="not json"),
            httpx.Response(200, json=[1, 2]),
        ],
    )
    def test_unusable_body(self, response):
        with pytest.raises(TransportError, match="Invalid response format"):
            call(lambda r: response, "pull", "e", "s")


class TestErrorInfo:
    @pytest.mark.parametrize(
        "status, title",
        [
            (401, "Authentication failed"),
            (403, "Authentication failed"),
            (404, "Not found"),
            (429, "Rate limited"),
            (503, "Server error (503)"),
            (418, "API error (418)"),
        ],
    )
    def test_status_classification(self, status, title):
        assert ErrorInfo.from_exception(ApiError(status, "body")).title == title

    def test_empty_body_uses_status(self):
        assert ErrorInfo.from_exception(ApiError(500, "  ")).message == "HTTP 500"

    def test_other_errors(self):
        assert ErrorInfo.from_exception(TransportError("timed out")).title == "Network error"
        config = ErrorInfo.from_exception(ConfigError("bad"))
        assert (config.title, config.message) == ("Configuration error", "Config error: bad")
        unexpected = ErrorInfo.from_exception(ValueError())
        assert (unexpected.title, unexpected.message) == ("Unexpected error", "ValueError")

    def test_write_failed(self):
        info = ErrorInfo.write_failed(ApiError(500, "boom"))
        assert info.title == "Write failed"
        assert info.message == "boom"
        assert info.hint
