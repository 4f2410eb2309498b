"""Tests for the async GitHub REST client."""

import asyncio
import json

import httpx
import pytest

from reasonet.exceptions import GitHubAPIError
from reasonet.github.client import GitHubClient, split_full_name


def _client(handler) -> GitHubClient:
    return GitHubClient(
        "tok-123",
        api_url="https://github.test/api/",
        transport=httpx.MockTransport(handler),
    )


def _run(coro):
    return asyncio.run(coro)


class TestRequests:
    def test_diff_uses_diff_media_type(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["accept"] = request.headers["Accept"]
            seen["auth"] = request.headers["Authorization"]
            return httpx.Response(200, text="diff --git a/x b/x\n")

        async def scenario():
            async with _client(handler) as client:
                return await client.get_pull_request_diff("acme", "widgets", 7)

        diff = _run(scenario())

        assert diff.startswith("diff --git")
        assert seen["url"] == "https://github.test/api/repos/acme/widgets/pulls/7"
        assert seen["accept"] == "application/vnd.github.v3.diff"
        assert seen["auth"] == "Bearer tok-123"

    def test_list_pull_requests_filters_by_head(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["params"] = dict(request.url.params)
            return httpx.Response(200, json=[{"number": 1}, {"number": 2}])

        async def scenario():
            async with _client(handler) as client:
                return await client.list_pull_requests(
                    "acme", "widgets", head="acme:feature/login"
                )

        prs = _run(scenario())

        assert [pr["number"] for pr in prs] == [1, 2]
        assert seen["params"] == {
            "state": "open",
            "per_page": "100",
            "head": "acme:feature/login",
        }

    def test_create_gist_payload(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["method"] = request.method
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(201, json={"html_url": "https://gist.github.com/1"})

        async def scenario():
            async with _client(handler) as client:
                return await client.create_gist("desc", {"report.md": "# hi"})

        gist = _run(scenario())

        assert gist["html_url"] == "https://gist.github.com/1"
        assert seen["method"] == "POST"
        assert seen["path"] == "/api/gists"
        assert seen["body"] == {
            "description": "desc",
            "public": False,
            "files": {"report.md": {"content": "# hi"}},
        }

    def test_comment_and_update(self):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append((request.method, request.url.path, json.loads(request.content)))
            return httpx.Response(200, json={"html_url": "https://github.com/c/1"})

        async def scenario():
            async with _client(handler) as client:
                await client.create_issue_comment("acme", "widgets", 7, "hello")
                await client.update_pull_request("acme", "widgets", 7, body="new body")

        _run(scenario())

        assert requests == [
            ("POST", "/api/repos/acme/widgets/issues/7/comments", {"body": "hello"}),
            ("PATCH", "/api/repos/acme/widgets/pulls/7", {"body": "new body"}),
        ]


class TestErrors:
    def test_http_error_status(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(404, json={"message": "Not Found"})

        async def scenario():
            async with _client(handler) as client:
                await client.get_pull_request_diff("acme", "widgets", 7)

        with pytest.raises(GitHubAPIError) as exc_info:
            _run(scenario())

        assert exc_info.value.status_code == 404
        assert "Not Found" in str(exc_info.value)
        assert "(HTTP 404)" in str(exc_info.value)

    def test_non_json_error_body(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(502, text="<html>Bad Gateway</html>")

        async def scenario():
            async with _client(handler) as client:
                await client.list_pull_requests("acme", "widgets")

        with pytest.raises(GitHubAPIError) as exc_info:
            _run(scenario())

        assert exc_info.value.status_code == 502

    def test_transport_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async def scenario():
            async with _client(handler) as client:
                await client.get_pull_request_diff("acme", "widgets", 7)

        with pytest.raises(GitHubAPIError) as exc_info:
            _run(scenario())

        assert exc_info.value.status_code is None


class TestSplitFullName:
    def test_split(self):
        assert split_full_name("acme/widgets") == ("acme", "widgets")

    @pytest.mark.parametrize("value", ["", "acme", "/widgets", "acme/"])
    def test_invalid(self, value):
        with pytest.raises(ValueError):
            split_full_name(value)
