"""Tests for CircleCI API client."""

from __future__ import annotations

import json

import httpx
import pytest
import respx

from circleci_builder.client import CircleCIClient
from circleci_builder.config import CircleCIConfig
from circleci_builder.exceptions import (
    CircleCIApiError,
    CircleCIAuthError,
    CircleCIDecodeError,
    CircleCINotFoundError,
    CircleCITransportError,
)
from circleci_builder.models import BuildSelector, BuildSummaryQuery, Project

BASE = "https://circleci.example.com/api/v1.1"

PROJECT = Project(username="org", reponame="repo", vcs="github", vcs_url="https://github.com/org/repo")


def _make_client() -> CircleCIClient:
    return CircleCIClient(CircleCIConfig(url="https://circleci.example.com", token="test-token"))


class TestConstruction:
    def test_requires_token(self):
        with pytest.raises(ValueError, match="CIRCLECI_TOKEN"):
            CircleCIClient(CircleCIConfig(url="https://circleci.example.com", token=""))


class TestRequest:
    async def test_token_injected_into_query(self, client, mock_api):
        route = mock_api.get("/me").mock(
            return_value=httpx.Response(200, json={"login": "builder", "name": "Builder"})
        )
        user = await client.me()
        assert user.username == "builder"
        assert user.display_name == "Builder"
        assert route.calls.last.request.url.params["circle-token"] == "test-token"
        assert route.calls.last.request.headers["accept"] == "application/json"

    async def test_auth_error_401(self):
        async with respx.mock(base_url=BASE) as router:
            router.get("/me").mock(return_value=httpx.Response(401, text="Unauthorized"))
            client = _make_client()
            with pytest.raises(CircleCIAuthError) as exc_info:
                await client.me()
            assert exc_info.value.status_code == 401

    async def test_not_found_error(self):
        async with respx.mock(base_url=BASE) as router:
            router.get("/project/github/org/repo/99").mock(
                return_value=httpx.Response(404, text="Not Found")
            )
            client = _make_client()
            with pytest.raises(CircleCINotFoundError):
                await client.get_build(PROJECT, 99)

    async def test_server_error(self):
        async with respx.mock(base_url=BASE) as router:
            router.get("/projects").mock(return_value=httpx.Response(500, text="boom"))
            client = _make_client()
            with pytest.raises(CircleCIApiError) as exc_info:
                await client.list_projects()
            assert exc_info.value.status_code == 500

    async def test_html_response_error(self):
        async with respx.mock(base_url=BASE) as router:
            router.get("/me").mock(
                return_value=httpx.Response(
                    200,
                    text="<html><body>Login</body></html>",
                    headers={"content-type": "text/html"},
                )
            )
            client = _make_client()
            with pytest.raises(CircleCIApiError, match="HTML"):
                await client.me()

    async def test_transport_error(self):
        async with respx.mock(base_url=BASE) as router:
            router.get("/me").mock(side_effect=httpx.ConnectError("connection refused"))
            client = _make_client()
            with pytest.raises(CircleCITransportError, match="GET /me"):
                await client.me()

    async def test_invalid_utf8_body(self, client, mock_api):
        mock_api.get("/me").mock(
            return_value=httpx.Response(
                200,
                content=b'{"login": "\xff\xfe"}',
                headers={"content-type": "application/json"},
            )
        )
        with pytest.raises(CircleCIApiError, match="JSON parse error"):
            await client.me()

    async def test_corrupt_gzip_body(self, client, mock_api):
        mock_api.get("/me").mock(
            return_value=httpx.Response(
                200,
                content=b"definitely not gzip",
                headers={"content-type": "application/json", "content-encoding": "gzip"},
            )
        )
        with pytest.raises(CircleCITransportError, match="GET /me"):
            await client.me()

    async def test_decode_error(self):
        async with respx.mock(base_url=BASE) as router:
            router.get("/project/github/org/repo/5").mock(
                return_value=httpx.Response(200, json={"build_num": "not-a-number"})
            )
            client = _make_client()
            with pytest.raises(CircleCIDecodeError):
                await client.get_build(PROJECT, 5)


class TestBuilds:
    async def test_trigger_build_sends_selector(self):
        async with respx.mock(base_url=BASE) as router:
            route = router.post("/project/github/org/repo/build").mock(
                return_value=httpx.Response(200, json={"status": 200, "body": "Build created"})
            )
            client = _make_client()
            result = await client.trigger_build(PROJECT, BuildSelector(branch="main"))
            assert result.status == 200
            assert json.loads(route.calls.last.request.content) == {"branch": "main"}

    async def test_list_build_summaries(self):
        payload = [
            {
                "build_num": 12,
                "lifecycle": "finished",
                "status": "success",
                "branch": "main",
                "vcs_revision": "abc",
                "vcs_tag": None,
                "user": {"login": "builder"},
                "usage_queued_at": "2024-01-02T03:04:05.000Z",
                "stop_time": "2024-01-02T03:10:00.000Z",
                "workflows": {"workflow_id": "wf", "workflow_name": "ci", "job_name": "test"},
            }
        ]
        async with respx.mock(base_url=BASE) as router:
            route = router.get("/project/github/org/repo").mock(
                return_value=httpx.Response(200, json=payload)
            )
            client = _make_client()
            summaries = await client.list_build_summaries(
                PROJECT, BuildSummaryQuery(limit=100, offset=200)
            )
            params = route.calls.last.request.url.params
            assert params["limit"] == "100"
            assert params["offset"] == "200"
            assert "filter" not in params
        summary = summaries[0]
        assert summary.build_num == 12
        assert summary.revision == "abc"
        assert summary.user_login == "builder"
        assert summary.workflow_id == "wf"
        assert summary.queued_at.tzinfo is not None
        assert summary.is_finished

    async def test_get_build_parses_failed_flag(self):
        async with respx.mock(base_url=BASE) as router:
            router.get("/project/github/org/repo/7").mock(
                return_value=httpx.Response(
                    200, json={"build_num": 7, "lifecycle": "finished", "failed": True}
                )
            )
            client = _make_client()
            build = await client.get_build(PROJECT, 7)
            assert build.failed is True
            assert build.workflow is None


class TestProjects:
    async def test_list_projects(self):
        async with respx.mock(base_url=BASE) as router:
            router.get("/projects").mock(
                return_value=httpx.Response(
                    200,
                    json=[
                        {
                            "username": "org",
                            "reponame": "repo",
                            "vcs_type": "github",
                            "vcs_url": "https://github.com/org/repo",
                        }
                    ],
                )
            )
            client = _make_client()
            projects = await client.list_projects()
            assert projects == [PROJECT]

    async def test_follow_project(self):
        async with respx.mock(base_url=BASE) as router:
            route = router.post("/project/github/org/repo/follow").mock(
                return_value=httpx.Response(200, json={"following": True})
            )
            client = _make_client()
            status = await client.follow_project(PROJECT)
            assert status.following is True
            assert route.called

    async def test_unfollow_project(self):
        async with respx.mock(base_url=BASE) as router:
            router.post("/project/github/org/repo/unfollow").mock(
                return_value=httpx.Response(200, json={"following": False})
            )
            client = _make_client()
            status = await client.unfollow_project(PROJECT)
            assert status.following is False
