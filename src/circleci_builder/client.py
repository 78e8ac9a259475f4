"""CircleCI API v1.1 client using httpx."""

from __future__ import annotations

from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, TypeAdapter, ValidationError

from .config import CircleCIConfig
from .exceptions import (
    CircleCIApiError,
    CircleCIAuthError,
    CircleCIDecodeError,
    CircleCINotFoundError,
    CircleCITransportError,
)
from .models import (
    Build,
    BuildSelector,
    BuildSummary,
    BuildSummaryQuery,
    BuildTriggerResult,
    FollowStatus,
    Project,
    User,
)

M = TypeVar("M", bound=BaseModel)

_SUMMARIES = TypeAdapter(list[BuildSummary])
_PROJECTS = TypeAdapter(list[Project])


class CircleCIClient:
    """Async HTTP client for the CircleCI REST API v1.1.

    Every method performs exactly one request. Retrying is left to the caller.
    """

    def __init__(self, config: CircleCIConfig | None = None) -> None:
        self.config = config or CircleCIConfig.from_env()
        self.config.validate()
        self._client = httpx.AsyncClient(
            base_url=self.config.api_url,
            headers={
                "Accept": "application/json",
                "Content-Type": "application/json",
            },
            timeout=self.config.timeout,
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> CircleCIClient:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    # ── HTTP helpers ──────────────────────────────────────────────

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json_data: Any = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        """Make an authenticated API request and return parsed JSON."""
        query = {**(params or {}), "circle-token": self.config.token}
        kwargs: dict[str, Any] = {"params": query}
        if json_data is not None:
            kwargs["json"] = json_data

        try:
            resp = await self._client.request(method, path, **kwargs)
        except httpx.RequestError as e:
            raise CircleCITransportError(method, path, str(e) or type(e).__name__) from e

        if resp.status_code in (401, 403):
            raise CircleCIAuthError(resp.status_code, resp.text)
        if resp.status_code == 404:
            raise CircleCINotFoundError(resp.text)
        if not resp.is_success:
            raise CircleCIApiError(resp.status_code, resp.reason_phrase or "", resp.text)

        if resp.status_code == 204 or not resp.content:
            return None

        content_type = resp.headers.get("content-type", "")
        if "text/html" in content_type:
            msg = "Unexpected HTML response, check URL and authentication"
            raise CircleCIApiError(resp.status_code, msg, resp.text[:500])

        try:
            return resp.json()
        except ValueError as e:
            raise CircleCIApiError(
                resp.status_code,
                f"JSON parse error: {e}",
                resp.text[:500],
            ) from e

    async def get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        return await self._request("GET", path, params=params)

    async def post(self, path: str, json_data: Any = None, **kwargs: Any) -> Any:
        return await self._request("POST", path, json_data=json_data, **kwargs)

    @staticmethod
    def _parse(path: str, model: type[M] | TypeAdapter, data: Any) -> Any:
        try:
            if isinstance(model, TypeAdapter):
                return model.validate_python(data)
            return model.model_validate(data)
        except ValidationError as e:
            raise CircleCIDecodeError(path, str(e)) from e

    # ── Builds ────────────────────────────────────────────────────

    async def trigger_build(self, project: Project, selector: BuildSelector) -> BuildTriggerResult:
        path = f"/project/{project.slug}/build"
        data = await self.post(path, selector.to_payload())
        return self._parse(path, BuildTriggerResult, data)

    async def list_build_summaries(
        self, project: Project, query: BuildSummaryQuery | None = None
    ) -> list[BuildSummary]:
        path = f"/project/{project.slug}"
        data = await self.get(path, params=query.to_params() if query else None)
        return self._parse(path, _SUMMARIES, data or [])

    async def get_build(self, project: Project, build_num: int) -> Build:
        path = f"/project/{project.slug}/{build_num}"
        return self._parse(path, Build, await self.get(path))

    # ── Projects ──────────────────────────────────────────────────

    async def list_projects(self) -> list[Project]:
        return self._parse("/projects", _PROJECTS, await self.get("/projects") or [])

    async def follow_project(self, project: Project) -> FollowStatus:
        path = f"/project/{project.slug}/follow"
        return self._parse(path, FollowStatus, await self.post(path))

    async def unfollow_project(self, project: Project) -> FollowStatus:
        path = f"/project/{project.slug}/unfollow"
        return self._parse(path, FollowStatus, await self.post(path))

    # ── Users ─────────────────────────────────────────────────────

    async def me(self) -> User:
        return self._parse("/me", User, await self.get("/me"))
