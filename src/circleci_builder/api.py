"""Capability interfaces consumed by the build service and the runner."""

from __future__ import annotations

from collections.abc import Callable
from typing import Protocol

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


class CircleCITransport(Protocol):
    """Single-attempt remote calls. ``CircleCIClient`` is the production implementation."""

    async def trigger_build(self, project: Project, selector: BuildSelector) -> BuildTriggerResult: ...
    async def list_build_summaries(self, project: Project, query: BuildSummaryQuery | None = None) -> list[BuildSummary]: ...
    async def get_build(self, project: Project, build_num: int) -> Build: ...
    async def list_projects(self) -> list[Project]: ...
    async def follow_project(self, project: Project) -> FollowStatus: ...
    async def unfollow_project(self, project: Project) -> FollowStatus: ...
    async def me(self) -> User: ...


class BuildAPI(Protocol):
    """What the runner needs to build a project. ``BuildService`` implements it."""

    async def trigger_and_locate_build(
        self, project: Project, selector: BuildSelector, wait_timeout: float
    ) -> BuildSummary: ...

    async def track_build_to_workflow_completion(
        self,
        project: Project,
        selector: BuildSelector,
        summary: BuildSummary,
        job_timeout: float,
        wait_timeout: float,
        continue_on_fail: bool,
    ) -> None: ...

    async def list_build_summaries(self, project: Project, query: BuildSummaryQuery | None = None) -> list[BuildSummary]: ...
    async def list_all_matching_build_summaries(self, project: Project, selector: BuildSelector) -> list[BuildSummary]: ...
    async def get_build(self, project: Project, build_num: int) -> Build: ...
    async def find_project(self, matcher: Callable[[Project], bool]) -> Project: ...
    async def resolve_project_by_url(self, vcs_url: str) -> Project: ...
    async def current_user(self) -> User: ...
    async def follow(self, project: Project) -> None: ...
    async def unfollow(self, project: Project) -> None: ...
