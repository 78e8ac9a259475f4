"""Shared test fixtures for circleci-builder."""

from __future__ import annotations

from collections import defaultdict
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest
import respx

from circleci_builder.client import CircleCIClient
from circleci_builder.config import CircleCIConfig, PollSettings, RetryPolicy
from circleci_builder.exceptions import CircleCIApiError
from circleci_builder.models import (
    Build,
    BuildSelector,
    BuildSummary,
    BuildSummaryQuery,
    BuildTriggerResult,
    BuildWorkflow,
    FollowStatus,
    Project,
    User,
)
from circleci_builder.service import BuildService

TEST_URL = "https://circleci.example.com"
TEST_TOKEN = "test-token"
ME = "builder"


def make_summary(
    build_num: int,
    *,
    status: str = "success",
    lifecycle: str = "finished",
    workflow_id: str | None = "wf-1",
    user: str = ME,
    branch: str | None = "main",
    revision: str | None = None,
    tag: str | None = None,
    reponame: str = "repo",
    queued_at: datetime | None = None,
    stopped_at: datetime | None = None,
    failed: bool | None = None,
) -> Build:
    """Build a snapshot usable both as a summary and as a build detail."""
    workflow = None
    if workflow_id is not None:
        workflow = BuildWorkflow(
            workflow_id=workflow_id, workflow_name="build-deploy", job_name=f"job-{build_num}"
        )
    return Build(
        build_num=build_num,
        status=status,
        lifecycle=lifecycle,
        workflow=workflow,
        user=User(username=user),
        branch=branch,
        revision=revision,
        tag=tag,
        reponame=reponame,
        queued_at=queued_at or datetime.now(timezone.utc) + timedelta(minutes=1),
        stopped_at=stopped_at,
        failed=failed,
    )


class FakeCircleCI:
    """In-memory stand-in for ``CircleCIClient``.

    ``builds`` maps a build number to the snapshots returned by successive
    ``get_build`` calls; the last one repeats. A returned snapshot also
    replaces the matching entry of ``summaries``, the way CircleCI's listing
    catches up with the build detail.
    """

    def __init__(self, user: str = ME) -> None:
        self.user = User(username=user)
        self.projects: list[Project] = []
        self.summaries: list[BuildSummary] = []
        self.builds: dict[int, list[Build]] = {}
        self.trigger_result = BuildTriggerResult(status=200, body="Build created")
        self.follow_state = True
        self.unfollow_state = False
        self.failures: dict[str, int] = defaultdict(int)
        self.calls: list[tuple[str, Any]] = []

    def _record(self, name: str, arg: Any = None) -> None:
        self.calls.append((name, arg))
        if self.failures[name] > 0:
            self.failures[name] -= 1
            raise CircleCIApiError(503, "Service Unavailable", name)

    def called(self, name: str) -> list[Any]:
        return [arg for n, arg in self.calls if n == name]

    async def trigger_build(self, project: Project, selector: BuildSelector) -> BuildTriggerResult:
        self._record("trigger_build", selector)
        return self.trigger_result

    async def list_build_summaries(
        self, project: Project, query: BuildSummaryQuery | None = None
    ) -> list[BuildSummary]:
        self._record("list_build_summaries", query)
        if query is not None and query.limit is not None:
            offset = query.offset or 0
            return list(self.summaries[offset : offset + query.limit])
        return list(self.summaries)

    async def get_build(self, project: Project, build_num: int) -> Build:
        self._record("get_build", build_num)
        snapshots = self.builds[build_num]
        build = snapshots.pop(0) if len(snapshots) > 1 else snapshots[0]
        self.summaries = [build if s.build_num == build_num else s for s in self.summaries]
        return build

    async def list_projects(self) -> list[Project]:
        self._record("list_projects")
        return list(self.projects)

    async def follow_project(self, project: Project) -> FollowStatus:
        self._record("follow_project", project)
        return FollowStatus(following=self.follow_state)

    async def unfollow_project(self, project: Project) -> FollowStatus:
        self._record("unfollow_project", project)
        return FollowStatus(following=self.unfollow_state)

    async def me(self) -> User:
        self._record("me")
        return self.user


@pytest.fixture
def config() -> CircleCIConfig:
    return CircleCIConfig(url=TEST_URL, token=TEST_TOKEN)


@pytest.fixture
def client(config: CircleCIConfig) -> CircleCIClient:
    return CircleCIClient(config)


@pytest.fixture
def mock_api() -> respx.MockRouter:
    with respx.mock(base_url=f"{TEST_URL}/api/v1.1") as router:
        yield router


@pytest.fixture
def project() -> Project:
    return Project(
        username="org", reponame="repo", vcs="github", vcs_url="https://github.com/org/repo"
    )


@pytest.fixture
def fake() -> FakeCircleCI:
    return FakeCircleCI()


@pytest.fixture
def service(fake: FakeCircleCI) -> BuildService:
    return BuildService(
        fake,
        retry_policy=RetryPolicy(interval=0, attempts=3),
        poll=PollSettings(build_interval=0, summary_interval=0, clock_skew=3),
    )
