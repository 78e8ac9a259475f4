"""Build orchestration on top of the CircleCI API.

CircleCI does not return a build number when a project build is triggered, so
the service locates the new build by polling the recent builds listing, then
follows it and every later job of the same workflow until the workflow ends.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta, timezone
from typing import TypeVar

from .api import CircleCITransport
from .config import PollSettings, RetryPolicy
from .exceptions import (
    BuildFailedError,
    BuildTriggerError,
    CircleCIError,
    FollowStateError,
    JobTimeoutExceededError,
    MissingWorkflowDetailsError,
    OperationCancelledError,
    ProjectNotFoundError,
    SummaryNotFoundError,
    TimeoutExceededError,
    WorkflowFailedError,
)
from .models import (
    Build,
    BuildSelector,
    BuildStatus,
    BuildSummary,
    BuildSummaryQuery,
    Project,
    User,
)
from .retry import retry
from .waiter import CancelToken, deadline_after, wait_until

logger = logging.getLogger(__name__)

T = TypeVar("T")

PAGE_SIZE = 100


class BuildService:
    """Triggers CircleCI project builds and follows them to workflow completion."""

    def __init__(
        self,
        transport: CircleCITransport,
        *,
        retry_policy: RetryPolicy | None = None,
        poll: PollSettings | None = None,
        cancel: CancelToken | None = None,
    ) -> None:
        self.transport = transport
        self.retry_policy = retry_policy or RetryPolicy()
        self.poll = poll or PollSettings()
        self.cancel = cancel or CancelToken()

    async def _retry(self, description: str, operation: Callable[[], Awaitable[T]]) -> T:
        return await retry(operation, self.retry_policy, description=description, cancel=self.cancel)

    def _should_log(self, count: int) -> bool:
        return count % self.poll.log_every == 0

    # ── Single remote calls ───────────────────────────────────────

    async def list_build_summaries(
        self, project: Project, query: BuildSummaryQuery | None = None
    ) -> list[BuildSummary]:
        return await self._retry(
            f"BuildSummary GET /project/{project.slug}",
            lambda: self.transport.list_build_summaries(project, query),
        )

    async def get_build(self, project: Project, build_num: int) -> Build:
        return await self._retry(
            f"GetBuild GET /project/{project.slug}/{build_num}",
            lambda: self.transport.get_build(project, build_num),
        )

    async def current_user(self) -> User:
        return await self._retry("Me GET /me", self.transport.me)

    async def list_projects(self) -> list[Project]:
        return await self._retry("Projects GET /projects", self.transport.list_projects)

    async def follow(self, project: Project) -> None:
        status = await self._retry(
            f"FollowProject POST /project/{project.slug}/follow",
            lambda: self.transport.follow_project(project),
        )
        if not status.following:
            raise FollowStateError(project.vcs_url, following=True)

    async def unfollow(self, project: Project) -> None:
        status = await self._retry(
            f"UnfollowProject POST /project/{project.slug}/unfollow",
            lambda: self.transport.unfollow_project(project),
        )
        if status.following:
            raise FollowStateError(project.vcs_url, following=False)

    # ── Projects ──────────────────────────────────────────────────

    async def find_project(self, matcher: Callable[[Project], bool]) -> Project:
        """Return the first visible project accepted by *matcher*."""
        for project in await self.list_projects():
            if matcher(project):
                return project
        raise ProjectNotFoundError

    async def resolve_project_by_url(self, vcs_url: str) -> Project:
        try:
            return await self.find_project(lambda p: p.vcs_url == vcs_url)
        except ProjectNotFoundError:
            raise ProjectNotFoundError(f"no project found with url: {vcs_url}") from None

    # ── Build history ─────────────────────────────────────────────

    async def list_all_matching_build_summaries(
        self, project: Project, selector: BuildSelector
    ) -> list[BuildSummary]:
        """Page through the whole build history of *project*.

        Keeps finished builds of this repository, started by the current user,
        that match *selector*, regardless of their status.
        """
        me = await self.current_user()
        matched: list[BuildSummary] = []
        offset = 0
        while True:
            page = await self.list_build_summaries(
                project, BuildSummaryQuery(limit=PAGE_SIZE, offset=offset)
            )
            matched.extend(
                s
                for s in page
                if selector.matches(s)
                and s.reponame == project.reponame
                and s.is_finished
                and s.user_login == me.username
            )
            if len(page) < PAGE_SIZE:
                return matched
            offset += PAGE_SIZE

    # ── Triggering and correlation ────────────────────────────────

    async def trigger_and_locate_build(
        self, project: Project, selector: BuildSelector, wait_timeout: float
    ) -> BuildSummary:
        """Start a new build of *project* and return the summary of the build it created.

        The trigger response carries no build number, so the new build is
        located by polling for a summary queued by the current user after the
        request was made and matching *selector*.
        """
        after = datetime.now(timezone.utc) - timedelta(seconds=self.poll.clock_skew)
        result = await self._retry(
            f"BuildProject POST /project/{project.slug}/build",
            lambda: self.transport.trigger_build(project, selector),
        )
        if result.status != 200:
            raise BuildTriggerError(result.status, result.body)

        found: BuildSummary | None = None

        async def check(count: int) -> bool:
            nonlocal found
            if self._should_log(count):
                logger.info("waiting for a build summary matching the project: %s", project.reponame)
            try:
                found = await self.find_build_summary(project, selector, after)
            except SummaryNotFoundError:
                return False
            return True

        await wait_until(
            check,
            interval=self.poll.summary_interval,
            deadline=deadline_after(wait_timeout),
            cancel=self.cancel,
        )
        if found is None:
            raise SummaryNotFoundError(project.slug)
        logger.info("located build %s [%d] for %s", project.reponame, found.build_num, selector)
        return found

    async def find_build_summary(
        self, project: Project, selector: BuildSelector, after: datetime
    ) -> BuildSummary:
        """Return the first summary started by the current user after *after* matching *selector*."""
        summaries = await self.list_build_summaries(project)
        me = await self.current_user()
        for summary in summaries:
            if summary.queued_at is None:
                continue
            if (
                selector.matches(summary)
                and summary.user_login == me.username
                and summary.queued_at > after
            ):
                return summary
        raise SummaryNotFoundError(project.slug)

    # ── Lifecycle tracking ────────────────────────────────────────

    async def track_build_to_workflow_completion(
        self,
        project: Project,
        selector: BuildSelector,
        summary: BuildSummary,
        job_timeout: float,
        wait_timeout: float,
        continue_on_fail: bool = False,
    ) -> None:
        """Wait for *summary*'s build and every later job of its workflow to finish.

        *job_timeout* bounds each build, *wait_timeout* bounds the search for
        the next job. When no further job appears the workflow is considered
        over and its overall status is checked.
        """
        build_num = summary.build_num
        while True:
            build = await self.wait_for_build(project, build_num, job_timeout)
            if build.failed:
                if continue_on_fail:
                    logger.warning(
                        "build %s [%d] failed, continue on failure is enabled for this project",
                        project.reponame,
                        build_num,
                    )
                    return
                raise BuildFailedError(project.reponame, build_num)
            if build.workflow is None:
                raise MissingWorkflowDetailsError(build_num)

            workflow_id = build.workflow.workflow_id
            try:
                nxt = await self.wait_for_next_build(project, selector, workflow_id, wait_timeout)
            except TimeoutExceededError:
                # no job left in the workflow
                await self.final_workflow_status(project, selector, workflow_id)
                logger.info("workflow %s [%s] completed", project.reponame, workflow_id)
                return
            build_num = nxt.build_num

    async def wait_for_build(self, project: Project, build_num: int, job_timeout: float) -> Build:
        """Poll the build until its lifecycle is finished; failed builds are returned too."""
        finished: Build | None = None

        async def check(count: int) -> bool:
            nonlocal finished
            if self._should_log(count):
                logger.info("waiting for build %s [%d] to finish", project.reponame, build_num)
            try:
                build = await self.get_build(project, build_num)
            except OperationCancelledError:
                raise
            except CircleCIError as e:
                logger.warning("failed to get build %s [%d] -> %s", project.reponame, build_num, e)
                return False
            if build.is_finished:
                finished = build
                return True
            return False

        try:
            await wait_until(
                check,
                interval=self.poll.build_interval,
                deadline=deadline_after(job_timeout),
                cancel=self.cancel,
            )
        except TimeoutExceededError:
            raise JobTimeoutExceededError(project.reponame, build_num) from None
        if finished is None:
            raise JobTimeoutExceededError(project.reponame, build_num)
        return finished

    async def wait_for_next_build(
        self, project: Project, selector: BuildSelector, workflow_id: str, wait_timeout: float
    ) -> BuildSummary:
        """Find the next unfinished job of *workflow_id* started by the current user.

        Raises ``TimeoutExceededError`` when none shows up within *wait_timeout*.
        """
        me = await self.current_user()
        found: BuildSummary | None = None

        async def check(count: int) -> bool:
            nonlocal found
            if self._should_log(count):
                logger.info(
                    "waiting for the next build summary matching the project: %s and workflowId: %s",
                    project.reponame,
                    workflow_id,
                )
            try:
                summaries = await self.list_build_summaries(project)
            except OperationCancelledError:
                raise
            except CircleCIError as e:
                logger.warning("failed to enumerate build summaries: %s", e)
                return False
            for s in summaries:
                if (
                    selector.matches(s)
                    and s.user_login == me.username
                    and not s.is_finished
                    and s.workflow_id == workflow_id
                ):
                    found = s
                    return True
            return False

        await wait_until(
            check,
            interval=self.poll.summary_interval,
            deadline=deadline_after(wait_timeout),
            cancel=self.cancel,
        )
        if found is None:
            raise TimeoutExceededError
        return found

    async def final_workflow_status(
        self, project: Project, selector: BuildSelector, workflow_id: str
    ) -> None:
        """Raise ``WorkflowFailedError`` if any job of *workflow_id* did not succeed."""
        for s in await self.list_build_summaries(project):
            if (
                selector.matches(s)
                and s.workflow is not None
                and s.workflow.workflow_id == workflow_id
                and s.status != BuildStatus.SUCCESS
            ):
                raise WorkflowFailedError(
                    s.reponame, s.workflow.workflow_name, s.workflow.job_name, s.status
                )
