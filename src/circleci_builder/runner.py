"""Sequential build driver and skip policy."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from .api import BuildAPI
from .exceptions import (
    CircleCIError,
    OperationCancelledError,
    ProjectBuildError,
    RunFailedError,
)
from .models import BuildEntry, BuildSelector, BuildStatus, Project
from .workflows import filter_by_workflow_status

logger = logging.getLogger(__name__)

ALWAYS_SKIP = -1


@dataclass
class RunOptions:
    job_timeout: float = 20 * 60
    wait_timeout: float = 60
    skip_days: int = 1
    no_skip: bool = False
    keep_going: bool = False


@dataclass
class RunReport:
    built: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    failed: list[ProjectBuildError] = field(default_factory=list)


async def should_skip(
    api: BuildAPI,
    project: Project,
    selector: BuildSelector,
    skip_days: int,
    now: datetime | None = None,
) -> bool:
    """Decide whether *project* was built successfully recently enough to skip it.

    With ``skip_days == -1`` any past success is enough. Otherwise the most
    recent successful workflow must have stopped within the last *skip_days*.
    """
    summaries = await api.list_all_matching_build_summaries(project, selector)
    successes = filter_by_workflow_status(summaries, BuildStatus.SUCCESS)
    stops = [s.stopped_at for s in successes if s.stopped_at is not None]
    if not stops:
        return False
    if skip_days == ALWAYS_SKIP:
        return True
    now = now or datetime.now(timezone.utc)
    cutoff = now - timedelta(days=skip_days)
    return max(stops) > cutoff


async def build_entry(api: BuildAPI, entry: BuildEntry, options: RunOptions) -> bool:
    """Build one entry. Returns False when the build was skipped."""
    p = Project.from_url(entry.url)
    logger.info("Following project with url: %s", entry.url)
    await api.follow(p)

    logger.info("Searching for project with url: %s", entry.url)
    project = await api.resolve_project_by_url(entry.url)

    selector = entry.selector
    if selector.is_ambiguous:
        logger.warning("entry %r sets more than one of branch, tag and commit: %s", entry.name, selector)

    if not options.no_skip:
        logger.info(
            "Searching for builds in project %r, matching %s within %d days to skip",
            project.reponame,
            selector,
            options.skip_days,
        )
        if await should_skip(api, project, selector, options.skip_days):
            logger.info(
                "Skipping project %r, a previous build was found within %d days for %s",
                project.reponame,
                options.skip_days,
                selector,
            )
            return False

    logger.info("Building project %r", project.reponame)
    summary = await api.trigger_and_locate_build(project, selector, options.wait_timeout)
    await api.track_build_to_workflow_completion(
        project,
        selector,
        summary,
        options.job_timeout,
        options.wait_timeout,
        entry.continue_on_fail,
    )
    logger.info("Building project %r, completed successfully", project.reponame)
    return True


async def run_builds(
    api: BuildAPI, entries: list[BuildEntry], options: RunOptions | None = None
) -> RunReport:
    """Build every entry in order.

    The first failure stops the run unless ``options.keep_going`` is set, in
    which case the remaining entries are still built and ``RunFailedError`` is
    raised at the end.
    """
    options = options or RunOptions()
    report = RunReport()
    for entry in entries:
        if entry.is_blank:
            logger.info("skipping blank entry...")
            continue
        try:
            built = await build_entry(api, entry, options)
        except OperationCancelledError:
            raise
        except (CircleCIError, ValueError) as e:
            error = ProjectBuildError(entry.name, e)
            if not options.keep_going:
                raise error from e
            logger.error("%s", error)
            report.failed.append(error)
            continue
        (report.built if built else report.skipped).append(entry.name)
    if report.failed:
        raise RunFailedError(report.failed)
    return report
