"""Workflow-level status aggregation over build summaries."""

from __future__ import annotations

from collections.abc import Iterable

from .models import BuildStatus, BuildSummary


def workflow_statuses(
    summaries: Iterable[BuildSummary], target: str = BuildStatus.SUCCESS
) -> dict[str, str]:
    """Reduce the summaries of each workflow to a single status.

    Summaries are folded in input order. The first status seen for a workflow
    is kept until a later summary reports a different status that is not
    *target*, which then replaces it. A recorded failure is therefore never
    hidden by a later success. Summaries without a workflow are ignored.
    """
    statuses: dict[str, str] = {}
    for summary in summaries:
        workflow_id = summary.workflow_id
        if workflow_id is None:
            continue
        current = statuses.get(workflow_id)
        if current is None:
            statuses[workflow_id] = summary.status
        elif summary.status != current and summary.status != target:
            statuses[workflow_id] = summary.status
    return statuses


def filter_by_workflow_status(
    summaries: Iterable[BuildSummary], target: str = BuildStatus.SUCCESS
) -> list[BuildSummary]:
    """Return the summaries, in input order, whose workflow status equals *target*."""
    summaries = list(summaries)
    statuses = workflow_statuses(summaries, target)
    return [s for s in summaries if s.workflow_id is not None and statuses[s.workflow_id] == target]
