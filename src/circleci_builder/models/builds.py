"""Build, build summary and build selector models."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import Field, field_validator

from .base import CircleCIModel
from .common import User


class Lifecycle(str, Enum):
    QUEUED = "queued"
    SCHEDULED = "scheduled"
    NOT_RUN = "not_run"
    NOT_RUNNING = "not_running"
    RUNNING = "running"
    FINISHED = "finished"


class BuildStatus(str, Enum):
    RETRIED = "retried"
    CANCELED = "canceled"
    INFRASTRUCTURE_FAIL = "infrastructure_fail"
    TIMEDOUT = "timedout"
    NOT_RUN = "not_run"
    RUNNING = "running"
    FAILED = "failed"
    QUEUED = "queued"
    SCHEDULED = "scheduled"
    NOT_RUNNING = "not_running"
    NO_TESTS = "no_tests"
    FIXED = "fixed"
    SUCCESS = "success"


class BuildWorkflow(CircleCIModel):
    """The ``workflows`` object CircleCI attaches to builds run by a workflow."""

    job_name: str = ""
    job_id: str = ""
    workflow_name: str = ""
    workflow_id: str = ""
    workspace_id: str = ""
    upstream_job_ids: list[str] = []


class BuildSummary(CircleCIModel):
    """One entry of the recent builds listing for a project."""

    build_num: int
    username: str = ""
    reponame: str = ""
    lifecycle: str = ""
    outcome: str | None = None
    status: str = ""
    branch: str | None = None
    revision: str | None = Field(None, alias="vcs_revision")
    tag: str | None = Field(None, alias="vcs_tag")
    vcs: str = Field("", alias="vcs_type")
    user: User | None = None
    queued_at: datetime | None = Field(None, alias="usage_queued_at")
    stopped_at: datetime | None = Field(None, alias="stop_time")
    workflow: BuildWorkflow | None = Field(None, alias="workflows")

    @field_validator("queued_at", "stopped_at")
    @classmethod
    def _assume_utc(cls, value: datetime | None) -> datetime | None:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @property
    def user_login(self) -> str:
        return self.user.username if self.user else ""

    @property
    def is_finished(self) -> bool:
        return self.lifecycle == Lifecycle.FINISHED

    @property
    def workflow_id(self) -> str | None:
        return self.workflow.workflow_id if self.workflow else None


class Build(BuildSummary):
    """Single build detail, as returned by ``project/<slug>/<build_num>``."""

    failed: bool | None = None


class BuildSelector(CircleCIModel):
    """Branch, revision or tag used to request a build and to match it afterwards.

    At most one field is expected to be set; this is not enforced.
    """

    branch: str = ""
    revision: str = ""
    tag: str = ""

    def matches(self, summary: BuildSummary) -> bool:
        """Return True if every non-empty field equals the summary's field."""
        if self.tag and summary.tag != self.tag:
            return False
        if self.revision and summary.revision != self.revision:
            return False
        if self.branch and summary.branch != self.branch:
            return False
        return True

    @property
    def is_ambiguous(self) -> bool:
        return sum(1 for v in (self.branch, self.revision, self.tag) if v) > 1

    def to_payload(self) -> dict[str, str]:
        return {k: v for k, v in self.model_dump().items() if v}

    def __str__(self) -> str:
        return f'[Branch: "{self.branch}", Revision: "{self.revision}", Tag: "{self.tag}"]'


class BuildSummaryQuery(CircleCIModel):
    """Paging and filter parameters for the recent builds listing."""

    limit: int | None = Field(None, ge=1, le=100)
    offset: int | None = Field(None, ge=0)
    filter: str | None = None

    def to_params(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


class BuildTriggerResult(CircleCIModel):
    """Body of the new project build response; it carries no build number."""

    status: int = 0
    body: str = ""
