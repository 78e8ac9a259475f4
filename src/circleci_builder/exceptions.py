"""CircleCI builder exceptions."""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """Tag carried by every builder error so callers can branch on the kind."""

    API = "api"
    AUTH = "auth"
    NOT_FOUND = "not_found"
    TRANSPORT = "transport"
    DECODE = "decode"
    TRIGGER_REJECTED = "trigger_rejected"
    NOT_FOUND_YET = "not_found_yet"
    TIMEOUT = "timeout"
    JOB_TIMEOUT = "job_timeout"
    BUILD_FAILED = "build_failed"
    MISSING_WORKFLOW = "missing_workflow"
    WORKFLOW_FAILED = "workflow_failed"
    PROJECT_NOT_FOUND = "project_not_found"
    FOLLOW_STATE = "follow_state"
    CANCELLED = "cancelled"
    PROJECT_BUILD = "project_build"
    RUN_FAILED = "run_failed"


class CircleCIError(Exception):
    """Base exception for CircleCI builder operations."""

    kind: ErrorKind = ErrorKind.API


# ── Remote API failures ───────────────────────────────────────


class CircleCIApiError(CircleCIError):
    """Raised when the CircleCI API returns a non-success response."""

    kind = ErrorKind.API

    def __init__(self, status_code: int, status_text: str, body: str = "") -> None:
        self.status_code = status_code
        self.status_text = status_text
        self.body = body
        super().__init__(f"CircleCI API Error {status_code} {status_text}: {body}")


class CircleCIAuthError(CircleCIApiError):
    """Raised on 401/403 authentication failures."""

    kind = ErrorKind.AUTH

    def __init__(self, status_code: int, body: str = "") -> None:
        status_text = "Unauthorized" if status_code == 401 else "Forbidden"
        super().__init__(status_code, status_text, body)


class CircleCINotFoundError(CircleCIApiError):
    """Raised on 404 responses."""

    kind = ErrorKind.NOT_FOUND

    def __init__(self, body: str = "") -> None:
        super().__init__(404, "Not Found", body)


class CircleCITransportError(CircleCIError):
    """Raised when the request never produced a response."""

    kind = ErrorKind.TRANSPORT

    def __init__(self, method: str, path: str, reason: str) -> None:
        self.method = method
        self.path = path
        super().__init__(f"{method} {path} failed: {reason}")


class CircleCIDecodeError(CircleCIError):
    """Raised when a response body does not match the expected shape."""

    kind = ErrorKind.DECODE

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        super().__init__(f"failed to decode response from {path}: {reason}")


# ── Build lifecycle ───────────────────────────────────────────


class BuildTriggerError(CircleCIError):
    """Raised when CircleCI accepted the trigger request but refused the build."""

    kind = ErrorKind.TRIGGER_REJECTED

    def __init__(self, status: int, body: str = "") -> None:
        self.status = status
        self.body = body
        super().__init__(f'failed to start project build: Status: {status}, Body: "{body}"')


class SummaryNotFoundError(CircleCIError):
    """No build summary matched the triggered build yet."""

    kind = ErrorKind.NOT_FOUND_YET

    def __init__(self, project: str) -> None:
        self.project = project
        super().__init__(f"build summary not found matching this project: {project}")


class TimeoutExceededError(CircleCIError):
    """A bounded wait ran past its deadline."""

    kind = ErrorKind.TIMEOUT

    def __init__(self, message: str = "time expired while running the checker") -> None:
        super().__init__(message)


class JobTimeoutExceededError(CircleCIError):
    """A single build did not finish within its job timeout."""

    kind = ErrorKind.JOB_TIMEOUT

    def __init__(self, project: str, build_num: int) -> None:
        self.project = project
        self.build_num = build_num
        super().__init__(
            f"job timeout exceeded while waiting for build {project} [{build_num}] to finish"
        )


class BuildFailedError(CircleCIError):
    """A build finished with its failed flag set."""

    kind = ErrorKind.BUILD_FAILED

    def __init__(self, project: str, build_num: int) -> None:
        self.project = project
        self.build_num = build_num
        super().__init__(f"build {project} [{build_num}] failed")


class MissingWorkflowDetailsError(CircleCIError):
    """A finished build carried no workflow association."""

    kind = ErrorKind.MISSING_WORKFLOW

    def __init__(self, build_num: int) -> None:
        self.build_num = build_num
        super().__init__(f"could not obtain workflow details from build {build_num}")


class WorkflowFailedError(CircleCIError):
    """A job of a concluded workflow did not succeed."""

    kind = ErrorKind.WORKFLOW_FAILED

    def __init__(self, project: str, workflow_name: str, job_name: str, status: str) -> None:
        self.project = project
        self.workflow_name = workflow_name
        self.job_name = job_name
        self.status = status
        super().__init__(
            f"workflow {project} [{workflow_name}->{job_name}] failed with status: {status}"
        )


# ── Projects ──────────────────────────────────────────────────


class ProjectNotFoundError(CircleCIError):
    """No visible project satisfied the lookup."""

    kind = ErrorKind.PROJECT_NOT_FOUND

    def __init__(self, message: str = "failed to locate a project using the given matcher") -> None:
        super().__init__(message)


class FollowStateError(CircleCIError):
    """The following flag did not change to the requested state."""

    kind = ErrorKind.FOLLOW_STATE

    def __init__(self, vcs_url: str, following: bool) -> None:
        self.vcs_url = vcs_url
        self.following = following
        action = "follow" if following else "unfollow"
        state = "false" if following else "true"
        super().__init__(f"attempted to {action} {vcs_url}, following property still {state}")


class OperationCancelledError(CircleCIError):
    """The cancel token was triggered while waiting."""

    kind = ErrorKind.CANCELLED

    def __init__(self) -> None:
        super().__init__("operation cancelled")


# ── Orchestration ─────────────────────────────────────────────


class ProjectBuildError(CircleCIError):
    """Wraps the failure of a single build entry."""

    kind = ErrorKind.PROJECT_BUILD

    def __init__(self, name: str, cause: Exception) -> None:
        self.name = name
        self.cause = cause
        super().__init__(f"failed to build project: {name} -> {cause}")


class RunFailedError(CircleCIError):
    """Raised at the end of a keep-going run when any entry failed."""

    kind = ErrorKind.RUN_FAILED

    def __init__(self, failures: list[ProjectBuildError]) -> None:
        self.failures = failures
        names = ", ".join(f.name for f in failures)
        super().__init__(f"{len(failures)} project build(s) failed: {names}")
