"""Pydantic models for CircleCI API v1.1 payloads."""

from .base import CircleCIModel
from .builds import (
    Build,
    BuildSelector,
    BuildStatus,
    BuildSummary,
    BuildSummaryQuery,
    BuildTriggerResult,
    BuildWorkflow,
    Lifecycle,
)
from .common import User
from .entries import BuildEntry, load_entries
from .projects import FollowStatus, Project

__all__ = [
    "Build",
    "BuildEntry",
    "BuildSelector",
    "BuildStatus",
    "BuildSummary",
    "BuildSummaryQuery",
    "BuildTriggerResult",
    "BuildWorkflow",
    "CircleCIModel",
    "FollowStatus",
    "Lifecycle",
    "Project",
    "User",
    "load_entries",
]
