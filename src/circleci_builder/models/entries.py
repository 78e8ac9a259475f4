"""Build file entries."""

from __future__ import annotations

from pathlib import Path

from pydantic import Field, TypeAdapter

from .base import CircleCIModel
from .builds import BuildSelector


class BuildEntry(CircleCIModel):
    """A repository to build, as listed in the build file."""

    name: str = ""
    url: str = Field("", alias="repository")
    branch: str = ""
    tag: str = ""
    commit: str = ""
    continue_on_fail: bool = False

    @property
    def is_blank(self) -> bool:
        return not self.name or not self.url

    @property
    def selector(self) -> BuildSelector:
        return BuildSelector(branch=self.branch, revision=self.commit, tag=self.tag)


_ENTRIES = TypeAdapter(list[BuildEntry])


def load_entries(path: str | Path) -> list[BuildEntry]:
    """Parse the JSON array of build entries stored at *path*."""
    return _ENTRIES.validate_json(Path(path).read_bytes())
