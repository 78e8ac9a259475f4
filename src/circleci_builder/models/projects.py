"""Project models."""

from __future__ import annotations

from urllib.parse import urlparse

from pydantic import Field

from .base import CircleCIModel


class Project(CircleCIModel):
    username: str = ""
    reponame: str = ""
    vcs: str = Field("", alias="vcs_type")
    vcs_url: str = ""

    @property
    def slug(self) -> str:
        return f"{self.vcs}/{self.username}/{self.reponame}"

    @classmethod
    def from_url(cls, url: str) -> Project:
        """Build a Project from a repository URL such as ``https://github.com/org/repo``.

        The VCS type is the first label of the host, so this is only reliable
        for github.com and bitbucket.org URLs.
        """
        parsed = urlparse(url)
        parts = [p for p in parsed.path.strip("/").split("/") if p]
        if len(parts) < 2:
            msg = f"path not properly formatted: {url}"
            raise ValueError(msg)
        host = parsed.hostname or ""
        labels = host.split(".")
        if len(labels) < 2:
            msg = f"host not properly formatted: {url}"
            raise ValueError(msg)
        return cls(username=parts[0], reponame=parts[1], vcs=labels[0], vcs_url=url)


class FollowStatus(CircleCIModel):
    following: bool = False
