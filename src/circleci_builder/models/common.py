"""Models shared across domains."""

from __future__ import annotations

from pydantic import Field

from .base import CircleCIModel


class User(CircleCIModel):
    """The user returned by ``/me`` and embedded in builds."""

    username: str = Field("", alias="login")
    display_name: str | None = Field(None, alias="name")
