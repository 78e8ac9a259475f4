"""Base model for CircleCI API payloads."""

from __future__ import annotations

from pydantic import BaseModel


class CircleCIModel(BaseModel):
    """Base model with common behavior for all CircleCI API models."""

    model_config = {"extra": "ignore", "populate_by_name": True}
