"""CircleCI builder configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass

DEFAULT_URL = "https://circleci.com"


@dataclass(frozen=True)
class RetryPolicy:
    """Constant-delay retry budget applied to every remote call."""

    interval: float = 30.0
    attempts: int = 3

    def __post_init__(self) -> None:
        if self.attempts < 1:
            msg = "retry attempts must be at least 1"
            raise ValueError(msg)


@dataclass(frozen=True)
class PollSettings:
    """Intervals used by the build polling loops, in seconds."""

    build_interval: float = 2.0
    summary_interval: float = 1.0
    clock_skew: float = 3.0
    log_every: int = 10


@dataclass
class CircleCIConfig:
    """Configuration for the CircleCI client, loaded from environment variables."""

    url: str = DEFAULT_URL
    token: str = ""
    timeout: int = 30
    retry_interval: float = 30.0
    retry_attempts: int = 3

    @classmethod
    def from_env(cls) -> CircleCIConfig:
        url = os.getenv("CIRCLECI_URL", DEFAULT_URL).rstrip("/")
        token = os.getenv("CIRCLECI_TOKEN") or os.getenv("CIRCLE_TOKEN", "")
        timeout = int(os.getenv("CIRCLECI_TIMEOUT", "30"))
        retry_interval = float(os.getenv("CIRCLECI_RETRY_INTERVAL", "30"))
        retry_attempts = int(os.getenv("CIRCLECI_RETRY_ATTEMPTS", "3"))

        return cls(
            url=url,
            token=token,
            timeout=timeout,
            retry_interval=retry_interval,
            retry_attempts=retry_attempts,
        )

    @property
    def api_url(self) -> str:
        return f"{self.url}/api/v1.1"

    @property
    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(interval=self.retry_interval, attempts=self.retry_attempts)

    def validate(self) -> None:
        if not self.url:
            msg = "CIRCLECI_URL must not be empty"
            raise ValueError(msg)
        if not self.token:
            msg = (
                "CircleCI token is required. Set CIRCLECI_TOKEN (or CIRCLE_TOKEN) "
                "to the access key used to authenticate to circleci.com"
            )
            raise ValueError(msg)
        if self.retry_attempts < 1:
            msg = "CIRCLECI_RETRY_ATTEMPTS must be at least 1"
            raise ValueError(msg)
