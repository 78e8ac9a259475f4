"""Trigger CircleCI project builds listed in a build file and follow them to completion."""

from __future__ import annotations

import asyncio
import logging
import signal
from contextlib import suppress

import click
from dotenv import load_dotenv
from pydantic import ValidationError

from .client import CircleCIClient
from .config import CircleCIConfig
from .exceptions import CircleCIError
from .logs import setup_logging
from .models import BuildEntry, load_entries
from .runner import RunOptions, RunReport, run_builds
from .service import BuildService
from .waiter import CancelToken

logger = logging.getLogger(__name__)


async def _run(config: CircleCIConfig, entries: list[BuildEntry], options: RunOptions) -> RunReport:
    cancel = CancelToken()
    loop = asyncio.get_running_loop()
    with suppress(NotImplementedError):
        loop.add_signal_handler(signal.SIGTERM, cancel.cancel)

    async with CircleCIClient(config) as client:
        service = BuildService(client, retry_policy=config.retry_policy, cancel=cancel)
        return await run_builds(service, entries, options)


@click.command()
@click.option(
    "--file",
    "-f",
    "build_file",
    default="Buildfile",
    show_default=True,
    help="Location of the build file to process",
)
@click.option(
    "--job-timeout",
    default=20,
    show_default=True,
    type=click.IntRange(min=1),
    help="Minutes to wait for a single build job to finish",
)
@click.option(
    "--wait-timeout",
    default=60,
    show_default=True,
    type=click.IntRange(min=1),
    help="Seconds to wait for a triggered or next workflow build to appear",
)
@click.option(
    "--skip-days",
    default=1,
    show_default=True,
    type=click.IntRange(min=-1),
    help="Skip projects built successfully within this many days (-1: skip once successful)",
)
@click.option("--no-skip", is_flag=True, help="Build every entry regardless of history")
@click.option("--keep-going", is_flag=True, help="Continue with the next entry after a failure")
@click.option("--circleci-url", envvar="CIRCLECI_URL", help="CircleCI instance URL")
@click.option("--circleci-token", envvar="CIRCLECI_TOKEN", help="CircleCI API token")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="INFO",
    show_default=True,
)
@click.option("--json-logs", is_flag=True, help="Emit one JSON object per log line")
def main(
    build_file: str,
    job_timeout: int,
    wait_timeout: int,
    skip_days: int,
    no_skip: bool,
    keep_going: bool,
    circleci_url: str | None,
    circleci_token: str | None,
    log_level: str,
    json_logs: bool,
) -> None:
    """Build the CircleCI projects listed in the build file, one after another."""
    load_dotenv()
    setup_logging(log_level, json_logs=json_logs)

    config = CircleCIConfig.from_env()
    if circleci_url:
        config.url = circleci_url.rstrip("/")
    if circleci_token:
        config.token = circleci_token
    try:
        config.validate()
    except ValueError as e:
        raise click.UsageError(str(e)) from e

    try:
        entries = load_entries(build_file)
    except (OSError, ValidationError) as e:
        raise click.ClickException(f"failed to load build file {build_file}: {e}") from e

    options = RunOptions(
        job_timeout=job_timeout * 60,
        wait_timeout=wait_timeout,
        skip_days=skip_days,
        no_skip=no_skip,
        keep_going=keep_going,
    )
    try:
        report = asyncio.run(_run(config, entries, options))
    except CircleCIError as e:
        raise click.ClickException(str(e)) from e

    logger.info(
        "finished: %d built, %d skipped", len(report.built), len(report.skipped)
    )


if __name__ == "__main__":
    main()
