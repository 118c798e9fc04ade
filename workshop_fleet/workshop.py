#!/usr/bin/env -S uv run python
# /// script
# requires-python = ">=3.11"
# dependencies = ["cyclopts>=2.9", "httpx>=0.27", "jinja2>=3.1"]
# ///
"""Set up or tear down the workshop droplet fleet.

``setup`` converges one droplet per participant in the user list and points
``<name>.<domain>`` and ``*.<name>.<domain>`` at each droplet's public
address. ``teardown`` deletes every droplet carrying the workshop tag.

Both commands read ``DO_TOKEN`` from the environment and exit with status 1
when it is missing. ``--dry-run`` never mutates remote state.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Annotated

from cyclopts import App, Parameter

from workshop_fleet._config import FleetConfig, RawFleetInputs, resolve_fleet_config
from workshop_fleet._context import RunContext
from workshop_fleet._errors import UserListError
from workshop_fleet._keys import GitHubKeySource, KeySource, NoKeySource
from workshop_fleet._provider import DigitalOceanClient
from workshop_fleet._rate_limit import check_headroom
from workshop_fleet._setup_flow import run_setup
from workshop_fleet._teardown import teardown_all
from workshop_fleet._userdata import UserDataRenderer
from workshop_fleet._users import build_users, read_user_lines

app = App(help="Provision and tear down per-user workshop droplets.")

LOGGER_NAME = "workshop_fleet"
USAGE = "Usage: workshop [setup, teardown]"

DryRun = Annotated[
    bool, Parameter(name=["--dry-run", "--dry"], help="Print requests, mutate nothing.")
]
Debug = Annotated[
    bool, Parameter(name=["--debug", "--verbose", "-v"], help="Verbose output.")
]


def configure_logging(*, debug: bool, stream: object = None) -> logging.Logger:
    """Attach a single stderr handler to the package logger."""
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    handler = logging.StreamHandler(stream or sys.stderr)  # type: ignore[arg-type]
    handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)-7s %(message)s", "%H:%M:%S")
    )
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if debug else logging.INFO)
    logger.propagate = False
    return logger


def build_context(config: FleetConfig, logger: logging.Logger) -> RunContext:
    """Wire the DigitalOcean client, quota guard, and renderer together."""
    client = DigitalOceanClient(
        config.token,
        page_size=config.page_size,
        on_quota=lambda quota: check_headroom(quota, config.rate_limit_threshold, logger),
    )
    return RunContext(
        config=config,
        logger=logger,
        compute=client,
        dns=client,
        renderer=UserDataRenderer(config.userdata_template),
    )


def _close(ctx: RunContext) -> None:
    close = getattr(ctx.compute, "close", None)
    if close is not None:
        close()


@app.default
def usage() -> int:
    """Print usage; a subcommand is required."""
    print(USAGE)
    return 1


@app.command
def setup(
    *,
    users_file: Annotated[Path | None, Parameter(help="Participant list.")] = None,
    userdata_template: Annotated[
        Path | None, Parameter(help="Jinja2 cloud-config template.")
    ] = None,
    domain: str | None = None,
    region: str | None = None,
    size: str | None = None,
    image: str | None = None,
    ssh_fingerprint: str | None = None,
    tag: str | None = None,
    fallback_key: str | None = None,
    record_ttl: int | None = None,
    rate_limit_threshold: int | None = None,
    settle_timeout: float | None = None,
    settle_interval: float | None = None,
    key_lookup: Annotated[
        bool, Parameter(help="Fetch participants' public keys from GitHub.")
    ] = True,
    dry_run: DryRun = False,
    debug: Debug = False,
) -> int:
    """Create missing droplets and synchronise their DNS records."""
    config = resolve_fleet_config(
        RawFleetInputs(
            users_file=users_file,
            userdata_template=userdata_template,
            domain=domain,
            region=region,
            size=size,
            image=image,
            ssh_fingerprint=ssh_fingerprint,
            tag=tag,
            fallback_key=fallback_key,
            record_ttl=record_ttl,
            rate_limit_threshold=rate_limit_threshold,
            settle_timeout=settle_timeout,
            settle_interval=settle_interval,
            dry_run=dry_run or None,
            debug=debug or None,
        )
    )
    logger = configure_logging(debug=config.debug)
    logger.info("dryrun: %s debug: %s", config.dry_run, config.debug)
    logger.info("running workshop setup...")

    try:
        entries = read_user_lines(config.users_file)
    except UserListError as exc:
        logger.error("%s", exc)
        return 1

    source: KeySource = GitHubKeySource() if key_lookup else NoKeySource()
    try:
        users = build_users(
            entries,
            domain=config.domain,
            source=source,
            fallback_key=config.fallback_key,
            logger=logger,
        )
    finally:
        if isinstance(source, GitHubKeySource):
            source.close()

    ctx = build_context(config, logger)
    try:
        report = run_setup(ctx, users)
    finally:
        _close(ctx)

    report.summarise(logger)
    return report.exit_code


@app.command
def teardown(
    *,
    tag: str | None = None,
    dry_run: DryRun = False,
    debug: Debug = False,
) -> int:
    """Delete every droplet carrying the workshop tag."""
    config = resolve_fleet_config(
        RawFleetInputs(tag=tag, dry_run=dry_run or None, debug=debug or None)
    )
    logger = configure_logging(debug=config.debug)
    logger.info("dryrun: %s debug: %s", config.dry_run, config.debug)

    ctx = build_context(config, logger)
    try:
        report = teardown_all(ctx)
    finally:
        _close(ctx)

    report.summarise(logger)
    return report.exit_code


def main() -> None:  # pragma: no cover - CLI entrypoint
    raise SystemExit(app())


if __name__ == "__main__":  # pragma: no cover - CLI entrypoint
    main()
