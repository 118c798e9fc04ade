"""Create droplets for participants that do not have one yet.

Users are handled one after another. A template failure skips that user and
a failed create call is recorded as a failure; neither stops the batch.
"""

from __future__ import annotations

import json
from collections.abc import Iterable

from workshop_fleet._config import FleetConfig
from workshop_fleet._context import RunContext
from workshop_fleet._errors import ProviderError, TemplateRenderError
from workshop_fleet._models import CreateInstanceRequest, UserSpec
from workshop_fleet._report import Outcome, OutcomeStatus, RunReport

ACTION = "provision"


def build_create_request(
    user: UserSpec,
    config: FleetConfig,
    user_data: str,
) -> CreateInstanceRequest:
    """Assemble the droplet creation request for *user*."""
    return CreateInstanceRequest(
        name=user.resource_name,
        region=config.region,
        size=config.size,
        image=config.image,
        ssh_fingerprints=(config.ssh_fingerprint,),
        tags=(config.tag,),
        user_data=user_data,
    )


def _dump_request(ctx: RunContext, request: CreateInstanceRequest) -> None:
    ctx.emit(f"---- dry run: create droplet {request.name}")
    ctx.emit(json.dumps(request.to_payload(), indent=2))
    ctx.emit("----")


def provision_user(ctx: RunContext, user: UserSpec, report: RunReport) -> Outcome:
    """Render, build, and (unless dry-running) submit one creation request."""
    log = ctx.logger
    try:
        user_data = ctx.renderer.render(user)
    except TemplateRenderError as exc:
        log.error("%s", exc)
        return report.skipped(user.resource_name, ACTION, str(exc))

    log.debug("user data for %s:\n%s", user.resource_name, user_data)
    request = build_create_request(user, ctx.config, user_data)

    if ctx.config.dry_run:
        log.info("dry run: creating droplet for %s", user.resource_name)
        _dump_request(ctx, request)
        return report.skipped(user.resource_name, ACTION, "dry run")

    try:
        ctx.compute.create_instance(request)
    except ProviderError as exc:
        log.error("%s", exc)
        return report.failed(user.resource_name, ACTION, str(exc))

    log.info("created droplet for hostname: %s", user.resource_name)
    return report.succeeded(user.resource_name, ACTION)


def provision_missing(ctx: RunContext, users: Iterable[UserSpec]) -> RunReport:
    """Provision every user in *users* sequentially."""
    report = RunReport()
    for user in users:
        provision_user(ctx, user, report)
    return report


def created_names(report: RunReport) -> list[str]:
    """Names of droplets whose creation request was accepted."""
    return [
        o.subject
        for o in report.by_action(ACTION)
        if o.status is OutcomeStatus.SUCCEEDED
    ]
