"""Resolve workshop fleet settings from the CLI and environment.

Every setting follows the same precedence: an explicit CLI value, then the
environment variable named in its :class:`InputResolution`, then the default.
Only the API token is required; a missing token aborts with exit status 1
before any remote call is made.

Examples
--------
>>> cfg = resolve_fleet_config(RawFleetInputs(), env={"DO_TOKEN": "t"})
>>> cfg.resource_suffix
'.encero.xyz'
"""

from __future__ import annotations

from collections import abc as cabc
from dataclasses import dataclass
from pathlib import Path

from workshop_fleet._input_resolution import InputResolution, parse_bool, resolve_input

DEFAULT_DOMAIN = "encero.xyz"
DEFAULT_REGION = "fra1"
DEFAULT_SIZE = "s-2vcpu-4gb-amd"
DEFAULT_IMAGE = "ubuntu-21-04-x64"
DEFAULT_TAG = "nice-workshop"
DEFAULT_SSH_FINGERPRINT = "5c:48:95:fa:ec:f4:3c:76:78:f2:77:1b:ad:a5:7c:d4"
DEFAULT_FALLBACK_KEY = (
    "ssh-ed25519 AAAAC3NzaC1lZDI1NTE5AAAAIHfXEOvy8FgUbO4Wile2w1M9p575UUltJGqZ9MvOtrpl"
)
DEFAULT_RECORD_TTL = 30
DEFAULT_RATE_LIMIT_THRESHOLD = 200
DEFAULT_PAGE_SIZE = 200
DEFAULT_SETTLE_TIMEOUT = 120.0
DEFAULT_SETTLE_INTERVAL = 5.0


@dataclass(frozen=True, slots=True)
class FleetConfig:
    """Resolved settings for one setup or teardown run."""

    # Credentials
    token: str

    # Droplet shape
    domain: str
    region: str
    size: str
    image: str
    ssh_fingerprint: str
    tag: str
    fallback_key: str

    # Inputs
    users_file: Path
    userdata_template: Path | None

    # Tuning
    record_ttl: int = DEFAULT_RECORD_TTL
    rate_limit_threshold: int = DEFAULT_RATE_LIMIT_THRESHOLD
    page_size: int = DEFAULT_PAGE_SIZE
    settle_timeout: float = DEFAULT_SETTLE_TIMEOUT
    settle_interval: float = DEFAULT_SETTLE_INTERVAL

    # Modes
    dry_run: bool = False
    debug: bool = False

    @property
    def resource_suffix(self) -> str:
        """Suffix shared by every droplet name, including the leading dot."""
        return f".{self.domain}"


@dataclass(frozen=True, slots=True)
class RawFleetInputs:
    """Raw fleet inputs from the CLI; ``None`` defers to the environment."""

    token: str | None = None
    domain: str | None = None
    region: str | None = None
    size: str | None = None
    image: str | None = None
    ssh_fingerprint: str | None = None
    tag: str | None = None
    fallback_key: str | None = None
    users_file: Path | None = None
    userdata_template: Path | None = None
    record_ttl: int | None = None
    rate_limit_threshold: int | None = None
    settle_timeout: float | None = None
    settle_interval: float | None = None
    dry_run: bool | None = None
    debug: bool | None = None


def _to_number(value: object, kind: type[int] | type[float], name: str) -> int | float:
    try:
        return kind(value)  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        msg = f"{name} must be a number, got {value!r}"
        raise SystemExit(msg) from exc


def resolve_fleet_config(
    raw: RawFleetInputs,
    env: cabc.Mapping[str, str] | None = None,
) -> FleetConfig:
    """Resolve a :class:`FleetConfig` from CLI values and the environment."""

    def _resolved(value: object, resolution: InputResolution) -> str | Path | None:
        if value is not None:
            return value  # type: ignore[return-value]
        return resolve_input(None, resolution, env=env)

    token = _resolved(raw.token, InputResolution(env_key="DO_TOKEN", required=True))
    domain = _resolved(
        raw.domain, InputResolution(env_key="FLEET_DOMAIN", default=DEFAULT_DOMAIN)
    )
    region = _resolved(
        raw.region, InputResolution(env_key="FLEET_REGION", default=DEFAULT_REGION)
    )
    size = _resolved(raw.size, InputResolution(env_key="FLEET_SIZE", default=DEFAULT_SIZE))
    image = _resolved(
        raw.image, InputResolution(env_key="FLEET_IMAGE", default=DEFAULT_IMAGE)
    )
    ssh_fingerprint = _resolved(
        raw.ssh_fingerprint,
        InputResolution(env_key="FLEET_SSH_FINGERPRINT", default=DEFAULT_SSH_FINGERPRINT),
    )
    tag = _resolved(raw.tag, InputResolution(env_key="FLEET_TAG", default=DEFAULT_TAG))
    fallback_key = _resolved(
        raw.fallback_key,
        InputResolution(env_key="FLEET_FALLBACK_KEY", default=DEFAULT_FALLBACK_KEY),
    )
    users_file = _resolved(
        raw.users_file,
        InputResolution(env_key="FLEET_USERS_FILE", default=Path("users.list"), as_path=True),
    )
    userdata_template = _resolved(
        raw.userdata_template,
        InputResolution(env_key="FLEET_USERDATA_TEMPLATE", as_path=True),
    )
    record_ttl = _resolved(
        raw.record_ttl,
        InputResolution(env_key="FLEET_RECORD_TTL", default=str(DEFAULT_RECORD_TTL)),
    )
    threshold = _resolved(
        raw.rate_limit_threshold,
        InputResolution(
            env_key="FLEET_RATE_LIMIT_THRESHOLD",
            default=str(DEFAULT_RATE_LIMIT_THRESHOLD),
        ),
    )
    settle_timeout = _resolved(
        raw.settle_timeout,
        InputResolution(env_key="FLEET_SETTLE_TIMEOUT", default=str(DEFAULT_SETTLE_TIMEOUT)),
    )
    settle_interval = _resolved(
        raw.settle_interval,
        InputResolution(
            env_key="FLEET_SETTLE_INTERVAL", default=str(DEFAULT_SETTLE_INTERVAL)
        ),
    )
    dry_run = _resolved(raw.dry_run, InputResolution(env_key="DRY_RUN", default="false"))
    debug = _resolved(raw.debug, InputResolution(env_key="FLEET_DEBUG", default="false"))

    if not str(fallback_key).strip():
        msg = "FLEET_FALLBACK_KEY must not be blank"
        raise SystemExit(msg)

    ttl = int(_to_number(record_ttl, int, "record TTL"))
    timeout = float(_to_number(settle_timeout, float, "settle timeout"))
    interval = float(_to_number(settle_interval, float, "settle interval"))
    if ttl <= 0:
        msg = f"record TTL must be positive, got {ttl}"
        raise SystemExit(msg)
    if not timeout >= 0:
        msg = f"settle timeout must not be negative, got {timeout}"
        raise SystemExit(msg)
    if not interval > 0:
        msg = f"settle interval must be positive, got {interval}"
        raise SystemExit(msg)

    return FleetConfig(
        token=str(token),
        domain=str(domain).strip().rstrip("."),
        region=str(region),
        size=str(size),
        image=str(image),
        ssh_fingerprint=str(ssh_fingerprint),
        tag=str(tag),
        fallback_key=str(fallback_key).strip(),
        users_file=Path(users_file) if users_file is not None else Path("users.list"),
        userdata_template=Path(userdata_template) if userdata_template else None,
        record_ttl=ttl,
        rate_limit_threshold=int(_to_number(threshold, int, "rate limit threshold")),
        settle_timeout=timeout,
        settle_interval=interval,
        dry_run=parse_bool(dry_run),  # type: ignore[arg-type]
        debug=parse_bool(debug),  # type: ignore[arg-type]
    )
