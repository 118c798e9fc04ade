"""DigitalOcean API bindings for droplets and domain records.

The reconciliation steps only depend on the :class:`ComputeProvider` and
:class:`DnsProvider` protocols; :class:`DigitalOceanClient` implements both
over ``httpx``. Every response, successful or not, has its ``ratelimit-*``
headers parsed and handed to the ``on_quota`` callback.

Examples
--------
>>> client = DigitalOceanClient("token")
>>> listing = client.list_instances("nice-workshop")  # doctest: +SKIP
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Mapping
from typing import Any, Protocol

import httpx

from workshop_fleet._errors import ProviderError
from workshop_fleet._models import (
    CreateInstanceRequest,
    DomainRecord,
    Listing,
    ObservedInstance,
    QuotaInfo,
    public_ipv4,
)
from workshop_fleet._rate_limit import quota_from_headers

API_BASE_URL = "https://api.digitalocean.com/v2"
DEFAULT_TIMEOUT = 30.0


class ComputeProvider(Protocol):
    """Droplet operations consumed by provisioning and teardown."""

    def list_instances(self, tag: str) -> Listing: ...

    def create_instance(
        self, request: CreateInstanceRequest
    ) -> tuple[ObservedInstance, QuotaInfo]: ...

    def delete_instances(self, tag: str) -> QuotaInfo: ...


class DnsProvider(Protocol):
    """Domain record operations consumed by DNS synchronisation."""

    def list_records(self, domain: str, record_type: str = "A") -> Listing: ...

    def create_record(
        self, domain: str, *, name: str, data: str, ttl: int, record_type: str = "A"
    ) -> QuotaInfo: ...

    def update_record(self, domain: str, record_id: int, *, data: str) -> QuotaInfo: ...


def instance_from_droplet(droplet: Mapping[str, Any], tag: str) -> ObservedInstance:
    """Map a droplet JSON object onto :class:`ObservedInstance`."""
    raw_id = droplet.get("id")
    return ObservedInstance(
        name=str(droplet.get("name", "")),
        public_address=public_ipv4(droplet),
        tag=tag,
        instance_id=int(raw_id) if raw_id is not None else None,
        status=droplet.get("status"),
    )


def record_from_payload(record: Mapping[str, Any]) -> DomainRecord:
    """Map a domain record JSON object onto :class:`DomainRecord`."""
    ttl = record.get("ttl")
    return DomainRecord(
        name=str(record.get("name", "")),
        data=str(record.get("data", "")),
        record_id=int(record["id"]),
        record_type=str(record.get("type", "A")),
        ttl=int(ttl) if ttl is not None else None,
    )


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return response.text.strip() or response.reason_phrase


class DigitalOceanClient:
    """Thin synchronous client for the DigitalOcean v2 API."""

    def __init__(
        self,
        token: str,
        *,
        page_size: int = 200,
        on_quota: Callable[[QuotaInfo], object] | None = None,
        http_client: httpx.Client | None = None,
    ) -> None:
        self._page_size = page_size
        self._on_quota = on_quota
        self._http = http_client or httpx.Client(
            base_url=API_BASE_URL,
            timeout=httpx.Timeout(DEFAULT_TIMEOUT),
        )
        self._http.headers.update(
            {
                "Authorization": f"Bearer {token}",
                "Content-Type": "application/json",
                "Accept": "application/json",
            }
        )

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> DigitalOceanClient:
        return self

    def __exit__(self, *_exc: object) -> None:
        self.close()

    def _request(
        self,
        method: str,
        url: str,
        *,
        what: str,
        params: Mapping[str, Any] | None = None,
        json: Mapping[str, Any] | None = None,
    ) -> tuple[Any, QuotaInfo]:
        """Send one request and return ``(body, quota)``.

        Raises
        ------
        ProviderError
            On transport failures and non-2xx responses.
        """
        try:
            response = self._http.request(method, url, params=params, json=json)
        except httpx.HTTPError as exc:
            msg = f"{what} failed: {exc}"
            raise ProviderError(msg) from exc

        quota = quota_from_headers(response.headers)
        if self._on_quota is not None:
            self._on_quota(quota)

        if response.is_error:
            msg = f"{what} failed ({response.status_code}): {_error_message(response)}"
            raise ProviderError(msg, status_code=response.status_code)

        if response.status_code == httpx.codes.NO_CONTENT or not response.content:
            return None, quota
        try:
            return response.json(), quota
        except ValueError as exc:
            msg = f"{what} returned invalid JSON: {exc}"
            raise ProviderError(msg, status_code=response.status_code) from exc

    def _paginate(
        self,
        url: str,
        key: str,
        *,
        what: str,
        params: Mapping[str, Any],
    ) -> Iterator[tuple[list[Any], QuotaInfo]]:
        """Yield each page of a listing, following ``links.pages.next``."""
        next_url: str | None = url
        next_params: Mapping[str, Any] | None = {**params, "per_page": self._page_size}
        while next_url:
            body, quota = self._request("GET", next_url, what=what, params=next_params)
            body = body or {}
            items = body.get(key) or []
            if not isinstance(items, list):
                msg = f"{what} returned a non-list {key!r}"
                raise ProviderError(msg)
            yield items, quota
            pages = (body.get("links") or {}).get("pages") or {}
            next_url = pages.get("next")
            # the next link already carries the query string
            next_params = None

    def list_instances(self, tag: str) -> Listing:
        instances: list[ObservedInstance] = []
        quota = QuotaInfo()
        for page, quota in self._paginate(
            "/droplets",
            "droplets",
            what=f"list droplets tagged {tag!r}",
            params={"tag_name": tag},
        ):
            instances.extend(instance_from_droplet(d, tag) for d in page)
        return Listing(items=tuple(instances), quota=quota)

    def create_instance(
        self, request: CreateInstanceRequest
    ) -> tuple[ObservedInstance, QuotaInfo]:
        body, quota = self._request(
            "POST",
            "/droplets",
            what=f"create droplet {request.name}",
            json=request.to_payload(),
        )
        droplet = (body or {}).get("droplet") or {"name": request.name}
        tag = request.tags[0] if request.tags else ""
        return instance_from_droplet(droplet, tag), quota

    def delete_instances(self, tag: str) -> QuotaInfo:
        _, quota = self._request(
            "DELETE",
            "/droplets",
            what=f"delete droplets tagged {tag!r}",
            params={"tag_name": tag},
        )
        return quota

    def list_records(self, domain: str, record_type: str = "A") -> Listing:
        records: list[DomainRecord] = []
        quota = QuotaInfo()
        for page, quota in self._paginate(
            f"/domains/{domain}/records",
            "domain_records",
            what=f"list {record_type} records of {domain}",
            params={"type": record_type},
        ):
            records.extend(record_from_payload(r) for r in page)
        return Listing(items=tuple(records), quota=quota)

    def create_record(
        self,
        domain: str,
        *,
        name: str,
        data: str,
        ttl: int,
        record_type: str = "A",
    ) -> QuotaInfo:
        _, quota = self._request(
            "POST",
            f"/domains/{domain}/records",
            what=f"create record {name}",
            json={"type": record_type, "name": name, "data": data, "ttl": ttl},
        )
        return quota

    def update_record(self, domain: str, record_id: int, *, data: str) -> QuotaInfo:
        _, quota = self._request(
            "PUT",
            f"/domains/{domain}/records/{record_id}",
            what=f"update record {record_id}",
            json={"data": data},
        )
        return quota
