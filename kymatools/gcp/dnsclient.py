"""Building and applying Cloud DNS record changes."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from typing import Any

DEFAULT_PROPAGATION_WAIT = 60.0
"""Default propagation waiting time, in seconds."""
DEFAULT_CHECK_DELAY = 0.1
"""Default check delay, in seconds."""
DEFAULT_PROVISION_DELAY = 10.0
"""Default wait after provisioning, in seconds."""
DEFAULT_DNS_PROJECT = "sap-kyma-prow-workloads"
"""GCP project hosting the managed zone by default."""
DEFAULT_ZONE_NAME = "build-kyma-workloads"
"""Managed zone holding the records by default."""


@dataclass
class ResourceRecordSet:
    name: str
    rrdatas: list[str]
    type: str
    ttl: int


@dataclass
class Change:
    additions: list[ResourceRecordSet] = field(default_factory=list)
    deletions: list[ResourceRecordSet] = field(default_factory=list)
    is_serving: bool = False


@dataclass
class ManagedZone:
    name: str
    dns_name: str = ""


@dataclass(frozen=True)
class RecordOpts:
    project: str
    zone_name: str
    name: str
    data: str
    record_type: str
    ttl: int


def new_record_opts(
    project: str, zone_name: str, name: str, data: str, record_type: str, ttl: int
) -> RecordOpts:
    """Build record options, filling in the default project and zone when empty."""
    return RecordOpts(
        project=project or DEFAULT_DNS_PROJECT,
        zone_name=zone_name or DEFAULT_ZONE_NAME,
        name=name,
        data=data,
        record_type=record_type,
        ttl=ttl,
    )


@dataclass
class DNSChange:
    """A pending change to one record set."""

    change: Change
    rrs: ResourceRecordSet
    opts: RecordOpts

    def add_record(self) -> DNSChange:
        self.change.additions.append(self.rrs)
        return self

    def delete_record(self) -> DNSChange:
        self.change.deletions.append(self.rrs)
        return self


class DNSClient:
    """Client over a DNS API offering ``get_managed_zone`` and ``change_record``."""

    def __init__(self, service: Any) -> None:
        self.service = service

    def new_dns_change(self, record: RecordOpts) -> DNSChange:
        return DNSChange(
            change=Change(is_serving=True),
            rrs=ResourceRecordSet(
                name=record.name,
                rrdatas=[record.data],
                type=record.record_type,
                ttl=record.ttl,
            ),
            opts=record,
        )

    def do_change(self, dnschange: DNSChange) -> Any:
        """Submit the change to the zone named in its options and return the API result."""
        return self.service.change_record(
            dnschange.opts.project, dnschange.opts.zone_name, dnschange.change
        )

    def lookup_dns_record(self, record: RecordOpts) -> ResourceRecordSet | None:
        """Resolve the record's managed zone; no record set is returned yet."""
        zone = self.find_managed_zone(record)
        if zone is None:
            raise LookupError("no managed zone found for record")
        dataclasses.replace(record, zone_name=zone.name)
        return None

    def find_managed_zone(self, record: RecordOpts) -> ManagedZone | None:
        """Return the managed zone named in the record options, or ``None`` if none is named."""
        if not record.zone_name:
            return None
        return self.service.get_managed_zone(record.project, record.zone_name)