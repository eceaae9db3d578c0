"""
Network Options Conversion

Architectural Intent:
- Pure functions that turn a base InstanceRequest into the request a zone's
  network model accepts
- Dispatch is a read-only table NetworkType -> converter; adding a network
  model means adding an entry, not an if/elif branch
- Converters never call the backend; the networks of the zone are passed in

Conversion Rules:
- BASIC zones have no selectable networks; isolation is by security group,
  so only security_group_ids are carried over
- ADVANCED zones attach the requested networks, or the zone's default
  network when none are requested; security groups are carried over only
  when the zone supports them
"""

from __future__ import annotations
from dataclasses import replace
from types import MappingProxyType
from typing import Callable, Mapping, Sequence

from cloudweave.domain.value_objects.cloud_resources import (
    InstanceRequest,
    Network,
    NetworkType,
    Zone,
)

OptionsConverter = Callable[
    [InstanceRequest, Zone, Sequence[Network], Sequence[str], Sequence[str]],
    InstanceRequest,
]


def basic_network_options(
    request: InstanceRequest,
    zone: Zone,
    networks: Sequence[Network],
    requested_network_ids: Sequence[str],
    security_group_ids: Sequence[str],
) -> InstanceRequest:
    return replace(
        request,
        network_ids=(),
        security_group_ids=tuple(security_group_ids),
    )


def advanced_network_options(
    request: InstanceRequest,
    zone: Zone,
    networks: Sequence[Network],
    requested_network_ids: Sequence[str],
    security_group_ids: Sequence[str],
) -> InstanceRequest:
    if requested_network_ids:
        known = {n.id for n in networks}
        unknown = [n for n in requested_network_ids if n not in known]
        if unknown:
            raise ValueError(f"Networks {unknown} are not in zone {zone.id}")
        network_ids = tuple(requested_network_ids)
    else:
        defaults = [n.id for n in networks if n.is_default and n.zone == zone.id]
        if not defaults:
            raise ValueError(f"Zone {zone.id} has no default network")
        network_ids = (defaults[0],)

    return replace(
        request,
        network_ids=network_ids,
        security_group_ids=tuple(security_group_ids) if zone.security_groups_enabled else (),
    )


OPTIONS_CONVERTERS: Mapping[NetworkType, OptionsConverter] = MappingProxyType(
    {
        NetworkType.BASIC: basic_network_options,
        NetworkType.ADVANCED: advanced_network_options,
    }
)


def convert_options(
    request: InstanceRequest,
    zone: Zone,
    networks: Sequence[Network],
    requested_network_ids: Sequence[str] = (),
    security_group_ids: Sequence[str] = (),
    converters: Mapping[NetworkType, OptionsConverter] = OPTIONS_CONVERTERS,
) -> InstanceRequest:
    converter = converters.get(zone.network_type)
    if converter is None:
        raise ValueError(
            f"No options converter configured for network type {zone.network_type.name}"
        )
    return converter(request, zone, networks, requested_network_ids, security_group_ids)
