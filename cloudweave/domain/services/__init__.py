"""
Domain Services Package

Architectural Intent:
- Contains stateless domain services used when building provisioning plans
- Network-type dispatch and group naming live here so the application layer
  stays free of zone-specific branching
"""

from cloudweave.domain.services.network_options import (
    OPTIONS_CONVERTERS,
    OptionsConverter,
    convert_options,
)
from cloudweave.domain.services.naming import (
    shared_name_for_group,
    unique_name_for_group,
)

__all__ = [
    "OPTIONS_CONVERTERS",
    "OptionsConverter",
    "convert_options",
    "shared_name_for_group",
    "unique_name_for_group",
]
