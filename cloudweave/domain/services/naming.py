"""
Group Naming Convention

Architectural Intent:
- Shared resources (generated key pairs, generated security groups) are
  named per group so every node in the group resolves the same cache key
- Node names are unique per group
"""

import re
import uuid

DEFAULT_PREFIX = "cloudweave"

_INVALID = re.compile(r"[^a-z0-9-]+")


def _normalise(group: str) -> str:
    cleaned = _INVALID.sub("-", group.lower()).strip("-")
    if not cleaned:
        raise ValueError(f"Group name {group!r} has no usable characters")
    return cleaned


def shared_name_for_group(group: str, prefix: str = DEFAULT_PREFIX) -> str:
    return f"{prefix}-{_normalise(group)}"


def unique_name_for_group(group: str, prefix: str = DEFAULT_PREFIX) -> str:
    return f"{prefix}-{_normalise(group)}-{uuid.uuid4().hex[:6]}"
