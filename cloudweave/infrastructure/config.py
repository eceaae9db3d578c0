"""
Configuration Module

Architectural Intent:
- Centralized configuration loading from JSON files
- Provides typed access to all cloudweave settings
- Falls back to sensible defaults when config file is absent
- Environment variables override file-based config

Design Decisions:
- Config is a frozen dataclass for immutability after load
- Nested config sections map to sub-dataclasses; section names are single
  words so CLOUDWEAVE_SECTION_KEY splits unambiguously
- String values (from the environment) are coerced by the declared field type
"""

from __future__ import annotations
import dataclasses
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional
import json
import logging
import os

from cloudweave.application.orchestration.job_waiter import BackoffPolicy, RetryPolicy

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class JobWaiterConfig:
    """Job polling configuration."""
    default_timeout: float = 600.0
    request_timeout: float = 30.0
    initial_interval: float = 0.05
    max_interval: float = 1.0
    multiplier: float = 1.5
    jitter: float = 0.0
    retry_attempts: int = 3
    retry_min_wait: float = 0.05
    retry_max_wait: float = 1.0
    compensation_timeout: Optional[float] = None

    def backoff_policy(self) -> BackoffPolicy:
        return BackoffPolicy(
            initial_interval=self.initial_interval,
            max_interval=self.max_interval,
            multiplier=self.multiplier,
            jitter=self.jitter,
        )

    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(
            attempts=self.retry_attempts,
            min_wait=self.retry_min_wait,
            max_wait=self.retry_max_wait,
        )


@dataclass(frozen=True)
class QueueConfig:
    """Per-partition admission configuration."""
    default_concurrency: int = 2
    partition_limits: tuple[tuple[str, int], ...] = ()
    admission_timeout: Optional[float] = None

    @property
    def limits(self) -> dict[str, int]:
        return dict(self.partition_limits)


@dataclass(frozen=True)
class CacheConfig:
    """Shared resource cache configuration."""
    security_group_expire_after: Optional[float] = None
    key_pair_expire_after: Optional[float] = None


@dataclass(frozen=True)
class TelemetryConfig:
    """OpenTelemetry configuration."""
    endpoint: str = ""
    insecure: bool = False
    service_name: str = "cloudweave"
    buffer_limit: int = 10_000


@dataclass(frozen=True)
class BackendConfig:
    """Control-plane backend configuration."""
    kind: str = "simulated"
    region: str = "default"
    naming_prefix: str = "cloudweave"
    login_user: str = "root"
    job_latency: float = 0.0
    password_enabled: bool = False


@dataclass(frozen=True)
class CloudweaveConfig:
    """Root configuration for the cloudweave application."""
    waiter: JobWaiterConfig = field(default_factory=JobWaiterConfig)
    queue: QueueConfig = field(default_factory=QueueConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    telemetry: TelemetryConfig = field(default_factory=TelemetryConfig)
    backend: BackendConfig = field(default_factory=BackendConfig)
    log_level: str = "WARNING"


def parse_partition_limits(value: Any) -> tuple[tuple[str, int], ...]:
    """Accept "zone-a=2,zone-b=1", a mapping, or a list of pairs."""
    if isinstance(value, str):
        pairs = []
        for item in value.split(","):
            item = item.strip()
            if not item:
                continue
            partition, sep, limit = item.partition("=")
            if not sep or not partition.strip():
                raise ValueError(f"Invalid partition limit {item!r}, expected name=limit")
            pairs.append((partition.strip(), int(limit)))
        return tuple(pairs)
    if isinstance(value, dict):
        return tuple((str(k), int(v)) for k, v in value.items())
    return tuple((str(k), int(v)) for k, v in value)


def _env_override(data: dict, prefix: str = "CLOUDWEAVE") -> dict:
    """Override config values with environment variables.

    Environment variables follow the pattern CLOUDWEAVE_SECTION_KEY.
    For example: CLOUDWEAVE_QUEUE_DEFAULT_CONCURRENCY=4,
    CLOUDWEAVE_QUEUE_PARTITION_LIMITS=zone-a=2,zone-b=1
    """
    for key, value in os.environ.items():
        if not key.startswith(f"{prefix}_"):
            continue
        parts = key[len(prefix) + 1:].lower().split("_", 1)
        if len(parts) == 2 and parts[0] in _SECTIONS:
            section, field_name = parts
            if section not in data:
                data[section] = {}
            data[section][field_name] = value
        else:
            data["_".join(parts)] = value
    return data


def _parse_config_file(path: Path) -> dict:
    """Parse a JSON config file. Returns empty dict on failure."""
    try:
        with open(path) as f:
            return json.load(f)
    except FileNotFoundError:
        logger.debug("Config file not found: %s", path)
        return {}
    except json.JSONDecodeError as e:
        logger.warning("Invalid config file %s: %s", path, e)
        return {}


def _coerce(type_name: str, value: Any) -> Any:
    if type_name.startswith("tuple[tuple[str, int]"):
        return parse_partition_limits(value)
    if not isinstance(value, str):
        return value
    if type_name.startswith("Optional["):
        if value.strip().lower() in ("", "none", "null"):
            return None
        type_name = type_name[len("Optional["):-1]
    if type_name == "int":
        return int(value)
    if type_name == "float":
        return float(value)
    if type_name == "bool":
        return value.lower() in ("true", "1", "yes")
    return value


def _build_sub_config(cls, data: dict):
    """Build a sub-config dataclass from a dict, ignoring unknown keys."""
    types = {f.name: f.type for f in dataclasses.fields(cls)}
    filtered = {k: _coerce(types[k], v) for k, v in data.items() if k in types}
    return cls(**filtered)


_SECTIONS = {
    "waiter": JobWaiterConfig,
    "queue": QueueConfig,
    "cache": CacheConfig,
    "telemetry": TelemetryConfig,
    "backend": BackendConfig,
}


def load_config(
    path: Optional[str] = None,
    env_prefix: str = "CLOUDWEAVE",
) -> CloudweaveConfig:
    """Load configuration from file and environment variables.

    Priority (highest to lowest):
    1. Environment variables (CLOUDWEAVE_SECTION_KEY)
    2. Config file values
    3. Defaults

    Args:
        path: Path to config file (JSON). Defaults to cloudweave.json in CWD.
        env_prefix: Environment variable prefix. Defaults to CLOUDWEAVE.
    """
    config_path = Path(path) if path else Path("cloudweave.json")
    data = _parse_config_file(config_path)
    data = _env_override(data, env_prefix)

    sections = {
        name: _build_sub_config(cls, data.get(name, {}))
        for name, cls in _SECTIONS.items()
    }
    return CloudweaveConfig(**sections, log_level=data.get("log_level", "WARNING"))
