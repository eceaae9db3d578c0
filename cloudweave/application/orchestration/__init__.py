"""
Application Orchestration Package

Architectural Intent:
- Contains the asynchronous provisioning core
- Job completion waiting, single-flight shared-resource caching,
  per-partition admission and the compensating provisioning pipeline
"""

from cloudweave.application.orchestration.job_waiter import (
    BackoffPolicy,
    JobWaiter,
    RetryPolicy,
)
from cloudweave.application.orchestration.single_flight_cache import (
    CacheStats,
    SingleFlightResourceCache,
)
from cloudweave.application.orchestration.provisioning_queue import (
    LaneStats,
    ProvisioningQueue,
)
from cloudweave.application.orchestration.provisioning_pipeline import (
    PlanResult,
    ProvisioningPipeline,
)

__all__ = [
    "BackoffPolicy",
    "JobWaiter",
    "RetryPolicy",
    "CacheStats",
    "SingleFlightResourceCache",
    "LaneStats",
    "ProvisioningQueue",
    "PlanResult",
    "ProvisioningPipeline",
]
