"""Global test configuration.

Shared fixtures: an in-memory cloud, a fast-polling JobWaiter and a fully
wired container on top of them.
"""

import logging

import pytest

from cloudweave.application.orchestration.job_waiter import BackoffPolicy, JobWaiter, RetryPolicy
from cloudweave.composition_root import create_container
from cloudweave.infrastructure.adapters.simulated_cloud_adapter import SimulatedCloudAdapter
from cloudweave.infrastructure.config import CloudweaveConfig, JobWaiterConfig

FAST_WAITER = JobWaiterConfig(
    default_timeout=2.0,
    request_timeout=1.0,
    initial_interval=0.001,
    max_interval=0.01,
    retry_attempts=3,
    retry_min_wait=0.001,
    retry_max_wait=0.005,
)


@pytest.fixture(autouse=True)
def _reset_cloudweave_logger():
    """configure_logging() binds handlers to the current stderr; undo it per test."""
    logger = logging.getLogger("cloudweave")
    handlers, level = list(logger.handlers), logger.level
    yield
    logger.handlers[:] = handlers
    logger.setLevel(level)


@pytest.fixture
def cloud():
    return SimulatedCloudAdapter()


@pytest.fixture
def waiter(cloud):
    return JobWaiter(
        cloud,
        default_timeout=2.0,
        backoff=BackoffPolicy(initial_interval=0.001, max_interval=0.01),
        retry=RetryPolicy(attempts=3, min_wait=0.001, max_wait=0.005),
        request_timeout=1.0,
    )


@pytest.fixture
def fast_config():
    return CloudweaveConfig(waiter=FAST_WAITER)


@pytest.fixture
def container(cloud, fast_config):
    return create_container(fast_config, backend=cloud)
