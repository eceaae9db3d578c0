"""
Teardown Node Use Case

Architectural Intent:
- Removes a node and everything the create path attached to it
- Fixed order so nothing is released while something still references it:
  forwarding rules -> firewall rules -> static NAT -> public addresses ->
  instance -> detached data volumes
- Idempotent: a resource that is already gone counts as removed, so
  destroying an already destroyed node succeeds
- Every phase runs even when an earlier one failed; failures are collected
  and raised together as TeardownError
"""

import logging
from typing import Any, Awaitable, Callable, Optional

from cloudweave.application.dtos.node_dtos import TeardownReport
from cloudweave.application.orchestration.job_waiter import JobWaiter
from cloudweave.application.orchestration.provisioning_pipeline import is_already_absent
from cloudweave.domain.errors import TeardownError
from cloudweave.domain.ports.resource_backend_port import ResourceBackendPort
from cloudweave.domain.value_objects.job import Failed, JobHandle, TimedOut

logger = logging.getLogger(__name__)

Failures = list[tuple[str, BaseException]]


class NodeTeardown:
    def __init__(
        self,
        backend: ResourceBackendPort,
        waiter: JobWaiter,
        timeout: Optional[float] = None,
    ) -> None:
        self._backend = backend
        self._waiter = waiter
        self._timeout = timeout

    async def _attempt(
        self,
        node_id: str,
        name: str,
        failures: Failures,
        call: Callable[[], Awaitable[Any]],
    ) -> bool:
        try:
            value = await call()
            if isinstance(value, JobHandle):
                outcome = await self._waiter.wait_for(value, self._timeout)
                if isinstance(outcome, Failed):
                    raise outcome.cause
                if isinstance(outcome, TimedOut):
                    raise outcome.as_error()
        except Exception as e:
            if is_already_absent(e):
                logger.debug("Teardown of node %s: %s already absent", node_id, name)
                return True
            logger.warning("Teardown of node %s: %s failed: %s", node_id, name, e)
            failures.append((name, e))
            return False
        return True

    async def _collect(
        self,
        node_id: str,
        name: str,
        failures: Failures,
        call: Callable[[], Awaitable[list]],
    ) -> list:
        try:
            return list(await call())
        except Exception as e:
            if is_already_absent(e):
                return []
            logger.warning("Teardown of node %s: %s failed: %s", node_id, name, e)
            failures.append((name, e))
            return []

    async def execute(self, node_id: str) -> TeardownReport:
        backend = self._backend
        failures: Failures = []
        logger.info("Tearing down node %s", node_id, extra={"event": "teardown_started", "node": node_id})

        instance = None
        try:
            instance = await backend.get_instance(node_id)
        except Exception as e:
            if not is_already_absent(e):
                logger.warning("Teardown of node %s: get_instance failed: %s", node_id, e)
                failures.append(("get_instance", e))

        address_ids: list[str] = []

        def remember(address_id: Optional[str]) -> None:
            if address_id and address_id not in address_ids:
                address_ids.append(address_id)

        # forwarding rules
        forwarding_deleted = 0
        rules = await self._collect(
            node_id, "list_forwarding_rules", failures,
            lambda: backend.list_forwarding_rules(node_id),
        )
        for rule in rules:
            remember(rule.address_id)
            if await self._attempt(
                node_id, f"delete_forwarding_rule:{rule.id}", failures,
                lambda rule_id=rule.id: backend.delete_forwarding_rule(rule_id),
            ):
                forwarding_deleted += 1

        # firewall rules on every address that points at the node
        if instance is not None:
            remember(instance.public_ip_id)
        for address in await self._collect(
            node_id, "list_addresses", failures, lambda: backend.list_addresses(node_id)
        ):
            remember(address.id)

        firewall_deleted = 0
        for address_id in address_ids:
            firewall_rules = await self._collect(
                node_id, f"list_firewall_rules:{address_id}", failures,
                lambda a=address_id: backend.list_firewall_rules(a),
            )
            for rule in firewall_rules:
                if await self._attempt(
                    node_id, f"delete_firewall_rule:{rule.id}", failures,
                    lambda rule_id=rule.id: backend.delete_firewall_rule(rule_id),
                ):
                    firewall_deleted += 1

        for address_id in address_ids:
            await self._attempt(
                node_id, f"disable_static_nat:{address_id}", failures,
                lambda a=address_id: backend.disable_static_nat(a),
            )

        released = 0
        for address_id in address_ids:
            if await self._attempt(
                node_id, f"release_address:{address_id}", failures,
                lambda a=address_id: backend.release_address(a),
            ):
                released += 1

        volumes = await self._collect(
            node_id, "list_volumes", failures, lambda: backend.list_volumes(node_id)
        )

        instance_found = False

        async def delete_instance() -> Any:
            nonlocal instance_found
            handle = await backend.delete_instance(node_id)
            if handle is None:
                logger.info(
                    "Teardown of node %s: instance already absent",
                    node_id,
                    extra={"event": "instance_absent", "node": node_id},
                )
            else:
                instance_found = True
            return handle

        await self._attempt(node_id, "delete_instance", failures, delete_instance)

        volumes_deleted = 0
        for volume in volumes:
            if await self._attempt(
                node_id, f"delete_volume:{volume.id}", failures,
                lambda v=volume.id: backend.delete_volume(v),
            ):
                volumes_deleted += 1

        if failures:
            raise TeardownError(node_id, failures)

        logger.info(
            "Node %s torn down (%d forwarding rules, %d firewall rules, %d addresses, %d volumes)",
            node_id,
            forwarding_deleted,
            firewall_deleted,
            released,
            volumes_deleted,
            extra={"event": "teardown_finished", "node": node_id},
        )
        return TeardownReport(
            node_id=node_id,
            instance_found=instance_found,
            forwarding_rules_deleted=forwarding_deleted,
            firewall_rules_deleted=firewall_deleted,
            addresses_released=released,
            volumes_deleted=volumes_deleted,
        )
