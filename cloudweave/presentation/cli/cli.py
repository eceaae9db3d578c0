"""
CLI Module

Architectural Intent:
- Command-line interface for cloudweave
- Entry point for all user interactions
- Delegates to application use cases via composition root
- Supports --verbose/--debug/--json-logs flags for log control
"""

import argparse
import asyncio
import dataclasses
import json
import logging
import sys
import traceback
from dataclasses import replace
from typing import Optional, Sequence

from cloudweave.infrastructure.config import CloudweaveConfig, load_config
from cloudweave.infrastructure.logging import configure_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="cloudweave: asynchronous provisioning orchestrator"
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Enable verbose output"
    )
    parser.add_argument(
        "--debug", action="store_true", help="Enable debug output with tracebacks"
    )
    parser.add_argument(
        "--json-logs", action="store_true", help="Emit structured JSON log lines"
    )
    parser.add_argument(
        "--config", "-c", default=None, help="Path to JSON config file"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    sim_parser = subparsers.add_parser(
        "simulate", help="Create and destroy nodes against the in-memory cloud"
    )
    sim_parser.add_argument(
        "--count", "-n", type=int, default=3, help="Number of nodes to create concurrently"
    )
    sim_parser.add_argument("--group", "-g", default="demo", help="Node group name")
    sim_parser.add_argument("--zone", "-z", default="zone-a", help="Zone to provision in")
    sim_parser.add_argument(
        "--ports", "-p", default="22", help="Comma-separated inbound ports"
    )
    sim_parser.add_argument(
        "--job-latency", type=float, default=None, help="Seconds each simulated job stays pending"
    )
    sim_parser.add_argument(
        "--fail-operation", default=None, help="Backend operation to fail once (e.g. create_firewall_rule)"
    )
    sim_parser.add_argument(
        "--fail-mode",
        choices=("job", "raise", "hang"),
        default="job",
        help="How the injected failure shows up",
    )
    sim_parser.add_argument(
        "--keep", action="store_true", help="Do not destroy the nodes afterwards"
    )

    subparsers.add_parser("show-config", help="Print the resolved configuration")
    return parser


def resolve_log_level(name: str) -> int:
    level = logging.getLevelName(name.upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level {name!r}")
    return level


def _parse_ports(value: str) -> tuple[int, ...]:
    return tuple(int(p) for p in value.split(",") if p.strip())


async def run_simulation(args: argparse.Namespace, config: CloudweaveConfig) -> int:
    from cloudweave.composition_root import create_container
    from cloudweave.infrastructure.adapters.simulated_cloud_adapter import SimulatedCloudAdapter

    if args.job_latency is not None:
        config = replace(config, backend=replace(config.backend, job_latency=args.job_latency))

    backend = SimulatedCloudAdapter(
        job_latency=config.backend.job_latency,
        password_enabled=config.backend.password_enabled,
    )
    if args.fail_operation:
        backend.inject_failure(args.fail_operation, mode=args.fail_mode)
        if args.fail_mode == "hang":
            config = replace(config, waiter=replace(config.waiter, default_timeout=1.0))

    ports = _parse_ports(args.ports)
    container = create_container(config, backend)
    await container.start()
    try:
        return await _simulate(args, container, backend, ports)
    finally:
        await container.close()


async def _simulate(args, container, backend, ports) -> int:
    from cloudweave.application.dtos.node_dtos import NodeSpec
    from cloudweave.domain.errors import CloudweaveError
    from cloudweave.domain.services.naming import unique_name_for_group

    config = container.config
    specs = [
        NodeSpec(
            name=unique_name_for_group(args.group, config.backend.naming_prefix),
            group=args.group,
            zone=args.zone,
            image_id="img-default",
            hardware_id="small",
            inbound_ports=ports,
            generate_key_pair=True,
            tags={"managed-by": "cloudweave"},
        )
        for _ in range(args.count)
    ]

    print(f"[*] Creating {len(specs)} nodes in {args.zone}...")
    results = await asyncio.gather(
        *(container.nodes.create_node(spec) for spec in specs), return_exceptions=True
    )

    created = []
    failed = 0
    for spec, result in zip(specs, results):
        if isinstance(result, CloudweaveError):
            failed += 1
            print(f"[-] {spec.name}: {result}")
        elif isinstance(result, BaseException):
            raise result
        else:
            created.append(result)
            ips = ", ".join(result.public_ips) or "no public address"
            print(f"[+] {spec.name} -> {result.id} ({ips})")

    if not args.keep:
        for record in created:
            await container.nodes.destroy_node(record.id)
            print(f"[*] Destroyed {record.id}")

    stats = container.queue.stats(args.zone)
    print(f"[*] Peak concurrency in {args.zone}: {stats.peak_running}/{stats.limit}")
    print(f"[*] Remaining resources: {backend.resource_counts()}")
    return 1 if failed else 0


async def async_main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = load_config(args.config)
        level = resolve_log_level(config.log_level)
    except ValueError as e:
        print(f"[-] Invalid configuration: {e}")
        return 2

    # Flags win over the configured level
    if args.debug:
        level = logging.DEBUG
    elif args.verbose:
        level = logging.INFO
    configure_logging(level=level, json_format=args.json_logs)

    verbose = args.verbose or args.debug

    if args.command == "show-config":
        print(json.dumps(dataclasses.asdict(config), indent=2))
        return 0

    if args.command == "simulate":
        try:
            return await run_simulation(args, config)
        except ValueError as e:
            print(f"[-] Invalid arguments: {e}")
            return 2
        except Exception as e:
            print(f"[-] Simulation Failed: {e}")
            if verbose:
                traceback.print_exc()
            return 1

    parser.print_help()
    return 0


def main():
    sys.exit(asyncio.run(async_main()))


if __name__ == "__main__":
    main()
