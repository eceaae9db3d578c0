"""
Value Object Tests

Architectural Intent:
- Verify immutability, validation and structural equality of the value
  objects the orchestrator passes between layers
"""

from dataclasses import FrozenInstanceError

import pytest

from cloudweave.domain.errors import JobTimeoutError
from cloudweave.domain.value_objects.cloud_resources import Instance, InstanceState, Zone
from cloudweave.domain.value_objects.job import (
    JobHandle,
    JobStatus,
    JobStatusReport,
    TimedOut,
)
from cloudweave.domain.value_objects.node_record import LoginCredentials, NodeRecord
from cloudweave.domain.value_objects.resource_key import KeyPairKey, SecurityGroupKey


class TestJobHandle:
    def test_empty_id_rejected(self):
        with pytest.raises(ValueError, match="cannot be empty"):
            JobHandle("")

    def test_str_is_id(self):
        assert str(JobHandle("job-1")) == "job-1"

    def test_immutable(self):
        handle = JobHandle("job-1")
        with pytest.raises(FrozenInstanceError):
            handle.id = "job-2"


class TestJobStatusReport:
    def test_pending_is_not_terminal(self):
        assert not JobStatusReport.pending().is_terminal

    def test_succeeded_carries_result(self):
        report = JobStatusReport.succeeded("vm-1")
        assert report.status is JobStatus.SUCCEEDED
        assert report.result == "vm-1"
        assert report.is_terminal

    def test_failed_carries_cause_outside_equality(self):
        a = JobStatusReport.failed("quota", RuntimeError("x"))
        b = JobStatusReport.failed("quota")
        assert a == b
        assert isinstance(a.cause, RuntimeError)


class TestTimedOut:
    def test_as_error(self):
        error = TimedOut(JobHandle("job-9"), 1.5).as_error()

        assert isinstance(error, JobTimeoutError)
        assert error.job_id == "job-9"
        assert "1.50s" in str(error)


class TestSecurityGroupKey:
    def test_port_order_does_not_matter(self):
        a = SecurityGroupKey("zone-a", "web", ports=[80, 22])
        b = SecurityGroupKey("zone-a", "web", ports=(22, 80))

        assert a == b
        assert hash(a) == hash(b)
        assert isinstance(a.ports, frozenset)

    def test_different_ports_are_different_keys(self):
        assert SecurityGroupKey("zone-a", "web", ports=[22]) != SecurityGroupKey(
            "zone-a", "web", ports=[22, 80]
        )

    def test_invalid_port_rejected(self):
        with pytest.raises(ValueError, match="1-65535"):
            SecurityGroupKey("zone-a", "web", ports=[0])

    def test_empty_zone_rejected(self):
        with pytest.raises(ValueError, match="zone"):
            SecurityGroupKey("", "web")

    def test_str(self):
        assert str(SecurityGroupKey("zone-a", "web", ports=[80, 22])) == "zone-a/web[22,80]"


class TestKeyPairKey:
    def test_equality(self):
        assert KeyPairKey("r1", "k") == KeyPairKey("r1", "k")
        assert KeyPairKey("r1", "k") != KeyPairKey("r2", "k")

    def test_empty_name_rejected(self):
        with pytest.raises(ValueError):
            KeyPairKey("r1", "")


class TestZone:
    def test_legacy_port_forwarding(self):
        assert Zone("z", "z", control_plane_version="2.2").uses_legacy_port_forwarding
        assert not Zone("z", "z", control_plane_version="4.18").uses_legacy_port_forwarding


class TestNodeRecord:
    def test_credentials_hidden_from_repr(self):
        creds = LoginCredentials(user="root", password="hunter2", private_key="PRIVATE")
        text = repr(creds)

        assert "hunter2" not in text
        assert "PRIVATE" not in text
        assert creds.has_secret

    def test_from_instance(self):
        instance = Instance(
            id="vm-1",
            name="web-1",
            zone="zone-a",
            group="web",
            private_ip="10.0.0.5",
            state=InstanceState.RUNNING,
        )
        record = NodeRecord.from_instance(
            instance, "zone-a", LoginCredentials(), public_ips=("203.0.113.1",)
        )

        assert record.id == "vm-1"
        assert record.group == "web"
        assert record.private_ip == "10.0.0.5"
        assert record.public_ips == ("203.0.113.1",)
        assert not record.credentials.has_secret
