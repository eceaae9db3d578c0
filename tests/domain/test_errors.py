"""Tests for the error taxonomy."""

import pytest

from cloudweave.domain.errors import (
    BackendError,
    CloudweaveError,
    CompensationFailure,
    CreationFailureKind,
    JobFailedError,
    NodeCreationError,
    PrerequisiteFailure,
    QueueAdmissionTimeout,
    ResourceNotFoundError,
    StepFailure,
    TeardownError,
    TransientBackendError,
)


class TestHierarchy:
    @pytest.mark.parametrize(
        "error",
        [
            TransientBackendError("throttled"),
            ResourceNotFoundError("instance", "vm-1"),
            JobFailedError("job-1", "quota"),
        ],
    )
    def test_backend_errors(self, error):
        assert isinstance(error, BackendError)
        assert isinstance(error, CloudweaveError)

    def test_not_found_message(self):
        error = ResourceNotFoundError("volume", "vol-3")
        assert str(error) == "volume 'vol-3' not found"
        assert error.kind == "volume"


class TestStepFailure:
    def test_rollback_complete_without_compensation_failures(self):
        failure = StepFailure("p-1", "create_tags", 4, RuntimeError("boom"))

        assert failure.rollback_complete
        assert "rollback complete" in str(failure)

    def test_rollback_incomplete(self):
        comp = CompensationFailure("create_instance", 0, RuntimeError("stuck"))
        failure = StepFailure("p-1", "allocate_address:net-a", 1, RuntimeError("boom"), [comp])

        assert not failure.rollback_complete
        assert failure.compensation_failures == (comp,)
        assert "rollback incomplete" in str(failure)


class TestNodeCreationError:
    def test_failed_step_from_step_failure(self):
        cause = StepFailure("p-1", "create_instance", 0, RuntimeError("boom"))
        error = NodeCreationError("web-1", CreationFailureKind.ROLLED_BACK, cause)

        assert error.failed_step == "create_instance"
        assert error.rollback_complete
        assert "rolled_back" in str(error)

    def test_failed_step_for_other_causes(self):
        error = NodeCreationError(
            "web-1",
            CreationFailureKind.ROLLBACK_INCOMPLETE,
            PrerequisiteFailure("key pair", "r/k", RuntimeError("x")),
        )

        assert error.failed_step is None
        assert not error.rollback_complete


class TestOtherErrors:
    def test_teardown_error_lists_steps(self):
        error = TeardownError(
            "vm-1",
            [("release_address:ip-1", RuntimeError("a")), ("delete_volume:vol-1", RuntimeError("b"))],
        )

        assert error.failed_steps == ["release_address:ip-1", "delete_volume:vol-1"]
        assert "release_address:ip-1, delete_volume:vol-1" in str(error)

    def test_queue_admission_timeout(self):
        error = QueueAdmissionTimeout("zone-a", 0.25)
        assert error.partition == "zone-a"
        assert "0.25s" in str(error)
