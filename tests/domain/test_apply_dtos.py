"""Tests for the apply request DTO."""

import pytest

from apiary.application.dtos.apply_dtos import ApplyRequest
from apiary.domain.value_objects.deployment_goal import DeploymentGoal
from apiary.domain.value_objects.transfer_options import TransferOptions


class TestApplyRequest:
    def test_defaults(self):
        request = ApplyRequest()
        assert request.goal is DeploymentGoal.SWITCH
        assert request.concurrency_limit == 10
        assert request.transfer_options == TransferOptions()

    def test_zero_parallel_is_unbounded(self):
        assert ApplyRequest(parallel=0).concurrency_limit is None

    def test_negative_parallel_rejected(self):
        with pytest.raises(ValueError, match="cannot be negative"):
            ApplyRequest(parallel=-1)

    def test_goal_must_be_enum(self):
        with pytest.raises(ValueError, match="DeploymentGoal"):
            ApplyRequest(goal="switch")

    def test_transfer_options_from_flags(self):
        request = ApplyRequest(use_gzip=False, use_substitutes=False)
        assert request.transfer_options.to_copy_flags() == []
