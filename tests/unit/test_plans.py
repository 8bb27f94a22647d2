"""Unit tests for background job plans."""

import pytest

from tracker.models.job import BackgroundJobType
from tracker.workers.plans import PLANS, RECOMPUTE_ANALYTICS, JobContext, get_plan


@pytest.mark.unit
class TestPlans:

    def test_every_job_type_has_a_plan(self):
        for job_type in BackgroundJobType:
            assert get_plan(job_type) is PLANS[job_type]
        assert get_plan("recompute_analytics") is RECOMPUTE_ANALYTICS

    def test_unknown_job_type(self):
        with pytest.raises(LookupError):
            get_plan("defragment_everything")

    def test_plans_have_three_steps(self):
        """Three steps keep progress on the 0, 25, 50, 75, 100 ladder."""
        for plan in PLANS.values():
            assert len(plan.steps) == 3
            assert len({step.result_key for step in plan.steps}) == 3

    def test_int_option(self):
        ctx = JobContext(job_id="bg_job_x", organization_id=1, options={"retention_days": 7})

        assert ctx.int_option("retention_days", 30) == 7
        assert ctx.int_option("older_than_days", 90) == 90

    @pytest.mark.parametrize("value", [0, -3, "7", 2.5, True, None])
    def test_int_option_rejects_bad_values(self, value):
        ctx = JobContext(job_id="bg_job_x", organization_id=1, options={"retention_days": value})

        with pytest.raises(ValueError):
            ctx.int_option("retention_days", 30)
