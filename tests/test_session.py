"""
Tests for the planner session: raw form values in, validation and
projection out, with advice requests kept apart from the numeric state.
"""
import threading

import pytest
import sys
import os
from unittest.mock import patch

import requests

# Add the parent directory to the path so we can import our modules
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from projection import FinancialSnapshot, PlanningInputs, project
from session import PlannerSession, ADVICE_PLACEHOLDER
from advice import APIError


OFFLINE_SETTINGS = {'provider': 'offline', 'base_url': '', 'model': '', 'api_key': '', 'timeout': 5}


@pytest.fixture
def planner():
    session = PlannerSession(advisor_settings=dict(OFFLINE_SETTINGS))
    yield session
    if session._client is not None:
        session._client.shutdown()


class TestPlannerInputs:
    """Test raw input handling"""

    def test_defaults_project(self, planner):
        assert planner.validation.is_valid
        assert planner.compute_projection() == project(PlanningInputs())

    def test_update_field_coerces_and_validates(self, planner):
        validation = planner.update_field('current_age', '85')
        assert planner.inputs.current_age == 85
        assert 'current_age' in validation.errors

    def test_invalid_inputs_block_projection(self, planner):
        planner.update_field('current_age', '85')
        assert planner.compute_projection() is None

    def test_retirement_ordering_error(self, planner):
        planner.update_field('current_age', '50')
        planner.update_field('retirement_age', '40')
        assert planner.errors['retirement_age'] == 'Retirement age must be greater than current age'
        assert planner.compute_projection() is None

    def test_garbage_text_becomes_zero(self, planner):
        planner.update_field('monthly_contribution', 'not a number')
        assert planner.inputs.monthly_contribution == 0
        assert planner.validation.is_valid

    def test_unknown_field_rejected(self, planner):
        with pytest.raises(KeyError):
            planner.update_field('favorite_color', 'blue')

    def test_reset_inputs(self, planner):
        planner.update_field('current_age', '30')
        planner.reset_inputs()
        assert planner.inputs == PlanningInputs()

    def test_snapshot_changes_effective_inputs_only(self, planner):
        planner.snapshot = FinancialSnapshot(net_worth=2_000_000, has_real_data=True)
        assert planner.inputs.current_savings == 1_000_000
        assert planner.effective_inputs.current_savings == 2_000_000
        assert planner.compute_projection().projection_data[0].balance == 2_000_000


class TestPlannerAdvice:
    """Test advice requests through the session"""

    def test_placeholder_before_any_request(self, planner):
        assert planner.display_advice == ADVICE_PLACEHOLDER
        assert not planner.is_loading_advice

    def test_offline_advice_round_trip(self, planner):
        planner.request_advice()
        result = planner.resolve_advice(timeout=5)

        assert result.success
        assert "on track" in planner.advice_text
        assert planner.advice_error_type is None
        assert planner.pending_advice is None

    def test_disabled_advice_reports_error(self, planner):
        planner.update_field('current_age', '85')  # no projection, so no offline text
        planner.request_advice()
        result = planner.resolve_advice(timeout=5)

        assert not result.success
        assert planner.advice_error_type == APIError.UNAVAILABLE
        assert planner.compute_projection() is None

    @patch('advice.requests.post', side_effect=requests.ConnectionError('Connection refused'))
    def test_advice_failure_leaves_projection_intact(self, mock_post, planner):
        planner.advisor_settings = {'provider': 'ollama', 'base_url': 'http://localhost:11434', 'model': 'llama2',
                                    'timeout': 1}
        before = planner.compute_projection()

        planner.request_advice()
        result = planner.resolve_advice(timeout=10)

        assert not result.success
        assert planner.compute_projection() == before

    def test_changed_settings_apply_after_cancel(self, planner):
        release = threading.Event()

        def slow_post(*args, **kwargs):
            release.wait(timeout=5)
            raise requests.ConnectionError('Connection refused')

        with patch('advice.requests.post', side_effect=slow_post):
            planner.advisor_settings = {'provider': 'ollama', 'base_url': 'http://localhost:11434',
                                        'model': 'llama2', 'timeout': 1}
            planner.request_advice()
            planner.cancel_advice()

            planner.advisor_settings = dict(OFFLINE_SETTINGS)
            planner.request_advice()
            release.set()
            result = planner.resolve_advice(timeout=10)

        assert result.success
        assert "on track" in planner.advice_text

    def test_resolve_without_request(self, planner):
        assert planner.resolve_advice() is None

    def test_cancel_advice(self, planner):
        planner.request_advice()
        planner.cancel_advice()
        assert planner.pending_advice is None
        assert not planner.is_loading_advice
