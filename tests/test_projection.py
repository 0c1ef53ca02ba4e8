"""
Unit tests for the deterministic retirement projection.
"""
import math
import pytest
import sys
import os
from dataclasses import replace

# Add the parent directory to the path so we can import our modules
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from projection import (
    PlanningInputs, FinancialSnapshot, RetirementProjector,
    apply_financial_snapshot, project, round_currency
)
from validation import validate


EXAMPLE_INPUTS = PlanningInputs(
    current_age=50,
    retirement_age=62,
    current_savings=1_000_000,
    monthly_contribution=3_000,
    expected_return=6,
    inflation_rate=3,
    retirement_expenses=10_000,
    social_security=4_000,
    safe_withdrawal_rate=4
)


def expected_headline(inputs: PlanningInputs):
    """Recompute the headline figures straight from the formulas"""
    years = inputs.retirement_age - inputs.current_age
    months = years * 12
    monthly_rate = inputs.expected_return / 100 / 12
    fv_savings = inputs.current_savings * (1 + inputs.expected_return / 100) ** years
    if monthly_rate == 0:
        fv_contrib = inputs.monthly_contribution * months
    else:
        fv_contrib = inputs.monthly_contribution * ((1 + monthly_rate) ** months - 1) / monthly_rate
    inflation = (1 + inputs.inflation_rate / 100) ** years
    net_need = inputs.retirement_expenses * inflation - inputs.social_security * inflation
    required = net_need * 12 / (inputs.safe_withdrawal_rate / 100)
    return fv_savings, fv_contrib, fv_savings + fv_contrib, required


class TestExampleScenario:
    """The 50-to-62 worked example"""

    def test_example_validates(self):
        assert validate(EXAMPLE_INPUTS).is_valid

    def test_example_headline_figures(self):
        result = project(EXAMPLE_INPUTS)
        fv_savings, fv_contrib, total, required = expected_headline(EXAMPLE_INPUTS)

        assert result.years_to_retirement == 12
        assert result.future_value_current_savings == round_currency(fv_savings)
        assert result.future_value_contributions == round_currency(fv_contrib)
        assert result.total_retirement_savings == round_currency(total)
        assert result.required_savings == round_currency(required)

        # Sanity check against hand-computed magnitudes
        assert 2_640_000 < result.total_retirement_savings < 2_646_000
        assert 2_566_000 < result.required_savings < 2_567_000
        assert result.is_on_track

    def test_example_projection_length(self):
        result = project(EXAMPLE_INPUTS)
        assert len(result.projection_data) == 13
        assert result.projection_data[0].age == 50
        assert result.projection_data[-1].age == 62

    def test_example_summary_figures(self):
        result = project(EXAMPLE_INPUTS)
        _, _, total, _ = expected_headline(EXAMPLE_INPUTS)
        assert result.total_contributions == 3_000 * 12 * 12
        assert result.monthly_income_at_retirement == round_currency(total * 0.04 / 12)
        assert result.inflation_adjusted_expenses == round_currency(10_000 * 1.03 ** 12)
        assert result.inflation_adjusted_social_security == round_currency(4_000 * 1.03 ** 12)
        assert result.total_returns == round_currency(total - 1_000_000 - 432_000)


class TestProjectionProperties:
    """Invariants that hold for every valid input"""

    SCENARIOS = [
        EXAMPLE_INPUTS,
        PlanningInputs(current_age=18, retirement_age=19, current_savings=0, monthly_contribution=0),
        PlanningInputs(current_age=25, retirement_age=67, current_savings=5_000, monthly_contribution=500,
                       expected_return=7.5, inflation_rate=2.5, retirement_expenses=4_000,
                       social_security=1_800, safe_withdrawal_rate=3.5),
        PlanningInputs(current_age=80, retirement_age=95, expected_return=20, inflation_rate=10,
                       safe_withdrawal_rate=10),
        PlanningInputs(expected_return=0, inflation_rate=0, safe_withdrawal_rate=1),
    ]

    @pytest.mark.parametrize("inputs", SCENARIOS)
    def test_deterministic(self, inputs):
        assert project(inputs) == project(inputs)

    @pytest.mark.parametrize("inputs", SCENARIOS)
    def test_projection_rows(self, inputs):
        result = project(inputs)
        rows = result.projection_data
        assert len(rows) == result.years_to_retirement + 1
        assert rows[0].balance == round_currency(inputs.current_savings)
        assert rows[0].contributions == 0
        assert [row.year for row in rows] == list(range(len(rows)))
        for previous, current in zip(rows, rows[1:]):
            assert current.age == previous.age + 1

    @pytest.mark.parametrize("inputs", SCENARIOS)
    def test_surplus_and_on_track_consistent(self, inputs):
        result = project(inputs)
        assert result.surplus == result.total_retirement_savings - result.required_savings
        assert result.is_on_track == (result.surplus >= 0)

    @pytest.mark.parametrize("inputs", SCENARIOS)
    def test_monetary_outputs_are_whole_numbers(self, inputs):
        result = project(inputs)
        for value in (result.total_retirement_savings, result.required_savings, result.surplus,
                      result.monthly_income_at_retirement, result.total_returns):
            assert isinstance(value, int)
        for row in result.projection_data:
            assert isinstance(row.balance, int)
            assert isinstance(row.returns, int)

    def test_input_not_mutated(self):
        inputs = replace(EXAMPLE_INPUTS)
        project(inputs)
        assert inputs == EXAMPLE_INPUTS


class TestZeroReturn:
    """Zero expected return must not divide by zero"""

    def test_annuity_is_plain_sum(self):
        inputs = replace(EXAMPLE_INPUTS, expected_return=0)
        result = project(inputs)
        total_months = 12 * 12
        assert result.future_value_contributions == 3_000 * total_months
        assert result.future_value_current_savings == 1_000_000
        assert result.total_retirement_savings == 1_000_000 + 3_000 * total_months
        assert not math.isnan(result.total_retirement_savings)

    def test_yearly_balance_grows_by_contributions_only(self):
        result = project(replace(EXAMPLE_INPUTS, expected_return=0))
        for row in result.projection_data:
            assert row.balance == 1_000_000 + 36_000 * row.year
            assert row.returns == 0


class TestYearByYear:
    """Annual-compounding path used for charting"""

    def test_annual_recurrence(self):
        inputs = PlanningInputs(current_age=40, retirement_age=43, current_savings=100_000,
                                monthly_contribution=1_000, expected_return=10)
        rows = project(inputs).projection_data
        # 100,000 -> 122,000 -> 146,200 -> 172,820
        assert [row.balance for row in rows] == [100_000, 122_000, 146_200, 172_820]
        assert [row.contributions for row in rows] == [0, 12_000, 24_000, 36_000]
        assert [row.returns for row in rows] == [0, 10_000, 22_200, 36_820]

    def test_yearly_path_differs_from_monthly_total(self):
        """The annual approximation is kept distinct from the headline total"""
        result = project(EXAMPLE_INPUTS)
        assert result.projection_data[-1].balance != result.total_retirement_savings

    def test_projector_class_matches_function(self):
        assert RetirementProjector(EXAMPLE_INPUTS).run_projection() == project(EXAMPLE_INPUTS)


class TestRequiredSavings:
    """Sufficiency check against the withdrawal rate"""

    def test_social_security_exceeding_expenses(self):
        inputs = replace(EXAMPLE_INPUTS, retirement_expenses=3_000, social_security=4_000)
        result = project(inputs)
        assert result.required_savings < 0
        assert result.net_monthly_need < 0
        assert result.is_on_track

    def test_shortfall(self):
        inputs = replace(EXAMPLE_INPUTS, current_savings=0, monthly_contribution=100)
        result = project(inputs)
        assert result.surplus < 0
        assert not result.is_on_track


class TestRounding:
    """Half-up rounding of monetary results"""

    @pytest.mark.parametrize("value,expected", [
        (0.5, 1), (1.5, 2), (2.5, 3), (2.4999, 2), (-0.5, 0), (-1.5, -1), (-1.51, -2),
    ])
    def test_round_currency(self, value, expected):
        assert round_currency(value) == expected


class TestFinancialSnapshot:
    """Actual financial data substitution"""

    def test_snapshot_without_real_data_is_ignored(self):
        assert apply_financial_snapshot(EXAMPLE_INPUTS, FinancialSnapshot()) is EXAMPLE_INPUTS

    def test_snapshot_replaces_savings_and_expenses(self):
        snapshot = FinancialSnapshot(net_worth=1_250_000, spending_this_year=60_000,
                                     spending_last_year=48_000, has_real_data=True)
        inputs = apply_financial_snapshot(EXAMPLE_INPUTS, snapshot)
        assert inputs.current_savings == 1_250_000
        assert inputs.retirement_expenses == 4_500  # (60,000 + 48,000) / 2 / 12
        assert inputs.current_age == EXAMPLE_INPUTS.current_age
        assert EXAMPLE_INPUTS.current_savings == 1_000_000

    def test_default_snapshot_average_spending(self):
        snapshot = FinancialSnapshot(has_real_data=True)
        inputs = apply_financial_snapshot(EXAMPLE_INPUTS, snapshot)
        # (89,000.30 + 12,990.88) / 2 / 12 = 4,249.63
        assert inputs.retirement_expenses == 4_250


class TestExtremeInputs:
    """Valid but extreme inputs must project without raising"""

    def test_huge_expenses_overflow_to_shortfall(self):
        inputs = replace(EXAMPLE_INPUTS, retirement_expenses=1e308)
        assert validate(inputs).is_valid

        result = project(inputs)
        assert math.isinf(result.required_savings)
        assert math.isinf(result.inflation_adjusted_expenses)
        assert not result.is_on_track

    @pytest.mark.parametrize("overrides", [
        dict(current_savings=1e308),
        dict(monthly_contribution=1e308),
        dict(current_savings=1e308, monthly_contribution=1e308),
        dict(retirement_expenses=1e308, social_security=1e308),
    ])
    def test_overflowing_fields_do_not_raise(self, overrides):
        inputs = replace(EXAMPLE_INPUTS, **overrides)
        assert validate(inputs).is_valid
        result = project(inputs)
        assert len(result.projection_data) == 13

    @pytest.mark.parametrize("value", [float('inf'), float('-inf')])
    def test_round_currency_passes_infinity_through(self, value):
        assert round_currency(value) == value

    def test_round_currency_passes_nan_through(self):
        assert math.isnan(round_currency(float('nan')))


class TestOnTrackBoundary:
    """On-track status follows the rounded figures, not the raw difference"""

    def test_sub_dollar_shortfall_counts_as_on_track(self):
        # Raw total 1,000,000.5 vs raw requirement about 1,000,000.8:
        # both round to 1,000,001, so the plan reports a zero surplus
        inputs = PlanningInputs(
            current_savings=1_000_000.5, monthly_contribution=0, expected_return=0,
            inflation_rate=0, retirement_expenses=3_333.336, social_security=0,
            safe_withdrawal_rate=4
        )
        raw_total = inputs.current_savings
        raw_required = inputs.retirement_expenses * 12 / 0.04
        assert raw_total < raw_required

        result = project(inputs)
        assert result.total_retirement_savings == 1_000_001
        assert result.required_savings == 1_000_001
        assert result.surplus == 0
        assert result.is_on_track
