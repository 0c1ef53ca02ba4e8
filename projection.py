"""
Deterministic retirement projection for the accumulation phase.
Turns planning inputs into a year-by-year wealth path and sufficiency metrics.
"""
import math
import numpy as np
from typing import List, Tuple
from dataclasses import dataclass, replace


@dataclass(frozen=True)
class PlanningInputs:
    """Planning parameters entered by the user (percentages as whole numbers)"""
    current_age: int = 50
    retirement_age: int = 62
    current_savings: float = 1_000_000
    monthly_contribution: float = 3_000
    expected_return: float = 6.0      # annual nominal %, e.g. 6 means 6%
    inflation_rate: float = 3.0       # annual %
    retirement_expenses: float = 10_000  # monthly, today's dollars
    social_security: float = 4_000       # monthly, today's dollars
    safe_withdrawal_rate: float = 4.0    # annual %


@dataclass(frozen=True)
class FinancialSnapshot:
    """Actual financial data that can stand in for the typed-in estimates"""
    net_worth: float = 1_000_000
    net_worth_growth: float = 6_000  # change over the last six months
    spending_this_year: float = 89_000.30
    spending_last_year: float = 12_990.88
    reporting_year: int = 2024
    has_real_data: bool = False


@dataclass(frozen=True)
class YearSnapshot:
    """One row of the year-by-year projection"""
    age: int
    year: int
    balance: int
    contributions: int
    returns: int


@dataclass(frozen=True)
class ProjectionResult:
    """Results from a retirement projection"""
    years_to_retirement: int
    total_retirement_savings: int
    required_savings: int
    surplus: int
    is_on_track: bool
    monthly_income_at_retirement: int
    inflation_adjusted_expenses: int
    total_contributions: int
    total_returns: int
    projection_data: Tuple[YearSnapshot, ...]

    # Formula terms behind the headline figures
    future_value_current_savings: int = 0
    future_value_contributions: int = 0
    inflation_adjusted_social_security: int = 0
    net_monthly_need: int = 0


def round_currency(value: float) -> int:
    """
    Round to the nearest whole dollar, halves rounding up.

    Infinite and NaN values are returned unchanged; huge but finite inputs
    can overflow to them during compounding.
    """
    if not math.isfinite(value):
        return value
    return int(math.floor(value + 0.5))


def apply_financial_snapshot(inputs: PlanningInputs,
                             snapshot: FinancialSnapshot) -> PlanningInputs:
    """
    Substitute actual net worth and average spending into the planning inputs.

    Args:
        inputs: Inputs as entered by the user
        snapshot: Actual financial data

    Returns:
        New PlanningInputs; the original is returned unchanged when the
        snapshot holds no real data
    """
    if not snapshot.has_real_data:
        return inputs

    average_monthly_spending = (snapshot.spending_this_year + snapshot.spending_last_year) / 2 / 12
    return replace(
        inputs,
        current_savings=snapshot.net_worth,
        retirement_expenses=round_currency(average_monthly_spending)
    )


class RetirementProjector:
    """Deterministic accumulation-phase projection with a withdrawal-rate check"""

    def __init__(self, inputs: PlanningInputs):
        self.inputs = inputs

    @property
    def years_to_retirement(self) -> int:
        return int(self.inputs.retirement_age - self.inputs.current_age)

    def _future_value_current_savings(self) -> float:
        """Lump sum compounded annually at the nominal rate"""
        annual_rate = self.inputs.expected_return / 100
        return self.inputs.current_savings * (1 + annual_rate) ** self.years_to_retirement

    def _future_value_contributions(self) -> float:
        """Monthly contributions valued as an ordinary annuity, compounded monthly"""
        monthly_rate = self.inputs.expected_return / 100 / 12
        total_months = self.years_to_retirement * 12

        if monthly_rate == 0:
            return self.inputs.monthly_contribution * total_months

        return self.inputs.monthly_contribution * ((1 + monthly_rate) ** total_months - 1) / monthly_rate

    def _inflate(self, monthly_amount: float) -> float:
        """Express today's dollars in retirement-age dollars"""
        return monthly_amount * (1 + self.inputs.inflation_rate / 100) ** self.years_to_retirement

    def _build_wealth_path(self) -> np.ndarray:
        """
        Year-by-year balances using annual compounding.

        Year 0 is the current balance with no growth applied. This path is an
        annual approximation and does not match the monthly-compounded total.
        """
        years = self.years_to_retirement
        annual_rate = self.inputs.expected_return / 100
        yearly_contributions = self.inputs.monthly_contribution * 12

        wealth_path = np.zeros(years + 1)
        wealth_path[0] = self.inputs.current_savings

        with np.errstate(over='ignore', invalid='ignore'):
            for year in range(1, years + 1):
                previous = wealth_path[year - 1]
                wealth_path[year] = previous + previous * annual_rate + yearly_contributions

        return wealth_path

    def _build_projection_data(self, wealth_path: np.ndarray) -> List[YearSnapshot]:
        yearly_contributions = self.inputs.monthly_contribution * 12
        rows = []
        for year, balance in enumerate(wealth_path):
            balance = float(balance)
            cumulative_contributions = yearly_contributions * year
            rows.append(YearSnapshot(
                age=int(self.inputs.current_age + year),
                year=year,
                balance=round_currency(balance),
                contributions=round_currency(cumulative_contributions),
                # Can dip negative in early years because of the annual approximation
                returns=round_currency(balance - self.inputs.current_savings - cumulative_contributions)
            ))
        return rows

    def run_projection(self) -> ProjectionResult:
        """Run the projection; inputs must already have passed validation"""
        inputs = self.inputs
        years = self.years_to_retirement
        withdrawal_rate = inputs.safe_withdrawal_rate / 100

        fv_savings = self._future_value_current_savings()
        fv_contributions = self._future_value_contributions()
        total_retirement_savings = fv_savings + fv_contributions

        inflation_adjusted_expenses = self._inflate(inputs.retirement_expenses)
        inflation_adjusted_ss = self._inflate(inputs.social_security)

        # Negative when social security alone covers expenses
        net_monthly_need = inflation_adjusted_expenses - inflation_adjusted_ss
        required_savings = (net_monthly_need * 12) / withdrawal_rate

        total_contributions = inputs.monthly_contribution * 12 * years

        # Surplus is derived from the rounded headline figures so the
        # reported numbers always reconcile exactly
        rounded_total = round_currency(total_retirement_savings)
        rounded_required = round_currency(required_savings)
        surplus = rounded_total - rounded_required

        return ProjectionResult(
            years_to_retirement=years,
            total_retirement_savings=rounded_total,
            required_savings=rounded_required,
            surplus=surplus,
            is_on_track=surplus >= 0,
            monthly_income_at_retirement=round_currency(total_retirement_savings * withdrawal_rate / 12),
            inflation_adjusted_expenses=round_currency(inflation_adjusted_expenses),
            total_contributions=round_currency(total_contributions),
            total_returns=round_currency(total_retirement_savings - inputs.current_savings - total_contributions),
            projection_data=tuple(self._build_projection_data(self._build_wealth_path())),
            future_value_current_savings=round_currency(fv_savings),
            future_value_contributions=round_currency(fv_contributions),
            inflation_adjusted_social_security=round_currency(inflation_adjusted_ss),
            net_monthly_need=round_currency(net_monthly_need)
        )


def project(inputs: PlanningInputs) -> ProjectionResult:
    """
    Project savings to retirement and check them against the withdrawal need.

    Args:
        inputs: Validated planning inputs

    Returns:
        ProjectionResult with headline metrics and one row per year
    """
    return RetirementProjector(inputs).run_projection()
