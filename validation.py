"""
Input validation for retirement planning parameters.
Checks each field against its allowed range and reports every violation.
"""
import math
import re
from dataclasses import dataclass, field, fields
from typing import Any, Dict, Mapping, Optional

from projection import PlanningInputs


INTEGER_FIELDS = ('current_age', 'retirement_age')

# Matches the leading number a browser's parseFloat would accept
_NUMERIC_PREFIX = re.compile(r'^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?')


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of validating PlanningInputs; empty errors means valid"""
    errors: Dict[str, str] = field(default_factory=dict)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def error_for(self, field_name: str) -> Optional[str]:
        return self.errors.get(field_name)


def validate(inputs: PlanningInputs) -> ValidationResult:
    """
    Validate planning inputs against domain ranges.

    Every rule is checked independently so several fields can be reported at
    once. Boundaries are inclusive. Retirement expenses and social security
    have no range, but every field must be finite.

    Args:
        inputs: PlanningInputs to check

    Returns:
        ValidationResult mapping field name to message for each violation
    """
    errors = {}

    if inputs.current_age < 18 or inputs.current_age > 80:
        errors['current_age'] = 'Age must be between 18 and 80'

    if inputs.retirement_age <= inputs.current_age:
        errors['retirement_age'] = 'Retirement age must be greater than current age'

    if inputs.current_savings < 0:
        errors['current_savings'] = 'Current savings cannot be negative'

    if inputs.monthly_contribution < 0:
        errors['monthly_contribution'] = 'Monthly contribution cannot be negative'

    if inputs.expected_return < 0 or inputs.expected_return > 20:
        errors['expected_return'] = 'Expected return should be between 0% and 20%'

    if inputs.inflation_rate < 0 or inputs.inflation_rate > 10:
        errors['inflation_rate'] = 'Inflation rate should be between 0% and 10%'

    if inputs.safe_withdrawal_rate < 1 or inputs.safe_withdrawal_rate > 10:
        errors['safe_withdrawal_rate'] = 'Safe withdrawal rate should be between 1% and 10%'

    # NaN slips past every range comparison above
    for input_field in fields(PlanningInputs):
        value = getattr(inputs, input_field.name)
        if not math.isfinite(value):
            errors[input_field.name] = 'Value must be a finite number'

    return ValidationResult(errors=errors)


def parse_or_default(raw: Any, default: float = 0) -> float:
    """
    Coerce raw form input to a number, falling back to default.

    Follows parseFloat-then-zero semantics: a leading numeric prefix is used
    ("12abc" -> 12.0) and thousands separators are dropped first
    ("1,000" -> 1000.0), while empty, unparseable, NaN and infinite values
    silently become the default. A parsed zero also yields the default,
    as `parseFloat(raw) || default` does. This runs in the presentation layer, before
    validation, so garbage input shows up as a plausible zero rather than as
    a parse error.
    """
    if raw is None or isinstance(raw, bool):
        return default

    if isinstance(raw, (int, float)):
        value = float(raw)
    else:
        text = str(raw).strip().replace(',', '')
        match = _NUMERIC_PREFIX.match(text)
        if not match:
            return default
        value = float(match.group(0))

    if math.isnan(value) or math.isinf(value) or value == 0:
        return default
    return value


def coerce_raw_inputs(raw: Mapping[str, Any],
                      defaults: Optional[PlanningInputs] = None) -> PlanningInputs:
    """
    Build PlanningInputs from raw form values.

    Fields missing from raw keep their value from defaults. Ages are
    truncated to whole years.
    """
    defaults = defaults or PlanningInputs()
    values = {}

    for input_field in fields(PlanningInputs):
        name = input_field.name
        if name in raw:
            value = parse_or_default(raw[name], 0)
        else:
            value = getattr(defaults, name)

        if name in INTEGER_FIELDS:
            value = int(value)
        values[name] = value

    return PlanningInputs(**values)
