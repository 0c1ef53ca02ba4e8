"""
IO utilities for saving/loading planning inputs and exporting projections.
Handles JSON serialization of inputs, CSV export of the year-by-year table
and currency formatting for display.
"""
import json
import math
import pandas as pd
from typing import Dict, Any, Optional
from dataclasses import asdict, fields
from datetime import datetime

from projection import PlanningInputs, ProjectionResult, FinancialSnapshot, round_currency


PROJECTION_COLUMNS = ['age', 'year', 'balance', 'contributions', 'returns']

REQUIRED_INPUT_FIELDS = [f.name for f in fields(PlanningInputs)]


def inputs_to_dict(inputs: PlanningInputs) -> Dict[str, Any]:
    """
    Convert PlanningInputs to dictionary for JSON serialization.

    Args:
        inputs: PlanningInputs object

    Returns:
        Dictionary representation
    """
    return asdict(inputs)


def dict_to_inputs(input_dict: Dict[str, Any]) -> PlanningInputs:
    """
    Convert dictionary to PlanningInputs object.

    Keys that are not planning fields (UI preferences, export metadata) are
    ignored.

    Args:
        input_dict: Dictionary with input values

    Returns:
        PlanningInputs object
    """
    filtered_dict = {key: value for key, value in input_dict.items() if key in REQUIRED_INPUT_FIELDS}

    for age_field in ('current_age', 'retirement_age'):
        if age_field in filtered_dict:
            filtered_dict[age_field] = int(filtered_dict[age_field])

    return PlanningInputs(**filtered_dict)


def create_inputs_download_json(inputs: PlanningInputs) -> str:
    """Create JSON string for downloading planning inputs"""
    return json.dumps(inputs_to_dict(inputs), indent=2)


def validate_inputs_json(json_string: str) -> tuple[bool, str]:
    """
    Validate uploaded planning inputs JSON.

    Only checks structure and types; range checks belong to the validator.

    Args:
        json_string: JSON string to validate

    Returns:
        (is_valid, error_message)
    """
    try:
        input_dict = json.loads(json_string)

        if not isinstance(input_dict, dict):
            return False, "Expected a JSON object with planning inputs"

        for field_name in REQUIRED_INPUT_FIELDS:
            if field_name not in input_dict:
                return False, f"Missing required field: {field_name}"

            value = input_dict[field_name]
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                return False, f"Field {field_name} must be a number, got {value!r}"
            # json accepts NaN and Infinity literals
            if not math.isfinite(value):
                return False, f"Field {field_name} must be a finite number, got {value!r}"

        dict_to_inputs(input_dict)

        return True, ""

    except json.JSONDecodeError as e:
        return False, f"Invalid JSON: {str(e)}"
    except Exception as e:
        return False, f"Input validation error: {str(e)}"


def parse_inputs_upload_json(json_string: str) -> PlanningInputs:
    """Parse an uploaded JSON string into PlanningInputs"""
    is_valid, error_message = validate_inputs_json(json_string)
    if not is_valid:
        raise ValueError(error_message)
    return dict_to_inputs(json.loads(json_string))


def projection_to_dataframe(result: ProjectionResult) -> pd.DataFrame:
    """Year-by-year projection as a DataFrame, one row per year"""
    rows = [asdict(snapshot) for snapshot in result.projection_data]
    return pd.DataFrame(rows, columns=PROJECTION_COLUMNS)


def export_projection_csv(result: ProjectionResult) -> str:
    """
    Export the year-by-year projection table to CSV string.

    Args:
        result: ProjectionResult to export

    Returns:
        CSV string
    """
    df = projection_to_dataframe(result)
    return df.to_csv(index=False)


def create_summary_report(inputs: PlanningInputs,
                          result: ProjectionResult,
                          snapshot: Optional[FinancialSnapshot] = None) -> Dict[str, Any]:
    """
    Create a summary report of a projection for download.

    Args:
        inputs: Inputs the projection was computed from
        result: Projection result
        snapshot: Actual financial data, if the user supplied it

    Returns:
        Dictionary with metadata, inputs and headline results
    """
    report = {
        'metadata': {
            'generated_at': datetime.now().isoformat(),
            'years_to_retirement': result.years_to_retirement,
            'uses_real_data': bool(snapshot and snapshot.has_real_data),
        },
        'inputs': inputs_to_dict(inputs),
        'results': {
            'total_retirement_savings': result.total_retirement_savings,
            'required_savings': result.required_savings,
            'surplus': result.surplus,
            'is_on_track': result.is_on_track,
            'monthly_income_at_retirement': result.monthly_income_at_retirement,
            'inflation_adjusted_expenses': result.inflation_adjusted_expenses,
            'total_contributions': result.total_contributions,
            'total_returns': result.total_returns,
        },
    }

    if snapshot and snapshot.has_real_data:
        report['financial_snapshot'] = asdict(snapshot)

    return report


def export_summary_report_json(report: Dict[str, Any]) -> str:
    """Serialize a summary report to JSON"""
    return json.dumps(report, indent=2, default=str)


def format_currency(value: float) -> str:
    """
    Format a dollar amount with thousands separators and no cents.

    Negative amounts keep their sign, e.g. -$1,235.
    """
    rounded = round_currency(value)
    sign = "-" if rounded < 0 else ""
    return f"{sign}${abs(rounded):,}"


def format_compact_currency(value: float, precision: int = 1) -> str:
    """Short form for chart labels, e.g. $2.4M or $850K"""
    if abs(value) >= 1_000_000:
        return f"${value/1_000_000:.{precision}f}M"
    elif abs(value) >= 1_000:
        return f"${value/1_000:.0f}K"
    return f"${value:.0f}"


def format_number(value: float) -> str:
    """Thousands-separated number with up to three decimals, trailing zeros dropped"""
    if float(value).is_integer():
        return f"{int(value):,}"
    return f"{value:,.3f}".rstrip('0').rstrip('.')
