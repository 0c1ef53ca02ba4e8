#!/usr/bin/env python3
"""
Demo script showing how to use the retirement planner modules programmatically.
This demonstrates the core functionality without the Streamlit UI.
"""

from projection import PlanningInputs, FinancialSnapshot, apply_financial_snapshot, project
from validation import validate, coerce_raw_inputs
from advice import AdvisoryClient, StubAdviceProvider, build_advice_prompt, create_offline_advice
from io_utils import create_inputs_download_json, format_currency, projection_to_dataframe


def main():
    print("🧮 Retirement Planner Demo")
    print("=" * 50)

    # 1. Planning inputs
    print("\n📋 Setting up planning inputs...")
    inputs = PlanningInputs(
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
    print(f"   Age {inputs.current_age} -> {inputs.retirement_age}, "
          f"savings {format_currency(inputs.current_savings)}, "
          f"contributing {format_currency(inputs.monthly_contribution)}/month")

    # 2. Validation
    print("\n✅ Validating...")
    validation = validate(inputs)
    print(f"   Valid: {validation.is_valid}")

    bad = coerce_raw_inputs({'current_age': '85', 'retirement_age': 'sixty'})
    for field, message in validate(bad).errors.items():
        print(f"   Example error - {field}: {message}")

    # 3. Projection
    print("\n📈 Running projection...")
    result = project(inputs)
    gap_label = "Surplus" if result.is_on_track else "Shortfall"
    print(f"   Years to retirement: {result.years_to_retirement}")
    print(f"   Projected savings:   {format_currency(result.total_retirement_savings)}")
    print(f"   Required savings:    {format_currency(result.required_savings)}")
    print(f"   {gap_label}:{' ' * (20 - len(gap_label))}{format_currency(abs(result.surplus))}")
    print(f"   Monthly income:      {format_currency(result.monthly_income_at_retirement)}")

    print("\n📅 Year-by-year (first and last rows):")
    df = projection_to_dataframe(result)
    print(df.iloc[[0, -1]].to_string(index=False))

    # 4. Actual financial data
    print("\n💳 Applying actual financial data...")
    snapshot = FinancialSnapshot(has_real_data=True)
    real_inputs = apply_financial_snapshot(inputs, snapshot)
    real_result = project(real_inputs)
    print(f"   Retirement expenses from spending history: {format_currency(real_inputs.retirement_expenses)}/month")
    print(f"   Required savings with actual data: {format_currency(real_result.required_savings)}")

    # 5. Advice without a network call
    print("\n🤖 Offline advice:")
    client = AdvisoryClient(StubAdviceProvider(create_offline_advice(real_inputs, real_result)))
    advice = client.request_advice(build_advice_prompt(real_inputs, snapshot, real_result)).result()
    for line in advice.display_text.splitlines():
        print(f"   {line}")
    client.shutdown()

    # 6. Export
    print("\n💾 Exporting inputs...")
    json_inputs = create_inputs_download_json(real_inputs)
    print(f"   Inputs exported to JSON ({len(json_inputs)} characters)")

    print("\n✨ Demo complete! Run 'streamlit run app.py' for the full interface.")


if __name__ == "__main__":
    main()
