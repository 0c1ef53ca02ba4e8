"""
Streamlit web application for the AI-enhanced retirement planner.
Collects planning inputs, shows the projection and charts, and requests
narrative advice from the configured AI service.
"""
from dataclasses import replace

import streamlit as st

from projection import FinancialSnapshot
from session import PlannerSession
from charts import create_wealth_growth_chart, create_growth_composition_chart, create_savings_gap_chart
from io_utils import (
    create_inputs_download_json, parse_inputs_upload_json, validate_inputs_json,
    export_projection_csv, projection_to_dataframe, create_summary_report,
    export_summary_report_json, format_currency, inputs_to_dict
)
from config_utils import get_provider_presets, load_advisor_settings, save_ui_config


INPUT_FIELDS = [
    # (field, label, help)
    ('current_age', 'Current Age', 'Between 18 and 80'),
    ('retirement_age', 'Retirement Age', 'Must be greater than current age'),
    ('current_savings', 'Current Savings ($)', 'Current portfolio value'),
    ('monthly_contribution', 'Monthly Contribution ($)', 'Added every month until retirement'),
    ('expected_return', 'Expected Annual Return (%)', 'Nominal, between 0% and 20%'),
    ('inflation_rate', 'Inflation Rate (%)', 'Between 0% and 10%'),
    ('retirement_expenses', 'Monthly Retirement Expenses ($)', "In today's dollars"),
    ('social_security', 'Monthly Social Security ($)', "In today's dollars"),
    ('safe_withdrawal_rate', 'Safe Withdrawal Rate (%)', 'Between 1% and 10%'),
]


def initialize_session_state():
    """Create the planner session on first load"""
    if 'planner' not in st.session_state:
        st.session_state.planner = PlannerSession(advisor_settings=load_advisor_settings())


def get_planner() -> PlannerSession:
    return st.session_state.planner


def create_sidebar():
    """Create sidebar with actual-data and AI advisor settings"""
    planner = get_planner()

    st.sidebar.header("Actual Financial Data")
    snapshot = planner.snapshot
    use_real_data = st.sidebar.checkbox(
        "Use my actual net worth and spending",
        value=snapshot.has_real_data,
        help="Replaces current savings with net worth and retirement expenses with average monthly spending"
    )
    if use_real_data:
        net_worth = st.sidebar.number_input("Net Worth ($)", min_value=0.0, value=float(snapshot.net_worth), step=10_000.0)
        growth = st.sidebar.number_input("Net Worth Growth, last 6 months ($)", value=float(snapshot.net_worth_growth), step=1_000.0)
        reporting_year = st.sidebar.number_input("Reporting Year", min_value=1900, max_value=2100,
                                                 value=int(snapshot.reporting_year), step=1)
        spending_this_year = st.sidebar.number_input(f"{reporting_year} Spending ($)", min_value=0.0,
                                                     value=float(snapshot.spending_this_year), step=1_000.0)
        spending_last_year = st.sidebar.number_input(f"{reporting_year - 1} Spending ($)", min_value=0.0,
                                                     value=float(snapshot.spending_last_year), step=1_000.0)
        planner.snapshot = FinancialSnapshot(
            net_worth=net_worth,
            net_worth_growth=growth,
            spending_this_year=spending_this_year,
            spending_last_year=spending_last_year,
            reporting_year=int(reporting_year),
            has_real_data=True
        )
    elif snapshot.has_real_data:
        planner.snapshot = replace(snapshot, has_real_data=False)

    st.sidebar.header("🤖 AI Advisor")
    presets = get_provider_presets()
    settings = dict(planner.advisor_settings)
    provider_keys = list(presets.keys())
    current_provider = settings.get('provider', 'offline')
    provider = st.sidebar.selectbox(
        "Provider",
        options=provider_keys,
        index=provider_keys.index(current_provider) if current_provider in provider_keys else provider_keys.index('offline'),
        format_func=lambda key: presets[key]['label']
    )

    if provider != current_provider:
        # Switching providers starts from that provider's preset
        preset = presets[provider]
        settings.update(provider=provider, base_url=preset['base_url'], model=preset['model'], api_key=preset['api_key'])

    if provider in ('groq', 'ollama'):
        settings['base_url'] = st.sidebar.text_input("Endpoint URL", value=settings.get('base_url', ''))
    if provider != 'offline':
        settings['model'] = st.sidebar.text_input("Model", value=settings.get('model', ''))
    if provider in ('groq', 'gemini'):
        settings['api_key'] = st.sidebar.text_input("API Key", value=settings.get('api_key', ''), type="password")
        st.sidebar.caption("🔒 Your plan figures are sent to this service when you request insights.")
    settings['timeout'] = st.sidebar.number_input("Request timeout (seconds)", min_value=5.0, max_value=600.0,
                                                  value=float(settings.get('timeout', 60.0)), step=5.0)

    if settings != planner.advisor_settings:
        planner.advisor_settings = settings
        save_ui_config(settings)


def display_input_form():
    """Planning inputs; raw text is coerced to numbers before validation"""
    planner = get_planner()
    st.header("💵 Planning Inputs")

    if planner.snapshot.has_real_data:
        st.info(
            f"**Using actual data:** net worth {format_currency(planner.snapshot.net_worth)} replaces current "
            f"savings, and average spending replaces monthly retirement expenses."
        )

    validation = planner.validation
    col1, col2 = st.columns(2)
    for i, (name, label, help_text) in enumerate(INPUT_FIELDS):
        with (col1 if i % 2 == 0 else col2):
            raw_value = st.text_input(label, value=str(planner.raw_inputs[name]), help=help_text, key=f"input_{name}")
            if raw_value != str(planner.raw_inputs[name]):
                validation = planner.update_field(name, raw_value)
            message = validation.error_for(name)
            if message:
                st.error(message)

    if st.button("↺ Reset to defaults"):
        planner.reset_inputs()
        for name, _, _ in INPUT_FIELDS:
            st.session_state.pop(f"input_{name}", None)
        st.rerun()


def display_summary_kpis():
    """Display headline projection figures"""
    planner = get_planner()
    result = planner.compute_projection()

    st.header("📈 Retirement Projection")

    if result is None:
        st.warning("Please correct input errors to see projections.")
        return

    if result.is_on_track:
        st.success(f"**Excellent Position!** Surplus: {format_currency(abs(result.surplus))}")
    else:
        st.error(f"**Needs Optimization.** Shortfall: {format_currency(abs(result.surplus))}")

    col1, col2, col3, col4 = st.columns(4)

    with col1:
        st.metric("Projected Savings", format_currency(result.total_retirement_savings))
        st.metric("Total Contributions", format_currency(result.total_contributions))

    with col2:
        st.metric("Required Savings", format_currency(result.required_savings))
        st.metric("Investment Growth", format_currency(result.total_returns))

    with col3:
        st.metric("Monthly Income at Retirement", format_currency(result.monthly_income_at_retirement))
        st.metric("Inflation-Adjusted Expenses", format_currency(result.inflation_adjusted_expenses))

    with col4:
        st.metric("Years to Retirement", result.years_to_retirement)


def display_advice_section():
    """AI advice: one request at a time, failures shown as messages"""
    planner = get_planner()

    st.header("🧠 AI Financial Advisor")

    if st.button("Get AI Insights", type="primary", disabled=planner.is_loading_advice):
        planner.request_advice()
        with st.spinner("Analyzing..."):
            planner.resolve_advice()

    if planner.advice_error_type:
        st.error(planner.display_advice)
    else:
        st.markdown(planner.display_advice)


def display_charts():
    """Display projection charts"""
    result = get_planner().compute_projection()
    if result is None:
        return

    st.plotly_chart(create_wealth_growth_chart(result), use_container_width=True)

    col1, col2 = st.columns(2)
    with col1:
        st.plotly_chart(create_growth_composition_chart(result), use_container_width=True)
    with col2:
        st.plotly_chart(create_savings_gap_chart(result), use_container_width=True)

    st.caption(
        "The yearly path compounds annually, while the projected savings figure compounds "
        "contributions monthly, so the final year of the chart differs slightly from it."
    )


def display_year_by_year_table():
    """Display the year-by-year projection table"""
    result = get_planner().compute_projection()
    if result is None:
        st.info("Enter valid inputs to see the year-by-year projection.")
        return

    df = projection_to_dataframe(result)
    st.dataframe(
        df.style.format({col: "${:,.0f}" for col in ['balance', 'contributions', 'returns']}),
        hide_index=True,
        use_container_width=True
    )


def display_downloads():
    """Display download section"""
    planner = get_planner()
    result = planner.compute_projection()
    if result is None:
        return

    st.header("Downloads")
    col1, col2 = st.columns(2)

    with col1:
        st.download_button(
            label="Download Projection CSV",
            data=export_projection_csv(result),
            file_name="retirement_projection.csv",
            mime="text/csv"
        )

    with col2:
        report = create_summary_report(planner.effective_inputs, result, planner.snapshot)
        st.download_button(
            label="Download Summary Report JSON",
            data=export_summary_report_json(report),
            file_name="retirement_summary.json",
            mime="application/json"
        )


def save_load_section():
    """Create save/load inputs section"""
    planner = get_planner()
    st.header("Save/Load Inputs")

    col1, col2 = st.columns(2)

    with col1:
        st.subheader("Save Inputs")
        st.download_button(
            label="Download Inputs JSON",
            data=create_inputs_download_json(planner.inputs),
            file_name="retirement_inputs.json",
            mime="application/json"
        )

    with col2:
        st.subheader("Load Inputs")
        uploaded_file = st.file_uploader("Upload Inputs JSON", type=['json'])

        if uploaded_file is not None and st.button("Load Inputs", type="primary"):
            json_str = uploaded_file.read().decode('utf-8')
            is_valid, error = validate_inputs_json(json_str)

            if is_valid:
                planner.raw_inputs = inputs_to_dict(parse_inputs_upload_json(json_str))
                for name, _, _ in INPUT_FIELDS:
                    st.session_state.pop(f"input_{name}", None)
                st.success("✅ Inputs loaded")
                st.rerun()
            else:
                st.error(f"❌ {error}")


def main():
    """Main application"""
    st.set_page_config(
        page_title="AI-Enhanced Retirement Planner",
        page_icon="🧮",
        layout="wide"
    )

    st.title("🧮 AI-Enhanced Retirement Planner")
    st.markdown("Intelligent retirement planning with AI insights based on your financial data")

    initialize_session_state()
    create_sidebar()

    col_inputs, col_results = st.columns([1, 1])
    with col_inputs:
        display_input_form()
    with col_results:
        display_summary_kpis()

    tab1, tab2, tab3, tab4 = st.tabs(["AI Insights", "Charts", "Year-by-Year", "Save/Load"])

    with tab1:
        display_advice_section()

    with tab2:
        display_charts()

    with tab3:
        display_year_by_year_table()
        display_downloads()

    with tab4:
        save_load_section()

    st.markdown("---")
    st.markdown("Built with Streamlit • Educational use only, not financial advice")


if __name__ == "__main__":
    main()
