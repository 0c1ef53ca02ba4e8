"""
Plotly chart builders for retirement projection visualizations.
Creates interactive charts for wealth growth, its composition and the
savings gap at retirement.
"""
import plotly.graph_objects as go
import numpy as np

from projection import ProjectionResult
from io_utils import format_currency, format_compact_currency, projection_to_dataframe


def create_wealth_growth_chart(result: ProjectionResult,
                               title: str = "Wealth Growth Projection") -> go.Figure:
    """
    Create filled area chart of portfolio balance by age.

    Args:
        result: ProjectionResult with year-by-year data
        title: Chart title

    Returns:
        Plotly figure
    """
    df = projection_to_dataframe(result)
    balance_millions = df['balance'] / 1_000_000

    fig = go.Figure()

    fig.add_trace(go.Scatter(
        x=df['age'], y=balance_millions,
        mode='lines',
        fill='tozeroy',
        line=dict(color='#3B82F6', width=2),
        fillcolor='rgba(59,130,246,0.6)',
        name='Total Portfolio',
        customdata=np.column_stack([df['year'], df['balance']]),
        hovertemplate="<b>Age:</b> %{x}<br>" +
                      "<b>Year:</b> %{customdata[0]}<br>" +
                      "<b>Balance:</b> $%{customdata[1]:,.0f}<br>" +
                      "<extra></extra>"
    ))

    fig.update_layout(
        title=title,
        xaxis_title="Age",
        yaxis_title="Portfolio Value ($ Millions)",
        yaxis_tickformat=".1f",
        template="plotly_white",
        hovermode="x unified",
        legend=dict(x=0.02, y=0.98)
    )

    return fig


def create_growth_composition_chart(result: ProjectionResult,
                                    title: str = "Where Your Savings Come From") -> go.Figure:
    """
    Create stacked area chart splitting each year's balance into starting
    savings, cumulative contributions and cumulative growth.

    Growth can be negative in early years because the yearly path uses an
    annual approximation; the stack still sums to the balance.
    """
    df = projection_to_dataframe(result)
    starting_savings = df['balance'] - df['contributions'] - df['returns']

    components = [
        ('Starting Savings', starting_savings, 'lightblue'),
        ('Contributions', df['contributions'], 'lightgreen'),
        ('Investment Growth', df['returns'], 'lightcoral'),
    ]

    fig = go.Figure()

    for name, values, color in components:
        fig.add_trace(go.Scatter(
            x=df['age'],
            y=values / 1000,  # Convert to thousands
            mode='lines',
            stackgroup='one',
            name=name,
            line=dict(width=0.5),
            fillcolor=color,
            hovertemplate=f"<b>{name}</b><br>" +
                          "<b>Age:</b> %{x}<br>" +
                          "<b>Amount:</b> $%{y:,.0f}K<br>" +
                          "<extra></extra>"
        ))

    fig.update_layout(
        title=title,
        xaxis_title="Age",
        yaxis_title="Portfolio Value ($000s)",
        template="plotly_white",
        hovermode="x unified"
    )

    return fig


def create_savings_gap_chart(result: ProjectionResult,
                             title: str = "Projected vs Required Savings") -> go.Figure:
    """Bar chart comparing projected savings at retirement with the amount needed"""
    labels = ['Projected Savings', 'Required Savings']
    values = [result.total_retirement_savings, result.required_savings]
    projected_color = '#10b981' if result.is_on_track else '#f59e0b'

    fig = go.Figure(data=[go.Bar(
        x=labels,
        y=values,
        marker_color=[projected_color, '#6b7280'],
        text=[format_compact_currency(v) for v in values],
        textposition='outside',
        hovertemplate="<b>%{x}</b><br>$%{y:,.0f}<extra></extra>"
    )])

    gap_label = "Surplus" if result.is_on_track else "Shortfall"
    fig.update_layout(
        title=f"{title}<br><sub>{gap_label}: {format_currency(abs(result.surplus))}</sub>",
        yaxis_title="Dollars at Retirement",
        template="plotly_white",
        showlegend=False,
        height=400,
        margin=dict(t=100, b=50, l=50, r=50)
    )

    return fig
