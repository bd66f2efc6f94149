"""
Visualization functions for the PRV Digital Twin.

This module handles the Plotly side of the dashboard:
- The 24-hour hydraulic history chart with per-series visibility
- The valve -> main -> critical point schematic
- The actuator position gauge

Key responsibilities:
- Converting simulation data into Plotly figures
- Mapping flow to pipe color and width
- Highlighting alarm conditions

Figures are built from plain simulation objects and never touch the
running simulation, so they can be tested without a Dash server.
"""

from typing import Dict, Optional, Sequence, Tuple

import plotly.graph_objects as go
from plotly.subplots import make_subplots

from .config import (
    SERIES_COLORS, SERIES_LABELS, ALARM_COLOR, TELEMETRY_HOURS,
    CHART_HEIGHT, DIAGRAM_HEIGHT, GAUGE_HEIGHT, TARGET_SLIDER_MAX
)
from .simulation import SimulationDataPoint, history_to_dataframe

PRESSURE_SERIES = ['inlet_pressure', 'outlet_pressure', 'critical_point_pressure']

DEFAULT_VISIBILITY = {
    'inlet_pressure': True,
    'flow': True,
    'outlet_pressure': True,
    'critical_point_pressure': True,
}

# Flow range used to scale the pipe in the schematic (L/s)
SCHEMATIC_MAX_FLOW = 40.0


def get_flow_color_and_width(flow: float, max_flow: float = SCHEMATIC_MAX_FLOW) -> Tuple[str, float]:
    """
    Generate color and width for the main based on flow.

    Args:
        flow (float): Current flow (L/s)
        max_flow (float): Flow mapped to full intensity

    Returns:
        Tuple[str, float]: (RGB color string, line width)

    Color mapping:
        - Grey = no/low flow
        - Deep blue = maximum flow
    """
    if max_flow <= 0:
        return 'rgb(128, 128, 128)', 4

    intensity = max(0.0, min(1.0, flow / max_flow))

    width = 4 + 14 * intensity

    start_r, start_g, start_b = 140, 140, 140
    end_r, end_g, end_b = 30, 64, 175

    r = int(start_r + (end_r - start_r) * intensity)
    g = int(start_g + (end_g - start_g) * intensity)
    b = int(start_b + (end_b - start_b) * intensity)

    return f'rgb({r}, {g}, {b})', width


def create_hydraulic_graph(history: Sequence[SimulationDataPoint],
                           visibility: Optional[Dict[str, bool]] = None) -> go.Figure:
    """
    Create the 24-hour history chart.

    Pressures share the left axis; flow has its own axis on the right.
    Hours at which the remote unit reports (TELEMETRY_HOURS) are marked on
    the outlet pressure line.

    Args:
        history (Sequence[SimulationDataPoint]): Rolling history, oldest first
        visibility (Optional[Dict[str, bool]]): Series name -> shown

    Returns:
        go.Figure: The chart
    """
    visibility = {**DEFAULT_VISIBILITY, **(visibility or {})}
    fig = make_subplots(specs=[[{"secondary_y": True}]])

    df = history_to_dataframe(history)

    if df.empty:
        fig.add_annotation(
            text="No telemetry yet",
            xref="paper", yref="paper",
            x=0.5, y=0.5, showarrow=False,
            font=dict(size=14, color="gray")
        )
    else:
        for series in PRESSURE_SERIES:
            if not visibility.get(series):
                continue
            fig.add_trace(go.Scatter(
                x=df['timestamp'],
                y=df[series],
                mode='lines',
                name=SERIES_LABELS[series],
                line=dict(
                    color=SERIES_COLORS[series],
                    width=2 if series == 'inlet_pressure' else 3,
                    dash='dash' if series == 'inlet_pressure' else 'solid'
                ),
                hovertemplate='%{y:.1f} m<extra></extra>'
            ), secondary_y=False)

        if visibility.get('flow'):
            fig.add_trace(go.Scatter(
                x=df['timestamp'],
                y=df['flow'],
                mode='lines',
                name=SERIES_LABELS['flow'],
                line=dict(color=SERIES_COLORS['flow'], width=3),
                hovertemplate='%{y:.1f} L/s<extra></extra>'
            ), secondary_y=True)

        if visibility.get('outlet_pressure'):
            reports = df[df['hour'].isin(TELEMETRY_HOURS)]
            if not reports.empty:
                fig.add_trace(go.Scatter(
                    x=reports['timestamp'],
                    y=reports['outlet_pressure'],
                    mode='markers',
                    name='GPRS Report',
                    marker=dict(size=9, symbol='diamond', color=SERIES_COLORS['outlet_pressure'],
                                line=dict(width=1, color='white')),
                    hovertemplate='Report %{x}<extra></extra>'
                ), secondary_y=False)

    fig.update_xaxes(title_text="Time (hours)", type='category', showgrid=False)
    fig.update_yaxes(title_text="Pressure (m)", gridcolor='#1e293b', secondary_y=False)
    fig.update_yaxes(title_text="Flow (L/s)", showgrid=False, secondary_y=True)
    fig.update_layout(
        height=CHART_HEIGHT,
        template="plotly_dark",
        hovermode='x unified',
        plot_bgcolor='rgba(0,0,0,0)',
        paper_bgcolor='rgba(0,0,0,0)',
        legend=dict(orientation='h', y=1.12, x=1, xanchor='right', font=dict(size=10)),
        margin=dict(l=50, r=50, t=40, b=40),
        uirevision='history'
    )
    return fig


def create_network_diagram(point: SimulationDataPoint, alarm: bool = False) -> go.Figure:
    """
    Create the valve -> main -> critical point schematic.

    The main is drawn with a color and width that follow the flow; the valve
    turns red while the alarm is active.

    Args:
        point (SimulationDataPoint): Current data point
        alarm (bool): Whether the setpoint is currently unreachable

    Returns:
        go.Figure: The schematic
    """
    pipe_color, pipe_width = get_flow_color_and_width(point.flow)
    valve_color = ALARM_COLOR if alarm else SERIES_COLORS['outlet_pressure']

    fig = go.Figure()

    # Main between valve and critical point
    fig.add_trace(go.Scatter(
        x=[0.1, 0.9], y=[0.5, 0.5],
        mode='lines',
        line=dict(color=pipe_color, width=pipe_width),
        hovertemplate=f"Flow: {point.flow:.1f} L/s<br>Head loss: {point.head_loss:.1f} m<extra></extra>",
        showlegend=False
    ))

    fig.add_trace(go.Scatter(
        x=[0.1], y=[0.5],
        mode='markers+text',
        marker=dict(size=46, symbol='square', color=valve_color, line=dict(width=2, color='white')),
        text=["PRV"], textfont=dict(color='white', size=12),
        textposition='middle center',
        hovertemplate=f"Inlet: {point.inlet_pressure:.1f} m<br>Outlet: {point.outlet_pressure:.1f} m<extra></extra>",
        showlegend=False
    ))

    fig.add_trace(go.Scatter(
        x=[0.9], y=[0.5],
        mode='markers+text',
        marker=dict(size=46, symbol='circle', color='#334155',
                    line=dict(width=2, color=SERIES_COLORS['critical_point_pressure'])),
        text=["CP"], textfont=dict(color='white', size=12),
        textposition='middle center',
        hovertemplate=f"Critical point: {point.critical_point_pressure:.1f} m<extra></extra>",
        showlegend=False
    ))

    annotations = [
        (0.1, 0.15, f"Outlet {point.outlet_pressure:.1f} m", SERIES_COLORS['outlet_pressure']),
        (0.5, 0.75, f"{point.flow:.1f} L/s", SERIES_COLORS['flow']),
        (0.5, 0.25, f"Hf {point.head_loss:.1f} m", '#94a3b8'),
        (0.9, 0.15, f"CP {point.critical_point_pressure:.1f} m", SERIES_COLORS['critical_point_pressure']),
    ]
    for x, y, text, color in annotations:
        fig.add_annotation(x=x, y=y, text=text, showarrow=False,
                           font=dict(size=13, color=color, family="monospace"))

    fig.update_layout(
        height=DIAGRAM_HEIGHT,
        template="plotly_dark",
        xaxis=dict(range=[0, 1], showgrid=False, showticklabels=False, zeroline=False),
        yaxis=dict(range=[0, 1], showgrid=False, showticklabels=False, zeroline=False),
        plot_bgcolor='rgba(0,0,0,0)',
        paper_bgcolor='rgba(0,0,0,0)',
        margin=dict(l=10, r=10, t=10, b=10)
    )
    return fig


def create_actuator_gauge(effective_target: float, target: float, alarm: bool = False) -> go.Figure:
    """Gauge of the actuator position, with the requested target as the threshold mark."""
    fig = go.Figure(go.Indicator(
        mode="gauge+number+delta",
        value=effective_target,
        number=dict(suffix=" m", valueformat=".1f"),
        delta=dict(reference=target, valueformat=".1f"),
        title=dict(text="Actuator Position", font=dict(size=14)),
        gauge=dict(
            axis=dict(range=[0, TARGET_SLIDER_MAX]),
            bar=dict(color=ALARM_COLOR if alarm else SERIES_COLORS['outlet_pressure']),
            bgcolor='#0f172a',
            threshold=dict(line=dict(color='white', width=3), thickness=0.8, value=target)
        )
    ))
    fig.update_layout(
        height=GAUGE_HEIGHT,
        template="plotly_dark",
        paper_bgcolor='rgba(0,0,0,0)',
        margin=dict(l=20, r=20, t=40, b=10)
    )
    return fig
