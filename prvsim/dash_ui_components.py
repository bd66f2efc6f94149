"""
Dash UI Components for the PRV Digital Twin.

This module contains the reusable Dash interface components that make up
the dashboard. It's organized as a collection of functions that create
specific UI elements like panels, cards, badges and displays.

UI Component categories:
1. Header (clock, day/night, actuator state)
2. Control panels (setpoint mode, schedule, upstream pressure)
3. Data displays (stat cards, actuator position, alarm)
4. Schematic (animated main between valve and critical point)
5. Diagnostic panel

Design principles:
- Each component is self-contained and reusable
- Components return Dash components rather than modifying global state
- Consistent styling using Bootstrap components
- Component ids are the contract with the callbacks in prv_dashboard_app.py
"""

from typing import List

from dash import dcc, html
import dash_bootstrap_components as dbc

from .config import (
    TARGET_SLIDER_MIN, TARGET_SLIDER_MAX, INLET_SLIDER_MIN, INLET_SLIDER_MAX,
    SERIES_COLORS, SERIES_LABELS, ALARM_COLOR, DEFAULT_TARGET_CP
)
from .diagnostics import DiagnosticStatus
from .physics import ControlMode, flow_animation_duration
from .schedule import is_daytime, next_schedule_change
from .simulation import SimulationDataPoint, SimulationConfig, format_timestamp


def create_header(point: SimulationDataPoint, alarm: bool, moving: bool) -> dbc.Card:
    """
    Create the header bar with the simulated clock.

    Args:
        point (SimulationDataPoint): Latest data point
        alarm (bool): Whether the setpoint is unreachable
        moving (bool): Whether the actuator is still travelling

    Returns:
        dbc.Card: Header card
    """
    daytime = is_daytime(point.hour)
    period_badge = dbc.Badge("☀️ Day" if daytime else "🌙 Night",
                             color="warning" if daytime else "info", className="me-2")
    actuator_text = "⚙️ Actuator adjusting..." if moving else "✅ Setpoint established"

    return dbc.Card(dbc.CardBody(dbc.Row([
        dbc.Col([
            html.H2([
                "🚨 " if alarm else "💧 ",
                "PRV Digital Twin"
            ], className="mb-1"),
            html.Small([
                html.Span("📡 Telemetry OK", className="text-success me-3"),
                html.Span(actuator_text, className="text-warning" if moving else "text-muted")
            ])
        ], width=8),
        dbc.Col([
            period_badge,
            html.Span(point.timestamp, className="display-6 font-monospace text-primary")
        ], width=4, className="text-end align-self-center")
    ])), color="danger" if alarm else "dark", outline=True, className="mb-4")


def create_control_panel(target_value: float = DEFAULT_TARGET_CP) -> dbc.Card:
    """Create the setpoint control card (mode, schedule, manual target)."""
    return dbc.Card([
        dbc.CardHeader(html.H5("🗓️ Setpoint Control", className="mb-0")),
        dbc.CardBody([
            dbc.Label("Setpoint Reference:", className="fw-bold"),
            dbc.RadioItems(
                options=[
                    {"label": "🎯 Critical Point", "value": ControlMode.CRITICAL_POINT.value},
                    {"label": "↔️ PRV Outlet", "value": ControlMode.FIXED_OUTLET.value}
                ],
                value=ControlMode.CRITICAL_POINT.value,
                id="control-mode-radio",
                inline=True,
                className="mb-1"
            ),
            html.Small(id="control-mode-help", className="text-muted fst-italic d-block mb-3"),

            dbc.Switch(id="schedule-switch", label="Day/Night schedule (22/10 m)", value=True,
                       className="mb-3"),

            html.Div(id="schedule-status"),

            html.Div([
                dbc.Label("Target (m):", className="fw-bold"),
                dcc.Slider(
                    id="target-slider",
                    min=TARGET_SLIDER_MIN, max=TARGET_SLIDER_MAX, step=1,
                    value=target_value,
                    marks={v: str(v) for v in range(TARGET_SLIDER_MIN, TARGET_SLIDER_MAX + 1, 10)},
                    tooltip={"placement": "bottom", "always_visible": False}
                )
            ], id="target-slider-div", style={"display": "none"}),

            html.Div(id="actuator-status", className="mt-3"),
            html.Div(id="alarm-area", className="mt-3")
        ])
    ], className="mb-4")


def create_control_mode_help(mode: ControlMode) -> str:
    if ControlMode(mode) == ControlMode.CRITICAL_POINT:
        return "* Head loss is compensated so the target holds at the far end of the network."
    return "* The valve holds the target at its own outlet, ignoring downstream losses."


def create_schedule_status(hour: int, target: float) -> dbc.Alert:
    """
    Create the schedule status display shown while the schedule drives the target.

    Args:
        hour (int): Current simulated hour
        target (float): Current target in meters

    Returns:
        dbc.Alert: Profile, current target and next change
    """
    daytime = is_daytime(hour)
    change_hour, change_value = next_schedule_change(hour)
    return dbc.Alert([
        dbc.Row([
            dbc.Col([
                html.Small("Current profile:", className="text-muted d-block"),
                html.Strong("☀️ DAY PROFILE" if daytime else "🌙 NIGHT PROFILE")
            ], width=6),
            dbc.Col([
                html.Small("Next change:", className="text-muted d-block"),
                html.Span(f"{format_timestamp(change_hour)} → {change_value:.0f} m", className="font-monospace")
            ], width=6, className="text-end")
        ]),
        html.H3(f"{target:.0f} m", className="font-monospace text-primary mt-2 mb-0")
    ], color="light", className="mb-0")


def create_actuator_status(effective_target: float, target: float, moving: bool, alarm: bool) -> html.Div:
    """Create the actuator position bar (actual position vs requested target)."""
    return html.Div([
        html.Div([
            html.Small("Actual actuator position", className="fw-bold text-muted"),
            html.Small("Adjusting..." if moving else "On setpoint",
                       className="float-end " + ("text-warning" if moving else "text-success"))
        ]),
        dbc.Progress(
            value=max(0.0, min(100.0, effective_target / TARGET_SLIDER_MAX * 100)),
            color="danger" if alarm else "primary",
            style={"height": "8px"},
            className="my-1"
        ),
        html.Small([
            html.Span(f"{effective_target:.1f} m", className="font-monospace"),
            html.Span(f"{target:.0f} m", className="font-monospace float-end")
        ])
    ])


def create_alarm_display(point: SimulationDataPoint, alarm: bool):
    """Alarm banner while the target exceeds what the inlet can deliver."""
    if not alarm:
        return None
    return dbc.Alert(
        f"⚠️ ALARM: setpoint unreachable. Inlet pressure ({point.inlet_pressure:.1f} m) is insufficient.",
        color="danger", className="mb-0 fw-bold"
    )


def create_inlet_panel() -> dbc.Card:
    """Create the upstream pressure card (simulated vs forced inlet, friction)."""
    return dbc.Card([
        dbc.CardHeader(html.H5("⚡ Upstream Pressure", className="mb-0")),
        dbc.CardBody([
            dbc.Switch(id="manual-inlet-switch", label="Force manual inlet", value=False,
                       className="mb-2"),
            dbc.Label("Manual inlet (m):", className="fw-bold"),
            dcc.Slider(
                id="manual-inlet-slider",
                min=INLET_SLIDER_MIN, max=INLET_SLIDER_MAX, step=1,
                value=65,
                disabled=True,
                marks={v: str(v) for v in range(INLET_SLIDER_MIN, INLET_SLIDER_MAX + 1, 20)},
                tooltip={"placement": "bottom", "always_visible": False}
            ),
            html.Small("* In simulated mode the inlet rises at night with low demand and "
                       "drops during the day.", className="text-muted fst-italic d-block mb-3"),
            dbc.Label("Friction coefficient K (Hf = K·Q²):", className="fw-bold"),
            dbc.Input(id="friction-input", type="number", min=0, step=0.005, value=0.045)
        ])
    ], className="mb-4")


def create_stat_card(label: str, value: float, unit: str, color: str, alarm: bool = False) -> dbc.Card:
    return dbc.Card(dbc.CardBody([
        html.Small(label, className="text-muted text-uppercase fw-bold"),
        html.H4([
            f"{value:.1f}",
            html.Small(f" {unit}", className="text-muted")
        ], className="font-monospace mb-0", style={"color": ALARM_COLOR if alarm else color})
    ]), color="danger" if alarm else None, outline=alarm)


def create_stat_cards(point: SimulationDataPoint, alarm: bool) -> dbc.Row:
    """Create the row of four stat cards for the latest data point."""
    return dbc.Row([
        dbc.Col(create_stat_card("Inlet Pressure", point.inlet_pressure, "m",
                                 SERIES_COLORS['inlet_pressure'], alarm), md=3),
        dbc.Col(create_stat_card("PRV Outlet", point.outlet_pressure, "m",
                                 SERIES_COLORS['outlet_pressure']), md=3),
        dbc.Col(create_stat_card("Network Flow", point.flow, "L/s",
                                 SERIES_COLORS['flow']), md=3),
        dbc.Col(create_stat_card("Critical Point", point.critical_point_pressure, "m",
                                 SERIES_COLORS['critical_point_pressure']), md=3),
    ], className="mb-4 g-2")


def create_flow_pipe(flow: float) -> html.Div:
    """
    Animated strip under the schematic; the dash speed follows the flow.

    The keyframes live in assets/prv.css.
    """
    duration = flow_animation_duration(flow)
    return html.Div([
        html.Div(className="prv-flow-pipe",
                 style={"animation": f"prvFlowAnimation {duration:.2f}s linear infinite"}),
        html.Small(f"🌊 {flow:.1f} L/s", className="font-monospace text-muted")
    ], className="text-center")


def create_series_toggles() -> dbc.Checklist:
    """Checklist that shows/hides each series of the history chart."""
    return dbc.Checklist(
        id="series-visibility",
        options=[{"label": SERIES_LABELS[name], "value": name} for name in SERIES_LABELS],
        value=list(SERIES_LABELS),
        inline=True,
        switch=True,
        className="small"
    )


def create_diagnostic_panel() -> dbc.Card:
    """Create the diagnostic card with request/cancel buttons and the result area."""
    return dbc.Card([
        dbc.CardHeader(html.H5("🤖 PRV Diagnostic", className="mb-0")),
        dbc.CardBody([
            dbc.ButtonGroup([
                dbc.Button("⚡ Run Diagnostic", id="diagnostic-btn", color="primary"),
                dbc.Button("✖ Cancel", id="diagnostic-cancel-btn", color="secondary", disabled=True)
            ], className="w-100 mb-3"),
            html.Div(id="diagnostic-output", className="small font-monospace fst-italic")
        ])
    ], className="mb-4")


def create_diagnostic_display(status: DiagnosticStatus, text: str) -> List:
    """Render the diagnostic cell contents."""
    if status == DiagnosticStatus.LOADING:
        return [dbc.Spinner(size="sm", color="primary"), html.Span(" Analysing...", className="ms-2")]
    if status == DiagnosticStatus.FAILURE:
        return [dbc.Alert(text, color="warning", className="mb-0")]
    return [html.P(line, className="mb-1") for line in text.splitlines() if line.strip()]


def describe_config(config: SimulationConfig) -> str:
    """One-line summary of the operator settings for status messages."""
    mode = "CP" if config.control_mode == ControlMode.CRITICAL_POINT else "Outlet"
    inlet = f"{config.manual_inlet_value:.0f} m (manual)" if config.manual_inlet_enabled else "simulated"
    schedule = "auto" if config.schedule_enabled else f"{config.target_value:.0f} m"
    return f"Mode: {mode} | Target: {schedule} | Inlet: {inlet} | K: {config.friction_coefficient:.3f}"
