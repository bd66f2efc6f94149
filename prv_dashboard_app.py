"""
PRV Digital Twin - Dash Application

This is the main Dash application file that runs the pressure-reducing
valve dashboard. It brings together the simulation, visualization and UI
modules into one page.

Key responsibilities:
- Setting up the Dash app configuration and layout
- Driving the simulation from a dcc.Interval (1 s real = 1 simulated hour)
- Forwarding operator controls to the simulation setters
- Refreshing charts, schematic and stat cards after every tick
- Running the diagnostic assistant without blocking the tick

Architecture overview:
1. App setup and configuration
2. Live objects (simulation, diagnostic service) in global_state
3. Layout: header, control column, telemetry column
4. Callbacks: tick, play/pause, operator controls, target slider sync,
   display refresh, diagnostics, CSV export
"""

import logging

import dash
from dash import dcc, html, Input, Output, State, ctx, no_update
import dash_bootstrap_components as dbc

from prvsim.config import SIM_SPEED_MS, DIAGNOSTIC_POLL_MS, HOST, PORT, DEBUG, LOG_LEVEL
from prvsim.simulation import PRVSimulation, history_to_dataframe
from prvsim.diagnostics import DiagnosticService, DiagnosticSnapshot, DiagnosticStatus
from prvsim.visualization import create_hydraulic_graph, create_network_diagram, create_actuator_gauge
from prvsim.dash_ui_components import (
    create_header, create_control_panel, create_control_mode_help, create_schedule_status,
    create_actuator_status, create_alarm_display, create_inlet_panel, create_stat_cards,
    create_flow_pipe, create_series_toggles, create_diagnostic_panel,
    create_diagnostic_display, describe_config
)

logger = logging.getLogger(__name__)

# Live objects shared by the callbacks (not JSON-serializable, so no dcc.Store)
global_state = {
    'sim': PRVSimulation(),
    'diagnostics': DiagnosticService()
}

# Component id -> simulation setter
CONTROL_SETTERS = {
    'control-mode-radio': 'set_control_mode',
    'schedule-switch': 'set_schedule_enabled',
    'target-slider': 'set_target_value',
    'manual-inlet-switch': 'set_manual_inlet_enabled',
    'manual-inlet-slider': 'set_manual_inlet_value',
    'friction-input': 'set_friction_coefficient',
}

# Initialize Dash app with Bootstrap theme
app = dash.Dash(__name__, external_stylesheets=[dbc.themes.DARKLY], suppress_callback_exceptions=True)
app.title = "PRV Digital Twin"


def create_stores():
    """Create the dcc.Store and dcc.Interval components."""
    return [
        # Bumped on every tick and every config change; display refresh listens to it
        dcc.Store(id='sim-tick', data=0),
        dcc.Store(id='config-version', data=0),

        # Tick source
        dcc.Interval(id='sim-interval', interval=SIM_SPEED_MS, n_intervals=0, disabled=False),

        # Diagnostic polling, only enabled while a request is in flight
        dcc.Interval(id='diagnostic-poll', interval=DIAGNOSTIC_POLL_MS, n_intervals=0, disabled=True),

        dcc.Download(id='history-download'),
    ]


def create_layout():
    """Create the main application layout."""
    return dbc.Container([
        html.Div(create_stores()),

        html.Div(id="header-area"),

        # Status messages area
        html.Div(id="status-messages-area"),

        dbc.Row([
            # Control column
            dbc.Col([
                create_control_panel(global_state['sim'].config.target_value),
                create_inlet_panel(),
                create_diagnostic_panel(),
            ], lg=4),

            # Telemetry column
            dbc.Col([
                dbc.Card([
                    dbc.CardHeader(html.H5("🛠️ Network Schematic", className="mb-0")),
                    dbc.CardBody([
                        dbc.Row([
                            dbc.Col(dcc.Graph(id="network-diagram", config={"displayModeBar": False}), md=8),
                            dbc.Col(dcc.Graph(id="actuator-gauge", config={"displayModeBar": False}), md=4),
                        ]),
                        html.Div(id="flow-pipe")
                    ])
                ], className="mb-4"),

                html.Div(id="stat-cards"),

                dbc.Card([
                    dbc.CardHeader(dbc.Row([
                        dbc.Col([
                            html.H5("📈 GPRS Telemetry", className="mb-0"),
                            html.Small("History of the last 24 hours of operation", className="text-muted")
                        ], width=6),
                        dbc.Col([
                            dbc.ButtonGroup([
                                dbc.Button("▶️ Play", id="play-btn", color="success", size="sm", disabled=True),
                                dbc.Button("⏸️ Pause", id="pause-btn", color="warning", size="sm"),
                                dbc.Button("💾 Export CSV", id="export-btn", color="secondary", size="sm"),
                            ])
                        ], width=6, className="text-end")
                    ])),
                    dbc.CardBody([
                        create_series_toggles(),
                        dcc.Graph(id="hydraulic-graph")
                    ])
                ])
            ], lg=8)
        ]),

        # Footer
        html.Hr(),
        html.Footer([
            html.P(id="config-summary", className="text-center text-muted small mb-1"),
            html.P("PRV Digital Twin | Built with Dash & Plotly", className="text-center text-muted small")
        ]),
    ], fluid=True, className="px-4 py-3")


app.layout = create_layout()


def apply_operator_control(sim: PRVSimulation, control_id: str, value) -> None:
    """
    Forward one control change to the matching simulation setter.

    Raises:
        KeyError: Unknown control id
        ValueError: Value rejected by the simulation (e.g. negative friction)
    """
    if value is None:
        raise ValueError(f"No value for {control_id}")
    getattr(sim, CONTROL_SETTERS[control_id])(value)


# Tick callback
@app.callback(
    Output('sim-tick', 'data'),
    Input('sim-interval', 'n_intervals'),
    State('sim-tick', 'data'),
    prevent_initial_call=True
)
def handle_simulation_tick(n_intervals, tick_count):
    """Advance the simulation one hour per interval."""
    global_state['sim'].step()
    return (tick_count or 0) + 1


# Play / Pause toggle callback
@app.callback(
    [Output('sim-interval', 'disabled'),
     Output('play-btn', 'disabled'),
     Output('pause-btn', 'disabled')],
    [Input('play-btn', 'n_clicks'),
     Input('pause-btn', 'n_clicks')],
    State('sim-interval', 'disabled'),
    prevent_initial_call=True
)
def control_auto_stepping(play_clicks, pause_clicks, interval_disabled):
    ctx_id = ctx.triggered_id if hasattr(ctx, 'triggered_id') else None
    if ctx_id == 'play-btn':
        return False, True, False  # interval enabled, play disabled, pause enabled
    elif ctx_id == 'pause-btn':
        return True, False, True   # interval disabled, play enabled, pause disabled
    return interval_disabled, no_update, no_update


# Operator controls callback
@app.callback(
    [Output('config-version', 'data'),
     Output('status-messages-area', 'children')],
    [Input(control_id, 'value') for control_id in CONTROL_SETTERS],
    State('config-version', 'data'),
    prevent_initial_call=True
)
def handle_operator_controls(mode, schedule_on, target, manual_on, manual_value, friction, version):
    """Apply whichever control changed to the simulation."""
    control_id = ctx.triggered_id
    values = dict(zip(CONTROL_SETTERS, [mode, schedule_on, target, manual_on, manual_value, friction]))
    if control_id not in values:
        return no_update, no_update

    try:
        apply_operator_control(global_state['sim'], control_id, values[control_id])
    except ValueError as e:
        logger.warning("Rejected %s=%r: %s", control_id, values[control_id], e)
        return no_update, dbc.Alert(f"❌ Invalid value: {e}", color="danger", dismissable=True, duration=4000)

    return (version or 0) + 1, None


# Enable/disable dependent controls
@app.callback(
    [Output('target-slider-div', 'style'),
     Output('schedule-status', 'style'),
     Output('manual-inlet-slider', 'disabled'),
     Output('control-mode-help', 'children')],
    [Input('schedule-switch', 'value'),
     Input('manual-inlet-switch', 'value'),
     Input('control-mode-radio', 'value')]
)
def toggle_dependent_controls(schedule_on, manual_on, mode):
    """Manual target only without schedule; inlet slider only when forced."""
    slider_style = {"display": "none"} if schedule_on else {"display": "block"}
    status_style = {"display": "block"} if schedule_on else {"display": "none"}
    return slider_style, status_style, not manual_on, create_control_mode_help(mode)


# Manual target slider follows the setpoint the schedule left behind
@app.callback(
    Output('target-slider', 'value'),
    Input('schedule-switch', 'value'),
    prevent_initial_call=True
)
def sync_target_slider(schedule_on):
    """Show the setpoint in use when the operator takes over from the schedule."""
    if schedule_on:
        return no_update
    return global_state['sim'].config.target_value


# Display refresh callback
@app.callback(
    [Output('header-area', 'children'),
     Output('schedule-status', 'children'),
     Output('actuator-status', 'children'),
     Output('alarm-area', 'children'),
     Output('stat-cards', 'children'),
     Output('network-diagram', 'figure'),
     Output('actuator-gauge', 'figure'),
     Output('flow-pipe', 'children'),
     Output('hydraulic-graph', 'figure'),
     Output('config-summary', 'children')],
    [Input('sim-tick', 'data'),
     Input('config-version', 'data'),
     Input('series-visibility', 'value')]
)
def update_dashboard(tick_count, config_version, visible_series):
    """Redraw every display from the current simulation snapshot."""
    snapshot = global_state['sim'].snapshot()
    state, config = snapshot.state, snapshot.config
    point = state.history[-1]
    alarm = snapshot.alarm
    moving = snapshot.moving

    visibility = {name: name in (visible_series or []) for name in
                  ('inlet_pressure', 'flow', 'outlet_pressure', 'critical_point_pressure')}

    return (
        create_header(point, alarm, moving),
        create_schedule_status(state.current_hour, config.target_value),
        create_actuator_status(state.effective_target, config.target_value, moving, alarm),
        create_alarm_display(point, alarm),
        create_stat_cards(point, alarm),
        create_network_diagram(point, alarm),
        create_actuator_gauge(state.effective_target, config.target_value, alarm),
        create_flow_pipe(point.flow),
        create_hydraulic_graph(state.history, visibility),
        describe_config(config),
    )


# Diagnostic request / cancel callback
@app.callback(
    [Output('diagnostic-poll', 'disabled'),
     Output('diagnostic-output', 'children'),
     Output('diagnostic-btn', 'disabled', allow_duplicate=True),
     Output('diagnostic-cancel-btn', 'disabled', allow_duplicate=True)],
    [Input('diagnostic-btn', 'n_clicks'),
     Input('diagnostic-cancel-btn', 'n_clicks')],
    prevent_initial_call=True
)
def handle_diagnostic_request(run_clicks, cancel_clicks):
    """
    Fire the diagnostic in the background and start polling for its result.

    Returns poll-disabled, display, run-disabled and cancel-disabled. Cancel
    stops polling, so it re-enables the run button itself.
    """
    service = global_state['diagnostics']
    if ctx.triggered_id == 'diagnostic-cancel-btn':
        service.cancel()
        status, text = service.cell.get()
        return True, create_diagnostic_display(status, text), False, True

    snapshot = global_state['sim'].snapshot()
    diagnostic = DiagnosticSnapshot.from_simulation(snapshot.state.history[-1], snapshot.config)
    service.request(diagnostic)
    status, text = service.cell.get()
    return False, create_diagnostic_display(status, text), True, False


# Diagnostic polling callback
@app.callback(
    [Output('diagnostic-output', 'children', allow_duplicate=True),
     Output('diagnostic-poll', 'disabled', allow_duplicate=True),
     Output('diagnostic-btn', 'disabled'),
     Output('diagnostic-cancel-btn', 'disabled')],
    Input('diagnostic-poll', 'n_intervals'),
    prevent_initial_call=True
)
def poll_diagnostic(n_intervals):
    """Show the latest diagnostic; stop polling once it is no longer loading."""
    status, text = global_state['diagnostics'].cell.get()
    loading = status == DiagnosticStatus.LOADING
    return create_diagnostic_display(status, text), not loading, loading, not loading


# CSV export callback
@app.callback(
    Output('history-download', 'data'),
    Input('export-btn', 'n_clicks'),
    prevent_initial_call=True
)
def export_history(n_clicks):
    """Download the current 24-hour history as CSV."""
    df = history_to_dataframe(global_state['sim'].history)
    return dcc.send_data_frame(df.to_csv, "prv_history.csv", index=False)


if __name__ == '__main__':
    logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    print("🚀 Starting PRV Digital Twin")
    print(f"⏱️ 1 simulated hour every {SIM_SPEED_MS} ms")
    print(f"🌐 Open your browser to: http://localhost:{PORT}")
    app.run(debug=DEBUG, host=HOST, port=PORT)
