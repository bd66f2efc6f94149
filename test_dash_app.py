"""
Tests for the PRV Digital Twin Dash application.

Checks that the app and layout build, that the operator controls reach the
simulation setters, and that the callbacks return the expected outputs when
driven with a Dash callback context.
"""

import threading
from contextvars import copy_context
from types import SimpleNamespace

import pytest


def _run_callback(prop_id, callback, *args):
    """Call a Dash callback as if prop_id had triggered it."""
    from dash._callback_context import context_value
    from dash._utils import AttributeDict

    def run():
        context_value.set(AttributeDict(triggered_inputs=[{"prop_id": prop_id, "value": None}]))
        return callback(*args)

    return copy_context().run(run)


class GatedCompletions:
    """openai-shaped completions endpoint that blocks until released."""

    def __init__(self, content):
        self.content = content
        self.gate = threading.Event()

    def create(self, model, messages):
        self.gate.wait(timeout=5)
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


@pytest.fixture()
def live_sim(monkeypatch):
    import prv_dashboard_app
    from prvsim.simulation import PRVSimulation

    sim = PRVSimulation(seed=0)
    monkeypatch.setitem(prv_dashboard_app.global_state, 'sim', sim)
    return sim


@pytest.fixture()
def gated_diagnostics(monkeypatch):
    import prv_dashboard_app
    from prvsim.diagnostics import DiagnosticService

    completions = GatedCompletions("Pressures look nominal.")
    client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    service = DiagnosticService(client_factory=lambda: client, model="test-model")
    monkeypatch.setitem(prv_dashboard_app.global_state, 'diagnostics', service)
    yield service, completions.gate
    completions.gate.set()
    service.shutdown()


def _collect_ids(component, ids):
    component_id = getattr(component, 'id', None)
    if component_id is not None:
        ids.add(component_id)
    children = getattr(component, 'children', None)
    if children is None:
        return ids
    if not isinstance(children, (list, tuple)):
        children = [children]
    for child in children:
        if hasattr(child, 'to_plotly_json'):
            _collect_ids(child, ids)
    return ids


def test_import():
    """Test that all required modules can be imported."""
    import dash
    from dash import dcc, html, Input, Output, State
    import dash_bootstrap_components as dbc

    from prvsim.config import SIM_SPEED_MS
    from prvsim.simulation import PRVSimulation
    from prvsim.visualization import create_hydraulic_graph
    from prvsim.dash_ui_components import create_stat_cards
    assert SIM_SPEED_MS == 1000


def test_dash_app():
    """Test that the Dash app can be created."""
    from prv_dashboard_app import app
    assert app.title == "PRV Digital Twin"


def test_layout_contains_controls():
    from prv_dashboard_app import app, CONTROL_SETTERS

    ids = _collect_ids(app.layout, set())
    for control_id in CONTROL_SETTERS:
        assert control_id in ids
    for display_id in ('sim-interval', 'hydraulic-graph', 'network-diagram', 'actuator-gauge',
                       'stat-cards', 'diagnostic-btn', 'series-visibility', 'history-download'):
        assert display_id in ids


def test_apply_operator_control():
    from prv_dashboard_app import apply_operator_control
    from prvsim.physics import ControlMode
    from prvsim.simulation import PRVSimulation

    sim = PRVSimulation(seed=0)
    apply_operator_control(sim, 'control-mode-radio', 'FIXED_OUTLET')
    apply_operator_control(sim, 'schedule-switch', False)
    apply_operator_control(sim, 'target-slider', 30)
    apply_operator_control(sim, 'manual-inlet-switch', True)
    apply_operator_control(sim, 'manual-inlet-slider', 70)
    apply_operator_control(sim, 'friction-input', 0.05)

    config = sim.config
    assert config.control_mode == ControlMode.FIXED_OUTLET
    assert not config.schedule_enabled
    assert config.target_value == 30.0
    assert config.manual_inlet_enabled
    assert config.manual_inlet_value == 70.0
    assert config.friction_coefficient == 0.05


def test_apply_operator_control_rejects_bad_values():
    from prv_dashboard_app import apply_operator_control
    from prvsim.simulation import PRVSimulation

    sim = PRVSimulation(seed=0)
    with pytest.raises(ValueError):
        apply_operator_control(sim, 'friction-input', None)
    with pytest.raises(ValueError):
        apply_operator_control(sim, 'friction-input', -0.2)
    with pytest.raises(KeyError):
        apply_operator_control(sim, 'unknown-control', 1)


def test_toggle_dependent_controls():
    from prv_dashboard_app import toggle_dependent_controls

    slider_style, status_style, inlet_disabled, help_text = toggle_dependent_controls(True, False, 'CRITICAL_POINT')
    assert slider_style == {"display": "none"}
    assert status_style == {"display": "block"}
    assert inlet_disabled
    assert "far end" in help_text

    slider_style, status_style, inlet_disabled, _ = toggle_dependent_controls(False, True, 'FIXED_OUTLET')
    assert slider_style == {"display": "block"}
    assert status_style == {"display": "none"}
    assert not inlet_disabled


def test_update_dashboard_renders_snapshot():
    from prv_dashboard_app import update_dashboard
    from prvsim.config import SERIES_LABELS

    outputs = update_dashboard(0, 0, ['flow'])
    assert len(outputs) == 10

    history_figure = outputs[8]
    names = [trace.name for trace in history_figure.data]
    assert names == [SERIES_LABELS['flow']]


def test_layout_slider_starts_at_live_target():
    from prv_dashboard_app import app, global_state

    def find(component, component_id):
        if getattr(component, 'id', None) == component_id:
            return component
        children = getattr(component, 'children', None)
        if children is None:
            return None
        if not isinstance(children, (list, tuple)):
            children = [children]
        for child in children:
            if hasattr(child, 'to_plotly_json'):
                found = find(child, component_id)
                if found is not None:
                    return found
        return None

    slider = find(app.layout, 'target-slider')
    assert slider.value == global_state['sim'].config.target_value


# =============================================================================
# CALLBACKS
# =============================================================================

def test_play_pause_toggle():
    from prv_dashboard_app import control_auto_stepping

    assert _run_callback('play-btn.n_clicks', control_auto_stepping, 1, None, True) == (False, True, False)
    assert _run_callback('pause-btn.n_clicks', control_auto_stepping, 1, 1, False) == (True, False, True)


def test_simulation_tick_advances_clock(live_sim):
    from prv_dashboard_app import handle_simulation_tick

    hour_before = live_sim.state.current_hour
    assert handle_simulation_tick(1, 4) == 5
    assert live_sim.state.current_hour == (hour_before + 1) % 24


def test_operator_control_applies_value(live_sim):
    from prv_dashboard_app import handle_operator_controls

    live_sim.set_schedule_enabled(False)
    version, message = _run_callback('target-slider.value', handle_operator_controls,
                                     'CRITICAL_POINT', False, 30, False, 65, 0.045, 3)
    assert version == 4
    assert message is None
    assert live_sim.config.target_value == 30.0


def test_operator_control_rejects_negative_friction(live_sim):
    import dash_bootstrap_components as dbc
    from dash import no_update
    from prv_dashboard_app import handle_operator_controls

    version, message = _run_callback('friction-input.value', handle_operator_controls,
                                     'CRITICAL_POINT', True, 20, False, 65, -0.2, 3)
    assert version is no_update
    assert isinstance(message, dbc.Alert)
    assert message.color == "danger"
    assert live_sim.config.friction_coefficient == 0.045


def test_target_slider_follows_schedule_handover(live_sim):
    from dash import no_update
    from prv_dashboard_app import app, sync_target_slider

    assert any('target-slider.value' in key for key in app.callback_map)

    live_sim.step()
    scheduled = live_sim.config.target_value
    live_sim.set_schedule_enabled(False)
    assert sync_target_slider(False) == scheduled
    assert sync_target_slider(True) is no_update


def test_diagnostic_request_poll_cancel(live_sim, gated_diagnostics):
    from prv_dashboard_app import handle_diagnostic_request, poll_diagnostic
    from prvsim.diagnostics import DiagnosticStatus

    service, _ = gated_diagnostics

    poll_disabled, _, run_disabled, cancel_disabled = _run_callback(
        'diagnostic-btn.n_clicks', handle_diagnostic_request, 1, None)
    assert not poll_disabled
    assert run_disabled
    assert not cancel_disabled
    assert service.cell.status == DiagnosticStatus.LOADING

    _, poll_disabled, run_disabled, cancel_disabled = poll_diagnostic(1)
    assert not poll_disabled
    assert run_disabled
    assert not cancel_disabled

    poll_disabled, _, run_disabled, cancel_disabled = _run_callback(
        'diagnostic-cancel-btn.n_clicks', handle_diagnostic_request, 1, 1)
    assert poll_disabled
    assert not run_disabled
    assert cancel_disabled
    assert service.cell.status == DiagnosticStatus.IDLE


def test_diagnostic_poll_finishes_on_result(live_sim, gated_diagnostics):
    from prv_dashboard_app import handle_diagnostic_request, poll_diagnostic

    service, gate = gated_diagnostics
    _run_callback('diagnostic-btn.n_clicks', handle_diagnostic_request, 1, None)
    gate.set()
    service.wait(timeout=5)

    display, poll_disabled, run_disabled, cancel_disabled = poll_diagnostic(2)
    assert poll_disabled
    assert not run_disabled
    assert cancel_disabled
    assert display[0].children == "Pressures look nominal."


def test_diagnostic_callbacks_share_button_outputs():
    from prv_dashboard_app import app

    writers = [key for key in app.callback_map if 'diagnostic-btn.disabled' in key]
    assert len(writers) == 2


def test_export_history_csv(live_sim):
    from prv_dashboard_app import export_history

    download = export_history(1)
    assert download['filename'] == "prv_history.csv"
    lines = download['content'].strip().splitlines()
    assert lines[0].startswith("hour,flow")
    assert len(lines) == 25
