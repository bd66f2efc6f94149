"""
Tests for the physics, schedule and actuator functions.

Noise-free values come from rng=None; noisy checks use a fixed seed and only
assert the noise bounds.
"""

import math

import numpy as np
import pytest

from prvsim.actuator import advance_actuator, is_moving
from prvsim.physics import (
    ControlMode, flow_at, dynamic_inlet, head_loss, required_outlet, flow_animation_duration
)
from prvsim.schedule import scheduled_target, is_daytime, next_schedule_change


# =============================================================================
# SCHEDULE
# =============================================================================

@pytest.mark.parametrize("hour", range(24))
def test_scheduled_target_profile(hour):
    expected = 22.0 if 6 <= hour < 23 else 10.0
    assert scheduled_target(hour) == expected


def test_scheduled_target_boundaries():
    assert scheduled_target(5) == 10.0
    assert scheduled_target(6) == 22.0
    assert scheduled_target(22) == 22.0
    assert scheduled_target(23) == 10.0
    assert scheduled_target(0) == 10.0


def test_schedule_wraps_hours():
    assert scheduled_target(24 + 7) == scheduled_target(7)
    assert is_daytime(30)


def test_next_schedule_change():
    assert next_schedule_change(12) == (23, 10.0)
    assert next_schedule_change(23) == (6, 22.0)
    assert next_schedule_change(2) == (6, 22.0)


# =============================================================================
# FLOW & INLET
# =============================================================================

def test_flow_morning_peak():
    # 5 + 3*sin(2*pi/3) + 25 + negligible evening tail
    expected = 5 + 3 * math.sin(2 * math.pi / 3) + 25
    assert flow_at(8) == pytest.approx(expected, abs=0.01)


def test_flow_noise_stays_within_bounds():
    rng = np.random.default_rng(7)
    for _ in range(5):
        for hour in range(24):
            noisy = flow_at(hour, rng)
            assert abs(noisy - flow_at(hour)) <= 0.25
            assert noisy >= 2 - 0.25


def test_flow_floor_without_noise():
    assert all(flow_at(hour) >= 2.0 for hour in range(24))


def test_dynamic_inlet_peak_and_trough():
    assert dynamic_inlet(3, 65.0) == pytest.approx(77.0)
    assert dynamic_inlet(15, 65.0) == pytest.approx(53.0)


def test_dynamic_inlet_noise_bounds():
    rng = np.random.default_rng(3)
    for hour in range(24):
        assert abs(dynamic_inlet(hour, 65.0, rng) - dynamic_inlet(hour, 65.0)) <= 1.5


# =============================================================================
# HEAD LOSS
# =============================================================================

def test_head_loss_zero_flow():
    assert head_loss(0.0, 0.045) == 0.0


@pytest.mark.parametrize("flow", [0.0, 1.0, 12.5, 40.0])
@pytest.mark.parametrize("k", [0.0, 0.01, 0.045, 0.2])
def test_head_loss_non_negative(flow, k):
    assert head_loss(flow, k) >= 0.0


def test_head_loss_increases_with_flow():
    losses = [head_loss(q, 0.045) for q in (1.0, 5.0, 10.0, 30.0)]
    assert losses == sorted(losses)
    assert head_loss(10.0, 0.045) == pytest.approx(4.5)


# =============================================================================
# REQUIRED OUTLET
# =============================================================================

def test_critical_point_mode_compensates_head_loss():
    outlet = required_outlet(ControlMode.CRITICAL_POINT, 20.0, 6.0, 65.0)
    assert outlet - 6.0 == pytest.approx(20.0)


def test_fixed_outlet_mode_ignores_head_loss():
    assert required_outlet(ControlMode.FIXED_OUTLET, 20.0, 6.0, 65.0) == pytest.approx(20.0)


def test_mode_accepts_string_value():
    assert required_outlet('FIXED_OUTLET', 20.0, 6.0, 65.0) == pytest.approx(20.0)


def test_required_outlet_takes_loss_keyword():
    loss = head_loss(20.0, 0.045)
    outlet = required_outlet(ControlMode.CRITICAL_POINT, target=20.0, loss=loss, inlet_pressure=90.0)
    assert outlet == pytest.approx(20.0 + loss)


def test_outlet_floor():
    assert required_outlet(ControlMode.FIXED_OUTLET, 1.0, 0.0, 65.0) == 5.0


def test_outlet_capped_by_inlet():
    assert required_outlet(ControlMode.CRITICAL_POINT, 40.0, 30.0, 50.0) == pytest.approx(45.0)


@pytest.mark.parametrize("inlet", [0.0, 5.0, 8.0, 9.9])
def test_conflicting_clamps_use_inlet_cap(inlet):
    outlet = required_outlet(ControlMode.CRITICAL_POINT, 20.0, 2.0, inlet)
    assert outlet == pytest.approx(inlet - 5.0)
    assert outlet < 5.0


def test_outlet_bounds_over_grid():
    for mode in ControlMode:
        for target in (0.0, 10.0, 22.0, 60.0):
            for loss in (0.0, 5.0, 40.0):
                for inlet in (12.0, 40.0, 90.0):
                    outlet = required_outlet(mode, target, loss, inlet)
                    assert outlet <= inlet - 5.0
                    assert outlet >= 5.0


def test_flow_animation_duration():
    assert flow_animation_duration(5.0) == pytest.approx(10.0)
    assert flow_animation_duration(25.0) == pytest.approx(2.0)
    assert flow_animation_duration(500.0) == 0.5
    assert flow_animation_duration(0.0) == 10.0


# =============================================================================
# ACTUATOR
# =============================================================================

@pytest.mark.parametrize("start,target", [(10.0, 60.0), (60.0, 5.0), (22.0, 10.0), (10.0, 22.0), (20.0, 20.0)])
def test_actuator_converges_without_overshoot(start, target):
    position = start
    ticks = 0
    while position != target:
        previous = position
        position = advance_actuator(position, target, 12.0)
        ticks += 1
        # Never past the target
        assert min(previous, target) <= position <= max(previous, target)
        assert ticks <= 10
    assert ticks <= math.ceil(abs(target - start) / 12.0)


def test_actuator_steps_at_rate():
    assert advance_actuator(10.0, 60.0, 12.0) == 22.0
    assert advance_actuator(60.0, 10.0, 12.0) == 48.0


def test_actuator_snaps_when_close():
    assert advance_actuator(20.0, 25.0, 12.0) == 25.0


def test_actuator_rejects_non_positive_step():
    with pytest.raises(ValueError):
        advance_actuator(10.0, 20.0, 0.0)


def test_is_moving_threshold():
    assert not is_moving(20.0, 20.05)
    assert is_moving(20.0, 20.5)
