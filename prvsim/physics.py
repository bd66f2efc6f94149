"""
Physics and control functions for the PRV simulation.

This module holds the closed-form hydraulic model behind the dashboard.
There is no network solver here: one valve feeds one main that ends at the
critical point, and every quantity comes from a formula of the simulated hour.

Key responsibilities:
- Residential demand curve (flow) with morning and evening peaks
- Upstream (inlet) pressure that rises at night and drops during the day
- Friction head loss between the valve and the critical point
- Outlet pressure the valve must hold for each control mode

Noise:
- Flow and inlet pressure carry a small uniform perturbation
- The random source is passed in explicitly (a numpy Generator)
- Passing rng=None gives the noise-free value, which is what tests use
"""

import math
from enum import Enum
from typing import Optional

import numpy as np

from .config import (
    BASE_FLOW, BASE_FLOW_AMPLITUDE, MIN_FLOW, FLOW_NOISE, DEMAND_PEAKS,
    INLET_OSCILLATION, INLET_PEAK_HOUR, INLET_NOISE,
    MIN_OUTLET_PRESSURE, MIN_VALVE_DROP
)


class ControlMode(str, Enum):
    """Where the valve setpoint is referenced."""
    CRITICAL_POINT = 'CRITICAL_POINT'   # Target held at the far end of the main
    FIXED_OUTLET = 'FIXED_OUTLET'       # Target held at the valve outlet


def _uniform_noise(rng: Optional[np.random.Generator], amplitude: float) -> float:
    if rng is None:
        return 0.0
    return float(rng.uniform(-amplitude, amplitude))


def _demand_peak(hour: float, center: float, width: float) -> float:
    return math.exp(-0.5 * ((hour - center) / width) ** 2)


def flow_at(hour: float, rng: Optional[np.random.Generator] = None) -> float:
    """
    Residential demand (flow) for a simulated hour.

    The curve is a baseline sinusoid plus two Gaussian-shaped peaks
    (08:00 and 20:00). The noise-free value never drops below MIN_FLOW.

    Args:
        hour (float): Simulated hour (0-23)
        rng (Optional[np.random.Generator]): Noise source, None for no noise

    Returns:
        float: Flow in liters per second
    """
    base = BASE_FLOW + BASE_FLOW_AMPLITUDE * math.sin(hour * math.pi / 12)
    peaks = sum(
        peak['amplitude'] * _demand_peak(hour, peak['center'], peak['width'])
        for peak in DEMAND_PEAKS
    )
    flow = max(MIN_FLOW, base + peaks)
    return flow + _uniform_noise(rng, FLOW_NOISE)


def dynamic_inlet(hour: float, base_inlet: float, rng: Optional[np.random.Generator] = None) -> float:
    """
    Upstream pressure for a simulated hour.

    At night the trunk main is lightly loaded so the inlet rises; during the
    day it falls. The peak is at 03:00 and the trough at 15:00.

    Args:
        hour (float): Simulated hour (0-23)
        base_inlet (float): Mean inlet pressure in meters
        rng (Optional[np.random.Generator]): Noise source, None for no noise

    Returns:
        float: Inlet pressure in meters
    """
    oscillation = INLET_OSCILLATION * math.cos((hour - INLET_PEAK_HOUR) * math.pi / 12)
    return base_inlet + oscillation + _uniform_noise(rng, INLET_NOISE)


def head_loss(flow: float, friction_coefficient: float) -> float:
    """Friction loss between valve and critical point, Hf = K * Q^2."""
    return friction_coefficient * flow ** 2


def required_outlet(mode: ControlMode, target: float, loss: float, inlet_pressure: float) -> float:
    """
    Outlet pressure the valve settles at for the given mode and target.

    CRITICAL_POINT mode adds the head loss so the target is met at the far
    end of the main; FIXED_OUTLET mode holds the target at the valve itself.

    The result is floored at MIN_OUTLET_PRESSURE and then capped at
    inlet_pressure - MIN_VALVE_DROP. The cap is applied last, so with a very
    low inlet (below 10 m) the outlet falls under the floor. Callers read
    that as an infeasible setpoint (see simulation.is_alarm).

    Args:
        mode (ControlMode): Control reference
        target (float): Setpoint in meters
        loss (float): Head loss to the critical point in meters
        inlet_pressure (float): Upstream pressure in meters

    Returns:
        float: Valve outlet pressure in meters
    """
    mode = ControlMode(mode)
    if mode == ControlMode.CRITICAL_POINT:
        desired = target + loss
    else:
        desired = target

    desired = max(desired, MIN_OUTLET_PRESSURE)
    return min(desired, inlet_pressure - MIN_VALVE_DROP)


def flow_animation_duration(flow: float) -> float:
    """Seconds per dash cycle of the animated pipe; faster flow, shorter cycle."""
    if flow <= 0:
        return 10.0
    return max(0.5, 10.0 / (flow / 5.0))
