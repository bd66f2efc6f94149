"""
Simulation functions for the PRV Digital Twin.

This module contains the core simulation logic that bridges between the
physics/control functions and the Dash application.

Key responsibilities:
- Defining the data point, configuration and state types
- Generating one data point for a simulated hour
- Seeding the 24-hour rolling history
- Advancing the simulation one tick (one simulated hour)
- Deriving alarm and actuator-moving flags for the displays
- Owning the live simulation and the operator setters (PRVSimulation)

The main flow of a tick is:
1. Advance the simulated hour (wraps at 24)
2. If the schedule is enabled, take the target from the day/night profile
3. Move the actuator one step toward the target
4. Compute the new data point. This uses the actuator position from BEFORE
   step 3, so the pressure series trails the actuator display by one tick
5. Append the point to the history and drop the oldest past 24
6. Make the new hour current

tick() is pure: it takes a state and a config and returns new ones.
PRVSimulation wraps it for the app and is the only writer.
"""

import logging
import threading
from dataclasses import dataclass, asdict, field, fields, replace
from typing import Dict, Any, Optional, Tuple

import numpy as np
import pandas as pd

from .actuator import advance_actuator, is_moving
from .physics import ControlMode, flow_at, dynamic_inlet, head_loss, required_outlet
from .schedule import scheduled_target
from .config import (
    HISTORY_LENGTH, HOURS_PER_DAY, ACTUATOR_SPEED, K_FRICTION, P_INLET_BASE,
    DEFAULT_TARGET_CP, MIN_VALVE_DROP, RANDOM_SEED
)

logger = logging.getLogger(__name__)


# =============================================================================
# DATA TYPES
# =============================================================================

@dataclass(frozen=True)
class SimulationDataPoint:
    """One simulated hour of telemetry. Pressures in meters, flow in L/s."""
    hour: int
    flow: float
    inlet_pressure: float
    outlet_pressure: float
    critical_point_pressure: float
    head_loss: float
    timestamp: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class SimulationConfig:
    """
    Operator-facing settings.

    Attributes:
        control_mode (ControlMode): Where the setpoint is referenced
        schedule_enabled (bool): Day/night schedule drives target_value
        target_value (float): Desired setpoint in meters
        manual_inlet_enabled (bool): Force the inlet to manual_inlet_value
        manual_inlet_value (float): Forced inlet pressure in meters
        friction_coefficient (float): K in Hf = K * Q^2
    """
    control_mode: ControlMode = ControlMode.CRITICAL_POINT
    schedule_enabled: bool = True
    target_value: float = DEFAULT_TARGET_CP
    manual_inlet_enabled: bool = False
    manual_inlet_value: float = P_INLET_BASE
    friction_coefficient: float = K_FRICTION

    def __post_init__(self):
        self.control_mode = ControlMode(self.control_mode)
        if self.friction_coefficient < 0:
            raise ValueError(f"Friction coefficient must be non-negative, got {self.friction_coefficient}")

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['control_mode'] = self.control_mode.value
        return data


@dataclass(frozen=True)
class SimulationState:
    """Loop-owned state: clock, actuator position and rolling history."""
    current_hour: int
    effective_target: float
    history: Tuple[SimulationDataPoint, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class SimulationSnapshot:
    """State, config and derived flags read together for one display refresh."""
    state: SimulationState
    config: SimulationConfig
    alarm: bool
    moving: bool


# =============================================================================
# DATA POINT GENERATION
# =============================================================================

def format_timestamp(hour: int) -> str:
    """Display label for a simulated hour, e.g. 7 -> '07:00'."""
    return f"{hour:02d}:00"


def generate_data_point(hour: int, effective_target: float, config: SimulationConfig,
                        rng: Optional[np.random.Generator] = None) -> SimulationDataPoint:
    """
    Compute the full data point for a simulated hour.

    Args:
        hour (int): Simulated hour (0-23)
        effective_target (float): Actuator position used as the setpoint
        config (SimulationConfig): Current operator settings
        rng (Optional[np.random.Generator]): Noise source, None for no noise

    Returns:
        SimulationDataPoint: The computed point. critical_point_pressure is
        always outlet_pressure - head_loss.
    """
    flow = flow_at(hour, rng)
    if config.manual_inlet_enabled:
        inlet = config.manual_inlet_value
    else:
        inlet = dynamic_inlet(hour, P_INLET_BASE, rng)

    loss = head_loss(flow, config.friction_coefficient)
    outlet = required_outlet(config.control_mode, effective_target, loss, inlet)

    return SimulationDataPoint(
        hour=hour,
        flow=flow,
        inlet_pressure=inlet,
        outlet_pressure=outlet,
        critical_point_pressure=outlet - loss,
        head_loss=loss,
        timestamp=format_timestamp(hour),
    )


def seed_history(config: SimulationConfig,
                 rng: Optional[np.random.Generator] = None) -> Tuple[SimulationDataPoint, ...]:
    """One day of history with the actuator assumed to sit on the scheduled target."""
    return tuple(
        generate_data_point(hour, scheduled_target(hour), config, rng)
        for hour in range(HISTORY_LENGTH)
    )


def initialize_simulation_state(config: Optional[SimulationConfig] = None,
                                rng: Optional[np.random.Generator] = None
                                ) -> Tuple[SimulationState, SimulationConfig]:
    """
    Build the starting state.

    The history is seeded for hours 0-23, so the clock starts on the last
    seeded hour and the first tick produces 00:00. Target and actuator both
    start on the midnight schedule value.

    Returns:
        Tuple[SimulationState, SimulationConfig]: Initial state and config
    """
    config = replace(config or SimulationConfig(), target_value=scheduled_target(0))
    history = seed_history(config, rng)
    state = SimulationState(
        current_hour=history[-1].hour,
        effective_target=scheduled_target(0),
        history=history,
    )
    return state, config


# =============================================================================
# TICK
# =============================================================================

def tick(state: SimulationState, config: SimulationConfig,
         rng: Optional[np.random.Generator] = None,
         max_step: float = ACTUATOR_SPEED) -> Tuple[SimulationState, SimulationConfig]:
    """
    Advance the simulation by one simulated hour.

    Args:
        state (SimulationState): State before the tick
        config (SimulationConfig): Settings before the tick
        rng (Optional[np.random.Generator]): Noise source, None for no noise
        max_step (float): Actuator travel per tick

    Returns:
        Tuple[SimulationState, SimulationConfig]: New state, and the config
        with the scheduled target applied (unchanged if the schedule is off)
    """
    next_hour = (state.current_hour + 1) % HOURS_PER_DAY

    if config.schedule_enabled:
        config = replace(config, target_value=scheduled_target(next_hour))

    new_effective = advance_actuator(state.effective_target, config.target_value, max_step)

    # Computed against the pre-step actuator position (one-tick lag)
    point = generate_data_point(next_hour, state.effective_target, config, rng)

    history = (state.history + (point,))[-HISTORY_LENGTH:]

    new_state = SimulationState(
        current_hour=next_hour,
        effective_target=new_effective,
        history=history,
    )
    return new_state, config


# =============================================================================
# DERIVED VALUES
# =============================================================================

def latest_point(state: SimulationState) -> Optional[SimulationDataPoint]:
    """Most recent data point, or None for an empty history."""
    return state.history[-1] if state.history else None


def is_alarm(config: SimulationConfig, point: SimulationDataPoint) -> bool:
    """The target cannot be met with this inlet pressure and valve drop."""
    return config.target_value > point.inlet_pressure - MIN_VALVE_DROP


def history_to_dataframe(history) -> pd.DataFrame:
    """
    Convert the history into a DataFrame, one row per hour.

    Used by the chart and the CSV export. Columns follow the field order of
    SimulationDataPoint.
    """
    columns = [f.name for f in fields(SimulationDataPoint)]
    return pd.DataFrame([point.to_dict() for point in history], columns=columns)


# =============================================================================
# LIVE SIMULATION
# =============================================================================

class PRVSimulation:
    """
    The running simulation behind the dashboard.

    Owns the state, the config and the noise generator. The tick source calls
    step(); operator controls go through the set_* methods, which only affect
    the next tick and never rewrite history. Display code reads the
    properties, which return immutable snapshots.

    Dash serves callbacks from worker threads, so all access is serialized
    by a lock.
    """

    def __init__(self, config: Optional[SimulationConfig] = None, seed: Optional[int] = RANDOM_SEED,
                 max_step: float = ACTUATOR_SPEED):
        self._lock = threading.Lock()
        self._rng = np.random.default_rng(seed)
        self._max_step = max_step
        self._state, self._config = initialize_simulation_state(config, self._rng)
        logger.info("Simulation initialized (seed=%s, %d history points)", seed, len(self._state.history))

    # --- read-only views ---------------------------------------------------

    @property
    def state(self) -> SimulationState:
        with self._lock:
            return self._state

    @property
    def config(self) -> SimulationConfig:
        with self._lock:
            return replace(self._config)

    @property
    def history(self) -> Tuple[SimulationDataPoint, ...]:
        return self.state.history

    @property
    def latest(self) -> Optional[SimulationDataPoint]:
        return latest_point(self.state)

    @property
    def effective_target(self) -> float:
        return self.state.effective_target

    @property
    def alarm(self) -> bool:
        return self.snapshot().alarm

    @property
    def moving(self) -> bool:
        return self.snapshot().moving

    def snapshot(self) -> SimulationSnapshot:
        """State, config, alarm and moving flag taken under a single lock."""
        with self._lock:
            point = latest_point(self._state)
            return SimulationSnapshot(
                state=self._state,
                config=replace(self._config),
                alarm=point is not None and is_alarm(self._config, point),
                moving=is_moving(self._state.effective_target, self._config.target_value)
            )

    # --- tick ----------------------------------------------------------------

    def step(self) -> SimulationDataPoint:
        """Advance one simulated hour and return the new data point."""
        with self._lock:
            self._state, self._config = tick(self._state, self._config, self._rng, self._max_step)
            point = self._state.history[-1]
        logger.debug("Tick %s: flow=%.2f L/s inlet=%.2f m outlet=%.2f m cp=%.2f m",
                     point.timestamp, point.flow, point.inlet_pressure,
                     point.outlet_pressure, point.critical_point_pressure)
        return point

    # --- operator setters ----------------------------------------------------

    def _update_config(self, **changes):
        with self._lock:
            # replace() re-runs validation in SimulationConfig.__post_init__
            self._config = replace(self._config, **changes)
        logger.info("Config updated: %s", changes)

    def set_control_mode(self, mode):
        self._update_config(control_mode=ControlMode(mode))

    def set_schedule_enabled(self, enabled: bool):
        self._update_config(schedule_enabled=bool(enabled))

    def set_target_value(self, value: float):
        """Operator setpoint. Overwritten on the next tick while the schedule is on."""
        self._update_config(target_value=float(value))

    def set_manual_inlet_enabled(self, enabled: bool):
        self._update_config(manual_inlet_enabled=bool(enabled))

    def set_manual_inlet_value(self, value: float):
        self._update_config(manual_inlet_value=float(value))

    def set_friction_coefficient(self, value: float):
        self._update_config(friction_coefficient=float(value))
