"""
Valve actuator model.

A real pilot-operated PRV cannot jump from one setpoint to another: the
actuator travels at a finite rate. The simulation keeps an "effective" target
(where the valve is actually set) that chases the operator/schedule target by
at most a fixed step per tick.
"""

from .config import ACTUATOR_SPEED, MOVING_THRESHOLD


def advance_actuator(effective_target: float, target: float, max_step: float = ACTUATOR_SPEED) -> float:
    """
    Move the effective target one tick toward the target.

    Args:
        effective_target (float): Current actuator position (m)
        target (float): Desired setpoint (m)
        max_step (float): Maximum travel per tick (m)

    Returns:
        float: New actuator position. Snaps exactly onto the target once it
        is closer than max_step, so it never overshoots.

    Raises:
        ValueError: If max_step is not positive
    """
    if max_step <= 0:
        raise ValueError(f"Actuator step must be positive, got {max_step}")

    diff = target - effective_target
    if abs(diff) < max_step:
        return target
    return effective_target + (max_step if diff > 0 else -max_step)


def is_moving(effective_target: float, target: float) -> bool:
    """Whether the actuator is still travelling toward the target."""
    return abs(effective_target - target) > MOVING_THRESHOLD
