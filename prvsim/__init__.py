"""
PRV Digital Twin Modules Package

This package contains the modular components of the pressure-reducing valve
dashboard. Each module has a specific responsibility and they work together
to provide the complete simulation and display.

Module Organization:
├── config.py              # Central configuration and constants
├── physics.py             # Flow, inlet pressure, head loss, valve outlet
├── schedule.py            # Day/night setpoint schedule
├── actuator.py            # Rate-limited valve actuator
├── simulation.py          # Data points, tick, history, live simulation
├── diagnostics.py         # Background AI diagnostic with fail-soft result
├── visualization.py       # Plotly figures (history, schematic, gauge)
└── dash_ui_components.py  # Dash/Bootstrap UI components

Architecture principles:
- Physics, schedule and actuator are pure functions
- The simulation state only changes through tick() and the operator setters
- UI logic is separated from simulation logic
- Visualization reads snapshots and never mutates the simulation

Import pattern:
- Use `from prvsim import function_name` in the application
- All functions are available at package level
"""

from .config import *               # Configuration constants and settings
from .physics import *              # Closed-form hydraulic model
from .schedule import *             # Day/night target profile
from .actuator import *             # Actuator slew-rate model
from .simulation import *           # Tick, history buffer and live simulation
from .diagnostics import *          # Diagnostic assistant
from .visualization import *        # Plotly figures
from .dash_ui_components import *   # Dash UI components
