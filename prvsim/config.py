"""
Configuration file for the PRV Digital Twin Dashboard.

This module contains all the constants and settings used throughout
the application. Think of this as the "settings file" where we define:
- How fast the simulation runs
- The physical parameters of the valve and the downstream main
- The day/night setpoint schedule
- Ranges for the operator controls
- Color schemes and chart sizes for the visualizations

A few values can be overridden from the environment so the dashboard can be
deployed without editing code (API key, host/port, random seed).
"""

import os
from typing import Dict, List

# =============================================================================
# SIMULATION CONFIGURATION
# =============================================================================
# These settings control the basic simulation parameters

# How often the simulation advances (in milliseconds of real time)
# 1000 ms real = 1 simulated hour
SIM_SPEED_MS = 1000

# Number of data points kept in the rolling history (one simulated day)
HISTORY_LENGTH = 24

# Hours in a simulated day, used for wrapping the clock
HOURS_PER_DAY = 24

# Seed for the noise generator. Unset = different noise every run
_seed = os.environ.get('PRV_RANDOM_SEED')
RANDOM_SEED = int(_seed) if _seed else None

# =============================================================================
# HYDRAULIC PARAMETERS
# =============================================================================
# Head loss between valve and critical point: Hf = K * Q^2
K_FRICTION = 0.045

# Base upstream (inlet) pressure in meters
P_INLET_BASE = 65.0

# Default target pressure at the critical point in meters
DEFAULT_TARGET_CP = 20.0

# Valves cannot regulate meaningfully below this outlet pressure (m)
MIN_OUTLET_PRESSURE = 5.0

# Minimum pressure drop across the valve body (m)
MIN_VALVE_DROP = 5.0

# Demand curve: baseline sinusoid plus a morning and an evening peak
BASE_FLOW = 5.0
BASE_FLOW_AMPLITUDE = 3.0
MIN_FLOW = 2.0
FLOW_NOISE = 0.25          # uniform noise in [-FLOW_NOISE, +FLOW_NOISE] L/s

# Each peak is (center hour, width, amplitude in L/s)
DEMAND_PEAKS: List[Dict[str, float]] = [
    {'center': 8.0, 'width': 2.0, 'amplitude': 25.0},   # Morning peak
    {'center': 20.0, 'width': 2.2, 'amplitude': 18.0},  # Evening peak
]

# Inlet oscillation: highest at night (03:00), lowest in the afternoon (15:00)
INLET_OSCILLATION = 12.0
INLET_PEAK_HOUR = 3
INLET_NOISE = 1.5          # uniform noise in [-INLET_NOISE, +INLET_NOISE] m

# =============================================================================
# ACTUATOR & SCHEDULE
# =============================================================================
# Maximum setpoint travel per tick (m/tick)
ACTUATOR_SPEED = 12.0

# The actuator is reported as "moving" while further than this from target
MOVING_THRESHOLD = 0.1

# Day profile runs from DAY_START_HOUR (inclusive) to NIGHT_START_HOUR (exclusive)
DAY_START_HOUR = 6
NIGHT_START_HOUR = 23
DAY_TARGET = 22.0
NIGHT_TARGET = 10.0

# =============================================================================
# UI CONFIGURATION
# =============================================================================
# Slider ranges for the operator controls (meters)
TARGET_SLIDER_MIN = 5
TARGET_SLIDER_MAX = 60
INLET_SLIDER_MIN = 10
INLET_SLIDER_MAX = 90

# Hours at which the remote unit reports over GPRS (marked on the chart)
TELEMETRY_HOURS = [0, 6, 12, 18]

# How often the browser polls for a finished diagnostic (milliseconds)
DIAGNOSTIC_POLL_MS = 500

# =============================================================================
# COLOR SCHEMES
# =============================================================================
# One color per history series, shared by the chart, the legend toggles
# and the stat cards
SERIES_COLORS = {
    'inlet_pressure': '#6366f1',           # Indigo - upstream pressure
    'flow': '#f59e0b',                     # Amber - network flow
    'outlet_pressure': '#3b82f6',          # Blue - valve outlet
    'critical_point_pressure': '#10b981',  # Green - critical point
}

SERIES_LABELS = {
    'inlet_pressure': 'Inlet Pressure (m)',
    'flow': 'Flow (L/s)',
    'outlet_pressure': 'PRV Outlet Pressure (m)',
    'critical_point_pressure': 'Critical Point Pressure (m)',
}

ALARM_COLOR = '#ef4444'

# =============================================================================
# CHART CONFIGURATION
# =============================================================================
CHART_HEIGHT = 400        # History chart
DIAGRAM_HEIGHT = 260      # Network schematic
GAUGE_HEIGHT = 220        # Actuator gauge

# =============================================================================
# DIAGNOSTIC ASSISTANT
# =============================================================================
OPENAI_API_KEY = os.environ.get('OPENAI_API_KEY')
DIAGNOSTIC_MODEL = os.environ.get('PRV_DIAGNOSTIC_MODEL', 'gpt-4o-mini')

DIAGNOSTIC_IDLE_MESSAGE = "> Monitoring pressure transients in the network..."
DIAGNOSTIC_UNAVAILABLE_MESSAGE = "Diagnostic unavailable."
DIAGNOSTIC_EMPTY_MESSAGE = "No diagnostic available."

# =============================================================================
# SERVER
# =============================================================================
HOST = os.environ.get('PRV_HOST', '0.0.0.0')
PORT = int(os.environ.get('PRV_PORT', '8050'))
DEBUG = os.environ.get('PRV_DEBUG', '').lower() in ('1', 'true', 'yes')
LOG_LEVEL = os.environ.get('PRV_LOG_LEVEL', 'INFO')
