"""
===============================================================================
KARTOGRAPH - Constants
===============================================================================
Central repository for the constants used by the planning engine. Times are
in seconds of simulation time, velocities in m/s, angles in radians unless a
name says otherwise.

The calendar follows the host game's home world: a 6 hour day and a 426 day
year.
===============================================================================
"""

import numpy as np


# =============================================================================
# MATHEMATICAL CONSTANTS
# =============================================================================
PI = np.pi
TWO_PI = 2.0 * np.pi
HALF_PI = 0.5 * np.pi
DEG2RAD = PI / 180.0
RAD2DEG = 180.0 / PI

# =============================================================================
# CALENDAR (seconds)
# =============================================================================
ONE_MINUTE = 60.0
ONE_HOUR = 60.0 * ONE_MINUTE
ONE_DAY = 6.0 * ONE_HOUR                  # home-world day is 6 hours
ONE_YEAR = 426.0 * ONE_DAY                # 426 d (the 32 min remainder dropped)

# =============================================================================
# MANEUVER EDITOR
# =============================================================================
# Default placement of a new node, and of the "=10min" epoch reset
NODE_DEFAULT_OFFSET = 10.0 * ONE_MINUTE

# Delta-v edit step ladder (m/s); the editor starts on 1 m/s
DV_STEP_LADDER = (0.01, 0.1, 1.0, 10.0, 100.0, 1000.0)
DEFAULT_DV_STEP_INDEX = 2

# Whole-orbit epoch nudges offered by the editor and the warp-to panel
ORBIT_NUDGES = (-10, -1, 1, 10)

# "Warp to maneuver" lead times offered by the editor / warp-to panel
EDITOR_NODE_LEADS = (ONE_MINUTE, 10.0 * ONE_MINUTE, ONE_HOUR)
WARP_NODE_LEADS = (ONE_MINUTE, 10.0 * ONE_MINUTE, ONE_HOUR, ONE_DAY)

# Quick warps offered by the editor, relative to "now"
QUICK_WARPS = (10.0 * ONE_MINUTE, ONE_HOUR, ONE_DAY, 10.0 * ONE_DAY)

# =============================================================================
# TIME CONTROL
# =============================================================================
# Epoch step ladders per granularity level (finest first)
TIME_STEP_LADDERS = (
    (0.01, 0.1, 1.0, 10.0),
    (ONE_MINUTE, 10.0 * ONE_MINUTE, ONE_HOUR, ONE_DAY),
    (10.0 * ONE_DAY, 100.0 * ONE_DAY, ONE_YEAR, 10.0 * ONE_YEAR),
)
DEFAULT_TIME_GRANULARITY = 1
MAX_TIME_GRANULARITY = len(TIME_STEP_LADDERS) - 1

# =============================================================================
# EVENT SOLVER / WARP
# =============================================================================
SOI_TRANSITION_MARGIN = 10.0              # s before the patch end epoch
EDITOR_TRANSITION_MARGIN = ONE_MINUTE     # editor quick-warp margin
WARP_OVERSHOOT_TOLERANCE = 1.0            # s past target before forcing stop

# Nominal rate ladder of the coarse time-warp primitive
WARP_RATES = (1.0, 5.0, 10.0, 50.0, 100.0, 1000.0, 10000.0, 100000.0)
