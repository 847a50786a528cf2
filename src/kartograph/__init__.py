"""
===============================================================================
KARTOGRAPH - Maneuver & Warp Planning Engine
===============================================================================
Plans maneuver nodes and time warps for a vessel flying patched-conic
trajectories supplied by an external host simulation.

Packages:
    core        : Constants, orbit math utilities, display formatting
    dynamics    : Read-only orbit / vessel snapshots and live maneuver nodes
    guidance    : Orbital event solver, maneuver plans, maneuver editor
    simulation  : Host protocols, warp-to scheduler, reference host and loop
===============================================================================
"""

__version__ = "0.2.0"
