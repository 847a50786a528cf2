"""
===============================================================================
KARTOGRAPH - Dynamics Module
===============================================================================
Host-supplied state the planning engine works from.

Submodules:
    orbit_snapshot -- Celestial bodies, osculating-element patches, vessel
                      snapshots and live maneuver nodes
===============================================================================
"""
