"""
===============================================================================
KARTOGRAPH - Guidance Package
===============================================================================
Planning logic for maneuvers and target epochs.

Modules:
    event_solver     : Apsides, atmosphere crossings, SOI hops and AN/DN
                       epochs from orbit snapshots
    maneuver_plan    : Frozen maneuver plans and the saved-plan collection
    maneuver_editor  : Selection / edit state machine over live nodes
    time_control     : Granular epoch stepping and event selection
===============================================================================
"""
