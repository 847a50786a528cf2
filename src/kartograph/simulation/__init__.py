"""
===============================================================================
KARTOGRAPH - Simulation Package
===============================================================================
Host-facing side of the engine.

Modules:
    host            : Protocols the host simulation implements
    warp_scheduler  : Warp-to scheduler with overshoot watchdog, warp-to panel
    sim_host        : In-memory reference host (trajectory, coarse warp, gate)
    sim_engine      : Fixed-tick loop and telemetry recording
===============================================================================
"""
