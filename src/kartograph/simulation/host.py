"""
===============================================================================
KARTOGRAPH - Host Interfaces
===============================================================================
Structural interfaces the host simulation implements for the engine.

    TrajectorySolver -- owns the live maneuver-node sequence; the single
                        writer of nodes and of the trajectory they shape.
    TimeWarp         -- coarse time-acceleration primitive and clock. Its
                        warp-to has no exact-arrival guarantee.
    FacilityGate     -- whether maneuver-node creation is permitted.

All calls happen on the host's single logical thread, inside its ticks.
===============================================================================
"""

from typing import Protocol, Sequence

import numpy as np

from kartograph.dynamics.orbit_snapshot import ManeuverNode


class TrajectorySolver(Protocol):
    """Live maneuver-node sequence of the focused vessel."""

    @property
    def maneuver_nodes(self) -> Sequence[ManeuverNode]:
        """Live nodes in trajectory order."""
        ...

    def add_maneuver_node(self, epoch: float) -> ManeuverNode:
        """Create a zero delta-v node at *epoch* and return it."""
        ...

    def update_node(self, node: ManeuverNode, delta_v: np.ndarray, epoch: float) -> None:
        """Apply a full delta-v vector and epoch to *node* atomically."""
        ...

    def remove_node(self, node: ManeuverNode) -> None:
        """Remove *node* from the live sequence."""
        ...


class TimeWarp(Protocol):
    """Coarse time acceleration and the simulation clock."""

    @property
    def current_rate_index(self) -> int:
        """Index into the nominal rate ladder; 0 means no acceleration."""
        ...

    @property
    def universal_time(self) -> float:
        """Current simulation epoch (s)."""
        ...

    def set_rate(self, index: int, instant: bool) -> None:
        """Select a rate index, immediately when *instant* is True."""
        ...

    def warp_to(self, epoch: float) -> None:
        """Start an automatic warp toward *epoch*."""
        ...


class FacilityGate(Protocol):
    """Prerequisite check for maneuver planning."""

    def node_creation_allowed(self) -> bool:
        ...
