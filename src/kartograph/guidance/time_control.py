"""
Epoch stepping controls shared by the maneuver editor and the warp-to panel.

Two ways to move an epoch:

    Time controls  -- add or subtract one rung of a step ladder. Three
                      granularity levels (``finer`` / ``coarser``) pick the
                      ladder: seconds, minutes-to-days, days-to-years.
    Orbit events   -- jump to an event epoch from the OrbitalEventSolver
                      (Ap, Pe, atmosphere crossings, SOI hops, AN/DN).

Both return the updated epoch and leave it unchanged when the request does
not apply, the same way the panels treat inert buttons.
"""

import logging
from typing import Optional, Tuple

from kartograph.core.constants import (
    DEFAULT_TIME_GRANULARITY,
    MAX_TIME_GRANULARITY,
    TIME_STEP_LADDERS,
)
from kartograph.dynamics.orbit_snapshot import VesselSnapshot
from kartograph.guidance.event_solver import EventKind, OrbitalEventSolver

logger = logging.getLogger(__name__)


class TimeControl:
    """Granular epoch stepping plus orbit-event selection."""

    def __init__(
        self,
        solver: Optional[OrbitalEventSolver] = None,
        granularity: int = DEFAULT_TIME_GRANULARITY,
    ) -> None:
        self.solver = solver or OrbitalEventSolver()
        self.granularity = min(max(granularity, 0), MAX_TIME_GRANULARITY)

    @property
    def steps(self) -> Tuple[float, ...]:
        """Step ladder (s) for the current granularity, finest first."""
        return TIME_STEP_LADDERS[self.granularity]

    def finer(self) -> int:
        self.granularity = max(self.granularity - 1, 0)
        return self.granularity

    def coarser(self) -> int:
        self.granularity = min(self.granularity + 1, MAX_TIME_GRANULARITY)
        return self.granularity

    def apply_step(self, epoch: float, index: int, direction: int = 1) -> float:
        """
        Move *epoch* by one rung of the current ladder.

        Parameters
        ----------
        epoch : float
            Epoch being edited (s).
        index : int
            Rung of ``steps``; out-of-range rungs leave the epoch unchanged.
        direction : int
            +1 to move later, -1 to move earlier.
        """
        if not 0 <= index < len(self.steps):
            logger.warning("Time step index %d outside ladder %s", index, self.steps)
            return epoch
        return epoch + (1.0 if direction >= 0 else -1.0) * self.steps[index]

    def apply_event(
        self,
        epoch: float,
        vessel: VesselSnapshot,
        now: float,
        kind: EventKind,
        label: Optional[str] = None,
    ) -> float:
        """
        Replace *epoch* with the epoch of the first matching orbit event.

        SOI hops share a kind; pass *label* (e.g. ``"SOI:Mun"``) to pick a
        particular hop. Returns *epoch* unchanged when no event matches.
        """
        for event in self.solver.events(vessel, now):
            if event.kind == kind and (label is None or event.label == label):
                logger.debug("Event %s selected at epoch %.2f", event.label, event.epoch)
                return event.epoch
        logger.debug("Event %s not available for vessel '%s'", kind.value, vessel.name)
        return epoch
