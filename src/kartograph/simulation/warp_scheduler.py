"""
===============================================================================
KARTOGRAPH - Warp-To Scheduler
===============================================================================
Drives the host's coarse time-warp primitive toward a chosen epoch.

The primitive jumps through discrete acceleration rates and does not
promise to stop on time, so the scheduler does not trust it. It polls on
every fixed (physics) tick instead:

    IDLE --engage(T)--> WARPING
        cancel any warp in flight, then warp_to(T), then record T

    WARPING, each fixed tick:
        rate index already 0               -> IDLE  (arrived / cancelled)
        now > T + tolerance, rate still up -> set_rate(0), IDLE (overshoot)

Re-engaging while WARPING replaces the target. Cancelling is idempotent.

The WarpToPanel below is the operator-facing target picker: it keeps a
selected epoch that quick buttons, orbit events and time controls edit, and
engages the scheduler on request.
===============================================================================
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from kartograph.core.constants import (
    NODE_DEFAULT_OFFSET,
    SOI_TRANSITION_MARGIN,
    WARP_OVERSHOOT_TOLERANCE,
)
from kartograph.core.lifecycle import PanelLifecycle
from kartograph.dynamics.orbit_snapshot import VesselSnapshot
from kartograph.guidance.event_solver import EventKind
from kartograph.guidance.time_control import TimeControl
from kartograph.simulation.host import TimeWarp, TrajectorySolver

logger = logging.getLogger(__name__)


class WarpState(Enum):
    IDLE = "idle"
    WARPING = "warping"


@dataclass(frozen=True)
class WarpRequest:
    """An engaged warp: where it goes and when it was issued."""
    target_epoch: float
    issued_epoch: float


# =============================================================================
# SCHEDULER
# =============================================================================

class WarpToScheduler:
    """
    Poll-and-correct controller around the coarse warp primitive.

    Parameters
    ----------
    time_warp : TimeWarp
        Host warp primitive and clock.
    tolerance : float
        Seconds past the target epoch tolerated before the watchdog forces
        the rate back to zero.

    Attributes
    ----------
    request : WarpRequest or None
        The live warp, None while idle.
    overshoot_corrections : int
        Number of times the watchdog had to stop the warp.
    """

    def __init__(self, time_warp: TimeWarp, tolerance: float = WARP_OVERSHOOT_TOLERANCE) -> None:
        self.time_warp = time_warp
        self.tolerance = tolerance
        self.request: Optional[WarpRequest] = None
        self.overshoot_corrections: int = 0

    @property
    def state(self) -> WarpState:
        return WarpState.IDLE if self.request is None else WarpState.WARPING

    @property
    def target_epoch(self) -> Optional[float]:
        return None if self.request is None else self.request.target_epoch

    def engage(self, epoch: float) -> WarpRequest:
        """Cancel any warp in flight and start a new one toward *epoch*."""
        now = self.time_warp.universal_time
        self.time_warp.set_rate(0, True)
        self.time_warp.warp_to(epoch)
        self.request = WarpRequest(target_epoch=epoch, issued_epoch=now)
        logger.info("Warp engaged: %.2f -> %.2f (%.2f s ahead)", now, epoch, epoch - now)
        return self.request

    def cancel(self) -> None:
        """Stop any acceleration and return to IDLE. Safe to repeat."""
        self.time_warp.set_rate(0, True)
        if self.request is not None:
            logger.info("Warp to %.2f cancelled by operator", self.request.target_epoch)
        self.request = None

    def on_fixed_tick(self) -> WarpState:
        """
        Watchdog step, called once per physics tick.

        Returns
        -------
        WarpState
            State after this tick.
        """
        if self.request is None:
            return WarpState.IDLE

        if self.time_warp.current_rate_index == 0:
            logger.debug("Warp to %.2f finished on its own", self.request.target_epoch)
            self.request = None
            return WarpState.IDLE

        now = self.time_warp.universal_time
        if now > self.request.target_epoch + self.tolerance:
            self.time_warp.set_rate(0, True)
            self.overshoot_corrections += 1
            logger.warning(
                "Warp overshot target %.2f by %.2f s; rate forced to 0",
                self.request.target_epoch, now - self.request.target_epoch,
            )
            self.request = None
            return WarpState.IDLE

        return WarpState.WARPING


# =============================================================================
# WARP-TO PANEL
# =============================================================================

class WarpToPanel:
    """
    Operator-side target selection for the warp-to scheduler.

    The selected epoch never lags behind the clock: ``refresh`` pulls a
    past selection up to "now" on every presentation tick.
    """

    def __init__(
        self,
        scheduler: WarpToScheduler,
        trajectory: Optional[TrajectorySolver] = None,
        time_control: Optional[TimeControl] = None,
        default_offset: float = NODE_DEFAULT_OFFSET,
        transition_margin: float = SOI_TRANSITION_MARGIN,
    ) -> None:
        self.scheduler = scheduler
        self.trajectory = trajectory
        self.time_control = time_control or TimeControl()
        self.default_offset = default_offset
        self.transition_margin = transition_margin
        self.panel = PanelLifecycle("Warp To")
        self.vessel: Optional[VesselSnapshot] = None
        self.selected_epoch: float = self._now

    @property
    def _now(self) -> float:
        return self.scheduler.time_warp.universal_time

    # -------------------------------------------------------------------------
    # Host updates
    # -------------------------------------------------------------------------

    def set_vessel(self, vessel: Optional[VesselSnapshot]) -> None:
        """Track the vessel the panel plans for; a different vessel resizes."""
        previous = None if self.vessel is None else self.vessel.name
        current = None if vessel is None else vessel.name
        if previous != current:
            self.panel.request_layout()
        self.vessel = vessel

    def refresh(self) -> float:
        """Clamp the selection to the present. Returns the selected epoch."""
        now = self._now
        if self.selected_epoch < now:
            self.selected_epoch = now
        return self.selected_epoch

    # -------------------------------------------------------------------------
    # Selection
    # -------------------------------------------------------------------------

    def select_epoch(self, epoch: float) -> None:
        self.selected_epoch = epoch

    def select_default(self) -> None:
        """``=10min``: now plus the default offset."""
        self.selected_epoch = self._now + self.default_offset

    def nudge_orbits(self, count: int) -> bool:
        """Move the selection by whole periods of the vessel's orbit."""
        if self.vessel is None or not self.vessel.orbit.is_periodic:
            return False
        self.selected_epoch += count * self.vessel.orbit.period
        return True

    def select_transition(self) -> bool:
        """Select just before the current patch ends in an SOI change."""
        vessel = self.vessel
        if vessel is None or vessel.orbit.is_final or vessel.landed:
            return False
        self.selected_epoch = vessel.orbit.end_epoch - self.transition_margin
        return True

    def select_before_node(self, lead: float) -> bool:
        """Select *lead* seconds before the first live node, if that is ahead."""
        if self.trajectory is None or not self.trajectory.maneuver_nodes:
            return False
        node = self.trajectory.maneuver_nodes[0]
        if node.epoch - self._now <= lead:
            return False
        self.selected_epoch = node.epoch - lead
        return True

    def step(self, index: int, direction: int = 1) -> None:
        self.selected_epoch = self.time_control.apply_step(self.selected_epoch, index, direction)

    def select_event(self, kind: EventKind, label: Optional[str] = None) -> None:
        if self.vessel is None:
            return
        self.selected_epoch = self.time_control.apply_event(
            self.selected_epoch, self.vessel, self._now, kind, label,
        )

    # -------------------------------------------------------------------------
    # Actions
    # -------------------------------------------------------------------------

    def engage(self) -> WarpRequest:
        return self.scheduler.engage(self.selected_epoch)

    @property
    def delta_time(self) -> float:
        """Seconds from now to the selected epoch."""
        return self.selected_epoch - self._now
