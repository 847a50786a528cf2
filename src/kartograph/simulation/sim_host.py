"""
===============================================================================
KARTOGRAPH - Reference Host
===============================================================================
In-memory implementations of the host interfaces, used by the command line
and the integration tests.

    InMemoryTrajectory -- live nodes kept sorted by epoch, like the host's
                          patched-conic solver keeps them.
    CoarseTimeWarp     -- discrete rate ladder with automatic rate selection
                          toward a warp-to epoch. Rate changes requested by
                          the auto-warp take a few ticks to land, so a fast
                          warp can overrun its target; that is the behavior
                          the scheduler's watchdog exists for.
    StaticFacilityGate -- node creation allowed when both the tracking
                          station and mission control are upgraded (> 0).
    SimulatedHost      -- bundles the above with a two-body vessel built
                          from the ``scenario`` configuration section.
===============================================================================
"""

import bisect
import logging
import math
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import numpy as np

from kartograph.core.constants import WARP_RATES
from kartograph.dynamics.orbit_snapshot import (
    CelestialBody,
    ManeuverNode,
    OrbitalElements,
    PatchTransition,
    VesselSnapshot,
)

logger = logging.getLogger(__name__)


# =============================================================================
# TRAJECTORY
# =============================================================================

class InMemoryTrajectory:
    """
    Live maneuver-node sequence ordered by epoch.

    Parameters
    ----------
    patch_provider : callable, optional
        Returns the patch new nodes are placed on (the vessel's current
        orbit); nodes get no patch when omitted.
    """

    def __init__(self, patch_provider: Optional[Callable[[], Optional[OrbitalElements]]] = None) -> None:
        self._nodes: List[ManeuverNode] = []
        self._patch_provider = patch_provider

    @property
    def maneuver_nodes(self) -> Tuple[ManeuverNode, ...]:
        return tuple(self._nodes)

    def add_maneuver_node(self, epoch: float) -> ManeuverNode:
        patch = self._patch_provider() if self._patch_provider else None
        node = ManeuverNode(np.zeros(3), epoch, patch)
        epochs = [n.epoch for n in self._nodes]
        self._nodes.insert(bisect.bisect_right(epochs, epoch), node)
        logger.debug("Host: node added at %.2f (%d live)", epoch, len(self._nodes))
        return node

    def update_node(self, node: ManeuverNode, delta_v: np.ndarray, epoch: float) -> None:
        self._index_of(node)
        node.delta_v = np.array(delta_v, dtype=np.float64).reshape(3)
        node.epoch = float(epoch)
        self._nodes.sort(key=lambda n: n.epoch)

    def remove_node(self, node: ManeuverNode) -> None:
        del self._nodes[self._index_of(node)]
        logger.debug("Host: node removed (%d live)", len(self._nodes))

    def _index_of(self, node: ManeuverNode) -> int:
        for index, live in enumerate(self._nodes):
            if live is node:
                return index
        raise ValueError("node is not part of this trajectory")


# =============================================================================
# COARSE TIME WARP
# =============================================================================

class CoarseTimeWarp:
    """
    Simulation clock with a discrete time-acceleration ladder.

    Parameters
    ----------
    rates : sequence of float
        Acceleration per rate index; index 0 is normal time (1x).
    start_time : float
        Initial epoch (s).
    rate_change_delay : int
        Ticks an auto-warp rate change takes to apply. Explicit
        ``set_rate(..., instant=True)`` calls and the first step of a
        ``warp_to`` apply at once.
    lookahead : float
        Auto-warp keeps the largest rate whose per-tick advance, scaled by
        this factor, still fits in the remaining time.
    """

    def __init__(
        self,
        rates: Sequence[float] = WARP_RATES,
        start_time: float = 0.0,
        rate_change_delay: int = 0,
        lookahead: float = 1.0,
    ) -> None:
        self.rates: Tuple[float, ...] = tuple(float(r) for r in rates)
        self._ut: float = float(start_time)
        self._rate_index: int = 0
        self._pending: Optional[List[int]] = None  # [index, ticks_left]
        self._target: Optional[float] = None
        self.rate_change_delay = max(int(rate_change_delay), 0)
        self.lookahead = lookahead

    # -- TimeWarp protocol ---------------------------------------------------

    @property
    def current_rate_index(self) -> int:
        return self._rate_index

    @property
    def universal_time(self) -> float:
        return self._ut

    def set_rate(self, index: int, instant: bool) -> None:
        index = min(max(int(index), 0), len(self.rates) - 1)
        if index == 0:
            self._target = None
        if instant or self.rate_change_delay == 0:
            self._rate_index = index
            self._pending = None
        else:
            self._pending = [index, self.rate_change_delay]

    def warp_to(self, epoch: float) -> None:
        """Start an automatic warp; the first non-zero rate engages at once."""
        if epoch <= self._ut:
            logger.debug("Host: warp_to %.2f ignored, already at %.2f", epoch, self._ut)
            return
        self._target = float(epoch)
        if self._rate_index == 0 and len(self.rates) > 1:
            self._rate_index = 1
            self._pending = None

    # -- simulation ------------------------------------------------------------

    @property
    def warp_target(self) -> Optional[float]:
        return self._target

    @property
    def rate(self) -> float:
        return self.rates[self._rate_index]

    def advance(self, dt: float) -> float:
        """
        Advance the clock by one tick of *dt* real seconds.

        Returns
        -------
        float
            The new epoch.
        """
        if self._target is not None:
            remaining = self._target - self._ut
            if remaining <= 0.0:
                self._target = None
                self._request(0)
            else:
                self._request(self._auto_rate(remaining, dt))

        if self._pending is not None:
            self._pending[1] -= 1
            if self._pending[1] <= 0:
                self._rate_index = self._pending[0]
                self._pending = None

        self._ut += self.rates[self._rate_index] * dt
        return self._ut

    def _auto_rate(self, remaining: float, dt: float) -> int:
        choice = 0
        for index, rate in enumerate(self.rates):
            if rate * dt * self.lookahead <= remaining:
                choice = index
        return choice

    def _request(self, index: int) -> None:
        if self.rate_change_delay == 0:
            self._rate_index = index
            return
        if index == self._rate_index and self._pending is None:
            return
        if self._pending is None:
            self._pending = [index, self.rate_change_delay]
        else:
            self._pending[0] = index


# =============================================================================
# FACILITY GATE
# =============================================================================

class StaticFacilityGate:
    """Node creation gate driven by fixed facility levels."""

    def __init__(self, levels: Optional[Dict[str, int]] = None) -> None:
        self.levels: Dict[str, int] = dict(levels or {})

    def node_creation_allowed(self) -> bool:
        return (
            self.levels.get("tracking_station", 0) > 0
            and self.levels.get("mission_control", 0) > 0
        )


# =============================================================================
# SIMULATED HOST
# =============================================================================

class SimulatedHost:
    """
    Two-body host: a vessel coasting on fixed patches, a live node list, a
    coarse warp and a facility gate.
    """

    def __init__(
        self,
        vessel_name: str,
        orbit: OrbitalElements,
        time_warp: CoarseTimeWarp,
        gate: StaticFacilityGate,
        target_orbit: Optional[OrbitalElements] = None,
        landed: bool = False,
    ) -> None:
        self.vessel_name = vessel_name
        self.orbit = orbit
        self.target_orbit = target_orbit
        self.landed = landed
        self.time_warp = time_warp
        self.gate = gate
        self.trajectory = InMemoryTrajectory(patch_provider=self.current_orbit)

    def current_orbit(self) -> OrbitalElements:
        """The vessel's patch propagated to the current epoch."""
        return self.orbit.with_epoch(self.time_warp.universal_time)

    def vessel_snapshot(self) -> VesselSnapshot:
        now = self.time_warp.universal_time
        target = None if self.target_orbit is None else self.target_orbit.with_epoch(now)
        return VesselSnapshot(
            name=self.vessel_name,
            orbit=self.current_orbit(),
            landed=self.landed,
            target_orbit=target,
        )

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "SimulatedHost":
        """Build a host from the ``scenario``, ``simulation`` and ``facilities`` sections."""
        sim_cfg = config["simulation"]
        scenario = config["scenario"]

        bodies = {
            name: CelestialBody(
                name=name,
                radius=float(params["radius"]),
                gravitational_parameter=float(params["gravitational_parameter"]),
                atmosphere_depth=float(params.get("atmosphere_depth", 0.0)),
            )
            for name, params in scenario["bodies"].items()
        }
        start = float(sim_cfg.get("start_time", 0.0))

        vessel_cfg = scenario["vessel"]
        orbit = build_patch_chain(vessel_cfg["patches"], bodies, start)

        target_orbit = None
        if scenario.get("target"):
            target_orbit = build_patch_chain([scenario["target"]], bodies, start)

        time_warp = CoarseTimeWarp(
            rates=sim_cfg.get("rates", WARP_RATES),
            start_time=start,
            rate_change_delay=sim_cfg.get("rate_change_delay_ticks", 0),
            lookahead=sim_cfg.get("lookahead", 1.0),
        )
        gate = StaticFacilityGate(config.get("facilities", {}))
        logger.info(
            "Simulated host: vessel '%s' around %s, %d patch(es), target=%s",
            vessel_cfg["name"], orbit.body.name, len(vessel_cfg["patches"]),
            target_orbit is not None,
        )
        return cls(
            vessel_cfg["name"],
            orbit,
            time_warp,
            gate,
            target_orbit=target_orbit,
            landed=bool(vessel_cfg.get("landed", False)),
        )


def build_patch_chain(
    patches: Sequence[Dict[str, Any]],
    bodies: Dict[str, CelestialBody],
    epoch: float,
) -> OrbitalElements:
    """
    Build a linked patch chain from configuration entries, last patch first.

    Every patch but the last ends in an encounter at its ``end_epoch``; the
    last is final unless it names a ``transition`` of its own.

    Raises
    ------
    KeyError
        If a patch names an unknown body.
    ValueError
        If *patches* is empty.
    """
    if not patches:
        raise ValueError("at least one patch is required")

    next_patch: Optional[OrbitalElements] = None
    for position in range(len(patches) - 1, -1, -1):
        entry = patches[position]
        is_last = position == len(patches) - 1
        transition = entry.get("transition", "FINAL" if is_last else "ENCOUNTER")
        next_patch = OrbitalElements.from_elements(
            bodies[entry["body"]],
            float(entry["semi_major_axis"]),
            float(entry["eccentricity"]),
            inclination=float(entry.get("inclination", 0.0)),
            lan=float(entry.get("lan", 0.0)),
            argument_of_periapsis=float(entry.get("argument_of_periapsis", 0.0)),
            true_anomaly=float(entry.get("true_anomaly", 0.0)),
            epoch=float(entry.get("epoch", epoch)),
            patch_end_transition=PatchTransition[transition],
            end_epoch=float(entry.get("end_epoch", math.inf)),
            next_patch=None if is_last else next_patch,
            active_patch=bool(entry.get("active", True)),
        )
    return next_patch
