"""
===============================================================================
KARTOGRAPH - Orbital Event Solver
===============================================================================
Turns orbit snapshots into future epochs the operator can jump to:

    - next apoapsis / periapsis
    - atmosphere exit / entry crossings
    - sphere-of-influence transitions along the patch chain
    - ascending / descending node relative to a target orbit

Every function is a pure computation over the supplied snapshots. Callers
check applicability first (``atmosphere_applicable``, same reference body,
periodic orbit); the solver does not defend against violated
preconditions and may return meaningless numbers if they are ignored.
The one exception is the whole-period epoch walk, which raises instead of
looping forever on an open orbit.

Sign conventions and units:
    - Epochs and durations in seconds of simulation time
    - True anomalies in radians
    - Snapshot orientation angles in degrees
===============================================================================
"""

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple

import numpy as np

from kartograph.core.constants import HALF_PI, PI, RAD2DEG, SOI_TRANSITION_MARGIN
from kartograph.core.orbit_math import (
    angle_normalize,
    epoch_at_true_anomaly,
    orbit_normal,
    true_anomaly_at_radius,
    true_anomaly_to_epoch,
)
from kartograph.dynamics.orbit_snapshot import OrbitalElements, VesselSnapshot

logger = logging.getLogger(__name__)


class EventKind(Enum):
    """Kinds of orbit events offered to the operator."""
    APOAPSIS = "Ap"
    PERIAPSIS = "Pe"
    ATMOSPHERE_EXIT = "Atmos Exit"
    ATMOSPHERE_ENTRY = "Atmos Enter"
    SOI_TRANSITION = "SOI"
    ASCENDING_NODE = "AN"
    DESCENDING_NODE = "DN"


@dataclass(frozen=True)
class OrbitEvent:
    """A selectable future event and the epoch at which it happens."""
    kind: EventKind
    label: str
    epoch: float


class OrbitalEventSolver:
    """
    Derives candidate event epochs from orbit snapshots.

    The solver is stateless: all inputs are passed as arguments and results
    are returned directly.

    Typical usage:
        solver = OrbitalEventSolver()
        for event in solver.events(vessel, now):
            print(event.label, event.epoch)
    """

    def __init__(self, soi_margin: float = SOI_TRANSITION_MARGIN) -> None:
        self.soi_margin = soi_margin

    # -------------------------------------------------------------------------
    # Apsides
    # -------------------------------------------------------------------------

    @staticmethod
    def apoapsis_epoch(orbit: OrbitalElements, now: float) -> Optional[float]:
        """Epoch of the next apoapsis, or None when none lies ahead."""
        if orbit.time_to_apoapsis > 0.0:
            return now + orbit.time_to_apoapsis
        return None

    @staticmethod
    def periapsis_epoch(orbit: OrbitalElements, now: float) -> Optional[float]:
        """Epoch of the next periapsis, or None when none lies ahead."""
        if orbit.time_to_periapsis > 0.0:
            return now + orbit.time_to_periapsis
        return None

    # -------------------------------------------------------------------------
    # Atmosphere crossings
    # -------------------------------------------------------------------------

    @staticmethod
    def atmosphere_applicable(orbit: OrbitalElements) -> bool:
        """
        True when the orbit dips into the atmosphere and also rises above
        it (or escapes, flagged by a negative apoapsis altitude).
        """
        depth = orbit.body.atmosphere_depth
        return (
            orbit.body.has_atmosphere
            and orbit.periapsis_altitude < depth
            and (orbit.apoapsis_altitude > depth or orbit.apoapsis_altitude < 0.0)
        )

    @staticmethod
    def atmosphere_true_anomaly(orbit: OrbitalElements) -> float:
        """Outbound true anomaly (rad) at the atmosphere boundary radius."""
        return true_anomaly_at_radius(orbit, orbit.body.atmosphere_radius)

    def atmosphere_exit_epoch(self, orbit: OrbitalElements, now: float) -> Optional[float]:
        """Next epoch at which the vessel climbs out through the boundary."""
        return self._crossing_epoch(orbit, self.atmosphere_true_anomaly(orbit), now)

    def atmosphere_entry_epoch(self, orbit: OrbitalElements, now: float) -> Optional[float]:
        """Next epoch at which the vessel descends through the boundary."""
        nu = 2.0 * PI - self.atmosphere_true_anomaly(orbit)
        return self._crossing_epoch(orbit, nu, now)

    @staticmethod
    def _crossing_epoch(orbit: OrbitalElements, true_anomaly: float, now: float) -> Optional[float]:
        if orbit.is_periodic:
            return true_anomaly_to_epoch(orbit, true_anomaly, now)
        # Open orbits pass each anomaly once; a past crossing is not offered
        epoch = epoch_at_true_anomaly(orbit, true_anomaly)
        return epoch if epoch >= now else None

    # -------------------------------------------------------------------------
    # Sphere-of-influence transitions
    # -------------------------------------------------------------------------

    def soi_transitions(self, vessel: VesselSnapshot) -> List[OrbitEvent]:
        """
        One transition event per hop along the patch chain.

        The walk stops at a landed vessel, a final patch, an inactive patch
        or a patch without an active successor. Each epoch sits
        ``soi_margin`` seconds before the patch end so a warp does not carry
        the vessel across the boundary.
        """
        events: List[OrbitEvent] = []
        if vessel.landed:
            return events
        patch = vessel.orbit
        while (
            not patch.is_final
            and patch.active_patch
            and patch.next_patch is not None
            and patch.next_patch.active_patch
        ):
            events.append(OrbitEvent(
                EventKind.SOI_TRANSITION,
                f"SOI:{patch.next_patch.body.name}",
                patch.end_epoch - self.soi_margin,
            ))
            patch = patch.next_patch
        return events

    # -------------------------------------------------------------------------
    # Ascending / descending node
    # -------------------------------------------------------------------------

    @staticmethod
    def ascending_node_true_anomaly(orbit: OrbitalElements, target: OrbitalElements) -> float:
        """
        True anomaly (rad) on *orbit* of its ascending node relative to the
        plane of *target*.

        Algorithm:
            a, b  = plane vectors of both orbits (see ``orbit_normal``)
            c     = a x b                 line of nodes
            lon   = atan2(c_y, c_x)       celestial longitude, in [0, 2 pi)
            theta = acos(a . b)           angle between the planes
            nu    = lon - (omega + LAN) + (pi/2 if c_x < 0 else 3 pi/2)

        The quarter-turn offsets compensate for the plane-vector frame and
        were tuned against the host; the branch is kept exactly so AN and DN
        never swap. The result is ``nu`` for inclined planes and ``nu + pi``
        for coplanar ones; it is not wrapped.

        Orbits around different bodies have no common plane; 0.0 is
        returned.
        """
        if orbit.body != target.body:
            return 0.0

        a = orbit_normal(orbit)
        b = orbit_normal(target)
        c = np.cross(a, b)

        lon = angle_normalize(math.atan2(c[1], c[0]))
        theta = math.acos(float(np.clip(np.dot(a, b), -1.0, 1.0))) * RAD2DEG

        offset = HALF_PI if c[0] < 0.0 else 3.0 * HALF_PI
        node_ta = lon - math.radians(orbit.argument_of_periapsis + orbit.lan) + offset

        an_ta = node_ta if theta > 0.0 else node_ta + PI
        logger.debug(
            "AN solve: lon=%.4f rad, relative inclination=%.3f deg, AN ta=%.4f rad",
            lon, theta, an_ta,
        )
        return an_ta

    def node_epochs(
        self,
        orbit: OrbitalElements,
        target: OrbitalElements,
        now: float,
    ) -> Optional[Tuple[float, float]]:
        """
        Epochs of the next ascending and descending node relative to the
        target plane, each the tightest occurrence at or after *now*.

        Returns None when the orbits have different reference bodies or the
        vessel's orbit is not periodic.
        """
        if orbit.body != target.body or not orbit.is_periodic:
            return None
        an_ta = self.ascending_node_true_anomaly(orbit, target)
        dn_ta = an_ta + PI
        return (
            true_anomaly_to_epoch(orbit, an_ta, now),
            true_anomaly_to_epoch(orbit, dn_ta, now),
        )

    # -------------------------------------------------------------------------
    # Everything at once
    # -------------------------------------------------------------------------

    def events(self, vessel: VesselSnapshot, now: float) -> List[OrbitEvent]:
        """
        All applicable events for the vessel, in panel order: apsides,
        atmosphere crossings, SOI hops, then target nodes.
        """
        orbit = vessel.orbit
        events: List[OrbitEvent] = []

        ap = self.apoapsis_epoch(orbit, now)
        if ap is not None:
            events.append(OrbitEvent(EventKind.APOAPSIS, EventKind.APOAPSIS.value, ap))
        pe = self.periapsis_epoch(orbit, now)
        if pe is not None:
            events.append(OrbitEvent(EventKind.PERIAPSIS, EventKind.PERIAPSIS.value, pe))

        if self.atmosphere_applicable(orbit):
            for kind, epoch in (
                (EventKind.ATMOSPHERE_EXIT, self.atmosphere_exit_epoch(orbit, now)),
                (EventKind.ATMOSPHERE_ENTRY, self.atmosphere_entry_epoch(orbit, now)),
            ):
                if epoch is not None:
                    events.append(OrbitEvent(kind, kind.value, epoch))

        events.extend(self.soi_transitions(vessel))

        if vessel.target_orbit is not None:
            nodes = self.node_epochs(orbit, vessel.target_orbit, now)
            if nodes is not None:
                events.append(OrbitEvent(EventKind.ASCENDING_NODE, EventKind.ASCENDING_NODE.value, nodes[0]))
                events.append(OrbitEvent(EventKind.DESCENDING_NODE, EventKind.DESCENDING_NODE.value, nodes[1]))

        logger.debug("%d orbit events for vessel '%s'", len(events), vessel.name)
        return events
