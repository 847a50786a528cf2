"""
===============================================================================
KARTOGRAPH - Orbit and Vessel Snapshots
===============================================================================
Data handed to the planning engine by the host simulation.

    1. **CelestialBody** -- reference body identity, radius, gravitational
       parameter and atmosphere depth.

    2. **OrbitalElements** -- immutable osculating-element snapshot of one
       trajectory patch, including the patched-conic chain link to the next
       patch and how the patch ends.

    3. **VesselSnapshot** -- the vessel's current patch, landed flag and the
       orbit of its selected target, if any.

    4. **ManeuverNode** -- a live node owned by the host's trajectory
       solver. The engine reads it and asks the host to change it; it never
       mutates a node directly.

Angles in OrbitalElements follow the host convention: inclination, LAN and
argument of periapsis in degrees, true anomaly in radians. Distances are
radii from the body center (m) unless named *altitude*. A patch whose
``period`` is not positive is open (hyperbolic or parabolic).
===============================================================================
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from enum import Enum, auto
from typing import Iterator, Optional

import numpy as np

from kartograph.core.constants import PI, TWO_PI
from kartograph.core.orbit_math import PARABOLIC_TOLERANCE, time_since_periapsis


# =============================================================================
# CELESTIAL BODY
# =============================================================================

@dataclass(frozen=True)
class CelestialBody:
    """
    Reference body of a trajectory patch.

    Attributes
    ----------
    name : str
        Display name, also used as the body identity.
    radius : float
        Mean radius (m).
    gravitational_parameter : float
        mu = G M (m^3/s^2).
    atmosphere_depth : float
        Height of the atmosphere boundary above the surface (m); 0 for
        airless bodies.
    """
    name: str
    radius: float
    gravitational_parameter: float
    atmosphere_depth: float = 0.0

    @property
    def has_atmosphere(self) -> bool:
        return self.atmosphere_depth > 0.0

    @property
    def atmosphere_radius(self) -> float:
        """Radius of the atmosphere boundary from the body center (m)."""
        return self.radius + self.atmosphere_depth


class PatchTransition(Enum):
    """How a trajectory patch ends."""
    INITIAL = auto()
    FINAL = auto()
    ENCOUNTER = auto()
    ESCAPE = auto()
    MANEUVER = auto()


# =============================================================================
# ORBITAL ELEMENTS
# =============================================================================

@dataclass(frozen=True)
class OrbitalElements:
    """
    Osculating-element snapshot of one patch of a vessel's trajectory.

    The snapshot is valid at ``epoch``, where the vessel sits at
    ``true_anomaly``. ``time_to_apoapsis`` / ``time_to_periapsis`` are
    measured from that epoch; a non-positive (or NaN) value means the event
    does not lie ahead.
    """
    body: CelestialBody
    inclination: float                 # deg
    lan: float                         # deg
    argument_of_periapsis: float       # deg
    eccentricity: float
    semi_major_axis: float             # m, negative when hyperbolic
    semi_minor_axis: float             # m
    semi_latus_rectum: float           # m
    period: float                      # s, <= 0 when open
    apoapsis_radius: float             # m, negative when hyperbolic
    periapsis_radius: float            # m
    time_to_apoapsis: float            # s
    time_to_periapsis: float           # s
    true_anomaly: float                # rad
    epoch: float                       # s
    patch_end_transition: PatchTransition = PatchTransition.FINAL
    end_epoch: float = math.inf
    next_patch: Optional[OrbitalElements] = field(default=None, repr=False)
    active_patch: bool = True

    # -------------------------------------------------------------------------
    # Derived quantities
    # -------------------------------------------------------------------------

    @property
    def is_periodic(self) -> bool:
        """True for closed orbits, where whole-orbit epoch arithmetic works."""
        return self.period > 0.0

    @property
    def apoapsis_altitude(self) -> float:
        """Apoapsis height above the surface (m); negative when hyperbolic."""
        return self.apoapsis_radius - self.body.radius

    @property
    def periapsis_altitude(self) -> float:
        """Periapsis height above the surface (m)."""
        return self.periapsis_radius - self.body.radius

    @property
    def is_final(self) -> bool:
        return self.patch_end_transition == PatchTransition.FINAL

    # -------------------------------------------------------------------------
    # Construction
    # -------------------------------------------------------------------------

    @classmethod
    def from_elements(
        cls,
        body: CelestialBody,
        semi_major_axis: float,
        eccentricity: float,
        inclination: float = 0.0,
        lan: float = 0.0,
        argument_of_periapsis: float = 0.0,
        true_anomaly: float = 0.0,
        epoch: float = 0.0,
        **patch,
    ) -> OrbitalElements:
        """
        Build a consistent snapshot from classical elements.

        Period, apsis radii, semi-minor axis, semi-latus rectum and the
        time-to-apsis fields are derived:

            p  = a (1 - e^2)
            rp = a (1 - e),   ra = a (1 + e)
            T  = 2 pi sqrt(a^3 / mu)              (closed orbits only)

        Parameters
        ----------
        body : CelestialBody
            Reference body.
        semi_major_axis : float
            a (m); negative for hyperbolic orbits.
        eccentricity : float
            e; parabolic orbits (e = 1) are not supported here.
        inclination, lan, argument_of_periapsis : float
            Orientation angles (deg).
        true_anomaly : float
            Current true anomaly (rad).
        epoch : float
            Snapshot epoch (s).
        **patch
            Patch-chain fields (``patch_end_transition``, ``end_epoch``,
            ``next_patch``, ``active_patch``).

        Raises
        ------
        ValueError
            If e is within the parabolic band, or the sign of a does not
            match the conic type.
        """
        a = semi_major_axis
        e = eccentricity
        if abs(e - 1.0) <= PARABOLIC_TOLERANCE:
            raise ValueError("Parabolic orbits have no finite semi-major axis.")
        if (e < 1.0) != (a > 0.0):
            raise ValueError(
                f"Semi-major axis sign does not match eccentricity "
                f"(a = {a:.4e} m, e = {e:.4f})."
            )

        mu = body.gravitational_parameter
        closed = e < 1.0
        period = TWO_PI * math.sqrt(a ** 3 / mu) if closed else 0.0
        semi_minor = abs(a) * math.sqrt(abs(1.0 - e ** 2))

        snapshot = cls(
            body=body,
            inclination=inclination,
            lan=lan,
            argument_of_periapsis=argument_of_periapsis,
            eccentricity=e,
            semi_major_axis=a,
            semi_minor_axis=semi_minor,
            semi_latus_rectum=a * (1.0 - e ** 2),
            period=period,
            apoapsis_radius=a * (1.0 + e),
            periapsis_radius=a * (1.0 - e),
            time_to_apoapsis=math.nan,
            time_to_periapsis=math.nan,
            true_anomaly=true_anomaly,
            epoch=epoch,
            **patch,
        )

        t_peri = time_since_periapsis(snapshot, true_anomaly)
        if closed:
            # Both in (0, T]: sitting on an apsis reports a full lap
            to_pe = period - t_peri
            half = 0.5 * period
            to_ap = half - t_peri if t_peri < half else 1.5 * period - t_peri
        else:
            to_pe = -t_peri
            to_ap = math.nan
        return replace(snapshot, time_to_apoapsis=to_ap, time_to_periapsis=to_pe)

    def with_epoch(self, epoch: float) -> OrbitalElements:
        """
        Propagate this snapshot to a new epoch (two-body).

        Elliptic orbits wrap the mean anomaly into one period; hyperbolic
        orbits solve the hyperbolic Kepler equation on the signed time from
        periapsis. The patch-chain fields are carried over unchanged.
        """
        t_peri = time_since_periapsis(self, self.true_anomaly) + (epoch - self.epoch)
        if self.is_periodic:
            mean_anomaly = math.fmod(t_peri / self.period * TWO_PI, TWO_PI)
            if mean_anomaly < 0.0:
                mean_anomaly += TWO_PI
            nu = _true_anomaly_from_mean(mean_anomaly, self.eccentricity)
        else:
            mean_motion = math.sqrt(
                self.body.gravitational_parameter / (-self.semi_major_axis) ** 3
            )
            nu = _true_anomaly_from_hyperbolic_mean(mean_motion * t_peri, self.eccentricity)
        return OrbitalElements.from_elements(
            self.body,
            self.semi_major_axis,
            self.eccentricity,
            inclination=self.inclination,
            lan=self.lan,
            argument_of_periapsis=self.argument_of_periapsis,
            true_anomaly=nu,
            epoch=epoch,
            patch_end_transition=self.patch_end_transition,
            end_epoch=self.end_epoch,
            next_patch=self.next_patch,
            active_patch=self.active_patch,
        )


def _true_anomaly_from_mean(mean_anomaly: float, e: float, tol: float = 1e-12) -> float:
    """Solve Kepler's equation M = E - e sin E by Newton iteration (e < 1)."""
    ecc = mean_anomaly if e < 0.8 else PI
    for _ in range(50):
        delta = (ecc - e * math.sin(ecc) - mean_anomaly) / (1.0 - e * math.cos(ecc))
        ecc -= delta
        if abs(delta) < tol:
            break
    return 2.0 * math.atan2(
        math.sqrt(1.0 + e) * math.sin(0.5 * ecc),
        math.sqrt(1.0 - e) * math.cos(0.5 * ecc),
    )


def _true_anomaly_from_hyperbolic_mean(mean_anomaly: float, e: float, tol: float = 1e-12) -> float:
    """Solve M = e sinh H - H by Newton iteration (e > 1); M is signed."""
    hyp = math.asinh(mean_anomaly / e)
    for _ in range(100):
        delta = (e * math.sinh(hyp) - hyp - mean_anomaly) / (e * math.cosh(hyp) - 1.0)
        hyp -= delta
        if abs(delta) < tol * max(1.0, abs(hyp)):
            break
    return 2.0 * math.atan(math.sqrt((e + 1.0) / (e - 1.0)) * math.tanh(0.5 * hyp))


# =============================================================================
# VESSEL
# =============================================================================

@dataclass(frozen=True)
class VesselSnapshot:
    """
    Read-only view of the vessel the operator is flying.

    Attributes
    ----------
    name : str
        Vessel name; a change of name means the host switched focus.
    orbit : OrbitalElements
        Current trajectory patch (head of the patch chain).
    landed : bool
        True while the vessel rests on a surface.
    target_orbit : OrbitalElements, optional
        Orbit of the selected target vessel or body.
    """
    name: str
    orbit: OrbitalElements
    landed: bool = False
    target_orbit: Optional[OrbitalElements] = None

    def patches(self) -> Iterator[OrbitalElements]:
        """Iterate the patch chain starting with the current patch."""
        patch: Optional[OrbitalElements] = self.orbit
        while patch is not None:
            yield patch
            patch = patch.next_patch


# =============================================================================
# LIVE MANEUVER NODE
# =============================================================================

@dataclass(eq=False)
class ManeuverNode:
    """
    A maneuver node living in the host's trajectory solver.

    Identity, not value, distinguishes nodes: two nodes with the same
    delta-v and epoch are still different nodes.

    Attributes
    ----------
    delta_v : np.ndarray
        (3,) velocity change (m/s) along (radial, normal, prograde).
    epoch : float
        Absolute epoch of the burn (s).
    patch : OrbitalElements, optional
        Patch the node sits on; its period drives whole-orbit nudges.
    """
    delta_v: np.ndarray
    epoch: float
    patch: Optional[OrbitalElements] = None

    def __post_init__(self):
        self.delta_v = np.array(self.delta_v, dtype=np.float64).reshape(3)

    @property
    def magnitude(self) -> float:
        """Delta-v magnitude (m/s)."""
        return float(np.linalg.norm(self.delta_v))
