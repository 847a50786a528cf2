"""
===============================================================================
KARTOGRAPH - Orbit Math Utilities
===============================================================================
Stateless angle and anomaly routines shared by the event solver, the
maneuver editor and the warp-to panel.

    1. **Angle wrapping** -- fold any finite angle into [0, 2*pi).

    2. **Anomaly <-> time** -- Kepler's equation for elliptic, parabolic and
       hyperbolic conics, giving the time since periapsis passage for a
       true anomaly and from it the absolute epoch at which the vessel
       reaches that anomaly.

    3. **Conic geometry** -- radius at a true anomaly and its inverse, and
       the orbit-normal vector used by the node solver.

Snapshots carry their angles in degrees (inclination, LAN, argument of
periapsis); they are converted to radians here before any trigonometry.
True anomalies passed to and returned from this module are radians.

References
----------
    [1] Curtis, "Orbital Mechanics for Engineering Students", 4th ed., Ch. 3.
    [2] Vallado, "Fundamentals of Astrodynamics and Applications", 4th ed.
===============================================================================
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

import numpy as np

from kartograph.core.constants import DEG2RAD, PI, TWO_PI

if TYPE_CHECKING:
    from kartograph.dynamics.orbit_snapshot import OrbitalElements

# Eccentricity band treated as parabolic
PARABOLIC_TOLERANCE = 1e-9


# =============================================================================
# ANGLES
# =============================================================================

def angle_normalize(theta: float) -> float:
    """
    Fold an angle into [0, 2*pi).

    Large negative inputs are handled in one step rather than by repeated
    addition of 2*pi.

    Parameters
    ----------
    theta : float
        Any finite angle (rad).

    Returns
    -------
    float
        Equivalent angle in [0, 2*pi).
    """
    wrapped = math.fmod(theta, TWO_PI)
    if wrapped < 0.0:
        wrapped += TWO_PI
    # fmod of a tiny negative number can round up to exactly 2*pi
    if wrapped >= TWO_PI:
        wrapped = 0.0
    return wrapped


def _signed_angle(theta: float) -> float:
    """Fold an angle into (-pi, pi]."""
    wrapped = angle_normalize(theta)
    if wrapped > PI:
        wrapped -= TWO_PI
    return wrapped


# =============================================================================
# ANOMALY <-> TIME
# =============================================================================

def time_since_periapsis(orbit: OrbitalElements, true_anomaly: float) -> float:
    """
    Time elapsed since periapsis passage when the vessel is at a given
    true anomaly.

    Elliptic (e < 1):
        E = 2 atan( sqrt((1-e)/(1+e)) tan(nu/2) )
        M = E - e sin E,        t = M / (2 pi) * T,   t in [0, T)

    Parabolic (e = 1), Barker's equation with D = tan(nu/2):
        t = sqrt(2 q^3 / mu) (D + D^3 / 3)

    Hyperbolic (e > 1):
        H = 2 atanh( sqrt((e-1)/(e+1)) tan(nu/2) )
        M = e sinh H - H,       t = M / sqrt(mu / (-a)^3)

    Open-orbit results are signed: negative before periapsis.

    Parameters
    ----------
    orbit : OrbitalElements
        Snapshot providing eccentricity, period, semi-major axis, periapsis
        radius and the reference body's gravitational parameter.
    true_anomaly : float
        True anomaly (rad).

    Returns
    -------
    float
        Time since periapsis (s).

    Raises
    ------
    ValueError
        If the anomaly lies beyond the asymptote of a hyperbolic orbit.
    """
    e = orbit.eccentricity
    nu = _signed_angle(true_anomaly)
    half = 0.5 * nu

    if e < 1.0 - PARABOLIC_TOLERANCE:
        ecc_anomaly = 2.0 * math.atan2(
            math.sqrt(1.0 - e) * math.sin(half),
            math.sqrt(1.0 + e) * math.cos(half),
        )
        mean_anomaly = angle_normalize(ecc_anomaly - e * math.sin(ecc_anomaly))
        return mean_anomaly / TWO_PI * orbit.period

    mu = orbit.body.gravitational_parameter

    if e <= 1.0 + PARABOLIC_TOLERANCE:
        d = math.tan(half)
        q = orbit.periapsis_radius
        return math.sqrt(2.0 * q ** 3 / mu) * (d + d ** 3 / 3.0)

    limit = math.acos(-1.0 / e)
    if abs(nu) >= limit:
        raise ValueError(
            f"True anomaly {nu:.4f} rad lies beyond the hyperbolic asymptote "
            f"(|nu| < {limit:.4f} rad for e = {e:.4f})."
        )
    hyp_anomaly = 2.0 * math.atanh(math.sqrt((e - 1.0) / (e + 1.0)) * math.tan(half))
    mean_anomaly = e * math.sinh(hyp_anomaly) - hyp_anomaly
    mean_motion = math.sqrt(mu / (-orbit.semi_major_axis) ** 3)
    return mean_anomaly / mean_motion


def epoch_at_true_anomaly(orbit: OrbitalElements, true_anomaly: float) -> float:
    """
    Absolute epoch at which the vessel passes a true anomaly, measured from
    the snapshot's own epoch and true anomaly without any period walk.

    For closed orbits the result lies within one period of the snapshot
    epoch (either side). For open orbits it is the unique passage.
    """
    return orbit.epoch + (
        time_since_periapsis(orbit, true_anomaly)
        - time_since_periapsis(orbit, orbit.true_anomaly)
    )


def true_anomaly_to_epoch(
    orbit: OrbitalElements,
    true_anomaly: float,
    after_epoch: float,
) -> float:
    """
    Next epoch at or after *after_epoch* at which the vessel passes a true
    anomaly.

    The raw passage epoch is moved by whole orbital periods until it is the
    tightest future occurrence:

        e >= after_epoch   and   e - T < after_epoch

    Parameters
    ----------
    orbit : OrbitalElements
        Closed-orbit snapshot (period > 0).
    true_anomaly : float
        True anomaly (rad).
    after_epoch : float
        Earliest acceptable epoch (s).

    Returns
    -------
    float
        Epoch of the next passage (s).

    Raises
    ------
    ValueError
        If the orbit is not periodic (period <= 0). Callers are expected to
        check this first; walking by a non-positive period never terminates.
    """
    period = orbit.period
    if not period > 0.0:
        raise ValueError(
            f"Epoch walk is undefined for period <= 0 (got {period!r} s). "
            "Open (hyperbolic/parabolic) orbits do not repeat."
        )

    epoch = epoch_at_true_anomaly(orbit, true_anomaly)

    # Jump most of the way, then settle against rounding
    if epoch < after_epoch:
        epoch += math.ceil((after_epoch - epoch) / period) * period
    elif epoch - period >= after_epoch:
        epoch -= math.floor((epoch - after_epoch) / period) * period
    while epoch < after_epoch:
        epoch += period
    while epoch - period >= after_epoch:
        epoch -= period
    return epoch


# =============================================================================
# CONIC GEOMETRY
# =============================================================================

def radius_at_true_anomaly(orbit: OrbitalElements, true_anomaly: float) -> float:
    """
    Orbital radius at a true anomaly from the conic equation:

        r = p / (1 + e cos nu)

    Returns
    -------
    float
        Radius from the reference body's center (m).
    """
    return orbit.semi_latus_rectum / (1.0 + orbit.eccentricity * math.cos(true_anomaly))


def true_anomaly_at_radius(orbit: OrbitalElements, radius: float) -> float:
    """
    Outbound true anomaly at which the orbit reaches *radius*:

        nu = acos( (p / r - 1) / e ),   nu in [0, pi]

    The inbound crossing is the mirror point 2*pi - nu. Radii outside the
    orbit's range clamp to periapsis (0) or apoapsis (pi). A circular
    orbit returns 0.
    """
    e = orbit.eccentricity
    if e <= 0.0:
        return 0.0
    cos_nu = (orbit.semi_latus_rectum / radius - 1.0) / e
    return math.acos(float(np.clip(cos_nu, -1.0, 1.0)))


def orbit_normal(orbit: OrbitalElements) -> np.ndarray:
    """
    Unit vector describing the orbit plane, built from inclination and LAN:

        n = ( sin i cos LAN,  sin i sin LAN,  cos i )

    This is the frame the node solver's longitude offsets are tuned for; it
    is rotated a quarter turn about z from the angular-momentum direction.
    """
    inc = orbit.inclination * DEG2RAD
    lan = orbit.lan * DEG2RAD
    return np.array([
        math.sin(inc) * math.cos(lan),
        math.sin(inc) * math.sin(lan),
        math.cos(inc),
    ])
