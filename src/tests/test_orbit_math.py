"""
===============================================================================
KARTOGRAPH - Orbit Math Test Suite
===============================================================================
Tests for the anomaly/time conversions and conic geometry helpers: angle
normalization, time since periapsis on every conic type, the tightest-epoch
walk, radius <-> true anomaly, the orbit-plane vector, and the derived fields
of OrbitalElements.from_elements / with_epoch.
===============================================================================
"""

import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

import math

import numpy as np
import pytest
from numpy.testing import assert_allclose

from kartograph.core.constants import PI, TWO_PI
from kartograph.core.orbit_math import (
    angle_normalize,
    epoch_at_true_anomaly,
    orbit_normal,
    radius_at_true_anomaly,
    time_since_periapsis,
    true_anomaly_at_radius,
    true_anomaly_to_epoch,
)
from kartograph.dynamics.orbit_snapshot import CelestialBody, OrbitalElements


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def kerbin():
    return CelestialBody("Kerbin", 600000.0, 3.5316e12, 70000.0)


@pytest.fixture
def ellipse(kerbin):
    """Slightly eccentric parking orbit, snapshot at periapsis at t=0."""
    return OrbitalElements.from_elements(kerbin, 750000.0, 0.1)


@pytest.fixture
def hyperbola(kerbin):
    """Escape trajectory approaching periapsis."""
    return OrbitalElements.from_elements(kerbin, -2.0e6, 1.4, true_anomaly=-0.8, epoch=1000.0)


# =============================================================================
# Angle normalization
# =============================================================================

class TestAngleNormalize:

    @pytest.mark.parametrize("theta", [
        -7.0 * PI, -1e-12, -0.1, 0.0, 1.0, PI, TWO_PI, 13.0, 1e6, -1e6,
    ])
    def test_result_in_range_and_equivalent(self, theta):
        result = angle_normalize(theta)
        assert 0.0 <= result < TWO_PI
        assert_allclose(math.cos(result), math.cos(theta), atol=1e-9)
        assert_allclose(math.sin(result), math.sin(theta), atol=1e-9)

    def test_already_normalized_unchanged(self):
        assert angle_normalize(2.5) == pytest.approx(2.5)


# =============================================================================
# Time since periapsis
# =============================================================================

class TestTimeSincePeriapsis:

    def test_zero_at_periapsis(self, ellipse):
        assert time_since_periapsis(ellipse, 0.0) == pytest.approx(0.0, abs=1e-9)

    def test_half_period_at_apoapsis(self, ellipse):
        assert_allclose(time_since_periapsis(ellipse, PI), 0.5 * ellipse.period, rtol=1e-9)

    def test_elliptic_range(self, ellipse):
        for nu in np.linspace(-3.0, 9.0, 25):
            t = time_since_periapsis(ellipse, nu)
            assert 0.0 <= t < ellipse.period

    def test_hyperbolic_signed(self, hyperbola):
        assert time_since_periapsis(hyperbola, -0.5) < 0.0
        assert time_since_periapsis(hyperbola, 0.5) > 0.0
        assert_allclose(
            time_since_periapsis(hyperbola, 0.5),
            -time_since_periapsis(hyperbola, -0.5),
            rtol=1e-12,
        )

    def test_hyperbolic_beyond_asymptote_raises(self, hyperbola):
        limit = math.acos(-1.0 / hyperbola.eccentricity)
        with pytest.raises(ValueError):
            time_since_periapsis(hyperbola, limit + 0.01)


# =============================================================================
# Epoch walk
# =============================================================================

class TestTrueAnomalyToEpoch:

    @pytest.mark.parametrize("after", [-50000.0, -1.0, 0.0, 123.4, 2171.0, 1.0e6])
    @pytest.mark.parametrize("nu", [0.0, 1.0, PI, 5.5])
    def test_tightest_future_occurrence(self, ellipse, nu, after):
        epoch = true_anomaly_to_epoch(ellipse, nu, after)
        assert epoch >= after
        assert epoch - ellipse.period < after

    def test_matches_raw_passage_modulo_period(self, ellipse):
        raw = epoch_at_true_anomaly(ellipse, 2.0)
        epoch = true_anomaly_to_epoch(ellipse, 2.0, 7.5 * ellipse.period)
        laps = (epoch - raw) / ellipse.period
        assert_allclose(laps, round(laps), atol=1e-9)

    def test_open_orbit_raises(self, hyperbola):
        with pytest.raises(ValueError):
            true_anomaly_to_epoch(hyperbola, 0.0, 0.0)

    def test_hyperbolic_periapsis_passage(self, hyperbola):
        # Single pass relative to the snapshot, no period walk
        epoch = epoch_at_true_anomaly(hyperbola, 0.0)
        assert_allclose(epoch, hyperbola.epoch + hyperbola.time_to_periapsis, rtol=1e-12)


# =============================================================================
# Conic geometry
# =============================================================================

class TestConicGeometry:

    def test_radius_at_apsides(self, ellipse):
        assert_allclose(radius_at_true_anomaly(ellipse, 0.0), ellipse.periapsis_radius, rtol=1e-12)
        assert_allclose(radius_at_true_anomaly(ellipse, PI), ellipse.apoapsis_radius, rtol=1e-12)

    def test_radius_round_trip(self, ellipse):
        nu = true_anomaly_at_radius(ellipse, 700000.0)
        assert 0.0 < nu < PI
        assert_allclose(radius_at_true_anomaly(ellipse, nu), 700000.0, rtol=1e-9)

    def test_radius_outside_range_clipped(self, ellipse):
        assert true_anomaly_at_radius(ellipse, 1.0) == pytest.approx(0.0)
        assert true_anomaly_at_radius(ellipse, 1.0e9) == pytest.approx(PI)

    def test_circular_orbit_returns_zero(self, kerbin):
        circle = OrbitalElements.from_elements(kerbin, 700000.0, 0.0)
        assert true_anomaly_at_radius(circle, 700000.0) == 0.0

    def test_orbit_normal_equatorial(self, ellipse):
        assert_allclose(orbit_normal(ellipse), [0.0, 0.0, 1.0], atol=1e-12)

    def test_orbit_normal_polar(self, kerbin):
        polar = OrbitalElements.from_elements(kerbin, 700000.0, 0.0, inclination=90.0, lan=90.0)
        normal = orbit_normal(polar)
        assert_allclose(normal, [0.0, 1.0, 0.0], atol=1e-12)
        assert_allclose(np.linalg.norm(normal), 1.0, rtol=1e-12)


# =============================================================================
# OrbitalElements
# =============================================================================

class TestOrbitalElements:

    def test_derived_fields(self, ellipse):
        a, e = 750000.0, 0.1
        assert_allclose(ellipse.periapsis_radius, a * (1 - e))
        assert_allclose(ellipse.apoapsis_radius, a * (1 + e))
        assert_allclose(ellipse.semi_latus_rectum, a * (1 - e ** 2))
        assert_allclose(ellipse.period, TWO_PI * math.sqrt(a ** 3 / 3.5316e12))
        assert ellipse.is_periodic

    def test_time_to_apsides_at_periapsis(self, ellipse):
        # Sitting on periapsis reports a full lap
        assert_allclose(ellipse.time_to_periapsis, ellipse.period, rtol=1e-12)
        assert_allclose(ellipse.time_to_apoapsis, 0.5 * ellipse.period, rtol=1e-12)

    def test_time_to_apsides_mid_orbit(self, kerbin):
        orbit = OrbitalElements.from_elements(kerbin, 750000.0, 0.1, true_anomaly=0.5 * PI)
        assert 0.0 < orbit.time_to_apoapsis < orbit.time_to_periapsis <= orbit.period
        assert_allclose(orbit.time_to_periapsis - orbit.time_to_apoapsis, 0.5 * orbit.period, rtol=1e-9)

    def test_hyperbolic_fields(self, hyperbola):
        assert not hyperbola.is_periodic
        assert hyperbola.period == 0.0
        assert math.isnan(hyperbola.time_to_apoapsis)
        assert hyperbola.time_to_periapsis > 0.0
        assert hyperbola.apoapsis_altitude < 0.0

    @pytest.mark.parametrize("a, e", [(750000.0, 1.0), (-750000.0, 0.5), (750000.0, 1.5)])
    def test_invalid_conics_rejected(self, kerbin, a, e):
        with pytest.raises(ValueError):
            OrbitalElements.from_elements(kerbin, a, e)

    def test_with_epoch_full_period_returns_to_start(self, kerbin):
        orbit = OrbitalElements.from_elements(kerbin, 750000.0, 0.3, true_anomaly=1.2, epoch=50.0)
        later = orbit.with_epoch(orbit.epoch + 3.0 * orbit.period)
        assert_allclose(math.cos(later.true_anomaly), math.cos(1.2), atol=1e-8)
        assert_allclose(math.sin(later.true_anomaly), math.sin(1.2), atol=1e-8)
        assert later.epoch == orbit.epoch + 3.0 * orbit.period

    def test_with_epoch_keeps_event_epochs(self, kerbin):
        orbit = OrbitalElements.from_elements(kerbin, 750000.0, 0.3, true_anomaly=0.4)
        pe_epoch = orbit.epoch + orbit.time_to_periapsis
        later = orbit.with_epoch(orbit.epoch + 100.0)
        assert_allclose(later.epoch + later.time_to_periapsis, pe_epoch, rtol=1e-9)

    def test_hyperbolic_with_epoch_keeps_periapsis_epoch(self, kerbin):
        orbit = OrbitalElements.from_elements(kerbin, -2.0e6, 1.4, true_anomaly=-0.5)
        pe_epoch = orbit.epoch + orbit.time_to_periapsis
        later = orbit.with_epoch(orbit.epoch + 100.0)
        assert later.true_anomaly > orbit.true_anomaly
        assert_allclose(later.epoch + later.time_to_periapsis, pe_epoch, rtol=1e-9)

    def test_hyperbolic_with_epoch_through_periapsis(self, hyperbola):
        at_pe = hyperbola.with_epoch(hyperbola.epoch + hyperbola.time_to_periapsis)
        assert_allclose(at_pe.true_anomaly, 0.0, atol=1e-9)
        outbound = hyperbola.with_epoch(hyperbola.epoch + 2.0 * hyperbola.time_to_periapsis)
        assert_allclose(outbound.true_anomaly, 0.8, rtol=1e-9)
        assert outbound.time_to_periapsis < 0.0
