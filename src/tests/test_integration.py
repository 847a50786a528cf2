"""
===============================================================================
KARTOGRAPH - Integration Test Suite
===============================================================================
End-to-end checks of the planning engine against the reference host:

    1. Reference host builds from configuration
    2. Warp with a lagging host is caught by the overshoot watchdog
    3. Warp with an instant host arrives on its own
    4. Telemetry recorded to a DataFrame
    5. Engine lifecycle: focus changes, visibility, plan persistence
    6. Command line modes
===============================================================================
"""

import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

import copy

import pandas as pd
import pytest

from kartograph.config import DEFAULT_CONFIG, load_config
from kartograph.engine import KartographEngine
from kartograph.guidance.event_solver import EventKind
from kartograph.guidance.maneuver_editor import Axis, EditorState
from kartograph.guidance.maneuver_plan import SavedPlanCollection
from kartograph.main import main
from kartograph.simulation.sim_engine import SimulationEngine
from kartograph.simulation.sim_host import SimulatedHost, build_patch_chain
from kartograph.simulation.warp_scheduler import WarpState


# =============================================================================
# Fixtures
# =============================================================================

def make_config(**simulation):
    config = copy.deepcopy(DEFAULT_CONFIG)
    config["simulation"].update(simulation)
    return config


@pytest.fixture
def lagging_config():
    return make_config(rate_change_delay_ticks=3, lookahead=1.0)


@pytest.fixture
def instant_config():
    return make_config(rate_change_delay_ticks=0, lookahead=1.0)


@pytest.fixture
def example_config():
    path = os.path.join(os.path.dirname(__file__), '..', '..', 'config', 'kartograph.yaml')
    config = load_config(path)
    config["engine"]["saved_plans_path"] = None
    return config


# =============================================================================
# Reference host
# =============================================================================

class TestReferenceHost:

    def test_host_from_defaults(self):
        host = SimulatedHost.from_config(load_config())
        snapshot = host.vessel_snapshot()
        assert snapshot.name == "Kerbal X"
        assert snapshot.orbit.body.name == "Kerbin"
        assert snapshot.orbit.is_final
        assert host.gate.node_creation_allowed()

    def test_patch_chain_links(self, example_config):
        host = SimulatedHost.from_config(example_config)
        patches = list(host.vessel_snapshot().patches())
        assert [p.body.name for p in patches] == ["Kerbin", "Mun"]
        assert patches[0].end_epoch == 20000.0
        assert not patches[0].is_final
        assert patches[1].is_final
        assert host.target_orbit.inclination == 6.0

    def test_empty_patch_list_rejected(self):
        with pytest.raises(ValueError):
            build_patch_chain([], {}, 0.0)

    def test_facility_gate_closed(self):
        config = copy.deepcopy(DEFAULT_CONFIG)
        config["facilities"]["mission_control"] = 0
        sim = SimulationEngine(config)
        sim.initialize()
        assert sim.engine.editor.create_node() is None

    def test_vessel_propagates_with_clock(self):
        sim = SimulationEngine(make_config(rate_change_delay_ticks=0))
        start = sim.host.vessel_snapshot().orbit.true_anomaly
        sim.host.time_warp.set_rate(5, True)
        sim.run_for(5)
        later = sim.host.vessel_snapshot().orbit
        assert later.epoch == pytest.approx(100.0)
        assert later.true_anomaly != start

    def test_escaping_vessel_periapsis_stays_put(self):
        config = make_config(rate_change_delay_ticks=0)
        config["scenario"]["vessel"]["patches"] = [{
            "body": "Kerbin", "semi_major_axis": -2.0e6, "eccentricity": 1.4,
            "true_anomaly": -0.5,
        }]
        sim = SimulationEngine(config)
        first = sim.host.vessel_snapshot().orbit
        pe_epoch = first.epoch + first.time_to_periapsis
        sim.host.time_warp.set_rate(3, True)
        sim.run_for(100)
        later = sim.host.vessel_snapshot().orbit
        assert later.epoch == pytest.approx(100.0)
        assert later.epoch + later.time_to_periapsis == pytest.approx(pe_epoch, rel=1e-9)


# =============================================================================
# Warp runs
# =============================================================================

class TestWarpRuns:

    def test_lagging_host_overshoot_corrected(self, lagging_config):
        sim = SimulationEngine(lagging_config)
        sim.initialize()
        sim.engine.editor.quick_warp(3600.0)
        df = sim.run_until_idle()

        assert sim.engine.scheduler.state is WarpState.IDLE
        assert sim.engine.scheduler.overshoot_corrections == 1
        assert sim.host.time_warp.current_rate_index == 0
        assert sim.current_time > 3600.0 + 1.0
        assert df["warp_state"].iloc[-1] == "idle"

    def test_instant_host_arrives(self, instant_config):
        sim = SimulationEngine(instant_config)
        sim.initialize()
        sim.engine.editor.quick_warp(3600.0)
        sim.run_until_idle()

        assert sim.engine.scheduler.overshoot_corrections == 0
        assert sim.current_time == pytest.approx(3600.0, abs=1.0)
        assert sim.host.time_warp.current_rate_index == 0

    def test_cancel_mid_warp(self, lagging_config):
        sim = SimulationEngine(lagging_config)
        sim.initialize()
        sim.engine.warp_panel.select_epoch(1.0e6)
        sim.engine.warp_panel.engage()
        sim.run_for(5)
        sim.engine.scheduler.cancel()
        assert sim.step() is WarpState.IDLE
        assert sim.host.time_warp.current_rate_index == 0

    def test_tick_limit(self, lagging_config):
        sim = SimulationEngine(lagging_config)
        sim.initialize()
        sim.engine.scheduler.engage(1.0e9)
        sim.run_until_idle(max_ticks=2)
        assert sim.tick_count == 2
        assert sim.engine.scheduler.state is WarpState.WARPING

    def test_warp_to_first_node(self, example_config):
        sim = SimulationEngine(example_config)
        sim.initialize()
        editor = sim.engine.editor
        editor.create_node()
        assert editor.warp_to_node(60.0) is not None
        sim.run_until_idle()
        assert sim.current_time < editor.selected_node.epoch


# =============================================================================
# Telemetry
# =============================================================================

class TestTelemetry:

    def test_dataframe_columns(self, lagging_config):
        sim = SimulationEngine(lagging_config)
        sim.initialize()
        sim.engine.editor.quick_warp(3600.0)
        df = sim.run_until_idle()
        assert isinstance(df, pd.DataFrame)
        assert df.index.name == "tick"
        assert len(df) == sim.tick_count
        for column in ("time", "rate_index", "rate", "warp_state", "target_epoch",
                       "host_target", "live_nodes"):
            assert column in df.columns
        assert df["time"].is_monotonic_increasing
        assert df["host_target"].iloc[0] == pytest.approx(3600.0)
        assert pd.isna(df["host_target"].iloc[-1])

    def test_empty_telemetry(self):
        sim = SimulationEngine(load_config())
        assert sim.get_telemetry().empty

    def test_summary_and_csv(self, lagging_config, tmp_path):
        sim = SimulationEngine(lagging_config)
        sim.initialize()
        sim.engine.editor.quick_warp(3600.0)
        sim.run_until_idle()
        summary = sim.get_warp_summary()
        assert summary["overshoot_corrections"] == 1
        assert summary["max_rate"] == 100000.0
        path = tmp_path / "telemetry.csv"
        sim.save_telemetry(str(path))
        assert len(pd.read_csv(path)) == sim.tick_count


# =============================================================================
# Engine lifecycle
# =============================================================================

class TestEngineLifecycle:

    def test_plans_persist_across_engines(self, tmp_path):
        config = load_config()
        config["engine"]["saved_plans_path"] = str(tmp_path / "plans.json")

        sim = SimulationEngine(config)
        sim.initialize()
        editor = sim.engine.editor
        editor.create_node()
        editor.increment(Axis.PROGRADE)
        editor.store_plan()
        sim.engine.teardown()
        sim.engine.teardown()

        fresh = SimulationEngine(config)
        fresh.initialize()
        assert len(fresh.engine.editor.saved) == 1
        assert fresh.engine.total_delta_v(0) == pytest.approx(1.0)
        assert fresh.engine.total_delta_v(1) is None
        assert len(SavedPlanCollection.load(config["engine"]["saved_plans_path"])) == 1

    def test_focus_change_resets_selection(self):
        sim = SimulationEngine(load_config())
        sim.initialize()
        editor = sim.engine.editor
        editor.create_node()
        editor.create_node()
        assert editor.selected_index == 1

        other = sim.host.vessel_snapshot()
        other = type(other)("Probe", other.orbit)
        sim.engine.on_presentation_tick(other)
        assert sim.engine.vessel.name == "Probe"
        assert editor.selected_index == 0

    def test_visibility_and_suspend(self):
        sim = SimulationEngine(load_config())
        sim.initialize()
        panel = sim.engine.editor.panel
        panel.toggle_window()
        assert panel.is_active
        sim.engine.become_hidden()
        assert not panel.is_active
        sim.engine.become_visible()
        sim.engine.suspend()
        assert not panel.is_active
        assert not sim.engine.warp_panel.panel.is_active
        sim.engine.resume()
        assert panel.is_active

    def test_events_from_engine(self, example_config):
        sim = SimulationEngine(example_config)
        sim.initialize()
        kinds = {event.kind for event in sim.engine.events()}
        assert {EventKind.APOAPSIS, EventKind.PERIAPSIS, EventKind.SOI_TRANSITION,
                EventKind.ASCENDING_NODE, EventKind.DESCENDING_NODE} <= kinds

    def test_engine_accepts_empty_sections(self):
        host = SimulatedHost.from_config(load_config())
        engine = KartographEngine(host.trajectory, host.time_warp, host.gate,
                                  {"engine": None, "warp": None})
        assert engine.editor.node_offset == 600.0
        assert engine.scheduler.tolerance == 1.0

    def test_no_vessel_no_events(self):
        host = SimulatedHost.from_config(load_config())
        engine = KartographEngine(host.trajectory, host.time_warp, host.gate)
        engine.init(None)
        assert engine.events() == []
        assert engine.editor.state is EditorState.NO_PLAN


# =============================================================================
# Command line
# =============================================================================

class TestCommandLine:

    def test_events_mode(self, capsys):
        assert main(["--events"]) == 0
        out = capsys.readouterr().out
        assert "Orbit events for Kerbal X" in out
        assert "Ap" in out

    def test_warp_ahead_mode(self, capsys):
        assert main(["--warp-ahead", "3600"]) == 0
        assert "Arrived at" in capsys.readouterr().out

    def test_demo_mode(self, capsys):
        assert main(["--demo"]) == 0
        out = capsys.readouterr().out
        assert "Stored plan: 2 maneuver(s)" in out
        assert "Live nodes after delete-all: 0" in out
        assert "Restored: Maneuver:1 of 2" in out

    def test_demo_with_closed_facility_gate(self, tmp_path, capsys):
        path = tmp_path / "closed.yaml"
        path.write_text("facilities:\n  tracking_station: 0\n  mission_control: 0\n")
        assert main(["--config", str(path), "--demo"]) == 0
        out = capsys.readouterr().out
        assert "node creation not permitted" in out
        assert "Stored plan" not in out

    def test_plans_mode(self, tmp_path, capsys):
        saved = SavedPlanCollection()
        saved.store([])
        path = tmp_path / "plans.json"
        saved.save(str(path))
        assert main(["--plans", str(path)]) == 0
        assert "Saved plans in" in capsys.readouterr().out
