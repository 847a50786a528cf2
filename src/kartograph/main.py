"""
===============================================================================
KARTOGRAPH - COMMAND LINE
===============================================================================
Drives the planning engine against the reference host.

USAGE:
    kartograph --events                       # Orbit events for the scenario
    kartograph --warp-ahead 3600              # Warp one hour ahead
    kartograph --warp-to 25000                # Warp to an absolute epoch
    kartograph --plans output/plans.json      # List saved plans in a file
    kartograph --demo                         # Create/edit/store/restore/warp
    kartograph --config config/kartograph.yaml --log-level DEBUG --events

DEPENDENCIES:
    numpy, pandas, pyyaml
===============================================================================
"""

import argparse
import logging
import sys
import time
from typing import Any, Dict, Optional

from kartograph.config import load_config
from kartograph.core.constants import EDITOR_NODE_LEADS
from kartograph.core.formatting import format_duration, format_epoch, format_number
from kartograph.guidance.maneuver_editor import Axis
from kartograph.guidance.maneuver_plan import SavedPlanCollection
from kartograph.simulation.sim_engine import SimulationEngine

logger = logging.getLogger("KARTOGRAPH_MAIN")


def setup_logging(level: str = "INFO", logfile: Optional[str] = None) -> None:
    """Configure root logging once for the command line."""
    handlers = [logging.StreamHandler(sys.stdout)]
    if logfile:
        handlers.append(logging.FileHandler(logfile, mode="w"))
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=handlers,
    )


# =============================================================================
# MODES
# =============================================================================

def print_events(sim: SimulationEngine) -> None:
    now = sim.current_time
    events = sim.engine.events()
    print(f"\n  Orbit events for {sim.host.vessel_name} at {format_epoch(now)}")
    print("-" * 70)
    if not events:
        print("  (none)")
    for event in events:
        print(f"  {event.label:<14} {format_epoch(event.epoch):<28} in {format_duration(event.epoch - now)}")
    print("-" * 70)


def run_warp(sim: SimulationEngine, target: float) -> Dict[str, Any]:
    """Engage a warp to *target* and tick until the watchdog reports IDLE."""
    sim.engine.warp_panel.select_epoch(target)
    sim.engine.warp_panel.engage()
    sim.run_until_idle()
    summary = sim.get_warp_summary()
    print(f"\n  Warp target:  {format_epoch(target)}")
    print(f"  Arrived at:   {format_epoch(sim.current_time)}")
    print(f"  Error:        {sim.current_time - target:+.2f} s")
    print(f"  Corrections:  {summary['overshoot_corrections']}")
    return summary


def print_plans(path: str) -> None:
    saved = SavedPlanCollection.load(path)
    print(f"\n  Saved plans in {path}: {len(saved)}")
    print("-" * 70)
    if len(saved):
        print(saved.to_dataframe().to_string(index=False))
    print("-" * 70)


def run_demo(sim: SimulationEngine) -> None:
    """Create two nodes, edit them, store the plan, wipe and restore it, then warp."""
    editor = sim.engine.editor

    if editor.create_node() is None:
        print("\n  Maneuver node creation not permitted; demo skipped")
        return
    editor.set_step_index(3)
    for _ in range(3):
        editor.increment(Axis.PROGRADE)
    editor.nudge_orbits(1)

    editor.create_node()
    editor.set_step_index(2)
    editor.increment(Axis.NORMAL)
    editor.decrement(Axis.RADIAL)

    plan = editor.store_plan()
    if plan is None:
        print("\n  No live maneuver nodes to store; demo skipped")
        return
    print(f"\n  Stored plan: {len(plan)} maneuver(s), total {format_number(plan.total_delta_v)}m/s")

    editor.delete_all()
    print(f"  Live nodes after delete-all: {editor.node_count}")

    editor.restore_plan(len(editor.saved) - 1)
    sim.engine.on_presentation_tick(sim.host.vessel_snapshot())
    print(f"  Restored: {editor.selection_label()}, next node in {format_duration(editor.time_to_node())}")

    lead = EDITOR_NODE_LEADS[0]
    if editor.warp_to_node(lead) is None:
        print("  Warp to node not available")
        return
    sim.run_until_idle()
    print(f"  Warped to {format_duration(editor.time_to_node())} before node 1")
    sim.get_warp_summary()


# =============================================================================
# MAIN
# =============================================================================

def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        description="Kartograph maneuver and warp planning engine",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--config", type=str, default=None,
                        help="YAML configuration file")
    parser.add_argument("--events", action="store_true",
                        help="Print orbit events for the configured vessel")
    parser.add_argument("--warp-to", type=float, default=None, metavar="EPOCH",
                        help="Warp to an absolute epoch (s)")
    parser.add_argument("--warp-ahead", type=float, default=None, metavar="SEC",
                        help="Warp a number of seconds ahead")
    parser.add_argument("--plans", type=str, default=None, metavar="FILE",
                        help="List saved plans stored in FILE")
    parser.add_argument("--demo", action="store_true",
                        help="Create, store, restore and warp to a plan")
    parser.add_argument("--telemetry", type=str, default=None, metavar="CSV",
                        help="Write warp telemetry to a CSV file")
    parser.add_argument("--log-level", type=str, default=None,
                        help="Logging level (overrides config)")
    args = parser.parse_args(argv)

    config = load_config(args.config)
    log_cfg = config.get("logging", {})
    setup_logging(args.log_level or log_cfg.get("level", "INFO"), log_cfg.get("file"))

    print("=" * 70)
    print("  KARTOGRAPH")
    print("  Maneuver & warp planning")
    print("=" * 70)

    if args.plans:
        print_plans(args.plans)
        return 0

    start = time.time()
    sim = SimulationEngine(config)
    sim.initialize()

    ran = False
    if args.events:
        print_events(sim)
        ran = True
    if args.demo:
        run_demo(sim)
        ran = True
    if args.warp_ahead is not None:
        run_warp(sim, sim.current_time + args.warp_ahead)
        ran = True
    if args.warp_to is not None:
        run_warp(sim, args.warp_to)
        ran = True
    if not ran:
        print_events(sim)

    if args.telemetry:
        sim.save_telemetry(args.telemetry)

    sim.engine.teardown()

    print("\n" + "=" * 70)
    print(f"  Done in {time.time() - start:.2f} s wall time")
    print("=" * 70)
    return 0


if __name__ == "__main__":
    sys.exit(main())
