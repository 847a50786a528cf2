"""
===============================================================================
KARTOGRAPH - Planning Engine
===============================================================================
Single object the host constructs once and drives explicitly.

Lifecycle hooks (called by the host, never discovered globally):

    init(vessel)            load saved plans, adopt the focused vessel
    on_focus_changed(v)     host switched to another vessel
    on_presentation_tick(v) refresh snapshots, clamp warp selection
    on_fixed_tick()         warp-to overshoot watchdog
    become_visible / become_hidden / suspend / resume
    teardown()              persist saved plans

The engine owns the saved plans, the selection state and the warp request.
The live node sequence, the clock and the warp primitive stay with the
host.
===============================================================================
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from kartograph.config import DEFAULT_CONFIG
from kartograph.dynamics.orbit_snapshot import VesselSnapshot
from kartograph.guidance.event_solver import OrbitalEventSolver, OrbitEvent
from kartograph.guidance.maneuver_editor import ManeuverEditor
from kartograph.guidance.maneuver_plan import SavedPlanCollection
from kartograph.guidance.time_control import TimeControl
from kartograph.simulation.host import FacilityGate, TimeWarp, TrajectorySolver
from kartograph.simulation.warp_scheduler import WarpState, WarpToPanel, WarpToScheduler

logger = logging.getLogger(__name__)


class KartographEngine:
    """
    Maneuver and warp planning engine.

    Parameters
    ----------
    trajectory : TrajectorySolver
        Host trajectory solver holding the live nodes.
    time_warp : TimeWarp
        Host clock and coarse warp primitive.
    gate : FacilityGate
        Node-creation permission check.
    config : dict, optional
        Configuration (``engine`` and ``warp`` sections are read); defaults
        from ``kartograph.config.DEFAULT_CONFIG``.

    Attributes
    ----------
    solver : OrbitalEventSolver
    scheduler : WarpToScheduler
    editor : ManeuverEditor
    warp_panel : WarpToPanel
    """

    def __init__(
        self,
        trajectory: TrajectorySolver,
        time_warp: TimeWarp,
        gate: FacilityGate,
        config: Optional[Dict[str, Any]] = None,
    ) -> None:
        config = config or DEFAULT_CONFIG
        engine_cfg = {**DEFAULT_CONFIG["engine"], **(config.get("engine") or {})}
        warp_cfg = {**DEFAULT_CONFIG["warp"], **(config.get("warp") or {})}

        self.time_warp = time_warp
        self.saved_plans_path: Optional[str] = engine_cfg["saved_plans_path"]

        self.solver = OrbitalEventSolver(soi_margin=engine_cfg["soi_transition_margin_s"])
        self.scheduler = WarpToScheduler(time_warp, tolerance=warp_cfg["overshoot_tolerance_s"])
        self.editor = ManeuverEditor(
            trajectory,
            time_warp,
            gate,
            self.scheduler,
            node_offset=engine_cfg["node_default_offset_s"],
            step_index=engine_cfg["default_step_index"],
            transition_margin=engine_cfg["editor_transition_margin_s"],
            time_control=TimeControl(self.solver),
        )
        self.warp_panel = WarpToPanel(
            self.scheduler,
            trajectory,
            time_control=TimeControl(self.solver),
            default_offset=engine_cfg["node_default_offset_s"],
            transition_margin=engine_cfg["soi_transition_margin_s"],
        )
        self.vessel: Optional[VesselSnapshot] = None
        self.initialized: bool = False

        logger.info("KartographEngine created")

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def init(self, vessel: Optional[VesselSnapshot] = None) -> None:
        """Load persisted plans and adopt the focused vessel."""
        if self.saved_plans_path and Path(self.saved_plans_path).exists():
            self.editor.saved = SavedPlanCollection.load(self.saved_plans_path)
        self.on_focus_changed(vessel)
        self.initialized = True
        logger.info(
            "Engine initialized: vessel=%s, saved plans=%d",
            None if vessel is None else vessel.name, len(self.editor.saved),
        )

    def on_focus_changed(self, vessel: Optional[VesselSnapshot]) -> None:
        """The host switched the focused vessel (or lost focus)."""
        previous = None if self.vessel is None else self.vessel.name
        self.vessel = vessel
        self.editor.set_vessel(vessel)
        self.warp_panel.set_vessel(vessel)
        self.editor.sync_selection()
        current = None if vessel is None else vessel.name
        if previous != current:
            logger.info("Focus changed: %s -> %s", previous, current)

    def on_presentation_tick(self, vessel: Optional[VesselSnapshot]) -> None:
        """Refresh snapshots before the presentation layer reads or edits."""
        if vessel is not None and (self.vessel is None or vessel.name != self.vessel.name):
            self.on_focus_changed(vessel)
            return
        self.vessel = vessel
        self.editor.set_vessel(vessel)
        self.warp_panel.set_vessel(vessel)
        self.warp_panel.refresh()
        self.editor.sync_selection()

    def on_fixed_tick(self) -> WarpState:
        """Physics tick: run the warp overshoot watchdog."""
        return self.scheduler.on_fixed_tick()

    def become_visible(self) -> None:
        for panel in self._panels:
            panel.become_visible()

    def become_hidden(self) -> None:
        for panel in self._panels:
            panel.become_hidden()

    def suspend(self) -> None:
        for panel in self._panels:
            panel.suspend()

    def resume(self) -> None:
        for panel in self._panels:
            panel.resume()

    @property
    def _panels(self):
        return (self.editor.panel, self.editor.saved_panel, self.warp_panel.panel)

    def teardown(self) -> None:
        """Persist saved plans. Safe to call more than once."""
        if not self.initialized:
            return
        if self.saved_plans_path:
            self.editor.saved.save(self.saved_plans_path)
        self.initialized = False
        logger.info("Engine torn down")

    # =========================================================================
    # QUERIES
    # =========================================================================

    def events(self) -> List[OrbitEvent]:
        """Orbit events of the focused vessel from now on."""
        if self.vessel is None:
            return []
        return self.solver.events(self.vessel, self.time_warp.universal_time)

    def total_delta_v(self, index: int) -> Optional[float]:
        """Total delta-v of saved plan *index*, None if it does not exist."""
        saved = self.editor.saved
        if not 0 <= index < len(saved):
            return None
        return saved[index].total_delta_v
