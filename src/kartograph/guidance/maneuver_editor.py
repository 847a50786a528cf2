"""
===============================================================================
KARTOGRAPH - Maneuver Editor
===============================================================================
Selection and edit logic over the focused vessel's live maneuver nodes.

State machine over the selected node:

    NO_PLAN   -- the live sequence is empty
    SELECTED  -- one node tracked; re-resolved on every access. If the
                 vessel changed or the node vanished from the live
                 sequence, selection falls back to the first node.

Edits never touch a node directly. Each one builds the full delta-v vector
and epoch and hands both to the host's trajectory solver in a single
``update_node`` call, so the trajectory never sees a half-applied edit.

Every operation is gated by its preconditions (permission to create, a
selected node, a periodic orbit, ...) and is a logged no-op when they do
not hold.

Delta-v axes follow the node frame: 0 radial, 1 normal, 2 prograde.
===============================================================================
"""

import logging
from enum import Enum, IntEnum
from typing import Optional, Sequence

from kartograph.core.constants import (
    DEFAULT_DV_STEP_INDEX,
    DV_STEP_LADDER,
    EDITOR_TRANSITION_MARGIN,
    NODE_DEFAULT_OFFSET,
)
from kartograph.core.lifecycle import PanelLifecycle
from kartograph.dynamics.orbit_snapshot import ManeuverNode, VesselSnapshot
from kartograph.guidance.event_solver import EventKind
from kartograph.guidance.maneuver_plan import ManeuverPlan, SavedPlanCollection
from kartograph.guidance.time_control import TimeControl
from kartograph.simulation.host import FacilityGate, TimeWarp, TrajectorySolver
from kartograph.simulation.warp_scheduler import WarpRequest, WarpToScheduler

logger = logging.getLogger(__name__)


class Axis(IntEnum):
    """Delta-v components in the maneuver-node frame."""
    RADIAL = 0
    NORMAL = 1
    PROGRADE = 2


class EditorState(Enum):
    NO_PLAN = "no_plan"
    SELECTED = "selected"


class ManeuverEditor:
    """
    Creates, selects, edits, stores and restores maneuver nodes.

    Parameters
    ----------
    trajectory : TrajectorySolver
        Host-owned live node sequence.
    time_warp : TimeWarp
        Supplies the current epoch.
    gate : FacilityGate
        Permission check for node creation.
    scheduler : WarpToScheduler
        Used by the quick-warp actions.
    saved : SavedPlanCollection, optional
        Saved plans; a fresh collection when omitted.
    node_offset : float
        Seconds after "now" at which new nodes are placed.
    step_index : int
        Initial rung of the delta-v step ladder.
    transition_margin : float
        Seconds before the patch end used by the transition quick warp.
    """

    def __init__(
        self,
        trajectory: TrajectorySolver,
        time_warp: TimeWarp,
        gate: FacilityGate,
        scheduler: WarpToScheduler,
        saved: Optional[SavedPlanCollection] = None,
        node_offset: float = NODE_DEFAULT_OFFSET,
        step_index: int = DEFAULT_DV_STEP_INDEX,
        transition_margin: float = EDITOR_TRANSITION_MARGIN,
        time_control: Optional[TimeControl] = None,
    ) -> None:
        self.trajectory = trajectory
        self.time_warp = time_warp
        self.gate = gate
        self.scheduler = scheduler
        self.saved = saved if saved is not None else SavedPlanCollection()
        self.node_offset = node_offset
        self.transition_margin = transition_margin
        self.time_control = time_control or TimeControl()
        self.panel = PanelLifecycle("Maneuver Editor")
        self.saved_panel = PanelLifecycle("Saved Plans")

        self.step_index: int = DEFAULT_DV_STEP_INDEX
        self.set_step_index(step_index)

        self.vessel: Optional[VesselSnapshot] = None
        self._selected: Optional[ManeuverNode] = None
        self._selected_vessel: Optional[str] = None
        self._index: int = 0

    # =========================================================================
    # SELECTION
    # =========================================================================

    @property
    def _nodes(self) -> Sequence[ManeuverNode]:
        return self.trajectory.maneuver_nodes

    @property
    def _now(self) -> float:
        return self.time_warp.universal_time

    @property
    def _vessel_name(self) -> Optional[str]:
        return None if self.vessel is None else self.vessel.name

    def set_vessel(self, vessel: Optional[VesselSnapshot]) -> None:
        """Refresh the focused vessel snapshot (presentation tick)."""
        self.vessel = vessel

    def sync_selection(self) -> Optional[ManeuverNode]:
        """
        Re-resolve the selected node against the live sequence.

        Returns
        -------
        ManeuverNode or None
            The selected node, None in NO_PLAN.
        """
        nodes = self._nodes
        if not nodes:
            if self._selected is not None:
                logger.info("No live maneuver nodes left; editor back to NO_PLAN")
                self._selected = None
                self._index = 0
                self.panel.request_layout()
            return None

        if (
            self._selected is None
            or self._selected_vessel != self._vessel_name
            or self._selected not in nodes
        ):
            self._select(0)
        else:
            self._index = list(nodes).index(self._selected)
        return self._selected

    def _select(self, index: int) -> None:
        self._index = index
        self._selected = self._nodes[index]
        self._selected_vessel = self._vessel_name

    @property
    def state(self) -> EditorState:
        return EditorState.NO_PLAN if self.sync_selection() is None else EditorState.SELECTED

    @property
    def selected_node(self) -> Optional[ManeuverNode]:
        return self.sync_selection()

    @property
    def selected_index(self) -> Optional[int]:
        return None if self.sync_selection() is None else self._index

    def select_next(self) -> Optional[int]:
        """Select the following node, wrapping to the first."""
        if self.sync_selection() is None:
            return None
        self._select((self._index + 1) % len(self._nodes))
        return self._index

    def select_prev(self) -> Optional[int]:
        """Select the preceding node, wrapping to the last."""
        if self.sync_selection() is None:
            return None
        self._select((self._index - 1) % len(self._nodes))
        return self._index

    # =========================================================================
    # LIVE SEQUENCE
    # =========================================================================

    def create_node(self) -> Optional[ManeuverNode]:
        """
        Add a node at now + ``node_offset`` and select it.

        No-op returning None when the facility gate refuses.
        """
        if not self.gate.node_creation_allowed():
            logger.warning("Maneuver node creation not permitted by facility gate")
            return None
        node = self.trajectory.add_maneuver_node(self._now + self.node_offset)
        self._index = list(self._nodes).index(node)
        self._selected = node
        self._selected_vessel = self._vessel_name
        logger.info("Created maneuver node %d at epoch %.2f", self._index + 1, node.epoch)
        return node

    def delete_selected(self) -> bool:
        """Remove the selected node. Returns False when nothing is selected."""
        node = self.sync_selection()
        if node is None:
            return False
        self.trajectory.remove_node(node)
        logger.info("Deleted maneuver node %d", self._index + 1)
        self.sync_selection()
        return True

    def delete_all(self) -> int:
        """
        Remove every live node by repeatedly deleting the first one.

        Returns
        -------
        int
            Number of nodes removed.
        """
        removed = 0
        while self._nodes:
            before = len(self._nodes)
            self.trajectory.remove_node(self._nodes[0])
            if len(self._nodes) >= before:
                logger.error("Trajectory solver did not remove node; aborting delete-all")
                break
            removed += 1
        if removed:
            logger.info("Deleted all %d maneuver node(s)", removed)
        self.sync_selection()
        return removed

    # =========================================================================
    # SAVED PLANS
    # =========================================================================

    def store_plan(self) -> Optional[ManeuverPlan]:
        """Snapshot the live sequence into the saved collection."""
        return self.saved.store(self._nodes)

    def restore_plan(self, index: int) -> bool:
        """
        Replace the live sequence with saved plan *index*.

        All live nodes are deleted, then one node per stored maneuver is
        created in order with its delta-v and epoch applied.
        """
        try:
            plan = self.saved[index]
        except IndexError:
            logger.warning("Restore requested for missing saved plan #%d", index)
            return False
        self.restore(plan)
        logger.info("Restored saved plan #%d (%d maneuver(s))", index, len(plan))
        return True

    def restore(self, plan: ManeuverPlan) -> None:
        self.delete_all()
        for maneuver in plan:
            node = self.trajectory.add_maneuver_node(maneuver.epoch)
            self.trajectory.update_node(node, maneuver.vector, maneuver.epoch)
        self.sync_selection()

    def delete_saved_plan(self, index: int) -> bool:
        try:
            self.saved.remove(index)
        except IndexError as exc:
            logger.warning("Delete ignored: %s", exc)
            return False
        self.saved_panel.request_layout()
        return True

    def clear_saved_plans(self) -> None:
        self.saved.clear()
        self.saved_panel.request_layout()

    # =========================================================================
    # DELTA-V EDITS
    # =========================================================================

    @property
    def step(self) -> float:
        """Current delta-v edit step (m/s)."""
        return DV_STEP_LADDER[self.step_index]

    def set_step_index(self, index: int) -> bool:
        if not 0 <= index < len(DV_STEP_LADDER):
            logger.warning("Delta-v step index %d outside ladder %s", index, DV_STEP_LADDER)
            return False
        self.step_index = index
        return True

    def increment(self, axis: Axis) -> bool:
        return self._edit_axis(axis, lambda value: value + self.step)

    def decrement(self, axis: Axis) -> bool:
        return self._edit_axis(axis, lambda value: value - self.step)

    def zero(self, axis: Axis) -> bool:
        return self._edit_axis(axis, lambda value: 0.0)

    def _edit_axis(self, axis: Axis, edit) -> bool:
        node = self.sync_selection()
        if node is None:
            return False
        dv = node.delta_v.copy()
        dv[int(axis)] = edit(dv[int(axis)])
        self.trajectory.update_node(node, dv, node.epoch)
        logger.debug("Node %d %s -> %.3f m/s", self._index + 1, Axis(axis).name, dv[int(axis)])
        return True

    # =========================================================================
    # EPOCH EDITS
    # =========================================================================

    def set_epoch(self, epoch: float) -> bool:
        node = self.sync_selection()
        if node is None:
            return False
        self.trajectory.update_node(node, node.delta_v.copy(), epoch)
        self.sync_selection()
        return True

    def reset_epoch(self) -> bool:
        """``=10min``: move the selected node to now + ``node_offset``."""
        return self.set_epoch(self._now + self.node_offset)

    def nudge_orbits(self, count: int) -> bool:
        """
        Move the selected node by *count* whole periods of its patch.

        Inert on open orbits. Backward nudges only apply when the node is
        further ahead than the distance moved.
        """
        node = self.sync_selection()
        if node is None or node.patch is None or not node.patch.is_periodic:
            return False
        period = node.patch.period
        if count < 0 and not self.time_to_node() > abs(count) * period:
            return False
        return self.set_epoch(node.epoch + count * period)

    def step_epoch(self, index: int, direction: int = 1) -> bool:
        node = self.sync_selection()
        if node is None:
            return False
        epoch = self.time_control.apply_step(node.epoch, index, direction)
        return epoch != node.epoch and self.set_epoch(epoch)

    def select_event_epoch(self, kind: EventKind, label: Optional[str] = None) -> bool:
        """Move the selected node onto an orbit event of the focused vessel."""
        node = self.sync_selection()
        if node is None or self.vessel is None:
            return False
        epoch = self.time_control.apply_event(node.epoch, self.vessel, self._now, kind, label)
        return epoch != node.epoch and self.set_epoch(epoch)

    # =========================================================================
    # QUICK WARPS
    # =========================================================================

    def quick_warp(self, seconds: float) -> WarpRequest:
        """Warp *seconds* ahead of now."""
        return self.scheduler.engage(self._now + seconds)

    def warp_to_transition(self) -> Optional[WarpRequest]:
        """Warp to just before the current patch ends, if it is not final."""
        if self.vessel is None or self.vessel.orbit.is_final:
            return None
        return self.scheduler.engage(self.vessel.orbit.end_epoch - self.transition_margin)

    def warp_to_node(self, lead: float) -> Optional[WarpRequest]:
        """
        Warp to *lead* seconds before the selected node.

        Only offered for the first node, and only when it is more than
        *lead* seconds away.
        """
        node = self.sync_selection()
        if node is None or self._index != 0:
            return None
        if not self.time_to_node() > lead:
            return None
        return self.scheduler.engage(node.epoch - lead)

    # =========================================================================
    # DISPLAY QUERIES
    # =========================================================================

    @property
    def node_count(self) -> int:
        return len(self._nodes)

    def selection_label(self) -> str:
        """``"Maneuver:k of N"``, or an empty string in NO_PLAN."""
        if self.sync_selection() is None:
            return ""
        return f"Maneuver:{self._index + 1} of {len(self._nodes)}"

    def time_to_node(self) -> Optional[float]:
        """Seconds from now until the selected node (negative once past)."""
        node = self.sync_selection()
        return None if node is None else node.epoch - self._now

    def selected_delta_v(self) -> Optional[float]:
        node = self.sync_selection()
        return None if node is None else node.magnitude
