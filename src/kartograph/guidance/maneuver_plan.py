"""
===============================================================================
KARTOGRAPH - Maneuver Plan Model
===============================================================================
Frozen snapshots of the live maneuver-node sequence and the operator's
collection of saved plans.

The live sequence belongs to the host's trajectory solver and changes the
actual trajectory. A ManeuverPlan is a value: an ordered tuple of
(delta-v, epoch) records taken at store time and used only to recreate the
live sequence later. Saved plans are never edited in place; they are
appended, deleted individually or cleared.

Persistence format (JSON):

    {
      "plans": [
        {"maneuvers": [{"delta_v": [r, n, p], "epoch": t}, ...]},
        ...
      ]
    }
===============================================================================
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple

import numpy as np
import pandas as pd

from kartograph.dynamics.orbit_snapshot import ManeuverNode

logger = logging.getLogger(__name__)


# =============================================================================
# STORED MANEUVER / PLAN
# =============================================================================

@dataclass(frozen=True)
class StoredManeuver:
    """One frozen maneuver: delta-v (radial, normal, prograde) and epoch."""
    delta_v: Tuple[float, float, float]
    epoch: float

    @classmethod
    def from_node(cls, node: ManeuverNode) -> StoredManeuver:
        dv = node.delta_v
        return cls((float(dv[0]), float(dv[1]), float(dv[2])), float(node.epoch))

    @property
    def vector(self) -> np.ndarray:
        """Delta-v as a fresh (3,) array."""
        return np.array(self.delta_v, dtype=np.float64)

    @property
    def magnitude(self) -> float:
        return float(np.linalg.norm(self.delta_v))


@dataclass(frozen=True)
class ManeuverPlan:
    """
    Ordered, immutable sequence of stored maneuvers.

    Attributes
    ----------
    maneuvers : tuple of StoredManeuver
        Records in live-sequence order at the time the plan was stored.
    """
    maneuvers: Tuple[StoredManeuver, ...] = ()

    @classmethod
    def from_nodes(cls, nodes: Iterable[ManeuverNode]) -> ManeuverPlan:
        """Snapshot a live node sequence, preserving its order."""
        return cls(tuple(StoredManeuver.from_node(node) for node in nodes))

    def __len__(self) -> int:
        return len(self.maneuvers)

    def __iter__(self) -> Iterator[StoredManeuver]:
        return iter(self.maneuvers)

    @property
    def total_delta_v(self) -> float:
        """
        Sum of per-maneuver delta-v magnitudes (m/s).

        This is the budget the plan spends, not the magnitude of the vector
        sum: burns along opposite directions both cost fuel.
        """
        total = 0.0
        for maneuver in self.maneuvers:
            total += maneuver.magnitude
        return total

    @property
    def first_epoch(self) -> Optional[float]:
        """Epoch of the first maneuver, None for an empty plan."""
        return self.maneuvers[0].epoch if self.maneuvers else None

    # -------------------------------------------------------------------------
    # Serialisation
    # -------------------------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        return {
            "maneuvers": [
                {"delta_v": list(m.delta_v), "epoch": m.epoch}
                for m in self.maneuvers
            ]
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> ManeuverPlan:
        """
        Rebuild a plan from ``to_dict`` output.

        Raises
        ------
        KeyError, ValueError
            If a record lacks ``delta_v``/``epoch`` or delta-v is not a
            3-vector.
        """
        records = []
        for entry in data["maneuvers"]:
            dv = [float(x) for x in entry["delta_v"]]
            if len(dv) != 3:
                raise ValueError(f"delta_v must have 3 components, got {len(dv)}")
            records.append(StoredManeuver((dv[0], dv[1], dv[2]), float(entry["epoch"])))
        return cls(tuple(records))


# =============================================================================
# SAVED PLAN COLLECTION
# =============================================================================

class SavedPlanCollection:
    """
    Insertion-ordered collection of saved plans, addressed by position.

    Plans are added only by an explicit store, removed by an explicit
    delete or clear, and never expire.
    """

    def __init__(self, plans: Optional[Iterable[ManeuverPlan]] = None) -> None:
        self._plans: List[ManeuverPlan] = list(plans or [])

    # -- container protocol ------------------------------------------------

    def __len__(self) -> int:
        return len(self._plans)

    def __iter__(self) -> Iterator[ManeuverPlan]:
        return iter(self._plans)

    def __getitem__(self, index: int) -> ManeuverPlan:
        return self._plans[index]

    def __repr__(self) -> str:
        return f"SavedPlanCollection(plans={len(self._plans)})"

    # -- mutation ------------------------------------------------------------

    def store(self, nodes: Iterable[ManeuverNode]) -> Optional[ManeuverPlan]:
        """
        Snapshot the live sequence and append it.

        The live sequence is left untouched. An empty sequence stores
        nothing and returns None.
        """
        plan = ManeuverPlan.from_nodes(nodes)
        if len(plan) == 0:
            logger.warning("Store requested with no live maneuver nodes; nothing saved")
            return None
        self._plans.append(plan)
        logger.info(
            "Stored plan #%d: %d maneuver(s), total dv %.2f m/s",
            len(self._plans) - 1, len(plan), plan.total_delta_v,
        )
        return plan

    def remove(self, index: int) -> ManeuverPlan:
        """
        Delete and return the plan at *index*.

        Raises
        ------
        IndexError
            If *index* does not address a saved plan.
        """
        if not 0 <= index < len(self._plans):
            raise IndexError(
                f"saved plan index {index} out of range (0..{len(self._plans) - 1})"
            )
        plan = self._plans.pop(index)
        logger.info("Deleted saved plan #%d", index)
        return plan

    def clear(self) -> None:
        count = len(self._plans)
        self._plans.clear()
        logger.info("Cleared %d saved plan(s)", count)

    # -- reporting -----------------------------------------------------------

    def to_dataframe(self, now: Optional[float] = None) -> pd.DataFrame:
        """
        One row per saved plan: index, maneuver count, total delta-v, first
        epoch and, when *now* is given, time from now to the first node.
        """
        rows = []
        for index, plan in enumerate(self._plans):
            row = {
                "index": index,
                "maneuvers": len(plan),
                "total_dv": plan.total_delta_v,
                "first_epoch": plan.first_epoch,
            }
            if now is not None:
                row["time_to_first"] = (
                    None if plan.first_epoch is None else plan.first_epoch - now
                )
            rows.append(row)
        columns = ["index", "maneuvers", "total_dv", "first_epoch"]
        if now is not None:
            columns.append("time_to_first")
        return pd.DataFrame(rows, columns=columns)

    # -- persistence ---------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        return {"plans": [plan.to_dict() for plan in self._plans]}

    def save(self, filepath: str) -> None:
        """Write all saved plans to a JSON file.

        Parameters
        ----------
        filepath : str
            Path to the output file. Parent directories are created.
        """
        path = Path(filepath)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(self.to_dict(), indent=2))
        logger.info("Saved %d plan(s) to %s", len(self._plans), path)

    @classmethod
    def load(cls, filepath: str) -> SavedPlanCollection:
        """Read a collection previously written by ``save``.

        Parameters
        ----------
        filepath : str
            Path to the saved file.
        """
        path = Path(filepath)
        state = json.loads(path.read_text())
        collection = cls(ManeuverPlan.from_dict(entry) for entry in state["plans"])
        logger.info("Loaded %d plan(s) from %s", len(collection), path)
        return collection
