"""
===============================================================================
KARTOGRAPH - Simulation Engine
===============================================================================
Fixed-tick driver that plays the host's part against the reference host:
advances the coarse warp clock, calls the planning engine's hooks in the
order a real host would, and logs warp telemetry to a pandas DataFrame for
post-run analysis.

Each tick:

    1. CLOCK        -- CoarseTimeWarp.advance(dt)
    2. FIXED TICK   -- engine.on_fixed_tick()  (warp overshoot watchdog)
    3. PRESENTATION -- engine.on_presentation_tick(snapshot)
    4. LOGGING      -- time, rate, warp state, target
===============================================================================
"""

import logging
import time
from typing import Any, Dict, List, Optional

import pandas as pd

from kartograph.engine import KartographEngine
from kartograph.simulation.sim_host import SimulatedHost
from kartograph.simulation.warp_scheduler import WarpState

logger = logging.getLogger(__name__)


class SimulationEngine:
    """
    Tick loop around a SimulatedHost and a KartographEngine.

    Parameters
    ----------
    config : dict
        Full configuration; the ``simulation`` section supplies ``dt`` and
        ``max_ticks``.
    host : SimulatedHost, optional
        Built from *config* when omitted.
    engine : KartographEngine, optional
        Built against *host* when omitted.

    Attributes
    ----------
    telemetry : list of dict
        Raw per-tick records, converted to a DataFrame on request.
    tick_count : int
    """

    def __init__(
        self,
        config: Dict[str, Any],
        host: Optional[SimulatedHost] = None,
        engine: Optional[KartographEngine] = None,
    ) -> None:
        self.config = config
        sim_cfg = config["simulation"]
        self.dt: float = float(sim_cfg.get("dt", 0.02))
        self.max_ticks: int = int(sim_cfg.get("max_ticks", 500000))

        self.host = host or SimulatedHost.from_config(config)
        self.engine = engine or KartographEngine(
            self.host.trajectory, self.host.time_warp, self.host.gate, config,
        )
        self.telemetry: List[Dict[str, Any]] = []
        self.tick_count: int = 0

        logger.info("SimulationEngine created.  dt=%.3f s", self.dt)

    @property
    def current_time(self) -> float:
        return self.host.time_warp.universal_time

    def initialize(self) -> None:
        """Run the engine's init hook against the host's focused vessel."""
        self.engine.init(self.host.vessel_snapshot())
        self.engine.become_visible()

    def step(self) -> WarpState:
        """Advance one fixed tick. Returns the warp state after the watchdog."""
        self.host.time_warp.advance(self.dt)
        state = self.engine.on_fixed_tick()
        self.engine.on_presentation_tick(self.host.vessel_snapshot())
        self.tick_count += 1
        self._log_telemetry(state)
        return state

    # =========================================================================
    # RUNS
    # =========================================================================

    def run_until_idle(self, max_ticks: Optional[int] = None) -> pd.DataFrame:
        """
        Tick until the warp scheduler returns to IDLE.

        Parameters
        ----------
        max_ticks : int, optional
            Override the tick limit from config.

        Returns
        -------
        pd.DataFrame
            Telemetry recorded so far.
        """
        limit = self.max_ticks if max_ticks is None else max_ticks
        wall_start = time.time()
        ticks = 0

        logger.info("Simulation run started.  Tick limit: %d", limit)
        while self.engine.scheduler.state is WarpState.WARPING:
            if ticks >= limit:
                logger.warning("Tick limit reached at t=%.2f s with warp still engaged", self.current_time)
                break
            self.step()
            ticks += 1

        logger.info(
            "Simulation complete.  %d ticks in %.2f s wall time.  Sim time: %.2f s",
            ticks, time.time() - wall_start, self.current_time,
        )
        return self.get_telemetry()

    def run_for(self, ticks: int) -> pd.DataFrame:
        """Tick a fixed number of times regardless of warp state."""
        for _ in range(ticks):
            self.step()
        return self.get_telemetry()

    # =========================================================================
    # TELEMETRY
    # =========================================================================

    def _log_telemetry(self, state: WarpState) -> None:
        warp = self.host.time_warp
        record = {
            "tick": self.tick_count,
            "time": warp.universal_time,
            "rate_index": warp.current_rate_index,
            "rate": warp.rate,
            "warp_state": state.value,
            "target_epoch": self.engine.scheduler.target_epoch,
            "host_target": warp.warp_target,
            "live_nodes": len(self.host.trajectory.maneuver_nodes),
        }
        self.telemetry.append(record)

    def get_telemetry(self) -> pd.DataFrame:
        """
        Convert the telemetry record list to a DataFrame indexed by tick.

        Returns
        -------
        pd.DataFrame
            Columns: time, rate_index, rate, warp_state, target_epoch,
            host_target, live_nodes.
        """
        if not self.telemetry:
            logger.warning("No telemetry recorded.")
            return pd.DataFrame()

        df = pd.DataFrame(self.telemetry)
        df.set_index("tick", inplace=True)
        return df

    def save_telemetry(self, filepath: str) -> None:
        df = self.get_telemetry()
        df.to_csv(filepath)
        logger.info("Telemetry saved to %s  (%d records)", filepath, len(df))

    def get_warp_summary(self) -> Dict[str, Any]:
        """
        Summarize the run.

        Returns
        -------
        dict
            final_time, ticks, max_rate, overshoot_corrections,
            saved_plans, live_nodes.
        """
        df = self.get_telemetry()
        summary = {
            "final_time": self.current_time,
            "ticks": self.tick_count,
            "max_rate": float(df["rate"].max()) if not df.empty else 0.0,
            "overshoot_corrections": self.engine.scheduler.overshoot_corrections,
            "saved_plans": len(self.engine.editor.saved),
            "live_nodes": len(self.host.trajectory.maneuver_nodes),
        }

        logger.info("Warp Summary:")
        for key, value in summary.items():
            if isinstance(value, float):
                logger.info("  %-25s: %.4f", key, value)
            else:
                logger.info("  %-25s: %s", key, value)
        return summary

    def __repr__(self) -> str:
        return (
            f"SimulationEngine(t={self.current_time:.1f}s, "
            f"warp={self.engine.scheduler.state.value}, "
            f"records={len(self.telemetry)})"
        )
