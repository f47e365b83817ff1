"""
Scenario orchestration around the engine.

The engine has no timers of its own. Timed exercise events (load steps,
trips, governor faults) are kept here as a schedule keyed on simulated
time and fired by the runner at the start of the tick that reaches them.
The runner also records a trace for analysis and plotting.
"""

import bisect
import logging
from typing import Callable, List, Optional, Tuple

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd

from .engine import PlantEngine
from .states import BusId, GeneratorId

logger = logging.getLogger(__name__)

Action = Callable[[PlantEngine], None]


class EventSchedule:
    """Time-sorted list of (simulated time, label, action) entries."""

    def __init__(self):
        self._times: List[float] = []
        self._entries: List[Tuple[float, str, Action]] = []

    def add(self, time: float, label: str, action: Action):
        # Insert after entries with the same time so that order of adding is kept
        index = bisect.bisect_right(self._times, time)
        self._times.insert(index, time)
        self._entries.insert(index, (time, label, action))

    def due(self, now: float) -> List[Tuple[float, str, Action]]:
        """Remove and return every entry whose time has been reached."""
        index = bisect.bisect_right(self._times, now)
        fired = self._entries[:index]
        del self._times[:index]
        del self._entries[:index]
        return fired

    def __len__(self):
        return len(self._entries)


def load_step(kw: float) -> Action:
    def action(engine: PlantEngine):
        engine.set_load_demand(engine.get_load_demand() + kw)
    return action


def generator_trip(gen_id, reason: str = 'scenario_trip') -> Action:
    def action(engine: PlantEngine):
        engine.trip_generator(gen_id, reason)
    return action


def governor_fault(gen_id, setpoint_pu: float, duration: float) -> Action:
    def action(engine: PlantEngine):
        engine.force_governor_fault(gen_id, setpoint_pu, duration)
    return action


def emergency_start() -> Action:
    def action(engine: PlantEngine):
        engine.start_emergency_generator()
    return action


class ScenarioRunner:
    """Drives an engine at a fixed step and fires scheduled events."""

    def __init__(self, engine: PlantEngine, schedule: Optional[EventSchedule] = None,
                 dt: float = 0.05):
        """
        Initialize the runner.

        Args:
            engine: Plant to drive
            schedule: Timed events, empty when None
            dt: Step size (s)
        """
        self.engine = engine
        self.schedule = schedule if schedule is not None else EventSchedule()
        self.dt = dt
        self.logs = {'t': [], 'main_freq_Hz': [], 'main_voltage_V': [], 'emg_freq_Hz': [],
                     'emg_voltage_V': [], 'load_kW': [], 'generation_kW': [], 'blackout': []}
        for gen_id in GeneratorId:
            self.logs[f'{gen_id.value}_kW'] = []

    def step(self):
        for time, label, action in self.schedule.due(self.engine.time + self.dt + 1e-9):
            logger.info(f"t={self.engine.time:.2f}s: scheduled event '{label}' (due {time:.2f}s)")
            action(self.engine)
        alerts = self.engine.tick(self.dt)
        self._record()
        return alerts

    def run(self, duration: float) -> pd.DataFrame:
        steps = int(round(duration / self.dt))
        logger.info(f"Running scenario: dt={self.dt}s, duration={duration}s, steps={steps}")
        for k in range(steps):
            if self.engine.game_over_reason is not None:
                logger.warning(f"Exercise ended at t={self.engine.time:.2f}s: "
                               f"{self.engine.game_over_reason}")
                break
            self.step()
            if k % max(1, steps // 10) == 0:
                logger.debug(f"Progress: {k}/{steps} steps - {self.engine}")
        logger.info("Scenario finished.")
        return self.trace()

    def _record(self):
        engine = self.engine
        main = engine.buses[BusId.MAIN]
        emergency = engine.buses[BusId.EMERGENCY]
        self.logs['t'].append(engine.time)
        self.logs['main_freq_Hz'].append(main.frequency)
        self.logs['main_voltage_V'].append(main.voltage)
        self.logs['emg_freq_Hz'].append(emergency.frequency)
        self.logs['emg_voltage_V'].append(emergency.voltage)
        self.logs['load_kW'].append(main.total_load)
        self.logs['generation_kW'].append(main.total_generation + emergency.total_generation)
        self.logs['blackout'].append(engine.blackout.active)
        for gen_id, gen in engine.generators.items():
            self.logs[f'{gen_id.value}_kW'].append(gen.active_power)

    def trace(self) -> pd.DataFrame:
        return pd.DataFrame(self.logs).set_index('t')

    def plot(self, show: bool = True):
        """Plot frequency, power and voltage of the recorded run."""
        if not self.logs['t']:
            logger.warning("No data to plot.")
            return None

        s = self.engine.settings
        t = np.array(self.logs['t'])
        fig, ax = plt.subplots(3, 1, figsize=(12, 10), sharex=True)
        fig.suptitle("Plant response", fontsize=14)

        ax[0].plot(t, self.logs['main_freq_Hz'], linewidth=2, label="Main bus", color='blue')
        ax[0].plot(t, self.logs['emg_freq_Hz'], linewidth=1, label="Emergency bus",
                   color='purple', linestyle='--')
        ax[0].axhline(s.nominal_frequency, ls='--', color='red', alpha=0.7)
        ax[0].axhline(s.under_freq_trip, ls=':', color='orange', alpha=0.7, label='Trip limits')
        ax[0].axhline(s.over_freq_trip, ls=':', color='orange', alpha=0.7)
        ax[0].set_ylabel("Frequency (Hz)")
        ax[0].grid(True, alpha=0.3)
        ax[0].legend()

        ax[1].plot(t, self.logs['load_kW'], linewidth=2, label="Load", color='red')
        ax[1].plot(t, self.logs['generation_kW'], linewidth=2, label="Generation", color='green')
        for gen_id in GeneratorId:
            series = np.array(self.logs[f'{gen_id.value}_kW'])
            if series.any():
                ax[1].plot(t, series, linewidth=1, label=gen_id.value)
        ax[1].set_ylabel("Power (kW)")
        ax[1].legend()
        ax[1].grid(True, alpha=0.3)

        ax[2].plot(t, self.logs['main_voltage_V'], linewidth=2, label="Main bus", color='blue')
        ax[2].plot(t, self.logs['emg_voltage_V'], linewidth=1, label="Emergency bus",
                   color='purple', linestyle='--')
        ax[2].axhline(s.under_volt_trip, ls=':', color='orange', alpha=0.7)
        ax[2].axhline(s.over_volt_trip, ls=':', color='orange', alpha=0.7)
        ax[2].set_ylabel("Voltage (V)")
        ax[2].set_xlabel("Time (s)")
        ax[2].legend()
        ax[2].grid(True, alpha=0.3)

        plt.tight_layout(rect=[0, 0.03, 1, 0.97])
        if show:
            plt.show()
        return fig
