"""
Main bus blackout detection and emergency recovery.

While the main bus is dead the emergency bus-tie is held open, and after
the detection delay the emergency generator is started and its breaker
closed once it reaches rated speed. An optional battery-backup countdown
runs while the emergency bus is dead.
"""

import logging
from typing import Optional

from .alerts import Severity
from .states import BreakerState, BusId, GeneratorId, GeneratorState

logger = logging.getLogger(__name__)


class BlackoutController:
    """Tracks blackout state across ticks."""

    def __init__(self, settings):
        self.s = settings
        self.active = False
        self.timer = 0.0
        self.auto_start_pending = False
        self.battery_timer: Optional[float] = None
        self.battery_depleted = False

    def reset(self):
        self.active = False
        self.timer = 0.0
        self.auto_start_pending = False

    def set_battery_timer(self, seconds: float):
        self.battery_timer = max(seconds, 0.0)
        self.battery_depleted = False

    def update(self, plant, dt: float):
        """
        Evaluate the main bus after aggregation and protection.

        Args:
            plant: PlantEngine being simulated
            dt: Time step (s)
        """
        main = plant.buses[BusId.MAIN]
        emg = plant.generators[GeneratorId.EMG]
        was_active = self.active
        self.active = not main.live

        if self.active:
            if not was_active:
                plant.log_alert(Severity.CRITICAL, "MAIN BUS BLACKOUT", BusId.MAIN.value)
            self.timer += dt

            if plant.emergency_bus_tie_closed:
                plant.emergency_bus_tie_closed = False
                plant.log_alert(Severity.WARNING,
                                "Emergency bus-tie opened due to main bus blackout",
                                BusId.EMERGENCY.value)

            if (emg.auto_start and emg.state is GeneratorState.OFF
                    and not self.auto_start_pending
                    and self.timer >= self.s.blackout_detect_delay):
                self.auto_start_pending = True
                plant.log_alert(Severity.WARNING, "BLACKOUT detected, EMG auto-starting",
                                emg.name)
                plant.start_generator(GeneratorId.EMG)

            if (self.auto_start_pending and emg.state is GeneratorState.RUNNING
                    and emg.breaker_state is BreakerState.OPEN):
                emg.breaker_state = BreakerState.CLOSED
                self.auto_start_pending = False
                plant.log_alert(Severity.INFO,
                                "EMG breaker auto-closed, emergency bus energised", emg.name)
        else:
            if was_active:
                logger.info(f"Main bus restored after {self.timer:.1f}s")
            self.timer = 0.0
            # An unfinished auto-start no longer blocks the next blackout
            self.auto_start_pending = False
            # A closed EMG breaker stays islanded until the operator de-parallels it
            if not plant.emergency_bus_tie_closed and emg.breaker_state is not BreakerState.CLOSED:
                plant.emergency_bus_tie_closed = True
                plant.log_alert(Severity.INFO,
                                "Emergency bus-tie reclosed, emergency bus fed from main bus",
                                BusId.EMERGENCY.value)

        self._update_battery(plant, dt)

    def _update_battery(self, plant, dt):
        if self.battery_timer is None or self.battery_depleted:
            return
        if plant.buses[BusId.EMERGENCY].live:
            return
        self.battery_timer = max(self.battery_timer - dt, 0.0)
        if self.battery_timer <= 0.0:
            self.battery_depleted = True
            plant.log_alert(Severity.CRITICAL, "Emergency battery backup depleted",
                            BusId.EMERGENCY.value)
