"""
Generator protection relay.

Frequency and overcurrent elements trip after a dwell time; voltage and
reverse-power elements trip instantaneously. Dwell timers decay while the
condition is clear and are reset whenever the unit is not on the bus.
"""

import logging
from typing import Optional

logger = logging.getLogger(__name__)

UNDER_FREQUENCY = 'under_frequency'
OVER_FREQUENCY = 'over_frequency'
UNDER_VOLTAGE = 'under_voltage'
OVER_VOLTAGE = 'over_voltage'
REVERSE_POWER = 'reverse_power'
OVERCURRENT = 'overcurrent'


class ProtectionRelay:
    """Multifunction relay applied to every generator breaker."""

    def __init__(self, settings):
        self.s = settings

    @staticmethod
    def _dwell(timer: float, active: bool, dt: float) -> float:
        if active:
            return timer + dt
        return max(timer - dt, 0.0)

    def evaluate(self, gen, dt: float) -> Optional[str]:
        """
        Update the dwell timers of one generator.

        Args:
            gen: Generator under protection
            dt: Time step (s)

        Returns:
            Trip reason, or None while the unit may stay on the bus
        """
        if not gen.online:
            gen.reset_protection_timers()
            return None

        s = self.s
        f = gen.frequency
        gen.under_freq_timer = self._dwell(gen.under_freq_timer, 0.0 < f < s.under_freq_trip, dt)
        gen.over_freq_timer = self._dwell(gen.over_freq_timer, f > s.over_freq_trip, dt)
        loading = max(gen.active_power, gen.electrical_load)
        overloaded = loading > gen.capacity * s.overcurrent_percent / 100.0
        gen.overcurrent_timer = self._dwell(gen.overcurrent_timer, overloaded, dt)

        if gen.under_freq_timer >= s.under_freq_time and gen.under_freq_timer > 0.0:
            return UNDER_FREQUENCY
        if gen.over_freq_timer >= s.over_freq_time and gen.over_freq_timer > 0.0:
            return OVER_FREQUENCY
        if 0.0 < gen.voltage < s.under_volt_trip:
            return UNDER_VOLTAGE
        if gen.voltage > s.over_volt_trip:
            return OVER_VOLTAGE
        if gen.active_power < s.reverse_power_trip:
            return REVERSE_POWER
        if gen.overcurrent_timer >= s.overcurrent_time and gen.overcurrent_timer > 0.0:
            return OVERCURRENT
        return None
