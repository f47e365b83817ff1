"""
Bus component for the plant simulation.
Represents an electrically common node: a switchboard section or a
transformer-fed sub-bus.
"""

from typing import Iterable

from ..mathutil import TWO_PI, chase, wrap_angle
from ..states import BusId

VOLTAGE_DECAY_TAU = 0.3    # s
FREQUENCY_DECAY_TAU = 0.5  # s


class Bus:
    """Represents an electrical bus in the plant."""

    def __init__(self, bus_id: BusId, nominal_voltage: float, dead_voltage: float):
        """
        Initialize a bus.

        Args:
            bus_id: Identity of the bus
            nominal_voltage: Rated voltage (V)
            dead_voltage: Voltage below which the bus counts as dead (V)
        """
        self.bus_id = bus_id
        self.nominal_voltage = nominal_voltage
        self.dead_voltage = dead_voltage
        self.voltage = 0.0
        self.frequency = 0.0
        self.phase_angle = 0.0
        self.total_load = 0.0
        self.total_generation = 0.0
        self.live = False

    def _update_live(self):
        self.live = self.voltage > self.dead_voltage

    def aggregate(self, generators: Iterable) -> bool:
        """
        Capacity-weighted average of the online generators feeding this bus.

        Returns False (and leaves the bus untouched) when none is online.
        """
        online = [g for g in generators if g.online]
        if not online:
            return False
        total_capacity = sum(g.capacity for g in online)
        self.voltage = sum(g.voltage * g.capacity for g in online) / total_capacity
        self.frequency = sum(g.frequency * g.capacity for g in online) / total_capacity
        self.total_generation = sum(g.active_power for g in online)
        # Largest machine sets the reference phase; first listed wins a tie
        lead = max(online, key=lambda g: g.capacity)
        self.phase_angle = lead.phase_angle
        self._update_live()
        return True

    def supply(self, voltage: float, frequency: float, dt: float):
        """Fed from a stiff source such as the shore connection."""
        self.voltage = voltage
        self.frequency = frequency
        self.phase_angle = wrap_angle(self.phase_angle + TWO_PI * frequency * dt)
        self._update_live()

    def follow(self, source: "Bus", voltage_ratio: float = 1.0):
        """Take the state of a bus this one is tied or transformed from."""
        self.voltage = source.voltage / voltage_ratio
        self.frequency = source.frequency
        self.phase_angle = source.phase_angle
        self._update_live()

    def decay(self, dt: float):
        """No feed: voltage and frequency run down, never step."""
        self.voltage = chase(self.voltage, 0.0, VOLTAGE_DECAY_TAU, dt)
        self.frequency = chase(self.frequency, 0.0, FREQUENCY_DECAY_TAU, dt)
        self.phase_angle = wrap_angle(self.phase_angle + TWO_PI * self.frequency * dt)
        self.total_generation = 0.0
        self._update_live()

    def force(self, voltage=None, frequency=None):
        if voltage is not None:
            self.voltage = max(voltage, 0.0)
        if frequency is not None:
            self.frequency = max(frequency, 0.0)
        self._update_live()

    def get_status(self) -> dict:
        return {
            'id': self.bus_id.value,
            'voltage': self.voltage,
            'frequency': self.frequency,
            'phase_angle': self.phase_angle,
            'total_load': self.total_load,
            'total_generation': self.total_generation,
            'live': self.live,
        }

    def __str__(self):
        return (f"Bus {self.bus_id.value}: {self.voltage:.1f} V, {self.frequency:.2f} Hz"
                f"{'' if self.live else ' (dead)'}")
