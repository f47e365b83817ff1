"""
Shore power connection.
A stiff external supply on the port switchboard, with an overload trip.
"""

from typing import Optional

from ..states import BreakerState


class ShoreConnection:
    """Quay-side supply connected through the shore breaker."""

    def __init__(self, voltage: float, frequency: float, max_power: float):
        """
        Initialize the shore connection.

        Args:
            voltage: Supply voltage (V)
            frequency: Supply frequency (Hz)
            max_power: Rated import (kW)
        """
        self.voltage = voltage
        self.frequency = frequency
        self.max_power = max_power
        self.available = True
        self.breaker_state = BreakerState.OPEN
        self.trip_reason: Optional[str] = None
        self.power = 0.0
        self.overload_timer = 0.0

    @property
    def connected(self) -> bool:
        return self.available and self.breaker_state is BreakerState.CLOSED

    def check_overload(self, demand: float, limit_time: float, dt: float) -> bool:
        """Accumulate time above rating; True when the breaker must trip."""
        self.power = demand if self.connected else 0.0
        if self.connected and demand > self.max_power:
            self.overload_timer += dt
        else:
            self.overload_timer = 0.0
        return self.overload_timer >= limit_time and self.connected

    def trip(self, reason: str):
        self.breaker_state = BreakerState.TRIPPED
        self.trip_reason = reason
        self.power = 0.0
        self.overload_timer = 0.0

    def get_status(self) -> dict:
        return {
            'available': self.available,
            'breaker_state': self.breaker_state,
            'trip_reason': self.trip_reason,
            'voltage': self.voltage,
            'frequency': self.frequency,
            'max_power': self.max_power,
            'power': self.power,
        }
