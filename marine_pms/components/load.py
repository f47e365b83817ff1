"""
Load components for the plant simulation.
Heavy consumers with their demand profiles, and the smooth random walk
applied on top of the base hotel load.
"""

import numpy as np

from ..mathutil import TWO_PI, chase, clamp
from ..states import BusId, ConsumerId, LoadProfile

SINUSOID_RATE = 0.05   # cycles per second, about a 20 s period
SINUSOID_NOISE = 0.05  # peak-to-peak fraction of rating
CONSTANT_FRACTION = 0.7


class HeavyConsumer:
    """A large switched load: thruster, crane or ROV."""

    def __init__(self, consumer_id: ConsumerId, name: str, bus_id: BusId,
                 max_power: float, profile: LoadProfile, rng: np.random.Generator):
        """
        Initialize a consumer.

        Args:
            consumer_id: Identity of the consumer
            name: Display name
            bus_id: Bus or sub-bus the consumer is fed from
            max_power: Rated demand (kW)
            profile: Demand profile
            rng: Shared random generator of the plant
        """
        self.consumer_id = consumer_id
        self.name = name
        self.bus_id = bus_id
        self.max_power = max_power
        self.profile = profile
        self.rng = rng
        self.enabled = False
        self.breaker_closed = False
        self.load = 0.0

        self._angle = float(rng.uniform(0.0, TWO_PI))
        self._step_timer = 0.0
        self._step_target = 0.3 * max_power

    @property
    def drawing(self) -> bool:
        return self.enabled and self.breaker_closed

    def _target(self, dt: float) -> float:
        if self.profile is LoadProfile.SINUSOIDAL:
            self._angle += dt * SINUSOID_RATE * TWO_PI
            noise = (self.rng.random() - 0.5) * SINUSOID_NOISE
            return clamp(self.max_power * (0.5 + 0.5 * np.sin(self._angle) + noise),
                         0.0, self.max_power)
        if self.profile is LoadProfile.STEP:
            self._step_timer -= dt
            if self._step_timer <= 0.0:
                self._step_target = self.max_power * (0.2 + 0.8 * self.rng.random())
                self._step_timer = 10.0 + 20.0 * self.rng.random()
            return self._step_target
        return CONSTANT_FRACTION * self.max_power

    def update(self, dt: float, supplied: bool):
        """Chase the profile while drawing from a live bus, run down otherwise."""
        if self.drawing and supplied:
            self.load = chase(self.load, self._target(dt), 0.5, dt)
        else:
            self.load = chase(self.load, 0.0, 0.3, dt)

    def get_status(self) -> dict:
        return {
            'id': self.consumer_id.value,
            'name': self.name,
            'bus': self.bus_id.value,
            'max_power': self.max_power,
            'profile': self.profile,
            'enabled': self.enabled,
            'breaker_closed': self.breaker_closed,
            'load': self.load,
        }


class LoadNoise:
    """Smooth random walk of +/- a percentage of the base load."""

    def __init__(self, rng: np.random.Generator):
        self.rng = rng
        self.value = 0.0
        self._target = 0.0
        self._timer = 0.0

    def update(self, base_load: float, percent: float, dt: float) -> float:
        self._timer -= dt
        if self._timer <= 0.0:
            self._target = (2.0 * self.rng.random() - 1.0) * base_load * percent / 100.0
            self._timer = 0.5 + 1.5 * self.rng.random()
        self.value = chase(self.value, self._target, 0.3, dt)
        return self.value

    def reset(self):
        self.value = 0.0
        self._target = 0.0
        self._timer = 0.0
