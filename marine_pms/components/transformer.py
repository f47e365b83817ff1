"""
Step-down transformer feeding a sub-bus through its own breaker.
"""

from ..states import BusId, TransformerId


class Transformer:
    """Two-winding step-down transformer."""

    def __init__(self, transformer_id: TransformerId, primary: BusId, secondary: BusId,
                 primary_voltage: float, secondary_voltage: float, rating_kva: float):
        """
        Initialize a transformer.

        Args:
            transformer_id: Identity of the transformer
            primary: Bus feeding the HV winding
            secondary: Sub-bus fed from the LV winding
            primary_voltage: HV rated voltage (V)
            secondary_voltage: LV rated voltage (V)
            rating_kva: Rated apparent power (kVA)
        """
        self.transformer_id = transformer_id
        self.primary = primary
        self.secondary = secondary
        self.ratio = primary_voltage / secondary_voltage
        self.rating_kva = rating_kva
        self.breaker_closed = True
        self.load_kw = 0.0

    @property
    def loading_percent(self) -> float:
        return 100.0 * self.load_kw / self.rating_kva

    def energise(self, primary_bus, secondary_bus, dt: float) -> bool:
        """Step the primary state down onto the secondary, or let it decay."""
        if self.breaker_closed and primary_bus.live:
            secondary_bus.follow(primary_bus, voltage_ratio=self.ratio)
            return True
        secondary_bus.decay(dt)
        return False

    def get_status(self) -> dict:
        return {
            'id': self.transformer_id.value,
            'primary': self.primary.value,
            'secondary': self.secondary.value,
            'ratio': self.ratio,
            'rating_kva': self.rating_kva,
            'breaker_closed': self.breaker_closed,
            'load_kw': self.load_kw,
            'loading_percent': self.loading_percent,
        }
