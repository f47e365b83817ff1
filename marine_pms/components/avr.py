"""
Automatic Voltage Regulator (AVR) component.
Load-dependent terminal sag with a lagged excitation response.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

from ..mathutil import chase, clamp


@dataclass
class AVRParams:
    tau: float = 0.3              # Voltage response (s)
    excitation_tau: float = 0.5   # Field response (s)
    sag_fraction: float = 0.05    # Terminal sag at full rated load
    reactive_gain: float = 5.0    # kvar per volt of error
    reactive_limit: float = 0.5   # Fraction of rating


class AVR:
    """Automatic Voltage Regulator for generator voltage control."""

    def __init__(self, params: AVRParams, setpoint: float):
        """
        Initialize AVR controller.

        Args:
            params: Time constants and reactive droop
            setpoint: Terminal voltage setpoint (V)
        """
        self.p = params
        self.setpoint = setpoint
        self.excitation = 1.0

    def reset(self):
        self.excitation = 1.0

    def step(self, voltage: float, power: float, capacity: float, dt: float,
             bus_voltage: Optional[float] = None) -> Tuple[float, float]:
        """
        Advance the regulator by one step.

        Args:
            voltage: Present terminal voltage (V)
            power: Active power output (kW)
            capacity: Rated power (kW)
            dt: Time step (s)
            bus_voltage: Voltage of the bus when the breaker is closed, else None

        Returns:
            (terminal voltage V, reactive power kvar)
        """
        load_fraction = max(power, 0.0) / capacity
        sag = self.setpoint * self.p.sag_fraction * load_fraction

        target_excitation = 1.0 + sag / self.setpoint if self.setpoint > 0 else 1.0
        self.excitation = chase(self.excitation, target_excitation, self.p.excitation_tau, dt)

        target_voltage = max(self.setpoint * self.excitation - sag, 0.0)
        voltage = chase(voltage, target_voltage, self.p.tau, dt)

        if bus_voltage is None:
            return voltage, 0.0
        limit = self.p.reactive_limit * capacity
        reactive = clamp(self.p.reactive_gain * (self.setpoint - bus_voltage), -limit, limit)
        return voltage, reactive
