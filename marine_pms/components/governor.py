"""
Speed governor for a diesel-driven alternator.

Three operating modes are modelled:
- droop: power solved from the droop line against bus frequency, speed
  sags along the same line with load.
- isochronous with load-sharing comms: every unit takes its capacity share
  of the section load while speed is held at setpoint.
- isochronous without comms: each unit runs its own PI loop on its own
  speed and has no view of its partners, so parallel units hunt.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

from ..mathutil import chase, clamp, hz_to_rpm, rpm_to_hz
from ..states import SpeedMode


@dataclass
class GovernorParams:
    tau: float = 0.8             # Governor time constant (s)
    poles: int = 10
    rotor_tau: float = 0.5       # Speed lag of a unit governing on its own (s)
    iso_kp: float = 0.05         # kW/Hz per kW rated
    iso_ki: float = 0.95         # kW/(Hz s) per kW rated
    integral_limit: float = 5.0  # Hz s
    local_sag: float = 0.05      # Speed sag per unit of unserved bus demand
    min_droop: float = 0.1       # % floor, a zero slope has no solution


class Governor:
    """Speed/load controller for one generator."""

    def __init__(self, params: GovernorParams, setpoint_rpm: float,
                 droop_percent: float = 4.0, mode: SpeedMode = SpeedMode.DROOP,
                 iso_comms_enabled: bool = True):
        """
        Initialize the governor.

        Args:
            params: Time constants and gains
            setpoint_rpm: Speed setpoint (rpm)
            droop_percent: Frequency drop at full load (% of setpoint)
            mode: Droop or isochronous
            iso_comms_enabled: Load-sharing link available in isochronous mode
        """
        self.p = params
        self.setpoint_rpm = setpoint_rpm
        self.droop_percent = droop_percent
        self.mode = mode
        self.iso_comms_enabled = iso_comms_enabled
        self.integral = 0.0
        self.fuel_command = 0.0

    @property
    def setpoint_frequency(self) -> float:
        return rpm_to_hz(self.setpoint_rpm, self.p.poles)

    def set_mode(self, mode: SpeedMode):
        self.mode = mode
        self.integral = 0.0

    def reset(self):
        self.integral = 0.0

    def no_load(self, rpm: float, dt: float) -> float:
        """Breaker open: speed tracks the setpoint, no power is delivered."""
        self.fuel_command = chase(self.fuel_command, 0.15, self.p.tau, dt)
        return chase(rpm, self.setpoint_rpm, self.p.tau, dt)

    def step(self, rpm: float, power: float, capacity: float, dt: float,
             bus_frequency: Optional[float] = None, electrical_load: float = 0.0,
             unserved: float = 0.0, load_share: float = 0.0) -> Tuple[float, float]:
        """
        Advance the governor with the breaker closed.

        Args:
            rpm: Current shaft speed (rpm)
            power: Current active power output (kW)
            capacity: Rated power (kW)
            dt: Time step (s)
            bus_frequency: Frequency of the bus the unit feeds, None when dead
            electrical_load: Power the bus draws from this machine (kW)
            unserved: Section demand not yet matched by generation (kW)
            load_share: Capacity share of the section load (kW)

        Returns:
            (active power kW, rpm)
        """
        if self.mode is SpeedMode.DROOP:
            power, rpm = self._droop(rpm, power, capacity, dt, bus_frequency, electrical_load)
        elif self.iso_comms_enabled:
            power = chase(power, clamp(load_share, 0.0, capacity), self.p.tau, dt)
            rpm = chase(rpm, self.setpoint_rpm, 0.3 * self.p.tau, dt)
        else:
            power, rpm = self._isochronous_local(rpm, power, capacity, dt, unserved)
        self.fuel_command = clamp(0.15 + 0.85 * power / capacity, 0.0, 1.0)
        return power, rpm

    def _droop(self, rpm, power, capacity, dt, bus_frequency, electrical_load):
        f_set = self.setpoint_frequency
        droop = max(self.droop_percent, self.p.min_droop) / 100.0
        f_bus = bus_frequency if bus_frequency else f_set

        if f_set > 0.0:
            p_target = clamp(capacity * (f_set - f_bus) / (droop * f_set), 0.0, capacity)
        else:
            p_target = 0.0
        power = chase(power, p_target, self.p.tau, dt)

        f_target = f_set * (1.0 - droop * electrical_load / capacity)
        rpm = chase(rpm, hz_to_rpm(max(f_target, 0.0), self.p.poles), 0.5 * self.p.tau, dt)
        return power, rpm

    def _isochronous_local(self, rpm, power, capacity, dt, unserved):
        f_set = self.setpoint_frequency
        error = f_set - rpm_to_hz(rpm, self.p.poles)
        self.integral = clamp(self.integral + error * dt,
                              -self.p.integral_limit, self.p.integral_limit)
        command = capacity * (self.p.iso_kp * error + self.p.iso_ki * self.integral)
        power = chase(power, clamp(command, 0.0, capacity), self.p.tau, dt)

        # Each unit reads the whole bus imbalance as its own
        f_target = f_set * (1.0 - self.p.local_sag * unserved / capacity)
        rpm = chase(rpm, hz_to_rpm(max(f_target, 0.0), self.p.poles), self.p.rotor_tau, dt)
        return power, rpm
