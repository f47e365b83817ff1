"""
Generator component for the plant simulation.
Represents a diesel or emergency alternator with its start/stop sequence,
governor and AVR.
"""

from typing import List, Optional

from ..mathutil import TWO_PI, chase, rpm_to_hz, wrap_angle
from ..states import BreakerState, BusId, GeneratorId, GeneratorState
from .avr import AVR, AVRParams
from .governor import Governor, GovernorParams

# Slightly different governor lags so that parallel units are never identical
GOVERNOR_TAU_OFFSETS = {
    GeneratorId.DG1: -0.15,
    GeneratorId.DG2: 0.0,
    GeneratorId.DG3: 0.1,
    GeneratorId.DG4: 0.2,
    GeneratorId.EMG: -0.05,
}


class Generator:
    """Represents one rotating machine."""

    def __init__(self, gen_id: GeneratorId, bus_id: BusId, capacity: float,
                 settings, emergency: bool = False):
        """
        Initialize a generator.

        Args:
            gen_id: Identity of the unit
            bus_id: Bus the breaker connects to
            capacity: Rated active power (kW)
            settings: PlantSettings with nominal values and time constants
            emergency: True for the emergency set
        """
        self.gen_id = gen_id
        self.bus_id = bus_id
        self.capacity = capacity
        self.emergency = emergency
        self.poles = settings.generator_poles
        self.nominal_rpm = settings.nominal_rpm
        self.nominal_voltage = settings.nominal_voltage
        self._pre_lube_time = settings.pre_lube_time
        self._cranking_time = settings.cranking_time
        self._cool_down_time = settings.cool_down_time

        self.state = GeneratorState.OFF
        self.state_timer = 0.0
        self.rpm = 0.0
        self.voltage = 0.0
        self.frequency = 0.0
        self.phase_angle = 0.0
        self.active_power = 0.0
        self.reactive_power = 0.0
        self.breaker_state = BreakerState.OPEN
        self.trip_reason: Optional[str] = None

        tau = settings.governor_tau + GOVERNOR_TAU_OFFSETS.get(gen_id, 0.0)
        self.governor = Governor(
            GovernorParams(tau=tau, poles=settings.generator_poles),
            setpoint_rpm=settings.nominal_rpm,
            droop_percent=settings.droop_percent,
            iso_comms_enabled=settings.iso_comms_enabled,
        )
        self.avr = AVR(
            AVRParams(tau=settings.avr_tau, excitation_tau=settings.excitation_tau),
            setpoint=settings.nominal_voltage,
        )

        # Protection dwell timers (s)
        self.under_freq_timer = 0.0
        self.over_freq_timer = 0.0
        self.overcurrent_timer = 0.0

        self.damaged = False
        self.auto_start = settings.emg_auto_start if emergency else False

        # Written by the load distribution step, read on the next tick
        self.electrical_load = 0.0
        self.unserved = 0.0
        self.load_share = 0.0

        self._fault_timer = 0.0
        self._fault_restore_rpm: Optional[float] = None

    @property
    def online(self) -> bool:
        return self.state is GeneratorState.RUNNING and self.breaker_state is BreakerState.CLOSED

    @property
    def name(self) -> str:
        return self.gen_id.value

    def set_state(self, state: GeneratorState):
        self.state = state
        self.state_timer = 0.0

    def reset_protection_timers(self):
        self.under_freq_timer = 0.0
        self.over_freq_timer = 0.0
        self.overcurrent_timer = 0.0

    def open_breaker(self):
        self.breaker_state = BreakerState.OPEN
        self.active_power = 0.0
        self.reactive_power = 0.0
        self.electrical_load = 0.0

    def trip(self, reason: str):
        """Protection or sync trip: power, integral and fault memory are cleared."""
        self.breaker_state = BreakerState.TRIPPED
        self.trip_reason = reason
        self.active_power = 0.0
        self.reactive_power = 0.0
        self.electrical_load = 0.0
        self.governor.reset()
        self.reset_protection_timers()

    def apply_governor_fault(self, setpoint_rpm: float, duration: float):
        if self._fault_restore_rpm is None:
            self._fault_restore_rpm = self.governor.setpoint_rpm
        self.governor.setpoint_rpm = setpoint_rpm
        self._fault_timer = duration

    def tick(self, dt: float, bus_frequency: Optional[float] = None,
             bus_voltage: Optional[float] = None) -> List[str]:
        """
        Advance the state machine and machine physics by dt.

        Args:
            dt: Time step (s)
            bus_frequency: Frequency of the connected bus, None if dead
            bus_voltage: Voltage of the connected bus, None if dead

        Returns:
            Operator messages for the transitions taken this step
        """
        events = []
        self.state_timer += dt

        if self.state is GeneratorState.OFF:
            self.rpm = chase(self.rpm, 0.0, 1.0, dt)
            self.voltage = chase(self.voltage, 0.0, 0.5, dt)
            self.governor.fuel_command = 0.0
            self.active_power = 0.0
            self.reactive_power = 0.0

        elif self.state is GeneratorState.PRE_LUBE:
            self.rpm = 0.0
            self.voltage = 0.0
            if self.state_timer >= self._pre_lube_time:
                self.set_state(GeneratorState.CRANKING)

        elif self.state is GeneratorState.CRANKING:
            self.rpm = chase(self.rpm, 0.3 * self.nominal_rpm, 0.8, dt)
            self.voltage = 0.0
            if self.state_timer >= self._cranking_time:
                self.set_state(GeneratorState.IDLE)
                events.append(f"{self.name} ignition, ramping to idle")

        elif self.state is GeneratorState.IDLE:
            tau = self.governor.p.tau
            self.governor.fuel_command = chase(self.governor.fuel_command, 0.15, tau, dt)
            self.rpm = chase(self.rpm, self.nominal_rpm, 1.2 * tau, dt)
            self.voltage = chase(self.voltage, self.avr.setpoint, 2.0 * self.avr.p.tau, dt)
            if self.rpm > 0.95 * self.nominal_rpm and self.voltage > 0.9 * self.nominal_voltage:
                self.set_state(GeneratorState.RUNNING)
                events.append(f"{self.name} running at rated speed and voltage")

        elif self.state is GeneratorState.RUNNING:
            self._tick_running(dt, bus_frequency, bus_voltage)

        elif self.state is GeneratorState.COOL_DOWN:
            self.governor.fuel_command = chase(self.governor.fuel_command, 0.0, 0.5, dt)
            self.rpm = chase(self.rpm, 0.3 * self.nominal_rpm, 2.0, dt)
            self.voltage = chase(self.voltage, 0.0, 1.0, dt)
            self.active_power = 0.0
            self.reactive_power = 0.0
            if self.state_timer >= self._cool_down_time:
                self.set_state(GeneratorState.OFF)
                events.append(f"{self.name} shutdown complete")

        if self.state is not GeneratorState.RUNNING:
            self.active_power = 0.0
            self.reactive_power = 0.0

        if self._fault_restore_rpm is not None:
            self._fault_timer -= dt
            if self._fault_timer <= 0.0:
                self.governor.setpoint_rpm = self._fault_restore_rpm
                self._fault_restore_rpm = None
                events.append(f"{self.name} governor fault cleared, setpoint restored")

        self.rpm = max(self.rpm, 0.0)
        self.voltage = max(self.voltage, 0.0)
        self.frequency = rpm_to_hz(self.rpm, self.poles)
        self.phase_angle = wrap_angle(self.phase_angle + TWO_PI * self.frequency * dt)
        return events

    def _tick_running(self, dt, bus_frequency, bus_voltage):
        if self.breaker_state is not BreakerState.CLOSED:
            self.rpm = self.governor.no_load(self.rpm, dt)
            self.active_power = 0.0
            self.voltage, _ = self.avr.step(self.voltage, 0.0, self.capacity, dt)
            self.reactive_power = 0.0
            return

        self.active_power, self.rpm = self.governor.step(
            self.rpm, self.active_power, self.capacity, dt,
            bus_frequency=bus_frequency,
            electrical_load=self.electrical_load,
            unserved=self.unserved,
            load_share=self.load_share,
        )
        self.voltage, self.reactive_power = self.avr.step(
            self.voltage, self.active_power, self.capacity, dt,
            bus_voltage=bus_voltage if bus_voltage else self.avr.setpoint,
        )

    def get_status(self) -> dict:
        return {
            'id': self.name,
            'bus': self.bus_id.value,
            'capacity': self.capacity,
            'emergency': self.emergency,
            'state': self.state,
            'state_timer': self.state_timer,
            'rpm': self.rpm,
            'voltage': self.voltage,
            'frequency': self.frequency,
            'phase_angle': self.phase_angle,
            'active_power': self.active_power,
            'reactive_power': self.reactive_power,
            'electrical_load': self.electrical_load,
            'breaker_state': self.breaker_state,
            'trip_reason': self.trip_reason,
            'speed_mode': self.governor.mode,
            'governor_setpoint': self.governor.setpoint_rpm,
            'droop_percent': self.governor.droop_percent,
            'iso_comms_enabled': self.governor.iso_comms_enabled,
            'integral': self.governor.integral,
            'fuel_command': self.governor.fuel_command,
            'avr_setpoint': self.avr.setpoint,
            'excitation': self.avr.excitation,
            'under_freq_timer': self.under_freq_timer,
            'over_freq_timer': self.over_freq_timer,
            'overcurrent_timer': self.overcurrent_timer,
            'damaged': self.damaged,
            'auto_start': self.auto_start,
        }

    def __str__(self):
        return (f"{self.name} [{self.state.value}/{self.breaker_state.value}]: "
                f"P={self.active_power:.1f}kW, f={self.frequency:.2f}Hz, "
                f"V={self.voltage:.1f}V")
