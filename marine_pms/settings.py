"""
Plant configuration.

Every electrical, control, timing and protection constant of the simulated
plant lives here with its default. The defaults describe a 690 V / 60 Hz
installation with 10-pole alternators.
"""

from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .states import GeneratorId


class PlantSettings(BaseModel):
    """Named numeric/boolean plant parameters. Any subset may be overridden."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    # Electrical
    nominal_voltage: float = Field(690.0, gt=0)  # V
    nominal_frequency: float = Field(60.0, gt=0)  # Hz
    generator_poles: int = Field(10, ge=2)

    # Generator ratings (kW)
    dg1_capacity: float = Field(1000.0, gt=0)
    dg2_capacity: float = Field(1000.0, gt=0)
    dg3_capacity: float = Field(1000.0, gt=0)
    dg4_capacity: float = Field(1500.0, gt=0)
    emg_capacity: float = Field(500.0, gt=0)

    # Control
    droop_percent: float = Field(4.0, ge=0, le=8)
    governor_tau: float = Field(0.8, gt=0)  # s
    avr_tau: float = Field(0.3, gt=0)  # s
    excitation_tau: float = Field(0.5, gt=0)  # s
    iso_comms_enabled: bool = True

    # Start / stop sequence (s)
    pre_lube_time: float = Field(3.0, ge=0)
    cranking_time: float = Field(2.0, ge=0)
    cool_down_time: float = Field(30.0, ge=0)

    # Synchronisation tolerances
    sync_voltage_tolerance: float = Field(15.0, gt=0)  # V
    sync_frequency_tolerance: float = Field(0.2, gt=0)  # Hz
    sync_phase_tolerance: float = Field(10.0, gt=0)  # degrees

    # Protection
    under_freq_trip: float = 55.0  # Hz
    under_freq_time: float = Field(5.0, ge=0)  # s
    over_freq_trip: float = 65.0  # Hz
    over_freq_time: float = Field(3.0, ge=0)  # s
    under_volt_trip: float = 590.0  # V
    over_volt_trip: float = 760.0  # V
    reverse_power_trip: float = -5.0  # kW
    overcurrent_percent: float = Field(120.0, gt=0)  # % of rating
    overcurrent_time: float = Field(10.0, ge=0)  # s

    # Blackout handling
    blackout_detect_delay: float = Field(2.0, ge=0)  # s
    emg_auto_start: bool = True
    dead_bus_voltage: float = Field(50.0, ge=0)  # V, main-voltage buses
    sub_bus_dead_voltage: float = Field(10.0, ge=0)  # V, transformer-fed buses

    # Loads
    base_load: float = Field(1200.0, ge=0)  # kW
    load_fluctuation_percent: float = Field(2.0, ge=0)
    emergency_base_load: float = Field(150.0, ge=0)  # kW
    port_load_share: float = Field(0.5, ge=0, le=1)  # base load on PORT with main tie open

    # Shore connection
    shore_voltage: float = Field(690.0, gt=0)
    shore_frequency: float = Field(60.0, gt=0)
    shore_max_power: float = Field(2000.0, gt=0)  # kW

    # Session
    max_damage_incidents: int = Field(3, ge=1)
    alert_log_size: int = Field(200, ge=1)
    snapshot_alert_count: int = Field(50, ge=0)
    seed: Optional[int] = None

    @model_validator(mode="after")
    def _check_bands(self):
        if self.under_freq_trip >= self.over_freq_trip:
            raise ValueError("under_freq_trip must be below over_freq_trip")
        if self.under_volt_trip >= self.over_volt_trip:
            raise ValueError("under_volt_trip must be below over_volt_trip")
        return self

    @property
    def nominal_rpm(self) -> float:
        return self.nominal_frequency * 120.0 / self.generator_poles

    def capacities(self) -> Dict[GeneratorId, float]:
        return {
            GeneratorId.DG1: self.dg1_capacity,
            GeneratorId.DG2: self.dg2_capacity,
            GeneratorId.DG3: self.dg3_capacity,
            GeneratorId.DG4: self.dg4_capacity,
            GeneratorId.EMG: self.emg_capacity,
        }
