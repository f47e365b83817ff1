"""
Immutable views of the plant returned by PlantEngine.get_state().

Each call builds a fresh model tree; nothing in it refers back to live
engine objects.
"""

from typing import Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict

from .alerts import Alert
from .states import BreakerState, GeneratorState, LoadProfile, SpeedMode


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class GeneratorSnapshot(_Frozen):
    id: str
    bus: str
    capacity: float
    emergency: bool
    state: GeneratorState
    state_timer: float
    rpm: float
    voltage: float
    frequency: float
    phase_angle: float
    active_power: float
    reactive_power: float
    electrical_load: float
    breaker_state: BreakerState
    trip_reason: Optional[str] = None
    speed_mode: SpeedMode
    governor_setpoint: float
    droop_percent: float
    iso_comms_enabled: bool
    integral: float
    fuel_command: float
    avr_setpoint: float
    excitation: float
    under_freq_timer: float
    over_freq_timer: float
    overcurrent_timer: float
    damaged: bool
    auto_start: bool


class BusSnapshot(_Frozen):
    id: str
    voltage: float
    frequency: float
    phase_angle: float
    total_load: float
    total_generation: float
    live: bool


class TransformerSnapshot(_Frozen):
    id: str
    primary: str
    secondary: str
    ratio: float
    rating_kva: float
    breaker_closed: bool
    load_kw: float
    loading_percent: float


class ConsumerSnapshot(_Frozen):
    id: str
    name: str
    bus: str
    max_power: float
    profile: LoadProfile
    enabled: bool
    breaker_closed: bool
    load: float


class ShoreSnapshot(_Frozen):
    available: bool
    breaker_state: BreakerState
    trip_reason: Optional[str] = None
    voltage: float
    frequency: float
    max_power: float
    power: float


class SynchroscopeReading(_Frozen):
    generator: str
    bus: str
    phase_difference: float  # rad, incoming minus bus, in (-pi, pi]
    phase_difference_deg: float
    frequency_difference: float  # Hz, positive when running fast
    voltage_difference: float  # V
    in_window: bool


class PlantSnapshot(_Frozen):
    time: float
    generators: Dict[str, GeneratorSnapshot]
    buses: Dict[str, BusSnapshot]
    sub_buses: Dict[str, BusSnapshot]
    transformers: Dict[str, TransformerSnapshot]
    consumers: Dict[str, ConsumerSnapshot]
    shore: ShoreSnapshot
    main_bus_tie_closed: bool
    emergency_bus_tie_closed: bool
    synchroscopes: Dict[str, SynchroscopeReading]
    alerts: Tuple[Alert, ...]
    load_demand: float
    blackout: bool
    blackout_timer: float
    battery_timer: Optional[float] = None
    battery_depleted: bool = False
    damage_count: int
    game_over_reason: Optional[str] = None
