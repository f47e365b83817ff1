"""
Plant simulation engine.

PlantEngine owns the whole plant state and advances it in fixed steps.
Each tick runs, in order: load noise, consumer loads, generator physics
and state machines, bus aggregation, sub-buses, load distribution,
protection and blackout handling. Operator commands and scenario setup
methods mutate the state between ticks; they never raise, failures are
reported through the alert log.
"""

import logging
import math
from typing import Dict, Iterable, List, Optional

import numpy as np

from .alerts import Alert, AlertLog, Severity
from .blackout import BlackoutController
from .components import Bus, Generator, HeavyConsumer, LoadNoise, ShoreConnection, Transformer
from .mathutil import angle_diff, clamp, rpm_to_hz, wrap_angle
from .protection import ProtectionRelay
from .settings import PlantSettings
from .snapshot import (BusSnapshot, ConsumerSnapshot, GeneratorSnapshot, PlantSnapshot,
                       ShoreSnapshot, SynchroscopeReading, TransformerSnapshot)
from .states import (MAIN_BUSES, SUB_BUSES, BreakerState, BusId, ConsumerId, GeneratorId,
                     GeneratorState, LoadProfile, SpeedMode, TransformerId)
from .synchronization import SyncSeverity, check_sync, synchroscope

logger = logging.getLogger(__name__)

GENERATOR_BUSES = {
    GeneratorId.DG1: BusId.PORT,
    GeneratorId.DG2: BusId.PORT,
    GeneratorId.DG3: BusId.STBD,
    GeneratorId.DG4: BusId.STBD,
    GeneratorId.EMG: BusId.EMERGENCY,
}

SUB_BUS_VOLTAGES = {
    BusId.PORT_450: 450.0,
    BusId.STBD_450: 450.0,
    BusId.EMG_230: 230.0,
    BusId.DC_110: 110.0,
}

# id, primary, secondary, HV (V), LV (V), rating (kVA); listed in feed order
TRANSFORMERS = [
    (TransformerId.T1, BusId.PORT, BusId.PORT_450, 690.0, 450.0, 500.0),
    (TransformerId.T2, BusId.STBD, BusId.STBD_450, 690.0, 450.0, 500.0),
    (TransformerId.T3, BusId.EMERGENCY, BusId.EMG_230, 690.0, 230.0, 200.0),
    (TransformerId.T4, BusId.EMG_230, BusId.DC_110, 230.0, 110.0, 50.0),
]

CONSUMERS = [
    (ConsumerId.THRUSTER_ST, "Bow Thr. Port", BusId.PORT, 600.0, LoadProfile.SINUSOIDAL),
    (ConsumerId.THRUSTER_MT, "Stern Thr. Port", BusId.PORT, 500.0, LoadProfile.SINUSOIDAL),
    (ConsumerId.THRUSTER_BT, "Bow Thr. Stb", BusId.STBD, 600.0, LoadProfile.SINUSOIDAL),
    (ConsumerId.THRUSTER_AZ, "Azimuth Thr.", BusId.STBD, 800.0, LoadProfile.SINUSOIDAL),
    (ConsumerId.CRANE1, "Port Crane", BusId.PORT_450, 200.0, LoadProfile.STEP),
    (ConsumerId.CRANE2, "Stb Crane", BusId.STBD_450, 200.0, LoadProfile.STEP),
    (ConsumerId.ROV1, "ROV 1", BusId.PORT_450, 150.0, LoadProfile.CONSTANT),
    (ConsumerId.ROV2, "ROV 2", BusId.STBD_450, 150.0, LoadProfile.CONSTANT),
]

MAIN_GENERATORS = (GeneratorId.DG1, GeneratorId.DG2, GeneratorId.DG3, GeneratorId.DG4)


class PlantEngine:
    """Deterministic fixed-step simulation of the ship's power plant."""

    def __init__(self, settings: Optional[PlantSettings] = None, **overrides):
        """
        Initialize the engine.

        Args:
            settings: Plant parameters, defaults when None
            **overrides: Individual PlantSettings fields to override
        """
        if settings is None:
            settings = PlantSettings(**overrides)
        elif overrides:
            settings = PlantSettings(**{**settings.model_dump(), **overrides})
        self.settings = settings
        self.reset()

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------
    def reset(self):
        """Re-initialise the plant for a new exercise."""
        s = self.settings
        self.rng = np.random.default_rng(s.seed)
        self.time = 0.0
        self.alerts = AlertLog(s.alert_log_size)

        self.generators: Dict[GeneratorId, Generator] = {
            gen_id: Generator(gen_id, GENERATOR_BUSES[gen_id], capacity, s,
                              emergency=gen_id is GeneratorId.EMG)
            for gen_id, capacity in s.capacities().items()
        }

        self.buses: Dict[BusId, Bus] = {
            bus_id: Bus(bus_id, s.nominal_voltage, s.dead_bus_voltage) for bus_id in MAIN_BUSES
        }
        for bus_id in SUB_BUSES:
            self.buses[bus_id] = Bus(bus_id, SUB_BUS_VOLTAGES[bus_id], s.sub_bus_dead_voltage)

        self.transformers: Dict[TransformerId, Transformer] = {
            t_id: Transformer(t_id, primary, secondary, hv, lv, kva)
            for t_id, primary, secondary, hv, lv, kva in TRANSFORMERS
        }
        self.consumers: Dict[ConsumerId, HeavyConsumer] = {
            c_id: HeavyConsumer(c_id, name, bus_id, max_kw, profile, self.rng)
            for c_id, name, bus_id, max_kw, profile in CONSUMERS
        }
        self.shore = ShoreConnection(s.shore_voltage, s.shore_frequency, s.shore_max_power)
        self.load_noise = LoadNoise(self.rng)
        self.base_load = s.base_load
        self._shore_demand = 0.0

        self.main_bus_tie_closed = True
        self.emergency_bus_tie_closed = True

        self.protection = ProtectionRelay(s)
        self.blackout = BlackoutController(s)
        self.damage_count = 0
        self.game_over_reason: Optional[str] = None

        logger.info(f"Plant initialised: {s.nominal_voltage:.0f} V / {s.nominal_frequency:.0f} Hz, "
                    f"{len(self.generators)} generators, seed={s.seed}")

    def log_alert(self, severity: Severity, message: str,
                  source: Optional[str] = None) -> Alert:
        return self.alerts.push(self.time, severity, message, source)

    # ------------------------------------------------------------------
    # Simulation step
    # ------------------------------------------------------------------
    def tick(self, dt: float) -> List[Alert]:
        """
        Advance the plant by exactly dt seconds.

        Returns:
            Alerts raised since the previous tick, including those from
            commands issued in between
        """
        if self.game_over_reason is not None:
            return []
        if not (isinstance(dt, (int, float)) and math.isfinite(dt) and dt > 0):
            logger.warning(f"Ignoring tick with invalid dt={dt!r}")
            return []

        self.time += dt
        s = self.settings

        noise = self.load_noise.update(self.base_load, s.load_fluctuation_percent, dt)
        for consumer in self.consumers.values():
            consumer.update(dt, self.buses[consumer.bus_id].live)

        for gen in self.generators.values():
            bus = self.buses[gen.bus_id]
            events = gen.tick(dt,
                              bus_frequency=bus.frequency if bus.live else None,
                              bus_voltage=bus.voltage if bus.live else None)
            for message in events:
                self.log_alert(Severity.INFO, message, gen.name)

        self._aggregate_buses(dt)
        for transformer in self.transformers.values():
            transformer.energise(self.buses[transformer.primary],
                                 self.buses[transformer.secondary], dt)
        self._distribute_load(noise)
        self._check_protection(dt)
        self.blackout.update(self, dt)
        return self.alerts.drain()

    def _main_generators(self, bus_id: Optional[BusId] = None) -> List[Generator]:
        return [self.generators[g] for g in MAIN_GENERATORS
                if bus_id is None or GENERATOR_BUSES[g] is bus_id]

    def _section_generators(self, bus_id: BusId) -> List[Generator]:
        """Generators electrically paralleled on the section containing bus_id."""
        if bus_id in (BusId.PORT, BusId.STBD, BusId.MAIN):
            if self.main_bus_tie_closed or bus_id is BusId.MAIN:
                return self._main_generators()
            return self._main_generators(bus_id)
        return [g for g in self.generators.values() if g.bus_id is bus_id]

    def _aggregate_buses(self, dt: float):
        port, stbd = self.buses[BusId.PORT], self.buses[BusId.STBD]
        main, emergency = self.buses[BusId.MAIN], self.buses[BusId.EMERGENCY]

        if self.main_bus_tie_closed:
            if not port.aggregate(self._main_generators()):
                if self.shore.connected:
                    port.supply(self.shore.voltage, self.shore.frequency, dt)
                else:
                    port.decay(dt)
            stbd.follow(port)
        else:
            if not port.aggregate(self._main_generators(BusId.PORT)):
                if self.shore.connected:
                    port.supply(self.shore.voltage, self.shore.frequency, dt)
                else:
                    port.decay(dt)
            if not stbd.aggregate(self._main_generators(BusId.STBD)):
                stbd.decay(dt)

        for bus in (port, stbd):
            bus.total_generation = sum(g.active_power for g in self._main_generators(bus.bus_id)
                                       if g.online)

        if self.main_bus_tie_closed:
            main.follow(port)
        else:
            live = [b for b in (port, stbd) if b.live]
            if live:
                main.follow(max(live, key=lambda b: b.total_generation))
            else:
                main.decay(dt)
        main.total_generation = port.total_generation + stbd.total_generation

        emg = self.generators[GeneratorId.EMG]
        if self.emergency_bus_tie_closed and main.live:
            emergency.follow(main)
            emergency.total_generation = 0.0
        elif not emergency.aggregate([emg]):
            emergency.decay(dt)

    def _distribute_load(self, noise: float):
        s = self.settings
        downstream: Dict[BusId, float] = {bus_id: 0.0 for bus_id in self.buses}
        for consumer in self.consumers.values():
            downstream[consumer.bus_id] += consumer.load
        for transformer in reversed(list(self.transformers.values())):
            transformer.load_kw = downstream[transformer.secondary] if transformer.breaker_closed else 0.0
            downstream[transformer.primary] += transformer.load_kw

        port, stbd = self.buses[BusId.PORT], self.buses[BusId.STBD]
        main, emergency = self.buses[BusId.MAIN], self.buses[BusId.EMERGENCY]
        for bus_id in SUB_BUSES:
            self.buses[bus_id].total_load = downstream[bus_id]

        base = max(self.base_load + noise, 0.0)
        port.total_load = base * s.port_load_share + downstream[BusId.PORT]
        stbd.total_load = base * (1.0 - s.port_load_share) + downstream[BusId.STBD]
        emergency.total_load = s.emergency_base_load + downstream[BusId.EMERGENCY]

        fed_from_main = self.emergency_bus_tie_closed and main.live
        main.total_load = port.total_load + stbd.total_load
        if fed_from_main:
            # Emergency hotel load is part of the base demand
            main.total_load += downstream[BusId.EMERGENCY]

        if self.main_bus_tie_closed:
            sections = [(self._main_generators(), main.total_load)]
        else:
            sections = [(self._main_generators(BusId.PORT), port.total_load),
                        (self._main_generators(BusId.STBD), stbd.total_load)]
        emergency_demand = 0.0 if fed_from_main else emergency.total_load
        sections.append(([self.generators[GeneratorId.EMG]], emergency_demand))

        for gens, demand in sections:
            self._share_section(gens, demand)

        self._shore_demand = main.total_load if self.main_bus_tie_closed else port.total_load

    @staticmethod
    def _share_section(gens: Iterable[Generator], demand: float):
        """Attribute the section demand to its online machines by capacity."""
        online = [g for g in gens if g.online]
        for gen in gens:
            if not gen.online:
                gen.electrical_load = 0.0
                gen.unserved = 0.0
                gen.load_share = 0.0
        if not online:
            return
        total_capacity = sum(g.capacity for g in online)
        unserved = demand - sum(g.active_power for g in online)
        for gen in online:
            weight = gen.capacity / total_capacity
            gen.electrical_load = gen.active_power + unserved * weight
            gen.unserved = unserved
            gen.load_share = demand * weight

    def _check_protection(self, dt: float):
        for gen in self.generators.values():
            reason = self.protection.evaluate(gen, dt)
            if reason is not None:
                gen.trip(reason)
                self.log_alert(Severity.CRITICAL, f"{gen.name} TRIPPED: {reason}", gen.name)

        if self.shore.check_overload(self._shore_demand,
                                     self.settings.overcurrent_time, dt):
            self.shore.trip('overload')
            self.log_alert(Severity.CRITICAL, "Shore breaker TRIPPED: overload", "SHORE")

    # ------------------------------------------------------------------
    # Id resolution at the command boundary
    # ------------------------------------------------------------------
    def _resolve(self, enum_type, value, kind: str):
        try:
            return enum_type(value)
        except (ValueError, TypeError):
            self.log_alert(Severity.WARNING, f"Unknown {kind} '{value}'")
            return None

    def _number(self, value, what: str) -> Optional[float]:
        """Coerce a numeric command argument; None (with a warning) if unusable."""
        try:
            number = float(value)
        except (ValueError, TypeError):
            number = None
        if number is None or not math.isfinite(number):
            self.log_alert(Severity.WARNING, f"Invalid {what} '{value}'")
            return None
        return number

    def _generator(self, gen_id) -> Optional[Generator]:
        resolved = self._resolve(GeneratorId, gen_id, "generator")
        return self.generators[resolved] if resolved is not None else None

    def _transformer(self, transformer_id) -> Optional[Transformer]:
        resolved = self._resolve(TransformerId, transformer_id, "transformer")
        return self.transformers[resolved] if resolved is not None else None

    def _consumer(self, consumer_id) -> Optional[HeavyConsumer]:
        resolved = self._resolve(ConsumerId, consumer_id, "consumer")
        return self.consumers[resolved] if resolved is not None else None

    # ------------------------------------------------------------------
    # Operator commands
    # ------------------------------------------------------------------
    def start_generator(self, gen_id) -> bool:
        gen = self._generator(gen_id)
        if gen is None:
            return False
        if gen.damaged:
            self.log_alert(Severity.WARNING, f"{gen.name} is damaged and cannot be started",
                           gen.name)
            return False
        if gen.state is not GeneratorState.OFF:
            self.log_alert(Severity.WARNING,
                           f"{gen.name} cannot start from {gen.state.value}", gen.name)
            return False
        gen.set_state(GeneratorState.PRE_LUBE)
        self.log_alert(Severity.INFO, f"{gen.name} start sequence initiated (pre-lube)", gen.name)
        return True

    def start_emergency_generator(self) -> bool:
        return self.start_generator(GeneratorId.EMG)

    def stop_generator(self, gen_id) -> bool:
        gen = self._generator(gen_id)
        if gen is None:
            return False
        if gen.state in (GeneratorState.OFF, GeneratorState.COOL_DOWN):
            self.log_alert(Severity.WARNING, f"{gen.name} is already stopping or stopped",
                           gen.name)
            return False
        if gen.breaker_state is BreakerState.CLOSED:
            gen.open_breaker()
            self.log_alert(Severity.INFO, f"{gen.name} breaker OPENED", gen.name)
        gen.set_state(GeneratorState.COOL_DOWN)
        self.log_alert(Severity.INFO, f"{gen.name} stopping, cool-down started", gen.name)
        return True

    def close_breaker(self, gen_id) -> bool:
        """
        Close a generator breaker, running the synchronisation check against
        a live bus.

        Returns:
            True when the breaker ends up closed
        """
        gen = self._generator(gen_id)
        if gen is None:
            return False
        if gen.breaker_state is BreakerState.CLOSED:
            return True
        if gen.breaker_state is BreakerState.TRIPPED:
            self.log_alert(Severity.WARNING,
                           f"{gen.name} breaker is tripped ({gen.trip_reason}), reset it first",
                           gen.name)
            return False
        if gen.state is not GeneratorState.RUNNING:
            self.log_alert(Severity.WARNING, f"{gen.name} is not running, breaker not closed",
                           gen.name)
            return False
        if gen.damaged:
            self.log_alert(Severity.WARNING,
                           f"{gen.name} is damaged, breaker not closed until repaired", gen.name)
            return False
        if not gen.emergency and self.shore.connected:
            self.log_alert(Severity.WARNING,
                           f"{gen.name} cannot parallel with shore power, disconnect shore first",
                           gen.name)
            return False
        if (gen.emergency and self.emergency_bus_tie_closed
                and self.buses[BusId.MAIN].live):
            self.log_alert(Severity.WARNING,
                           f"{gen.name} cannot close onto the live main bus, open the bus-tie first",
                           gen.name)
            return False

        bus = self.buses[gen.bus_id]
        if not bus.live or gen.emergency:
            gen.breaker_state = BreakerState.CLOSED
            self.log_alert(Severity.INFO, f"{gen.name} breaker CLOSED (dead bus)", gen.name)
            return True

        result = check_sync(gen, bus, self.settings)
        if result.severity is SyncSeverity.OK:
            gen.breaker_state = BreakerState.CLOSED
            self.log_alert(Severity.INFO, f"{gen.name} breaker CLOSED", gen.name)
            return True
        if result.severity is SyncSeverity.WARNING:
            gen.breaker_state = BreakerState.CLOSED
            self.log_alert(Severity.WARNING,
                           f"{gen.name} breaker CLOSED out of sync window ({result.reason})",
                           gen.name)
            return True

        gen.breaker_state = BreakerState.CLOSED
        gen.damaged = True
        self.damage_count += 1
        if result.blackout:
            self.log_alert(Severity.CRITICAL,
                           f"{gen.name} closed {result.phase_diff_deg:.0f} deg out of phase, "
                           f"{bus.bus_id.value} bus blackout", gen.name)
            for other in self._section_generators(gen.bus_id):
                if not other.emergency and other.breaker_state is BreakerState.CLOSED:
                    other.trip(result.reason)
                    self.log_alert(Severity.CRITICAL, f"{other.name} TRIPPED: {result.reason}",
                                   other.name)
        else:
            gen.trip(result.reason)
            self.log_alert(Severity.CRITICAL,
                           f"{gen.name} TRIPPED: {result.reason} (dV={result.voltage_diff:.1f} V, "
                           f"dF={result.frequency_diff:.2f} Hz, "
                           f"dPhase={result.phase_diff_deg:.1f} deg)", gen.name)
        self._check_game_over()
        return False

    def _check_game_over(self):
        if self.damage_count >= self.settings.max_damage_incidents and self.game_over_reason is None:
            self.game_over_reason = (f"{self.damage_count} synchronisation damage incidents")
            self.log_alert(Severity.CRITICAL, f"EXERCISE ENDED: {self.game_over_reason}")

    def open_breaker(self, gen_id):
        gen = self._generator(gen_id)
        if gen is None or gen.breaker_state is not BreakerState.CLOSED:
            return
        gen.open_breaker()
        self.log_alert(Severity.INFO, f"{gen.name} breaker OPENED", gen.name)

    def reset_breaker(self, gen_id):
        gen = self._generator(gen_id)
        if gen is None or gen.breaker_state is not BreakerState.TRIPPED:
            return
        gen.breaker_state = BreakerState.OPEN
        gen.trip_reason = None
        self.log_alert(Severity.INFO, f"{gen.name} breaker reset", gen.name)

    def auto_sync(self, gen_id) -> bool:
        """
        Close the breaker once the incoming machine is in the sync window.

        Returns:
            True when the breaker is closed; False means retry on a later tick
        """
        gen = self._generator(gen_id)
        if gen is None:
            return False
        if gen.breaker_state is BreakerState.CLOSED:
            return True
        bus = self.buses[gen.bus_id]
        if gen.breaker_state is BreakerState.TRIPPED or gen.state is not GeneratorState.RUNNING \
                or not bus.live:
            return self.close_breaker(gen.gen_id)

        s = self.settings
        dv = abs(gen.voltage - bus.voltage)
        df = abs(gen.frequency - bus.frequency)
        if dv > 2.0 * s.sync_voltage_tolerance or df > 2.0 * s.sync_frequency_tolerance:
            self.log_alert(Severity.WARNING,
                           f"{gen.name} auto-sync blocked: dV={dv:.1f} V, dF={df:.2f} Hz",
                           gen.name)
            return False
        dphi = abs(math.degrees(angle_diff(gen.phase_angle, bus.phase_angle)))
        if dphi <= s.sync_phase_tolerance:
            return self.close_breaker(gen.gen_id)
        self.log_alert(Severity.INFO, f"{gen.name} auto-sync waiting for phase window", gen.name)
        return False

    def set_governor_setpoint(self, gen_id, rpm: float):
        gen = self._generator(gen_id)
        rpm = self._number(rpm, "governor setpoint")
        if gen is not None and rpm is not None:
            gen.governor.setpoint_rpm = clamp(rpm, 0.0, 1.15 * self.settings.nominal_rpm)

    def set_avr_setpoint(self, gen_id, voltage: float):
        gen = self._generator(gen_id)
        voltage = self._number(voltage, "AVR setpoint")
        if gen is not None and voltage is not None:
            gen.avr.setpoint = clamp(voltage, 0.0, 1.2 * self.settings.nominal_voltage)

    def set_speed_mode(self, gen_id, mode):
        gen = self._generator(gen_id)
        resolved = self._resolve(SpeedMode, mode, "speed mode")
        if gen is None or resolved is None:
            return
        gen.governor.set_mode(resolved)
        self.log_alert(Severity.INFO, f"{gen.name} governor mode: {resolved.value}", gen.name)

    def set_droop_percent(self, gen_id, percent: float):
        gen = self._generator(gen_id)
        percent = self._number(percent, "droop percent")
        if gen is not None and percent is not None:
            gen.governor.droop_percent = clamp(percent, 0.0, 8.0)

    def set_iso_comms(self, gen_id, enabled: bool):
        gen = self._generator(gen_id)
        if gen is not None:
            gen.governor.iso_comms_enabled = bool(enabled)
            gen.governor.reset()

    def set_emergency_bus_tie(self, closed: bool):
        closed = bool(closed)
        if closed == self.emergency_bus_tie_closed:
            return
        emg = self.generators[GeneratorId.EMG]
        if closed and emg.online and self.buses[BusId.MAIN].live:
            self.log_alert(Severity.WARNING,
                           "Emergency bus-tie not closed: open the EMG breaker first",
                           BusId.EMERGENCY.value)
            return
        self.emergency_bus_tie_closed = closed
        self.log_alert(Severity.INFO,
                       f"Emergency bus-tie {'CLOSED' if closed else 'OPENED'}",
                       BusId.EMERGENCY.value)

    def set_main_bus_tie(self, closed: bool):
        closed = bool(closed)
        if closed == self.main_bus_tie_closed:
            return
        if closed:
            port, stbd = self.buses[BusId.PORT], self.buses[BusId.STBD]
            if port.live and stbd.live and not self._sections_in_sync(port, stbd):
                self.log_alert(Severity.WARNING,
                               "Main bus-tie not closed: port and starboard not synchronised",
                               BusId.MAIN.value)
                return
        self.main_bus_tie_closed = closed
        self.log_alert(Severity.INFO, f"Main bus-tie {'CLOSED' if closed else 'OPENED'}",
                       BusId.MAIN.value)

    def _sections_in_sync(self, a: Bus, b: Bus) -> bool:
        s = self.settings
        return (abs(a.voltage - b.voltage) <= s.sync_voltage_tolerance
                and abs(a.frequency - b.frequency) <= s.sync_frequency_tolerance
                and abs(math.degrees(angle_diff(a.phase_angle, b.phase_angle)))
                <= s.sync_phase_tolerance)

    def open_transformer_breaker(self, transformer_id):
        self._set_transformer(transformer_id, False)

    def close_transformer_breaker(self, transformer_id):
        self._set_transformer(transformer_id, True)

    def _set_transformer(self, transformer_id, closed: bool):
        transformer = self._transformer(transformer_id)
        if transformer is None or transformer.breaker_closed == closed:
            return
        transformer.breaker_closed = closed
        self.log_alert(Severity.INFO, f"{transformer.transformer_id.value} breaker "
                       f"{'CLOSED' if closed else 'OPENED'}", transformer.transformer_id.value)

    def enable_consumer(self, consumer_id):
        consumer = self._consumer(consumer_id)
        if consumer is not None:
            consumer.enabled = True

    def disable_consumer(self, consumer_id):
        consumer = self._consumer(consumer_id)
        if consumer is not None:
            consumer.enabled = False

    def open_consumer_breaker(self, consumer_id):
        self._set_consumer_breaker(consumer_id, False)

    def close_consumer_breaker(self, consumer_id):
        self._set_consumer_breaker(consumer_id, True)

    def _set_consumer_breaker(self, consumer_id, closed: bool):
        consumer = self._consumer(consumer_id)
        if consumer is None or consumer.breaker_closed == closed:
            return
        consumer.breaker_closed = closed
        self.log_alert(Severity.INFO,
                       f"{consumer.name} breaker {'CLOSED' if closed else 'OPENED'}",
                       consumer.consumer_id.value)

    def connect_shore(self) -> bool:
        if self.shore.connected:
            return True
        if not self.shore.available:
            self.log_alert(Severity.WARNING, "Shore power not available", "SHORE")
            return False
        if any(g.online for g in self._main_generators()):
            self.log_alert(Severity.WARNING,
                           "Shore breaker not closed: open all main generator breakers first",
                           "SHORE")
            return False
        self.shore.breaker_state = BreakerState.CLOSED
        self.shore.trip_reason = None
        self.log_alert(Severity.INFO, "Shore breaker CLOSED", "SHORE")
        return True

    def disconnect_shore(self):
        if self.shore.breaker_state is BreakerState.OPEN:
            return
        self.shore.breaker_state = BreakerState.OPEN
        self.shore.power = 0.0
        self.log_alert(Severity.INFO, "Shore breaker OPENED", "SHORE")

    # ------------------------------------------------------------------
    # Scenario setup (bypasses operator validation)
    # ------------------------------------------------------------------
    def force_generator_state(self, gen_id, state=None, breaker_state=None,
                              trip_reason: Optional[str] = None, speed_mode=None,
                              speed_setpoint: Optional[float] = None,
                              voltage_setpoint: Optional[float] = None,
                              droop_percent: Optional[float] = None,
                              iso_comms_enabled: Optional[bool] = None,
                              auto_start: Optional[bool] = None,
                              phase_angle: Optional[float] = None,
                              damaged: Optional[bool] = None):
        """
        Put a generator straight into a given condition.

        Args:
            gen_id: Generator to set up
            state: GeneratorState (or its name)
            breaker_state: BreakerState (or its name)
            trip_reason: Reason recorded with a forced TRIPPED breaker
            speed_mode: 'droop' or 'isochronous'
            speed_setpoint: Governor setpoint (pu of nominal speed)
            voltage_setpoint: AVR setpoint (pu of nominal voltage)
            droop_percent: Governor droop (%)
            iso_comms_enabled: Load-sharing link in isochronous mode
            auto_start: Start automatically on blackout
            phase_angle: Rotor phase angle (rad)
            damaged: Damage flag
        """
        gen = self._generator(gen_id)
        if gen is None:
            return
        numbers = {}
        for what, value in (('speed setpoint', speed_setpoint), ('voltage setpoint', voltage_setpoint),
                            ('droop percent', droop_percent), ('phase angle', phase_angle)):
            if value is not None:
                numbers[what] = self._number(value, what)
                if numbers[what] is None:
                    return
        speed_setpoint = numbers.get('speed setpoint')
        voltage_setpoint = numbers.get('voltage setpoint')
        droop_percent = numbers.get('droop percent')
        phase_angle = numbers.get('phase angle')
        s = self.settings

        if speed_setpoint is not None:
            gen.governor.setpoint_rpm = max(speed_setpoint, 0.0) * s.nominal_rpm
        if voltage_setpoint is not None:
            gen.avr.setpoint = max(voltage_setpoint, 0.0) * s.nominal_voltage
        if droop_percent is not None:
            gen.governor.droop_percent = clamp(droop_percent, 0.0, 8.0)
        if iso_comms_enabled is not None:
            gen.governor.iso_comms_enabled = bool(iso_comms_enabled)
        if speed_mode is not None:
            mode = self._resolve(SpeedMode, speed_mode, "speed mode")
            if mode is not None:
                gen.governor.set_mode(mode)
        if auto_start is not None:
            gen.auto_start = bool(auto_start)
        if damaged is not None:
            gen.damaged = bool(damaged)

        if state is not None:
            new_state = self._resolve(GeneratorState, state, "generator state")
            if new_state is not None:
                gen.set_state(new_state)
                gen.governor.reset()
                gen.avr.reset()
                if new_state is GeneratorState.RUNNING:
                    gen.rpm = gen.governor.setpoint_rpm
                    gen.voltage = gen.avr.setpoint
                elif new_state is GeneratorState.OFF:
                    gen.rpm = 0.0
                    gen.voltage = 0.0

        if breaker_state is not None:
            new_breaker = self._resolve(BreakerState, breaker_state, "breaker state")
            if new_breaker is BreakerState.TRIPPED:
                gen.trip(trip_reason or 'forced')
            elif new_breaker is not None:
                gen.breaker_state = new_breaker
                gen.trip_reason = None

        if phase_angle is not None:
            gen.phase_angle = wrap_angle(phase_angle)

        if not gen.online:
            gen.active_power = 0.0
            gen.reactive_power = 0.0
            gen.electrical_load = 0.0
        gen.frequency = rpm_to_hz(gen.rpm, gen.poles)
        gen.reset_protection_timers()
        logger.debug(f"Forced {gen}")

    def force_bus_voltage(self, voltage: float, bus_id=BusId.MAIN):
        voltage = self._number(voltage, "bus voltage")
        if voltage is None:
            return
        for bus in self._forced_buses(bus_id):
            bus.force(voltage=voltage)

    def force_bus_frequency(self, frequency: float, bus_id=BusId.MAIN):
        frequency = self._number(frequency, "bus frequency")
        if frequency is None:
            return
        for bus in self._forced_buses(bus_id):
            bus.force(frequency=frequency)

    def _forced_buses(self, bus_id) -> List[Bus]:
        resolved = self._resolve(BusId, bus_id, "bus")
        if resolved is None:
            return []
        if resolved is BusId.MAIN:
            return [self.buses[BusId.MAIN], self.buses[BusId.PORT], self.buses[BusId.STBD]]
        return [self.buses[resolved]]

    def force_blackout(self, active: bool = True):
        """Kill the main switchboard; the next tick runs blackout handling."""
        if not active:
            self.blackout.reset()
            return
        for bus_id in (BusId.MAIN, BusId.PORT, BusId.STBD):
            bus = self.buses[bus_id]
            bus.force(voltage=0.0, frequency=0.0)
            bus.total_generation = 0.0

    def set_load_demand(self, kw: float):
        kw = self._number(kw, "load demand")
        if kw is not None:
            self.base_load = max(kw, 0.0)

    def get_load_demand(self) -> float:
        return self.base_load

    def set_auto_start(self, gen_id, enabled: bool):
        gen = self._generator(gen_id)
        if gen is not None:
            gen.auto_start = bool(enabled)

    def set_emg_auto_start(self, enabled: bool):
        self.generators[GeneratorId.EMG].auto_start = bool(enabled)

    def set_battery_timer(self, seconds: float):
        seconds = self._number(seconds, "battery time")
        if seconds is not None:
            self.blackout.set_battery_timer(seconds)

    def trip_generator(self, gen_id, reason: str = 'manual_trip'):
        gen = self._generator(gen_id)
        if gen is None or gen.breaker_state is not BreakerState.CLOSED:
            return
        gen.trip(reason)
        self.log_alert(Severity.CRITICAL, f"{gen.name} TRIPPED: {reason}", gen.name)

    def repair_generator(self, gen_id):
        gen = self._generator(gen_id)
        if gen is None or not gen.damaged:
            return
        gen.damaged = False
        self.log_alert(Severity.INFO, f"{gen.name} repaired", gen.name)

    def force_governor_fault(self, gen_id, faulty_setpoint: float, duration: float):
        """Replace the governor setpoint (pu) for `duration` seconds."""
        gen = self._generator(gen_id)
        faulty_setpoint = self._number(faulty_setpoint, "fault setpoint")
        duration = self._number(duration, "fault duration")
        if gen is None or faulty_setpoint is None or duration is None:
            return
        rpm = clamp(faulty_setpoint * self.settings.nominal_rpm, 0.0,
                    1.15 * self.settings.nominal_rpm)
        gen.apply_governor_fault(rpm, max(duration, 0.0))
        self.log_alert(Severity.WARNING,
                       f"{gen.name} governor fault: setpoint {rpm:.0f} rpm", gen.name)

    # ------------------------------------------------------------------
    # Query
    # ------------------------------------------------------------------
    def synchroscopes(self) -> Dict[str, SynchroscopeReading]:
        readings = {}
        for gen in self.generators.values():
            bus = self.buses[gen.bus_id]
            if (gen.state is GeneratorState.RUNNING and gen.breaker_state is BreakerState.OPEN
                    and bus.live):
                readings[gen.name] = synchroscope(gen, bus, self.settings)
        return readings

    def get_state(self) -> PlantSnapshot:
        """Build an immutable snapshot of the whole plant."""
        return PlantSnapshot(
            time=self.time,
            generators={g.name: GeneratorSnapshot(**g.get_status())
                        for g in self.generators.values()},
            buses={b.value: BusSnapshot(**self.buses[b].get_status()) for b in MAIN_BUSES},
            sub_buses={b.value: BusSnapshot(**self.buses[b].get_status()) for b in SUB_BUSES},
            transformers={t.transformer_id.value: TransformerSnapshot(**t.get_status())
                          for t in self.transformers.values()},
            consumers={c.consumer_id.value: ConsumerSnapshot(**c.get_status())
                       for c in self.consumers.values()},
            shore=ShoreSnapshot(**self.shore.get_status()),
            main_bus_tie_closed=self.main_bus_tie_closed,
            emergency_bus_tie_closed=self.emergency_bus_tie_closed,
            synchroscopes=self.synchroscopes(),
            alerts=tuple(self.alerts.recent(self.settings.snapshot_alert_count)),
            load_demand=self.base_load,
            blackout=self.blackout.active,
            blackout_timer=self.blackout.timer,
            battery_timer=self.blackout.battery_timer,
            battery_depleted=self.blackout.battery_depleted,
            damage_count=self.damage_count,
            game_over_reason=self.game_over_reason,
        )

    def __str__(self):
        main = self.buses[BusId.MAIN]
        return (f"t={self.time:.2f}s | MAIN {main.voltage:.0f} V {main.frequency:.2f} Hz | "
                f"load={main.total_load:.0f} kW gen={main.total_generation:.0f} kW")
