"""
Tests for the engine surface: steady-state behaviour, state invariants
under arbitrary command sequences, snapshots, determinism and input
handling
"""

import math

import numpy as np
import pytest
from pydantic import ValidationError

from marine_pms import PlantEngine, PlantSettings


def _snapshot_invariants(state):
    for gen in state.generators.values():
        assert gen.voltage >= 0.0
        assert gen.rpm >= 0.0
        assert 0.0 <= gen.phase_angle < 2.0 * math.pi
        if gen.active_power != 0.0:
            assert gen.state == 'RUNNING'
            assert gen.breaker_state == 'CLOSED'
    for bus in list(state.buses.values()) + list(state.sub_buses.values()):
        assert bus.voltage >= 0.0
        assert bus.frequency >= 0.0
        assert 0.0 <= bus.phase_angle < 2.0 * math.pi


def _random_command(plant, rng):
    gen_id = str(rng.choice(['DG1', 'DG2', 'DG3', 'DG4', 'EMG']))
    choice = int(rng.integers(0, 12))
    if choice == 0:
        plant.start_generator(gen_id)
    elif choice == 1:
        plant.stop_generator(gen_id)
    elif choice == 2:
        plant.close_breaker(gen_id)
    elif choice == 3:
        plant.open_breaker(gen_id)
    elif choice == 4:
        plant.reset_breaker(gen_id)
    elif choice == 5:
        plant.auto_sync(gen_id)
    elif choice == 6:
        plant.set_load_demand(float(rng.uniform(0.0, 3000.0)))
    elif choice == 7:
        plant.set_governor_setpoint(gen_id, float(rng.uniform(600.0, 800.0)))
    elif choice == 8:
        plant.set_speed_mode(gen_id, str(rng.choice(['droop', 'isochronous'])))
    elif choice == 9:
        plant.set_main_bus_tie(bool(rng.integers(0, 2)))
    elif choice == 10:
        plant.set_emergency_bus_tie(bool(rng.integers(0, 2)))
    else:
        consumer = str(rng.choice(['thruster_st', 'thruster_az', 'crane1', 'rov2']))
        plant.enable_consumer(consumer)
        plant.close_consumer_breaker(consumer)


class TestSteadyState:
    """Single unit operating points"""

    def test_droop_operating_point(self, engine, advance, online):
        online(engine, 'DG1')
        engine.set_load_demand(500.0)
        advance(engine, 5.0)

        state = engine.get_state()
        assert state.generators['DG1'].active_power == pytest.approx(500.0, rel=0.05)
        assert state.buses['MAIN'].frequency == pytest.approx(58.8, abs=0.1)
        assert state.buses['MAIN'].voltage == pytest.approx(690.0, rel=0.03)
        assert not state.blackout

    def test_initial_state(self, engine):
        state = engine.get_state()
        assert state.time == 0.0
        assert set(state.generators) == {'DG1', 'DG2', 'DG3', 'DG4', 'EMG'}
        assert set(state.buses) == {'MAIN', 'PORT', 'STBD', 'EMERGENCY'}
        assert set(state.sub_buses) == {'PORT_450', 'STBD_450', 'EMG_230', 'DC_110'}
        assert set(state.transformers) == {'T1', 'T2', 'T3', 'T4'}
        assert state.main_bus_tie_closed
        assert state.emergency_bus_tie_closed
        for gen in state.generators.values():
            assert gen.state == 'OFF'
            assert gen.breaker_state == 'OPEN'
            assert gen.speed_mode == 'droop'
        assert state.generators['DG4'].capacity == 1500.0
        assert state.generators['EMG'].emergency

    def test_time_advances_by_dt(self, engine):
        for _ in range(10):
            engine.tick(0.1)
        assert engine.get_state().time == pytest.approx(1.0)


class TestInvariants:
    """State stays physical whatever the operator does"""

    @pytest.mark.parametrize("seed", [1, 2, 3])
    def test_random_command_sequences(self, seed):
        plant = PlantEngine(seed=seed)
        rng = np.random.default_rng(seed + 100)
        for gen_id in ('DG1', 'DG3'):
            plant.force_generator_state(gen_id, state='RUNNING', breaker_state='CLOSED')
        for _ in range(600):
            if rng.random() < 0.2:
                _random_command(plant, rng)
            plant.tick(0.05)
            _snapshot_invariants(plant.get_state())


class TestSnapshots:
    """Snapshots are detached, immutable views"""

    def test_snapshot_is_frozen(self, engine):
        state = engine.get_state()
        with pytest.raises(ValidationError):
            state.time = 5.0
        with pytest.raises(ValidationError):
            state.generators['DG1'].rpm = 100.0

    def test_snapshot_does_not_alias_engine(self, engine, advance, online):
        online(engine, 'DG1')
        advance(engine, 1.0)
        state = engine.get_state()
        state.generators.pop('DG1')
        assert 'DG1' in engine.get_state().generators

        advance(engine, 1.0)
        assert state.time == pytest.approx(1.0)

    def test_alerts_in_snapshot_are_bounded(self):
        plant = PlantEngine(seed=0, snapshot_alert_count=3)
        for _ in range(10):
            plant.start_generator('XX')
        assert len(plant.get_state().alerts) == 3


class TestDeterminism:
    """Same seed and commands give the same run"""

    @staticmethod
    def _run(seed):
        plant = PlantEngine(seed=seed)
        plant.force_generator_state('DG1', state='RUNNING', breaker_state='CLOSED')
        plant.force_generator_state('DG2', state='RUNNING', breaker_state='CLOSED')
        plant.enable_consumer('thruster_st')
        plant.close_consumer_breaker('thruster_st')
        plant.enable_consumer('crane1')
        plant.close_consumer_breaker('crane1')
        trace = []
        for k in range(400):
            if k == 100:
                plant.set_load_demand(900.0)
            plant.tick(0.05)
            main = plant.buses['MAIN']
            trace.append((main.frequency, main.voltage, main.total_load))
        return trace

    def test_replay_is_identical(self):
        assert self._run(11) == self._run(11)

    def test_seed_changes_load(self):
        assert self._run(11) != self._run(12)

    def test_reset_replays(self):
        plant = PlantEngine(seed=5)

        def loads():
            plant.force_generator_state('DG1', state='RUNNING', breaker_state='CLOSED')
            values = []
            for _ in range(50):
                plant.tick(0.05)
                values.append(plant.buses['MAIN'].total_load)
            return values

        first = loads()
        plant.reset()
        assert loads() == first


class TestAlertLog:
    """Bounded log with per-tick delivery"""

    def test_log_is_bounded(self):
        plant = PlantEngine(seed=0, alert_log_size=5)
        for _ in range(20):
            plant.stop_generator('DG1')
        assert len(plant.alerts) == 5

    def test_tick_returns_alerts_since_previous_tick(self, engine):
        engine.start_generator('DG1')
        alerts = engine.tick(0.05)
        messages = [a.message for a in alerts]
        assert messages[0] == 'DG1 start sequence initiated (pre-lube)'
        assert 'MAIN BUS BLACKOUT' in messages
        assert engine.tick(0.05) == []

    def test_alert_fields(self, engine):
        engine.tick(0.05)
        alert = engine.get_state().alerts[-1]
        assert alert.time == pytest.approx(0.05)
        assert alert.severity in ('info', 'warning', 'critical')
        assert isinstance(alert.message, str)


class TestInputHandling:
    """Bad input never raises"""

    @pytest.mark.parametrize("call", [
        lambda p: p.start_generator('DG9'),
        lambda p: p.close_breaker(None),
        lambda p: p.set_speed_mode('DG1', 'turbo'),
        lambda p: p.open_transformer_breaker('T7'),
        lambda p: p.enable_consumer('winch'),
        lambda p: p.force_generator_state('DG1', state='FLYING'),
        lambda p: p.force_bus_voltage(600.0, bus_id='AUX'),
    ])
    def test_unknown_ids_warn(self, engine, call):
        call(engine)
        alert = engine.get_state().alerts[-1]
        assert alert.severity == 'warning'
        assert alert.message.startswith('Unknown')

    @pytest.mark.parametrize("dt", [0.0, -0.05, float('nan'), float('inf')])
    def test_invalid_dt_is_ignored(self, engine, dt):
        assert engine.tick(dt) == []
        assert engine.time == 0.0

    def test_setpoints_are_clamped(self, engine):
        engine.set_governor_setpoint('DG1', 10000.0)
        engine.set_avr_setpoint('DG1', -50.0)
        engine.set_droop_percent('DG1', 20.0)
        gen = engine.get_state().generators['DG1']
        assert gen.governor_setpoint == pytest.approx(828.0)
        assert gen.avr_setpoint == 0.0
        assert gen.droop_percent == 8.0

    def test_load_demand_not_negative(self, engine):
        engine.set_load_demand(-100.0)
        assert engine.get_load_demand() == 0.0

    @pytest.mark.parametrize("call", [
        lambda p: p.set_governor_setpoint('DG1', float('nan')),
        lambda p: p.set_governor_setpoint('DG1', 'fast'),
        lambda p: p.set_avr_setpoint('DG1', float('inf')),
        lambda p: p.set_droop_percent('DG1', None),
        lambda p: p.set_load_demand('lots'),
        lambda p: p.set_battery_timer(None),
        lambda p: p.force_governor_fault('DG1', None, 2.0),
        lambda p: p.force_governor_fault('DG1', 1.05, float('nan')),
        lambda p: p.force_bus_voltage(float('nan')),
        lambda p: p.force_bus_frequency('high'),
        lambda p: p.force_generator_state('DG1', state='OFF', speed_setpoint=float('nan')),
        lambda p: p.force_generator_state('DG1', phase_angle=[1.0]),
    ])
    def test_invalid_numbers_warn_and_change_nothing(self, engine, advance, online, call):
        online(engine, 'DG1', 'DG2')
        engine.set_load_demand(600.0)
        advance(engine, 1.0)
        before = engine.get_state()

        call(engine)
        after = engine.get_state()
        assert after.alerts[-1].severity == 'warning'
        assert after.alerts[-1].message.startswith('Invalid')
        assert after.generators == before.generators
        assert after.buses == before.buses
        assert after.load_demand == before.load_demand
        assert after.battery_timer == before.battery_timer

    def test_nan_setpoint_keeps_plant_physical(self, engine, advance, online):
        online(engine, 'DG1', 'DG2')
        engine.set_load_demand(600.0)
        engine.set_governor_setpoint('DG1', float('nan'))
        engine.set_avr_setpoint('DG1', float('nan'))
        alerts = advance(engine, 1.0)

        state = engine.get_state()
        _snapshot_invariants(state)
        assert state.buses['MAIN'].live
        assert 'MAIN BUS BLACKOUT' not in [a.message for a in alerts]


class TestSettings:
    """Configuration validation"""

    def test_defaults(self):
        s = PlantSettings()
        assert s.nominal_rpm == 720.0
        assert s.capacities()['DG4'] == 1500.0

    def test_inverted_frequency_band_rejected(self):
        with pytest.raises(ValidationError):
            PlantSettings(under_freq_trip=70.0)

    def test_unknown_field_rejected(self):
        with pytest.raises(ValidationError):
            PlantEngine(governer_tau=1.0)

    def test_overrides_on_top_of_settings(self):
        plant = PlantEngine(PlantSettings(base_load=800.0), seed=4)
        assert plant.settings.base_load == 800.0
        assert plant.settings.seed == 4
        assert plant.get_load_demand() == 800.0


class TestCommands:
    """Operator and setup commands reach the plant state"""

    def test_speed_mode_and_comms(self, engine):
        engine.set_speed_mode('DG1', 'isochronous')
        engine.set_iso_comms('DG1', False)
        gen = engine.get_state().generators['DG1']
        assert gen.speed_mode == 'isochronous'
        assert not gen.iso_comms_enabled
        assert any(a.message == 'DG1 governor mode: isochronous'
                   for a in engine.get_state().alerts)

    def test_auto_start_flags(self, engine):
        engine.set_auto_start('DG2', True)
        engine.set_emg_auto_start(True)
        state = engine.get_state()
        assert state.generators['DG2'].auto_start
        assert state.generators['EMG'].auto_start

        engine.set_emg_auto_start(False)
        assert not engine.get_state().generators['EMG'].auto_start

    def test_force_bus_frequency(self, engine):
        engine.force_bus_frequency(59.0)
        engine.force_bus_frequency(50.0, bus_id='EMERGENCY')
        state = engine.get_state()
        for bus_id in ('MAIN', 'PORT', 'STBD'):
            assert state.buses[bus_id].frequency == 59.0
        assert state.buses['EMERGENCY'].frequency == 50.0

    def test_force_bus_voltage_sets_live(self, engine):
        engine.force_bus_voltage(690.0, bus_id='STBD')
        state = engine.get_state()
        assert state.buses['STBD'].live
        assert not state.buses['PORT'].live

    def test_consumer_disable_and_breaker(self, engine, advance, online):
        online(engine, 'DG1')
        engine.enable_consumer('rov2')
        engine.close_consumer_breaker('rov2')
        advance(engine, 3.0)
        assert engine.get_state().consumers['rov2'].load > 90.0

        engine.disable_consumer('rov2')
        advance(engine, 3.0)
        assert engine.get_state().consumers['rov2'].load < 5.0

        engine.open_consumer_breaker('rov2')
        state = engine.get_state()
        assert not state.consumers['rov2'].breaker_closed
        assert state.alerts[-1].message == 'ROV 2 breaker OPENED'

    def test_repair_clears_damage(self, engine):
        engine.force_generator_state('DG3', damaged=True)
        engine.repair_generator('DG3')
        state = engine.get_state()
        assert not state.generators['DG3'].damaged
        assert state.alerts[-1].message == 'DG3 repaired'
