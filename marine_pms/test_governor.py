"""
Tests for governor and AVR behaviour, alone and in parallel operation
"""

import numpy as np
import pytest

from marine_pms.components import AVR, AVRParams, Governor, GovernorParams
from marine_pms.states import SpeedMode

DT = 0.05


class TestGovernorUnit:
    """Governor with fixed measurements"""

    def test_droop_solves_power_from_bus_frequency(self):
        gov = Governor(GovernorParams(tau=0.8), setpoint_rpm=720.0, droop_percent=4.0)
        power, rpm = 0.0, 720.0
        for _ in range(400):
            power, rpm = gov.step(rpm, power, 1000.0, DT, bus_frequency=58.8,
                                  electrical_load=500.0)
        assert power == pytest.approx(500.0, abs=1.0)
        # 60 Hz * (1 - 0.04 * 0.5) = 58.8 Hz
        assert rpm == pytest.approx(705.6, abs=0.1)
        assert gov.fuel_command == pytest.approx(0.15 + 0.85 * 0.5, abs=1e-3)

    def test_droop_power_is_clamped_to_rating(self):
        gov = Governor(GovernorParams(), setpoint_rpm=720.0)
        power, rpm = 0.0, 720.0
        for _ in range(400):
            power, rpm = gov.step(rpm, power, 1000.0, DT, bus_frequency=50.0,
                                  electrical_load=1000.0)
        assert 0.0 <= power <= 1000.0
        assert power == pytest.approx(1000.0, abs=1.0)

    def test_isochronous_with_comms_takes_capacity_share(self):
        gov = Governor(GovernorParams(), setpoint_rpm=720.0, mode=SpeedMode.ISOCHRONOUS)
        power, rpm = 0.0, 700.0
        for _ in range(400):
            power, rpm = gov.step(rpm, power, 1000.0, DT, load_share=300.0)
        assert power == pytest.approx(300.0, abs=0.5)
        assert rpm == pytest.approx(720.0, abs=0.01)

    def test_mode_change_clears_integral(self):
        gov = Governor(GovernorParams(), setpoint_rpm=720.0, mode=SpeedMode.ISOCHRONOUS,
                       iso_comms_enabled=False)
        gov.step(700.0, 0.0, 1000.0, DT, unserved=200.0)
        assert gov.integral != 0.0
        gov.set_mode(SpeedMode.DROOP)
        assert gov.integral == 0.0

    def test_integral_is_clamped(self):
        params = GovernorParams()
        gov = Governor(params, setpoint_rpm=720.0, mode=SpeedMode.ISOCHRONOUS,
                       iso_comms_enabled=False)
        for _ in range(2000):
            gov.step(360.0, 0.0, 1000.0, DT)
        assert gov.integral == pytest.approx(params.integral_limit)

    def test_no_load_tracks_setpoint(self):
        gov = Governor(GovernorParams(), setpoint_rpm=740.0)
        rpm = 720.0
        for _ in range(200):
            rpm = gov.no_load(rpm, DT)
        assert rpm == pytest.approx(740.0, abs=0.01)


class TestAVRUnit:
    """AVR sag and excitation"""

    def test_excitation_recovers_full_load_sag(self):
        avr = AVR(AVRParams(), setpoint=690.0)
        voltage = 690.0
        for _ in range(200):
            voltage, _ = avr.step(voltage, 1000.0, 1000.0, DT)
        assert voltage == pytest.approx(690.0, abs=0.5)
        assert avr.excitation == pytest.approx(1.05, abs=1e-3)

    def test_reactive_power_clamped_to_half_rating(self):
        avr = AVR(AVRParams(), setpoint=690.0)
        _, reactive = avr.step(690.0, 500.0, 1000.0, DT, bus_voltage=400.0)
        assert reactive == pytest.approx(500.0)
        _, reactive = avr.step(690.0, 500.0, 1000.0, DT, bus_voltage=1000.0)
        assert reactive == pytest.approx(-500.0)

    def test_open_breaker_gives_no_reactive_power(self):
        avr = AVR(AVRParams(), setpoint=690.0)
        _, reactive = avr.step(600.0, 0.0, 1000.0, DT)
        assert reactive == 0.0


class TestParallelOperation:
    """Load sharing between generators on a common bus"""

    def test_droop_units_share_load(self, engine, advance, online):
        online(engine, 'DG1', 'DG2')
        engine.set_load_demand(1200.0)
        advance(engine, 30.0)

        state = engine.get_state()
        p1 = state.generators['DG1'].active_power
        p2 = state.generators['DG2'].active_power
        assert abs(p1 - p2) <= 0.05 * (p1 + p2) / 2
        assert p1 + p2 == pytest.approx(1200.0, rel=0.02)
        # Both at 60 % load on a 4 % droop line: 60 * (1 - 0.04 * 0.6)
        assert state.buses['MAIN'].frequency == pytest.approx(58.56, abs=0.1)

    def test_droop_shares_by_capacity(self, engine, advance, online):
        online(engine, 'DG3', 'DG4')
        engine.set_load_demand(1250.0)
        advance(engine, 40.0)

        state = engine.get_state()
        p3 = state.generators['DG3'].active_power
        p4 = state.generators['DG4'].active_power
        assert p3 / 1000.0 == pytest.approx(p4 / 1500.0, rel=0.05)

    def test_isochronous_with_comms_holds_nominal(self, engine, advance, online):
        online(engine, 'DG1', 'DG2', speed_mode='isochronous', iso_comms_enabled=True)
        engine.set_load_demand(1000.0)
        advance(engine, 10.0)

        state = engine.get_state()
        assert state.buses['MAIN'].frequency == pytest.approx(60.0, abs=0.05)
        assert state.generators['DG1'].active_power == pytest.approx(500.0, rel=0.05)
        assert state.generators['DG2'].active_power == pytest.approx(500.0, rel=0.05)

    def test_isochronous_without_comms_hunts(self, engine, advance, online):
        online(engine, 'DG1', 'DG2', speed_mode='isochronous', iso_comms_enabled=False)
        engine.set_load_demand(1000.0)
        advance(engine, 20.0)

        window = []
        for _ in range(200):
            engine.tick(DT)
            window.append(engine.get_state().buses['MAIN'].frequency)
        assert np.std(window) > 0.05

        state = engine.get_state()
        assert state.generators['DG1'].breaker_state == 'CLOSED'
        assert state.generators['DG2'].breaker_state == 'CLOSED'

    def test_single_isochronous_unit_settles(self, engine, advance, online):
        online(engine, 'DG1', speed_mode='isochronous', iso_comms_enabled=False)
        engine.set_load_demand(500.0)
        advance(engine, 60.0)

        state = engine.get_state()
        assert state.buses['MAIN'].frequency == pytest.approx(60.0, abs=0.3)
        assert state.generators['DG1'].active_power == pytest.approx(500.0, rel=0.1)
