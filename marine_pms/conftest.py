"""
Pytest configuration and fixtures for the plant engine tests
"""

import pytest

from marine_pms import PlantEngine

DT = 0.05


@pytest.fixture
def engine():
    """Quiet plant: no load noise, no automatic emergency start"""
    return PlantEngine(seed=7, load_fluctuation_percent=0.0, emg_auto_start=False)


@pytest.fixture
def advance():
    """Run an engine for a number of simulated seconds, collecting alerts"""
    def _advance(plant, seconds, dt=DT):
        alerts = []
        for _ in range(int(round(seconds / dt))):
            alerts.extend(plant.tick(dt))
        return alerts
    return _advance


@pytest.fixture
def online():
    """Force generators straight onto the bus"""
    def _online(plant, *gen_ids, **kwargs):
        for gen_id in gen_ids:
            plant.force_generator_state(gen_id, state='RUNNING', breaker_state='CLOSED', **kwargs)
    return _online
