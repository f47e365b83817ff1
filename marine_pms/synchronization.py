"""
Synchronisation check for closing a generator onto a live bus, and the
synchroscope reading shown for an incoming machine.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .mathutil import angle_diff
from .snapshot import SynchroscopeReading

# Beyond these a closure is destructive regardless of tolerances
DAMAGE_PHASE_DEG = 30.0
BLACKOUT_PHASE_DEG = 90.0
DAMAGE_FREQUENCY_HZ = 0.5
DAMAGE_VOLTAGE_FACTOR = 3.0


class SyncSeverity(str, Enum):
    OK = "ok"
    WARNING = "warning"
    DAMAGE = "damage"


@dataclass(frozen=True)
class SyncResult:
    severity: SyncSeverity
    voltage_diff: float
    frequency_diff: float
    phase_diff_deg: float
    reason: Optional[str] = None
    blackout: bool = False


def check_sync(gen, bus, settings) -> SyncResult:
    """Classify closing `gen` onto the live `bus` at this instant."""
    dv = abs(gen.voltage - bus.voltage)
    df = abs(gen.frequency - bus.frequency)
    dphi = abs(math.degrees(angle_diff(gen.phase_angle, bus.phase_angle)))
    deltas = dict(voltage_diff=dv, frequency_diff=df, phase_diff_deg=dphi)

    if dphi > BLACKOUT_PHASE_DEG:
        return SyncResult(SyncSeverity.DAMAGE, reason='sync_blackout', blackout=True, **deltas)
    if dphi > DAMAGE_PHASE_DEG:
        return SyncResult(SyncSeverity.DAMAGE, reason='sync_damage', **deltas)
    if df > DAMAGE_FREQUENCY_HZ:
        return SyncResult(SyncSeverity.DAMAGE, reason='sync_surge', **deltas)
    if dv > DAMAGE_VOLTAGE_FACTOR * settings.sync_voltage_tolerance:
        return SyncResult(SyncSeverity.DAMAGE, reason='sync_surge', **deltas)

    outside = []
    if dphi > settings.sync_phase_tolerance:
        outside.append(f"phase {dphi:.1f} deg")
    if df > settings.sync_frequency_tolerance:
        outside.append(f"slip {df:.2f} Hz")
    if dv > settings.sync_voltage_tolerance:
        outside.append(f"voltage {dv:.1f} V")
    if outside:
        return SyncResult(SyncSeverity.WARNING, reason=", ".join(outside), **deltas)
    return SyncResult(SyncSeverity.OK, **deltas)


def synchroscope(gen, bus, settings) -> SynchroscopeReading:
    phase = angle_diff(gen.phase_angle, bus.phase_angle)
    df = gen.frequency - bus.frequency
    dv = gen.voltage - bus.voltage
    in_window = (abs(math.degrees(phase)) <= settings.sync_phase_tolerance
                 and abs(df) <= settings.sync_frequency_tolerance
                 and abs(dv) <= settings.sync_voltage_tolerance)
    return SynchroscopeReading(
        generator=gen.name,
        bus=bus.bus_id.value,
        phase_difference=phase,
        phase_difference_deg=math.degrees(phase),
        frequency_difference=df,
        voltage_difference=dv,
        in_window=in_window,
    )
