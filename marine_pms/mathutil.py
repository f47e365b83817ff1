"""
Numeric helpers shared by the plant components.
Exponential chase, clamping and phase-angle arithmetic.
"""

import math

import numpy as np

TWO_PI = 2.0 * math.pi


def chase(current: float, target: float, tau: float, dt: float) -> float:
    """First-order lag of `current` toward `target` with time constant `tau` (s)."""
    if tau <= 0.0:
        return float(target)
    return float(target + (current - target) * np.exp(-dt / tau))


def clamp(value: float, low: float, high: float) -> float:
    return float(np.clip(value, low, high))


def wrap_angle(angle: float) -> float:
    """Wrap an angle in radians into [0, 2pi)."""
    wrapped = math.fmod(angle, TWO_PI)
    if wrapped < 0.0:
        wrapped += TWO_PI
    # fmod of a tiny negative angle can round back up to exactly 2pi
    if wrapped >= TWO_PI:
        wrapped = 0.0
    return wrapped


def angle_diff(a: float, b: float) -> float:
    """Signed difference a - b in radians, in (-pi, pi]."""
    diff = wrap_angle(a - b)
    if diff > math.pi:
        diff -= TWO_PI
    return diff


def rpm_to_hz(rpm: float, poles: int) -> float:
    return rpm * poles / 120.0


def hz_to_rpm(frequency: float, poles: int) -> float:
    return frequency * 120.0 / poles
