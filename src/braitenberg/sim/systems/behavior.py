from __future__ import annotations

from typing import Callable, Dict

from ..core.config import MotorConfig
from ..core.vehicle import BehaviorType
from ..utils.math2d import _clamp_value

WheelMapping = Callable[[float, float, MotorConfig], tuple[float, float]]


def _fear(left: float, right: float, motor: MotorConfig) -> tuple[float, float]:
    # uncrossed, excitatory
    return motor.gain * left, motor.gain * right


def _aggression(left: float, right: float, motor: MotorConfig) -> tuple[float, float]:
    # crossed, excitatory
    return motor.gain * right, motor.gain * left


def _love(left: float, right: float, motor: MotorConfig) -> tuple[float, float]:
    # uncrossed, inhibitory
    return motor.max_speed - motor.gain * left, motor.max_speed - motor.gain * right


def _explorer(left: float, right: float, motor: MotorConfig) -> tuple[float, float]:
    # crossed, inhibitory
    return motor.max_speed - motor.gain * right, motor.max_speed - motor.gain * left


WIRING: Dict[BehaviorType, WheelMapping] = {
    BehaviorType.FEAR: _fear,
    BehaviorType.AGGRESSION: _aggression,
    BehaviorType.LOVE: _love,
    BehaviorType.EXPLORER: _explorer,
}


def raw_wheel_speeds(
    behavior: BehaviorType, left_input: float, right_input: float, motor: MotorConfig
) -> tuple[float, float]:
    return WIRING[behavior](left_input, right_input, motor)


def wheel_speeds(
    behavior: BehaviorType, left_input: float, right_input: float, motor: MotorConfig
) -> tuple[float, float]:
    """Wheel speeds for ``behavior`` clamped to ``[0, motor.max_speed]``.

    The clamp applies to the excitatory wirings as well: a saturated input
    times the gain can exceed the top speed.
    """
    vl, vr = raw_wheel_speeds(behavior, left_input, right_input, motor)
    return (
        _clamp_value(vl, 0.0, motor.max_speed),
        _clamp_value(vr, 0.0, motor.max_speed),
    )
