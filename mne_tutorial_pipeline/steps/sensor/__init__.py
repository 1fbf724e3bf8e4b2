"""Sensor-space analysis."""

from . import _01_make_evoked, _02_make_cov

_STEPS = (
    _01_make_evoked,
    _02_make_cov,
)
