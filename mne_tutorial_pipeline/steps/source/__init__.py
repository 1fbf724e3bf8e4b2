"""Source-space analysis."""

from . import _01_make_forward, _02_make_inverse

_STEPS = (
    _01_make_forward,
    _02_make_inverse,
)
