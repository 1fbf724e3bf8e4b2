"""Filesystem initialization and dataset inspection."""

from . import _01_init_derivatives_dir, _02_init_toolbox

_STEPS = (
    _01_init_derivatives_dir,
    _02_init_toolbox,
)
