"""Preprocessing."""

from . import (
    _01_import_raw,
    _02_notch_filter,
    _03_detect_artifacts,
    _04_run_ssp,
    _05_make_epochs,
)

_STEPS = (
    _01_import_raw,
    _02_notch_filter,
    _03_detect_artifacts,
    _04_run_ssp,
    _05_make_epochs,
)
