"""Final report."""

from . import _01_make_report

_STEPS = (_01_make_report,)
