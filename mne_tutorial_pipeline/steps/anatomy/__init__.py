"""Source space and MRI coregistration."""

from . import _01_import_anatomy

_STEPS = (_01_import_anatomy,)
