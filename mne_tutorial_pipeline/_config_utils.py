"""Utilities for mangling config vars."""

import pathlib
from types import ModuleType, SimpleNamespace
from typing import Optional

import numpy as np

from ._toolbox import ToolboxSpec


def get_raw_path(config: SimpleNamespace) -> pathlib.Path:
    return pathlib.Path(config.tutorial_dir) / config.raw_fname


def get_fs_subjects_dir(config: SimpleNamespace) -> pathlib.Path:
    if not config.subjects_dir:
        return pathlib.Path(config.tutorial_dir) / "subjects"
    else:
        return pathlib.Path(config.subjects_dir).expanduser().resolve()


def get_toolbox_spec(config: SimpleNamespace) -> Optional[ToolboxSpec]:
    if config.toolbox_name is None:
        return None
    return ToolboxSpec(
        name=config.toolbox_name,
        entry_point=config.toolbox_entry_point,
        bootstrap=config.toolbox_bootstrap,
        marker=config.toolbox_marker,
        url=config.toolbox_url,
    )


def sanitize_cond_name(cond: str) -> str:
    cond = cond.replace("/", "").replace("_", "").replace("-", "").replace(" ", "")
    return cond


def _deriv_path(
    *,
    cfg: SimpleNamespace,
    suffix: str,
    extension: str = ".fif",
    processing: Optional[str] = None,
) -> pathlib.Path:
    """Get the path of a subject's output file.

    Files are named ``sub-<subject>_[proc-<processing>_]<suffix><extension>``
    inside of ``<deriv_root>/sub-<subject>``.
    """
    parts = [f"sub-{cfg.subject}"]
    if processing is not None:
        parts.append(f"proc-{processing}")
    parts.append(suffix)
    fname = "_".join(parts) + extension
    return cfg.deriv_root / f"sub-{cfg.subject}" / fname


def _subject_kwargs(*, config: SimpleNamespace) -> dict:
    """Get the standard dataset config entries."""
    return dict(
        subject=config.subject,
        study_name=config.study_name,
        deriv_root=config.deriv_root,
        ch_types=config.ch_types,
    )


def _meg_in_ch_types(ch_types: str) -> bool:
    return "mag" in ch_types or "grad" in ch_types or "meg" in ch_types


def _get_step_modules() -> dict[str, tuple[ModuleType]]:
    from .steps import anatomy, init, preprocessing, report, sensor, source

    STEP_MODULES = {
        "init": init._STEPS,
        "anatomy": anatomy._STEPS,
        "preprocessing": preprocessing._STEPS,
        "sensor": sensor._STEPS,
        "source": source._STEPS,
        "report": report._STEPS,
    }

    STEP_MODULES["all"] = (
        STEP_MODULES["init"]
        + STEP_MODULES["anatomy"]
        + STEP_MODULES["preprocessing"]
        + STEP_MODULES["sensor"]
        + STEP_MODULES["source"]
        + STEP_MODULES["report"]
    )

    return STEP_MODULES


# Adapted from MNE-Python
def _pl(x, *, non_pl="", pl="s"):
    """Determine if plural should be used."""
    len_x = x if isinstance(x, (int, np.generic)) else len(x)
    return non_pl if len_x == 1 else pl
