"""Import the anatomy.

Set up the cortical source space from the FreeSurfer reconstruction and
coregister the MRI with the MEG head coordinate frame using the anatomical
landmarks.
"""

import pathlib
from types import SimpleNamespace

import mne
import nibabel as nib
import numpy as np
import pandas as pd
from mne.coreg import Coregistration
from mne.io.constants import FIFF
from nibabel.affines import apply_affine

from ..._config_utils import (
    _deriv_path,
    _subject_kwargs,
    get_fs_subjects_dir,
    get_raw_path,
)
from ..._logging import gen_log_kwargs, logger
from ..._report import _open_report
from ..._run import _prep_out_files, failsafe_run, save_logs
from ...typing import FiducialsT, InFilesT, OutFilesT

_FIDUCIAL_NAMES = ("nasion", "lpa", "rpa")
_FIDUCIAL_IDENTS = {
    FIFF.FIFFV_POINT_NASION: "nasion",
    FIFF.FIFFV_POINT_LPA: "lpa",
    FIFF.FIFFV_POINT_RPA: "rpa",
}


def _t1_path(cfg: SimpleNamespace) -> pathlib.Path:
    return cfg.fs_subjects_dir / cfg.subject / "mri" / "T1.mgz"


def _voxel_to_mri_fiducials(
    *,
    fiducials: FiducialsT,
    t1_path: pathlib.Path,
) -> list:
    """Convert fiducials from T1 voxel indices to MRI surface RAS (in m)."""
    vox2ras_tkr = nib.load(t1_path).header.get_vox2ras_tkr()
    pos = dict()
    for name in _FIDUCIAL_NAMES:
        vox = np.asarray(fiducials[name], dtype=float)
        pos[name] = apply_affine(vox2ras_tkr, vox) / 1000.0
    montage = mne.channels.make_dig_montage(coord_frame="mri", **pos)
    return montage.dig


def get_input_fnames_import_anatomy(
    *,
    cfg: SimpleNamespace,
    subject: str,
) -> InFilesT:
    in_files = dict()
    surf_path = cfg.fs_subjects_dir / cfg.subject / "surf"
    for hemi in ("lh", "rh"):
        in_files[f"surf-{hemi}-white"] = surf_path / f"{hemi}.white"
    if cfg.mri_trans is not None:
        in_files["trans"] = pathlib.Path(cfg.mri_trans)
    else:
        in_files["raw"] = cfg.raw_path
        if isinstance(cfg.mri_fiducials, dict):
            in_files["t1"] = _t1_path(cfg)
    return in_files


@failsafe_run(
    get_input_fnames=get_input_fnames_import_anatomy,
)
def run_import_anatomy(
    *,
    cfg: SimpleNamespace,
    exec_params: SimpleNamespace,
    subject: str,
    in_files: InFilesT,
) -> OutFilesT:
    out_files = dict()
    out_files["src"] = _deriv_path(cfg=cfg, suffix="src")
    out_files["trans"] = _deriv_path(cfg=cfg, suffix="trans")

    msg = f"Creating source space with spacing {repr(cfg.spacing)}"
    logger.info(**gen_log_kwargs(message=msg))
    src = mne.setup_source_space(
        cfg.subject,
        spacing=cfg.spacing,
        subjects_dir=cfg.fs_subjects_dir,
        add_dist="patch",
    )
    in_files.pop("surf-lh-white")
    in_files.pop("surf-rh-white")
    n_vertices = sum(s["nuse"] for s in src)
    msg = f"Source space: {n_vertices} vertices"
    logger.info(**gen_log_kwargs(message=msg))
    mne.write_source_spaces(out_files["src"], src, overwrite=True)

    coreg_info = dict()
    if "trans" in in_files:
        msg = f"Using head ↔ MRI transform from {cfg.mri_trans}"
        logger.info(**gen_log_kwargs(message=msg))
        trans = mne.read_trans(in_files.pop("trans"))
    else:
        info = mne.io.read_raw(in_files.pop("raw")).info
        if "t1" in in_files:
            fiducials = _voxel_to_mri_fiducials(
                fiducials=cfg.mri_fiducials, t1_path=in_files.pop("t1")
            )
            kind = "T1 voxel coordinates"
        else:
            fiducials = cfg.mri_fiducials
            kind = repr(fiducials)
        msg = f"Computing head ↔ MRI transform from fiducials ({kind})"
        logger.info(**gen_log_kwargs(message=msg))
        coreg = Coregistration(
            info, cfg.subject, cfg.fs_subjects_dir, fiducials=fiducials
        )
        coreg.fit_fiducials(verbose=False)
        dist = np.median(coreg.compute_dig_mri_distances() * 1000)
        msg = f"Median dig ↔ MRI distance: {dist:6.2f} mm"
        logger.info(**gen_log_kwargs(message=msg))
        trans = coreg.trans
        coreg_info["Median dig ↔ MRI distance (mm)"] = round(float(dist), 2)
        for fid in coreg.fiducials.dig:
            name = _FIDUCIAL_IDENTS[fid["ident"]]
            x, y, z = np.asarray(fid["r"]) * 1000
            coreg_info[f"MRI {name.upper()} (mm)"] = f"{x:0.1f}, {y:0.1f}, {z:0.1f}"
    mne.write_trans(out_files["trans"], trans, overwrite=True)

    with _open_report(cfg=cfg, exec_params=exec_params, subject=subject) as report:
        msg = "Adding anatomy information to report"
        logger.info(**gen_log_kwargs(message=msg))
        coreg_info["Source space"] = f"{cfg.spacing} ({n_vertices} vertices)"
        df = pd.Series(coreg_info, name="Value").rename_axis("Anatomy").to_frame()
        report.add_html(
            df.to_html(classes=("table", "table-striped"), border=0),
            title="Anatomy",
            tags=("anatomy", "coregistration"),
            replace=True,
        )

    assert len(in_files) == 0, in_files.keys()
    return _prep_out_files(exec_params=exec_params, out_files=out_files)


def get_config(
    *,
    config: SimpleNamespace,
) -> SimpleNamespace:
    cfg = SimpleNamespace(
        spacing=config.spacing,
        mri_fiducials=config.mri_fiducials,
        mri_trans=config.mri_trans,
        raw_path=get_raw_path(config),
        fs_subjects_dir=get_fs_subjects_dir(config),
        **_subject_kwargs(config=config),
    )
    return cfg


def main(*, config: SimpleNamespace) -> None:
    """Run anatomy import."""
    if not config.run_source_estimation:
        msg = "Skipping, run_source_estimation is set to False …"
        logger.info(**gen_log_kwargs(message=msg, emoji="skip"))
        return

    log = run_import_anatomy(
        cfg=get_config(config=config),
        exec_params=config.exec_params,
        subject=config.subject,
    )
    save_logs(config=config, logs=[log])
