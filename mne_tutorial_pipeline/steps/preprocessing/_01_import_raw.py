"""Import the continuous recording.

Read the raw data (e.g., a CTF .ds folder), store it in the derivatives as
FIF, and add the MEG/MRI registration to the report.
"""

from types import SimpleNamespace

import mne
from mne.utils import check_version

from ..._config_utils import (
    _deriv_path,
    _subject_kwargs,
    get_fs_subjects_dir,
    get_raw_path,
)
from ..._logging import gen_log_kwargs, logger
from ..._report import _open_report
from ..._run import _prep_out_files, failsafe_run, save_logs
from ...typing import InFilesT, OutFilesT


def get_input_fnames_import_raw(
    *,
    cfg: SimpleNamespace,
    subject: str,
) -> InFilesT:
    in_files = dict()
    in_files["raw"] = cfg.raw_path
    fname_trans = _deriv_path(cfg=cfg, suffix="trans")
    if fname_trans.exists():
        in_files["trans"] = fname_trans
    return in_files


@failsafe_run(
    get_input_fnames=get_input_fnames_import_raw,
)
def run_import_raw(
    *,
    cfg: SimpleNamespace,
    exec_params: SimpleNamespace,
    subject: str,
    in_files: InFilesT,
) -> OutFilesT:
    out_files = dict()
    out_files["raw"] = _deriv_path(cfg=cfg, suffix="raw")

    msg = f"Input: {cfg.raw_fname}"
    logger.info(**gen_log_kwargs(message=msg))
    msg = f"Output: {out_files['raw'].name}"
    logger.info(**gen_log_kwargs(message=msg))

    raw = mne.io.read_raw(in_files.pop("raw"), preload=True)
    msg = (
        f"Read {len(raw.ch_names)} channels, {raw.times[-1]:0.1f} s "
        f"sampled at {raw.info['sfreq']:0.0f} Hz"
    )
    logger.info(**gen_log_kwargs(message=msg))
    raw.save(out_files["raw"], overwrite=True)

    with _open_report(cfg=cfg, exec_params=exec_params, subject=subject) as report:
        msg = "Adding raw data to report"
        logger.info(**gen_log_kwargs(message=msg))
        with mne.use_log_level("error"):
            report.add_raw(
                raw=raw,
                title="Raw",
                psd=False,
                butterfly=5,
                tags=("raw",),
                replace=True,
            )
        if "trans" in in_files:
            trans = mne.read_trans(in_files.pop("trans"))
            # The 3D rendering needs PyVista
            if check_version("pyvista"):
                msg = "Rendering MEG/MRI registration"
                logger.info(**gen_log_kwargs(message=msg))
                report.add_trans(
                    trans=trans,
                    info=raw.info,
                    title="MEG/MRI Registration",
                    subject=cfg.subject,
                    subjects_dir=cfg.fs_subjects_dir,
                    alpha=1,
                    replace=True,
                )
            else:
                msg = "Skipping MEG/MRI registration rendering: PyVista not found"
                logger.warning(**gen_log_kwargs(message=msg))

    assert len(in_files) == 0, in_files.keys()
    return _prep_out_files(exec_params=exec_params, out_files=out_files)


def get_config(
    *,
    config: SimpleNamespace,
) -> SimpleNamespace:
    cfg = SimpleNamespace(
        raw_fname=str(config.raw_fname),
        raw_path=get_raw_path(config),
        fs_subjects_dir=get_fs_subjects_dir(config),
        **_subject_kwargs(config=config),
    )
    return cfg


def main(*, config: SimpleNamespace) -> None:
    """Run raw data import."""
    log = run_import_raw(
        cfg=get_config(config=config),
        exec_params=config.exec_params,
        subject=config.subject,
    )
    save_logs(config=config, logs=[log])
