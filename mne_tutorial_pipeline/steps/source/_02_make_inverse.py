"""Inverse solution.

Compute and apply an inverse solution for each evoked data set.
"""

from types import SimpleNamespace

import mne
from mne.minimum_norm import (
    apply_inverse,
    make_inverse_operator,
    write_inverse_operator,
)

from ..._config_utils import (
    _deriv_path,
    _subject_kwargs,
    get_fs_subjects_dir,
    sanitize_cond_name,
)
from ..._logging import gen_log_kwargs, logger
from ..._report import _open_report, _sanitize_cond_tag
from ..._run import _prep_out_files, failsafe_run, save_logs
from ...typing import InFilesT, OutFilesT


def get_input_fnames_inverse(
    *,
    cfg: SimpleNamespace,
    subject: str,
) -> InFilesT:
    in_files = dict()
    in_files["forward"] = _deriv_path(cfg=cfg, suffix="fwd")
    in_files["cov"] = _deriv_path(cfg=cfg, suffix="cov")
    in_files["evoked"] = _deriv_path(cfg=cfg, suffix="ave")
    return in_files


@failsafe_run(
    get_input_fnames=get_input_fnames_inverse,
)
def run_inverse(
    *,
    cfg: SimpleNamespace,
    exec_params: SimpleNamespace,
    subject: str,
    in_files: InFilesT,
) -> OutFilesT:
    msg = "Computing inverse solutions"
    logger.info(**gen_log_kwargs(message=msg))
    out_files = dict()
    out_files["inverse"] = _deriv_path(cfg=cfg, suffix="inv")

    forward = mne.read_forward_solution(in_files.pop("forward"))
    cov = mne.read_cov(in_files.pop("cov"))
    evokeds = mne.read_evokeds(in_files.pop("evoked"))
    info = evokeds[0].info

    loose = 0.0 if cfg.fixed_orientation else cfg.loose
    inverse_operator = make_inverse_operator(
        info,
        forward,
        cov,
        loose=loose,
        depth=cfg.depth,
        fixed="auto",
        rank="info",
    )
    write_inverse_operator(out_files["inverse"], inverse_operator, overwrite=True)

    lambda2 = 1.0 / cfg.snr**2
    method = cfg.inverse_method
    stcs = dict()
    for evoked in evokeds:
        condition = evoked.comment
        key = f"{sanitize_cond_name(condition)}+{method}+hemi"
        out_files[key] = _deriv_path(cfg=cfg, suffix=key, extension="-stc.h5")
        msg = f"Applying {method} to {condition}"
        logger.info(**gen_log_kwargs(message=msg))
        stc = apply_inverse(
            evoked=evoked,
            inverse_operator=inverse_operator,
            lambda2=lambda2,
            method=method,
            pick_ori=None,
        )
        stc.save(out_files[key], ftype="h5", overwrite=True)
        stcs[condition] = stc

    with _open_report(cfg=cfg, exec_params=exec_params, subject=subject) as report:
        msg = "Adding inverse information to report"
        logger.info(**gen_log_kwargs(message=msg))
        for condition, stc in stcs.items():
            msg = f"Rendering inverse solution for {condition}"
            logger.info(**gen_log_kwargs(message=msg))
            report.add_stc(
                stc=stc,
                title=f"Source maps: {condition}",
                subject=cfg.subject,
                subjects_dir=cfg.fs_subjects_dir,
                n_time_points=cfg.report_stc_n_time_points,
                tags=("source-estimate", _sanitize_cond_tag(condition)),
                replace=True,
            )

    assert len(in_files) == 0, in_files.keys()
    return _prep_out_files(exec_params=exec_params, out_files=out_files)


def get_config(
    *,
    config: SimpleNamespace,
) -> SimpleNamespace:
    cfg = SimpleNamespace(
        inverse_method=config.inverse_method,
        snr=config.snr,
        fixed_orientation=config.fixed_orientation,
        loose=config.loose,
        depth=config.depth,
        report_stc_n_time_points=config.report_stc_n_time_points,
        fs_subjects_dir=get_fs_subjects_dir(config),
        **_subject_kwargs(config=config),
    )
    return cfg


def main(*, config: SimpleNamespace) -> None:
    """Run inv."""
    if not config.run_source_estimation:
        msg = "Skipping, run_source_estimation is set to False …"
        logger.info(**gen_log_kwargs(message=msg, emoji="skip"))
        return

    log = run_inverse(
        cfg=get_config(config=config),
        exec_params=config.exec_params,
        subject=config.subject,
    )
    save_logs(config=config, logs=[log])
