"""Forward solution.

Calculate the forward model of the MEG sensors for the cortical source space,
using either a spherical head model fitted to the head shape or a single-layer
boundary element model.
"""

from types import SimpleNamespace

import mne

from ..._config_utils import _deriv_path, _subject_kwargs, get_fs_subjects_dir
from ..._logging import gen_log_kwargs, logger
from ..._report import _open_report
from ..._run import _prep_out_files, failsafe_run, save_logs
from ...typing import InFilesT, OutFilesT


def _make_head_model(*, cfg: SimpleNamespace, info: mne.Info):
    if cfg.head_model == "sphere":
        msg = "Fitting a spherical head model to the digitized head shape"
        logger.info(**gen_log_kwargs(message=msg))
        return mne.make_sphere_model(r0="auto", head_radius="auto", info=info)
    msg = f"Computing a single-layer BEM solution (ico={cfg.bem_ico})"
    logger.info(**gen_log_kwargs(message=msg))
    model = mne.make_bem_model(
        subject=cfg.subject,
        ico=cfg.bem_ico,
        conductivity=(0.3,),
        subjects_dir=cfg.fs_subjects_dir,
    )
    return mne.make_bem_solution(model)


def get_input_fnames_forward(
    *,
    cfg: SimpleNamespace,
    subject: str,
) -> InFilesT:
    in_files = dict()
    in_files["epochs"] = _deriv_path(cfg=cfg, suffix="epo")
    in_files["src"] = _deriv_path(cfg=cfg, suffix="src")
    in_files["trans"] = _deriv_path(cfg=cfg, suffix="trans")
    if cfg.head_model == "bem":
        in_files["inner_skull"] = (
            cfg.fs_subjects_dir / cfg.subject / "bem" / "inner_skull.surf"
        )
    return in_files


@failsafe_run(
    get_input_fnames=get_input_fnames_forward,
)
def run_forward(
    *,
    cfg: SimpleNamespace,
    exec_params: SimpleNamespace,
    subject: str,
    in_files: InFilesT,
) -> OutFilesT:
    out_files = dict()
    out_files["forward"] = _deriv_path(cfg=cfg, suffix="fwd")
    msg = f"Output: {out_files['forward'].name}"
    logger.info(**gen_log_kwargs(message=msg))

    info = mne.io.read_info(in_files.pop("epochs"))
    src = mne.read_source_spaces(in_files.pop("src"))
    trans = mne.read_trans(in_files.pop("trans"))
    # read by make_bem_model through the subjects dir
    in_files.pop("inner_skull", None)
    bem = _make_head_model(cfg=cfg, info=info)

    msg = "Calculating forward solution"
    logger.info(**gen_log_kwargs(message=msg))
    fwd = mne.make_forward_solution(
        info,
        trans=trans,
        src=src,
        bem=bem,
        mindist=cfg.mindist,
        meg=True,
        eeg=False,
    )
    msg = f"Forward solution: {fwd['nsource']} sources, {fwd['nchan']} channels"
    logger.info(**gen_log_kwargs(message=msg))
    mne.write_forward_solution(out_files["forward"], fwd, overwrite=True)

    with _open_report(cfg=cfg, exec_params=exec_params, subject=subject) as report:
        msg = "Rendering forward solution"
        logger.info(**gen_log_kwargs(message=msg))
        report.add_forward(
            forward=fwd,
            title="Forward solution",
            subject=cfg.subject,
            subjects_dir=cfg.fs_subjects_dir,
            replace=True,
        )

    assert len(in_files) == 0, in_files.keys()
    return _prep_out_files(exec_params=exec_params, out_files=out_files)


def get_config(
    *,
    config: SimpleNamespace,
) -> SimpleNamespace:
    cfg = SimpleNamespace(
        head_model=config.head_model,
        bem_ico=config.bem_ico,
        mindist=config.mindist,
        fs_subjects_dir=get_fs_subjects_dir(config),
        **_subject_kwargs(config=config),
    )
    return cfg


def main(*, config: SimpleNamespace) -> None:
    """Run forward."""
    if not config.run_source_estimation:
        msg = "Skipping, run_source_estimation is set to False …"
        logger.info(**gen_log_kwargs(message=msg, emoji="skip"))
        return

    log = run_forward(
        cfg=get_config(config=config),
        exec_params=config.exec_params,
        subject=config.subject,
    )
    save_logs(config=config, logs=[log])
