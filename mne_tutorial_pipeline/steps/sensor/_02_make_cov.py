"""Compute the noise covariance.

The noise covariance is estimated from the pre-stimulus window of the epochs
and is used to whiten the data for the inverse solution.
"""

from types import SimpleNamespace

import mne

from ..._config_utils import _deriv_path, _subject_kwargs
from ..._logging import gen_log_kwargs, logger
from ..._report import _open_report, _sanitize_cond_tag
from ..._run import _prep_out_files, failsafe_run, save_logs
from ...typing import InFilesT, OutFilesT


def get_input_fnames_cov(
    *,
    cfg: SimpleNamespace,
    subject: str,
) -> InFilesT:
    in_files = dict()
    in_files["epochs"] = _deriv_path(cfg=cfg, suffix="epo")
    fname_evoked = _deriv_path(cfg=cfg, suffix="ave")
    if fname_evoked.exists():
        in_files["evoked"] = fname_evoked
    return in_files


@failsafe_run(
    get_input_fnames=get_input_fnames_cov,
)
def run_covariance(
    *,
    cfg: SimpleNamespace,
    exec_params: SimpleNamespace,
    subject: str,
    in_files: InFilesT,
) -> OutFilesT:
    import matplotlib.pyplot as plt

    out_files = dict()
    out_files["cov"] = _deriv_path(cfg=cfg, suffix="cov")
    tmin, tmax = cfg.noise_cov

    msg = (
        f"Computing {cfg.noise_cov_method} noise covariance from "
        f"{tmin * 1000:0.0f} to {tmax * 1000:0.0f} ms"
    )
    logger.info(**gen_log_kwargs(message=msg))
    msg = f"Input:  {in_files['epochs'].name}"
    logger.info(**gen_log_kwargs(message=msg))
    msg = f"Output: {out_files['cov'].name}"
    logger.info(**gen_log_kwargs(message=msg))

    epochs = mne.read_epochs(in_files.pop("epochs"), preload=True)
    cov = mne.compute_covariance(
        epochs,
        tmin=tmin,
        tmax=tmax,
        method=cfg.noise_cov_method,
        rank="info",
    )
    cov.save(out_files["cov"], overwrite=True)

    fname_evoked = in_files.pop("evoked", None)
    with _open_report(cfg=cfg, exec_params=exec_params, subject=subject) as report:
        msg = "Rendering noise covariance matrix and corresponding SVD."
        logger.info(**gen_log_kwargs(message=msg))
        report.add_covariance(
            cov=cov,
            info=epochs.info,
            title="Noise covariance",
            replace=True,
        )
        if fname_evoked is not None:
            msg = "Rendering whitened evoked data."
            logger.info(**gen_log_kwargs(message=msg))
            for evoked in mne.read_evokeds(fname_evoked):
                fig = evoked.plot_white(cov, verbose="error")
                report.add_figure(
                    fig=fig,
                    title=f"Whitening: {evoked.comment}",
                    tags=("evoked", "covariance", _sanitize_cond_tag(evoked.comment)),
                    section="Noise covariance",
                    replace=True,
                )
                plt.close(fig)

    assert len(in_files) == 0, in_files.keys()
    return _prep_out_files(exec_params=exec_params, out_files=out_files)


def get_config(
    *,
    config: SimpleNamespace,
) -> SimpleNamespace:
    cfg = SimpleNamespace(
        noise_cov=tuple(config.noise_cov),
        noise_cov_method=config.noise_cov_method,
        **_subject_kwargs(config=config),
    )
    return cfg


def main(*, config: SimpleNamespace) -> None:
    """Run cov."""
    log = run_covariance(
        cfg=get_config(config=config),
        exec_params=config.exec_params,
        subject=config.subject,
    )
    save_logs(config=config, logs=[log])
