"""Compute SSP.

Signal-space projection (SSP) vectors are computed from epochs around the
detected eye blinks. The first components are selected.
"""

from types import SimpleNamespace

import mne
from mne import compute_proj_epochs

from ..._config_utils import _deriv_path, _pl, _subject_kwargs
from ..._logging import gen_log_kwargs, logger
from ..._report import _open_report
from ..._run import _prep_out_files, failsafe_run, save_logs
from ...typing import InFilesT, OutFilesT

_BLINK_ID = 998


def get_input_fnames_run_ssp(
    *,
    cfg: SimpleNamespace,
    subject: str,
) -> InFilesT:
    in_files = dict()
    in_files["raw"] = _deriv_path(cfg=cfg, suffix="raw", processing="clean")
    in_files["annot"] = _deriv_path(cfg=cfg, suffix="artifact_annot")
    return in_files


@failsafe_run(
    get_input_fnames=get_input_fnames_run_ssp,
)
def run_ssp(
    *,
    cfg: SimpleNamespace,
    exec_params: SimpleNamespace,
    subject: str,
    in_files: InFilesT,
) -> OutFilesT:
    import matplotlib.pyplot as plt

    out_files = dict()
    out_files["proj"] = _deriv_path(cfg=cfg, suffix="proj")
    msg = f"Output: {out_files['proj'].name}"
    logger.info(**gen_log_kwargs(message=msg))

    raw = mne.io.read_raw_fif(in_files.pop("raw"), preload=True)
    annotations = mne.read_annotations(in_files.pop("annot"))
    raw.set_annotations(raw.annotations + annotations)
    if cfg.eog_event_name in raw.annotations.description:
        events, _ = mne.events_from_annotations(
            raw, event_id={cfg.eog_event_name: _BLINK_ID}
        )
    else:
        events = []

    projs = []
    proj_epochs = None
    if len(events) < cfg.min_eog_epochs:
        msg = (
            f"No EOG projectors computed: got {len(events)} "
            f"{cfg.eog_event_name} event{_pl(events)} < {cfg.min_eog_epochs}"
        )
        logger.warning(**gen_log_kwargs(message=msg))
    else:
        if cfg.ssp_eog_l_freq is not None or cfg.ssp_eog_h_freq is not None:
            msg = (
                f"Band-pass filtering for blink projectors: "
                f"{cfg.ssp_eog_l_freq} – {cfg.ssp_eog_h_freq} Hz"
            )
            logger.info(**gen_log_kwargs(message=msg))
            raw.filter(
                l_freq=cfg.ssp_eog_l_freq,
                h_freq=cfg.ssp_eog_h_freq,
                picks="meg",
                n_jobs=1,
            )
        proj_epochs = mne.Epochs(
            raw,
            events=events,
            event_id=_BLINK_ID,
            tmin=cfg.ssp_eog_tmin,
            tmax=cfg.ssp_eog_tmax,
            proj=False,
            baseline=None,
            reject=cfg.ssp_reject_eog,
            reject_by_annotation=False,
            preload=True,
        )
        if len(proj_epochs) < cfg.min_eog_epochs:
            msg = (
                f"No EOG projectors computed: got {len(proj_epochs)} good "
                f"epochs < {cfg.min_eog_epochs} (from {len(events)} events)"
            )
            logger.warning(**gen_log_kwargs(message=msg))
            proj_epochs = None
        else:
            desc_prefix = (
                f"EOG-{proj_epochs.times[0]:0.3f}-{proj_epochs.times[-1]:0.3f}"
            )
            projs = compute_proj_epochs(
                proj_epochs.copy().pick("meg"),
                **cfg.n_proj_eog,
                desc_prefix=desc_prefix,
            )
            msg = f"Computed {len(projs)} EOG projector{_pl(projs)}"
            logger.info(**gen_log_kwargs(message=msg))
    mne.write_proj(out_files["proj"], projs, overwrite=True)

    with _open_report(cfg=cfg, exec_params=exec_params, subject=subject) as report:
        if proj_epochs is not None:
            msg = "Adding EOG SSP to report."
            logger.info(**gen_log_kwargs(message=msg))
            fig = mne.viz.plot_projs_joint(
                projs,
                proj_epochs.average(picks="all"),
                picks_trace=[cfg.eog_channel],
            )
            caption = (
                f"Computed using {len(proj_epochs)} epochs "
                f"(from {len(proj_epochs.drop_log)} original events)"
            )
            report.add_figure(
                fig,
                title="SSP projectors",
                caption=caption,
                tags=("ssp", "eog"),
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
        eog_channel=config.eog_channel,
        eog_event_name=config.eog_event_name,
        n_proj_eog=config.n_proj_eog,
        min_eog_epochs=config.min_eog_epochs,
        ssp_eog_tmin=config.ssp_eog_tmin,
        ssp_eog_tmax=config.ssp_eog_tmax,
        ssp_eog_l_freq=config.ssp_eog_l_freq,
        ssp_eog_h_freq=config.ssp_eog_h_freq,
        ssp_reject_eog=config.ssp_reject_eog,
        **_subject_kwargs(config=config),
    )
    return cfg


def main(*, config: SimpleNamespace) -> None:
    """Run SSP."""
    if config.spatial_filter != "ssp":
        msg = "Skipping, spatial_filter is not set to 'ssp' …"
        logger.info(**gen_log_kwargs(message=msg, emoji="skip"))
        return

    log = run_ssp(
        cfg=get_config(config=config),
        exec_params=config.exec_params,
        subject=config.subject,
    )
    save_logs(config=config, logs=[log])
