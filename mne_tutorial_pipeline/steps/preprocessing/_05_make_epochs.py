"""Epoch the data.

Cut epochs around the stimulation events of each condition, apply the SSP
projectors and the baseline correction, and compensate the delay between the
trigger and the stimulation by shifting the time axis.
"""

from types import SimpleNamespace

import mne

from ..._config_utils import _deriv_path, _meg_in_ch_types, _pl, _subject_kwargs
from ..._logging import gen_log_kwargs, logger
from ..._report import _open_report
from ..._run import _prep_out_files, failsafe_run, save_logs
from ...typing import InFilesT, IntArrayT, OutFilesT


def _find_condition_events(
    *,
    cfg: SimpleNamespace,
    raw: mne.io.BaseRaw,
) -> tuple[IntArrayT, dict[str, int]]:
    if cfg.stim_channel is not None:
        event_id = {cond: cfg.event_id[cond] for cond in cfg.conditions}
        events = mne.find_events(
            raw, stim_channel=cfg.stim_channel, shortest_event=1
        )
    else:
        missing = sorted(set(cfg.conditions) - set(raw.annotations.description))
        if missing:
            raise ValueError(
                f"Could not find the conditions {missing} in the annotations "
                f"of the recording, found: {sorted(set(raw.annotations.description))}"
            )
        event_id = {cond: ii for ii, cond in enumerate(cfg.conditions, start=1)}
        events, event_id = mne.events_from_annotations(raw, event_id=event_id)
    return events, event_id


def get_input_fnames_make_epochs(
    *,
    cfg: SimpleNamespace,
    subject: str,
) -> InFilesT:
    in_files = dict()
    in_files["raw"] = _deriv_path(cfg=cfg, suffix="raw", processing="clean")
    if cfg.spatial_filter == "ssp":
        in_files["proj"] = _deriv_path(cfg=cfg, suffix="proj")
    return in_files


@failsafe_run(
    get_input_fnames=get_input_fnames_make_epochs,
)
def run_make_epochs(
    *,
    cfg: SimpleNamespace,
    exec_params: SimpleNamespace,
    subject: str,
    in_files: InFilesT,
) -> OutFilesT:
    out_files = dict()
    out_files["epochs"] = _deriv_path(cfg=cfg, suffix="epo")
    msg = f"Output: {out_files['epochs'].name}"
    logger.info(**gen_log_kwargs(message=msg))

    raw = mne.io.read_raw_fif(in_files.pop("raw"), preload=True)
    if "proj" in in_files:
        projs = mne.read_proj(in_files.pop("proj"))
        msg = f"Adding {len(projs)} SSP projector{_pl(projs)}"
        logger.info(**gen_log_kwargs(message=msg))
        raw.add_proj(projs)

    events, event_id = _find_condition_events(cfg=cfg, raw=raw)
    msg = f"Creating epochs for {', '.join(event_id)} from {len(events)} events"
    logger.info(**gen_log_kwargs(message=msg))
    picks = list(cfg.ch_types)
    if _meg_in_ch_types(cfg.ch_types):
        # CTF compensation needs the reference channels
        picks.append("ref_meg")
    epochs = mne.Epochs(
        raw,
        events=events,
        event_id=event_id,
        tmin=cfg.epochs_tmin,
        tmax=cfg.epochs_tmax,
        baseline=cfg.baseline,
        picks=picks,
        proj=True,
        reject=cfg.reject,
        reject_by_annotation=False,
        preload=True,
    )
    if cfg.time_offset:
        msg = f"Shifting the time axis by {cfg.time_offset * 1000:0.1f} ms"
        logger.info(**gen_log_kwargs(message=msg))
        epochs.shift_time(cfg.time_offset, relative=True)
    counts = ", ".join(f"{cond}: {len(epochs[cond])}" for cond in event_id)
    msg = f"Kept {len(epochs)} epochs ({counts})"
    logger.info(**gen_log_kwargs(message=msg))
    epochs.save(out_files["epochs"], overwrite=True)

    with _open_report(cfg=cfg, exec_params=exec_params, subject=subject) as report:
        msg = "Adding epochs to report"
        logger.info(**gen_log_kwargs(message=msg))
        report.add_epochs(
            epochs=epochs,
            title="Epochs",
            psd=False,
            tags=("epochs",),
            replace=True,
        )

    assert len(in_files) == 0, in_files.keys()
    return _prep_out_files(exec_params=exec_params, out_files=out_files)


def get_config(
    *,
    config: SimpleNamespace,
) -> SimpleNamespace:
    cfg = SimpleNamespace(
        conditions=list(config.conditions),
        stim_channel=config.stim_channel,
        event_id=config.event_id,
        epochs_tmin=config.epochs_tmin,
        epochs_tmax=config.epochs_tmax,
        baseline=config.baseline,
        time_offset=config.time_offset,
        reject=config.reject,
        spatial_filter=config.spatial_filter,
        **_subject_kwargs(config=config),
    )
    return cfg


def main(*, config: SimpleNamespace) -> None:
    """Run epochs."""
    log = run_make_epochs(
        cfg=get_config(config=config),
        exec_params=config.exec_params,
        subject=config.subject,
    )
    save_logs(config=config, logs=[log])
