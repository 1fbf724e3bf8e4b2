"""Detect heartbeats and eye blinks.

Artifact events are detected on the ECG and EOG channels and stored as
annotations. Heartbeats that occur close to an eye blink are discarded.
"""

from types import SimpleNamespace

import mne
import numpy as np

from ..._config_import import ConfigError
from ..._config_utils import _deriv_path, _pl, _subject_kwargs
from ..._events import (
    _events_to_annotations,
    _find_ecg_events,
    _find_eog_events,
    remove_simultaneous,
)
from ..._logging import gen_log_kwargs, logger
from ..._report import _count_events, _open_report, add_event_counts
from ..._run import _prep_out_files, failsafe_run, save_logs
from ...typing import InFilesT, OutFilesT


def get_input_fnames_detect_artifacts(
    *,
    cfg: SimpleNamespace,
    subject: str,
) -> InFilesT:
    in_files = dict()
    in_files["raw"] = _deriv_path(cfg=cfg, suffix="raw", processing="clean")
    return in_files


@failsafe_run(
    get_input_fnames=get_input_fnames_detect_artifacts,
)
def run_detect_artifacts(
    *,
    cfg: SimpleNamespace,
    exec_params: SimpleNamespace,
    subject: str,
    in_files: InFilesT,
) -> OutFilesT:
    out_files = dict()
    out_files["annot"] = _deriv_path(cfg=cfg, suffix="artifact_annot")

    raw = mne.io.read_raw_fif(in_files.pop("raw"), preload=True)
    for key in ("ecg_channel", "eog_channel"):
        ch_name = getattr(cfg, key)
        if ch_name is not None and ch_name not in raw.ch_names:
            raise ConfigError(f"{key} {repr(ch_name)} not found in the recording")

    events = dict()
    finders = dict(cardiac=_find_ecg_events, blink=_find_eog_events)
    channels = dict(cardiac=cfg.ecg_channel, blink=cfg.eog_channel)
    rate_names = dict(cardiac="heart", blink="blink")
    for kind, find_events in finders.items():
        ch_name = channels[kind]
        if ch_name is None:
            msg = f"Skipping {rate_names[kind]} detection, no channel set"
            logger.info(**gen_log_kwargs(message=msg, emoji="skip"))
            events[kind] = np.zeros((0, 3), int)
            continue
        events[kind] = find_events(raw, ch_name=ch_name)
        rate = len(events[kind]) / raw.times[-1] * 60
        msg = (
            f"Detected {len(events[kind])} {cfg.event_names[kind]} "
            f"event{_pl(events[kind])} on {ch_name} "
            f"({rate_names[kind]} rate: {rate:5.1f} bpm)"
        )
        logger.info(**gen_log_kwargs(message=msg))

    if cfg.remove_simultaneous_dt is not None:
        n_before = len(events["cardiac"])
        events["cardiac"] = remove_simultaneous(
            events["cardiac"],
            events["blink"],
            dt=cfg.remove_simultaneous_dt,
            sfreq=raw.info["sfreq"],
        )
        n_removed = n_before - len(events["cardiac"])
        msg = (
            f"Removed {n_removed} {cfg.event_names['cardiac']} "
            f"event{_pl(n_removed)} within {cfg.remove_simultaneous_dt} s "
            f"of a {cfg.event_names['blink']} event"
        )
        logger.info(**gen_log_kwargs(message=msg))

    annotations = _events_to_annotations(
        events["cardiac"], description=cfg.event_names["cardiac"], raw=raw
    ) + _events_to_annotations(
        events["blink"], description=cfg.event_names["blink"], raw=raw
    )
    annotations.save(out_files["annot"], overwrite=True)

    with _open_report(cfg=cfg, exec_params=exec_params, subject=subject) as report:
        msg = "Adding event counts to report"
        logger.info(**gen_log_kwargs(message=msg))
        df_events = _count_events(
            raw.annotations + annotations,
            descriptions=sorted(
                set(raw.annotations.description) | set(cfg.event_names.values())
            ),
        )
        add_event_counts(report=report, df_events=df_events)

    assert len(in_files) == 0, in_files.keys()
    return _prep_out_files(exec_params=exec_params, out_files=out_files)


def get_config(
    *,
    config: SimpleNamespace,
) -> SimpleNamespace:
    cfg = SimpleNamespace(
        ecg_channel=config.ecg_channel,
        eog_channel=config.eog_channel,
        event_names=dict(
            cardiac=config.ecg_event_name,
            blink=config.eog_event_name,
        ),
        remove_simultaneous_dt=config.remove_simultaneous_dt,
        **_subject_kwargs(config=config),
    )
    return cfg


def main(*, config: SimpleNamespace) -> None:
    """Run artifact detection."""
    log = run_detect_artifacts(
        cfg=get_config(config=config),
        exec_params=config.exec_params,
        subject=config.subject,
    )
    save_logs(config=config, logs=[log])
