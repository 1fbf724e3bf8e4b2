"""Artifact event detection and manipulation."""

import mne
import numpy as np
from mne.preprocessing import find_ecg_events, find_eog_events

from .typing import IntArrayT


def _find_ecg_events(raw: mne.io.BaseRaw, ch_name: str) -> IntArrayT:
    """Wrap find_ecg_events to use the same defaults as create_ecg_events."""
    out: IntArrayT = find_ecg_events(
        raw, event_id=999, ch_name=ch_name, l_freq=8, h_freq=16
    )[0]
    return out


def _find_eog_events(raw: mne.io.BaseRaw, ch_name: str) -> IntArrayT:
    out: IntArrayT = find_eog_events(raw, event_id=998, ch_name=ch_name)
    return out


def remove_simultaneous(
    events_remove: IntArrayT,
    events_target: IntArrayT,
    *,
    dt: float,
    sfreq: float,
) -> IntArrayT:
    """Drop the events that occur close to another kind of event.

    Parameters
    ----------
    events_remove : array, shape (n_events, 3)
        The events to thin out, e.g. heartbeats.
    events_target : array, shape (n_events, 3)
        The events that are kept, e.g. eye blinks.
    dt : float
        Events of ``events_remove`` occurring within ``dt`` seconds
        (inclusive) of any event of ``events_target`` are dropped.
    sfreq : float
        The sampling frequency of the event samples.

    Returns
    -------
    events : array, shape (n_kept, 3)
        The remaining events of ``events_remove``, in their original order.
    """
    events_remove = np.asarray(events_remove, dtype=int).reshape(-1, 3)
    events_target = np.asarray(events_target, dtype=int).reshape(-1, 3)
    if dt < 0:
        raise ValueError(f"dt must be non-negative, got {dt}")
    if not len(events_remove) or not len(events_target):
        return events_remove.copy()
    dist = np.abs(events_remove[:, [0]] - events_target[:, 0][np.newaxis])
    close = np.any(dist <= dt * sfreq, axis=1)
    return events_remove[~close]


def _events_to_annotations(
    events: IntArrayT,
    *,
    description: str,
    raw: mne.io.BaseRaw,
) -> mne.Annotations:
    if not len(events):
        return mne.Annotations(
            onset=[], duration=[], description=[], orig_time=raw.info["meas_date"]
        )
    return mne.annotations_from_events(
        events,
        sfreq=raw.info["sfreq"],
        event_desc={int(code): description for code in np.unique(events[:, 2])},
        first_samp=raw.first_samp,
        orig_time=raw.info["meas_date"],
    )
