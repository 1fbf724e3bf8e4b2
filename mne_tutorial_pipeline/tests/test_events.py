"""Test the handling of artifact events."""

import mne
import numpy as np
import pytest

from mne_tutorial_pipeline._events import _events_to_annotations, remove_simultaneous
from mne_tutorial_pipeline._report import _count_events


def _events(samples, code=1):
    return np.array([[s, 0, code] for s in samples], int).reshape(-1, 3)


def test_remove_simultaneous():
    """Test that events close to a target event are dropped."""
    cardiac = _events([100, 300, 500, 700], code=999)
    blink = _events([120, 475, 900], code=998)
    # 0.25 s at 100 Hz is 25 samples, and the limit is inclusive
    kept = remove_simultaneous(cardiac, blink, dt=0.25, sfreq=100.0)
    np.testing.assert_array_equal(kept, _events([300, 700], code=999))
    # the targets are left alone
    np.testing.assert_array_equal(blink, _events([120, 475, 900], code=998))

    kept = remove_simultaneous(cardiac, blink, dt=0.0, sfreq=100.0)
    np.testing.assert_array_equal(kept, cardiac)
    kept = remove_simultaneous(cardiac, blink, dt=10.0, sfreq=100.0)
    assert kept.shape == (0, 3)


def test_remove_simultaneous_empty():
    """Test the corner cases without events."""
    cardiac = _events([100, 300], code=999)
    kept = remove_simultaneous(cardiac, [], dt=0.25, sfreq=100.0)
    np.testing.assert_array_equal(kept, cardiac)
    assert kept is not cardiac
    kept = remove_simultaneous([], cardiac, dt=0.25, sfreq=100.0)
    assert kept.shape == (0, 3)
    with pytest.raises(ValueError, match="non-negative"):
        remove_simultaneous(cardiac, cardiac, dt=-1, sfreq=100.0)


def test_events_to_annotations():
    """Test converting detected events to annotations."""
    info = mne.create_info(["EEG057", "EEG058"], 100.0, ["ecg", "eog"])
    raw = mne.io.RawArray(np.zeros((2, 1000)), info, first_samp=50, verbose=False)
    annot = _events_to_annotations(
        _events([150, 350], code=999), description="cardiac", raw=raw
    )
    assert list(annot.description) == ["cardiac", "cardiac"]
    np.testing.assert_allclose(annot.onset, [1.0, 3.0])
    empty = _events_to_annotations(
        np.zeros((0, 3), int), description="blink", raw=raw
    )
    assert len(empty) == 0
    raw.set_annotations(annot + empty)
    df = _count_events(raw.annotations, descriptions=["blink", "cardiac"])
    assert df.loc["cardiac", "Count"] == 2
    assert df.loc["blink", "Count"] == 0
