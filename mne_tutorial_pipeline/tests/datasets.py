"""Definition of the testing datasets."""

from typing import TypedDict


# If not supplied below, the effective defaults are listed in comments
class DATASET_OPTIONS_T(TypedDict, total=False):
    """A container for the source of a dataset."""

    mne: str  # name of the mne.datasets.brainstorm module


DATASET_OPTIONS: dict[str, DATASET_OPTIONS_T] = {
    # "MEG median nerve (CTF)" tutorial recording and FreeSurfer anatomy
    "bst_raw": {
        "mne": "bst_raw",
    },
}
