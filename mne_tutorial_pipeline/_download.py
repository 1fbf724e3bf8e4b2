"""Download test data."""

import argparse
from pathlib import Path

import mne

from .tests.datasets import DATASET_OPTIONS

DEFAULT_DATA_DIR = Path("~/mne_data").expanduser()


def _download_via_mne(*, ds_name: str, ds_path: Path) -> Path:
    """Download a Brainstorm tutorial dataset, accepting its license."""
    options = DATASET_OPTIONS[ds_name]
    module = getattr(mne.datasets.brainstorm, options["mne"])
    data_path = module.data_path(ds_path, accept=True, verbose=True)
    return Path(data_path)


def _download(*, ds_name: str, ds_path: Path) -> Path:
    options = DATASET_OPTIONS[ds_name]
    assert "mne" in options, options
    return _download_via_mne(ds_name=ds_name, ds_path=ds_path)


def main(dataset):
    """Download the testing data."""
    # Save everything 'MNE_DATA' dir ... defaults to ~/mne_data
    mne_data_dir = mne.get_config(key="MNE_DATA", default=False)
    if not mne_data_dir:
        mne.set_config("MNE_DATA", str(DEFAULT_DATA_DIR))
        DEFAULT_DATA_DIR.mkdir(exist_ok=True)
        mne_data_dir = DEFAULT_DATA_DIR
    else:
        mne_data_dir = Path(mne_data_dir)

    ds_names = DATASET_OPTIONS.keys() if not dataset else (dataset,)

    for ds_name in ds_names:
        title = f"Downloading {ds_name}"
        bar = "-" * len(title)
        print(f"{title}\n{bar}")
        ds_path = _download(ds_name=ds_name, ds_path=mne_data_dir)
        print(f"Tutorial directory: {ds_path}\n")


if __name__ == "__main__":  # pragma: no cover
    parser = argparse.ArgumentParser()
    parser.add_argument(
        dest="dataset",
        help="Name of the dataset",
        metavar="DATASET",
        nargs="?",
        default=None,
    )
    opt = parser.parse_args()
    dataset = opt.dataset if opt.dataset != "" else None
    main(dataset)
