"""Download test data and run a test suite."""

import sys
from collections.abc import Collection
from pathlib import Path
from typing import TypedDict

import pytest

from mne_tutorial_pipeline._download import main as download_main
from mne_tutorial_pipeline._main import main

TUTORIAL_PIPELINE_DIR = Path(__file__).absolute().parents[1]

# Where to download the data to
DATA_DIR = Path("~/mne_data").expanduser()


# Effective defaults are listed in comments
class _TestOptionsT(TypedDict, total=False):
    dataset: str  # key.split("_")[0]
    config: str  # f"config_{key}.py"
    steps: Collection[str]  # ("all",)
    extra_config: str  # ""


TEST_SUITE: dict[str, _TestOptionsT] = {
    "bst_raw": {},
    "bst_raw_sensor": {
        "dataset": "bst_raw",
        "config": "config_bst_raw.py",
        "steps": (
            "preprocessing",
            "preprocessing/make_epochs",  # Test the group/step syntax
            "sensor",
            "report",
        ),
        "extra_config": """
run_source_estimation = False
notch_freqs = None
memory_file_method = "hash"
""",
    },
}


@pytest.fixture()
def dataset_test(request):
    capsys = request.getfixturevalue("capsys")
    dataset = request.getfixturevalue("dataset")
    test_options = TEST_SUITE[dataset]
    dataset_name = test_options.get("dataset", dataset.split("_sensor")[0])
    with capsys.disabled():
        if request.config.getoption("--download", False):  # download requested
            download_main(dataset_name)
        yield


@pytest.mark.dataset_test
@pytest.mark.parametrize("dataset", list(TEST_SUITE))
def test_run(dataset, monkeypatch, dataset_test, capsys, tmp_path):
    """Test running a dataset."""
    test_options = TEST_SUITE[dataset]
    config = test_options.get("config", f"config_{dataset}.py")
    config_path = TUTORIAL_PIPELINE_DIR / "tests" / "configs" / config
    extra_config = test_options.get("extra_config", "")
    if extra_config:
        extra_path = tmp_path / "extra_config.py"
        extra_path.write_text(extra_config)
        monkeypatch.setenv("_MNE_TUTORIAL_PIPELINE_TESTING_EXTRA_CONFIG", str(extra_path))
    # Never use the toolbox folder of the user
    monkeypatch.setenv("MNE_TUTORIAL_PIPELINE_CONFIG", str(tmp_path / "toolbox.json"))

    # Run the tests.
    steps = test_options.get("steps", ("all",))
    command = [
        "mne_tutorial_pipeline",
        str(config_path),
        f"--steps={','.join(steps)}",
    ]
    monkeypatch.setenv("_MNE_TUTORIAL_PIPELINE_TESTING", "true")
    monkeypatch.setattr(sys, "argv", command)
    with capsys.disabled():
        print()
        main()
