"""Initialize derivatives_dir.

Check the tutorial dataset and initialize the derivatives directory.
"""

import shutil
from types import SimpleNamespace

import mne

from ..._config_utils import _subject_kwargs, get_raw_path
from ..._io import _write_json
from ..._logging import gen_log_kwargs, logger
from ..._run import _prep_out_files, failsafe_run, save_logs
from ...typing import OutFilesT


@failsafe_run()
def init_dataset(
    *,
    cfg: SimpleNamespace,
    exec_params: SimpleNamespace,
) -> OutFilesT:
    """Prepare the pipeline directory in /derivatives."""
    if not cfg.raw_path.exists():
        raise FileNotFoundError(
            f"The tutorial directory {cfg.tutorial_dir} does not contain the "
            f"recording {cfg.raw_fname}. Download the dataset or adjust "
            "tutorial_dir and raw_fname in your configuration."
        )
    if cfg.recreate_derivatives and cfg.deriv_root.exists():
        msg = f"Deleting previous results in {cfg.deriv_root}"
        logger.info(**gen_log_kwargs(message=msg, emoji="override"))
        shutil.rmtree(cfg.deriv_root)

    out_files = dict()
    out_files["json"] = cfg.deriv_root / "dataset_description.json"
    logger.info(**gen_log_kwargs(message="Initializing output directories."))

    cfg.deriv_root.mkdir(exist_ok=True, parents=True)
    (cfg.deriv_root / f"sub-{cfg.subject}").mkdir(exist_ok=True)

    # Write a dataset_description.json for the pipeline
    ds_json = dict()
    ds_json["Name"] = f"{cfg.study_name} ({cfg.PIPELINE_NAME} outputs)"
    ds_json["PipelineDescription"] = {
        "Name": cfg.PIPELINE_NAME,
        "Version": cfg.VERSION,
        "CodeURL": cfg.CODE_URL,
        "MNEVersion": mne.__version__,
    }
    ds_json["SourceDatasets"] = {
        "Path": str(cfg.raw_path),
    }
    _write_json(out_files["json"], ds_json)
    return _prep_out_files(exec_params=exec_params, out_files=out_files)


def get_config(
    *,
    config: SimpleNamespace,
) -> SimpleNamespace:
    cfg = SimpleNamespace(
        PIPELINE_NAME=config.PIPELINE_NAME,
        VERSION=config.VERSION,
        CODE_URL=config.CODE_URL,
        tutorial_dir=config.tutorial_dir,
        raw_fname=str(config.raw_fname),
        raw_path=get_raw_path(config),
        recreate_derivatives=config.recreate_derivatives,
        **_subject_kwargs(config=config),
    )
    return cfg


def main(*, config: SimpleNamespace) -> None:
    """Initialize the output directories."""
    log = init_dataset(cfg=get_config(config=config), exec_params=config.exec_params)
    save_logs(config=config, logs=[log])
