"""Extract evoked data for each condition."""

from types import SimpleNamespace

import mne

from ..._config_utils import _deriv_path, _pl, _subject_kwargs
from ..._logging import gen_log_kwargs, logger
from ..._report import _open_report, _sanitize_cond_tag
from ..._run import _prep_out_files, failsafe_run, save_logs
from ...typing import InFilesT, OutFilesT


def get_input_fnames_evoked(
    *,
    cfg: SimpleNamespace,
    subject: str,
) -> InFilesT:
    in_files = dict()
    in_files["epochs"] = _deriv_path(cfg=cfg, suffix="epo")
    return in_files


@failsafe_run(
    get_input_fnames=get_input_fnames_evoked,
)
def run_evoked(
    *,
    cfg: SimpleNamespace,
    exec_params: SimpleNamespace,
    subject: str,
    in_files: InFilesT,
) -> OutFilesT:
    out_files = dict()
    out_files["evoked"] = _deriv_path(cfg=cfg, suffix="ave")

    msg = f"Input: {in_files['epochs'].name}"
    logger.info(**gen_log_kwargs(message=msg))
    msg = f"Output: {out_files['evoked'].name}"
    logger.info(**gen_log_kwargs(message=msg))

    epochs = mne.read_epochs(in_files.pop("epochs"), preload=True)

    msg = "Creating evoked data based on experimental conditions …"
    logger.info(**gen_log_kwargs(message=msg))
    all_evoked = dict()
    for condition in cfg.conditions:
        evoked = epochs[condition].average()
        evoked.comment = condition
        all_evoked[condition] = evoked

    evokeds = list(all_evoked.values())
    for evoked in evokeds:
        evoked.nave = int(round(evoked.nave))  # avoid a warning
    mne.write_evokeds(out_files["evoked"], evokeds, overwrite=True)

    msg = f"Adding {len(evokeds)} evoked response{_pl(evokeds)} to the report."
    logger.info(**gen_log_kwargs(message=msg))
    with _open_report(cfg=cfg, exec_params=exec_params, subject=subject) as report:
        for condition, evoked in all_evoked.items():
            report.add_evokeds(
                evokeds=evoked,
                titles=f"Evoked response: {condition}",
                tags=("evoked", _sanitize_cond_tag(condition)),
                replace=True,
                n_jobs=1,  # don't auto parallelize
            )

    if exec_params.interactive:
        for evoked in evokeds:
            evoked.plot()

    assert len(in_files) == 0, in_files.keys()
    return _prep_out_files(exec_params=exec_params, out_files=out_files)


def get_config(
    *,
    config: SimpleNamespace,
) -> SimpleNamespace:
    cfg = SimpleNamespace(
        conditions=list(config.conditions),
        **_subject_kwargs(config=config),
    )
    return cfg


def main(*, config: SimpleNamespace) -> None:
    """Run evoked."""
    log = run_evoked(
        cfg=get_config(config=config),
        exec_params=config.exec_params,
        subject=config.subject,
    )
    save_logs(config=config, logs=[log])
