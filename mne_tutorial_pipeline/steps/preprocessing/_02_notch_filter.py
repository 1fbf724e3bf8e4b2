"""Remove the power line noise.

Apply a notch filter at the power line frequency and its harmonics to the MEG
channels, and compare the power spectrum density before and after filtering.
"""

from types import SimpleNamespace

import mne
import numpy as np

from ..._config_utils import _deriv_path, _subject_kwargs
from ..._logging import gen_log_kwargs, logger
from ..._report import _open_report
from ..._run import _prep_out_files, failsafe_run, save_logs
from ...typing import InFilesT, OutFilesT


def _plot_psd(*, cfg: SimpleNamespace, raw: mne.io.BaseRaw, title: str):
    """Plot the Welch estimate of the power spectrum density of the MEG."""
    n_per_seg = int(round(cfg.psd_window * raw.info["sfreq"]))
    n_overlap = int(round(n_per_seg * cfg.psd_overlap))
    tmax = raw.times[-1]
    if cfg.psd_tmax is not None:
        tmax = min(cfg.psd_tmax, tmax)
    psd = raw.compute_psd(
        method="welch",
        tmin=cfg.psd_tmin,
        tmax=tmax,
        picks="meg",
        n_fft=n_per_seg,
        n_per_seg=n_per_seg,
        n_overlap=n_overlap,
    )
    fig = psd.plot(amplitude=False, show=False)
    fig.suptitle(title)
    return fig


def get_input_fnames_notch_filter(
    *,
    cfg: SimpleNamespace,
    subject: str,
) -> InFilesT:
    in_files = dict()
    in_files["raw"] = _deriv_path(cfg=cfg, suffix="raw")
    return in_files


@failsafe_run(
    get_input_fnames=get_input_fnames_notch_filter,
)
def run_notch_filter(
    *,
    cfg: SimpleNamespace,
    exec_params: SimpleNamespace,
    subject: str,
    in_files: InFilesT,
) -> OutFilesT:
    import matplotlib.pyplot as plt

    out_files = dict()
    out_files["raw"] = _deriv_path(cfg=cfg, suffix="raw", processing="clean")
    msg = f"Input: {in_files['raw'].name}"
    logger.info(**gen_log_kwargs(message=msg))
    msg = f"Output: {out_files['raw'].name}"
    logger.info(**gen_log_kwargs(message=msg))

    raw = mne.io.read_raw_fif(in_files.pop("raw"), preload=True)
    raw_clean = raw.copy()
    if cfg.notch_freqs is None:
        msg = "No notch filter requested, copying the data …"
        logger.info(**gen_log_kwargs(message=msg, emoji="skip"))
    else:
        freqs = np.array(cfg.notch_freqs, dtype=float)
        nyquist = raw.info["sfreq"] / 2.0
        if np.any(freqs >= nyquist):
            raise ValueError(
                f"notch_freqs {list(freqs)} must be below the Nyquist "
                f"frequency ({nyquist} Hz)"
            )
        msg = f"Notch filtering the MEG channels at {', '.join(map(str, freqs))} Hz"
        logger.info(**gen_log_kwargs(message=msg))
        raw_clean.notch_filter(
            freqs=freqs,
            picks="meg",
            notch_widths=cfg.notch_widths,
            trans_bandwidth=cfg.notch_trans_bandwidth,
            n_jobs=1,
        )
    raw_clean.save(out_files["raw"], overwrite=True)

    with _open_report(cfg=cfg, exec_params=exec_params, subject=subject) as report:
        msg = "Adding power spectrum density to report"
        logger.info(**gen_log_kwargs(message=msg))
        figs = (
            _plot_psd(cfg=cfg, raw=raw, title="Before notch filter"),
            _plot_psd(cfg=cfg, raw=raw_clean, title="After notch filter"),
        )
        window = f"{cfg.psd_window:g} s windows, {100 * cfg.psd_overlap:g}% overlap"
        report.add_figure(
            fig=figs,
            title="Power spectrum density",
            caption=[f"Before notch filter ({window})", f"After notch filter ({window})"],
            tags=("psd", "raw", "filtered"),
            replace=True,
        )
        for fig in figs:
            plt.close(fig)

    assert len(in_files) == 0, in_files.keys()
    return _prep_out_files(exec_params=exec_params, out_files=out_files)


def get_config(
    *,
    config: SimpleNamespace,
) -> SimpleNamespace:
    cfg = SimpleNamespace(
        notch_freqs=config.notch_freqs,
        notch_widths=config.notch_widths,
        notch_trans_bandwidth=config.notch_trans_bandwidth,
        psd_tmin=config.psd_tmin,
        psd_tmax=config.psd_tmax,
        psd_window=config.psd_window,
        psd_overlap=config.psd_overlap,
        **_subject_kwargs(config=config),
    )
    return cfg


def main(*, config: SimpleNamespace) -> None:
    """Run notch filter."""
    log = run_notch_filter(
        cfg=get_config(config=config),
        exec_params=config.exec_params,
        subject=config.subject,
    )
    save_logs(config=config, logs=[log])
