import contextlib
from functools import lru_cache
from io import StringIO
from types import SimpleNamespace

import mne
import pandas as pd
from filelock import FileLock

from ._config_utils import _deriv_path
from ._logging import gen_log_kwargs, logger


@contextlib.contextmanager
def _open_report(
    *,
    cfg: SimpleNamespace,
    exec_params: SimpleNamespace,
    subject: str,
):
    fname_report = _deriv_path(cfg=cfg, suffix="report", extension=".h5")
    fname_report.parent.mkdir(parents=True, exist_ok=True)
    # prevent concurrent file access
    with FileLock(f"{fname_report}.lock"), _agg_backend():
        if not fname_report.is_file():
            msg = "Initializing report HDF5 file"
            logger.info(**gen_log_kwargs(message=msg))
            report = _gen_empty_report(cfg=cfg, subject=subject)
            report.save(fname_report)
        try:
            report = mne.open_report(fname_report)
        except Exception as exc:
            raise exc.__class__(
                f"Could not open report HDF5 file:\n{fname_report}\n"
                f"Got error:\n{exc}\nPerhaps you need to delete it?"
            ) from None
        try:
            yield report
        finally:
            msg = "Adding config and sys info to report"
            logger.info(**gen_log_kwargs(message=msg))
            _finalize(report=report, exec_params=exec_params)
            fname_report_html = fname_report.with_suffix(".html")
            msg = f"Saving report: {fname_report_html}"
            logger.info(**gen_log_kwargs(message=msg))
            report.save(fname_report, overwrite=True)
            report.save(fname_report_html, overwrite=True, open_browser=False)


def _gen_empty_report(*, cfg: SimpleNamespace, subject: str) -> mne.Report:
    title = f"sub-{subject}, {cfg.study_name}"
    report = mne.Report(title=title, raw_psd=True)
    return report


def _count_events(
    annotations: mne.Annotations,
    *,
    descriptions: list[str] | None = None,
) -> pd.DataFrame:
    """Count the annotations of each kind."""
    counts = pd.Series(annotations.description, dtype=object).value_counts()
    if descriptions is not None:
        counts = counts.reindex(descriptions, fill_value=0)
    df = counts.rename_axis("Event").rename("Count").to_frame()
    return df.sort_index()


def add_event_counts(
    *,
    report: mne.Report,
    df_events: pd.DataFrame,
    title: str = "Event counts",
) -> None:
    css_classes = ("table", "table-striped", "table-borderless", "table-hover")
    report.add_html(
        f'<div class="event-counts">\n'
        f"{df_events.to_html(classes=css_classes, border=0)}\n"
        f"</div>",
        title=title,
        tags=("events",),
        replace=True,
    )
    css = (
        ".event-counts {\n"
        "  display: -webkit-box;\n"
        "  display: -ms-flexbox;\n"
        "  display: -webkit-flex;\n"
        "  display: flex;\n"
        "  justify-content: center;\n"
        "  text-align: center;\n"
        "}\n\n"
        "th, td {\n"
        "  text-align: center;\n"
        "}\n"
    )
    if css not in report.include:
        report.add_custom_css(css=css)


def _finalize(
    *,
    report: mne.Report,
    exec_params: SimpleNamespace,
) -> None:
    """Add system information and the pipeline configuration to the report."""
    # ensure they are always appended
    titles = ["Configuration file", "System information"]
    for title in titles:
        report.remove(title=title, remove_all=True)
    # No longer need replace=True in these
    if exec_params.config_path is not None:
        report.add_code(
            code=exec_params.config_path,
            title=titles[0],
            tags=("configuration",),
        )
    # We don't use report.add_sys_info so we can use our own cached version
    tags = ("mne-sysinfo",)
    info = _cached_sys_info()
    report.add_code(code=info, title=titles[1], language="shell", tags=tags)
    # Make our code sections take 50% of screen height
    css = """
div.accordion-body pre.my-0 code {
    overflow-y: auto;
    max-height: 50vh;
 }
"""
    if css not in report.include:
        report.add_custom_css(css=css)


# We make a lot of calls to this function and it takes > 1 sec generally
# to run, so run it just once (it shouldn't meaningfully change anyway)
@lru_cache(maxsize=1)
def _cached_sys_info() -> str:
    with StringIO() as f:
        mne.sys_info(f)
        return f.getvalue()


def _sanitize_cond_tag(cond: str) -> str:
    return cond.lower().replace(" ", "-")


@contextlib.contextmanager
def _agg_backend():
    import matplotlib

    backend = matplotlib.get_backend()
    matplotlib.use("Agg", force=True)
    try:
        yield
    finally:
        matplotlib.use(backend, force=True)
