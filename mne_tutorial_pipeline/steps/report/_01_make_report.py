"""Make the final report.

Summarize the processing log of all steps in the report and, in interactive
mode, open the report in a web browser.
"""

import pathlib
from types import SimpleNamespace

import pandas as pd

from ..._config_utils import _deriv_path, _subject_kwargs
from ..._logging import gen_log_kwargs, logger
from ..._report import _open_report
from ..._run import failsafe_run, save_logs


def _summarize_logs(fname: pathlib.Path) -> pd.DataFrame:
    """Get the most recent duration and outcome of each logged step."""
    sheets = pd.read_excel(fname, sheet_name=None, engine="openpyxl")
    rows = list()
    for step, df in sheets.items():
        if df.empty:
            continue
        last = df.iloc[-1]
        error = last.get("error_message")
        rows.append(
            dict(
                Step=step.replace("-", "/", 1),
                Duration=f"{last['time']:0.1f} s",
                Status="✅" if bool(last["success"]) else "❌",
                Error="" if pd.isna(error) else str(error),
            )
        )
    return pd.DataFrame(rows, columns=["Step", "Duration", "Status", "Error"])


@failsafe_run()
def run_report(
    *,
    cfg: SimpleNamespace,
    exec_params: SimpleNamespace,
    subject: str,
) -> None:
    fname_log = cfg.deriv_root / f"{cfg.study_name}_log.xlsx"
    with _open_report(cfg=cfg, exec_params=exec_params, subject=subject) as report:
        if fname_log.exists():
            msg = f"Adding processing log summary from {fname_log.name}"
            logger.info(**gen_log_kwargs(message=msg))
            df_log = _summarize_logs(fname_log)
            css_classes = ("table", "table-striped", "table-borderless", "table-hover")
            report.add_html(
                df_log.to_html(classes=css_classes, border=0, index=False),
                title="Processing log",
                tags=("log",),
                replace=True,
            )
        else:
            msg = f"No processing log found at {fname_log}"
            logger.warning(**gen_log_kwargs(message=msg))

    if exec_params.interactive:
        fname_html = _deriv_path(cfg=cfg, suffix="report", extension=".html")
        msg = f"Opening report: {fname_html}"
        logger.info(**gen_log_kwargs(message=msg))
        report.save(fname_html, overwrite=True, open_browser=True)


def get_config(
    *,
    config: SimpleNamespace,
) -> SimpleNamespace:
    cfg = SimpleNamespace(
        **_subject_kwargs(config=config),
    )
    return cfg


def main(*, config: SimpleNamespace) -> None:
    """Make the report."""
    log = run_report(
        cfg=get_config(config=config),
        exec_params=config.exec_params,
        subject=config.subject,
    )
    save_logs(config=config, logs=[log])
