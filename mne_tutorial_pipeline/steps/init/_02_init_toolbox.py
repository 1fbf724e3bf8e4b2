"""Initialize the external toolbox.

Make sure the external toolbox requested in the configuration is installed
and initialized before any processing takes place. In interactive mode, the
user is asked where to find it if needed.
"""

from types import SimpleNamespace

from ..._config_utils import _subject_kwargs, get_toolbox_spec
from ..._logging import gen_log_kwargs, logger
from ..._run import _prep_out_files, failsafe_run, save_logs
from ..._toolbox import resolve_toolbox
from ...typing import OutFilesT


@failsafe_run()
def init_toolbox(
    *,
    cfg: SimpleNamespace,
    exec_params: SimpleNamespace,
) -> OutFilesT:
    toolbox = cfg.toolbox
    msg = f"Initializing {toolbox.name} ({toolbox.entry_point})"
    logger.info(**gen_log_kwargs(message=msg, emoji="toolbox"))
    resolve_toolbox(
        toolbox=toolbox,
        context=exec_params.toolbox_context,
        interactive=exec_params.interactive,
    )
    return _prep_out_files(exec_params=exec_params, out_files=dict())


def get_config(
    *,
    config: SimpleNamespace,
) -> SimpleNamespace:
    cfg = SimpleNamespace(
        toolbox=get_toolbox_spec(config),
        **_subject_kwargs(config=config),
    )
    return cfg


def main(*, config: SimpleNamespace) -> None:
    """Initialize the external toolbox."""
    cfg = get_config(config=config)
    if cfg.toolbox is None:
        msg = "Skipping, no external toolbox requested …"
        logger.info(**gen_log_kwargs(message=msg, emoji="skip"))
        return

    log = init_toolbox(cfg=cfg, exec_params=config.exec_params)
    save_logs(config=config, logs=[log])
