import argparse
import pathlib
import time
from textwrap import dedent
from types import ModuleType, SimpleNamespace

import numpy as np

from ._config_import import _import_config
from ._config_template import create_template_config
from ._config_utils import _get_step_modules, get_toolbox_spec
from ._logging import gen_log_kwargs, logger
from ._run import _short_step_path
from ._toolbox import ToolboxContext, ToolboxError, resolve_toolbox


def main():
    from . import __version__

    parser = argparse.ArgumentParser()
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )
    parser.add_argument("config", nargs="?", default=None)
    parser.add_argument(
        "--config",
        dest="config_switch",
        default=None,
        metavar="FILE",
        help="The path of the pipeline configuration file to use.",
    )
    parser.add_argument(
        "--create-config",
        dest="create_config",
        default=None,
        metavar="FILE",
        help="Create a template configuration file with the specified name. "
        "If specified, all other parameters except --tutorial-dir will be ignored.",
    )
    parser.add_argument(
        "--steps",
        dest="steps",
        default="all",
        help=dedent(
            """\
        The processing steps to run.
        Can either be one of the processing groups 'anatomy', 'preprocessing',
        'sensor', 'source', 'report', or 'all', or the name of a processing
        group plus the desired step sans the step number and filename
        extension, separated by a '/'. For example, to compute the SSP
        projectors, you would pass 'preprocessing/run_ssp'. If unspecified,
        will run all processing steps. Several steps can be passed separated
        by commas."""
        ),
    )
    parser.add_argument(
        "--tutorial-dir",
        dest="tutorial_dir",
        default=None,
        help="Folder of the tutorial dataset to process.",
    )
    parser.add_argument(
        "--n_jobs",
        dest="n_jobs",
        type=int,
        default=None,
        help="The number of parallel processes to execute.",
    )
    parser.add_argument(
        "--interactive",
        dest="interactive",
        action="store_true",
        help="Enable interactive mode.",
    )
    parser.add_argument(
        "--debug",
        dest="debug",
        action="store_true",
        help="Enable debugging on error.",
    )
    parser.add_argument(
        "--no-cache",
        dest="no_cache",
        action="store_true",
        help="Disable caching of intermediate results.",
    )
    parser.add_argument(
        "--setup-toolbox",
        dest="setup_toolbox",
        action="store_true",
        help="Ask where the external toolbox of the configuration is "
        "installed, remember the folder, and exit.",
    )
    options = parser.parse_args()

    if options.create_config is not None:
        target_path = pathlib.Path(options.create_config)
        tutorial_dir = options.tutorial_dir
        if tutorial_dir is not None:
            tutorial_dir = pathlib.Path(tutorial_dir).expanduser().resolve()
        create_template_config(
            target_path=target_path, overwrite=False, tutorial_dir=tutorial_dir
        )
        return

    config = options.config
    config_switch = options.config_switch
    bad = False
    if config is None:
        if config_switch is None:
            bad = "neither was provided"
        else:
            config = config_switch
    elif config_switch is not None:
        bad = "both were provided"
    if bad:
        parser.error(
            "❌ You must specify a configuration file either as a single "
            f"argument or with --config, but {bad}."
        )
    steps = options.steps
    tutorial_dir = options.tutorial_dir
    n_jobs = options.n_jobs
    interactive, debug = options.interactive, options.debug
    cache = not options.no_cache

    steps = tuple(steps.split(","))

    processing_stages = []
    processing_steps = []
    for steps_ in steps:
        if "/" in steps_:
            stage, step = steps_.split("/")
            processing_stages.append(stage)
            processing_steps.append(step)
        else:
            # User specified "sensor", "preprocessing" or similar, but without
            # any further grouping.
            processing_stages.append(steps_)
            processing_steps.append(None)

    config_path = pathlib.Path(config).expanduser().resolve(strict=True)
    overrides = SimpleNamespace()
    if tutorial_dir:
        overrides.tutorial_dir = (
            pathlib.Path(tutorial_dir).expanduser().resolve(strict=True)
        )
    if interactive or options.setup_toolbox:
        overrides.interactive = True
    if n_jobs:
        overrides.n_jobs = int(n_jobs)
    if debug:
        overrides.on_error = "debug"
    if not cache:
        overrides.memory_location = False

    step_modules: list[ModuleType] = []
    STEP_MODULES = _get_step_modules()
    for stage, step in zip(processing_stages, processing_steps):
        if stage not in STEP_MODULES.keys():
            raise ValueError(
                f"Invalid step requested: '{stage}'. "
                f"It should be one of {list(STEP_MODULES.keys())}."
            )

        if step is None:
            # User specified `sensor`, `source`, or similar
            step_modules.extend(STEP_MODULES[stage])
        else:
            # User specified 'stage/step'
            for step_module in STEP_MODULES[stage]:
                step_name = pathlib.Path(step_module.__file__).name
                if step in step_name:
                    step_modules.append(step_module)
                    break
            else:
                # We've iterated over all steps, but none matched!
                raise ValueError(f"Invalid steps requested: {stage}/{step}")

    if processing_stages[0] != "all":
        # Always run the initialization steps, but skip for 'all', because it
        # already includes them – and we want to avoid running them twice.
        step_modules = [*STEP_MODULES["init"], *step_modules]
        # … and do not run an init step twice if it was requested explicitly
        step_modules = list(dict.fromkeys(step_modules))

    # One toolbox context for the lifetime of this process
    toolbox_context = ToolboxContext()

    logger.title("Welcome aboard MNE Tutorial Pipeline! 👋")
    msg = f"Using configuration: {config}"
    logger.info(**gen_log_kwargs(message=msg, emoji="📝"))

    config_imported = _import_config(
        config_path=config_path,
        overrides=overrides,
        toolbox_context=toolbox_context,
    )

    if options.setup_toolbox:
        _setup_toolbox(config=config_imported, parser=parser)
        return

    for step_module in step_modules:
        start = time.time()
        step = _short_step_path(pathlib.Path(step_module.__file__))
        logger.title(title=f"{step}")
        step_module.main(config=config_imported)
        elapsed = time.time() - start
        hours, remainder = divmod(elapsed, 3600)
        hours = int(hours)
        minutes, seconds = divmod(remainder, 60)
        minutes = int(minutes)
        seconds = int(np.ceil(seconds))  # always take full seconds
        elapsed = f"{seconds}s"
        if minutes:
            elapsed = f"{minutes}m {elapsed}"
        if hours:
            elapsed = f"{hours}h {elapsed}"
        logger.end(f"done ({elapsed})")


def _setup_toolbox(
    *,
    config: SimpleNamespace,
    parser: argparse.ArgumentParser,
) -> None:
    toolbox = get_toolbox_spec(config)
    if toolbox is None:
        parser.error("❌ --setup-toolbox requires toolbox_name in the configuration.")
    try:
        resolve_toolbox(
            toolbox=toolbox,
            context=config.exec_params.toolbox_context,
            interactive=True,
        )
    except ToolboxError as exc:
        parser.exit(status=1, message=f"❌ {exc}\n")
    msg = f"{toolbox.name} is ready to use."
    logger.info(**gen_log_kwargs(message=msg, emoji="toolbox"))
