import ast
import copy
import difflib
import importlib.util
import os
import pathlib
from collections.abc import Iterator
from types import SimpleNamespace
from typing import Optional

import matplotlib
import mne
from pydantic import BaseModel, ConfigDict, ValidationError

from ._logging import gen_log_kwargs, logger
from .typing import PathLike


class ConfigError(ValueError):
    pass


def _import_config(
    *,
    config_path: Optional[PathLike],
    overrides: Optional[SimpleNamespace] = None,
    check: bool = True,
    log: bool = True,
    toolbox_context=None,
) -> SimpleNamespace:
    """Import the default config and the user's config."""
    # Get the default
    config = _get_default_config()
    # Public names users generally will have in their config
    valid_names = [d for d in dir(config) if not d.startswith("_")]
    # Names that we will reduce the SimpleConfig to before returning
    # (see _update_with_user_config)
    keep_names = [d for d in dir(config) if not d.startswith("__")] + [
        "config_path",
        "PIPELINE_NAME",
        "VERSION",
        "CODE_URL",
    ]

    # Update with user config
    user_names = _update_with_user_config(
        config=config,
        config_path=config_path,
        overrides=overrides,
        log=log,
    )

    extra_config = os.getenv("_MNE_TUTORIAL_PIPELINE_TESTING_EXTRA_CONFIG", "")
    if extra_config:
        msg = f"With testing config: {extra_config}"
        logger.info(**gen_log_kwargs(message=msg, emoji="override"))
        _update_config_from_path(
            config=config,
            config_path=extra_config,
        )

    # Check it
    if check:
        _check_config(config, config_path)
        _check_misspellings_removals(
            valid_names=valid_names,
            user_names=user_names,
            log=log,
            config_validation=config.config_validation,
        )

    # Finally, reduce to our actual supported params (all keep_names should be present)
    config = SimpleNamespace(**{k: getattr(config, k) for k in keep_names})

    # Take some standard actions
    mne.set_log_level(verbose=config.mne_log_level.upper())
    logger.level = 40 if config.log_level == "error" else 20

    # Take variables out of config (which affects the pipeline outputs) and
    # put into config.exec_params (which affect the pipeline execution methods,
    # but not the outputs)
    keys = (
        "n_jobs",
        # Interaction
        "on_error",
        "interactive",
        # Caching
        "memory_location",
        "memory_verbose",
        "memory_file_method",
        # Misc
        "deriv_root",
        "config_path",
    )
    in_both = {"deriv_root", "interactive"}
    exec_params = SimpleNamespace(**{k: getattr(config, k) for k in keys})
    for k in keys:
        if k not in in_both:
            delattr(config, k)
    if toolbox_context is None:
        from ._toolbox import ToolboxContext

        toolbox_context = ToolboxContext()
    exec_params.toolbox_context = toolbox_context
    config.exec_params = exec_params
    return config


def _imported_names(path: PathLike) -> set[str]:
    """Get the names bound by import statements at the top of a module."""
    tree = ast.parse(pathlib.Path(path).read_text(encoding="utf-8"))
    return {
        name.asname or name.name.partition(".")[0]
        for element in tree.body
        if isinstance(element, (ast.Import, ast.ImportFrom))
        for name in element.names
    }


def _get_default_config():
    from . import _config

    # Don't use _config itself as it's mutable -- make a new object
    # with deepcopies of vals (keys are immutable strings so no need to copy)
    # except modules and imports
    ignore_keys = _imported_names(_config.__file__)
    config = SimpleNamespace(
        **{
            key: copy.deepcopy(val)
            for key, val in _config.__dict__.items()
            if not (key.startswith("__") or key in ignore_keys)
        }
    )
    return config


def _update_config_from_path(
    *,
    config: SimpleNamespace,
    config_path: PathLike,
) -> list[str]:
    user_names = list()
    config_path = pathlib.Path(config_path).expanduser().resolve(strict=True)
    # Import configuration from an arbitrary path without having to fiddle
    # with `sys.path`.
    spec = importlib.util.spec_from_file_location(
        name="custom_config", location=config_path
    )
    custom_cfg = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(custom_cfg)
    # e.g., the typing imports of a generated template
    ignore_keys = _imported_names(config_path)
    for key in dir(custom_cfg):
        if not key.startswith("__") and key not in ignore_keys:
            # don't validate private vars, but do add to config
            if not key.startswith("_"):
                user_names.append(key)
            val = getattr(custom_cfg, key)
            logger.debug(f"Overwriting: {key} -> {val}")
            setattr(config, key, val)
    return user_names


def _update_with_user_config(
    *,
    config: SimpleNamespace,  # modified in-place
    config_path: Optional[PathLike],
    overrides: Optional[SimpleNamespace],
    log: bool = False,
) -> list[str]:
    # 1. Basics
    from . import __version__

    config.PIPELINE_NAME = "mne-tutorial-pipeline"
    config.VERSION = __version__
    config.CODE_URL = "https://github.com/mne-tools/mne-tutorial-pipeline"

    # 2. User config
    user_names = list()
    if config_path is not None:
        user_names.extend(
            _update_config_from_path(
                config=config,
                config_path=config_path,
            )
        )
    config.config_path = config_path

    # 3. Overrides via command-line switches
    overrides = overrides or SimpleNamespace()
    for name in dir(overrides):
        if not name.startswith("__"):
            val = getattr(overrides, name)
            if log:
                msg = f"Overriding config.{name} = {repr(val)}"
                logger.info(**gen_log_kwargs(message=msg, emoji="override"))
            setattr(config, name, val)

    # 4. Env vars and other triaging
    if not config.tutorial_dir:
        root = os.getenv("TUTORIAL_DIR", None)
        if root is None:
            raise ValueError(
                "You need to specify `tutorial_dir` in your configuration, or "
                "define an environment variable `TUTORIAL_DIR` pointing to "
                "the folder of the tutorial dataset"
            )
        config.tutorial_dir = root
    config.tutorial_dir = pathlib.Path(config.tutorial_dir).expanduser().resolve()
    if config.deriv_root is None:
        config.deriv_root = config.tutorial_dir / "derivatives" / config.study_name
    config.deriv_root = pathlib.Path(config.deriv_root).expanduser().resolve()

    # 5. Consistency
    log_kwargs = dict(emoji="override")
    if config.interactive:
        if log and config.on_error != "debug":
            msg = 'Setting config.on_error="debug" because of interactive mode'
            logger.info(**gen_log_kwargs(message=msg, **log_kwargs))
        config.on_error = "debug"
    else:
        matplotlib.use("Agg")  # do not open any window  # noqa
    return user_names


def _check_config(config: SimpleNamespace, config_path: Optional[PathLike]) -> None:
    _pydantic_validate(config=config, config_path=config_path)

    if not config.tutorial_dir.is_dir():
        raise ConfigError(
            f"The tutorial directory does not exist: {config.tutorial_dir}"
        )

    epochs_window = [config.epochs_tmin, config.epochs_tmax]
    if config.epochs_tmin >= config.epochs_tmax:
        raise ConfigError(
            f"epochs_tmin must be smaller than epochs_tmax, got {epochs_window}"
        )

    bl = config.baseline
    if bl is not None:
        if (bl[0] is not None and bl[0] < config.epochs_tmin) or (
            bl[1] is not None and bl[1] > config.epochs_tmax
        ):
            raise ConfigError(
                f"baseline {bl} outside of epochs interval {epochs_window}."
            )

        if bl[0] is not None and bl[1] is not None and bl[0] >= bl[1]:
            raise ConfigError(
                f"The end of the baseline period must occur after its start, "
                f"but you set baseline={bl}"
            )

    # The noise covariance window refers to the shifted time axis
    shifted = [t + config.time_offset for t in epochs_window]
    cov_tmin, cov_tmax = config.noise_cov
    # Allow for floating point inaccuracies in the shifted window
    eps = 1e-9
    if (cov_tmin is not None and cov_tmin < shifted[0] - eps) or (
        cov_tmax is not None and cov_tmax > shifted[1] + eps
    ):
        raise ConfigError(
            f"noise_cov {config.noise_cov} outside of the epochs interval "
            f"shifted by time_offset={config.time_offset}: "
            f"[{shifted[0]:0.4f}, {shifted[1]:0.4f}]."
        )

    if config.stim_channel is not None:
        if config.event_id is None:
            raise ConfigError(
                "You requested to read events from the stimulus channel "
                f"{repr(config.stim_channel)}, but did not specify event_id."
            )
        missing = sorted(set(config.conditions) - set(config.event_id))
        if missing:
            raise ConfigError(
                f"The conditions {missing} have no entry in event_id "
                f"{config.event_id}."
            )

    if not config.conditions:
        raise ConfigError(
            "Please indicate the name of your conditions in your "
            "configuration. Currently the `conditions` parameter is empty."
        )

    if config.toolbox_name is not None and not config.toolbox_entry_point:
        raise ConfigError(
            f"You requested the external toolbox {repr(config.toolbox_name)}, "
            "but did not specify toolbox_entry_point."
        )
    toolbox_extras = (
        "toolbox_entry_point",
        "toolbox_bootstrap",
        "toolbox_marker",
        "toolbox_url",
    )
    if config.toolbox_name is None:
        for key in toolbox_extras:
            if getattr(config, key) is not None:
                raise ConfigError(
                    f"{key} was set to {repr(getattr(config, key))}, but "
                    "toolbox_name is None."
                )

    if config.spatial_filter == "ssp" and config.eog_channel is None:
        raise ConfigError(
            'spatial_filter="ssp" requires eye blinks to be detected, '
            "please set eog_channel."
        )


def _pydantic_validate(
    config: SimpleNamespace,
    config_path: Optional[PathLike],
):
    """Create a model from config type hints and validate with pydantic."""
    from . import _config as root_config

    annotations = dict()
    attrs = dict()
    for key, annot in root_config.__annotations__.items():
        annotations[key] = annot
        attrs[key] = root_config.__dict__[key]
    name = "user configuration"
    if config_path is not None:
        name += f" from {config_path}"
    model_config = ConfigDict(
        arbitrary_types_allowed=True,
        validate_assignment=True,
        strict=True,  # do not allow float for int for example
        extra="forbid",
    )
    UserConfig = type(
        name,
        (BaseModel,),
        {"__annotations__": annotations, "model_config": model_config, **attrs},
    )
    # Now use pydantic to automagically validate
    user_vals = {key: val for key, val in config.__dict__.items() if key in annotations}
    try:
        UserConfig.model_validate(user_vals)
    except ValidationError as err:
        raise ValueError(str(err)) from None


# Options of the Brainstorm processes and of earlier releases:
# old name -> (replacement, how to use the replacement)
_REMOVED_NAMES: dict[str, tuple[str, Optional[str]]] = {
    "debug": ("on_error", 'use on_error="debug" instead'),
    "N_JOBS": ("n_jobs", None),
    "freqlist": ("notch_freqs", None),
    "nvertices": ("spacing", 'use spacing (e.g., "oct6") instead'),
    "sensortypes": ("ch_types", None),
    "epochtime": ("epochs_tmin", "use epochs_tmin and epochs_tmax instead"),
    "eventname": ("conditions", None),
    "timewindow": ("psd_tmin", "use psd_tmin and psd_tmax instead"),
    "win_length": ("psd_window", None),
    "win_overlap": (
        "psd_overlap",
        "use psd_overlap (as a fraction, not in percent) instead",
    ),
    "subjectname": ("subject", None),
    "protocolname": ("study_name", None),
}


def _unknown_name_problems(
    *,
    valid_names: set[str],
    user_names: list[str],
) -> Iterator[str]:
    for user_name in user_names:
        if user_name in valid_names:
            continue
        prefix = f"Found a variable named {repr(user_name)} in your custom config,"
        if user_name in _REMOVED_NAMES:
            # Fine as long as the replacement is set too
            new_name, instead = _REMOVED_NAMES[user_name]
            if new_name not in user_names:
                instead = instead or f"use {new_name} instead"
                yield (
                    f"{prefix} this variable has been removed as a valid "
                    f"config option, {instead}."
                )
            continue
        close = difflib.get_close_matches(user_name, valid_names, n=1)
        # A near miss only counts if the user did not also set the real name
        if close and close[0] not in user_names:
            yield (
                f"{prefix} did you mean {repr(close[0])}? If so, please correct "
                "the error. If not, please rename the variable to reduce "
                "ambiguity and avoid this message, or set "
                "config.config_validation to 'warn' or 'ignore'."
            )


def _check_misspellings_removals(
    *,
    valid_names: list[str],
    user_names: list[str],
    log: bool,
    config_validation: str,
) -> None:
    """Complain about config names we do not know."""
    if config_validation == "ignore":
        return
    problems = _unknown_name_problems(
        valid_names=set(valid_names), user_names=user_names
    )
    for msg in problems:
        if config_validation == "raise":
            raise ValueError(msg)
        if log:
            logger.warning(**gen_log_kwargs(message=msg, emoji="🛟"))
