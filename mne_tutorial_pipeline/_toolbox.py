"""Locate, register, and initialize an external analysis toolbox.

An external toolbox lives in a directory outside of the Python environment
and provides a bootstrap entry point module that needs to run once per
process before any of its functionality is used. The installation directory
is remembered in a small JSON file next to MNE-Python's own configuration so
that users only need to point us to it once.
"""

import importlib
import importlib.machinery
import os
import pathlib
import re
import sys
from dataclasses import dataclass, field
from typing import Optional, Protocol

import mne
import rich.markup
import rich.prompt

from ._io import _read_json, _write_json
from ._logging import gen_log_kwargs, logger
from .typing import PathLike

_CONFIG_ENV = "MNE_TUTORIAL_PIPELINE_CONFIG"


class ToolboxError(RuntimeError):
    """Base class for toolbox resolution errors."""


class UnsupportedInCompiledMode(ToolboxError):
    """The host application is frozen and cannot extend its search path."""


class NotConfigured(ToolboxError):
    """The toolbox could not be located; configure it and try again."""


class InvalidDirectorySelected(ToolboxError, ValueError):
    """A directory without a valid toolbox installation was selected."""


@dataclass(frozen=True)
class ToolboxSpec:
    """Static description of an external toolbox.

    Parameters
    ----------
    name : str
        Display name, e.g. ``"FieldTrip"``.
    entry_point : str
        Dotted name of the module whose import bootstraps the toolbox.
    bootstrap : str | None
        Name of a callable in the entry point module to invoke after the
        import. If None, importing the module is the whole bootstrap.
    marker : str | None
        File (relative to the installation directory) that identifies a
        valid installation. Defaults to the entry point's source file.
    url : str | None
        Where the toolbox can be downloaded.
    config_key : str | None
        Key under which the installation directory is persisted. Defaults to
        ``<NAME>_DIR``.
    """

    name: str
    entry_point: str
    bootstrap: Optional[str] = None
    marker: Optional[str] = None
    url: Optional[str] = None
    config_key: Optional[str] = None

    @property
    def marker_file(self) -> str:
        if self.marker:
            return self.marker
        return self.entry_point.replace(".", "/") + ".py"

    @property
    def key(self) -> str:
        if self.config_key:
            return self.config_key
        return re.sub(r"[^A-Z0-9]+", "_", self.name.upper()).strip("_") + "_DIR"

    @property
    def top_level(self) -> str:
        return self.entry_point.partition(".")[0]


class ToolboxConfigStore:
    """Persisted key/value configuration shared across process launches."""

    def __init__(self, fname: Optional[PathLike] = None):
        if fname is None:
            fname = os.getenv(_CONFIG_ENV, None)
        if fname is None:
            fname = (
                pathlib.Path(mne.get_config_path()).parent
                / "mne-tutorial-pipeline.json"
            )
        self.fname = pathlib.Path(fname).expanduser()

    def __repr__(self):
        return f"<ToolboxConfigStore | {self.fname}>"

    def _load(self) -> dict:
        if not self.fname.is_file():
            return dict()
        return _read_json(self.fname)

    def get(self, key: str) -> Optional[str]:
        return self._load().get(key, None) or None

    def set(self, key: str, value: str) -> None:
        config = self._load()
        config[key] = value
        self.fname.parent.mkdir(parents=True, exist_ok=True)
        _write_json(self.fname, config)


class Prompter(Protocol):
    def confirm(self, message: str) -> bool: ...

    def choose_directory(
        self, *, hint: Optional[str], title: str
    ) -> Optional[str]: ...

    def report_error(self, message: str, *, title: str) -> None: ...


class ConsolePrompter:
    """Ask questions on the console the pipeline logs to."""

    def confirm(self, message: str) -> bool:
        return rich.prompt.Confirm.ask(message, console=logger._console)

    def choose_directory(self, *, hint: Optional[str], title: str) -> Optional[str]:
        # The hint is only shown, an empty answer always cancels
        question = title
        if hint:
            question += f" [dim](last tried: {rich.markup.escape(hint)})[/]"
        question += " (leave empty to cancel)"
        try:
            answer = rich.prompt.Prompt.ask(question, console=logger._console)
        except EOFError:
            return None
        return answer.strip() or None

    def report_error(self, message: str, *, title: str) -> None:
        logger.error(**gen_log_kwargs(message=f"{title}: {message}", emoji="❌"))


@dataclass
class ToolboxContext:
    """Process-wide state of the external toolboxes.

    Create one per process (the command line interface does so at startup)
    and hand it to :func:`resolve_toolbox`.
    """

    store: ToolboxConfigStore = field(default_factory=ToolboxConfigStore)
    prompter: Prompter = field(default_factory=ConsolePrompter)
    search_path: list[str] = field(default_factory=lambda: sys.path, repr=False)
    compiled: bool = field(default_factory=lambda: bool(getattr(sys, "frozen", False)))
    initialized: set[str] = field(default_factory=set)

    def is_reachable(self, toolbox: ToolboxSpec) -> bool:
        spec = importlib.machinery.PathFinder.find_spec(
            toolbox.top_level, self.search_path
        )
        return spec is not None

    def add_search_path(self, path: PathLike) -> None:
        path = str(path)
        if path not in self.search_path:
            self.search_path.insert(0, path)
        importlib.invalidate_caches()

    def bootstrap(self, toolbox: ToolboxSpec) -> None:
        module = importlib.import_module(toolbox.entry_point)
        if toolbox.bootstrap is not None:
            getattr(module, toolbox.bootstrap)()
        self.initialized.add(toolbox.name)


def _check_toolbox_dir(toolbox: ToolboxSpec, toolbox_dir: PathLike) -> pathlib.Path:
    toolbox_dir = pathlib.Path(toolbox_dir).expanduser()
    if not (toolbox_dir / toolbox.marker_file).is_file():
        raise InvalidDirectorySelected(
            "The folder you selected does not contain a valid "
            f"{toolbox.name} installation."
        )
    return toolbox_dir.resolve()


def _ask_toolbox_dir(
    *,
    toolbox: ToolboxSpec,
    context: ToolboxContext,
    hint: Optional[str],
) -> pathlib.Path:
    title = f"{toolbox.name} setup"
    not_set_up = f"{toolbox.name} was not set up properly."
    message = (
        f"This process requires the {toolbox.name} toolbox to be installed "
        "on your computer."
    )
    if toolbox.url:
        message += f"\nDownload the toolbox at: {toolbox.url}"
    message += f"\n\nIs {toolbox.name} already installed on your computer?"
    try:
        confirmed = context.prompter.confirm(message)
    except Exception as exc:
        context.prompter.report_error(not_set_up, title=title)
        raise NotConfigured(not_set_up) from exc
    if not confirmed:
        context.prompter.report_error(not_set_up, title=title)
        raise NotConfigured(not_set_up)

    # Loop until a correct folder was picked
    while True:
        choice = context.prompter.choose_directory(
            hint=hint, title=f"Select {toolbox.name} directory"
        )
        if not choice:
            context.prompter.report_error(not_set_up, title=title)
            raise NotConfigured(not_set_up)
        try:
            return _check_toolbox_dir(toolbox, choice)
        except InvalidDirectorySelected as exc:
            context.prompter.report_error(str(exc), title=title)
            hint = str(choice)


def resolve_toolbox(
    *,
    toolbox: ToolboxSpec,
    context: ToolboxContext,
    interactive: bool = False,
) -> None:
    """Make sure an external toolbox is initialized in this process.

    Parameters
    ----------
    toolbox : ToolboxSpec
        The toolbox to resolve.
    context : ToolboxContext
        Process-wide toolbox state.
    interactive : bool
        Whether the user may be asked where the toolbox is installed.

    Raises
    ------
    UnsupportedInCompiledMode
        When running from a frozen build of the application.
    NotConfigured
        When the installation directory is unknown and could not be obtained
        from the user.

    Notes
    -----
    Errors raised while bootstrapping the toolbox are not caught.
    """
    if context.compiled:
        raise UnsupportedInCompiledMode(
            f"{toolbox.name} functions cannot be called from a compiled "
            "version of this application. Both would need to be compiled "
            f"together; please run from a Python installation to use "
            f"{toolbox.name}."
        )
    # Already initialized
    if toolbox.name in context.initialized and context.is_reachable(toolbox):
        return

    toolbox_dir = context.store.get(toolbox.key)
    if toolbox_dir and not interactive:
        msg = f"{toolbox.name} install: {toolbox_dir}"
        logger.info(**gen_log_kwargs(message=msg, emoji="toolbox"))

    if not context.is_reachable(toolbox):
        if toolbox_dir:
            context.add_search_path(toolbox_dir)
        elif interactive:
            new_dir = _ask_toolbox_dir(
                toolbox=toolbox, context=context, hint=toolbox_dir
            )
            context.add_search_path(new_dir)
            context.store.set(toolbox.key, str(new_dir))
            msg = f"New {toolbox.name} folder: {new_dir}"
            logger.info(**gen_log_kwargs(message=msg, emoji="toolbox"))
        else:
            raise NotConfigured(
                f"Please download {toolbox.name} and set {toolbox.key} in "
                f"{context.store.fname}, or run with --setup-toolbox to "
                "select its folder interactively."
            )

    context.bootstrap(toolbox)
