"""Test the resolution of external toolboxes."""

import io
import os
import sys
from pathlib import Path

import pytest
import rich.console

from mne_tutorial_pipeline._config_import import _import_config
from mne_tutorial_pipeline._logging import logger
from mne_tutorial_pipeline._toolbox import (
    ConsolePrompter,
    InvalidDirectorySelected,
    NotConfigured,
    ToolboxConfigStore,
    ToolboxContext,
    ToolboxError,
    ToolboxSpec,
    UnsupportedInCompiledMode,
    resolve_toolbox,
)

ENTRY_POINT = "mtp_faketrip_defaults"
NOT_SET_UP = ("FakeTrip setup", "FakeTrip was not set up properly.")
INVALID = (
    "FakeTrip setup",
    "The folder you selected does not contain a valid FakeTrip installation.",
)
TOOLBOX = ToolboxSpec(
    name="FakeTrip",
    entry_point=ENTRY_POINT,
    bootstrap="setup",
    url="https://example.org/faketrip",
)


class ScriptedPrompter:
    """Answer the questions of the resolver from a script."""

    def __init__(self, *, confirm=True, directories=()):
        self.confirm_answer = confirm
        self.directories = list(directories)
        self.messages = list()
        self.hints = list()
        self.errors = list()

    def confirm(self, message):
        self.messages.append(message)
        if isinstance(self.confirm_answer, Exception):
            raise self.confirm_answer
        return self.confirm_answer

    def choose_directory(self, *, hint, title):
        self.hints.append(hint)
        if not self.directories:
            return None
        return self.directories.pop(0)

    def report_error(self, message, *, title):
        self.errors.append((title, message))

    @property
    def n_calls(self):
        return len(self.messages) + len(self.hints) + len(self.errors)


class RecordingStore(ToolboxConfigStore):
    """Count the reads and writes of the persisted configuration."""

    def __init__(self, fname):
        super().__init__(fname)
        self.n_get = self.n_set = 0

    def get(self, key):
        self.n_get += 1
        return super().get(key)

    def set(self, key, value):
        self.n_set += 1
        super().set(key, value)


def _write_toolbox(path: Path, *, fail: bool = False) -> Path:
    path.mkdir(parents=True)
    body = "    raise ZeroDivisionError('broken install')\n" if fail else (
        "    CALLS.append(True)\n"
    )
    (path / f"{ENTRY_POINT}.py").write_text(f"CALLS = []\n\n\ndef setup():\n{body}")
    return path


def _n_calls():
    return len(sys.modules[ENTRY_POINT].CALLS)


@pytest.fixture()
def toolbox_dir(tmp_path):
    return _write_toolbox(tmp_path / "faketrip")


@pytest.fixture()
def context(tmp_path, monkeypatch):
    # Isolate the module search path and the imported modules
    monkeypatch.setattr(sys, "path", list(sys.path))
    monkeypatch.delitem(sys.modules, ENTRY_POINT, raising=False)
    context = ToolboxContext(
        store=RecordingStore(tmp_path / "toolbox.json"),
        prompter=ScriptedPrompter(),
        compiled=False,
    )
    yield context
    sys.modules.pop(ENTRY_POINT, None)


def test_toolbox_spec():
    """Test the defaults derived from the toolbox name and entry point."""
    spec = ToolboxSpec(name="Field Trip", entry_point="fieldtrip.ft_defaults")
    assert spec.key == "FIELD_TRIP_DIR"
    assert spec.marker_file == "fieldtrip/ft_defaults.py"
    assert spec.top_level == "fieldtrip"
    spec = ToolboxSpec(
        name="FieldTrip",
        entry_point="ft_defaults",
        marker="ft_defaults.m",
        config_key="FIELDTRIP_DIR",
    )
    assert spec.key == "FIELDTRIP_DIR"
    assert spec.marker_file == "ft_defaults.m"
    assert issubclass(InvalidDirectorySelected, ValueError)
    assert issubclass(NotConfigured, ToolboxError)


def test_config_store(tmp_path, monkeypatch):
    """Test the persisted configuration."""
    fname = tmp_path / "sub" / "config.json"
    monkeypatch.setenv("MNE_TUTORIAL_PIPELINE_CONFIG", str(fname))
    store = ToolboxConfigStore()
    assert store.fname == fname
    assert store.get("FAKETRIP_DIR") is None
    store.set("FAKETRIP_DIR", "/opt/faketrip")
    store.set("OTHER_DIR", "/opt/other")
    assert ToolboxConfigStore(fname).get("FAKETRIP_DIR") == "/opt/faketrip"
    assert ToolboxConfigStore(fname).get("OTHER_DIR") == "/opt/other"


def test_initialized_and_reachable(context, toolbox_dir):
    """Test that nothing is read, asked, or run when already initialized."""
    context.add_search_path(toolbox_dir)
    context.initialized.add(TOOLBOX.name)
    resolve_toolbox(toolbox=TOOLBOX, context=context, interactive=True)
    assert context.store.n_get == context.store.n_set == 0
    assert context.prompter.n_calls == 0
    assert ENTRY_POINT not in sys.modules


def test_not_configured(context):
    """Test that a missing toolbox is an error when not interactive."""
    with pytest.raises(NotConfigured, match="FAKETRIP_DIR"):
        resolve_toolbox(toolbox=TOOLBOX, context=context)
    assert context.prompter.n_calls == 0
    assert context.store.n_set == 0
    assert TOOLBOX.name not in context.initialized
    # calling again gives the same result
    with pytest.raises(NotConfigured):
        resolve_toolbox(toolbox=TOOLBOX, context=context)


def test_interactive_declined(context):
    """Test declining the installation question."""
    context.prompter.confirm_answer = False
    with pytest.raises(NotConfigured, match="not set up properly"):
        resolve_toolbox(toolbox=TOOLBOX, context=context, interactive=True)
    assert len(context.prompter.messages) == 1
    assert TOOLBOX.url in context.prompter.messages[0]
    assert context.prompter.hints == []
    assert context.prompter.errors == [NOT_SET_UP]
    assert context.store.n_set == 0
    assert not context.store.fname.exists()


def test_interactive_dialog_fails(context):
    """Test that a failing dialog counts as a declined question."""
    context.prompter.confirm_answer = RuntimeError("no display")
    with pytest.raises(NotConfigured) as excinfo:
        resolve_toolbox(toolbox=TOOLBOX, context=context, interactive=True)
    assert isinstance(excinfo.value.__cause__, RuntimeError)
    assert context.prompter.errors == [NOT_SET_UP]
    assert context.store.n_set == 0


def test_interactive_reprompt(context, toolbox_dir, tmp_path, capsys):
    """Test that invalid folders are rejected until a valid one is picked."""
    bad_1 = tmp_path / "empty"
    bad_1.mkdir()
    bad_2 = tmp_path / "does-not-exist"
    context.prompter.directories = [str(bad_1), str(bad_2), str(toolbox_dir)]
    n_path = len(sys.path)
    resolve_toolbox(toolbox=TOOLBOX, context=context, interactive=True)
    assert context.prompter.hints == [None, str(bad_1), str(bad_2)]
    assert context.prompter.errors == [INVALID, INVALID]
    assert context.store.n_set == 1
    assert context.store.get(TOOLBOX.key) == str(toolbox_dir.resolve())
    assert len(sys.path) == n_path + 1
    assert sys.path[0] == str(toolbox_dir.resolve())
    assert TOOLBOX.name in context.initialized
    assert _n_calls() == 1
    out = capsys.readouterr().out
    assert "New FakeTrip folder:" in out
    # the second time around is a no-op
    resolve_toolbox(toolbox=TOOLBOX, context=context, interactive=True)
    assert _n_calls() == 1
    assert context.store.n_set == 1
    assert len(sys.path) == n_path + 1


def test_interactive_cancel(context, tmp_path):
    """Test cancelling the folder selection after an invalid folder."""
    context.prompter.directories = [str(tmp_path)]
    n_path = len(sys.path)
    with pytest.raises(NotConfigured):
        resolve_toolbox(toolbox=TOOLBOX, context=context, interactive=True)
    assert context.prompter.errors == [INVALID, NOT_SET_UP]
    assert context.prompter.hints == [None, str(tmp_path)]
    assert context.store.n_set == 0
    assert len(sys.path) == n_path
    assert TOOLBOX.name not in context.initialized


@pytest.fixture()
def console_answers(monkeypatch):
    """Type answers into the console the pipeline prompts on."""
    answers = list()
    prompts = list()
    console = rich.console.Console(file=io.StringIO(), soft_wrap=True)

    def fake_input(prompt="", **kwargs):
        prompts.append(str(prompt))
        answer = answers.pop(0)
        if isinstance(answer, Exception):
            raise answer
        return answer

    monkeypatch.setattr(console, "input", fake_input)
    monkeypatch.setattr(logger, "_rich_console", console)
    return answers, prompts


def test_console_choose_directory(console_answers):
    """Test that an empty answer on the console cancels the selection."""
    answers, prompts = console_answers
    prompter = ConsolePrompter()
    answers.extend(["", "  /opt/faketrip  ", EOFError()])
    choice = prompter.choose_directory(hint="/tmp/rejected", title="Select")
    assert choice is None
    assert "last tried: /tmp/rejected" in prompts[0]
    assert "leave empty to cancel" in prompts[0]
    choice = prompter.choose_directory(hint=None, title="Select")
    assert choice == "/opt/faketrip"
    assert "last tried" not in prompts[1]
    assert prompter.choose_directory(hint=None, title="Select") is None
    assert answers == []


def test_console_interactive_cancel(context, tmp_path, console_answers):
    """Test cancelling on the console after an invalid folder was picked."""
    answers, prompts = console_answers
    context.prompter = ConsolePrompter()
    answers.extend(["y", str(tmp_path), ""])
    with pytest.raises(NotConfigured, match="not set up properly"):
        resolve_toolbox(toolbox=TOOLBOX, context=context, interactive=True)
    assert answers == []
    assert len(prompts) == 3
    assert f"last tried: {tmp_path}" in prompts[2]
    assert context.store.n_set == 0
    assert TOOLBOX.name not in context.initialized
    out = logger._console.file.getvalue()
    assert "does not contain a valid FakeTrip installation" in out


def test_persisted_path(context, toolbox_dir, capsys):
    """Test that a persisted folder is added to the search path."""
    context.store.set(TOOLBOX.key, str(toolbox_dir))
    context.store.n_set = 0
    resolve_toolbox(toolbox=TOOLBOX, context=context)
    assert sys.path[0] == str(toolbox_dir)
    assert TOOLBOX.name in context.initialized
    assert _n_calls() == 1
    assert context.prompter.n_calls == 0
    assert context.store.n_set == 0
    assert f"FakeTrip install: {toolbox_dir}" in capsys.readouterr().out


def test_reachable_not_initialized(context, toolbox_dir):
    """Test that a reachable toolbox is bootstrapped without asking."""
    context.add_search_path(toolbox_dir)
    n_path = len(sys.path)
    resolve_toolbox(toolbox=TOOLBOX, context=context, interactive=True)
    assert _n_calls() == 1
    assert len(sys.path) == n_path
    assert context.prompter.n_calls == 0
    assert context.store.n_set == 0


def test_bootstrap_error(context, tmp_path):
    """Test that errors of the toolbox itself are passed on unchanged."""
    broken = _write_toolbox(tmp_path / "broken", fail=True)
    context.store.set(TOOLBOX.key, str(broken))
    with pytest.raises(ZeroDivisionError, match="broken install"):
        resolve_toolbox(toolbox=TOOLBOX, context=context)
    assert TOOLBOX.name not in context.initialized


@pytest.mark.parametrize("initialized", (False, True))
def test_compiled(context, toolbox_dir, initialized):
    """Test that a frozen application refuses to resolve toolboxes."""
    context.compiled = True
    context.store.set(TOOLBOX.key, str(toolbox_dir))
    context.store.n_get = context.store.n_set = 0
    if initialized:
        context.add_search_path(toolbox_dir)
        context.initialized.add(TOOLBOX.name)
    n_path = len(sys.path)
    with pytest.raises(UnsupportedInCompiledMode, match="compiled"):
        resolve_toolbox(toolbox=TOOLBOX, context=context, interactive=True)
    assert context.store.n_get == 0
    assert context.prompter.n_calls == 0
    assert len(sys.path) == n_path
    assert ENTRY_POINT not in sys.modules


def test_init_toolbox_step(context, toolbox_dir, tmp_path, monkeypatch):
    """Test the toolbox initialization step of the pipeline."""
    from mne_tutorial_pipeline.steps.init import _02_init_toolbox

    monkeypatch.setenv("_MNE_TUTORIAL_PIPELINE_TESTING", "true")
    config_path = tmp_path / "config.py"
    config_path.write_text(
        f"tutorial_dir = {repr(os.fspath(tmp_path))}\n"
        "toolbox_name = 'FakeTrip'\n"
        f"toolbox_entry_point = {repr(ENTRY_POINT)}\n"
        "toolbox_bootstrap = 'setup'\n"
    )
    config = _import_config(config_path=config_path, toolbox_context=context)
    assert config.exec_params.toolbox_context is context
    cfg = _02_init_toolbox.get_config(config=config)
    assert cfg.toolbox == ToolboxSpec(
        name="FakeTrip", entry_point=ENTRY_POINT, bootstrap="setup"
    )
    with pytest.raises(NotConfigured):
        _02_init_toolbox.main(config=config)

    context.store.set("FAKETRIP_DIR", str(toolbox_dir))
    _02_init_toolbox.main(config=config)
    assert TOOLBOX.name in context.initialized
    assert _n_calls() == 1
    assert (config.deriv_root / "TutorialRaw_log.xlsx").is_file()

    # without a toolbox the step has nothing to do
    config_path.write_text(f"tutorial_dir = {repr(os.fspath(tmp_path))}\n")
    config = _import_config(config_path=config_path, toolbox_context=context)
    assert _02_init_toolbox.get_config(config=config).toolbox is None
    _02_init_toolbox.main(config=config)
