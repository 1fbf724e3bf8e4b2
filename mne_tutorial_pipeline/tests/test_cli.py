"""Test some CLI options."""

import importlib.util
import sys

import pytest

from mne_tutorial_pipeline._config_import import _import_config
from mne_tutorial_pipeline._main import main
from mne_tutorial_pipeline._toolbox import ConsolePrompter, ToolboxConfigStore


def test_config_generation(tmp_path, monkeypatch):
    """Test the creation of a template configuration."""
    cmd = ["mne_tutorial_pipeline", "--create-config"]
    monkeypatch.setattr(sys, "argv", cmd)
    with pytest.raises(SystemExit, match="2"):
        main()
    cfg_path = tmp_path / "my_config.py"
    cmd.append(str(cfg_path))
    main()
    assert cfg_path.is_file()
    spec = importlib.util.spec_from_file_location("my_config", cfg_path)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    # Only the typing imports are active
    assert not hasattr(module, "tutorial_dir")
    assert not hasattr(module, "study_name")
    with pytest.raises(FileExistsError):
        main()

    # With the dataset folder filled in, the template can be used right away
    cfg_path = tmp_path / "my_other_config.py"
    cmd = [
        "mne_tutorial_pipeline",
        f"--create-config={cfg_path}",
        f"--tutorial-dir={tmp_path}",
    ]
    monkeypatch.setattr(sys, "argv", cmd)
    main()
    config = _import_config(config_path=cfg_path, log=False)
    assert config.tutorial_dir == tmp_path.resolve()
    assert config.study_name == "TutorialRaw"


def test_config_required(monkeypatch):
    """Test that a configuration file is required."""
    monkeypatch.setattr(sys, "argv", ["mne_tutorial_pipeline"])
    with pytest.raises(SystemExit, match="2"):
        main()


def test_setup_toolbox(tmp_path, monkeypatch, capsys):
    """Test registering the toolbox folder from the command line."""
    entry_point = "mtp_clitrip_defaults"
    toolbox_dir = tmp_path / "clitrip"
    toolbox_dir.mkdir()
    (toolbox_dir / f"{entry_point}.py").write_text("")
    store_fname = tmp_path / "toolbox.json"
    monkeypatch.setenv("MNE_TUTORIAL_PIPELINE_CONFIG", str(store_fname))
    monkeypatch.setattr(sys, "path", list(sys.path))
    monkeypatch.delitem(sys.modules, entry_point, raising=False)
    monkeypatch.setattr(ConsolePrompter, "confirm", lambda self, message: True)
    monkeypatch.setattr(
        ConsolePrompter,
        "choose_directory",
        lambda self, *, hint, title: str(toolbox_dir),
    )
    config_path = tmp_path / "config.py"
    config_path.write_text(
        f"tutorial_dir = {repr(str(tmp_path))}\n"
        "toolbox_name = 'CliTrip'\n"
        f"toolbox_entry_point = {repr(entry_point)}\n"
    )
    monkeypatch.setattr(
        sys, "argv", ["mne_tutorial_pipeline", str(config_path), "--setup-toolbox"]
    )
    try:
        main()
    finally:
        sys.modules.pop(entry_point, None)
    assert ToolboxConfigStore().get("CLITRIP_DIR") == str(toolbox_dir.resolve())
    assert "CliTrip is ready to use." in capsys.readouterr().out
    # Nothing was processed
    assert not (tmp_path / "derivatives").exists()

    # Without a toolbox in the configuration
    config_path.write_text(f"tutorial_dir = {repr(str(tmp_path))}\n")
    with pytest.raises(SystemExit, match="2"):
        main()
