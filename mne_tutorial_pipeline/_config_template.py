import ast
from collections.abc import Iterator
from pathlib import Path
from typing import Optional

from ._logging import gen_log_kwargs, logger

CONFIG_SOURCE_PATH = Path(__file__).parent / "_config.py"
_HEADER = "# Default settings for data processing and analysis.\n\n"


def _template_lines(text: str) -> Iterator[tuple[str, Optional[str]]]:
    """Yield each line of the defaults with the option it assigns, if any."""
    tree = ast.parse(text)
    owner = dict()  # 1-indexed line number -> top-level node
    for node in tree.body:
        for lineno in range(node.lineno, node.end_lineno + 1):
            owner[lineno] = node
    for lineno, line in enumerate(text.split("\n"), start=1):
        node = owner.get(lineno)
        if node is None:
            # blank lines and comments
            assert line == "" or line.startswith("#"), line
            yield line, None
        elif isinstance(node, ast.AnnAssign):
            yield line, node.target.id
        elif isinstance(node, ast.Import | ast.ImportFrom):
            yield line, None
        else:
            # option docstrings
            assert isinstance(node, ast.Expr), node
            assert isinstance(node.value.value, str), node.value
            yield line, None


def create_template_config(
    target_path: Path,
    *,
    overwrite: bool = False,
    tutorial_dir: Optional[Path] = None,
) -> None:
    """Create a template configuration file.

    All options are commented out, except ``tutorial_dir`` if given.
    """
    if target_path.exists() and not overwrite:
        raise FileExistsError(f"The specified path already exists: {target_path}")

    text = CONFIG_SOURCE_PATH.read_text(encoding="utf-8")
    text = text.removeprefix(_HEADER)
    config = ["# Template config file for mne_tutorial_pipeline.", ""]
    for line, option in _template_lines(text):
        if option is None:
            config.append(line)
        elif option == "tutorial_dir" and tutorial_dir is not None:
            config.append(f"tutorial_dir = {repr(str(tutorial_dir))}")
        else:
            config.append(f"# {line}")

    target_path.write_text("\n".join(config), encoding="utf-8")
    message = f"Successfully created template configuration file at: {target_path}"
    logger.info(**gen_log_kwargs(message=message, emoji="✅"))

    message = "Please edit the file before running the pipeline."
    logger.info(**gen_log_kwargs(message=message, emoji="💡"))
