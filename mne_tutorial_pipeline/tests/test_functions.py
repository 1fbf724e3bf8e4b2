"""Test some properties of our core processing-step functions."""

import ast
import inspect

import pytest

from mne_tutorial_pipeline._config_utils import _get_step_modules

# mne_tutorial_pipeline.steps.init._01_init_derivatives_dir: <module>
FLAT_MODULES = {x.__name__: x for x in _get_step_modules()["all"]}
# Steps whose outputs are never cached
NO_OUTPUTS = {"_01_make_report"}


def test_step_order():
    """Test that all steps run in the order of their file names."""
    step_modules = _get_step_modules()
    assert list(step_modules["all"][:2]) == list(step_modules["init"])
    for group, modules in step_modules.items():
        if group == "all":
            continue
        names = [module.__name__.split(".")[-1] for module in modules]
        assert names == sorted(names), group


@pytest.mark.parametrize("module_name", list(FLAT_MODULES))
def test_all_functions_return(module_name: str) -> None:
    """Test that all functions decorated with failsafe_run return a dict."""
    # Find the functions within the module that use the failsafe_run decorator
    module = FLAT_MODULES[module_name]
    assert callable(module.main)
    assert callable(module.get_config)
    funcs = list()
    for name in dir(module):
        obj = getattr(module, name)
        if not callable(obj):
            continue
        if getattr(obj, "__module__", None) != module_name:
            continue
        if not hasattr(obj, "__wrapped__"):  # not decorated
            continue
        # All our failsafe_run decorated functions should look like this
        assert obj.__code__.co_name == "wrapper", (
            f"{module_name}.{name} is missing failsafe_run decorator"
        )
        funcs.append(obj)
    assert len(funcs) != 0, f"No failsafe_runs functions found in {module_name}"

    # Adapted from numpydoc RT01 validation
    def get_returns_not_on_nested_functions(node: ast.AST) -> list[ast.Return]:
        returns = [node] if isinstance(node, ast.Return) else []
        for child in ast.iter_child_nodes(node):
            # Ignore nested functions and its subtrees.
            if not isinstance(child, ast.FunctionDef):
                child_returns = get_returns_not_on_nested_functions(child)
                returns.extend(child_returns)
        return returns

    for func in funcs:
        what = f"{module_name}.{func.__name__}"
        tree = ast.parse(inspect.getsource(func.__wrapped__)).body
        assert tree, f"Failed to parse source code for {what}"
        returns = get_returns_not_on_nested_functions(tree[0])
        if module_name.split(".")[-1] in NO_OUTPUTS:
            assert not returns, what
            continue
        return_values = [r.value for r in returns]
        assert len(return_values), f"Function does not return anything: {what}"
        for r in return_values:
            what = f"Function does _prep_out_files: {what}"
            assert isinstance(r, ast.Call), what
            assert isinstance(r.func, ast.Name), what
            assert r.func.id == "_prep_out_files", what
