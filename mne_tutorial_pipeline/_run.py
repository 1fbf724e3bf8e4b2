"""Script-running utilities."""

import copy
import functools
import hashlib
import inspect
import pathlib
import pdb
import sys
import time
import traceback
from collections.abc import Callable
from types import SimpleNamespace
from typing import Any, Optional
from zipfile import BadZipFile

import json_tricks
import pandas as pd
from joblib import Memory
from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from ._logging import _is_testing, gen_log_kwargs, logger
from .typing import InFilesT, OutFilesT


def failsafe_run(
    *,
    get_input_fnames: Optional[Callable[..., InFilesT]] = None,
) -> Callable:
    def failsafe_run_decorator(func):
        @functools.wraps(func)  # Preserve "identity" of original function
        def wrapper(*args, **kwargs):
            exec_params = kwargs["exec_params"]
            on_error = exec_params.on_error
            memory = ConditionalStepMemory(
                exec_params=exec_params,
                get_input_fnames=get_input_fnames,
                func=func,
            )
            # exec_params does not affect the outputs, so it is not logged
            kwargs_copy = copy.deepcopy(
                {k: v for k, v in kwargs.items() if k != "exec_params"}
            )
            t0 = time.time()
            if "cfg" in kwargs_copy:
                kwargs_copy["cfg"] = json_tricks.dumps(
                    kwargs_copy["cfg"], sort_keys=False, indent=4
                )
            log_info = pd.concat(
                [
                    pd.Series(kwargs_copy, dtype=object),
                    pd.Series(index=["time", "success", "error_message"], dtype=object),
                ]
            )

            try:
                assert len(args) == 0, args  # make sure params are only kwargs
                out = memory.cache(**kwargs)
                assert out is None  # nothing should be returned
                log_info["success"] = True
                log_info["error_message"] = ""
            except Exception as e:
                # Only keep what gen_log_kwargs() can handle
                kwargs_log = {k: v for k, v in kwargs_copy.items() if k == "subject"}
                message = (
                    f"A critical error occurred. The error message was: {str(e)}"
                )
                log_info["success"] = False
                log_info["error_message"] = str(e)

                if on_error == "abort":
                    message += "\n\nAborting pipeline run. The full traceback is:\n\n"
                    message += "\n".join(traceback.format_exception(e))
                    if _is_testing():
                        raise
                    logger.error(
                        **gen_log_kwargs(message=message, **kwargs_log, emoji="❌")
                    )
                    sys.exit(1)
                elif on_error == "debug":
                    message += "\n\nStarting post-mortem debugger."
                    logger.error(
                        **gen_log_kwargs(message=message, **kwargs_log, emoji="🐛")
                    )
                    _, _, tb = sys.exc_info()
                    traceback.print_exc()
                    pdb.post_mortem(tb)
                    sys.exit(1)
                else:
                    message += "\n\nContinuing pipeline run."
                    logger.error(
                        **gen_log_kwargs(message=message, **kwargs_log, emoji="🔂")
                    )
            log_info["time"] = round(time.time() - t0, ndigits=1)
            return log_info

        return wrapper

    return failsafe_run_decorator


def hash_file_path(path: pathlib.Path) -> str:
    """Hash a file, or all files of a directory such as a CTF .ds folder."""
    md5_hash = hashlib.md5()
    if path.is_dir():
        for fname in sorted(p for p in path.rglob("*") if p.is_file()):
            md5_hash.update(str(fname.relative_to(path)).encode())
            md5_hash.update(fname.read_bytes())
    else:
        md5_hash.update(path.read_bytes())
    return md5_hash.hexdigest()


def _mtime(path: pathlib.Path) -> float:
    if path.is_dir():
        return max(
            (p.lstat().st_mtime for p in path.rglob("*") if p.is_file()),
            default=path.lstat().st_mtime,
        )
    return path.lstat().st_mtime


def _path_to_str_hash(
    k: str,
    v: pathlib.Path,
    *,
    method: str,
    kind: str = "in",
) -> tuple[str, str | float]:
    assert isinstance(v, pathlib.Path), f'Bad type {type(v)}: {kind}_files["{k}"] = {v}'
    assert v.exists(), f'missing {kind}_files["{k}"] = {v}'
    if method == "mtime":
        this_hash: str | float = _mtime(v)
    else:
        assert method == "hash"  # guaranteed
        this_hash = hash_file_path(v)
    return (str(v), this_hash)


class ConditionalStepMemory:
    def __init__(
        self,
        *,
        exec_params: SimpleNamespace,
        get_input_fnames: Optional[Callable[..., InFilesT]],
        func: Callable,
    ):
        memory_location = exec_params.memory_location
        if memory_location is True:
            use_location = exec_params.deriv_root / "joblib"
        elif not memory_location:
            use_location = None
        else:
            use_location = pathlib.Path(memory_location)
        # Actually make the Memory object only if necessary
        if use_location is not None and get_input_fnames is not None:
            self.memory = Memory(use_location, verbose=exec_params.memory_verbose)
        else:
            self.memory = None
        # Ignore these as they have no effect on the output
        self.ignore = ["exec_params"]
        self.get_input_fnames = get_input_fnames
        self.memory_file_method = exec_params.memory_file_method
        self.func = func

    def cache(self, **kwargs: Any) -> None:
        func = self.func
        force_run = kwargs.pop("force_run", False)
        if self.get_input_fnames is not None:
            these_kwargs = {k: v for k, v in kwargs.items() if k != "exec_params"}
            kwargs["in_files"] = self.get_input_fnames(**these_kwargs)
            del these_kwargs
        if self.memory is None:
            func(**kwargs)
            return

        # This is an implementation detail so we don't need a proper error
        in_files = kwargs["in_files"]
        assert isinstance(in_files, dict), type(in_files)

        hashes = [
            _path_to_str_hash(k, v, method=self.memory_file_method)
            for k, v in in_files.items()
        ]
        kwargs["cfg"] = copy.deepcopy(kwargs["cfg"])
        kwargs["cfg"].hashes = hashes
        del in_files  # will be modified by func call

        memorized_func = self.memory.cache(func, ignore=self.ignore)
        msg = emoji = None
        short_circuit = False
        subject = kwargs.get("subject", None)
        try:
            done = memorized_func.check_call_in_cache(**kwargs)
        except Exception:
            done = False
        if done:
            if force_run:
                msg = "Computation forced despite existing cached result …"
                emoji = "🔂"
            else:
                # Check that the output files are unchanged
                out_files_hashes = memorized_func(**kwargs)
                for key, (fname, this_hash) in out_files_hashes.items():
                    fname = pathlib.Path(fname)
                    if not fname.exists():
                        msg = "Output file missing, will recompute …"
                        emoji = "🧩"
                        break
                    got_hash = _path_to_str_hash(
                        key, fname, method=self.memory_file_method, kind="out"
                    )[1]
                    if this_hash != got_hash:
                        msg = (
                            f"Output file {self.memory_file_method} mismatch "
                            f"for {fname.name}, will recompute …"
                        )
                        emoji = "🚫"
                        break
                else:
                    msg = "Computation unnecessary (cached) …"
                    emoji = "cache"
                    short_circuit = True
        if msg is not None:
            logger.info(**gen_log_kwargs(message=msg, subject=subject, emoji=emoji))
        if short_circuit:
            return

        # https://joblib.readthedocs.io/en/latest/memory.html#joblib.memory.MemorizedFunc.call  # noqa: E501
        if force_run or done:
            out_files, _ = memorized_func.call(**kwargs)
        else:
            out_files = memorized_func(**kwargs)
        assert isinstance(out_files, dict) and len(out_files), type(out_files)

    def clear(self) -> None:
        self.memory.clear()


def _prep_out_files(
    *,
    exec_params: SimpleNamespace,
    out_files: dict[str, pathlib.Path],
) -> OutFilesT:
    """Convert output paths to path/hash pairs for cache validation."""
    for key, fname in out_files.items():
        fname = pathlib.Path(fname)
        # Only ever write to the derivatives directory
        if not fname.is_relative_to(exec_params.deriv_root):
            raise RuntimeError(
                f"Output file {fname} is not within the derivatives directory "
                f"{exec_params.deriv_root}"
            )
        out_files[key] = _path_to_str_hash(
            key,
            fname,
            method=exec_params.memory_file_method,
            kind="out",
        )
    return out_files


def save_logs(*, config: SimpleNamespace, logs: list[pd.Series]) -> None:
    fname = config.deriv_root / f"{config.study_name}_log.xlsx"
    fname.parent.mkdir(parents=True, exist_ok=True)

    # Get the script from which the function is called for logging
    sheet_name = _short_step_path(_get_step_path()).replace("/", "-")
    sheet_name = sheet_name[-30:]  # shorten due to limit of excel format

    df = pd.DataFrame(logs)

    columns = df.columns
    if "cfg" in columns:
        columns = list(columns)
        idx = columns.index("cfg")
        del columns[idx]
        columns.insert(-3, "cfg")  # put it before time, success & err cols

    df = df[columns]

    mode = "w"
    if fname.exists():
        try:
            load_workbook(fname)
        except (InvalidFileException, BadZipFile, OSError, KeyError) as exc:
            msg = f"Overwriting unreadable processing log {fname.name}: {exc}"
            logger.warning(**gen_log_kwargs(message=msg, emoji="override"))
        else:
            mode = "a"
    kwargs = dict(if_sheet_exists="replace") if mode == "a" else dict()
    with pd.ExcelWriter(fname, engine="openpyxl", mode=mode, **kwargs) as writer:
        df.to_excel(writer, sheet_name=sheet_name, index=False)


def _get_step_path(
    stack: Optional[list[inspect.FrameInfo]] = None,
) -> pathlib.Path:
    if stack is None:
        stack = inspect.stack()
    for frame in stack:
        fname = pathlib.Path(frame.filename)
        if "steps" in fname.parts:
            return fname
    else:  # pragma: no cover
        raise RuntimeError("Could not find step path")


def _short_step_path(step_path: pathlib.Path) -> str:
    return f"{step_path.parent.name}/{step_path.stem}"
