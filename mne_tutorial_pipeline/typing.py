"""Custom data types for the MNE tutorial pipeline."""

import pathlib
import sys
from typing import Annotated, Any, Literal, TypeAlias

if sys.version_info < (3, 12):
    from typing_extensions import TypedDict
else:
    from typing import TypedDict

import numpy as np
from numpy.typing import ArrayLike
from pydantic import PlainValidator

PathLike = str | pathlib.Path

__all__ = [
    "BaselineTypeT",
    "FiducialsT",
    "FloatArrayLike",
    "FloatArrayT",
    "InFilesT",
    "IntArrayT",
    "LogKwargsT",
    "OutFilesT",
    "PathLike",
    "RunKindT",
    "TypedDict",
]


ShapeT: TypeAlias = tuple[int, ...] | tuple[int]
IntArrayT: TypeAlias = np.ndarray[ShapeT, np.dtype[np.integer[Any]]]
FloatArrayT: TypeAlias = np.ndarray[ShapeT, np.dtype[np.floating[Any]]]
OutFilesT: TypeAlias = dict[str, tuple[str, str | float]]
InFilesT: TypeAlias = dict[str, pathlib.Path]
BaselineTypeT: TypeAlias = tuple[float | None, float | None] | None
RunKindT = Literal["orig", "clean"]


class LogKwargsT(TypedDict):
    """Container for logger keyword arguments."""

    msg: str
    extra: dict[str, str]


def assert_float_array_like(val: Any) -> FloatArrayT:
    """Convert the input into a NumPy float array."""
    # https://docs.pydantic.dev/latest/errors/errors/#custom-errors
    # Should raise ValueError or AssertionError... NumPy should do this for us
    return np.array(val, dtype=np.float64)


FloatArrayLike = Annotated[
    ArrayLike,
    # PlainValidator will skip internal validation attempts for ArrayLike
    PlainValidator(assert_float_array_like),
]


class FiducialsT(TypedDict):
    """MRI voxel coordinates of the three anatomical landmarks."""

    nasion: FloatArrayLike
    lpa: FloatArrayLike
    rpa: FloatArrayLike
