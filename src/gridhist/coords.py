"""Help determining the layout of fill arguments."""

from __future__ import annotations

from enum import Enum
from numbers import Real
from typing import Any, Mapping, Sequence

import numpy as np

from gridhist.errors import RangeError


class CoordStyle(Enum):
    """Styles for the coordinates argument of a fill."""

    Undetermined = 0
    Scalar = 1
    Sequence = 2
    Mapping = 3


class ColumnStyle(Enum):
    """Styles for the columns of an array fill."""

    Undetermined = 0
    MultiColumn = 1
    SingleTable = 2
    Named = 3


def coords_style(coords: Any) -> CoordStyle:
    """Determine the style of a single point's coordinates.

    Parameters
    ----------
    coords : Any
        Raw coordinates argument.

    Returns
    -------
    CoordStyle
        The determined CoordStyle.

    Raises
    ------
    TypeError
        If the style cannot be determined.

    """
    if isinstance(coords, Mapping):
        return CoordStyle.Mapping
    if isinstance(coords, (Real, np.number)):
        return CoordStyle.Scalar
    if isinstance(coords, np.ndarray):
        if coords.ndim == 0:
            return CoordStyle.Scalar
        if coords.ndim == 1:
            return CoordStyle.Sequence
    elif isinstance(coords, Sequence) and not isinstance(coords, (str, bytes)):
        return CoordStyle.Sequence
    raise TypeError(f"Could not determine coordinate style from coords={coords!r}")


def normalize_coords(ndim: int, coords: Any) -> Sequence[Any] | Mapping[str, Any]:
    """Normalize the coordinates of one point for a binner chain.

    Scalars are only accepted for one dimensional histograms.

    Raises
    ------
    RangeError
        If a scalar is given for a histogram with more than one axis.

    """
    style = coords_style(coords)
    if style is CoordStyle.Scalar:
        if ndim != 1:
            raise RangeError(
                f"A scalar coordinate was given for a histogram with {ndim} dimensions"
            )
        return (coords,)
    return coords


def columns_style(args: Sequence[Any], kwargs: Mapping[str, Any]) -> ColumnStyle:
    """Determine the style of the data passed to an array fill."""
    if args and kwargs:
        raise TypeError("Columns must be given either by position or by name, not both")
    if kwargs:
        return ColumnStyle.Named
    if len(args) == 1 and np.ndim(args[0]) == 2:
        return ColumnStyle.SingleTable
    if args and all(np.ndim(a) == 1 for a in args):
        return ColumnStyle.MultiColumn
    raise ValueError(f"Cannot interpret input data: {args}")
