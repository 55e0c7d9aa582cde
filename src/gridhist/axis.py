"""Axis descriptors and whole-set validation."""

from __future__ import annotations

import operator
from dataclasses import dataclass
from typing import Any, Iterable

import numpy as np

from gridhist.errors import ConfigurationError

__all__ = ("Axis", "as_axis", "check_axes")


@dataclass(frozen=True)
class Axis:
    """One dimension of a histogram.

    Parameters
    ----------
    name : str
        Identifier of the axis, unique within a histogram.
    n_bins : int
        Number of equal width bins between `low` and `high`. Two more
        bins (underflow and overflow) are always added.
    low : float
        Inclusive lower edge of the first bin.
    high : float
        Exclusive upper edge of the last bin.
    units : str
        Free form unit label stored alongside the axis.

    """

    name: str
    n_bins: int
    low: float
    high: float
    units: str = ""

    @property
    def extent(self) -> int:
        """int: Number of bins including underflow and overflow."""
        return self.n_bins + 2

    @property
    def width(self) -> float:
        """float: Width of a single bin (zero for empty ranges)."""
        if self.n_bins == 0:
            return 0.0
        return (self.high - self.low) / self.n_bins

    def edges(self) -> np.ndarray:
        """Bin edges from `low` to `high`, without the flow bins."""
        return np.linspace(self.low, self.high, self.n_bins + 1)


def as_axis(obj: Any) -> Axis:
    """Coerce an Axis or a ``(name, n_bins, low, high[, units])`` tuple."""
    if isinstance(obj, Axis):
        return obj
    if isinstance(obj, (tuple, list)) and len(obj) in (4, 5):
        return Axis(*obj)
    raise ConfigurationError(
        f"Cannot interpret {obj!r} as an axis; expected an Axis or a "
        "(name, n_bins, low, high[, units]) tuple."
    )


def _normalized(axis: Axis) -> Axis:
    try:
        n_bins = operator.index(axis.n_bins)
    except TypeError:
        raise ConfigurationError(
            f"Histogram: axis {axis.name} has a non-integer bin count "
            f"{axis.n_bins!r}"
        ) from None
    if n_bins < 0:
        raise ConfigurationError(
            f"Histogram: axis {axis.name} has a negative bin count"
        )
    return Axis(
        name=str(axis.name),
        n_bins=n_bins,
        low=float(axis.low),
        high=float(axis.high),
        units=str(axis.units),
    )


def check_axes(axes: Iterable[Any]) -> tuple[Axis, ...]:
    """Validate a full set of axes.

    Parameters
    ----------
    axes : iterable of Axis or tuple
        Axis definitions in declaration order.

    Returns
    -------
    tuple[Axis, ...]
        The normalized axes, in declaration order.

    Raises
    ------
    ConfigurationError
        If the set is empty, an axis name is empty or repeated, or an
        axis has its high bound below its low bound.

    """
    out = tuple(_normalized(as_axis(a)) for a in axes)
    if len(out) == 0:
        raise ConfigurationError("Histogram: tried to initialize with no dimensions")
    names: set[str] = set()
    for axis in out:
        if not axis.name:
            raise ConfigurationError("Histogram: unnamed axis")
        if axis.name in names:
            raise ConfigurationError(
                f"Histogram: axis name {axis.name} was used twice"
            )
        names.add(axis.name)
        if not axis.low <= axis.high:
            raise ConfigurationError(
                f"Histogram: axis {axis.name} has high bound below low bound"
            )
    return out
