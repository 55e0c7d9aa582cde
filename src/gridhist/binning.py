"""Map coordinates to bin indices.

Each axis is handled by a binner, which maps one coordinate to a local
bin index in ``[0, n_bins + 1]``, where 0 is the underflow bin and
``n_bins + 1`` the overflow bin. A :class:`BinnerChain` folds the local
indices of all axes into a single flat index with mixed-radix
encoding; the last declared axis varies fastest.

"""

from __future__ import annotations

import copy
import math
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Mapping, Sequence

import numpy as np

from gridhist.errors import RangeError

if TYPE_CHECKING:
    from numpy.typing import ArrayLike, NDArray

    from gridhist.axis import Axis

__all__ = (
    "BinningStrategy",
    "BinnerChain",
    "LinearBinner",
    "make_binner",
)


class BinningStrategy(Enum):
    """Strategies available to map a coordinate onto an axis."""

    Linear = 1


def _fraction(x, low, high):
    # halved operands keep wide finite ranges from overflowing
    return (0.5 * x - 0.5 * low) / (0.5 * high - 0.5 * low)


@dataclass(frozen=True)
class LinearBinner:
    """Equal width binning of ``[low, high)`` into `n_bins` bins.

    Non-finite coordinates and coordinates below `low` land in the
    underflow bin; coordinates at or above `high` land in the overflow
    bin.

    """

    low: float
    high: float
    n_bins: int

    strategy = BinningStrategy.Linear

    @property
    def extent(self) -> int:
        return self.n_bins + 2

    def local_bin(self, x: float) -> int:
        """Bin index of a single coordinate."""
        if not math.isfinite(x) or x < self.low:
            return 0
        if x >= self.high:
            return self.n_bins + 1
        frac = _fraction(x, self.low, self.high)
        # infinite bounds leave no meaningful position inside the range
        b = 1 + math.floor(frac * self.n_bins) if math.isfinite(frac) else 1
        # floating point rounding can push values next to `high` one bin too far
        return max(1, min(b, self.n_bins))

    def local_bins(self, x: ArrayLike) -> NDArray[np.intp]:
        """Bin indices of an array of coordinates."""
        x = np.asarray(x, dtype=np.float64)
        out = np.zeros(x.shape, dtype=np.intp)
        finite = np.isfinite(x)
        over = finite & (x >= self.high)
        inside = finite & (x >= self.low) & ~over
        if inside.any():
            with np.errstate(invalid="ignore"):
                frac = _fraction(x[inside], self.low, self.high)
                raw = np.where(np.isfinite(frac), np.floor(frac * self.n_bins) + 1, 1)
            out[inside] = np.maximum(np.minimum(raw, self.n_bins), 1).astype(np.intp)
        out[over] = self.n_bins + 1
        return out


def make_binner(axis: Axis, strategy: BinningStrategy = BinningStrategy.Linear):
    """Create the binner for `axis` using `strategy`.

    Parameters
    ----------
    axis : Axis
        The axis to bin along.
    strategy : BinningStrategy
        Which binning to use.

    Returns
    -------
    LinearBinner
        Binner holding the axis parameters.

    """
    if strategy is BinningStrategy.Linear:
        return LinearBinner(axis.low, axis.high, axis.n_bins)
    raise ValueError(f"Unsupported binning strategy: {strategy}")


class BinnerChain:
    """Ordered binners for every axis of a histogram.

    Parameters
    ----------
    names : sequence of str
        Axis names, in declaration order.
    binners : sequence of binners
        One binner per axis, in declaration order.

    """

    __slots__ = ("_names", "_binners")

    def __init__(self, names: Sequence[str], binners: Sequence[Any]) -> None:
        if len(names) != len(binners):
            raise ValueError("names and binners must be the same length")
        self._names = tuple(names)
        self._binners = tuple(binners)

    @classmethod
    def from_axes(
        cls,
        axes: Sequence[Axis],
        strategy: BinningStrategy = BinningStrategy.Linear,
    ) -> BinnerChain:
        return cls([a.name for a in axes], [make_binner(a, strategy) for a in axes])

    @property
    def names(self) -> tuple[str, ...]:
        return self._names

    @property
    def binners(self) -> tuple[Any, ...]:
        return self._binners

    @property
    def ndim(self) -> int:
        return len(self._binners)

    @property
    def shape(self) -> tuple[int, ...]:
        return tuple(b.extent for b in self._binners)

    @property
    def n_values(self) -> int:
        n = 1
        for b in self._binners:
            n *= b.extent
        return n

    def ordered(self, coords: Sequence[Any] | Mapping[str, Any]) -> Sequence[Any]:
        """Arrange `coords` in declaration order.

        Raises
        ------
        RangeError
            If a mapping lacks one of the axis names or a sequence has
            the wrong length.

        """
        if isinstance(coords, Mapping):
            missing = [n for n in self._names if n not in coords]
            if missing:
                raise RangeError(f"No coordinate given for axis {missing[0]}")
            return [coords[n] for n in self._names]
        if len(coords) != self.ndim:
            raise RangeError(
                f"Got {len(coords)} coordinates for a histogram with "
                f"{self.ndim} dimensions"
            )
        return coords

    def get_bin(self, coords: Sequence[float] | Mapping[str, float]) -> int:
        """Flat index of one point.

        Parameters
        ----------
        coords : sequence of float or mapping of str to float
            One coordinate per axis, either in declaration order or
            keyed by axis name.

        Returns
        -------
        int
            Index into the flat value buffer.

        Raises
        ------
        RangeError
            If `coords` does not provide exactly one value per axis.

        """
        values = self.ordered(coords)
        index = 0
        for binner, x in zip(self._binners, values):
            index = index * binner.extent + binner.local_bin(float(x))
        return index

    def get_bins(
        self, columns: Sequence[ArrayLike] | Mapping[str, ArrayLike]
    ) -> NDArray[np.intp]:
        """Flat indices of many points, one column of coordinates per axis."""
        values = self.ordered(columns)
        index: NDArray[np.intp] | None = None
        for binner, x in zip(self._binners, values):
            local = binner.local_bins(x)
            index = local if index is None else index * binner.extent + local
        assert index is not None
        return index

    def copy(self) -> BinnerChain:
        return BinnerChain(self._names, [copy.copy(b) for b in self._binners])

    def __copy__(self) -> BinnerChain:
        return self.copy()

    def __deepcopy__(self, memo: dict) -> BinnerChain:
        return self.copy()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, BinnerChain):
            return NotImplemented
        return self._names == other._names and self._binners == other._binners

    def __repr__(self) -> str:
        inner = ", ".join(f"{n}={b!r}" for n, b in zip(self._names, self._binners))
        return f"BinnerChain({inner})"
