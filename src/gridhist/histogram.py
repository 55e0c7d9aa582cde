"""Fillable N-dimensional histogram with a flat value buffer."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import boost_histogram as bh
import numpy as np
from dask.base import is_dask_collection

from gridhist.axis import Axis, check_axes
from gridhist.binning import BinnerChain, BinningStrategy
from gridhist.coords import ColumnStyle, columns_style, normalize_coords
from gridhist.errors import RangeError
from gridhist.staged import block_values, fill_dask

if TYPE_CHECKING:
    from numpy.typing import NDArray

    from gridhist.typing import ColumnType, CoordArg

__all__ = ("Histogram",)

logger = logging.getLogger(__name__)

# keyword parameters of fill_array that shadow axis names
_FILL_ARRAY_KEYWORDS = frozenset({"weight", "split_every"})


class Histogram:
    """Histogram of weighted points on a regular grid.

    Every axis carries an underflow and an overflow bin, so the value
    buffer holds ``prod(n_bins + 2)`` accumulators laid out in C order
    (the last declared axis varies fastest).

    Parameters
    ----------
    *axes : Axis or tuple
        One or more axes, in declaration order. Tuples are read as
        ``(name, n_bins, low, high[, units])``.
    absorb_invalid : bool
        If ``True``, fills whose coordinates do not match the axes are
        counted (see :py:attr:`n_absorbed`) instead of raising
        :py:class:`~gridhist.errors.RangeError`.
    strategy : BinningStrategy
        Binning used for every axis.

    Raises
    ------
    ConfigurationError
        If no axis is given, an axis name is empty or repeated, or an
        axis has its high bound below its low bound.

    Examples
    --------
    >>> import gridhist
    >>> h = gridhist.Histogram(("x", 2, 0, 2, "m"), ("y", 3, 0, 3, "s"))
    >>> h = h.fill((0.5, 0.5), 2.0).fill({"x": 1.5, "y": 2.5}, 3.0)
    >>> h.sum()
    5.0

    """

    def __init__(
        self,
        *axes: Axis | tuple,
        absorb_invalid: bool = False,
        strategy: BinningStrategy = BinningStrategy.Linear,
    ) -> None:
        self._axes = check_axes(axes)
        self._chain = BinnerChain.from_axes(self._axes, strategy)
        self._values = np.zeros(self._chain.n_values, dtype=np.float64)
        self._n_absorbed = 0
        self._absorb_invalid = bool(absorb_invalid)
        logger.debug(
            "Created histogram with shape %s (absorb_invalid=%s)",
            self.shape,
            self._absorb_invalid,
        )

    @classmethod
    def one_dim(
        cls,
        n_bins: int,
        low: float,
        high: float,
        units: str = "",
        *,
        name: str = "x",
        absorb_invalid: bool = False,
    ) -> Histogram:
        """Construct a one dimensional histogram.

        The single axis is named `name` (``"x"`` by default).

        """
        return cls(Axis(name, n_bins, low, high, units), absorb_invalid=absorb_invalid)

    @classmethod
    def from_boost(cls, hist: bh.Histogram, *, absorb_invalid: bool = False) -> Histogram:
        """Construct a histogram from a boost-histogram object.

        Every axis must be a ``Regular`` axis without transform that has
        both an underflow and an overflow bin. Axis names are taken from
        ``hist`` axes names or from a ``{"name": ..., "units": ...}``
        metadata dictionary; unnamed axes are called ``x0``, ``x1``, ...
        Units come from the metadata dictionary or, failing that, from an
        axis label that differs from the name (as written by
        :py:meth:`to_hist`).

        Parameters
        ----------
        hist : boost_histogram.Histogram
            The source histogram; its flow values are copied.
        absorb_invalid : bool
            See :py:class:`Histogram`.

        Returns
        -------
        Histogram
            New histogram holding the same values.

        """
        axes = []
        for i, ax in enumerate(hist.axes):
            if not isinstance(ax, bh.axis.Regular) or ax.transform is not None:
                raise ValueError(f"Axis {i} is not a plain Regular axis: {ax!r}")
            if not (ax.traits.underflow and ax.traits.overflow):
                raise ValueError(f"Axis {i} must have underflow and overflow bins")
            meta = ax.metadata if isinstance(ax.metadata, dict) else {}
            name = getattr(ax, "name", "") or meta.get("name") or f"x{i}"
            label = getattr(ax, "label", "") or ""
            # hist reports the name as label when none was set
            units = meta.get("units") or (label if label != name else "")
            edges = ax.edges
            axes.append(Axis(name, ax.size, edges[0], edges[-1], units))
        out = cls(*axes, absorb_invalid=absorb_invalid)
        meta = hist.metadata if isinstance(hist.metadata, dict) else {}
        out._restore(np.asarray(hist.values(flow=True)), int(meta.get("nan", 0)))
        return out

    def _restore(self, values: NDArray[Any], n_absorbed: int) -> None:
        values = np.asarray(values, dtype=np.float64)
        if values.shape != self.shape:
            raise ValueError(
                f"Values of shape {values.shape} do not match histogram shape {self.shape}"
            )
        self._values = values.ravel().copy()
        self._n_absorbed = n_absorbed

    # ---------- properties ----------
    @property
    def axes(self) -> tuple[Axis, ...]:
        """tuple[Axis, ...]: Axes in declaration order."""
        return self._axes

    @property
    def binner(self) -> BinnerChain:
        return self._chain

    @property
    def ndim(self) -> int:
        return len(self._axes)

    @property
    def shape(self) -> tuple[int, ...]:
        """tuple[int, ...]: ``n_bins + 2`` for every axis."""
        return self._chain.shape

    @property
    def size(self) -> int:
        return self._values.size

    @property
    def n_absorbed(self) -> int:
        """int: Number of fills dropped because of malformed coordinates."""
        return self._n_absorbed

    @property
    def absorb_invalid(self) -> bool:
        return self._absorb_invalid

    def axis(self, name: str) -> Axis:
        """Axis called `name`."""
        for ax in self._axes:
            if ax.name == name:
                return ax
        raise KeyError(f"{name} not in histogram axes: {[a.name for a in self._axes]}")

    # ---------- filling ----------
    def _absorb(self, err: RangeError) -> None:
        if not self._absorb_invalid:
            raise err
        self._n_absorbed += 1
        logger.debug("Absorbed invalid fill: %s", err)

    def fill(self, coords: CoordArg, weight: float = 1.0) -> Histogram:
        """Add `weight` to the bin holding one point.

        Parameters
        ----------
        coords : float, sequence of float or mapping of str to float
            Coordinates of the point: one value per axis in declaration
            order, a mapping from axis name to value, or a single
            value for one dimensional histograms.
        weight : float
            Amount added to the bin.

        Returns
        -------
        Histogram
            This histogram.

        Raises
        ------
        RangeError
            If `coords` does not hold one value per axis and invalid
            input is not absorbed. The values are left unchanged.

        """
        try:
            index = self._chain.get_bin(normalize_coords(self.ndim, coords))
        except RangeError as err:
            self._absorb(err)
            return self
        self._values[index] += weight
        return self

    def fill_array(
        self,
        *args: ColumnType,
        weight: Any | None = None,
        split_every: int | None = None,
        **kwargs: ColumnType,
    ) -> Histogram:
        """Fill with many points at once.

        Parameters
        ----------
        *args : array_like or dask.array.Array
            One 1D array per axis in declaration order, or a single 2D
            array with one row per point and one column per axis.
        weight : float or array_like, optional
            Weight of every point, or one weight per point.
        split_every : int, optional
            Fan-in of the reduction used for Dask inputs.
        **kwargs : array_like or dask.array.Array
            One 1D array per axis keyed by axis name.
            Axes named ``weight`` or ``split_every`` can only be filled
            by position.

        Returns
        -------
        Histogram
            This histogram.

        Raises
        ------
        RangeError
            If the columns do not match the axes and invalid input is
            not absorbed. A call with mismatched columns counts as one
            invalid fill.
        ValueError
            If the columns (and weights) have different lengths.
        TypeError
            If columns are given by name and an axis is named
            ``weight`` or ``split_every``.

        """
        if not args:
            shadowed = [n for n in self._chain.names if n in _FILL_ARRAY_KEYWORDS]
            if shadowed:
                raise TypeError(
                    f"Axis {shadowed[0]!r} cannot be filled by name with "
                    "fill_array; pass the columns by position"
                )
        style = columns_style(args, kwargs)
        if style is ColumnStyle.Named:
            columns: Any = kwargs
        elif style is ColumnStyle.SingleTable:
            table = args[0]
            if not is_dask_collection(table):
                table = np.asarray(table)
            if table.shape[1] != self.ndim:
                self._absorb(
                    RangeError(
                        f"Got {table.shape[1]} columns for a histogram with "
                        f"{self.ndim} dimensions"
                    )
                )
                return self
            columns = [table[:, i] for i in range(self.ndim)]
        else:
            columns = args

        try:
            columns = self._chain.ordered(columns)
        except RangeError as err:
            self._absorb(err)
            return self

        _check_lengths(columns, weight)
        if any(is_dask_collection(c) for c in (*columns, weight)):
            values = fill_dask(self._chain, columns, weight, split_every=split_every)
        else:
            values = block_values(self._chain, [np.asarray(c) for c in columns], weight)
        assert values.shape == self._values.shape
        self._values += values
        return self

    # ---------- combining ----------
    def _check_compat(self, other: Histogram) -> None:
        if not isinstance(other, Histogram):
            raise TypeError("Can only combine Histogram with Histogram.")
        if self._axes != other._axes:
            raise ValueError("Histogram axes differ.")

    def merge(self, other: Histogram) -> Histogram:
        """Add the values and absorbed counts of `other` in place."""
        self._check_compat(other)
        self._values += other._values
        self._n_absorbed += other._n_absorbed
        return self

    def __iadd__(self, other: Histogram) -> Histogram:
        if not isinstance(other, Histogram):
            return NotImplemented
        return self.merge(other)

    def __add__(self, other: Histogram) -> Histogram:
        if not isinstance(other, Histogram):
            return NotImplemented
        return self.copy().merge(other)

    def __radd__(self, other: Any) -> Histogram:
        # supports sum(list_of_hists)
        if isinstance(other, int) and other == 0:
            return self.copy()
        return NotImplemented

    # ---------- copying ----------
    def copy(self) -> Histogram:
        """Independent copy of the axes, binners, values and counters."""
        out = object.__new__(type(self))
        out._axes = tuple(self._axes)
        out._chain = self._chain.copy()
        out._values = self._values.copy()
        out._n_absorbed = self._n_absorbed
        out._absorb_invalid = self._absorb_invalid
        return out

    def __copy__(self) -> Histogram:
        return self.copy()

    def __deepcopy__(self, memo: dict) -> Histogram:
        return self.copy()

    # ---------- views ----------
    def values(self, flow: bool = False) -> NDArray[np.float64]:
        """Read-only view of the accumulated values.

        Parameters
        ----------
        flow : bool
            Include the underflow and overflow bins.

        """
        view = self._values.reshape(self.shape)
        if not flow:
            view = view[(slice(1, -1),) * self.ndim]
        view.flags.writeable = False
        return view

    def sum(self, flow: bool = False) -> float:
        return float(self.values(flow=flow).sum())

    def to_numpy(self, flow: bool = False) -> tuple[NDArray[np.float64], list]:
        """Values and edges in the style of :func:`numpy.histogramdd`.

        With `flow`, the edges are extended by ``-inf`` and ``+inf``.

        """
        edges = []
        for ax in self._axes:
            e = ax.edges()
            if flow:
                e = np.concatenate(([-np.inf], e, [np.inf]))
            edges.append(e)
        return self.values(flow=flow).copy(), edges

    # ---------- interoperability ----------
    def to_boost(self) -> bh.Histogram:
        """Convert to a ``boost_histogram.Histogram`` with Regular axes.

        Axis names and units are kept in each axis metadata, and the
        absorbed count in the histogram metadata under ``"nan"``.

        """
        axes = [
            bh.axis.Regular(
                ax.n_bins, ax.low, ax.high, metadata={"name": ax.name, "units": ax.units}
            )
            for ax in self._axes
        ]
        out = bh.Histogram(
            *axes, storage=bh.storage.Double(), metadata={"nan": self._n_absorbed}
        )
        out.view(flow=True)[...] = self.values(flow=True)
        return out

    def to_hist(self) -> Any:
        """Convert to a ``hist.Hist`` with named axes labelled by units."""
        import hist

        axes = [
            hist.axis.Regular(
                ax.n_bins, ax.low, ax.high, name=ax.name, label=ax.units or ax.name
            )
            for ax in self._axes
        ]
        out = hist.Hist(
            *axes, storage=hist.storage.Double(), metadata={"nan": self._n_absorbed}
        )
        out.view(flow=True)[...] = self.values(flow=True)
        return out

    # ---------- persistence ----------
    def write_to(
        self,
        destination: Any,
        name: str,
        compression_level: int | None = None,
    ) -> Any:
        """Write the values and axis attributes to an HDF5 group.

        See :py:func:`gridhist.io.write_histogram`.

        """
        from gridhist.io import write_histogram

        return write_histogram(destination, name, self, compression_level)

    def __repr__(self) -> str:
        newline = "\n  "
        ret = f"{self.__class__.__name__}({newline if self.ndim > 1 else ''}"
        ret += f",{newline}".join(repr(ax) for ax in self._axes)
        ret += ")"
        outer = self.sum(flow=True)
        if outer:
            inner = self.sum(flow=False)
            ret += f" # Sum: {inner}"
            if inner != outer:
                ret += f" ({outer} with flow)"
        if self._n_absorbed:
            ret += f" # Absorbed: {self._n_absorbed}"
        return ret


def _check_lengths(columns: Any, weight: Any | None) -> None:
    lengths = {np.shape(c)[0] for c in columns if np.ndim(c) > 0}
    if weight is not None and np.ndim(weight) == 1:
        lengths.add(np.shape(weight)[0])
    known = {n for n in lengths if not (isinstance(n, float) and np.isnan(n))}
    if len(known) > 1:
        raise ValueError(f"Columns and weights must have equal lengths, got {sorted(known)}")
