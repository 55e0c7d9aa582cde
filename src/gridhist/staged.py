"""Blocked filling of histogram buffers from Dask arrays."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Sequence

import dask
import dask.array as da
import dask.config
import numpy as np
from dask.base import is_dask_collection
from dask.delayed import Delayed, delayed

if TYPE_CHECKING:
    from numpy.typing import NDArray

    from gridhist.binning import BinnerChain

__all__ = ("block_values", "fill_dask")

logger = logging.getLogger(__name__)


def buffer_sum(items):
    return sum(items)


def block_values(
    chain: BinnerChain,
    columns: Sequence[Any],
    weight: Any | None = None,
) -> NDArray[np.float64]:
    """Flat buffer holding the weighted counts of one block of points.

    Parameters
    ----------
    chain : BinnerChain
        Binners of the histogram being filled.
    columns : sequence of array_like
        One 1D array of coordinates per axis, in declaration order.
    weight : float or array_like, optional
        Weight of every point, or one weight per point. Defaults to 1.

    Returns
    -------
    numpy.ndarray
        Array with one entry per bin of the histogram.

    """
    flat = chain.get_bins(columns).ravel()
    if weight is None:
        weights = None
    else:
        weights = np.broadcast_to(np.asarray(weight, dtype=np.float64), flat.shape)
    out = np.bincount(flat, weights=weights, minlength=chain.n_values)
    return out.astype(np.float64, copy=False)


def _blocked_values(chain: BinnerChain, weighted: bool, *blocks: Any):
    if weighted:
        return block_values(chain, blocks[:-1], weight=blocks[-1])
    return block_values(chain, blocks)


def _check_chunks(columns: Sequence[da.Array], weight: Any | None) -> None:
    chunks = columns[0].chunks
    for column in columns[1:]:
        if column.chunks != chunks:
            raise ValueError("All columns must have identical chunking.")
    if is_dask_collection(weight):
        if weight.ndim != 1:
            raise ValueError("weights must be one dimensional.")
        if weight.chunks != chunks:
            raise ValueError("weights must have as many partitions as the data.")


def _tree_sum(parts: list[Delayed], split_every: int) -> Delayed:
    while len(parts) > 1:
        parts = [
            delayed(buffer_sum)(parts[i : i + split_every])
            for i in range(0, len(parts), split_every)
        ]
    return parts[0]


def fill_dask(
    chain: BinnerChain,
    columns: Sequence[Any],
    weight: Any | None = None,
    split_every: int | None = None,
) -> NDArray[np.float64]:
    """Compute a flat buffer from Dask collections of coordinates.

    Each block of the input yields a partial buffer; the partial
    buffers are summed in a tree reduction and the result is
    computed before returning.

    Parameters
    ----------
    chain : BinnerChain
        Binners of the histogram being filled.
    columns : sequence of dask.array.Array or array_like
        One 1D collection per axis, in declaration order. Concrete
        arrays are converted to Dask arrays with the chunking of the
        first Dask collection.
    weight : dask.array.Array or float, optional
        Weights associated with each point. Arrays must be chunked
        like the data.
    split_every : int, optional
        Fan-in of the tree reduction. Defaults to the
        ``gridhist.aggregation.split-every`` configuration value.

    Returns
    -------
    numpy.ndarray
        Array with one entry per bin of the histogram.

    """
    if split_every is None:
        split_every = dask.config.get("gridhist.aggregation.split-every", 8)
    reference = next(c for c in (*columns, weight) if is_dask_collection(c))
    columns = [
        c
        if is_dask_collection(c)
        else da.from_array(np.asarray(c), chunks=reference.chunks)
        for c in columns
    ]
    if weight is not None and not is_dask_collection(weight) and np.ndim(weight) == 1:
        weight = da.from_array(np.asarray(weight), chunks=reference.chunks)
    _check_chunks(columns, weight)

    weighted = weight is not None
    blocks = [c.to_delayed().ravel() for c in columns]
    if is_dask_collection(weight):
        blocks.append(weight.to_delayed().ravel())
    elif weighted:
        blocks.append([weight] * len(blocks[0]))

    parts = [
        delayed(_blocked_values)(chain, weighted, *inputs) for inputs in zip(*blocks)
    ]
    if split_every is False:
        split_every = len(parts)
    split_every = max(int(split_every), 2)
    logger.debug(
        "Reducing %d partial buffers with split_every=%d", len(parts), split_every
    )
    (result,) = dask.compute(_tree_sum(parts, split_every))
    return result
