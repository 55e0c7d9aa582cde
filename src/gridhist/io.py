"""Persist histograms as HDF5 datasets.

A histogram is written as one dense, chunked and gzip compressed
dataset of shape ``(n_bins + 2, ...)`` with these attributes:

* ``{name}_axis``: position of the axis (unsigned integer)
* ``{name}_bins``: number of bins, without flow bins (integer)
* ``{name}_min``, ``{name}_max``: axis range (float)
* ``{name}_units``: unit label (string)
* ``nan``: number of absorbed invalid fills (integer)

"""

from __future__ import annotations

import logging
import warnings
from typing import Any

import dask.config
import h5py
import numpy as np

from gridhist.axis import Axis
from gridhist.histogram import Histogram

__all__ = ("chunk_shape", "read_histogram", "write_histogram")

logger = logging.getLogger(__name__)


def chunk_shape(shape: tuple[int, ...], chunking: Any = None) -> tuple[int, ...]:
    """Chunk dimensions used to store an array of `shape`.

    Parameters
    ----------
    shape : tuple[int, ...]
        Shape of the stored array.
    chunking : "full" or int, optional
        ``"full"`` stores the array as a single chunk; a positive
        integer caps the chunk length along every axis. Defaults to the
        ``gridhist.io.chunking`` configuration value.

    Returns
    -------
    tuple[int, ...]
        The chunk dimensions.

    """
    if chunking is None:
        chunking = dask.config.get("gridhist.io.chunking", "full")
    if chunking == "full":
        return tuple(shape)
    if isinstance(chunking, int) and not isinstance(chunking, bool) and chunking > 0:
        return tuple(min(n, chunking) for n in shape)
    raise ValueError(f"chunking must be 'full' or a positive integer, got {chunking!r}")


def _compression_level(level: int | None) -> int:
    if level is None:
        level = dask.config.get("gridhist.io.compression-level", 4)
    if not isinstance(level, (int, np.integer)) or not 0 <= level <= 9:
        raise ValueError(f"compression level must be an integer in [0, 9], got {level!r}")
    return int(level)


def write_histogram(
    destination: h5py.Group,
    name: str,
    hist: Histogram,
    compression_level: int | None = None,
    chunking: Any = None,
) -> h5py.Dataset:
    """Write `hist` as the dataset `name` inside `destination`.

    Parameters
    ----------
    destination : h5py.Group
        Open file or group receiving the dataset.
    name : str
        Name (or path) of the new dataset.
    hist : Histogram
        The histogram to store. It is not modified.
    compression_level : int, optional
        Gzip level in ``[0, 9]``. Defaults to the
        ``gridhist.io.compression-level`` configuration value.
    chunking : "full" or int, optional
        See :func:`chunk_shape`.

    Returns
    -------
    h5py.Dataset
        The new dataset.

    """
    level = _compression_level(compression_level)
    shape = hist.shape
    values = hist.values(flow=True)
    assert values.size == int(np.prod(shape)), "value buffer does not match axes"

    dataset = destination.create_dataset(
        name,
        data=values,
        dtype=np.float64,
        chunks=chunk_shape(shape, chunking),
        compression="gzip",
        compression_opts=level,
    )
    for number, axis in enumerate(hist.axes):
        _write_axis_attrs(dataset, number, axis)
    dataset.attrs["nan"] = np.int64(hist.n_absorbed)
    logger.debug(
        "Wrote histogram %s with shape %s (compression level %d)", name, shape, level
    )
    return dataset


def _write_axis_attrs(target: h5py.Dataset, number: int, axis: Axis) -> None:
    target.attrs[f"{axis.name}_axis"] = np.uint32(number)
    target.attrs[f"{axis.name}_bins"] = np.int32(axis.n_bins)
    target.attrs[f"{axis.name}_max"] = np.float64(axis.high)
    target.attrs[f"{axis.name}_min"] = np.float64(axis.low)
    target.attrs[f"{axis.name}_units"] = axis.units


def _as_str(value: Any) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return str(value)


def _read_axes(attrs: h5py.AttributeManager) -> list[Axis]:
    names = [
        key[: -len("_axis")]
        for key in attrs
        if key.endswith("_axis") and f"{key[: -len('_axis')]}_bins" in attrs
    ]
    if not names:
        raise ValueError("Dataset has no axis attributes")
    positions = {name: int(attrs[f"{name}_axis"]) for name in names}
    ordered = sorted(names, key=positions.__getitem__)
    if [positions[n] for n in ordered] != list(range(len(ordered))):
        raise ValueError(f"Axis positions are not contiguous: {positions}")
    axes = []
    for name in ordered:
        try:
            axes.append(
                Axis(
                    name,
                    int(attrs[f"{name}_bins"]),
                    float(attrs[f"{name}_min"]),
                    float(attrs[f"{name}_max"]),
                    _as_str(attrs[f"{name}_units"]),
                )
            )
        except KeyError as err:
            raise ValueError(f"Incomplete attributes for axis {name}: {err}") from err
    return axes


def read_histogram(
    source: h5py.Group,
    name: str,
    *,
    absorb_invalid: bool = False,
) -> Histogram:
    """Rebuild a histogram written by :func:`write_histogram`.

    Parameters
    ----------
    source : h5py.Group
        Open file or group holding the dataset.
    name : str
        Name (or path) of the dataset.
    absorb_invalid : bool
        Whether the rebuilt histogram absorbs invalid fills.

    Returns
    -------
    Histogram
        Histogram with the stored axes, values and absorbed count.

    """
    dataset = source[name]
    hist = Histogram(*_read_axes(dataset.attrs), absorb_invalid=absorb_invalid)
    if "nan" in dataset.attrs:
        n_absorbed = int(dataset.attrs["nan"])
    else:
        warnings.warn(f"Dataset {name} has no 'nan' attribute; assuming 0")
        n_absorbed = 0
    hist._restore(dataset[()], n_absorbed)
    logger.debug("Read histogram %s with shape %s", name, hist.shape)
    return hist
