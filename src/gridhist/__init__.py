"""Fill regular N-dimensional histograms and store them in HDF5."""

from gridhist.axis import Axis
from gridhist.binning import BinnerChain, BinningStrategy, LinearBinner
from gridhist.errors import ConfigurationError, RangeError
from gridhist.histogram import Histogram
from gridhist.io import read_histogram, write_histogram
from gridhist.version import __version__

__all__ = (
    "__version__",
    "Axis",
    "BinnerChain",
    "BinningStrategy",
    "ConfigurationError",
    "Histogram",
    "LinearBinner",
    "RangeError",
    "read_histogram",
    "write_histogram",
)
