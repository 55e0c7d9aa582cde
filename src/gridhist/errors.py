"""Exceptions raised while building and filling histograms."""

from __future__ import annotations

__all__ = ("ConfigurationError", "RangeError")


class ConfigurationError(ValueError):
    """A set of axes cannot describe a histogram.

    Raised at construction time; no histogram is created.

    """


class RangeError(LookupError):
    """Fill coordinates do not match the axes of a histogram.

    Raised when the number of coordinates differs from the number of
    axes or when a required axis name is missing from a mapping of
    coordinates. Histograms constructed with ``absorb_invalid=True``
    count these instead of raising.

    """
