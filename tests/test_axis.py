import math

import numpy as np
import pytest

from gridhist.axis import Axis, as_axis, check_axes
from gridhist.errors import ConfigurationError


def test_check_axes_normalizes():
    axes = check_axes([("x", 2, 0, 2, "m"), Axis("y", 3, 0.0, 3.0, "s")])
    assert axes == (Axis("x", 2, 0.0, 2.0, "m"), Axis("y", 3, 0.0, 3.0, "s"))
    assert isinstance(axes[0].low, float)
    assert isinstance(axes[0].n_bins, int)


def test_check_axes_units_default():
    (axis,) = check_axes([("x", 4, -1, 1)])
    assert axis.units == ""
    assert axis.extent == 6


@pytest.mark.parametrize(
    "axes, match",
    [
        ([], "no dimensions"),
        ([("", 2, 0, 1)], "unnamed axis"),
        ([("x", 2, 0, 1), ("x", 3, 0, 1)], "axis name x was used twice"),
        ([("x", 2, 1, 0)], "axis x has high bound below low bound"),
        ([("x", 2, math.nan, 1)], "axis x has high bound below low bound"),
        ([("x", 2, 0, math.nan)], "axis x has high bound below low bound"),
        ([("x", -1, 0, 1)], "negative bin count"),
        ([("x", 2.5, 0, 1)], "non-integer bin count"),
    ],
)
def test_check_axes_invalid(axes, match):
    with pytest.raises(ConfigurationError, match=match):
        check_axes(axes)


def test_degenerate_axes_are_accepted():
    axes = check_axes([("x", 0, 0, 1), ("y", 5, 2, 2), ("z", 3, -5, -1)])
    assert [a.extent for a in axes] == [2, 7, 5]


def test_configuration_error_is_value_error():
    with pytest.raises(ValueError):
        check_axes([])


def test_as_axis_rejects_garbage():
    with pytest.raises(ConfigurationError, match="Cannot interpret"):
        as_axis("x")
    with pytest.raises(ConfigurationError):
        as_axis(("x", 1))


def test_axis_is_immutable():
    axis = Axis("x", 2, 0.0, 1.0)
    with pytest.raises(AttributeError):
        axis.n_bins = 3


def test_edges_and_width():
    axis = Axis("x", 4, 0.0, 2.0)
    np.testing.assert_allclose(axis.edges(), [0.0, 0.5, 1.0, 1.5, 2.0])
    assert axis.width == 0.5
    assert Axis("x", 0, 0.0, 2.0).width == 0.0
