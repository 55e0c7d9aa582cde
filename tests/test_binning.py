import copy
import math

import numpy as np
import pytest

from gridhist.axis import Axis
from gridhist.binning import BinnerChain, BinningStrategy, LinearBinner, make_binner
from gridhist.errors import RangeError


@pytest.mark.parametrize(
    "x, expected",
    [
        (-0.1, 0),
        (0.0, 1),
        (0.99, 1),
        (1.0, 2),
        (1.999, 2),
        (2.0, 3),
        (10.0, 3),
        (math.nan, 0),
        (math.inf, 0),
        (-math.inf, 0),
    ],
)
def test_local_bin(x, expected):
    b = LinearBinner(0.0, 2.0, 2)
    assert b.local_bin(x) == expected
    assert b.local_bins(np.array([x]))[0] == expected


def test_local_bin_is_monotonic():
    b = LinearBinner(-1.3, 2.7, 17)
    xs = np.linspace(-3, 5, 4001)
    bins = [b.local_bin(x) for x in xs]
    assert np.all(np.diff(bins) >= 0)
    assert bins[0] == 0
    assert bins[-1] == 18
    inner = [v for x, v in zip(xs, bins) if -1.3 <= x < 2.7]
    assert min(inner) == 1
    assert max(inner) == 17


@pytest.mark.parametrize("low, high, n", [(0.0, 0.3, 3), (-1e-3, 7.1, 11), (1.0, 1.1, 1)])
def test_just_below_high_stays_in_last_bin(low, high, n):
    b = LinearBinner(low, high, n)
    x = np.nextafter(high, -np.inf)
    assert b.local_bin(x) == n
    assert b.local_bins([x])[0] == n


def test_zero_width_axis():
    b = LinearBinner(1.0, 1.0, 5)
    assert b.local_bin(0.5) == 0
    assert b.local_bin(1.0) == 6
    assert b.local_bin(2.0) == 6
    np.testing.assert_array_equal(b.local_bins([0.5, 1.0, 2.0]), [0, 6, 6])


def test_zero_bins():
    b = LinearBinner(0.0, 1.0, 0)
    assert b.extent == 2
    assert b.local_bin(-1.0) == 0
    assert b.local_bin(0.5) == 1
    assert b.local_bin(1.5) == 1
    np.testing.assert_array_equal(b.local_bins([-1.0, 0.5, 1.5]), [0, 1, 1])


def test_scalar_and_array_agree():
    rng = np.random.default_rng(42)
    b = LinearBinner(-2.5, 3.5, 13)
    x = np.concatenate([rng.normal(0, 3, size=500), [np.nan, np.inf, -np.inf, -2.5, 3.5]])
    expected = [b.local_bin(v) for v in x]
    np.testing.assert_array_equal(b.local_bins(x), expected)


def test_make_binner():
    b = make_binner(Axis("x", 4, 0.0, 1.0))
    assert b == LinearBinner(0.0, 1.0, 4)
    assert b.strategy is BinningStrategy.Linear
    with pytest.raises(ValueError, match="Unsupported binning strategy"):
        make_binner(Axis("x", 4, 0.0, 1.0), "log")


@pytest.fixture
def chain():
    return BinnerChain.from_axes([Axis("x", 2, 0.0, 2.0), Axis("y", 3, 0.0, 3.0)])


def test_chain_shape(chain):
    assert chain.ndim == 2
    assert chain.shape == (4, 5)
    assert chain.n_values == 20
    assert chain.names == ("x", "y")


def test_chain_last_axis_fastest(chain):
    assert chain.get_bin((0.5, 0.5)) == 1 * 5 + 1
    assert chain.get_bin((1.5, 2.5)) == 2 * 5 + 3
    assert chain.get_bin((-1.0, -1.0)) == 0
    assert chain.get_bin((5.0, 5.0)) == 19
    assert chain.get_bin((-1.0, 5.0)) == 4
    assert chain.get_bin((5.0, -1.0)) == 15


def test_chain_mapping(chain):
    assert chain.get_bin({"y": 2.5, "x": 1.5}) == chain.get_bin((1.5, 2.5))
    # unrelated names are ignored
    assert chain.get_bin({"x": 0.5, "y": 0.5, "z": 9.0}) == 6


def test_chain_matches_numpy_ravel(chain):
    rng = np.random.default_rng(3)
    pts = rng.uniform(-1, 4, size=(200, 2))
    for x, y in pts:
        bx = chain.binners[0].local_bin(x)
        by = chain.binners[1].local_bin(y)
        assert chain.get_bin((x, y)) == np.ravel_multi_index((bx, by), chain.shape)


@pytest.mark.parametrize("coords", [(0.5,), (0.5, 0.5, 0.5), [], {"x": 1.0}, {"y": 1.0}])
def test_chain_range_error(chain, coords):
    with pytest.raises(RangeError):
        chain.get_bin(coords)


def test_chain_get_bins(chain):
    rng = np.random.default_rng(7)
    x = rng.uniform(-1, 3, size=300)
    y = rng.uniform(-1, 4, size=300)
    expected = [chain.get_bin((a, b)) for a, b in zip(x, y)]
    np.testing.assert_array_equal(chain.get_bins([x, y]), expected)
    np.testing.assert_array_equal(chain.get_bins({"x": x, "y": y}), expected)
    with pytest.raises(RangeError):
        chain.get_bins([x])


def test_chain_copy(chain):
    for other in (chain.copy(), copy.deepcopy(chain)):
        assert other == chain
        assert other is not chain
        for a, b in zip(other.binners, chain.binners):
            assert a == b
            assert a is not b


def test_chain_three_dims():
    chain = BinnerChain.from_axes(
        [Axis("a", 1, 0.0, 1.0), Axis("b", 2, 0.0, 1.0), Axis("c", 3, 0.0, 1.0)]
    )
    assert chain.shape == (3, 4, 5)
    # a -> 1, b -> 2, c -> 3
    assert chain.get_bin((0.5, 0.75, 0.9)) == (1 * 4 + 2) * 5 + 3


@pytest.mark.parametrize(
    "low, high, x, expected",
    [
        (-math.inf, math.inf, 0.0, 1),
        (-math.inf, math.inf, -1e300, 1),
        (-math.inf, 0.0, -5.0, 1),
        (-math.inf, 0.0, 0.0, 5),
        (0.0, math.inf, 5.0, 1),
        (0.0, math.inf, -1.0, 0),
        (-1e308, 1e308, 9e307, 4),
        (-1e308, 1e308, -9e307, 1),
        (-1e308, 1e308, 0.0, 3),
        (-1e308, 1e308, 1e308, 5),
    ],
)
def test_extreme_bounds(low, high, x, expected):
    b = LinearBinner(low, high, 4)
    assert b.local_bin(x) == expected
    assert b.local_bins(np.array([x]))[0] == expected


@pytest.mark.parametrize("low, high", [(-math.inf, math.inf), (-1e308, 1e308)])
def test_extreme_bounds_fill(low, high):
    from gridhist import Histogram

    xs = [0.0, 9e307, -9e307, math.nan]
    h = Histogram(("x", 4, low, high))
    for x in xs:
        h.fill(x)
    control = Histogram(("x", 4, low, high)).fill_array(np.array(xs))
    np.testing.assert_array_equal(h.values(flow=True), control.values(flow=True))
    assert h.sum(flow=True) == 4.0
