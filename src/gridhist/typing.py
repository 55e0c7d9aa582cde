from __future__ import annotations

from typing import Mapping, Sequence, Union

from dask.array.core import Array
from numpy.typing import ArrayLike

Number = Union[int, float]
CoordArg = Union[Number, Sequence[Number], Mapping[str, Number]]

ColumnType = Union[ArrayLike, Array]
