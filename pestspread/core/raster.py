"""
Raster Grid
===========
Dense 2D grid of host counts or coefficients with cell resolution metadata
Every compartment of the spread model is stored in one of these
"""

import numpy as np
from typing import Iterable, Sequence, Tuple, Union


Number = Union[int, float]


def as_array(grid) -> np.ndarray:
    """
    Return the ndarray behind a grid without copying

    Raster objects expose their buffer and ndarrays pass through
    unchanged. Anything else would need a copy, so in-place updates
    would be lost; it is rejected instead.
    """
    if isinstance(grid, Raster):
        return grid.values
    if isinstance(grid, np.ndarray):
        return grid
    raise ValueError(
        f"Grid must be a Raster or a numpy array, got {type(grid).__name__}"
    )


class Raster:
    """
    2D raster image supporting raster algebra

    Arithmetic is elementwise, so multiplying two rasters multiplies
    values at the same position rather than doing matrix algebra:

        a = Raster.from_list([[1, 2], [3, 4]])
        b = 2 * (a + 1)
    """

    def __init__(self,
                 rows: int,
                 cols: int,
                 ew_res: float = 1,
                 ns_res: float = 1,
                 value: Number = 0,
                 dtype=int):
        """
        Initialize raster

        Args:
            rows: Number of rows (north to south)
            cols: Number of columns (west to east)
            ew_res: West-east cell size
            ns_res: North-south cell size
            value: Initial value of every cell
            dtype: numpy dtype of the cells
        """
        if rows < 0 or cols < 0:
            raise ValueError(f"Invalid raster size: {rows} x {cols}")
        self.ew_res = ew_res
        self.ns_res = ns_res
        self.values = np.full((rows, cols), value, dtype=dtype)

    @classmethod
    def from_array(cls, array, ew_res: float = 1, ns_res: float = 1) -> "Raster":
        """Wrap a 2D array (copied) as a raster"""
        array = np.array(array)
        if array.ndim != 2:
            raise ValueError(f"Raster needs a 2D array, got {array.ndim}D")
        raster = cls(0, 0, ew_res, ns_res, dtype=array.dtype)
        raster.values = array
        return raster

    @classmethod
    def from_list(cls,
                  rows: Sequence[Sequence[Number]],
                  ew_res: float = 1,
                  ns_res: float = 1) -> "Raster":
        """Create raster from nested row lists, e.g. [[1, 2], [3, 4]]"""
        widths = {len(row) for row in rows}
        if len(widths) > 1:
            raise ValueError("All rows must have the same number of columns")
        return cls.from_array(rows, ew_res, ns_res)

    @classmethod
    def like(cls, other: "Raster", value: Number = 0, dtype=None) -> "Raster":
        """New raster with the size and resolution of other, filled with value"""
        return cls(other.rows, other.cols, other.ew_res, other.ns_res,
                   value=value, dtype=dtype or other.values.dtype)

    @property
    def rows(self) -> int:
        return self.values.shape[0]

    @property
    def cols(self) -> int:
        return self.values.shape[1]

    @property
    def shape(self) -> Tuple[int, int]:
        return self.values.shape

    @property
    def dtype(self):
        return self.values.dtype

    def __getitem__(self, index):
        return self.values[index]

    def __setitem__(self, index, value):
        self.values[index] = value

    def fill(self, value: Number):
        self.values.fill(value)

    def zero(self):
        self.values.fill(0)

    def copy(self) -> "Raster":
        return Raster.from_array(self.values, self.ew_res, self.ns_res)

    def sum(self) -> Number:
        return self.values.sum().item()

    def _check_shape(self, other: "Raster"):
        if self.shape != other.shape:
            raise ValueError(
                f"The size of one raster {self.shape} does not match "
                f"the other one {other.shape}"
            )

    def _operand(self, other):
        if isinstance(other, Raster):
            self._check_shape(other)
            return other.values
        return other

    def _wrap(self, values: np.ndarray) -> "Raster":
        raster = Raster(0, 0, self.ew_res, self.ns_res, dtype=values.dtype)
        raster.values = values
        return raster

    # Raster algebra

    def __add__(self, other):
        return self._wrap(self.values + self._operand(other))

    def __sub__(self, other):
        return self._wrap(self.values - self._operand(other))

    def __mul__(self, other):
        return self._wrap(self.values * self._operand(other))

    def __truediv__(self, other):
        return self._wrap(self.values / self._operand(other))

    def __radd__(self, other):
        return self.__add__(other)

    def __rmul__(self, other):
        return self.__mul__(other)

    def __pow__(self, exponent: float):
        return self._wrap(np.power(self.values, exponent))

    def __iadd__(self, other):
        self.values[...] = self.values + self._operand(other)
        return self

    def __isub__(self, other):
        self.values[...] = self.values - self._operand(other)
        return self

    def __imul__(self, other):
        # Integer rasters scaled by a float keep their integer type
        self.values[...] = self.values * self._operand(other)
        return self

    def __itruediv__(self, other):
        self.values[...] = self.values / self._operand(other)
        return self

    def sqrt(self) -> "Raster":
        return self._wrap(np.sqrt(self.values))

    def __eq__(self, other):
        if not isinstance(other, Raster):
            return NotImplemented
        return self.shape == other.shape and bool(np.array_equal(self.values, other.values))

    def __ne__(self, other):
        result = self.__eq__(other)
        if result is NotImplemented:
            return result
        return not result

    __hash__ = None

    def __iter__(self) -> Iterable[np.ndarray]:
        return iter(self.values)

    def __repr__(self) -> str:
        return (f"Raster(rows={self.rows}, cols={self.cols}, "
                f"ew_res={self.ew_res}, ns_res={self.ns_res})")

    def __str__(self) -> str:
        lines = [", ".join(str(v) for v in row) for row in self.values.tolist()]
        return "[[" + "],\n [".join(lines) + "]]\n"
