"""
Dispersal Kernels
=================
Distance and direction models moving one disperser from its source cell
Heavy-tailed: mostly short jumps, occasional long-distance dispersal
"""

import math
import numpy as np
from enum import Enum, IntEnum
from typing import Tuple
from scipy.stats import expon, halfcauchy


class Direction(IntEnum):
    """Compass direction in degrees (NONE means no prevailing wind)"""
    N = 0
    NE = 45
    E = 90
    SE = 135
    S = 180
    SW = 225
    W = 270
    NW = 315
    NONE = 360


_DIRECTION_NAMES = {
    "n": Direction.N, "north": Direction.N,
    "ne": Direction.NE, "northeast": Direction.NE,
    "e": Direction.E, "east": Direction.E,
    "se": Direction.SE, "southeast": Direction.SE,
    "s": Direction.S, "south": Direction.S,
    "sw": Direction.SW, "southwest": Direction.SW,
    "w": Direction.W, "west": Direction.W,
    "nw": Direction.NW, "northwest": Direction.NW,
    "none": Direction.NONE,
}


def direction_from_string(text: str) -> Direction:
    """Get direction from an abbreviation or full compass name"""
    try:
        return _DIRECTION_NAMES[text.strip().lower().replace("-", "").replace(" ", "")]
    except (KeyError, AttributeError):
        raise ValueError(f"Invalid direction '{text}' provided") from None


class DispersalKernelType(Enum):
    """Distance distribution of a radial kernel"""
    CAUCHY = "cauchy"
    EXPONENTIAL = "exponential"


def kernel_type_from_string(text: str) -> DispersalKernelType:
    try:
        return DispersalKernelType(text.strip().lower())
    except (ValueError, AttributeError):
        raise ValueError(f"Invalid dispersal kernel type '{text}' provided") from None


def _round_half_away(value: float) -> int:
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


class RadialDispersalKernel:
    """
    Kernel drawing a distance and an angle from the source cell

    Distance is |Cauchy(0, scale)| or Exponential(scale). The angle is
    uniform without wind, otherwise von Mises around the wind direction
    with concentration kappa. Angles are measured clockwise from north.
    """

    def __init__(self,
                 ew_res: float,
                 ns_res: float,
                 scale: float,
                 kernel_type=DispersalKernelType.CAUCHY,
                 direction=Direction.NONE,
                 kappa: float = 0.0):
        """
        Initialize kernel

        Args:
            ew_res: West-east cell size (same units as scale)
            ns_res: North-south cell size
            scale: Scale of the distance distribution
            kernel_type: Distance distribution (enum or name)
            direction: Prevailing wind direction (enum or name)
            kappa: Concentration around the wind direction
        """
        if scale <= 0:
            raise ValueError(f"Kernel scale must be positive, got {scale}")
        if ew_res <= 0 or ns_res <= 0:
            raise ValueError(f"Cell resolution must be positive, got {ew_res} x {ns_res}")
        if isinstance(kernel_type, str):
            kernel_type = kernel_type_from_string(kernel_type)
        if isinstance(direction, str):
            direction = direction_from_string(direction)
        self.ew_res = ew_res
        self.ns_res = ns_res
        self.scale = scale
        self.kernel_type = kernel_type
        self.direction = Direction(direction)
        self.kappa = kappa

    @property
    def is_directional(self) -> bool:
        return self.direction != Direction.NONE and self.kappa > 0

    def sample_distance(self, generator: np.random.Generator) -> float:
        if self.kernel_type == DispersalKernelType.CAUCHY:
            return abs(self.scale * generator.standard_cauchy())
        if self.kernel_type == DispersalKernelType.EXPONENTIAL:
            return generator.exponential(self.scale)
        raise RuntimeError(f"Unknown dispersal kernel type {self.kernel_type!r}")

    def sample_angle(self, generator: np.random.Generator) -> float:
        if self.is_directional:
            return generator.vonmises(math.radians(self.direction), self.kappa)
        return generator.uniform(0, 2 * math.pi)

    def project(self, row: int, col: int, distance: float, theta: float) -> Tuple[int, int]:
        """Cell reached by travelling distance at angle theta (north is up)"""
        row -= _round_half_away(distance * math.cos(theta) / self.ns_res)
        col += _round_half_away(distance * math.sin(theta) / self.ew_res)
        return row, col

    def __call__(self, generator: np.random.Generator, row: int, col: int) -> Tuple[int, int]:
        distance = self.sample_distance(generator)
        theta = self.sample_angle(generator)
        return self.project(row, col, distance, theta)

    def distance_density(self, distance):
        """Probability density of the dispersal distance"""
        if self.kernel_type == DispersalKernelType.CAUCHY:
            return halfcauchy.pdf(distance, scale=self.scale)
        return expon.pdf(distance, scale=self.scale)

    def __repr__(self) -> str:
        return (f"RadialDispersalKernel({self.kernel_type.value}, scale={self.scale}, "
                f"direction={self.direction.name}, kappa={self.kappa})")


class MixedDispersalKernel:
    """
    Mixture of a short and a long distance kernel

    With probability gamma the short kernel is used, otherwise the long
    one. The mixture selector is drawn before the chosen kernel's draws.
    """

    def __init__(self,
                 short: RadialDispersalKernel,
                 long: RadialDispersalKernel,
                 gamma: float):
        if not 0.0 <= gamma <= 1.0:
            raise ValueError(f"Mixture probability must be between 0 and 1, got {gamma}")
        self.short = short
        self.long = long
        self.gamma = gamma

    @classmethod
    def cauchy_mixture(cls,
                       ew_res: float,
                       ns_res: float,
                       short_scale: float,
                       long_scale: float,
                       gamma: float,
                       direction=Direction.NONE,
                       kappa: float = 0.0) -> "MixedDispersalKernel":
        """Two Cauchy kernels sharing resolution and wind settings"""
        return cls(
            RadialDispersalKernel(ew_res, ns_res, short_scale, DispersalKernelType.CAUCHY,
                                  direction, kappa),
            RadialDispersalKernel(ew_res, ns_res, long_scale, DispersalKernelType.CAUCHY,
                                  direction, kappa),
            gamma,
        )

    def __call__(self, generator: np.random.Generator, row: int, col: int) -> Tuple[int, int]:
        if generator.random() < self.gamma:
            return self.short(generator, row, col)
        return self.long(generator, row, col)

    def distance_density(self, distance):
        """Probability density of the mixed dispersal distance"""
        return (self.gamma * self.short.distance_density(distance)
                + (1 - self.gamma) * self.long.distance_density(distance))
