"""Shared fixtures for the spread model tests."""

import numpy as np
import pytest

from pestspread.core.hosts import HostPools
from pestspread.core.raster import Raster


class FixedKernel:
    """Kernel sending every disperser to the same cell, without random draws."""

    def __init__(self, row, col):
        self.row = row
        self.col = col
        self.calls = []

    def __call__(self, generator, row, col):
        self.calls.append((row, col))
        return self.row, self.col


class StubGenerator:
    """Generator whose uniform draws always return the same value."""

    def __init__(self, value=0.0):
        self.value = value
        self.draws = 0

    def random(self):
        self.draws += 1
        return self.value


@pytest.fixture
def fixed_kernel():
    return FixedKernel


@pytest.fixture
def stub_generator():
    return StubGenerator


@pytest.fixture
def landscape():
    """Factory for a uniform landscape with infections in the centre cell."""
    def make(rows=5, cols=5, hosts=100, seed_infected=5, **kwargs):
        susceptible = np.full((rows, cols), hosts)
        infected = np.zeros((rows, cols), dtype=int)
        pools = HostPools.from_arrays(susceptible, infected,
                                      total_plants=np.full((rows, cols), hosts),
                                      **kwargs)
        pools.seed_infection(rows // 2, cols // 2, seed_infected)
        return pools
    return make


@pytest.fixture
def grid():
    """Factory for an integer raster from nested lists."""
    def make(values, ew_res=1, ns_res=1):
        return Raster.from_list(values, ew_res=ew_res, ns_res=ns_res)
    return make
