"""
Host Pools
==========
Bundles the compartment grids of one simulation run
The engine mutates these grids in place; this class only owns them
"""

import numpy as np
import pandas as pd
from enum import IntEnum
from typing import Dict, List, Optional, Tuple

from .cohorts import ExposedCohorts
from .params import ModelType, model_type_from_string
from .raster import Raster


class Compartment(IntEnum):
    """Host compartments tracked per cell"""
    SUSCEPTIBLE = 0
    EXPOSED = 1
    INFECTED = 2
    DEAD = 3


class HostPools:
    """
    Compartment grids for one landscape

    total_plants is the host capacity of each cell. Only host movement
    changes it; it is not recomputed from the compartments.
    """

    def __init__(self,
                 susceptible: Raster,
                 infected: Raster,
                 total_plants: Raster,
                 model_type=ModelType.SUSCEPTIBLE_INFECTED,
                 latency_period: int = 0):
        """
        Initialize host pools

        Args:
            susceptible: Susceptible hosts per cell
            infected: Infected hosts per cell
            total_plants: Host capacity per cell
            model_type: SI or SEI (enum or recognized name)
            latency_period: Steps from exposure to infection (SEI only)
        """
        for name, grid in (("infected", infected), ("total_plants", total_plants)):
            if grid.shape != susceptible.shape:
                raise ValueError(
                    f"Grid '{name}' has shape {grid.shape}, "
                    f"expected {susceptible.shape}"
                )
        self.model_type = model_type_from_string(model_type)
        self.susceptible = susceptible
        self.infected = infected
        self.total_plants = total_plants

        self.exposed: Optional[ExposedCohorts] = None
        if self.model_type == ModelType.SUSCEPTIBLE_EXPOSED_INFECTED:
            self.exposed = ExposedCohorts.zeros(latency_period, like=susceptible)

        # One cohort per year of newly infected hosts, newest last
        self.mortality_tracker: List[Raster] = [Raster.like(infected, 0)]
        self.mortality = Raster.like(infected, 0)
        self.dispersers = Raster.like(infected, 0)
        self.outside_dispersers: List[Tuple[int, int]] = []

    @classmethod
    def from_arrays(cls,
                    susceptible,
                    infected,
                    total_plants=None,
                    ew_res: float = 1,
                    ns_res: float = 1,
                    **kwargs) -> "HostPools":
        """
        Build host pools from plain 2D arrays

        When total_plants is missing, capacity is susceptible + infected.
        """
        susceptible = np.asarray(susceptible, dtype=int)
        infected = np.asarray(infected, dtype=int)
        if total_plants is None:
            total_plants = susceptible + infected
        return cls(
            Raster.from_array(susceptible, ew_res, ns_res),
            Raster.from_array(infected, ew_res, ns_res),
            Raster.from_array(np.asarray(total_plants, dtype=int), ew_res, ns_res),
            **kwargs,
        )

    @property
    def rows(self) -> int:
        return self.susceptible.rows

    @property
    def cols(self) -> int:
        return self.susceptible.cols

    @property
    def current_mortality_tracker(self) -> Raster:
        """Cohort receiving newly infected hosts this year"""
        return self.mortality_tracker[-1]

    def start_mortality_cohort(self) -> Raster:
        """Open a new yearly cohort of newly infected hosts"""
        cohort = Raster.like(self.infected, 0)
        self.mortality_tracker.append(cohort)
        return cohort

    def seed_infection(self, row: int, col: int, n_infected: int):
        """
        Move susceptible hosts of one cell to infected

        Args:
            row, col: Cell coordinates
            n_infected: Number of hosts to infect (capped at susceptible)
        """
        if not (0 <= row < self.rows and 0 <= col < self.cols):
            raise ValueError(f"Invalid cell coordinates: ({row}, {col})")
        n_to_infect = min(n_infected, int(self.susceptible[row, col]))
        self.susceptible[row, col] -= n_to_infect
        self.infected[row, col] += n_to_infect
        self.current_mortality_tracker[row, col] += n_to_infect

    def exposed_total(self) -> np.ndarray:
        if self.exposed is None:
            return np.zeros(self.susceptible.shape, dtype=int)
        return self.exposed.total()

    def get_state_counts(self) -> Dict[Compartment, int]:
        """Landscape totals per compartment"""
        return {
            Compartment.SUSCEPTIBLE: self.susceptible.sum(),
            Compartment.EXPOSED: int(self.exposed_total().sum()),
            Compartment.INFECTED: self.infected.sum(),
            Compartment.DEAD: self.mortality.sum(),
        }

    def over_capacity_cells(self) -> List[Tuple[int, int]]:
        """Cells where S + E + I exceeds the host capacity"""
        hosts = self.susceptible.values + self.infected.values + self.exposed_total()
        rows, cols = np.nonzero(hosts > self.total_plants.values)
        return list(zip(rows.tolist(), cols.tolist()))

    def has_negative_counts(self) -> bool:
        grids = [self.susceptible, self.infected, self.total_plants, self.mortality]
        grids.extend(self.mortality_tracker)
        if self.exposed is not None:
            grids.extend(self.exposed)
        return any((grid.values < 0).any() for grid in grids)

    def to_frame(self) -> pd.DataFrame:
        """One row per cell with its compartment counts"""
        rows, cols = np.indices(self.susceptible.shape)
        return pd.DataFrame({
            'row': rows.ravel(),
            'col': cols.ravel(),
            'S': self.susceptible.values.ravel(),
            'E': self.exposed_total().ravel(),
            'I': self.infected.values.ravel(),
            'total_plants': self.total_plants.values.ravel(),
            'mortality': self.mortality.values.ravel(),
        })

    def summary(self) -> str:
        """Return host pool summary statistics"""
        counts = self.get_state_counts()
        summary = f"Host Pools Summary\n"
        summary += f"=" * 50 + "\n"
        summary += f"Model type: {self.model_type.value}\n"
        summary += f"Dimensions: {self.rows} x {self.cols} = {self.rows * self.cols} cells\n"
        summary += f"Total hosts: {self.total_plants.sum():,}\n"
        summary += f"Infected cells: {int((self.infected.values > 0).sum())}\n"
        summary += f"\nCurrent state:\n"
        for compartment, count in counts.items():
            summary += f"  {compartment.name}: {count:,}\n"
        return summary
