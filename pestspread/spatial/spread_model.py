"""
Spread Model Driver
===================
Runs the spread engine step by step over a landscape of host pools
Decides when each engine operation happens and records the results
"""

import logging
import pandas as pd
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Union

from ..core.hosts import Compartment, HostPools
from ..core.params import ModelType, SpreadParameters, model_type_from_string
from ..core.raster import Raster
from ..core.simulation import DispersalKernel, Simulation
from .movement import MovementSchedule

logger = logging.getLogger(__name__)


@dataclass
class SpreadConfig:
    """Configuration for a spread model run"""
    num_steps: int = 52
    steps_per_year: int = 52

    model_type: Union[str, ModelType] = ModelType.SUSCEPTIBLE_INFECTED
    latency_period: int = 0

    parameters: SpreadParameters = field(default_factory=SpreadParameters)

    # Step within each year at which removal and mortality happen
    lethal_temperature_step: int = 0
    mortality_step: Optional[int] = None  # None = last step of the year

    # Keep a per-cell snapshot after every step
    record_cells: bool = False

    # Random seed
    seed: Optional[int] = None

    def __post_init__(self):
        self.model_type = model_type_from_string(self.model_type)
        if self.steps_per_year <= 0:
            raise ValueError(f"Steps per year must be positive, got {self.steps_per_year}")
        if self.mortality_step is None:
            self.mortality_step = self.steps_per_year - 1
        for name in ('lethal_temperature_step', 'mortality_step'):
            value = getattr(self, name)
            if not 0 <= value < self.steps_per_year:
                raise ValueError(
                    f"{name} must be within the year (0-{self.steps_per_year - 1}), got {value}"
                )


GridSeries = Union[Raster, Sequence[Raster], None]


def _grid_at(grids: GridSeries, index: int) -> Optional[Raster]:
    """Single grid used at every index, or the index-th grid of a series"""
    if grids is None or isinstance(grids, Raster):
        return grids
    return grids[index]


class SpreadModel:
    """
    Step-by-step driver of the spread engine

    Each step runs, in order: lethal temperature removal (once a year),
    host movement, disperser generation, dispersal with infection,
    mortality (once a year) and recording.
    """

    def __init__(self,
                 config: SpreadConfig,
                 hosts: HostPools,
                 dispersal_kernel: DispersalKernel,
                 weather_coefficients: GridSeries = None,
                 temperatures: GridSeries = None,
                 movements: Optional[MovementSchedule] = None):
        """
        Initialize spread model

        Args:
            config: Run configuration
            hosts: Host pools of the landscape (mutated by the run)
            dispersal_kernel: Kernel used for every disperser
            weather_coefficients: One grid, or one grid per step
            temperatures: One grid, or one grid per year
            movements: Scheduled host movements
        """
        if hosts.model_type != config.model_type:
            raise ValueError(
                f"Host pools are set up for {hosts.model_type.value}, "
                f"configuration uses {config.model_type.value}"
            )
        params = config.parameters
        if params.use_weather and weather_coefficients is None:
            raise ValueError("Weather is enabled but no weather coefficients were provided")
        if params.use_lethal_temperature and temperatures is None:
            raise ValueError("Lethal temperature is enabled but no temperatures were provided")

        self.config = config
        self.params = params
        self.hosts = hosts
        self.kernel = dispersal_kernel
        self.weather_coefficients = weather_coefficients
        self.temperatures = temperatures
        self.movements = movements

        self.simulation = Simulation(
            config.seed,
            hosts.rows,
            hosts.cols,
            model_type=config.model_type,
            latency_period=config.latency_period,
        )

        # Tracking
        self.current_step = 0
        self.history: List[Dict] = []
        self.cell_history: List[pd.DataFrame] = []

    @property
    def current_year(self) -> int:
        return self.current_step // self.config.steps_per_year

    def step(self):
        """Execute one step of the spread model"""
        config = self.config
        params = self.params
        hosts = self.hosts
        step_in_year = self.current_step % config.steps_per_year
        removed = 0
        died = 0

        # 1. Cold die-off of the pathogen
        if params.use_lethal_temperature and step_in_year == config.lethal_temperature_step:
            removed = self.simulation.remove(
                hosts.infected,
                hosts.susceptible,
                _grid_at(self.temperatures, self.current_year),
                params.lethal_temperature,
                exposed=hosts.exposed,
            )

        # 2. Host movement
        if self.movements is not None:
            self.movements.apply(self.simulation, hosts, self.current_step)

        # 3. Dispersers
        weather = _grid_at(self.weather_coefficients, self.current_step) if params.use_weather else None
        dispersers = self.simulation.generate(
            hosts.dispersers,
            hosts.infected,
            params.reproductive_rate,
            weather=params.use_weather,
            weather_coefficient=weather,
        )

        # 4. Dispersal, S -> E or S -> I, and E -> I
        established = self.simulation.disperse_and_infect(
            hosts.dispersers,
            hosts.susceptible,
            hosts.exposed,
            hosts.infected,
            hosts.current_mortality_tracker,
            hosts.total_plants,
            hosts.outside_dispersers,
            self.kernel,
            weather=params.use_weather,
            weather_coefficient=weather,
        )

        # 5. Host mortality, then a new cohort for next year's infections
        if params.use_mortality and step_in_year == config.mortality_step:
            died = self.simulation.mortality(
                hosts.infected,
                params.mortality_rate,
                self.current_year,
                params.first_mortality_year,
                hosts.mortality,
                hosts.mortality_tracker,
            )
        if step_in_year == config.steps_per_year - 1:
            hosts.start_mortality_cohort()

        # 6. Record state
        self._record_state(dispersers, established, removed, died)

        self.current_step += 1

    def _record_state(self, dispersers: int, established: int, removed: int, died: int):
        """Record current state"""
        counts = self.hosts.get_state_counts()
        record = {
            'step': self.current_step,
            'year': self.current_year,
            'S': counts[Compartment.SUSCEPTIBLE],
            'E': counts[Compartment.EXPOSED],
            'I': counts[Compartment.INFECTED],
            'mortality': counts[Compartment.DEAD],
            'total_plants': self.hosts.total_plants.sum(),
            'dispersers': dispersers,
            'established': established,
            'outside': len(self.hosts.outside_dispersers),
            'removed': removed,
            'died': died,
            'n_infected_cells': int((self.hosts.infected.values > 0).sum()),
        }
        self.history.append(record)

        if self.config.record_cells:
            snapshot = self.hosts.to_frame()
            snapshot.insert(0, 'step', self.current_step)
            self.cell_history.append(snapshot)

    def run(self) -> pd.DataFrame:
        """Run the remaining steps and return the time series"""
        logger.info(
            "Spread model: %d x %d cells, %s, %d steps",
            self.hosts.rows, self.hosts.cols, self.config.model_type.value, self.config.num_steps,
        )
        while self.current_step < self.config.num_steps:
            self.step()
            rec = self.history[-1]
            if rec['step'] % self.config.steps_per_year == 0:
                logger.info(
                    "Step %4d: S=%d, E=%d, I=%d, dead=%d, infected cells=%d",
                    rec['step'], rec['S'], rec['E'], rec['I'], rec['mortality'],
                    rec['n_infected_cells'],
                )
        return self.get_results()

    def get_results(self) -> pd.DataFrame:
        """Get aggregate results"""
        return pd.DataFrame(self.history)

    def get_cell_results(self) -> pd.DataFrame:
        """Get cell-level results"""
        if not self.cell_history:
            return pd.DataFrame()
        return pd.concat(self.cell_history, ignore_index=True)
