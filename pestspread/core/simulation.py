"""
Spread Simulation Engine
========================
Stochastic pest and pathogen spread on a grid of host populations

The engine owns one seeded random generator and the grid dimensions.
Every grid is owned by the caller and mutated in place. Timing of the
steps (which operation runs when) is left to the caller.

Random draws happen in row-major cell order, then per disperser, then
per movement record. Keeping that order is what makes a run with the
same seed and the same calls reproducible.
"""

import logging
import numpy as np
from typing import Callable, List, MutableSequence, Optional, Sequence, Tuple

from .cohorts import ExposedCohorts
from .params import ModelType, model_type_from_string
from .raster import as_array

logger = logging.getLogger(__name__)

# kernel(generator, row, col) -> (row, col)
DispersalKernel = Callable[[np.random.Generator, int, int], Tuple[int, int]]


class Simulation:
    """
    Mechanics of the spread model: generate, disperse, infect, remove,
    mortality and host movement
    """

    def __init__(self,
                 random_seed: int,
                 rows: int,
                 cols: int,
                 model_type=ModelType.SUSCEPTIBLE_INFECTED,
                 latency_period: int = 0):
        """
        Initialize simulation and seed its random generator

        The same generator is used by every stochastic operation and is
        seeded only here. Grids passed to the operations must have at
        least rows x cols cells; only that part of them is processed.

        Args:
            random_seed: Seed of the random generator
            rows: Number of rows
            cols: Number of columns
            model_type: SI or SEI (enum or recognized name)
            latency_period: Steps from exposure to infection (SEI only)
        """
        if latency_period < 0:
            raise ValueError(f"Latency period must be non-negative, got {latency_period}")
        self.rows = rows
        self.cols = cols
        self.model_type = model_type_from_string(model_type)
        self.latency_period = latency_period
        self.generator = np.random.default_rng(random_seed)

    def random_state(self) -> dict:
        """Snapshot of the generator state, usable with set_random_state()"""
        return self.generator.bit_generator.state

    def set_random_state(self, state: dict):
        self.generator.bit_generator.state = state

    def _cells(self, grid) -> np.ndarray:
        """Modeled part of a grid as an ndarray view"""
        return as_array(grid)[:self.rows, :self.cols]

    def _weather_cells(self, weather: bool, weather_coefficient) -> Optional[np.ndarray]:
        if not weather:
            return None
        if weather_coefficient is None:
            raise ValueError("Weather is enabled but no weather coefficient was provided")
        return self._cells(weather_coefficient)

    def _is_sei(self) -> bool:
        if self.model_type == ModelType.SUSCEPTIBLE_EXPOSED_INFECTED:
            return True
        if self.model_type == ModelType.SUSCEPTIBLE_INFECTED:
            return False
        raise RuntimeError(f"Unknown model type {self.model_type!r} in Simulation")

    def remove(self,
               infected,
               susceptible,
               temperature,
               lethal_temperature: float,
               exposed: Optional[Sequence] = None) -> int:
        """
        Return hosts to susceptible where it is too cold for the pathogen

        Every cell with temperature strictly below the lethal temperature
        loses all its infected (and exposed, when given) hosts to the
        susceptible pool.

        Returns:
            Number of hosts moved back to susceptible
        """
        cold = self._cells(temperature) < lethal_temperature
        susceptible_cells = self._cells(susceptible)
        infected_cells = self._cells(infected)

        removed = int(infected_cells[cold].sum())
        susceptible_cells[cold] += infected_cells[cold]
        infected_cells[cold] = 0

        if exposed is not None:
            for cohort in exposed:
                cohort_cells = self._cells(cohort)
                removed += int(cohort_cells[cold].sum())
                susceptible_cells[cold] += cohort_cells[cold]
                cohort_cells[cold] = 0

        logger.debug("Lethal temperature removed %d hosts in %d cells", removed, int(cold.sum()))
        return removed

    def mortality(self,
                  infected,
                  mortality_rate: float,
                  current_year: int,
                  first_mortality_year: int,
                  mortality,
                  mortality_tracker: Sequence) -> int:
        """
        Kill a fraction of each yearly cohort of infected hosts

        Cohorts 0 to current_year - first_mortality_year each lose
        floor(mortality_rate * cohort) hosts per cell. The dead are added
        to mortality and taken from infected, which never goes below zero.

        Args:
            infected: Currently infected hosts
            mortality_rate: Fraction of a cohort dying per call
            current_year: Year of the simulation
            first_mortality_year: First year in which hosts die
            mortality: Cumulative dead hosts
            mortality_tracker: Yearly cohorts of newly infected hosts, oldest first

        Returns:
            Number of hosts that died
        """
        if current_year < first_mortality_year:
            return 0
        max_year_index = current_year - first_mortality_year
        infected_cells = self._cells(infected)
        mortality_cells = self._cells(mortality)

        died = 0
        for year_index in range(min(max_year_index + 1, len(mortality_tracker))):
            cohort = self._cells(mortality_tracker[year_index])
            dying = np.where(cohort > 0, np.floor(mortality_rate * cohort), 0).astype(cohort.dtype)
            cohort -= dying
            mortality_cells += dying
            infected_cells -= np.where(infected_cells > 0, np.minimum(dying, infected_cells), 0)
            died += int(dying.sum())

        logger.debug("Mortality in year %d removed %d hosts", current_year, died)
        return died

    def movement(self,
                 infected,
                 susceptible,
                 mortality_tracker,
                 total_plants,
                 step: int,
                 last_index: int,
                 movements: Sequence[Sequence[int]],
                 movement_schedule: Sequence[int],
                 exposed: Optional[Sequence] = None) -> int:
        """
        Move hosts between cells for the records scheduled at this step

        Records are processed from last_index on and must be sorted by
        their scheduled step. Processing stops at the first record not
        scheduled for this step.

        Exposed hosts stay in place. When exposed cohorts are given, the
        moved count is capped at the source capacity minus its exposed
        hosts, so the plants they occupy stay with them.

        The mortality tracker is accepted for symmetry with the other
        operations and is not modified.

        Args:
            infected: Currently infected hosts
            susceptible: Currently susceptible hosts
            mortality_tracker: Hosts infected in the current cohort
            total_plants: Host capacity per cell
            step: Current step of the simulation
            last_index: First record not processed yet
            movements: Records of row_from, col_from, row_to, col_to, hosts
            movement_schedule: Step at which each record is applied
            exposed: Exposed cohorts (SEI only)

        Returns:
            Index of the first unprocessed record (len(movements) when done)
        """
        if len(movements) != len(movement_schedule):
            raise ValueError(
                f"Got {len(movements)} movements but {len(movement_schedule)} schedule entries"
            )
        infected_cells = self._cells(infected)
        susceptible_cells = self._cells(susceptible)
        plant_cells = self._cells(total_plants)
        exposed_cells = [self._cells(cohort) for cohort in exposed] if exposed is not None else []

        for index in range(last_index, len(movements)):
            if movement_schedule[index] != step:
                return index
            row_from, col_from, row_to, col_to, hosts = (int(v) for v in movements[index])
            if hosts < 0:
                raise ValueError(f"Movement record {index} has a negative host count: {hosts}")

            capacity = int(plant_cells[row_from, col_from])
            source_exposed = sum(int(cells[row_from, col_from]) for cells in exposed_cells)
            total_moved = min(hosts, capacity - source_exposed)
            source_infected = int(infected_cells[row_from, col_from])
            source_susceptible = int(susceptible_cells[row_from, col_from])
            if total_moved <= 0:
                continue

            if source_infected > 0 and source_susceptible > 0:
                infected_ratio = source_infected / capacity
                infected_mean = int(total_moved * infected_ratio)
                infected_moved = 0
                if infected_mean > 0:
                    infected_moved = int(self.generator.poisson(infected_mean))
                infected_moved = min(infected_moved, source_infected, total_moved)
                susceptible_moved = min(total_moved - infected_moved, source_susceptible)
                # Infected hosts make up what the susceptible pool could not
                shortfall = total_moved - infected_moved - susceptible_moved
                infected_moved += min(shortfall, source_infected - infected_moved)
            elif source_infected > 0:
                infected_moved = min(total_moved, source_infected)
                susceptible_moved = 0
            elif source_susceptible > 0:
                infected_moved = 0
                susceptible_moved = min(total_moved, source_susceptible)
            else:
                continue

            infected_cells[row_from, col_from] -= infected_moved
            susceptible_cells[row_from, col_from] -= susceptible_moved
            plant_cells[row_from, col_from] -= total_moved
            infected_cells[row_to, col_to] += infected_moved
            susceptible_cells[row_to, col_to] += susceptible_moved
            plant_cells[row_to, col_to] += total_moved
            logger.debug(
                "Moved %d hosts (%d infected) from (%d, %d) to (%d, %d)",
                total_moved, infected_moved, row_from, col_from, row_to, col_to,
            )
        return len(movements)

    def generate(self,
                 dispersers,
                 infected,
                 reproductive_rate: float,
                 weather: bool = False,
                 weather_coefficient=None) -> int:
        """
        Generate dispersers from infected hosts

        Each infected host produces Poisson(lambda) dispersers, where
        lambda is the reproductive rate, multiplied by the cell's weather
        coefficient when weather is used. Cells without infected hosts
        get zero dispersers and consume no random draws.

        Args:
            dispersers: Output grid (existing values are overwritten)
            infected: Currently infected hosts
            reproductive_rate: Dispersers per infected host
            weather: Whether to use the weather coefficient
            weather_coefficient: Spatially explicit weather coefficient

        Returns:
            Total number of dispersers generated
        """
        disperser_cells = self._cells(dispersers)
        infected_cells = self._cells(infected)
        weather_cells = self._weather_cells(weather, weather_coefficient)

        total = 0
        for i in range(self.rows):
            for j in range(self.cols):
                hosts = int(infected_cells[i, j])
                if hosts > 0:
                    lambda_param = reproductive_rate
                    if weather_cells is not None:
                        lambda_param = reproductive_rate * weather_cells[i, j]
                    # One draw per infected host
                    count = int(self.generator.poisson(lambda_param, size=hosts).sum())
                    disperser_cells[i, j] = count
                    total += count
                else:
                    disperser_cells[i, j] = 0

        logger.debug("Generated %d dispersers", total)
        return total

    def disperse(self,
                 dispersers,
                 susceptible,
                 exposed_or_infected,
                 mortality_tracker,
                 total_plants,
                 outside_dispersers: MutableSequence[Tuple[int, int]],
                 dispersal_kernel: DispersalKernel,
                 weather: bool = False,
                 weather_coefficient=None) -> int:
        """
        Move dispersers with the kernel and establish them on susceptible hosts

        Depending on what is passed as exposed_or_infected, this is the
        S to E step (SEI) or the S to I step (SI). In the SI model the
        mortality tracker is also incremented for every new infection;
        in SEI that happens later in infect().

        A disperser landing on a cell with susceptible hosts establishes
        with probability susceptible / total_plants, multiplied by the
        weather coefficient of the source cell when weather is used.
        Dispersers landing outside of the grid are appended to
        outside_dispersers.

        Args:
            dispersers: Dispersing individuals ready to be dispersed
            susceptible: Susceptible hosts
            exposed_or_infected: Exposed or infected hosts
            mortality_tracker: Newly infected hosts
            total_plants: All host plants in the landscape
            outside_dispersers: Landing cells outside of the grid
            dispersal_kernel: Callable (generator, row, col) -> (row, col)
            weather: Whether the weather coefficient is used
            weather_coefficient: Weather coefficient for each cell

        Returns:
            Number of established dispersers
        """
        track_mortality = not self._is_sei()
        disperser_cells = self._cells(dispersers)
        susceptible_cells = self._cells(susceptible)
        receiving_cells = self._cells(exposed_or_infected)
        tracker_cells = self._cells(mortality_tracker)
        plant_cells = self._cells(total_plants)
        weather_cells = self._weather_cells(weather, weather_coefficient)

        established = 0
        for i in range(self.rows):
            for j in range(self.cols):
                count = int(disperser_cells[i, j])
                for _ in range(count):
                    row, col = dispersal_kernel(self.generator, i, j)
                    if row < 0 or row >= self.rows or col < 0 or col >= self.cols:
                        outside_dispersers.append((row, col))
                        continue
                    hosts = int(susceptible_cells[row, col])
                    if hosts <= 0:
                        continue
                    capacity = plant_cells[row, col]
                    if capacity <= 0:
                        raise ValueError(
                            f"Cell ({row}, {col}) has {hosts} susceptible hosts "
                            f"but total plants is {capacity}"
                        )
                    probability = hosts / capacity
                    if weather_cells is not None:
                        probability *= weather_cells[i, j]
                    if self.generator.random() < probability:
                        receiving_cells[row, col] += 1
                        susceptible_cells[row, col] -= 1
                        if track_mortality:
                            tracker_cells[row, col] += 1
                        established += 1

        logger.debug("Established %d dispersers", established)
        return established

    def infect(self, exposed: Sequence, infected, mortality_tracker) -> int:
        """
        Infect exposed hosts (E to I step)

        Applicable to the SEI model, no-operation otherwise. Once the
        queue holds latency_period + 1 cohorts, the oldest cohort is added
        to infected and the mortality tracker, zeroed, and becomes the
        newest cohort. With fewer cohorts nothing happens.

        Args:
            exposed: Exposed cohorts, oldest first (ExposedCohorts or list)
            infected: Infected hosts
            mortality_tracker: Newly infected hosts

        Returns:
            Number of hosts that became infected
        """
        if not self._is_sei():
            return 0
        if isinstance(exposed, ExposedCohorts) and exposed.latency_period != self.latency_period:
            raise ValueError(
                f"Exposed cohorts use latency period {exposed.latency_period}, "
                f"simulation uses {self.latency_period}"
            )
        if len(exposed) < self.latency_period + 1:
            return 0

        oldest = self._cells(exposed[0])
        infected_now = int(oldest.sum())
        infected_cells = self._cells(infected)
        tracker_cells = self._cells(mortality_tracker)
        infected_cells += oldest
        tracker_cells += oldest
        if isinstance(exposed, ExposedCohorts):
            exposed.rotate()
        else:
            oldest.fill(0)
            exposed.append(exposed.pop(0))

        logger.debug("%d exposed hosts became infected", infected_now)
        return infected_now

    def disperse_and_infect(self,
                            dispersers,
                            susceptible,
                            exposed: Optional[Sequence],
                            infected,
                            mortality_tracker,
                            total_plants,
                            outside_dispersers: MutableSequence[Tuple[int, int]],
                            dispersal_kernel: DispersalKernel,
                            weather: bool = False,
                            weather_coefficient=None) -> int:
        """
        Disperse, expose, and infect based on dispersers

        Wraps disperse() and infect() for both models. In SEI, new
        establishments go to the newest exposed cohort and infect() runs
        afterwards; in SI they go directly to infected.

        Returns:
            Number of established dispersers
        """
        if self._is_sei():
            if exposed is None or len(exposed) == 0:
                raise ValueError("The SEI model needs at least one exposed cohort")
            receiving = exposed[-1]
        else:
            receiving = infected
        established = self.disperse(
            dispersers,
            susceptible,
            receiving,
            mortality_tracker,
            total_plants,
            outside_dispersers,
            dispersal_kernel,
            weather=weather,
            weather_coefficient=weather_coefficient,
        )
        if self._is_sei():
            self.infect(exposed, infected, mortality_tracker)
        return established
