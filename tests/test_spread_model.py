"""Tests for host pools, scheduled movement and the spread model driver."""

import pandas as pd
import pytest

from pestspread.core.hosts import Compartment, HostPools
from pestspread.core.params import ModelType, SpreadParameters
from pestspread.core.raster import Raster
from pestspread.core.simulation import Simulation
from pestspread.spatial.kernels import RadialDispersalKernel
from pestspread.spatial.movement import MovementRecord, MovementSchedule, read_movements
from pestspread.spatial.spread_model import SpreadConfig, SpreadModel


def make_kernel():
    return RadialDispersalKernel(ew_res=1, ns_res=1, scale=1.5)


# ═══════════════════════════════════════════════════════════════════════
# HOST POOLS
# ═══════════════════════════════════════════════════════════════════════

class TestHostPools:
    def test_seed_infection(self, landscape):
        hosts = landscape(rows=3, cols=3, hosts=10, seed_infected=4)
        assert hosts.infected[1, 1] == 4
        assert hosts.susceptible[1, 1] == 6
        assert hosts.current_mortality_tracker[1, 1] == 4

    def test_seed_infection_capped(self, landscape):
        hosts = landscape(rows=1, cols=1, hosts=3, seed_infected=10)
        assert hosts.infected[0, 0] == 3

    def test_seed_infection_invalid_cell(self, landscape):
        hosts = landscape(rows=2, cols=2)
        with pytest.raises(ValueError):
            hosts.seed_infection(5, 0, 1)

    def test_sei_pools_have_full_queue(self, landscape):
        hosts = landscape(model_type="SEI", latency_period=3)
        assert hosts.exposed is not None
        assert len(hosts.exposed) == 4

    def test_shape_mismatch(self):
        with pytest.raises(ValueError):
            HostPools(Raster(2, 2), Raster(2, 3), Raster(2, 2))

    def test_state_counts(self, landscape):
        hosts = landscape(rows=2, cols=2, hosts=10, seed_infected=3)
        counts = hosts.get_state_counts()
        assert counts[Compartment.SUSCEPTIBLE] == 37
        assert counts[Compartment.INFECTED] == 3
        assert counts[Compartment.EXPOSED] == 0

    def test_frame_has_one_row_per_cell(self, landscape):
        frame = landscape(rows=2, cols=3).to_frame()
        assert len(frame) == 6
        assert list(frame.columns[:2]) == ['row', 'col']

    def test_capacity_check(self, landscape):
        hosts = landscape(rows=2, cols=2, hosts=10)
        assert hosts.over_capacity_cells() == []
        hosts.susceptible[0, 0] = 11
        assert hosts.over_capacity_cells() == [(0, 0)]

    def test_summary(self, landscape):
        text = landscape(rows=2, cols=2, hosts=10, seed_infected=3).summary()
        assert "Model type: SI" in text
        assert "Dimensions: 2 x 2 = 4 cells" in text
        assert "INFECTED: 3" in text
        assert "SUSCEPTIBLE: 37" in text


# ═══════════════════════════════════════════════════════════════════════
# MOVEMENT SCHEDULE
# ═══════════════════════════════════════════════════════════════════════

class TestMovementSchedule:
    def test_read_movements_sorts_by_step(self):
        frame = pd.DataFrame({
            'row_from': [0, 1], 'col_from': [0, 1], 'row_to': [1, 0],
            'col_to': [1, 0], 'hosts': [5, 6], 'step': [4, 2],
        })
        records, schedule = read_movements(frame)
        assert schedule == [2, 4]
        assert records[0] == MovementRecord(1, 1, 0, 0, 6)

    def test_missing_columns(self):
        with pytest.raises(ValueError):
            read_movements(pd.DataFrame({'row_from': [0]}))

    def test_unsorted_schedule_rejected(self):
        with pytest.raises(ValueError):
            MovementSchedule([(0, 0, 1, 1, 1), (0, 0, 1, 1, 1)], [3, 1])

    def test_cursor_resumes_between_steps(self, landscape):
        hosts = landscape(rows=2, cols=2, hosts=20, seed_infected=0)
        schedule = MovementSchedule([(0, 0, 1, 1, 5), (0, 0, 1, 1, 5), (0, 1, 1, 0, 5)],
                                    [1, 1, 3])
        sim = Simulation(1, 2, 2)
        assert schedule.apply(sim, hosts, 0) == 0
        assert schedule.apply(sim, hosts, 1) == 2
        assert schedule.last_index == 2
        assert schedule.apply(sim, hosts, 2) == 0
        assert schedule.apply(sim, hosts, 3) == 1
        assert schedule.exhausted
        assert hosts.total_plants[1, 1] == 30
        assert hosts.total_plants.sum() == 80

    def test_exposed_hosts_stay_at_source(self):
        hosts = HostPools.from_arrays([[5, 0]], [[0, 0]], total_plants=[[10, 0]],
                                      model_type="SEI", latency_period=0)
        hosts.exposed[0][0, 0] = 5
        schedule = MovementSchedule([(0, 0, 0, 1, 10)], [0])
        schedule.apply(Simulation(1, 1, 2, model_type="SEI"), hosts, 0)
        assert hosts.over_capacity_cells() == []
        assert hosts.total_plants[0, 0] == 5
        assert hosts.susceptible[0, 1] == 5


# ═══════════════════════════════════════════════════════════════════════
# SPREAD MODEL
# ═══════════════════════════════════════════════════════════════════════

class TestSpreadConfig:
    def test_model_type_parsed(self):
        config = SpreadConfig(model_type="SEI")
        assert config.model_type == ModelType.SUSCEPTIBLE_EXPOSED_INFECTED

    def test_mortality_step_defaults_to_end_of_year(self):
        assert SpreadConfig(steps_per_year=12).mortality_step == 11

    def test_step_outside_year(self):
        with pytest.raises(ValueError):
            SpreadConfig(steps_per_year=4, lethal_temperature_step=4)

    def test_invalid_model_type(self):
        with pytest.raises(ValueError):
            SpreadConfig(model_type="SIRS")


class TestSpreadModel:
    def _run(self, landscape, seed=42, **config_kwargs):
        model_type = config_kwargs.get('model_type', ModelType.SUSCEPTIBLE_INFECTED)
        hosts = landscape(model_type=model_type,
                          latency_period=config_kwargs.get('latency_period', 0))
        config = SpreadConfig(seed=seed, **config_kwargs)
        model = SpreadModel(config, hosts, make_kernel())
        return model, model.run()

    def test_si_run_spreads(self, landscape):
        model, results = self._run(landscape, num_steps=6, steps_per_year=3)
        assert len(results) == 6
        assert results['I'].iloc[-1] > 5
        assert (results['S'] + results['I']).iloc[-1] <= results['total_plants'].iloc[-1]
        assert not model.hosts.has_negative_counts()

    def test_same_seed_same_results(self, landscape):
        params = SpreadParameters(use_mortality=True, mortality_rate=0.2, first_mortality_year=1)
        _, first = self._run(landscape, num_steps=8, steps_per_year=4, parameters=params)
        _, second = self._run(landscape, num_steps=8, steps_per_year=4,
                              parameters=SpreadParameters(use_mortality=True, mortality_rate=0.2,
                                                          first_mortality_year=1))
        pd.testing.assert_frame_equal(first, second)

    def test_sei_run_respects_capacity(self, landscape):
        model, results = self._run(landscape, num_steps=8, steps_per_year=4,
                                   model_type="SEI", latency_period=2)
        assert results['E'].max() > 0
        assert model.hosts.over_capacity_cells() == []
        assert not model.hosts.has_negative_counts()

    def test_mortality_happens_after_first_year(self, landscape):
        params = SpreadParameters(use_mortality=True, mortality_rate=0.5, first_mortality_year=1)
        model, results = self._run(landscape, num_steps=8, steps_per_year=4, parameters=params)
        assert (results.loc[results['year'] == 0, 'died'] == 0).all()
        assert results['mortality'].iloc[-1] > 0
        assert len(model.hosts.mortality_tracker) == 3

    def test_lethal_temperature_stops_spread(self, landscape):
        hosts = landscape()
        params = SpreadParameters(use_lethal_temperature=True, lethal_temperature=-12.87)
        cold = Raster(5, 5, value=-30.0, dtype=float)
        model = SpreadModel(SpreadConfig(num_steps=3, steps_per_year=3, seed=1, parameters=params),
                            hosts, make_kernel(), temperatures=[cold])
        results = model.run()
        assert results['removed'].iloc[0] == 5
        assert (results['I'] == 0).all()
        assert (results['dispersers'] == 0).all()

    def test_zero_weather_generates_nothing(self, landscape):
        hosts = landscape()
        params = SpreadParameters(use_weather=True)
        weather = [Raster(5, 5, value=0.0, dtype=float) for _ in range(4)]
        model = SpreadModel(SpreadConfig(num_steps=4, steps_per_year=4, seed=1, parameters=params),
                            hosts, make_kernel(), weather_coefficients=weather)
        results = model.run()
        assert (results['dispersers'] == 0).all()
        assert results['I'].iloc[-1] == 5

    def test_missing_weather_rejected(self, landscape):
        with pytest.raises(ValueError):
            SpreadModel(SpreadConfig(parameters=SpreadParameters(use_weather=True)),
                        landscape(), make_kernel())

    def test_model_type_must_match_hosts(self, landscape):
        with pytest.raises(ValueError):
            SpreadModel(SpreadConfig(model_type="SEI"), landscape(), make_kernel())

    def test_movements_conserve_total_plants(self, landscape):
        hosts = landscape()
        before = hosts.total_plants.sum()
        frame = pd.DataFrame({
            'row_from': [2, 0], 'col_from': [2, 0], 'row_to': [0, 4],
            'col_to': [0, 4], 'hosts': [50, 500], 'step': [1, 2],
        })
        model = SpreadModel(SpreadConfig(num_steps=3, steps_per_year=3, seed=7),
                            hosts, make_kernel(), movements=MovementSchedule.from_frame(frame))
        results = model.run()
        assert (results['total_plants'] == before).all()
        assert model.movements.exhausted
        assert not hosts.has_negative_counts()

    def test_sei_movements_respect_capacity(self, landscape):
        hosts = landscape(model_type="SEI", latency_period=2)
        frame = pd.DataFrame({
            'row_from': [2, 2, 1, 2], 'col_from': [2, 2, 2, 1],
            'row_to': [0, 4, 3, 0], 'col_to': [0, 4, 3, 4],
            'hosts': [60, 60, 100, 100], 'step': [2, 3, 4, 5],
        })
        model = SpreadModel(SpreadConfig(num_steps=6, steps_per_year=6, seed=11,
                                         model_type="SEI", latency_period=2),
                            hosts, make_kernel(), movements=MovementSchedule.from_frame(frame))
        for _ in range(6):
            model.step()
            assert hosts.over_capacity_cells() == []
            assert not hosts.has_negative_counts()
        assert model.movements.exhausted

    def test_cell_results(self, landscape):
        hosts = landscape(rows=2, cols=2, seed_infected=1)
        model = SpreadModel(SpreadConfig(num_steps=2, steps_per_year=2, seed=3, record_cells=True),
                            hosts, make_kernel())
        model.run()
        cells = model.get_cell_results()
        assert len(cells) == 8
        assert set(cells['step']) == {0, 1}
