"""Core spread engine components"""

from .raster import Raster, as_array
from .params import ModelType, SpreadParameters, model_type_from_string
from .cohorts import ExposedCohorts
from .hosts import Compartment, HostPools
from .simulation import Simulation

__all__ = [
    'Raster',
    'as_array',
    'ModelType',
    'SpreadParameters',
    'model_type_from_string',
    'ExposedCohorts',
    'Compartment',
    'HostPools',
    'Simulation'
]
