"""Dispersal kernels, host movement and the spread model driver"""

from .kernels import (
    Direction,
    DispersalKernelType,
    MixedDispersalKernel,
    RadialDispersalKernel,
    direction_from_string,
    kernel_type_from_string,
)
from .movement import MovementRecord, MovementSchedule, read_movements
from .spread_model import SpreadConfig, SpreadModel

__all__ = [
    'Direction',
    'DispersalKernelType',
    'MixedDispersalKernel',
    'RadialDispersalKernel',
    'direction_from_string',
    'kernel_type_from_string',
    'MovementRecord',
    'MovementSchedule',
    'read_movements',
    'SpreadConfig',
    'SpreadModel'
]
