"""Pest and pathogen spread modeling package"""

from . import core
from . import spatial

__version__ = "0.1.0"

__all__ = ['core', 'spatial']
