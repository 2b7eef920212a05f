"""
Exposed Cohorts
===============
Fixed-capacity queue of exposed-host grids, one grid per step of latency
The oldest cohort becomes infectious and its grid is reused for the newest
"""

import numpy as np
from typing import Iterator, List, Optional

from .raster import Raster


class ExposedCohorts:
    """
    Ring buffer of exposed cohort rasters ordered oldest to newest

    Holds at most latency_period + 1 rasters. Rotation moves the head
    index instead of shifting the rasters, so no grid is copied.
    """

    def __init__(self, latency_period: int, cohorts: Optional[List[Raster]] = None):
        """
        Initialize queue

        Args:
            latency_period: Steps an exposed host waits before it is infected
            cohorts: Initial rasters, oldest first (at most latency_period + 1)
        """
        if latency_period < 0:
            raise ValueError(f"Latency period must be non-negative, got {latency_period}")
        self.latency_period = latency_period
        self.capacity = latency_period + 1
        self._cohorts: List[Raster] = []
        self._head = 0
        for cohort in cohorts or []:
            self.append(cohort)

    @classmethod
    def zeros(cls, latency_period: int, like: Raster) -> "ExposedCohorts":
        """Full queue of empty cohorts shaped like the given raster"""
        return cls(
            latency_period,
            [Raster.like(like, 0) for _ in range(latency_period + 1)],
        )

    def append(self, cohort: Raster):
        """Add a cohort as the newest while the queue is still filling"""
        if self.is_full:
            raise ValueError(
                f"Exposed cohort queue is already full ({self.capacity} cohorts)"
            )
        self._cohorts.append(cohort)

    @property
    def is_full(self) -> bool:
        return len(self._cohorts) >= self.capacity

    def __len__(self) -> int:
        return len(self._cohorts)

    def __getitem__(self, index: int) -> Raster:
        """Cohort by age order, 0 is the oldest"""
        size = len(self._cohorts)
        if index < 0:
            index += size
        if not 0 <= index < size:
            raise IndexError(f"Cohort index {index} out of range")
        return self._cohorts[(self._head + index) % size]

    def __iter__(self) -> Iterator[Raster]:
        for index in range(len(self._cohorts)):
            yield self[index]

    @property
    def oldest(self) -> Raster:
        return self[0]

    @property
    def newest(self) -> Raster:
        return self[-1]

    def rotate(self):
        """
        Zero the oldest cohort and make it the newest one

        The second oldest becomes the oldest.
        """
        if not self.is_full:
            raise ValueError("Only a full exposed cohort queue can be rotated")
        self.oldest.zero()
        self._head = (self._head + 1) % len(self._cohorts)

    def total(self) -> np.ndarray:
        """Exposed hosts per cell summed over all cohorts"""
        if not self._cohorts:
            raise ValueError("Exposed cohort queue is empty")
        return sum(cohort.values for cohort in self._cohorts)
