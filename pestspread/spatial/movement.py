"""
Host Movement
=============
Scheduled relocation of host plants between grid cells
Records are applied in order; a cursor remembers where the last step stopped
"""

import pandas as pd
from typing import List, NamedTuple, Sequence, Tuple

from ..core.hosts import HostPools
from ..core.simulation import Simulation


MOVEMENT_COLUMNS = ['row_from', 'col_from', 'row_to', 'col_to', 'hosts', 'step']


class MovementRecord(NamedTuple):
    """Hosts moved from one cell to another"""
    row_from: int
    col_from: int
    row_to: int
    col_to: int
    hosts: int


def read_movements(frame: pd.DataFrame) -> Tuple[List[MovementRecord], List[int]]:
    """
    Convert a movement table into records and their schedule

    Args:
        frame: Table with columns row_from, col_from, row_to, col_to,
            hosts and step

    Returns:
        Records and the step of each record, sorted by step (stable)
    """
    missing = [column for column in MOVEMENT_COLUMNS if column not in frame.columns]
    if missing:
        raise ValueError(f"Movement table is missing columns: {', '.join(missing)}")
    ordered = frame.sort_values('step', kind='stable')
    records = [
        MovementRecord(*(int(value) for value in row))
        for row in ordered[MOVEMENT_COLUMNS[:-1]].itertuples(index=False, name=None)
    ]
    schedule = [int(step) for step in ordered['step']]
    return records, schedule


class MovementSchedule:
    """
    Movement records with a resumable cursor

    Every call to apply() processes the records due at the given step
    and leaves the cursor on the first record of a later step.
    """

    def __init__(self, movements: Sequence[Sequence[int]], schedule: Sequence[int]):
        if len(movements) != len(schedule):
            raise ValueError(
                f"Got {len(movements)} movements but {len(schedule)} schedule entries"
            )
        if any(later < earlier for earlier, later in zip(schedule, schedule[1:])):
            raise ValueError("Movement schedule must be sorted by step")
        self.movements = [MovementRecord(*(int(value) for value in record))
                          for record in movements]
        self.schedule = [int(step) for step in schedule]
        self.last_index = 0

    @classmethod
    def from_frame(cls, frame: pd.DataFrame) -> "MovementSchedule":
        return cls(*read_movements(frame))

    @property
    def exhausted(self) -> bool:
        return self.last_index >= len(self.movements)

    def apply(self, simulation: Simulation, hosts: HostPools, step: int) -> int:
        """
        Apply the records due at this step

        Returns:
            Number of records consumed
        """
        start = self.last_index
        self.last_index = simulation.movement(
            hosts.infected,
            hosts.susceptible,
            hosts.current_mortality_tracker,
            hosts.total_plants,
            step,
            self.last_index,
            self.movements,
            self.schedule,
            exposed=hosts.exposed,
        )
        return self.last_index - start

    def __len__(self) -> int:
        return len(self.movements)
