from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Optional

from .models import ConfigurationError, TaskDefinition

DEFAULT_CS_PENALTY = 1
DEFAULT_QUANTUM = 2


@dataclass
class SimulationConfig:
    """
    Policy settings shared by every engine. Each engine reads only what it needs.
    """

    quantum: Optional[int] = None
    cs_penalty: int = DEFAULT_CS_PENALTY
    horizon: Optional[int] = None

    def validate(self, *, needs_quantum: bool = False) -> "SimulationConfig":
        if needs_quantum and (self.quantum is None or self.quantum <= 0):
            raise ConfigurationError("Round Robin requires a positive quantum (use --quantum)")
        if self.quantum is not None and self.quantum <= 0:
            raise ConfigurationError(f"Quantum must be positive, got {self.quantum}")
        if self.cs_penalty < 0:
            raise ConfigurationError(f"Context-switch penalty must be >= 0, got {self.cs_penalty}")
        if self.horizon is not None and self.horizon <= 0:
            raise ConfigurationError(f"Horizon must be positive, got {self.horizon}")
        return self


def validate_tasks(tasks: List[TaskDefinition], *, periodic: bool = False) -> None:
    """
    Reject task sets that would loop forever or divide by zero.
    """
    seen_ids: set[int] = set()
    for t in tasks:
        if t.id in seen_ids:
            raise ConfigurationError(f"Duplicate task id {t.id} ({t.name})")
        seen_ids.add(t.id)

        if t.arrival_time < 0:
            raise ConfigurationError(f"Task {t.name}: arrival time must be >= 0, got {t.arrival_time}")
        if t.execution_cost <= 0:
            raise ConfigurationError(f"Task {t.name}: execution cost must be positive, got {t.execution_cost}")
        if t.period is not None and t.period <= 0:
            raise ConfigurationError(f"Task {t.name}: period must be positive, got {t.period}")
        if t.relative_deadline is not None and t.relative_deadline <= 0:
            raise ConfigurationError(
                f"Task {t.name}: relative deadline must be positive, got {t.relative_deadline}"
            )
        if periodic and t.period is None:
            raise ConfigurationError(f"Task {t.name}: periodic scheduling requires a period")


def hyperperiod(tasks: List[TaskDefinition]) -> int:
    periods = [t.period for t in tasks if t.period is not None]
    return math.lcm(*periods) if periods else 0
