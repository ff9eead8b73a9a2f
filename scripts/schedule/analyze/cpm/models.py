"""
Data models for CPM calculations.

Defines dataclasses for tasks, dependencies, and schedule results.
All dates are integer offsets in working units from the project epoch (0).
"""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional

from .errors import ScheduleError


PROJECT_EPOCH = 0


class DependencyType(str, Enum):
    """Precedence relation between a predecessor and a successor."""

    FINISH_TO_START = 'FS'
    START_TO_START = 'SS'
    FINISH_TO_FINISH = 'FF'
    START_TO_FINISH = 'SF'

    @classmethod
    def parse(cls, value) -> 'DependencyType':
        """
        Parse a dependency type from its common spellings.

        Accepts 'FS', 'finish-to-start', 'finish_to_start' and the
        Primavera form 'PR_FS' (case-insensitive). Blank means FS.
        """
        if isinstance(value, cls):
            return value
        if value is None:
            return cls.FINISH_TO_START

        text = str(value).strip().upper()
        if not text:
            return cls.FINISH_TO_START
        if text.startswith('PR_'):
            text = text[3:]

        aliases = {
            'FS': cls.FINISH_TO_START,
            'SS': cls.START_TO_START,
            'FF': cls.FINISH_TO_FINISH,
            'SF': cls.START_TO_FINISH,
            'FINISH-TO-START': cls.FINISH_TO_START,
            'START-TO-START': cls.START_TO_START,
            'FINISH-TO-FINISH': cls.FINISH_TO_FINISH,
            'START-TO-FINISH': cls.START_TO_FINISH,
        }
        dep_type = aliases.get(text.replace('_', '-'))
        if dep_type is None:
            raise ValueError(f"Unknown dependency type: {value!r}")
        return dep_type


@dataclass(frozen=True)
class Task:
    """Represents a schedule task/activity."""

    task_id: str
    task_name: str = ''
    duration: int = 0                    # working units, 0 = milestone
    anchor_start: Optional[int] = None   # only valid on tasks without predecessors

    def is_milestone(self) -> bool:
        """Check if task is a milestone (zero duration)."""
        return self.duration == 0

    def has_anchor(self) -> bool:
        return self.anchor_start is not None


@dataclass(frozen=True)
class Dependency:
    """Represents a predecessor-successor relationship."""

    link_id: str
    pred_task_id: str
    succ_task_id: str
    dep_type: DependencyType = DependencyType.FINISH_TO_START
    lag: int = 0         # negative = lead

    def __post_init__(self):
        # 'FS' == FINISH_TO_START but is not identical to it
        object.__setattr__(self, 'dep_type', DependencyType.parse(self.dep_type))

    def is_finish_to_start(self) -> bool:
        return self.dep_type is DependencyType.FINISH_TO_START

    def is_start_to_start(self) -> bool:
        return self.dep_type is DependencyType.START_TO_START

    def is_finish_to_finish(self) -> bool:
        return self.dep_type is DependencyType.FINISH_TO_FINISH

    def is_start_to_finish(self) -> bool:
        return self.dep_type is DependencyType.START_TO_FINISH

    def __str__(self) -> str:
        return f"{self.pred_task_id}->{self.succ_task_id} {self.dep_type.value}{self.lag:+d}"


class WarningCode(str, Enum):
    UNKNOWN_TASK_REFERENCE = 'UNKNOWN_TASK_REFERENCE'
    DUPLICATE_LINK = 'DUPLICATE_LINK'
    IGNORED_ANCHOR = 'IGNORED_ANCHOR'
    INFEASIBLE_SCHEDULE = 'INFEASIBLE_SCHEDULE'
    CRITICAL_PATHS_TRUNCATED = 'CRITICAL_PATHS_TRUNCATED'


@dataclass(frozen=True)
class ScheduleWarning:
    """Non-fatal condition attached to a build or a result."""

    code: WarningCode
    message: str
    task_ids: tuple[str, ...] = ()
    link_id: Optional[str] = None

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.message}"


@dataclass(frozen=True)
class ScheduleResult:
    """CPM dates and float for one task. Output only."""

    task_id: str
    early_start: int
    early_finish: int
    late_start: int
    late_finish: int
    total_float: int
    free_float: int
    is_critical: bool
    driving_links: tuple[str, ...] = ()


@dataclass(frozen=True)
class CPMResult:
    """Results from a CPM calculation. Immutable once returned."""

    results: Mapping[str, ScheduleResult]
    topological_order: tuple[str, ...]
    project_duration: int
    project_finish: int
    critical_paths: tuple[tuple[str, ...], ...]
    warnings: tuple[ScheduleWarning, ...] = ()

    def __post_init__(self):
        # Freeze the mapping so readers can never patch a published result
        if not isinstance(self.results, MappingProxyType):
            object.__setattr__(self, 'results', MappingProxyType(dict(self.results)))

    def get(self, task_id: str) -> Optional[ScheduleResult]:
        return self.results.get(task_id)

    def __getitem__(self, task_id: str) -> ScheduleResult:
        return self.results[task_id]

    def __len__(self) -> int:
        return len(self.results)

    @property
    def is_feasible(self) -> bool:
        """False when any task carries negative total float."""
        return all(r.total_float >= 0 for r in self.results.values())

    def critical_task_ids(self) -> list[str]:
        """Critical task ids in topological order."""
        return [tid for tid in self.topological_order if self.results[tid].is_critical]

    def get_tasks_by_float(self, max_float: Optional[int] = None) -> list[ScheduleResult]:
        """Get results sorted by total float (ascending), ties by id."""
        results = list(self.results.values())
        if max_float is not None:
            results = [r for r in results if r.total_float <= max_float]
        return sorted(results, key=lambda r: (r.total_float, r.task_id))


@dataclass(frozen=True)
class ScheduleOutcome:
    """Outcome of one compute() call: a result, or an error, plus warnings."""

    result: Optional[CPMResult] = None
    error: Optional[ScheduleError] = None
    warnings: tuple[ScheduleWarning, ...] = field(default_factory=tuple)

    @property
    def ok(self) -> bool:
        return self.result is not None

    def unwrap(self) -> CPMResult:
        """Return the result or raise the stored error."""
        if self.error is not None:
            raise self.error
        return self.result
