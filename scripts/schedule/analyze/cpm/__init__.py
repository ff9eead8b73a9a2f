"""
CPM (Critical Path Method) Calculator.

This module provides:
- Task network construction with dependency validation and cycle detection
- Forward/backward pass CPM calculations over integer working-unit offsets
- Float and critical path identification
- Working-day calendar arithmetic for converting offsets to dates
"""

from .models import (
    PROJECT_EPOCH,
    Task,
    Dependency,
    DependencyType,
    ScheduleResult,
    ScheduleWarning,
    WarningCode,
    CPMResult,
    ScheduleOutcome,
)
from .errors import (
    ScheduleError,
    CyclicDependencyError,
    UnknownTaskReferenceError,
    DuplicateTaskError,
    InvalidTaskError,
    InvalidDependencyError,
    ComputationCancelled,
)
from .calendar import (
    CalendarMapper,
    Holiday,
    WorkingDayCalendar,
    DatedSchedule,
    date_to_offset,
    offset_to_date,
    to_dated_schedule,
)
from .network import TaskNetwork
from .engine import CPMEngine, CancellationToken, compute, compute_async

__all__ = [
    'PROJECT_EPOCH',
    'Task',
    'Dependency',
    'DependencyType',
    'ScheduleResult',
    'ScheduleWarning',
    'WarningCode',
    'CPMResult',
    'ScheduleOutcome',
    'ScheduleError',
    'CyclicDependencyError',
    'UnknownTaskReferenceError',
    'DuplicateTaskError',
    'InvalidTaskError',
    'InvalidDependencyError',
    'ComputationCancelled',
    'CalendarMapper',
    'Holiday',
    'WorkingDayCalendar',
    'DatedSchedule',
    'date_to_offset',
    'offset_to_date',
    'to_dated_schedule',
    'TaskNetwork',
    'CPMEngine',
    'CancellationToken',
    'compute',
    'compute_async',
]
