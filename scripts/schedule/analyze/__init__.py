"""
Schedule Analysis Module.

Provides CPM calculations, critical path analysis and CSV I/O for
task/link schedule data.
"""

from .cpm import (
    Task,
    Dependency,
    DependencyType,
    ScheduleResult,
    CPMResult,
    ScheduleOutcome,
    ScheduleError,
    CyclicDependencyError,
    WorkingDayCalendar,
    TaskNetwork,
    CPMEngine,
    compute,
)
from .data_loader import load_schedule, load_tasks, load_dependencies, load_calendar

__all__ = [
    # Models
    'Task',
    'Dependency',
    'DependencyType',
    'ScheduleResult',
    'CPMResult',
    'ScheduleOutcome',
    'ScheduleError',
    'CyclicDependencyError',
    # Core
    'WorkingDayCalendar',
    'TaskNetwork',
    'CPMEngine',
    'compute',
    # Loading
    'load_schedule',
    'load_tasks',
    'load_dependencies',
    'load_calendar',
]
