"""
Data Loader for Schedule CSV Data.

Loads task, link and holiday data from CSV files and converts them into
the records consumed by the CPM engine.
"""

import logging
from datetime import date
from pathlib import Path
from typing import Optional

from src.config.settings import Settings
from schemas.schedule import TaskInput, DependencyInput, HolidayInput
from schemas.validator import read_validated_csv, SchemaValidationError
from .cpm.models import Task, Dependency, DependencyType
from .cpm.calendar import WorkingDayCalendar, Holiday, DEFAULT_WORK_DAYS, date_to_offset

logger = logging.getLogger(__name__)

TASKS_FILE = 'tasks.csv'
LINKS_FILE = 'links.csv'
HOLIDAYS_FILE = 'holidays.csv'


def load_calendar(holidays_path: Optional[Path] = None,
                  calendar_id: str = 'standard',
                  work_days=DEFAULT_WORK_DAYS) -> WorkingDayCalendar:
    """
    Load the project calendar.

    Args:
        holidays_path: Optional holidays CSV (date, name, type)
        calendar_id: Calendar identifier
        work_days: Weekday numbers worked (Monday=0)

    Returns:
        WorkingDayCalendar with the holidays applied
    """
    holidays = []
    if holidays_path is not None:
        rows = read_validated_csv(holidays_path, HolidayInput)
        holidays = [
            Holiday(date=row.date, name=row.name or '', holiday_type=row.type or 'public')
            for row in rows
        ]

    calendar = WorkingDayCalendar.from_holidays(holidays, calendar_id=calendar_id, work_days=work_days)
    logger.debug(f"Loaded {calendar!r}")
    return calendar


def load_tasks(tasks_path: Path,
               calendar: Optional[WorkingDayCalendar] = None,
               project_start: Optional[date] = None) -> list[Task]:
    """
    Load tasks from CSV.

    Args:
        tasks_path: tasks.csv path
        calendar: Needed only when tasks use anchor_date
        project_start: Date of offset 0, needed with anchor_date

    Returns:
        List of Task records in file order

    Raises:
        SchemaValidationError: If the file or a row is invalid
    """
    rows = read_validated_csv(tasks_path, TaskInput, dtype={'task_id': str, 'task_name': str})

    tasks = []
    for row in rows:
        anchor = row.anchor_start
        if anchor is None and row.anchor_date is not None:
            if calendar is None or project_start is None:
                raise SchemaValidationError(
                    f"Task {row.task_id} has anchor_date but no calendar/project start was given"
                )
            anchor = date_to_offset(calendar, project_start, row.anchor_date)
            if anchor < 0:
                raise SchemaValidationError(
                    f"Task {row.task_id} anchor_date {row.anchor_date} is before project start {project_start}"
                )

        tasks.append(Task(
            task_id=row.task_id,
            task_name=row.task_name or '',
            duration=row.duration,
            anchor_start=anchor,
        ))

    logger.debug(f"Loaded {len(tasks)} tasks from {tasks_path}")
    return tasks


def load_dependencies(links_path: Path) -> list[Dependency]:
    """
    Load dependencies from CSV.

    Args:
        links_path: links.csv path

    Returns:
        List of Dependency records in file order

    Raises:
        SchemaValidationError: If the file, a row or a link type is invalid
    """
    rows = read_validated_csv(
        links_path,
        DependencyInput,
        dtype={'link_id': str, 'pred_task_id': str, 'succ_task_id': str, 'link_type': str},
    )

    dependencies = []
    bad_types = []
    for idx, row in enumerate(rows, start=1):
        try:
            dep_type = DependencyType.parse(row.link_type)
        except ValueError as e:
            bad_types.append(f"Row {idx}, link {row.link_id}: {e}")
            continue

        dependencies.append(Dependency(
            link_id=row.link_id,
            pred_task_id=row.pred_task_id,
            succ_task_id=row.succ_task_id,
            dep_type=dep_type,
            lag=row.lag,
        ))

    if bad_types:
        raise SchemaValidationError(
            f"Invalid link types in '{Path(links_path).name}':\n"
            + "\n".join(f"  - {e}" for e in bad_types),
            row_errors=bad_types,
        )

    logger.debug(f"Loaded {len(dependencies)} links from {links_path}")
    return dependencies


def load_schedule(
    data_dir: Path = None,
    project_start: Optional[date] = None,
    verbose: bool = False,
) -> tuple[list[Task], list[Dependency], WorkingDayCalendar]:
    """
    Load a complete schedule from a directory.

    Expects tasks.csv and links.csv; holidays.csv is optional.

    Args:
        data_dir: Directory containing CSV files (default: CPM_DATA_DIR)
        project_start: Date of offset 0 (needed for anchor_date)
        verbose: Print progress messages

    Returns:
        Tuple of (tasks, dependencies, calendar)
    """
    if data_dir is None:
        data_dir = Settings.DATA_DIR
    data_dir = Path(data_dir)

    if verbose:
        print(f"Loading schedule from {data_dir}")

    holidays_path = data_dir / HOLIDAYS_FILE
    calendar = load_calendar(holidays_path if holidays_path.exists() else None)
    if verbose:
        print(f"  Calendar: {calendar!r}")

    tasks = load_tasks(data_dir / TASKS_FILE, calendar, project_start)
    if verbose:
        print(f"  Loaded {len(tasks)} tasks")

    dependencies = load_dependencies(data_dir / LINKS_FILE)
    if verbose:
        print(f"  Loaded {len(dependencies)} links")

    return tasks, dependencies, calendar
