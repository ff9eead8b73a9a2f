"""
Schedule export.

Turns a CPMResult into DataFrames and schema-validated CSV files for the
rendering and reporting layers.
"""

import logging
from datetime import date
from pathlib import Path
from typing import Iterable, Optional

import pandas as pd

from schemas.validator import validated_df_to_csv
from .cpm.models import CPMResult, Task
from .cpm.calendar import CalendarMapper, to_dated_schedule

logger = logging.getLogger(__name__)

SCHEDULE_FILE = 'schedule.csv'
CRITICAL_PATHS_FILE = 'critical_paths.csv'

SCHEDULE_COLUMNS = [
    'task_id', 'task_name', 'duration', 'topo_index',
    'early_start', 'early_finish', 'late_start', 'late_finish',
    'total_float', 'free_float', 'is_critical', 'driving_links',
]


def results_to_dataframe(
    result: CPMResult,
    tasks: Iterable[Task],
    calendar: Optional[CalendarMapper] = None,
    project_start: Optional[date] = None,
) -> pd.DataFrame:
    """
    One row per task in topological order.

    When a calendar and project start are given, date columns
    (early_start_date, ...) are added next to the offsets.
    """
    task_lookup = {t.task_id: t for t in tasks}
    dated = None
    if calendar is not None and project_start is not None:
        dated = to_dated_schedule(result, calendar, project_start)

    rows = []
    for idx, task_id in enumerate(result.topological_order):
        r = result.results[task_id]
        task = task_lookup.get(task_id)
        row = {
            'task_id': task_id,
            'task_name': task.task_name if task else '',
            'duration': task.duration if task else r.early_finish - r.early_start,
            'topo_index': idx,
            'early_start': r.early_start,
            'early_finish': r.early_finish,
            'late_start': r.late_start,
            'late_finish': r.late_finish,
            'total_float': r.total_float,
            'free_float': r.free_float,
            'is_critical': r.is_critical,
            'driving_links': '|'.join(r.driving_links),
        }
        if dated is not None:
            d = dated[task_id]
            row.update({
                'early_start_date': d.early_start.isoformat(),
                'early_finish_date': d.early_finish.isoformat(),
                'late_start_date': d.late_start.isoformat(),
                'late_finish_date': d.late_finish.isoformat(),
            })
        rows.append(row)

    if not rows:
        return pd.DataFrame(columns=SCHEDULE_COLUMNS)
    return pd.DataFrame(rows)


def critical_paths_to_dataframe(result: CPMResult) -> pd.DataFrame:
    """Long format: one row per (path, position)."""
    rows = [
        {'path_id': path_id, 'position': position, 'task_id': task_id}
        for path_id, path in enumerate(result.critical_paths, start=1)
        for position, task_id in enumerate(path, start=1)
    ]
    return pd.DataFrame(rows, columns=['path_id', 'position', 'task_id'])


def write_schedule(
    result: CPMResult,
    tasks: Iterable[Task],
    output_dir: Path,
    calendar: Optional[CalendarMapper] = None,
    project_start: Optional[date] = None,
) -> dict[str, Path]:
    """
    Write schedule.csv and critical_paths.csv after schema validation.

    Returns:
        Dict mapping file name to written path
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    written = {}

    schedule_df = results_to_dataframe(result, tasks, calendar, project_start)
    schedule_path = output_dir / SCHEDULE_FILE
    validated_df_to_csv(schedule_df, schedule_path, index=False)
    written[SCHEDULE_FILE] = schedule_path

    paths_df = critical_paths_to_dataframe(result)
    paths_path = output_dir / CRITICAL_PATHS_FILE
    validated_df_to_csv(paths_df, paths_path, index=False)
    written[CRITICAL_PATHS_FILE] = paths_path

    logger.info(f"Wrote {len(schedule_df)} schedule rows and "
                f"{len(result.critical_paths)} critical path(s) to {output_dir}")
    return written
