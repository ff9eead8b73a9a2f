"""
Critical Path Analysis.

Identifies critical and near-critical tasks, analyzes float distribution,
and summarizes schedule risk from a computed CPMResult.
"""

from collections import defaultdict
from dataclasses import dataclass
from typing import Iterable, Optional

from src.config.settings import settings
from ..cpm.models import CPMResult, ScheduleResult, Task


FLOAT_STATUS_CRITICAL = 'Critical'
FLOAT_STATUS_VERY_LOW = 'Very Low Float'
FLOAT_STATUS_LOW = 'Low Float'
FLOAT_STATUS_NO_FREE = 'No Free Float'
FLOAT_STATUS_GOOD = 'Good Float'

# Report order, lowest float first
FLOAT_BUCKETS = ['<0 (infeasible)', '0 (critical)', '1', '2-5', '6-10', '11-20', '>20']


@dataclass
class CriticalPathResult:
    """Results from critical path analysis."""

    critical_tasks: list[ScheduleResult]
    critical_paths: list[tuple[str, ...]]
    near_critical_tasks: list[ScheduleResult]
    float_distribution: dict[str, int]  # float_bucket -> count
    project_duration: int
    near_critical_threshold: int
    total_tasks: int

    def get_critical_path_length(self) -> int:
        """Number of critical tasks."""
        return len(self.critical_tasks)

    def get_risk_summary(self) -> str:
        """Get summary of schedule risk."""
        critical = len(self.critical_tasks)
        near_critical = len(self.near_critical_tasks)
        return (f"{critical} critical tasks on {len(self.critical_paths)} path(s), "
                f"{near_critical} near-critical (<= {self.near_critical_threshold} units float)")


def _float_bucket(total_float: int) -> str:
    if total_float < 0:
        return '<0 (infeasible)'
    if total_float == 0:
        return '0 (critical)'
    if total_float <= 1:
        return '1'
    if total_float <= 5:
        return '2-5'
    if total_float <= 10:
        return '6-10'
    if total_float <= 20:
        return '11-20'
    return '>20'


def analyze_critical_path(
    result: CPMResult,
    near_critical_threshold: Optional[int] = None,
) -> CriticalPathResult:
    """
    Analyze critical path and near-critical tasks.

    Args:
        result: Computed CPM result
        near_critical_threshold: Float threshold for near-critical classification
                                 (default: settings.NEAR_CRITICAL_THRESHOLD)

    Returns:
        CriticalPathResult with critical paths, near-critical tasks, and statistics
    """
    if near_critical_threshold is None:
        near_critical_threshold = settings.NEAR_CRITICAL_THRESHOLD

    critical = []
    near_critical = []
    float_buckets = defaultdict(int)

    for task_id in result.topological_order:
        r = result.results[task_id]
        float_buckets[_float_bucket(r.total_float)] += 1

        if r.is_critical:
            critical.append(r)
        elif r.total_float <= near_critical_threshold:
            near_critical.append(r)

    # Sort critical tasks by early start, near-critical by float
    critical.sort(key=lambda r: (r.early_start, r.task_id))
    near_critical.sort(key=lambda r: (r.total_float, r.task_id))

    return CriticalPathResult(
        critical_tasks=critical,
        critical_paths=list(result.critical_paths),
        near_critical_tasks=near_critical,
        float_distribution=dict(float_buckets),
        project_duration=result.project_duration,
        near_critical_threshold=near_critical_threshold,
        total_tasks=len(result),
    )


def get_float_status(schedule_result: ScheduleResult) -> str:
    """Classify a task by how much float it has left."""
    if schedule_result.is_critical:
        return FLOAT_STATUS_CRITICAL
    elif schedule_result.total_float <= 1:
        return FLOAT_STATUS_VERY_LOW
    elif schedule_result.total_float <= 3:
        return FLOAT_STATUS_LOW
    elif schedule_result.free_float == 0:
        return FLOAT_STATUS_NO_FREE
    return FLOAT_STATUS_GOOD


def summarize_float(result: CPMResult) -> dict:
    """
    Float summary statistics over all tasks.

    Returns:
        Dict with counts per float status and average total/free float
    """
    summary = {
        'total': len(result),
        'critical_tasks': 0,
        'low_float_tasks': 0,
        'good_float_tasks': 0,
        'negative_float_tasks': 0,
        'average_total_float': 0.0,
        'average_free_float': 0.0,
    }
    if not len(result):
        return summary

    total_float_sum = 0
    free_float_sum = 0
    for r in result.results.values():
        total_float_sum += r.total_float
        free_float_sum += r.free_float

        if r.total_float < 0:
            summary['negative_float_tasks'] += 1
        if r.is_critical:
            summary['critical_tasks'] += 1
        elif r.total_float <= 3:
            summary['low_float_tasks'] += 1
        else:
            summary['good_float_tasks'] += 1

    summary['average_total_float'] = round(total_float_sum / len(result), 2)
    summary['average_free_float'] = round(free_float_sum / len(result), 2)
    return summary


def print_critical_path_report(analysis: CriticalPathResult,
                               tasks: Optional[Iterable[Task]] = None) -> None:
    """Print a formatted critical path report."""
    names = {t.task_id: t.task_name for t in tasks} if tasks else {}

    print("=" * 80)
    print("CRITICAL PATH ANALYSIS REPORT")
    print("=" * 80)

    print(f"\nProject Duration: {analysis.project_duration} units")
    print(f"Total Tasks: {analysis.total_tasks}")
    print(f"Critical Tasks: {len(analysis.critical_tasks)}")
    print(f"Near-Critical Tasks (<= {analysis.near_critical_threshold} units float): "
          f"{len(analysis.near_critical_tasks)}")

    print("\n--- Float Distribution ---")
    for bucket in FLOAT_BUCKETS:
        count = analysis.float_distribution.get(bucket)
        if not count:
            continue
        pct = count / analysis.total_tasks * 100 if analysis.total_tasks else 0
        bar = '#' * int(pct / 2)
        print(f"  {bucket:20s}: {count:5d} ({pct:5.1f}%) {bar}")

    print(f"\n--- Critical Paths ({len(analysis.critical_paths)}) ---")
    for i, path in enumerate(analysis.critical_paths[:10]):
        print(f"  {i+1:3d}. {' -> '.join(path)}")
    if len(analysis.critical_paths) > 10:
        print(f"  ... and {len(analysis.critical_paths) - 10} more critical paths")

    print("\n--- Near-Critical Tasks (first 10) ---")
    for i, r in enumerate(analysis.near_critical_tasks[:10]):
        name = names.get(r.task_id, '')
        print(f"  {i+1:3d}. {r.task_id:20s} | Float: {r.total_float:5d} | {name[:35]:35s}")

    print("\n" + "=" * 80)
