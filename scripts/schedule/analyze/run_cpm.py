#!/usr/bin/env python3
"""
Run a CPM calculation over schedule CSV files.

Loads tasks.csv / links.csv (and optional holidays.csv), computes early and
late dates, float and critical paths, prints a report and writes
schedule.csv and critical_paths.csv.

Usage:
    python scripts/schedule/analyze/run_cpm.py [--data-dir DIR] [--output-dir DIR]
    python scripts/schedule/analyze/run_cpm.py --tasks t.csv --links l.csv --project-start 2025-01-06
    python scripts/schedule/analyze/run_cpm.py --help
"""

import argparse
import logging
import sys
from datetime import date, timedelta
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent.parent.parent
sys.path.insert(0, str(project_root))

from src.config.settings import settings
from src.utils.logger import configure_logging
from schemas.validator import SchemaValidationError
from scripts.schedule.analyze.cpm.engine import compute
from scripts.schedule.analyze.data_loader import (
    TASKS_FILE,
    LINKS_FILE,
    HOLIDAYS_FILE,
    load_calendar,
    load_tasks,
    load_dependencies,
)
from scripts.schedule.analyze.export import write_schedule
from scripts.schedule.analyze.analysis.critical_path import (
    analyze_critical_path,
    summarize_float,
    print_critical_path_report,
)

logger = logging.getLogger('scripts.schedule.analyze.run_cpm')


def setup_logging(verbose: bool = False) -> logging.Logger:
    """Route the schedule package loggers to the console (and log dir, if set)."""
    package_logger = configure_logging('scripts.schedule')
    package_logger.setLevel(logging.DEBUG if verbose else settings.LOG_LEVEL)
    return package_logger


def parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid date {value!r}, expected YYYY-MM-DD")


def resolve_deadline(value, calendar, project_start):
    """Deadline as an offset; ISO dates are converted through the calendar."""
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        pass

    deadline_date = parse_date(value)
    if project_start is None:
        raise argparse.ArgumentTypeError("A dated --deadline needs --project-start")
    # Work may continue through the deadline day; a non-working deadline
    # adds nothing past the last working day before it
    epoch = calendar.add_working_units(project_start, 0)
    return calendar.units_between(epoch, deadline_date + timedelta(days=1))


def main(argv=None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description='Compute a CPM schedule from task and link CSV files',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python run_cpm.py --data-dir data/                    # tasks.csv, links.csv, holidays.csv
  python run_cpm.py --tasks t.csv --links l.csv         # Explicit files
  python run_cpm.py --project-start 2025-01-06          # Add calendar dates to output
  python run_cpm.py --deadline 40 --strict              # Deadline offset, strict links
        """
    )

    parser.add_argument('--data-dir', type=str, default=None,
                        help='Directory with tasks.csv/links.csv/holidays.csv (default: CPM_DATA_DIR)')
    parser.add_argument('--tasks', type=str, default=None,
                        help='Tasks CSV (overrides --data-dir)')
    parser.add_argument('--links', type=str, default=None,
                        help='Links CSV (overrides --data-dir)')
    parser.add_argument('--holidays', type=str, default=None,
                        help='Holidays CSV (overrides --data-dir)')
    parser.add_argument('--project-start', type=parse_date, default=None,
                        help='Date of offset 0 (YYYY-MM-DD); enables dated output')
    parser.add_argument('--deadline', type=str, default=None,
                        help='Project deadline as an offset or a date (YYYY-MM-DD)')
    parser.add_argument('--strict', action='store_true', default=None,
                        help='Fail on links to unknown tasks (default: CPM_STRICT_LINKS)')
    parser.add_argument('--epsilon', type=int, default=None,
                        help='Critical float threshold (default: CPM_FLOAT_EPSILON)')
    parser.add_argument('--near-critical', type=int, default=None,
                        help='Near-critical float threshold (default: CPM_NEAR_CRITICAL_THRESHOLD)')
    parser.add_argument('--output-dir', '-o', type=str, default=None,
                        help='Output directory (default: CPM_OUTPUT_DIR)')
    parser.add_argument('--verbose', '-v', action='store_true',
                        help='Debug logging')

    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    problems = settings.validate_required_settings()
    if problems:
        for problem in problems:
            print(f"[ERROR] {problem}")
        return 1

    data_dir = Path(args.data_dir) if args.data_dir else settings.DATA_DIR
    tasks_path = Path(args.tasks) if args.tasks else data_dir / TASKS_FILE
    links_path = Path(args.links) if args.links else data_dir / LINKS_FILE
    if args.holidays:
        holidays_path = Path(args.holidays)
    else:
        holidays_path = data_dir / HOLIDAYS_FILE
        if not holidays_path.exists():
            holidays_path = None
    logger.debug(f"Inputs: tasks={tasks_path} links={links_path} holidays={holidays_path}")

    try:
        calendar = load_calendar(holidays_path)
        tasks = load_tasks(tasks_path, calendar, args.project_start)
        dependencies = load_dependencies(links_path)
        deadline = resolve_deadline(args.deadline, calendar, args.project_start)
    except (FileNotFoundError, SchemaValidationError, argparse.ArgumentTypeError) as e:
        print(f"[ERROR] {e}")
        return 1

    print(f"Loaded {len(tasks)} tasks and {len(dependencies)} links")

    outcome = compute(
        tasks,
        dependencies,
        strict=args.strict,
        float_epsilon=args.epsilon,
        project_deadline=deadline,
    )

    for warning in outcome.warnings:
        print(f"[WARN] {warning}")

    if not outcome.ok:
        print(f"[ERROR] {outcome.error}")
        return 1

    result = outcome.result
    analysis = analyze_critical_path(result, near_critical_threshold=args.near_critical)
    print_critical_path_report(analysis, tasks)

    summary = summarize_float(result)
    print(f"Average total float: {summary['average_total_float']} | "
          f"Average free float: {summary['average_free_float']}")
    print(analysis.get_risk_summary())

    output_dir = Path(args.output_dir) if args.output_dir else settings.OUTPUT_DIR
    try:
        written = write_schedule(result, tasks, output_dir, calendar, args.project_start)
    except SchemaValidationError as e:
        print(f"[ERROR] {e}")
        return 1

    for path in written.values():
        print(f"Saved: {path}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
