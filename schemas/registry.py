"""
Schema registry mapping file names to their Pydantic schemas.

This registry enables automatic schema lookup based on file name and
provides a central reference for all schedule input/output schemas.
"""

from typing import Type, Dict, Optional
from pathlib import Path
from pydantic import BaseModel

from .schedule import (
    TaskInput,
    DependencyInput,
    HolidayInput,
    ScheduleOutput,
    CriticalPathOutput,
)


# Registry mapping file names to schemas
# Keys are file names (without path), values are Pydantic model classes
SCHEMA_REGISTRY: Dict[str, Type[BaseModel]] = {
    # Inputs
    'tasks.csv': TaskInput,
    'links.csv': DependencyInput,
    'holidays.csv': HolidayInput,

    # Outputs
    'schedule.csv': ScheduleOutput,
    'critical_paths.csv': CriticalPathOutput,
}


def get_schema_for_file(file_path: str) -> Optional[Type[BaseModel]]:
    """
    Get the schema for a file based on its name.

    Args:
        file_path: Path to the file (can be full path or just filename)

    Returns:
        Pydantic model class or None if no schema registered
    """
    filename = Path(file_path).name
    return SCHEMA_REGISTRY.get(filename)


def list_registered_files() -> list:
    """Return list of all registered file names."""
    return sorted(SCHEMA_REGISTRY.keys())
