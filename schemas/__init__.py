"""
Schedule data schemas for validation.

This module defines Pydantic models for the CSV files the scheduler reads
(tasks, links, holidays) and writes (schedule, critical paths).

Usage:
    from schemas import read_validated_csv
    from schemas.schedule import TaskInput

    # Load and validate an input file
    tasks = read_validated_csv('tasks.csv', TaskInput, dtype={'task_id': str})

    # Or use the registry
    from schemas import SCHEMA_REGISTRY
    schema = SCHEMA_REGISTRY['schedule.csv']
"""

from .validator import (
    validate_output_file,
    validate_dataframe,
    validate_records,
    read_validated_csv,
    validated_df_to_csv,
    SchemaValidationError,
)
from .registry import SCHEMA_REGISTRY, get_schema_for_file

__all__ = [
    'validate_output_file',
    'validate_dataframe',
    'validate_records',
    'read_validated_csv',
    'validated_df_to_csv',
    'SchemaValidationError',
    'SCHEMA_REGISTRY',
    'get_schema_for_file',
]
