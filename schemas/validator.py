"""
Schema validation utilities for schedule CSV files.

Input files (tasks, links, holidays) are checked column by column and then
row by row with their pydantic models. Output files (schedule, critical
paths) are checked before they are written so that Gantt renderers and
reports never receive a malformed table.

Validation Rules:
  - Input files: required columns must exist, optional columns may be
    absent; every row must validate against the row model
  - Output files: every schema column must exist with a compatible type
  - Extra columns are allowed unless strict=True
"""

import datetime
import typing
import warnings
from pathlib import Path
from typing import Type, List, Optional, Dict, Any, Tuple
import pandas as pd
from pydantic import BaseModel, ValidationError as PydanticValidationError


class SchemaValidationError(Exception):
    """Raised when a file or DataFrame does not match its schema."""

    def __init__(
        self,
        message: str,
        missing_columns: Optional[List[str]] = None,
        type_mismatches: Optional[Dict[str, Tuple[str, str]]] = None,
        row_errors: Optional[List[str]] = None,
    ):
        super().__init__(message)
        self.missing_columns = missing_columns or []
        self.type_mismatches = type_mismatches or {}
        self.row_errors = row_errors or []


_TYPE_NAMES = {
    bool: 'bool',
    int: 'int',
    float: 'float',
    str: 'str',
    datetime.datetime: 'datetime',
    datetime.date: 'date',
}

# pandas type -> schema types it may legitimately hold after read_csv
_COMPATIBLE = {
    # NaN forces float for nullable ints and all-empty columns
    'float': {'int', 'float', 'str', 'bool', 'date', 'datetime'},
    'int': {'int', 'float'},
    # object columns hold text, dates, or only None
    'str': {'str', 'int', 'float', 'bool', 'date', 'datetime'},
    'datetime': {'date', 'datetime'},
    'bool': {'bool'},
}


def pandas_dtype_to_python_type(dtype) -> str:
    """Simplified type name for a pandas dtype."""
    name = str(dtype)
    if name.lower().startswith('int'):
        return 'int'
    if name.startswith('float'):
        return 'float'
    if name.startswith('datetime'):
        return 'datetime'
    if name in ('bool', 'boolean'):
        return 'bool'
    if name in ('object', 'string'):
        return 'str'
    return name


def pydantic_type_to_string(field_type) -> str:
    """Simplified type name for a pydantic annotation (Optional and Literal unwrapped)."""
    if typing.get_origin(field_type) is typing.Union:
        args = [a for a in typing.get_args(field_type) if a is not type(None)]
        if len(args) == 1:
            field_type = args[0]
    if typing.get_origin(field_type) is typing.Literal:
        # Literal['a', 'b'] is typed by its values
        field_type = type(typing.get_args(field_type)[0])
    return _TYPE_NAMES.get(field_type, str(field_type))


def types_compatible(pandas_type: str, pydantic_type: str) -> bool:
    """
    Whether a column read by pandas can hold values of the schema type.

    Lenient because CSV type inference is imprecise.
    """
    if pandas_type == pydantic_type:
        return True
    return pydantic_type in _COMPATIBLE.get(pandas_type, set())


def validate_dataframe(
    df: pd.DataFrame,
    schema: Type[BaseModel],
    strict: bool = False,
    require_optional: bool = True,
) -> List[str]:
    """
    Check the columns of a DataFrame against a pydantic model.

    Args:
        df: DataFrame to check
        schema: Model whose fields name the expected columns
        strict: Report columns the model does not define
        require_optional: If False, fields with defaults may be absent

    Returns:
        List of problems (empty if the columns match)

    Note:
        Only columns and dtypes are checked; use validate_records() for
        row values.
    """
    fields = schema.model_fields
    columns = set(df.columns)
    errors = []

    missing = sorted(
        name for name, info in fields.items()
        if name not in columns and (require_optional or info.is_required())
    )
    if missing:
        errors.append(f"Missing required columns: {missing}")

    if strict:
        extra = sorted(columns - set(fields))
        if extra:
            errors.append(f"Unexpected columns (strict mode): {extra}")

    mismatches = []
    for name in sorted(columns & set(fields)):
        got = pandas_dtype_to_python_type(df[name].dtype)
        expected = pydantic_type_to_string(fields[name].annotation)
        if not types_compatible(got, expected):
            mismatches.append(f"{name}: got {got}, expected {expected}")
    if mismatches:
        errors.append(f"Type mismatches: {'; '.join(mismatches)}")

    return errors


def _clean_row(row: Dict[str, Any]) -> Dict[str, Any]:
    """Drop NaN/blank cells so pydantic applies field defaults."""
    cleaned = {}
    for key, value in row.items():
        if value is None:
            continue
        if isinstance(value, float) and pd.isna(value):
            continue
        if isinstance(value, str) and not value.strip():
            continue
        # Whole-number floats come from nullable integer columns
        if isinstance(value, float) and value.is_integer():
            value = int(value)
        cleaned[key] = value
    return cleaned


def validate_records(
    df: pd.DataFrame,
    schema: Type[BaseModel],
) -> Tuple[List[BaseModel], List[str]]:
    """
    Validate every row of a DataFrame against a pydantic model.

    Returns:
        Tuple of (valid models, error messages). Row numbers in messages
        are 1-based data rows (header excluded).
    """
    records = []
    errors = []

    for idx, row in enumerate(df.to_dict('records'), start=1):
        try:
            records.append(schema.model_validate(_clean_row(row)))
        except PydanticValidationError as e:
            for err in e.errors():
                field = '.'.join(str(p) for p in err['loc']) or '<row>'
                errors.append(f"Row {idx}, field '{field}': {err['msg']}")

    return records, errors


def _failure(title: str, problems: List[str], limit: int = 20) -> str:
    lines = [f"  - {p}" for p in problems[:limit]]
    if len(problems) > limit:
        lines.append(f"  ... and {len(problems) - limit} more")
    return f"{title}:\n" + "\n".join(lines)


def read_validated_csv(
    file_path: Path,
    schema: Type[BaseModel],
    dtype: Optional[Dict[str, Any]] = None,
) -> List[BaseModel]:
    """
    Read an input CSV and validate its columns and rows.

    Args:
        file_path: Path to CSV file
        schema: Row model
        dtype: Column dtypes passed to pandas (ids should be read as str)

    Returns:
        List of validated row models

    Raises:
        FileNotFoundError: If file doesn't exist
        SchemaValidationError: If columns or rows are invalid
    """
    file_path = Path(file_path)
    if not file_path.exists():
        raise FileNotFoundError(f"File not found: {file_path}")

    df = pd.read_csv(file_path, dtype=dtype)

    column_errors = validate_dataframe(df, schema, require_optional=False)
    if column_errors:
        raise SchemaValidationError(
            _failure(f"Schema validation failed for '{file_path.name}'", column_errors)
        )

    records, row_errors = validate_records(df, schema)
    if row_errors:
        raise SchemaValidationError(
            _failure(f"Row validation failed for '{file_path.name}'", row_errors),
            row_errors=row_errors,
        )

    return records


def validate_output_file(
    file_path: Path,
    schema: Type[BaseModel],
    strict: bool = False,
    sample_rows: int = 100,
) -> List[str]:
    """
    Check a written CSV against its schema.

    Args:
        file_path: Path to CSV file
        schema: Model describing the file
        strict: Report columns the model does not define
        sample_rows: Rows read for dtype inference

    Returns:
        List of problems (empty if valid)

    Raises:
        FileNotFoundError: If file doesn't exist
    """
    file_path = Path(file_path)
    if not file_path.exists():
        raise FileNotFoundError(f"File not found: {file_path}")

    sample = pd.read_csv(file_path, nrows=sample_rows)
    return validate_dataframe(sample, schema, strict=strict)


def validated_df_to_csv(
    df: pd.DataFrame,
    file_path: Path,
    strict: bool = False,
    **to_csv_kwargs,
) -> None:
    """
    Write a DataFrame to CSV after checking it against the schema
    registered for the file name.

    Args:
        df: DataFrame to write
        file_path: Output path; its name selects the schema
        strict: Refuse columns the schema does not define
        **to_csv_kwargs: Passed through to df.to_csv()

    Raises:
        SchemaValidationError: If the DataFrame does not match (nothing is written)

    Example:
        validated_df_to_csv(df, output_dir / 'schedule.csv', index=False)
    """
    from .registry import get_schema_for_file

    file_path = Path(file_path)
    schema = get_schema_for_file(file_path.name)

    if schema is None:
        warnings.warn(
            f"No schema registered for '{file_path.name}'; writing without validation. "
            f"Register one in schemas/registry.py.",
            UserWarning,
        )
    else:
        errors = validate_dataframe(df, schema, strict=strict)
        if errors:
            raise SchemaValidationError(
                _failure(f"Schema validation failed for '{file_path.name}'", errors)
            )

    df.to_csv(file_path, **to_csv_kwargs)
