"""
Schedule input and output table schemas.

Input Location: {CPM_DATA_DIR}/
Output Location: {CPM_OUTPUT_DIR}/
"""

import datetime
from typing import Literal, Optional
from pydantic import BaseModel, Field, field_validator


class TaskInput(BaseModel):
    """
    One task of the network.

    File: tasks.csv
    """
    task_id: str = Field(description="Unique task identifier")
    task_name: Optional[str] = Field(default=None, description="Display name")
    duration: int = Field(ge=0, description="Duration in working units (0 = milestone)")
    anchor_start: Optional[int] = Field(default=None, ge=0, description="Explicit start offset (tasks without predecessors only)")
    anchor_date: Optional[datetime.date] = Field(default=None, description="Explicit start date, converted through the calendar")

    @field_validator('task_id')
    @classmethod
    def task_id_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("task_id must not be blank")
        return value


class DependencyInput(BaseModel):
    """
    One precedence link.

    File: links.csv
    """
    link_id: str = Field(description="Unique link identifier")
    pred_task_id: str = Field(description="Predecessor task id")
    succ_task_id: str = Field(description="Successor task id")
    link_type: Optional[str] = Field(default='FS', description="FS, SS, FF or SF (long forms accepted)")
    lag: int = Field(default=0, description="Lag in working units (negative = lead)")


class HolidayInput(BaseModel):
    """
    One non-working date of the project calendar.

    File: holidays.csv
    """
    date: datetime.date = Field(description="Holiday date (YYYY-MM-DD)")
    name: Optional[str] = Field(default=None, description="Holiday name")
    type: Optional[Literal['public', 'company', 'custom']] = Field(
        default='public', description="public, company or custom"
    )


class ScheduleOutput(BaseModel):
    """
    CPM result per task.

    File: schedule.csv
    """
    task_id: str = Field(description="Task identifier")
    task_name: Optional[str] = Field(default=None, description="Display name")
    duration: int = Field(description="Duration in working units")
    topo_index: int = Field(description="Position in the topological order")
    early_start: int = Field(description="Earliest start offset")
    early_finish: int = Field(description="Earliest finish offset")
    late_start: int = Field(description="Latest start offset")
    late_finish: int = Field(description="Latest finish offset")
    total_float: int = Field(description="Late start - early start")
    free_float: int = Field(description="Slack before any successor is delayed")
    is_critical: bool = Field(description="Total float within the critical epsilon")
    driving_links: Optional[str] = Field(default=None, description="Pipe-separated ids of driving links")


class CriticalPathOutput(BaseModel):
    """
    Critical path membership, one row per task per path.

    File: critical_paths.csv
    """
    path_id: int = Field(description="1-based critical path number")
    position: int = Field(description="1-based position of the task on the path")
    task_id: str = Field(description="Task identifier")
