"""Pytest configuration and fixtures."""
from datetime import date
from typing import List

import pytest

from scripts.schedule.analyze.cpm.models import Task, Dependency
from scripts.schedule.analyze.cpm.calendar import WorkingDayCalendar, Holiday


def _make_tasks(durations: dict) -> List[Task]:
    return [Task(task_id=tid, task_name=f"Task {tid}", duration=d) for tid, d in durations.items()]


def _link(pred: str, succ: str, dep_type: str = 'FS', lag: int = 0, link_id: str = None) -> Dependency:
    return Dependency(
        link_id=link_id or f"{pred}-{succ}",
        pred_task_id=pred,
        succ_task_id=succ,
        dep_type=dep_type,
        lag=lag,
    )


@pytest.fixture
def make_tasks():
    """Factory: tasks from a {task_id: duration} mapping, in mapping order."""
    return _make_tasks


@pytest.fixture
def make_link():
    """Factory: dependency with a readable default link id (e.g. 'A-B')."""
    return _link


@pytest.fixture
def fs_chain():
    """A(2) -> B(3) -> C(4), all finish-to-start."""
    tasks = _make_tasks({'A': 2, 'B': 3, 'C': 4})
    deps = [_link('A', 'B'), _link('B', 'C')]
    return tasks, deps


@pytest.fixture
def diamond():
    """A(1) -> B(5) -> D(1) and A -> C(2) -> D; C carries 3 units of float."""
    tasks = _make_tasks({'A': 1, 'B': 5, 'C': 2, 'D': 1})
    deps = [_link('A', 'B'), _link('A', 'C'), _link('B', 'D'), _link('C', 'D')]
    return tasks, deps


@pytest.fixture
def parallel_chains():
    """Two equal-length chains S -> X1 -> X2 -> E and S -> Y1 -> Y2 -> E."""
    tasks = _make_tasks({'S': 0, 'X1': 2, 'X2': 3, 'Y1': 3, 'Y2': 2, 'E': 0})
    deps = [
        _link('S', 'X1'), _link('X1', 'X2'), _link('X2', 'E'),
        _link('S', 'Y1'), _link('Y1', 'Y2'), _link('Y2', 'E'),
    ]
    return tasks, deps


@pytest.fixture
def calendar():
    """Mon-Fri calendar with New Year's Day 2025 (a Wednesday) off."""
    return WorkingDayCalendar.from_holidays(
        [Holiday(date=date(2025, 1, 1), name="New Year's Day")],
        calendar_id='test',
    )


@pytest.fixture
def schedule_dir(tmp_path):
    """Data directory with tasks.csv, links.csv and holidays.csv for the diamond network."""
    (tmp_path / 'tasks.csv').write_text(
        "task_id,task_name,duration,anchor_start\n"
        "A,Mobilize,1,\n"
        "B,Foundations,5,\n"
        "C,Utilities,2,\n"
        "D,Handover,1,\n"
    )
    (tmp_path / 'links.csv').write_text(
        "link_id,pred_task_id,succ_task_id,link_type,lag\n"
        "L1,A,B,FS,0\n"
        "L2,A,C,FS,0\n"
        "L3,B,D,finish-to-start,0\n"
        "L4,C,D,PR_FS,0\n"
    )
    (tmp_path / 'holidays.csv').write_text(
        "date,name,type\n"
        "2025-01-01,New Year's Day,public\n"
    )
    return tmp_path
