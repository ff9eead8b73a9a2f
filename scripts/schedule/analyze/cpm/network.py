"""
Dependency graph builder for CPM calculations.

Validates tasks and dependencies, keeps index-based adjacency
(task id -> link ids) in both directions and produces a deterministic
topological order.
"""

import heapq
import logging
from collections import defaultdict
from typing import Iterable, Optional

from .errors import (
    CyclicDependencyError,
    DuplicateTaskError,
    InvalidDependencyError,
    InvalidTaskError,
    UnknownTaskReferenceError,
)
from .models import Dependency, ScheduleWarning, Task, WarningCode

logger = logging.getLogger(__name__)


class TaskNetwork:
    """
    Directed graph of tasks joined by typed, lagged links.

    Links are stored once by id; each task keeps the ids of its incoming
    and outgoing links.
    """

    def __init__(self, strict: bool = False):
        self.strict = strict
        self.tasks: dict[str, Task] = {}
        self.dependencies: dict[str, Dependency] = {}
        self.warnings: list[ScheduleWarning] = []
        self._successors: dict[str, list[str]] = defaultdict(list)
        self._predecessors: dict[str, list[str]] = defaultdict(list)

    @classmethod
    def build(cls, tasks: Iterable[Task], dependencies: Iterable[Dependency],
              strict: bool = False) -> 'TaskNetwork':
        """
        Build and validate a network from task and link records.

        Args:
            tasks: Task records (ids must be unique)
            dependencies: Link records
            strict: If True, links to unknown tasks and duplicate link ids
                    abort the build; otherwise they are dropped with a warning

        Returns:
            TaskNetwork whose topological order is known to exist

        Raises:
            CyclicDependencyError: If the links form a cycle
            ScheduleError: For invalid tasks, or invalid links in strict mode
        """
        return cls(strict=strict).load(tasks, dependencies)

    def load(self, tasks: Iterable[Task], dependencies: Iterable[Dependency]) -> 'TaskNetwork':
        """
        Populate this network and check it is acyclic.

        Warnings recorded before a failure stay on ``self.warnings``.
        """
        for task in tasks:
            self.add_task(task)

        for dep in dependencies:
            if self.strict:
                self.add_dependency(dep)
            else:
                self.add_dependency_safe(dep)

        self._check_anchors()
        self.topological_sort()

        logger.debug(f"Built {self!r} ({len(self.warnings)} warnings)")
        return self

    def add_task(self, task: Task) -> None:
        """Add a task after checking its id, duration and anchor."""
        if task.task_id in self.tasks:
            raise DuplicateTaskError(task.task_id)
        if not isinstance(task.duration, int) or isinstance(task.duration, bool):
            raise InvalidTaskError(task.task_id, f"duration must be an integer, got {task.duration!r}")
        if task.duration < 0:
            raise InvalidTaskError(task.task_id, f"duration must be >= 0, got {task.duration}")
        if task.has_anchor() and task.anchor_start < 0:
            raise InvalidTaskError(task.task_id, f"anchor_start must be >= 0, got {task.anchor_start}")
        self.tasks[task.task_id] = task

    def add_dependency(self, dep: Dependency) -> None:
        """
        Add a dependency to the network.

        Raises UnknownTaskReferenceError if either end is missing and
        InvalidDependencyError for a repeated link id.
        """
        missing = self._missing_tasks(dep)
        if missing:
            raise UnknownTaskReferenceError(dep.link_id, missing)
        if dep.link_id in self.dependencies:
            raise InvalidDependencyError(dep.link_id, "duplicate link id")
        self._link(dep)

    def add_dependency_safe(self, dep: Dependency) -> bool:
        """
        Add a dependency only if both tasks exist and the link id is new.

        Returns True if added, False if skipped (a warning is recorded).
        """
        missing = self._missing_tasks(dep)
        if missing:
            self._warn(ScheduleWarning(
                code=WarningCode.UNKNOWN_TASK_REFERENCE,
                message=f"Dropped link {dep.link_id}: unknown task(s) {', '.join(missing)}",
                task_ids=tuple(missing),
                link_id=dep.link_id,
            ))
            return False
        if dep.link_id in self.dependencies:
            self._warn(ScheduleWarning(
                code=WarningCode.DUPLICATE_LINK,
                message=f"Dropped link {dep.link_id}: duplicate link id",
                task_ids=(dep.pred_task_id, dep.succ_task_id),
                link_id=dep.link_id,
            ))
            return False
        self._link(dep)
        return True

    def _missing_tasks(self, dep: Dependency) -> list[str]:
        missing = []
        for task_id in (dep.pred_task_id, dep.succ_task_id):
            if task_id not in self.tasks and task_id not in missing:
                missing.append(task_id)
        return missing

    def _link(self, dep: Dependency) -> None:
        self.dependencies[dep.link_id] = dep
        self._successors[dep.pred_task_id].append(dep.link_id)
        self._predecessors[dep.succ_task_id].append(dep.link_id)

    def _warn(self, warning: ScheduleWarning) -> None:
        logger.warning(str(warning))
        self.warnings.append(warning)

    def _check_anchors(self) -> None:
        """Anchors are only honoured on tasks without predecessors."""
        for task_id, task in self.tasks.items():
            if not task.has_anchor() or not self._predecessors.get(task_id):
                continue
            if self.strict:
                raise InvalidTaskError(task_id, "anchor_start is only allowed on tasks without predecessors")
            self._warn(ScheduleWarning(
                code=WarningCode.IGNORED_ANCHOR,
                message=f"Ignored anchor_start={task.anchor_start} on task {task_id}: it has predecessors",
                task_ids=(task_id,),
            ))

    def get_task(self, task_id: str) -> Optional[Task]:
        """Task by id, or None."""
        return self.tasks.get(task_id)

    def get_successors(self, task_id: str) -> list[Dependency]:
        """Outgoing links of task_id, in insertion order."""
        return [self.dependencies[lid] for lid in self._successors.get(task_id, [])]

    def get_predecessors(self, task_id: str) -> list[Dependency]:
        """Incoming links of task_id, in insertion order."""
        return [self.dependencies[lid] for lid in self._predecessors.get(task_id, [])]

    def get_predecessor_link_ids(self, task_id: str) -> list[str]:
        return list(self._predecessors.get(task_id, []))

    def get_start_tasks(self) -> list[str]:
        """Sorted ids of tasks without incoming links."""
        return sorted(tid for tid in self.tasks if not self._predecessors.get(tid))

    def get_end_tasks(self) -> list[str]:
        """Sorted ids of tasks without outgoing links."""
        return sorted(tid for tid in self.tasks if not self._successors.get(tid))

    def topological_sort(self) -> list[str]:
        """
        Return task IDs in topological order (predecessors before successors).

        Uses Kahn's algorithm with a min-heap so independent tasks come out
        in task-id order. Raises CyclicDependencyError with every task that
        could not be released if a cycle exists.
        """
        # Calculate in-degree for each task (one per link)
        in_degree = {tid: len(self._predecessors.get(tid, [])) for tid in self.tasks}

        # Seed with tasks that have no incoming links
        heap = [tid for tid, deg in in_degree.items() if deg == 0]
        heapq.heapify(heap)
        result = []

        while heap:
            task_id = heapq.heappop(heap)
            result.append(task_id)

            # Release successors whose last incoming link is consumed
            for dep in self.get_successors(task_id):
                in_degree[dep.succ_task_id] -= 1
                if in_degree[dep.succ_task_id] == 0:
                    heapq.heappush(heap, dep.succ_task_id)

        if len(result) != len(self.tasks):
            remaining = set(self.tasks) - set(result)
            raise CyclicDependencyError(remaining)

        return result

    def reverse_topological_sort(self) -> list[str]:
        """Topological order reversed, for the backward pass."""
        return list(reversed(self.topological_sort()))

    def get_all_predecessors(self, task_id: str, include_self: bool = False) -> set[str]:
        """Every task upstream of task_id."""
        return self._closure(task_id, self._predecessors, 'pred_task_id', include_self)

    def get_all_successors(self, task_id: str, include_self: bool = False) -> set[str]:
        """Every task downstream of task_id."""
        return self._closure(task_id, self._successors, 'succ_task_id', include_self)

    def _closure(self, task_id: str, adjacency: dict[str, list[str]],
                 end: str, include_self: bool) -> set[str]:
        result = set()
        if include_self:
            result.add(task_id)

        visited = set()
        stack = [task_id]

        while stack:
            current = stack.pop()
            if current in visited:
                continue
            visited.add(current)

            for link_id in adjacency.get(current, []):
                other = getattr(self.dependencies[link_id], end)
                result.add(other)
                stack.append(other)

        return result

    def get_statistics(self) -> dict:
        """Counts of tasks, links, start/end tasks, milestones and link types."""
        link_types = defaultdict(int)
        for dep in self.dependencies.values():
            link_types[dep.dep_type.value] += 1

        return {
            'total_tasks': len(self.tasks),
            'total_dependencies': len(self.dependencies),
            'start_tasks': len(self.get_start_tasks()),
            'end_tasks': len(self.get_end_tasks()),
            'milestones': sum(1 for t in self.tasks.values() if t.is_milestone()),
            'link_types': dict(link_types),
        }

    def validate(self) -> list[str]:
        """
        Collect integrity problems without raising.

        Returns build warnings, self links and any cycle (empty if clean).
        """
        issues = [str(w) for w in self.warnings]

        for dep in self.dependencies.values():
            if dep.pred_task_id == dep.succ_task_id:
                issues.append(f"Link {dep.link_id}: task {dep.pred_task_id} cannot depend on itself")

        # Cycles are reported, not raised
        try:
            self.topological_sort()
        except CyclicDependencyError as e:
            issues.append(str(e))

        return issues

    def __len__(self) -> int:
        return len(self.tasks)

    def __contains__(self, task_id: str) -> bool:
        return task_id in self.tasks

    def __repr__(self) -> str:
        return f"TaskNetwork({len(self.tasks)} tasks, {len(self.dependencies)} dependencies)"
