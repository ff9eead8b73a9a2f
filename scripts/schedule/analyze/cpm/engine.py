"""
CPM (Critical Path Method) Engine.

Implements forward and backward pass calculations over integer offsets,
float classification and critical path extraction. The whole pipeline is
exposed as the pure function ``compute()``.
"""

import asyncio
import logging
import threading
from dataclasses import dataclass
from typing import Iterable, Optional

from src.config.settings import settings
from .errors import ComputationCancelled, ScheduleError
from .models import (
    PROJECT_EPOCH,
    CPMResult,
    Dependency,
    ScheduleOutcome,
    ScheduleResult,
    ScheduleWarning,
    Task,
    WarningCode,
)
from .network import TaskNetwork

logger = logging.getLogger(__name__)


class CancellationToken:
    """Thread-safe flag checked by the engine between phases."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self, phase: str) -> None:
        if self._event.is_set():
            raise ComputationCancelled(phase)


@dataclass(frozen=True)
class ForwardPassResult:
    early_start: dict[str, int]
    early_finish: dict[str, int]
    driving_links: dict[str, tuple[str, ...]]
    project_duration: int


@dataclass(frozen=True)
class BackwardPassResult:
    late_start: dict[str, int]
    late_finish: dict[str, int]
    project_finish: int


class CPMEngine:
    """
    CPM calculation engine.

    Performs forward pass (early dates), backward pass (late dates),
    float calculation, and critical path identification. Each pass
    returns its own result object; the network and its tasks are never
    modified.
    """

    def __init__(self, network: TaskNetwork, float_epsilon: Optional[int] = None,
                 max_critical_paths: Optional[int] = None,
                 cancel_token: Optional[CancellationToken] = None):
        """
        Initialize CPM engine.

        Args:
            network: Validated task network
            float_epsilon: Tasks with total float <= epsilon are critical
            max_critical_paths: Stop enumerating critical paths after this many
            cancel_token: Checked after each phase
        """
        self.network = network
        self.float_epsilon = settings.FLOAT_EPSILON if float_epsilon is None else float_epsilon
        self.max_critical_paths = (
            settings.MAX_CRITICAL_PATHS if max_critical_paths is None else max_critical_paths
        )
        self.cancel_token = cancel_token
        self._order: Optional[list[str]] = None

    @property
    def order(self) -> list[str]:
        """Topological order of the network (computed once)."""
        if self._order is None:
            self._order = self.network.topological_sort()
        return self._order

    def _checkpoint(self, phase: str) -> None:
        if self.cancel_token is not None:
            self.cancel_token.raise_if_cancelled(phase)

    def forward_pass(self) -> ForwardPassResult:
        """
        Calculate early start and early finish for all tasks.

        Processes tasks in topological order. A task without predecessors
        starts at its anchor or the project epoch; any other task starts at
        the largest bound implied by its incoming links, never before the
        epoch.
        """
        early_start: dict[str, int] = {}
        early_finish: dict[str, int] = {}
        driving_links: dict[str, tuple[str, ...]] = {}

        for task_id in self.order:
            task = self.network.tasks[task_id]
            predecessors = self.network.get_predecessors(task_id)

            if not predecessors:
                start = task.anchor_start if task.has_anchor() else PROJECT_EPOCH
                drivers: tuple[str, ...] = ()
            else:
                bounds = [
                    (dep.link_id, self._get_driven_early_start(dep, task, early_start, early_finish))
                    for dep in predecessors
                ]
                start = max(PROJECT_EPOCH, max(bound for _, bound in bounds))
                # A link drives the task when its bound is exactly the chosen start
                drivers = tuple(link_id for link_id, bound in bounds if bound == start)

            early_start[task_id] = start
            early_finish[task_id] = start + task.duration
            driving_links[task_id] = drivers

        project_duration = max(early_finish.values(), default=PROJECT_EPOCH)
        logger.debug(f"Forward pass: {len(early_start)} tasks, project duration {project_duration}")

        return ForwardPassResult(
            early_start=early_start,
            early_finish=early_finish,
            driving_links=driving_links,
            project_duration=project_duration,
        )

    @staticmethod
    def _get_driven_early_start(dep: Dependency, succ: Task,
                                early_start: dict[str, int],
                                early_finish: dict[str, int]) -> int:
        """
        Calculate the early start driven by a predecessor relationship.

        Handles FS, SS, FF, SF relationship types with lag.
        """
        pred_id = dep.pred_task_id

        if dep.is_finish_to_start():
            # FS: successor starts after predecessor finishes + lag
            return early_finish[pred_id] + dep.lag

        elif dep.is_start_to_start():
            # SS: successor starts after predecessor starts + lag
            return early_start[pred_id] + dep.lag

        elif dep.is_finish_to_finish():
            # FF: successor finishes after predecessor finishes + lag
            return early_finish[pred_id] + dep.lag - succ.duration

        # SF: successor finishes after predecessor starts + lag
        return early_start[pred_id] + dep.lag - succ.duration

    def backward_pass(self, forward: ForwardPassResult,
                      project_deadline: Optional[int] = None) -> BackwardPassResult:
        """
        Calculate late start and late finish for all tasks.

        Processes tasks in reverse topological order. Terminal tasks finish
        at the project finish (the deadline if given, else the project
        duration); other tasks take the smallest bound implied by their
        outgoing links, capped at the project finish.
        """
        project_finish = forward.project_duration if project_deadline is None else project_deadline

        late_start: dict[str, int] = {}
        late_finish: dict[str, int] = {}

        for task_id in reversed(self.order):
            task = self.network.tasks[task_id]

            finish = project_finish
            for dep in self.network.get_successors(task_id):
                driven = self._get_driven_late_finish(dep, task, late_start, late_finish)
                if driven < finish:
                    finish = driven

            late_finish[task_id] = finish
            late_start[task_id] = finish - task.duration

        logger.debug(f"Backward pass: {len(late_finish)} tasks, project finish {project_finish}")

        return BackwardPassResult(
            late_start=late_start,
            late_finish=late_finish,
            project_finish=project_finish,
        )

    @staticmethod
    def _get_driven_late_finish(dep: Dependency, pred: Task,
                                late_start: dict[str, int],
                                late_finish: dict[str, int]) -> int:
        """
        Calculate the late finish driven by a successor relationship.

        This is the reverse of _get_driven_early_start.
        """
        succ_id = dep.succ_task_id

        if dep.is_finish_to_start():
            # FS: pred finishes before successor starts - lag
            return late_start[succ_id] - dep.lag

        elif dep.is_start_to_start():
            # SS: pred starts before successor starts - lag
            return late_start[succ_id] - dep.lag + pred.duration

        elif dep.is_finish_to_finish():
            # FF: pred finishes before successor finishes - lag
            return late_finish[succ_id] - dep.lag

        # SF: pred starts before successor finishes - lag
        return late_finish[succ_id] - dep.lag + pred.duration

    @staticmethod
    def _get_link_slack(dep: Dependency, early_start: dict[str, int],
                        early_finish: dict[str, int]) -> int:
        """Units the predecessor can slip before this link delays its successor."""
        pred_id, succ_id = dep.pred_task_id, dep.succ_task_id

        if dep.is_finish_to_start():
            return early_start[succ_id] - (early_finish[pred_id] + dep.lag)
        elif dep.is_start_to_start():
            return early_start[succ_id] - (early_start[pred_id] + dep.lag)
        elif dep.is_finish_to_finish():
            return early_finish[succ_id] - (early_finish[pred_id] + dep.lag)
        return early_finish[succ_id] - (early_start[pred_id] + dep.lag)

    def calculate_float(self, forward: ForwardPassResult,
                        backward: BackwardPassResult) -> dict[str, ScheduleResult]:
        """
        Calculate total float and free float for all tasks.

        Total Float = Late Start - Early Start
        Free Float = min slack over outgoing links (total float if none)
        """
        results: dict[str, ScheduleResult] = {}

        for task_id in self.order:
            es = forward.early_start[task_id]
            ls = backward.late_start[task_id]
            total_float = ls - es

            successors = self.network.get_successors(task_id)
            if successors:
                free_float = min(
                    self._get_link_slack(dep, forward.early_start, forward.early_finish)
                    for dep in successors
                )
            else:
                free_float = total_float

            results[task_id] = ScheduleResult(
                task_id=task_id,
                early_start=es,
                early_finish=forward.early_finish[task_id],
                late_start=ls,
                late_finish=backward.late_finish[task_id],
                total_float=total_float,
                free_float=free_float,
                is_critical=total_float <= self.float_epsilon,
                driving_links=forward.driving_links[task_id],
            )

        return results

    def get_critical_paths(self, results: dict[str, ScheduleResult]) -> tuple[list[tuple[str, ...]], bool]:
        """
        Enumerate all maximal chains of critical tasks joined by driving links.

        Returns:
            Tuple of (paths, truncated). Paths start at critical tasks with no
            critical driving predecessor and are ordered by (ES, id) of their
            first task, then depth-first in task-id order.
        """
        critical = {tid for tid, r in results.items() if r.is_critical}

        next_on_path: dict[str, set[str]] = {}
        has_critical_driver: set[str] = set()
        for task_id in self.order:
            if task_id not in critical:
                continue
            for link_id in results[task_id].driving_links:
                pred_id = self.network.dependencies[link_id].pred_task_id
                if pred_id in critical:
                    next_on_path.setdefault(pred_id, set()).add(task_id)
                    has_critical_driver.add(task_id)

        starts = sorted(
            (tid for tid in critical if tid not in has_critical_driver),
            key=lambda tid: (results[tid].early_start, tid),
        )

        paths: list[tuple[str, ...]] = []
        for start in starts:
            stack = [(start,)]
            while stack:
                path = stack.pop()
                successors = next_on_path.get(path[-1])
                if not successors:
                    if len(paths) >= self.max_critical_paths:
                        return paths, True
                    paths.append(path)
                    continue
                # Push in reverse so the smallest id is explored first
                for succ_id in sorted(successors, reverse=True):
                    stack.append(path + (succ_id,))

        return paths, False

    def run(self, project_deadline: Optional[int] = None) -> CPMResult:
        """
        Execute full CPM calculation.

        Args:
            project_deadline: Optional late-finish boundary (offset). Earlier
                              than the project duration yields negative float.

        Returns:
            CPMResult with all calculated values

        Raises:
            CyclicDependencyError: If the network is cyclic
            ComputationCancelled: If the cancel token fired between phases
        """
        order = self.order
        self._checkpoint('build')

        forward = self.forward_pass()
        self._checkpoint('forward pass')

        backward = self.backward_pass(forward, project_deadline)
        self._checkpoint('backward pass')

        results = self.calculate_float(forward, backward)
        paths, truncated = self.get_critical_paths(results)

        warnings = list(self.network.warnings)

        negative = [tid for tid in order if results[tid].total_float < 0]
        if negative:
            worst = min(results[tid].total_float for tid in negative)
            warning = ScheduleWarning(
                code=WarningCode.INFEASIBLE_SCHEDULE,
                message=(f"{len(negative)} task(s) have negative total float "
                         f"(worst {worst}); project finish {backward.project_finish} "
                         f"is earlier than duration {forward.project_duration}"),
                task_ids=tuple(negative),
            )
            logger.warning(str(warning))
            warnings.append(warning)

        if truncated:
            warning = ScheduleWarning(
                code=WarningCode.CRITICAL_PATHS_TRUNCATED,
                message=f"Critical path enumeration stopped after {self.max_critical_paths} paths",
            )
            logger.warning(str(warning))
            warnings.append(warning)

        logger.info(f"CPM complete: {len(order)} tasks, duration {forward.project_duration}, "
                    f"{len(paths)} critical path(s)")

        return CPMResult(
            results=results,
            topological_order=tuple(order),
            project_duration=forward.project_duration,
            project_finish=backward.project_finish,
            critical_paths=tuple(paths),
            warnings=tuple(warnings),
        )


def compute(
    tasks: Iterable[Task],
    dependencies: Iterable[Dependency],
    strict: Optional[bool] = None,
    float_epsilon: Optional[int] = None,
    project_deadline: Optional[int] = None,
    max_critical_paths: Optional[int] = None,
    cancel_token: Optional[CancellationToken] = None,
) -> ScheduleOutcome:
    """
    Convert a task/link snapshot into a schedule.

    Scheduling failures are returned in ``ScheduleOutcome.error`` rather
    than raised; no partial result is ever returned alongside an error.

    Args:
        tasks: Task records
        dependencies: Link records
        strict: Fail on links to unknown tasks (default: settings.STRICT_LINKS)
        float_epsilon: Critical float threshold (default: settings.FLOAT_EPSILON)
        project_deadline: Optional late-finish boundary
        max_critical_paths: Enumeration cap (default: settings.MAX_CRITICAL_PATHS)
        cancel_token: Checked after build, forward pass and backward pass

    Returns:
        ScheduleOutcome with either a CPMResult or a ScheduleError
    """
    strict = settings.STRICT_LINKS if strict is None else strict
    network = TaskNetwork(strict=strict)

    try:
        network.load(tasks, dependencies)
        engine = CPMEngine(
            network,
            float_epsilon=float_epsilon,
            max_critical_paths=max_critical_paths,
            cancel_token=cancel_token,
        )
        result = engine.run(project_deadline=project_deadline)
    except ScheduleError as e:
        logger.error(f"CPM computation failed: {e}")
        return ScheduleOutcome(error=e, warnings=tuple(network.warnings))

    return ScheduleOutcome(result=result, warnings=result.warnings)


async def compute_async(
    tasks: Iterable[Task],
    dependencies: Iterable[Dependency],
    **kwargs,
) -> ScheduleOutcome:
    """Run compute() on a worker thread, off the event loop."""
    # Snapshot the inputs before handing them to another thread
    task_list = list(tasks)
    dependency_list = list(dependencies)
    return await asyncio.to_thread(compute, task_list, dependency_list, **kwargs)
