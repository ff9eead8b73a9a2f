"""
Unit tests for the compute() entry point and its async wrapper.
"""

import asyncio

import pytest

from scripts.schedule.analyze.cpm.models import Task, WarningCode
from scripts.schedule.analyze.cpm.engine import compute, compute_async, CancellationToken
from scripts.schedule.analyze.cpm.errors import (
    ComputationCancelled,
    CyclicDependencyError,
    UnknownTaskReferenceError,
)


class TestScheduleOutcome:
    """compute() returns a result or an error, never both."""

    def test_success(self, fs_chain):
        """A valid network gives a result and no error."""
        outcome = compute(*fs_chain)

        assert outcome.ok
        assert outcome.error is None
        assert outcome.result.project_duration == 9
        assert outcome.unwrap() is outcome.result

    def test_cycle_returns_error_without_result(self, make_tasks, make_link):
        """A cycle is returned as an error naming its tasks."""
        tasks = make_tasks({'A': 1, 'B': 1, 'C': 1})
        deps = [make_link('A', 'B'), make_link('B', 'C'), make_link('C', 'A')]

        outcome = compute(tasks, deps)

        assert not outcome.ok
        assert outcome.result is None
        assert isinstance(outcome.error, CyclicDependencyError)
        assert outcome.error.task_ids == ('A', 'B', 'C')

    def test_unwrap_raises_stored_error(self, make_tasks, make_link):
        """unwrap() re-raises the stored error."""
        tasks = make_tasks({'A': 1, 'B': 1})
        outcome = compute(tasks, [make_link('A', 'B'), make_link('B', 'A')])
        with pytest.raises(CyclicDependencyError):
            outcome.unwrap()

    def test_lenient_warnings_are_returned(self, make_tasks, make_link):
        """Build warnings travel with the outcome and the result."""
        tasks = make_tasks({'A': 1, 'B': 2})
        outcome = compute(tasks, [make_link('A', 'B'), make_link('A', 'X')], strict=False)

        assert outcome.ok
        assert [w.code for w in outcome.warnings] == [WarningCode.UNKNOWN_TASK_REFERENCE]
        assert outcome.result.warnings == outcome.warnings
        assert outcome.result.project_duration == 3

    def test_strict_unknown_reference_is_an_error(self, make_tasks, make_link):
        """Strict mode turns an unknown reference into the outcome error."""
        tasks = make_tasks({'A': 1})
        outcome = compute(tasks, [make_link('A', 'X')], strict=True)
        assert isinstance(outcome.error, UnknownTaskReferenceError)

    def test_warnings_survive_a_failed_build(self, make_tasks, make_link):
        """Warnings raised before a fatal error are still returned."""
        tasks = make_tasks({'A': 1, 'B': 1})
        deps = [make_link('A', 'X'), make_link('A', 'B'), make_link('B', 'A')]

        outcome = compute(tasks, deps, strict=False)

        assert isinstance(outcome.error, CyclicDependencyError)
        assert [w.code for w in outcome.warnings] == [WarningCode.UNKNOWN_TASK_REFERENCE]

    def test_invalid_task_is_an_error(self):
        """A bad duration is returned, not raised."""
        outcome = compute([Task('A', duration=-3)], [])
        assert not outcome.ok
        assert 'duration' in str(outcome.error)

    def test_explicit_arguments(self, diamond):
        """Explicit arguments override the settings defaults."""
        outcome = compute(*diamond, float_epsilon=3, project_deadline=9, max_critical_paths=10)

        result = outcome.unwrap()
        assert result.project_finish == 9
        assert result['C'].total_float == 5
        assert not result['C'].is_critical
        assert result['A'].is_critical

    def test_cancelled_before_start(self, fs_chain):
        """A cancelled token gives a ComputationCancelled error."""
        token = CancellationToken()
        token.cancel()

        outcome = compute(*fs_chain, cancel_token=token)

        assert outcome.result is None
        assert isinstance(outcome.error, ComputationCancelled)

    def test_token_not_cancelled(self, fs_chain):
        """An idle token does not interfere."""
        token = CancellationToken()
        assert not token.cancelled
        assert compute(*fs_chain, cancel_token=token).ok


class TestComputeAsync:
    """compute_async() offloads to a worker thread and returns the same outcome."""

    def test_matches_sync_result(self, diamond):
        """Async and sync runs agree."""
        sync_outcome = compute(*diamond)
        async_outcome = asyncio.run(compute_async(*diamond))

        assert async_outcome.ok
        assert dict(async_outcome.result.results) == dict(sync_outcome.result.results)
        assert async_outcome.result.critical_paths == sync_outcome.result.critical_paths

    def test_accepts_generators(self, fs_chain):
        """One-shot iterables are materialised before the thread hop."""
        tasks, deps = fs_chain
        outcome = asyncio.run(compute_async((t for t in tasks), (d for d in deps)))
        assert outcome.result.project_duration == 9

    def test_passes_keyword_arguments(self, fs_chain):
        """Keyword arguments reach compute()."""
        outcome = asyncio.run(compute_async(*fs_chain, project_deadline=7))
        assert not outcome.result.is_feasible

    def test_error_is_returned(self, make_tasks, make_link):
        """Errors come back in the outcome."""
        tasks = make_tasks({'A': 1})
        outcome = asyncio.run(compute_async(tasks, [make_link('A', 'A')]))
        assert isinstance(outcome.error, CyclicDependencyError)
