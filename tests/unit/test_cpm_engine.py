"""
Unit tests for the CPM engine passes.

Forward pass, backward pass and float for every link type, leads,
anchors, milestones and deadlines.
"""

import pytest

from scripts.schedule.analyze.cpm.models import Dependency, DependencyType, Task, WarningCode
from scripts.schedule.analyze.cpm.network import TaskNetwork
from scripts.schedule.analyze.cpm.engine import CPMEngine, CancellationToken
from scripts.schedule.analyze.cpm.errors import ComputationCancelled


def run(tasks, deps, **kwargs):
    deadline = kwargs.pop('project_deadline', None)
    engine = CPMEngine(TaskNetwork.build(tasks, deps), **kwargs)
    return engine.run(project_deadline=deadline)


def dates(result, task_id):
    r = result[task_id]
    return (r.early_start, r.early_finish, r.late_start, r.late_finish)


class TestForwardPass:
    """Early dates."""

    def test_fs_chain(self, fs_chain):
        """Each FS successor starts when its predecessor finishes."""
        engine = CPMEngine(TaskNetwork.build(*fs_chain))
        forward = engine.forward_pass()

        assert (forward.early_start['A'], forward.early_finish['A']) == (0, 2)
        assert (forward.early_start['B'], forward.early_finish['B']) == (2, 5)
        assert (forward.early_start['C'], forward.early_finish['C']) == (5, 9)
        assert forward.project_duration == 9

    def test_fs_with_lag(self, make_tasks, make_link):
        """Positive lag delays the successor."""
        result = run(make_tasks({'A': 2, 'B': 3}), [make_link('A', 'B', lag=3)])
        assert result['B'].early_start == 5
        assert result.project_duration == 8

    def test_fs_with_lead(self, make_tasks, make_link):
        """Negative lag lets the successor overlap its predecessor."""
        result = run(make_tasks({'A': 5, 'B': 3}), [make_link('A', 'B', lag=-2)])
        assert (result['B'].early_start, result['B'].early_finish) == (3, 6)

    def test_lead_is_clamped_at_epoch(self, make_tasks, make_link):
        """No task starts before offset 0, whatever the lead."""
        result = run(make_tasks({'A': 2, 'B': 3}), [make_link('A', 'B', lag=-5)])

        assert result['B'].early_start == 0
        # The clamped bound does not drive the task
        assert result['B'].driving_links == ()
        assert result.project_duration == 3

    def test_largest_bound_wins(self, make_tasks, make_link):
        """The latest predecessor bound sets the start and drives the task."""
        tasks = make_tasks({'A': 2, 'B': 6, 'C': 1})
        deps = [make_link('A', 'C'), make_link('B', 'C')]
        result = run(tasks, deps)
        assert result['C'].early_start == 6
        assert result['C'].driving_links == ('B-C',)

    def test_all_tied_links_are_driving(self, parallel_chains):
        """Every link whose bound equals the start is kept as driving."""
        result = run(*parallel_chains)
        assert result['E'].driving_links == ('X2-E', 'Y2-E')

    def test_start_task_has_no_driving_links(self, fs_chain):
        """Tasks without predecessors have no driving links."""
        result = run(*fs_chain)
        assert result['A'].driving_links == ()
        assert result['B'].driving_links == ('A-B',)

    def test_anchor_sets_start(self):
        """An anchored start task begins at its anchor offset."""
        tasks = [Task('A', duration=2, anchor_start=5), Task('B', duration=3)]
        result = run(tasks, [])

        assert dates(result, 'A') == (5, 7, 5, 7)
        assert dates(result, 'B') == (0, 3, 4, 7)
        assert result.project_duration == 7

    def test_ignored_anchor_does_not_move_task(self, make_link):
        """An anchor on a linked task is ignored in lenient mode."""
        tasks = [Task('A', duration=2), Task('B', duration=1, anchor_start=10)]
        result = run(tasks, [make_link('A', 'B')])
        assert result['B'].early_start == 2

    def test_milestones_take_no_time(self, make_tasks, make_link):
        """A zero-duration task finishes on its start offset."""
        tasks = make_tasks({'A': 3, 'M': 0, 'B': 2})
        result = run(tasks, [make_link('A', 'M'), make_link('M', 'B')])

        assert (result['M'].early_start, result['M'].early_finish) == (3, 3)
        assert result['B'].early_start == 3
        assert result['M'].is_critical

    def test_independent_tasks_start_at_epoch(self, make_tasks):
        """Unlinked tasks all start at offset 0."""
        result = run(make_tasks({'A': 4, 'B': 1}), [])
        assert result['A'].early_start == result['B'].early_start == 0
        assert result.project_duration == 4


class TestDependencyTypes:
    """Each link type with its forward and mirrored backward formula."""

    @pytest.mark.parametrize("dep_type, lag, a_dur, b_dur, b_dates, duration", [
        ('FS', 0, 2, 3, (2, 5, 2, 5), 5),
        ('SS', 1, 4, 3, (1, 4, 1, 4), 4),
        ('FF', 2, 4, 3, (3, 6, 3, 6), 6),
        ('SF', 5, 2, 3, (2, 5, 2, 5), 5),
    ])
    def test_two_task_network(self, make_tasks, make_link, dep_type, lag, a_dur, b_dur,
                              b_dates, duration):
        """Two linked tasks get the dates their link type implies."""
        tasks = make_tasks({'A': a_dur, 'B': b_dur})
        result = run(tasks, [make_link('A', 'B', dep_type, lag)])

        assert dates(result, 'B') == b_dates
        assert result.project_duration == duration
        assert result['A'].early_start == 0
        assert result['A'].total_float == 0
        assert result['B'].total_float == 0

    def test_ff_bound_below_epoch_is_clamped(self, make_tasks, make_link):
        """An FF bound implying a negative start is floored at the epoch."""
        result = run(make_tasks({'A': 1, 'B': 5}), [make_link('A', 'B', 'FF')])
        assert (result['B'].early_start, result['B'].early_finish) == (0, 5)

    def test_ss_predecessor_can_finish_last(self, make_tasks, make_link):
        """With SS links a non-terminal task can set the project duration."""
        result = run(make_tasks({'A': 10, 'B': 2}), [make_link('A', 'B', 'SS', 1)])

        assert result.project_duration == 10
        assert result['B'].total_float == 7
        assert result['A'].is_critical

    @pytest.mark.parametrize("raw, expected", [
        ('FS', DependencyType.FINISH_TO_START),
        ('ss', DependencyType.START_TO_START),
        ('finish-to-finish', DependencyType.FINISH_TO_FINISH),
        ('PR_SF', DependencyType.START_TO_FINISH),
    ])
    def test_string_type_is_coerced(self, raw, expected):
        """A Dependency built from a type string holds the enum member."""
        dep = Dependency('L1', 'A', 'B', raw, 0)
        assert dep.dep_type is expected

    def test_string_type_schedules_like_enum(self, make_tasks):
        """An FS link given as 'FS' is honoured by the forward pass."""
        deps = [Dependency('L1', 'A', 'B', 'FS', 0)]
        result = run(make_tasks({'A': 2, 'B': 3}), deps)

        assert result['B'].early_start == 2
        assert result.project_duration == 5

    def test_string_type_in_statistics(self, make_tasks):
        """Link type counts work for links built from strings."""
        network = TaskNetwork.build(make_tasks({'A': 1, 'B': 1}), [Dependency('L1', 'A', 'B', 'SS')])
        assert network.get_statistics()['link_types'] == {'SS': 1}

    def test_unknown_type_string_rejected(self):
        """A type string outside FS/SS/FF/SF fails at construction."""
        with pytest.raises(ValueError, match="Unknown dependency type"):
            Dependency('L1', 'A', 'B', 'XX', 0)


class TestBackwardPassAndFloat:
    """Late dates, total float and free float."""

    def test_fs_chain_all_critical(self, fs_chain):
        """A single chain has zero float everywhere."""
        result = run(*fs_chain)

        assert dates(result, 'A') == (0, 2, 0, 2)
        assert dates(result, 'B') == (2, 5, 2, 5)
        assert dates(result, 'C') == (5, 9, 5, 9)
        assert all(r.is_critical for r in result.results.values())
        assert all(r.total_float == 0 for r in result.results.values())

    def test_diamond_float(self, diamond):
        """The short branch of a diamond carries float."""
        result = run(*diamond)

        assert result.project_duration == 7
        assert dates(result, 'C') == (1, 3, 4, 6)
        assert result['C'].total_float == 3
        assert result['C'].free_float == 3
        assert not result['C'].is_critical
        assert result['A'].free_float == 0
        assert result.critical_task_ids() == ['A', 'B', 'D']

    def test_free_float_below_total_float(self, make_tasks, make_link):
        """Free float measures slack against the next task, not the project."""
        tasks = make_tasks({'A': 1, 'B': 1, 'C': 5, 'D': 1})
        deps = [make_link('A', 'B'), make_link('B', 'D'), make_link('C', 'D')]
        result = run(tasks, deps)

        # A can slip 3 units before the project moves but 0 before B moves
        assert result['A'].total_float == 3
        assert result['A'].free_float == 0
        assert result['B'].free_float == 3

    def test_free_float_respects_lag(self, make_tasks, make_link):
        """Lag is part of the bound free float is measured against."""
        tasks = make_tasks({'A': 2, 'B': 3, 'C': 10})
        deps = [make_link('A', 'B', lag=1), make_link('C', 'B')]
        result = run(tasks, deps)

        assert result['B'].early_start == 10
        assert result['A'].free_float == 7
        assert result['A'].total_float == 7

    def test_terminal_task_free_float_equals_total_float(self, make_tasks):
        """Without successors free float equals total float."""
        result = run(make_tasks({'A': 5, 'B': 2}), [])
        assert result['B'].total_float == 3
        assert result['B'].free_float == 3

    def test_late_finish_capped_by_project_finish(self, make_tasks, make_link):
        """No task may finish later than the project finish."""
        result = run(make_tasks({'A': 2, 'B': 3}), [make_link('A', 'B', lag=-5)])
        assert dates(result, 'A') == (0, 2, 1, 3)
        assert result['A'].total_float == 1

    def test_float_epsilon_widens_critical_set(self, diamond):
        """Tasks within epsilon of zero float count as critical."""
        result = run(*diamond, float_epsilon=3)
        assert result['C'].is_critical
        assert result.critical_task_ids() == ['A', 'B', 'C', 'D']


class TestDeadline:
    """A project deadline replaces the computed finish in the backward pass."""

    def test_tight_deadline_gives_negative_float(self, fs_chain):
        """A deadline before the computed finish makes float negative."""
        result = run(*fs_chain, project_deadline=7)

        assert result.project_duration == 9
        assert result.project_finish == 7
        assert all(r.total_float == -2 for r in result.results.values())
        assert all(r.is_critical for r in result.results.values())
        assert not result.is_feasible

        codes = [w.code for w in result.warnings]
        assert WarningCode.INFEASIBLE_SCHEDULE in codes

    def test_loose_deadline_gives_positive_float(self, fs_chain):
        """A deadline after the computed finish adds float to every task."""
        result = run(*fs_chain, project_deadline=12)

        assert all(r.total_float == 3 for r in result.results.values())
        assert result.is_feasible
        assert result.critical_paths == ()
        assert result.warnings == ()


class TestEngineBehaviour:
    """Determinism, immutability and cancellation."""

    def test_runs_are_deterministic(self, diamond):
        """Input order does not change the result."""
        tasks, deps = diamond
        first = run(tasks, deps)
        second = run(list(reversed(tasks)), list(reversed(deps)))

        assert dict(first.results) == dict(second.results)
        assert first.topological_order == second.topological_order
        assert first.critical_paths == second.critical_paths

    def test_result_mapping_is_read_only(self, fs_chain):
        """Published results cannot be patched."""
        result = run(*fs_chain)
        with pytest.raises(TypeError):
            result.results['A'] = None

    def test_inputs_are_not_modified(self, fs_chain):
        """The caller's task and link lists are left untouched."""
        tasks, deps = fs_chain
        before = (list(tasks), list(deps))
        run(tasks, deps)
        assert (tasks, deps) == before

    def test_passes_return_new_objects(self, fs_chain):
        """Each pass returns its own result object."""
        engine = CPMEngine(TaskNetwork.build(*fs_chain))
        forward = engine.forward_pass()
        backward = engine.backward_pass(forward)

        assert backward.project_finish == 9
        assert backward.late_start == {'A': 0, 'B': 2, 'C': 5}

    def test_empty_network(self):
        """An empty network gives an empty zero-length result."""
        result = run([], [])
        assert len(result) == 0
        assert result.project_duration == 0
        assert result.critical_paths == ()

    def test_cancelled_token_stops_run(self, fs_chain):
        """A cancelled token stops the run at the first checkpoint."""
        token = CancellationToken()
        token.cancel()
        engine = CPMEngine(TaskNetwork.build(*fs_chain), cancel_token=token)

        with pytest.raises(ComputationCancelled) as exc_info:
            engine.run()
        assert exc_info.value.phase == 'build'

    def test_get_tasks_by_float(self, diamond):
        """Results sort by total float, ties by id."""
        result = run(*diamond)
        assert [r.task_id for r in result.get_tasks_by_float()] == ['A', 'B', 'D', 'C']
        assert [r.task_id for r in result.get_tasks_by_float(max_float=0)] == ['A', 'B', 'D']
